from __future__ import annotations

import logging
import re
from typing import Iterable

from odontogram.schemas.catalog import BilledItem
from odontogram.schemas.odontogram import OdontogramState, ToothState, empty_chart
from odontogram.services.chart_constants import (
    BAR_DENTURE_MISSING,
    FIXED_BRIDGE_UNITS,
    LOWER_ARCH,
    SURFACES,
    UPPER_ARCH,
    tooth_number,
)
from odontogram.services.tooth_mutations import reset_tooth

logger = logging.getLogger("odontogram.mutator")

NO_TOOTH = "__no-tooth"
FULL_DENTURE = "__full-denture"
BAR_DENTURE_12 = "__bar-denture-12"
BAR_DENTURE_14 = "__bar-denture-14"
ARCHES = {"upper", "lower"}

_FILLING_RE = re.compile(
    r"^filling-(composite|gic|amalgam|temporary)-(" + "|".join(SURFACES) + r")$"
)
_CROWN_RE = re.compile(r"^(metal|zircon|emax|temporary|telescope)-crown$")
_ENDO_STATUSES = {
    "endo-filling",
    "endo-medical-filling",
    "endo-filling-incomplete",
    "endo-glass-pin",
    "endo-metal-pin",
}
_IMPLANT_PARTS = {"implant-connector", "implant-locator-screw"}
_TELESCOPE_PARTS = {"telescope-crown-inside", "telescope-crown-outside"}


def _append_unique(values: list[str], value: str) -> list[str]:
    if value in values:
        return values
    return [*values, value]


def _set_arch(state: OdontogramState, teeth: Iterable[int], bridge_unit: str) -> None:
    for tooth in teeth:
        state.teeth[str(tooth)] = ToothState(tooth_selection="none", bridge_unit=bridge_unit)


def _clear_for_gap(tooth: ToothState) -> None:
    reset_tooth(tooth)
    tooth.tooth_selection = "none"


def apply_layer(tooth: ToothState, layer_id: str) -> None:
    """Apply one resolved (non-marker) layer id onto a tooth's typed fields."""
    filling = _FILLING_RE.match(layer_id)
    if filling:
        tooth.filling_material = filling.group(1)
        tooth.filling_surfaces = _append_unique(tooth.filling_surfaces, filling.group(2))
        return

    if layer_id == "implant-base":
        tooth.tooth_selection = "implant"
        return

    if layer_id in _IMPLANT_PARTS:
        tooth.tooth_selection = "implant"
        tooth.mods = _append_unique(tooth.mods, layer_id)
        return

    if layer_id in _TELESCOPE_PARTS:
        tooth.crown_material = "telescope"
        return

    crown = _CROWN_RE.match(layer_id)
    if crown:
        material = crown.group(1)
        tooth.crown_material = material
        if tooth.bridge_unit in FIXED_BRIDGE_UNITS:
            mapped = "zircon" if material == "emax" else material
            if mapped in FIXED_BRIDGE_UNITS:
                tooth.bridge_unit = mapped
        return

    if layer_id in _ENDO_STATUSES:
        tooth.endo = layer_id
        return

    if layer_id == "endo-resection":
        tooth.endo_resection = True
        return

    if layer_id in {"fissure-sealing", "fissure-sealing-occlusal"}:
        tooth.fissure_sealing = True
        return

    if layer_id == "prosthesis-crown":
        tooth.tooth_selection = "none"
        tooth.bridge_unit = "removable"
        return

    logger.debug("Unrecognized layer %s stored as mod", layer_id)
    tooth.mods = _append_unique(tooth.mods, layer_id)


def compute_odontogram_state_from_items(
    items: list[BilledItem], base: OdontogramState | None = None
) -> OdontogramState:
    state = base.model_copy(deep=True) if base is not None else empty_chart()

    for item in items:
        layers = item.resolved_layers

        if FULL_DENTURE in layers:
            if item.treated_area not in ARCHES:
                logger.warning(
                    "Full denture line %s skipped: treated area %r is not an arch",
                    item.line_id,
                    item.treated_area,
                )
                continue
            arch = UPPER_ARCH if item.treated_area == "upper" else LOWER_ARCH
            _set_arch(state, arch, "removable")
            continue

        if BAR_DENTURE_12 in layers or BAR_DENTURE_14 in layers:
            if item.treated_area not in ARCHES:
                logger.warning(
                    "Bar denture line %s skipped: treated area %r is not an arch",
                    item.line_id,
                    item.treated_area,
                )
                continue
            variant = "12" if BAR_DENTURE_12 in layers else "14"
            _set_arch(state, BAR_DENTURE_MISSING[variant][item.treated_area], "bar-prosthesis")
            continue

        teeth = item.teeth()
        if not teeth:
            continue

        for key in teeth:
            number = tooth_number(key)
            if number is None:
                logger.warning("Line %s: skipping unknown tooth %r", item.line_id, key)
                continue
            tooth = state.tooth(number)
            if NO_TOOTH in layers:
                # Later layers on the same line still apply (gap + prosthetic unit).
                _clear_for_gap(tooth)
            for layer_id in layers:
                if layer_id.startswith("__"):
                    continue
                apply_layer(tooth, layer_id)

    return state
