"""Validated edits on a single tooth.

Every function checks its request first and raises `ChartValidationError`
without touching the tooth when the request is not allowed. Turning a finding
off is always allowed.
"""

from __future__ import annotations

from typing import Callable, get_args

from odontogram.schemas.odontogram import (
    BridgeUnit,
    CrownMaterial,
    EndoStatus,
    FillingMaterial,
    Mobility,
    ToothSelection,
    ToothState,
)
from odontogram.services.chart_constants import (
    CARIES_SITES,
    IMPLANT_ONLY_CROWNS,
    MILKTOOTH_BLOCKED,
    NATURAL_CROWNS,
    SURFACES,
    tooth_key,
    tooth_number,
)
from odontogram.services.errors import ChartValidationError
from odontogram.services.layer_rules import (
    bruxism_allowed,
    contact_points_allowed,
    fissure_sealing_allowed,
    tooth_flags,
)

MILKTOOTH_ENDO = frozenset({"none", "endo-medical-filling"})
MILKTOOTH_FILLINGS = frozenset({"none", "composite", "gic"})


def _reject(message: str, *, field: str, position: int | str) -> ChartValidationError:
    return ChartValidationError(message, field=field, tooth=tooth_key(position))


def _check_choice(value: str, literal, *, field: str, position: int | str) -> None:
    if value not in get_args(literal):
        raise _reject(f"Unknown {field} value {value!r}", field=field, position=position)


def _require_visible(tooth: ToothState, position: int | str, field: str) -> None:
    if not tooth_flags(tooth).visible_crown_area:
        raise _reject(
            f"{field} requires a visible tooth (selection is {tooth.tooth_selection})",
            field=field,
            position=position,
        )


def set_tooth_selection(tooth: ToothState, position: int | str, selection: str) -> None:
    _check_choice(selection, ToothSelection, field="toothSelection", position=position)
    if selection == "milktooth" and tooth_number(position) in MILKTOOTH_BLOCKED:
        raise _reject(
            f"Position {position} cannot hold a milk tooth", field="toothSelection", position=position
        )

    tooth.tooth_selection = selection
    if selection in {"implant", "milktooth", "tooth-under-gum", "no-tooth-after-extraction"}:
        tooth.crown_material = "natural"
    if selection == "milktooth":
        if tooth.endo not in MILKTOOTH_ENDO:
            tooth.endo = "none"
        if tooth.filling_material not in MILKTOOTH_FILLINGS:
            tooth.filling_material = "none"
    if selection in {"implant", "none"}:
        tooth.caries = []
        tooth.endo = "none"
        tooth.pulp_inflam = False
        tooth.filling_material = "none"
        tooth.filling_surfaces = []
    if selection != "none":
        tooth.bridge_unit = "none"


def set_crown_material(tooth: ToothState, position: int | str, material: str) -> None:
    _check_choice(material, CrownMaterial, field="crownMaterial", position=position)
    if material != "natural":
        flags = tooth_flags(tooth)
        if flags.is_implant:
            if material not in IMPLANT_ONLY_CROWNS | {"zircon", "metal", "temporary"}:
                raise _reject(
                    f"Crown {material!r} is not available on an implant",
                    field="crownMaterial",
                    position=position,
                )
        else:
            if material not in NATURAL_CROWNS:
                raise _reject(
                    f"Crown {material!r} is only available on an implant",
                    field="crownMaterial",
                    position=position,
                )
            if not flags.visible_crown_area or flags.is_milktooth:
                raise _reject(
                    f"A crown cannot be placed on a {tooth.tooth_selection} position",
                    field="crownMaterial",
                    position=position,
                )
    tooth.crown_material = material


def set_endo(tooth: ToothState, position: int | str, endo: str) -> None:
    _check_choice(endo, EndoStatus, field="endo", position=position)
    if endo != "none":
        _require_visible(tooth, position, "endo")
        if tooth.tooth_selection == "milktooth" and endo not in MILKTOOTH_ENDO:
            raise _reject(f"{endo} is not available on a milk tooth", field="endo", position=position)
    tooth.endo = endo


def set_mobility(tooth: ToothState, position: int | str, mobility: str) -> None:
    _check_choice(mobility, Mobility, field="mobility", position=position)
    if mobility != "none":
        flags = tooth_flags(tooth)
        if tooth.tooth_selection == "none" or flags.is_extraction:
            raise _reject("Mobility requires a tooth", field="mobility", position=position)
    tooth.mobility = mobility


def set_filling_material(tooth: ToothState, position: int | str, material: str) -> None:
    _check_choice(material, FillingMaterial, field="fillingMaterial", position=position)
    if material != "none":
        _require_visible(tooth, position, "fillingMaterial")
        if tooth_flags(tooth).has_crown:
            raise _reject("Crowned teeth take no filling", field="fillingMaterial", position=position)
        if tooth.tooth_selection == "milktooth" and material not in MILKTOOTH_FILLINGS:
            raise _reject(
                f"{material} is not available on a milk tooth",
                field="fillingMaterial",
                position=position,
            )
    tooth.filling_material = material


def set_filling_surface(tooth: ToothState, position: int | str, surface: str, on: bool) -> None:
    if surface not in SURFACES:
        raise _reject(f"Unknown surface {surface!r}", field="fillingSurfaces", position=position)
    if not on:
        tooth.filling_surfaces = [s for s in tooth.filling_surfaces if s != surface]
        return
    _require_visible(tooth, position, "fillingSurfaces")
    if tooth.filling_material == "none":
        raise _reject("Choose a filling material first", field="fillingSurfaces", position=position)
    if surface not in tooth.filling_surfaces:
        tooth.filling_surfaces = [*tooth.filling_surfaces, surface]


def set_caries(tooth: ToothState, position: int | str, site: str, on: bool) -> None:
    site = site.removeprefix("caries-")
    if site not in CARIES_SITES:
        raise _reject(f"Unknown caries site {site!r}", field="caries", position=position)
    if not on:
        tooth.caries = [s for s in tooth.caries if s != site]
        return
    _require_visible(tooth, position, "caries")
    flags = tooth_flags(tooth)
    if site == "subcrown" and not flags.has_crown:
        raise _reject("Subcrown caries requires a crown", field="caries", position=position)
    if site != "subcrown" and flags.has_restoration:
        raise _reject("Surface caries is hidden by the restoration", field="caries", position=position)
    if site not in tooth.caries:
        tooth.caries = [*tooth.caries, site]


def set_bridge_unit(tooth: ToothState, position: int | str, unit: str) -> None:
    _check_choice(unit, BridgeUnit, field="bridgeUnit", position=position)
    if unit != "none" and tooth.tooth_selection != "none":
        raise _reject("A prosthetic unit needs a missing tooth", field="bridgeUnit", position=position)
    tooth.bridge_unit = unit


def toggle_mod(tooth: ToothState, position: int | str, mod: str, on: bool) -> None:
    mod = mod.strip()
    if not mod:
        raise _reject("Empty mod", field="mods", position=position)
    if on:
        if mod not in tooth.mods:
            tooth.mods = [*tooth.mods, mod]
    else:
        tooth.mods = [m for m in tooth.mods if m != mod]


def _visible(tooth: ToothState, _position: int | str) -> bool:
    return tooth_flags(tooth).visible_crown_area


def _contact(tooth: ToothState, _position: int | str) -> bool:
    return contact_points_allowed(tooth)


def _bruxism(tooth: ToothState, _position: int | str) -> bool:
    return bruxism_allowed(tooth)


def _exists(tooth: ToothState, _position: int | str) -> bool:
    return tooth.tooth_selection != "none"


def _gap(tooth: ToothState, _position: int | str) -> bool:
    return tooth.tooth_selection in {"none", "no-tooth-after-extraction"}


FLAG_RULES: dict[str, Callable[[ToothState, int | str], bool]] = {
    "pulp_inflam": _visible,
    "endo_resection": _visible,
    "fissure_sealing": fissure_sealing_allowed,
    "contact_mesial": _contact,
    "contact_distal": _contact,
    "bruxism_wear": _bruxism,
    "bruxism_neck_wear": _bruxism,
    "broken_mesial": _visible,
    "broken_incisal": _visible,
    "broken_distal": _visible,
    "bridge_pillar": _exists,
    "extraction_plan": _exists,
    "extraction_wound": _gap,
}


def set_flag(tooth: ToothState, position: int | str, name: str, on: bool) -> None:
    rule = FLAG_RULES.get(name)
    if rule is None:
        raise _reject(f"Unknown flag {name!r}", field=name, position=position)
    if on and not rule(tooth, position):
        raise _reject(
            f"{name} is not allowed on position {position} ({tooth.tooth_selection})",
            field=name,
            position=position,
        )
    setattr(tooth, name, on)


def reset_tooth(tooth: ToothState) -> None:
    for name, field in ToothState.model_fields.items():
        setattr(tooth, name, field.get_default(call_default_factory=True))
