"""Derive the visible chart layers of a tooth from its clinical state.

`derive_active_layers` is pure: it starts from an empty set on every call, so
no finding from an earlier state can survive a field change. Input is assumed
to be valid; invalid combinations are rejected by `tooth_mutations` before a
state ever reaches this module.
"""

from __future__ import annotations

from dataclasses import dataclass

from odontogram.schemas.odontogram import OdontogramState, ToothState
from odontogram.services.chart_constants import (
    BROKEN_VARIANTS,
    FISSURE_ALLOWED,
    FRESH_EXTRACTION,
    IMPLANT_ONLY_CROWNS,
    UNDER_GUM,
    WISDOM_TEETH,
    tooth_number,
)

ENDO_LAYERS: dict[str, tuple[str, ...]] = {
    "none": (),
    "endo-medical-filling": ("endo-medical-filling",),
    "endo-filling": ("endo-filling",),
    "endo-filling-incomplete": ("endo-filling-incomplete",),
    "endo-glass-pin": ("endo-filling", "endo-glass-pin"),
    "endo-metal-pin": ("endo-filling", "endo-metal-pin"),
}

IMPLANT_CROWN_LAYERS: dict[str, tuple[str, ...]] = {
    "natural": (),
    "healing-abutment": ("implant-healing-abutment",),
    "locator": ("implant-connector", "implant-locator-screw"),
    "bar": ("implant-connector", "implant-locator-screw", "implant-bar"),
}

CROWN_LAYERS: dict[str, str] = {
    "broken": "crown-broken",
    "radix": "crown-radix",
    "emax": "emax-crown",
    "zircon": "zircon-crown",
    "metal": "metal-crown",
    "temporary": "temporary-crown",
    "telescope": "telescope-crown",
}

BRIDGE_UNIT_LAYERS: dict[str, tuple[str, ...]] = {
    "none": (),
    "removable": ("prosthesis", "prosthesis-crown", "prosthesis-connector"),
    "bar-prosthesis": ("prosthesis-crown", "bar-prosthesis"),
    "zircon": ("pontic-zircon",),
    "metal": ("pontic-metal",),
    "temporary": ("pontic-temporary",),
}

HEALTHY_PULP_LAYERS = frozenset({"tooth-healthy-pulp", "milktooth-healthy-pulp"})
BASE_LAYER = "base"


@dataclass(frozen=True)
class ToothFlags:
    is_implant: bool
    is_milktooth: bool
    under_gum: bool
    is_extraction: bool
    has_crown: bool
    has_removable: bool
    tooth_present: bool

    @property
    def has_restoration(self) -> bool:
        return self.has_crown or self.has_removable

    @property
    def visible_crown_area(self) -> bool:
        return self.tooth_present and not self.under_gum and not self.is_extraction


def tooth_flags(tooth: ToothState) -> ToothFlags:
    selection = tooth.tooth_selection
    return ToothFlags(
        is_implant=selection == "implant",
        is_milktooth=selection == "milktooth",
        under_gum=selection == UNDER_GUM,
        is_extraction=selection == FRESH_EXTRACTION,
        has_crown=tooth.crown_material != "natural",
        has_removable=selection == "none" and tooth.bridge_unit != "none",
        tooth_present=selection not in {"none", "implant"},
    )


def fissure_sealing_allowed(tooth: ToothState, position: int | str) -> bool:
    return tooth.tooth_selection == "tooth-base" and tooth_number(position) in FISSURE_ALLOWED


def contact_points_allowed(tooth: ToothState) -> bool:
    selection = tooth.tooth_selection
    return selection in {"tooth-base", "milktooth"} or selection in BROKEN_VARIANTS


def bruxism_allowed(tooth: ToothState) -> bool:
    return tooth.tooth_selection == "tooth-base" and tooth.crown_material == "natural"


def _base_layers(tooth: ToothState, flags: ToothFlags) -> list[str]:
    if flags.is_implant:
        return ["implant-base"]
    if flags.is_milktooth:
        pulp = "milktooth-inflam-pulp" if tooth.pulp_inflam else "milktooth-healthy-pulp"
        return ["milktooth-base", "milktooth-beauty", pulp]
    if tooth.tooth_selection == "none":
        return []
    return [tooth.tooth_selection]


def _crown_layers(tooth: ToothState, flags: ToothFlags) -> list[str]:
    material = tooth.crown_material
    if flags.is_implant:
        if material in IMPLANT_CROWN_LAYERS:
            return list(IMPLANT_CROWN_LAYERS[material])
        return ["implant-connector", CROWN_LAYERS[material]]
    if not flags.has_crown or material in IMPLANT_ONLY_CROWNS:
        return []
    if flags.is_milktooth or flags.under_gum or flags.is_extraction:
        return []
    if tooth.tooth_selection == "none":
        return []
    return [CROWN_LAYERS[material]]


def derive_active_layers(tooth: ToothState, position: int | str) -> frozenset[str]:
    flags = tooth_flags(tooth)
    layers: set[str] = set()

    layers.update(_base_layers(tooth, flags))

    if flags.visible_crown_area and not flags.is_milktooth:
        layers.add("tooth-inflam-pulp" if tooth.pulp_inflam else "tooth-healthy-pulp")

    layers.update(tooth.mods)
    if tooth.mobility != "none" and flags.tooth_present and not flags.is_extraction:
        layers.add(f"mobility-{tooth.mobility}")

    if flags.visible_crown_area:
        layers.update(ENDO_LAYERS[tooth.endo])
        if tooth.endo_resection:
            layers.add("endo-resection")

    if flags.has_removable:
        layers.update(BRIDGE_UNIT_LAYERS[tooth.bridge_unit])

    layers.update(_crown_layers(tooth, flags))

    if flags.visible_crown_area:
        for site in tooth.caries:
            if site == "subcrown":
                if flags.has_crown:
                    layers.add("caries-subcrown")
                continue
            if flags.has_restoration:
                continue
            layers.add(f"caries-{site}")

        if tooth.filling_material != "none" and not flags.has_crown:
            for surface in tooth.filling_surfaces:
                layers.add(f"filling-{tooth.filling_material}-{surface}")
                layers.discard(f"caries-{surface}")

    if tooth.fissure_sealing and fissure_sealing_allowed(tooth, position):
        layers.add("fissure-sealing")

    if contact_points_allowed(tooth):
        if tooth.contact_mesial:
            layers.add("mesial-no-contact-point")
        if tooth.contact_distal:
            layers.add("distal-no-contact-point")

    if bruxism_allowed(tooth):
        if tooth.bruxism_wear:
            layers.add("tooth-bruxism-wear")
        if tooth.bruxism_neck_wear:
            layers.add("tooth-bruxism-neck-wear")

    if tooth.bridge_pillar and (flags.tooth_present or flags.is_implant):
        layers.add("bridge-pillar")

    if flags.visible_crown_area:
        if tooth.broken_mesial:
            layers.add("broken-mesial")
        if tooth.broken_incisal:
            layers.add("broken-incisal")
        if tooth.broken_distal:
            layers.add("broken-distal")

    if tooth.extraction_plan and (flags.tooth_present or flags.is_implant):
        layers.add("extraction-plan")
    if tooth.extraction_wound and (tooth.tooth_selection == "none" or flags.is_extraction):
        layers.add("extraction-wound")

    return frozenset(layers)


def derive_chart_layers(state: OdontogramState) -> dict[str, frozenset[str]]:
    """Layers for every tooth of a chart, with the chart display toggles applied."""
    result: dict[str, frozenset[str]] = {}
    display = state.globals
    for key, tooth in state.teeth.items():
        number = tooth_number(key)
        if not display.wisdom_visible and number in WISDOM_TEETH:
            continue
        layers = set(derive_active_layers(tooth, key))
        if not display.show_healthy_pulp:
            layers -= HEALTHY_PULP_LAYERS
        if display.show_base:
            layers.add(BASE_LAYER)
        result[key] = frozenset(layers)
    return result
