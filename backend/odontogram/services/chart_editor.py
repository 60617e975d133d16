from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable

from odontogram.schemas.odontogram import OdontogramState, ToothState, empty_chart
from odontogram.services import tooth_mutations
from odontogram.services.chart_constants import (
    ALL_TEETH,
    BROKEN_VARIANTS,
    FISSURE_ALLOWED,
    FRESH_EXTRACTION,
    MILKTOOTH_BLOCKED,
    MIXED_MILK,
    MIXED_NONE,
    MIXED_PERMANENT,
    PRIMARY_MILK,
    UNDER_GUM,
    WISDOM_TEETH,
    tooth_number,
)
from odontogram.services.errors import ChartValidationError
from odontogram.services.layer_rules import derive_active_layers, derive_chart_layers

logger = logging.getLogger("odontogram.editor")

ToothEdit = Callable[[ToothState, int], None]


@dataclass
class BatchResult:
    applied: list[int] = field(default_factory=list)
    rejected: dict[int, str] = field(default_factory=dict)
    layers: dict[int, frozenset[str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.rejected


@dataclass(frozen=True)
class EligibilityFlags:
    """Which edit controls make sense for the current selection."""

    has_selection: bool = False
    milktooth_allowed: bool = False
    contact_points_allowed: bool = False
    bruxism_allowed: bool = False
    fissure_sealing_allowed: bool = False
    caries_enabled: bool = False
    endo_enabled: bool = False
    filling_enabled: bool = False
    crown_enabled: bool = False
    inflammation_enabled: bool = False
    mobility_enabled: bool = False
    removable_enabled: bool = False
    peri_implant: bool = False


def compute_eligibility(state: OdontogramState, selection: Iterable[int]) -> EligibilityFlags:
    teeth = [(tooth, state.teeth.get(str(tooth), ToothState())) for tooth in selection]
    if not teeth:
        return EligibilityFlags()

    selections = [s.tooth_selection for _, s in teeth]
    hidden_base = any(
        sel in {"implant", "none", UNDER_GUM, FRESH_EXTRACTION} for sel in selections
    )
    any_none = "none" in selections
    any_milk = "milktooth" in selections
    any_under_gum_or_extraction = any(sel in {UNDER_GUM, FRESH_EXTRACTION} for sel in selections)

    def contact_ok(tooth_state: ToothState) -> bool:
        sel = tooth_state.tooth_selection
        if sel not in {"tooth-base", "milktooth"} and sel not in BROKEN_VARIANTS:
            return False
        return not (sel == "tooth-base" and tooth_state.crown_material != "natural")

    crowned_base = any(
        s.tooth_selection == "tooth-base" and s.crown_material != "natural" for _, s in teeth
    )

    return EligibilityFlags(
        has_selection=True,
        milktooth_allowed=not any(tooth in MILKTOOTH_BLOCKED for tooth, _ in teeth),
        contact_points_allowed=all(contact_ok(s) for _, s in teeth),
        bruxism_allowed=all(
            s.tooth_selection == "tooth-base" and s.crown_material == "natural" for _, s in teeth
        ),
        fissure_sealing_allowed=all(
            s.tooth_selection == "tooth-base" and tooth in FISSURE_ALLOWED for tooth, s in teeth
        ),
        caries_enabled=not hidden_base,
        endo_enabled=not hidden_base,
        filling_enabled=not hidden_base and not crowned_base,
        crown_enabled=not any_none and not any_milk and not any_under_gum_or_extraction,
        inflammation_enabled=not any_none,
        mobility_enabled=not any_none and FRESH_EXTRACTION not in selections,
        removable_enabled=all(sel == "none" for sel in selections),
        peri_implant="implant" in selections,
    )


def endo_options(is_milktooth: bool) -> tuple[str, ...]:
    if is_milktooth:
        return ("none", "endo-medical-filling")
    return ("none", "endo-medical-filling", "endo-filling", "endo-glass-pin", "endo-metal-pin")


def filling_options(is_milktooth: bool) -> tuple[str, ...]:
    if is_milktooth:
        return ("none", "composite", "gic")
    return ("none", "amalgam", "composite", "gic")


def crown_options(is_implant: bool) -> tuple[str, ...]:
    if is_implant:
        return ("natural", "healing-abutment", "zircon", "metal", "temporary", "locator", "bar")
    return ("natural", "zircon", "metal", "temporary", "telescope")


class ChartEditor:
    """Single/multi-tooth selection over one chart document.

    Batch edits run on every selected tooth independently; a tooth whose edit
    is rejected keeps its previous state while the others are updated.
    """

    def __init__(self, state: OdontogramState | None = None):
        self.state = state if state is not None else empty_chart()
        for tooth in ALL_TEETH:
            self.state.tooth(tooth)
        self.selected_teeth: set[int] = set()
        self.active_tooth: int | None = None

    # selection

    def click(self, tooth: int, multi: bool = False) -> None:
        if tooth_number(tooth) is None or not self._is_visible(tooth):
            return
        if multi:
            if tooth in self.selected_teeth:
                self.selected_teeth.discard(tooth)
            else:
                self.selected_teeth.add(tooth)
                self.active_tooth = tooth
        else:
            self.selected_teeth = {tooth}
            self.active_tooth = tooth
        self._fix_active()

    def select_all(self) -> None:
        self._select(ALL_TEETH, ALL_TEETH[0])

    def select_upper(self) -> None:
        self._select([t for t in ALL_TEETH if 11 <= t <= 28], 11)

    def select_lower(self) -> None:
        self._select([t for t in ALL_TEETH if 31 <= t <= 48], 31)

    def select_none(self) -> None:
        self.selected_teeth = set()
        self.active_tooth = None

    def eligibility(self) -> EligibilityFlags:
        selection = self.selected_teeth or ({self.active_tooth} if self.active_tooth else set())
        return compute_eligibility(self.state, sorted(selection))

    def _select(self, teeth: Iterable[int], active: int) -> None:
        self.selected_teeth = {t for t in teeth if self._is_visible(t)}
        self.active_tooth = active
        self._fix_active()

    def _is_visible(self, tooth: int) -> bool:
        return self.state.globals.wisdom_visible or tooth not in WISDOM_TEETH

    def _fix_active(self) -> None:
        if self.active_tooth is not None and self.active_tooth not in self.selected_teeth:
            self.active_tooth = min(self.selected_teeth) if self.selected_teeth else None

    # batch edits

    def apply_to_selected(self, edit: ToothEdit) -> BatchResult:
        result = BatchResult()
        for tooth in sorted(self.selected_teeth):
            tooth_state = self.state.tooth(tooth)
            try:
                edit(tooth_state, tooth)
            except ChartValidationError as exc:
                result.rejected[tooth] = str(exc)
                continue
            result.applied.append(tooth)
            result.layers[tooth] = derive_active_layers(tooth_state, tooth)
        if result.rejected:
            logger.info("Batch edit rejected for teeth %s", sorted(result.rejected))
        if result.applied:
            self._clear_edentulous()
        return result

    def set_tooth_selection(self, selection: str) -> BatchResult:
        return self.apply_to_selected(
            lambda s, t: tooth_mutations.set_tooth_selection(s, t, selection)
        )

    def set_crown_material(self, material: str) -> BatchResult:
        return self.apply_to_selected(lambda s, t: tooth_mutations.set_crown_material(s, t, material))

    def set_endo(self, endo: str) -> BatchResult:
        return self.apply_to_selected(lambda s, t: tooth_mutations.set_endo(s, t, endo))

    def set_mobility(self, mobility: str) -> BatchResult:
        return self.apply_to_selected(lambda s, t: tooth_mutations.set_mobility(s, t, mobility))

    def set_filling_material(self, material: str) -> BatchResult:
        return self.apply_to_selected(
            lambda s, t: tooth_mutations.set_filling_material(s, t, material)
        )

    def set_filling_surface(self, surface: str, on: bool) -> BatchResult:
        return self.apply_to_selected(
            lambda s, t: tooth_mutations.set_filling_surface(s, t, surface, on)
        )

    def set_caries(self, site: str, on: bool) -> BatchResult:
        return self.apply_to_selected(lambda s, t: tooth_mutations.set_caries(s, t, site, on))

    def set_bridge_unit(self, unit: str) -> BatchResult:
        return self.apply_to_selected(lambda s, t: tooth_mutations.set_bridge_unit(s, t, unit))

    def toggle_mod(self, mod: str, on: bool) -> BatchResult:
        return self.apply_to_selected(lambda s, t: tooth_mutations.toggle_mod(s, t, mod, on))

    def set_flag(self, name: str, on: bool) -> BatchResult:
        return self.apply_to_selected(lambda s, t: tooth_mutations.set_flag(s, t, name, on))

    def reset_selected(self) -> BatchResult:
        return self.apply_to_selected(lambda s, _t: tooth_mutations.reset_tooth(s))

    # whole-chart presets; these skip per-tooth validation

    def reset_all(self) -> None:
        self._fill(lambda _tooth: ToothState())

    def apply_primary_dentition(self) -> None:
        self._fill(
            lambda tooth: ToothState(tooth_selection="milktooth" if tooth in PRIMARY_MILK else "none")
        )

    def apply_mixed_dentition(self) -> None:
        def preset(tooth: int) -> ToothState:
            if tooth in MIXED_PERMANENT:
                return ToothState(tooth_selection="tooth-base")
            if tooth in MIXED_MILK:
                return ToothState(tooth_selection="milktooth")
            if tooth in MIXED_NONE:
                return ToothState(tooth_selection="none")
            return ToothState()

        self._fill(preset)

    def set_edentulous(self, on: bool) -> None:
        self.state.globals.edentulous = on
        if on:
            for tooth in ALL_TEETH:
                self.state.teeth[str(tooth)] = ToothState(tooth_selection="none")

    def _fill(self, factory: Callable[[int], ToothState]) -> None:
        self.state.globals.edentulous = False
        for tooth in ALL_TEETH:
            self.state.teeth[str(tooth)] = factory(tooth)

    def _clear_edentulous(self) -> None:
        if self.state.globals.edentulous:
            self.state.globals.edentulous = False

    # display toggles

    def set_wisdom_visible(self, on: bool) -> None:
        self.state.globals.wisdom_visible = on
        self.selected_teeth = {t for t in self.selected_teeth if self._is_visible(t)}
        self._fix_active()

    def set_show_base(self, on: bool) -> None:
        self.state.globals.show_base = on

    def set_occlusal_visible(self, on: bool) -> None:
        self.state.globals.occlusal_visible = on

    def set_healthy_pulp_visible(self, on: bool) -> None:
        self.state.globals.show_healthy_pulp = on

    def layers(self) -> dict[str, frozenset[str]]:
        return derive_chart_layers(self.state)
