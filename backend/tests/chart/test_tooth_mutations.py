import pytest

from odontogram.schemas.odontogram import ToothState
from odontogram.services import tooth_mutations
from odontogram.services.errors import ChartValidationError


def test_milktooth_rejected_on_molar_position():
    tooth = ToothState(caries=["mesial"], endo="endo-filling")
    before = tooth.model_dump()
    with pytest.raises(ChartValidationError) as excinfo:
        tooth_mutations.set_tooth_selection(tooth, 17, "milktooth")
    assert excinfo.value.tooth == "17"
    assert excinfo.value.field == "toothSelection"
    assert tooth.model_dump() == before


def test_milktooth_drops_permanent_only_treatments():
    tooth = ToothState(endo="endo-metal-pin", filling_material="amalgam", crown_material="zircon")
    tooth_mutations.set_tooth_selection(tooth, 14, "milktooth")
    assert tooth.tooth_selection == "milktooth"
    assert tooth.endo == "none"
    assert tooth.filling_material == "none"
    assert tooth.crown_material == "natural"


def test_implant_clears_clinical_findings():
    tooth = ToothState(caries=["distal"], pulp_inflam=True, filling_material="gic", filling_surfaces=["distal"])
    tooth_mutations.set_tooth_selection(tooth, 36, "implant")
    assert tooth.caries == []
    assert tooth.pulp_inflam is False
    assert tooth.filling_surfaces == []


def test_unknown_selection_rejected():
    with pytest.raises(ChartValidationError):
        tooth_mutations.set_tooth_selection(ToothState(), 11, "tooth-ghost")


def test_implant_only_crowns():
    natural = ToothState()
    with pytest.raises(ChartValidationError):
        tooth_mutations.set_crown_material(natural, 36, "locator")
    implant = ToothState(tooth_selection="implant")
    tooth_mutations.set_crown_material(implant, 36, "locator")
    assert implant.crown_material == "locator"
    with pytest.raises(ChartValidationError):
        tooth_mutations.set_crown_material(implant, 36, "telescope")


def test_crown_needs_a_visible_permanent_tooth():
    with pytest.raises(ChartValidationError):
        tooth_mutations.set_crown_material(ToothState(tooth_selection="milktooth"), 13, "zircon")
    with pytest.raises(ChartValidationError):
        tooth_mutations.set_crown_material(ToothState(tooth_selection="none"), 13, "zircon")


def test_milktooth_endo_options():
    tooth = ToothState(tooth_selection="milktooth")
    tooth_mutations.set_endo(tooth, 13, "endo-medical-filling")
    with pytest.raises(ChartValidationError):
        tooth_mutations.set_endo(tooth, 13, "endo-glass-pin")
    assert tooth.endo == "endo-medical-filling"


def test_filling_surface_requires_material():
    tooth = ToothState()
    with pytest.raises(ChartValidationError):
        tooth_mutations.set_filling_surface(tooth, 25, "occlusal", True)
    tooth_mutations.set_filling_material(tooth, 25, "composite")
    tooth_mutations.set_filling_surface(tooth, 25, "occlusal", True)
    tooth_mutations.set_filling_surface(tooth, 25, "occlusal", True)
    assert tooth.filling_surfaces == ["occlusal"]


def test_crowned_tooth_takes_no_filling():
    with pytest.raises(ChartValidationError):
        tooth_mutations.set_filling_material(ToothState(crown_material="metal"), 25, "composite")


def test_caries_rules():
    crowned = ToothState(crown_material="zircon")
    with pytest.raises(ChartValidationError):
        tooth_mutations.set_caries(crowned, 24, "mesial", True)
    tooth_mutations.set_caries(crowned, 24, "caries-subcrown", True)
    assert crowned.caries == ["subcrown"]

    natural = ToothState()
    with pytest.raises(ChartValidationError):
        tooth_mutations.set_caries(natural, 24, "subcrown", True)
    with pytest.raises(ChartValidationError):
        tooth_mutations.set_caries(natural, 24, "root", True)


def test_turning_findings_off_is_always_allowed():
    tooth = ToothState(tooth_selection="none", caries=["mesial"], fissure_sealing=True)
    tooth_mutations.set_caries(tooth, 11, "mesial", False)
    tooth_mutations.set_flag(tooth, 11, "fissure_sealing", False)
    assert tooth.caries == []
    assert tooth.fissure_sealing is False


def test_bridge_unit_needs_missing_tooth():
    with pytest.raises(ChartValidationError):
        tooth_mutations.set_bridge_unit(ToothState(), 35, "removable")
    gap = ToothState(tooth_selection="none")
    tooth_mutations.set_bridge_unit(gap, 35, "zircon")
    assert gap.bridge_unit == "zircon"


def test_mobility_needs_a_tooth():
    with pytest.raises(ChartValidationError):
        tooth_mutations.set_mobility(ToothState(tooth_selection="none"), 42, "m1")
    tooth = ToothState()
    tooth_mutations.set_mobility(tooth, 42, "m3")
    assert tooth.mobility == "m3"


@pytest.mark.parametrize(("position", "allowed"), [(16, True), (47, True), (11, False), (18, False)])
def test_fissure_sealing_flag(position: int, allowed: bool):
    tooth = ToothState()
    if allowed:
        tooth_mutations.set_flag(tooth, position, "fissure_sealing", True)
        assert tooth.fissure_sealing is True
    else:
        with pytest.raises(ChartValidationError):
            tooth_mutations.set_flag(tooth, position, "fissure_sealing", True)
        assert tooth.fissure_sealing is False


def test_unknown_flag_rejected():
    with pytest.raises(ChartValidationError):
        tooth_mutations.set_flag(ToothState(), 11, "sparkle", True)


def test_toggle_mod():
    tooth = ToothState()
    tooth_mutations.toggle_mod(tooth, 11, " calculus ", True)
    tooth_mutations.toggle_mod(tooth, 11, "calculus", True)
    assert tooth.mods == ["calculus"]
    tooth_mutations.toggle_mod(tooth, 11, "calculus", False)
    assert tooth.mods == []


def test_reset_tooth():
    tooth = ToothState(tooth_selection="implant", crown_material="bar", mods=["x"], mobility="m2")
    tooth_mutations.reset_tooth(tooth)
    assert tooth.model_dump() == ToothState().model_dump()
