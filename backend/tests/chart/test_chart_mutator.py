import pytest

from odontogram.schemas.catalog import BilledItem
from odontogram.schemas.odontogram import ToothState, empty_chart
from odontogram.services.chart_constants import LOWER_ARCH, UPPER_ARCH
from odontogram.services.chart_mutator import apply_layer, compute_odontogram_state_from_items


def _item(layers, tooth_num=None, treated_area=None, line_id="line-1"):
    return BilledItem(
        line_id=line_id,
        catalog_item_id="ITEM",
        tooth_num=tooth_num,
        treated_area=treated_area,
        resolved_layers=layers,
    )


def _dump(**fields):
    return ToothState(**fields).model_dump()


def test_extraction_clears_both_teeth():
    base = empty_chart()
    base.tooth(26).caries = ["mesial"]
    base.tooth(26).endo = "endo-filling"
    base.tooth(27).crown_material = "zircon"
    base.tooth(27).mobility = "m1"

    state = compute_odontogram_state_from_items([_item(["__no-tooth"], "26,27")], base=base)

    for key in ("26", "27"):
        assert state.teeth[key].model_dump() == _dump(tooth_selection="none")
    assert base.teeth["26"].caries == ["mesial"]


def test_extraction_then_prosthetic_unit_on_same_line():
    state = compute_odontogram_state_from_items([_item(["__no-tooth", "prosthesis-crown"], "36")])
    assert state.teeth["36"].tooth_selection == "none"
    assert state.teeth["36"].bridge_unit == "removable"


def test_integer_tooth_number_is_accepted():
    state = compute_odontogram_state_from_items([_item(["endo-filling"], 21)])
    assert state.teeth["21"].endo == "endo-filling"


def test_unknown_tooth_numbers_are_skipped(caplog):
    caplog.set_level("WARNING", logger="odontogram.mutator")
    state = compute_odontogram_state_from_items([_item(["endo-filling"], "99,abc,21")])
    assert state.teeth["21"].endo == "endo-filling"
    assert "99" not in state.teeth
    assert "abc" not in state.teeth
    assert set(state.teeth) == set(empty_chart().teeth)
    assert "unknown tooth '99'" in caplog.text


def test_full_denture_covers_arch_without_wisdom_teeth():
    state = compute_odontogram_state_from_items([_item(["__full-denture"], treated_area="upper")])
    for tooth in UPPER_ARCH:
        assert state.teeth[str(tooth)].model_dump() == _dump(tooth_selection="none", bridge_unit="removable")
    assert state.teeth["18"].model_dump() == _dump()
    assert state.teeth[str(LOWER_ARCH[0])].model_dump() == _dump()


def test_bar_denture_marks_missing_positions():
    state = compute_odontogram_state_from_items([_item(["__bar-denture-12"], treated_area="lower")])
    assert state.teeth["46"].bridge_unit == "bar-prosthesis"
    assert state.teeth["41"].tooth_selection == "none"
    assert state.teeth["44"].model_dump() == _dump()
    assert state.teeth["47"].model_dump() == _dump()


@pytest.mark.parametrize("area", [None, "full-mouth", "Q1"])
def test_arch_items_without_arch_are_skipped(area):
    state = compute_odontogram_state_from_items([_item(["__full-denture"], treated_area=area)])
    assert state.model_dump() == empty_chart().model_dump()


def test_filling_layers_set_material_and_surfaces():
    state = compute_odontogram_state_from_items(
        [_item(["filling-composite-mesial", "filling-composite-occlusal"], "36")]
    )
    tooth = state.teeth["36"]
    assert tooth.filling_material == "composite"
    assert tooth.filling_surfaces == ["mesial", "occlusal"]


def test_implant_with_crown():
    state = compute_odontogram_state_from_items(
        [_item(["implant-base", "implant-connector", "zircon-crown"], "46")]
    )
    tooth = state.teeth["46"]
    assert tooth.tooth_selection == "implant"
    assert tooth.crown_material == "zircon"


def test_items_apply_in_order():
    items = [
        _item(["metal-crown"], "15", line_id="a"),
        _item(["emax-crown"], "15", line_id="b"),
    ]
    assert compute_odontogram_state_from_items(items).teeth["15"].crown_material == "emax"


def test_unknown_layer_goes_to_mods():
    tooth = ToothState()
    apply_layer(tooth, "gingival-recession")
    apply_layer(tooth, "gingival-recession")
    assert tooth.mods == ["gingival-recession"]


def test_lines_without_teeth_are_ignored():
    state = compute_odontogram_state_from_items([_item(["endo-filling"])])
    assert state.model_dump() == empty_chart().model_dump()
