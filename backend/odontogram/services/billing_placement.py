from __future__ import annotations

import logging

from odontogram.schemas.catalog import BilledItem, CatalogItem
from odontogram.schemas.odontogram import OdontogramState
from odontogram.services.catalog_layers import get_quadrant_from_tooth, resolve_billed_item
from odontogram.services.chart_constants import arch_of, tooth_number
from odontogram.services.errors import ChartValidationError

logger = logging.getLogger("odontogram.billing")

FULL_MOUTH_AREA = "full-mouth"


def _has_line(items: list[BilledItem], catalog_item_id: str, treated_area: str) -> bool:
    return any(
        item.catalog_item_id == catalog_item_id and item.treated_area == treated_area
        for item in items
    )


def _check_tooth_allowed(
    catalog_item: CatalogItem, tooth: int, state: OdontogramState | None
) -> None:
    if catalog_item.allowed_teeth and tooth not in catalog_item.allowed_teeth:
        allowed = ", ".join(str(t) for t in catalog_item.allowed_teeth)
        raise ChartValidationError(
            f"{catalog_item.catalog_code or catalog_item.catalog_item_id} is limited to teeth {allowed}",
            field="toothNum",
            tooth=str(tooth),
        )
    if catalog_item.milk_tooth_only:
        tooth_state = state.teeth.get(str(tooth)) if state is not None else None
        if tooth_state is None or tooth_state.tooth_selection != "milktooth":
            raise ChartValidationError(
                "This treatment only applies to milk teeth", field="toothNum", tooth=str(tooth)
            )


def place_catalog_item(
    items: list[BilledItem],
    catalog_item: CatalogItem,
    tooth_num: int,
    state: OdontogramState | None = None,
    surfaces: list[str] | None = None,
    material: str | None = None,
) -> list[BilledItem]:
    """Bill `catalog_item` for a clicked tooth and return the new item list.

    Duplicate arch/quadrant lines and teeth beyond `maxTeethPerArch` leave the
    list unchanged. Restriction violations raise `ChartValidationError`.
    """
    tooth = tooth_number(tooth_num)
    if tooth is None:
        raise ChartValidationError(f"Unknown tooth position {tooth_num}", field="toothNum")
    _check_tooth_allowed(catalog_item, tooth, state)

    if catalog_item.is_full_mouth:
        return list(items)

    if catalog_item.is_arch:
        arch = arch_of(tooth)
        if catalog_item.max_teeth_per_arch:
            return _add_tooth_to_arch_line(items, catalog_item, tooth, arch)
        if _has_line(items, catalog_item.catalog_item_id, arch):
            return list(items)
        return [*items, resolve_billed_item(catalog_item, treated_area=arch)]

    if catalog_item.is_quadrant:
        area = f"Q{get_quadrant_from_tooth(tooth)}"
        if _has_line(items, catalog_item.catalog_item_id, area):
            return list(items)
        return [*items, resolve_billed_item(catalog_item, treated_area=area)]

    line = resolve_billed_item(
        catalog_item,
        tooth_num=str(tooth),
        selected_surfaces=surfaces,
        selected_material=material,
    )
    return [*items, line]


def _add_tooth_to_arch_line(
    items: list[BilledItem], catalog_item: CatalogItem, tooth: int, arch: str
) -> list[BilledItem]:
    existing = next(
        (
            item
            for item in items
            if item.catalog_item_id == catalog_item.catalog_item_id and item.treated_area == arch
        ),
        None,
    )
    if existing is None:
        return [*items, resolve_billed_item(catalog_item, tooth_num=str(tooth), treated_area=arch)]

    teeth = existing.teeth()
    if str(tooth) in teeth:
        return list(items)
    if len(teeth) >= catalog_item.max_teeth_per_arch:
        logger.debug(
            "Arch line %s already holds %s teeth", existing.line_id, catalog_item.max_teeth_per_arch
        )
        return list(items)
    updated = existing.model_copy(update={"tooth_num": ",".join([*teeth, str(tooth)])})
    return [updated if item.line_id == existing.line_id else item for item in items]


def remove_tooth_from_item(items: list[BilledItem], line_id: str, tooth: int | str) -> list[BilledItem]:
    """Drop one tooth from a line; the line goes away with its last tooth."""
    target = next((item for item in items if item.line_id == line_id), None)
    if target is None or not target.tooth_num:
        return list(items)
    remaining = [t for t in target.teeth() if t != str(tooth).strip()]
    if not remaining:
        return [item for item in items if item.line_id != line_id]
    updated = target.model_copy(update={"tooth_num": ",".join(remaining)})
    return [updated if item.line_id == line_id else item for item in items]


def add_arch_item(
    items: list[BilledItem], catalog_item: CatalogItem, arch: str | None = None
) -> list[BilledItem]:
    """Bill a full-mouth or arch item picked straight from the catalog."""
    if catalog_item.is_full_mouth:
        return [*items, resolve_billed_item(catalog_item, treated_area=FULL_MOUTH_AREA)]
    if not catalog_item.is_arch:
        raise ChartValidationError("Only full-mouth and arch items can be added without a tooth")
    if arch not in {"upper", "lower"}:
        raise ChartValidationError("Arch must be 'upper' or 'lower'", field="treatedArea")
    if _has_line(items, catalog_item.catalog_item_id, arch):
        return list(items)
    return [*items, resolve_billed_item(catalog_item, treated_area=arch)]
