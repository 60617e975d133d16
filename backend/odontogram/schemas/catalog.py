from __future__ import annotations

from typing import Optional

from pydantic import Field, field_validator

from odontogram.schemas.odontogram import ChartModel


class CatalogItem(ChartModel):
    catalog_item_id: str
    catalog_code: str = ""
    catalog_name: str = ""
    svg_layer: str = ""
    is_full_mouth: bool = False
    is_arch: bool = False
    is_quadrant: bool = False
    max_teeth_per_arch: Optional[int] = Field(default=None, ge=1)
    allowed_teeth: list[int] = Field(default_factory=list)
    milk_tooth_only: bool = False

    @property
    def has_layer(self) -> bool:
        return bool(self.svg_layer.strip())


class BilledItem(ChartModel):
    line_id: str
    catalog_item_id: str
    tooth_num: Optional[str] = None
    treated_area: Optional[str] = None
    selected_surfaces: Optional[list[str]] = None
    selected_material: Optional[str] = None
    resolved_layers: list[str] = Field(default_factory=list)

    @field_validator("tooth_num", mode="before")
    @classmethod
    def _stringify_tooth(cls, value):
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    def teeth(self) -> list[str]:
        if not self.tooth_num:
            return []
        return [part.strip() for part in self.tooth_num.split(",") if part.strip()]
