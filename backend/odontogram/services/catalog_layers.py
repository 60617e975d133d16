"""Catalog `svgLayer` templates.

A template is a comma-separated list of segments:

* ``implant-base`` - a literal layer id
* ``filling-[surfaces4]`` - expands once per chosen surface (at most 4)
* ``filling-[material2]`` - expands with the chosen material
* ``[no-tooth]``, ``[full-denture]``, ``[bar-denture-12]``, ``[bar-denture-14]`` -
  markers resolved to ``__<kind>`` ids that only the chart mutator reads
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from typing import Literal, Union

from odontogram.schemas.catalog import BilledItem, CatalogItem
from odontogram.services.chart_constants import SURFACES
from odontogram.services.errors import ChartValidationError

SURFACE_NAMES = SURFACES
MATERIAL_OPTIONS: tuple[str, ...] = ("composite", "gic")
SURFACE_ABBREVIATIONS: dict[str, str] = {
    "mesial": "M",
    "distal": "D",
    "occlusal": "O",
    "buccal": "B",
    "lingual": "L",
}

SpecialKind = Literal["no-tooth", "full-denture", "bar-denture-12", "bar-denture-14"]
SPECIAL_KINDS: tuple[SpecialKind, ...] = ("no-tooth", "full-denture", "bar-denture-12", "bar-denture-14")
MARKER_PREFIX = "__"

_SURFACES_RE = re.compile(r"\[surfaces(\d+)\]")
_MATERIAL_RE = re.compile(r"\[material(\d+)\]")


@dataclass(frozen=True)
class StaticToken:
    layer_id: str


@dataclass(frozen=True)
class SurfacesToken:
    layer_template: str
    max_surfaces: int
    # Non-zero when the same segment also carries a [materialN] placeholder.
    max_materials: int = 0


@dataclass(frozen=True)
class MaterialToken:
    layer_template: str
    max_materials: int


@dataclass(frozen=True)
class SpecialToken:
    kind: SpecialKind

    @property
    def marker(self) -> str:
        return f"{MARKER_PREFIX}{self.kind}"


ParsedLayerToken = Union[StaticToken, SurfacesToken, MaterialToken, SpecialToken]


@dataclass(frozen=True)
class SelectionRequirement:
    required: bool
    max_count: int


def parse_svg_layer(svg_layer: str | None) -> list[ParsedLayerToken]:
    if not svg_layer or not svg_layer.strip():
        return []

    tokens: list[ParsedLayerToken] = []
    for part in (segment.strip() for segment in svg_layer.split(",")):
        if not part:
            continue
        special = part[1:-1] if part.startswith("[") and part.endswith("]") else None
        if special in SPECIAL_KINDS:
            tokens.append(SpecialToken(kind=special))
            continue

        surfaces = _SURFACES_RE.search(part)
        material = _MATERIAL_RE.search(part)
        if surfaces:
            template = _SURFACES_RE.sub("{surface}", part, count=1)
            max_materials = 0
            if material:
                template = _MATERIAL_RE.sub("{material}", template, count=1)
                max_materials = int(material.group(1))
            tokens.append(
                SurfacesToken(
                    layer_template=template,
                    max_surfaces=int(surfaces.group(1)),
                    max_materials=max_materials,
                )
            )
            continue

        if material:
            template = _MATERIAL_RE.sub("{material}", part, count=1)
            tokens.append(MaterialToken(layer_template=template, max_materials=int(material.group(1))))
            continue

        tokens.append(StaticToken(layer_id=part))
    return tokens


def serialize_svg_layer(tokens: list[ParsedLayerToken]) -> str:
    parts: list[str] = []
    for token in tokens:
        if isinstance(token, StaticToken):
            parts.append(token.layer_id)
        elif isinstance(token, SurfacesToken):
            segment = token.layer_template.replace("{surface}", f"[surfaces{token.max_surfaces}]", 1)
            if token.max_materials:
                segment = segment.replace("{material}", f"[material{token.max_materials}]", 1)
            parts.append(segment)
        elif isinstance(token, MaterialToken):
            parts.append(token.layer_template.replace("{material}", f"[material{token.max_materials}]", 1))
        else:
            parts.append(f"[{token.kind}]")
    return ",".join(parts)


def requires_surface_selection(tokens: list[ParsedLayerToken]) -> SelectionRequirement:
    for token in tokens:
        if isinstance(token, SurfacesToken):
            return SelectionRequirement(required=True, max_count=token.max_surfaces)
    return SelectionRequirement(required=False, max_count=0)


def requires_material_selection(tokens: list[ParsedLayerToken]) -> SelectionRequirement:
    for token in tokens:
        if isinstance(token, MaterialToken):
            return SelectionRequirement(required=True, max_count=token.max_materials)
        if isinstance(token, SurfacesToken) and token.max_materials:
            return SelectionRequirement(required=True, max_count=token.max_materials)
    return SelectionRequirement(required=False, max_count=0)


def _has_special(tokens: list[ParsedLayerToken], *kinds: str) -> bool:
    return any(isinstance(token, SpecialToken) and token.kind in kinds for token in tokens)


def is_extraction_item(tokens: list[ParsedLayerToken]) -> bool:
    return _has_special(tokens, "no-tooth")


def is_full_denture_item(tokens: list[ParsedLayerToken]) -> bool:
    return _has_special(tokens, "full-denture")


def is_bar_denture_item(tokens: list[ParsedLayerToken]) -> bool:
    return _has_special(tokens, "bar-denture-12", "bar-denture-14")


def get_quadrant_from_tooth(tooth: int) -> Literal["1", "2", "3", "4"]:
    """Q1=11-18, Q2=21-28, Q3=31-38, anything else Q4."""
    if 11 <= tooth <= 18:
        return "1"
    if 21 <= tooth <= 28:
        return "2"
    if 31 <= tooth <= 38:
        return "3"
    return "4"


def resolve_layer_ids(
    tokens: list[ParsedLayerToken],
    selected_surfaces: list[str] | None = None,
    selected_material: str | None = None,
) -> list[str]:
    ids: list[str] = []
    for token in tokens:
        if isinstance(token, StaticToken):
            ids.append(token.layer_id)
        elif isinstance(token, SurfacesToken):
            template = token.layer_template
            if token.max_materials:
                if not selected_material:
                    continue
                template = template.replace("{material}", selected_material, 1)
            for surface in selected_surfaces or []:
                ids.append(template.replace("{surface}", surface, 1))
        elif isinstance(token, MaterialToken):
            if selected_material:
                ids.append(token.layer_template.replace("{material}", selected_material, 1))
        else:
            ids.append(token.marker)
    return ids


def validate_layer_selection(
    tokens: list[ParsedLayerToken],
    selected_surfaces: list[str] | None = None,
    selected_material: str | None = None,
) -> None:
    surface_req = requires_surface_selection(tokens)
    material_req = requires_material_selection(tokens)
    surfaces = list(selected_surfaces or [])

    if surface_req.required:
        if not surfaces:
            raise ChartValidationError("At least one surface must be selected", field="selectedSurfaces")
        unknown = [surface for surface in surfaces if surface not in SURFACE_NAMES]
        if unknown:
            raise ChartValidationError(
                f"Unknown surface(s): {', '.join(unknown)}", field="selectedSurfaces"
            )
        if len(set(surfaces)) != len(surfaces):
            raise ChartValidationError("Surfaces must not repeat", field="selectedSurfaces")
        if len(surfaces) > surface_req.max_count:
            raise ChartValidationError(
                f"At most {surface_req.max_count} surface(s) allowed, got {len(surfaces)}",
                field="selectedSurfaces",
            )
    elif surfaces:
        raise ChartValidationError("This item does not take surfaces", field="selectedSurfaces")

    if material_req.required:
        if not selected_material:
            raise ChartValidationError("A material must be selected", field="selectedMaterial")
        if selected_material not in MATERIAL_OPTIONS:
            raise ChartValidationError(
                f"Material must be one of {', '.join(MATERIAL_OPTIONS)}", field="selectedMaterial"
            )
    elif selected_material:
        raise ChartValidationError("This item does not take a material", field="selectedMaterial")


def resolve_billed_item(
    catalog_item: CatalogItem,
    *,
    tooth_num: str | None = None,
    treated_area: str | None = None,
    selected_surfaces: list[str] | None = None,
    selected_material: str | None = None,
    line_id: str | None = None,
) -> BilledItem:
    tokens = parse_svg_layer(catalog_item.svg_layer)
    validate_layer_selection(tokens, selected_surfaces, selected_material)
    return BilledItem(
        line_id=line_id or uuid.uuid4().hex,
        catalog_item_id=catalog_item.catalog_item_id,
        tooth_num=tooth_num,
        treated_area=treated_area,
        selected_surfaces=list(selected_surfaces) if selected_surfaces else None,
        selected_material=selected_material,
        resolved_layers=resolve_layer_ids(tokens, selected_surfaces, selected_material),
    )


def format_surfaces(surfaces: list[str]) -> str:
    return "".join(SURFACE_ABBREVIATIONS.get(surface, "") for surface in surfaces)
