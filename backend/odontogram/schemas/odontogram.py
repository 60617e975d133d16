from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from odontogram.services.chart_constants import (
    ALL_TEETH,
    CARIES_SITES,
    CHART_VERSION,
    STORAGE_VERSION,
    SURFACES,
)

ToothSelection = Literal[
    "none",
    "tooth-base",
    "milktooth",
    "implant",
    "tooth-broken-inicisal",
    "tooth-broken-distal-inicisal",
    "tooth-broken-distal",
    "tooth-broken-mesial-inicisal",
    "tooth-broken-mesial",
    "tooth-crownprep",
    "tooth-under-gum",
    "no-tooth-after-extraction",
]

EndoStatus = Literal[
    "none",
    "endo-medical-filling",
    "endo-filling",
    "endo-filling-incomplete",
    "endo-glass-pin",
    "endo-metal-pin",
]

FillingMaterial = Literal["none", "amalgam", "composite", "gic", "temporary"]

BridgeUnit = Literal["none", "removable", "zircon", "metal", "temporary", "bar-prosthesis"]

Mobility = Literal["none", "m1", "m2", "m3"]

CrownMaterial = Literal[
    "natural",
    "broken",
    "radix",
    "emax",
    "zircon",
    "metal",
    "temporary",
    "telescope",
    "healing-abutment",
    "locator",
    "bar",
]


def _unique(values: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        out.append(value)
    return out


def _assume_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(_assume_utc)]


class ChartModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )


class ToothState(ChartModel):
    tooth_selection: ToothSelection = "tooth-base"
    pulp_inflam: bool = False
    endo_resection: bool = False
    mods: list[str] = Field(default_factory=list)
    endo: EndoStatus = "none"
    caries: list[str] = Field(default_factory=list)
    filling_material: FillingMaterial = "none"
    filling_surfaces: list[str] = Field(default_factory=list)
    fissure_sealing: bool = False
    contact_mesial: bool = False
    contact_distal: bool = False
    bruxism_wear: bool = False
    bruxism_neck_wear: bool = False
    broken_mesial: bool = False
    broken_incisal: bool = False
    broken_distal: bool = False
    extraction_wound: bool = False
    extraction_plan: bool = False
    bridge_pillar: bool = False
    bridge_unit: BridgeUnit = "none"
    mobility: Mobility = "none"
    crown_material: CrownMaterial = "natural"

    @field_validator("mods")
    @classmethod
    def _unique_mods(cls, value: list[str]) -> list[str]:
        return _unique([item.strip() for item in value if item and item.strip()])

    @field_validator("caries")
    @classmethod
    def _normalize_caries(cls, value: list[str]) -> list[str]:
        sites = [item.removeprefix("caries-") for item in value]
        unknown = [site for site in sites if site not in CARIES_SITES]
        if unknown:
            raise ValueError(f"Unknown caries site(s): {', '.join(unknown)}")
        return _unique(sites)

    @field_validator("filling_surfaces")
    @classmethod
    def _normalize_surfaces(cls, value: list[str]) -> list[str]:
        unknown = [surface for surface in value if surface not in SURFACES]
        if unknown:
            raise ValueError(f"Unknown surface(s): {', '.join(unknown)}")
        return _unique(value)


class OdontogramGlobals(ChartModel):
    wisdom_visible: bool = True
    show_base: bool = False
    occlusal_visible: bool = False
    show_healthy_pulp: bool = True
    edentulous: bool = False


class OdontogramState(ChartModel):
    version: str = CHART_VERSION
    globals: OdontogramGlobals = Field(default_factory=OdontogramGlobals)
    teeth: dict[str, ToothState] = Field(default_factory=dict)

    def tooth(self, position: int | str) -> ToothState:
        """Return the state for a position, creating the default entry on first use."""
        key = str(position).strip()
        if key not in self.teeth:
            self.teeth[key] = ToothState()
        return self.teeth[key]

    def serialized(self) -> str:
        return self.model_dump_json(by_alias=True)


class StoredOdontogramPayload(ChartModel):
    version: int = STORAGE_VERSION
    updated_at: UtcDatetime
    state: OdontogramState


class HistoryIndexEntry(ChartModel):
    date_key: str = Field(min_length=1)
    updated_at: UtcDatetime


class TimelineEntry(ChartModel):
    snapshot_id: str = Field(min_length=1)
    updated_at: UtcDatetime


def empty_chart() -> OdontogramState:
    return OdontogramState(teeth={str(tooth): ToothState() for tooth in ALL_TEETH})
