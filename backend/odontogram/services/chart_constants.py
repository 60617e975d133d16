from __future__ import annotations

CHART_VERSION = "1.1"
STORAGE_VERSION = 1

ALL_TEETH: tuple[int, ...] = (
    18, 17, 16, 15, 14, 13, 12, 11, 21, 22, 23, 24, 25, 26, 27, 28,
    48, 47, 46, 45, 44, 43, 42, 41, 31, 32, 33, 34, 35, 36, 37, 38,
)
UPPER_TEETH = frozenset(t for t in ALL_TEETH if 11 <= t <= 28)
LOWER_TEETH = frozenset(t for t in ALL_TEETH if 31 <= t <= 48)
WISDOM_TEETH = frozenset({18, 28, 38, 48})

SURFACES: tuple[str, ...] = ("mesial", "distal", "occlusal", "buccal", "lingual")
CARIES_SITES: tuple[str, ...] = SURFACES + ("subcrown",)

MILKTOOTH_BLOCKED = frozenset({16, 17, 18, 26, 27, 28, 36, 37, 38, 46, 47, 48})
FISSURE_ALLOWED = frozenset({16, 17, 26, 27, 36, 37, 46, 47})

# Variant ids match the chart artwork, spelling included.
BROKEN_VARIANTS = frozenset(
    {
        "tooth-broken-inicisal",
        "tooth-broken-distal-inicisal",
        "tooth-broken-distal",
        "tooth-broken-mesial-inicisal",
        "tooth-broken-mesial",
    }
)
UNDER_GUM = "tooth-under-gum"
FRESH_EXTRACTION = "no-tooth-after-extraction"
CROWN_PREP = "tooth-crownprep"
VARIANT_SELECTIONS = BROKEN_VARIANTS | {CROWN_PREP, UNDER_GUM, FRESH_EXTRACTION}

IMPLANT_ONLY_CROWNS = frozenset({"healing-abutment", "locator", "bar"})
NATURAL_CROWNS = frozenset({"broken", "radix", "emax", "zircon", "metal", "temporary", "telescope"})
FIXED_BRIDGE_UNITS = frozenset({"zircon", "metal", "temporary"})

PRIMARY_MILK = frozenset(
    {11, 12, 13, 14, 15, 21, 22, 23, 24, 25, 31, 32, 33, 34, 35, 41, 42, 43, 44, 45}
)
MIXED_PERMANENT = frozenset({11, 12, 16, 21, 22, 26, 31, 32, 36, 41, 42, 46})
MIXED_MILK = frozenset({13, 14, 15, 23, 24, 25, 33, 34, 35, 43, 44, 45})
MIXED_NONE = frozenset({17, 18, 27, 28, 37, 38, 47, 48})

# Full dentures cover the arch without the wisdom teeth.
UPPER_ARCH: tuple[int, ...] = (11, 12, 13, 14, 15, 16, 17, 21, 22, 23, 24, 25, 26, 27)
LOWER_ARCH: tuple[int, ...] = (31, 32, 33, 34, 35, 36, 37, 41, 42, 43, 44, 45, 46, 47)

BAR_DENTURE_MISSING: dict[str, dict[str, tuple[int, ...]]] = {
    "12": {
        "upper": (16, 15, 13, 11, 21, 23, 25, 26),
        "lower": (46, 45, 43, 41, 31, 33, 35, 36),
    },
    "14": {
        "upper": (17, 16, 15, 13, 11, 21, 23, 25, 26, 27),
        "lower": (47, 46, 45, 43, 41, 31, 33, 35, 36, 37),
    },
}


def tooth_key(tooth: int | str) -> str:
    return str(tooth).strip()


def tooth_number(tooth: int | str) -> int | None:
    try:
        value = int(str(tooth).strip())
    except ValueError:
        return None
    return value if value in ALL_TEETH else None


def arch_of(tooth: int) -> str:
    return "upper" if 11 <= tooth <= 28 else "lower"
