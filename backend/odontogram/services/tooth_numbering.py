from __future__ import annotations

from odontogram.core.settings import settings
from odontogram.schemas.odontogram import ToothState
from odontogram.services.chart_constants import tooth_number

PRIMARY_LETTERS = "ABCDEFGHIJKLMNOPQRST"
PALMER_QUADRANTS = {1: "UR", 2: "UL", 3: "LL", 4: "LR"}


def _is_milk(position: int, tooth: ToothState | None) -> bool:
    # Only the incisors, canines and premolar slots hold primary teeth.
    return tooth is not None and tooth.tooth_selection == "milktooth" and position % 10 <= 5


def _universal(quadrant: int, digit: int, milk: bool) -> str:
    if milk:
        # A-E upper right (55..51), F-J upper left, K-O lower left (75..71), P-T lower right.
        offset = {1: 5 - digit, 2: 5 + digit - 1, 3: 10 + 5 - digit, 4: 15 + digit - 1}[quadrant]
        return PRIMARY_LETTERS[offset]
    number = {1: 9 - digit, 2: 8 + digit, 3: 25 - digit, 4: 24 + digit}[quadrant]
    return str(number)


def display_tooth_number(
    position: int | str, tooth: ToothState | None = None, system: str | None = None
) -> str:
    """Label a chart position in the configured numbering system."""
    value = tooth_number(position)
    if value is None:
        raise ValueError(f"Unknown tooth position {position!r}")
    quadrant, digit = divmod(value, 10)
    milk = _is_milk(value, tooth)
    system = (system or settings.numbering_system).upper()

    if system == "FDI":
        return str((quadrant + 4) * 10 + digit if milk else value)
    if system == "UNIVERSAL":
        return _universal(quadrant, digit, milk)
    if system == "PALMER":
        mark = PRIMARY_LETTERS[digit - 1] if milk else str(digit)
        return f"{PALMER_QUADRANTS[quadrant]}{mark}"
    raise ValueError(f"Unknown numbering system {system!r}")
