from odontogram.models.base import Base
from odontogram.models.odontogram import OdontogramRecord

__all__ = [
    "Base",
    "OdontogramRecord",
]
