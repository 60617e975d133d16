from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from odontogram.core.settings import settings, validate_settings

engine = create_engine(settings.database_url, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    from odontogram.models import Base

    validate_settings(settings)
    Base.metadata.create_all(bind=engine)
