"""
Database initialization script.
"""
import logging

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel

from app.database.engine import engine as default_engine

logger = logging.getLogger("app.database")


def init_database(engine: Engine = None) -> None:
    """
    Create all tables known to the application.
    """
    engine = engine or default_engine
    logger.info("Initializing database...")

    # Register tables on the metadata
    from app.models.part import InventoryPart  # noqa: F401
    from app.models.import_models import CsvImportJob, CsvJobResult  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("Database tables created")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_database()
