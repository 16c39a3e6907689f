"""
Configuration de la connexion à la base de données.
PostgreSQL en production, SQLite accepté pour le développement et les tests.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import sessionmaker

from app.config import settings

# SQLite refuse par défaut le partage de connexion entre threads (threadpool FastAPI)
_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(settings.DATABASE_URL, connect_args=_connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db() -> None:
    """Crée les tables manquantes (développement local, SQLite)."""
    Base.metadata.create_all(bind=engine)


def get_db():
    """Dépendance FastAPI : fournit une session BDD et la ferme après usage."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
