"""
Module de persistance SQLite pour bilitui.

Ce module fournit l'infrastructure de stockage utilisant SQLModel (SQLAlchemy).
Il contient :

- database.py : Configuration de l'engine SQLite, session factory, initialisation
- models.py : Modeles SQLModel (sessions, watch_history)

Les modeles ici sont des adapters de persistance, distincts des entites de domaine
(dataclass dans core/entities/). La conversion entre les deux se fait dans les
repositories.

Usage:
    from bilitui.infrastructure.persistence import init_db, get_session

    init_db()  # Cree les tables si necessaire
    session = next(get_session())
"""

from bilitui.infrastructure.persistence.database import (
    create_db_engine,
    get_engine,
    get_session,
    init_db,
)
from bilitui.infrastructure.persistence.models import SessionModel, WatchHistoryModel

__all__ = [
    "create_db_engine",
    "get_engine",
    "get_session",
    "init_db",
    "SessionModel",
    "WatchHistoryModel",
]
