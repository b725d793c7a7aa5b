"""
Implementations SQLModel des repositories.

Ce module contient les implementations concretes des interfaces repository
definies dans bilitui/core/ports/repositories.py, utilisant SQLModel pour
la persistance SQLite.

Chaque repository :
- Herite de l'interface ABC correspondante du domaine
- Recoit une session SQLModel via injection de dependances
- Convertit entre entites de domaine (dataclass) et modeles DB (SQLModel)
"""

from bilitui.infrastructure.persistence.repositories.session_store import (
    SQLModelSessionStore,
)
from bilitui.infrastructure.persistence.repositories.watch_history_repository import (
    SQLModelWatchHistoryRepository,
)

__all__ = [
    "SQLModelSessionStore",
    "SQLModelWatchHistoryRepository",
]
