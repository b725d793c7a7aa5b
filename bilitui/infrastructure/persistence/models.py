"""
Modeles SQLModel pour la base de donnees bilitui.

Ces modeles representent les tables de la base de donnees SQLite.
Ils sont distincts des entites de domaine (dataclass dans core/entities/)
selon l'architecture hexagonale.

Tables:
- sessions: Session d'authentification (une seule ligne)
- watch_history: Positions de reprise locales, une ligne par video

Les champs JSON (*_json) permettent de stocker des dictionnaires
de maniere serialisee dans SQLite.
"""

from __future__ import annotations

import json
from datetime import datetime

from sqlmodel import Field, SQLModel

# Identifiant fixe de l'unique ligne de la table sessions
SESSION_ROW_ID = 1


class SessionModel(SQLModel, table=True):
    """
    Session persistee : cookies, jeton de rafraichissement et cles WBI.

    Une seule ligne (id = SESSION_ROW_ID), remplacee a chaque sauvegarde.
    """

    __tablename__ = "sessions"

    id: int = Field(default=SESSION_ROW_ID, primary_key=True)
    cookies_json: str = "{}"  # JSON: {"SESSDATA": "...", "bili_jct": "..."}
    refresh_token: str | None = None
    state: str = "anonymous"
    img_key: str | None = None
    sub_key: str | None = None
    keys_fetched_at: float | None = None
    updated_at: datetime | None = Field(default_factory=datetime.utcnow)

    @property
    def cookies(self) -> dict[str, str]:
        """Retourne les cookies deserialises."""
        return json.loads(self.cookies_json) if self.cookies_json else {}


class WatchHistoryModel(SQLModel, table=True):
    """Derniere position de lecture connue d'une video."""

    __tablename__ = "watch_history"

    bvid: str = Field(primary_key=True)
    cid: int
    part_index: int = 0
    position: int = 0
    updated_at: datetime = Field(default_factory=datetime.utcnow, index=True)
