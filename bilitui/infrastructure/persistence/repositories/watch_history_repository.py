"""
Implementation SQLModel du repository d'historique de lecture local.

Implemente l'interface IWatchHistoryRepository : une entree par video
(bvid), mise a jour a chaque fin de lecture.
"""

from typing import Optional

from sqlmodel import Session, select

from bilitui.core.entities.playback import WatchHistoryEntry
from bilitui.core.ports.repositories import IWatchHistoryRepository
from bilitui.infrastructure.persistence.models import WatchHistoryModel


class SQLModelWatchHistoryRepository(IWatchHistoryRepository):
    """Repository SQLModel des positions de reprise."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def _to_entity(self, model: WatchHistoryModel) -> WatchHistoryEntry:
        return WatchHistoryEntry(
            bvid=model.bvid,
            cid=model.cid,
            part_index=model.part_index,
            position=model.position,
            updated_at=model.updated_at,
        )

    def get(self, bvid: str) -> Optional[WatchHistoryEntry]:
        """Recupere l'entree d'une video."""
        model = self._session.get(WatchHistoryModel, bvid)
        if model:
            return self._to_entity(model)
        return None

    def record(self, entry: WatchHistoryEntry) -> WatchHistoryEntry:
        """Insere ou met a jour l'entree d'une video."""
        model = self._session.get(WatchHistoryModel, entry.bvid)
        if model is None:
            model = WatchHistoryModel(bvid=entry.bvid, cid=entry.cid)
        model.cid = entry.cid
        model.part_index = entry.part_index
        model.position = entry.position
        model.updated_at = entry.updated_at

        self._session.add(model)
        self._session.commit()
        self._session.refresh(model)
        return self._to_entity(model)

    def list_recent(self, limit: int = 20) -> list[WatchHistoryEntry]:
        """Liste les entrees les plus recentes."""
        statement = (
            select(WatchHistoryModel)
            .order_by(WatchHistoryModel.updated_at.desc())
            .limit(limit)
        )
        models = self._session.exec(statement).all()
        return [self._to_entity(model) for model in models]
