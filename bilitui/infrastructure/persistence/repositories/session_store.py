"""
Implementation SQLModel du stockage de session.

Implemente l'interface ISessionStore : la session (cookies, jeton de
rafraichissement, cles WBI) est conservee dans une ligne unique de la
table sessions.
"""

import json
from datetime import datetime
from typing import Optional

from sqlmodel import Session as DBSession

from bilitui.core.entities.session import AuthState, MixinKeyMaterial, Session
from bilitui.core.ports.repositories import ISessionStore
from bilitui.infrastructure.persistence.models import SESSION_ROW_ID, SessionModel


class SQLModelSessionStore(ISessionStore):
    """
    Stockage SQLModel de la session.

    Conversion bidirectionnelle entre l'entite Session (domaine) et
    SessionModel (persistance).
    """

    def __init__(self, session: DBSession) -> None:
        """
        Initialise le stockage avec une session SQLModel.

        Args :
            session : Session SQLModel active pour les operations DB
        """
        self._session = session

    def _to_entity(self, model: SessionModel) -> Session:
        keys = None
        if model.img_key and model.sub_key:
            keys = MixinKeyMaterial(
                img_key=model.img_key,
                sub_key=model.sub_key,
                fetched_at=model.keys_fetched_at or 0.0,
            )
        try:
            state = AuthState(model.state)
        except ValueError:
            state = AuthState.ANONYMOUS
        return Session(
            cookies=model.cookies,
            keys=keys,
            state=state,
            refresh_token=model.refresh_token,
        )

    def load(self) -> Optional[Session]:
        """Charge la session persistee, None si aucune."""
        model = self._session.get(SessionModel, SESSION_ROW_ID)
        if model is None:
            return None
        return self._to_entity(model)

    def save(self, session: Session) -> None:
        """Remplace la session persistee."""
        model = self._session.get(SessionModel, SESSION_ROW_ID)
        if model is None:
            model = SessionModel(id=SESSION_ROW_ID)

        model.cookies_json = json.dumps(session.cookies)
        model.refresh_token = session.refresh_token
        model.state = session.state.value
        model.img_key = session.keys.img_key if session.keys else None
        model.sub_key = session.keys.sub_key if session.keys else None
        model.keys_fetched_at = session.keys.fetched_at if session.keys else None
        model.updated_at = datetime.utcnow()

        self._session.add(model)
        self._session.commit()

    def clear(self) -> None:
        """Supprime la session persistee."""
        model = self._session.get(SessionModel, SESSION_ROW_ID)
        if model is not None:
            self._session.delete(model)
            self._session.commit()
