"""
Fixtures pytest partagees pour les tests bilitui.

Ce module contient les fixtures communes utilisees dans les tests:
- Materiel de cles WBI et sessions de test
- Mocks des interfaces (IAuthAPI, IVideoAPIClient)
- Base SQLite en memoire
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session as DBSession
from sqlmodel import create_engine

from bilitui.core.entities.session import AuthState, MixinKeyMaterial, Session
from bilitui.core.ports.api_clients import IAuthAPI, IVideoAPIClient
from bilitui.infrastructure.persistence.database import init_db
from tests.fixtures.bilibili_responses import WBI_IMG_KEY, WBI_SUB_KEY


@pytest.fixture
def wbi_keys() -> MixinKeyMaterial:
    """Cles WBI de l'exemple de la documentation, recuperees a t=1000."""
    return MixinKeyMaterial(img_key=WBI_IMG_KEY, sub_key=WBI_SUB_KEY, fetched_at=1000.0)


@pytest.fixture
def logged_in_session(wbi_keys: MixinKeyMaterial) -> Session:
    """Session authentifiee avec cookies et cles."""
    return Session(
        cookies={"SESSDATA": "s1", "bili_jct": "j1", "DedeUserID": "42"},
        keys=wbi_keys,
        state=AuthState.AUTHENTICATED,
        refresh_token="r1",
    )


@pytest.fixture
def mock_auth_api() -> AsyncMock:
    """
    Mock de IAuthAPI.

    fetch_wbi_keys retourne les cles de la documentation par defaut.
    """
    mock = AsyncMock(spec=IAuthAPI)
    mock.fetch_wbi_keys.return_value = (WBI_IMG_KEY, WBI_SUB_KEY)
    return mock


@pytest.fixture
def mock_video_api() -> AsyncMock:
    """Mock de IVideoAPIClient ; les valeurs de retour sont configurees par test."""
    return AsyncMock(spec=IVideoAPIClient)


@pytest.fixture
def mock_session_manager(logged_in_session: Session) -> MagicMock:
    """SessionManager simule servant une session authentifiee."""
    manager = MagicMock()
    manager.snapshot.side_effect = lambda: logged_in_session.snapshot()
    manager.ensure_fresh_keys = AsyncMock(return_value=logged_in_session.keys)
    manager.refresh_keys = AsyncMock(return_value=logged_in_session.keys)
    manager.mark_expired = AsyncMock()
    return manager


@pytest.fixture
def db_session():
    """Session SQLModel sur une base SQLite en memoire, tables creees."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    with DBSession(engine) as session:
        yield session
    engine.dispose()
