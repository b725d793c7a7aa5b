"""
Ports (interfaces abstraites) définissant les contrats pour les adaptateurs.

Ports client API : Contrats avec la plateforme
- IAuthAPI : passeport QR et clés WBI
- IVideoAPIClient : opérations typées (flux, vidéos, heartbeats)

Ports lecteur : Contrats avec le lecteur externe
- IMediaPlayer, IPlayerProcess

Ports repository : Contrats de persistance
- ISessionStore : cookies et clés WBI
- IWatchHistoryRepository : positions de reprise locales
"""

from bilitui.core.ports.api_clients import (
    IAuthAPI,
    IVideoAPIClient,
    QRCodeTicket,
    QRPollResult,
)
from bilitui.core.ports.player import IMediaPlayer, IPlayerProcess
from bilitui.core.ports.repositories import ISessionStore, IWatchHistoryRepository

__all__ = [
    # Clients API
    "IAuthAPI",
    "IVideoAPIClient",
    "QRCodeTicket",
    "QRPollResult",
    # Lecteur
    "IMediaPlayer",
    "IPlayerProcess",
    # Repositories
    "ISessionStore",
    "IWatchHistoryRepository",
]
