"""
Entités métier représentant les concepts du domaine.

Exports:
- Session, AuthState, MixinKeyMaterial : état d'authentification
- QRLoginAttempt, QRPollState : connexion par QR code
- VideoRef, VideoPart, VideoDetail, ... : vidéos et résultats typés de l'API
- PlaybackSession, HeartbeatReport, WatchHistoryEntry : lecture
- LiveRoom, LiveStatus, LiveSession : salons de direct
"""

from bilitui.core.entities.live import LiveRoom, LiveSession, LiveStatus
from bilitui.core.entities.login import QRLoginAttempt, QRPollState
from bilitui.core.entities.playback import (
    HeartbeatReport,
    PlaybackSession,
    PlaybackState,
    PlayType,
    WatchHistoryEntry,
)
from bilitui.core.entities.session import AuthState, MixinKeyMaterial, Session
from bilitui.core.entities.video import (
    Comment,
    CommentPage,
    FeedPage,
    HistoryCursor,
    HistoryItem,
    HistoryPage,
    HotSearchItem,
    StreamInfo,
    VideoCard,
    VideoDetail,
    VideoPart,
    VideoRef,
    VideoStat,
)

__all__ = [
    "AuthState",
    "Comment",
    "CommentPage",
    "FeedPage",
    "HeartbeatReport",
    "HistoryCursor",
    "HistoryItem",
    "HistoryPage",
    "HotSearchItem",
    "LiveRoom",
    "LiveSession",
    "LiveStatus",
    "MixinKeyMaterial",
    "PlaybackSession",
    "PlaybackState",
    "PlayType",
    "QRLoginAttempt",
    "QRPollState",
    "Session",
    "StreamInfo",
    "VideoCard",
    "VideoDetail",
    "VideoPart",
    "VideoRef",
    "VideoStat",
    "WatchHistoryEntry",
]
