"""
Services applicatifs de bilitui.

- SessionManager : connexion QR, cles WBI, cycle de vie de la session
- FeedService : flux cache-first (recommandations, recherche, dynamiques)
- PlaybackOrchestrator : lecteur externe et heartbeats
- PrefetchScheduler : prefetch des couvertures pilote par le defilement
"""

from bilitui.services.feed_service import FeedService
from bilitui.services.playback import PlaybackOrchestrator
from bilitui.services.prefetch import JobState, PrefetchJob, PrefetchScheduler
from bilitui.services.session_manager import SessionManager

__all__ = [
    "FeedService",
    "JobState",
    "PlaybackOrchestrator",
    "PrefetchJob",
    "PrefetchScheduler",
    "SessionManager",
]
