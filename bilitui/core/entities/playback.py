"""
Entités de lecture vidéo.

Une PlaybackSession suit une partie en cours de lecture dans le lecteur
externe. Le handle du processus est possédé exclusivement par
l'orchestrateur de lecture.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from bilitui.core.entities.video import VideoPart, VideoRef


class PlaybackState(Enum):
    STARTING = "starting"
    PLAYING = "playing"
    STOPPED = "stopped"


class PlayType(Enum):
    """Valeur play_type transmise avec les heartbeats."""

    PLAYING = 0
    END = 4


@dataclass
class PlaybackSession:
    """
    Session de lecture d'une partie.

    Attributs :
        ref : Vidéo lue
        part_index : Index de la partie lue
        start_ts : Horodatage epoch du début de lecture (transmis au serveur)
        process : Handle du lecteur externe (IPlayerProcess)
        state : Cycle de vie STARTING -> PLAYING -> STOPPED
        last_position : Dernière position connue (secondes)
        last_heartbeat_at : Horodatage monotone du dernier heartbeat émis
        heartbeats_sent : Nombre de heartbeats périodiques émis
    """

    ref: VideoRef
    part_index: int
    start_ts: int
    process: Optional[Any] = None
    state: PlaybackState = PlaybackState.STARTING
    last_position: int = 0
    last_heartbeat_at: Optional[float] = None
    heartbeats_sent: int = 0

    @property
    def part(self) -> VideoPart:
        return self.ref.part(self.part_index)


@dataclass(frozen=True)
class HeartbeatReport:
    """Rapport de progression envoyé à /x/click-interface/web/heartbeat."""

    aid: int
    cid: int
    bvid: str
    played_time: int
    real_played_time: int
    start_ts: int
    play_type: PlayType = PlayType.PLAYING


@dataclass
class WatchHistoryEntry:
    """Position de reprise locale, indexée par bvid."""

    bvid: str
    cid: int
    part_index: int = 0
    position: int = 0
    updated_at: datetime = field(default_factory=datetime.now)
