"""Sous-package CLI commands - re-exporte les commandes publiques."""

from bilitui.adapters.cli.commands.auth_commands import login, logout, status
from bilitui.adapters.cli.commands.browse_commands import (
    dynamic,
    feed,
    history,
    hot,
    search,
)
from bilitui.adapters.cli.commands.live_commands import live
from bilitui.adapters.cli.commands.video_commands import comments, play, video

__all__ = [
    # Session
    "login",
    "logout",
    "status",
    # Navigation
    "feed",
    "search",
    "hot",
    "dynamic",
    "history",
    # Video
    "video",
    "comments",
    "play",
    # Direct
    "live",
]
