"""
Adaptateur du lecteur video externe (mpv).
"""

from bilitui.adapters.player.mpv_player import MpvPlayer, MpvProcess

__all__ = ["MpvPlayer", "MpvProcess"]
