"""
Utilitaires partages pour bilitui.
"""

from bilitui.utils.cancellation import CancellationToken

__all__ = ["CancellationToken"]
