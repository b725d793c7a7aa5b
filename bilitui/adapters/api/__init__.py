"""
Clients de l'API Bilibili.

Ce module fournit les adaptateurs pour communiquer avec la plateforme:
- BilibiliAuthClient: passeport (connexion QR) et cles WBI
- BilibiliClient: flux, videos, commentaires, historique, heartbeats

Infrastructure partagee:
- FeedCache: Cache persistant des pages de flux (TTL 5 minutes)
- sign_params: Signature WBI des endpoints proteges
- request_with_retry: Backoff exponentiel sur erreurs transitoires

Les clients implementent IAuthAPI et IVideoAPIClient definis dans
core/ports/api_clients.py.
"""

from bilitui.adapters.api.auth_client import BilibiliAuthClient
from bilitui.adapters.api.bilibili_client import BilibiliClient
from bilitui.adapters.api.cache import CacheEntry, FeedCache
from bilitui.adapters.api.retry import request_with_retry, with_retry
from bilitui.adapters.api.wbi import sign_params

__all__ = [
    "BilibiliAuthClient",
    "BilibiliClient",
    "CacheEntry",
    "FeedCache",
    "request_with_retry",
    "sign_params",
    "with_retry",
]
