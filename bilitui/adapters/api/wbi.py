"""
Signature WBI des requetes Bilibili.

Certains endpoints (recommandations, recherche, playurl...) exigent deux
parametres supplementaires : `wts` (horodatage en secondes) et `w_rid`
(MD5 des parametres tries concatenes a la cle mixin).

La cle mixin est derivee des deux fragments img_key / sub_key publies par
/x/web-interface/nav, via une table de permutation fixe de 64 entrees.

Le signataire ne recupere jamais les cles lui-meme : l'appelant les obtient
aupres du SessionManager (ensure_fresh_keys).

Usage:
    keys = await session_manager.ensure_fresh_keys()
    params = sign_params({"keyword": "lofi", "page": 1}, keys)
    # params contient maintenant "wts" et "w_rid"
"""

import time
from hashlib import md5
from pathlib import PurePosixPath
from typing import Any, Mapping, Optional
from urllib.parse import quote, urlparse

from bilitui.core.entities.session import MixinKeyMaterial

MIXIN_KEY_ENC_TAB = (
    46, 47, 18, 2, 53, 8, 23, 32, 15, 50, 10, 31, 58, 3, 45, 35,
    27, 43, 5, 49, 33, 9, 42, 19, 29, 28, 14, 39, 12, 38, 41, 13,
    37, 48, 7, 16, 24, 55, 40, 61, 26, 17, 0, 1, 60, 51, 30, 4,
    22, 25, 54, 21, 56, 59, 6, 63, 57, 62, 11, 36, 20, 34, 44, 52,
)

MIXIN_KEY_LENGTH = 32

# Caracteres retires des valeurs avant encodage (regle de la plateforme)
FILTERED_CHARS = "!'()*"


def get_mixin_key(img_key: str, sub_key: str) -> str:
    """
    Derive la cle mixin de 32 caracteres.

    Args:
        img_key: Fragment issu de wbi_img.img_url
        sub_key: Fragment issu de wbi_img.sub_url

    Returns:
        Cle mixin utilisee comme sel de la signature
    """
    raw = img_key + sub_key
    return "".join(raw[i] for i in MIXIN_KEY_ENC_TAB if i < len(raw))[:MIXIN_KEY_LENGTH]


def extract_key_from_url(url: str) -> Optional[str]:
    """
    Extrait un fragment de cle depuis une URL wbi_img.

    "https://i0.hdslb.com/bfs/wbi/7cd0849...077c.png" -> "7cd0849...077c"
    """
    if not url:
        return None
    stem = PurePosixPath(urlparse(url).path).stem
    return stem or None


def _clean_value(value: Any) -> str:
    return "".join(ch for ch in str(value) if ch not in FILTERED_CHARS)


def encode_query(params: Mapping[str, Any]) -> str:
    """
    Encode les parametres comme le client web (encodeURIComponent).

    Les cles sont triees, les valeurs filtrees de FILTERED_CHARS puis
    percent-encodees (espace -> %20, `-_.~` conserves). Tout autre encodage
    (ex: `+` pour l'espace) produit une signature refusee.
    """
    return "&".join(
        f"{quote(str(key), safe='')}={quote(_clean_value(value), safe='')}"
        for key, value in sorted(params.items())
    )


def sign_params(
    params: Mapping[str, Any],
    keys: MixinKeyMaterial,
    timestamp: Optional[int] = None,
) -> dict[str, str]:
    """
    Signe un jeu de parametres.

    Fonction pure : pour des cles, parametres et horodatage fixes, la
    signature produite est toujours identique.

    Args:
        params: Parametres de la requete (valeurs converties en str)
        keys: Materiel de cles WBI courant
        timestamp: Horodatage force (defaut: heure courante)

    Returns:
        Nouveau dictionnaire trie contenant les valeurs filtrees, `wts` et `w_rid`
    """
    wts = int(time.time()) if timestamp is None else int(timestamp)
    signed: dict[str, Any] = dict(params)
    signed["wts"] = wts

    mixin_key = get_mixin_key(keys.img_key, keys.sub_key)
    query = encode_query(signed)
    w_rid = md5((query + mixin_key).encode("utf-8")).hexdigest()

    result = {key: _clean_value(value) for key, value in sorted(signed.items())}
    result["w_rid"] = w_rid
    return result
