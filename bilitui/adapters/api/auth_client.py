"""
Client du passeport Bilibili : connexion QR et cles WBI.

Implemente IAuthAPI. Ces appels ne sont jamais signes et ne lisent pas la
session : ils sont utilises par le SessionManager pour l'etablir.

Usage:
    client = BilibiliAuthClient()
    ticket = await client.generate_qrcode()
    result = await client.poll_qrcode(ticket.qrcode_key)
    img_key, sub_key = await client.fetch_wbi_keys()
    await client.close()
"""

from typing import Optional
from urllib.parse import parse_qsl, urlparse

import httpx
from loguru import logger

from bilitui.adapters.api import endpoints
from bilitui.adapters.api.retry import request_with_retry
from bilitui.adapters.api.wbi import extract_key_from_url
from bilitui.core.exceptions import (
    AuthenticationError,
    BiliError,
    ClientError,
)
from bilitui.core.ports.api_clients import IAuthAPI, QRCodeTicket, QRPollResult

# Cookies attendus a la confirmation d'une connexion QR
SESSION_COOKIES = ("SESSDATA", "bili_jct", "DedeUserID", "DedeUserID__ckMd5", "sid")


class BilibiliAuthClient(IAuthAPI):
    """
    Client du passeport et de l'endpoint nav.

    Attributes:
        timeout: Timeout des requetes en secondes
        max_attempts: Tentatives pour generate_qrcode et nav
    """

    def __init__(
        self,
        timeout: float = 15.0,
        max_attempts: int = 3,
        retry_max_wait: float = 10.0,
    ) -> None:
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._retry_max_wait = retry_max_wait
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        """Retourne le client HTTP, le cree si necessaire (lazy init)."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers={
                    "User-Agent": endpoints.USER_AGENT,
                    "Referer": endpoints.REFERER,
                },
                timeout=self._timeout,
            )
        return self._client

    async def generate_qrcode(self) -> QRCodeTicket:
        """
        Demande un jeton de connexion QR.

        Returns:
            QRCodeTicket (qrcode_key + URL a encoder)

        Raises:
            ClientError: Si la reponse ne contient pas de jeton
        """
        response = await request_with_retry(
            self._get_client(),
            "GET",
            endpoints.QRCODE_GENERATE.url,
            max_attempts=self._max_attempts,
            max_wait=self._retry_max_wait,
        )
        payload = response.json()
        data = payload.get("data") or {}
        if payload.get("code", 0) != 0 or not data.get("qrcode_key"):
            raise ClientError(
                f"Generation du QR code refusee: {payload.get('message', '')}",
                code=payload.get("code"),
            )
        logger.debug(f"QR code genere: {data['qrcode_key']}")
        return QRCodeTicket(qrcode_key=data["qrcode_key"], url=data.get("url", ""))

    async def poll_qrcode(self, qrcode_key: str) -> QRPollResult:
        """
        Interroge l'etat d'une tentative QR (une seule tentative reseau).

        A la confirmation, les cookies sont lus dans les headers Set-Cookie,
        a defaut dans les parametres de l'URL de redirection renvoyee.
        """
        response = await request_with_retry(
            self._get_client(),
            "GET",
            endpoints.QRCODE_POLL.url,
            max_attempts=1,
            params={"qrcode_key": qrcode_key},
        )
        payload = response.json()
        data = payload.get("data") or {}
        code = int(data.get("code", payload.get("code", -1)))

        cookies: dict[str, str] = {}
        if code == 0:
            cookies = {
                name: value
                for name, value in response.cookies.items()
                if name in SESSION_COOKIES
            }
            if "SESSDATA" not in cookies and data.get("url"):
                query = dict(parse_qsl(urlparse(data["url"]).query))
                cookies.update(
                    {name: query[name] for name in SESSION_COOKIES if name in query}
                )

        return QRPollResult(
            code=code,
            message=data.get("message", payload.get("message", "")),
            cookies=cookies,
            refresh_token=data.get("refresh_token") or None,
        )

    async def fetch_wbi_keys(self, cookie_header: Optional[str] = None) -> tuple[str, str]:
        """
        Recupere img_key et sub_key depuis /x/web-interface/nav.

        L'endpoint repond -101 aux visiteurs anonymes mais publie tout de
        meme wbi_img : seul le contenu de data est verifie.

        Raises:
            AuthenticationError: Si les cles sont absentes ou la requete echoue
        """
        headers = {"Cookie": cookie_header} if cookie_header else None
        try:
            response = await request_with_retry(
                self._get_client(),
                "GET",
                endpoints.NAV.url,
                max_attempts=self._max_attempts,
                max_wait=self._retry_max_wait,
                headers=headers,
            )
            payload = response.json()
        except BiliError as e:
            raise AuthenticationError(f"Recuperation des cles WBI impossible: {e}") from e
        except ValueError as e:
            raise AuthenticationError("Reponse nav invalide") from e

        wbi_img = (payload.get("data") or {}).get("wbi_img") or {}
        img_key = extract_key_from_url(wbi_img.get("img_url", ""))
        sub_key = extract_key_from_url(wbi_img.get("sub_url", ""))
        if not img_key or not sub_key:
            raise AuthenticationError("Cles WBI absentes de la reponse nav")
        return img_key, sub_key

    async def close(self) -> None:
        """Ferme le client HTTP."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
