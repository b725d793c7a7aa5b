"""
Client Bilibili pour les flux, videos, commentaires et heartbeats.

Implemente l'interface IVideoAPIClient. Chaque appel suit le meme chemin :
- signature WBI si l'endpoint l'exige (cles obtenues du SessionManager)
- header Cookie construit depuis une copie de la session
- jeton csrf ajoute au formulaire des endpoints d'ecriture
- envoi via request_with_retry, puis classification du code metier

Politique de re-authentification :
- signature refusee (-352) : un rafraichissement force des cles puis une
  seule nouvelle tentative ; un second refus remonte tel quel
- session refusee (-101, -111, 401) : la session passe en EXPIRED et
  l'erreur remonte a l'appelant

Usage:
    client = BilibiliClient(session_manager)
    page = await client.get_recommendations(page=1)
    detail = await client.get_video_detail("BV1xx411c7mD")
    rooms = await client.get_live_recommendations()
    await client.close()
"""

import time
from typing import Any, Optional

import httpx
from loguru import logger

from bilitui.adapters.api import endpoints
from bilitui.adapters.api.endpoints import Endpoint
from bilitui.adapters.api.retry import request_with_retry
from bilitui.adapters.api.wbi import sign_params
from bilitui.core.entities.live import LiveRoom, LiveStatus
from bilitui.core.entities.playback import HeartbeatReport
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
    normalize_cover_url,
    parse_duration,
    strip_highlight,
)
from bilitui.core.exceptions import (
    AuthExpiredError,
    ClientError,
    RateLimitError,
    SignatureRejectedError,
)
from bilitui.core.ports.api_clients import IVideoAPIClient

PAGE_SIZE = 20
COMMENT_PAGE_SIZE = 20


def classify_body(response: httpx.Response) -> None:
    """
    Convertit le code metier du corps JSON en erreur typee.

    Raises:
        AuthExpiredError: -101, -111
        SignatureRejectedError: -352
        RateLimitError: -412, -509, -799
        ClientError: tout autre code non nul, ou corps non JSON
    """
    try:
        payload = response.json()
    except ValueError as e:
        raise ClientError("Reponse JSON invalide") from e

    code = payload.get("code", endpoints.CODE_OK)
    if code == endpoints.CODE_OK:
        return
    message = payload.get("message") or payload.get("msg", "")
    if code in endpoints.AUTH_EXPIRED_CODES:
        raise AuthExpiredError(f"Session refusee ({code}): {message}", code=code)
    if code in endpoints.SIGNATURE_REJECTED_CODES:
        raise SignatureRejectedError(f"Signature WBI refusee: {message}", code=code)
    if code in endpoints.RATE_LIMITED_CODES:
        raise RateLimitError(code=code)
    raise ClientError(f"Erreur API {code}: {message}", code=code)


def _int(value: Any, default: Optional[int] = None) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _parse_stat(data: dict) -> VideoStat:
    return VideoStat(
        view=_int(data.get("view"), 0),
        danmaku=_int(data.get("danmaku"), 0),
        like=_int(data.get("like"), 0),
        coin=_int(data.get("coin"), 0),
        favorite=_int(data.get("favorite"), 0),
        share=_int(data.get("share"), 0),
        reply=_int(data.get("reply")),
    )


def _parse_archive_card(item: dict) -> Optional[VideoCard]:
    """Carte depuis un objet "archive" (recommandations, associees)."""
    bvid = item.get("bvid")
    if not bvid:
        # Publicites et contenus non-video du flux
        return None
    owner = item.get("owner") or {}
    stat = item.get("stat") or {}
    return VideoCard(
        bvid=bvid,
        title=item.get("title", ""),
        aid=_int(item.get("id", item.get("aid"))),
        cid=_int(item.get("cid")),
        cover_url=normalize_cover_url(item.get("pic")),
        author=owner.get("name") or "-",
        duration=_int(item.get("duration")),
        views=_int(stat.get("view")),
    )


def _parse_comment(item: dict) -> Comment:
    member = item.get("member") or {}
    content = item.get("content") or {}
    return Comment(
        rpid=_int(item.get("rpid"), 0),
        author=member.get("uname") or "-",
        message=content.get("message", ""),
        like=_int(item.get("like"), 0),
        ctime=_int(item.get("ctime")),
        reply_count=_int(item.get("rcount", item.get("count")), 0),
        replies=[_parse_comment(reply) for reply in item.get("replies") or []],
    )


def _parse_live_room(item: dict) -> LiveRoom:
    """Salon depuis un element de la liste des directs recommandes."""
    watched = item.get("watched_show") or {}
    return LiveRoom(
        room_id=_int(item.get("roomid"), 0),
        uid=_int(item.get("uid")),
        title=item.get("title", ""),
        uname=item.get("uname") or "-",
        cover_url=normalize_cover_url(item.get("cover") or item.get("keyframe")),
        online=_int(watched.get("num"), _int(item.get("online"))),
        area_name=item.get("area_v2_name", ""),
        parent_area_name=item.get("area_v2_parent_name", ""),
    )


class BilibiliClient(IVideoAPIClient):
    """
    Client API Bilibili.

    Le client ne conserve aucun etat mutable par appel : un unique
    httpx.AsyncClient partage (pool de connexions), la session etant lue
    par copie a chaque requete.

    Attributes:
        default_quality: Qualite demandee a playurl quand aucune n'est fournie
    """

    def __init__(
        self,
        session_manager,
        timeout: float = 15.0,
        max_attempts: int = 3,
        retry_max_wait: float = 10.0,
        retry_min_wait: float = 0.5,
        default_quality: int = 80,
    ) -> None:
        """
        Initialise le client.

        Args:
            session_manager: SessionManager fournissant session et cles WBI
            timeout: Timeout des requetes en secondes
            max_attempts: Tentatives maximum pour les endpoints relancables
            retry_max_wait: Attente maximum entre deux tentatives
            retry_min_wait: Attente minimum entre deux tentatives
            default_quality: Qualite playurl par defaut (80 = 1080P)
        """
        self._session_manager = session_manager
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._retry_max_wait = retry_max_wait
        self._retry_min_wait = retry_min_wait
        self.default_quality = default_quality
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

    # ------------------------------------------------------------------
    # Chemin commun des requetes
    # ------------------------------------------------------------------

    async def _send(
        self,
        endpoint: Endpoint,
        params: Optional[dict] = None,
        data: Optional[dict] = None,
    ) -> dict:
        session = self._session_manager.snapshot()

        query: dict[str, Any] = dict(params or {})
        if endpoint.signed:
            keys = await self._session_manager.ensure_fresh_keys()
            query = sign_params(query, keys)

        form = dict(data) if data is not None else None
        if endpoint.requires_csrf:
            if not session.csrf:
                raise ClientError(
                    f"Jeton csrf absent pour {endpoint.name}",
                    hint="Connectez-vous avec `bilitui login`.",
                )
            form = form or {}
            form["csrf"] = session.csrf

        headers = {}
        cookie_header = session.cookie_header()
        if cookie_header:
            headers["Cookie"] = cookie_header

        response = await request_with_retry(
            self._get_client(),
            endpoint.method,
            endpoint.url,
            max_attempts=self._max_attempts if endpoint.retryable else 1,
            max_wait=self._retry_max_wait,
            min_wait=self._retry_min_wait,
            classify=classify_body,
            params=query or None,
            data=form,
            headers=headers or None,
        )
        return response.json().get("data") or {}

    async def _call(
        self,
        endpoint: Endpoint,
        params: Optional[dict] = None,
        data: Optional[dict] = None,
    ) -> Any:
        """
        Execute un appel en appliquant la politique de re-authentification.

        Returns:
            Le champ "data" du corps JSON ({} si absent)
        """
        try:
            try:
                return await self._send(endpoint, params, data)
            except SignatureRejectedError:
                if not endpoint.signed:
                    raise
                logger.info(f"Signature refusee sur {endpoint.name}, rafraichissement des cles")
                await self._session_manager.refresh_keys(force=True)
                return await self._send(endpoint, params, data)
        except AuthExpiredError:
            await self._session_manager.mark_expired()
            raise

    # ------------------------------------------------------------------
    # Flux
    # ------------------------------------------------------------------

    async def get_recommendations(self, page: int = 1) -> FeedPage:
        """
        Recupere une page du flux de recommandations.

        Le flux est infini : chaque numero de page (fresh_idx) renvoie une
        nouvelle selection.
        """
        data = await self._call(
            endpoints.RECOMMEND_FEED,
            params={
                "fresh_type": 4,
                "ps": PAGE_SIZE,
                "fresh_idx": page,
                "fresh_idx_1h": page,
            },
        )
        items = [
            card
            for card in (_parse_archive_card(item) for item in data.get("item") or [])
            if card is not None
        ]
        logger.debug(f"Recommandations page {page}: {len(items)} videos")
        return FeedPage(items=items, page=page, has_more=True)

    async def search_videos(self, keyword: str, page: int = 1) -> FeedPage:
        """
        Recherche des videos par mot-cle.

        Les titres renvoyes contiennent des balises <em> de surlignage,
        retirees ici.
        """
        data = await self._call(
            endpoints.SEARCH,
            params={
                "search_type": "video",
                "keyword": keyword,
                "page": page,
                "order": "totalrank",
            },
        )
        items = []
        for item in data.get("result") or []:
            if not item.get("bvid"):
                continue
            items.append(
                VideoCard(
                    bvid=item["bvid"],
                    title=strip_highlight(item.get("title", "")),
                    aid=_int(item.get("aid")),
                    cover_url=normalize_cover_url(item.get("pic")),
                    author=item.get("author") or "-",
                    duration=parse_duration(str(item.get("duration", ""))),
                    views=_int(item.get("play")),
                )
            )
        num_pages = _int(data.get("numPages"), 0)
        return FeedPage(
            items=items,
            page=page,
            has_more=page < num_pages,
            total=_int(data.get("numResults")),
        )

    async def get_hot_search(self, limit: int = 10) -> list[HotSearchItem]:
        """Recupere les recherches tendance."""
        data = await self._call(endpoints.HOT_SEARCH, params={"limit": limit})
        trending = (data.get("trending") or {}).get("list") or []
        return [
            HotSearchItem(
                keyword=item.get("keyword", ""),
                show_name=item.get("show_name") or item.get("keyword", ""),
                position=index,
            )
            for index, item in enumerate(trending[:limit], start=1)
        ]

    async def get_dynamic_feed(self, offset: Optional[str] = None) -> FeedPage:
        """
        Recupere une page du flux des abonnements (videos uniquement).

        Pagination par curseur opaque : passer l'offset renvoye par la
        page precedente.
        """
        params: dict[str, Any] = {"type": "video"}
        if offset:
            params["offset"] = offset
        data = await self._call(endpoints.DYNAMIC_FEED, params=params)

        items = []
        for item in data.get("items") or []:
            modules = item.get("modules") or {}
            author = (modules.get("module_author") or {}).get("name") or "-"
            major = (modules.get("module_dynamic") or {}).get("major") or {}
            archive = major.get("archive")
            if not archive or not archive.get("bvid"):
                continue
            stat = archive.get("stat") or {}
            items.append(
                VideoCard(
                    bvid=archive["bvid"],
                    title=archive.get("title", ""),
                    aid=_int(archive.get("aid")),
                    cover_url=normalize_cover_url(archive.get("cover")),
                    author=author,
                    duration=parse_duration(archive.get("duration_text", "")),
                    views=_int(stat.get("play")),
                )
            )
        return FeedPage(
            items=items,
            offset=data.get("offset") or None,
            has_more=bool(data.get("has_more")),
        )

    # ------------------------------------------------------------------
    # Videos
    # ------------------------------------------------------------------

    async def get_video_detail(self, bvid: str) -> Optional[VideoDetail]:
        """
        Recupere les details d'une video, dont la liste de ses parties.

        Returns:
            VideoDetail, ou None si la video n'existe pas (ou plus)
        """
        try:
            data = await self._call(endpoints.VIDEO_VIEW, params={"bvid": bvid})
        except ClientError as e:
            if e.code in endpoints.NOT_FOUND_CODES:
                return None
            raise

        owner = data.get("owner") or {}
        parts = [
            VideoPart(
                cid=_int(page.get("cid"), 0),
                page=_int(page.get("page"), index),
                title=page.get("part", ""),
                duration=_int(page.get("duration"), 0),
            )
            for index, page in enumerate(data.get("pages") or [], start=1)
        ]
        return VideoDetail(
            bvid=data.get("bvid", bvid),
            aid=_int(data.get("aid"), 0),
            cid=_int(data.get("cid"), 0),
            title=data.get("title", ""),
            description=data.get("desc") or "",
            cover_url=normalize_cover_url(data.get("pic")),
            duration=_int(data.get("duration"), 0),
            pubdate=_int(data.get("pubdate")),
            owner_mid=_int(owner.get("mid")),
            owner_name=owner.get("name") or "-",
            stat=_parse_stat(data.get("stat") or {}),
            parts=parts,
        )

    async def get_related_videos(self, bvid: str) -> list[VideoCard]:
        """Recupere les videos associees a une video."""
        data = await self._call(endpoints.RELATED, params={"bvid": bvid})
        if not isinstance(data, list):
            return []
        return [card for card in (_parse_archive_card(item) for item in data) if card is not None]

    async def get_comments(self, aid: int, page: int = 1) -> CommentPage:
        """Recupere une page de commentaires (tri par popularite)."""
        data = await self._call(
            endpoints.COMMENTS,
            params={"type": 1, "oid": aid, "sort": 1, "ps": COMMENT_PAGE_SIZE, "pn": page},
        )
        page_info = data.get("page") or {}
        return CommentPage(
            items=[_parse_comment(item) for item in data.get("replies") or []],
            hots=[_parse_comment(item) for item in data.get("hots") or []],
            page=_int(page_info.get("num"), page),
            count=_int(page_info.get("count"), 0),
        )

    async def get_history(self, cursor: Optional[HistoryCursor] = None) -> HistoryPage:
        """
        Recupere une page de l'historique de visionnage du compte.

        Necessite une session authentifiee (-101 sinon).
        """
        params: dict[str, Any] = {"ps": PAGE_SIZE, "type": "archive"}
        if cursor is not None:
            params.update({"max": cursor.max, "view_at": cursor.view_at, "business": cursor.business})
        data = await self._call(endpoints.HISTORY, params=params)

        items = []
        for item in data.get("list") or []:
            history = item.get("history") or {}
            bvid = history.get("bvid")
            if not bvid:
                continue
            items.append(
                HistoryItem(
                    bvid=bvid,
                    title=item.get("title", ""),
                    aid=_int(history.get("oid")),
                    cid=_int(history.get("cid")),
                    cover_url=normalize_cover_url(item.get("cover")),
                    author=item.get("author_name") or "-",
                    progress=_int(item.get("progress"), 0),
                    duration=_int(item.get("duration"), 0),
                    view_at=_int(item.get("view_at"), 0),
                )
            )

        next_cursor = None
        raw_cursor = data.get("cursor") or {}
        if items and raw_cursor.get("max"):
            next_cursor = HistoryCursor(
                max=_int(raw_cursor.get("max"), 0),
                view_at=_int(raw_cursor.get("view_at"), 0),
                business=raw_cursor.get("business", ""),
            )
        return HistoryPage(items=items, cursor=next_cursor)

    async def get_play_url(
        self, bvid: str, cid: int, quality: Optional[int] = None
    ) -> StreamInfo:
        """
        Resout l'URL du flux d'une partie (format durl, lisible par mpv).

        Raises:
            ClientError: Si aucun flux n'est propose
        """
        data = await self._call(
            endpoints.PLAY_URL,
            params={
                "bvid": bvid,
                "cid": cid,
                "qn": quality or self.default_quality,
                "fnval": 1,
                "fnver": 0,
                "fourk": 1,
            },
        )
        durl = data.get("durl") or []
        if not durl or not durl[0].get("url"):
            raise ClientError(f"Aucun flux disponible pour {bvid} (cid {cid})")
        return StreamInfo(
            url=durl[0]["url"],
            backup_urls=tuple(durl[0].get("backup_url") or ()),
            quality=_int(data.get("quality")),
            duration_ms=_int(data.get("timelength")),
        )

    # ------------------------------------------------------------------
    # Direct
    # ------------------------------------------------------------------

    async def get_live_recommendations(self, page: int = 1) -> list[LiveRoom]:
        """Recupere les salons de direct recommandes (tous en diffusion)."""
        data = await self._call(
            endpoints.LIVE_RECOMMEND, params={"platform": "web", "page": page}
        )
        rooms = [
            _parse_live_room(item)
            for item in data.get("recommend_room_list") or []
            if item.get("roomid")
        ]
        logger.debug(f"Directs recommandes page {page}: {len(rooms)} salons")
        return rooms

    async def get_live_room(self, room_id: int) -> Optional[LiveRoom]:
        """
        Recupere les informations d'un salon, dont son statut de diffusion.

        Returns:
            LiveRoom, ou None si le salon n'existe pas
        """
        try:
            data = await self._call(endpoints.LIVE_ROOM_INFO, params={"room_id": room_id})
        except ClientError as e:
            if e.code in endpoints.LIVE_ROOM_NOT_FOUND_CODES:
                return None
            raise
        if not data.get("room_id"):
            return None
        return LiveRoom(
            room_id=_int(data.get("room_id"), room_id),
            uid=_int(data.get("uid")),
            title=data.get("title", ""),
            cover_url=normalize_cover_url(data.get("user_cover") or data.get("keyframe")),
            online=_int(data.get("online")),
            area_name=data.get("area_name", ""),
            parent_area_name=data.get("parent_area_name", ""),
            status=LiveStatus.from_code(_int(data.get("live_status"))),
            description=data.get("description") or "",
        )

    # ------------------------------------------------------------------
    # Rapports de lecture
    # ------------------------------------------------------------------

    async def report_heartbeat(self, report: HeartbeatReport) -> None:
        """Transmet un heartbeat (une seule tentative)."""
        mid = self._session_manager.snapshot().mid or "0"
        await self._call(
            endpoints.HEARTBEAT,
            data={
                "aid": report.aid,
                "cid": report.cid,
                "bvid": report.bvid,
                "mid": mid,
                "played_time": report.played_time,
                "realtime": report.real_played_time,
                "real_played_time": report.real_played_time,
                "start_ts": report.start_ts,
                "type": 3,
                "dt": 2,
                "play_type": report.play_type.value,
                "auto_continued_play": 0,
                "refer_url": f"https://www.bilibili.com/video/{report.bvid}",
                "bsource": "",
            },
        )
        logger.debug(
            f"Heartbeat {report.bvid} cid={report.cid} position={report.played_time}s "
            f"play_type={report.play_type.value}"
        )

    async def report_watch_start(self, ref: VideoRef, part_index: int) -> None:
        """Signale le debut de lecture d'une partie."""
        part = ref.part(part_index)
        mid = self._session_manager.snapshot().mid or "0"
        await self._call(
            endpoints.WATCH_START,
            data={
                "aid": ref.aid,
                "cid": part.cid,
                "bvid": ref.bvid,
                "mid": mid,
                "type": 3,
                "dt": 2,
                "auto_continued_play": 0,
                "refer_url": ref.page_url,
                "bsource": "",
                "stime": int(time.time()),
            },
        )

    async def fetch_cover(self, url: str) -> bytes:
        """
        Telecharge une couverture (le CDN exige le Referer bilibili).

        Returns:
            Contenu brut de l'image
        """
        response = await request_with_retry(
            self._get_client(),
            "GET",
            normalize_cover_url(url) or url,
            max_attempts=self._max_attempts,
            max_wait=self._retry_max_wait,
            min_wait=self._retry_min_wait,
        )
        return response.content

    async def close(self) -> None:
        """Ferme le client HTTP."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
