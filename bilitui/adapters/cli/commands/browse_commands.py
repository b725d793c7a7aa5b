"""
Commandes CLI de navigation : recommandations, recherche, tendances,
abonnements et historique.
"""

from pathlib import Path
from typing import Annotated, Optional

import typer
from loguru import logger

from bilitui.adapters.cli.display import cards_table, history_table, hot_table
from bilitui.adapters.cli.helpers import console, run_async, suppress_loguru, with_container
from bilitui.core.entities.video import FeedPage, format_duration
from bilitui.core.exceptions import BiliError

RefreshOption = Annotated[
    bool, typer.Option("--refresh", "-r", help="Ignorer le cache et recharger")
]
CoversOption = Annotated[
    Optional[Path],
    typer.Option("--covers", help="Telecharger les couvertures dans ce repertoire"),
]


async def _save_covers(container, page: FeedPage, directory: Path) -> int:
    """
    Telecharge les couvertures d'une page via le planificateur de prefetch.

    Le premier element est charge a la demande, les suivants par le
    prefetch programme comme si le premier etait visible.
    """
    scheduler = container.prefetch_scheduler()
    directory.mkdir(parents=True, exist_ok=True)
    scheduler.set_items(page.items)
    scheduler.on_scroll(first=0, last=0, velocity=len(page.items))
    saved = 0
    try:
        await scheduler.wait_idle()
        for card in page.items:
            data = scheduler.get_cover(card.id)
            if data is None:
                try:
                    data = await scheduler.load_cover(card)
                except BiliError as e:
                    logger.warning(f"Couverture de {card.bvid} indisponible: {e}")
                    continue
            if data:
                (directory / f"{card.bvid}.jpg").write_bytes(data)
                saved += 1
    finally:
        await scheduler.close()
    return saved


def feed(
    page: Annotated[int, typer.Option("--page", "-p", min=1, help="Numero de page")] = 1,
    refresh: RefreshOption = False,
    covers: CoversOption = None,
) -> None:
    """Affiche le flux de recommandations."""
    run_async(_feed_async(page, refresh, covers))


@with_container()
async def _feed_async(container, page: int, refresh: bool, covers: Optional[Path]) -> None:
    with suppress_loguru(), console.status("Chargement des recommandations..."):
        result = await container.feed_service().recommendations(page, refresh=refresh)
        saved = await _save_covers(container, result, covers) if covers else 0
    console.print(cards_table(result.items, f"Recommandations - page {page}"))
    if covers:
        console.print(f"[dim]{saved} couverture(s) enregistree(s) dans {covers}[/dim]")


def search(
    keyword: Annotated[str, typer.Argument(help="Mots-cles de recherche")],
    page: Annotated[int, typer.Option("--page", "-p", min=1, help="Numero de page")] = 1,
    refresh: RefreshOption = False,
) -> None:
    """Recherche des videos."""
    run_async(_search_async(keyword, page, refresh))


@with_container()
async def _search_async(container, keyword: str, page: int, refresh: bool) -> None:
    with suppress_loguru(), console.status(f"Recherche de '{keyword}'..."):
        result = await container.feed_service().search(keyword, page, refresh=refresh)
    if not result.items:
        console.print("[yellow]Aucun resultat.[/yellow]")
        return
    start = (page - 1) * len(result.items) + 1
    console.print(cards_table(result.items, f"Recherche '{keyword}' - page {page}", start=start))
    if result.total is not None:
        more = f" (page suivante: --page {page + 1})" if result.has_more else ""
        console.print(f"[dim]{result.total} resultat(s){more}[/dim]")


def hot(
    limit: Annotated[int, typer.Option("--limit", "-l", min=1, max=50)] = 10,
    refresh: RefreshOption = False,
) -> None:
    """Affiche les recherches tendance."""
    run_async(_hot_async(limit, refresh))


@with_container()
async def _hot_async(container, limit: int, refresh: bool) -> None:
    with suppress_loguru():
        items = await container.feed_service().hot_search(limit, refresh=refresh)
    console.print(hot_table(items))


def dynamic(
    offset: Annotated[
        Optional[str], typer.Option("--offset", help="Curseur de la page suivante")
    ] = None,
    refresh: RefreshOption = False,
) -> None:
    """Affiche les videos des abonnements (connexion requise)."""
    run_async(_dynamic_async(offset, refresh))


@with_container()
async def _dynamic_async(container, offset: Optional[str], refresh: bool) -> None:
    with suppress_loguru(), console.status("Chargement des abonnements..."):
        result = await container.feed_service().dynamic(offset, refresh=refresh)
    console.print(cards_table(result.items, "Abonnements"))
    if result.has_more and result.offset:
        console.print(f"[dim]Page suivante: --offset {result.offset}[/dim]")


def history(
    local: Annotated[
        bool, typer.Option("--local", help="Historique local (positions de reprise)")
    ] = False,
    limit: Annotated[int, typer.Option("--limit", "-l", min=1)] = 20,
) -> None:
    """Affiche l'historique de visionnage."""
    run_async(_history_async(local, limit))


@with_container()
async def _history_async(container, local: bool, limit: int) -> None:
    if local:
        entries = container.watch_history_repository().list_recent(limit)
        if not entries:
            console.print("[dim]Aucune lecture enregistree.[/dim]")
            return
        for entry in entries:
            console.print(
                f"[cyan]{entry.bvid}[/cyan] P{entry.part_index + 1} "
                f"a {format_duration(entry.position)} "
                f"[dim]({entry.updated_at:%Y-%m-%d %H:%M})[/dim]"
            )
        return

    with suppress_loguru(), console.status("Chargement de l'historique..."):
        page = await container.bilibili_client().get_history()
    console.print(history_table(page.items[:limit]))
