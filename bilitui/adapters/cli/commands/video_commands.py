"""
Commandes CLI autour d'une video : details, commentaires, lecture.
"""

from typing import Annotated, Optional

import typer

from bilitui.adapters.cli.display import (
    cards_table,
    comment_lines,
    detail_panel,
    parts_table,
)
from bilitui.adapters.cli.helpers import console, run_async, suppress_loguru, with_container
from bilitui.core.entities.video import VideoDetail, format_duration

BvidArgument = Annotated[str, typer.Argument(help="Identifiant BV de la video")]


async def _require_detail(container, bvid: str) -> VideoDetail:
    detail = await container.bilibili_client().get_video_detail(bvid)
    if detail is None:
        console.print(f"[red]Video introuvable:[/red] {bvid}")
        raise typer.Exit(code=1)
    return detail


def video(
    bvid: BvidArgument,
    related: Annotated[
        bool, typer.Option("--related", help="Afficher les videos associees")
    ] = False,
) -> None:
    """Affiche les details d'une video et ses parties."""
    run_async(_video_async(bvid, related))


@with_container()
async def _video_async(container, bvid: str, related: bool) -> None:
    with suppress_loguru(), console.status("Chargement..."):
        detail = await _require_detail(container, bvid)
        related_cards = (
            await container.bilibili_client().get_related_videos(bvid) if related else []
        )
    console.print(detail_panel(detail))
    if len(detail.parts) > 1:
        console.print(parts_table(detail))
    if related_cards:
        console.print(cards_table(related_cards, "Videos associees"))


def comments(
    bvid: BvidArgument,
    page: Annotated[int, typer.Option("--page", "-p", min=1)] = 1,
) -> None:
    """Affiche les commentaires d'une video."""
    run_async(_comments_async(bvid, page))


@with_container()
async def _comments_async(container, bvid: str, page: int) -> None:
    client = container.bilibili_client()
    with suppress_loguru(), console.status("Chargement des commentaires..."):
        detail = await _require_detail(container, bvid)
        result = await client.get_comments(detail.aid, page)

    if page == 1 and result.hots:
        console.print("[bold]Commentaires populaires[/bold]")
        for comment in result.hots:
            console.print("\n".join(comment_lines(comment)))
            console.print()
    console.print(f"[bold]Commentaires[/bold] [dim]({result.count}, page {result.page})[/dim]")
    for comment in result.items:
        console.print("\n".join(comment_lines(comment)))
        console.print()
    if result.has_more:
        console.print(f"[dim]Page suivante: --page {page + 1}[/dim]")


def play(
    bvid: BvidArgument,
    part: Annotated[
        Optional[int], typer.Option("--part", "-P", min=1, help="Partie a lire (1-indexee)")
    ] = None,
    resume: Annotated[
        bool, typer.Option("--resume/--no-resume", help="Reprendre a la derniere position")
    ] = True,
    quality: Annotated[
        Optional[int], typer.Option("--quality", "-q", help="Qualite (80=1080P, 64=720P)")
    ] = None,
) -> None:
    """Lit une video dans mpv et synchronise la progression."""
    run_async(_play_async(bvid, part, resume, quality))


@with_container()
async def _play_async(
    container, bvid: str, part: Optional[int], resume: bool, quality: Optional[int]
) -> None:
    with suppress_loguru(), console.status("Resolution du flux..."):
        detail = await _require_detail(container, bvid)

    ref = detail.to_ref()
    start = None
    part_index = part - 1 if part is not None else None
    if resume:
        entry = container.watch_history_repository().get(bvid)
        if entry is not None and entry.position > 0:
            if part_index is None:
                part_index = entry.part_index
            if part_index == entry.part_index:
                start = entry.position
    part_index = part_index or 0
    if part_index >= len(ref.parts):
        console.print(f"[red]Partie {part_index + 1} inexistante[/red] ({len(ref.parts)} parties)")
        raise typer.Exit(code=1)

    orchestrator = container.playback_orchestrator(quality=quality)
    await orchestrator.play(ref, part_index, start=start)

    label = f" reprise a {format_duration(start)}" if start else ""
    console.print(f"[green]Lecture[/green] {detail.title} (P{part_index + 1}){label}")
    with suppress_loguru(), console.status("Lecture en cours, fermez mpv pour terminer..."):
        session = await orchestrator.wait()
    if session is not None:
        console.print(
            f"[dim]Position enregistree: {format_duration(session.last_position)}[/dim]"
        )
