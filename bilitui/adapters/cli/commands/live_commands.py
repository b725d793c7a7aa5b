"""
Commande CLI des directs : liste des salons recommandes et lecture.
"""

from typing import Annotated, Optional

import typer

from bilitui.adapters.cli.display import live_table
from bilitui.adapters.cli.helpers import console, run_async, suppress_loguru, with_container


def live(
    room_id: Annotated[
        Optional[int], typer.Argument(help="Salon a regarder (sans argument : recommandations)")
    ] = None,
    page: Annotated[int, typer.Option("--page", "-p", min=1)] = 1,
) -> None:
    """Liste les directs recommandes ou regarde un salon dans mpv."""
    run_async(_live_async(room_id, page))


@with_container()
async def _live_async(container, room_id: Optional[int], page: int) -> None:
    client = container.bilibili_client()
    if room_id is None:
        with suppress_loguru(), console.status("Chargement des directs..."):
            rooms = await client.get_live_recommendations(page)
        if not rooms:
            console.print("[yellow]Aucun direct[/yellow]")
            return
        console.print(live_table(rooms))
        console.print(f"[dim]Page suivante: --page {page + 1}[/dim]")
        return

    with suppress_loguru(), console.status("Chargement du salon..."):
        room = await client.get_live_room(room_id)
    if room is None:
        console.print(f"[red]Salon introuvable:[/red] {room_id}")
        raise typer.Exit(code=1)
    if not room.is_playable:
        console.print(f"[yellow]{room.title or room.id}[/yellow] est {room.status.label}")
        raise typer.Exit(code=1)

    orchestrator = container.playback_orchestrator()
    await orchestrator.play_live(room)
    console.print(f"[green]Direct[/green] {room.title} ({room.status.label})")
    with suppress_loguru(), console.status("Direct en cours, fermez mpv pour terminer..."):
        await orchestrator.wait_live()
