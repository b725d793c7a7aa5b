"""
Rendu Rich des entites bilitui (tables de videos, details, commentaires).
"""

import io
from datetime import datetime
from typing import Optional

import qrcode
from rich.panel import Panel
from rich.table import Table

from bilitui.core.entities.live import LiveRoom
from bilitui.core.entities.video import (
    Comment,
    HistoryItem,
    HotSearchItem,
    VideoCard,
    VideoDetail,
    format_count,
    format_duration,
)


def render_qr(data: str) -> str:
    """Rend un QR code en caracteres (blocs Unicode) pour le terminal."""
    qr = qrcode.QRCode(border=1)
    qr.add_data(data)
    qr.make(fit=True)
    buffer = io.StringIO()
    qr.print_ascii(out=buffer, invert=True)
    return buffer.getvalue()


def _format_timestamp(value: Optional[int]) -> str:
    if not value:
        return "-"
    return datetime.fromtimestamp(value).strftime("%Y-%m-%d %H:%M")


def cards_table(cards: list[VideoCard], title: str, start: int = 1) -> Table:
    """Table des videos d'un flux ou d'une recherche."""
    table = Table(title=title, show_lines=False)
    table.add_column("#", style="dim", justify="right")
    table.add_column("BV", style="cyan", no_wrap=True)
    table.add_column("Titre")
    table.add_column("Auteur", style="magenta")
    table.add_column("Duree", justify="right")
    table.add_column("Vues", justify="right", style="green")
    for offset, card in enumerate(cards):
        table.add_row(
            str(start + offset),
            card.bvid,
            card.title,
            card.author,
            format_duration(card.duration),
            format_count(card.views),
        )
    return table


def live_table(rooms: list[LiveRoom], title: str = "Directs recommandes") -> Table:
    """Table des salons de direct."""
    table = Table(title=title)
    table.add_column("Salon", style="cyan", no_wrap=True, justify="right")
    table.add_column("Titre")
    table.add_column("Animateur", style="magenta")
    table.add_column("Categorie")
    table.add_column("Spectateurs", justify="right", style="green")
    for room in rooms:
        area = " / ".join(name for name in (room.parent_area_name, room.area_name) if name)
        table.add_row(
            room.id,
            room.title,
            room.uname,
            area or "-",
            format_count(room.online),
        )
    return table


def hot_table(items: list[HotSearchItem]) -> Table:
    table = Table(title="Recherches tendance")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Mot-cle", style="cyan")
    for item in items:
        table.add_row(str(item.position), item.show_name)
    return table


def history_table(items: list[HistoryItem]) -> Table:
    table = Table(title="Historique")
    table.add_column("Vu le", style="dim")
    table.add_column("BV", style="cyan", no_wrap=True)
    table.add_column("Titre")
    table.add_column("Auteur", style="magenta")
    table.add_column("Progression", justify="right")
    for item in items:
        progress = "termine" if item.progress < 0 else (
            f"{format_duration(item.progress)} / {format_duration(item.duration)}"
        )
        table.add_row(
            _format_timestamp(item.view_at),
            item.bvid,
            item.title,
            item.author,
            progress,
        )
    return table


def detail_panel(detail: VideoDetail) -> Panel:
    """Panneau de details d'une video."""
    stat = detail.stat
    lines = [
        f"[bold]{detail.title}[/bold]",
        f"[magenta]{detail.owner_name}[/magenta]  [dim]{_format_timestamp(detail.pubdate)}[/dim]",
        "",
        f"Vues {format_count(stat.view)}  Danmaku {format_count(stat.danmaku)}  "
        f"J'aime {format_count(stat.like)}  Pieces {format_count(stat.coin)}  "
        f"Favoris {format_count(stat.favorite)}  Partages {format_count(stat.share)}",
        f"Duree {format_duration(detail.duration)}  av{detail.aid}",
    ]
    if detail.description:
        lines += ["", detail.description]
    return Panel("\n".join(lines), title=detail.bvid, border_style="cyan")


def parts_table(detail: VideoDetail) -> Table:
    table = Table(title="Parties")
    table.add_column("P", justify="right", style="dim")
    table.add_column("Titre")
    table.add_column("Duree", justify="right")
    for part in detail.parts:
        table.add_row(str(part.page), part.title, format_duration(part.duration))
    return table


def comment_lines(comment: Comment, indent: str = "") -> list[str]:
    """Lignes d'un commentaire et de ses reponses apercues."""
    header = (
        f"{indent}[magenta]{comment.author}[/magenta] "
        f"[dim]{_format_timestamp(comment.ctime)}  +{format_count(comment.like)}[/dim]"
    )
    lines = [header, f"{indent}{comment.message}"]
    for reply in comment.replies:
        lines += comment_lines(reply, indent + "    ")
    if comment.reply_count > len(comment.replies):
        lines.append(f"{indent}    [dim]... {comment.reply_count} reponses[/dim]")
    return lines
