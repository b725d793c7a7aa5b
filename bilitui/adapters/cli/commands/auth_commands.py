"""
Commandes CLI de gestion de la session (connexion QR, deconnexion, statut).
"""

from datetime import datetime

import typer

from bilitui.adapters.cli.display import render_qr
from bilitui.adapters.cli.helpers import console, run_async, suppress_loguru, with_container
from bilitui.core.entities.login import QRPollState
from bilitui.core.entities.session import AuthState


def login() -> None:
    """Connexion par QR code (application mobile Bilibili)."""
    run_async(_login_async())


@with_container()
async def _login_async(container) -> None:
    manager = container.session_manager()
    attempt = await manager.start_login()

    console.print("[bold cyan]Scannez ce QR code avec l'application Bilibili[/bold cyan]\n")
    console.print(render_qr(attempt.url), highlight=False)

    with suppress_loguru(), console.status("En attente du scan...") as status:
        async for state in manager.poll_login(attempt):
            if state is QRPollState.SCANNED:
                status.update("QR code scanne, confirmez sur le telephone...")

    if attempt.state is QRPollState.CONFIRMED:
        mid = manager.snapshot().mid or "?"
        console.print(f"[green]Connecte[/green] (mid {mid})")
        return
    if attempt.state is QRPollState.EXPIRED:
        console.print("[yellow]QR code expire.[/yellow] Relancez `bilitui login`.")
    else:
        console.print("[yellow]Connexion annulee.[/yellow]")
    raise typer.Exit(code=1)


def logout() -> None:
    """Supprime la session enregistree."""
    run_async(_logout_async())


@with_container()
async def _logout_async(container) -> None:
    await container.session_manager().logout()
    console.print("[green]Session supprimee.[/green]")


def status() -> None:
    """Affiche l'etat de la session."""
    run_async(_status_async())


@with_container()
async def _status_async(container) -> None:
    session = container.session_manager().snapshot()
    labels = {
        AuthState.ANONYMOUS: "[dim]anonyme[/dim]",
        AuthState.AUTHENTICATING: "[yellow]connexion en cours[/yellow]",
        AuthState.AUTHENTICATED: "[green]connecte[/green]",
        AuthState.EXPIRED: "[red]expiree[/red] (relancez `bilitui login`)",
    }
    console.print(f"Session : {labels[session.state]}")
    if session.mid:
        console.print(f"Utilisateur : {session.mid}")
    if session.keys is not None:
        fetched = datetime.fromtimestamp(session.keys.fetched_at).strftime("%Y-%m-%d %H:%M")
        console.print(f"Cles WBI : recuperees le {fetched}")
    else:
        console.print("Cles WBI : [dim]non recuperees[/dim]")
