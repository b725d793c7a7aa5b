"""
Point d'entrée CLI de bilitui.

Initialise le container DI, configure le logging et fournit les commandes CLI.
"""

from typing import Annotated

import typer
from loguru import logger

from . import __version__
from .adapters.cli.commands import (
    comments,
    dynamic,
    feed,
    history,
    hot,
    live,
    login,
    logout,
    play,
    search,
    status,
    video,
)
from .config import Settings
from .container import Container
from .logging_config import configure_logging

app = typer.Typer(
    name="bilitui",
    help="Client terminal pour Bilibili",
    no_args_is_help=True,
)
container = Container()

# Niveau console selon -v / -q (le fichier de log reste en DEBUG)
_VERBOSITY_LEVELS = ["WARNING", "INFO", "DEBUG"]


@app.callback()
def main_callback(
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Augmenter la verbosite (-v, -vv)"
        ),
    ] = 0,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Mode silencieux (erreurs uniquement)"),
    ] = False,
) -> None:
    """bilitui - Bilibili dans le terminal."""
    settings = get_config()
    if quiet:
        level = "ERROR"
    elif verbose:
        level = _VERBOSITY_LEVELS[min(verbose, len(_VERBOSITY_LEVELS) - 1)]
    else:
        level = settings.log_level
    configure_logging(
        log_level=level,
        log_file=settings.log_file,
        rotation_size=settings.log_rotation_size,
        retention_count=settings.log_retention_count,
    )


# Session
app.command()(login)
app.command()(logout)
app.command()(status)

# Navigation
app.command()(feed)
app.command()(search)
app.command()(hot)
app.command()(dynamic)
app.command()(history)

# Video
app.command()(video)
app.command()(comments)
app.command()(play)

# Direct
app.command()(live)


def get_config() -> Settings:
    """Récupère les paramètres de l'application depuis le container DI."""
    return container.config()


@app.command()
def info() -> None:
    """Affiche la configuration actuelle."""
    config = get_config()
    logger.info("Configuration bilitui")
    typer.echo(f"Données : {config.data_dir}")
    typer.echo(f"Cache : {config.cache_dir}")
    typer.echo(f"Base de données : {config.database_url}")
    typer.echo(f"Lecteur : {config.player_command}")
    typer.echo(f"Qualité : {config.video_quality}")
    typer.echo(f"Heartbeat : toutes les {config.heartbeat_interval:g} s")
    typer.echo(f"Cache des flux : {config.feed_cache_ttl} s")
    typer.echo(f"Niveau de log : {config.log_level}")


@app.command()
def version() -> None:
    """Affiche les informations de version."""
    typer.echo(f"bilitui v{__version__}")


def main() -> None:
    """Point d'entrée de l'application."""
    app()


if __name__ == "__main__":
    main()
