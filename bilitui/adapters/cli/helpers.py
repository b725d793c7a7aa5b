"""
Utilitaires partages pour les commandes CLI de bilitui.

Ce module fournit :
- suppress_loguru : context manager pour desactiver/reactiver les logs loguru
- with_container : decorateur injectant un container initialise
- run_async : execution d'une commande async avec gestion des BiliError
- console : instance Rich Console partagee
- print_error : affichage d'une BiliError (message + indication)
"""

import asyncio
from contextlib import contextmanager
from functools import wraps

import typer
from loguru import logger as loguru_logger
from rich.console import Console

from bilitui.container import Container
from bilitui.core.exceptions import BiliError

console = Console()


@contextmanager
def suppress_loguru():
    """
    Context manager pour desactiver les logs loguru pendant l'affichage Rich.

    Usage:
        with suppress_loguru():
            console.print(...)
    """
    loguru_logger.disable("bilitui")
    try:
        yield
    finally:
        loguru_logger.enable("bilitui")


def print_error(error: BiliError) -> None:
    """Affiche une erreur et son indication eventuelle."""
    console.print(f"[red]Erreur:[/red] {error}")
    if error.hint:
        console.print(f"[dim]{error.hint}[/dim]")


def with_container(requires_db: bool = True):
    """
    Decorateur qui injecte un container initialise en premier argument.

    La session persistee est restauree avant l'appel ; les clients HTTP
    et le cache sont fermes a la sortie.

    Args:
        requires_db: Si True (defaut), initialise la base de donnees.

    Usage:
        @with_container()
        async def my_command(container, ...):
            config = container.config()
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            container = Container()
            if requires_db:
                container.database.init()
                container.session_manager().load()
            try:
                return await func(container, *args, **kwargs)
            finally:
                await container.bilibili_client().close()
                await container.auth_client().close()
                container.shutdown_resources()
        return wrapper
    return decorator


def run_async(coroutine) -> None:
    """
    Execute l'implementation async d'une commande via asyncio.run().

    Les BiliError sont interceptees a cette frontiere : message et
    indication sont affiches, puis la commande sort avec le code 1.

    Usage:
        def feed(page: int = 1) -> None:
            run_async(_feed_async(page))
    """
    try:
        asyncio.run(coroutine)
    except BiliError as e:
        print_error(e)
        raise typer.Exit(code=1) from e
