"""
Mecanisme de retry avec backoff exponentiel pour l'API Bilibili.

Classifie les echecs HTTP en erreurs typees (core/exceptions.py) et relance
uniquement les erreurs transitoires :
- TransientNetworkError (timeout, connexion reinitialisee, 5xx) : backoff
  exponentiel avec jitter
- RateLimitError (429, 412, codes -412/-509/-799) : backoff plus long,
  respecte le header Retry-After

Les autres erreurs (authentification, signature, 4xx) remontent
immediatement sans retry.

Usage:
    # Avec le decorateur
    @with_retry(max_attempts=3, max_wait=10)
    async def my_api_call():
        ...

    # Avec la fonction helper
    response = await request_with_retry(client, "GET", url, classify=check_body)
"""

from typing import Callable, Optional

import httpx
from loguru import logger
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)

from bilitui.core.exceptions import (
    AuthExpiredError,
    ClientError,
    RateLimitError,
    TransientNetworkError,
)

# Multiplicateur applique au backoff quand le serveur limite le debit
RATE_LIMIT_BACKOFF_FACTOR = 4


def _make_wait(min_wait: float, max_wait: float) -> Callable[[RetryCallState], float]:
    """
    Construit la strategie d'attente tenacity.

    Backoff exponentiel avec jitter ; pour RateLimitError, l'attente est
    multipliee (plafonnee a 4x max_wait) ou fixee par Retry-After.
    """
    base = wait_random_exponential(multiplier=1, min=min_wait, max=max_wait)

    def _wait(retry_state: RetryCallState) -> float:
        delay = base(retry_state)
        outcome = retry_state.outcome
        error = outcome.exception() if outcome is not None else None
        if isinstance(error, RateLimitError):
            ceiling = max_wait * RATE_LIMIT_BACKOFF_FACTOR
            if error.retry_after is not None:
                return min(float(error.retry_after), ceiling)
            return min(delay * RATE_LIMIT_BACKOFF_FACTOR, ceiling)
        return delay

    return _wait


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.debug(
        f"Tentative {retry_state.attempt_number} echouee ({error!r}), nouvelle tentative"
    )


def with_retry(max_attempts: int = 3, max_wait: float = 10, min_wait: float = 0.5):
    """
    Decorateur pour relancer sur TransientNetworkError avec backoff exponentiel.

    Args:
        max_attempts: Nombre maximum de tentatives (defaut: 3)
        max_wait: Delai maximum entre les tentatives en secondes (defaut: 10)
        min_wait: Delai minimum entre les tentatives (defaut: 0.5)

    Returns:
        Decorateur a appliquer sur une fonction async
    """
    return retry(
        retry=retry_if_exception_type(TransientNetworkError),
        wait=_make_wait(min_wait, max_wait),
        stop=stop_after_attempt(max_attempts),
        before_sleep=_log_retry,
        reraise=True,
    )


def raise_for_status(response: httpx.Response) -> None:
    """
    Convertit un statut HTTP en erreur typee.

    Raises:
        RateLimitError: 429 ou 412 (requete interceptee par l'anti-abus)
        TransientNetworkError: 5xx
        AuthExpiredError: 401
        ClientError: autres 4xx
    """
    status = response.status_code
    if status < 400:
        return
    if status in (412, 429):
        retry_after_header = response.headers.get("Retry-After")
        retry_after = int(retry_after_header) if retry_after_header and retry_after_header.isdigit() else None
        raise RateLimitError(retry_after, code=status)
    if status >= 500:
        raise TransientNetworkError(f"Erreur serveur HTTP {status}", code=status)
    if status == 401:
        raise AuthExpiredError(code=status)
    raise ClientError(f"Erreur client HTTP {status}", code=status)


async def request_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    max_attempts: int = 3,
    max_wait: float = 10,
    min_wait: float = 0.5,
    classify: Optional[Callable[[httpx.Response], None]] = None,
    **kwargs,
) -> httpx.Response:
    """
    Execute une requete HTTP avec retry automatique sur erreurs transitoires.

    Les exceptions httpx de transport (timeout, connexion) deviennent des
    TransientNetworkError ; le statut est classifie par raise_for_status,
    puis le corps par `classify` si fourni (codes metier Bilibili). Toute
    erreur transitoire levee par l'un ou l'autre est relancee.

    Args:
        client: Client httpx async a utiliser
        method: Methode HTTP (GET, POST)
        url: URL a appeler
        max_attempts: Nombre maximum de tentatives (1 = pas de retry)
        max_wait: Delai maximum entre tentatives
        min_wait: Delai minimum entre tentatives
        classify: Verification optionnelle du corps de la reponse
        **kwargs: Arguments supplementaires passes a client.request()

    Returns:
        httpx.Response en cas de succes

    Raises:
        TransientNetworkError: Apres epuisement des tentatives
        BiliError: Erreurs non relancables (auth, signature, client)
    """

    @with_retry(max_attempts=max_attempts, max_wait=max_wait, min_wait=min_wait)
    async def _do_request() -> httpx.Response:
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise TransientNetworkError(f"Timeout: {method} {url}") from e
        except httpx.TransportError as e:
            raise TransientNetworkError(f"Erreur reseau: {e}") from e
        raise_for_status(response)
        if classify is not None:
            classify(response)
        return response

    return await _do_request()
