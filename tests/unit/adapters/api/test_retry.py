"""
Tests unitaires pour le mecanisme de retry avec backoff exponentiel.

Ces tests verifient:
- RateLimitError capture le header Retry-After
- with_retry relance les erreurs transitoires et rien d'autre
- request_with_retry classifie les statuts HTTP et les erreurs de transport
- Les erreurs non transitoires remontent sans retry
"""

import httpx
import pytest
import respx

from bilitui.adapters.api.retry import raise_for_status, request_with_retry, with_retry
from bilitui.core.exceptions import (
    AuthExpiredError,
    ClientError,
    RateLimitError,
    SignatureRejectedError,
    TransientNetworkError,
)

URL = "https://api.bilibili.com/x/test"


class TestRateLimitError:
    """Tests pour l'exception RateLimitError."""

    def test_rate_limit_error_stores_retry_after(self) -> None:
        """RateLimitError stocke la valeur Retry-After."""
        error = RateLimitError(retry_after=60)
        assert error.retry_after == 60
        assert "60" in str(error)

    def test_rate_limit_error_is_transient(self) -> None:
        """RateLimitError est une erreur transitoire."""
        assert isinstance(RateLimitError(), TransientNetworkError)


class TestWithRetryDecorator:
    """Tests pour le decorateur with_retry."""

    @pytest.mark.asyncio
    async def test_with_retry_retries_on_transient_error(self) -> None:
        """with_retry relance sur TransientNetworkError."""
        call_count = 0

        @with_retry(max_attempts=3, max_wait=0.01, min_wait=0)
        async def flaky_function() -> str:
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise TransientNetworkError("timeout")
            return "success"

        result = await flaky_function()
        assert result == "success"
        assert call_count == 3

    @pytest.mark.asyncio
    async def test_with_retry_stops_after_max_attempts(self) -> None:
        """with_retry abandonne apres max_attempts et releve l'erreur."""
        call_count = 0

        @with_retry(max_attempts=3, max_wait=0.01, min_wait=0)
        async def always_fails() -> str:
            nonlocal call_count
            call_count += 1
            raise RateLimitError(retry_after=1)

        with pytest.raises(RateLimitError):
            await always_fails()
        assert call_count == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [ClientError("bad"), AuthExpiredError(), SignatureRejectedError("sig"), ValueError("x")],
    )
    async def test_with_retry_does_not_retry_other_exceptions(self, error: Exception) -> None:
        """with_retry ne relance pas les erreurs non transitoires."""
        call_count = 0

        @with_retry(max_attempts=3, max_wait=0.01, min_wait=0)
        async def raises() -> str:
            nonlocal call_count
            call_count += 1
            raise error

        with pytest.raises(type(error)):
            await raises()
        assert call_count == 1  # Pas de retry


class TestRaiseForStatus:
    """Tests pour la classification des statuts HTTP."""

    @pytest.mark.parametrize(
        "status,expected",
        [
            (412, RateLimitError),
            (429, RateLimitError),
            (500, TransientNetworkError),
            (503, TransientNetworkError),
            (401, AuthExpiredError),
            (404, ClientError),
        ],
    )
    def test_status_is_classified(self, status: int, expected: type) -> None:
        """Chaque statut d'erreur devient une erreur typee."""
        response = httpx.Response(status, request=httpx.Request("GET", URL))
        with pytest.raises(expected) as exc_info:
            raise_for_status(response)
        assert exc_info.value.code == status

    def test_success_status_passes(self) -> None:
        """Un statut < 400 ne leve rien."""
        raise_for_status(httpx.Response(200, request=httpx.Request("GET", URL)))


class TestRequestWithRetry:
    """Tests pour request_with_retry avec httpx."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_request_with_retry_raises_on_429(self, respx_mock: respx.Router) -> None:
        """request_with_retry convertit 429 en RateLimitError et relance."""
        route = respx_mock.get(URL).mock(
            return_value=httpx.Response(429, headers={"Retry-After": "0"})
        )

        async with httpx.AsyncClient() as client:
            with pytest.raises(RateLimitError) as exc_info:
                await request_with_retry(
                    client, "GET", URL, max_attempts=3, max_wait=0.01, min_wait=0
                )

        assert exc_info.value.retry_after == 0
        assert route.call_count == 3

    @pytest.mark.asyncio
    @respx.mock
    async def test_request_with_retry_retries_then_succeeds(self, respx_mock: respx.Router) -> None:
        """request_with_retry reussit apres un 503 initial."""
        route = respx_mock.get(URL).mock(
            side_effect=[
                httpx.Response(503),
                httpx.Response(200, json={"code": 0}),
            ]
        )

        async with httpx.AsyncClient() as client:
            response = await request_with_retry(
                client, "GET", URL, max_attempts=3, max_wait=0.01, min_wait=0
            )

        assert response.json() == {"code": 0}
        assert route.call_count == 2

    @pytest.mark.asyncio
    @respx.mock
    async def test_transport_timeout_becomes_transient(self, respx_mock: respx.Router) -> None:
        """Un timeout httpx devient TransientNetworkError apres epuisement."""
        route = respx_mock.get(URL).mock(side_effect=httpx.ConnectTimeout("timeout"))

        async with httpx.AsyncClient() as client:
            with pytest.raises(TransientNetworkError):
                await request_with_retry(
                    client, "GET", URL, max_attempts=2, max_wait=0.01, min_wait=0
                )

        assert route.call_count == 2

    @pytest.mark.asyncio
    @respx.mock
    async def test_client_error_is_not_retried(self, respx_mock: respx.Router) -> None:
        """Un 404 remonte immediatement en ClientError."""
        route = respx_mock.get(URL).mock(return_value=httpx.Response(404))

        async with httpx.AsyncClient() as client:
            with pytest.raises(ClientError):
                await request_with_retry(client, "GET", URL, max_attempts=3)

        assert route.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_single_attempt_disables_retry(self, respx_mock: respx.Router) -> None:
        """max_attempts=1 : une seule tentative meme sur erreur transitoire."""
        route = respx_mock.get(URL).mock(return_value=httpx.Response(500))

        async with httpx.AsyncClient() as client:
            with pytest.raises(TransientNetworkError):
                await request_with_retry(client, "GET", URL, max_attempts=1)

        assert route.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_classify_can_trigger_retry(self, respx_mock: respx.Router) -> None:
        """Une erreur transitoire levee par classify est relancee."""
        route = respx_mock.get(URL).mock(
            side_effect=[
                httpx.Response(200, json={"code": -412}),
                httpx.Response(200, json={"code": 0}),
            ]
        )

        def classify(response: httpx.Response) -> None:
            if response.json()["code"] == -412:
                raise RateLimitError(code=-412)

        async with httpx.AsyncClient() as client:
            response = await request_with_retry(
                client, "GET", URL, max_attempts=3, max_wait=0.01, min_wait=0, classify=classify
            )

        assert response.json() == {"code": 0}
        assert route.call_count == 2
