from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

import httpx

from race_terminal.core.common.exceptions import ProviderError
from race_terminal.core.interfaces.data_provider_interface import IDataProvider

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_SECONDS = 1.0

CommandHandler = Callable[[Sequence[str]], Awaitable[dict[str, Any]]]


class HttpDataProvider(IDataProvider):
    """
    Base class for JSON-over-HTTP data providers.

    Subclasses register one coroutine per command name in `_handlers()`.
    Transport failures are retried; HTTP and payload failures are not.
    """

    name = "http"

    def __init__(
        self,
        base_url: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must not be negative")
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._routes: dict[str, CommandHandler] = dict(self._handlers())

    def _handlers(self) -> Mapping[str, CommandHandler]:
        raise NotImplementedError

    @property
    def supported_commands(self) -> frozenset[str]:
        return frozenset(self._routes)

    async def fetch(self, command_name: str, args: Sequence[str]) -> dict[str, Any]:
        handler = self._routes.get(command_name)
        if handler is None:
            raise ProviderError(
                f"{self.name} cannot answer '{command_name}'", provider=self.name
            )
        return await handler(list(args))

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """
        GET `path` relative to the base URL and decode the JSON body.

        Raises:
            ProviderError: On exhausted retries, an HTTP error status, or a
                body that is not JSON. A 404 is flagged as not found.
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        attempt = 0
        while True:
            try:
                response = await self.client.get(url, params=params)
                break
            except httpx.RequestError as exc:
                if attempt >= self.max_retries:
                    logger.error(
                        "%s request to %s failed after %d retries: %s",
                        self.name,
                        url,
                        attempt,
                        exc,
                    )
                    raise ProviderError(
                        f"Could not reach {self.name} ({exc.__class__.__name__})",
                        provider=self.name,
                        details={"url": url, "attempts": attempt + 1},
                    ) from exc
                attempt += 1
                logger.warning(
                    "%s request to %s failed (%s), retry %d/%d",
                    self.name,
                    url,
                    exc,
                    attempt,
                    self.max_retries,
                )
                await asyncio.sleep(self.retry_delay)

        status_code = int(response.status_code)
        if status_code == 404:
            raise ProviderError(
                "Requested data not found",
                provider=self.name,
                not_found=True,
                status_code=status_code,
            )
        if status_code >= 400:
            raise ProviderError(
                f"{self.name} responded with HTTP {status_code}",
                provider=self.name,
                status_code=status_code,
                details={"url": url, "body": response.text[:500]},
            )

        try:
            return response.json()
        except ValueError as exc:
            raise ProviderError(
                f"{self.name} returned malformed data",
                provider=self.name,
                status_code=status_code,
            ) from exc

    def _not_found(self, message: str) -> ProviderError:
        return ProviderError(message, provider=self.name, not_found=True)
