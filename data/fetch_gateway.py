"""Тонкий HTTP-шлюз поверх aiohttp для зовнішніх JSON API.

Контракт:
- get_json(url, params) / post_json(url, body) → розпарсений JSON;
- TransportError — мережа недоступна/таймаут;
- HttpError(status) — відповідь не 2xx;
- DecodeError — тіло не є валідним JSON.

Ретраїв тут немає: політика повторів належить викликачам.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

from config.config import HTTP_TIMEOUT_SEC
from core.serialization import json_loads

logger = logging.getLogger("data.fetch_gateway")
if not logger.handlers:
    logger.addHandler(logging.NullHandler())

JsonValue = Any


class FetchError(Exception):
    """Базова помилка мережевого/даних шару."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"{message} ({url})")
        self.url = url


class TransportError(FetchError):
    """Мережа недоступна, з'єднання розірване або таймаут."""


class HttpError(FetchError):
    """Сервер відповів статусом поза 2xx."""

    def __init__(self, url: str, status: int) -> None:
        super().__init__(url, f"HTTP {status}")
        self.status = status


class DecodeError(FetchError):
    """Тіло відповіді не є валідним JSON."""


class PayloadError(FetchError):
    """JSON валідний, але структура не відповідає очікуваній схемі."""


class FetchGateway:
    """Один HTTP-запит → JSON або типізована помилка.

    Args:
        session: відкритий aiohttp.ClientSession (життєвим циклом керує власник)
        timeout: дефолтний загальний таймаут запиту, секунди
    """

    def __init__(
        self, session: aiohttp.ClientSession, *, timeout: float = HTTP_TIMEOUT_SEC
    ) -> None:
        self.session = session
        self.timeout = float(timeout)

    async def get_json(
        self,
        url: str,
        *,
        params: dict[str, str | int] | None = None,
        timeout: float | None = None,
    ) -> JsonValue:
        return await self._request("GET", url, params=params, timeout=timeout)

    async def post_json(
        self,
        url: str,
        body: dict[str, Any],
        *,
        timeout: float | None = None,
    ) -> JsonValue:
        return await self._request("POST", url, json=body, timeout=timeout)

    async def _request(
        self,
        method: str,
        url: str,
        *,
        timeout: float | None,
        **kwargs: Any,
    ) -> JsonValue:
        client_timeout = aiohttp.ClientTimeout(
            total=self.timeout if timeout is None else float(timeout)
        )
        try:
            async with self.session.request(
                method, url, timeout=client_timeout, **kwargs
            ) as resp:
                if not 200 <= resp.status < 300:
                    raise HttpError(url, resp.status)
                body = await resp.read()
        except FetchError as exc:
            logger.debug("[Fetch] %s %s → %s", method, url, exc)
            raise
        except asyncio.TimeoutError as exc:
            logger.debug("[Fetch] %s %s → timeout", method, url)
            raise TransportError(url, "таймаут запиту") from exc
        except (aiohttp.ClientError, OSError) as exc:
            logger.debug("[Fetch] %s %s → transport: %s", method, url, exc)
            raise TransportError(url, f"мережева помилка: {exc}") from exc

        try:
            return json_loads(body)
        except ValueError as exc:
            logger.debug("[Fetch] %s %s → невалідний JSON", method, url)
            raise DecodeError(url, "невалідний JSON у відповіді") from exc


__all__ = [
    "DecodeError",
    "FetchError",
    "FetchGateway",
    "HttpError",
    "JsonValue",
    "PayloadError",
    "TransportError",
]
