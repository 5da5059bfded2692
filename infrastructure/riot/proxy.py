from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, Sequence
from urllib.parse import quote

import aiohttp
import structlog

from domain.errors import ConfigurationError, UpstreamError, ValidationError
from domain.regions import region_for

logger = structlog.get_logger(__name__)

DEFAULT_CONTENT_TYPE = "application/json"


class ProxyKind(str, Enum):
    IDENTITY_LOOKUP = "identity-lookup"
    SUMMONER_LOOKUP = "summoner-lookup"
    RANKED_STATS_LOOKUP = "ranked-stats-lookup"
    MATCH_ID_LIST = "match-id-list"
    MATCH_DETAIL = "match-detail"


# kind -> (uses regional cluster, path template, required parameter names)
_ROUTES = {
    ProxyKind.IDENTITY_LOOKUP: (
        True,
        "/riot/account/v1/accounts/by-riot-id/{0}/{1}",
        ("name", "tag"),
    ),
    ProxyKind.SUMMONER_LOOKUP: (
        False,
        "/lol/summoner/v4/summoners/by-puuid/{0}",
        ("puuid",),
    ),
    ProxyKind.RANKED_STATS_LOOKUP: (
        False,
        "/lol/league/v4/entries/by-summoner/{0}",
        ("summonerId",),
    ),
    ProxyKind.MATCH_ID_LIST: (
        True,
        "/lol/match/v5/matches/by-puuid/{0}/ids",
        ("puuid",),
    ),
    ProxyKind.MATCH_DETAIL: (
        True,
        "/lol/match/v5/matches/{0}",
        ("matchId",),
    ),
}


@dataclass(frozen=True)
class ProxyResponse:
    status: int
    body: bytes
    content_type: Optional[str] = None


class Transport(Protocol):
    async def fetch(self, url: str, headers: dict) -> ProxyResponse:
        ...


class AiohttpTransport:
    """
    Production transport backed by one shared `aiohttp.ClientSession`.

    The session is created lazily on first use so it binds to the running
    event loop, and must be closed with `close()` on shutdown.
    """

    def __init__(self, timeout: float = 10.0) -> None:
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    async def fetch(self, url: str, headers: dict) -> ProxyResponse:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        try:
            async with self._session.get(url, headers=headers) as r:
                body = await r.read()
                return ProxyResponse(
                    status=r.status,
                    body=body,
                    content_type=r.headers.get("Content-Type"),
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise UpstreamError(f"Upstream request failed: {exc.__class__.__name__}") from exc

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()


def parse_kind(kind: str) -> ProxyKind:
    try:
        return ProxyKind((kind or "").lower())
    except ValueError:
        raise ValidationError("invalid path") from None


def build_target_url(
    kind: ProxyKind,
    platform: str,
    params: Sequence[str],
    query: str = "",
) -> str:
    """
    Resolve the upstream URL for a proxy request.

    Every path parameter is percent-encoded on its own. Missing parameters
    raise `ValidationError` before anything touches the network.
    """

    regional, template, required = _ROUTES[kind]
    values = [p for p in params[: len(required)] if p]
    if len(values) < len(required):
        missing = required[len(values)]
        raise ValidationError(f"missing {missing}")

    platform = platform.lower()
    host = region_for(platform) if regional else platform
    path = template.format(*(quote(v, safe="") for v in values))
    url = f"https://{host}.api.riotgames.com{path}"

    query = query.lstrip("?")
    if kind is ProxyKind.MATCH_ID_LIST and query:
        url = f"{url}?{query}"
    return url


class RiotProxy:
    """
    Byte-transparent relay to the Riot API.

    Attaches the server-held key and relays the upstream status, body and
    content type unchanged. The key is never logged or returned.
    """

    def __init__(self, api_key: Optional[str], transport: Transport) -> None:
        self._api_key = api_key
        self._transport = transport

    async def forward(
        self,
        kind: str,
        platform: str,
        params: Sequence[str],
        query: str = "",
    ) -> ProxyResponse:
        if not self._api_key:
            raise ConfigurationError("RIOT_API_KEY missing")

        url = build_target_url(parse_kind(kind), platform, params, query)
        headers = {
            "X-Riot-Token": self._api_key,
            "Cache-Control": "no-cache",
        }
        response = await self._transport.fetch(url, headers)
        logger.debug("upstream_request", kind=kind, platform=platform, status=response.status)

        return ProxyResponse(
            status=response.status,
            body=response.body,
            content_type=response.content_type or DEFAULT_CONTENT_TYPE,
        )

    async def aclose(self) -> None:
        close = getattr(self._transport, "close", None)
        if close is not None:
            await close()
