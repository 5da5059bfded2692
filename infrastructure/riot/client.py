from __future__ import annotations

import json
from typing import Any, List
from urllib.parse import urlencode

from domain.errors import UpstreamError

from infrastructure.riot.proxy import ProxyKind, RiotProxy


class RiotClient:
    """
    Typed calls against the Riot API, routed through `RiotProxy`.

    Non-2xx answers become `UpstreamError`; successful bodies are decoded
    from JSON.
    """

    def __init__(self, proxy: RiotProxy) -> None:
        self._proxy = proxy

    async def _get(self, kind: ProxyKind, platform: str, *params: str, query: str = "") -> Any:
        response = await self._proxy.forward(kind.value, platform, params, query)
        if not 200 <= response.status < 300:
            raise UpstreamError(
                f"{kind.value} answered {response.status}",
                status_code=response.status,
                body=response.body,
            )
        try:
            return json.loads(response.body)
        except ValueError as exc:
            raise UpstreamError(f"{kind.value} returned a non-JSON body") from exc

    async def account_by_riot_id(self, platform: str, game_name: str, tag_line: str) -> dict:
        return await self._get(ProxyKind.IDENTITY_LOOKUP, platform, game_name, tag_line)

    async def summoner_by_puuid(self, platform: str, puuid: str) -> dict:
        return await self._get(ProxyKind.SUMMONER_LOOKUP, platform, puuid)

    async def ranked_entries(self, platform: str, summoner_id: str) -> List[dict]:
        return await self._get(ProxyKind.RANKED_STATS_LOOKUP, platform, summoner_id)

    async def match_ids(self, platform: str, puuid: str, start: int = 0, count: int = 10) -> List[str]:
        query = urlencode({"start": start, "count": count})
        return await self._get(ProxyKind.MATCH_ID_LIST, platform, puuid, query=query)

    async def match(self, platform: str, match_id: str) -> dict:
        return await self._get(ProxyKind.MATCH_DETAIL, platform, match_id)
