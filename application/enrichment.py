from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

import structlog

from domain.models import Account
from domain.regions import platform_for_server

logger = structlog.get_logger(__name__)

SOLO_QUEUE = "RANKED_SOLO_5x5"
FLEX_QUEUE = "RANKED_FLEX_SR"

DEFAULT_CONCURRENCY = 4


class RiotGateway(Protocol):
    async def account_by_riot_id(self, platform: str, game_name: str, tag_line: str) -> dict:
        ...

    async def summoner_by_puuid(self, platform: str, puuid: str) -> dict:
        ...

    async def ranked_entries(self, platform: str, summoner_id: str) -> List[dict]:
        ...

    async def match_ids(self, platform: str, puuid: str, start: int = 0, count: int = 10) -> List[str]:
        ...

    async def match(self, platform: str, match_id: str) -> dict:
        ...


@dataclass
class EnrichedAccount:
    """
    Display view of an account with live data merged in.

    `account` is a copy; the stored record is never modified here.
    """

    account: Account
    enriched: bool = False
    summoner_id: Optional[str] = None
    profile_icon_id: Optional[int] = None
    summoner_level: Optional[int] = None
    matches: List[Dict[str, Any]] = field(default_factory=list)


def split_riot_id(nickname: str) -> Tuple[str, str]:
    """Split "name#tag" into its parts, rejecting either half being empty."""

    name, _, tag = nickname.partition("#")
    name, tag = name.strip(), tag.strip().lstrip("#")
    if not name or not tag:
        raise ValueError(f"Invalid Riot ID: {nickname!r}")
    return name, tag


def _league_label(entry: dict) -> str:
    return f"{entry['tier']} {entry['rank']}"


def _ranked_updates(entries: Sequence[dict]) -> Dict[str, Any]:
    updates: Dict[str, Any] = {}
    for entry in entries or []:
        queue = entry.get("queueType")
        if queue == SOLO_QUEUE:
            updates["league"] = _league_label(entry)
            updates["solo_lp"] = int(entry.get("leaguePoints", 0))
        elif queue == FLEX_QUEUE:
            updates["flex_league"] = _league_label(entry)
            updates["flex_lp"] = int(entry.get("leaguePoints", 0))
    return updates


async def enrich_account(
    account: Account,
    client: RiotGateway,
    match_count: int = 0,
) -> EnrichedAccount:
    """
    Look up live rank data (and optionally recent matches) for one account.

    Each upstream call may fail; any failure leaves the account exactly as
    stored and is only logged.
    """

    if not account.nickname or not account.server:
        return EnrichedAccount(account=account)

    try:
        name, tag = split_riot_id(account.nickname)
        platform = platform_for_server(account.server)
        if platform is None:
            raise ValueError(f"Invalid server: {account.server!r}")

        riot_account = await client.account_by_riot_id(platform, name, tag)
        puuid = riot_account["puuid"]
        summoner = await client.summoner_by_puuid(platform, puuid)
        entries = await client.ranked_entries(platform, summoner["id"])
        updates = _ranked_updates(entries)

        matches: List[Dict[str, Any]] = []
        if match_count > 0:
            match_ids = await client.match_ids(platform, puuid, 0, match_count)
            if match_ids:
                matches = list(
                    await asyncio.gather(*(client.match(platform, m) for m in match_ids))
                )
    except Exception as exc:
        # Upstream answers are untrusted; a malformed one only costs this account.
        logger.warning(
            "enrichment_failed",
            account_id=account.id,
            nickname=account.nickname,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return EnrichedAccount(account=account)

    return EnrichedAccount(
        account=replace(account, **updates),
        enriched=True,
        summoner_id=summoner.get("id"),
        profile_icon_id=summoner.get("profileIconId"),
        summoner_level=summoner.get("summonerLevel"),
        matches=matches,
    )


async def enrich_accounts(
    accounts: Sequence[Account],
    client: RiotGateway,
    concurrency: int = DEFAULT_CONCURRENCY,
    match_count: int = 0,
) -> List[EnrichedAccount]:
    """
    Enrich a batch of accounts with at most `concurrency` in flight.

    Results come back in input order; one account failing never affects
    the others.
    """

    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def worker(account: Account) -> EnrichedAccount:
        async with semaphore:
            return await enrich_account(account, client, match_count)

    return list(await asyncio.gather(*(worker(a) for a in accounts)))
