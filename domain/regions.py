from typing import Optional


# Platform shard -> regional cluster used by the account and match APIs.
PLATFORM_TO_REGION = {
    "na1": "americas",
    "br1": "americas",
    "la1": "americas",
    "la2": "americas",
    "euw1": "europe",
    "eun1": "europe",
    "tr1": "europe",
    "ru": "europe",
    "kr": "asia",
    "jp1": "asia",
    "oc1": "sea",
}

# Server code stored on accounts -> platform shard.
SERVER_TO_PLATFORM = {
    "TR": "tr1",
    "EUW": "euw1",
    "EUNE": "eun1",
    "NA": "na1",
    "KR": "kr",
    "JP": "jp1",
    "BR": "br1",
    "LAN": "la1",
    "LAS": "la2",
    "OCE": "oc1",
    "RU": "ru",
}

SERVERS = tuple(SERVER_TO_PLATFORM)


def region_for(platform: str) -> str:
    """
    Return the regional cluster for a platform code.

    Unknown codes are returned unchanged so that the upstream API, not this
    lookup, decides whether they are valid. Callers lower-case first.
    """

    return PLATFORM_TO_REGION.get(platform, platform)


def platform_for_server(server: str) -> Optional[str]:
    return SERVER_TO_PLATFORM.get((server or "").upper())
