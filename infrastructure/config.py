from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


def _str2bool(x: Optional[str], default: bool = False) -> bool:
    if x is None:
        return default
    return x.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


@dataclass(frozen=True)
class Settings:
    RIOT_API_KEY: Optional[str]
    DB_BACKEND: str
    DB_PATH: str
    DB_PARAMS: dict
    ENRICHMENT_CONCURRENCY: int
    MATCH_HISTORY_COUNT: int
    UPSTREAM_TIMEOUT: float
    HOST: str
    PORT: int
    LOG_LEVEL: str
    LOG_JSON: bool


def load_settings() -> Settings:
    load_dotenv()

    backend = os.getenv("DB_BACKEND", "sqlite").strip().lower()
    if backend not in ("sqlite", "postgres"):
        raise RuntimeError(f"DB_BACKEND must be 'sqlite' or 'postgres', got {backend!r}.")

    return Settings(
        # A missing key is reported per proxy request, not at startup.
        RIOT_API_KEY=os.getenv("RIOT_API_KEY") or None,
        DB_BACKEND=backend,
        DB_PATH=os.getenv("DB_PATH", "rentals.db"),
        DB_PARAMS={
            "host": os.getenv("DB_HOST", "localhost"),
            "port": int(os.getenv("DB_PORT", "5432")),
            "dbname": os.getenv("DB_NAME", "rentals"),
            "user": os.getenv("DB_USER", "postgres"),
            "password": os.getenv("DB_PASSWORD", ""),
        },
        ENRICHMENT_CONCURRENCY=int(os.getenv("ENRICHMENT_CONCURRENCY", "4")),
        MATCH_HISTORY_COUNT=int(os.getenv("MATCH_HISTORY_COUNT", "5")),
        UPSTREAM_TIMEOUT=float(os.getenv("UPSTREAM_TIMEOUT", "10")),
        HOST=os.getenv("HOST", "0.0.0.0"),
        PORT=int(os.getenv("PORT", "8000")),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
        LOG_JSON=_str2bool(os.getenv("LOG_JSON")),
    )
