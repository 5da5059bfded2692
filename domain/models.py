from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


UNRANKED = "Unranked"

# Solo/flex ladder labels, lowest first.
LEAGUES = (
    "Iron 4", "Iron 3", "Iron 2", "Iron 1",
    "Bronze 4", "Bronze 3", "Bronze 2", "Bronze 1",
    "Silver 4", "Silver 3", "Silver 2", "Silver 1",
    "Gold 4", "Gold 3", "Gold 2", "Gold 1",
    "Platinum 4", "Platinum 3", "Platinum 2", "Platinum 1",
    "Emerald 4", "Emerald 3", "Emerald 2", "Emerald 1",
    "Diamond 4", "Diamond 3", "Diamond 2", "Diamond 1",
    "Master", "Grandmaster", "Challenger",
)

MAX_LP = 100


def is_valid_league(label: str) -> bool:
    return label == UNRANKED or label in LEAGUES


class Role(str, Enum):
    ADMIN = "ADMIN"
    USER = "USER"
    VIP = "VIP"


@dataclass
class User:
    """
    An authenticated principal of the rental service.

    The id is shared with the auth identity that was created alongside it.
    """

    id: str
    email: str
    role: Role
    created_at: Optional[datetime] = None


@dataclass
class Account:
    """
    A rentable game login.

    `assigned_to` is set exactly when `is_available` is False; the
    repositories only flip both fields together.
    """

    id: str
    username: str
    password: str
    server: str
    nickname: Optional[str] = None
    league: str = UNRANKED
    flex_league: str = UNRANKED
    solo_lp: int = 0
    flex_lp: int = 0
    is_available: bool = True
    assigned_to: Optional[str] = None
    notes: Optional[str] = None
    is_vip_only: bool = False
    created_at: Optional[datetime] = None

    @property
    def is_rented(self) -> bool:
        return not self.is_available


@dataclass
class Assignment:
    """
    One rental episode of an account by a user.

    `initial_*` capture the account's ranks when it was rented. The
    `*_at_return` fields are filled in by the renter on return and stay
    None when an admin released the account instead.
    """

    id: str
    user_id: str
    account_id: str
    assigned_at: datetime
    initial_league: str = UNRANKED
    initial_flex_league: str = UNRANKED
    initial_solo_lp: int = 0
    initial_flex_lp: int = 0
    returned_at: Optional[datetime] = None
    league_at_return: Optional[str] = None
    flex_league_at_return: Optional[str] = None
    solo_lp_at_return: Optional[int] = None
    flex_lp_at_return: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self.returned_at is None


@dataclass(frozen=True)
class ReturnStats:
    """Final ranks reported by the renter when handing an account back."""

    league: str
    flex_league: str
    solo_lp: int
    flex_lp: int
