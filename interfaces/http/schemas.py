"""
Request bodies accepted by the HTTP interface.

Field names follow the JSON the dashboard sends (camelCase for the rental
actions, snake_case for the admin forms). Range and membership checks live
in the application layer so every interface reports them the same way.
"""
from typing import Optional

from pydantic import BaseModel, EmailStr

from domain.models import UNRANKED


class RentRequest(BaseModel):
    accountId: str


class ReturnRequest(BaseModel):
    accountId: str
    returnLeague: str
    returnFlexLeague: str = UNRANKED
    returnSoloLp: int = 0
    returnFlexLp: int = 0


class ReleaseRequest(BaseModel):
    accountId: str


class AccountCreate(BaseModel):
    username: str
    password: str
    server: str
    nickname: Optional[str] = None
    league: str = UNRANKED
    flex_league: str = UNRANKED
    solo_lp: int = 0
    flex_lp: int = 0
    notes: Optional[str] = None
    is_vip_only: bool = False


class UserCreate(BaseModel):
    email: EmailStr
    password: str
    role: str


class RoleUpdate(BaseModel):
    role: str
