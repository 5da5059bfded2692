from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

import structlog

from domain.errors import NotFoundError, PreconditionFailed, RentalError, ValidationError
from domain.models import MAX_LP, UNRANKED, Account, Role, User, is_valid_league
from domain.regions import SERVERS
from domain.repositories import UnitOfWork

from application.services import OperationResult, failure_result

logger = structlog.get_logger(__name__)


def _parse_role(role: Optional[str]) -> Role:
    try:
        return Role(role)
    except ValueError:
        raise ValidationError("Role must be one of ADMIN, USER or VIP.") from None


def _check_lp(value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= MAX_LP:
        raise ValidationError(f"LP must be a whole number between 0 and {MAX_LP}.")


def create_account(
    uow: UnitOfWork,
    username: str,
    password: str,
    server: str,
    nickname: Optional[str] = None,
    league: str = UNRANKED,
    flex_league: str = UNRANKED,
    solo_lp: int = 0,
    flex_lp: int = 0,
    notes: Optional[str] = None,
    is_vip_only: bool = False,
) -> OperationResult:
    """Register a new game account. It starts out available."""

    try:
        if not username or not password:
            raise ValidationError("Username and password are required.")
        if server not in SERVERS:
            raise ValidationError(f"Unknown server: {server!r}.")
        for label in (league, flex_league):
            if not is_valid_league(label):
                raise ValidationError(f"Unknown league: {label!r}.")
        _check_lp(solo_lp)
        _check_lp(flex_lp)
        if nickname and "#" not in nickname:
            raise ValidationError("Nickname must look like name#tag.")

        account = Account(
            id=str(uuid.uuid4()),
            username=username,
            password=password,
            server=server,
            nickname=nickname or None,
            league=league,
            flex_league=flex_league,
            solo_lp=solo_lp,
            flex_lp=flex_lp,
            notes=notes or None,
            is_vip_only=is_vip_only,
            created_at=datetime.now(timezone.utc),
        )
        with uow:
            uow.accounts.create_account(account)
    except RentalError as exc:
        return failure_result("create_account", exc, username=username)

    logger.info("account_created", account_id=account.id, server=server)
    return OperationResult(success=True, account=account)


def create_user(
    uow: UnitOfWork,
    email: str,
    password: str,
    role: Optional[str],
) -> OperationResult:
    """
    Create an auth identity and the matching user row.

    Both are written in the same unit of work, so a failure leaves neither.
    """

    try:
        if not email or not password or not role:
            raise ValidationError("Email, password and role are required.")
        parsed_role = _parse_role(role)

        with uow:
            if uow.users.get_by_email(email) is not None:
                raise ValidationError("A user with this email already exists.")
            user_id = uow.identities.create_identity(email, password)
            user = User(
                id=user_id,
                email=email,
                role=parsed_role,
                created_at=datetime.now(timezone.utc),
            )
            uow.users.add_user(user)
    except RentalError as exc:
        return failure_result("create_user", exc, email=email)

    logger.info("user_created", user_id=user.id, role=user.role.value)
    return OperationResult(success=True, user=user)


def change_role(uow: UnitOfWork, user_id: str, role: Optional[str]) -> OperationResult:
    try:
        if not user_id:
            raise ValidationError("User ID is required.")
        parsed_role = _parse_role(role)
        with uow:
            if not uow.users.update_role(user_id, parsed_role):
                raise NotFoundError("User not found.")
            user = uow.users.get_user(user_id)
    except RentalError as exc:
        return failure_result("change_role", exc, user_id=user_id)

    logger.info("user_role_changed", user_id=user_id, role=parsed_role.value)
    return OperationResult(success=True, user=user)


def delete_user(uow: UnitOfWork, user_id: str) -> OperationResult:
    """
    Remove a user who holds no rented accounts.

    Rental history goes first, then the user row, then the auth identity.
    """

    try:
        if not user_id:
            raise ValidationError("User ID is required.")
        with uow:
            if uow.users.get_user(user_id) is None:
                raise NotFoundError("User not found.")
            if uow.accounts.list_accounts(assigned_to=user_id):
                raise PreconditionFailed(
                    "This user still has rented accounts. They must be returned first."
                )
            uow.assignments.delete_for_user(user_id)
            uow.users.delete_user(user_id)
            uow.identities.delete_identity(user_id)
    except RentalError as exc:
        return failure_result("delete_user", exc, user_id=user_id)

    logger.info("user_deleted", user_id=user_id)
    return OperationResult(success=True)
