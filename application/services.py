from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import structlog

from domain.errors import (
    AuthorizationError,
    ConsistencyError,
    NotFoundError,
    PreconditionFailed,
    RentalError,
    ValidationError,
)
from domain.models import (
    MAX_LP,
    UNRANKED,
    Account,
    Assignment,
    ReturnStats,
    Role,
    User,
    is_valid_league,
)
from domain.repositories import UnitOfWork

logger = structlog.get_logger(__name__)


@dataclass
class CallerContext:
    """
    Who is performing an operation.

    The application layer never reads session state; the interface layer
    resolves the caller and passes this small object in explicitly.
    """

    id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


@dataclass
class OperationResult:
    """Generic result type for state-changing operations."""

    success: bool
    error_message: Optional[str] = None
    status_code: int = 200
    account: Optional[Account] = None
    user: Optional[User] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def failure_result(operation: str, exc: RentalError, **context) -> OperationResult:
    if isinstance(exc, ConsistencyError):
        logger.error("consistency_error", operation=operation, error=exc.message, **context)
    else:
        logger.info("operation_failed", operation=operation, error=exc.message, **context)
    return OperationResult(
        success=False,
        error_message=exc.message,
        status_code=exc.status_code,
    )


def _load_account(uow: UnitOfWork, account_id: str) -> Account:
    if not account_id:
        raise ValidationError("Account ID is required.")
    account = uow.accounts.get_by_id(account_id)
    if account is None:
        raise NotFoundError("Account not found.")
    return account


def _validate_return_stats(stats: ReturnStats) -> None:
    for label in (stats.league, stats.flex_league):
        if not label or not is_valid_league(label):
            raise ValidationError(f"Unknown league: {label!r}.")
    for lp in (stats.solo_lp, stats.flex_lp):
        if isinstance(lp, bool) or not isinstance(lp, int) or not 0 <= lp <= MAX_LP:
            raise ValidationError(f"LP must be a whole number between 0 and {MAX_LP}.")


def rent_account(
    caller: CallerContext,
    account_id: str,
    uow: UnitOfWork,
) -> OperationResult:
    """
    Rent an available account to the caller.

    - VIP-only accounts require the caller's role to be exactly VIP.
    - The account is marked rented and a new open assignment records the
      account's ranks at rental time, in one transaction.
    """

    try:
        with uow:
            account = _load_account(uow, account_id)

            if not account.is_available:
                raise PreconditionFailed("This account is already rented.")

            if account.is_vip_only and caller.role != Role.VIP:
                raise AuthorizationError("You need a VIP membership to rent this account.")

            # Conditional write: loses cleanly if someone rented it meanwhile.
            if not uow.accounts.mark_rented(account.id, caller.id):
                raise PreconditionFailed("This account is already rented.")

            uow.assignments.add_assignment(
                Assignment(
                    id=str(uuid.uuid4()),
                    user_id=caller.id,
                    account_id=account.id,
                    assigned_at=_utcnow(),
                    initial_league=account.league or UNRANKED,
                    initial_flex_league=account.flex_league or UNRANKED,
                    initial_solo_lp=account.solo_lp or 0,
                    initial_flex_lp=account.flex_lp or 0,
                )
            )
            updated = uow.accounts.get_by_id(account.id)
    except RentalError as exc:
        return failure_result("rent", exc, account_id=account_id, user_id=caller.id)

    logger.info("account_rented", account_id=account_id, user_id=caller.id)
    return OperationResult(success=True, account=updated)


def return_account(
    caller: CallerContext,
    account_id: str,
    stats: ReturnStats,
    uow: UnitOfWork,
) -> OperationResult:
    """
    Hand a rented account back.

    Only the current renter may return an account; an admin ending someone
    else's rental uses `release_account`. The account's ranks are replaced
    by the reported values and the open assignment is closed with them.
    """

    try:
        _validate_return_stats(stats)
        with uow:
            account = _load_account(uow, account_id)

            if account.is_available:
                raise PreconditionFailed("This account is not rented.")

            if account.assigned_to != caller.id:
                raise AuthorizationError("This account is not rented by you.")

            assignment = uow.assignments.get_open(account.id, caller.id)
            if assignment is None:
                raise ConsistencyError("No open rental record found for this account.")

            if not uow.accounts.mark_returned(account.id, caller.id, stats):
                raise PreconditionFailed("This account is not rented by you.")

            if not uow.assignments.close_assignment(assignment.id, _utcnow(), stats):
                raise ConsistencyError("The rental record was closed concurrently.")
            updated = uow.accounts.get_by_id(account.id)
    except RentalError as exc:
        return failure_result("return", exc, account_id=account_id, user_id=caller.id)

    logger.info("account_returned", account_id=account_id, user_id=caller.id)
    return OperationResult(success=True, account=updated)


def release_account(account_id: str, uow: UnitOfWork) -> OperationResult:
    """
    End a rental on behalf of an admin.

    The account becomes available with its ranks untouched, and the open
    assignment is closed without return stats. Callers must check that the
    requester is an admin.
    """

    try:
        with uow:
            account = _load_account(uow, account_id)

            if account.is_available:
                raise PreconditionFailed("This account is not rented.")

            renter_id = account.assigned_to
            assignment = uow.assignments.get_open(account.id, renter_id)
            if assignment is None:
                raise ConsistencyError("No open rental record found for this account.")

            if not uow.accounts.mark_released(account.id, renter_id):
                raise PreconditionFailed("This account is not rented.")

            if not uow.assignments.close_assignment(assignment.id, _utcnow()):
                raise ConsistencyError("The rental record was closed concurrently.")
            updated = uow.accounts.get_by_id(account.id)
    except RentalError as exc:
        return failure_result("release", exc, account_id=account_id)

    logger.info("account_released", account_id=account_id, user_id=renter_id)
    return OperationResult(success=True, account=updated)


def delete_account(account_id: str, uow: UnitOfWork) -> OperationResult:
    """Delete an available account together with its rental history."""

    try:
        with uow:
            account = _load_account(uow, account_id)
            if not account.is_available:
                raise PreconditionFailed(
                    "This account is currently rented. It must be returned first."
                )

            uow.assignments.delete_for_account(account.id)
            if not uow.accounts.delete_account(account.id):
                raise PreconditionFailed(
                    "This account is currently rented. It must be returned first."
                )
    except RentalError as exc:
        return failure_result("delete_account", exc, account_id=account_id)

    logger.info("account_deleted", account_id=account_id)
    return OperationResult(success=True)
