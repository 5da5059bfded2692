from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from domain.errors import NotFoundError
from domain.models import Account, Assignment, User
from domain.repositories import UnitOfWork

from application.services import CallerContext


@dataclass
class AssignmentView:
    """An assignment joined with the renter's email for history listings."""

    assignment: Assignment
    user_email: Optional[str] = None


@dataclass
class RentalHistoryEntry:
    """One of the caller's rentals with the account it was for."""

    assignment: Assignment
    account: Optional[Account] = None


@dataclass
class DashboardStats:
    total_accounts: int
    available_accounts: int
    my_accounts: int


def list_visible_accounts(caller: CallerContext, uow: UnitOfWork) -> List[Account]:
    """Admins see every account; everybody else only sees available ones."""

    with uow:
        if caller.is_admin:
            return uow.accounts.list_accounts()
        return uow.accounts.list_accounts(available=True)


def list_my_accounts(caller: CallerContext, uow: UnitOfWork) -> List[Account]:
    with uow:
        return uow.accounts.list_accounts(assigned_to=caller.id)


def get_account(account_id: str, uow: UnitOfWork) -> Account:
    with uow:
        account = uow.accounts.get_by_id(account_id)
    if account is None:
        # Reads answer a bad id as a client error; transitions treat it as a server error.
        raise NotFoundError("Account not found.", status_code=400)
    return account


def get_account_history(account_id: str, uow: UnitOfWork) -> List[AssignmentView]:
    with uow:
        assignments = uow.assignments.list_for_account(account_id)
        emails = {}
        for assignment in assignments:
            if assignment.user_id not in emails:
                user = uow.users.get_user(assignment.user_id)
                emails[assignment.user_id] = user.email if user else None
    return [AssignmentView(a, emails[a.user_id]) for a in assignments]


def list_my_history(caller: CallerContext, uow: UnitOfWork) -> List[RentalHistoryEntry]:
    """Every rental the caller has made, newest first, with the account attached."""

    with uow:
        assignments = uow.assignments.list_for_user(caller.id)
        accounts = {}
        for assignment in assignments:
            if assignment.account_id not in accounts:
                accounts[assignment.account_id] = uow.accounts.get_by_id(assignment.account_id)
    return [RentalHistoryEntry(a, accounts[a.account_id]) for a in assignments]


def dashboard_stats(caller: CallerContext, uow: UnitOfWork) -> DashboardStats:
    with uow:
        total = len(uow.accounts.list_accounts())
        available = len(uow.accounts.list_accounts(available=True))
        mine = len(uow.accounts.list_accounts(assigned_to=caller.id))
    return DashboardStats(total_accounts=total, available_accounts=available, my_accounts=mine)


def list_users(uow: UnitOfWork) -> List[User]:
    with uow:
        return uow.users.get_all_users()


def resolve_caller(user_id: Optional[str], uow: UnitOfWork) -> Optional[CallerContext]:
    """Turn the user id supplied by the auth gateway into a caller context."""

    if not user_id:
        return None
    with uow:
        user = uow.users.get_user(user_id)
    if user is None:
        return None
    return CallerContext(id=user.id, role=user.role)
