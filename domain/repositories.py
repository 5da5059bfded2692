from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Protocol

from .models import Account, Assignment, ReturnStats, Role, User


class UserRepository(Protocol):
    """
    Abstraction over user persistence.

    Implementations are responsible for:
    - Mapping between database rows and the `User` domain model.
    - Hiding any SQL / driver details from the application layer.
    """

    def get_user(self, user_id: str) -> Optional[User]:
        """Return the user with the given internal ID, or None if not found."""

        ...

    def get_by_email(self, email: str) -> Optional[User]:
        ...

    def get_all_users(self) -> List[User]:
        """Return all users, newest first."""

        ...

    def add_user(self, user: User) -> None:
        """Persist a new user."""

        ...

    def update_role(self, user_id: str, role: Role) -> bool:
        """Change a user's role. Returns False if no such user exists."""

        ...

    def delete_user(self, user_id: str) -> None:
        ...


class IdentityRepository(Protocol):
    """
    Auth identities (email + password hash) backing each `User`.

    Session handling lives outside this service; the application layer only
    creates identities for new users and removes them when a user is deleted.
    """

    def create_identity(self, email: str, password: str) -> str:
        """Store a new identity and return its ID, which the `User` reuses."""

        ...

    def delete_identity(self, user_id: str) -> None:
        ...


class AccountRepository(Protocol):
    """
    Persistence abstraction for rentable game accounts.

    The `mark_*` methods are conditional writes: they only touch the row when
    it is still in the expected state and report whether they did, so two
    racing requests cannot both win the same transition.
    """

    def get_by_id(self, account_id: str) -> Optional[Account]:
        ...

    def list_accounts(
        self,
        available: Optional[bool] = None,
        assigned_to: Optional[str] = None,
    ) -> List[Account]:
        """Return accounts newest first, optionally filtered."""

        ...

    def create_account(self, account: Account) -> None:
        ...

    def mark_rented(self, account_id: str, user_id: str) -> bool:
        """Flip an available account to rented by `user_id`."""

        ...

    def mark_returned(self, account_id: str, user_id: str, stats: ReturnStats) -> bool:
        """
        Make an account rented by `user_id` available again and overwrite its
        ranks with the values the renter reported.
        """

        ...

    def mark_released(self, account_id: str, user_id: str) -> bool:
        """Make an account rented by `user_id` available, ranks untouched."""

        ...

    def delete_account(self, account_id: str) -> bool:
        """Delete an account only if it is available."""

        ...


class AssignmentRepository(Protocol):
    """
    Rental history. At most one assignment per account may be open
    (`returned_at` is NULL) at any time.
    """

    def get_open(self, account_id: str, user_id: str) -> Optional[Assignment]:
        ...

    def list_for_account(self, account_id: str) -> List[Assignment]:
        """Return the account's history, most recent rental first."""

        ...

    def list_for_user(self, user_id: str) -> List[Assignment]:
        """Return every rental the user has made, most recent first."""

        ...

    def add_assignment(self, assignment: Assignment) -> None:
        ...

    def close_assignment(
        self,
        assignment_id: str,
        returned_at: datetime,
        stats: Optional[ReturnStats] = None,
    ) -> bool:
        """
        Set `returned_at` on an open assignment. `stats` fills the
        `*_at_return` columns; None leaves them NULL (admin release).
        """

        ...

    def delete_for_account(self, account_id: str) -> None:
        ...

    def delete_for_user(self, user_id: str) -> None:
        ...


class UnitOfWork(Protocol):
    """
    Groups the repositories behind one datastore transaction.

    Leaving the `with` block normally commits; leaving it with an exception
    rolls back every write made inside it. Driver failures are re-raised as
    `DatastoreError`.
    """

    users: UserRepository
    identities: IdentityRepository
    accounts: AccountRepository
    assignments: AssignmentRepository

    def __enter__(self) -> "UnitOfWork":
        ...

    def __exit__(self, exc_type, exc, tb) -> None:
        ...
