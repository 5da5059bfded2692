import copy
import uuid

from domain.models import Role
from domain.repositories import (
    AccountRepository,
    AssignmentRepository,
    IdentityRepository,
    UnitOfWork,
    UserRepository,
)


class InMemoryUserRepository(UserRepository):
    def __init__(self, state):
        self.users = state["users"]

    def get_user(self, user_id):
        return self.users.get(user_id)

    def get_by_email(self, email):
        return next((u for u in self.users.values() if u.email == email), None)

    def get_all_users(self):
        return list(self.users.values())

    def add_user(self, user):
        self.users[user.id] = user

    def update_role(self, user_id, role: Role):
        user = self.users.get(user_id)
        if user is None:
            return False
        user.role = role
        return True

    def delete_user(self, user_id):
        self.users.pop(user_id, None)


class InMemoryIdentityRepository(IdentityRepository):
    def __init__(self, state):
        self.identities = state["identities"]

    def create_identity(self, email, password):
        user_id = str(uuid.uuid4())
        self.identities[user_id] = (email, password)
        return user_id

    def delete_identity(self, user_id):
        self.identities.pop(user_id, None)


class InMemoryAccountRepository(AccountRepository):
    def __init__(self, state):
        self.accounts = state["accounts"]

    def get_by_id(self, account_id):
        account = self.accounts.get(account_id)
        return copy.copy(account) if account else None

    def list_accounts(self, available=None, assigned_to=None):
        return [
            copy.copy(a)
            for a in self.accounts.values()
            if (available is None or a.is_available == available)
            and (assigned_to is None or a.assigned_to == assigned_to)
        ]

    def create_account(self, account):
        self.accounts[account.id] = copy.copy(account)

    def mark_rented(self, account_id, user_id):
        account = self.accounts.get(account_id)
        if account is None or not account.is_available:
            return False
        account.is_available = False
        account.assigned_to = user_id
        return True

    def mark_returned(self, account_id, user_id, stats):
        account = self.accounts.get(account_id)
        if account is None or account.is_available or account.assigned_to != user_id:
            return False
        account.is_available = True
        account.assigned_to = None
        account.league = stats.league
        account.flex_league = stats.flex_league
        account.solo_lp = stats.solo_lp
        account.flex_lp = stats.flex_lp
        return True

    def mark_released(self, account_id, user_id):
        account = self.accounts.get(account_id)
        if account is None or account.is_available or account.assigned_to != user_id:
            return False
        account.is_available = True
        account.assigned_to = None
        return True

    def delete_account(self, account_id):
        account = self.accounts.get(account_id)
        if account is None or not account.is_available:
            return False
        del self.accounts[account_id]
        return True


class InMemoryAssignmentRepository(AssignmentRepository):
    def __init__(self, state):
        self.assignments = state["assignments"]

    def get_open(self, account_id, user_id):
        return next(
            (
                copy.copy(a)
                for a in self.assignments.values()
                if a.account_id == account_id and a.user_id == user_id and a.is_open
            ),
            None,
        )

    def list_for_account(self, account_id):
        rows = [copy.copy(a) for a in self.assignments.values() if a.account_id == account_id]
        return sorted(rows, key=lambda a: a.assigned_at, reverse=True)

    def list_for_user(self, user_id):
        rows = [copy.copy(a) for a in self.assignments.values() if a.user_id == user_id]
        return sorted(rows, key=lambda a: a.assigned_at, reverse=True)

    def add_assignment(self, assignment):
        if any(a.account_id == assignment.account_id and a.is_open for a in self.assignments.values()):
            raise AssertionError("second open assignment for account")
        self.assignments[assignment.id] = copy.copy(assignment)

    def close_assignment(self, assignment_id, returned_at, stats=None):
        assignment = self.assignments.get(assignment_id)
        if assignment is None or not assignment.is_open:
            return False
        assignment.returned_at = returned_at
        if stats is not None:
            assignment.league_at_return = stats.league
            assignment.flex_league_at_return = stats.flex_league
            assignment.solo_lp_at_return = stats.solo_lp
            assignment.flex_lp_at_return = stats.flex_lp
        return True

    def delete_for_account(self, account_id):
        for key in [k for k, a in self.assignments.items() if a.account_id == account_id]:
            del self.assignments[key]

    def delete_for_user(self, user_id):
        for key in [k for k, a in self.assignments.items() if a.user_id == user_id]:
            del self.assignments[key]


class InMemoryUnitOfWork(UnitOfWork):
    """
    Transactional in-memory store: the state is snapshotted on enter and
    restored if the block raises.
    """

    def __init__(self):
        self.state = {"users": {}, "identities": {}, "accounts": {}, "assignments": {}}
        self.commits = 0
        self.rollbacks = 0
        self._snapshot = None

    def _bind(self):
        self.users = InMemoryUserRepository(self.state)
        self.identities = InMemoryIdentityRepository(self.state)
        self.accounts = InMemoryAccountRepository(self.state)
        self.assignments = InMemoryAssignmentRepository(self.state)

    def __enter__(self):
        self._snapshot = copy.deepcopy(self.state)
        self._bind()
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.commits += 1
        else:
            self.state.clear()
            self.state.update(self._snapshot)
            self.rollbacks += 1
        self._snapshot = None
