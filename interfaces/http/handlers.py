from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Callable, List, Optional
from urllib.parse import unquote

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from application import management, queries
from application.enrichment import EnrichedAccount, enrich_account, enrich_accounts
from application.services import (
    CallerContext,
    OperationResult,
    delete_account,
    release_account,
    rent_account,
    return_account,
)
from domain.errors import RentalError
from domain.models import Account, Assignment, ReturnStats, User
from domain.repositories import UnitOfWork
from infrastructure.riot.client import RiotClient
from infrastructure.riot.proxy import RiotProxy
from interfaces.http.schemas import (
    AccountCreate,
    ReleaseRequest,
    RentRequest,
    ReturnRequest,
    RoleUpdate,
    UserCreate,
)

DEFAULT_PLATFORM = "euw1"
PROXY_PREFIX = "/api/riot-proxy/"


def _raw_segments(request: Request, prefix: str) -> List[str]:
    """
    Path segments after `prefix`, each decoded on its own.

    The routed `path` parameter is already percent-decoded, so an encoded
    "/" inside a name would split it in two; the raw path keeps it intact.
    """

    raw = request.scope.get("raw_path") or request.url.path.encode()
    raw_path = raw.decode("utf-8", "replace").split("?", 1)[0]
    _, _, rest = raw_path.partition(prefix)
    return [unquote(s) for s in rest.split("/") if s]


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def _account_json(account: Account, reveal: bool) -> dict:
    data = {
        "id": account.id,
        "username": account.username,
        "server": account.server,
        "nickname": account.nickname,
        "league": account.league,
        "flex_league": account.flex_league,
        "solo_lp": account.solo_lp,
        "flex_lp": account.flex_lp,
        "is_available": account.is_available,
        "assigned_to": account.assigned_to,
        "notes": account.notes,
        "is_vip_only": account.is_vip_only,
        "created_at": _iso(account.created_at),
    }
    # Only admins and the current renter get to see the login secret.
    if reveal:
        data["password"] = account.password
    return data


def _enriched_json(view: EnrichedAccount, reveal: bool) -> dict:
    data = _account_json(view.account, reveal)
    data["summoner"] = (
        {
            "id": view.summoner_id,
            "profileIconId": view.profile_icon_id,
            "summonerLevel": view.summoner_level,
        }
        if view.enriched
        else None
    )
    if view.matches:
        data["matches"] = view.matches
    return data


def _user_json(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "role": user.role.value,
        "created_at": _iso(user.created_at),
    }


def _assignment_json(assignment: Assignment, user_email: Optional[str]) -> dict:
    return {
        "id": assignment.id,
        "user_id": assignment.user_id,
        "user_email": user_email,
        "account_id": assignment.account_id,
        "assigned_at": _iso(assignment.assigned_at),
        "returned_at": _iso(assignment.returned_at),
        "initial_league": assignment.initial_league,
        "initial_flex_league": assignment.initial_flex_league,
        "initial_solo_lp": assignment.initial_solo_lp,
        "initial_flex_lp": assignment.initial_flex_lp,
        "league_at_return": assignment.league_at_return,
        "flex_league_at_return": assignment.flex_league_at_return,
        "solo_lp_at_return": assignment.solo_lp_at_return,
        "flex_lp_at_return": assignment.flex_lp_at_return,
    }


def _result_response(result: OperationResult):
    if not result.success:
        return JSONResponse({"error": result.error_message}, status_code=result.status_code)
    body = {"success": True}
    if result.account is not None:
        body["account"] = _account_json(result.account, reveal=True)
    if result.user is not None:
        body["user"] = _user_json(result.user)
    return body


def create_http_app(
    uow_factory: Callable[[], UnitOfWork],
    proxy: RiotProxy,
    enrichment_concurrency: int = 4,
    match_history_count: int = 5,
) -> FastAPI:
    """
    Configure and return the FastAPI application wired to the application
    layer.

    `uow_factory` must return a fresh unit of work per call; request
    handlers run on worker threads and never share one.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await proxy.aclose()

    app = FastAPI(title="Account Rental API", lifespan=lifespan)
    riot = RiotClient(proxy)

    @app.exception_handler(RentalError)
    async def rental_error_handler(request: Request, exc: RentalError):
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(p) for p in first.get("loc", ())[1:])
        message = f"{field}: {first.get('msg', 'invalid value')}" if field else "Invalid request."
        return JSONResponse({"error": message}, status_code=400)

    # -----------------
    # Caller resolution
    # -----------------
    def current_caller(x_user_id: Optional[str] = Header(None)) -> CallerContext:
        if not x_user_id:
            raise HTTPException(status_code=401, detail="Missing X-User-Id header")
        caller = queries.resolve_caller(x_user_id, uow_factory())
        if caller is None:
            raise HTTPException(status_code=401, detail="Unknown user")
        return caller

    def require_admin(caller: CallerContext = Depends(current_caller)) -> CallerContext:
        if not caller.is_admin:
            raise HTTPException(status_code=403, detail="Admin access required")
        return caller

    # -----------------
    # Riot proxy
    # -----------------
    @app.get(PROXY_PREFIX + "{path:path}")
    async def riot_proxy(path: str, request: Request):
        seg = _raw_segments(request, PROXY_PREFIX)
        kind = seg[0] if seg else ""
        platform = (seg[1] if len(seg) > 1 else DEFAULT_PLATFORM).lower()
        upstream = await proxy.forward(kind, platform, seg[2:], request.url.query)
        return Response(
            content=upstream.body,
            status_code=upstream.status,
            media_type=upstream.content_type,
        )

    # -----------------
    # Accounts
    # -----------------
    @app.get("/api/accounts")
    async def list_accounts(caller: CallerContext = Depends(current_caller)):
        accounts = await run_in_threadpool(queries.list_visible_accounts, caller, uow_factory())
        views = await enrich_accounts(accounts, riot, concurrency=enrichment_concurrency)
        return {"accounts": [_enriched_json(v, reveal=caller.is_admin) for v in views]}

    @app.get("/api/accounts/mine")
    async def list_my_accounts(caller: CallerContext = Depends(current_caller)):
        accounts = await run_in_threadpool(queries.list_my_accounts, caller, uow_factory())
        views = await enrich_accounts(accounts, riot, concurrency=enrichment_concurrency)
        return {"accounts": [_enriched_json(v, reveal=True) for v in views]}

    @app.get("/api/accounts/mine/history")
    def my_history(caller: CallerContext = Depends(current_caller)):
        entries = queries.list_my_history(caller, uow_factory())
        history = []
        for entry in entries:
            data = _assignment_json(entry.assignment, None)
            data.pop("user_email")
            data["account"] = (
                _account_json(entry.account, reveal=entry.account.assigned_to == caller.id)
                if entry.account
                else None
            )
            history.append(data)
        return {"history": history}

    @app.get("/api/dashboard")
    def dashboard(caller: CallerContext = Depends(current_caller)):
        stats = queries.dashboard_stats(caller, uow_factory())
        return {
            "totalAccounts": stats.total_accounts,
            "availableAccounts": stats.available_accounts,
            "myAccounts": stats.my_accounts,
        }

    @app.get("/api/accounts/{account_id}")
    async def account_detail(account_id: str, caller: CallerContext = Depends(current_caller)):
        account = await run_in_threadpool(queries.get_account, account_id, uow_factory())
        is_renter = account.assigned_to == caller.id
        if not (caller.is_admin or account.is_available or is_renter):
            raise HTTPException(status_code=403, detail="This account is rented by someone else")

        view = await enrich_account(account, riot, match_count=match_history_count)
        body = {"account": _enriched_json(view, reveal=caller.is_admin or is_renter)}
        if caller.is_admin:
            history = await run_in_threadpool(queries.get_account_history, account_id, uow_factory())
            body["assignments"] = [_assignment_json(h.assignment, h.user_email) for h in history]
        return body

    @app.post("/api/accounts/rent")
    def rent(payload: RentRequest, caller: CallerContext = Depends(current_caller)):
        return _result_response(rent_account(caller, payload.accountId, uow_factory()))

    @app.post("/api/accounts/return")
    def return_(payload: ReturnRequest, caller: CallerContext = Depends(current_caller)):
        stats = ReturnStats(
            league=payload.returnLeague,
            flex_league=payload.returnFlexLeague,
            solo_lp=payload.returnSoloLp,
            flex_lp=payload.returnFlexLp,
        )
        return _result_response(return_account(caller, payload.accountId, stats, uow_factory()))

    # -----------------
    # Admin: accounts
    # -----------------
    @app.post("/api/admin/accounts")
    def create_account(payload: AccountCreate, caller: CallerContext = Depends(require_admin)):
        result = management.create_account(
            uow_factory(),
            username=payload.username,
            password=payload.password,
            server=payload.server,
            nickname=payload.nickname,
            league=payload.league,
            flex_league=payload.flex_league,
            solo_lp=payload.solo_lp,
            flex_lp=payload.flex_lp,
            notes=payload.notes,
            is_vip_only=payload.is_vip_only,
        )
        return _result_response(result)

    @app.post("/api/admin/accounts/release")
    def release(payload: ReleaseRequest, caller: CallerContext = Depends(require_admin)):
        return _result_response(release_account(payload.accountId, uow_factory()))

    @app.delete("/api/admin/accounts/{account_id}")
    def remove_account(account_id: str, caller: CallerContext = Depends(require_admin)):
        return _result_response(delete_account(account_id, uow_factory()))

    # -----------------
    # Admin: users
    # -----------------
    @app.get("/api/admin/users")
    def list_users(caller: CallerContext = Depends(require_admin)):
        return {"users": [_user_json(u) for u in queries.list_users(uow_factory())]}

    @app.post("/api/admin/users")
    def create_user(payload: UserCreate, caller: CallerContext = Depends(require_admin)):
        result = management.create_user(
            uow_factory(), str(payload.email), payload.password, payload.role
        )
        return _result_response(result)

    @app.patch("/api/admin/users/{user_id}/role")
    def set_role(user_id: str, payload: RoleUpdate, caller: CallerContext = Depends(require_admin)):
        return _result_response(management.change_role(uow_factory(), user_id, payload.role))

    @app.delete("/api/admin/users/{user_id}")
    def remove_user(user_id: str, caller: CallerContext = Depends(require_admin)):
        return _result_response(management.delete_user(uow_factory(), user_id))

    return app
