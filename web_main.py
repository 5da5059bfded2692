import uvicorn

from infrastructure.config import load_settings
from infrastructure.db.unit_of_work_postgres import PostgresUnitOfWork
from infrastructure.db.unit_of_work_sqlite import SqliteUnitOfWork
from infrastructure.log import configure_logging
from infrastructure.riot.proxy import AiohttpTransport, RiotProxy
from interfaces.http.handlers import create_http_app


def build_app():
    settings = load_settings()
    configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)

    if settings.DB_BACKEND == "postgres":
        def uow_factory():
            return PostgresUnitOfWork(settings.DB_PARAMS)
    else:
        def uow_factory():
            return SqliteUnitOfWork(settings.DB_PATH)

    uow_factory().ensure_schema()

    proxy = RiotProxy(settings.RIOT_API_KEY, AiohttpTransport(timeout=settings.UPSTREAM_TIMEOUT))
    app = create_http_app(
        uow_factory,
        proxy,
        enrichment_concurrency=settings.ENRICHMENT_CONCURRENCY,
        match_history_count=settings.MATCH_HISTORY_COUNT,
    )
    return app, settings


def main() -> None:
    app, settings = build_app()
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    main()
