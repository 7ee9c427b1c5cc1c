from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.trustedhost import TrustedHostMiddleware

from issueboard.config import Settings, settings
from issueboard.db import build_engine, build_sessionmaker
from issueboard.errors import DomainError, InternalError
from issueboard.routers.addresses import router as addresses_router
from issueboard.routers.auth import router as auth_router
from issueboard.routers.boards import router as boards_router
from issueboard.routers.column_items import router as column_items_router
from issueboard.routers.columns import router as columns_router
from issueboard.routers.comments import router as comments_router
from issueboard.routers.files import router as files_router
from issueboard.routers.history import router as history_router
from issueboard.routers.issue_status import router as issue_status_router
from issueboard.routers.issues import router as issues_router
from issueboard.routers.labels import router as labels_router
from issueboard.routers.projects import router as projects_router
from issueboard.routers.teams import router as teams_router
from issueboard.routers.users import router as users_router
from issueboard.storage import ObjectStorage

logger = logging.getLogger(__name__)

_PLACEHOLDER_SECRETS = {"dev-secret-change-me", "replace_with_strong_random_secret"}


def _is_test_db(cfg: Settings) -> bool:
  if cfg.database_url.startswith("sqlite"):
    return True
  db_name = cfg.database_url.rsplit("/", 1)[-1]
  return "test" in db_name


def create_app(cfg: Settings | None = None) -> FastAPI:
  cfg = cfg or settings
  logging.basicConfig(
    level=getattr(logging, cfg.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
  )

  app = FastAPI(
    title="Issue Board API",
    version="0.1.0",
    docs_url="/docs" if cfg.api_docs_enabled else None,
    redoc_url="/redoc" if cfg.api_docs_enabled else None,
    openapi_url="/openapi.json" if cfg.api_docs_enabled else None,
  )
  engine = build_engine(cfg)
  app.state.settings = cfg
  app.state.engine = engine
  app.state.sessionmaker = build_sessionmaker(engine)
  app.state.storage = ObjectStorage.from_settings(cfg)

  @app.exception_handler(DomainError)
  async def _domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    if isinstance(exc, InternalError):
      logger.error("internal error on %s %s", request.method, request.url.path, exc_info=exc)
      return JSONResponse(status_code=exc.status_code, content={"detail": "Internal server error"})
    logger.debug("%s on %s %s: %s", exc.kind, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

  @app.exception_handler(Exception)
  async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})

  app.add_middleware(
    CORSMiddleware,
    allow_origins=cfg.cors_origin_list(),
    allow_origin_regex=cfg.cors_origin_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
  )
  app.add_middleware(TrustedHostMiddleware, allowed_hosts=cfg.trusted_host_list())

  app.include_router(auth_router)
  app.include_router(users_router)
  app.include_router(teams_router)
  app.include_router(addresses_router)
  app.include_router(files_router)
  app.include_router(projects_router)
  app.include_router(boards_router)
  app.include_router(columns_router)
  app.include_router(column_items_router)
  app.include_router(issue_status_router)
  app.include_router(issues_router)
  app.include_router(comments_router)
  app.include_router(labels_router)
  app.include_router(history_router)

  @app.middleware("http")
  async def _security_headers_middleware(request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
    return response

  @app.get("/health")
  async def health() -> dict:
    return {"ok": True}

  @app.get("/version")
  async def version() -> dict:
    return {"version": cfg.app_version, "buildSha": cfg.build_sha}

  @app.on_event("startup")
  async def _startup() -> None:
    if _is_test_db(cfg):
      return
    if not cfg.app_secret or cfg.app_secret.strip().lower() in _PLACEHOLDER_SECRETS:
      raise RuntimeError("APP_SECRET is required and must not be a placeholder")

  @app.on_event("shutdown")
  async def _shutdown() -> None:
    await engine.dispose()

  return app


app = create_app()
