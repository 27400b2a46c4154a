import logging
import secrets
import time
from typing import Optional

from fastapi import FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import Settings, load_organizations
from .logging_setup import LOGGER_NAME
from .refresh import RefreshOrchestrator
from .reporting import export_csv, summarize
from .scraper_observability import utc_now_iso
from .scrapers.fetcher import Fetcher
from .store import OrganizationNotFound, OrganizationStore, is_valid_org_url

logger = logging.getLogger(LOGGER_NAME)

NOT_FOUND = {"error": "Organization not found"}
INVALID_URL = {"error": "Invalid URL. Must be a North Texas Giving Day organization URL."}


class NewOrganization(BaseModel):
    url: Optional[str] = None
    name: Optional[str] = None


def build_orchestrator(settings: Settings, store: OrganizationStore) -> RefreshOrchestrator:
    fetcher = None
    if settings.scraper_enabled:
        fetcher = Fetcher(
            timeout_s=settings.request_timeout_s,
            max_attempts=settings.max_retries,
            user_agent=settings.user_agent,
        )
    return RefreshOrchestrator(store, fetcher, delay_s=settings.batch_delay_s)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[OrganizationStore] = None,
    orchestrator: Optional[RefreshOrchestrator] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    if store is None:
        store = OrganizationStore(load_organizations(settings.organizations_file))
    if orchestrator is None:
        orchestrator = build_orchestrator(settings, store)

    app = FastAPI(title="NTGD Monitor API", version=__version__)
    app.state.settings = settings
    app.state.store = store
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins or ["*"],
        allow_methods=["GET", "PUT", "POST", "DELETE"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "%s %s - %s (%dms)",
            request.method,
            request.url.path,
            response.status_code,
            int((time.perf_counter() - started) * 1000),
        )
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def bad_request(request: Request, exc: RequestValidationError):
        return JSONResponse({"error": "Invalid request body"}, status_code=400)

    @app.get("/api/health")
    def health():
        return {
            "status": "ok",
            "version": __version__,
            "timestamp": utc_now_iso(),
            "organizations": len(store),
            "dependencies": {"scraper": orchestrator.scraper_available},
        }

    @app.get("/api/ping")
    def ping():
        return {"ok": True, "ts": int(time.time() * 1000)}

    @app.get("/api/organizations")
    def list_organizations():
        return store.snapshot()

    @app.put("/api/organizations/refresh")
    def refresh_all():
        return orchestrator.refresh_all().to_dict()

    @app.put("/api/organizations/{org_id}/refresh")
    def refresh_one(org_id: str):
        try:
            outcome = orchestrator.refresh_one(org_id.lower())
        except OrganizationNotFound:
            return JSONResponse(NOT_FOUND, status_code=404)
        return JSONResponse(outcome.record.to_dict(), status_code=outcome.status_code)

    @app.get("/api/summary")
    def summary():
        return summarize(store.all())

    @app.get("/api/export.csv")
    def export():
        return Response(
            content=export_csv(store.all()),
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": 'attachment; filename="ntgd-organizations.csv"'},
        )

    if settings.allow_org_mutation:

        @app.post("/api/organizations")
        def create_organization(body: NewOrganization):
            if not body.url or not is_valid_org_url(body.url, settings.org_host):
                return JSONResponse(INVALID_URL, status_code=400)
            existing_ids = set(store.ids())
            record = store.add(body.name, body.url)
            if record.id in existing_ids:
                return JSONResponse(record.to_dict(), status_code=200)
            outcome = orchestrator.refresh_one(record.id)
            return JSONResponse(outcome.record.to_dict(), status_code=201)

        @app.delete("/api/organizations/{org_id}")
        def delete_organization(org_id: str):
            try:
                store.remove(org_id.lower())
            except OrganizationNotFound:
                return JSONResponse(NOT_FOUND, status_code=404)
            return {"message": f"Deleted organization {org_id.lower()}"}

        @app.post("/api/reseed")
        def reseed(
            token: Optional[str] = None,
            replace: str = "",
            x_reseed_token: Optional[str] = Header(None),
        ):
            if not settings.reseed_token:
                return JSONResponse(
                    {"error": "RESEED_TOKEN not configured on server"}, status_code=501
                )
            supplied = token or x_reseed_token or ""
            if not secrets.compare_digest(supplied.encode(), settings.reseed_token.encode()):
                return JSONResponse({"error": "Unauthorized"}, status_code=401)

            replaced = replace.strip().lower() == "true"
            try:
                seeds = load_organizations(settings.organizations_file)
            except (OSError, ValueError) as exc:
                logger.error("Reseed failed: %s", exc)
                return JSONResponse({"error": str(exc)}, status_code=500)
            loaded = store.reseed(seeds, replace=replaced)
            return {
                "replaced": replaced,
                "loaded": loaded,
                "total": len(store),
                "message": "Seeds loaded",
                "data": store.snapshot(),
            }

    return app
