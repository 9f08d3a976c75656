import logging
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .auth import AuthGateway
from .backends.base import RemoteFileBackend
from .backends.github import GitHubContentsBackend
from .backends.memory import InMemoryBackend
from .config import Settings
from .enrichment.service import EnrichmentService
from .errors import (
    BackendUnavailable,
    ConcurrentModificationError,
    DecodeError,
    GitHubAuthError,
    StoreError,
    Unauthenticated,
)
from .github_issues import GitHubIssuesClient
from .models import REQUIRED_FIELDS_MESSAGE, CallbackBody, Identity, IssueCreate, JobCreate
from .store import VersionedBlobStore

# --- Structured logging ---
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
logger = logging.getLogger(__name__)

STORE_ERROR_STATUS = {
    ConcurrentModificationError: (409, "Jobs were modified concurrently, please retry"),
    BackendUnavailable: (502, "GitHub request failed"),
    DecodeError: (500, "Jobs file is corrupt"),
}


def build_backend(settings: Settings) -> RemoteFileBackend:
    if settings.jobs_backend == "memory":
        return InMemoryBackend()
    if settings.jobs_backend != "github":
        raise ValueError(f"unknown JOBS_BACKEND {settings.jobs_backend!r} (expected github or memory)")
    if not settings.github_repo_configured:
        logger.warning("GITHUB_REPO_OWNER/GITHUB_REPO_NAME not set; jobs are kept in memory only")
        return InMemoryBackend()
    return GitHubContentsBackend.from_settings(settings)


def build_store(settings: Settings, backend: Optional[RemoteFileBackend] = None) -> VersionedBlobStore:
    return VersionedBlobStore(
        backend or build_backend(settings),
        path=settings.jobs_file_path,
        max_attempts=settings.jobs_max_attempts,
    )


def require_identity(request: Request) -> Identity:
    """Bearer token check: 401 when absent, 403 when it does not verify."""
    header = request.headers.get("authorization") or ""
    parts = header.split(" ")
    token = parts[1].strip() if len(parts) > 1 else ""
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")
    try:
        return request.app.state.auth.verify(token)
    except Unauthenticated as e:
        logger.info("auth rejected reason=%s", e)
        raise HTTPException(status_code=403, detail="Forbidden") from None


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[VersionedBlobStore] = None,
    auth: Optional[AuthGateway] = None,
    enricher: Optional[EnrichmentService] = None,
    issues: Optional[GitHubIssuesClient] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT, datefmt=LOG_DATEFMT)

    app = FastAPI(title="Job Board Gateway")
    app.state.settings = settings
    app.state.store = store or build_store(settings)
    app.state.auth = auth or AuthGateway(settings)
    app.state.enricher = enricher or EnrichmentService.from_settings(settings)
    if issues is None and settings.github_repo_configured:
        issues = GitHubIssuesClient.from_settings(settings)
    app.state.issues = issues

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.client_url],
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
        allow_credentials=True,
        expose_headers=["Set-Cookie"],
    )

    logger.info(
        "startup backend=%s path=%s max_attempts=%s enrichment=%s",
        type(app.state.store.backend).__name__,
        app.state.store.path,
        app.state.store.max_attempts,
        "on" if app.state.enricher.enabled else "off",
    )

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
        status, message = STORE_ERROR_STATUS.get(type(exc), (500, "Job store error"))
        logger.error("store error method=%s path=%s status=%s error=%s", request.method, request.url.path, status, exc)
        body: Dict[str, Any] = {"error": message}
        if not settings.is_production:
            body["details"] = str(exc)
        return JSONResponse(status_code=status, content=body)

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "OK"}

    # --- Auth ---

    @app.get("/auth/github")
    def github_login_url(request: Request) -> Dict[str, str]:
        return {"url": request.app.state.auth.authorize_url()}

    @app.post("/auth/github/callback")
    def github_callback(body: CallbackBody, request: Request):
        try:
            user, token = request.app.state.auth.login(body.code)
        except GitHubAuthError as e:
            logger.warning("github callback failed error=%s", e)
            return JSONResponse(status_code=500, content={"error": "Authentication failed"})
        return {"user": user, "token": token}

    @app.get("/auth/verify")
    def verify(identity: Identity = Depends(require_identity)) -> Dict[str, Any]:
        return {"user": identity.claims()}

    # --- Jobs ---

    @app.get("/api/jobs")
    def list_jobs(request: Request, userId: Optional[str] = None):
        store: VersionedBlobStore = request.app.state.store
        if userId:
            return store.jobs_for_user(userId)
        return store.list_jobs()

    @app.get("/api/public/jobs")
    def public_jobs(request: Request):
        return request.app.state.store.list_jobs()

    @app.get("/api/jobs/{job_id}")
    def get_job(job_id: str, request: Request):
        try:
            job = request.app.state.store.get_job(int(job_id))
        except ValueError:
            job = None
        if job is None:
            return JSONResponse(status_code=404, content={"error": "Job not found"})
        return job

    @app.post("/api/jobs", status_code=201)
    def create_job(
        payload: JobCreate,
        request: Request,
        identity: Identity = Depends(require_identity),
    ):
        if payload.missing_required():
            return JSONResponse(status_code=400, content={"error": REQUIRED_FIELDS_MESSAGE})

        job = request.app.state.store.append(
            payload.to_candidate(identity),
            enrich=request.app.state.enricher,
        )
        logger.info("job created id=%s by=%s spam=%s", job["id"], job["createdBy"], job["isSpam"])
        return {"message": "Job created successfully", "job": job}

    # --- Issues ---

    def issues_client(request: Request) -> GitHubIssuesClient:
        client = request.app.state.issues
        if client is None:
            raise HTTPException(status_code=503, detail="Issues repository not configured")
        return client

    @app.get("/api/issues")
    def list_issues(state: str = "open", page: int = 1, client: GitHubIssuesClient = Depends(issues_client)):
        return client.list_issues(state=state, page=page)

    @app.post("/api/issues", status_code=201)
    def create_issue(
        payload: IssueCreate,
        identity: Identity = Depends(require_identity),
        client: GitHubIssuesClient = Depends(issues_client),
    ):
        return client.create_issue(
            payload.title,
            body=payload.body,
            labels=payload.labels,
            opened_by=identity.username,
        )

    return app


app = create_app()
