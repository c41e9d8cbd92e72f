import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Awaitable, TypeVar

import httpx
import openai
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from gitmentor.config import configure_logging, ENDPOINT_TIMEOUT, RESEND_API_KEY
from gitmentor.schemas import (
    AnalysisResponse,
    AnalyzeRequest,
    SendAnalysisRequest,
    UsernameRequest,
)
from gitmentor.github_client import (
    parse_username,
    get_user,
    create_client,
    UserNotFoundError,
    RateLimitError,
    GitHubError,
)
from gitmentor.profile_aggregator import build_profile, fetch_ranked_repositories
from gitmentor.llm_client import create_openai_client
from gitmentor.orchestrator import run_analysis
from gitmentor.streaming import STREAM_HEADERS, TIMEOUT_MESSAGE, stream_analysis
from gitmentor.email_report import (
    EMAIL_SUBJECT,
    EmailDeliveryError,
    create_email_client,
    render_report_html,
    send_report_email,
)

configure_logging()
logger = logging.getLogger(__name__)

T = TypeVar("T")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("GitMentor starting up")
    async with create_client() as github_client, create_email_client() as email_client:
        app.state.github_client = github_client
        app.state.email_client = email_client
        app.state.openai_client = create_openai_client()
        yield
        await app.state.openai_client.close()
    logger.info("GitMentor shutting down")


app = FastAPI(
    title="GitMentor",
    description="AI-generated developer growth reports from public GitHub profiles",
    version="1.0.0",
    lifespan=lifespan,
)


# --- Shared clients ---


def get_github_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.github_client


def get_openai_client(request: Request) -> openai.AsyncOpenAI:
    return request.app.state.openai_client


def get_email_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.email_client


# --- Error handling ---


def _error(status_code: int, message: str, title: str = "Error", details: Any = None) -> HTTPException:
    detail = {"status": "error", "title": title, "message": message}
    if details is not None:
        detail["details"] = details
    return HTTPException(status_code=status_code, detail=detail)


def _github_error(exc: GitHubError) -> HTTPException:
    if isinstance(exc, UserNotFoundError):
        return _error(404, str(exc))
    if isinstance(exc, RateLimitError):
        return _error(
            429, str(exc), title="Rate Limit Exceeded",
            details={"retryAfterMinutes": exc.retry_after_minutes},
        )
    return _error(502, f"GitHub API error: {exc}")


def _username(value: str) -> str:
    if not value or not value.strip():
        raise _error(400, "GitHub username is required")
    try:
        return parse_username(value)
    except ValueError as exc:
        raise _error(400, str(exc))


async def _with_timeout(work: Awaitable[T], label: str) -> T:
    """Bound a whole request by ENDPOINT_TIMEOUT and map upstream failures."""
    try:
        return await asyncio.wait_for(work, timeout=ENDPOINT_TIMEOUT)
    except asyncio.TimeoutError:
        logger.warning(f"Request timed out after {ENDPOINT_TIMEOUT}s: {label}")
        raise _error(504, TIMEOUT_MESSAGE, title="Request Timeout")
    except GitHubError as exc:
        logger.warning(f"GitHub failure for {label}: {exc}")
        raise _github_error(exc)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, dict) and "status" in detail and "message" in detail:
        content = detail
    else:
        content = {"status": "error", "title": "Error", "message": str(detail)}
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    msg = "; ".join(f"{'.'.join(str(l) for l in e['loc'])}: {e['msg']}" for e in errors)
    return JSONResponse(
        status_code=422,
        content={"status": "error", "title": "Error", "message": msg},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"status": "error", "title": "Error", "message": "Internal server error"},
    )


# --- Endpoints ---


@app.get("/health")
async def health_check() -> dict:
    return {"status": "ok"}


@app.post("/api/github/user")
async def github_user(
    body: UsernameRequest,
    github_client: httpx.AsyncClient = Depends(get_github_client),
) -> dict:
    username = _username(body.username)
    user = await _with_timeout(get_user(username, github_client), username)
    logger.info(
        f"GitHub user {user.username}: repos={user.public_repo_count}, "
        f"followers={user.follower_count}"
    )
    return {"user": user.model_dump(mode="json", by_alias=True)}


@app.post("/api/github/repos")
async def github_repos(
    body: UsernameRequest,
    github_client: httpx.AsyncClient = Depends(get_github_client),
) -> dict:
    username = _username(body.username)
    repositories = await _with_timeout(fetch_ranked_repositories(username, github_client), username)
    return {"repositories": [repo.model_dump(mode="json", by_alias=True) for repo in repositories]}


@app.post("/api/github")
async def github_profile(
    body: UsernameRequest,
    github_client: httpx.AsyncClient = Depends(get_github_client),
) -> dict:
    username = _username(body.username)
    profile = await _with_timeout(build_profile(username, github_client), username)
    return {"profile": profile.model_dump(mode="json", by_alias=True)}


@app.post("/api/analysis")
async def analysis(
    body: UsernameRequest,
    github_client: httpx.AsyncClient = Depends(get_github_client),
    openai_client: openai.AsyncOpenAI = Depends(get_openai_client),
) -> JSONResponse:
    username = _username(body.username)
    logger.info(f"Analysis request: {username}")

    async def _run() -> AnalysisResponse:
        start_time = time.monotonic()
        profile = await build_profile(username, github_client)
        report = await run_analysis(profile, openai_client)
        logger.info(f"Report for {username} ready in {time.monotonic() - start_time:.1f}s")
        return AnalysisResponse(profile=profile, analysis=report)

    result = await _with_timeout(_run(), username)
    return JSONResponse(content=result.model_dump(mode="json", by_alias=True))


@app.post("/api/analysis/analyze")
async def analyze_stream(
    body: AnalyzeRequest,
    openai_client: openai.AsyncOpenAI = Depends(get_openai_client),
) -> StreamingResponse:
    profile = body.profile
    logger.info(
        f"Analysis stream started: {profile.user.username}, "
        f"{len(profile.repositories)} repositories, languages={list(profile.language_stats)}"
    )
    return StreamingResponse(
        stream_analysis(profile, openai_client),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )


@app.post("/api/send-analysis")
async def send_analysis(
    body: SendAnalysisRequest,
    email_client: httpx.AsyncClient = Depends(get_email_client),
) -> dict:
    missing = [name for name in ("email", "analysis", "profile") if not getattr(body, name)]
    if missing:
        raise _error(400, f"Missing required fields: {', '.join(missing)}")
    if "@" not in body.email:
        raise _error(400, f"Invalid email address: {body.email!r}")
    if not RESEND_API_KEY:
        raise _error(503, "Email delivery is not configured")

    try:
        html_body = render_report_html(body.analysis, body.profile)
    except ValueError as exc:
        raise _error(400, str(exc))

    try:
        await send_report_email(body.email, html_body, EMAIL_SUBJECT, email_client)
    except EmailDeliveryError as exc:
        logger.error(f"Failed to send analysis to {body.email}: {exc}")
        raise _error(502, "Failed to send analysis email", details=str(exc))

    return {"message": "Analysis sent successfully"}
