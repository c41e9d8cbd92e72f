import os
import logging

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# --- API keys ---
OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
GITHUB_TOKEN: str = os.getenv("GITHUB_TOKEN", "")
RESEND_API_KEY: str = os.getenv("RESEND_API_KEY", "")

# --- Models ---
ANALYSIS_MODEL: str = os.getenv("ANALYSIS_MODEL", "gpt-4o-mini")

# --- Server ---
PORT: int = int(os.getenv("PORT", "8000"))
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "info").upper()

# --- LLM parameters ---
LLM_TEMPERATURE: float = float(os.getenv("LLM_TEMPERATURE", "0.7"))

# --- Profile selection ---
MAX_REPOSITORIES: int = int(os.getenv("MAX_REPOSITORIES", "15"))
INCLUDE_FORKS: bool = _env_bool("INCLUDE_FORKS", True)
FORK_COMMIT_LIMIT: int = 100       # commits inspected per fork origin
REPO_LISTING_PAGE_SIZE: int = 100
MAX_REPO_PAGES: int = 10          # listing pages followed per user

# --- Timeouts ---
REQUEST_TIMEOUT: float = 30.0    # per HTTP request (seconds)
ENDPOINT_TIMEOUT: float = float(os.getenv("ENDPOINT_TIMEOUT", "60"))  # total endpoint timeout (seconds)

# --- External APIs ---
GITHUB_API_BASE: str = "https://api.github.com"
OPENAI_BASE_URL: str | None = os.getenv("OPENAI_BASE_URL") or None
RESEND_API_BASE: str = "https://api.resend.com"
EMAIL_FROM: str = os.getenv("EMAIL_FROM", "GitMentor <analysis@gitmentor.dev>")


def configure_logging() -> None:
    level = getattr(logging, LOG_LEVEL, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
