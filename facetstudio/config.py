# facetstudio/config.py
# Settings from .env / environment / Streamlit secrets, logging setup, startup checks.

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

import requests
from dotenv import load_dotenv

from facetstudio.errors import EnvironmentConfigError

log = logging.getLogger(__name__)

DEFAULT_PB_URL = "https://api.di3s.cloud"
LOG_FORMAT = "%(asctime)s [%(name)s][%(levelname)s] %(message)s"


def _get_secret(name: str) -> str:
    # Works locally (os.getenv) + Streamlit Cloud (st.secrets)
    value = os.getenv(name)
    if value:
        return value
    try:
        import streamlit as st
        return str(st.secrets.get(name, "") or "")
    except Exception:
        # no secrets.toml, or no Streamlit runtime
        return ""


def _first_secret(*names: str) -> str:
    for name in names:
        value = _get_secret(name)
        if value:
            return value.strip()
    return ""


@dataclass
class Settings:
    gemini_api_keys: List[str] = field(default_factory=list)
    pb_url: str = DEFAULT_PB_URL
    text_model: str = "gemini-2.5-flash"
    text_model_fallback: str = "gemini-2.5-flash-lite"
    image_model: str = "gemini-2.5-flash-image"
    request_timeout: float = 10.0
    log_level: str = "INFO"

    @property
    def has_gemini(self) -> bool:
        return bool(self.gemini_api_keys)


def load_settings(env_file: Optional[str] = None) -> Settings:
    load_dotenv(env_file)  # local only (.env)

    keys_env = _get_secret("GEMINI_API_KEYS")
    if keys_env:
        keys = [k.strip() for k in keys_env.split(",") if k.strip()]
    else:
        single = _first_secret("GEMINI_API_KEY", "GOOGLE_API_KEY", "API_KEY")
        keys = [single] if single else []

    try:
        timeout = float(_get_secret("PB_TIMEOUT") or 10)
    except ValueError:
        timeout = 10.0

    return Settings(
        gemini_api_keys=keys,
        pb_url=_first_secret("PB_URL", "VITE_PB_URL") or DEFAULT_PB_URL,
        text_model=_get_secret("GEMINI_TEXT_MODEL") or "gemini-2.5-flash",
        text_model_fallback=_get_secret("GEMINI_TEXT_MODEL_FALLBACK") or "gemini-2.5-flash-lite",
        image_model=_get_secret("GEMINI_IMAGE_MODEL") or "gemini-2.5-flash-image",
        request_timeout=timeout,
        log_level=(_get_secret("FACETSTUDIO_LOG_LEVEL") or "INFO").upper(),
    )


def setup_logging(level: str = "INFO"):
    root = logging.getLogger()
    # Streamlit re-runs the script; only attach the handler once
    if not any(getattr(h, "_facetstudio", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._facetstudio = True
        root.addHandler(handler)
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))


def validate_environment(settings: Settings) -> Settings:
    errors = []
    if not settings.gemini_api_keys:
        errors.append("GEMINI_API_KEY is not set")
    if not settings.pb_url:
        errors.append("PB_URL is not set")

    if errors:
        raise EnvironmentConfigError(
            "Environment configuration errors:\n"
            + "\n".join(f"  - {e}" for e in errors)
            + "\n\nPlease create a .env file based on .env.example and add the required values."
        )
    return settings


def check_pocketbase_health(pb_url: str, timeout: float = 5.0) -> bool:
    if not pb_url:
        return False
    try:
        resp = requests.get(f"{pb_url.rstrip('/')}/api/health", timeout=timeout)
        return resp.ok
    except requests.RequestException as e:
        log.error("PocketBase health check failed: %s", e)
        return False


def run_startup_checks(settings: Settings) -> bool:
    log.info("Running startup checks...")
    try:
        validate_environment(settings)
    except EnvironmentConfigError as e:
        log.error("Environment validation failed:\n%s", e)
        return False

    log.info("Environment variables validated")
    log.info("  - PocketBase URL: %s", settings.pb_url)
    log.info("  - Gemini API keys: %d", len(settings.gemini_api_keys))

    if not check_pocketbase_health(settings.pb_url):
        log.warning("PocketBase backend health check failed - app may not function correctly")
        return False

    log.info("All startup checks passed")
    return True
