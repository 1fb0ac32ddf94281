# services/config.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


def _get(key: str, default: str = "") -> str:
    """
    Prefer environment variables; fall back to Streamlit secrets (if available).
    Returns default if not found.
    """
    val = os.getenv(key)
    if val:
        return val
    try:
        import streamlit as st
        v = st.secrets.get(key, default)
        return v if isinstance(v, str) else str(v)
    except Exception:
        # no secrets.toml, or not running under streamlit
        return default


def _to_float(value: str, default: Optional[float]) -> Optional[float]:
    if value is None or str(value).strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    api_base_url: str
    timeout: Optional[float]
    data_dir: Path
    token_dir: Path
    log_level: str


def load_settings() -> Settings:
    data_dir = Path(_get("DATA_DIR", "data"))
    return Settings(
        api_base_url=_get("ISSUE_TRACKER_API_URL", "http://localhost:5000").rstrip("/"),
        timeout=_to_float(_get("ISSUE_TRACKER_TIMEOUT_SECONDS", "30"), 30.0),
        data_dir=data_dir,
        token_dir=data_dir / _get("ISSUE_TRACKER_TOKEN_DIR", "sessions"),
        log_level=_get("LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
