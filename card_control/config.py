"""
card_control/config.py
----------------------
Central configuration module. Values come from the environment (a local
.env file is loaded first) and then from Streamlit secrets.

Without a real endpoint and API key the placeholders below are used; every
backend call then fails and the app works on its local fallbacks.
"""

import os
from typing import Optional

import streamlit as st
from dotenv import load_dotenv
from streamlit import runtime

load_dotenv()

PLACEHOLDER_DATABASE_URL = "https://your-project-default-rtdb.firebaseio.com"
PLACEHOLDER_API_KEY = "your-web-api-key"


def get_setting(name: str, default: Optional[str] = None) -> Optional[str]:
    """Environment first, then st.secrets, then ``default``."""
    value = os.environ.get(name)
    if value:
        return value
    if not runtime.exists():
        # plain `python` or pytest: no secrets to read
        return default
    try:
        value = st.secrets.get(name)
    except FileNotFoundError:
        # no secrets.toml
        value = None
    return str(value) if value else default


# ── Firebase ──────────────────────────────────────────────
FIREBASE_DATABASE_URL: str = get_setting("FIREBASE_DATABASE_URL", PLACEHOLDER_DATABASE_URL)
FIREBASE_WEB_API_KEY: str = get_setting("FIREBASE_WEB_API_KEY", PLACEHOLDER_API_KEY)
REQUEST_TIMEOUT: float = float(get_setting("REQUEST_TIMEOUT", "20"))

# ── Remember Me ───────────────────────────────────────────
SESSION_SECRET: Optional[str] = get_setting("SESSION_SECRET")
SESSION_COOKIE: str = get_setting("SESSION_COOKIE", "card_control_session")
SESSION_COOKIE_DAYS: int = int(get_setting("SESSION_COOKIE_DAYS", "30"))

# ── Logging ───────────────────────────────────────────────
LOG_LEVEL: str = get_setting("LOG_LEVEL", "INFO")

# ── Display ───────────────────────────────────────────────
APP_TITLE = "Controle de Cartão - Emergências"
CURRENCY = "R$"
