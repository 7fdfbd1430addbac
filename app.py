#!/usr/bin/env python3
"""
Card Control: signed cash advances with Firebase Auth + Realtime Database
==========================================================================

Features
--------
• Login & Sign Up with Firebase Email/Password Authentication
• "Remember Me": an encrypted cookie in the visitor's own browser
• Register a cash advance: person, date, amount, notes and a drawn signature
• Recent transactions list, with delete and CSV download
• Keeps working when Firebase is unreachable: records are kept in the
  session and clearly marked as not synced

Setup
-----
1) Firebase Console:
   - Enable Authentication → Sign-in method → Email/Password
   - Enable Realtime Database, with rules restricting /users/$uid to auth.uid
   - Project Settings → General → copy Web API Key

2) Environment variables, a .env file, or Streamlit secrets:
   FIREBASE_WEB_API_KEY="your_web_api_key"
   FIREBASE_DATABASE_URL="https://<your-db>.firebasedatabase.app/"
   SESSION_SECRET="a-long-random-passphrase"  # enables Remember Me cookies

Install
-------
pip install -e .

Run
---
streamlit run app.py
"""

import streamlit as st

from card_control.config import APP_TITLE
from card_control.controller import AppController
from card_control.logger import get_logger
from card_control.services import AuthService, TransactionService
from card_control.ui import render_auth_screen, render_main_screen
from card_control.ui.cookies import read_session_cookie, sync_session_cookie

logger = get_logger("card_control.app")

CONTROLLER_KEY = "controller"


def get_controller() -> AppController:
    """One controller per browser session, started on first use."""
    if CONTROLLER_KEY not in st.session_state:
        controller = AppController(AuthService(), TransactionService())
        with st.spinner("Carregando..."):
            controller.start(read_session_cookie(controller.auth))
        st.session_state[CONTROLLER_KEY] = controller
        logger.info("Started a new browser session")
    return st.session_state[CONTROLLER_KEY]


def main():
    st.set_page_config(page_title=APP_TITLE, page_icon="💳", layout="wide")
    st.title(f"💳 {APP_TITLE}")

    controller = get_controller()
    sync_session_cookie(controller.auth)
    if controller.session is None:
        render_auth_screen(controller.auth)
        st.stop()

    render_main_screen(controller)


if __name__ == "__main__":
    main()
