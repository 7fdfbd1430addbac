"""Remember Me cookie plumbing between the browser and ``AuthService``."""

import json
from typing import Optional

import streamlit as st
import streamlit.components.v1 as components

from card_control.services import AuthService

_SET_COOKIE = """
<script>
const doc = window.parent.document;
const secure = window.parent.location.protocol === "https:" ? "; Secure" : "";
doc.cookie = {name} + "=" + {value} + "; Max-Age={max_age}; Path=/; SameSite=Strict" + secure;
</script>
"""


def read_session_cookie(auth: AuthService) -> Optional[str]:
    """The sealed session this browser sent with the page request, if any."""
    return st.context.cookies.get(auth.store.cookie_name)


def sync_session_cookie(auth: AuthService) -> None:
    """Write (or delete) the cookie when sign-in or sign-out changed it."""
    value = auth.take_cookie()
    if value is None:
        return
    max_age = auth.store.max_age if value else 0
    components.html(
        _SET_COOKIE.format(
            name=json.dumps(auth.store.cookie_name),
            value=json.dumps(value),
            max_age=max_age,
        ),
        height=0,
    )
