"""
Streamlit glue for the signature pad.

The browser component (frontend/index.html) draws strokes locally and, at
the end of each stroke, sends every stroke drawn so far. New strokes are
replayed through the ``SignaturePad`` kept in ``st.session_state``, which
produces the stored PNG signature.
"""

from pathlib import Path

import streamlit as st
import streamlit.components.v1 as components

from card_control.signature import SignaturePad

_FRONTEND_DIR = Path(__file__).parent / "frontend"
_signature_canvas = components.declare_component("signature_pad", path=str(_FRONTEND_DIR))


def _keys(key: str):
    return f"{key}_pad", f"{key}_fed", f"{key}_revision"


def _ensure_state(key: str) -> SignaturePad:
    pad_key, fed_key, rev_key = _keys(key)
    if pad_key not in st.session_state:
        st.session_state[pad_key] = SignaturePad()
        st.session_state[fed_key] = 0
        st.session_state[rev_key] = 0
    return st.session_state[pad_key]


def reset_signature(key: str = "signature") -> None:
    """Clear the stored signature and remount a blank drawing surface."""
    pad = _ensure_state(key)
    _, fed_key, rev_key = _keys(key)
    pad.clear()
    st.session_state[fed_key] = 0
    st.session_state[rev_key] += 1


def signature_input(key: str = "signature") -> str:
    """Render the drawing surface and its clear button; returns the current signature."""
    pad = _ensure_state(key)
    _, fed_key, rev_key = _keys(key)

    value = _signature_canvas(key=f"{key}_canvas_{st.session_state[rev_key]}", default=None)
    strokes = (value or {}).get("strokes", [])
    for stroke in strokes[st.session_state[fed_key]:]:
        points = [(float(x), float(y)) for x, y in stroke.get("points", [])]
        pad.replay(points, stroke.get("ended_by", "up"))
    st.session_state[fed_key] = len(strokes)

    if st.button("Limpar", key=f"{key}_clear"):
        reset_signature(key)
        st.rerun()
    if pad.signature:
        st.caption("✅ Assinatura capturada")
    return pad.signature
