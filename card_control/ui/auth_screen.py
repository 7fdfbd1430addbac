"""Login / sign-up screen shown while nobody is signed in."""

import streamlit as st

from card_control.errors import BackendError
from card_control.services import AuthService

MIN_PASSWORD_LENGTH = 6


def _sign_in_tab(auth: AuthService) -> None:
    with st.form("signin_form"):
        email = st.text_input("Email", placeholder="seu@email.com", key="signin_email")
        password = st.text_input("Senha", type="password", placeholder="Sua senha", key="signin_password")
        remember = st.checkbox(
            "Lembrar de mim (criptografado)",
            value=auth.store.enabled,
            disabled=not auth.store.enabled,
            key="signin_remember",
        )
        submitted = st.form_submit_button("Entrar", type="primary")

    if not submitted:
        return
    if not email or not password:
        st.error("Informe email e senha.")
        return
    try:
        with st.spinner("Entrando..."):
            auth.sign_in(email, password, remember=remember)
    except BackendError as e:
        st.error(f"Erro ao fazer login: {e}")
    else:
        st.rerun()


def _sign_up_tab(auth: AuthService) -> None:
    with st.form("signup_form"):
        email = st.text_input("Email", placeholder="seu@email.com", key="signup_email")
        password = st.text_input(
            "Senha", type="password", placeholder="Mínimo 6 caracteres", key="signup_password"
        )
        submitted = st.form_submit_button("Criar Conta")

    if not submitted:
        return
    if not email or len(password) < MIN_PASSWORD_LENGTH:
        st.error(f"Informe um email e uma senha com pelo menos {MIN_PASSWORD_LENGTH} caracteres.")
        return
    try:
        with st.spinner("Criando..."):
            auth.sign_up(email, password)
    except BackendError as e:
        st.error(f"Erro ao criar conta: {e}")
    else:
        st.success("Conta criada com sucesso! Verifique seu email para confirmar.")


def render_auth_screen(auth: AuthService) -> None:
    st.caption("Sistema de controle para empréstimos de emergência")
    st.header("Acesso ao Sistema")

    tab_login, tab_signup = st.tabs(["Entrar", "Criar Conta"])
    with tab_login:
        _sign_in_tab(auth)
    with tab_signup:
        _sign_up_tab(auth)

    st.markdown("---")
    st.caption("Para demonstração, você pode usar:")
    st.code("Email: demo@exemplo.com\nSenha: 123456", language=None)
