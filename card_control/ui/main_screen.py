"""Main screen: transaction form with signature, and the recent transactions list."""

import streamlit as st

from card_control.controller import AppController
from card_control.errors import ValidationError
from card_control.formatting import format_currency, format_date, transactions_csv
from card_control.models import FormDraft, SyncState, Transaction
from card_control.signature import decode_data_uri
from card_control.ui.signature_widget import reset_signature, signature_input


FORM_KEYS = ("form_name", "form_date", "form_amount", "form_notes")
FLASH_KEY = "flash"
PENDING_DELETE_KEY = "pending_delete"


# -------------------- Notices --------------------
def _flash(kind: str, message: str) -> None:
    """Queue a notice for the next rerun."""
    st.session_state[FLASH_KEY] = (kind, message)


def _show_flash() -> None:
    notice = st.session_state.pop(FLASH_KEY, None)
    if notice is None:
        return
    kind, message = notice
    getattr(st, kind)(message)


def _reset_form() -> None:
    for k in FORM_KEYS:
        st.session_state.pop(k, None)
    reset_signature()


# -------------------- Sidebar --------------------
def _sidebar(controller: AppController) -> None:
    with st.sidebar:
        st.markdown("### Conta")
        st.caption(f"Conectado como {controller.session.email}")
        if st.button("Sair"):
            controller.sign_out()
            st.rerun()
        pending = controller.unsynced_count
        if pending:
            st.markdown("---")
            st.warning(
                f"{pending} transação(ões) salva(s) apenas nesta sessão. "
                "Elas serão perdidas ao recarregar a página."
            )


# -------------------- Form --------------------
def _transaction_form(controller: AppController) -> None:
    st.subheader("📝 Registrar Nova Transação")
    c1, c2 = st.columns(2)
    with c1:
        name = st.text_input("👤 Nome da Pessoa *", placeholder="Digite o nome completo", key="form_name")
    with c2:
        tx_date = st.date_input("📅 Data *", value=None, format="DD/MM/YYYY", key="form_date")
    amount = st.text_input("Valor (R$) *", placeholder="0,00", key="form_amount")

    st.markdown("**Assinatura Digital \\***")
    signature = signature_input()

    notes = st.text_area("Anotações", placeholder="Observações sobre a transação...", key="form_notes")

    if not st.button("Registrar Transação", type="primary"):
        return
    draft = FormDraft(person_name=name, transaction_date=tx_date, amount=amount, notes=notes)
    try:
        with st.spinner("Registrando..."):
            outcome = controller.submit(draft, signature)
    except ValidationError as e:
        st.error(str(e))
        return

    if outcome.persisted_remotely:
        _flash("success", "Transação registrada com sucesso!")
    else:
        _flash(
            "warning",
            "Não foi possível salvar no servidor. A transação foi registrada apenas nesta sessão.",
        )
    _reset_form()
    st.rerun()


# -------------------- List --------------------
def _sync_badge(transaction: Transaction) -> str:
    if transaction.sync_state is SyncState.LOCAL_ONLY:
        return "⚠️ não sincronizada"
    if transaction.sync_state is SyncState.SAMPLE:
        return "ℹ️ exemplo"
    return ""


def _delete(controller: AppController, transaction_id: str) -> None:
    outcome = controller.delete(transaction_id)
    if outcome.deleted_remotely:
        _flash("success", "Transação excluída.")
    elif outcome.error:
        _flash("warning", "Não foi possível excluir no servidor; a transação foi removida apenas desta lista.")
    else:
        _flash("info", "Transação removida desta lista.")


def _transaction_card(controller: AppController, t: Transaction) -> None:
    with st.container(border=True):
        left, right, action = st.columns([3, 2, 1])
        with left:
            st.markdown(f"**{t.person_name}**")
            st.caption(format_date(t.transaction_date))
        with right:
            st.markdown(f"**{format_currency(t.amount)}**")
            badge = _sync_badge(t)
            if badge:
                st.caption(badge)
        with action:
            if st.button("🗑️", key=f"del_{t.id}", help="Excluir"):
                st.session_state[PENDING_DELETE_KEY] = t.id
                st.rerun()
        if t.notes:
            st.caption(t.notes)
        with st.expander("Assinatura"):
            try:
                st.image(decode_data_uri(t.signature), width=200)
            except ValueError:
                st.caption("Assinatura indisponível.")

        if st.session_state.get(PENDING_DELETE_KEY) == t.id:
            st.warning("Tem certeza que deseja excluir esta transação?")
            yes, no = st.columns(2)
            if yes.button("Excluir", key=f"confirm_del_{t.id}", type="primary"):
                st.session_state.pop(PENDING_DELETE_KEY, None)
                _delete(controller, t.id)
                st.rerun()
            if no.button("Cancelar", key=f"cancel_del_{t.id}"):
                st.session_state.pop(PENDING_DELETE_KEY, None)
                st.rerun()


def _transaction_list(controller: AppController) -> None:
    st.subheader("Transações Recentes")
    transactions = controller.transactions
    if not transactions:
        st.info("💳 Nenhuma transação registrada ainda.")
        return
    for t in transactions:
        _transaction_card(controller, t)
    st.download_button(
        "Baixar CSV",
        transactions_csv(transactions),
        file_name="transacoes.csv",
        mime="text/csv",
    )


def render_main_screen(controller: AppController) -> None:
    _sidebar(controller)
    _show_flash()
    col_form, col_list = st.columns([2, 1])
    with col_form:
        _transaction_form(controller)
    with col_list:
        _transaction_list(controller)
