"""
Streamlit Frontend for Finchat

A thin chat page on top of the orchestrator:
1. Summary cards (income, expenses, balance)
2. Chat with the assistant
3. Recent transactions

The user id field stands in for an external login; the core never
looks up a session on its own.
"""

import asyncio

import streamlit as st

from finchat.audit import create_correlation_id
from finchat.config import get_settings
from finchat.models.transaction import TransactionType
from finchat.orchestrator import create_app_components


st.set_page_config(
    page_title="Finchat",
    page_icon="💰",
    layout="wide",
)

EXAMPLES = [
    "Gastei 50 no almoço",
    "Recebi 2000 do salário",
    "Paguei 30 no Uber",
]


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    return create_app_components(use_storage=True)


def render_summary(ledger_view, user_id: str):
    summary = run_async(ledger_view.summary_for(user_id))

    col1, col2, col3 = st.columns(3)
    col1.metric("Income", f"{summary.total_income:,.2f}")
    col2.metric("Expenses", f"{summary.total_expense:,.2f}")
    col3.metric("Balance", f"{summary.balance:,.2f}")


def render_chat(orchestrator, user_id: str):
    st.subheader("💬 Chat")

    if "messages" not in st.session_state:
        st.session_state.messages = []

    if not st.session_state.messages:
        st.info(
            "👋 Hi! Tell me about your spending and income in plain language, "
            "for example:\n\n" + "\n".join(f"- \"{e}\"" for e in EXAMPLES)
        )

    for message in st.session_state.messages:
        with st.chat_message(message["role"]):
            st.markdown(message["text"])

    prompt = st.chat_input("Describe a transaction or ask a question...")
    if not prompt:
        return

    st.session_state.messages.append({"role": "user", "text": prompt})

    with st.spinner("Thinking..."):
        reply = run_async(
            orchestrator.handle_message(
                user_id,
                prompt,
                correlation_id=create_correlation_id(),
            )
        )

    text = reply.text
    if reply.is_transaction:
        text = f"✅ {text}"
    elif not reply.ok:
        text = f"⚠️ {text}"
    st.session_state.messages.append({"role": "assistant", "text": text})

    # A saved transaction invalidated the summary; rerun re-reads it
    st.rerun()


def render_transactions(ledger_view, user_id: str, limit: int):
    st.subheader("📊 Recent Transactions")

    transactions = run_async(ledger_view.recent_transactions(user_id, limit=limit))
    if not transactions:
        st.markdown("No transactions recorded yet. Start chatting!")
        return

    for transaction in transactions:
        sign = "+" if transaction.type == TransactionType.INCOME else "-"
        icon = "📈" if transaction.type == TransactionType.INCOME else "📉"
        st.markdown(
            f"{icon} **{transaction.description or transaction.category}**  \n"
            f"`{transaction.category}` · {transaction.created_at.strftime('%d %b')} · "
            f"**{sign}{transaction.amount:,.2f}**"
        )


def main():
    """Main application entry point."""
    orchestrator, ledger_view, _ = get_components()
    limit = get_settings().app.recent_transactions_limit

    st.sidebar.title("💰 Finchat")
    user_id = st.sidebar.text_input("User ID", value=st.session_state.get("user_id", ""))
    st.session_state.user_id = user_id

    if not user_id:
        st.warning("Enter your user ID in the sidebar to start.")
        return

    render_summary(ledger_view, user_id)

    col1, col2 = st.columns(2)
    with col1:
        render_chat(orchestrator, user_id)
    with col2:
        render_transactions(ledger_view, user_id, limit)


if __name__ == "__main__":
    main()
