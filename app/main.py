"""
Streamlit Frontend for the Building Ledger

The budgeting screen of the building-operations console.

DESIGN PRINCIPLES:
1. Nothing year-scoped loads until the user picks a year
2. Saved items are shown locked; only drafts can be changed
3. Every remote failure and every save is reported as a toast
4. No ledger logic here - the page only calls FinancialsSession
"""

import asyncio
import logging
from decimal import Decimal

import streamlit as st

from budget_ledger.config import get_settings, validate_all_settings
from budget_ledger.ledger import LedgerError
from budget_ledger.models.ledger import MONTH_NAMES, SaveStatus
from budget_ledger.models.notification import Notification, NotificationSeverity
from budget_ledger.notifications import NotificationSink
from budget_ledger.orchestrator import FinancialsSession, create_app_components
from budget_ledger.validation import LineItemValidator


# Page configuration
st.set_page_config(
    page_title="Building Ledger",
    page_icon="🏢",
    layout="wide",
    initial_sidebar_state="expanded",
)


TOAST_ICONS = {
    NotificationSeverity.INFO: "ℹ️",
    NotificationSeverity.SUCCESS: "✅",
    NotificationSeverity.WARNING: "⚠️",
    NotificationSeverity.ERROR: "❌",
}


class StreamlitToastSink(NotificationSink):
    """Shows notifications as Streamlit toasts."""

    def notify(self, notification: Notification) -> None:
        st.toast(notification.message, icon=TOAST_ICONS[notification.severity])


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_session() -> FinancialsSession:
    """Get or create the budgeting session (cached)."""
    logging.basicConfig(level=get_settings().app.log_level)
    return create_app_components(sink=StreamlitToastSink())


def main():
    """Main application entry point."""
    session = get_session()

    st.sidebar.title("🏢 Building Ledger")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📒 Budget", "⚙️ Settings"],
        index=0,
    )

    if page == "📒 Budget":
        render_budget_page(session)
    else:
        render_settings_page()


def render_year_picker(session: FinancialsSession):
    """Year list plus an explicit 'add year' action."""
    if "years" not in st.session_state:
        st.session_state.years = run_async(session.list_years())

    years = st.session_state.years
    col1, col2 = st.sidebar.columns([2, 1])

    with col1:
        choice = st.selectbox(
            "Financial year",
            options=years,
            index=None,
            placeholder="Select a year",
        )
    if choice is not None and choice != session.selected_year:
        try:
            run_async(session.select_year(choice))
        except LedgerError as e:
            st.sidebar.error(str(e))

    with col2:
        new_year = st.number_input("Add year", step=1, value=None, format="%d")
    if st.sidebar.button("➕ Add year") and new_year is not None:
        try:
            if run_async(session.add_year(int(new_year))) is not None:
                st.session_state.years = sorted(set(years) | {int(new_year)})
                st.rerun()
        except LedgerError as e:
            st.sidebar.error(str(e))


def render_budget_page(session: FinancialsSession):
    """Render the budget page for the selected year."""
    render_year_picker(session)

    if session.selected_year is None:
        st.info("Select a financial year to see its budget.")
        return

    year = session.selected_year
    symbol = get_settings().ledger.currency_symbol
    st.title(f"📒 Budget {year}")

    aggregate = session.aggregate()
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total budget", f"{symbol}{aggregate.total_budget:,.2f}")
    col2.metric("Total spent", f"{symbol}{aggregate.total_spent:,.2f}")
    col3.metric("Remaining", f"{symbol}{aggregate.remaining_budget:,.2f}")
    col4.metric("Used", f"{aggregate.percentage_spent}%")
    st.caption(
        f"Monthly average: {symbol}{session.calculator.monthly_average(year):,.2f} "
        f"({aggregate.source.value} figures)"
    )

    with st.expander("Update budget"):
        budget = session.budget()
        amount = st.number_input(
            "Annual budget",
            min_value=0.0,
            value=float(budget.total_budget) if budget else 0.0,
            step=1000.0,
        )
        if st.button("Update budget"):
            run_async(session.update_budget(Decimal(str(amount))))
            st.rerun()

    month = st.selectbox(
        "Month",
        options=list(range(12)),
        format_func=lambda m: MONTH_NAMES[m],
    )
    render_month(session, month)


def render_month(session: FinancialsSession, month: int):
    """Items of one month, with drafting and saving."""
    symbol = get_settings().ledger.currency_symbol
    record = session.month(month)

    st.subheader(f"{record.month_name} ({record.status.value})")

    for item in record.line_items:
        cols = st.columns([3, 4, 2, 2, 1])
        if item.is_draft:
            name = cols[0].text_input("Name", item.item_name, key=f"name-{item.id}")
            description = cols[1].text_input("Description", item.description, key=f"desc-{item.id}")
            amount = cols[2].number_input(
                "Amount", value=float(item.amount), min_value=0.0, key=f"amount-{item.id}"
            )
            category = cols[3].text_input("Category", item.category, key=f"cat-{item.id}")
            changed = (
                name != item.item_name
                or description != item.description
                or Decimal(str(amount)).quantize(Decimal("0.01")) != item.amount
                or category != item.category
            )
            if changed:
                session.edit_item(
                    month,
                    item.id,
                    item_name=name,
                    description=description,
                    amount=Decimal(str(amount)),
                    category=category,
                )
            if cols[4].button("🗑️", key=f"remove-{item.id}"):
                session.remove_item(month, item.id)
                st.rerun()
        else:
            cols[0].markdown(f"🔒 **{item.display_name}**")
            cols[1].markdown(item.description)
            cols[2].markdown(f"{symbol}{item.amount:,.2f}")
            cols[3].markdown(item.category)

    st.markdown(f"**Month total:** {symbol}{record.total:,.2f}")

    col1, col2 = st.columns(2)
    with col1:
        if st.button("➕ Add item"):
            session.add_item(month)
            st.rerun()
    with col2:
        if st.button("💾 Save month", type="primary"):
            try:
                result = run_async(session.save_month(month))
            except LedgerError as e:
                st.error(str(e))
                return
            if result.status == SaveStatus.INVALID:
                st.warning(LineItemValidator().get_user_friendly_summary(result.validation))
            else:
                st.rerun()


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Configuration Status")

    status = validate_all_settings()

    groups = [
        ("Finance service", "finance_service"),
        ("Ledger", "ledger"),
        ("Application", "app"),
    ]

    for name, key in groups:
        if status.get(key, False):
            st.success(f"✅ {name}")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown(
        "Configuration is read from environment variables or a `.env` file "
        "(`FINANCE_API_BASE_URL`, `FINANCE_API_AUTH_TOKEN`, `LEDGER_MIN_YEAR`, ...)."
    )


if __name__ == "__main__":
    main()
