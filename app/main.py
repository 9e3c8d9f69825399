"""
Streamlit Frontend for Bazar Bookkeeper

The interface small business owners use every day: sign in, record
income and expenses, watch the dashboard, export reports and ask the
assistant about their numbers.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Clear error messages in simple language
3. Visual feedback for all operations
4. Figures always come from the ledger, never from the model

The UI holds no business rules. Everything goes through the
orchestrator's SessionGuard, LedgerFlow and ChatSession.
"""

import asyncio
from datetime import date, datetime, time, timezone
from decimal import Decimal

import streamlit as st

from bookkeeper.agents import ExternalServiceError
from bookkeeper.auth import ActivityEvents, AuthStatus, InactivityWatchdog
from bookkeeper.config import get_settings, validate_all_settings
from bookkeeper.ledger import TransactionFilter
from bookkeeper.models import (
    Language,
    PaymentMethod,
    ReportPeriod,
    ReportType,
    TransactionDraft,
    TransactionType,
    localized_categories,
)
from bookkeeper.orchestrator import create_app_components
from bookkeeper.services.notify import OutboxNotifier
from bookkeeper.services.storage import NotFoundError


# Page configuration
st.set_page_config(
    page_title="Bazar Bookkeeper",
    page_icon="📒",
    layout="wide",
    initial_sidebar_state="expanded",
)

PERIOD_OPTIONS = {
    "All time": None,
    "Last 7 days": 7,
    "Last 30 days": 30,
    "Last 90 days": 90,
    "Last 365 days": 365,
}


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
    outbox = OutboxNotifier()
    guard, ledger_flow, chat_factory, _ = create_app_components(notifier=outbox)
    return guard, ledger_flow, chat_factory, outbox


def money(amount: Decimal, currency: str) -> str:
    return f"{amount:,.2f} {currency}"


def get_watchdog(guard, ledger_flow) -> InactivityWatchdog:
    """One watchdog per browser session, polled on every rerun."""
    if "watchdog" not in st.session_state:
        def on_timeout():
            guard.logout(reason="inactivity")
            ledger_flow.forget()
            st.session_state.pop("chat", None)
            for key in ("csv_export", "report_export", "editing_id"):
                st.session_state.pop(key, None)
            st.session_state.timed_out = True

        st.session_state.activity = ActivityEvents()
        st.session_state.watchdog = InactivityWatchdog(
            on_timeout,
            st.session_state.activity,
            timeout_minutes=get_settings().security.auto_logout_minutes,
        )
    return st.session_state.watchdog


def main():
    """Main application entry point."""
    guard, ledger_flow, chat_factory, outbox = get_components()
    watchdog = get_watchdog(guard, ledger_flow)

    # Every rerun is a user interaction; check the deadline before counting it
    watchdog.check()
    st.session_state.activity.emit("interaction")

    user = guard.current_user()
    if user is None:
        watchdog.stop()
        render_auth_page(guard, outbox)
        return
    watchdog.start()

    st.sidebar.title("📒 Bazar Bookkeeper")
    st.sidebar.markdown(f"**{user.business_name}**  \n{user.email}")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "🧾 Transactions", "📑 Reports", "🤖 Assistant", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    if st.sidebar.button("🚪 Sign out"):
        guard.logout()
        ledger_flow.forget(user.id)
        st.session_state.pop("chat", None)
        for key in ("csv_export", "report_export", "editing_id"):
            st.session_state.pop(key, None)
        watchdog.stop()
        st.rerun()

    if page == "📊 Dashboard":
        render_dashboard_page(ledger_flow, user)
    elif page == "🧾 Transactions":
        render_transactions_page(ledger_flow, user)
    elif page == "📑 Reports":
        render_reports_page(ledger_flow)
    elif page == "🤖 Assistant":
        render_assistant_page(ledger_flow, chat_factory, user)
    elif page == "⚙️ Settings":
        render_settings_page(guard, user)


def render_filter_controls(key: str) -> TransactionFilter:
    """Search, type and one date mode, as in the ledger's filter rules."""
    col1, col2, col3 = st.columns(3)
    with col1:
        search = st.text_input("Search", key=f"{key}_search")
    with col2:
        type_choice = st.selectbox("Type", ["All", "income", "expense"], key=f"{key}_type")
    with col3:
        use_range = st.checkbox("Custom date range", key=f"{key}_use_range")

    criteria = {"search": search}
    if type_choice != "All":
        criteria["type"] = TransactionType(type_choice)

    if use_range:
        start, end = st.columns(2)
        date_from = start.date_input("From", value=date.today().replace(day=1), key=f"{key}_from")
        date_to = end.date_input("To", value=date.today(), key=f"{key}_to")
        criteria["date_from"] = datetime.combine(date_from, time.min, tzinfo=timezone.utc)
        criteria["date_to"] = datetime.combine(date_to, time.max, tzinfo=timezone.utc)
    else:
        label = st.selectbox("Period", list(PERIOD_OPTIONS), key=f"{key}_period")
        criteria["period_days"] = PERIOD_OPTIONS[label]

    try:
        return TransactionFilter(**criteria)
    except ValueError as e:
        st.error(f"Invalid filter: {e}")
        st.stop()


def render_auth_page(guard, outbox: OutboxNotifier):
    """Sign in / register."""
    st.title("📒 Bazar Bookkeeper")

    if st.session_state.pop("timed_out", False):
        st.warning("You were signed out after a period of inactivity.")

    sign_in, register = st.tabs(["Sign in", "Create account"])

    with sign_in:
        with st.form("login"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            code = st.text_input("Verification code (if asked)")
            submitted = st.form_submit_button("Sign in", type="primary")

        if submitted:
            result = guard.login(email, password, code or None)
            if result.status == AuthStatus.AUTHENTICATED:
                st.rerun()
            elif result.status in (
                AuthStatus.SECOND_FACTOR_REQUIRED,
                AuthStatus.EMAIL_VERIFICATION_REQUIRED,
            ):
                st.info(result.message)
            else:
                st.error(result.message)

        st.caption("Demo accounts: demo@bazar.ai / Demo123! and dordoi@bazar.ai / Dordoi123!")

    with register:
        with st.form("register"):
            business_name = st.text_input("Business name")
            email = st.text_input("Email", key="register_email")
            phone = st.text_input("Phone")
            password = st.text_input("Password", type="password", key="register_password")
            language = st.selectbox("Language", [lang.value for lang in Language])
            submitted = st.form_submit_button("Create account", type="primary")

        if submitted:
            result = guard.register(business_name, email, password, phone, language)
            if result.ok:
                st.rerun()
            st.error(result.message)

    if get_settings().app.app_environment == "development" and outbox.messages:
        with st.expander("📬 Development inbox"):
            for message in reversed(outbox.messages[-5:]):
                st.markdown(
                    f"**{message.purpose.value}** to {message.recipient}: "
                    f"`{message.code}` (until {message.expires_at:%H:%M:%S} UTC)"
                )


def render_dashboard_page(ledger_flow, user):
    """Totals and monthly series for the filtered view."""
    st.title("📊 Dashboard")

    criteria = render_filter_controls("dashboard")
    metrics = ledger_flow.metrics(criteria)
    st.session_state.visible_filter = criteria

    col1, col2, col3, col4, col5 = st.columns(5)
    col1.metric("Income", money(metrics.total_income, user.currency))
    col2.metric("Expenses", money(metrics.total_expenses, user.currency))
    col3.metric("Profit", money(metrics.profit, user.currency))
    col4.metric("Estimated tax", money(ledger_flow.estimated_tax(criteria), user.currency))
    col5.metric("Transactions", metrics.transaction_count)

    st.markdown("---")
    st.subheader("Monthly breakdown")
    buckets = ledger_flow.monthly(criteria)
    if not buckets:
        st.info("No transactions in this view yet.")
        return
    st.dataframe(
        [
            {
                "Month": b.month,
                "Income": float(b.income),
                "Expenses": float(b.expenses),
                "Profit": float(b.profit),
            }
            for b in buckets
        ],
        use_container_width=True,
    )


def render_transactions_page(ledger_flow, user):
    """Add, list, edit, delete and export transactions."""
    st.title("🧾 Transactions")

    with st.expander("➕ Add transaction", expanded=False):
        transaction_type = st.radio(
            "Type", [t.value for t in TransactionType], horizontal=True
        )
        categories = localized_categories(user.language, TransactionType(transaction_type))

        with st.form("add_transaction", clear_on_submit=True):
            amount = st.number_input("Amount *", min_value=0.0, step=100.0, format="%.2f")
            category = st.selectbox("Category *", [label for _, label in categories])
            payment_method = st.selectbox("Payment method", [m.value for m in PaymentMethod])
            description = st.text_input("Description")
            when = st.date_input("Date", value=date.today())
            tax_relevant = st.checkbox("Tax relevant")
            submitted = st.form_submit_button("Save", type="primary")

        if submitted:
            try:
                ledger_flow.add(TransactionDraft(
                    amount=Decimal(str(amount)),
                    type=TransactionType(transaction_type),
                    category=category,
                    payment_method=payment_method,
                    description=description,
                    timestamp=datetime.combine(when, datetime.now(timezone.utc).time(), tzinfo=timezone.utc),
                    tax_relevant=tax_relevant,
                ))
                st.success("Transaction saved")
            except ValueError as e:
                st.error(f"Could not save: {e}")

    if "flash" in st.session_state:
        st.success(st.session_state.pop("flash"))

    if "editing_id" in st.session_state:
        render_edit_form(ledger_flow, user, st.session_state.editing_id)

    criteria = render_filter_controls("transactions")
    rows = ledger_flow.filter(criteria)
    st.session_state.visible_filter = criteria

    if st.button("Prepare CSV export"):
        st.session_state.csv_export = ledger_flow.export_csv(criteria)
    if "csv_export" in st.session_state:
        filename, csv_text = st.session_state.csv_export
        st.download_button("⬇️ Download CSV", csv_text, file_name=filename, mime="text/csv")

    if not rows:
        st.info("No transactions match these filters.")
        return

    for t in rows[:100]:
        col1, col2, col3, col4, col5 = st.columns([2, 4, 2, 1, 1])
        col1.markdown(t.timestamp.strftime("%Y-%m-%d"))
        col2.markdown(f"**{t.category}** - {t.description}")
        sign = "+" if t.type == TransactionType.INCOME else "-"
        col3.markdown(f"{sign}{money(t.amount, user.currency)}")
        if col4.button("✏️", key=f"edit_{t.id}"):
            st.session_state.editing_id = t.id
            st.rerun()
        if col5.button("🗑️", key=f"delete_{t.id}"):
            ledger_flow.delete(t.id)
            if st.session_state.get("editing_id") == t.id:
                st.session_state.pop("editing_id")
            st.rerun()


def render_edit_form(ledger_flow, user, transaction_id: str):
    """Edit one transaction in place."""
    transaction = ledger_flow.ledger().get(transaction_id)
    if transaction is None:
        st.session_state.pop("editing_id", None)
        st.error("This transaction no longer exists.")
        return

    st.subheader("✏️ Edit transaction")
    types = [t.value for t in TransactionType]
    transaction_type = st.radio(
        "Type",
        types,
        index=types.index(transaction.type.value),
        horizontal=True,
        key=f"edit_type_{transaction.id}",
    )
    labels = [label for _, label in localized_categories(user.language, TransactionType(transaction_type))]
    if transaction_type == transaction.type.value and transaction.category not in labels:
        labels.insert(0, transaction.category)
    methods = [m.value for m in PaymentMethod]

    with st.form(f"edit_transaction_{transaction.id}"):
        amount = st.number_input(
            "Amount *", min_value=0.0, step=100.0, format="%.2f", value=float(transaction.amount)
        )
        category = st.selectbox(
            "Category *",
            labels,
            index=labels.index(transaction.category) if transaction.category in labels else 0,
        )
        payment_method = st.selectbox(
            "Payment method",
            methods,
            index=methods.index(transaction.payment_method) if transaction.payment_method in methods else 0,
        )
        description = st.text_input("Description", value=transaction.description)
        when = st.date_input("Date", value=transaction.timestamp.date())
        tax_relevant = st.checkbox("Tax relevant", value=transaction.tax_relevant)
        save, cancel = st.columns(2)
        saved = save.form_submit_button("Save changes", type="primary")
        cancelled = cancel.form_submit_button("Cancel")

    if cancelled:
        st.session_state.pop("editing_id", None)
        st.rerun()
    if not saved:
        return

    try:
        ledger_flow.update(transaction.id, {
            "amount": Decimal(str(amount)),
            "type": transaction_type,
            "category": category,
            "payment_method": payment_method,
            "description": description,
            "timestamp": datetime.combine(when, transaction.timestamp.timetz()),
            "tax_relevant": tax_relevant,
        })
    except NotFoundError:
        st.session_state.pop("editing_id", None)
        st.error("This transaction no longer exists.")
        return
    except ValueError as e:
        st.error(f"Could not save: {e}")
        return

    st.session_state.pop("editing_id", None)
    st.session_state.flash = "Transaction updated"
    st.rerun()


def render_reports_page(ledger_flow):
    """Period reports and JSON export."""
    st.title("📑 Reports")

    col1, col2 = st.columns(2)
    with col1:
        period = ReportPeriod(st.selectbox("Period", [p.value for p in ReportPeriod], index=1))
    with col2:
        report_type = ReportType(st.selectbox("Report", [r.value for r in ReportType]))

    if st.button("Generate report", type="primary"):
        st.session_state.report_export = ledger_flow.export_report(period, report_type)
    if "report_export" not in st.session_state:
        return

    filename, report_json = st.session_state.report_export
    st.json(report_json)
    st.download_button("⬇️ Export JSON", report_json, file_name=filename, mime="application/json")


def render_assistant_page(ledger_flow, chat_factory, user):
    """Chat with the assistant about the current view."""
    st.title("🤖 Assistant")

    if "chat" not in st.session_state:
        try:
            st.session_state.chat = chat_factory(user.language.value)
        except ExternalServiceError as e:
            st.error(f"The assistant is not available: {e.message}")
            return
    chat = st.session_state.chat

    for message in chat.messages:
        with st.chat_message("user" if message.role.value == "user" else "assistant"):
            st.markdown(message.content)

    question = st.chat_input("Ask about your income, expenses or trends", disabled=chat.is_waiting)
    if question:
        visible = ledger_flow.filter(st.session_state.get("visible_filter"))
        with st.spinner("Analyzing your data..."):
            run_async(chat.ask(question, visible, ledger_flow.all()))
        st.rerun()


def render_settings_page(guard, user):
    """Profile, security options and connection status."""
    st.title("⚙️ Settings")

    st.markdown("### Profile")
    with st.form("profile"):
        business_name = st.text_input("Business name", value=user.business_name)
        phone = st.text_input("Phone", value=user.phone)
        languages = [lang.value for lang in Language]
        language = st.selectbox("Language", languages, index=languages.index(user.language.value))
        if st.form_submit_button("Save profile"):
            result = guard.update_user({"business_name": business_name, "phone": phone, "language": language})
            if result.ok:
                st.session_state.pop("chat", None)
                st.success("Profile updated")
            else:
                st.error(result.message)

    st.markdown("### Security")
    flags = guard.security_flags() or {}
    two_factor = st.toggle("Two-factor authentication", value=flags.get("two_factor_enabled", False))
    if two_factor != flags.get("two_factor_enabled", False):
        if two_factor:
            guard.enable_two_factor(user.phone)
        else:
            guard.disable_two_factor()
        st.rerun()

    email_confirm = st.toggle(
        "Require email verification after repeated failed sign-ins",
        value=flags.get("email_confirm_enabled", False),
    )
    if email_confirm != flags.get("email_confirm_enabled", False):
        guard.set_email_confirmation(email_confirm)
        st.rerun()

    st.markdown("### Recent activity")
    events = guard.recent_activity(limit=20)
    if events:
        st.dataframe(
            [
                {
                    "When (UTC)": event.timestamp.strftime("%Y-%m-%d %H:%M"),
                    "Event": event.description,
                    "Severity": event.severity.value,
                }
                for event in events
            ],
            use_container_width=True,
        )
    else:
        st.info("No recorded activity yet.")

    st.markdown("---")
    st.markdown("### Connection Status")
    status = validate_all_settings()
    services = [
        ("Gemini (Assistant)", "gemini"),
        ("Security", "security"),
        ("Storage", "storage"),
        ("Application", "app"),
    ]
    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")


if __name__ == "__main__":
    main()
