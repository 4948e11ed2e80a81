"""
Streamlit Frontend for the Expense Tracker

This is the screen people use every day to record what they spent and
see where the money went.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Clear error messages right next to the form
3. Visual feedback for all operations
4. Every number on screen is derived from the stored expenses

Run with: streamlit run app/main.py
"""

from datetime import date

import streamlit as st

from expense_tracker.config import get_settings, validate_all_settings
from expense_tracker.export import expenses_to_csv, export_filename
from expense_tracker.formatting import format_currency, format_date
from expense_tracker.models import (
    ALL_CATEGORIES,
    CATEGORY_ORDER,
    Expense,
    ExpenseFilters,
    ExpenseFormData,
)
from expense_tracker.queries import (
    category_breakdown,
    category_distribution,
    describe_filters,
    recent_expenses,
    top_categories,
)
from expense_tracker.service import (
    ExpenseService,
    ExpenseValidationError,
    create_expense_service,
)
from expense_tracker.services.storage import StorageError


# Page configuration
st.set_page_config(
    page_title="Expense Tracker",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .success-box {
        padding: 20px;
        background-color: #d4edda;
        border-radius: 10px;
        border-left: 5px solid #28a745;
        margin: 10px 0;
    }
    .info-box {
        padding: 20px;
        background-color: #cce5ff;
        border-radius: 10px;
        border-left: 5px solid #004085;
        margin: 10px 0;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)


CATEGORY_ICONS = {
    "Food": "🍔",
    "Transportation": "🚗",
    "Entertainment": "🎬",
    "Shopping": "🛍️",
    "Bills": "🧾",
    "Other": "📦",
}


@st.cache_resource
def get_service() -> ExpenseService:
    """Get or create the expense service (cached)."""
    return create_expense_service()


def main():
    """Main application entry point."""
    service = get_service()

    # Sidebar navigation
    st.sidebar.title("💰 Expense Tracker")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "🧾 Expenses", "📈 Monthly Insights", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        """
        **How to use:**
        1. Add an expense on the Expenses page
        2. Filter and export what you need
        3. Check the dashboard for totals
        """
    )

    # Route to appropriate page
    if page == "📊 Dashboard":
        render_dashboard_page(service)
    elif page == "🧾 Expenses":
        render_expenses_page(service)
    elif page == "📈 Monthly Insights":
        render_insights_page(service)
    elif page == "⚙️ Settings":
        render_settings_page()


def render_expense_line(expense: Expense):
    """One expense as a single row of text."""
    icon = CATEGORY_ICONS.get(expense.category.value, "")
    st.markdown(
        f"{icon} **{expense.description}** · {expense.category.value} · "
        f"{format_date(expense.date)} · **{format_currency(expense.amount)}**"
    )


def render_dashboard_page(service: ExpenseService):
    """Render the dashboard: totals, per-category bars and recent activity."""
    st.title("📊 Dashboard")

    expenses = service.list_expenses()
    summary = service.summary()
    app_settings = get_settings().app

    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Total Spent", format_currency(summary.total_expenses))
    with col2:
        st.metric("This Month", format_currency(summary.monthly_total))
    with col3:
        top = summary.top_category
        st.metric(
            "Top Category",
            top.category.value,
            format_currency(top.amount),
            delta_color="off",
        )

    st.markdown("---")
    st.subheader("Spending by Category")

    for share in category_breakdown(summary):
        label_col, bar_col = st.columns([1, 3])
        with label_col:
            st.markdown(
                f"{CATEGORY_ICONS[share.category.value]} {share.category.value}: "
                f"**{format_currency(share.amount)}**"
            )
        with bar_col:
            st.progress(min(share.percentage / 100, 1.0))

    st.markdown("---")
    st.subheader("Recent Expenses")

    recent = recent_expenses(expenses, limit=app_settings.recent_expenses_limit)
    if not recent:
        st.markdown("""
        <div class="info-box">
            <p>No expenses yet. Add your first one on the Expenses page.</p>
        </div>
        """, unsafe_allow_html=True)
    for expense in recent:
        render_expense_line(expense)


def render_expense_form(service: ExpenseService):
    """Add a new expense, or edit the one selected in the list."""
    editing_id = st.session_state.get("editing_id")
    editing = service.get_expense(editing_id) if editing_id else None
    form_data = ExpenseFormData.from_expense(editing) if editing else ExpenseFormData()

    st.subheader("✏️ Edit Expense" if editing else "➕ Add Expense")

    categories = [category.value for category in CATEGORY_ORDER]

    with st.form("expense_form", clear_on_submit=not editing):
        col1, col2 = st.columns(2)
        with col1:
            amount = st.text_input("Amount ($) *", value=form_data.amount, placeholder="0.00")
            description = st.text_input(
                "Description *",
                value=form_data.description,
                placeholder="What did you spend on?",
            )
        with col2:
            category = st.selectbox(
                "Category *",
                options=categories,
                index=categories.index(form_data.category),
            )
            expense_date = st.date_input(
                "Date *",
                value=editing.date if editing else date.today(),
            )

        submitted = st.form_submit_button(
            "💾 Save Changes" if editing else "➕ Add Expense",
            type="primary",
        )

    if editing and st.button("Cancel Edit"):
        st.session_state.editing_id = None
        st.rerun()

    if not submitted:
        return

    form = ExpenseFormData(
        amount=amount,
        description=description,
        category=category,
        date=expense_date.isoformat() if expense_date else "",
    )

    validation = service.validator.validate(form)

    try:
        if editing:
            saved = service.edit_expense(editing.id, form, validation=validation)
            st.session_state.editing_id = None
            if saved is None:
                st.warning("That expense no longer exists.")
            else:
                st.success(f"Updated {saved.description}")
        else:
            saved = service.create_expense(form, validation=validation)
            st.success(f"Added {saved.description} ({format_currency(saved.amount)})")

        for warning in validation.warnings:
            st.warning(warning)
    except ExpenseValidationError as e:
        st.error(service.validator.get_user_friendly_summary(e.result))
    except StorageError as e:
        # Already audited by the service
        st.error(f"Failed to save: {str(e)}")
    except Exception as e:
        service.record_error(e, action="edit_expense" if editing else "create_expense")
        st.error(f"Failed to save: {str(e)}")


def render_expenses_page(service: ExpenseService):
    """Render the expense list with the add/edit form, filters and export."""
    st.title("🧾 Expenses")

    if "editing_id" not in st.session_state:
        st.session_state.editing_id = None

    render_expense_form(service)

    st.markdown("---")
    st.subheader("🔍 Filters")

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        category_filter = st.selectbox(
            "Category",
            options=[ALL_CATEGORIES] + [category.value for category in CATEGORY_ORDER],
        )
    with col2:
        date_from = st.date_input("From", value=None)
    with col3:
        date_to = st.date_input("To", value=None)
    with col4:
        search_term = st.text_input("Search", placeholder="Search descriptions")

    filters = ExpenseFilters(
        category=category_filter,
        date_from=date_from,
        date_to=date_to,
        search_term=search_term,
    )
    result = service.filter_expenses(filters)

    header_col, export_col = st.columns([3, 1])
    with header_col:
        st.markdown(
            f"**{describe_filters(filters)}** · {result.count} expense(s) · "
            f"Total: **{format_currency(result.total)}**"
        )
    with export_col:
        # The audited export runs only when the file is actually downloaded
        st.download_button(
            "⬇️ Export CSV",
            data=expenses_to_csv(result.expenses),
            file_name=export_filename(),
            mime="text/csv",
            disabled=not result.expenses,
            on_click=service.export_csv,
            args=(filters,),
        )

    if not result.expenses:
        st.info("No expenses match these filters.")
        return

    for expense in result.expenses:
        line_col, edit_col, delete_col = st.columns([6, 1, 1])
        with line_col:
            render_expense_line(expense)
        with edit_col:
            if st.button("Edit", key=f"edit-{expense.id}"):
                st.session_state.editing_id = expense.id
                st.rerun()
        with delete_col:
            if st.button("Delete", key=f"delete-{expense.id}"):
                service.remove_expense(expense.id)
                if st.session_state.editing_id == expense.id:
                    st.session_state.editing_id = None
                st.rerun()


def render_insights_page(service: ExpenseService):
    """Render the share of spend per category and the top categories."""
    st.title("📈 Monthly Insights")

    summary = service.summary()
    app_settings = get_settings().app

    st.markdown(f"""
    <div class="success-box">
        <h4>This Month</h4>
        <p class="big-number">{format_currency(summary.monthly_total)}</p>
        <p>of {format_currency(summary.total_expenses)} recorded overall</p>
    </div>
    """, unsafe_allow_html=True)

    distribution = category_distribution(summary)
    if not distribution:
        st.info("Add some expenses to see where your money goes.")
        return

    st.subheader("Where the Money Goes")
    for share in distribution:
        st.markdown(
            f"{CATEGORY_ICONS[share.category.value]} {share.category.value}: "
            f"{format_currency(share.amount)} ({share.percentage:.1f}%)"
        )
        st.progress(min(share.percentage / 100, 1.0))

    st.markdown("---")
    st.subheader("Top Categories")
    columns = st.columns(app_settings.top_categories_limit)
    for column, share in zip(columns, top_categories(summary, app_settings.top_categories_limit)):
        with column:
            st.metric(share.category.value, format_currency(share.amount), f"{share.percentage:.0f}%")


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Configuration Status")

    status = validate_all_settings()

    sections = [
        ("Storage", "storage"),
        ("Application", "app"),
    ]

    for name, key in sections:
        if status.get(key, False):
            st.success(f"✅ {name} - OK")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    if status.get("storage"):
        storage_settings = get_settings().storage
        st.markdown(f"**Backend:** `{storage_settings.backend}`")
        if storage_settings.backend == "json":
            st.markdown(f"**Data file:** `{storage_settings.data_path}`")

    st.markdown("---")
    st.markdown("### Recent Activity")

    events = get_service().recent_activity(limit=10)
    if not events:
        st.markdown("*No activity recorded yet.*")
    for event in events:
        st.markdown(
            f"`{event.timestamp:%Y-%m-%d %H:%M}` {event.description}"
        )

    st.markdown("---")
    st.markdown("### Danger Zone")
    confirm = st.checkbox("I understand this deletes every expense")
    if st.button("🗑️ Clear All Expenses", disabled=not confirm):
        get_service().clear_expenses()
        st.session_state.editing_id = None
        st.success("All expenses cleared.")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()
