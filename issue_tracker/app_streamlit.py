from __future__ import annotations

import logging
from uuid import uuid4

import pandas as pd
import streamlit as st

from issue_tracker.services import (
    ALLOWED_STATUSES,
    ROLES,
    ApiClient,
    IssueStore,
    SessionService,
    TokenStorage,
    configure_logging,
    load_settings,
)
from issue_tracker.services import forms, policy

st.set_page_config(page_title="Issue Tracker", page_icon="🔥", layout="wide")

settings = load_settings()
configure_logging(settings.log_level)
logger = logging.getLogger("issue_tracker.app")


# ---- services (one pair per browser session) ----

def init_services() -> tuple[SessionService, IssueStore]:
    if "session_service" not in st.session_state:
        client_id = st.session_state.setdefault("client_id", uuid4().hex)
        client = ApiClient(settings.api_base_url, timeout=settings.timeout)
        session = SessionService(client, TokenStorage.for_client(settings.token_dir, client_id))
        session.start()
        store = IssueStore(client, session, data_dir=settings.data_dir)
        if session.authenticated:
            store.list()
        st.session_state.session_service = session
        st.session_state.issue_store = store
    return st.session_state.session_service, st.session_state.issue_store


def teardown(session: SessionService, store: IssueStore) -> None:
    if session.user is not None:
        logger.info("Logging out %s", session.user.username)
    session.logout()
    store.clear()
    st.session_state.pop("selected_issue", None)


def status_label(status: str) -> str:
    return status.replace("_", " ")


def issue_rows(issues) -> pd.DataFrame:
    rows = [
        {
            "id": i.id,
            "title": i.title,
            "status": status_label(i.status),
            "location": i.location or "N/A",
            "department": i.department,
            "reported by": i.username or "N/A",
            "created": i.created_at,
        }
        for i in issues
    ]
    return pd.DataFrame(rows)


def issue_form(key: str, user, initial=None):
    """Render the issue form; returns the submitted fields or None."""
    initial = initial or {}
    with st.form(key, clear_on_submit=not initial):
        title = st.text_input("Title *", value=initial.get("title", ""), max_chars=forms.MAX_FIELD_LENGTH,
                              placeholder="e.g., Forklift not starting")
        location = st.text_input("Location *", value=initial.get("location", ""), max_chars=forms.MAX_FIELD_LENGTH,
                                 placeholder="e.g., Aisle 7, Shelf B3")
        department = st.text_input("Department *", value=initial.get("department", ""),
                                   max_chars=forms.MAX_FIELD_LENGTH, placeholder="e.g., IT, Maintenance")
        description = st.text_area("Description", value=initial.get("description", ""), height=160)
        fields = {
            "title": title,
            "location": location,
            "department": department,
            "description": description,
        }
        if policy.status_editable(user):
            current = initial.get("status", "OPEN")
            fields["status"] = st.radio(
                "Status",
                ALLOWED_STATUSES,
                index=ALLOWED_STATUSES.index(current) if current in ALLOWED_STATUSES else 0,
                format_func=status_label,
                horizontal=True,
            )
        submitted = st.form_submit_button("Update issue" if initial else "Submit issue")

    if not submitted:
        return None
    errs = forms.validate_issue(fields, user)
    for e in errs.values():
        st.error(e)
    return None if errs else fields


# ----------------------------- Login / Register -----------------------------

def login_page(session: SessionService, store: IssueStore) -> None:
    st.title("Login to Issue Tracker")
    with st.form("login"):
        email = st.text_input("Email", placeholder="you@example.com")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Login")

    if submitted:
        errs = forms.validate_login(email, password)
        if errs:
            for e in errs:
                st.error(e)
            return
        with st.spinner("Signing in..."):
            result = session.login(email.strip(), password)
        if result.ok:
            store.list()
            st.rerun()
        else:
            st.error(result.message or "Login failed. Please check your credentials.")


def register_page(session: SessionService) -> None:
    st.title("Register for Issue Tracker")
    with st.form("register", clear_on_submit=False):
        c1, c2 = st.columns(2)
        with c1:
            username = st.text_input("Username *")
            email = st.text_input("Email *", placeholder="you@example.com")
            phone_number = st.text_input("Phone number *")
        with c2:
            password = st.text_input("Password *", type="password")
            confirm = st.text_input("Confirm password *", type="password")
            role = st.radio("Role", ROLES, index=0, format_func=str.capitalize, horizontal=True)
        submitted = st.form_submit_button("Register")

    if submitted:
        errs = forms.validate_registration(
            username=username,
            email=email,
            password=password,
            confirm_password=confirm,
            phone_number=phone_number,
            role=role,
        )
        if errs:
            for e in errs:
                st.error(e)
            return
        result = session.register(username.strip(), email.strip(), password, phone_number.strip(), role)
        if result.ok:
            st.success(result.message)
            st.caption("Switch to **Login** in the sidebar to sign in.")
        else:
            st.error(result.message or "Registration failed. Please try again.")


# ----------------------------- Dashboard -----------------------------

def dashboard_page(session: SessionService, store: IssueStore) -> None:
    st.title("Issue Tracker Dashboard")
    if store.error:
        st.error(store.error)
        if st.button("Retry"):
            store.list()
            st.rerun()

    counts = store.status_counts()
    cols = st.columns(len(ALLOWED_STATUSES))
    for col, status in zip(cols, ALLOWED_STATUSES):
        col.metric(f"{status_label(status).title()} issues", counts[status])

    if policy.can_create(session.user):
        st.info("Something broken? Use **Report issue** in the sidebar.")

    st.subheader("Recent issues")
    recent = store.recent()
    if not recent:
        st.caption("No recent issues to display.")
    else:
        st.dataframe(issue_rows(recent), width="stretch", hide_index=True)

    with st.expander(f"All issues ({len(store.issues)})"):
        q = st.text_input("Search (title, location, department, description)")
        visible = [
            i for i in store.issues
            if not q or q.lower() in " ".join([i.title, i.location, i.department, i.description]).lower()
        ]
        if visible:
            st.dataframe(issue_rows(visible), width="stretch", hide_index=True)


# ----------------------------- Report issue -----------------------------

def new_issue_page(session: SessionService, store: IssueStore) -> None:
    st.title("Report new issue")
    if not policy.can_create(session.user):
        st.warning("Only customers can report new issues.")
        return
    fields = issue_form("new_issue", session.user)
    if fields is not None:
        result = store.create(fields)
        if result.ok:
            st.success("Issue reported.")
        else:
            st.error(result.message)


# ----------------------------- Issue details -----------------------------

def issue_details_page(session: SessionService, store: IssueStore) -> None:
    user = session.user
    visible = [i for i in store.issues if policy.can_view(user, i)]
    st.title("Issue details")
    if not visible:
        st.caption("No issues available.")
        return

    ids = [i.id for i in visible]
    current = st.session_state.get("selected_issue")
    sel = st.selectbox(
        "Select an issue",
        ids,
        index=ids.index(current) if current in ids else 0,
        format_func=lambda iid: next(f"{i.title} ({iid})" for i in visible if i.id == iid),
    )
    st.session_state.selected_issue = sel
    found = store.get(sel)
    if not found.ok:
        st.error(found.message)
        return
    issue = found.value

    st.subheader(issue.title)
    c1, c2 = st.columns([2, 1])
    with c1:
        st.markdown(f"**Status:** {status_label(issue.status)}")
        st.markdown(f"**Location:** {issue.location or 'N/A'}")
        st.markdown(f"**Department:** {issue.department or 'N/A'}")
        st.markdown(f"**Created at:** {issue.created_at or 'N/A'}")
        st.markdown("**Description**")
        st.write(issue.description or "No description provided for this issue.")
    with c2:
        st.markdown(f"**Reported by:** {issue.username or 'N/A'}")
        st.markdown(f"**Email:** {issue.user_email or 'N/A'}")
        st.markdown(f"**Phone number:** {issue.user_phone_number or 'N/A'}")

    if policy.can_edit(user, issue):
        with st.expander("Edit issue"):
            fields = issue_form(f"edit_{issue.id}", user, initial=issue.to_dict())
            if fields is not None:
                result = store.update(issue.id, fields)
                if result.ok:
                    st.success("Issue updated.")
                    st.rerun()
                else:
                    st.error(result.message)

    if policy.can_delete(user, issue):
        st.markdown("**Danger zone**")
        confirm = st.checkbox(
            "I understand this issue will be deleted permanently.", key=f"confirm_delete_{issue.id}"
        )
        if st.button("Delete issue", type="primary", disabled=not confirm):
            result = store.delete(issue.id)
            if result.ok:
                st.session_state.pop("selected_issue", None)
                st.success("Issue deleted.")
                st.rerun()
            else:
                st.error(result.message)


# ----------------------------- Admin export -----------------------------

def export_page(session: SessionService, store: IssueStore) -> None:
    st.title("Export issues")
    st.caption("Download every issue as a CSV file.")
    if st.button("Prepare CSV export"):
        with st.spinner("Exporting..."):
            result = store.export_csv()
        if result.ok:
            exported = result.value
            st.success(f"Saved {exported.name}")
            st.download_button("Download CSV", data=exported.content, file_name=exported.name, mime="text/csv")
        else:
            st.error(result.message)


# ----------------------------- Routing -----------------------------

session, store = init_services()
user = session.user

st.sidebar.title("🔥 Issue Tracker")

if user is None:
    view = st.sidebar.radio("Go to", ["Login", "Register"], index=0)
else:
    st.sidebar.markdown(f"👤 **{user.username}** ({user.role})")
    pages = ["Dashboard"]
    if policy.can_create(user):
        pages.append("Report issue")
    pages.append("Issue details")
    if policy.can_export(user):
        pages.append("Export")
    view = st.sidebar.radio("Go to", pages, index=0)
    if st.sidebar.button("Refresh"):
        store.list()
    if st.sidebar.button("Logout"):
        teardown(session, store)
        st.rerun()

PROTECTED = {
    "Dashboard": (policy.guard_authenticated, dashboard_page),
    "Report issue": (policy.guard_authenticated, new_issue_page),
    "Issue details": (policy.guard_authenticated, issue_details_page),
    "Export": (policy.guard_admin, export_page),
}

if view == "Login":
    login_page(session, store)
elif view == "Register":
    register_page(session)
else:
    guard, page = PROTECTED[view]
    decision = guard(user, session.pending)
    if decision == policy.PENDING:
        st.caption("Loading...")
        st.stop()
    elif decision == policy.REDIRECT_LOGIN:
        login_page(session, store)
    elif decision == policy.REDIRECT_HOME:
        st.warning("Admins only.")
        dashboard_page(session, store)
    else:
        page(session, store)
