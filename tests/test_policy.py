import pytest

from issue_tracker.services import Issue
from issue_tracker.services import policy
from issue_tracker.services.policy import (
    ALLOW,
    CHANGE_STATUS,
    CREATE,
    DELETE,
    EDIT,
    EXPORT,
    PENDING,
    REDIRECT_HOME,
    REDIRECT_LOGIN,
    VIEW,
)

from conftest import make_user


def issue_for(user_id) -> Issue:
    return Issue(id="1", title="Leak", location="Lobby", department="Facilities", user_id=str(user_id))


USERS = [
    make_user("42", "customer"),
    make_user("7", "customer", "bob"),
    make_user("8", "technician", "tess"),
    make_user("42", "technician", "tom"),
    make_user("9", "admin", "ada"),
    make_user("42", "admin", "root"),
]
ISSUES = [issue_for(42), issue_for(7), issue_for(1000), Issue(id="2", title="x", location="y", department="z")]


@pytest.mark.parametrize("user", USERS)
@pytest.mark.parametrize("issue", ISSUES)
def test_delete_is_admin_or_reporter(user, issue):
    expected = user.role == "admin" or user.id == issue.user_id
    assert policy.can_delete(user, issue) == expected


@pytest.mark.parametrize("user", USERS)
@pytest.mark.parametrize("issue", ISSUES)
def test_edit_is_admin_technician_or_reporter(user, issue):
    expected = user.role in {"admin", "technician"} or user.id == issue.user_id
    assert policy.can_edit(user, issue) == expected


def test_customer_on_own_issue():
    caps = policy.capabilities(make_user("42", "customer"), issue_for(42))
    assert {VIEW, EDIT, DELETE} <= caps
    assert CHANGE_STATUS not in caps
    assert EXPORT not in caps


def test_customer_on_someone_elses_issue():
    caps = policy.capabilities(make_user("42", "customer"), issue_for(7))
    assert caps == {CREATE}


def test_reporter_comparison_ignores_numeric_vs_string_ids():
    user = make_user("42", "customer")
    issue = Issue.from_api({"id": 3, "title": "t", "location": "l", "department": "d", "userId": 42})
    assert policy.can_edit(user, issue)


def test_technician_on_other_users_issue():
    caps = policy.capabilities(make_user("3", "technician"), issue_for(7))
    assert caps == {VIEW, EDIT, CHANGE_STATUS}


def test_technician_reporter_can_delete_own():
    assert policy.can_delete(make_user("7", "technician"), issue_for(7))


def test_admin_has_everything_regardless_of_owner():
    admin = make_user("9", "admin")
    for issue in (issue_for(9), issue_for(7)):
        assert {VIEW, EDIT, DELETE, CHANGE_STATUS, EXPORT} <= policy.capabilities(admin, issue)
    assert policy.can_export(admin)


def test_anonymous_gets_nothing():
    assert policy.capabilities(None, issue_for(42)) == frozenset()
    assert not policy.can_view(None, issue_for(42))
    assert not policy.can_create(None)


def test_only_customers_create():
    assert policy.can_create(make_user(role="customer"))
    assert not policy.can_create(make_user(role="technician"))
    assert not policy.can_create(make_user(role="admin"))


def test_unknown_role_only_keeps_reporter_delete():
    user = make_user("42", "guest")
    assert policy.capabilities(user, issue_for(42)) == {DELETE}


@pytest.mark.parametrize(
    "role, editable",
    [("customer", False), ("technician", True), ("admin", True), ("guest", False)],
)
def test_status_editable_only_for_staff(role, editable):
    assert policy.status_editable(make_user(role=role)) is editable


def test_status_not_editable_when_anonymous():
    assert policy.status_editable(None) is False


def test_customer_update_payload_drops_status():
    fields = {"title": "New title", "status": "CLOSED", "userId": "1"}
    payload = policy.update_payload(make_user("42", "customer"), fields)
    assert payload == {"title": "New title"}


def test_technician_update_payload_keeps_status():
    fields = {"title": "t", "location": "l", "department": "d", "description": "", "status": "IN_PROGRESS"}
    assert policy.update_payload(make_user(role="technician"), fields) == fields


def test_create_payload_forces_open():
    payload = policy.create_payload({"title": "t", "status": "CLOSED", "id": "99"})
    assert payload == {"title": "t", "status": "OPEN"}


@pytest.mark.parametrize("guard", [policy.guard_authenticated, policy.guard_admin])
@pytest.mark.parametrize("user", [None, make_user(role="customer"), make_user(role="admin")])
def test_guards_wait_while_pending(guard, user):
    assert guard(user, True) == PENDING


def test_guard_authenticated():
    assert policy.guard_authenticated(None, False) == REDIRECT_LOGIN
    assert policy.guard_authenticated(make_user(role="technician"), False) == ALLOW


def test_guard_admin():
    assert policy.guard_admin(None, False) == REDIRECT_LOGIN
    assert policy.guard_admin(make_user(role="technician"), False) == REDIRECT_HOME
    assert policy.guard_admin(make_user(role="admin"), False) == ALLOW
