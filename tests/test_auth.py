import pytest

from invoice_management.errors import AuthError, PermissionDenied, ValidationError
from invoice_management.modules.login.auth_service import AuthService
from invoice_management.session import Session
from invoice_management.utils.auth import hash_password, needs_rehash, verify_password

TEST_PASSWORD = "secret123"  # password of the conftest users


@pytest.fixture()
def auth(conn):
    return AuthService(conn, bcrypt_rounds=4)


def _reasons(conn):
    return [r["details"] for r in conn.execute("SELECT details FROM audit_logs ORDER BY log_id")]


def test_password_helpers():
    h = hash_password("hunter22", rounds=4)
    assert verify_password("hunter22", h)
    assert not verify_password("hunter23", h)
    assert not verify_password("x", None)
    assert needs_rehash(h, min_rounds=12)
    assert not needs_rehash(h, min_rounds=4)


def test_sign_in_ok(conn, auth, accountant):
    s = auth.sign_in("  Accountant@Example.com ", TEST_PASSWORD)
    assert s == accountant
    assert auth.current_session() == s
    assert "reason=ok" in _reasons(conn)[-1]
    auth.sign_out()
    assert auth.current_session() is None


@pytest.mark.parametrize(
    "email, password, code",
    [
        ("", "x", "empty_fields"),
        ("ghost@example.com", "whatever", "user_not_found"),
        ("admin@example.com", "wrong-password", "wrong_password"),
    ],
)
def test_sign_in_failures(auth, admin, email, password, code):
    with pytest.raises(AuthError) as e:
        auth.sign_in(email, password)
    assert e.value.code == code
    assert auth.current_session() is None


def test_lockout_after_repeated_failures(conn, auth, admin):
    for _ in range(AuthService.MAX_FAILED_ATTEMPTS):
        with pytest.raises(AuthError):
            auth.sign_in("admin@example.com", "wrong-password")
    with pytest.raises(AuthError) as e:
        auth.sign_in("admin@example.com", TEST_PASSWORD)
    assert e.value.code == "locked_out"


def test_success_resets_failure_counter(conn, auth, admin):
    for _ in range(AuthService.MAX_FAILED_ATTEMPTS - 1):
        with pytest.raises(AuthError):
            auth.sign_in("admin@example.com", "wrong-password")
    auth.sign_in("admin@example.com", TEST_PASSWORD)
    row = conn.execute("SELECT failed_attempts, locked_until FROM users WHERE user_id=?", (admin.user_id,)).fetchone()
    assert (row["failed_attempts"], row["locked_until"]) == (0, None)


def test_sign_up_is_pending_until_confirmed(auth, admin):
    s = auth.sign_up("new.user@example.com", "longenough", {"name": "New User"})
    assert s.pending
    assert s.role == "viewer"
    assert not s.has_role(("viewer",))

    with pytest.raises(AuthError) as e:
        auth.sign_in("new.user@example.com", "longenough")
    assert e.value.code == "not_confirmed"

    auth.confirm_user(admin, s.user_id)
    assert auth.sign_in("new.user@example.com", "longenough").name == "New User"


@pytest.mark.parametrize(
    "email, password, code",
    [
        ("not-an-email", "longenough", "invalid_email"),
        ("short@example.com", "123", "weak_password"),
        ("admin@example.com", "longenough", "email_taken"),
    ],
)
def test_sign_up_failures(auth, admin, email, password, code):
    with pytest.raises(AuthError) as e:
        auth.sign_up(email, password)
    assert e.value.code == code


def test_inactive_user_cannot_sign_in(auth, admin, viewer):
    auth.set_user_active(admin, viewer.user_id, False)
    with pytest.raises(AuthError) as e:
        auth.sign_in(viewer.email, TEST_PASSWORD)
    assert e.value.code == "user_inactive"


def test_user_administration_needs_admin(auth, admin, accountant):
    with pytest.raises(PermissionDenied):
        auth.list_users(accountant)
    with pytest.raises(PermissionDenied):
        auth.create_user(accountant, email="x@example.com", password="longenough", name="X")

    uid = auth.create_user(admin, email="Clerk@Example.com", password="longenough", name="Clerk", role="salesperson")
    users = {u["email"]: u for u in auth.list_users(admin)}
    assert users["clerk@example.com"]["role"] == "salesperson"

    auth.set_user_role(admin, uid, "accountant")
    assert auth.sign_in("clerk@example.com", "longenough").role == "accountant"

    with pytest.raises(ValidationError):
        auth.set_user_role(admin, uid, "superuser")
    with pytest.raises(ValidationError):
        auth.set_user_active(admin, admin.user_id, False)


def test_pending_session_cannot_act(conn, client_id, product_id):
    from invoice_management.modules.invoice_utilities.workflow import ProformaWorkflow

    pending = Session(user_id=1, email="p@example.com", name="P", role="admin", pending=True)
    with pytest.raises(PermissionDenied):
        ProformaWorkflow(conn, pending).create_draft(client_id, [{"product_id": product_id, "quantity": 1}])
