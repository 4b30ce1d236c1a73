import pytest

from chgk_portal.session import Role, SessionError, SessionState, check_host_password


def test_guest_signs_in_as_viewer():
    state = SessionState().sign_in(7, "nino@example.com")
    assert state.role == Role.VIEWER
    assert state.is_viewer
    assert not state.is_admin

    with pytest.raises(SessionError):
        state.sign_in(8)


def test_admin_login_with_wrong_password_stays_guest():
    state = SessionState()
    assert state.admin_login("owl", "editor") is False
    assert state.role == Role.GUEST


def test_admin_login_grants_admin_without_identity():
    state = SessionState()
    assert state.admin_login("editor", "editor") is True
    assert state.is_admin
    assert state.user_id is None


def test_viewer_cannot_enter_host_mode():
    state = SessionState().sign_in(1)
    with pytest.raises(SessionError):
        state.admin_login("editor", "editor")


def test_logout_returns_to_guest():
    state = SessionState()
    state.admin_login("editor", "editor")
    assert state.logout().role == Role.GUEST


def test_restore_never_yields_admin():
    assert SessionState.restore(None).role == Role.GUEST
    restored = SessionState.restore(3, "gia@example.com")
    assert restored.role == Role.VIEWER
    assert restored.user_id == 3


def test_check_host_password_rejects_empty():
    assert not check_host_password("", "editor")
    assert not check_host_password("editor", "")
    assert check_host_password("editor", "editor")
