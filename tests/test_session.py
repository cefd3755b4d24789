import pytest

from auth.errors import SessionPersistError
from auth.session import PROFILE_KEY, STATE_KEY, SessionStore, is_authenticated

SECRET = "session-secret"


def test_set_get_save() -> None:
    data: dict = {}
    session = SessionStore(data, secret_key=SECRET)

    session.set(STATE_KEY, "abc")
    session.save()

    assert session.get(STATE_KEY) == "abc"
    assert data == {STATE_KEY: "abc"}


def test_save_rejects_unserializable_values() -> None:
    session = SessionStore({}, secret_key=SECRET)
    session.set(PROFILE_KEY, {"seen": {1, 2}})

    with pytest.raises(SessionPersistError, match="serializable"):
        session.save()


def test_save_rejects_oversized_cookie() -> None:
    session = SessionStore({}, secret_key=SECRET)
    session.set(PROFILE_KEY, {"bio": "x" * 4096})

    with pytest.raises(SessionPersistError, match="too large"):
        session.save()


def test_rollback_restores_last_saved_state() -> None:
    data = {STATE_KEY: "old"}
    session = SessionStore(data, secret_key=SECRET)
    session.set(STATE_KEY, "new")
    session.save()
    session.set(PROFILE_KEY, {"sub": "auth0|1"})

    session.rollback()

    assert data == {STATE_KEY: "new"}


def test_clear_then_rollback_without_save() -> None:
    data = {PROFILE_KEY: {"sub": "auth0|1"}}
    session = SessionStore(data, secret_key=SECRET)

    session.clear()
    session.rollback()

    assert is_authenticated(session)


def test_is_authenticated() -> None:
    assert not is_authenticated({})
    assert not is_authenticated({STATE_KEY: "abc"})
    assert is_authenticated({PROFILE_KEY: {}})
