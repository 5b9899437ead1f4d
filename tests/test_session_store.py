from datetime import timedelta

from services.session_store import SessionStore


def test_create_get_update_delete(clock):
    store = SessionStore(lifetime=timedelta(minutes=60), clock=clock)
    sid = store.create({"user": {"id": 1}})

    assert store.get(sid) == {"user": {"id": 1}}
    assert store.update(sid, user={"id": 1, "full_name": "X"})
    assert store.get(sid)["user"]["full_name"] == "X"

    assert store.delete(sid)
    assert store.get(sid) is None
    assert not store.delete(sid)


def test_sessions_expire(clock):
    store = SessionStore(lifetime=timedelta(minutes=60), clock=clock)
    long_lived = store.create({"a": 1})
    short_lived = store.create({"b": 2}, lifetime=timedelta(minutes=10))

    clock.advance(minutes=11)
    assert store.get(short_lived) is None
    assert store.purge_expired() == 0

    clock.advance(minutes=50)
    assert store.purge_expired() == 1
    assert store.get(long_lived) is None


def test_missing_session_id():
    store = SessionStore()
    assert store.get(None) is None
    assert not store.update("nope", a=1)
