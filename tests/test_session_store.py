"""Tests for the in-memory session store."""

from dataclasses import replace

import pytest

from content_engine.domain.sessions import SessionState
from content_engine.services.store import InMemorySessionStore, new_session_id
from tests.conftest import FakeClock


def test_create_assigns_unique_ids(clock: FakeClock) -> None:
    ids = iter(["dup", "dup", "fresh"])
    store = InMemorySessionStore(clock=clock, id_factory=lambda: next(ids))

    first = store.create(user_id=1, chat_id=1, primary_media_ref="a")
    second = store.create(user_id=1, chat_id=1, primary_media_ref="b")

    assert first.id == "dup"
    assert second.id == "fresh"
    assert first.state is SessionState.AWAITING_REFERENCE_CHOICE
    assert first.attempt_count == 0


def test_new_session_id_is_short_hex() -> None:
    session_id = new_session_id()

    assert len(session_id) == 12
    int(session_id, 16)


def test_save_stamps_updated_at(
    session_store: InMemorySessionStore, clock: FakeClock
) -> None:
    session = session_store.create(user_id=1, chat_id=1, primary_media_ref="a")
    clock.advance(30)

    saved = session_store.save(replace(session, state=SessionState.AWAITING_STYLE))

    assert saved.updated_at == clock.now
    assert saved.created_at == session.created_at
    assert session_store.get(session.id) == saved


def test_save_unknown_session_raises(session_store: InMemorySessionStore) -> None:
    session = session_store.create(user_id=1, chat_id=1, primary_media_ref="a")
    session_store.delete(session.id)

    with pytest.raises(KeyError):
        session_store.save(session)


def test_idle_session_expires(clock: FakeClock) -> None:
    store = InMemorySessionStore(ttl_seconds=60, clock=clock)
    session = store.create(user_id=1, chat_id=1, primary_media_ref="a")

    clock.advance(59)
    assert store.get(session.id) is not None

    clock.advance(60)
    assert store.get(session.id) is None


def test_terminal_sessions_are_cleaned_up_sooner(clock: FakeClock) -> None:
    store = InMemorySessionStore(
        ttl_seconds=3600, terminal_retention_seconds=10, clock=clock
    )
    live = store.create(user_id=1, chat_id=1, primary_media_ref="a")
    done = store.create(user_id=2, chat_id=2, primary_media_ref="b")
    store.save(replace(done, state=SessionState.APPROVED))

    clock.advance(11)
    expired = store.purge_expired()

    assert expired == [done.id]
    assert store.get(live.id) is not None


def test_find_collecting_only_matches_collecting_state(
    session_store: InMemorySessionStore,
) -> None:
    waiting = session_store.create(user_id=5, chat_id=5, primary_media_ref="a")
    collecting = session_store.save(
        replace(
            session_store.create(user_id=5, chat_id=5, primary_media_ref="b"),
            state=SessionState.COLLECTING_REFERENCES,
        )
    )

    found = session_store.find_collecting(5)

    assert found is not None
    assert found.id == collecting.id
    assert found.id != waiting.id
    assert session_store.find_collecting(6) is None


def test_list_sessions_newest_first(
    session_store: InMemorySessionStore, clock: FakeClock
) -> None:
    older = session_store.create(user_id=1, chat_id=1, primary_media_ref="a")
    clock.advance(5)
    newer = session_store.create(user_id=2, chat_id=2, primary_media_ref="b")

    assert [session.id for session in session_store.list_sessions()] == [
        newer.id,
        older.id,
    ]
