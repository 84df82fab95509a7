"""Tests for logging context propagation."""

import threading

from app.logging.context import (
    clear_log_context,
    get_log_context,
    log_context,
    pop_log_context,
    push_log_context,
)


def test_empty_context():
    """Test that context starts empty."""
    assert get_log_context() == {}


def test_push_and_pop():
    """Test pushing fields and restoring with the token."""
    token = push_log_context(user_id="user-1", page_context="home")
    assert get_log_context() == {"user_id": "user-1", "page_context": "home"}

    pop_log_context(token)
    assert get_log_context() == {}


def test_nested_push_overrides_and_restores():
    """Inner pushes merge with outer ones and win on clashes."""
    outer = push_log_context(user_id="user-1", page_context="home")
    inner = push_log_context(page_context="dashboard")

    assert get_log_context() == {"user_id": "user-1", "page_context": "dashboard"}

    pop_log_context(inner)
    assert get_log_context() == {"user_id": "user-1", "page_context": "home"}

    pop_log_context(outer)
    assert get_log_context() == {}


def test_context_manager_nested():
    """Test nested context managers."""
    with log_context(user_id="user-1"):
        with log_context(match_kind="vehicle-matches-requirement"):
            assert get_log_context() == {
                "user_id": "user-1",
                "match_kind": "vehicle-matches-requirement",
            }

        assert get_log_context() == {"user_id": "user-1"}

    assert get_log_context() == {}


def test_context_manager_restores_on_exception():
    """Context is restored even when the block raises."""
    try:
        with log_context(user_id="user-1"):
            raise ValueError("boom")
    except ValueError:
        pass

    assert get_log_context() == {}


def test_clear_context():
    push_log_context(user_id="user-1")

    clear_log_context()

    assert get_log_context() == {}


def test_get_returns_copy():
    """Mutating the returned dict does not change the context."""
    with log_context(user_id="user-1"):
        context = get_log_context()
        context["page_context"] = "modified"

        assert get_log_context() == {"user_id": "user-1"}


def test_new_thread_starts_empty():
    """Worker threads do not inherit the caller's fields."""
    seen = {}

    def worker():
        seen.update(get_log_context())
        seen["ran"] = True

    with log_context(user_id="user-1"):
        thread = threading.Thread(target=worker)
        thread.start()
        thread.join()

    assert seen == {"ran": True}
