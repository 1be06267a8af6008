"""Tests for configuration helpers."""

from content_engine.config import parse_allowed_user_ids


def test_parse_allowed_user_ids_open_access() -> None:
    assert parse_allowed_user_ids(None) is None
    assert parse_allowed_user_ids("") is None
    assert parse_allowed_user_ids("*") is None


def test_parse_allowed_user_ids_skips_garbage() -> None:
    assert parse_allowed_user_ids("12, 34,abc,,56") == {12, 34, 56}
    assert parse_allowed_user_ids("abc") is None
