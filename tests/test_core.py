"""Tests for ioukit.core.

Covers:
- Settings defaults and IOU_* environment parsing
- EventBus registration, removal and handler isolation
- ReadWriteLock exclusion and writer preference
- EntityMention validation and canonical keys
"""
from __future__ import annotations

import threading
import time

import pytest
from pydantic import ValidationError

from ioukit.core import (
    ConfigurationError,
    EntityMention,
    EntityType,
    EventBus,
    InvalidInputError,
    NotFoundError,
    ReadWriteLock,
    Settings,
    canonical_key,
    get_settings,
    normalize_surface,
)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

class TestSettings:

    def test_defaults(self):
        s = Settings()
        assert s.strict_invariants is False
        assert s.reference_window == 150
        assert s.max_tags == 5
        assert s.default_retention_years == 7

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("IOU_STRICT_INVARIANTS", "1")
        monkeypatch.setenv("IOU_MAX_TAGS", "8")
        monkeypatch.setenv("IOU_MIN_SIMILARITY", "0.25")
        s = Settings.from_env()
        assert s.strict_invariants is True
        assert s.max_tags == 8
        assert s.min_similarity == 0.25

    def test_get_settings_is_cached(self, monkeypatch):
        monkeypatch.setenv("IOU_MAX_TAGS", "3")
        first = get_settings()
        monkeypatch.setenv("IOU_MAX_TAGS", "9")
        assert get_settings() is first
        assert first.max_tags == 3

    @pytest.mark.parametrize("name,value", [
        ("IOU_MAX_TAGS", "many"),
        ("IOU_MAX_TAGS", "-1"),
        ("IOU_STRICT_INVARIANTS", "maybe"),
        ("IOU_COMMUNITY_RESOLUTION", "0"),
        ("IOU_COMMUNITY_MAX_ITERATIONS", "0"),
    ])
    def test_bad_values_raise(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        with pytest.raises(ConfigurationError):
            Settings.from_env()

    def test_configuration_error_is_invalid_input(self):
        assert issubclass(ConfigurationError, InvalidInputError)


# ---------------------------------------------------------------------------
# EventBus
# ---------------------------------------------------------------------------

class TestEventBus:

    def test_emit_calls_handlers_in_order(self):
        bus = EventBus()
        calls = []
        bus.on("x", lambda **kw: calls.append(("a", kw["n"])))
        bus.on("x", lambda **kw: calls.append(("b", kw["n"])))
        bus.emit("x", n=1)
        assert calls == [("a", 1), ("b", 1)]

    def test_failing_handler_does_not_stop_others(self):
        bus = EventBus()
        calls = []

        def broken(**kw):
            raise RuntimeError("boom")

        bus.on("x", broken)
        bus.on("x", lambda **kw: calls.append(kw))
        bus.emit("x", n=2)
        assert calls == [{"n": 2}]

    def test_off_removes_bound_method(self):
        class Listener:
            def __init__(self):
                self.count = 0

            def handle(self, **kw):
                self.count += 1

        bus = EventBus()
        listener = Listener()
        bus.on("x", listener.handle)
        bus.off("x", listener.handle)
        bus.emit("x")
        assert listener.count == 0


# ---------------------------------------------------------------------------
# ReadWriteLock
# ---------------------------------------------------------------------------

class TestReadWriteLock:

    def test_readers_share(self):
        lock = ReadWriteLock()
        lock.acquire_read()
        acquired = threading.Event()

        def reader():
            with lock.read_locked():
                acquired.set()

        t = threading.Thread(target=reader)
        t.start()
        assert acquired.wait(1.0)
        t.join()
        lock.release_read()

    def test_writer_excludes_readers(self):
        lock = ReadWriteLock()
        lock.acquire_write()
        acquired = threading.Event()

        def reader():
            with lock.read_locked():
                acquired.set()

        t = threading.Thread(target=reader)
        t.start()
        assert not acquired.wait(0.1)
        lock.release_write()
        assert acquired.wait(1.0)
        t.join()

    def test_waiting_writer_blocks_new_readers(self):
        lock = ReadWriteLock()
        lock.acquire_read()
        order = []

        def writer():
            with lock.write_locked():
                order.append("writer")

        def late_reader():
            with lock.read_locked():
                order.append("reader")

        w = threading.Thread(target=writer)
        w.start()
        time.sleep(0.05)
        r = threading.Thread(target=late_reader)
        r.start()
        time.sleep(0.05)
        assert order == []
        lock.release_read()
        w.join(1.0)
        r.join(1.0)
        assert order == ["writer", "reader"]

    def test_unbalanced_release_raises(self):
        lock = ReadWriteLock()
        with pytest.raises(RuntimeError):
            lock.release_read()
        with pytest.raises(RuntimeError):
            lock.release_write()


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class TestEntityMention:

    def test_key_and_ref(self):
        m = EntityMention(
            text="Gemeente  Almere", normalized="Gemeente  Almere",
            entity_type=EntityType.ORGANIZATION, document_id="d1",
            start=0, end=16, confidence=0.9,
        )
        assert m.key == "organization:gemeente almere"
        assert m.ref == "d1:0-16"

    def test_rejects_empty_span(self):
        with pytest.raises(ValidationError):
            EntityMention(
                text="x", normalized="x", entity_type="law",
                start=4, end=4, confidence=1.0,
            )

    def test_rejects_out_of_range_confidence(self):
        with pytest.raises(ValidationError):
            EntityMention(
                text="x", normalized="x", entity_type="law",
                start=0, end=1, confidence=1.5,
            )

    def test_is_frozen(self):
        m = EntityMention(text="x", normalized="x", entity_type="law", start=0, end=1, confidence=1.0)
        with pytest.raises(ValidationError):
            m.start = 3

    def test_overlaps(self):
        a = EntityMention(text="ab", normalized="ab", entity_type="law", start=0, end=2, confidence=1.0)
        b = EntityMention(text="bc", normalized="bc", entity_type="law", start=1, end=3, confidence=1.0)
        c = EntityMention(text="cd", normalized="cd", entity_type="law", start=2, end=4, confidence=1.0)
        assert a.overlaps(b)
        assert not a.overlaps(c)


class TestCanonicalKey:

    def test_whitespace_and_case_collapse(self):
        assert normalize_surface("  Provincie\tFLEVOLAND ") == "provincie flevoland"
        assert canonical_key("Provincie Flevoland", EntityType.ORGANIZATION) == \
            canonical_key("provincie  flevoland", "organization")

    def test_type_is_part_of_identity(self):
        assert canonical_key("Utrecht", EntityType.LOCATION) != \
            canonical_key("Utrecht", EntityType.ORGANIZATION)


def test_not_found_error_carries_kind_and_key():
    err = NotFoundError("node", "organization:x")
    assert err.kind == "node"
    assert err.key == "organization:x"
    assert "organization:x" in str(err)
