# Copyright (c) 2026 Signer — MIT License

"""Tests for presence counting."""

import json
import re

from presence import (
    STALE_AFTER, FilePresence, Presence, PresenceStatus, generate_session_id,
    presence_label,
)


class Clock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_session_id_format():
    assert re.fullmatch(r"\d{13,}-[0-9a-z]{9}", generate_session_id())
    assert generate_session_id() != generate_session_id()


def test_labels():
    assert presence_label(0) == "Channeling alone"
    assert presence_label(1) == "Channeling alone"
    assert presence_label(2) == "1 soul also channeling"
    assert presence_label(5) == "4 souls also channeling"


def test_base_presence_is_alone():
    p = Presence()
    seen = []
    p.subscribe(seen.append)
    assert p.poll() == PresenceStatus(0, False)
    assert seen == [PresenceStatus(0, False)]


def test_counts_instances(tmp_path):
    clock = Clock()
    a = FilePresence(str(tmp_path), session_id="a", clock=clock)
    b = FilePresence(str(tmp_path), session_id="b", clock=clock)
    assert a.poll() == PresenceStatus(1, True)
    b.poll()
    assert a.poll() == PresenceStatus(2, True)


def test_stale_heartbeats_expire(tmp_path):
    clock = Clock()
    a = FilePresence(str(tmp_path), session_id="a", clock=clock)
    b = FilePresence(str(tmp_path), session_id="b", clock=clock)
    a.poll()
    b.poll()
    clock.now += STALE_AFTER + 1
    assert a.poll().count == 1


def test_stale_heartbeat_files_removed(tmp_path):
    clock = Clock()
    a = FilePresence(str(tmp_path), session_id="a", clock=clock)
    b = FilePresence(str(tmp_path), session_id="b", clock=clock)
    a.poll()
    b.poll()
    clock.now += STALE_AFTER
    assert a.poll().count == 2
    assert (tmp_path / "b.json").exists()
    clock.now += 1
    assert a.poll().count == 1
    assert not (tmp_path / "b.json").exists()
    assert (tmp_path / "a.json").exists()


def test_garbage_files_ignored(tmp_path):
    (tmp_path / "junk.json").write_text("{", encoding="utf-8")
    (tmp_path / "list.json").write_text("[]", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("hello", encoding="utf-8")
    p = FilePresence(str(tmp_path), session_id="a", clock=Clock())
    assert p.poll().count == 1


def test_subscribers_notified_on_change(tmp_path):
    clock = Clock()
    p = FilePresence(str(tmp_path), session_id="a", clock=clock)
    seen = []
    unsubscribe = p.subscribe(seen.append)
    p.poll()
    p.poll()
    assert seen == [PresenceStatus(0, False), PresenceStatus(1, True)]
    unsubscribe()
    FilePresence(str(tmp_path), session_id="b", clock=clock).poll()
    p.poll()
    assert len(seen) == 2


def test_dispose_removes_heartbeat(tmp_path):
    clock = Clock()
    a = FilePresence(str(tmp_path), session_id="a", clock=clock)
    b = FilePresence(str(tmp_path), session_id="b", clock=clock)
    a.poll()
    b.poll()
    b.dispose()
    assert not (tmp_path / "b.json").exists()
    assert b.status == PresenceStatus(0, False)
    assert a.poll().count == 1
    b.dispose()


def test_heartbeat_contents(tmp_path):
    p = FilePresence(str(tmp_path), session_id="a", clock=Clock(42.0))
    p.poll()
    data = json.loads((tmp_path / "a.json").read_text(encoding="utf-8"))
    assert data == {"online": True, "lastSeen": 42.0}


def test_unusable_directory_disconnected(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    p = FilePresence(str(blocker / "presence"), session_id="a", clock=Clock())
    assert p.poll() == PresenceStatus(0, False)
