# Copyright (c) 2026 Signer — MIT License

"""Presence: how many Spirit Messenger instances are channeling right now.

Purely a display affordance; the ceremony never reads it. Any backend works
as long as it implements the small Presence interface:

    presence.subscribe(callback)  -> unsubscribe()   # callback(PresenceStatus)
    presence.poll()                                  # refresh and notify
    presence.dispose()                               # leave, stop notifying

FilePresence uses a shared directory of heartbeat files, one per running
instance. Heartbeats older than STALE_AFTER seconds are not counted, so a
crashed instance drops out on its own.
"""

import json
import os
import random
import time
from typing import NamedTuple

STALE_AFTER = 30.0  # seconds

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"

DEFAULT_PRESENCE_DIR = os.path.join(os.path.expanduser("~"), ".spirit-messenger", "presence")


class PresenceStatus(NamedTuple):
    count: int
    connected: bool


def generate_session_id():
    """Unique id for this instance: '<epoch ms>-<9 base36 chars>'."""
    suffix = "".join(random.choice(_BASE36) for _ in range(9))
    return f"{int(time.time() * 1000)}-{suffix}"


def presence_label(count):
    """Header text for the number of instances online, this one included."""
    if count <= 1:
        return "Channeling alone"
    others = count - 1
    return f"{others} {'soul' if others == 1 else 'souls'} also channeling"


class Presence:
    """Base presence: a single, unconnected instance."""

    def __init__(self):
        self._subscribers = []
        self.status = PresenceStatus(0, False)

    def subscribe(self, callback):
        self._subscribers.append(callback)
        callback(self.status)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)
        return unsubscribe

    def poll(self):
        return self.status

    def dispose(self):
        self._subscribers.clear()

    def _publish(self, status):
        if status == self.status:
            return
        self.status = status
        for callback in list(self._subscribers):
            callback(status)


class FilePresence(Presence):
    """Presence backed by heartbeat files in a shared directory.

    Call poll() periodically (the UI does it from a QTimer). Each poll
    rewrites this instance's heartbeat and recounts the fresh ones.
    """

    def __init__(self, directory=DEFAULT_PRESENCE_DIR, session_id=None, clock=time.time):
        super().__init__()
        self.directory = directory
        self.session_id = session_id or generate_session_id()
        self._clock = clock
        self._path = os.path.join(directory, f"{self.session_id}.json")
        self._disposed = False

    def poll(self):
        if self._disposed:
            return self.status
        now = self._clock()
        try:
            os.makedirs(self.directory, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as f:
                json.dump({"online": True, "lastSeen": now}, f)
            count = self._count_fresh(now)
        except OSError as e:
            print(f"  [presence.poll] directory unusable: {e}")
            self._publish(PresenceStatus(0, False))
            return self.status
        self._publish(PresenceStatus(count, True))
        return self.status

    def _count_fresh(self, now):
        count = 0
        for name in os.listdir(self.directory):
            if not name.endswith(".json"):
                continue
            path = os.path.join(self.directory, name)
            try:
                with open(path, "r", encoding="utf-8") as f:
                    last_seen = json.load(f).get("lastSeen", 0)
            except (OSError, ValueError, AttributeError):
                continue
            if not isinstance(last_seen, (int, float)):
                continue
            if now - last_seen <= STALE_AFTER:
                count += 1
                continue
            # Left behind by an instance that never disposed
            try:
                os.remove(path)
            except OSError:
                pass
        return count

    def dispose(self):
        """Remove this instance's heartbeat and stop notifying."""
        if self._disposed:
            return
        self._disposed = True
        try:
            os.remove(self._path)
        except FileNotFoundError:
            pass
        self._publish(PresenceStatus(0, False))
        super().dispose()
