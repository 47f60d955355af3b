# Copyright (c) 2026 Signer — MIT License

"""Periodic ceremony driver on the Qt event loop.

Two states, Stopped and Running. While running, a QTimer fires every
1000 / rate ms and each timeout runs one ceremony tick to completion before
the event loop does anything else.

start() hands back a token. Every run gets a fresh token, and a timeout
whose token is no longer the live one is ignored, so a rate change can never
leave two timers ticking.

Usage:
    sched = CeremonyScheduler(lexicon_size=lambda: len(lexicon))
    token = sched.start(config, on_tick)
    sched.reconfigure_rate(10)          # restarts on the new period
    sched.stop()
    sched.close()                       # on teardown
"""

import time

from PySide6.QtCore import QObject, Qt, QTimer, Signal

from ceremony import tick


class CeremonyScheduler(QObject):
    ticked = Signal(object)  # TickResult

    def __init__(self, lexicon_size, parent=None):
        """
        Args:
            lexicon_size: Callable returning the current lexicon size. Read on
                          every tick so a lexicon that loads late is picked up.
            parent: Optional QObject owner; destroying it destroys the timer.
        """
        super().__init__(parent)
        self._lexicon_size = lexicon_size
        self._token = 0
        self._config = None
        self._on_tick = None

        # One timer for the scheduler's lifetime, owned by it
        self._timer = QTimer(self)
        self._timer.setTimerType(Qt.PreciseTimer)
        self._timer.timeout.connect(self._on_timeout)

    @property
    def is_running(self):
        return self._timer.isActive()

    @property
    def token(self):
        """Token of the current run, or None when stopped."""
        return self._token if self._timer.isActive() else None

    def start(self, config, on_tick=None):
        """Start ticking at config.rate. Idempotent while running.

        The config is held by reference: pattern, length and channel edits
        take effect on the next tick. Rate edits need reconfigure_rate().

        Returns the cancellation token for this run.
        """
        if self._timer.isActive():
            return self._token

        self._config = config
        self._on_tick = on_tick
        self._token += 1

        rate = config.rate if config.rate > 0 else 1
        self._timer.setInterval(max(1, round(1000 / rate)))
        self._timer.start()
        print(f"  [scheduler.start] token={self._token} rate={rate}/s "
              f"interval={self._timer.interval()}ms")
        return self._token

    def stop(self, token=None):
        """Cancel the running timer. No-op when stopped or for a stale token."""
        if not self._timer.isActive():
            return
        if token is not None and token != self._token:
            return
        self._timer.stop()
        print(f"  [scheduler.stop] token={self._token}")

    def reconfigure_rate(self, rate):
        """Apply a new rate. While running this is a stop-then-start."""
        if self._config is not None:
            self._config.rate = rate
        if not self._timer.isActive():
            return None
        config, on_tick = self._config, self._on_tick
        self.stop()
        return self.start(config, on_tick)

    def close(self):
        """Terminal teardown: no timer survives this call."""
        self.stop()
        self._config = None
        self._on_tick = None

    def _on_timeout(self):
        self._fire(self._token)

    def _fire(self, token):
        if token != self._token or not self._timer.isActive() or self._config is None:
            return
        t0 = time.perf_counter()
        result = tick(self._config, self._lexicon_size())
        if self._on_tick is not None:
            self._on_tick(result)
        self.ticked.emit(result)
        elapsed = (time.perf_counter() - t0) * 1000
        if result.emitted is not None:
            print(f"  [scheduler.tick] emitted={result.emitted}  ({elapsed:.2f}ms)")
