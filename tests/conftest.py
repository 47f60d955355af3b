# Copyright (c) 2026 Signer — MIT License

import pytest
from PySide6.QtCore import QCoreApplication, QEventLoop, QTimer


@pytest.fixture(scope="session")
def qapp():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


def run_loop(ms):
    """Spin the Qt event loop for roughly `ms` milliseconds."""
    loop = QEventLoop()
    QTimer.singleShot(ms, loop.quit)
    loop.exec()


class MemoryStore:
    """In-memory stand-in for LocalStore."""

    def __init__(self, state=None):
        self.state = dict(state or {})
        self.saves = []

    def load(self):
        return dict(self.state)

    def save(self, config):
        self.saves.append(config.copy())


class FailingStore(MemoryStore):
    """Store whose writes always fail, like a full or read-only disk."""

    def save(self, config):
        raise OSError("disk full")
