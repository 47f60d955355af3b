# Copyright (c) 2026 Signer — MIT License

"""Session controller: owns the config and keeps it persisted.

The session is the single owner of the Config. It builds it once at
startup (link first, then the local store, then defaults), applies every
user action to it, appends utterances as ticks emit them, and rewrites both
the link and the store after every change.

Usage:
    session = Session(LocalStore(), link="?h=5&f=528,741")
    session.set_lexicon(load_lexicon())
    session.play()
    ...
    session.words          # ["river", "open", ...]
    session.link           # "h=5&a=10&w=1&f=528%2C741&p=..."
    session.close()
"""

import os
import re
import time

import codec
from ceremony import (
    CHANNELS_RANGE, LENGTH_RANGE, RATE_RANGE, Config, clamp, words_for,
)
from scheduler import CeremonyScheduler

STORAGE_KEY = "spiritMessengerState"
DEFAULT_STORE_PATH = os.path.join(
    os.path.expanduser("~"), ".spirit-messenger", f"{STORAGE_KEY}.json"
)

_NON_DIGITS = re.compile(r"\D")


class PatternRejected(ValueError):
    """A frequency the user typed cannot be added."""


class LocalStore:
    """JSON blob on disk, the desktop stand-in for browser local storage."""

    def __init__(self, path=DEFAULT_STORE_PATH):
        self.path = path

    def load(self):
        """Return the stored partial config, or {} if missing or unreadable."""
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                text = f.read()
        except OSError:
            return {}
        return codec.loads(text)

    def save(self, config):
        parent = os.path.dirname(self.path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            f.write(codec.dumps(config))


def sanitize_pattern(text):
    """Strip everything but digits, as the pattern input does while typing."""
    return _NON_DIGITS.sub("", text)


def _clamped(config):
    config.rate = clamp(config.rate, RATE_RANGE)
    config.length = clamp(config.length, LENGTH_RANGE)
    config.channels = clamp(config.channels, CHANNELS_RANGE)
    return config


class Session:
    def __init__(self, store, link="", lexicon=(), parent=None):
        """
        Args:
            store: LocalStore (anything with load() and save(config)).
            link: Query string the app was opened with ("" for none).
            lexicon: Words, if already loaded. Can be set later.
            parent: Optional QObject owner for the scheduler.
        """
        self.store = store
        self.lexicon = tuple(lexicon)
        self.veils = ()
        self.source, self.config = self._load(link)
        self.link = codec.encode(self.config)
        self.scheduler = CeremonyScheduler(lambda: len(self.lexicon), parent)
        self._persist()

    def _load(self, link):
        t0 = time.perf_counter()
        from_link = codec.decode(link) if link else {}
        if from_link:
            source, partial = "link", from_link
        else:
            from_store = self.store.load()
            source, partial = ("store", from_store) if from_store else ("defaults", {})
        config = _clamped(codec.merge(partial))
        print(f"  [session.load] source={source} fields={len(partial)}  "
              f"({(time.perf_counter()-t0)*1000:.2f}ms)")
        return source, config

    def _persist(self):
        self.link = codec.encode(self.config)
        try:
            self.store.save(self.config)
        except OSError as e:
            print(f"  [session.persist] failed: {e}")

    # ── Lexicon ────────────────────────────────────────────────

    def set_lexicon(self, words):
        """Install the lexicon. It is read-only once loaded."""
        if self.lexicon:
            return
        self.lexicon = tuple(words)
        print(f"  [session.set_lexicon] {len(self.lexicon)} words")

    @property
    def words(self):
        return words_for(self.config.log, self.lexicon)

    # ── Playback ───────────────────────────────────────────────

    @property
    def playing(self):
        return self.scheduler.is_running

    def play(self):
        return self.scheduler.start(self.config, self._on_tick)

    def pause(self):
        self.scheduler.stop()

    def toggle(self):
        if self.playing:
            self.pause()
        else:
            self.play()
        return self.playing

    def _on_tick(self, result):
        if result.veils:
            self.veils = result.veils
        if result.emitted is not None:
            self.config.log.append(result.emitted)
            self._persist()

    def close(self):
        self.scheduler.close()

    # ── Settings ───────────────────────────────────────────────

    def set_rate(self, rate):
        rate = clamp(rate, RATE_RANGE)
        if rate == self.config.rate:
            return
        self.config.rate = rate
        self.scheduler.reconfigure_rate(rate)
        self._persist()

    def set_length(self, length):
        self.config.length = clamp(length, LENGTH_RANGE)
        self._persist()

    def set_channels(self, channels):
        self.config.channels = clamp(channels, CHANNELS_RANGE)
        self._persist()

    def add_pattern(self, text):
        """Add a frequency. Raises PatternRejected if it cannot be used."""
        pattern = sanitize_pattern(text)
        if not pattern:
            raise PatternRejected("Frequency must contain digits")
        if len(pattern) > self.config.length:
            raise PatternRejected(
                f"Frequency length cannot exceed aperture ({self.config.length})"
            )
        self.config.patterns.append(pattern)
        self._persist()
        return pattern

    def remove_pattern(self, index):
        del self.config.patterns[index]
        self._persist()

    def clear_log(self):
        self.config.log.clear()
        self._persist()

    def reset(self):
        """Restore default settings, keeping the utterance log."""
        defaults = Config()
        self.config.length = defaults.length
        self.config.channels = defaults.channels
        self.config.patterns[:] = defaults.patterns
        if self.config.rate != defaults.rate:
            self.config.rate = defaults.rate
            self.scheduler.reconfigure_rate(defaults.rate)
        self._persist()
