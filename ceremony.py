# Copyright (c) 2026 Signer — MIT License

__version__ = "1.0"

"""Ceremony core for Spirit Messenger.

Each tick draws a handful of random digit strings ("veils"), checks that
every configured frequency appears in every veil, and on alignment distills
the first veil into an index into the lexicon.

The core holds no state of its own. The config is passed in explicitly and
the caller decides what to do with the result (append to the log, show the
veils, persist).

Usage:
    from ceremony import Config, tick, load_lexicon
    lexicon = load_lexicon("top-10k-english-words.txt")
    config  = Config(patterns=["528"])
    result  = tick(config, len(lexicon))     # TickResult(veils=(...), emitted=None)
    if result.emitted is not None:
        config.log.append(result.emitted)
"""

import os
import random
from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional, Tuple

# ── Ranges and defaults ───────────────────────────────────────────
RATE_RANGE = (1, 30)        # ticks per second
LENGTH_RANGE = (6, 30)      # digits per veil; distill reads the last 6
CHANNELS_RANGE = (1, 30)    # veils per tick

DEFAULT_RATE = 2
DEFAULT_LENGTH = 10
DEFAULT_CHANNELS = 1
DEFAULT_PATTERNS = ("528",)

# Trailing digits consumed by distill()
_DISTILL_DIGITS = 6

_PROJECT_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_LEXICON_FILE = os.path.join(_PROJECT_DIR, "top-10k-english-words.txt")


@dataclass
class Config:
    """Ceremony settings plus the accumulated utterance log.

    rate:     ticks per second
    length:   digits per veil (the aperture)
    channels: veils generated per tick (the witnesses)
    patterns: frequencies that must appear in every veil
    log:      distilled lexicon indexes, oldest first
    """

    rate: int = DEFAULT_RATE
    length: int = DEFAULT_LENGTH
    channels: int = DEFAULT_CHANNELS
    patterns: List[str] = field(default_factory=lambda: list(DEFAULT_PATTERNS))
    log: List[int] = field(default_factory=list)

    def copy(self):
        return Config(self.rate, self.length, self.channels,
                      list(self.patterns), list(self.log))

    def to_dict(self):
        return {
            "rate": self.rate,
            "length": self.length,
            "channels": self.channels,
            "patterns": list(self.patterns),
            "log": list(self.log),
        }


class TickResult(NamedTuple):
    """Outcome of one tick: the veils drawn and the emitted index, if any."""
    veils: Tuple[str, ...]
    emitted: Optional[int]


_IDLE = TickResult((), None)


def clamp(value, bounds):
    lo, hi = bounds
    return max(lo, min(hi, int(value)))


def generate_veil(length):
    """Return a string of exactly `length` random decimal digits.

    Digits are taken from the fractional part of repeated random.random()
    draws until there are enough, then truncated. Not cryptographic.
    """
    veil = ""
    while len(veil) < length:
        veil += ("%.16f" % random.random())[2:]
    return veil[:length]


def all_aligned(patterns, veils):
    """True iff every pattern is a substring of every veil.

    Plain containment, no regex. Empty `veils` is vacuously aligned; callers
    must not treat an empty `patterns` as an alignment (see tick()).
    """
    return all(p in v for p in patterns for v in veils)


def distill(veil, modulus):
    """Map a veil to a lexicon index: its last 6 digits, modulo `modulus`.

    Requires len(veil) >= 6 and modulus >= 1.
    """
    return int(veil[-_DISTILL_DIGITS:]) % modulus


def tick(config, lexicon_size):
    """Run one generate -> match -> distill cycle.

    Args:
        config: Config (only rate-independent fields are read).
        lexicon_size: Number of words currently loaded (0 before loading).

    Returns:
        TickResult. No veils are drawn when the lexicon is empty or there
        are no patterns. Alignment is checked across all veils but only the
        first veil is distilled.
    """
    if lexicon_size <= 0 or not config.patterns:
        return _IDLE

    veils = tuple(generate_veil(config.length) for _ in range(max(1, config.channels)))
    if not all_aligned(config.patterns, veils):
        return TickResult(veils, None)
    return TickResult(veils, distill(veils[0], lexicon_size))


def highlight_spans(patterns, veil):
    """Return sorted (start, end) spans of the first occurrence of each pattern."""
    spans = set()
    for p in patterns:
        if not p:
            continue
        i = veil.find(p)
        if i != -1:
            spans.add((i, i + len(p)))
    return sorted(spans)


def load_lexicon(path=DEFAULT_LEXICON_FILE):
    """Load a newline-separated word list. Blank lines are dropped.

    Returns an empty tuple if the file does not exist, so the ceremony just
    stays idle until a lexicon is available.
    """
    if not os.path.exists(path):
        return ()
    with open(path, "r", encoding="utf-8") as f:
        return tuple(line.strip() for line in f if line.strip())


def words_for(log, lexicon):
    """Render logged indexes as words, skipping any the lexicon cannot address."""
    n = len(lexicon)
    return [lexicon[i] for i in log if 0 <= i < n and lexicon[i]]
