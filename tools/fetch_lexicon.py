# Copyright (c) 2026 Signer — MIT License

"""
Download the 10,000-word English lexicon and save it next to ceremony.py.

Words are stored one per line, in frequency order. Order matters: a
distilled index addresses the word at that line, so replacing the list
changes what every saved log reads as.

Usage: python tools/fetch_lexicon.py [URL]
"""

import os
import sys
import urllib.request

SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_DIR = os.path.dirname(SCRIPT_DIR)
sys.path.insert(0, PROJECT_DIR)

from ceremony import DEFAULT_LEXICON_FILE

DEFAULT_URL = (
    "https://raw.githubusercontent.com/first20hours/google-10000-english/"
    "master/google-10000-english.txt"
)
EXPECTED_WORDS = 10000


def fetch_lexicon(url=DEFAULT_URL, output=DEFAULT_LEXICON_FILE):
    print(f"Fetching {url}")
    with urllib.request.urlopen(url, timeout=30) as resp:
        text = resp.read().decode("utf-8")

    words = [w.strip() for w in text.splitlines() if w.strip()]
    if not words:
        print("ERROR: downloaded list is empty")
        return False

    with open(output, "w", encoding="utf-8") as f:
        f.write("\n".join(words) + "\n")

    print(f"Saved {output}")
    print(f"  {len(words)} words, {os.path.getsize(output) / 1024:.1f} KB")
    if len(words) != EXPECTED_WORDS:
        print(f"  WARNING: expected {EXPECTED_WORDS} words")
    return True


if __name__ == "__main__":
    ok = fetch_lexicon(*sys.argv[1:2])
    sys.exit(0 if ok else 1)
