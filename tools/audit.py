# Copyright (c) 2026 Signer — MIT License

"""Audit how often a ceremony aligns. Runs ticks offline, no event loop.

Usage: python tools/audit.py [--ticks N] [--length L] [--channels W] FREQ [FREQ ...]
"""
import argparse
import io
import os
import sys
import time
from collections import Counter

if sys.platform == "win32":
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding="utf-8", errors="replace")

SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_DIR = os.path.dirname(SCRIPT_DIR)
sys.path.insert(0, PROJECT_DIR)

from ceremony import Config, DEFAULT_LENGTH, tick

LEXICON_SIZE = 10000

parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
parser.add_argument("patterns", nargs="+")
parser.add_argument("--ticks", type=int, default=100000)
parser.add_argument("--length", type=int, default=DEFAULT_LENGTH)
parser.add_argument("--channels", type=int, default=1)
args = parser.parse_args()

config = Config(length=args.length, channels=args.channels, patterns=args.patterns)

print("=" * 70)
print("ALIGNMENT AUDIT")
print("=" * 70)
print(f"  frequencies: {', '.join(config.patterns)}")
print(f"  aperture: {config.length}  witnesses: {config.channels}  ticks: {args.ticks}")

t0 = time.perf_counter()
emitted = Counter()
for _ in range(args.ticks):
    result = tick(config, LEXICON_SIZE)
    if result.emitted is not None:
        emitted[result.emitted] += 1
elapsed = time.perf_counter() - t0

hits = sum(emitted.values())
rate = hits / args.ticks if args.ticks else 0.0
print(f"\n  Alignments: {hits} ({rate:.4%})  in {elapsed:.2f}s")
if hits:
    print(f"  Mean ticks per utterance: {args.ticks / hits:.1f}")
    print(f"  Distinct indexes: {len(emitted)}")
    print("  Most frequent indexes:")
    for idx, n in emitted.most_common(5):
        print(f"    [{idx:4d}] x{n}")
else:
    print("  No alignments. Shorter frequencies or a longer aperture align more often.")
