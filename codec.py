# Copyright (c) 2026 Signer — MIT License

"""Settings codec: Config <-> link query string and storage blob.

Link fields:
    h  rate (ticks per second)
    a  length (aperture, digits per veil)
    w  channels (witnesses)
    f  comma-joined patterns          (omitted when empty)
    p  packed utterance log           (omitted when empty)

The log is packed as 2 little-endian bytes per index and written as
URL-safe base64 with the padding stripped, so a few hundred words still fit
comfortably in a link:

    encode_log([8999, 1])   -> "JyMBAA"
    decode_log("JyMBAA")    -> [8999, 1]

Decoding never raises. Corrupt input yields a partial (or empty) record and
the session fills the gaps from defaults, see merge().
"""

import base64
import binascii
import json
import re
import struct
from urllib.parse import parse_qs, urlencode

from ceremony import Config

_FIELD_RATE = "h"
_FIELD_LENGTH = "a"
_FIELD_CHANNELS = "w"
_FIELD_PATTERNS = "f"
_FIELD_LOG = "p"

_INT_FIELDS = (
    (_FIELD_RATE, "rate"),
    (_FIELD_LENGTH, "length"),
    (_FIELD_CHANNELS, "channels"),
)

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")

_CONFIG_KEYS = ("rate", "length", "channels", "patterns", "log")


def encode_log(log):
    """Pack indexes into URL-safe, unpadded base64 (2 bytes each, little-endian).

    Values wrap to 16 bits. An empty log encodes to "".
    """
    if not log:
        return ""
    raw = struct.pack(f"<{len(log)}H", *(int(i) & 0xFFFF for i in log))
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_log(encoded):
    """Reverse encode_log(). Any malformed input returns []."""
    if not encoded:
        return []
    padded = encoded + "=" * (-len(encoded) % 4)
    try:
        raw = base64.b64decode(padded, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError):
        return []
    if len(raw) % 2:
        return []
    return list(struct.unpack(f"<{len(raw) // 2}H", raw))


def _parse_int(text):
    """Leading decimal integer of `text`, or None ("12abc" -> 12, "abc" -> None)."""
    m = _LEADING_INT.match(text)
    return int(m.group(1)) if m else None


def encode(config):
    """Serialize a Config to a link query string (no leading '?')."""
    params = [
        (_FIELD_RATE, str(config.rate)),
        (_FIELD_LENGTH, str(config.length)),
        (_FIELD_CHANNELS, str(config.channels)),
    ]
    if config.patterns:
        params.append((_FIELD_PATTERNS, ",".join(config.patterns)))
    if config.log:
        params.append((_FIELD_LOG, encode_log(config.log)))
    return urlencode(params)


def decode(query):
    """Parse a link query string into a partial config dict.

    Only fields present with a usable value are returned. Integer fields
    that do not start with a number are dropped rather than reported.
    """
    if query.startswith("?"):
        query = query[1:]
    params = parse_qs(query)
    state = {}

    for key, name in _INT_FIELDS:
        values = params.get(key)
        if values and values[0]:
            n = _parse_int(values[0])
            if n is not None:
                state[name] = n

    values = params.get(_FIELD_PATTERNS)
    if values and values[0]:
        state["patterns"] = [p for p in values[0].split(",") if p]

    values = params.get(_FIELD_LOG)
    if values and values[0]:
        state["log"] = decode_log(values[0])

    return state


def dumps(config):
    """Serialize the full config as the JSON storage blob."""
    return json.dumps(config.to_dict(), separators=(",", ":"))


def loads(text):
    """Parse a storage blob into a partial config dict.

    Invalid JSON, a non-object, unknown keys and wrongly typed values are
    all discarded silently.
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return {}
    if not isinstance(data, dict):
        return {}

    state = {}
    for key in ("rate", "length", "channels"):
        v = data.get(key)
        if isinstance(v, int) and not isinstance(v, bool):
            state[key] = v
    patterns = data.get("patterns")
    if isinstance(patterns, list) and all(isinstance(p, str) for p in patterns):
        state["patterns"] = list(patterns)
    log = data.get("log")
    if isinstance(log, list) and all(isinstance(i, int) and not isinstance(i, bool) for i in log):
        state["log"] = list(log)
    return state


def merge(partial, base=None):
    """Overlay a partial config dict onto `base` (defaults if None)."""
    merged = (base or Config()).copy()
    for key in _CONFIG_KEYS:
        if key in partial:
            value = partial[key]
            setattr(merged, key, list(value) if isinstance(value, list) else value)
    return merged
