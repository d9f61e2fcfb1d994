"""Ledger message codec: ScoreRecord <-> ``name:wpm:mistakes:cpm``."""
import base64

from typeboard.domain.errors import DecodeError
from typeboard.domain.score import ScoreRecord

SEPARATOR = ":"


def encode(record: ScoreRecord) -> str:
    if SEPARATOR in record.name:
        raise ValueError(f"name must not contain {SEPARATOR!r}")
    return SEPARATOR.join(
        [record.name, str(record.wpm), str(record.mistakes), str(record.cpm)]
    )


def encode_message(record: ScoreRecord) -> bytes:
    """UTF-8 payload handed to the ledger client."""
    return encode(record).encode("utf-8")


def parse(line: str) -> ScoreRecord:
    """Strict decode. Raises DecodeError on anything but four well-formed fields."""
    parts = line.split(SEPARATOR)
    if len(parts) != 4:
        raise DecodeError(f"expected 4 fields, got {len(parts)}")
    name, *counts = parts
    if not name.strip():
        raise DecodeError("empty name")
    values = []
    for raw in counts:
        # isdigit() also accepts superscripts and other unicode digits
        if not raw.isascii() or not raw.isdigit():
            raise DecodeError(f"non-numeric field {raw!r}")
        values.append(int(raw))
    return ScoreRecord(name, *values)


def decode(line: str) -> ScoreRecord | None:
    try:
        return parse(line)
    except DecodeError:
        return None


def decode_message(payload) -> ScoreRecord | None:
    """
    Decode a ledger message as served by the mirror API (base64 text) or as
    raw bytes. Returns None for anything undecodable.
    """
    try:
        if isinstance(payload, str):
            payload = base64.b64decode(payload, validate=True)
        if not isinstance(payload, (bytes, bytearray)):
            return None
        return parse(bytes(payload).decode("utf-8"))
    except (ValueError, DecodeError):
        return None
