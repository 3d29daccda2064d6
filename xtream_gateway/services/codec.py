"""
Stream identifier codec.

Catalog ids are UUIDs; Xtream clients expect small integers. A stream id is
the first 32 bits of the UUID read as an unsigned integer. Collisions are
possible in principle and the width must stay at 32 bits because clients
persist these ids.
"""
import logging
from typing import Iterable, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")

STREAM_ID_HEX_DIGITS = 8


def encode_stream_id(catalog_id: str) -> int:
    """
    Map a catalog UUID to its numeric stream id.

    Raises ValueError if the id does not start with 8 hex digits.
    """
    digits = str(catalog_id).replace("-", "")[:STREAM_ID_HEX_DIGITS]
    if len(digits) < STREAM_ID_HEX_DIGITS:
        raise ValueError(f"Catalog id too short for a stream id: {catalog_id!r}")
    return int(digits, 16)


def decode_stream_id(stream_id: Union[int, str], snapshot: Iterable[T]) -> Optional[T]:
    """
    Find the catalog entry whose encoded id equals ``stream_id``.

    Linear scan over ``snapshot`` (objects with an ``id`` attribute); the
    first match wins. Returns None when nothing matches, including for
    non-numeric input.
    """
    wanted = str(stream_id).strip()
    if not wanted.isdigit():
        return None

    for entry in snapshot:
        try:
            candidate = encode_stream_id(entry.id)
        except ValueError:
            logger.debug(f"Skipping catalog entry with malformed id {entry.id!r}")
            continue
        if str(candidate) == wanted:
            return entry
    return None
