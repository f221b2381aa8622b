"""
Conversion between the browser's numeric byte list and host ``bytes``.

``page.evaluate`` can only return JSON-serialisable values, so an
ArrayBuffer comes back as a plain list of ints. These two functions are the
only place that representation exists on the host side.
"""

from __future__ import annotations

from typing import Any, List, Sequence


def bytes_from_numeric_sequence(seq: Any) -> bytes:
    """
    Rebuild a binary buffer from a list of unsigned byte values.

    None is treated as an empty payload.

    Raises:
        ValueError: if ``seq`` is not a list/tuple of ints in 0..255.
    """
    if seq is None:
        return b""
    if not isinstance(seq, (list, tuple)):
        raise ValueError(f"Expected a list of byte values, got {type(seq).__name__}")
    for idx, value in enumerate(seq):
        # bool is an int subclass; a True in the payload means the script is wrong.
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"Non-integer byte value at index {idx}: {value!r}")
        if not 0 <= value <= 255:
            raise ValueError(f"Byte value out of range at index {idx}: {value}")
    return bytes(seq)


def numeric_sequence_from_bytes(data: bytes | bytearray | Sequence[int]) -> List[int]:
    return list(bytes(data))
