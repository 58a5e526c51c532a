"""Source text fingerprints.

A fingerprint is a change-detection hint used to warn before generating cards
twice from the same text. It is a 32-bit rolling hash (``h * 31 + unit``)
over the UTF-16 code units of the text, rendered as signed hexadecimal, so the
same text yields the same value on every run and platform. Distinct texts can
collide; callers must not treat a match as proof of identity.
"""

import struct

_MASK = 0xFFFFFFFF


def _to_int32(value: int) -> int:
    value &= _MASK
    return value - 0x100000000 if value & 0x80000000 else value


def fingerprint(text: str) -> str:
    """
    Compute the fingerprint of a source text.

    Args:
        text (str): Full source text

    Returns:
        str: Signed lowercase hexadecimal digest, e.g. ``"5e918d2"`` or ``"-1a2b"``
    """
    value = 0
    for (unit,) in struct.iter_unpack("<H", text.encode("utf-16-le", "surrogatepass")):
        value = _to_int32((value << 5) - value + unit)
    return format(value, "x")
