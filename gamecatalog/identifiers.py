"""Identifier helpers: tag-ID derivation and int/str identifier normalisation."""
import re
from typing import Iterator, Optional, Union

from .errors import InvalidInput

Identifier = Union[int, str]

_DIGITS = re.compile(r'^\d+$')


def normalize_title(title) -> str:
    """Return the trimmed, lower-cased form of a tag title.

    Raises:
        InvalidInput: for ``None``, non-string, empty or whitespace-only input.
    """
    if not isinstance(title, str) or not title.strip():
        raise InvalidInput('Invalid tag title: %r' % (title,))
    return title.strip().lower()


def _utf16_units(text: str) -> Iterator[int]:
    data = text.encode('utf-16-le', 'surrogatepass')
    for i in range(0, len(data), 2):
        yield data[i] | (data[i + 1] << 8)


def derive_tag_id(title) -> int:
    """Derive the numeric directory ID of a tag from its title.

    The title is normalised with :func:`normalize_title`, then hashed with a
    32-bit signed polynomial hash (``h = h * 31 + unit`` over UTF-16 code
    units, wrapped to 32 bits).  The absolute value is returned.

    Two different normalised titles *can* map to the same ID.  That risk is
    accepted: IDs need no persistence and stay stable across restarts.
    """
    h = 0
    for unit in _utf16_units(normalize_title(title)):
        h = (h * 31 + unit) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def normalize_id(value) -> Optional[Identifier]:
    """Return ``int`` for all-digit identifiers, ``str`` otherwise."""
    if value is None:
        return None
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, int):
        return value
    text = str(value)
    return int(text) if _DIGITS.match(text) else text


def canonical_key(value) -> str:
    """Return the directory-name form of an identifier."""
    return str(normalize_id(value))


def ids_equal(a, b) -> bool:
    """Compare two identifiers that may arrive as ``int`` or ``str``."""
    if a is None or b is None:
        return False
    return canonical_key(a) == canonical_key(b)
