"""User input sanitization.

Removes characters that could break HTML or markup contexts downstream and
caps the length. Interior whitespace is always preserved.
"""

from ..config import MAX_INPUT_LENGTH, STRIPPED_CHARACTERS

_STRIP_TABLE = str.maketrans("", "", STRIPPED_CHARACTERS)


def sanitize(raw: str, max_length: int = MAX_INPUT_LENGTH) -> str:
    """Clean text before it is sent.

    Removes < > " ' &, trims surrounding whitespace and truncates.

    Examples:
        >>> sanitize("  <b>Neue Website</b> & Shop  ")
        'bNeue Website/b  Shop'
    """
    return raw.translate(_STRIP_TABLE).strip()[:max_length]


def sanitize_keystrokes(raw: str, max_length: int = MAX_INPUT_LENGTH) -> str:
    """Clean the live input buffer.

    Same character filter and ceiling as sanitize(), but without trimming so
    the space a user is typing between two words survives.
    """
    return raw.translate(_STRIP_TABLE)[:max_length]
