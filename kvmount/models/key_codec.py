"""
Key codec - filesystem-safe display names for arbitrary byte-string keys.

A raw key is rendered as fragments joined by FRAG_SEPARATOR. Literal
fragments hold runs of safe characters; escaped fragments are ESCAPE_MARKER
followed by lowercase hex:

    b"\\x00\\x2a\\x27\\x10test"  ->  "@002a2710:test"
    b".evil"                   ->  "@2e:evil"
"""

import binascii
import string

from kvmount.models.exceptions import MalformedNameError

FRAG_SEPARATOR = ":"
ESCAPE_MARKER = "@"

# Safe runs at the ends of a key must be longer than this to stay literal
PRETTY_THRESHOLD = 2

_SAFE_BYTES = frozenset(
    (string.ascii_letters + string.digits + ".,-_").encode("ascii")
)


def _is_safe(byte: int) -> bool:
    return byte in _SAFE_BYTES


def _leading_safe_run(key: bytes) -> int:
    n = 0
    while n < len(key) and _is_safe(key[n]):
        n += 1
    return n


def _trailing_safe_run(key: bytes) -> int:
    n = 0
    while n < len(key) and _is_safe(key[len(key) - 1 - n]):
        n += 1
    return n


def encode_key(key: bytes) -> str:
    """
    Encode a raw key as a display name.

    Only safe runs at the beginning and end are kept literal; scanning the
    middle would split binary data into a fragment per byte.

    Args:
        key: Raw key bytes.

    Returns:
        Display name that decode_key() maps back to exactly `key`.
    """
    if not key:
        return ESCAPE_MARKER

    left = right = ""
    middle = key

    # A leading "." must end up escaped, so such keys never get a literal
    # left fragment and the right scan never reaches their first byte.
    dot_prefixed = key.startswith(b".")

    if not dot_prefixed:
        n = _leading_safe_run(middle)
        if n > PRETTY_THRESHOLD:
            left = middle[:n].decode("ascii")
            middle = middle[n:]

    tail_start = 1 if dot_prefixed else 0
    n = _trailing_safe_run(middle[tail_start:])
    if n > PRETTY_THRESHOLD:
        right = middle[len(middle) - n:].decode("ascii")
        middle = middle[: len(middle) - n]

    fragments = []
    if left:
        fragments.append(left)
    if middle:
        fragments.append(ESCAPE_MARKER + middle.hex())
    if right:
        fragments.append(right)
    return FRAG_SEPARATOR.join(fragments).strip(FRAG_SEPARATOR)


def decode_key(display: str) -> bytes:
    """
    Decode a display name back to its raw key.

    Args:
        display: Name produced by encode_key().

    Returns:
        The raw key bytes.

    Raises:
        MalformedNameError: If a fragment is empty, holds invalid hex,
            or holds non-ASCII literal characters.
    """
    key = bytearray()
    for frag in display.split(FRAG_SEPARATOR):
        if not frag:
            raise MalformedNameError(display, "empty fragment")
        if frag.startswith(ESCAPE_MARKER):
            try:
                key += binascii.unhexlify(frag[1:])
            except ValueError as e:
                raise MalformedNameError(display, f"bad hex fragment {frag!r}") from e
            # Only the lone "@" of the empty key may escape nothing
            if len(frag) == 1 and display != ESCAPE_MARKER:
                raise MalformedNameError(display, "empty escape fragment")
        else:
            try:
                key += frag.encode("ascii")
            except UnicodeEncodeError as e:
                raise MalformedNameError(display, "non-ASCII literal") from e
    return bytes(key)
