"""Transfer codes: the human-copyable secret protecting the cloud repository.

A transfer code is generated once on the first device and typed in on every
other device. It uses an alphabet without characters that are easily
confused when copied by hand.
"""

from __future__ import annotations

import base64

from notesync.core.crypto import RandomSource

CODE_LENGTH = 16
GROUP_SIZE = 4

# Lowercase letters and digits without 0/o and 1/l
UNMIXABLE_ALPHABET = "abcdefghijkmnpqrstuvwxyz23456789"
_ALPHABET_SET = frozenset(UNMIXABLE_ALPHABET)


def is_code_set(code: str | None) -> bool:
    return bool(code and code.strip())


def is_of_unmixable_alphabet(text: str) -> bool:
    return all(char in _ALPHABET_SET for char in text)


def generate_transfer_code(source: RandomSource, length: int = CODE_LENGTH) -> str:
    """Generate a new transfer code.

    Base64 encodes random bytes and keeps only the characters of the
    unmixable alphabet, repeating until enough characters are collected.

    Args:
        source: Random source to draw from.
        length: Number of characters.

    Returns:
        The new transfer code.
    """
    code = ""
    while len(code) < length:
        remaining = length - len(code)
        encoded = base64.b64encode(source.get_random_bytes(remaining * 3 // 4 + 1))
        code += "".join(char for char in encoded.decode("ascii") if char in _ALPHABET_SET)
    return code[:length]


def try_sanitize_user_input(text: str | None) -> str | None:
    """Normalize a transfer code typed in by the user.

    Spaces, dashes and case are ignored, so the code can be entered the way
    it is displayed.

    Returns:
        The sanitized code, or None if the input cannot be a transfer code.
    """
    if text is None or not is_code_set(text):
        return None
    sanitized = "".join(text.split()).replace("-", "").lower()
    if len(sanitized) != CODE_LENGTH or not is_of_unmixable_alphabet(sanitized):
        return None
    return sanitized


def format_for_display(code: str | None) -> str:
    """Split a transfer code into groups of four, e.g. "abcd efgh ijkm npqr"."""
    if code is None or not is_code_set(code):
        return ""
    return " ".join(code[i:i + GROUP_SIZE] for i in range(0, len(code), GROUP_SIZE))
