"""Sources of cryptographic randomness.

All code that needs random bytes receives a RandomSource instead of calling
os.urandom directly, so tests can inject deterministic fakes.
"""

from __future__ import annotations

import base64
import os
from typing import Protocol


class RandomSource(Protocol):
    """Provider of random bytes."""

    def get_random_bytes(self, count: int) -> bytes:
        """Return `count` random bytes."""
        ...


class OsRandomSource:
    """Random source backed by the operating system CSPRNG."""

    def get_random_bytes(self, count: int) -> bytes:
        if count < 0:
            raise ValueError("count must not be negative")
        return os.urandom(count)


def generate_random_base62(length: int, source: RandomSource) -> str:
    """Generate a random string of letters and digits.

    Used for OAuth state and PKCE code verifiers.

    Args:
        length: Number of characters to generate.
        source: Random source to draw from.

    Returns:
        A string of `length` characters from [0-9A-Za-z].
    """
    if length < 0:
        raise ValueError("length must not be negative")

    result = ""
    while len(result) < length:
        remaining = length - len(result)
        encoded = base64.b64encode(source.get_random_bytes(remaining * 3 // 4 + 1))
        result += encoded.decode("ascii").replace("+", "").replace("/", "").replace("=", "")
    return result[:length]
