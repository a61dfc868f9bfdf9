"""Password based key derivation functions and their registry.

This module provides:
- PBKDF2 (HMAC-SHA1) whose cost is an iteration count
- Argon2id whose cost is "m=<KiB>,t=<iterations>,p=<parallelism>"
- KeyDerivationRegistry: explicit name -> KDF lookup table

Costs are strings so that each KDF can define its own units; they are stored
verbatim in the envelope header.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum, auto
from typing import Protocol

from argon2.low_level import Type, hash_secret_raw
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from notesync.core.crypto.errors import CryptoValidationError, UnknownAlgorithmError

SALT_SIZE = 16  # 128 bits

PBKDF2 = "pbkdf2"
ARGON2ID = "argon2id"


class CostTier(Enum):
    """How expensive a key derivation should be.

    LOW is meant for transfer codes, which already carry full entropy.
    HIGH is meant for human chosen passwords, e.g. safe passwords.
    """

    LOW = auto()
    DEFAULT = auto()
    HIGH = auto()


class KeyDerivationFunction(Protocol):
    """A password to key function usable inside an envelope."""

    name: str
    expected_salt_size: int

    def recommended_cost(self, tier: CostTier) -> str: ...

    def derive_key(self, password: str, key_length: int, salt: bytes, cost: str) -> bytes: ...


class Pbkdf2:
    """PBKDF2 with HMAC-SHA1."""

    name = PBKDF2
    expected_salt_size = SALT_SIZE

    COSTS = {
        CostTier.LOW: "1500",
        CostTier.DEFAULT: "10000",
        CostTier.HIGH: "25000",
    }

    def recommended_cost(self, tier: CostTier) -> str:
        return self.COSTS[tier]

    def derive_key(self, password: str, key_length: int, salt: bytes, cost: str) -> bytes:
        iterations = self.parse_cost(cost)
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA1(),
            length=key_length,
            salt=salt,
            iterations=iterations,
        )
        return kdf.derive(password.encode("utf-8"))

    @staticmethod
    def parse_cost(cost: str) -> int:
        """Parse an iteration count.

        Raises:
            CryptoValidationError: If the cost is not a positive integer.
        """
        if not cost or not cost.isdigit() or int(cost) < 1:
            raise CryptoValidationError(f"Invalid PBKDF2 cost: {cost!r}")
        return int(cost)


@dataclass(frozen=True)
class Argon2Cost:
    """Parsed Argon2 cost parameters."""

    memory_kib: int
    iterations: int
    parallelism: int

    _PATTERN = re.compile(r"^m=(\d+),t=(\d+),p=(\d+)$")

    @classmethod
    def parse(cls, cost: str) -> Argon2Cost:
        """Parse a cost string like "m=64000,t=3,p=1".

        Raises:
            CryptoValidationError: If the string is malformed or a value is zero.
        """
        match = cls._PATTERN.match(cost.replace(" ", "")) if cost else None
        if match is None:
            raise CryptoValidationError(f"Invalid Argon2 cost: {cost!r}")
        memory_kib, iterations, parallelism = (int(value) for value in match.groups())
        if memory_kib < 1 or iterations < 1 or parallelism < 1:
            raise CryptoValidationError(f"Argon2 cost values must be positive: {cost!r}")
        return cls(memory_kib, iterations, parallelism)

    def format(self) -> str:
        return f"m={self.memory_kib},t={self.iterations},p={self.parallelism}"


class Argon2id:
    """Argon2id via argon2-cffi."""

    name = ARGON2ID
    expected_salt_size = SALT_SIZE

    COSTS = {
        CostTier.LOW: "m=1024,t=2,p=1",
        CostTier.DEFAULT: "m=32768,t=3,p=1",
        CostTier.HIGH: "m=64000,t=3,p=1",
    }

    def recommended_cost(self, tier: CostTier) -> str:
        return self.COSTS[tier]

    def derive_key(self, password: str, key_length: int, salt: bytes, cost: str) -> bytes:
        parsed = Argon2Cost.parse(cost)
        return hash_secret_raw(
            secret=password.encode("utf-8"),
            salt=salt,
            time_cost=parsed.iterations,
            memory_cost=parsed.memory_kib,
            parallelism=parsed.parallelism,
            hash_len=key_length,
            type=Type.ID,
        )


class KeyDerivationRegistry:
    """Lookup table of key derivation functions by name."""

    def __init__(self, functions: Iterable[KeyDerivationFunction]) -> None:
        self._functions: dict[str, KeyDerivationFunction] = {}
        for function in functions:
            if function.name in self._functions:
                raise CryptoValidationError(f"Duplicate KDF name: {function.name}")
            self._functions[function.name] = function

    def lookup(self, name: str) -> KeyDerivationFunction:
        """Get the KDF registered under `name`.

        Raises:
            UnknownAlgorithmError: If no such KDF is registered.
        """
        try:
            return self._functions[name]
        except KeyError:
            raise UnknownAlgorithmError(name) from None

    def names(self) -> list[str]:
        return list(self._functions)

    def __contains__(self, name: object) -> bool:
        return name in self._functions


def default_kdf_registry() -> KeyDerivationRegistry:
    """Build a registry with every supported key derivation function."""
    return KeyDerivationRegistry([Pbkdf2(), Argon2id()])
