"""Find the transfer code that decrypts a cloud repository.

A device remembers its current transfer code and a history of previous ones,
so a device which missed a code rotation can still decrypt. Every candidate
attempt yields a DecryptAttempt result; a wrong key just moves on to the next
candidate, while a malformed or too new blob aborts the search because no
other code could ever decrypt it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum, auto

from notesync.client.models import Settings
from notesync.core.config import TRANSFER_CODE_HISTORY_LIMIT
from notesync.core.crypto import (
    CryptoError,
    Cryptor,
    DecryptionFailedError,
    InvalidCipherFormatError,
    UnknownAlgorithmError,
    UnsupportedRevisionError,
)

logger = logging.getLogger(__name__)


class DecryptErrorKind(Enum):
    """Why a decryption attempt failed."""

    WRONG_KEY = auto()
    INVALID_FORMAT = auto()
    UNSUPPORTED_REVISION = auto()
    UNKNOWN_ALGORITHM = auto()

    @property
    def is_fatal(self) -> bool:
        """Whether trying other codes is pointless."""
        return self is not DecryptErrorKind.WRONG_KEY


@dataclass(frozen=True)
class DecryptAttempt:
    """Result of decrypting a blob with one candidate code."""

    code: str
    plaintext: bytes | None = None
    error_kind: DecryptErrorKind | None = None
    error: CryptoError | None = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None


@dataclass(frozen=True)
class ResolvedCode:
    """A successful resolution.

    Attributes:
        plaintext: The decrypted content.
        code: The transfer code which decrypted it.
        attempts: How many candidates were tried, including the winner.
    """

    plaintext: bytes
    code: str
    attempts: int


def candidate_codes(settings: Settings, user_entered_code: str | None = None) -> list[str]:
    """List the transfer codes to try, in order.

    A code entered by the user is the only candidate. Otherwise the current
    code is tried first, followed by the history.
    """
    if user_entered_code:
        return [user_entered_code]

    candidates: list[str] = []
    if settings.has_transfer_code and settings.transfer_code:
        candidates.append(settings.transfer_code)
    for code in settings.transfer_code_history:
        if code and code not in candidates:
            candidates.append(code)
    return candidates


def try_decrypt_with_code(cryptor: Cryptor, blob: bytes, code: str) -> DecryptAttempt:
    """Decrypt a blob with one code, turning crypto errors into a result."""
    try:
        return DecryptAttempt(code=code, plaintext=cryptor.decrypt(blob, code))
    except InvalidCipherFormatError as e:
        return DecryptAttempt(code=code, error_kind=DecryptErrorKind.INVALID_FORMAT, error=e)
    except UnsupportedRevisionError as e:
        return DecryptAttempt(
            code=code, error_kind=DecryptErrorKind.UNSUPPORTED_REVISION, error=e
        )
    except UnknownAlgorithmError as e:
        return DecryptAttempt(code=code, error_kind=DecryptErrorKind.UNKNOWN_ALGORITHM, error=e)
    except DecryptionFailedError as e:
        return DecryptAttempt(code=code, error_kind=DecryptErrorKind.WRONG_KEY, error=e)


def adopt_transfer_code(
    settings: Settings, code: str, history_limit: int = TRANSFER_CODE_HISTORY_LIMIT
) -> bool:
    """Make `code` the current transfer code if it is not already.

    Returns:
        True if the settings changed and should be saved.
    """
    if settings.transfer_code == code:
        return False
    settings.set_transfer_code(code, history_limit=history_limit)
    return True


class TransferCodeResolver:
    """Tries candidate transfer codes until one decrypts the blob."""

    def __init__(self, cryptor: Cryptor) -> None:
        self.cryptor = cryptor

    def try_decrypt(self, blob: bytes, candidates: Iterable[str]) -> ResolvedCode | None:
        """Decrypt the blob with the first matching candidate.

        Args:
            blob: The encrypted repository.
            candidates: Codes to try, in order.

        Returns:
            The resolution, or None if no candidate matched.

        Raises:
            InvalidCipherFormatError: If the blob is malformed.
            UnsupportedRevisionError: If the blob was written by a newer version.
            UnknownAlgorithmError: If the blob names an unregistered algorithm.
        """
        attempts = 0
        for code in candidates:
            attempts += 1
            attempt = try_decrypt_with_code(self.cryptor, blob, code)
            if attempt.ok and attempt.plaintext is not None:
                logger.debug(f"Transfer code candidate {attempts} decrypted the repository")
                return ResolvedCode(plaintext=attempt.plaintext, code=code, attempts=attempts)
            if attempt.error is not None and attempt.error_kind is not None and attempt.error_kind.is_fatal:
                raise attempt.error
        logger.debug(f"None of {attempts} transfer code candidates matched")
        return None

    def resolve(
        self,
        blob: bytes,
        settings: Settings,
        user_entered_code: str | None = None,
        history_limit: int = TRANSFER_CODE_HISTORY_LIMIT,
    ) -> tuple[ResolvedCode | None, bool]:
        """Decrypt with the device's codes and adopt the winner.

        Returns:
            Tuple of (resolution or None, whether the settings changed).
        """
        resolved = self.try_decrypt(blob, candidate_codes(settings, user_entered_code))
        if resolved is None:
            return None, False
        adopted = adopt_transfer_code(settings, resolved.code, history_limit=history_limit)
        if adopted:
            logger.info("Adopted a different transfer code")
        return resolved, adopted
