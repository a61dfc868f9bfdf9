"""Envelope codec: packs a crypto header and a cipher into one blob.

Wire format (revision >= 2):

    <package> v=<revision>$<algorithm>$<b64 nonce>$<kdf>$<b64 salt>$<cost>$<compression>$<cipher>

Revision 1 (read-only, no longer produced):

    <package>$<algorithm>$<b64 nonce>$<kdf>$<b64 salt>$<cost>$<cipher>

Empty fields stand for "not used" (no kdf when encrypting with a raw key, no
compression). The cipher follows the last delimiter verbatim, there is no
length prefix and no escaping. The header is delimiter-safe because names
come from closed registries and binary fields are base64 encoded; any other
string containing the delimiter is rejected at pack time.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass

from notesync.core.crypto.errors import (
    CryptoValidationError,
    InvalidCipherFormatError,
    UnsupportedRevisionError,
)

DELIMITER = "$"
REVISION_SEPARATOR = " v="
NEWEST_SUPPORTED_REVISION = 2

_DELIMITER_BYTE = DELIMITER.encode("ascii")
_REVISION_SEPARATOR_BYTES = REVISION_SEPARATOR.encode("ascii")

# Number of delimiters in front of the cipher, per revision
_DELIMITER_COUNT_REVISION_1 = 6
_DELIMITER_COUNT = 7


@dataclass(frozen=True)
class CryptoHeader:
    """Everything needed to reverse an encryption, except the secret.

    Attributes:
        package_name: Application tag, checked before any other field is trusted.
        revision: Envelope layout revision.
        algorithm_name: Name of the symmetric algorithm.
        nonce: Nonce used for the symmetric algorithm.
        kdf_name: Name of the key derivation function, None for raw keys.
        salt: Salt of the key derivation, None for raw keys.
        cost: KDF cost in the KDF's own units, None for raw keys.
        compression: Compression applied before encryption, None if none.
    """

    package_name: str
    revision: int
    algorithm_name: str
    nonce: bytes
    kdf_name: str | None = None
    salt: bytes | None = None
    cost: str | None = None
    compression: str | None = None

    def __post_init__(self) -> None:
        # Empty and missing are the same thing on the wire
        for name in ("kdf_name", "salt", "cost", "compression"):
            if not getattr(self, name):
                object.__setattr__(self, name, None)


def _delimiter_count(revision: int) -> int:
    return _DELIMITER_COUNT_REVISION_1 if revision == 1 else _DELIMITER_COUNT


def _check_field(name: str, value: str | None) -> None:
    if value is not None and DELIMITER in value:
        raise CryptoValidationError(f"Header field {name} must not contain {DELIMITER!r}")


def pack(header: CryptoHeader, cipher: bytes) -> bytes:
    """Serialize a header followed by the raw cipher bytes.

    Args:
        header: The crypto header.
        cipher: The cipher produced by the symmetric algorithm.

    Returns:
        The envelope blob.

    Raises:
        CryptoValidationError: If a field would break the wire format.
    """
    if not header.package_name or REVISION_SEPARATOR in header.package_name:
        raise CryptoValidationError(f"Invalid package name: {header.package_name!r}")
    if not 1 <= header.revision <= NEWEST_SUPPORTED_REVISION:
        raise CryptoValidationError(f"Cannot pack envelope revision {header.revision}")
    if header.revision == 1 and header.compression is not None:
        raise CryptoValidationError("Envelope revision 1 has no compression field")
    for name in ("package_name", "algorithm_name", "kdf_name", "cost", "compression"):
        _check_field(name, getattr(header, name))

    if header.revision == 1:
        prefix = header.package_name
    else:
        prefix = f"{header.package_name}{REVISION_SEPARATOR}{header.revision}"

    fields = [
        prefix,
        header.algorithm_name,
        base64.b64encode(header.nonce).decode("ascii"),
        header.kdf_name or "",
        base64.b64encode(header.salt).decode("ascii") if header.salt else "",
        header.cost or "",
    ]
    if header.revision >= 2:
        fields.append(header.compression or "")

    return (DELIMITER.join(fields) + DELIMITER).encode("utf-8") + cipher


def _parse_revision(blob: bytes, package_name: str) -> int:
    prefix = package_name.encode("utf-8")
    if not package_name or not blob.startswith(prefix):
        raise InvalidCipherFormatError("Blob does not start with the expected package name")

    rest = blob[len(prefix):]
    if rest.startswith(_DELIMITER_BYTE):
        return 1
    if not rest.startswith(_REVISION_SEPARATOR_BYTES):
        raise InvalidCipherFormatError("Missing delimiter after the package name")

    rest = rest[len(_REVISION_SEPARATOR_BYTES):]
    end = rest.find(_DELIMITER_BYTE)
    digits = rest[:end] if end >= 0 else b""
    if not digits or not digits.isdigit():
        raise InvalidCipherFormatError("Malformed envelope revision")
    return int(digits)


def _decode_base64(value: str, name: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidCipherFormatError(f"Header field {name} is not valid base64") from e


def unpack(blob: bytes, expected_package_name: str) -> tuple[CryptoHeader, bytes]:
    """Split an envelope blob into its header and cipher.

    Args:
        blob: The envelope blob.
        expected_package_name: The application tag the blob must start with.

    Returns:
        Tuple of (header, cipher bytes).

    Raises:
        InvalidCipherFormatError: If the blob is not a well-formed envelope.
        UnsupportedRevisionError: If the blob uses a newer revision.
    """
    revision = _parse_revision(blob, expected_package_name)
    if revision > NEWEST_SUPPORTED_REVISION:
        raise UnsupportedRevisionError(revision, NEWEST_SUPPORTED_REVISION)
    if revision < 1:
        raise InvalidCipherFormatError(f"Invalid envelope revision {revision}")

    position = -1
    for _ in range(_delimiter_count(revision)):
        position = blob.find(_DELIMITER_BYTE, position + 1)
        if position < 0:
            raise InvalidCipherFormatError("Envelope header is truncated")

    try:
        header_text = blob[:position].decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidCipherFormatError("Envelope header is not valid UTF-8") from e
    cipher = blob[position + 1:]

    fields = header_text.split(DELIMITER)
    header = CryptoHeader(
        package_name=expected_package_name,
        revision=revision,
        algorithm_name=fields[1],
        nonce=_decode_base64(fields[2], "nonce"),
        kdf_name=fields[3],
        salt=_decode_base64(fields[4], "salt"),
        cost=fields[5],
        compression=fields[6] if revision >= 2 else None,
    )
    return header, cipher


def has_matching_header(blob: bytes, package_name: str) -> bool:
    """Check whether a blob looks like an envelope of the given application."""
    try:
        _parse_revision(blob, package_name)
    except InvalidCipherFormatError:
        return False
    return True
