"""Tests for the random sources and helpers."""

import string

import pytest

from notesync.core.crypto import OsRandomSource, generate_random_base62

BASE62 = set(string.ascii_letters + string.digits)


class TestOsRandomSource:
    """Tests for OsRandomSource."""

    def test_returns_requested_length(self) -> None:
        source = OsRandomSource()
        assert len(source.get_random_bytes(32)) == 32
        assert source.get_random_bytes(0) == b""

    def test_negative_count(self) -> None:
        with pytest.raises(ValueError):
            OsRandomSource().get_random_bytes(-1)


class TestGenerateRandomBase62:
    """Tests for generate_random_base62."""

    @pytest.mark.parametrize("length", [0, 1, 16, 43, 128])
    def test_length_and_alphabet(self, length: int) -> None:
        value = generate_random_base62(length, OsRandomSource())
        assert len(value) == length
        assert set(value) <= BASE62

    def test_uses_injected_source(self, random_source) -> None:
        """Should draw only from the given source."""
        value = generate_random_base62(20, random_source)
        assert len(value) == 20
        assert set(value) <= BASE62

    def test_negative_length(self) -> None:
        with pytest.raises(ValueError):
            generate_random_base62(-1, OsRandomSource())
