"""Tests for transfer code generation and input handling."""

import pytest

from notesync.client.transfer_code import (
    CODE_LENGTH,
    UNMIXABLE_ALPHABET,
    format_for_display,
    generate_transfer_code,
    is_code_set,
    is_of_unmixable_alphabet,
    try_sanitize_user_input,
)


class TestGenerate:
    """Tests for generate_transfer_code."""

    def test_length_and_alphabet(self, random_source) -> None:
        code = generate_transfer_code(random_source)
        assert len(code) == CODE_LENGTH
        assert is_of_unmixable_alphabet(code)

    def test_codes_differ(self, random_source) -> None:
        codes = {generate_transfer_code(random_source) for _ in range(20)}
        assert len(codes) == 20

    def test_custom_length(self, random_source) -> None:
        assert len(generate_transfer_code(random_source, length=40)) == 40

    def test_alphabet_has_no_confusable_characters(self) -> None:
        for char in "01lo":
            assert char not in UNMIXABLE_ALPHABET


class TestSanitize:
    """Tests for try_sanitize_user_input."""

    @pytest.mark.parametrize(
        "text",
        [
            "abcdefghijkmnpqr",
            "abcd efgh ijkm npqr",
            "ABCD-EFGH-IJKM-NPQR",
            "  abcd\tefgh ijkm-npqr \n",
        ],
    )
    def test_accepts_display_variants(self, text: str) -> None:
        assert try_sanitize_user_input(text) == "abcdefghijkmnpqr"

    @pytest.mark.parametrize(
        "text",
        [
            None,
            "",
            "   ",
            "abcd efgh ijkm",
            "abcd efgh ijkm npqr s",
            "abcd efgh ijkl npqr",
            "abcd efgh ijk0 npqr",
        ],
    )
    def test_rejects_invalid_input(self, text: str | None) -> None:
        assert try_sanitize_user_input(text) is None


class TestDisplay:
    """Tests for format_for_display and is_code_set."""

    def test_groups_of_four(self) -> None:
        assert format_for_display("abcdefghijkmnpqr") == "abcd efgh ijkm npqr"

    def test_short_last_group(self) -> None:
        assert format_for_display("abcdef") == "abcd ef"

    def test_unset_code(self) -> None:
        assert format_for_display(None) == ""
        assert format_for_display("  ") == ""

    def test_is_code_set(self) -> None:
        assert is_code_set("abc")
        assert not is_code_set(None)
        assert not is_code_set(" \t")

    def test_display_then_sanitize(self, random_source) -> None:
        code = generate_transfer_code(random_source)
        assert try_sanitize_user_input(format_for_display(code)) == code
