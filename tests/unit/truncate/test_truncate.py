"""
Tests for message truncation.
"""

import pytest

from nrlogs.core.truncate import MAX_LENGTH, OUTPUT_LENGTH, truncate


class TestTruncate:
    """Test the 1024 character bound."""

    @pytest.mark.parametrize("length", [0, 1, 1023, 1024])
    def test_short_strings_unchanged(self, length: int) -> None:
        value = "x" * length
        assert truncate(value) is value

    @pytest.mark.parametrize("length", [1025, 2048, 100000])
    def test_long_strings_bounded(self, length: int) -> None:
        """Test long strings are cut to exactly 1024 characters with an ellipsis."""
        value = "".join(chr(ord("a") + i % 26) for i in range(length))
        result = truncate(value)

        assert len(result) == OUTPUT_LENGTH
        assert result.endswith("...")
        assert result[:MAX_LENGTH] == value[:MAX_LENGTH]

    def test_multibyte_characters_count_as_characters(self) -> None:
        value = "é" * 1500
        assert len(truncate(value)) == 1024

    @pytest.mark.parametrize("value", [None, 42, {"a": 1}, ["x" * 2000]])
    def test_non_strings_pass_through(self, value: object) -> None:
        assert truncate(value) is value
