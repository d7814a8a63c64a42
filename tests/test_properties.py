"""
Property-based tests using Hypothesis.

These tests verify invariant properties across a wide range of inputs,
helping to find edge cases that might be missed by example-based tests.
"""

import pytest

from hypothesis import given, strategies as st

from media_explorer.etl.context import build_context, display_text
from media_explorer.etl.models import ExportMessage, MediaRef
from media_explorer.etl.normalizers import (
    derive_chat_type,
    repair_mojibake,
    strip_thread_suffix,
)
from media_explorer.queries import MONTH_ABBREVIATIONS, format_month_label
from media_explorer.utils import format_bytes, format_count


def _mangle(text: str) -> str:
    """Mis-decode UTF-8 text the way Facebook exports do."""
    return text.encode("utf-8").decode("latin-1")


def _messages(count: int) -> list:
    return [
        ExportMessage(sender_name=f"p{i % 3}", timestamp_ms=i * 1000, content=f"m{i}")
        for i in range(count)
    ]


# =============================================================================
# Mojibake Repair Properties
# =============================================================================


@pytest.mark.property
class TestRepairMojibakeProperties:
    """Property-based tests for mojibake repair."""

    @given(st.text(max_size=100))
    def test_never_crashes(self, text: str):
        """Repair should handle any string input without crashing."""
        assert isinstance(repair_mojibake(text), str)

    @given(st.text(max_size=100))
    def test_mangled_text_is_restored(self, text: str):
        """Mis-decoded text always repairs back to the original."""
        assert repair_mojibake(_mangle(text)) == text

    @given(st.text(alphabet=st.characters(max_codepoint=127), max_size=100))
    def test_ascii_unchanged(self, text: str):
        """Plain ASCII is returned untouched."""
        assert repair_mojibake(text) == text

    @given(st.text(max_size=50), st.characters(min_codepoint=0x100), st.text(max_size=50))
    def test_wide_characters_unchanged(self, head: str, wide: str, tail: str):
        """Text containing characters above U+00FF is already proper text."""
        text = head + wide + tail
        assert repair_mojibake(text) == text


# =============================================================================
# Chat Type and Title Properties
# =============================================================================


@pytest.mark.property
class TestChatTypeProperties:
    """Property-based tests for chat type derivation."""

    @given(st.lists(st.text(max_size=10), max_size=20))
    def test_dm_iff_two_or_fewer(self, participants):
        """A chat is a DM exactly when it has at most two participants."""
        expected = "dm" if len(participants) <= 2 else "group"
        assert derive_chat_type(participants) == expected


@pytest.mark.property
class TestStripThreadSuffixProperties:
    """Property-based tests for Messenger thread titles."""

    @given(st.text(max_size=40), st.integers(min_value=0, max_value=10**12))
    def test_numeric_suffix_removed(self, title: str, suffix: int):
        """A trailing _<digits> is always stripped."""
        assert strip_thread_suffix(f"{title}_{suffix}") == title

    @given(st.text(alphabet=st.characters(blacklist_characters="_"), max_size=40))
    def test_without_underscore_unchanged(self, name: str):
        """Names without an underscore are kept as-is."""
        assert strip_thread_suffix(name) == name


# =============================================================================
# Context Window Properties
# =============================================================================


@pytest.mark.property
class TestBuildContextProperties:
    """Property-based tests for context windows."""

    @given(st.data(), st.integers(min_value=1, max_value=30), st.integers(min_value=0, max_value=10))
    def test_window_lengths(self, data, count: int, window: int):
        """Windows are clamped at both ends of the conversation."""
        index = data.draw(st.integers(min_value=0, max_value=count - 1))
        before, after = build_context(_messages(count), index, window)

        assert len(before) == min(window, index)
        assert len(after) == min(window, count - 1 - index)

    @given(st.data(), st.integers(min_value=1, max_value=30), st.integers(min_value=0, max_value=10))
    def test_positions_contiguous(self, data, count: int, window: int):
        """Positions run -k..-1 before and 1..k after."""
        index = data.draw(st.integers(min_value=0, max_value=count - 1))
        before, after = build_context(_messages(count), index, window)

        assert [m.position for m in before] == list(range(-len(before), 0))
        assert [m.position for m in after] == list(range(1, len(after) + 1))

    @given(st.data(), st.integers(min_value=1, max_value=30), st.integers(min_value=1, max_value=10))
    def test_neighbours_adjacent(self, data, count: int, window: int):
        """Positions -1 and 1 are the messages right next to the media message."""
        index = data.draw(st.integers(min_value=0, max_value=count - 1))
        before, after = build_context(_messages(count), index, window)

        if before:
            assert before[-1].content == f"m{index - 1}"
        if after:
            assert after[0].content == f"m{index + 1}"

    @given(st.sampled_from(["photos", "videos", "gifs"]))
    def test_display_text_never_empty(self, attr: str):
        """Media-only messages always get placeholder text."""
        message = ExportMessage(sender_name="a", timestamp_ms=0)
        getattr(message, attr).append(MediaRef(uri="x"))
        assert display_text(message)


# =============================================================================
# Month Label Properties
# =============================================================================


@pytest.mark.property
class TestFormatMonthLabelProperties:
    """Property-based tests for timeline labels."""

    @given(st.integers(min_value=1970, max_value=9999), st.integers(min_value=1, max_value=12))
    def test_valid_keys(self, year: int, month: int):
        """Valid keys become "Mon YYYY"."""
        label = format_month_label(f"{year}-{month:02d}")
        assert label == f"{MONTH_ABBREVIATIONS[f'{month:02d}']} {year}"

    @given(st.text(max_size=20))
    def test_never_crashes(self, key: str):
        """Any key yields a string, unchanged when it is not a month key."""
        label = format_month_label(key)
        assert isinstance(label, str)
        parts = key.split("-")
        if len(parts) != 2 or parts[1] not in MONTH_ABBREVIATIONS:
            assert label == key


# =============================================================================
# Formatting Properties
# =============================================================================


@pytest.mark.property
class TestFormattingProperties:
    """Property-based tests for display formatting."""

    @given(st.integers(min_value=0, max_value=10**12))
    def test_format_count_never_empty(self, count: int):
        """Counts always format to a non-empty string."""
        assert format_count(count)

    @given(st.integers(min_value=0, max_value=999))
    def test_small_counts_verbatim(self, count: int):
        """Counts below 1000 are printed as-is."""
        assert format_count(count) == str(count)

    @given(st.integers(min_value=0, max_value=2**50))
    def test_format_bytes_has_unit(self, size: int):
        """Sizes always carry a unit."""
        assert format_bytes(size).split()[-1] in {"B", "KB", "MB", "GB"}
