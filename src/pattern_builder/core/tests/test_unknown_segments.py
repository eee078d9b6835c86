"""Tests for unknown segment labeling."""

import pytest

from ..models import FilenameToken, TokenType
from ..unknown_segments import SegmentAction, UnknownSegmentHandler


class TestUnknownSegmentHandler:
    """Test cases for UnknownSegmentHandler."""

    def setup_method(self) -> None:
        """Set up test fixtures."""
        self.handler = UnknownSegmentHandler()
        self.tokens = [
            FilenameToken(value="vehicle", position=0, suggested_type=TokenType.PREFIX),
            FilenameToken(value="cam7", position=1),
            FilenameToken(value="001", position=2, suggested_type=TokenType.GROUP_ID),
            FilenameToken(value="Lane2", position=3),
            FilenameToken(value="jpg", position=4, suggested_type=TokenType.EXTENSION),
        ]

    def test_identify_unknown_segments(self) -> None:
        """Test that unlabeled UNKNOWN values are reported."""
        assert self.handler.identify_unknown_segments(self.tokens) == ["cam7", "Lane2"]

        self.handler.label_segment("LANE2", SegmentAction.FREE_TEXT)

        assert self.handler.identify_unknown_segments(self.tokens) == ["cam7"]

    def test_identify_in_raw_filename(self) -> None:
        """Test shape-based detection on an untyped filename."""
        segments = self.handler.identify_unknown_segments_in("cam7_2024_01_15_front_12.jpg")

        assert segments == ["cam7"]

    def test_apply_labels(self) -> None:
        """Test ignore, custom token and free text labels."""
        self.handler.label_segment("cam7", SegmentAction.IGNORE)
        self.handler.label_segment("lane2", SegmentAction.CUSTOM_TOKEN, "Lane", TokenType.SUFFIX)

        processed = self.handler.apply_segment_labels(self.tokens)

        assert [t.value for t in processed] == ["vehicle", "001", "Lane2", "jpg"]
        assert [t.position for t in processed] == [0, 1, 2, 3]
        assert processed[2].suggested_type == TokenType.SUFFIX
        assert processed[2].confidence == 0.8

    def test_free_text_stays_unknown(self) -> None:
        """Test free text keeps the UNKNOWN type with high confidence."""
        self.handler.label_segment("cam7", SegmentAction.FREE_TEXT)

        processed = self.handler.apply_segment_labels(self.tokens)

        assert processed[1].suggested_type == TokenType.UNKNOWN
        assert processed[1].confidence == 0.9

    def test_label_management(self) -> None:
        """Test looking up, removing and clearing labels."""
        self.handler.label_segment("cam7", SegmentAction.IGNORE)

        assert self.handler.should_ignore_segment("CAM7")
        assert set(self.handler.get_all_segment_labels()) == {"cam7"}
        assert self.handler.remove_label("cam7")
        assert not self.handler.remove_label("cam7")

        self.handler.label_segment("x", SegmentAction.FREE_TEXT)
        self.handler.clear_all_labels()
        assert self.handler.get_segment_label("x") is None

    def test_blank_segment_rejected(self) -> None:
        """Test that blank segments cannot be labeled."""
        with pytest.raises(ValueError):
            self.handler.label_segment("  ", SegmentAction.IGNORE)

    def test_summary(self) -> None:
        """Test the labeled/unlabeled split."""
        self.handler.label_segment("cam7", SegmentAction.IGNORE)

        summary = self.handler.get_unknown_segment_summary({"f": self.tokens})

        assert summary.all_segments == frozenset({"cam7", "lane2"})
        assert summary.labeled_segments == frozenset({"cam7"})
        assert summary.unlabeled_segments == frozenset({"lane2"})
        assert summary.has_unlabeled_segments
        assert summary.total_count == 2

    def test_action_descriptions(self) -> None:
        """Test every action has a description."""
        assert SegmentAction.IGNORE.description == "Ignore this segment"
        assert all(action.description for action in SegmentAction)
