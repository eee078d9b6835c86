"""Tracking and labeling of filename segments the analysis could not classify."""

import logging
from collections.abc import Iterable, Mapping, Sequence
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .models import FilenameToken, TokenType
from .tokenizer import FilenameTokenizer

logger = logging.getLogger(__name__)


class SegmentAction(str, Enum):
    """What to do with an unknown segment."""

    IGNORE = "IGNORE"
    CUSTOM_TOKEN = "CUSTOM_TOKEN"
    FREE_TEXT = "FREE_TEXT"

    @property
    def description(self) -> str:
        """Short explanation shown next to the choice."""
        return {
            SegmentAction.IGNORE: "Ignore this segment",
            SegmentAction.CUSTOM_TOKEN: "Treat as custom token",
            SegmentAction.FREE_TEXT: "Free text (variable content)",
        }[self]


class SegmentLabel(BaseModel):
    """A user decision about one unknown segment."""

    model_config = ConfigDict(frozen=True)

    segment_value: str = Field(..., description="Segment as first labeled")
    action: SegmentAction = Field(..., description="Chosen treatment")
    custom_label: str = Field(default="", description="Optional user label")
    token_type: TokenType = Field(
        default=TokenType.SUFFIX, description="Type given to CUSTOM_TOKEN segments"
    )


class UnknownSegmentSummary(BaseModel):
    """Unknown segments of a sample, split by whether they were labeled."""

    model_config = ConfigDict(frozen=True)

    all_segments: frozenset[str] = Field(default=frozenset())
    labeled_segments: frozenset[str] = Field(default=frozenset())
    unlabeled_segments: frozenset[str] = Field(default=frozenset())

    @property
    def has_unlabeled_segments(self) -> bool:
        """Whether something still needs a decision."""
        return bool(self.unlabeled_segments)

    @property
    def total_count(self) -> int:
        return len(self.all_segments)


class UnknownSegmentHandler:
    """Per-session labels for segments that stayed UNKNOWN after analysis.

    Segments are keyed case-insensitively.
    """

    CUSTOM_TOKEN_CONFIDENCE = 0.8
    FREE_TEXT_CONFIDENCE = 0.9

    def __init__(self, tokenizer: FilenameTokenizer | None = None):
        self.tokenizer = tokenizer or FilenameTokenizer()
        self._labels: dict[str, SegmentLabel] = {}

    def label_segment(
        self,
        segment_value: str,
        action: SegmentAction,
        custom_label: str = "",
        token_type: TokenType = TokenType.SUFFIX,
    ) -> SegmentLabel:
        """
        Record how a segment should be treated.

        Raises:
            ValueError: If the segment is blank
        """
        if not segment_value or not segment_value.strip():
            raise ValueError("Segment value cannot be blank")
        label = SegmentLabel(
            segment_value=segment_value,
            action=action,
            custom_label=custom_label,
            token_type=token_type,
        )
        self._labels[segment_value.lower()] = label
        logger.debug(f"Labeled segment '{segment_value}' as {action.value}")
        return label

    def get_segment_label(self, segment_value: str) -> SegmentLabel | None:
        return self._labels.get(segment_value.lower())

    def remove_label(self, segment_value: str) -> bool:
        """Forget a label. Returns whether one existed."""
        return self._labels.pop(segment_value.lower(), None) is not None

    def should_ignore_segment(self, segment_value: str) -> bool:
        label = self.get_segment_label(segment_value)
        return label is not None and label.action == SegmentAction.IGNORE

    def get_all_segment_labels(self) -> dict[str, SegmentLabel]:
        return dict(self._labels)

    def clear_all_labels(self) -> None:
        self._labels.clear()

    def identify_unknown_segments(self, tokens: Iterable[FilenameToken]) -> list[str]:
        """Distinct values of UNKNOWN tokens that have no label yet, in order."""
        unknown: dict[str, None] = {}
        for token in tokens:
            if token.suggested_type == TokenType.UNKNOWN and token.value.lower() not in self._labels:
                unknown.setdefault(token.value, None)
        return list(unknown)

    def identify_unknown_segments_in(self, filename: str) -> list[str]:
        """
        Unlabeled segments of a raw filename whose shape is not recognized.

        Without sample statistics only value shapes are available, so any
        extension, camera synonym, date or number counts as known.
        """
        tokens = [
            token.with_type(self.tokenizer.classify_token_value(token.value), 0.0)
            for token in self.tokenizer.tokenize_filename(filename)
        ]
        return self.identify_unknown_segments(tokens)

    def apply_segment_labels(self, tokens: Sequence[FilenameToken]) -> list[FilenameToken]:
        """
        Apply labels to a token list.

        IGNORE segments are dropped, CUSTOM_TOKEN segments take the label's
        token type and FREE_TEXT segments stay UNKNOWN with high confidence.
        Positions are renumbered afterwards.
        """
        processed: list[FilenameToken] = []
        for token in tokens:
            label = self.get_segment_label(token.value)
            if label is None:
                processed.append(token)
            elif label.action == SegmentAction.CUSTOM_TOKEN:
                processed.append(token.with_type(label.token_type, self.CUSTOM_TOKEN_CONFIDENCE))
            elif label.action == SegmentAction.FREE_TEXT:
                processed.append(token.with_type(TokenType.UNKNOWN, self.FREE_TEXT_CONFIDENCE))
        return [token.with_position(i) for i, token in enumerate(processed)]

    def get_unknown_segment_summary(
        self, tokenized_filenames: Mapping[str, Sequence[FilenameToken]]
    ) -> UnknownSegmentSummary:
        """Summarize UNKNOWN segments across an analyzed sample."""
        all_segments: set[str] = set()
        for tokens in tokenized_filenames.values():
            for token in tokens:
                if token.suggested_type == TokenType.UNKNOWN:
                    all_segments.add(token.value.lower())
        labeled = {segment for segment in all_segments if segment in self._labels}
        return UnknownSegmentSummary(
            all_segments=frozenset(all_segments),
            labeled_segments=frozenset(labeled),
            unlabeled_segments=frozenset(all_segments - labeled),
        )
