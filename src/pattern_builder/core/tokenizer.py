"""Filename tokenization and statistical token type inference."""

import logging
import re
from collections import Counter, defaultdict
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType

from .extensions import is_supported_extension
from .models import (
    EngineConfig,
    FilenameToken,
    ImageRole,
    TokenAnalysis,
    TokenSuggestion,
    TokenType,
)

logger = logging.getLogger(__name__)


class AnalysisCancelled(Exception):
    """Raised when a running analysis is asked to stop."""


CAMERA_SYNONYMS: Mapping[ImageRole, tuple[str, ...]] = MappingProxyType(
    {
        ImageRole.OVERVIEW: ("overview", "ov", "ovr", "ovw", "scene", "full"),
        ImageRole.FRONT: ("front", "f", "fr", "forward"),
        ImageRole.REAR: ("rear", "r", "rr", "back", "behind"),
    }
)

_SYNONYM_TO_ROLE = {
    synonym: role for role, synonyms in CAMERA_SYNONYMS.items() for synonym in synonyms
}

# Tie-break order when two detectors report the same confidence for a token.
TYPE_SPECIFICITY: tuple[TokenType, ...] = (
    TokenType.EXTENSION,
    TokenType.DATE,
    TokenType.CAMERA_SIDE,
    TokenType.GROUP_ID,
    TokenType.INDEX,
    TokenType.PREFIX,
    TokenType.SUFFIX,
    TokenType.UNKNOWN,
)

TYPE_DESCRIPTIONS: Mapping[TokenType, str] = MappingProxyType(
    {
        TokenType.PREFIX: "Fixed text at the start of every filename",
        TokenType.SUFFIX: "Fixed text right before the extension",
        TokenType.GROUP_ID: "Identifier shared by all images of one vehicle",
        TokenType.CAMERA_SIDE: "Camera position such as front, rear or overview",
        TokenType.DATE: "Capture date",
        TokenType.INDEX: "Running number that changes between files",
        TokenType.EXTENSION: "Image file extension",
        TokenType.UNKNOWN: "Unclassified segment",
    }
)


@dataclass
class _Detection:
    """One detector firing for a token slot."""

    token_type: TokenType
    confidence: float
    examples: list[str] = field(default_factory=list)
    constant: str | None = None


@dataclass
class _Detections:
    """Everything the detectors found in a sample."""

    by_position: dict[int, list[_Detection]] = field(default_factory=dict)
    extension: _Detection | None = None
    suffix: _Detection | None = None
    group_id_position: int | None = None

    def all(self) -> list[_Detection]:
        found = [d for detections in self.by_position.values() for d in detections]
        if self.extension:
            found.append(self.extension)
        if self.suffix:
            found.append(self.suffix)
        return found


def _distinct(values: Iterable[str], limit: int | None = None) -> list[str]:
    seen: dict[str, None] = {}
    for value in values:
        seen.setdefault(value, None)
        if limit is not None and len(seen) >= limit:
            break
    return list(seen)


class FilenameTokenizer:
    """Splits filenames into tokens and infers what each token means."""

    # Runs of underscore, hyphen, dot or whitespace separate tokens.
    DELIMITER_PATTERN = re.compile(r"[_\-.\s]+")

    ISO_DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")
    US_DATE_PATTERN = re.compile(r"\d{2}-\d{2}-\d{4}")
    COMPACT_DATE_PATTERN = re.compile(r"\d{8}")
    DIGITS_PATTERN = re.compile(r"\d+")

    CAMERA_SIDE_THRESHOLD = 0.3
    DATE_THRESHOLD = 0.5
    INDEX_THRESHOLD = 0.4
    EXTENSION_THRESHOLD = 0.5
    MAX_EXAMPLES = 3

    def __init__(self, config: EngineConfig | None = None):
        """Initialize the tokenizer with an optional engine config."""
        self.config = config or EngineConfig()

    # ------------------------------------------------------------------
    # Tokenization
    # ------------------------------------------------------------------

    def tokenize_filename(self, filename: str | None) -> list[FilenameToken]:
        """
        Split a filename into positioned tokens.

        Consecutive delimiters collapse, so no token is ever empty. Date parts
        split by a delimiter (``2024_01_15``) are merged back into one
        ``-``-joined token.

        Args:
            filename: The filename to split

        Returns:
            Tokens in order, all typed UNKNOWN; empty for blank input

        Example:
            >>> tokenizer = FilenameTokenizer()
            >>> [t.value for t in tokenizer.tokenize_filename("vehicle_001_front.jpg")]
            ['vehicle', '001', 'front', 'jpg']
        """
        if not filename or not filename.strip():
            return []

        parts = [part for part in self.DELIMITER_PATTERN.split(filename) if part]
        parts = self._merge_date_parts(parts)
        return [FilenameToken(value=part, position=i) for i, part in enumerate(parts)]

    def _merge_date_parts(self, parts: list[str]) -> list[str]:
        merged: list[str] = []
        i = 0
        while i < len(parts):
            window = parts[i : i + 3]
            if len(window) == 3 and self._is_split_date(window):
                merged.append("-".join(window))
                i += 3
            else:
                merged.append(parts[i])
                i += 1
        return merged

    def _is_split_date(self, window: list[str]) -> bool:
        if not all(self.DIGITS_PATTERN.fullmatch(part) for part in window):
            return False
        lengths = tuple(len(part) for part in window)
        if lengths == (4, 2, 2):
            month, day = int(window[1]), int(window[2])
        elif lengths == (2, 2, 4):
            month, day = int(window[0]), int(window[1])
        else:
            return False
        return 1 <= month <= 12 and 1 <= day <= 31

    # ------------------------------------------------------------------
    # Value shape checks
    # ------------------------------------------------------------------

    def is_extension_value(self, value: str) -> bool:
        """Whether a value is one of the supported image extensions."""
        return is_supported_extension(value, self.config.supported_extensions)

    def is_date_value(self, value: str) -> bool:
        """Whether a value has one of the recognized date shapes."""
        return bool(
            self.ISO_DATE_PATTERN.fullmatch(value)
            or self.US_DATE_PATTERN.fullmatch(value)
            or self.COMPACT_DATE_PATTERN.fullmatch(value)
        )

    def is_index_value(self, value: str) -> bool:
        """Whether a value is purely numeric."""
        return bool(self.DIGITS_PATTERN.fullmatch(value))

    def get_image_role_for_token(self, value: str | None) -> ImageRole | None:
        """Map a camera-side synonym to its image role, ignoring case."""
        if not value:
            return None
        return _SYNONYM_TO_ROLE.get(value.lower())

    def classify_token_value(self, value: str) -> TokenType:
        """Classify a single value by its shape alone, without sample statistics."""
        if self.is_extension_value(value):
            return TokenType.EXTENSION
        if self.get_image_role_for_token(value) is not None:
            return TokenType.CAMERA_SIDE
        if self.is_date_value(value):
            return TokenType.DATE
        if self.is_index_value(value):
            return TokenType.INDEX
        return TokenType.UNKNOWN

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def analyze_filenames(
        self,
        filenames: Iterable[str],
        *,
        should_cancel: Callable[[], bool] | None = None,
    ) -> TokenAnalysis:
        """
        Tokenize a sample and infer the type of every token.

        Args:
            filenames: Sample filenames, already filtered and truncated by the caller
            should_cancel: Polled once per filename; returning True aborts the run

        Returns:
            TokenAnalysis with classified tokens, suggestions and the inferred
            group-id position

        Raises:
            AnalysisCancelled: If ``should_cancel`` asked to stop
        """
        tokenized: dict[str, list[FilenameToken]] = {}
        for filename in filenames:
            if should_cancel is not None and should_cancel():
                raise AnalysisCancelled(f"Analysis cancelled after {len(tokenized)} files")
            if not filename or not filename.strip():
                continue
            tokenized[filename] = self.tokenize_filename(filename)

        detections = self._detect(tokenized)
        classified = {
            filename: self._classify_tokens(tokens, detections)
            for filename, tokens in tokenized.items()
        }

        analysis = TokenAnalysis(
            filenames=tuple(tokenized),
            tokenized_filenames=classified,
            suggestions=tuple(self._build_suggestions(detections)),
            confidence_scores=self._average_confidences(detections),
            group_id_position=detections.group_id_position,
        )
        logger.info(
            f"Analyzed {len(tokenized)} filenames: "
            f"{len(analysis.suggestions)} token types detected, "
            f"group id position {analysis.group_id_position}"
        )
        return analysis

    def suggest_token_types(
        self, tokenized_filenames: Mapping[str, Sequence[FilenameToken]]
    ) -> list[TokenSuggestion]:
        """
        Run the detectors over already tokenized filenames.

        Returns:
            One suggestion per detected type, highest confidence first
        """
        return self._build_suggestions(self._detect(tokenized_filenames))

    def _split_body(
        self, tokens: Sequence[FilenameToken]
    ) -> tuple[Sequence[FilenameToken], FilenameToken | None]:
        if len(tokens) >= 2 and self.is_extension_value(tokens[-1].value):
            return tokens[:-1], tokens[-1]
        return tokens, None

    def _detect(self, tokenized: Mapping[str, Sequence[FilenameToken]]) -> _Detections:
        detections = _Detections()
        sample_size = len(tokenized)
        if sample_size == 0:
            return detections

        columns: dict[int, list[str]] = defaultdict(list)
        extension_values: list[str] = []
        last_body_values: list[str] = []
        for tokens in tokenized.values():
            body, extension = self._split_body(tokens)
            if extension is not None:
                extension_values.append(extension.value)
            for token in body:
                columns[token.position].append(token.value)
            if len(body) >= 2:
                last_body_values.append(body[-1].value)

        extension_confidence = len(extension_values) / sample_size
        if extension_confidence > self.EXTENSION_THRESHOLD:
            detections.extension = _Detection(
                TokenType.EXTENSION,
                round(extension_confidence, 6),
                _distinct(extension_values, self.MAX_EXAMPLES),
            )

        excluded_from_group: set[int] = set()
        for position in sorted(columns):
            values = columns[position]
            found: list[_Detection] = []

            camera_values = [v for v in values if self.get_image_role_for_token(v)]
            camera_confidence = len(camera_values) / sample_size
            if camera_confidence > self.CAMERA_SIDE_THRESHOLD:
                found.append(
                    _Detection(
                        TokenType.CAMERA_SIDE,
                        round(camera_confidence, 6),
                        _distinct(camera_values, self.MAX_EXAMPLES),
                    )
                )
                excluded_from_group.add(position)

            date_values = [v for v in values if self.is_date_value(v)]
            date_confidence = len(date_values) / sample_size
            if date_confidence > self.DATE_THRESHOLD:
                found.append(
                    _Detection(
                        TokenType.DATE,
                        round(date_confidence, 6),
                        _distinct(date_values, self.MAX_EXAMPLES),
                    )
                )
                excluded_from_group.add(position)

            digit_values = [v for v in values if self.is_index_value(v)]
            distinct_numbers = {int(v) for v in digit_values}
            if len(distinct_numbers) > 1:
                index_confidence = (len(digit_values) / sample_size) * (
                    len(distinct_numbers) / len(digit_values)
                )
                if index_confidence >= self.INDEX_THRESHOLD:
                    found.append(
                        _Detection(
                            TokenType.INDEX,
                            round(index_confidence, 6),
                            _distinct(digit_values, self.MAX_EXAMPLES),
                        )
                    )

            if position == 0:
                prefix = self._constant_detection(TokenType.PREFIX, values, sample_size)
                if prefix is not None:
                    found.append(prefix)

            if found:
                detections.by_position[position] = found

        detections.suffix = self._constant_detection(
            TokenType.SUFFIX, last_body_values, sample_size
        )

        group_position = self._pick_group_position(columns, excluded_from_group, sample_size)
        if group_position is not None:
            values = columns[group_position]
            detections.group_id_position = group_position
            detections.by_position.setdefault(group_position, []).append(
                _Detection(
                    TokenType.GROUP_ID,
                    round(len(set(values)) / sample_size, 6),
                    _distinct(values, self.MAX_EXAMPLES),
                )
            )

        for detection in detections.all():
            logger.debug(
                f"Detected {detection.token_type.value} "
                f"(confidence {detection.confidence:.2f}, examples {detection.examples})"
            )
        return detections

    def _constant_detection(
        self, token_type: TokenType, values: list[str], sample_size: int
    ) -> _Detection | None:
        if not values:
            return None
        value, count = Counter(values).most_common(1)[0]
        ratio = count / sample_size
        if ratio <= self.config.constant_token_ratio:
            return None
        return _Detection(token_type, round(ratio, 6), [value], constant=value)

    def _pick_group_position(
        self, columns: Mapping[int, list[str]], excluded: set[int], sample_size: int
    ) -> int | None:
        candidates = [p for p in sorted(columns) if p not in excluded]
        varying = [p for p in candidates if len(set(columns[p])) > 1]
        if varying:
            candidates = varying
        if not candidates:
            return None
        # max() keeps the first of equal ratios, i.e. the earliest position.
        return max(candidates, key=lambda p: len(set(columns[p])) / sample_size)

    def _accepts(self, detection: _Detection, token: FilenameToken) -> bool:
        if detection.token_type == TokenType.CAMERA_SIDE:
            return self.get_image_role_for_token(token.value) is not None
        if detection.token_type == TokenType.DATE:
            return self.is_date_value(token.value)
        if detection.token_type == TokenType.INDEX:
            return self.is_index_value(token.value)
        if detection.constant is not None:
            return token.value == detection.constant
        return True

    def _classify_tokens(
        self, tokens: Sequence[FilenameToken], detections: _Detections
    ) -> list[FilenameToken]:
        body, extension = self._split_body(tokens)
        classified: list[FilenameToken] = []

        for index, token in enumerate(body):
            candidates = [
                d for d in detections.by_position.get(token.position, []) if self._accepts(d, token)
            ]
            is_last_body = len(body) >= 2 and index == len(body) - 1
            if is_last_body and detections.suffix and self._accepts(detections.suffix, token):
                candidates.append(detections.suffix)

            if candidates:
                best = max(
                    candidates,
                    key=lambda d: (d.confidence, -TYPE_SPECIFICITY.index(d.token_type)),
                )
                classified.append(token.with_type(best.token_type, best.confidence))
            else:
                classified.append(token.with_type(TokenType.UNKNOWN, 0.0))

        if extension is not None:
            if detections.extension is not None:
                classified.append(
                    extension.with_type(TokenType.EXTENSION, detections.extension.confidence)
                )
            else:
                classified.append(extension.with_type(TokenType.UNKNOWN, 0.0))
        return classified

    def _build_suggestions(self, detections: _Detections) -> list[TokenSuggestion]:
        grouped: dict[TokenType, list[_Detection]] = defaultdict(list)
        for detection in detections.all():
            grouped[detection.token_type].append(detection)

        suggestions = [
            TokenSuggestion(
                type=token_type,
                description=TYPE_DESCRIPTIONS[token_type],
                examples=tuple(
                    _distinct(
                        (example for d in found for example in d.examples), self.MAX_EXAMPLES
                    )
                ),
                confidence=max(d.confidence for d in found),
            )
            for token_type, found in grouped.items()
        ]
        suggestions.sort(key=lambda s: (-s.confidence, TYPE_SPECIFICITY.index(s.type)))
        return suggestions

    def _average_confidences(self, detections: _Detections) -> dict[TokenType, float]:
        grouped: dict[TokenType, list[float]] = defaultdict(list)
        for detection in detections.all():
            grouped[detection.token_type].append(detection.confidence)
        return {token_type: sum(values) / len(values) for token_type, values in grouped.items()}
