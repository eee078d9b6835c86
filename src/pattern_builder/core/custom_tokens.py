"""User-defined tokens that refine segments the analysis left unclassified."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import EngineConfig, TokenAnalysis, TokenType
from .unknown_segments import UnknownSegmentHandler

logger = logging.getLogger(__name__)

RECORD_SEPARATOR = "|"
EXAMPLE_SEPARATOR = ","


class CustomToken(BaseModel):
    """A named token with example values and the type it stands for."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Display name, unique ignoring case")
    description: str = Field(default="", description="What the token means")
    examples: frozenset[str] = Field(default=frozenset(), description="Values that identify it")
    mapped_type: TokenType = Field(..., description="Type given to matching segments")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Names are stripped and may not contain the record separator."""
        v = v.strip()
        if not v:
            raise ValueError("Custom token name cannot be blank")
        if RECORD_SEPARATOR in v:
            raise ValueError(f"Custom token name cannot contain '{RECORD_SEPARATOR}'")
        return v

    @field_validator("examples")
    @classmethod
    def validate_examples(cls, v: frozenset[str]) -> frozenset[str]:
        """Drop blank examples and surrounding whitespace."""
        return frozenset(example.strip() for example in v if example and example.strip())

    def matches(self, value: str) -> bool:
        """Whether a segment equals one of the examples, ignoring case."""
        lowered = value.lower()
        return any(example.lower() == lowered for example in self.examples)

    def to_record(self) -> str:
        """Serialize as ``name|description|TYPE|ex1,ex2``."""
        examples = EXAMPLE_SEPARATOR.join(sorted(self.examples))
        description = self.description.replace(RECORD_SEPARATOR, " ")
        return RECORD_SEPARATOR.join([self.name, description, self.mapped_type.value, examples])

    @classmethod
    def from_record(cls, line: str) -> "CustomToken":
        """
        Parse a ``name|description|TYPE|ex1,ex2`` record.

        Raises:
            ValueError: If the record has too few fields or an unknown type
        """
        parts = line.rstrip("\n").split(RECORD_SEPARATOR, 3)
        if len(parts) < 4:
            raise ValueError(f"Expected 4 fields, got {len(parts)}: {line!r}")
        name, description, type_name, examples = parts
        return cls(
            name=name,
            description=description,
            mapped_type=TokenType(type_name.strip()),
            examples=frozenset(examples.split(EXAMPLE_SEPARATOR)) if examples else frozenset(),
        )

    def __str__(self) -> str:
        return f"{self.name} ({self.description})"


PRECONFIGURED_TOKENS: tuple[CustomToken, ...] = (
    CustomToken(
        name="Lane",
        description="Traffic lane identifier",
        examples=frozenset({"lane1", "lane2", "lane3", "l1", "l2", "l3"}),
        mapped_type=TokenType.SUFFIX,
    ),
    CustomToken(
        name="Direction",
        description="Traffic direction indicator",
        examples=frozenset({"nb", "sb", "eb", "wb", "north", "south", "east", "west"}),
        mapped_type=TokenType.SUFFIX,
    ),
    CustomToken(
        name="Station",
        description="Monitoring station identifier",
        examples=frozenset({"sta1", "sta2", "station1", "station2", "st1", "st2"}),
        mapped_type=TokenType.PREFIX,
    ),
    CustomToken(
        name="Violation",
        description="Violation type indicator",
        examples=frozenset({"speed", "redlight", "toll", "hov", "violation"}),
        mapped_type=TokenType.SUFFIX,
    ),
)


@dataclass
class PatternBuilderSession:
    """State that lives for one builder session and is never shared globally."""

    custom_token_dialog_shown: bool = False
    unknown_segments: UnknownSegmentHandler = field(default_factory=UnknownSegmentHandler)


class CustomTokenManager:
    """Keeps custom tokens and applies them to analysis results.

    Nothing is read from or written to disk except through ``load`` and ``save``.
    """

    ENHANCED_CONFIDENCE = 0.9

    def __init__(self, tokens: Iterable[CustomToken] = (), config: EngineConfig | None = None):
        self.config = config or EngineConfig()
        self._tokens: dict[str, CustomToken] = {}
        for token in tokens:
            self.add_custom_token(token)

    def add_custom_token(self, token: CustomToken) -> None:
        """Add or replace a token (names compare ignoring case)."""
        self._tokens[token.name.lower()] = token

    def remove_custom_token(self, name: str) -> bool:
        """Remove a token by name. Returns whether it existed."""
        return self._tokens.pop(name.lower(), None) is not None

    def update_custom_token(self, old_name: str | None, token: CustomToken) -> None:
        """Replace a token, renaming it when the name changed."""
        if old_name and old_name.lower() != token.name.lower():
            self.remove_custom_token(old_name)
        self.add_custom_token(token)

    def get_custom_token(self, name: str) -> CustomToken | None:
        return self._tokens.get(name.lower())

    def get_all_custom_tokens(self) -> list[CustomToken]:
        return list(self._tokens.values())

    @property
    def count(self) -> int:
        return len(self._tokens)

    def clear_all_custom_tokens(self) -> None:
        self._tokens.clear()

    def load_preconfigured_custom_tokens(self) -> None:
        """Add the built-in lane, direction, station and violation tokens."""
        for token in PRECONFIGURED_TOKENS:
            self.add_custom_token(token)

    def find_matching_custom_token(self, value: str) -> CustomToken | None:
        """First token listing ``value`` as an example, ignoring case."""
        for token in self._tokens.values():
            if token.matches(value):
                return token
        return None

    def enhance_with_custom_tokens(self, analysis: TokenAnalysis) -> TokenAnalysis:
        """
        Re-type UNKNOWN tokens that match a custom token.

        Tokens the analysis already classified are left alone.

        Args:
            analysis: Analysis to refine

        Returns:
            A new analysis, or the same one when there is nothing to apply
        """
        if not self._tokens:
            return analysis

        enhanced = {}
        changed = 0
        for filename, tokens in analysis.tokenized_filenames.items():
            updated = []
            for token in tokens:
                custom = None
                if token.suggested_type == TokenType.UNKNOWN:
                    custom = self.find_matching_custom_token(token.value)
                if custom is None:
                    updated.append(token)
                else:
                    updated.append(token.with_type(custom.mapped_type, self.ENHANCED_CONFIDENCE))
                    changed += 1
            enhanced[filename] = updated

        logger.debug(f"Custom tokens re-typed {changed} tokens")
        return analysis.with_tokens(enhanced)

    # ------------------------------------------------------------------
    # Session flag
    # ------------------------------------------------------------------

    def should_offer_custom_token_dialog(
        self, session: PatternBuilderSession, analysis: TokenAnalysis
    ) -> bool:
        """Offer the custom token dialog once per session, and only for unknown segments."""
        return not session.custom_token_dialog_shown and analysis.has_unknown_tokens

    def mark_custom_token_dialog_shown(self, session: PatternBuilderSession) -> None:
        session.custom_token_dialog_shown = True

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, path: Path | None = None) -> Path:
        """
        Write all tokens, one record per line.

        Args:
            path: Target file; defaults to ``config.custom_tokens_path``

        Returns:
            The path written
        """
        path = path or self.config.custom_tokens_path
        path.parent.mkdir(parents=True, exist_ok=True)
        lines = [token.to_record() for token in self._tokens.values()]
        path.write_text("\n".join(lines) + ("\n" if lines else ""), encoding="utf-8")
        logger.info(f"Saved {len(lines)} custom tokens to {path}")
        return path

    def load(self, path: Path | None = None) -> int:
        """
        Replace the tokens with those stored in a file.

        A missing or unreadable file loads the preconfigured tokens instead.
        Malformed records are skipped.

        Returns:
            Number of tokens loaded
        """
        path = path or self.config.custom_tokens_path
        if not path.exists():
            logger.info(f"No custom tokens file at {path}, using preconfigured tokens")
            self.clear_all_custom_tokens()
            self.load_preconfigured_custom_tokens()
            return self.count

        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Failed to read custom tokens from {path}: {e}")
            self.clear_all_custom_tokens()
            self.load_preconfigured_custom_tokens()
            return self.count

        self.clear_all_custom_tokens()
        for line_number, line in enumerate(content.splitlines(), 1):
            if not line.strip():
                continue
            try:
                self.add_custom_token(CustomToken.from_record(line))
            except ValueError as e:
                logger.warning(f"Skipping custom token on line {line_number} of {path}: {e}")

        logger.info(f"Loaded {self.count} custom tokens from {path}")
        return self.count
