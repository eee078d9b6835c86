"""Pydantic models for the filename pattern builder."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TokenType(str, Enum):
    """Semantic role a filename token can play."""

    PREFIX = "PREFIX"
    SUFFIX = "SUFFIX"
    GROUP_ID = "GROUP_ID"
    CAMERA_SIDE = "CAMERA_SIDE"
    DATE = "DATE"
    INDEX = "INDEX"
    EXTENSION = "EXTENSION"
    UNKNOWN = "UNKNOWN"


class ImageRole(str, Enum):
    """Role an image plays inside a vehicle group."""

    OVERVIEW = "OVERVIEW"
    FRONT = "FRONT"
    REAR = "REAR"

    @property
    def precedence(self) -> int:
        """Evaluation order of this role, lower values are checked first."""
        return ROLE_PRECEDENCE[self]

    @classmethod
    def in_precedence_order(cls) -> list["ImageRole"]:
        """All roles sorted by classification precedence."""
        return sorted(cls, key=lambda role: ROLE_PRECEDENCE[role])


# Explicit so that reordering the enum never changes classification.
ROLE_PRECEDENCE: Mapping[ImageRole, int] = MappingProxyType(
    {
        ImageRole.OVERVIEW: 1,
        ImageRole.FRONT: 2,
        ImageRole.REAR: 3,
    }
)


class RuleType(str, Enum):
    """How a role rule compares its value against a filename."""

    EQUALS = "EQUALS"
    CONTAINS = "CONTAINS"
    STARTS_WITH = "STARTS_WITH"
    ENDS_WITH = "ENDS_WITH"
    REGEX_OVERRIDE = "REGEX_OVERRIDE"


class FilenameToken(BaseModel):
    """A single delimiter-separated segment of a filename."""

    model_config = ConfigDict(frozen=True)

    value: str = Field(..., description="Raw segment text")
    position: int = Field(..., ge=0, description="Zero-based index within the filename")
    suggested_type: TokenType = Field(default=TokenType.UNKNOWN, description="Inferred type")
    confidence: float = Field(default=0.0, ge=0.0, le=1.0, description="Inference confidence")

    def with_type(self, token_type: TokenType, confidence: float) -> "FilenameToken":
        """Return a re-classified copy of this token."""
        return self.model_copy(
            update={"suggested_type": token_type, "confidence": min(1.0, max(0.0, confidence))}
        )

    def with_position(self, position: int) -> "FilenameToken":
        """Return a copy of this token at a new position."""
        return self.model_copy(update={"position": position})

    def __str__(self) -> str:
        return f"{self.value}@{self.position} ({self.suggested_type.value}, {self.confidence:.2f})"


class TokenSuggestion(BaseModel):
    """A type detected across the sample, with example values."""

    model_config = ConfigDict(frozen=True)

    type: TokenType = Field(..., description="Detected token type")
    description: str = Field(default="", description="Human readable explanation")
    examples: tuple[str, ...] = Field(default=(), description="Example values, at most three")
    confidence: float = Field(default=0.0, description="Aggregate confidence in [0, 1]")

    @field_validator("confidence")
    @classmethod
    def clamp_confidence(cls, v: float) -> float:
        """Clamp confidence into the unit interval."""
        return min(1.0, max(0.0, v))


@dataclass(frozen=True)
class TokenAnalysis:
    """Result of analyzing a filename sample.

    Sequences are tuples and mappings are read-only views, so an analysis can
    be shared freely between the UI thread and background workers.
    """

    filenames: tuple[str, ...]
    tokenized_filenames: Mapping[str, tuple[FilenameToken, ...]]
    suggestions: tuple[TokenSuggestion, ...] = ()
    confidence_scores: Mapping[TokenType, float] = field(default_factory=dict)
    group_id_position: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "filenames", tuple(self.filenames))
        object.__setattr__(
            self,
            "tokenized_filenames",
            MappingProxyType({k: tuple(v) for k, v in self.tokenized_filenames.items()}),
        )
        object.__setattr__(self, "suggestions", tuple(self.suggestions))
        object.__setattr__(
            self, "confidence_scores", MappingProxyType(dict(self.confidence_scores))
        )

    def tokens_for(self, filename: str) -> tuple[FilenameToken, ...]:
        """Tokens of one analyzed filename, empty when it was not analyzed."""
        return self.tokenized_filenames.get(filename, ())

    def suggestion_for(self, token_type: TokenType) -> TokenSuggestion | None:
        """The suggestion for a token type, if that type was detected."""
        for suggestion in self.suggestions:
            if suggestion.type == token_type:
                return suggestion
        return None

    def suggest_group_id_token(self, filename: str) -> FilenameToken | None:
        """Token of ``filename`` sitting at the inferred group-id position."""
        if self.group_id_position is None:
            return None
        for token in self.tokens_for(filename):
            if token.position == self.group_id_position:
                return token
        return None

    @property
    def has_unknown_tokens(self) -> bool:
        """Whether any analyzed token stayed unclassified."""
        return any(
            token.suggested_type == TokenType.UNKNOWN
            for tokens in self.tokenized_filenames.values()
            for token in tokens
        )

    def with_tokens(
        self, tokenized_filenames: Mapping[str, Sequence[FilenameToken]]
    ) -> "TokenAnalysis":
        """Copy of this analysis with replaced token lists."""
        return TokenAnalysis(
            filenames=self.filenames,
            tokenized_filenames={k: tuple(v) for k, v in tokenized_filenames.items()},
            suggestions=self.suggestions,
            confidence_scores=self.confidence_scores,
            group_id_position=self.group_id_position,
        )


class RoleRule(BaseModel):
    """A user-authored rule mapping filenames to an image role."""

    model_config = ConfigDict(frozen=True)

    target_role: ImageRole = Field(..., description="Role assigned when the rule matches")
    rule_type: RuleType = Field(..., description="Comparison strategy")
    rule_value: str = Field(default="", description="Literal text or regex fragment")
    case_sensitive: bool = Field(default=False, description="Match case exactly")
    priority: int = Field(default=0, description="Lower values are evaluated first")

    @property
    def has_value(self) -> bool:
        """Whether the rule carries a non-blank value."""
        return bool(self.rule_value and self.rule_value.strip())

    def __str__(self) -> str:
        case = "case-sensitive" if self.case_sensitive else "case-insensitive"
        return f"{self.target_role.value}: {self.rule_type.value} '{self.rule_value}' ({case})"


class PatternConfiguration(BaseModel):
    """The generated group and role patterns, ready for the upload pipeline."""

    model_config = ConfigDict(frozen=True)

    group_pattern: str = Field(default="", description="Regex with one capturing group")
    front_pattern: str = Field(default="", description="Regex selecting FRONT images")
    rear_pattern: str = Field(default="", description="Regex selecting REAR images")
    overview_pattern: str = Field(default="", description="Regex selecting OVERVIEW images")
    role_rules: tuple[RoleRule, ...] = Field(default=(), description="Rules the patterns came from")
    tokens: tuple[FilenameToken, ...] = Field(default=(), description="Tokens of the sample name")
    group_id_token: FilenameToken | None = Field(default=None, description="Selected group id")

    def role_pattern(self, role: ImageRole) -> str:
        """Pattern string for a single role."""
        return {
            ImageRole.OVERVIEW: self.overview_pattern,
            ImageRole.FRONT: self.front_pattern,
            ImageRole.REAR: self.rear_pattern,
        }[role]

    def role_patterns(self) -> dict[ImageRole, str]:
        """All role patterns in precedence order."""
        return {role: self.role_pattern(role) for role in ImageRole.in_precedence_order()}

    def is_valid(self) -> bool:
        """A usable configuration has a group pattern and at least one role pattern."""
        if not self.group_pattern.strip():
            return False
        return any(pattern.strip() for pattern in self.role_patterns().values())

    def as_role_rules(self) -> list[RoleRule]:
        """
        Express the role patterns as verbatim regex rules.

        Classifying with these rules gives exactly what a consumer of the
        exported patterns sees, whether the patterns were generated or typed
        in by hand.
        """
        return [
            RoleRule(
                target_role=role,
                rule_type=RuleType.REGEX_OVERRIDE,
                rule_value=pattern,
                case_sensitive=True,
            )
            for role, pattern in self.role_patterns().items()
            if pattern.strip()
        ]


class PresetConfiguration(BaseModel):
    """A named, reusable pattern configuration."""

    name: str = Field(..., description="Preset name")
    description: str = Field(default="", description="Free text description")
    pattern_config: PatternConfiguration = Field(..., description="Saved configuration")
    created: datetime = Field(default_factory=datetime.now, description="Creation time")
    last_used: datetime = Field(default_factory=datetime.now, description="Last time applied")

    def is_valid(self) -> bool:
        """A preset needs a name and a usable configuration."""
        return bool(self.name.strip()) and self.pattern_config.is_valid()

    def touch(self) -> "PresetConfiguration":
        """Copy of this preset marked as used now."""
        return self.model_copy(update={"last_used": datetime.now()})

    def __str__(self) -> str:
        return f"Preset '{self.name}' (last used {self.last_used:%Y-%m-%d %H:%M})"


class ValidationErrorType(str, Enum):
    """Blocking validation problems."""

    NO_GROUP_ID_SELECTED = "NO_GROUP_ID_SELECTED"
    INVALID_GROUP_PATTERN = "INVALID_GROUP_PATTERN"
    NO_ROLE_RULES_DEFINED = "NO_ROLE_RULES_DEFINED"
    NO_FILES_MATCHED = "NO_FILES_MATCHED"
    REGEX_SYNTAX_ERROR = "REGEX_SYNTAX_ERROR"
    EMPTY_GROUP_PATTERN = "EMPTY_GROUP_PATTERN"
    NO_ROLE_PATTERNS = "NO_ROLE_PATTERNS"
    INVALID_RULE_VALUE = "INVALID_RULE_VALUE"
    MULTIPLE_CAPTURING_GROUPS = "MULTIPLE_CAPTURING_GROUPS"
    NO_CAPTURING_GROUPS = "NO_CAPTURING_GROUPS"
    INVALID_RULE_CONFIGURATION = "INVALID_RULE_CONFIGURATION"
    INVALID_REGEX_PATTERN = "INVALID_REGEX_PATTERN"

    @property
    def default_message(self) -> str:
        """Message used when no specific one is given."""
        return _ERROR_MESSAGES[self]


class ValidationWarningType(str, Enum):
    """Non-blocking validation findings."""

    UNMATCHED_FILES = "UNMATCHED_FILES"
    INCOMPLETE_GROUP_COVERAGE = "INCOMPLETE_GROUP_COVERAGE"
    OVERLAPPING_RULES = "OVERLAPPING_RULES"
    NO_OVERVIEW_IMAGES = "NO_OVERVIEW_IMAGES"
    EMPTY_RULE_VALUE = "EMPTY_RULE_VALUE"
    MISSING_ROLE_RULES = "MISSING_ROLE_RULES"
    NO_SAMPLE_FILES = "NO_SAMPLE_FILES"
    LOW_MATCH_RATE = "LOW_MATCH_RATE"
    INCOMPLETE_GROUPS = "INCOMPLETE_GROUPS"

    @property
    def default_message(self) -> str:
        """Message used when no specific one is given."""
        return _WARNING_MESSAGES[self]


_ERROR_MESSAGES = {
    ValidationErrorType.NO_GROUP_ID_SELECTED: "Please select a token to use as Group ID",
    ValidationErrorType.INVALID_GROUP_PATTERN: "Group pattern must contain exactly one capturing group",
    ValidationErrorType.NO_ROLE_RULES_DEFINED: "At least one role rule must be defined",
    ValidationErrorType.NO_FILES_MATCHED: "Pattern doesn't match any sample files",
    ValidationErrorType.REGEX_SYNTAX_ERROR: "Invalid regex pattern syntax",
    ValidationErrorType.EMPTY_GROUP_PATTERN: "Group pattern cannot be empty",
    ValidationErrorType.NO_ROLE_PATTERNS: "At least one role pattern must be defined",
    ValidationErrorType.INVALID_RULE_VALUE: "Rule value cannot be empty",
    ValidationErrorType.MULTIPLE_CAPTURING_GROUPS: "Group pattern has multiple capturing groups",
    ValidationErrorType.NO_CAPTURING_GROUPS: "Group pattern must contain exactly one capturing group",
    ValidationErrorType.INVALID_RULE_CONFIGURATION: "Invalid rule configuration",
    ValidationErrorType.INVALID_REGEX_PATTERN: "Invalid regex pattern in rule",
}

_WARNING_MESSAGES = {
    ValidationWarningType.UNMATCHED_FILES: "Some files don't match any role pattern",
    ValidationWarningType.INCOMPLETE_GROUP_COVERAGE: "Some groups are missing role assignments",
    ValidationWarningType.OVERLAPPING_RULES: "Some rules may overlap",
    ValidationWarningType.NO_OVERVIEW_IMAGES: "No overview images detected",
    ValidationWarningType.EMPTY_RULE_VALUE: "Rule has empty value",
    ValidationWarningType.MISSING_ROLE_RULES: "No rules defined for role",
    ValidationWarningType.NO_SAMPLE_FILES: "No sample files available for validation",
    ValidationWarningType.LOW_MATCH_RATE: "Low match rate detected",
    ValidationWarningType.INCOMPLETE_GROUPS: "Some groups are incomplete",
}


class ValidationError(BaseModel):
    """A blocking validation problem."""

    model_config = ConfigDict(frozen=True)

    type: ValidationErrorType = Field(..., description="Error category")
    message: str = Field(..., description="User-facing message")
    context: str | None = Field(default=None, description="Offending value or pattern")

    @classmethod
    def of(
        cls, error_type: ValidationErrorType, message: str | None = None, context: str | None = None
    ) -> "ValidationError":
        """Build an error, falling back to the type's default message."""
        return cls(type=error_type, message=message or error_type.default_message, context=context)

    def __str__(self) -> str:
        return self.message


class ValidationWarning(BaseModel):
    """A non-blocking validation finding."""

    model_config = ConfigDict(frozen=True)

    type: ValidationWarningType = Field(..., description="Warning category")
    message: str = Field(..., description="User-facing message")
    context: str | None = Field(default=None, description="Related value or pattern")

    @classmethod
    def of(
        cls,
        warning_type: ValidationWarningType,
        message: str | None = None,
        context: str | None = None,
    ) -> "ValidationWarning":
        """Build a warning, falling back to the type's default message."""
        return cls(
            type=warning_type, message=message or warning_type.default_message, context=context
        )

    def __str__(self) -> str:
        return self.message


class ValidationResult(BaseModel):
    """Immutable snapshot of validation findings."""

    model_config = ConfigDict(frozen=True)

    valid: bool = Field(default=True, description="True when there are no errors")
    errors: tuple[ValidationError, ...] = Field(default=(), description="Blocking problems")
    warnings: tuple[ValidationWarning, ...] = Field(default=(), description="Advisories")

    @classmethod
    def success(cls) -> "ValidationResult":
        """A result without findings."""
        return cls()

    @classmethod
    def failure(cls, *errors: ValidationError) -> "ValidationResult":
        """A result carrying the given errors."""
        return cls(valid=not errors, errors=tuple(errors))

    @classmethod
    def of(
        cls, errors: Sequence[ValidationError], warnings: Sequence[ValidationWarning] = ()
    ) -> "ValidationResult":
        """A result whose validity follows from its errors."""
        return cls(valid=not errors, errors=tuple(errors), warnings=tuple(warnings))

    @property
    def has_errors(self) -> bool:
        """Whether any blocking error is present."""
        return bool(self.errors)

    @property
    def has_warnings(self) -> bool:
        """Whether any warning is present."""
        return bool(self.warnings)

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        """Combine findings of two results."""
        return ValidationResult.of(self.errors + other.errors, self.warnings + other.warnings)

    def __str__(self) -> str:
        return f"ValidationResult(valid={self.valid}, errors={len(self.errors)}, warnings={len(self.warnings)})"


DEFAULT_EXTENSIONS = ["jpg", "jpeg", "png", "bmp", "tiff", "tif", "gif", "webp"]


class EngineConfig(BaseModel):
    """Configuration settings for the pattern builder."""

    supported_extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXTENSIONS),
        description="Image extensions recognized as EXTENSION tokens",
    )
    max_sample_files: int = Field(
        default=500, gt=0, description="Maximum filenames analyzed in the background"
    )
    debounce_seconds: float = Field(
        default=0.3, ge=0.0, description="Quiet period before revalidation runs"
    )
    low_match_rate_threshold: float = Field(
        default=0.5, ge=0.0, le=1.0, description="Match ratio below which a warning is raised"
    )
    constant_token_ratio: float = Field(
        default=0.5,
        ge=0.0,
        lt=1.0,
        description="Share of the sample a value must exceed to count as a fixed prefix/suffix",
    )
    custom_tokens_path: Path = Field(
        default_factory=lambda: Path.home() / ".pattern-builder" / "custom-tokens.txt",
        description="Where custom tokens are saved",
    )
    presets_path: Path = Field(
        default_factory=lambda: Path.home() / ".pattern-builder" / "presets.json",
        description="Where presets are saved",
    )
    enable_logging: bool = Field(default=True, description="Enable application logging")
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("supported_extensions")
    @classmethod
    def validate_extensions(cls, v: list[str]) -> list[str]:
        """Store extensions lowercase and without a leading dot."""
        return [ext.lower().lstrip(".") for ext in v if ext.strip(". ")]

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and check the logging level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level
