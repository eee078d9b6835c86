"""Tests for Pydantic models."""

from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from ..models import (
    EngineConfig,
    FilenameToken,
    ImageRole,
    PatternConfiguration,
    PresetConfiguration,
    RoleRule,
    RuleType,
    TokenAnalysis,
    TokenSuggestion,
    TokenType,
    ValidationError,
    ValidationErrorType,
    ValidationResult,
    ValidationWarning,
    ValidationWarningType,
)


class TestImageRole:
    """Test cases for ImageRole precedence."""

    def test_precedence_values(self) -> None:
        """Test that OVERVIEW outranks FRONT which outranks REAR."""
        assert ImageRole.OVERVIEW.precedence == 1
        assert ImageRole.FRONT.precedence == 2
        assert ImageRole.REAR.precedence == 3

    def test_in_precedence_order(self) -> None:
        """Test roles come back sorted by precedence."""
        assert ImageRole.in_precedence_order() == [
            ImageRole.OVERVIEW,
            ImageRole.FRONT,
            ImageRole.REAR,
        ]


class TestFilenameToken:
    """Test cases for FilenameToken model."""

    def test_create_token_defaults(self) -> None:
        """Test a token starts out UNKNOWN with zero confidence."""
        token = FilenameToken(value="vehicle", position=0)

        assert token.suggested_type == TokenType.UNKNOWN
        assert token.confidence == 0.0

    def test_negative_position_rejected(self) -> None:
        """Test that positions must not be negative."""
        with pytest.raises(PydanticValidationError):
            FilenameToken(value="x", position=-1)

    def test_confidence_out_of_range_rejected(self) -> None:
        """Test that confidence must lie in the unit interval."""
        with pytest.raises(PydanticValidationError):
            FilenameToken(value="x", position=0, confidence=1.5)

    def test_with_type_clamps_and_copies(self) -> None:
        """Test re-typing returns a new token with clamped confidence."""
        token = FilenameToken(value="001", position=1)
        typed = token.with_type(TokenType.GROUP_ID, 1.7)

        assert typed.suggested_type == TokenType.GROUP_ID
        assert typed.confidence == 1.0
        assert token.suggested_type == TokenType.UNKNOWN

    def test_tokens_are_frozen(self) -> None:
        """Test that tokens cannot be mutated."""
        token = FilenameToken(value="x", position=0)

        with pytest.raises(PydanticValidationError):
            token.value = "y"


class TestTokenSuggestion:
    """Test cases for TokenSuggestion model."""

    def test_confidence_is_clamped(self) -> None:
        """Test that out-of-range confidences are clamped, not rejected."""
        assert TokenSuggestion(type=TokenType.INDEX, confidence=2.0).confidence == 1.0
        assert TokenSuggestion(type=TokenType.INDEX, confidence=-0.5).confidence == 0.0


class TestTokenAnalysis:
    """Test cases for TokenAnalysis."""

    def setup_method(self) -> None:
        """Set up test fixtures."""
        self.tokens = [
            FilenameToken(value="vehicle", position=0, suggested_type=TokenType.PREFIX),
            FilenameToken(value="001", position=1, suggested_type=TokenType.GROUP_ID),
            FilenameToken(value="xyz", position=2),
        ]
        self.analysis = TokenAnalysis(
            filenames=["vehicle_001_xyz"],
            tokenized_filenames={"vehicle_001_xyz": self.tokens},
            suggestions=[TokenSuggestion(type=TokenType.PREFIX, confidence=1.0)],
            confidence_scores={TokenType.PREFIX: 1.0},
            group_id_position=1,
        )

    def test_views_are_immutable(self) -> None:
        """Test that mappings and sequences cannot be modified."""
        assert isinstance(self.analysis.filenames, tuple)
        assert isinstance(self.analysis.tokens_for("vehicle_001_xyz"), tuple)

        with pytest.raises(TypeError):
            self.analysis.tokenized_filenames["other"] = ()
        with pytest.raises(TypeError):
            self.analysis.confidence_scores[TokenType.INDEX] = 0.5

    def test_source_list_changes_do_not_leak(self) -> None:
        """Test that mutating the input list does not change the analysis."""
        self.tokens.append(FilenameToken(value="extra", position=3))

        assert len(self.analysis.tokens_for("vehicle_001_xyz")) == 3

    def test_suggest_group_id_token(self) -> None:
        """Test the token at the inferred position is suggested."""
        token = self.analysis.suggest_group_id_token("vehicle_001_xyz")

        assert token is not None
        assert token.value == "001"

    def test_suggestion_for_missing_type(self) -> None:
        """Test that undetected types have no suggestion."""
        assert self.analysis.suggestion_for(TokenType.DATE) is None
        assert self.analysis.suggestion_for(TokenType.PREFIX) is not None

    def test_has_unknown_tokens(self) -> None:
        """Test detection of unclassified tokens."""
        assert self.analysis.has_unknown_tokens is True


class TestPatternConfiguration:
    """Test cases for PatternConfiguration model."""

    def test_valid_requires_group_and_role_pattern(self) -> None:
        """Test validity needs a group pattern and one role pattern."""
        assert not PatternConfiguration().is_valid()
        assert not PatternConfiguration(group_pattern=r"^(\d+)$").is_valid()
        assert not PatternConfiguration(group_pattern="  ", front_pattern="front").is_valid()
        assert PatternConfiguration(group_pattern=r"^(\d+)$", rear_pattern="rear").is_valid()

    def test_role_patterns_in_precedence_order(self) -> None:
        """Test role patterns are listed OVERVIEW, FRONT, REAR."""
        config = PatternConfiguration(front_pattern="f", rear_pattern="r", overview_pattern="o")

        assert list(config.role_patterns()) == ImageRole.in_precedence_order()
        assert config.role_pattern(ImageRole.REAR) == "r"

    def test_as_role_rules(self) -> None:
        """Test role patterns become verbatim, case-sensitive regex rules."""
        config = PatternConfiguration(group_pattern="(x)", front_pattern="(?i:.*front.*)")

        rules = config.as_role_rules()

        assert len(rules) == 1
        assert rules[0].target_role == ImageRole.FRONT
        assert rules[0].rule_type == RuleType.REGEX_OVERRIDE
        assert rules[0].rule_value == "(?i:.*front.*)"
        assert rules[0].case_sensitive is True


class TestPresetConfiguration:
    """Test cases for PresetConfiguration model."""

    def test_is_valid(self) -> None:
        """Test a preset needs a name and a usable configuration."""
        config = PatternConfiguration(group_pattern=r"^(\d+)$", front_pattern="front")

        assert PresetConfiguration(name="Daily", pattern_config=config).is_valid()
        assert not PresetConfiguration(name=" ", pattern_config=config).is_valid()
        assert not PresetConfiguration(
            name="Daily", pattern_config=PatternConfiguration()
        ).is_valid()

    def test_touch_updates_last_used(self) -> None:
        """Test that touching a preset keeps its creation time."""
        config = PatternConfiguration(group_pattern=r"^(\d+)$", front_pattern="front")
        preset = PresetConfiguration(name="Daily", pattern_config=config)

        touched = preset.touch()

        assert touched.created == preset.created
        assert touched.last_used >= preset.last_used


class TestValidationResult:
    """Test cases for ValidationResult and its messages."""

    def test_success(self) -> None:
        """Test an empty result is valid."""
        result = ValidationResult.success()

        assert result.valid
        assert not result.has_errors
        assert not result.has_warnings

    def test_failure(self) -> None:
        """Test a failure carries its errors and is invalid."""
        error = ValidationError.of(ValidationErrorType.NO_CAPTURING_GROUPS)
        result = ValidationResult.failure(error)

        assert not result.valid
        assert result.errors == (error,)

    def test_default_messages(self) -> None:
        """Test that factories fall back to the type's default message."""
        error = ValidationError.of(ValidationErrorType.NO_GROUP_ID_SELECTED)
        warning = ValidationWarning.of(ValidationWarningType.NO_SAMPLE_FILES)

        assert error.message == "Please select a token to use as Group ID"
        assert warning.message == "No sample files available for validation"

    def test_merge(self) -> None:
        """Test merging keeps all findings and recomputes validity."""
        warning = ValidationResult.of([], [ValidationWarning.of(ValidationWarningType.LOW_MATCH_RATE)])
        error = ValidationResult.failure(ValidationError.of(ValidationErrorType.NO_FILES_MATCHED))

        merged = warning.merge(error)

        assert not merged.valid
        assert len(merged.errors) == 1
        assert len(merged.warnings) == 1

    def test_every_type_has_a_message(self) -> None:
        """Test that no error or warning type lacks a default message."""
        assert all(t.default_message for t in ValidationErrorType)
        assert all(t.default_message for t in ValidationWarningType)


class TestRoleRule:
    """Test cases for RoleRule model."""

    def test_has_value(self) -> None:
        """Test blank rule values are detected."""
        rule = RoleRule(target_role=ImageRole.FRONT, rule_type=RuleType.CONTAINS, rule_value=" ")

        assert not rule.has_value
        assert rule.model_copy(update={"rule_value": "front"}).has_value


class TestEngineConfig:
    """Test cases for EngineConfig model."""

    def test_default_config(self) -> None:
        """Test default configuration values."""
        config = EngineConfig()

        assert "jpg" in config.supported_extensions
        assert config.max_sample_files == 500
        assert config.debounce_seconds == 0.3
        assert config.custom_tokens_path == Path.home() / ".pattern-builder" / "custom-tokens.txt"

    def test_extensions_normalized(self) -> None:
        """Test that extensions are lowercased and stripped of dots."""
        config = EngineConfig(supported_extensions=[".JPG", "Png", "."])

        assert config.supported_extensions == ["jpg", "png"]

    def test_log_level_validation(self) -> None:
        """Test log level names are normalized and checked."""
        assert EngineConfig(log_level="debug").log_level == "DEBUG"

        with pytest.raises(PydanticValidationError):
            EngineConfig(log_level="LOUD")
