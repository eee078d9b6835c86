"""Tests for pattern generator module."""

import re

import pytest

from ..models import (
    FilenameToken,
    ImageRole,
    PatternConfiguration,
    RoleRule,
    RuleType,
    TokenType,
    ValidationErrorType,
    ValidationWarningType,
)
from ..pattern_generator import PatternGenerator
from ..tokenizer import FilenameTokenizer

VEHICLE_FILES = [
    "vehicle_001_front.jpg",
    "vehicle_001_rear.jpg",
    "vehicle_002_front.jpg",
    "vehicle_002_rear.jpg",
]


def rule(role: ImageRole, rule_type: RuleType, value: str, **kwargs) -> RoleRule:
    """Helper to build a role rule."""
    return RoleRule(target_role=role, rule_type=rule_type, rule_value=value, **kwargs)


class TestGenerateGroupPattern:
    """Test cases for group pattern generation."""

    def setup_method(self) -> None:
        """Set up test fixtures."""
        self.generator = PatternGenerator()
        analysis = FilenameTokenizer().analyze_filenames(VEHICLE_FILES)
        self.tokens = list(analysis.tokens_for("vehicle_001_front.jpg"))
        self.group_token = analysis.suggest_group_id_token("vehicle_001_front.jpg")

    def test_pattern_groups_vehicle_sample(self) -> None:
        """Test the generated pattern matches every file and extracts its id."""
        pattern = self.generator.generate_group_pattern(self.tokens, self.group_token)
        compiled = re.compile(pattern)

        extracted = [compiled.match(name).group(1) for name in VEHICLE_FILES]
        assert extracted == ["001", "001", "002", "002"]

    def test_exactly_one_capturing_group_for_any_choice(self) -> None:
        """Test that whichever token is chosen, one capturing group results."""
        for token in self.tokens:
            pattern = self.generator.generate_group_pattern(self.tokens, token)

            assert re.compile(pattern).groups == 1

    def test_camera_and_extension_ignore_case(self) -> None:
        """Test camera sides and extensions match regardless of case."""
        pattern = self.generator.generate_group_pattern(self.tokens, self.group_token)

        match = re.match(pattern, "vehicle_003_REAR.JPG")
        assert match is not None
        assert match.group(1) == "003"

    def test_literal_tokens_are_escaped(self) -> None:
        """Test regex characters in literal tokens are escaped."""
        tokens = [
            FilenameToken(value="a(b)", position=0, suggested_type=TokenType.PREFIX),
            FilenameToken(value="X1", position=1, suggested_type=TokenType.GROUP_ID),
        ]

        pattern = self.generator.generate_group_pattern(tokens, tokens[1])

        assert re.compile(pattern).groups == 1
        assert re.match(pattern, "a(b)_X9").group(1) == "X9"
        assert re.match(pattern, "ab_X9") is None

    def test_date_fragment_accepts_any_delimiter(self) -> None:
        """Test merged date tokens match dates written with other delimiters."""
        tokens = [
            FilenameToken(value="2024-01-15", position=0, suggested_type=TokenType.DATE),
            FilenameToken(value="ABC", position=1, suggested_type=TokenType.GROUP_ID),
            FilenameToken(value="jpg", position=2, suggested_type=TokenType.EXTENSION),
        ]

        pattern = self.generator.generate_group_pattern(tokens, tokens[1])

        assert re.match(pattern, "2024_01_15_ABC.JPG").group(1) == "ABC"
        assert re.match(pattern, "2023-12-31-XYZ.jpg").group(1) == "XYZ"

    def test_index_fragment(self) -> None:
        """Test INDEX tokens match any number."""
        tokens = [
            FilenameToken(value="ID7", position=0, suggested_type=TokenType.GROUP_ID),
            FilenameToken(value="12", position=1, suggested_type=TokenType.INDEX),
        ]

        pattern = self.generator.generate_group_pattern(tokens, tokens[0])

        assert re.match(pattern, "ID8_345").group(1) == "ID8"

    def test_empty_tokens(self) -> None:
        """Test that no tokens give an empty pattern."""
        assert self.generator.generate_group_pattern([], None) == ""

    def test_missing_group_token(self) -> None:
        """Test that a group id token is required."""
        with pytest.raises(ValueError, match="must be selected"):
            self.generator.generate_group_pattern(self.tokens, None)

    def test_foreign_group_token(self) -> None:
        """Test that the group id token must belong to the tokens."""
        foreign = FilenameToken(value="999", position=7)

        with pytest.raises(ValueError, match="not one of the tokens"):
            self.generator.generate_group_pattern(self.tokens, foreign)


class TestGenerateRolePattern:
    """Test cases for role pattern generation."""

    def setup_method(self) -> None:
        """Set up test fixtures."""
        self.generator = PatternGenerator()

    def test_rule_type_fragments(self) -> None:
        """Test each literal rule type becomes its anchored fragment."""
        cases = {
            RuleType.EQUALS: "(?i:^a\\.b$)",
            RuleType.CONTAINS: "(?i:.*a\\.b.*)",
            RuleType.STARTS_WITH: "(?i:^a\\.b.*)",
            RuleType.ENDS_WITH: "(?i:.*a\\.b$)",
        }
        for rule_type, expected in cases.items():
            rules = [rule(ImageRole.FRONT, rule_type, "a.b")]

            assert self.generator.generate_role_pattern(rules, ImageRole.FRONT) == expected

    def test_regex_override_verbatim(self) -> None:
        """Test override values are used unescaped."""
        rules = [rule(ImageRole.REAR, RuleType.REGEX_OVERRIDE, r"_r\d+", case_sensitive=True)]

        assert self.generator.generate_role_pattern(rules, ImageRole.REAR) == r"_r\d+"

    def test_mixed_case_sensitivity_scoped_per_rule(self) -> None:
        """Test that only case-insensitive rules get a scoped flag."""
        rules = [
            rule(ImageRole.FRONT, RuleType.STARTS_WITH, "F", case_sensitive=True, priority=1),
            rule(ImageRole.FRONT, RuleType.CONTAINS, "front", priority=0),
        ]

        pattern = self.generator.generate_role_pattern(rules, ImageRole.FRONT)

        assert pattern == "(?:(?i:.*front.*)|^F.*)"
        assert re.search(pattern, "FRONT_1.jpg")
        assert re.search(pattern, "F_1.jpg")
        assert not re.search(pattern, "f_1.jpg")

    def test_role_without_rules(self) -> None:
        """Test that a role nobody targets gets an empty pattern."""
        rules = [rule(ImageRole.FRONT, RuleType.CONTAINS, "front")]

        assert self.generator.generate_role_pattern(rules, ImageRole.OVERVIEW) == ""
        assert self.generator.generate_role_pattern(None, ImageRole.FRONT) == ""


class TestBuildConfiguration:
    """Test cases for configuration assembly."""

    def setup_method(self) -> None:
        """Set up test fixtures."""
        self.generator = PatternGenerator()
        self.tokens = FilenameTokenizer().tokenize_filename("vehicle_001_front.jpg")
        self.rules = [
            rule(ImageRole.FRONT, RuleType.CONTAINS, "front"),
            rule(ImageRole.REAR, RuleType.CONTAINS, "rear"),
        ]

    def test_build_configuration(self) -> None:
        """Test a full configuration from a selection and rules."""
        config = self.generator.build_configuration(self.tokens, self.tokens[1], self.rules)

        assert config.is_valid()
        assert config.front_pattern == "(?i:.*front.*)"
        assert config.overview_pattern == ""
        assert config.group_id_token == self.tokens[1]

    def test_build_without_group_token(self) -> None:
        """Test that a missing selection yields an empty group pattern."""
        config = self.generator.build_configuration(self.tokens, None, self.rules)

        assert config.group_pattern == ""
        assert not config.is_valid()


class TestValidatePatterns:
    """Test cases for structural pattern validation."""

    def setup_method(self) -> None:
        """Set up test fixtures."""
        self.generator = PatternGenerator()

    def error_types(self, config: PatternConfiguration | None) -> list[ValidationErrorType]:
        """Helper returning the error types of a validation."""
        return [error.type for error in self.generator.validate_patterns(config).errors]

    def test_null_configuration(self) -> None:
        """Test that a missing configuration is an error."""
        assert self.error_types(None) == [ValidationErrorType.NO_GROUP_ID_SELECTED]

    def test_capturing_group_count(self) -> None:
        """Test zero and multiple capturing groups are reported."""
        none = PatternConfiguration(group_pattern=r"^v_\d+$", front_pattern="f")
        many = PatternConfiguration(group_pattern=r"^(v)_(\d+)$", front_pattern="f")

        assert self.error_types(none) == [ValidationErrorType.NO_CAPTURING_GROUPS]
        assert self.error_types(many) == [ValidationErrorType.MULTIPLE_CAPTURING_GROUPS]

    def test_syntax_errors(self) -> None:
        """Test invalid group and role regexes are reported."""
        config = PatternConfiguration(group_pattern="^(v", front_pattern="[front")

        assert self.error_types(config) == [
            ValidationErrorType.REGEX_SYNTAX_ERROR,
            ValidationErrorType.REGEX_SYNTAX_ERROR,
        ]

    def test_missing_roles(self) -> None:
        """Test that at least one role pattern is required."""
        config = PatternConfiguration(group_pattern=r"^v_(\d+)$")

        assert self.error_types(config) == [ValidationErrorType.NO_ROLE_RULES_DEFINED]

    def test_blank_rule_value(self) -> None:
        """Test that rules with blank values are errors."""
        rules = (
            rule(ImageRole.FRONT, RuleType.CONTAINS, "front"),
            rule(ImageRole.REAR, RuleType.CONTAINS, "  "),
        )
        config = PatternConfiguration(
            group_pattern=r"^v_(\d+)$", front_pattern="(?i:.*front.*)", role_rules=rules
        )

        assert self.error_types(config) == [ValidationErrorType.INVALID_RULE_VALUE]

    def test_no_group_id_selected(self) -> None:
        """Test an empty group pattern without a selection asks for a selection."""
        config = PatternConfiguration(front_pattern="front")

        assert self.error_types(config) == [ValidationErrorType.NO_GROUP_ID_SELECTED]

    def test_overview_and_overlap_warnings(self) -> None:
        """Test warnings for missing overview and overlapping contains rules."""
        rules = (
            rule(ImageRole.FRONT, RuleType.CONTAINS, "front"),
            rule(ImageRole.REAR, RuleType.CONTAINS, "frontrear"),
        )
        config = self.generator.build_advanced_configuration(
            r"^v_(\d+)",
            front_pattern=self.generator.generate_role_pattern(rules, ImageRole.FRONT),
            rear_pattern=self.generator.generate_role_pattern(rules, ImageRole.REAR),
            rules=rules,
        )

        result = self.generator.validate_patterns(config)

        assert result.valid
        assert [w.type for w in result.warnings] == [
            ValidationWarningType.NO_OVERVIEW_IMAGES,
            ValidationWarningType.OVERLAPPING_RULES,
        ]

    def test_generated_configuration_is_valid(self) -> None:
        """Test that a configuration built from a selection passes."""
        tokens = FilenameTokenizer().tokenize_filename("vehicle_001_front.jpg")
        rules = [rule(ImageRole.OVERVIEW, RuleType.CONTAINS, "overview")]
        config = self.generator.build_configuration(tokens, tokens[1], rules)

        result = self.generator.validate_patterns(config)

        assert result.valid
        assert result.warnings == ()

    def test_inline_flag_overrides_build_valid_configuration(self) -> None:
        """Test overrides with leading inline flags combine into valid role patterns."""
        tokens = FilenameTokenizer().tokenize_filename("vehicle_001_front.jpg")
        rules = [
            rule(ImageRole.FRONT, RuleType.REGEX_OVERRIDE, "(?i)front", priority=0),
            rule(ImageRole.FRONT, RuleType.REGEX_OVERRIDE, "(?x)_f \\d", priority=1),
            rule(ImageRole.REAR, RuleType.CONTAINS, "rear"),
        ]
        config = self.generator.build_configuration(tokens, tokens[1], rules)

        assert config.front_pattern == r"(?:(?i:front)|(?ix:_f \d))"
        assert self.error_types(config) == []
        assert re.search(config.front_pattern, "vehicle_001_FRONT.jpg")
        assert re.search(config.front_pattern, "vehicle_001_F1.jpg")
