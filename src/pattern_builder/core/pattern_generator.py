"""Group and role pattern generation for filename grouping."""

import logging
import re
from collections.abc import Iterable, Sequence
from itertools import combinations

from .extensions import longest_first_alternation
from .models import (
    EngineConfig,
    FilenameToken,
    ImageRole,
    PatternConfiguration,
    RoleRule,
    RuleType,
    TokenType,
    ValidationError,
    ValidationErrorType,
    ValidationResult,
    ValidationWarning,
    ValidationWarningType,
)
from .rule_patterns import build_role_pattern
from .tokenizer import CAMERA_SYNONYMS, FilenameTokenizer

logger = logging.getLogger(__name__)


class PatternGenerator:
    """Builds the regular expressions handed to the upload pipeline."""

    DELIMITER = r"[_\-.\s]+"
    GROUP_CAPTURE = r"([\w\-]+)"
    INDEX_FRAGMENT = r"\d+"

    def __init__(self, config: EngineConfig | None = None):
        """Initialize the generator with an optional engine config."""
        self.config = config or EngineConfig()
        self._tokenizer = FilenameTokenizer(self.config)

        synonyms = [s for values in CAMERA_SYNONYMS.values() for s in values]
        self._camera_fragment = "(?i:" + longest_first_alternation(synonyms) + ")"
        self._extension_fragment = "(?i:" + longest_first_alternation(self.config.supported_extensions) + ")"

    def generate_group_pattern(
        self, tokens: Sequence[FilenameToken], group_id_token: FilenameToken | None
    ) -> str:
        """
        Generate the anchored group pattern for a tokenized sample filename.

        The group-id token becomes the only capturing group; every other token
        becomes a non-capturing fragment chosen by its suggested type, and
        fragments are joined by a delimiter class.

        Args:
            tokens: Tokens of one sample filename, in order
            group_id_token: The token that identifies the vehicle group

        Returns:
            The pattern, or an empty string when there are no tokens

        Raises:
            ValueError: If no group-id token is given or it is not one of ``tokens``

        Example:
            >>> generator.generate_group_pattern(tokens, tokens[1])
            '^vehicle[_\\-.\\s]+([\\w\\-]+)[_\\-.\\s]+(?i:...)[_\\-.\\s]+(?i:...)$'
        """
        tokens = list(tokens)
        if not tokens:
            return ""
        if group_id_token is None:
            raise ValueError("A group ID token must be selected")
        if group_id_token not in tokens:
            raise ValueError(f"Group ID token '{group_id_token.value}' is not one of the tokens")

        group_index = tokens.index(group_id_token)
        fragments = [
            self.GROUP_CAPTURE if i == group_index else self._token_fragment(token)
            for i, token in enumerate(tokens)
        ]
        pattern = "^" + self.DELIMITER.join(fragments) + "$"

        captures = re.compile(pattern).groups
        if captures != 1:
            logger.error(f"Generated group pattern has {captures} capturing groups: {pattern}")
        logger.debug(f"Generated group pattern: {pattern}")
        return pattern

    def _token_fragment(self, token: FilenameToken) -> str:
        if token.suggested_type == TokenType.DATE:
            return self._date_fragment(token.value)
        if token.suggested_type == TokenType.INDEX:
            return self.INDEX_FRAGMENT
        if token.suggested_type == TokenType.CAMERA_SIDE:
            return self._camera_fragment
        if token.suggested_type == TokenType.EXTENSION:
            return self._extension_fragment
        return re.escape(token.value)

    def _date_fragment(self, value: str) -> str:
        # Date tokens are re-joined with "-" but may be written with any delimiter.
        if self._tokenizer.ISO_DATE_PATTERN.fullmatch(value):
            return rf"\d{{4}}{self.DELIMITER}\d{{2}}{self.DELIMITER}\d{{2}}"
        if self._tokenizer.US_DATE_PATTERN.fullmatch(value):
            return rf"\d{{2}}{self.DELIMITER}\d{{2}}{self.DELIMITER}\d{{4}}"
        if self._tokenizer.COMPACT_DATE_PATTERN.fullmatch(value):
            return r"\d{8}"
        return re.escape(value)

    def generate_role_pattern(self, rules: Iterable[RoleRule] | None, role: ImageRole) -> str:
        """
        Generate the pattern selecting one image role.

        Args:
            rules: All role rules; only those targeting ``role`` are used
            role: The role to build a pattern for

        Returns:
            The combined pattern, or an empty string when the role has no rules
        """
        if rules is None:
            return ""
        pattern = build_role_pattern(rules, role)
        logger.debug(f"Generated {role.value} pattern: {pattern!r}")
        return pattern

    def build_configuration(
        self,
        tokens: Sequence[FilenameToken],
        group_id_token: FilenameToken | None,
        rules: Iterable[RoleRule],
    ) -> PatternConfiguration:
        """
        Build a complete configuration from a token selection and role rules.

        A missing group-id token yields an empty group pattern rather than an
        exception, so the configuration can still be validated and explained.
        """
        rules = tuple(rules)
        group_pattern = ""
        if group_id_token is not None:
            group_pattern = self.generate_group_pattern(tokens, group_id_token)

        return PatternConfiguration(
            group_pattern=group_pattern,
            front_pattern=self.generate_role_pattern(rules, ImageRole.FRONT),
            rear_pattern=self.generate_role_pattern(rules, ImageRole.REAR),
            overview_pattern=self.generate_role_pattern(rules, ImageRole.OVERVIEW),
            role_rules=rules,
            tokens=tuple(tokens),
            group_id_token=group_id_token,
        )

    def build_advanced_configuration(
        self,
        group_pattern: str,
        front_pattern: str = "",
        rear_pattern: str = "",
        overview_pattern: str = "",
        rules: Iterable[RoleRule] = (),
    ) -> PatternConfiguration:
        """Build a configuration from hand-edited patterns."""
        return PatternConfiguration(
            group_pattern=group_pattern or "",
            front_pattern=front_pattern or "",
            rear_pattern=rear_pattern or "",
            overview_pattern=overview_pattern or "",
            role_rules=tuple(rules),
        )

    def validate_patterns(self, config: PatternConfiguration | None) -> ValidationResult:
        """
        Check a configuration for structural problems.

        Args:
            config: The configuration to check

        Returns:
            ValidationResult with blocking errors and advisory warnings
        """
        if config is None:
            return ValidationResult.failure(
                ValidationError.of(
                    ValidationErrorType.NO_GROUP_ID_SELECTED, "No pattern configuration provided"
                )
            )

        errors: list[ValidationError] = []
        warnings: list[ValidationWarning] = []

        errors.extend(self._validate_group_pattern(config))

        role_patterns = config.role_patterns()
        if not any(pattern.strip() for pattern in role_patterns.values()):
            if config.role_rules:
                errors.append(ValidationError.of(ValidationErrorType.NO_ROLE_PATTERNS))
            else:
                errors.append(ValidationError.of(ValidationErrorType.NO_ROLE_RULES_DEFINED))

        for role, pattern in role_patterns.items():
            if not pattern.strip():
                continue
            try:
                re.compile(pattern)
            except re.error as e:
                errors.append(
                    ValidationError.of(
                        ValidationErrorType.REGEX_SYNTAX_ERROR,
                        f"Invalid {role.value.lower()} pattern: {e}",
                        pattern,
                    )
                )

        for rule in config.role_rules:
            if not rule.has_value:
                errors.append(
                    ValidationError.of(
                        ValidationErrorType.INVALID_RULE_VALUE,
                        f"Rule for {rule.target_role.value} has an empty value",
                    )
                )

        if not role_patterns[ImageRole.OVERVIEW].strip():
            warnings.append(ValidationWarning.of(ValidationWarningType.NO_OVERVIEW_IMAGES))
        warnings.extend(self._overlapping_rule_warnings(config.role_rules))

        result = ValidationResult.of(errors, warnings)
        logger.debug(f"Pattern validation: {result}")
        return result

    def _validate_group_pattern(self, config: PatternConfiguration) -> list[ValidationError]:
        pattern = config.group_pattern
        if not pattern.strip():
            if config.group_id_token is None:
                return [ValidationError.of(ValidationErrorType.NO_GROUP_ID_SELECTED)]
            return [ValidationError.of(ValidationErrorType.EMPTY_GROUP_PATTERN)]

        try:
            compiled = re.compile(pattern)
        except re.error as e:
            return [
                ValidationError.of(
                    ValidationErrorType.REGEX_SYNTAX_ERROR,
                    f"Invalid group pattern syntax: {e}",
                    pattern,
                )
            ]

        if compiled.groups == 0:
            return [ValidationError.of(ValidationErrorType.NO_CAPTURING_GROUPS, context=pattern)]
        if compiled.groups > 1:
            return [
                ValidationError.of(
                    ValidationErrorType.MULTIPLE_CAPTURING_GROUPS,
                    f"Group pattern has {compiled.groups} capturing groups, expected exactly one",
                    pattern,
                )
            ]
        return []

    def _overlapping_rule_warnings(self, rules: Sequence[RoleRule]) -> list[ValidationWarning]:
        contains_rules = [r for r in rules if r.rule_type == RuleType.CONTAINS and r.has_value]
        warnings = []
        for first, second in combinations(contains_rules, 2):
            if first.target_role == second.target_role:
                continue
            a, b = first.rule_value.strip().lower(), second.rule_value.strip().lower()
            if a in b or b in a:
                warnings.append(
                    ValidationWarning.of(
                        ValidationWarningType.OVERLAPPING_RULES,
                        f"Rules '{first.rule_value}' ({first.target_role.value}) and "
                        f"'{second.rule_value}' ({second.target_role.value}) may overlap",
                    )
                )
        return warnings
