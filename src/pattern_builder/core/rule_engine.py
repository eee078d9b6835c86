"""Role classification of filenames using user-authored rules."""

import logging
import re
from collections.abc import Iterable, Sequence

from .models import (
    ImageRole,
    RoleRule,
    RuleType,
    ValidationError,
    ValidationErrorType,
    ValidationResult,
    ValidationWarning,
    ValidationWarningType,
)
from .rule_patterns import build_role_pattern, rule_fragment, rules_for_role

logger = logging.getLogger(__name__)


class RuleEvaluationError(ValueError):
    """Raised when a rule cannot be evaluated, e.g. an invalid regex override."""


class RuleEngine:
    """Assigns image roles to filenames.

    Roles are tried in precedence order (OVERVIEW, FRONT, REAR) and within a
    role its rules are tried by ascending priority. The first matching rule
    decides. Rules are evaluated through the same regex fragments that end up
    in the exported role patterns, tested with search semantics.
    """

    def classify_filename(
        self, filename: str | None, rules: Sequence[RoleRule] | None
    ) -> ImageRole | None:
        """
        Classify a single filename.

        Args:
            filename: The filename to classify
            rules: Role rules to apply

        Returns:
            The first matching role, or None when no rule matches

        Raises:
            ValueError: If the filename is blank or rules are missing
            RuleEvaluationError: If a REGEX_OVERRIDE rule does not compile

        Example:
            >>> engine = RuleEngine()
            >>> engine.classify_filename("vehicle_001_front.jpg", rules)
            <ImageRole.FRONT: 'FRONT'>
        """
        if filename is None or not filename.strip():
            raise ValueError("Filename cannot be blank")
        if rules is None:
            raise ValueError("Rules cannot be None")

        for role in ImageRole.in_precedence_order():
            for rule in rules_for_role(rules, role):
                if self.matches_rule(filename, rule):
                    logger.debug(f"'{filename}' classified as {role.value} by rule {rule}")
                    return role
        return None

    def matches_rule(self, filename: str, rule: RoleRule) -> bool:
        """Whether a single rule matches a filename. Rules without a value never match."""
        fragment = rule_fragment(rule)
        if not fragment:
            return False
        try:
            return re.search(fragment, filename) is not None
        except re.error as e:
            raise RuleEvaluationError(
                f"Invalid regex in {rule.target_role.value} rule '{rule.rule_value}': {e}"
            ) from e

    def classify_filenames(
        self, filenames: Iterable[str | None], rules: Sequence[RoleRule]
    ) -> dict[ImageRole, list[str]]:
        """
        Classify many filenames at once.

        Returns:
            Mapping with every role present, each listing its filenames in
            input order; blank names and unclassified names are skipped
        """
        classified: dict[ImageRole, list[str]] = {
            role: [] for role in ImageRole.in_precedence_order()
        }
        for filename in filenames:
            if filename is None or not filename.strip():
                continue
            role = self.classify_filename(filename, rules)
            if role is not None:
                classified[role].append(filename)
        return classified

    def generate_regex_pattern(
        self, rules: Sequence[RoleRule] | None, role: ImageRole | None
    ) -> str:
        """
        Generate the regex for one role; identical to the generator's role pattern.

        Raises:
            ValueError: If rules or role are missing
        """
        if rules is None:
            raise ValueError("Rules cannot be None")
        if role is None:
            raise ValueError("Role cannot be None")
        return build_role_pattern(rules, role)

    def validate_rules(self, rules: Sequence[RoleRule] | None) -> ValidationResult:
        """
        Check rules for empty values, broken regex overrides and missing roles.

        Returns:
            ValidationResult; regex problems are errors, the rest warnings
        """
        if rules is None:
            return ValidationResult.failure(
                ValidationError.of(
                    ValidationErrorType.INVALID_RULE_CONFIGURATION, "Rule list cannot be None"
                )
            )

        errors: list[ValidationError] = []
        warnings: list[ValidationWarning] = []

        for rule in rules:
            if not rule.has_value:
                warnings.append(
                    ValidationWarning.of(
                        ValidationWarningType.EMPTY_RULE_VALUE,
                        f"Rule for {rule.target_role.value} has an empty value",
                    )
                )
                continue
            if rule.rule_type == RuleType.REGEX_OVERRIDE:
                try:
                    re.compile(rule_fragment(rule))
                except re.error as e:
                    errors.append(
                        ValidationError.of(
                            ValidationErrorType.INVALID_REGEX_PATTERN,
                            f"Invalid regex pattern '{rule.rule_value}': {e}",
                            rule.rule_value,
                        )
                    )

        covered = {rule.target_role for rule in rules}
        for role in ImageRole.in_precedence_order():
            if role not in covered:
                warnings.append(
                    ValidationWarning.of(
                        ValidationWarningType.MISSING_ROLE_RULES,
                        f"No rules defined for {role.value}",
                    )
                )

        return ValidationResult.of(errors, warnings)
