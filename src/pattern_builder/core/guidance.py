"""User guidance for validation problems: fixes, priorities and help texts."""

from collections.abc import Iterable, Sequence

from .models import ValidationError, ValidationErrorType, ValidationWarning

FIX_RECOMMENDATIONS: dict[ValidationErrorType, tuple[str, ...]] = {
    ValidationErrorType.NO_GROUP_ID_SELECTED: (
        "Select a token from the filename that uniquely identifies each vehicle group",
        "Look for tokens that contain vehicle IDs, license plates, or unique identifiers",
        "Avoid selecting tokens that are the same across all files (like prefixes or extensions)",
    ),
    ValidationErrorType.INVALID_GROUP_PATTERN: (
        "Ensure the Group Pattern contains exactly one set of parentheses (capturing group)",
        "Check that parentheses are properly matched and not escaped",
        "If using advanced mode, verify the regex syntax is correct",
    ),
    ValidationErrorType.NO_ROLE_RULES_DEFINED: (
        "Define at least one rule to identify front, rear, or overview images",
        "Use 'contains' rules for common keywords like 'front', 'rear', 'overview'",
        "Start with simple rules and refine based on preview results",
    ),
    ValidationErrorType.NO_FILES_MATCHED: (
        "Try selecting a different token as the Group ID",
        "Check if the selected folder contains the expected image files",
        "Verify that filenames follow a consistent pattern",
        "Consider using a more general Group ID token",
    ),
    ValidationErrorType.REGEX_SYNTAX_ERROR: (
        "Check for unmatched parentheses, brackets, or braces",
        "Ensure special characters are properly escaped with backslashes",
        "Verify that quantifiers (+, *, ?, {}) are used correctly",
        "Switch to Simple mode for automatic regex generation",
    ),
    ValidationErrorType.EMPTY_GROUP_PATTERN: (
        "Select a Group ID token to generate the pattern automatically",
        "If in Advanced mode, enter a valid regex pattern",
        "Ensure the pattern contains exactly one capturing group",
    ),
    ValidationErrorType.NO_ROLE_PATTERNS: (
        "Define rules for at least one image role (front, rear, or overview)",
        "Use the role rules section to specify how to identify each image type",
        "If in Advanced mode, enter regex patterns for the roles you need",
    ),
    ValidationErrorType.INVALID_RULE_VALUE: (
        "Enter a value for the rule (e.g., 'front', 'rear', 'overview')",
        "Use keywords that appear in your filenames",
        "Check the sample filenames for common patterns",
    ),
    ValidationErrorType.MULTIPLE_CAPTURING_GROUPS: (
        "Remove extra parentheses from the Group Pattern",
        "Use non-capturing groups (?:...) if you need grouping without capturing",
        "Ensure only the Group ID portion is wrapped in parentheses",
    ),
    ValidationErrorType.NO_CAPTURING_GROUPS: (
        "Add parentheses around the Group ID portion of the pattern",
        "Ensure the Group ID token is properly selected",
        "If in Advanced mode, manually add capturing group parentheses",
    ),
    ValidationErrorType.INVALID_RULE_CONFIGURATION: (
        "Check that all rule fields are properly filled",
        "Ensure rule values are appropriate for the selected rule type",
        "Verify that the target role is correctly specified",
    ),
    ValidationErrorType.INVALID_REGEX_PATTERN: (
        "Check the regex syntax for errors",
        "Ensure special characters are properly escaped",
        "Test the pattern with a regex validator",
        "Consider switching to Simple mode for automatic generation",
    ),
}

# Lower numbers are shown first; the group id must be fixed before anything else.
ERROR_PRIORITY: dict[ValidationErrorType, int] = {
    ValidationErrorType.NO_GROUP_ID_SELECTED: 1,
    ValidationErrorType.EMPTY_GROUP_PATTERN: 2,
    ValidationErrorType.INVALID_GROUP_PATTERN: 3,
    ValidationErrorType.NO_CAPTURING_GROUPS: 4,
    ValidationErrorType.MULTIPLE_CAPTURING_GROUPS: 5,
    ValidationErrorType.NO_ROLE_RULES_DEFINED: 6,
    ValidationErrorType.NO_ROLE_PATTERNS: 7,
    ValidationErrorType.INVALID_RULE_VALUE: 8,
    ValidationErrorType.REGEX_SYNTAX_ERROR: 9,
    ValidationErrorType.NO_FILES_MATCHED: 10,
    ValidationErrorType.INVALID_RULE_CONFIGURATION: 11,
    ValidationErrorType.INVALID_REGEX_PATTERN: 12,
}

CONTEXTUAL_HELP: dict[str, str] = {
    "group-id-selector": (
        "Select the part of the filename that identifies each vehicle group. "
        "This should be unique for each vehicle (like a license plate or ID number)."
    ),
    "role-rules": (
        "Define rules to identify front, rear, and overview images. "
        "Use keywords that appear in your filenames to categorize each image type."
    ),
    "token-selection": (
        "These are the parts of your filenames, separated by common delimiters. "
        "Select the token that uniquely identifies each vehicle group."
    ),
    "group-pattern": (
        "The regex pattern used to extract the group ID from filenames. "
        "Must contain exactly one capturing group (parentheses) around the group identifier."
    ),
    "role-patterns": (
        "Regex patterns that identify front, rear, and overview images. "
        "These are automatically generated from your role rules."
    ),
    "case-sensitivity": (
        "When disabled, rules will match regardless of uppercase/lowercase. "
        "Enable for exact case matching if your filenames use consistent casing."
    ),
    "preset-management": (
        "Save your pattern configurations as presets for reuse. "
        "Useful when processing similar image sets with the same naming patterns."
    ),
}

PATTERN_EXAMPLES: dict[str, tuple[str, ...]] = {
    "group-pattern": (
        r"^vehicle_([\w\-]+)_\w+\.jpg$ - Captures vehicle ID from vehicle_ABC123_front.jpg",
        r"^(\d{4}-\d{2}-\d{2})_cam\d+_\w+\.jpg$ - Captures date from 2024-01-15_cam1_front.jpg",
        r"^IMG_(\d+)_\w+\.jpg$ - Captures number from IMG_001_front.jpg",
    ),
    "role-pattern": (
        ".*front.* - Matches any filename containing 'front'",
        ".*(?i:rear|back).* - Matches 'rear' or 'back' (case insensitive)",
        r"^.*_ov\..* - Matches filenames ending with '_ov.' before extension",
    ),
    "filename-structure": (
        "vehicle_ABC123_front.jpg -> [vehicle] [ABC123] [front] [jpg]",
        "IMG_001_overview.tiff -> [IMG] [001] [overview] [tiff]",
    ),
}

STATUS_VALID = "✓ Configuration is valid and ready to use"
STATUS_INCOMPLETE = "○ Complete the configuration to validate"


def get_fix_recommendations(error: ValidationError) -> list[str]:
    """Concrete steps that resolve an error."""
    return list(FIX_RECOMMENDATIONS.get(error.type, ()))


def get_error_priority(error_type: ValidationErrorType) -> int:
    """Display priority of an error type, lower is more critical."""
    return ERROR_PRIORITY.get(error_type, len(ERROR_PRIORITY) + 1)


def get_most_critical_error(errors: Iterable[ValidationError]) -> ValidationError | None:
    """The error to fix first, or None when there are none."""
    errors = list(errors)
    if not errors:
        return None
    return min(errors, key=lambda error: get_error_priority(error.type))


def collect_fix_recommendations(errors: Iterable[ValidationError]) -> list[str]:
    """Recommendations for several errors, without repeats."""
    seen: dict[str, None] = {}
    for error in errors:
        for recommendation in get_fix_recommendations(error):
            seen.setdefault(recommendation, None)
    return list(seen)


def describe_blocking_reason(errors: Sequence[ValidationError]) -> str:
    """
    One-line explanation of why processing is blocked.

    Example:
        >>> describe_blocking_reason([error_a, error_b])
        'Please select a token to use as Group ID (and 1 other error)'
    """
    if not errors:
        return "Configuration incomplete"
    critical = get_most_critical_error(errors)
    if len(errors) == 1:
        return critical.message
    others = len(errors) - 1
    return f"{critical.message} (and {others} other error{'' if others == 1 else 's'})"


def summarize(errors: Sequence[ValidationError], warnings: Sequence[ValidationWarning]) -> str:
    """Status line for a set of findings."""
    if errors:
        return f"✗ {len(errors)} error{'' if len(errors) == 1 else 's'} must be fixed before proceeding"
    if warnings:
        return (
            f"⚠ Configuration is valid with {len(warnings)} "
            f"warning{'' if len(warnings) == 1 else 's'}"
        )
    return STATUS_VALID


def format_error_details(errors: Sequence[ValidationError]) -> str:
    """Numbered error list with context and fixes, for dialogs and the CLI."""
    if not errors:
        return ""
    blocks = []
    for i, error in enumerate(errors, 1):
        lines = [f"{i}. {error.message}"]
        if error.context:
            lines.append(f"   Context: {error.context}")
        fixes = get_fix_recommendations(error)
        if fixes:
            lines.append("   Fixes:")
            lines.extend(f"   • {fix}" for fix in fixes)
        blocks.append("\n".join(lines))
    return "Errors that must be fixed:\n\n" + "\n\n".join(blocks)


def format_warning_details(warnings: Sequence[ValidationWarning]) -> str:
    if not warnings:
        return ""
    blocks = []
    for i, warning in enumerate(warnings, 1):
        block = f"{i}. {warning.message}"
        if warning.context:
            block += f"\n   Context: {warning.context}"
        blocks.append(block)
    return "Warnings (non-blocking):\n\n" + "\n\n".join(blocks)


def get_contextual_help(component: str) -> str:
    """Help text for a named part of the builder."""
    return CONTEXTUAL_HELP.get(component, "No help available for this component.")


def get_pattern_examples(pattern_type: str) -> list[str]:
    return list(PATTERN_EXAMPLES.get(pattern_type, ()))
