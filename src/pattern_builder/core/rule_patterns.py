"""Regex synthesis for role rules.

Both the pattern generator and the rule engine build their role expressions
here, so a preview classification and the exported configuration can never
disagree about which role a filename gets.
"""

import re
from collections.abc import Iterable

from .models import ImageRole, RoleRule, RuleType

_LITERAL_TEMPLATES = {
    RuleType.EQUALS: "^{}$",
    RuleType.CONTAINS: ".*{}.*",
    RuleType.STARTS_WITH: "^{}.*",
    RuleType.ENDS_WITH: ".*{}$",
}


_LEADING_FLAGS_RE = re.compile(r"^\(\?([aiLmsux]+)\)")
_FLAG_ORDER = "aiLmsux"


def rule_fragment(rule: RoleRule) -> str:
    """
    Translate one rule into a regex fragment.

    Literal rule values are trimmed and escaped, REGEX_OVERRIDE values are
    trimmed and otherwise used verbatim. Inline flags leading an override,
    such as ``(?s)``, move into the scoped group since global flags are only
    allowed at the start of the whole expression.
    Case-insensitive rules add ``i`` to that scoped ``(?i:...)`` group so the
    flag never leaks into neighbouring fragments.

    Args:
        rule: The rule to translate

    Returns:
        The fragment, or an empty string for a rule without a value

    Example:
        >>> rule_fragment(RoleRule(target_role=ImageRole.FRONT, rule_type=RuleType.CONTAINS, rule_value="front"))
        '(?i:.*front.*)'
    """
    if not rule.has_value:
        return ""

    value = rule.rule_value.strip()
    flags: set[str] = set()
    if rule.rule_type == RuleType.REGEX_OVERRIDE:
        match = _LEADING_FLAGS_RE.match(value)
        if match:
            flags.update(match.group(1))
            value = value[match.end() :]
        body = value
    else:
        body = _LITERAL_TEMPLATES[rule.rule_type].format(re.escape(value))

    if not rule.case_sensitive:
        flags.add("i")
    if not flags:
        return body
    return "(?" + "".join(flag for flag in _FLAG_ORDER if flag in flags) + f":{body})"


def rules_for_role(rules: Iterable[RoleRule], role: ImageRole) -> list[RoleRule]:
    """Rules targeting ``role``, ordered by ascending priority (stable)."""
    return sorted((rule for rule in rules if rule.target_role == role), key=lambda r: r.priority)


def build_role_pattern(rules: Iterable[RoleRule], role: ImageRole) -> str:
    """
    Combine the rules of one role into a single pattern.

    Returns:
        The lone fragment, a non-capturing alternation of several fragments,
        or an empty string when the role has no usable rule
    """
    fragments = [fragment for fragment in map(rule_fragment, rules_for_role(rules, role)) if fragment]
    if not fragments:
        return ""
    if len(fragments) == 1:
        return fragments[0]
    return "(?:" + "|".join(fragments) + ")"
