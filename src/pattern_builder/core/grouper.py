"""Grouping of filenames by group pattern and role assignment."""

import logging
import re
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Protocol

from .models import (
    ImageRole,
    RoleRule,
    ValidationError,
    ValidationErrorType,
    ValidationResult,
)
from .rule_engine import RuleEngine, RuleEvaluationError
from .unknown_segments import UnknownSegmentHandler

logger = logging.getLogger(__name__)

REASON_INVALID_PATTERN = "Invalid group pattern"
REASON_NO_CAPTURING_GROUP = "Group pattern has no capturing group"
REASON_NO_MATCH = "Filename doesn't match group pattern"
REASON_EMPTY_GROUP_ID = "Group pattern matched but captured empty group ID"


class ProgressCallback(Protocol):
    """Protocol for progress callback functions during grouping."""

    def __call__(self, current: int, total: int | None = None, message: str = "") -> None:
        """Called to report progress while filenames are grouped."""
        ...


@dataclass(frozen=True)
class GroupingResult:
    """Snapshot of grouping a filename corpus.

    Matched files are those a group key could be extracted from. Matched
    files that no role rule classifies are listed in ``unclassified_files``.
    """

    groups: Mapping[str, tuple[str, ...]]
    file_to_group_id: Mapping[str, str]
    file_to_role: Mapping[str, ImageRole]
    unmatched_files: tuple[str, ...]
    unmatched_reasons: Mapping[str, str]
    total_files: int
    unclassified_files: tuple[str, ...] = ()
    required_roles: frozenset[ImageRole] = frozenset()
    unknown_segments: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "groups", MappingProxyType({k: tuple(v) for k, v in self.groups.items()})
        )
        for name in ("file_to_group_id", "file_to_role", "unmatched_reasons"):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))
        object.__setattr__(
            self,
            "unknown_segments",
            MappingProxyType({k: tuple(v) for k, v in self.unknown_segments.items()}),
        )
        object.__setattr__(self, "unmatched_files", tuple(self.unmatched_files))
        object.__setattr__(self, "unclassified_files", tuple(self.unclassified_files))
        object.__setattr__(self, "required_roles", frozenset(self.required_roles))

    @classmethod
    def all_unmatched(cls, filenames: Sequence[str], reason: str) -> "GroupingResult":
        """A result where every filename failed for the same reason."""
        return cls(
            groups={},
            file_to_group_id={},
            file_to_role={},
            unmatched_files=tuple(filenames),
            unmatched_reasons={filename: reason for filename in filenames},
            total_files=len(filenames),
        )

    @property
    def group_count(self) -> int:
        """Number of distinct group keys."""
        return len(self.groups)

    @property
    def matched_files(self) -> int:
        """Number of files a group key was extracted from."""
        return len(self.file_to_group_id)

    @property
    def unmatched_count(self) -> int:
        return len(self.unmatched_files)

    @property
    def match_rate(self) -> float:
        """Share of files that matched the group pattern."""
        if self.total_files == 0:
            return 0.0
        return self.matched_files / self.total_files

    def get_group_roles(self) -> dict[str, frozenset[ImageRole]]:
        """Roles present in each group."""
        return {
            key: frozenset(self.file_to_role[f] for f in files if f in self.file_to_role)
            for key, files in self.groups.items()
        }

    def is_group_complete(self, group_key: str) -> bool:
        """Whether a group holds every required role."""
        roles = self.get_group_roles().get(group_key, frozenset())
        return self.required_roles <= roles

    def get_incomplete_groups(self) -> list[str]:
        """Group keys missing at least one required role, in first-seen order."""
        return [
            key for key, roles in self.get_group_roles().items() if not self.required_roles <= roles
        ]

    def get_role_counts(self) -> dict[ImageRole, int]:
        """Number of files assigned to each role."""
        counts = {role: 0 for role in ImageRole.in_precedence_order()}
        for role in self.file_to_role.values():
            counts[role] += 1
        return counts

    def __str__(self) -> str:
        return (
            f"{self.matched_files}/{self.total_files} files matched into "
            f"{self.group_count} groups ({self.unmatched_count} unmatched)"
        )


class GroupingEngine:
    """Applies a group pattern and role rules to a filename corpus."""

    PROGRESS_INTERVAL = 100

    def __init__(self, rule_engine: RuleEngine | None = None):
        """Initialize the engine with an optional rule engine."""
        self.rule_engine = rule_engine or RuleEngine()

    def group_and_assign_roles(
        self,
        filenames: Iterable[str],
        group_pattern: str,
        role_rules: Sequence[RoleRule],
        unknown_segment_handler: UnknownSegmentHandler | None = None,
        required_roles: Iterable[ImageRole] | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> GroupingResult:
        """
        Group filenames by the key the group pattern captures and assign roles.

        Invalid input never raises: a broken group pattern marks every file as
        unmatched and yields zero groups.

        Args:
            filenames: Filenames to group; blanks and repeats are skipped
            group_pattern: Regex whose first capturing group is the group key
            role_rules: Rules used to assign roles
            unknown_segment_handler: When given, unlabeled unknown segments of
                unmatched files are recorded in the result
            required_roles: Roles every complete group must contain; defaults
                to the roles that have rules with a value
            progress_callback: Optional callback for progress updates

        Returns:
            GroupingResult snapshot

        Example:
            >>> engine = GroupingEngine()
            >>> result = engine.group_and_assign_roles(names, r"^vehicle_(\\d+)_.*$", rules)
            >>> result.group_count
            2
        """
        names = list(dict.fromkeys(f for f in filenames if f and f.strip()))
        role_rules = list(role_rules or [])
        if required_roles is None:
            required = frozenset(rule.target_role for rule in role_rules if rule.has_value)
        else:
            required = frozenset(required_roles)

        try:
            compiled = re.compile(group_pattern or "")
        except re.error as e:
            logger.warning(f"Invalid group pattern {group_pattern!r}: {e}")
            return GroupingResult.all_unmatched(names, REASON_INVALID_PATTERN)
        if compiled.groups < 1:
            logger.warning(f"Group pattern has no capturing group: {group_pattern!r}")
            return GroupingResult.all_unmatched(names, REASON_NO_CAPTURING_GROUP)

        groups: dict[str, list[str]] = defaultdict(list)
        file_to_group_id: dict[str, str] = {}
        file_to_role: dict[str, ImageRole] = {}
        unmatched_files: list[str] = []
        unmatched_reasons: dict[str, str] = {}
        unclassified: list[str] = []
        unknown_segments: dict[str, list[str]] = {}
        rule_error_logged = False

        for i, filename in enumerate(names):
            if progress_callback and i % self.PROGRESS_INTERVAL == 0:
                progress_callback(i, len(names), f"Grouping files ({i}/{len(names)})")

            match = compiled.search(filename)
            reason = None
            if match is None:
                reason = REASON_NO_MATCH
            elif not match.group(1):
                reason = REASON_EMPTY_GROUP_ID

            if reason is not None:
                unmatched_files.append(filename)
                unmatched_reasons[filename] = reason
                if unknown_segment_handler is not None:
                    segments = unknown_segment_handler.identify_unknown_segments_in(filename)
                    if segments:
                        unknown_segments[filename] = segments
                logger.debug(f"Unmatched '{filename}': {reason}")
                continue

            group_key = match.group(1)
            groups[group_key].append(filename)
            file_to_group_id[filename] = group_key

            try:
                role = self.rule_engine.classify_filename(filename, role_rules)
            except RuleEvaluationError as e:
                if not rule_error_logged:
                    logger.warning(f"Role rules could not be evaluated: {e}")
                    rule_error_logged = True
                role = None

            if role is None:
                unclassified.append(filename)
            else:
                file_to_role[filename] = role

        if progress_callback:
            progress_callback(len(names), len(names), "Grouping complete")

        result = GroupingResult(
            groups=groups,
            file_to_group_id=file_to_group_id,
            file_to_role=file_to_role,
            unmatched_files=tuple(unmatched_files),
            unmatched_reasons=unmatched_reasons,
            total_files=len(names),
            unclassified_files=tuple(unclassified),
            required_roles=required,
            unknown_segments=unknown_segments,
        )
        logger.info(f"Grouping complete: {result}")
        return result

    def validate_group_pattern(self, group_pattern: str | None) -> ValidationResult:
        """
        Check that a group pattern is usable.

        Returns:
            Success, or a failure carrying one error describing the problem
        """
        if not group_pattern or not group_pattern.strip():
            return ValidationResult.failure(
                ValidationError.of(ValidationErrorType.EMPTY_GROUP_PATTERN)
            )
        try:
            compiled = re.compile(group_pattern)
        except re.error as e:
            return ValidationResult.failure(
                ValidationError.of(
                    ValidationErrorType.REGEX_SYNTAX_ERROR,
                    f"Invalid regex syntax: {e}",
                    group_pattern,
                )
            )
        if compiled.groups == 0:
            return ValidationResult.failure(
                ValidationError.of(ValidationErrorType.NO_CAPTURING_GROUPS, context=group_pattern)
            )
        if compiled.groups > 1:
            return ValidationResult.failure(
                ValidationError.of(
                    ValidationErrorType.MULTIPLE_CAPTURING_GROUPS,
                    f"Group pattern has {compiled.groups} capturing groups, expected exactly one",
                    group_pattern,
                )
            )
        return ValidationResult.success()
