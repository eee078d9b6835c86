"""Per-file preview rows and an aggregate health summary of a grouping run."""

from collections.abc import Iterable
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from .grouper import REASON_INVALID_PATTERN, REASON_NO_CAPTURING_GROUP, GroupingResult
from .models import ImageRole

# Reasons that describe a broken configuration rather than an odd filename.
_ERROR_REASONS = frozenset({REASON_INVALID_PATTERN, REASON_NO_CAPTURING_GROUP})


class FilenamePreview(BaseModel):
    """How one filename fared against the current configuration."""

    model_config = ConfigDict(frozen=True)

    filename: str = Field(..., description="The previewed filename")
    group_id: str | None = Field(default=None, description="Extracted group key")
    role: ImageRole | None = Field(default=None, description="Assigned role")
    matched: bool = Field(default=False, description="Whether the group pattern matched")
    reason: str | None = Field(default=None, description="Why the file did not match")
    error_message: str | None = Field(default=None, description="Configuration error, if any")

    @property
    def has_error(self) -> bool:
        return bool(self.error_message)

    @property
    def is_successful(self) -> bool:
        """Matched and assigned a role."""
        return self.matched and self.role is not None and not self.has_error

    def __str__(self) -> str:
        if self.matched:
            role = self.role.value if self.role else "no role"
            return f"{self.filename} -> {self.group_id} ({role})"
        return f"{self.filename} -> unmatched ({self.reason})"


def build_previews(
    result: GroupingResult, filenames: Iterable[str] | None = None
) -> list[FilenamePreview]:
    """
    Turn a grouping result into preview rows.

    Args:
        result: Grouping result to present
        filenames: Display order; defaults to matched files followed by unmatched ones

    Returns:
        One preview per filename
    """
    if filenames is None:
        filenames = list(result.file_to_group_id) + list(result.unmatched_files)

    previews = []
    for filename in filenames:
        group_id = result.file_to_group_id.get(filename)
        if group_id is not None:
            previews.append(
                FilenamePreview(
                    filename=filename,
                    group_id=group_id,
                    role=result.file_to_role.get(filename),
                    matched=True,
                )
            )
            continue
        reason = result.unmatched_reasons.get(filename)
        previews.append(
            FilenamePreview(
                filename=filename,
                reason=reason,
                error_message=reason if reason in _ERROR_REASONS else None,
            )
        )
    return previews


class PreviewSummary(BaseModel):
    """Aggregate statistics of a preview, used to judge configuration health."""

    model_config = ConfigDict(frozen=True)

    HEALTHY_MATCH_PERCENTAGE: ClassVar[float] = 80.0
    HEALTHY_INCOMPLETE_RATIO: ClassVar[float] = 0.2

    total_files: int = Field(default=0, ge=0)
    matched_files: int = Field(default=0, ge=0)
    role_counts: dict[ImageRole, int] = Field(default_factory=dict)
    unmatched_filenames: tuple[str, ...] = Field(default=())
    group_roles: dict[str, frozenset[ImageRole]] = Field(default_factory=dict)
    incomplete_groups: tuple[str, ...] = Field(default=())
    error_messages: tuple[str, ...] = Field(default=())

    @classmethod
    def from_previews(cls, previews: Iterable[FilenamePreview]) -> "PreviewSummary":
        """
        Summarize preview rows.

        A group is incomplete when it has roles but lacks FRONT or REAR.
        """
        previews = list(previews)
        role_counts = {role: 0 for role in ImageRole.in_precedence_order()}
        group_roles: dict[str, set[ImageRole]] = {}
        unmatched: list[str] = []
        errors: list[str] = []
        matched = 0

        for preview in previews:
            if preview.matched:
                matched += 1
                if preview.role is not None:
                    role_counts[preview.role] += 1
                    if preview.group_id and preview.group_id.strip():
                        group_roles.setdefault(preview.group_id, set()).add(preview.role)
            else:
                unmatched.append(preview.filename)
            if preview.has_error:
                errors.append(f"{preview.filename}: {preview.error_message}")

        incomplete = [
            group_id
            for group_id, roles in group_roles.items()
            if roles and not {ImageRole.FRONT, ImageRole.REAR} <= roles
        ]
        return cls(
            total_files=len(previews),
            matched_files=matched,
            role_counts=role_counts,
            unmatched_filenames=tuple(unmatched),
            group_roles={k: frozenset(v) for k, v in group_roles.items()},
            incomplete_groups=tuple(incomplete),
            error_messages=tuple(errors),
        )

    @classmethod
    def from_result(cls, result: GroupingResult) -> "PreviewSummary":
        """Summarize a grouping result directly."""
        return cls.from_previews(build_previews(result))

    @property
    def unmatched_files(self) -> int:
        return self.total_files - self.matched_files

    @property
    def match_percentage(self) -> float:
        """Matched files as a percentage of all files."""
        if self.total_files == 0:
            return 0.0
        return self.matched_files * 100.0 / self.total_files

    @property
    def has_errors(self) -> bool:
        return bool(self.error_messages)

    @property
    def has_warnings(self) -> bool:
        return bool(self.incomplete_groups or self.unmatched_filenames)

    def role_count(self, role: ImageRole) -> int:
        return self.role_counts.get(role, 0)

    def is_healthy(self) -> bool:
        """At least 80% matched and fewer than 20% incomplete groups, with no errors."""
        if self.has_errors:
            return False
        if self.total_files == 0:
            return True
        if self.match_percentage < self.HEALTHY_MATCH_PERCENTAGE:
            return False
        if self.group_roles:
            ratio = len(self.incomplete_groups) / len(self.group_roles)
            return ratio < self.HEALTHY_INCOMPLETE_RATIO
        return True

    def summary_text(self) -> str:
        """One-line description for status bars and CLI output."""
        parts = [
            f"{self.matched_files}/{self.total_files} files matched ({self.match_percentage:.1f}%)",
            ", ".join(
                f"{role.value.lower()}: {count}" for role, count in self.role_counts.items()
            ),
        ]
        if self.incomplete_groups:
            parts.append(f"{len(self.incomplete_groups)} incomplete groups")
        return " | ".join(parts)
