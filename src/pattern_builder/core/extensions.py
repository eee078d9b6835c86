"""Image file extension helpers."""

import re
from collections import Counter
from collections.abc import Iterable

from .models import DEFAULT_EXTENSIONS

# Handles both ``tif`` and ``tiff``.
ANY_IMAGE_EXTENSION_PATTERN = r"(?i:\.(?:jpg|jpeg|png|tiff?|bmp|gif|webp))"

_EXTENSION_RE = re.compile(r"\.([A-Za-z0-9]+)$")
_ANY_IMAGE_RE = re.compile(ANY_IMAGE_EXTENSION_PATTERN + "$")


def get_extension(filename: str | None) -> str | None:
    """
    Extract the extension of a filename without the dot.

    Args:
        filename: Filename to inspect

    Returns:
        The extension as written, or None when the name has none

    Example:
        >>> get_extension("vehicle_001_front.JPG")
        'JPG'
    """
    if not filename:
        return None
    match = _EXTENSION_RE.search(filename)
    return match.group(1) if match else None


def has_image_extension(filename: str | None) -> bool:
    """Check whether a filename ends with a supported image extension."""
    if not filename:
        return False
    return _ANY_IMAGE_RE.search(filename) is not None


def is_supported_extension(value: str, extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> bool:
    """Check a bare extension value (no dot) against an allowlist, ignoring case."""
    return value.lower().lstrip(".") in {ext.lower() for ext in extensions}


def longest_first_alternation(values: Iterable[str]) -> str:
    """Escaped ``|`` alternation of distinct values, longest first so ``tiff`` beats ``tif``."""
    ordered = sorted(set(values), key=lambda value: (-len(value), value))
    return "|".join(re.escape(value) for value in ordered)


def get_unique_extensions(filenames: Iterable[str]) -> list[str]:
    """Lowercased extensions found in the filenames, in first-seen order."""
    seen: dict[str, None] = {}
    for filename in filenames:
        extension = get_extension(filename)
        if extension:
            seen.setdefault(extension.lower(), None)
    return list(seen)


def generate_extension_pattern(extensions: Iterable[str], case_sensitive: bool = False) -> str:
    """
    Build a pattern matching a dot followed by one of the given extensions.

    Longer alternatives come first so that ``tiff`` is never cut to ``tif``.

    Args:
        extensions: Extensions with or without a leading dot
        case_sensitive: Whether the pattern should respect case

    Returns:
        Pattern string, or an empty string when no extensions are given
    """
    alternation = longest_first_alternation(
        ext.lstrip(".") for ext in extensions if ext and ext.strip(". ")
    )
    if not alternation:
        return ""
    if case_sensitive:
        return rf"\.(?:{alternation})"
    return rf"(?i:\.(?:{alternation}))"


def analyze_extension_usage(filenames: Iterable[str]) -> dict[str, object]:
    """
    Summarize which extensions a sample uses.

    Returns:
        Dictionary with ``counts`` per lowercased extension, ``mixed_case``
        when the same extension appears with different casing, and a
        ``recommended_pattern`` covering everything that was seen
    """
    counts: Counter[str] = Counter()
    spellings: dict[str, set[str]] = {}
    for filename in filenames:
        extension = get_extension(filename)
        if not extension:
            continue
        counts[extension.lower()] += 1
        spellings.setdefault(extension.lower(), set()).add(extension)

    mixed_case = any(len(variants) > 1 for variants in spellings.values())
    return {
        "counts": dict(counts),
        "mixed_case": mixed_case,
        "recommended_pattern": generate_extension_pattern(counts, case_sensitive=False),
    }
