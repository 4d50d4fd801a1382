"""Utility functions for wpsyncz."""

import re
import secrets
from datetime import datetime
from typing import Optional

# =============================================================================
# Version comparison
# =============================================================================

# Special version words understood by PHP's version_compare, in lookup
# order. A part matches the first entry it starts with (case-sensitive), so
# "patch" ranks as "p" and "build" as "b". Numbers rank as "#", anything
# else below "dev".
_SPECIAL_FORMS = (
    ("dev", 0),
    ("alpha", 1),
    ("a", 1),
    ("beta", 2),
    ("b", 2),
    ("RC", 3),
    ("rc", 3),
    ("#", 4),
    ("pl", 5),
    ("p", 5),
)
_UNKNOWN_FORM = -1

# Stand-in compared against the extra parts of the longer version
_NUMBER_PLACEHOLDER = ["#N"]


def _canonicalize_version(version: str) -> list[str]:
    """Split a version string the way PHP does before comparing.

    Every non-alphanumeric character acts as a dot, and a dot is inserted
    wherever a digit run meets a non-digit run.

    Examples:
        >>> _canonicalize_version("1.0rc1")
        ['1', '0', 'rc', '1']
        >>> _canonicalize_version("2.1-beta_2")
        ['2', '1', 'beta', '2']
        >>> _canonicalize_version("1.0~2")
        ['1', '0', '2']
    """
    version = re.sub(r"[^0-9A-Za-z]", ".", version.strip())
    version = re.sub(r"(?<=\d)(?=[^\d.])|(?<=[^\d.])(?=\d)", ".", version)
    return [part for part in version.split(".") if part]


def _form_order(part: str) -> int:
    for name, order in _SPECIAL_FORMS:
        if part.startswith(name):
            return order
    return _UNKNOWN_FORM


def _compare_parts(left: str, right: str) -> int:
    if left.isdigit() and right.isdigit():
        return (int(left) > int(right)) - (int(left) < int(right))
    left_order = _form_order("#" if left.isdigit() else left)
    right_order = _form_order("#" if right.isdigit() else right)
    return (left_order > right_order) - (left_order < right_order)


def _compare_part_lists(left_parts: list[str], right_parts: list[str]) -> int:
    for left_part, right_part in zip(left_parts, right_parts):
        result = _compare_parts(left_part, right_part)
        if result:
            return result

    # Extra parts of the longer version: a number wins outright, words are
    # ranked against a number ("1.0" > "1.0beta", "1.0pl1" > "1.0")
    common = min(len(left_parts), len(right_parts))
    if len(left_parts) > common:
        extra = left_parts[common:]
        if extra[0].isdigit():
            return 1
        return _compare_part_lists(extra, _NUMBER_PLACEHOLDER)
    if len(right_parts) > common:
        extra = right_parts[common:]
        if extra[0].isdigit():
            return -1
        return _compare_part_lists(_NUMBER_PLACEHOLDER, extra)
    return 0


def version_compare(left: str, right: str) -> int:
    """Compare two version strings with PHP ``version_compare`` semantics.

    Plugin versions are not PEP 440 versions ("1.0-beta", "4.2.1-RC2"), so
    they are compared the way WordPress itself compares them.

    Args:
        left: First version
        right: Second version

    Returns:
        -1 if left is older, 0 if equal, 1 if left is newer

    Examples:
        >>> version_compare("1.2.10", "1.2.9")
        1
        >>> version_compare("1.0-beta", "1.0")
        -1
        >>> version_compare("1.0RC1", "1.0rc1")
        0
        >>> version_compare("1.0", "1.0.0")
        -1
    """
    return _compare_part_lists(
        _canonicalize_version(left), _canonicalize_version(right)
    )


# =============================================================================
# Plugin keys
# =============================================================================


def plugin_local_slug(key: str) -> str:
    """Derive the slug of a plugin from its key.

    Examples:
        >>> plugin_local_slug("akismet/akismet.php")
        'akismet'
        >>> plugin_local_slug("hello.php")
        'hello'
    """
    first = key.split("/", 1)[0]
    if first.endswith(".php"):
        first = first[: -len(".php")]
    return first


def plugin_is_directory(key: str) -> bool:
    """True for plugins that live in their own folder."""
    return "/" in key


# =============================================================================
# Database export names
# =============================================================================


def site_slug(site_url: str) -> str:
    """Turn a site URL into a file-name friendly identifier.

    Examples:
        >>> site_slug("https://www.example.com/blog/")
        'https-www-example-com-blog'
    """
    return re.sub(r"\W+", "-", site_url).strip("-")


def export_filename(site_url: str, now: Optional[datetime] = None) -> str:
    """Build a unique database export file name.

    Format: ``db-<site>-<yymmdd>-<HHMMSS>-<16 hex digits>.sql``
    """
    now = now or datetime.now()
    return (
        f"db-{site_slug(site_url)}-{now.strftime('%y%m%d-%H%M%S')}-"
        f"{secrets.token_hex(8)}.sql"
    )
