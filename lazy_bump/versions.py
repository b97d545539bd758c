"""Version parsing and bumping utilities.

Wraps the semver library with the increment rules release tooling expects
(the same rules npm's ``semver.inc`` applies), so that prerelease bumps,
``pre*`` keywords and explicit versions all behave predictably.
"""

from __future__ import annotations

import semver

RELATIVE_KEYWORDS = (
    "major",
    "premajor",
    "minor",
    "preminor",
    "patch",
    "prepatch",
    "prerelease",
)

# "auto" infers the prefix from the existing dependency spec
VALID_VERSION_PREFIXES = ("auto", "", "~", "^", "=")


def _strip(version_str: str) -> str:
    return version_str.strip().lstrip("=v")


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    A leading ``v`` or ``=`` is tolerated, as in ``v1.2.3``.

    Raises:
        ValueError: If the string is not valid semver.
    """
    return semver.Version.parse(_strip(version_str))


def is_valid_version(version_str: str) -> bool:
    return semver.Version.is_valid(_strip(version_str))


def is_relative_keyword(specifier: str) -> bool:
    return specifier in RELATIVE_KEYWORDS


def is_valid_specifier(specifier: str) -> bool:
    """True for a relative keyword (``patch``, ``preminor``...) or a semver."""
    return is_relative_keyword(specifier) or is_valid_version(specifier)


def is_prerelease(version_str: str | None) -> bool:
    if not version_str or not is_valid_version(version_str):
        return False
    return parse_version(version_str).prerelease is not None


def version_gt(a: str, b: str) -> bool:
    """Semver ordering, never lexical: ``1.10.0`` > ``1.9.0``."""
    return parse_version(a).compare(parse_version(b)) > 0


def _split_prerelease(prerelease: str | None) -> list[str | int]:
    if not prerelease:
        return []
    return [int(p) if p.isdigit() else p for p in prerelease.split(".")]


def _join_prerelease(parts: list[str | int]) -> str | None:
    return ".".join(str(p) for p in parts) or None


def _next_prerelease(current: list[str | int], preid: str | None) -> list[str | int]:
    """Increment prerelease identifiers.

    The last numeric identifier is incremented; when there is none a ``0``
    is appended. A ``preid`` that differs from the current leading
    identifier restarts the sequence at ``<preid>.0``.
    """
    parts = list(current)
    if not parts:
        parts = [0]
    else:
        for i in range(len(parts) - 1, -1, -1):
            if isinstance(parts[i], int):
                parts[i] += 1
                break
        else:
            parts.append(0)

    if preid:
        restarted: list[str | int] = [preid, 0]
        if str(parts[0]) == preid:
            if not isinstance(parts[1] if len(parts) > 1 else None, int):
                parts = restarted
        else:
            parts = restarted
    return parts


def increment(version_str: str, release_type: str, preid: str | None = None) -> str:
    """Increment ``version_str`` by a relative keyword.

    Examples:
        increment("1.2.3", "minor") → "1.3.0"
        increment("1.0.0-beta.1", "prerelease") → "1.0.0-beta.2"
        increment("1.0.0", "premajor", "rc") → "2.0.0-rc.0"
        increment("1.0.1-0", "patch") → "1.0.1"
    """
    v = parse_version(version_str)
    pre = _split_prerelease(v.prerelease)
    major, minor, patch = v.major, v.minor, v.patch

    if release_type == "major":
        if not (pre and minor == 0 and patch == 0):
            major += 1
        minor = patch = 0
        pre = []
    elif release_type == "minor":
        if not (pre and patch == 0):
            minor += 1
        patch = 0
        pre = []
    elif release_type == "patch":
        if not pre:
            patch += 1
        pre = []
    elif release_type == "premajor":
        major, minor, patch = major + 1, 0, 0
        pre = _next_prerelease([], preid)
    elif release_type == "preminor":
        minor, patch = minor + 1, 0
        pre = _next_prerelease([], preid)
    elif release_type == "prepatch":
        patch += 1
        pre = _next_prerelease([], preid)
    elif release_type == "prerelease":
        if not pre:
            patch += 1
        pre = _next_prerelease(pre, preid)
    else:
        raise ValueError(f'Unknown release type "{release_type}"')

    return str(
        semver.Version(major, minor, patch, prerelease=_join_prerelease(pre))
    )


def derive_new_version(
    current_version: str, specifier: str, preid: str | None = None
) -> str:
    """Compute the next version of ``current_version`` under ``specifier``.

    Relative keywords are applied with :func:`increment`; explicit versions
    are returned normalised (without a leading ``v``).

    Raises:
        ValueError: If the current version or explicit specifier is invalid.
    """
    if not is_valid_version(current_version):
        raise ValueError(f'Invalid Semver version "{current_version}" provided.')
    if is_relative_keyword(specifier):
        return increment(current_version, specifier, preid)
    if not is_valid_version(specifier):
        raise ValueError(f'Unable to parse semver specifier "{specifier}"')
    return str(parse_version(specifier))
