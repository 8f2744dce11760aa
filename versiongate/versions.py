"""Tolerant version comparison and version-change classification."""

import re
from typing import List, Optional

_SEPARATORS = re.compile(r"[.-]")
_NON_DIGITS = re.compile(r"\D+")

MISSING_VERSION = "0.0.0"


def version_parts(version: str) -> List[int]:
    """Split a version string into numeric components.

    One leading ``v``/``V`` is dropped, the rest is split on ``.`` and ``-``
    and every token keeps only its digits. Tokens without digits count as 0,
    so ``"1.0.0-beta"`` yields ``[1, 0, 0, 0]``.
    """
    if version[:1] in ("v", "V"):
        version = version[1:]
    parts = []
    for token in _SEPARATORS.split(version):
        digits = _NON_DIGITS.sub("", token)
        parts.append(int(digits) if digits else 0)
    return parts


def compare_versions(a: str, b: str) -> int:
    """Compare two version strings component by component.

    Args:
        a: Left-hand version.
        b: Right-hand version.

    Returns:
        A positive number when ``a`` is higher, negative when ``b`` is higher,
        and 0 when both are equal after zero-padding.
    """
    left = version_parts(a)
    right = version_parts(b)
    length = max(len(left), len(right))
    left += [0] * (length - len(left))
    right += [0] * (length - len(right))
    for x, y in zip(left, right):
        if x != y:
            return x - y
    return 0


def classify_change(previous: Optional[str], current: str) -> str:
    """Label a version transition as initial, major, minor, patch or unknown.

    Major and minor components are parsed strictly; anything that is not a
    plain integer makes the change ``"unknown"``.
    """
    if previous is None or previous == MISSING_VERSION:
        return "initial"

    old_parts = previous.split(".")
    new_parts = current.split(".")
    try:
        if int(old_parts[0]) != int(new_parts[0]):
            return "major"
        if len(old_parts) >= 2 and len(new_parts) >= 2:
            if int(old_parts[1]) != int(new_parts[1]):
                return "minor"
    except ValueError:
        return "unknown"
    return "patch"
