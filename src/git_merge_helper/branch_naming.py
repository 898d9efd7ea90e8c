"""Feature-branch detection, branch-name generation and input validation.

Feature branches are recognised by glob patterns where ``*`` is the only
wildcard. Generated names follow ``{prefix}/{yyyyMMdd}/{description}_{author}``.

Two branch-name rules exist and are intentionally different:

* ``validate_branch_name`` accepts CJK ideographs and is used for names the
  tool generates or creates.
* ``validate_branch_name_strict`` is ASCII-only and is used for the target
  branch of a quick commit followed by a merge.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Iterable

__all__ = [
    "MAX_COMMIT_MESSAGE_LENGTH",
    "DEFAULT_AUTHOR",
    "is_feature_branch",
    "pattern_to_regex",
    "generate_branch_name",
    "resolve_author",
    "validate_description",
    "validate_branch_name",
    "validate_branch_name_strict",
    "validate_commit_message",
]

MAX_COMMIT_MESSAGE_LENGTH = 100
DEFAULT_AUTHOR = "user"

_DESCRIPTION_RE = re.compile(r"^[A-Za-z0-9\u4e00-\u9fa5_-]+$")
_BRANCH_NAME_RE = re.compile(r"^[A-Za-z0-9\u4e00-\u9fa5_/-]+$")
_STRICT_BRANCH_NAME_RE = re.compile(r"^[A-Za-z0-9/_-]+$")


def pattern_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile a glob pattern where ``*`` matches any run of characters."""
    parts = (re.escape(part) for part in pattern.split("*"))
    return re.compile(".*".join(parts))


def is_feature_branch(name: str, patterns: Iterable[str]) -> bool:
    """Return True if ``name`` fully matches at least one pattern.

    ``feature/*`` matches ``feature/login`` but neither ``feature`` nor
    ``xfeature/login``.
    """
    return any(pattern_to_regex(pattern).fullmatch(name) for pattern in patterns)


def generate_branch_name(
    prefix: str,
    description: str,
    author: str,
    today: date | None = None,
) -> str:
    """Build ``{prefix}/{yyyyMMdd}/{description}_{author}``.

    ``today`` defaults to the local date. Spaces in the description and the
    author become underscores.
    """
    day = today or date.today()
    safe_description = description.replace(" ", "_")
    safe_author = author.replace(" ", "_")
    return f"{prefix}/{day.strftime('%Y%m%d')}/{safe_description}_{safe_author}"


def resolve_author(custom_name: str | None, git_user_name: str | None) -> str:
    """Pick the author tag: configured override, then git user.name, then ``user``."""
    if custom_name and custom_name.strip():
        return custom_name.strip()
    if git_user_name and git_user_name.strip():
        return git_user_name.strip()
    return DEFAULT_AUTHOR


def validate_description(text: str) -> bool:
    """Letters, digits, CJK ideographs, ``_`` and ``-`` only; at least one char."""
    return bool(_DESCRIPTION_RE.fullmatch(text))


def validate_branch_name(name: str) -> bool:
    if not _BRANCH_NAME_RE.fullmatch(name):
        return False
    if "//" in name or " " in name:
        return False
    return not (name.startswith("/") or name.endswith("/"))


def validate_branch_name_strict(text: str) -> bool:
    """ASCII-only branch name check (no CJK)."""
    return bool(_STRICT_BRANCH_NAME_RE.fullmatch(text))


def validate_commit_message(text: str) -> bool:
    return bool(text.strip()) and len(text) <= MAX_COMMIT_MESSAGE_LENGTH
