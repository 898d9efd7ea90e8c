"""Configuration model for the merge workflows.

Holds the main branch, the merge targets, the feature-branch patterns and
the branch prefixes used when creating feature branches. Validation collects
every problem instead of stopping at the first so a caller can show the
complete list.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable

from .branch_naming import is_feature_branch

__all__ = [
    "BranchPrefix",
    "ConfigValidationResult",
    "MergeConfig",
    "TargetBranch",
]


@dataclass
class TargetBranch:
    """A branch a feature branch can be merged into."""

    name: str
    description: str = ""

    def __str__(self) -> str:
        return f"{self.name} ({self.description})"

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "description": self.description}


@dataclass
class BranchPrefix:
    """Prefix offered when creating a feature branch."""

    prefix: str
    description: str = ""
    is_default: bool = False

    def __str__(self) -> str:
        return f"{self.prefix} ({self.description})"

    def to_dict(self) -> dict[str, Any]:
        return {
            "prefix": self.prefix,
            "description": self.description,
            "is_default": self.is_default,
        }


@dataclass(frozen=True)
class ConfigValidationResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)


def _default_targets() -> list[TargetBranch]:
    return [
        TargetBranch("main", "主分支"),
        TargetBranch("develop", "开发分支"),
        TargetBranch("release", "发布分支"),
    ]


def _default_patterns() -> list[str]:
    return ["feature/*", "feat/*", "bugfix/*", "hotfix/*", "fix/*"]


def _default_prefixes() -> list[BranchPrefix]:
    return [
        BranchPrefix("feature", "功能分支", True),
        BranchPrefix("feat", "功能分支(简写)", False),
        BranchPrefix("bugfix", "修复分支", False),
        BranchPrefix("hotfix", "热修复分支", False),
        BranchPrefix("fix", "修复分支(简写)", False),
    ]


def _duplicates(values: Iterable[str]) -> list[str]:
    counts = Counter(values)
    return [value for value, count in counts.items() if count > 1]


@dataclass
class MergeConfig:
    """Settings that drive the merge and create-branch workflows.

    Attributes:
        main_branch: Trunk branch updated first and merged into the feature
        target_branches: Destinations a feature branch may be merged into
        feature_branch_patterns: Glob patterns (``*`` only) naming feature branches
        branch_prefixes: Prefixes offered for new branches, one flagged default
        custom_git_name: Author tag override; empty means use git ``user.name``
    """

    main_branch: str = "main"
    target_branches: list[TargetBranch] = field(default_factory=list)
    feature_branch_patterns: list[str] = field(default_factory=list)
    branch_prefixes: list[BranchPrefix] = field(default_factory=list)
    custom_git_name: str = ""

    @classmethod
    def default(cls) -> MergeConfig:
        return cls(
            main_branch="main",
            target_branches=_default_targets(),
            feature_branch_patterns=_default_patterns(),
            branch_prefixes=_default_prefixes(),
            custom_git_name="",
        )

    def reset_to_default(self) -> None:
        """Replace every field with the default seed."""
        seed = MergeConfig.default()
        self.main_branch = seed.main_branch
        self.target_branches = seed.target_branches
        self.feature_branch_patterns = seed.feature_branch_patterns
        self.branch_prefixes = seed.branch_prefixes
        self.custom_git_name = seed.custom_git_name

    def validate(self) -> ConfigValidationResult:
        errors: list[str] = []

        if not self.main_branch.strip():
            errors.append("Main branch name must not be blank")
        if not self.target_branches:
            errors.append("At least one target branch must be configured")
        if not self.feature_branch_patterns:
            errors.append("At least one feature branch pattern must be configured")
        if not self.branch_prefixes:
            errors.append("At least one branch prefix must be configured")
        if not any(prefix.is_default for prefix in self.branch_prefixes):
            errors.append("One branch prefix must be marked as default")

        duplicate_targets = _duplicates(t.name for t in self.target_branches)
        if duplicate_targets:
            errors.append(f"Duplicate target branches: {', '.join(duplicate_targets)}")

        duplicate_patterns = _duplicates(self.feature_branch_patterns)
        if duplicate_patterns:
            errors.append(
                f"Duplicate feature branch patterns: {', '.join(duplicate_patterns)}"
            )

        duplicate_prefixes = _duplicates(p.prefix for p in self.branch_prefixes)
        if duplicate_prefixes:
            errors.append(f"Duplicate branch prefixes: {', '.join(duplicate_prefixes)}")

        return ConfigValidationResult(is_valid=not errors, errors=errors)

    def is_feature_branch(self, branch_name: str) -> bool:
        return is_feature_branch(branch_name, self.feature_branch_patterns)

    def get_default_branch_prefix(self) -> BranchPrefix | None:
        """Return the default prefix, else the first one, else None."""
        for prefix in self.branch_prefixes:
            if prefix.is_default:
                return prefix
        return self.branch_prefixes[0] if self.branch_prefixes else None

    def find_branch_prefix(self, prefix: str) -> BranchPrefix | None:
        for entry in self.branch_prefixes:
            if entry.prefix == prefix:
                return entry
        return None

    # ── List editing ──────────────────────────────────────────────
    # Plain append / remove-at-index. Removing the default prefix is
    # allowed; validate() reports the missing default afterwards.

    def add_target_branch(self, name: str, description: str = "") -> None:
        self.target_branches.append(TargetBranch(name, description))

    def remove_target_branch(self, index: int) -> TargetBranch:
        return self.target_branches.pop(index)

    def add_feature_pattern(self, pattern: str) -> None:
        self.feature_branch_patterns.append(pattern)

    def remove_feature_pattern(self, index: int) -> str:
        return self.feature_branch_patterns.pop(index)

    def add_branch_prefix(
        self, prefix: str, description: str = "", is_default: bool = False
    ) -> None:
        if is_default:
            for entry in self.branch_prefixes:
                entry.is_default = False
        self.branch_prefixes.append(BranchPrefix(prefix, description, is_default))

    def remove_branch_prefix(self, index: int) -> BranchPrefix:
        return self.branch_prefixes.pop(index)

    def set_default_prefix(self, index: int) -> None:
        """Flag the prefix at ``index`` as default and clear the others."""
        selected = self.branch_prefixes[index]
        for entry in self.branch_prefixes:
            entry.is_default = entry is selected

    # ── Serialization ─────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        return {
            "main_branch": self.main_branch,
            "target_branches": [t.to_dict() for t in self.target_branches],
            "feature_branch_patterns": list(self.feature_branch_patterns),
            "branch_prefixes": [p.to_dict() for p in self.branch_prefixes],
            "custom_git_name": self.custom_git_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MergeConfig:
        return cls(
            main_branch=str(data.get("main_branch", "main") or ""),
            target_branches=[
                TargetBranch(str(item.get("name", "")), str(item.get("description", "")))
                for item in data.get("target_branches") or []
            ],
            feature_branch_patterns=[
                str(pattern) for pattern in data.get("feature_branch_patterns") or []
            ],
            branch_prefixes=[
                BranchPrefix(
                    str(item.get("prefix", "")),
                    str(item.get("description", "")),
                    bool(item.get("is_default", False)),
                )
                for item in data.get("branch_prefixes") or []
            ],
            custom_git_name=str(data.get("custom_git_name", "") or ""),
        )
