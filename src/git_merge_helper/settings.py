"""Persistence for the merge configuration.

The global configuration lives in ``~/.git-merge-helper/config.yaml``. A
working copy may opt into its own main branch, targets and patterns through
``git-merge-helper.yaml`` in its git directory, so the file never shows up
in ``git status``. Prefixes and the author override always come from the
global file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .config import MergeConfig, TargetBranch
from .errors import SettingsError
from .paths import get_global_config_path, get_project_config_path

logger = logging.getLogger(__name__)

__all__ = [
    "ProjectSettings",
    "ProjectSettingsStore",
    "SettingsStore",
    "YamlSettingsStore",
    "add_feature_pattern",
    "open_settings_store",
    "remove_feature_pattern",
]


class SettingsStore(Protocol):
    """Load/save capability for a named configuration."""

    def load(self) -> MergeConfig: ...

    def save(self, config: MergeConfig) -> None: ...


def _yaml() -> YAML:
    yaml = YAML()
    yaml.preserve_quotes = True
    yaml.default_flow_style = False
    return yaml


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = _yaml().load(f) or {}
    except YAMLError as e:
        logger.error("Failed to load settings: %s", e)
        raise SettingsError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise SettingsError(f"Invalid settings in {path}: expected a mapping")
    return data


def _write_yaml(path: Path, data: dict[str, Any]) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            _yaml().dump(data, f)
    except OSError as e:
        raise SettingsError(f"Could not write {path}: {e}") from e


def _is_unseeded(data: dict[str, Any]) -> bool:
    return not (
        data.get("target_branches")
        or data.get("feature_branch_patterns")
        or data.get("branch_prefixes")
    )


class YamlSettingsStore:
    """Global configuration stored as YAML.

    A missing file, or one whose target, pattern and prefix lists are all
    empty, loads as the default configuration.
    """

    def __init__(self, path: Path | None = None):
        self.path = path or get_global_config_path()

    def load(self) -> MergeConfig:
        data = _read_yaml(self.path)
        if _is_unseeded(data):
            logger.info("No stored configuration in %s, using defaults", self.path)
            config = MergeConfig.default()
            if data.get("main_branch"):
                config.main_branch = str(data["main_branch"])
            return config
        return MergeConfig.from_dict(data)

    def save(self, config: MergeConfig) -> None:
        _write_yaml(self.path, config.to_dict())
        logger.info("Saved configuration to %s", self.path)

    def reset_to_default(self) -> MergeConfig:
        config = MergeConfig.default()
        self.save(config)
        return config


@dataclass
class ProjectSettings:
    """Per-working-copy overrides of the global configuration."""

    use_project_config: bool = False
    main_branch: str = ""
    target_branches: list[TargetBranch] = field(default_factory=list)
    feature_branch_patterns: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "use_project_config": self.use_project_config,
            "main_branch": self.main_branch,
            "target_branches": [t.to_dict() for t in self.target_branches],
            "feature_branch_patterns": list(self.feature_branch_patterns),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectSettings:
        return cls(
            use_project_config=bool(data.get("use_project_config", False)),
            main_branch=str(data.get("main_branch", "") or ""),
            target_branches=[
                TargetBranch(str(item.get("name", "")), str(item.get("description", "")))
                for item in data.get("target_branches") or []
            ],
            feature_branch_patterns=[
                str(pattern) for pattern in data.get("feature_branch_patterns") or []
            ],
        )

    def apply_to(self, base: MergeConfig) -> MergeConfig:
        """Overlay the project fields on ``base`` and return a new config."""
        return MergeConfig(
            main_branch=self.main_branch or base.main_branch,
            target_branches=[TargetBranch(t.name, t.description) for t in self.target_branches],
            feature_branch_patterns=list(self.feature_branch_patterns),
            branch_prefixes=base.branch_prefixes,
            custom_git_name=base.custom_git_name,
        )


class ProjectSettingsStore:
    """``git-merge-helper.yaml`` inside the git directory of a working copy."""

    def __init__(self, repo_root: Path):
        self.path = get_project_config_path(repo_root)

    def load(self) -> ProjectSettings:
        return ProjectSettings.from_dict(_read_yaml(self.path))

    def save(self, settings: ProjectSettings) -> None:
        _write_yaml(self.path, settings.to_dict())
        logger.info("Saved project configuration to %s", self.path)

    def save_config(self, config: MergeConfig) -> None:
        """Store the project-level fields of ``config`` and keep the flag."""
        current = self.load()
        self.save(
            ProjectSettings(
                use_project_config=current.use_project_config,
                main_branch=config.main_branch,
                target_branches=[
                    TargetBranch(t.name, t.description) for t in config.target_branches
                ],
                feature_branch_patterns=list(config.feature_branch_patterns),
            )
        )

    def init_from_global(self, global_config: MergeConfig) -> ProjectSettings:
        settings = ProjectSettings(
            use_project_config=True,
            main_branch=global_config.main_branch,
            target_branches=[
                TargetBranch(t.name, t.description) for t in global_config.target_branches
            ],
            feature_branch_patterns=list(global_config.feature_branch_patterns),
        )
        self.save(settings)
        return settings

    def clear(self) -> None:
        self.save(ProjectSettings())


class _EffectiveSettingsStore:
    """Routes loads and saves to the project file when it is enabled."""

    def __init__(self, global_store: YamlSettingsStore, project_store: ProjectSettingsStore):
        self.global_store = global_store
        self.project_store = project_store

    def load(self) -> MergeConfig:
        base = self.global_store.load()
        project = self.project_store.load()
        if project.use_project_config:
            return project.apply_to(base)
        return base

    def save(self, config: MergeConfig) -> None:
        if self.project_store.load().use_project_config:
            self.project_store.save_config(config)
            base = self.global_store.load()
            base.branch_prefixes = config.branch_prefixes
            base.custom_git_name = config.custom_git_name
            self.global_store.save(base)
        else:
            self.global_store.save(config)


def open_settings_store(
    repo_root: Path | None, global_store: YamlSettingsStore | None = None
) -> SettingsStore:
    """Return the store the workflows should read from for ``repo_root``."""
    store = global_store or YamlSettingsStore()
    if repo_root is None:
        return store
    return _EffectiveSettingsStore(store, ProjectSettingsStore(repo_root))


def add_feature_pattern(store: SettingsStore, pattern: str) -> bool:
    """Append ``pattern`` unless it is blank or already present."""
    config = store.load()
    if not pattern.strip() or pattern in config.feature_branch_patterns:
        return False
    config.add_feature_pattern(pattern)
    store.save(config)
    return True


def remove_feature_pattern(store: SettingsStore, pattern: str) -> bool:
    config = store.load()
    if pattern not in config.feature_branch_patterns:
        return False
    config.remove_feature_pattern(config.feature_branch_patterns.index(pattern))
    store.save(config)
    return True
