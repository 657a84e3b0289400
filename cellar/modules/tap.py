# cellar/modules/tap.py
"""
Tap registry.

A tap is a named ("user/repo") git repository of recipes, laid out like the
main recipes tree (<name>/recipe.yaml). Taps are declared in a YAML file:

taps:
  - name: acme/tools
    url: https://git.example.com/acme/tools.git
    branch: main
    path: /var/lib/cellar/taps/acme/tools   # optional
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from git import GitCommandError, Repo

from cellar.modules import logger as _logger
from cellar.modules.config import config


class TapError(Exception):
    pass


class TapUnavailable(TapError):
    pass


class Tap:
    def __init__(self, name: str, path, url: Optional[str] = None, branch: str = "main"):
        user, sep, repo = name.partition("/")
        if not sep or not user or not repo or "/" in repo:
            raise TapError(f"Invalid tap name '{name}': expected 'user/repo'")
        self.name = name
        self.user = user
        self.repo = repo
        self.path = Path(path)
        self.url = url
        self.branch = branch

    def __repr__(self):
        return f"<Tap {self.name} at {self.path}>"

    def __eq__(self, other):
        return isinstance(other, Tap) and self.name == other.name

    def __hash__(self):
        return hash(self.name)

    @property
    def installed(self) -> bool:
        return self.path.is_dir()

    @property
    def recipes_dir(self) -> Path:
        return self.path

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"name": self.name, "url": self.url, "branch": self.branch, "path": str(self.path)}


class TapRegistry:
    """Declared taps plus on-demand handles for undeclared ones."""

    def __init__(self, taps_config: Optional[str] = None, taps_dir: Optional[str] = None,
                 logger: Optional[_logger.Logger] = None):
        self.taps_config = taps_config or config.taps_config
        self.taps_dir = Path(taps_dir or config.taps_dir)
        self.log = logger or _logger.Logger("tap")
        self.taps: Dict[str, Tap] = {}
        self.load()

    def load(self):
        """Load tap declarations from the YAML config."""
        self.taps = {}
        if not os.path.exists(self.taps_config):
            return
        try:
            with open(self.taps_config, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            for entry in data.get("taps", []):
                name = entry["name"]
                self.taps[name] = Tap(
                    name,
                    entry.get("path") or self._default_path(name),
                    url=entry.get("url"),
                    branch=entry.get("branch", "main"),
                )
        except (OSError, yaml.YAMLError, KeyError, TypeError, AttributeError) as e:
            raise TapError(f"Could not read tap config {self.taps_config}: {e}") from e
        self.log.debug(f"{len(self.taps)} taps loaded from {self.taps_config}")

    def save(self):
        data = {"taps": [tap.to_dict() for tap in self.taps.values()]}
        try:
            os.makedirs(os.path.dirname(os.path.abspath(self.taps_config)), exist_ok=True)
            with open(self.taps_config, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)
        except OSError as e:
            raise TapError(f"Could not save tap config: {e}") from e

    def _default_path(self, name: str) -> Path:
        user, _, repo = name.partition("/")
        return self.taps_dir / user / repo

    def fetch(self, name: str) -> Tap:
        """Registered tap, or a handle at the default location for an unregistered one."""
        tap = self.taps.get(name)
        if tap is None:
            tap = Tap(name, self._default_path(name))
        return tap

    def add(self, name: str, url: str, branch: str = "main") -> Tap:
        if name in self.taps:
            raise TapError(f"Tap '{name}' already exists.")
        tap = Tap(name, self._default_path(name), url=url, branch=branch)
        self.taps[name] = tap
        self.save()
        self.log.info(f"Tap '{name}' added ({url}).")
        return tap

    def remove(self, name: str, remove_local: bool = False):
        if name not in self.taps:
            raise TapUnavailable(f"Tap '{name}' not found.")
        tap = self.taps.pop(name)
        self.save()
        if remove_local and tap.installed:
            shutil.rmtree(tap.path)
            self.log.info(f"Tap '{name}' removed with its local checkout.")
        else:
            self.log.info(f"Tap '{name}' removed (config only).")

    def installed_taps(self) -> List[Tap]:
        return [tap for tap in self.taps.values() if tap.installed]

    def sync(self, name: str) -> Tap:
        """Clone the tap, or pull it when already present."""
        tap = self.fetch(name)
        if not tap.url:
            raise TapUnavailable(f"Tap '{name}' has no URL to sync from.")
        try:
            if not tap.installed:
                Repo.clone_from(tap.url, tap.path, branch=tap.branch)
            else:
                repo = Repo(tap.path)
                repo.remotes.origin.fetch()
                repo.git.checkout(tap.branch)
                repo.remotes.origin.pull()
        except GitCommandError as e:
            self.log.error(f"Sync of tap '{name}' failed: {e}")
            raise TapError(f"Sync of tap '{name}' failed: {e}") from e
        self.log.info(f"Tap '{name}' up to date.")
        return tap


_default_registry: Optional[TapRegistry] = None


def default_registry() -> TapRegistry:
    global _default_registry
    if _default_registry is None:
        _default_registry = TapRegistry()
    return _default_registry


def set_default_registry(registry: Optional[TapRegistry]):
    global _default_registry
    _default_registry = registry
