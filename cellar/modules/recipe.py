# cellar/modules/recipe.py
"""
Recipe manager: load, validate and turn recipe.yaml files into formulae.

A recipe looks like:

    name: curl
    version: "8.4.0"
    aliases: [curl-ssl]
    oldnames: [libcurl]
    options: [with-brotli, without-ldap]
    depends:
      - openssl                   # bare names are plain dependencies
      - name: brotli
        tags: [optional]
      - name: acme/tools/zstd     # qualified names are tap dependencies
        tags: [build]
        option_names: [zstd]
        env: {ZSTD_STATIC: "1"}
"""

from __future__ import annotations

import os
from typing import Any, Callable, Dict, List, Optional

import yaml

from cellar.modules import dependency as _dependency
from cellar.modules import formula as _formula
from cellar.modules import logger as _logger

LIST_FIELDS = ("depends", "options", "aliases", "oldnames")


class RecipeError(Exception):
    pass


def _env_proc(env: Dict[str, Any]) -> Callable[[], None]:
    values = {str(k): str(v) for k, v in env.items()}

    def apply():
        os.environ.update(values)

    return apply


class RecipeManager:
    REQUIRED_FIELDS = ["name", "version"]

    def __init__(self, logger: Optional[_logger.Logger] = None):
        self.log = logger or _logger.Logger("recipe")

    # -------------------------
    # I/O
    # -------------------------
    def load(self, path: str) -> Dict[str, Any]:
        """Load recipe.yaml from a directory or a file path."""
        path = os.path.abspath(path)
        if os.path.isdir(path):
            candidate = os.path.join(path, "recipe.yaml")
        else:
            candidate = path

        if not os.path.exists(candidate):
            raise RecipeError(f"Recipe file not found: {candidate}")

        try:
            with open(candidate, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise RecipeError(f"Malformed recipe {candidate}: {e}") from e
        if not isinstance(data, dict):
            raise RecipeError(f"Recipe {candidate} must be a mapping")
        self.log.debug(f"Recipe loaded: {candidate}")
        return data

    def save(self, recipe: Dict[str, Any], dest_dir: str) -> str:
        """Write recipe dict as recipe.yaml under dest_dir."""
        dest_dir = os.path.abspath(dest_dir)
        os.makedirs(dest_dir, exist_ok=True)
        dest_file = os.path.join(dest_dir, "recipe.yaml")
        with open(dest_file, "w", encoding="utf-8") as f:
            yaml.safe_dump(recipe, f, sort_keys=False, allow_unicode=True)
        self.log.debug(f"Recipe saved to: {dest_file}")
        return dest_file

    # -------------------------
    # Validation
    # -------------------------
    def validate(self, recipe: Dict[str, Any]) -> bool:
        missing = [f for f in self.REQUIRED_FIELDS if f not in recipe or not recipe[f]]
        if missing:
            raise RecipeError(f"Missing required fields: {missing}")

        for field in LIST_FIELDS:
            if field in recipe and recipe[field] is not None and not isinstance(recipe[field], list):
                raise RecipeError(f"Field '{field}' must be a list")

        if not isinstance(recipe["version"], (str, int, float)):
            raise RecipeError("Field 'version' must be a string or a number")

        for entry in recipe.get("depends") or []:
            if isinstance(entry, dict):
                if not entry.get("name"):
                    raise RecipeError(f"Dependency entry without a name: {entry}")
                if "tags" in entry and not isinstance(entry["tags"], list):
                    raise RecipeError(f"Tags of dependency '{entry['name']}' must be a list")
            elif not isinstance(entry, str) or not entry:
                raise RecipeError(f"Invalid dependency entry: {entry!r}")
        return True

    # -------------------------
    # Editing helpers
    # -------------------------
    def add_dependency(self, recipe: Dict[str, Any], dep: str, tags: Optional[List[str]] = None) -> Dict[str, Any]:
        deps = recipe.setdefault("depends", [])
        names = [d["name"] if isinstance(d, dict) else d for d in deps]
        if dep in names:
            self.log.debug(f"Dependency already present: {dep}")
            return recipe
        deps.append({"name": dep, "tags": list(tags)} if tags else dep)
        self.log.info(f"Dependency added: {dep}")
        return recipe

    def remove_dependency(self, recipe: Dict[str, Any], dep: str) -> Dict[str, Any]:
        deps = recipe.get("depends", [])
        recipe["depends"] = [d for d in deps if (d["name"] if isinstance(d, dict) else d) != dep]
        if len(recipe["depends"]) != len(deps):
            self.log.info(f"Dependency removed: {dep}")
        return recipe

    # -------------------------
    # Formula conversion
    # -------------------------
    def parse_dependency(self, entry) -> _dependency.Dependency:
        if isinstance(entry, str):
            return _dependency.Dependency.create(entry)
        env = entry.get("env")
        return _dependency.Dependency.create(
            entry["name"],
            tags=[str(t) for t in entry.get("tags") or []],
            env_proc=_env_proc(env) if env else _dependency.DEFAULT_ENV_PROC,
            option_names=entry.get("option_names"),
        )

    @staticmethod
    def implied_options(deps: List[_dependency.Dependency], declared: List[str]) -> List[str]:
        """
        Options every optional/recommended dependency brings along:
        "with-<n>" for optional ones, "without-<n>" for recommended ones.
        """
        options = list(declared)
        for dep in deps:
            for name in dep.option_names:
                if dep.optional and f"with-{name}" not in options:
                    options.append(f"with-{name}")
                elif dep.recommended and f"without-{name}" not in options:
                    options.append(f"without-{name}")
        return options

    def to_formula(self, recipe: Dict[str, Any], tap_name: Optional[str] = None) -> _formula.Formula:
        self.validate(recipe)
        deps = [self.parse_dependency(e) for e in recipe.get("depends") or []]
        declared = [str(o) for o in recipe.get("options") or []]
        return _formula.Formula(
            name=str(recipe["name"]),
            version=str(recipe["version"]),
            tap_name=tap_name,
            aliases=[str(a) for a in recipe.get("aliases") or []],
            oldnames=[str(o) for o in recipe.get("oldnames") or []],
            options=self.implied_options(deps, declared),
            deps=deps,
        )

    def load_formula(self, path: str, tap_name: Optional[str] = None) -> _formula.Formula:
        return self.to_formula(self.load(path), tap_name=tap_name)
