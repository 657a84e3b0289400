# cellar/modules/formulary.py
"""
Formulary: resolves a formula name to a Formula.

Sources, in lookup order:
 - formulae registered in memory (register())
 - the main recipes tree: <recipes_dir>/<name>/recipe.yaml
 - every installed tap, laid out the same way

A name is matched against full names first, then short names, aliases and
old (renamed) names. Short names that exist in more than one tap and not in
the main tree are ambiguous and do not resolve.
"""

from __future__ import annotations

import os
import threading
from typing import Dict, Iterable, List, Optional

from cellar.modules import formula as _formula
from cellar.modules import logger as _logger
from cellar.modules import recipe as _recipe
from cellar.modules import tap as _tap
from cellar.modules.config import config


class TargetUnavailable(Exception):
    def __init__(self, name: str, reason: str = "No available formula"):
        self.name = name
        self.reason = reason
        super().__init__(f"{reason} with the name \"{name}\".")


class Formulary:
    def __init__(self,
                 recipes_dir: Optional[str] = None,
                 taps: Optional[_tap.TapRegistry] = None,
                 recipe_manager: Optional[_recipe.RecipeManager] = None,
                 logger: Optional[_logger.Logger] = None,
                 scan: bool = True):
        """
        recipes_dir: main recipes tree (defaults to [cellar] recipes_dir)
        taps: registry whose installed taps are indexed too (default registry if None)
        scan: when False only registered formulae are resolvable
        """
        self.recipes_dir = os.path.abspath(
            recipes_dir or config.recipes_dir)
        self._taps = taps
        self.scan = scan
        self.recipe_mgr = recipe_manager or _recipe.RecipeManager()
        self.log = logger or _logger.Logger("formulary")

        self._registered: Dict[str, _formula.Formula] = {}
        self._index: Optional[Dict[str, _formula.Formula]] = None
        self._index_lock = threading.Lock()

        self._factory_cache_enabled = False
        self._factory_cache: Dict[str, _formula.Formula] = {}

    # -----------------------
    # Index
    # -----------------------
    @property
    def taps(self) -> _tap.TapRegistry:
        if self._taps is None:
            self._taps = _tap.default_registry()
        return self._taps

    def register(self, formula: _formula.Formula) -> _formula.Formula:
        self._registered[formula.full_name] = formula
        self._factory_cache.clear()
        return formula

    def register_all(self, formulae: Iterable[_formula.Formula]):
        for f in formulae:
            self.register(f)

    def _scan_tree(self, root: str, tap_name: Optional[str], into: Dict[str, _formula.Formula]):
        if not os.path.isdir(root):
            self.log.debug(f"Recipes tree not found: {root}")
            return
        for entry in sorted(os.listdir(root)):
            recipe_path = os.path.join(root, entry, "recipe.yaml")
            if not os.path.isfile(recipe_path):
                continue
            try:
                f = self.recipe_mgr.load_formula(recipe_path, tap_name=tap_name)
            except _recipe.RecipeError as e:
                self.log.error(f"Skipping recipe {recipe_path}: {e}")
                continue
            into[f.full_name] = f

    def refresh(self) -> Dict[str, _formula.Formula]:
        """Rescan the recipes tree and installed taps."""
        idx: Dict[str, _formula.Formula] = {}
        if self.scan:
            self._scan_tree(self.recipes_dir, None, idx)
            for tap in self.taps.installed_taps():
                self._scan_tree(str(tap.recipes_dir), tap.name, idx)
            self.log.debug(f"Formulary indexed {len(idx)} recipes")
        with self._index_lock:
            self._index = idx
            self._factory_cache.clear()
        return idx

    def _formulae(self) -> Dict[str, _formula.Formula]:
        if self._index is None:
            self.refresh()
        merged = dict(self._index or {})
        merged.update(self._registered)
        return merged

    def formula_names(self) -> List[str]:
        return sorted(self._formulae().keys())

    # -----------------------
    # Factory cache (resolver-owned)
    # -----------------------
    def enable_factory_cache(self):
        self._factory_cache_enabled = True

    def disable_factory_cache(self):
        self._factory_cache_enabled = False
        self._factory_cache.clear()

    def clear_factory_cache(self):
        self._factory_cache.clear()

    # -----------------------
    # Resolution
    # -----------------------
    def factory(self, name: str) -> _formula.Formula:
        """Return the Formula for name. Raises TargetUnavailable."""
        if not name:
            raise TargetUnavailable(str(name))
        if self._factory_cache_enabled:
            cached = self._factory_cache.get(name)
            if cached is not None:
                return cached

        formula = self._resolve(name)
        if self._factory_cache_enabled:
            self._factory_cache[name] = formula
        return formula

    def _resolve(self, name: str) -> _formula.Formula:
        formulae = self._formulae()
        found = formulae.get(name)
        if found is not None:
            return found

        if "/" in name:
            tap_name, _, short = name.rpartition("/")
            matches = [f for f in formulae.values()
                       if f.tap_name == tap_name and (short in f.aliases or short in f.oldnames)]
            return self._single(name, matches)

        for attr in ("name", "aliases", "oldnames"):
            if attr == "name":
                matches = [f for f in formulae.values() if f.name == name]
            else:
                matches = [f for f in formulae.values() if name in getattr(f, attr)]
            if matches:
                core = [f for f in matches if f.tap_name is None]
                return self._single(name, core or matches)
        raise TargetUnavailable(name)

    def _single(self, name: str, matches: List[_formula.Formula]) -> _formula.Formula:
        if not matches:
            raise TargetUnavailable(name)
        if len(matches) > 1:
            full_names = ", ".join(sorted(f.full_name for f in matches))
            self.log.error(f"Formula name '{name}' is ambiguous: {full_names}")
            raise TargetUnavailable(name, f"Ambiguous formula ({full_names})")
        return matches[0]

    def canonical_names(self) -> Dict[str, str]:
        """Old names and aliases mapped to the full name they resolve to."""
        table: Dict[str, str] = {}
        aliases: Dict[str, str] = {}
        for f in self._formulae().values():
            prefix = f"{f.tap_name}/" if f.tap_name else ""
            for old in f.oldnames:
                table[prefix + old] = f.full_name
            for alias in f.aliases:
                aliases[prefix + alias] = f.full_name
        table.update(aliases)
        return table


_default_formulary: Optional[Formulary] = None


def default_formulary() -> Formulary:
    global _default_formulary
    if _default_formulary is None:
        _default_formulary = Formulary()
    return _default_formulary


def set_default_formulary(formulary: Optional[Formulary]):
    global _default_formulary
    _default_formulary = formulary
