# cellar/modules/expand.py
"""
Recursive dependency expansion.

expand(dependent) walks the declared dependencies of a formula and returns
the transitive closure:

 - each name appears once; repeated occurrences are merged (merge_repeats)
 - dependencies come before the formulae that need them
 - the dependent itself is never part of the result

Traversal of each (dependent, dep) edge is decided by an Action. Callers may
pass decide(dependent, dep) returning an Action, or None to descend. Without
a callback, optional and recommended dependencies the dependent's build does
not ask for are pruned.

The cycle guard (resolved full names currently being expanded) is created
per top-level call and passed down the recursion. Results may be memoized in
an ExpansionCache under a caller supplied cache_key; entries live until the
cache is cleared. Results cut short by a cycle through an ancestor are not
memoized.
"""

from __future__ import annotations

import dataclasses
import enum
import threading
from typing import Callable, Dict, Hashable, Iterable, List, Optional, Tuple

from cellar.modules import dependency as _dependency
from cellar.modules import formulary as _formulary
from cellar.modules import logger as _logger
from cellar.modules import tags as _tags


class Action(enum.Enum):
    PRUNE = "prune"
    SKIP = "skip"
    KEEP_BUT_PRUNE_RECURSIVE_DEPS = "keep_but_prune_recursive_deps"
    DESCEND = "descend"


Decide = Callable[[object, _dependency.Dependency], Optional[Action]]


def default_action(dependent, dep: _dependency.Dependency) -> Action:
    """Prune optional/recommended deps the dependent's build does not want."""
    if (dep.optional or dep.recommended) and not dependent.wants(dep):
        return Action.PRUNE
    return Action.DESCEND


def cache_id(dependent) -> str:
    return f"{dependent.full_name}_{type(dependent).__name__}"


def merge_repeats(deps: Iterable[_dependency.Dependency]) -> List[_dependency.Dependency]:
    """
    Collapse entries sharing a name, in first-seen order. The first entry
    provides env_proc and kind; option_names are unioned and tags merged.
    """
    grouped: Dict[str, List[_dependency.Dependency]] = {}
    for dep in deps:
        grouped.setdefault(dep.name, []).append(dep)

    merged = []
    for name, group in grouped.items():
        first = group[0]
        option_names = list(dict.fromkeys(o for d in group for o in d.option_names))
        merged.append(dataclasses.replace(
            first,
            tags=tuple(_tags.merge_tags(group)),
            option_names=tuple(option_names),
        ))
    return merged


class ExpansionCache:
    """
    Completed expansions keyed by (cache_key, cache_id(dependent)).

    Expansions under one cache_key run while holding that key's lock, so a
    given entry is computed at most once at a time and only complete results
    are ever stored. Entries are never invalidated implicitly: call clear()
    when recipes change.
    """

    def __init__(self):
        self._entries: Dict[Hashable, Dict[str, List[_dependency.Dependency]]] = {}
        self._locks: Dict[Hashable, threading.RLock] = {}
        self._guard = threading.Lock()

    def lock(self, cache_key: Hashable) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(cache_key)
            if lock is None:
                lock = self._locks[cache_key] = threading.RLock()
            return lock

    def get(self, cache_key: Hashable, dependent) -> Optional[List[_dependency.Dependency]]:
        with self._guard:
            entry = self._entries.get(cache_key, {}).get(cache_id(dependent))
        return list(entry) if entry is not None else None

    def store(self, cache_key: Hashable, dependent, deps: List[_dependency.Dependency]):
        with self._guard:
            self._entries.setdefault(cache_key, {})[cache_id(dependent)] = list(deps)

    def clear(self, cache_key: Optional[Hashable] = None):
        with self._guard:
            if cache_key is None:
                self._entries.clear()
            else:
                self._entries.pop(cache_key, None)

    def __contains__(self, cache_key):
        with self._guard:
            return cache_key in self._entries

    def __len__(self):
        with self._guard:
            return sum(len(e) for e in self._entries.values())


# process-wide cache; lives until clear() is called
expansion_cache = ExpansionCache()


class Expander:
    def __init__(self,
                 formulary: Optional[_formulary.Formulary] = None,
                 cache: Optional[ExpansionCache] = None,
                 logger: Optional[_logger.Logger] = None):
        self._formulary = formulary
        self.cache = cache if cache is not None else expansion_cache
        self.log = logger or _logger.Logger("expand")

    @property
    def formulary(self) -> _formulary.Formulary:
        return self._formulary or _formulary.default_formulary()

    def expand(self, dependent, deps: Optional[Iterable[_dependency.Dependency]] = None,
               cache_key: Optional[Hashable] = None,
               decide: Optional[Decide] = None) -> List[_dependency.Dependency]:
        """
        Expand dependent's dependencies (or the given deps) recursively.
        Raises TargetUnavailable when a dependency does not resolve.
        """
        return self._expand(dependent, deps, cache_key, decide, [])[0]

    def action(self, dependent, dep: _dependency.Dependency, decide: Optional[Decide] = None) -> Action:
        if decide is None:
            return default_action(dependent, dep)
        result = decide(dependent, dep)
        if result is None:
            return Action.DESCEND
        if not isinstance(result, Action):
            raise TypeError(f"decide() must return an Action or None, got {result!r}")
        return result

    def _expand(self, dependent, deps, cache_key, decide, stack: List[str]) -> Tuple[List[_dependency.Dependency], Optional[int]]:
        """
        Returns the expansion and the lowest cycle guard position an edge was
        cut against (None when nothing was cut). A result whose cuts reach
        above its own position depends on its ancestors and is not cached.
        """
        depth = len(stack)
        stack.append(dependent.full_name)
        try:
            if cache_key is None:
                return self._expand_deps(dependent, deps, cache_key, decide, stack)

            with self.cache.lock(cache_key):
                cached = self.cache.get(cache_key, dependent)
                if cached is not None:
                    self.log.debug(f"Expansion cache hit for {dependent.full_name} ({cache_key})")
                    return cached, None
                expanded, cut = self._expand_deps(dependent, deps, cache_key, decide, stack)
                if cut is None or cut >= depth:
                    self.cache.store(cache_key, dependent, expanded)
                else:
                    self.log.debug(f"Not caching partial expansion of {dependent.full_name}")
                return expanded, cut
        finally:
            stack.pop()

    def _expand_deps(self, dependent, deps, cache_key, decide, stack: List[str]) -> Tuple[List[_dependency.Dependency], Optional[int]]:
        if deps is None:
            deps = dependent.deps

        expanded: List[_dependency.Dependency] = []
        cut: Optional[int] = None

        def lowest(a, b):
            if a is None:
                return b
            if b is None:
                return a
            return min(a, b)

        for dep in deps:
            if dep.name in (dependent.name, dependent.full_name):
                continue

            action = self.action(dependent, dep, decide)
            if action is Action.PRUNE:
                self.log.debug(f"{dependent.name}: pruned {dep.name}")
                continue

            if action is Action.KEEP_BUT_PRUNE_RECURSIVE_DEPS:
                expanded.append(dep)
                continue

            dep_formula = dep.to_formula(self.formulary)
            if dep_formula.full_name in stack:
                self.log.debug(f"{dependent.name}: {dep_formula.full_name} is already being expanded")
                cut = lowest(cut, stack.index(dep_formula.full_name))
                continue

            sub, sub_cut = self._expand(dep_formula, None, cache_key, decide, stack)
            cut = lowest(cut, sub_cut)
            expanded.extend(sub)
            if action is Action.SKIP:
                self.log.debug(f"{dependent.name}: skipped {dep.name}, keeping its dependencies")
            else:
                # renamed and aliased formulae are recorded under their full name
                expanded.append(dep.with_name(dep_formula.full_name))

        return merge_repeats(expanded), cut


_default_expander: Optional[Expander] = None


def default_expander() -> Expander:
    global _default_expander
    if _default_expander is None:
        _default_expander = Expander()
    return _default_expander


def expand(dependent, deps: Optional[Iterable[_dependency.Dependency]] = None,
           cache_key: Optional[Hashable] = None,
           decide: Optional[Decide] = None) -> List[_dependency.Dependency]:
    return default_expander().expand(dependent, deps, cache_key=cache_key, decide=decide)
