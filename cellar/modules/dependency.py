# cellar/modules/dependency.py
"""
Dependency value type.

A Dependency names another formula plus the metadata declared with it:
tags (see cellar.modules.tags), the option names used to match it against
the dependent's build options, and an env_proc called when the dependency
is activated for a build.

Two kinds exist: PLAIN dependencies on a formula from the main recipes tree
and TAP dependencies on a fully qualified "user/repo/formula" name. They
share every field and differ only in the default option_names and in how
installed() treats a name that does not resolve.

Only (name, tags) survive serialization. env_proc is not a serializable
value, so a restored Dependency always carries the no-op env_proc and the
default option_names.
"""

from __future__ import annotations

import dataclasses
import enum
import json
from typing import Callable, Iterable, List, NamedTuple, Optional, Tuple

from cellar.modules import flags as _flags
from cellar.modules import formulary as _formulary
from cellar.modules import receipt as _receipt
from cellar.modules import tags as _tags
from cellar.modules import tap as _tap


class InvalidDependency(ValueError):
    pass


class DependencyKind(enum.Enum):
    PLAIN = "plain"
    TAP = "tap"


def _noop_env_proc():
    return None


DEFAULT_ENV_PROC = _noop_env_proc


class DependencyRecord(NamedTuple):
    """Persistable subset of a Dependency."""

    name: str
    tags: Tuple[str, ...]


@dataclasses.dataclass(frozen=True, eq=False)
class Dependency:
    name: str
    tags: Tuple[str, ...] = ()
    env_proc: Callable[[], None] = DEFAULT_ENV_PROC
    option_names: Optional[Tuple[str, ...]] = None
    kind: DependencyKind = DependencyKind.PLAIN

    def __post_init__(self):
        if not self.name:
            raise InvalidDependency("Dependency must have a name!")
        object.__setattr__(self, "tags", tuple(self.tags))
        if self.env_proc is None:
            object.__setattr__(self, "env_proc", DEFAULT_ENV_PROC)
        if self.option_names is None:
            if self.kind is DependencyKind.TAP:
                default = (self.name.rpartition("/")[2],)
            else:
                default = (self.name,)
            object.__setattr__(self, "option_names", default)
        else:
            object.__setattr__(self, "option_names", tuple(self.option_names))

    @classmethod
    def create(cls, name, tags=(), env_proc=DEFAULT_ENV_PROC, option_names=None) -> "Dependency":
        """Build a TAP dependency for user/repo/name names, a PLAIN one otherwise."""
        kind = DependencyKind.TAP if name and name.count("/") >= 2 else DependencyKind.PLAIN
        return cls(name, tags, env_proc, option_names, kind)

    # -------------------------
    # Value semantics
    # -------------------------
    def __str__(self):
        return self.name

    def __repr__(self):
        return f"<Dependency[{self.kind.value}]: {self.name!r} {list(self.tags)!r}>"

    def __eq__(self, other):
        if not isinstance(other, Dependency):
            return NotImplemented
        return self.kind is other.kind and self.name == other.name and self.tags == other.tags

    def __hash__(self):
        return hash((self.name, self.tags))

    def __reduce__(self):
        return (_restore, (self.kind.value, self.name, self.tags))

    # -------------------------
    # Tag helpers
    # -------------------------
    @property
    def optional(self) -> bool:
        return _tags.is_optional(self)

    @property
    def recommended(self) -> bool:
        return _tags.is_recommended(self)

    @property
    def required(self) -> bool:
        return _tags.is_required(self)

    @property
    def build(self) -> bool:
        return _tags.is_build(self)

    @property
    def test(self) -> bool:
        return _tags.is_test(self)

    @property
    def options(self) -> List[str]:
        """Build options this dependency requests from its target."""
        return _tags.option_tags(self)

    # -------------------------
    # Tap scoping
    # -------------------------
    @property
    def tap_name(self) -> Optional[str]:
        if self.kind is not DependencyKind.TAP:
            return None
        return self.name.rpartition("/")[0]

    def tap(self, registry: Optional[_tap.TapRegistry] = None) -> Optional[_tap.Tap]:
        if self.kind is not DependencyKind.TAP:
            return None
        registry = registry or _tap.default_registry()
        return registry.fetch(self.tap_name)

    # -------------------------
    # Resolution queries
    # -------------------------
    def to_formula(self, formulary=None):
        """
        Resolve the target formula and attach the build options this
        dependency asks for. Raises TargetUnavailable.
        """
        formulary = formulary or _formulary.default_formulary()
        formula = formulary.factory(self.name)
        return formula.with_build(_flags.BuildOptions(self.options, formula.options))

    def installed(self, formulary=None, receipts=None) -> bool:
        if self.kind is DependencyKind.TAP:
            try:
                return self._latest_version_installed(formulary, receipts)
            except _formulary.TargetUnavailable:
                return False
        return self._latest_version_installed(formulary, receipts)

    def _latest_version_installed(self, formulary, receipts) -> bool:
        receipts = receipts or _receipt.default_store()
        return self.to_formula(formulary).latest_version_installed(receipts)

    def satisfied(self, inherited_options: Iterable[str] = (), formulary=None, receipts=None) -> bool:
        return (self.installed(formulary, receipts)
                and not self.missing_options(inherited_options, formulary, receipts))

    def missing_options(self, inherited_options: Iterable[str], formulary=None, receipts=None) -> List[str]:
        formula = self.to_formula(formulary)
        receipts = receipts or _receipt.default_store()

        required = list(self.options)
        for opt in inherited_options:
            if opt not in required:
                required.append(opt)
        required = [opt for opt in required if opt in formula.options]
        used = set(receipts.used_options_for(formula))
        return [opt for opt in required if opt not in used]

    def modify_build_environment(self):
        self.env_proc()

    # -------------------------
    # Derived values
    # -------------------------
    def with_name(self, name: str) -> "Dependency":
        """Copy pointing at another (canonical) name; everything else is kept."""
        return dataclasses.replace(self, name=name)

    def to_record(self) -> DependencyRecord:
        return DependencyRecord(self.name, self.tags)

    @classmethod
    def from_record(cls, record, kind: DependencyKind = DependencyKind.PLAIN) -> "Dependency":
        name, tags = record
        return cls(name, tuple(tags), kind=kind)


def tap_dependency(name, tags=(), env_proc=DEFAULT_ENV_PROC, option_names=None) -> Dependency:
    return Dependency(name, tags, env_proc, option_names, DependencyKind.TAP)


def _restore(kind, name, tags):
    return Dependency.from_record((name, tags), kind=DependencyKind(kind))


def dumps(dep: Dependency) -> str:
    """Serialize to the persisted pair form: ["name", ["tag", ...]]."""
    name, tags = dep.to_record()
    return json.dumps([name, list(tags)])


def loads(text: str, kind: DependencyKind = DependencyKind.PLAIN) -> Dependency:
    data = json.loads(text)
    if not isinstance(data, list) or len(data) != 2 or not isinstance(data[1], list):
        raise InvalidDependency(f"Not a serialized dependency: {text!r}")
    return Dependency.from_record(data, kind=kind)
