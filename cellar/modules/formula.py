# cellar/modules/formula.py

from __future__ import annotations

import dataclasses
from typing import Optional, Tuple

from cellar.modules import flags as _flags


@dataclasses.dataclass(frozen=True)
class Formula:
    """A resolved, buildable unit: what a dependency name points at."""

    name: str
    version: str = ""
    full_name: str = ""
    tap_name: Optional[str] = None
    aliases: Tuple[str, ...] = ()
    oldnames: Tuple[str, ...] = ()
    options: Tuple[str, ...] = ()
    deps: Tuple = ()
    build: Optional[_flags.BuildOptions] = dataclasses.field(default=None, compare=False)

    def __post_init__(self):
        if not self.full_name:
            full = f"{self.tap_name}/{self.name}" if self.tap_name else self.name
            object.__setattr__(self, "full_name", full)
        for attr in ("aliases", "oldnames", "options", "deps"):
            object.__setattr__(self, attr, tuple(getattr(self, attr)))
        if self.build is None:
            object.__setattr__(self, "build", _flags.BuildOptions((), self.options))

    def __str__(self):
        return self.full_name

    def with_build(self, build: _flags.BuildOptions) -> "Formula":
        return dataclasses.replace(self, build=build)

    def with_args(self, args) -> "Formula":
        """Copy built with the given options requested."""
        return self.with_build(_flags.BuildOptions(args, self.options))

    def wants(self, dep) -> bool:
        return self.build.wants(dep)

    def latest_version_installed(self, receipts) -> bool:
        installed = receipts.installed_version(self)
        return installed is not None and str(installed) == str(self.version)
