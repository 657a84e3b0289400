# cellar/modules/flags.py

from typing import Iterable, List


class BuildOptions:
    """
    Options requested for one build of a formula.

    args:    options asked for (e.g. ["with-ssl", "without-docs"])
    options: options the formula declares
    """

    def __init__(self, args: Iterable[str] = (), options: Iterable[str] = ()):
        self.args = list(dict.fromkeys(args))
        self.options = list(dict.fromkeys(options))

    def __repr__(self):
        return f"BuildOptions(args={self.args!r}, options={self.options!r})"

    def __eq__(self, other):
        if not isinstance(other, BuildOptions):
            return NotImplemented
        return self.args == other.args and self.options == other.options

    def include(self, name: str) -> bool:
        return name in self.args

    def option_defined(self, name: str) -> bool:
        return name in self.options

    def with_(self, val) -> bool:
        """
        True when any option name of val (a Dependency or a bare name) is
        switched on: "with-<n>" declared and requested, or "without-<n>"
        declared and not requested.
        """
        names = getattr(val, "option_names", None) or [str(val)]
        for name in names:
            if self.option_defined(f"with-{name}"):
                if self.include(f"with-{name}"):
                    return True
            elif self.option_defined(f"without-{name}"):
                if not self.include(f"without-{name}"):
                    return True
        return False

    def without(self, val) -> bool:
        return not self.with_(val)

    def wants(self, dep) -> bool:
        return self.with_(dep)

    @property
    def used_options(self) -> List[str]:
        return [o for o in self.args if o in self.options]

    @property
    def unused_options(self) -> List[str]:
        return [o for o in self.options if o not in self.args]
