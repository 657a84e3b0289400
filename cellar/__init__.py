"""cellar - dependency expansion for recipe-based formulae."""

from cellar.modules.dependency import (
    Dependency,
    DependencyKind,
    DependencyRecord,
    InvalidDependency,
    tap_dependency,
)
from cellar.modules.expand import Action, ExpansionCache, Expander, expand, merge_repeats
from cellar.modules.flags import BuildOptions
from cellar.modules.formula import Formula
from cellar.modules.formulary import Formulary, TargetUnavailable
from cellar.modules.receipt import ReceiptStore
from cellar.modules.tap import Tap, TapRegistry

__version__ = "0.1.0"

__all__ = [
    "Action",
    "BuildOptions",
    "Dependency",
    "DependencyKind",
    "DependencyRecord",
    "ExpansionCache",
    "Expander",
    "Formula",
    "Formulary",
    "InvalidDependency",
    "ReceiptStore",
    "Tap",
    "TapRegistry",
    "TargetUnavailable",
    "expand",
    "merge_repeats",
    "tap_dependency",
]
