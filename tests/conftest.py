"""Shared pytest fixtures."""

import pytest

from cellar.modules import formulary as _formulary
from cellar.modules import receipt as _receipt
from cellar.modules.expand import ExpansionCache, Expander
from cellar.modules.formulary import Formulary
from cellar.modules.receipt import ReceiptStore
from cellar.modules.recipe import RecipeManager
from cellar.modules.tap import TapRegistry


@pytest.fixture
def recipe_mgr() -> RecipeManager:
    return RecipeManager()


@pytest.fixture
def tap_registry(tmp_path) -> TapRegistry:
    """Registry with no declared taps, rooted in tmp_path."""
    return TapRegistry(taps_config=str(tmp_path / "taps.yaml"), taps_dir=str(tmp_path / "taps"))


@pytest.fixture
def formulary(tap_registry) -> Formulary:
    """In-memory formulary; formulae are added with the `formula` fixture."""
    return Formulary(recipes_dir="/nonexistent", taps=tap_registry, scan=False)


@pytest.fixture
def formula(formulary, recipe_mgr):
    """Register a formula built from recipe fields and return it."""

    def make(name, depends=(), version="1.0", tap_name=None, **fields):
        recipe = {"name": name, "version": version, "depends": list(depends)}
        recipe.update(fields)
        return formulary.register(recipe_mgr.to_formula(recipe, tap_name=tap_name))

    return make


@pytest.fixture
def cache() -> ExpansionCache:
    return ExpansionCache()


@pytest.fixture
def expander(formulary, cache) -> Expander:
    return Expander(formulary, cache)


@pytest.fixture
def receipts() -> ReceiptStore:
    return ReceiptStore({})


@pytest.fixture
def default_formulary(formulary):
    """Install the in-memory formulary as the process default."""
    previous = _formulary._default_formulary
    _formulary.set_default_formulary(formulary)
    yield formulary
    _formulary.set_default_formulary(previous)


@pytest.fixture
def default_receipts(receipts):
    previous = _receipt._default_store
    _receipt.set_default_store(receipts)
    yield receipts
    _receipt.set_default_store(previous)
