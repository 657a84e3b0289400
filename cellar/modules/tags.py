# cellar/modules/tags.py
"""
Dependency tag semantics.

Tags are plain strings declared on a dependency. A few are reserved markers:

 - "optional" / "recommended": necessity (neither means required)
 - "build": needed at build time only (absent means also needed at runtime)
 - "test": needed to run the formula's tests

Anything else is an option tag (e.g. "with-ssl") and is kept as declared.
"""

from typing import Iterable, List

OPTIONAL = "optional"
RECOMMENDED = "recommended"
BUILD = "build"
TEST = "test"

NECESSITY_TAGS = (OPTIONAL, RECOMMENDED)
TEMPORALITY_TAGS = (BUILD,)
RESERVED_TAGS = NECESSITY_TAGS + TEMPORALITY_TAGS + (TEST,)


def is_optional(dep) -> bool:
    return OPTIONAL in dep.tags


def is_recommended(dep) -> bool:
    return RECOMMENDED in dep.tags


def is_required(dep) -> bool:
    return not is_optional(dep) and not is_recommended(dep)


def is_build(dep) -> bool:
    return BUILD in dep.tags


def is_test(dep) -> bool:
    return TEST in dep.tags


def option_tags(dep) -> List[str]:
    """Tags that are not reserved markers, in declared order."""
    return [t for t in dep.tags if t not in RESERVED_TAGS]


def merge_necessity(deps: Iterable) -> List[str]:
    deps = list(deps)
    if not deps:
        raise ValueError("merge_necessity needs at least one dependency")
    if any(is_required(d) for d in deps):
        return []
    if any(is_recommended(d) for d in deps):
        return [RECOMMENDED]
    return [OPTIONAL]


def merge_temporality(deps: Iterable) -> List[str]:
    # a single runtime occurrence makes the merged dependency a runtime one
    deps = list(deps)
    if deps and all(is_build(d) for d in deps):
        return [BUILD]
    return []


def merge_other_tags(deps: Iterable) -> List[str]:
    deps = list(deps)
    merged: List[str] = []
    for d in deps:
        for tag in option_tags(d):
            if tag not in merged:
                merged.append(tag)
    if any(is_test(d) for d in deps):
        merged.append(TEST)
    return merged


def merge_tags(deps: Iterable) -> List[str]:
    """Canonical merged tags: necessity, then temporality, then the rest."""
    deps = list(deps)
    return merge_necessity(deps) + merge_temporality(deps) + merge_other_tags(deps)
