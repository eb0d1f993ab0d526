"""Map free-text category names onto the canonical taxonomy.

Resolution order (first hit wins):

1. exact, case-insensitive lookup in the synonym table;
2. fuzzy match against synonym keys, in table order;
3. fuzzy match against the canonical category list, in list order;
4. fallback: the input title-cased word by word, as a new category name.

Empty input maps to ``"Uncategorized"``. The fuzzy rule accepts equal
strings, containment in either direction, or at least half of the
whitespace-split words in common.
"""

from __future__ import annotations

from functools import lru_cache

from .models import UNCATEGORIZED
from .taxonomy import CategoryTaxonomy, load_taxonomy


def normalize_name(name: str) -> str:
    """Trim and collapse internal whitespace; case is preserved."""

    return " ".join(name.strip().split())


def fuzzy_match(value: str, target: str) -> bool:
    a = value.strip().lower()
    b = target.strip().lower()
    if not a or not b:
        return False
    if a == b or a in b or b in a:
        return True
    a_words = a.split()
    b_words = b.split()
    common = [w for w in a_words if w in b_words]
    return len(common) / max(len(a_words), len(b_words)) >= 0.5


def title_case(name: str) -> str:
    return " ".join(w[:1].upper() + w[1:].lower() for w in name.split())


class CategoryMapper:
    """Resolve raw category strings against a :class:`CategoryTaxonomy`."""

    def __init__(self, taxonomy: CategoryTaxonomy) -> None:
        self.taxonomy = taxonomy

    def map(self, raw: str | None) -> str:
        if raw is None:
            return UNCATEGORIZED
        value = normalize_name(str(raw))
        if not value:
            return UNCATEGORIZED

        synonyms = self.taxonomy.synonyms
        direct = synonyms.get(value.lower())
        if direct:
            return direct

        for key, canonical in synonyms.items():
            if fuzzy_match(value, key):
                return canonical

        for canonical in self.taxonomy.categories:
            if fuzzy_match(value, canonical):
                return canonical

        return title_case(value)

    __call__ = map


@lru_cache(maxsize=1)
def default_mapper() -> CategoryMapper:
    """Mapper over the packaged taxonomy, built on first use."""

    return CategoryMapper(load_taxonomy())


def map_category(raw: str | None, mapper: CategoryMapper | None = None) -> str:
    return (mapper or default_mapper()).map(raw)


__all__ = [
    "CategoryMapper",
    "default_mapper",
    "map_category",
    "fuzzy_match",
    "normalize_name",
    "title_case",
]
