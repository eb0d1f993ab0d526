"""Canonical category taxonomy loaded from JSON.

The taxonomy is static configuration: a list of canonical category names and
a synonym table mapping lower-cased free-text names onto them. It is loaded
once into an immutable :class:`CategoryTaxonomy` and handed explicitly to
:class:`~financial_disclosure.mapper.CategoryMapper`; nothing reads it from
module-level state.

The packaged default lives at ``financial_disclosure/data/categories.json``.
Every canonical name is also a synonym of itself, so mapping an already
canonical value is a fixed point.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from importlib import resources
from os import PathLike
from pathlib import Path
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .models import UNCATEGORIZED


class TaxonomyFile(BaseModel):
    """On-disk schema of ``categories.json``."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, populate_by_name=True)

    version: int = 1
    default_categories: list[str] = Field(alias="defaultCategories", min_length=1)
    synonyms: dict[str, str] = Field(default_factory=dict)

    @field_validator("default_categories")
    @classmethod
    def _non_empty_unique(cls, v: list[str]) -> list[str]:
        seen: set[str] = set()
        out: list[str] = []
        for name in v:
            if not name:
                raise ValueError("category names must be non-empty")
            key = name.lower()
            if key in seen:
                continue
            seen.add(key)
            out.append(name)
        return out

    @field_validator("synonyms")
    @classmethod
    def _lower_keys(cls, v: dict[str, str]) -> dict[str, str]:
        return {k.strip().lower(): val.strip() for k, val in v.items() if k.strip() and val.strip()}


@dataclass(frozen=True, slots=True)
class CategoryTaxonomy:
    """Immutable canonical category list plus synonym table."""

    categories: tuple[str, ...]
    synonyms: Mapping[str, str]

    @classmethod
    def from_file_model(cls, data: TaxonomyFile) -> CategoryTaxonomy:
        cats = list(data.default_categories)
        if UNCATEGORIZED.lower() not in {c.lower() for c in cats}:
            cats.append(UNCATEGORIZED)
        syn = dict(data.synonyms)
        for c in cats:
            syn.setdefault(c.lower(), c)
        return cls(categories=tuple(cats), synonyms=MappingProxyType(syn))

    def is_canonical(self, name: str) -> bool:
        return name.strip().lower() in {c.lower() for c in self.categories}


def _parse(text: str, source: str) -> CategoryTaxonomy:
    try:
        data = TaxonomyFile.model_validate(json.loads(text))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ValueError(f"Invalid taxonomy file {source}: {exc}") from exc
    return CategoryTaxonomy.from_file_model(data)


def load_taxonomy(path: str | PathLike[str] | None = None) -> CategoryTaxonomy:
    """Load a taxonomy from ``path`` or the packaged default."""

    if path is not None:
        p = Path(path)
        return _parse(p.read_text(encoding="utf-8"), str(p))
    res = resources.files("financial_disclosure").joinpath("data/categories.json")
    return _parse(res.read_text(encoding="utf-8"), "<packaged categories.json>")


__all__ = ["CategoryTaxonomy", "TaxonomyFile", "load_taxonomy"]
