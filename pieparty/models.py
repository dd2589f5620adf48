from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional


class Category(str, Enum):
    PIEZAZ = "PieZaz"
    TASTE = "Taste"
    PRESENTATION = "Presentation"


class PieType(str, Enum):
    SWEET = "sweet"
    SAVORY = "savory"


class CompositeKey(NamedTuple):
    """One vote slot: a judging category scoped to a pie type."""

    category: Category
    pie_type: PieType

    @property
    def label(self) -> str:
        return f"{self.category.value}-{self.pie_type.value}"

    @classmethod
    def parse(cls, label: str) -> CompositeKey:
        """Parse ``'PieZaz-sweet'`` style labels. Raises ValueError on anything else."""
        category, sep, pie_type = label.partition("-")
        if not sep:
            raise ValueError(f"Invalid vote key: {label!r}")
        return cls(Category(category), PieType(pie_type))


CATEGORIES = tuple(Category)
PIE_TYPES = tuple(PieType)
COMPOSITE_KEYS = tuple(CompositeKey(c, t) for t in PIE_TYPES for c in CATEGORIES)


@dataclass
class Pie:
    id: str
    name: str
    baker: str
    description: str = ""
    type: Optional[PieType] = None  # older rows may not have a type
    photo_url: Optional[str] = None
    photo_path: Optional[str] = None
    created_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "baker": self.baker,
            "description": self.description,
            "type": self.type.value if self.type else None,
            "photo_url": self.photo_url,
            "photo_path": self.photo_path,
            "created_at": self.created_at,
        }


@dataclass
class ScoredEntry:
    """An entry with its combined vote total for one pie type."""

    entry: Any
    total_votes: int
    breakdown: Dict[Category, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        entry = self.entry.to_dict() if hasattr(self.entry, "to_dict") else dict(self.entry)
        return {
            "pie": entry,
            "total_votes": self.total_votes,
            "breakdown": {c.value: n for c, n in self.breakdown.items()},
        }


@dataclass
class EventSettings:
    voting_open: bool = True
    submissions_open: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return {"voting_open": self.voting_open, "submissions_open": self.submissions_open}
