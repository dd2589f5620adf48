from __future__ import annotations

from typing import Iterable, List

from pieparty.models import Pie

SORT_KEYS = ("newest", "oldest", "az", "za", "sweetFirst", "savoryFirst")


def _norm(value) -> str:
    return "" if value is None else str(value).lower()


def _type_name(pie: Pie) -> str:
    return pie.type.value if pie.type else "unspecified"


def filter_pies(pies: Iterable[Pie], pie_type: str = "all", search: str = "") -> List[Pie]:
    """Keep pies of the given type whose text contains every search token."""
    tokens = _norm(search).split()
    out = []
    for pie in pies:
        if pie_type != "all" and _type_name(pie) != pie_type:
            continue
        hay = " ".join(_norm(v) for v in (pie.name, pie.baker, pie.description, pie.type and pie.type.value))
        if all(t in hay for t in tokens):
            out.append(pie)
    return out


def sort_pies(pies: Iterable[Pie], sort_key: str = "newest") -> List[Pie]:
    if sort_key not in SORT_KEYS:
        raise ValueError(f"Unknown sort key: {sort_key!r}")

    items = list(pies)
    if sort_key == "oldest":
        items.sort(key=lambda p: p.created_at or "")
    elif sort_key == "az":
        items.sort(key=lambda p: _norm(p.name))
    elif sort_key == "za":
        items.sort(key=lambda p: _norm(p.name), reverse=True)
    elif sort_key in ("sweetFirst", "savoryFirst"):
        first = "sweet" if sort_key == "sweetFirst" else "savory"
        items.sort(key=lambda p: (_type_name(p) != first, _norm(p.name)))
    else:
        items.sort(key=lambda p: p.created_at or "", reverse=True)
    return items
