"""
Vote tallies and winner determination.

Every function here is a pure function of the entries and vote records it is
given. Records are sparse mappings from vote slot to pie id; they may be keyed
by ``CompositeKey`` or by its string label (``"Taste-savory"``). Anything else
in a record is ignored.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pieparty.models import CATEGORIES, COMPOSITE_KEYS, PIE_TYPES, Category, CompositeKey, PieType, ScoredEntry

Tallies = Dict[CompositeKey, Dict[str, int]]


def _choice(record: Mapping, key: CompositeKey) -> Optional[str]:
    value = record.get(key)
    if value is None:
        value = record.get(key.label)
    if isinstance(value, str) and value:
        return value
    return None


def _entry_id(entry: Any) -> Optional[str]:
    if isinstance(entry, Mapping):
        return entry.get("id")
    return getattr(entry, "id", None)


def _rank_key(item: Tuple[str, int]) -> Tuple[int, str]:
    # highest total first; ties go to the smaller pie id
    pie_id, total = item
    return (-total, pie_id)


def compute_tallies(vote_records: Iterable[Any]) -> Tallies:
    """
    Count votes per pie for each of the six vote slots.

    Every slot is present in the result, possibly empty. Votes for pie ids
    that no longer exist are still counted.
    """
    tallies: Tallies = {key: {} for key in COMPOSITE_KEYS}

    for record in vote_records:
        if not isinstance(record, Mapping):
            continue
        for key in COMPOSITE_KEYS:
            pie_id = _choice(record, key)
            if pie_id is not None:
                tallies[key][pie_id] = tallies[key].get(pie_id, 0) + 1

    return tallies


def _combine(tallies: Tallies, pie_type: PieType) -> Dict[str, Tuple[int, Dict[Category, int]]]:
    """Sum one pie type's category tallies into (total, breakdown) per pie id."""
    combined: Dict[str, Tuple[int, Dict[Category, int]]] = {}
    for category in CATEGORIES:
        for pie_id, count in tallies[CompositeKey(category, pie_type)].items():
            total, breakdown = combined.get(pie_id, (0, {}))
            breakdown[category] = count
            combined[pie_id] = (total + count, breakdown)
    return combined


def _ranked(combined: Dict[str, Tuple[int, Dict[Category, int]]]) -> List[str]:
    totals = {pie_id: total for pie_id, (total, _) in combined.items()}
    return [pie_id for pie_id, _ in sorted(totals.items(), key=_rank_key)]


def compute_overall_winners(entries: Iterable[Any], vote_records: Iterable[Any]) -> Dict[PieType, Optional[ScoredEntry]]:
    """
    Winner per pie type by total votes across all three categories.

    A type has no winner (None) when it has no votes, or when its leading pie
    id does not resolve to an entry. The runner-up is never promoted.
    """
    index = {_entry_id(e): e for e in entries}
    tallies = compute_tallies(vote_records)

    winners: Dict[PieType, Optional[ScoredEntry]] = {}
    for pie_type in PIE_TYPES:
        combined = _combine(tallies, pie_type)
        ranked = _ranked(combined)
        winners[pie_type] = None
        if ranked and ranked[0] in index:
            total, breakdown = combined[ranked[0]]
            winners[pie_type] = ScoredEntry(index[ranked[0]], total, breakdown)

    return winners


def compute_leaderboard(entries: Iterable[Any], vote_records: Iterable[Any]) -> Dict[PieType, List[ScoredEntry]]:
    """All voted-for entries per pie type, ranked the same way winners are picked."""
    index = {_entry_id(e): e for e in entries}
    tallies = compute_tallies(vote_records)

    board: Dict[PieType, List[ScoredEntry]] = {}
    for pie_type in PIE_TYPES:
        combined = _combine(tallies, pie_type)
        board[pie_type] = [
            ScoredEntry(index[pie_id], *combined[pie_id])
            for pie_id in _ranked(combined)
            if pie_id in index
        ]

    return board


def tallies_by_label(tallies: Tallies) -> Dict[str, Dict[str, int]]:
    return {key.label: dict(counts) for key, counts in tallies.items()}
