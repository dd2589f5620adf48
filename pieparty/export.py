from __future__ import annotations

from io import StringIO
from typing import Dict, Iterable, List

import pandas as pd

from pieparty.models import CATEGORIES, COMPOSITE_KEYS, CompositeKey, Pie, PieType, ScoredEntry

PIE_COLUMNS = ["id", "name", "baker", "type", "description", "photo_url", "photo_path"]
VOTE_COLUMNS = ["voter_id", "category", "type", "pie_id"]
RSVP_COLUMNS = ["name", "email", "guests", "pie_type", "notes", "created_at"]
LEADERBOARD_COLUMNS = ["Rank", "Type", "PieId", "Name", "Baker", "TotalVotes"] + [c.value for c in CATEGORIES]


def to_csv(df: pd.DataFrame) -> str:
    buf = StringIO()
    df.to_csv(buf, index=False)
    return buf.getvalue()


def pies_frame(pies: Iterable[Pie]) -> pd.DataFrame:
    rows = []
    for p in pies:
        rows.append({
            "id": p.id,
            "name": p.name,
            "baker": p.baker,
            "type": p.type.value if p.type else "unspecified",
            "description": p.description,
            "photo_url": p.photo_url or "",
            "photo_path": p.photo_path or "",
        })
    return pd.DataFrame(rows, columns=PIE_COLUMNS)


def votes_frame(records: Dict[str, Dict[CompositeKey, str]]) -> pd.DataFrame:
    """One row per voter per vote slot; unset slots have a blank pie id."""
    rows = [
        {
            "voter_id": voter_id,
            "category": key.category.value,
            "type": key.pie_type.value,
            "pie_id": record.get(key, ""),
        }
        for voter_id, record in records.items()
        for key in COMPOSITE_KEYS
    ]
    return pd.DataFrame(rows, columns=VOTE_COLUMNS)


def rsvps_frame(rsvps: Iterable[dict]) -> pd.DataFrame:
    df = pd.DataFrame(list(rsvps), columns=RSVP_COLUMNS)
    return df.fillna("")


def leaderboard_frame(board: Dict[PieType, List[ScoredEntry]]) -> pd.DataFrame:
    rows = []
    for pie_type, ranked in board.items():
        for rank, scored in enumerate(ranked, start=1):
            row = {
                "Rank": rank,
                "Type": pie_type.value,
                "PieId": scored.entry.id,
                "Name": scored.entry.name,
                "Baker": scored.entry.baker,
                "TotalVotes": scored.total_votes,
            }
            for category in CATEGORIES:
                row[category.value] = scored.breakdown.get(category, 0)
            rows.append(row)
    return pd.DataFrame(rows, columns=LEADERBOARD_COLUMNS)
