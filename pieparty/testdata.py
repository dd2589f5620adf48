"""Mock pies and voters for rehearsing the judging flow before the party."""
from __future__ import annotations

from typing import Dict, List

from pieparty import db
from pieparty.logger import get_logger
from pieparty.models import CompositeKey

log = get_logger("testdata")

MOCK_PIES = [
    {
        "name": "Classic Apple Pie",
        "baker": "Alice Anderson",
        "description": "Traditional apple pie with cinnamon and a flaky butter crust",
        "pie_type": "sweet",
    },
    {
        "name": "Chocolate Silk Delight",
        "baker": "Bob Baker",
        "description": "Rich chocolate filling with whipped cream topping",
        "pie_type": "sweet",
    },
    {
        "name": "Lemon Meringue Dream",
        "baker": "Carol Chen",
        "description": "Tangy lemon custard with fluffy meringue peaks",
        "pie_type": "sweet",
    },
    {
        "name": "Savory Chicken Pot Pie",
        "baker": "David Davis",
        "description": "Creamy chicken and vegetable filling in a golden crust",
        "pie_type": "savory",
    },
    {
        "name": "Spinach & Feta Greek Pie",
        "baker": "Elena Evans",
        "description": "Spanakopita-style with layers of phyllo dough",
        "pie_type": "savory",
    },
    {
        "name": "Beef & Mushroom Wellington",
        "baker": "Frank Foster",
        "description": "Tender beef with mushroom duxelles wrapped in puff pastry",
        "pie_type": "savory",
    },
]

# Index into the sweet / savory pies for each slot, per mock voter
MOCK_BALLOTS = {
    "test-voter-1": {"PieZaz-sweet": 0, "Taste-sweet": 0, "Presentation-sweet": 1,
                     "PieZaz-savory": 0, "Taste-savory": 1, "Presentation-savory": 0},
    "test-voter-2": {"PieZaz-sweet": 0, "Taste-sweet": 1, "Presentation-sweet": 0,
                     "PieZaz-savory": 1, "Taste-savory": 0, "Presentation-savory": 1},
    "test-voter-3": {"PieZaz-sweet": 2, "Taste-sweet": 0, "Presentation-sweet": 2,
                     "PieZaz-savory": 0, "Taste-savory": 2, "Presentation-savory": 2},
    "test-voter-4": {"PieZaz-sweet": 1, "Taste-sweet": 2, "Presentation-sweet": 1,
                     "PieZaz-savory": 2, "Taste-savory": 1, "Presentation-savory": 0},
    "test-voter-5": {"PieZaz-sweet": 0, "Taste-sweet": 1, "Presentation-sweet": 0,
                     "PieZaz-savory": 1, "Taste-savory": 0, "Presentation-savory": 1},
}


def add_mock_pies() -> List[str]:
    return [db.submit_pie(**pie).id for pie in MOCK_PIES]


def add_mock_votes(pie_ids: List[str]) -> None:
    """Cast the mock ballots; expects three sweet ids followed by three savory ids."""
    by_type = {"sweet": pie_ids[:3], "savory": pie_ids[3:6]}
    for voter_id, ballot in MOCK_BALLOTS.items():
        for label, idx in ballot.items():
            key = CompositeKey.parse(label)
            db.save_vote(voter_id, by_type[key.pie_type.value][idx], key)


def seed() -> List[str]:
    pie_ids = add_mock_pies()
    add_mock_votes(pie_ids)
    log.info("Seeded %d mock pies and %d mock voters", len(pie_ids), len(MOCK_BALLOTS))
    return pie_ids


def clear_all() -> Dict[str, int]:
    """Delete every pie, vote and gallery winner. Returns rows removed per table."""
    counts = {table: db.clear_table(table) for table in ("pies", "votes", "winners")}
    log.warning("Cleared all test data: %s", counts)
    return counts
