from __future__ import annotations

import secrets
import sqlite3
from datetime import datetime
from typing import Dict, List, Optional

from pieparty import config
from pieparty.logger import get_logger
from pieparty.models import Category, CompositeKey, EventSettings, Pie, PieType

log = get_logger("db")

VoteRecord = Dict[CompositeKey, str]


# -----------------------
# Connection + schema
# -----------------------
def db() -> sqlite3.Connection:
    conn = sqlite3.connect(config.DB_PATH)
    conn.row_factory = sqlite3.Row
    return conn


def now() -> str:
    return datetime.utcnow().isoformat()


def init_db():
    with db() as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS pies (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                baker TEXT NOT NULL,
                description TEXT NOT NULL DEFAULT '',
                type TEXT,
                photo_url TEXT,
                photo_path TEXT,
                created_at TEXT NOT NULL
            );

            -- one row per voter per vote slot; re-voting overwrites the row
            CREATE TABLE IF NOT EXISTS votes (
                voter_id TEXT NOT NULL,
                category TEXT NOT NULL,
                pie_type TEXT NOT NULL,
                pie_id TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                PRIMARY KEY (voter_id, category, pie_type)
            );

            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS winners (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                year TEXT NOT NULL,
                pie_id TEXT NOT NULL,
                title TEXT NOT NULL,
                baker TEXT NOT NULL,
                photo_url TEXT,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS rsvps (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                email TEXT,
                guests INTEGER NOT NULL DEFAULT 1,
                pie_type TEXT,
                notes TEXT,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS feedback (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                email TEXT,
                scoring_feedback TEXT,
                flow_feedback TEXT,
                general_feedback TEXT,
                created_at TEXT NOT NULL
            );
            """
        )
    log.info("Database ready at %s", config.DB_PATH)


def _clean(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


def parse_pie_type(value: Optional[str]) -> PieType:
    try:
        return PieType((value or "").strip().lower())
    except ValueError:
        raise ValueError(f"Pie type must be one of: {', '.join(t.value for t in PieType)}.") from None


# -----------------------
# Pies
# -----------------------
def _row_to_pie(row: sqlite3.Row) -> Pie:
    try:
        pie_type = PieType(row["type"]) if row["type"] else None
    except ValueError:
        pie_type = None
    return Pie(
        id=row["id"],
        name=row["name"],
        baker=row["baker"],
        description=row["description"],
        type=pie_type,
        photo_url=row["photo_url"],
        photo_path=row["photo_path"],
        created_at=row["created_at"],
    )


def list_pies() -> List[Pie]:
    """All pies, newest first."""
    with db() as conn:
        rows = conn.execute("SELECT * FROM pies ORDER BY created_at DESC, rowid DESC").fetchall()
    return [_row_to_pie(r) for r in rows]


def get_pie(pie_id: str) -> Optional[Pie]:
    with db() as conn:
        row = conn.execute("SELECT * FROM pies WHERE id=?", (pie_id,)).fetchone()
    return _row_to_pie(row) if row else None


def submit_pie(
    name: str,
    baker: str,
    pie_type: str,
    description: str = "",
    photo_url: Optional[str] = None,
    photo_path: Optional[str] = None,
) -> Pie:
    name, baker = _clean(name), _clean(baker)
    if not name or not baker:
        raise ValueError("Name and Baker are required.")

    pie = Pie(
        id=secrets.token_hex(10),
        name=name,
        baker=baker,
        description=(description or "").strip(),
        type=parse_pie_type(pie_type),
        photo_url=_clean(photo_url),
        photo_path=_clean(photo_path),
        created_at=now(),
    )
    with db() as conn:
        conn.execute(
            "INSERT INTO pies(id, name, baker, description, type, photo_url, photo_path, created_at) "
            "VALUES(?,?,?,?,?,?,?,?)",
            (pie.id, pie.name, pie.baker, pie.description, pie.type.value, pie.photo_url, pie.photo_path, pie.created_at),
        )
    log.info("Pie %s submitted: %r by %r (%s)", pie.id, pie.name, pie.baker, pie.type.value)
    return pie


def delete_pie(pie_id: str) -> bool:
    """Delete a pie and every vote choice pointing at it. Returns False if it did not exist."""
    with db() as conn:
        deleted = conn.execute("DELETE FROM pies WHERE id=?", (pie_id,)).rowcount
        cleared = conn.execute("DELETE FROM votes WHERE pie_id=?", (pie_id,)).rowcount
    if deleted:
        log.info("Pie %s deleted, %d vote choice(s) cleared", pie_id, cleared)
    return bool(deleted)


# -----------------------
# Settings (voting / submissions open)
# -----------------------
def get_settings() -> EventSettings:
    with db() as conn:
        rows = conn.execute("SELECT key, value FROM settings").fetchall()
    stored = {r["key"]: bool(r["value"]) for r in rows}
    defaults = EventSettings()
    return EventSettings(
        voting_open=stored.get("voting_open", defaults.voting_open),
        submissions_open=stored.get("submissions_open", defaults.submissions_open),
    )


def set_settings(voting_open: Optional[bool] = None, submissions_open: Optional[bool] = None) -> EventSettings:
    """Merge the given flags into the stored settings."""
    updates = {"voting_open": voting_open, "submissions_open": submissions_open}
    with db() as conn:
        for key, value in updates.items():
            if value is None:
                continue
            conn.execute(
                "INSERT INTO settings(key, value) VALUES(?,?) ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                (key, int(value)),
            )
    settings = get_settings()
    log.info("Settings now: %s", settings.to_dict())
    return settings


# -----------------------
# Votes
# -----------------------
def save_vote(voter_id: str, pie_id: str, key: CompositeKey) -> None:
    voter_id = _clean(voter_id)
    if not voter_id:
        raise ValueError("A voter id is required.")
    with db() as conn:
        conn.execute(
            """
            INSERT INTO votes(voter_id, category, pie_type, pie_id, updated_at)
            VALUES(?,?,?,?,?)
            ON CONFLICT(voter_id, category, pie_type) DO UPDATE
                SET pie_id=excluded.pie_id, updated_at=excluded.updated_at
            """,
            (voter_id, key.category.value, key.pie_type.value, pie_id, now()),
        )
    log.debug("Voter %s chose %s for %s", voter_id, pie_id, key.label)


def _row_key(row: sqlite3.Row) -> Optional[CompositeKey]:
    try:
        return CompositeKey(Category(row["category"]), PieType(row["pie_type"]))
    except ValueError:
        return None


def get_all_votes() -> Dict[str, VoteRecord]:
    """Every voter's record, keyed by voter id."""
    with db() as conn:
        rows = conn.execute("SELECT voter_id, category, pie_type, pie_id FROM votes ORDER BY voter_id").fetchall()

    records: Dict[str, VoteRecord] = {}
    for r in rows:
        key = _row_key(r)
        if key is not None:
            records.setdefault(r["voter_id"], {})[key] = r["pie_id"]
    return records


def get_votes(voter_id: str) -> VoteRecord:
    with db() as conn:
        rows = conn.execute(
            "SELECT voter_id, category, pie_type, pie_id FROM votes WHERE voter_id=?", (voter_id,)
        ).fetchall()
    record: VoteRecord = {}
    for r in rows:
        key = _row_key(r)
        if key is not None:
            record[key] = r["pie_id"]
    return record


def clear_votes() -> int:
    """Remove every vote. Returns the number of voters cleared."""
    with db() as conn:
        voters = conn.execute("SELECT COUNT(DISTINCT voter_id) AS n FROM votes").fetchone()["n"]
        conn.execute("DELETE FROM votes")
    log.info("Cleared votes for %d voter(s)", voters)
    return voters


# -----------------------
# Winners gallery
# -----------------------
def mark_winner(year: str, pie: Pie) -> int:
    year = _clean(year)
    if not year:
        raise ValueError("Year is required.")
    with db() as conn:
        cur = conn.execute(
            "INSERT INTO winners(year, pie_id, title, baker, photo_url, created_at) VALUES(?,?,?,?,?,?)",
            (year, pie.id, pie.name, pie.baker, pie.photo_url, now()),
        )
        winner_id = cur.lastrowid
    log.info("Marked %r as the %s winner", pie.name, year)
    return winner_id


def list_winners() -> List[dict]:
    with db() as conn:
        rows = conn.execute("SELECT * FROM winners ORDER BY year DESC, id DESC").fetchall()
    return [dict(r) for r in rows]


# -----------------------
# RSVPs
# -----------------------
def _pie_type_counts(conn: sqlite3.Connection) -> Dict[str, int]:
    counts = {t.value: 0 for t in PieType}
    rows = conn.execute(
        "SELECT pie_type, COUNT(*) AS n FROM rsvps WHERE pie_type IS NOT NULL GROUP BY pie_type"
    ).fetchall()
    for r in rows:
        if r["pie_type"] in counts:
            counts[r["pie_type"]] = r["n"]
    return counts


def get_pie_type_counts() -> Dict[str, int]:
    with db() as conn:
        return _pie_type_counts(conn)


def create_rsvp(
    name: str,
    pie_type: Optional[str] = None,
    email: Optional[str] = None,
    guests: int = 1,
    notes: Optional[str] = None,
) -> int:
    name = _clean(name)
    if not name:
        raise ValueError("Please enter your name.")
    if guests < 1 or guests > config.MAX_GUESTS:
        raise ValueError(f"Guests must be between 1 and {config.MAX_GUESTS}.")

    type_value = parse_pie_type(pie_type).value if _clean(pie_type) else None

    with db() as conn:
        # cap check and insert share one write lock
        conn.execute("BEGIN IMMEDIATE")
        if type_value is not None:
            cap = config.PIE_TYPE_CAPS[type_value]
            if _pie_type_counts(conn)[type_value] >= cap:
                raise ValueError(f"All {cap} {type_value} pie spots are taken.")
        cur = conn.execute(
            "INSERT INTO rsvps(name, email, guests, pie_type, notes, created_at) VALUES(?,?,?,?,?,?)",
            (name, _clean(email), guests, type_value, _clean(notes), now()),
        )
        rsvp_id = cur.lastrowid
    log.info("RSVP %d saved for %r", rsvp_id, name)
    return rsvp_id


def list_rsvps() -> List[dict]:
    with db() as conn:
        rows = conn.execute("SELECT * FROM rsvps ORDER BY created_at DESC, id DESC").fetchall()
    return [dict(r) for r in rows]


def delete_rsvp(rsvp_id: int) -> bool:
    with db() as conn:
        deleted = conn.execute("DELETE FROM rsvps WHERE id=?", (rsvp_id,)).rowcount
    return bool(deleted)


# -----------------------
# Feedback
# -----------------------
def create_feedback(
    name: Optional[str] = None,
    email: Optional[str] = None,
    scoring_feedback: Optional[str] = None,
    flow_feedback: Optional[str] = None,
    general_feedback: Optional[str] = None,
) -> int:
    texts = [_clean(scoring_feedback), _clean(flow_feedback), _clean(general_feedback)]
    if not any(texts):
        raise ValueError("Please provide at least one type of feedback.")
    with db() as conn:
        cur = conn.execute(
            "INSERT INTO feedback(name, email, scoring_feedback, flow_feedback, general_feedback, created_at) "
            "VALUES(?,?,?,?,?,?)",
            (_clean(name) or "Anonymous", _clean(email), *texts, now()),
        )
        return cur.lastrowid


def list_feedback() -> List[dict]:
    with db() as conn:
        rows = conn.execute("SELECT * FROM feedback ORDER BY created_at DESC, id DESC").fetchall()
    return [dict(r) for r in rows]


# -----------------------
# Bulk clear
# -----------------------
def clear_table(table: str) -> int:
    if table not in ("pies", "votes", "winners"):
        raise ValueError(f"Refusing to clear table {table!r}.")
    with db() as conn:
        return conn.execute(f"DELETE FROM {table}").rowcount
