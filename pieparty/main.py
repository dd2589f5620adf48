from __future__ import annotations

import hashlib
import secrets
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Form, HTTPException, Query
from fastapi.responses import Response

from pieparty import catalog, config, db, export, scoring, testdata
from pieparty.logger import get_logger
from pieparty.models import Category, CompositeKey, EventSettings, PieType

log = get_logger("app")

app = FastAPI(title="Pie Party")


@app.on_event("startup")
def _startup():
    db.init_db()


# -----------------------
# Helpers
# -----------------------
def sha256(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8")).hexdigest()


def require_admin(admin_password: str) -> None:
    if not config.ADMIN_PASSPHRASE:
        raise HTTPException(503, "Admin passphrase is not configured.")
    if not secrets.compare_digest(sha256(admin_password), sha256(config.ADMIN_PASSPHRASE)):
        log.warning("Rejected admin request with a bad password")
        raise HTTPException(403, "Invalid admin password.")


def require_pie(pie_id: str):
    pie = db.get_pie(pie_id)
    if pie is None:
        raise HTTPException(404, "Pie not found.")
    return pie


def require_open(settings: EventSettings, what: str) -> None:
    is_open = settings.voting_open if what == "voting" else settings.submissions_open
    if not is_open:
        raise HTTPException(403, f"{what.capitalize()} is currently closed.")


def csv_response(content: str, name: str) -> Response:
    stamp = datetime.utcnow().strftime("%Y%m%d-%H%M%S")
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{name}-{stamp}.csv"'},
    )


def load_results():
    """Fresh snapshot of pies and votes, run through the scoring engine."""
    pies = db.list_pies()
    votes = list(db.get_all_votes().values())
    winners = scoring.compute_overall_winners(pies, votes)
    board = scoring.compute_leaderboard(pies, votes)
    return winners, board


# -----------------------
# Routes: Home
# -----------------------
@app.get("/")
def home():
    settings = db.get_settings()
    return {
        "event": config.EVENT_NAME,
        "settings": settings.to_dict(),
        "categories": [c.value for c in Category],
        "types": [t.value for t in PieType],
    }


@app.get("/settings")
def read_settings():
    return db.get_settings().to_dict()


# -----------------------
# Routes: Pies
# -----------------------
@app.get("/pies")
def pies_list(pie_type: str = Query("all", alias="type"), q: str = "", sort: str = "newest"):
    if pie_type != "all" and pie_type not in {t.value for t in PieType}:
        raise HTTPException(400, f"Unknown pie type filter: {pie_type}")
    try:
        pies = catalog.sort_pies(catalog.filter_pies(db.list_pies(), pie_type, q), sort)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return [p.to_dict() for p in pies]


@app.post("/pies", status_code=201)
def pies_submit(
    name: str = Form(...),
    baker: str = Form(...),
    pie_type: str = Form(...),
    description: str = Form(""),
    photo_url: Optional[str] = Form(None),
    photo_path: Optional[str] = Form(None),
):
    require_open(db.get_settings(), "submissions")
    try:
        pie = db.submit_pie(name, baker, pie_type, description, photo_url, photo_path)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return pie.to_dict()


# -----------------------
# Routes: Voting
# -----------------------
@app.post("/vote")
def vote_cast(
    voter_id: str = Form(...),
    pie_id: str = Form(...),
    category: str = Form(...),
    pie_type: str = Form(...),
):
    require_open(db.get_settings(), "voting")
    try:
        key = CompositeKey(Category(category), PieType(pie_type))
    except ValueError:
        raise HTTPException(400, f"Unknown vote slot: {category}-{pie_type}")
    pie = require_pie(pie_id)
    if pie.type is not key.pie_type:
        raise HTTPException(400, f"{pie.name} is not a {key.pie_type.value} pie.")
    try:
        db.save_vote(voter_id, pie_id, key)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return {k.label: v for k, v in db.get_votes(voter_id.strip()).items()}


@app.get("/votes/{voter_id}")
def votes_mine(voter_id: str):
    return {k.label: v for k, v in db.get_votes(voter_id).items()}


@app.get("/results/tallies")
def results_tallies():
    votes = db.get_all_votes().values()
    return scoring.tallies_by_label(scoring.compute_tallies(votes))


# -----------------------
# Routes: RSVP / feedback / gallery
# -----------------------
@app.post("/rsvp", status_code=201)
def rsvp_create(
    name: str = Form(...),
    email: Optional[str] = Form(None),
    guests: int = Form(1),
    pie_type: Optional[str] = Form(None),
    notes: Optional[str] = Form(None),
):
    try:
        rsvp_id = db.create_rsvp(name, pie_type, email, guests, notes)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return {"id": rsvp_id}


@app.get("/rsvp/counts")
def rsvp_counts():
    counts = db.get_pie_type_counts()
    return {
        t: {"count": counts[t], "cap": cap, "remaining": max(cap - counts[t], 0)}
        for t, cap in config.PIE_TYPE_CAPS.items()
    }


@app.post("/feedback", status_code=201)
def feedback_create(
    name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    scoring_feedback: Optional[str] = Form(None),
    flow_feedback: Optional[str] = Form(None),
    general_feedback: Optional[str] = Form(None),
):
    try:
        feedback_id = db.create_feedback(name, email, scoring_feedback, flow_feedback, general_feedback)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return {"id": feedback_id}


@app.get("/winners")
def winners_gallery():
    return db.list_winners()


# -----------------------
# Routes: Admin
# -----------------------
@app.post("/admin/toggle_voting")
def admin_toggle_voting(admin_password: str = Form(...)):
    require_admin(admin_password)
    return db.set_settings(voting_open=not db.get_settings().voting_open).to_dict()


@app.post("/admin/toggle_submissions")
def admin_toggle_submissions(admin_password: str = Form(...)):
    require_admin(admin_password)
    return db.set_settings(submissions_open=not db.get_settings().submissions_open).to_dict()


@app.post("/admin/pies/{pie_id}/delete")
def admin_delete_pie(pie_id: str, admin_password: str = Form(...)):
    require_admin(admin_password)
    if not db.delete_pie(pie_id):
        raise HTTPException(404, "Pie not found.")
    return {"deleted": pie_id}


@app.post("/admin/compute")
def admin_compute(admin_password: str = Form(...)):
    require_admin(admin_password)
    winners, board = load_results()
    return {
        "winners": {t.value: (w.to_dict() if w else None) for t, w in winners.items()},
        "leaderboard": {t.value: [s.to_dict() for s in ranked] for t, ranked in board.items()},
    }


@app.post("/admin/winners", status_code=201)
def admin_mark_winner(admin_password: str = Form(...), year: str = Form(...), pie_id: str = Form(...)):
    require_admin(admin_password)
    pie = require_pie(pie_id)
    try:
        winner_id = db.mark_winner(year, pie)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return {"id": winner_id}


@app.get("/admin/rsvps")
def admin_rsvps(admin_password: str):
    require_admin(admin_password)
    rsvps = db.list_rsvps()
    return {
        "rsvps": rsvps,
        "total_guests": sum(r["guests"] for r in rsvps),
        "pie_types": db.get_pie_type_counts(),
    }


@app.post("/admin/rsvps/{rsvp_id}/delete")
def admin_delete_rsvp(rsvp_id: int, admin_password: str = Form(...)):
    require_admin(admin_password)
    if not db.delete_rsvp(rsvp_id):
        raise HTTPException(404, "RSVP not found.")
    return {"deleted": rsvp_id}


@app.get("/admin/feedback")
def admin_feedback(admin_password: str):
    require_admin(admin_password)
    return db.list_feedback()


@app.post("/admin/votes/clear")
def admin_clear_votes(admin_password: str = Form(...)):
    require_admin(admin_password)
    return {"voters_cleared": db.clear_votes()}


@app.post("/admin/testdata/seed")
def admin_seed(admin_password: str = Form(...)):
    require_admin(admin_password)
    return {"pie_ids": testdata.seed()}


@app.post("/admin/testdata/clear")
def admin_clear_testdata(admin_password: str = Form(...)):
    require_admin(admin_password)
    return testdata.clear_all()


# -----------------------
# Routes: Admin downloads
# -----------------------
@app.get("/admin/download/pies")
def download_pies(admin_password: str):
    require_admin(admin_password)
    return csv_response(export.to_csv(export.pies_frame(db.list_pies())), "pies")


@app.get("/admin/download/votes")
def download_votes(admin_password: str):
    require_admin(admin_password)
    return csv_response(export.to_csv(export.votes_frame(db.get_all_votes())), "votes")


@app.get("/admin/download/rsvps")
def download_rsvps(admin_password: str):
    require_admin(admin_password)
    return csv_response(export.to_csv(export.rsvps_frame(db.list_rsvps())), "rsvps")


@app.get("/admin/download/leaderboard")
def download_leaderboard(admin_password: str):
    require_admin(admin_password)
    _winners, board = load_results()
    return csv_response(export.to_csv(export.leaderboard_frame(board)), "leaderboard")
