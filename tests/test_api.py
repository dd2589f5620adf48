"""Route tests through FastAPI's TestClient."""
import pytest

from pieparty import config


def submit(client, name="Apple", baker="Ann", pie_type="sweet", **extra):
    resp = client.post("/pies", data={"name": name, "baker": baker, "pie_type": pie_type, **extra})
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


def vote(client, voter, pie_id, category, pie_type):
    return client.post("/vote", data={"voter_id": voter, "pie_id": pie_id, "category": category, "pie_type": pie_type})


class TestHome:
    def test_home(self, client):
        body = client.get("/").json()
        assert body["event"] == config.EVENT_NAME
        assert body["settings"] == {"voting_open": True, "submissions_open": False}
        assert body["categories"] == ["PieZaz", "Taste", "Presentation"]
        assert body["types"] == ["sweet", "savory"]


class TestPies:
    def test_submissions_closed_by_default(self, client):
        resp = client.post("/pies", data={"name": "Apple", "baker": "Ann", "pie_type": "sweet"})
        assert resp.status_code == 403

    def test_submit_and_browse(self, client, open_submissions):
        submit(client, "Apple", "Ann", "sweet")
        submit(client, "Pork", "Bert", "savory", photo_url="http://img/pork.jpg")

        assert [p["name"] for p in client.get("/pies").json()] == ["Pork", "Apple"]
        assert [p["name"] for p in client.get("/pies", params={"type": "sweet"}).json()] == ["Apple"]
        assert [p["name"] for p in client.get("/pies", params={"q": "bert"}).json()] == ["Pork"]
        assert [p["name"] for p in client.get("/pies", params={"sort": "az"}).json()] == ["Apple", "Pork"]

    def test_bad_listing_params(self, client):
        assert client.get("/pies", params={"type": "spicy"}).status_code == 400
        assert client.get("/pies", params={"sort": "tastiest"}).status_code == 400

    def test_invalid_submission(self, client, open_submissions):
        resp = client.post("/pies", data={"name": "  ", "baker": "Ann", "pie_type": "sweet"})
        assert resp.status_code == 400
        assert "required" in resp.json()["detail"]


class TestVoting:
    def test_cast_and_change_vote(self, client, open_submissions):
        a = submit(client, "Apple")
        b = submit(client, "Banoffee")
        assert vote(client, "v1", a, "Taste", "sweet").json() == {"Taste-sweet": a}
        assert vote(client, "v1", b, "Taste", "sweet").json() == {"Taste-sweet": b}
        assert client.get("/votes/v1").json() == {"Taste-sweet": b}
        assert client.get("/results/tallies").json()["Taste-sweet"] == {b: 1}

    def test_unknown_slot(self, client, open_submissions):
        a = submit(client)
        assert vote(client, "v1", a, "Crust", "sweet").status_code == 400

    def test_unknown_pie(self, client):
        assert vote(client, "v1", "nope", "Taste", "sweet").status_code == 404

    def test_pie_must_match_slot_type(self, client, admin, open_submissions):
        apple = submit(client, "Apple", pie_type="sweet")
        pork = submit(client, "Pork", "Bert", pie_type="savory")
        vote(client, "v1", apple, "Taste", "sweet")

        resp = vote(client, "v2", pork, "Taste", "sweet")
        assert resp.status_code == 400
        assert "not a sweet pie" in resp.json()["detail"]
        assert client.get("/votes/v2").json() == {}
        assert client.get("/results/tallies").json()["Taste-sweet"] == {apple: 1}
        assert client.post("/admin/compute", data=admin).json()["winners"]["sweet"]["pie"]["id"] == apple

    def test_voting_closed(self, client, admin, open_submissions):
        a = submit(client)
        client.post("/admin/toggle_voting", data=admin)
        resp = vote(client, "v1", a, "Taste", "sweet")
        assert resp.status_code == 403
        assert "closed" in resp.json()["detail"]

    def test_tallies_have_all_slots(self, client):
        tallies = client.get("/results/tallies").json()
        assert len(tallies) == 6
        assert all(v == {} for v in tallies.values())


class TestAdminAuth:
    def test_wrong_password(self, client):
        resp = client.post("/admin/toggle_voting", data={"admin_password": "guess"})
        assert resp.status_code == 403

    def test_unconfigured(self, client, monkeypatch):
        monkeypatch.setattr(config, "ADMIN_PASSPHRASE", "")
        resp = client.post("/admin/toggle_voting", data={"admin_password": "anything"})
        assert resp.status_code == 503

    def test_toggles(self, client, admin):
        assert client.post("/admin/toggle_submissions", data=admin).json()["submissions_open"] is True
        assert client.post("/admin/toggle_voting", data=admin).json()["voting_open"] is False
        assert client.get("/settings").json() == {"voting_open": False, "submissions_open": True}


class TestResults:
    def test_compute_worked_example(self, client, admin, open_submissions):
        a = submit(client, "A", pie_type="sweet")
        b = submit(client, "B", pie_type="sweet")
        c = submit(client, "C", pie_type="savory")
        vote(client, "v1", a, "PieZaz", "sweet")
        vote(client, "v1", a, "Taste", "sweet")
        vote(client, "v2", b, "PieZaz", "sweet")
        vote(client, "v2", a, "Taste", "sweet")
        vote(client, "v3", c, "Presentation", "savory")

        body = client.post("/admin/compute", data=admin).json()
        sweet = body["winners"]["sweet"]
        assert sweet["pie"]["id"] == a
        assert sweet["total_votes"] == 3
        assert sweet["breakdown"] == {"PieZaz": 1, "Taste": 2}
        assert body["winners"]["savory"]["pie"]["id"] == c
        assert [row["pie"]["id"] for row in body["leaderboard"]["sweet"]] == [a, b]

    def test_compute_without_votes(self, client, admin):
        body = client.post("/admin/compute", data=admin).json()
        assert body == {"winners": {"sweet": None, "savory": None}, "leaderboard": {"sweet": [], "savory": []}}

    def test_deleting_pie_removes_its_votes(self, client, admin, open_submissions):
        a = submit(client, "A")
        vote(client, "v1", a, "Taste", "sweet")
        assert client.post(f"/admin/pies/{a}/delete", data=admin).status_code == 200
        assert client.get("/votes/v1").json() == {}
        assert client.post("/admin/compute", data=admin).json()["winners"]["sweet"] is None
        assert client.post(f"/admin/pies/{a}/delete", data=admin).status_code == 404

    def test_seeded_results(self, client, admin):
        pie_ids = client.post("/admin/testdata/seed", data=admin).json()["pie_ids"]
        body = client.post("/admin/compute", data=admin).json()
        # Classic Apple Pie: PieZaz 3, Taste 2, Presentation 2
        assert body["winners"]["sweet"]["pie"]["id"] == pie_ids[0]
        assert body["winners"]["sweet"]["total_votes"] == 7
        assert client.post("/admin/testdata/clear", data=admin).json() == {"pies": 6, "votes": 30, "winners": 0}

    def test_clear_votes(self, client, admin):
        client.post("/admin/testdata/seed", data=admin)
        assert client.post("/admin/votes/clear", data=admin).json() == {"voters_cleared": 5}
        assert client.post("/admin/compute", data=admin).json()["winners"]["sweet"] is None


class TestGallery:
    def test_mark_winner(self, client, admin, open_submissions):
        a = submit(client, "Apple", "Ann")
        resp = client.post("/admin/winners", data={**admin, "year": "2024", "pie_id": a})
        assert resp.status_code == 201
        [winner] = client.get("/winners").json()
        assert (winner["year"], winner["title"], winner["baker"]) == ("2024", "Apple", "Ann")

    def test_mark_unknown_pie(self, client, admin):
        resp = client.post("/admin/winners", data={**admin, "year": "2024", "pie_id": "nope"})
        assert resp.status_code == 404


class TestRSVPAndFeedback:
    def test_rsvp_flow(self, client, admin, monkeypatch):
        monkeypatch.setitem(config.PIE_TYPE_CAPS, "sweet", 1)
        assert client.post("/rsvp", data={"name": "Ann", "guests": 3, "pie_type": "sweet"}).status_code == 201
        resp = client.post("/rsvp", data={"name": "Bert", "pie_type": "sweet"})
        assert resp.status_code == 400

        counts = client.get("/rsvp/counts").json()
        assert counts["sweet"] == {"count": 1, "cap": 1, "remaining": 0}

        listing = client.get("/admin/rsvps", params=admin).json()
        assert listing["total_guests"] == 3
        rsvp_id = listing["rsvps"][0]["id"]
        assert client.post(f"/admin/rsvps/{rsvp_id}/delete", data=admin).status_code == 200
        assert client.post(f"/admin/rsvps/{rsvp_id}/delete", data=admin).status_code == 404

    def test_feedback(self, client, admin):
        assert client.post("/feedback", data={"name": "Ann"}).status_code == 400
        assert client.post("/feedback", data={"flow_feedback": "Smooth"}).status_code == 201
        [fb] = client.get("/admin/feedback", params=admin).json()
        assert fb["name"] == "Anonymous"


class TestDownloads:
    @pytest.mark.parametrize("what,header", [
        ("pies", "id,name,baker,type,description,photo_url,photo_path"),
        ("votes", "voter_id,category,type,pie_id"),
        ("rsvps", "name,email,guests,pie_type,notes,created_at"),
        ("leaderboard", "Rank,Type,PieId,Name,Baker,TotalVotes,PieZaz,Taste,Presentation"),
    ])
    def test_csv(self, client, admin, what, header):
        resp = client.get(f"/admin/download/{what}", params=admin)
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        assert f'filename="{what}-' in resp.headers["content-disposition"]
        assert resp.text.splitlines()[0] == header

    def test_requires_admin(self, client):
        assert client.get("/admin/download/votes", params={"admin_password": "x"}).status_code == 403

    def test_seeded_votes_csv(self, client, admin):
        client.post("/admin/testdata/seed", data=admin)
        resp = client.get("/admin/download/votes", params=admin)
        assert len(resp.text.strip().splitlines()) == 1 + 5 * 6
