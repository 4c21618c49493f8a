from bson import ObjectId

from database import get_db


def _create_child(client, **overrides) -> str:
    body = {"parent_id": "parent-1", "name": "Aru", "age": 6}
    body.update(overrides)
    response = client.post("/children", json=body)
    assert response.status_code == 201
    return response.json()["id"]


def _game(child_id: str, **overrides) -> dict:
    body = {
        "child_id": child_id,
        "game_key": "memory-match",
        "score": 10,
        "max_score": 10,
        "difficulty": "easy",
        "duration": 42,
        "correct_answers": 10,
        "total_questions": 10,
    }
    body.update(overrides)
    return body


def test_root(client) -> None:
    assert client.get("/").json()["message"].endswith("Running")


def test_child_crud(client) -> None:
    child_id = _create_child(client, language="kz")

    fetched = client.get(f"/children/{child_id}").json()
    assert fetched["name"] == "Aru"
    assert fetched["total_points"] == 0
    assert fetched["level"] == 1

    updated = client.patch(f"/children/{child_id}", json={"name": "Aruzhan", "total_points": 9999}).json()
    assert updated["name"] == "Aruzhan"
    assert updated["total_points"] == 0

    listed = client.get("/children", params={"parent_id": "parent-1"}).json()
    assert [c["id"] for c in listed] == [child_id]

    deleted = client.delete(f"/children/{child_id}")
    assert deleted.status_code == 200
    assert deleted.json()["id"] == child_id
    assert client.get(f"/children/{child_id}").status_code == 404
    assert client.delete(f"/children/{child_id}").status_code == 404
    assert client.delete("/children/garbage").status_code == 404


def test_database_report_checks_award_index(client) -> None:
    report = client.get("/test").json()
    assert report["connection_status"] == "Connected"
    assert report["unique_award_index"] is True
    assert isinstance(report["collections"], list)


def test_child_validation(client) -> None:
    response = client.post("/children", json={"parent_id": "p", "name": "Aru", "age": 12})
    assert response.status_code == 422


def test_missing_child_is_404(client) -> None:
    assert client.get(f"/children/{ObjectId()}").status_code == 404
    assert client.get("/children/garbage").status_code == 404


def test_record_first_perfect_game(client) -> None:
    child_id = _create_child(client)

    response = client.post("/games/sessions", json=_game(child_id))

    assert response.status_code == 201
    body = response.json()
    assert body["points_earned"] == 10
    assert body["new_total_points"] == 10
    assert body["new_level"] == 1
    assert body["leveled_up"] is False
    assert body["new_achievements"] == ["perfect-score", "first-game"]
    assert body["total_points"] == 60
    assert client.get(f"/children/{child_id}").json()["total_points"] == 60

    achievements = client.get(f"/games/achievements/{child_id}").json()["achievements"]
    assert sorted(a["key"] for a in achievements) == ["first-game", "perfect-score"]

    sessions = client.get(f"/games/sessions/{child_id}").json()
    assert sessions["total"] == 1
    assert sessions["sessions"][0]["id"] == body["session_id"]


def test_record_game_for_unknown_child(client) -> None:
    response = client.post("/games/sessions", json=_game(str(ObjectId())))
    assert response.status_code == 404
    assert response.json() == {"detail": "Child not found"}


def test_record_game_rejects_bad_payload(client) -> None:
    child_id = _create_child(client)
    assert client.post("/games/sessions", json=_game(child_id, score=-3)).status_code == 422
    assert client.post("/games/sessions", json=_game(child_id, game_key="chess")).status_code == 422
    assert client.post("/games/sessions", json=_game(child_id, difficulty="insane")).status_code == 422
    assert client.get(f"/games/sessions/{child_id}").json()["total"] == 0


def test_game_sessions_filter(client) -> None:
    child_id = _create_child(client)
    client.post("/games/sessions", json=_game(child_id, score=3))
    client.post("/games/sessions", json=_game(child_id, game_key="math-adventure", score=4))

    filtered = client.get(f"/games/sessions/{child_id}", params={"game_key": "math-adventure"}).json()
    assert filtered["total"] == 1
    assert filtered["sessions"][0]["score"] == 4


def test_achievement_catalog(client) -> None:
    catalog = client.get("/achievements").json()
    assert len(catalog) == 9
    assert {"key": "perfect-score", "name": "Perfectionist", "description": "Got 100% in a game!",
            "icon": "💯", "points_awarded": 40} in catalog


def test_emotions_and_summary(client) -> None:
    child_id = _create_child(client)
    for emotion, intensity in [("happy", 80), ("happy", 60), ("sad", 30)]:
        response = client.post("/emotions", json={"child_id": child_id, "emotion": emotion, "intensity": intensity})
        assert response.status_code == 201

    listed = client.get(f"/emotions/{child_id}").json()
    assert listed["total"] == 3

    summary = client.get(f"/emotions/{child_id}/summary").json()
    assert summary["dominant_emotion"] == "happy"
    assert summary["emotion_breakdown"][0] == {"emotion": "happy", "count": 2, "average_intensity": 70}


def test_emotion_for_unknown_child(client) -> None:
    response = client.post("/emotions", json={"child_id": str(ObjectId()), "emotion": "happy", "intensity": 10})
    assert response.status_code == 404


def test_analytics_endpoints(client) -> None:
    child_id = _create_child(client)
    client.post("/games/sessions", json=_game(child_id, score=7))

    summary = client.get(f"/analytics/summary/{child_id}").json()
    assert summary["overview"]["total_games_played"] == 1
    assert summary["child"]["id"] == child_id

    recs = client.get(f"/analytics/recommendations/{child_id}").json()
    assert recs["child_id"] == child_id
    assert [r["code"] for r in recs["recommendations"]] == ["try-new-games"]


def test_database_not_configured(client) -> None:
    from main import app

    app.dependency_overrides[get_db] = lambda: None
    response = client.get("/children")
    assert response.status_code == 500
    assert response.json()["detail"] == "Database not configured"
    assert client.get("/test").json()["connection_status"] == "Not Connected"
