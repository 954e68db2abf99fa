import inspect
from datetime import datetime, timedelta
from unittest.mock import patch

from leitner_box.core.clock import get_clock
from leitner_box.core.exceptions import ConflictError
from leitner_box.main import app
from leitner_box.services.card_store import CardStore

PREFIX = "/api/v1/leitner"


def _create(client, word="apple", owner_id=1, **extra):
    return client.post(f"{PREFIX}/cards", params={"owner_id": owner_id}, json={"word": word, **extra})


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_create_then_merge_status_codes(client):
    created = _create(client, meaning="a fruit")
    merged = _create(client, word="APPLE", notes="seen twice")

    assert created.status_code == 201
    assert created.json()["created"] is True
    assert created.json()["card"]["word"] == "APPLE"
    assert created.json()["card"]["is_due"] is True

    assert merged.status_code == 200
    body = merged.json()
    assert body["created"] is False
    assert body["card"]["id"] == created.json()["card"]["id"]
    assert body["card"]["meaning"] == "a fruit"
    assert body["card"]["notes"] == "seen twice"


def test_create_invalid_word_returns_field_error(client):
    response = _create(client, word="a")

    assert response.status_code == 400
    assert response.json()["type"] == "ValidationError"
    assert response.json()["field"] == "word"


def test_review_success_scenario(client):
    card_id = _create(client).json()["card"]["id"]

    response = client.post(
        f"{PREFIX}/cards/{card_id}/review", params={"owner_id": 1}, json={"outcome": "success"}
    )

    assert response.status_code == 200
    card = response.json()
    assert card["stage"] == 2
    assert card["next_review_at"].startswith("2024-01-04T00:00:00")
    assert card["last_result"] == "success"
    assert card["stats"] == {"repetitions": 1, "successful_reviews": 1, "failed_reviews": 0}
    assert card["accuracy"] == 100
    assert card["is_due"] is False


def test_review_rejects_unknown_outcome(client):
    card_id = _create(client).json()["card"]["id"]

    response = client.post(
        f"{PREFIX}/cards/{card_id}/review", params={"owner_id": 1}, json={"outcome": "skipped"}
    )

    assert response.status_code == 400
    assert response.json()["field"] == "outcome"


def test_review_other_owners_card_returns_404(client):
    card_id = _create(client, owner_id=2).json()["card"]["id"]

    response = client.post(
        f"{PREFIX}/cards/{card_id}/review", params={"owner_id": 1}, json={"outcome": "success"}
    )

    assert response.status_code == 404
    assert "card" not in response.json()


def test_review_conflict_returns_409(client):
    card_id = _create(client).json()["card"]["id"]

    with patch.object(CardStore, "update", side_effect=ConflictError("changed")):
        response = client.post(
            f"{PREFIX}/cards/{card_id}/review", params={"owner_id": 1}, json={"outcome": "fail"}
        )

    assert response.status_code == 409
    assert response.json()["retryable"] is True


def test_list_cards_with_summary(client):
    _create(client, word="apple")
    pear_id = _create(client, word="pear").json()["card"]["id"]
    client.post(f"{PREFIX}/cards/{pear_id}/review", params={"owner_id": 1}, json={"outcome": "success"})

    body = client.get(f"{PREFIX}/cards", params={"owner_id": 1}).json()

    assert [card["word"] for card in body["cards"]] == ["APPLE", "PEAR"]
    assert [card["is_due"] for card in body["cards"]] == [True, False]
    summary = body["summary"]
    assert summary["total"] == 2
    assert summary["due_count"] == 1
    assert summary["upcoming_count"] == 1
    assert summary["stage_counts"] == {"1": 1, "2": 1, "3": 0, "4": 0, "5": 0}
    assert summary["ready_percentage"] == 50


def test_due_queue_and_stats(client):
    _create(client, word="apple")
    _create(client, word="pear")

    queue = client.get(f"{PREFIX}/review", params={"owner_id": 1, "limit": 1})
    stats = client.get(f"{PREFIX}/stats", params={"owner_id": 1})

    assert queue.status_code == 200
    assert len(queue.json()) == 1
    assert stats.json()["due_count"] == 2
    assert stats.json()["new_today"] == 2


def test_stage_endpoint_validates_range(client):
    _create(client)

    assert len(client.get(f"{PREFIX}/stage/1", params={"owner_id": 1}).json()) == 1
    assert client.get(f"{PREFIX}/stage/6", params={"owner_id": 1}).status_code == 400


def test_batch_create(client):
    response = client.post(
        f"{PREFIX}/cards/batch",
        params={"owner_id": 1},
        json={"words": ["apple", "pear", "!"]},
    )

    body = response.json()
    assert response.status_code == 200
    assert body["added"] == ["APPLE", "PEAR"]
    assert body["failed"][0]["word"] == "!"


def test_admin_operations(client, clock):
    card_id = _create(client).json()["card"]["id"]
    client.post(f"{PREFIX}/cards/{card_id}/review", params={"owner_id": 1}, json={"outcome": "success"})

    notes = client.put(f"{PREFIX}/cards/{card_id}/notes", params={"owner_id": 1}, json={"notes": "tricky"})
    assert notes.json()["notes"] == "tricky"

    archived = client.post(f"{PREFIX}/cards/{card_id}/archive", params={"owner_id": 1})
    assert archived.json()["is_archived"] is True
    assert client.get(f"{PREFIX}/cards", params={"owner_id": 1}).json()["cards"] == []

    unarchived = client.post(f"{PREFIX}/cards/{card_id}/unarchive", params={"owner_id": 1})
    assert unarchived.json()["is_archived"] is False

    reset = client.post(f"{PREFIX}/cards/{card_id}/reset", params={"owner_id": 1})
    assert reset.json()["stage"] == 1
    assert reset.json()["is_due"] is True

    assert client.delete(f"{PREFIX}/cards/{card_id}", params={"owner_id": 2}).status_code == 404
    assert client.delete(f"{PREFIX}/cards/{card_id}", params={"owner_id": 1}).status_code == 200
    assert client.get(f"{PREFIX}/cards", params={"owner_id": 1}).json()["summary"]["total"] == 0


class SteppingClock:
    """Clock that moves forward by one second every time it is read."""

    def __init__(self, start):
        self.current = start

    def now(self):
        current = self.current
        self.current = current + timedelta(seconds=1)
        return current


def test_one_instant_per_request(client, session, make_card):
    boundary = datetime(2024, 1, 1, 0, 0, 1)
    session.add(make_card(next_review_at=boundary))
    session.commit()
    app.dependency_overrides[get_clock] = lambda: SteppingClock(boundary - timedelta(seconds=1))

    body = client.get(f"{PREFIX}/cards", params={"owner_id": 1}).json()
    queue = client.get(f"{PREFIX}/review", params={"owner_id": 1}).json()

    due_flags = [card["is_due"] for card in body["cards"]]
    assert body["summary"]["due_count"] == sum(due_flags) == 0
    assert queue == []


def test_route_handlers_run_in_threadpool():
    routes = [route for route in app.routes if getattr(route, "path", "").startswith(PREFIX)]

    assert routes
    assert not any(inspect.iscoroutinefunction(route.endpoint) for route in routes)
