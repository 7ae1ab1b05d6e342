"""HTTP tests over the ASGI app with the database dependency pointed at the test engine."""

import pytest
from httpx import ASGITransport, AsyncClient

from backend.api.deps import get_db_session
from backend.app import app
from backend.db import get_session
from backend.utils import create_access_token, decode_access_token

API = "/api/v1"


def auth(user_id, plan="free", is_admin=False):
    token = create_access_token({"sub": user_id, "plan": plan, "is_admin": is_admin})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def client(session_factory):
    async def override_db_session():
        async with get_session(session_factory) as session:
            yield session

    app.dependency_overrides[get_db_session] = override_db_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http
    app.dependency_overrides.clear()


async def test_health(client):
    response = await client.get("/")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


async def test_requires_token(client):
    response = await client.get(f"{API}/runs")

    assert response.status_code in (401, 403)


async def test_reader_flow_through_locked_chapter(client, make_user, story):
    reader = await make_user()
    admin = await make_user(is_admin=True)
    headers = auth(reader)

    started = await client.post(f"{API}/stories/{story.id}/start", headers=headers)
    assert started.status_code == 200
    run_id = started.json()["data"]["run_id"]

    current = await client.get(f"{API}/runs/{run_id}/current", headers=headers)
    assert current.status_code == 200
    assert current.json()["data"]["node"]["step_no"] == 1

    step_two = await client.post(
        f"{API}/runs/{run_id}/choose", json={"genre_key": "romance"}, headers=headers
    )
    assert step_two.status_code == 200
    assert step_two.json()["data"]["node"]["id"] == story.romance

    locked = await client.post(
        f"{API}/runs/{run_id}/choose", json={"genre_key": "horror"}, headers=headers
    )
    assert locked.status_code == 403
    body = locked.json()
    assert body["code"] == "CHAPTER_LOCKED"
    assert body["chapter_number"] == 3
    assert body["required_coins"] == 100
    assert body["available"] == 0
    assert body["run_id"] == run_id
    assert body["story_id"] == story.id
    assert "node" not in body

    broke = await client.post(
        f"{API}/runs/{run_id}/unlock", json={"chapter_number": 3}, headers=headers
    )
    assert broke.status_code == 402
    assert broke.json()["code"] == "INSUFFICIENT_COINS"
    assert broke.json()["error"]["required"] == 100

    funded = await client.post(
        f"{API}/admin/coins/adjust",
        json={"user_id": reader, "delta": 100},
        headers=auth(admin, is_admin=True),
    )
    assert funded.json()["data"]["balance"] == 100

    unlocked = await client.post(
        f"{API}/runs/{run_id}/unlock", json={"chapter_number": 3}, headers=headers
    )
    assert unlocked.status_code == 200
    assert unlocked.json()["data"]["spent"] == 100

    step_three = await client.post(
        f"{API}/runs/{run_id}/choose", json={"genre_key": "horror"}, headers=headers
    )
    assert step_three.status_code == 200
    assert step_three.json()["data"]["node"]["content"] == "The sea climbs the rocks."

    unlocks = await client.get(f"{API}/runs/{run_id}/unlocks", headers=headers)
    assert unlocks.json()["data"]["unlocked_chapters"] == [3]

    journey = await client.get(f"{API}/runs/{run_id}/journey", headers=headers)
    assert journey.json()["data"]["current_step"] == 3

    summary = await client.get(f"{API}/coins/summary", headers=headers)
    assert summary.json()["data"] == {"available": 0, "used": 100}

    history = await client.get(f"{API}/coins/history", params={"type": "redeem"}, headers=headers)
    items = history.json()["data"]["items"]
    assert len(items) == 1
    assert items[0]["chapter_number"] == 3
    assert items[0]["story_title"] == "The Lighthouse"


async def test_domain_errors_map_to_status_codes(client, make_user, story):
    reader = await make_user()
    headers = auth(reader)
    run_id = (await client.post(f"{API}/stories/{story.id}/start", headers=headers)).json()["data"]["run_id"]

    missing = await client.get(f"{API}/runs/run_missing/current", headers=headers)
    invalid = await client.post(
        f"{API}/runs/{run_id}/choose", json={"genre_key": "western"}, headers=headers
    )
    not_finishable = await client.post(f"{API}/runs/{run_id}/finish", headers=headers)
    bad_rating = await client.post(
        f"{API}/runs/{run_id}/rate", json={"node_id": story.start, "rating": 9}, headers=headers
    )

    assert missing.status_code == 404
    assert missing.json()["code"] == "NOT_FOUND"
    assert invalid.status_code == 400
    assert invalid.json()["code"] == "INVALID_CHOICE"
    assert not_finishable.status_code == 400
    assert not_finishable.json()["code"] == "RUN_NOT_FINISHABLE"
    assert bad_rating.status_code == 422


async def test_admin_endpoints(client, make_user, story):
    reader = await make_user(coins=100)
    admin = await make_user(is_admin=True)
    admin_headers = auth(admin, is_admin=True)

    forbidden = await client.get(f"{API}/admin/coins/summary", headers=auth(reader))
    assert forbidden.status_code == 403

    run_id = (await client.post(
        f"{API}/stories/{story.id}/start", headers=auth(reader)
    )).json()["data"]["run_id"]
    await client.post(f"{API}/runs/{run_id}/unlock", json={"chapter_number": 5}, headers=auth(reader))
    redeem_id = (await client.get(
        f"{API}/coins/history", params={"type": "redeem"}, headers=auth(reader)
    )).json()["data"]["items"][0]["id"]

    refunded = await client.post(
        f"{API}/admin/coins/refund", json={"transaction_id": redeem_id}, headers=admin_headers
    )
    twice = await client.post(
        f"{API}/admin/coins/refund", json={"transaction_id": redeem_id}, headers=admin_headers
    )
    zero = await client.post(
        f"{API}/admin/coins/adjust", json={"user_id": reader, "delta": 0}, headers=admin_headers
    )
    overview = await client.get(f"{API}/admin/coins/summary", headers=admin_headers)

    assert refunded.status_code == 200
    assert refunded.json()["data"]["delta"] == 100
    assert refunded.json()["data"]["balance"] == 100
    assert twice.status_code == 409
    assert twice.json()["code"] == "ALREADY_REFUNDED"
    assert zero.status_code == 400
    assert zero.json()["code"] == "INVALID_AMOUNT"
    assert overview.json()["data"] == {"available": 100, "used": 100, "earned": 200}


def test_token_claims_round_trip():
    token = create_access_token({"sub": "user_1", "plan": "premium", "is_admin": True})

    claims = decode_access_token(token)

    assert claims["sub"] == "user_1"
    assert claims["plan"] == "premium"
    assert claims["is_admin"] is True
    assert decode_access_token("not.a.token") is None


async def test_reading_state_and_feedback_routes(client, make_user, story):
    reader = await make_user(plan="premium")
    headers = auth(reader, plan="premium")
    run_id = (await client.post(f"{API}/stories/{story.id}/start", headers=headers)).json()["data"]["run_id"]

    nothing = await client.get(
        f"{API}/runs/{run_id}/reading-state", params={"node_id": story.start}, headers=headers
    )
    saved = await client.post(
        f"{API}/runs/{run_id}/reading-state",
        json={"node_id": story.start, "page_index": 4, "bookmark_page_index": 2, "font_px": 20},
        headers=headers,
    )
    loaded = await client.get(
        f"{API}/runs/{run_id}/reading-state", params={"node_id": story.start}, headers=headers
    )
    missing_node = await client.get(f"{API}/runs/{run_id}/reading-state", headers=headers)
    early_feedback = await client.post(
        f"{API}/runs/{run_id}/feedback", json={"rating": 5, "feedback": "Great"}, headers=headers
    )

    assert nothing.json()["data"] == {"state": None}
    assert saved.status_code == 200
    assert loaded.json()["data"]["state"]["page_index"] == 4
    assert loaded.json()["data"]["state"]["bookmark_page_index"] == 2
    assert loaded.json()["data"]["state"]["font_px"] == 20
    assert missing_node.status_code == 422
    assert early_feedback.status_code == 400
    assert early_feedback.json()["code"] == "RUN_NOT_COMPLETED"

    for key in ("romance", "horror", "comedy", "drama"):
        await client.post(f"{API}/runs/{run_id}/choose", json={"genre_key": key}, headers=headers)
    await client.post(
        f"{API}/runs/{run_id}/rate", json={"node_id": story.ending, "rating": 5}, headers=headers
    )
    await client.post(f"{API}/runs/{run_id}/finish", headers=headers)

    feedback = await client.post(
        f"{API}/runs/{run_id}/feedback", json={"rating": 5, "feedback": "Great"}, headers=headers
    )
    bad_rating = await client.post(
        f"{API}/runs/{run_id}/feedback", json={"rating": 9}, headers=headers
    )

    assert feedback.status_code == 200
    assert feedback.json()["success"] is True
    assert bad_rating.status_code == 422
