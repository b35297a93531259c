"""Crowdsale Routes — HTTP surface over the ledger operations.

Invariants:
    - Each ledger rejection maps to its own error code and HTTP status
    - Rejected operations leave the public state unchanged
    - The audit log lists only committed events, in order

Design Decisions:
    - Full scenarios through the API: create → invest → finalize → refund
"""

from uuid import uuid4

from crowdsale.services import crowdsale_service

OWNER = {"X-Caller-Id": "owner"}
ALICE = {"X-Caller-Id": "alice"}
BOB = {"X-Caller-Id": "bob"}


async def _invest(client, sale_id, headers, amount):
    return await client.post(
        f"/api/v1/crowdsales/{sale_id}/investments",
        json={"amount": amount}, headers=headers,
    )


async def _state(client, sale_id) -> dict:
    res = await client.get(f"/api/v1/crowdsales/{sale_id}")
    assert res.status_code == 200
    return res.json()


# ─── Create / query ──────────────────────────────────────────────

async def test_create_returns_open_crowdsale(client, sale_params):
    res = await client.post("/api/v1/crowdsales", json=sale_params, headers=OWNER)
    assert res.status_code == 201
    body = res.json()
    assert body["owner"] == "owner"
    assert body["status"] == "open"
    assert body["unit_price"] == 100
    assert body["funding_objective"] == 1000
    assert body["total_received"] == 0


async def test_create_rejects_start_in_past(client, sale_params):
    sale_params["start_time"] = "2000-01-01T00:00:00+00:00"
    res = await client.post("/api/v1/crowdsales", json=sale_params, headers=OWNER)
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "CONSTRUCTION_INVALID"


async def test_create_rejects_zero_unit_price(client, sale_params):
    sale_params["unit_price"] = 0
    res = await client.post("/api/v1/crowdsales", json=sale_params, headers=OWNER)
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "CONSTRUCTION_INVALID"


async def test_create_requires_caller_header(client, sale_params):
    res = await client.post("/api/v1/crowdsales", json=sale_params)
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_unknown_crowdsale_returns_404(client):
    res = await client.get(f"/api/v1/crowdsales/{uuid4()}")
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


# ─── invest ──────────────────────────────────────────────────────

async def test_invest_records_contribution_and_units(client, sale_id):
    res = await _invest(client, sale_id, ALICE, 450)
    assert res.status_code == 201
    assert res.json() == {
        "contributor": "alice", "amount": 450,
        "units_minted": 4, "total_received": 450,
    }

    res = await client.get(f"/api/v1/crowdsales/{sale_id}/contributions/alice")
    assert res.json() == {
        "contributor": "alice", "contributed": 450,
        "units": 4, "units_transferable": False,
    }


async def test_invest_on_behalf_of_contributor(client, sale_id):
    res = await client.post(
        f"/api/v1/crowdsales/{sale_id}/investments",
        json={"amount": 200, "contributor": "bob"}, headers=ALICE,
    )
    assert res.json()["contributor"] == "bob"
    state = await _state(client, sale_id)
    assert state["contributor_count"] == 1


async def test_invest_zero_rejected_without_change(client, sale_id):
    await _invest(client, sale_id, ALICE, 100)
    res = await _invest(client, sale_id, ALICE, 0)
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "INVALID_AMOUNT"
    assert (await _state(client, sale_id))["total_received"] == 100


async def test_invest_fractional_amount_is_validation_error(client, sale_id):
    res = await _invest(client, sale_id, ALICE, 12.5)
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


# ─── finalize ────────────────────────────────────────────────────

async def test_finalize_by_non_owner_forbidden(client, sale_id):
    res = await client.post(f"/api/v1/crowdsales/{sale_id}/finalize", headers=ALICE)
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "NOT_OWNER"
    assert (await _state(client, sale_id))["is_finalized"] is False


async def test_finalize_twice_conflicts(client, sale_id):
    first = await client.post(f"/api/v1/crowdsales/{sale_id}/finalize", headers=OWNER)
    assert first.status_code == 200
    second = await client.post(f"/api/v1/crowdsales/{sale_id}/finalize", headers=ALICE)
    assert second.status_code == 409
    assert second.json()["error"]["code"] == "ALREADY_FINALIZED"


# ─── Scenarios ───────────────────────────────────────────────────

async def test_objective_met_releases_units(client, sale_id):
    await _invest(client, sale_id, ALICE, 450)
    await _invest(client, sale_id, BOB, 700)

    res = await client.post(f"/api/v1/crowdsales/{sale_id}/finalize", headers=OWNER)
    body = res.json()
    assert body["status"] == "finalized_released"
    assert body["total_received"] == 1150
    assert body["is_refunding_allowed"] is False

    res = await client.get(f"/api/v1/crowdsales/{sale_id}/contributions/bob")
    assert res.json()["units"] == 7
    assert res.json()["units_transferable"] is True

    res = await client.post(f"/api/v1/crowdsales/{sale_id}/refund", headers=ALICE)
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "REFUND_NOT_ALLOWED"


async def test_objective_missed_refunds_everyone(client, sale_id):
    await _invest(client, sale_id, ALICE, 200)
    await _invest(client, sale_id, BOB, 300)

    res = await client.post(f"/api/v1/crowdsales/{sale_id}/finalize", headers=OWNER)
    assert res.json()["status"] == "finalized_refunding"

    res = await client.post(f"/api/v1/crowdsales/{sale_id}/refund", headers=ALICE)
    assert res.json() == {"contributor": "alice", "refunded": 200, "total_refunded": 200}
    res = await client.post(f"/api/v1/crowdsales/{sale_id}/refund", headers=BOB)
    assert res.json() == {"contributor": "bob", "refunded": 300, "total_refunded": 500}

    res = await client.post(f"/api/v1/crowdsales/{sale_id}/refund", headers=ALICE)
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "NO_FUNDS_TO_REFUND"

    state = await _state(client, sale_id)
    assert state["total_refunded"] == 500
    assert state["outstanding_balance"] == 0


async def test_refund_before_finalize_rejected(client, sale_id):
    await _invest(client, sale_id, ALICE, 200)
    res = await client.post(f"/api/v1/crowdsales/{sale_id}/refund", headers=ALICE)
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "REFUND_NOT_ALLOWED"


async def test_failed_transfer_keeps_balance(client, sale_id):
    mallory = {"X-Caller-Id": "mallory"}
    await _invest(client, sale_id, mallory, 250)
    await client.post(f"/api/v1/crowdsales/{sale_id}/finalize", headers=OWNER)

    res = await client.post(f"/api/v1/crowdsales/{sale_id}/refund", headers=mallory)
    assert res.status_code == 502
    assert res.json()["error"]["code"] == "TRANSFER_FAILED"

    res = await client.get(f"/api/v1/crowdsales/{sale_id}/contributions/mallory")
    assert res.json()["contributed"] == 250
    assert (await _state(client, sale_id))["total_refunded"] == 0


# ─── Unit transfers ──────────────────────────────────────────────

async def _transfer(client, sale_id, headers, recipient, amount):
    return await client.post(
        f"/api/v1/crowdsales/{sale_id}/tokens/transfers",
        json={"recipient": recipient, "amount": amount}, headers=headers,
    )


async def test_units_locked_until_release(client, sale_id):
    await _invest(client, sale_id, BOB, 700)
    res = await _transfer(client, sale_id, BOB, "carol", 3)
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "TOKEN_LOCKED"

    res = await client.get(f"/api/v1/crowdsales/{sale_id}/contributions/bob")
    assert res.json()["units"] == 7


async def test_released_units_move_and_survive_restore(client, sale_id):
    await _invest(client, sale_id, BOB, 1000)
    await client.post(f"/api/v1/crowdsales/{sale_id}/finalize", headers=OWNER)

    res = await _transfer(client, sale_id, BOB, "carol", 3)
    assert res.status_code == 200
    assert res.json() == {
        "sender": "bob", "recipient": "carol", "amount": 3,
        "sender_units": 7, "recipient_units": 3,
    }

    crowdsale_service._ledgers.clear()
    res = await client.get(f"/api/v1/crowdsales/{sale_id}/contributions/carol")
    assert res.json()["units"] == 3
    assert res.json()["contributed"] == 0


async def test_transfer_rejections_after_release(client, sale_id):
    await _invest(client, sale_id, BOB, 1000)
    await client.post(f"/api/v1/crowdsales/{sale_id}/finalize", headers=OWNER)

    res = await _transfer(client, sale_id, BOB, "carol", 11)
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "INSUFFICIENT_UNITS"

    res = await _transfer(client, sale_id, BOB, "carol", 0)
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "INVALID_AMOUNT"

    res = await client.get(f"/api/v1/crowdsales/{sale_id}/contributions/bob")
    assert res.json()["units"] == 10


# ─── Audit log ───────────────────────────────────────────────────

async def test_events_list_committed_events_in_order(client, sale_id):
    await _invest(client, sale_id, ALICE, 200)
    await _invest(client, sale_id, ALICE, 0)  # rejected, not logged
    await client.post(f"/api/v1/crowdsales/{sale_id}/finalize", headers=OWNER)
    await client.post(f"/api/v1/crowdsales/{sale_id}/refund", headers=ALICE)

    res = await client.get(f"/api/v1/crowdsales/{sale_id}/events")
    assert res.status_code == 200
    events = res.json()
    assert [e["event_type"] for e in events] == [
        "investment_recorded", "objective_not_met", "refund_issued",
    ]
    assert [e["sequence"] for e in events] == [0, 1, 2]
    assert events[2]["contributor"] == "alice"
    assert events[2]["amount"] == 200


async def test_events_pagination(client, sale_id):
    for amount in (100, 200, 300):
        await _invest(client, sale_id, ALICE, amount)
    res = await client.get(
        f"/api/v1/crowdsales/{sale_id}/events", params={"limit": 1, "offset": 1},
    )
    [event] = res.json()
    assert event["sequence"] == 1
    assert event["amount"] == 200


# ─── Health ──────────────────────────────────────────────────────

async def test_health_and_readiness(client, sale_id):
    res = await client.get("/api/v1/health/")
    assert res.json()["status"] == "healthy"
    assert res.json()["live_ledgers"] == 1
    res = await client.get("/api/v1/health/ready")
    assert res.status_code == 200
    assert res.json()["status"] == "ready"
