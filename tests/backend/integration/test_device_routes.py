import asyncio
import uuid

import pytest
import pytest_asyncio

from devicehub.core.roles import Role
from devicehub.models.device import Device, DeviceShare


pytestmark = pytest.mark.asyncio

CODE = "1234567890123456"


async def _create_device(client, headers, code=CODE, name="Tank", assigned_to=None):
    payload = {"device_code": code, "device_name": name}
    if assigned_to:
        payload["assigned_to"] = str(assigned_to)
    resp = await client.post("/api/v1/devices", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["device"]


@pytest_asyncio.fixture
async def cast(create_user, auth_headers):
    admin = await create_user(Role.ADMIN, name="Ops")
    alice = await create_user(Role.CUSTOMER, name="Alice", phone="9000000001")
    bob = await create_user(Role.CUSTOMER, name="Bob", phone="9000000002")
    eve = await create_user(Role.CUSTOMER, name="Eve", phone="9000000003")
    return {
        "admin": (admin, auth_headers(admin)),
        "alice": (alice, auth_headers(alice)),
        "bob": (bob, auth_headers(bob)),
        "eve": (eve, auth_headers(eve)),
    }


async def test_claim_scenario_second_claim_conflicts(client, cast):
    _, admin_h = cast["admin"]
    alice, alice_h = cast["alice"]
    _, bob_h = cast["bob"]
    created = await _create_device(client, admin_h)
    assert created["assigned_to"] is None
    assert created["is_active"] is False
    assert created["has_qr_code"] is True

    resp = await client.post("/api/v1/devices/assign", json={"device_code": CODE}, headers=alice_h)
    assert resp.status_code == 200
    assert resp.json()["data"]["device"]["assigned_to"] == str(alice.id)
    assert resp.json()["data"]["device"]["is_active"] is True

    resp = await client.post("/api/v1/devices/assign", json={"device_code": CODE}, headers=bob_h)
    assert resp.status_code == 409
    assert resp.json()["success"] is False
    assert resp.json()["code"] == "ALREADY_OWNED"

    device = await Device.get(device_code=CODE)
    assert device.owner_id == alice.id


async def test_concurrent_claims_have_one_winner(client, cast):
    _, admin_h = cast["admin"]
    await _create_device(client, admin_h)
    responses = await asyncio.gather(
        client.post("/api/v1/devices/assign", json={"device_code": CODE}, headers=cast["alice"][1]),
        client.post("/api/v1/devices/assign", json={"device_code": CODE}, headers=cast["bob"][1]),
    )
    assert sorted(r.status_code for r in responses) == [200, 409]


async def test_claim_errors(client, cast):
    _, alice_h = cast["alice"]
    resp = await client.post("/api/v1/devices/assign", json={"device_code": "123"}, headers=alice_h)
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_DEVICE_CODE"
    resp = await client.post("/api/v1/devices/assign", json={"device_code": CODE}, headers=alice_h)
    assert resp.status_code == 404
    assert resp.json()["code"] == "DEVICE_NOT_FOUND"


async def test_share_and_revoke_scenario(client, cast):
    _, admin_h = cast["admin"]
    alice, alice_h = cast["alice"]
    bob, bob_h = cast["bob"]
    device = await _create_device(client, admin_h, assigned_to=alice.id)

    resp = await client.post(
        "/api/v1/devices/share",
        json={"deviceId": device["id"], "recipientPhone": "9000000002"},
        headers=alice_h,
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["recipient"]["id"] == str(bob.id)

    received = (await client.get(f"/api/v1/devices/received/{bob.id}", headers=bob_h)).json()
    assert received["total"] == 1
    assert received["data"][0]["owner_name"] == "Alice"

    sent = (await client.get(f"/api/v1/devices/sent/{alice.id}", headers=alice_h)).json()
    assert sent["data"][0]["shared_with_phone"] == "9000000002"

    # Shared device is now visible to Bob
    resp = await client.get(f"/api/v1/devices/{CODE}", headers=bob_h)
    assert resp.status_code == 200

    resp = await client.delete(f"/api/v1/devices/{CODE}/revoke/{bob.id}", headers=alice_h)
    assert resp.status_code == 200

    received = (await client.get(f"/api/v1/devices/received/{bob.id}", headers=bob_h)).json()
    assert received["data"] == []
    resp = await client.get(f"/api/v1/devices/{CODE}", headers=bob_h)
    assert resp.status_code == 404
    assert (await Device.get(device_code=CODE)).owner_id == alice.id


async def test_duplicate_share_returns_409_and_keeps_one_row(client, cast):
    _, admin_h = cast["admin"]
    alice, alice_h = cast["alice"]
    device = await _create_device(client, admin_h, assigned_to=alice.id)
    payload = {"deviceId": device["id"], "recipientPhone": "9000000002"}

    first = await client.post("/api/v1/devices/share", json=payload, headers=alice_h)
    second = await client.post("/api/v1/devices/share", json=payload, headers=alice_h)
    assert first.status_code == 200
    assert second.status_code == 409
    assert second.json()["code"] == "ALREADY_SHARED"
    assert await DeviceShare.all().count() == 1


async def test_share_errors(client, cast):
    _, admin_h = cast["admin"]
    alice, alice_h = cast["alice"]
    _, eve_h = cast["eve"]
    device = await _create_device(client, admin_h, assigned_to=alice.id)

    def share(phone, headers):
        return client.post(
            "/api/v1/devices/share", json={"deviceId": device["id"], "recipientPhone": phone}, headers=headers
        )

    assert (await share("123", alice_h)).json()["code"] == "INVALID_PHONE"
    assert (await share("9111111111", alice_h)).json()["code"] == "RECIPIENT_NOT_FOUND"
    assert (await share("9000000001", alice_h)).status_code == 400
    not_owner = await share("9000000002", eve_h)
    assert not_owner.status_code == 403
    assert not_owner.json()["code"] == "NOT_OWNER"

    # A non-owner gets the same answer whether or not the phone is registered
    unknown_phone = await share("9111111111", eve_h)
    assert unknown_phone.status_code == 403
    assert unknown_phone.json() == not_owner.json()

    missing = await client.post(
        "/api/v1/devices/share",
        json={"deviceId": str(uuid.uuid4()), "recipientPhone": "9000000002"},
        headers=alice_h,
    )
    assert missing.status_code == 403
    assert missing.json()["code"] == "NOT_OWNER"


async def test_device_deletion_removes_grants(client, cast):
    _, admin_h = cast["admin"]
    alice, alice_h = cast["alice"]
    bob, bob_h = cast["bob"]
    device = await _create_device(client, admin_h, assigned_to=alice.id)
    await client.post(
        "/api/v1/devices/share",
        json={"deviceId": device["id"], "recipientPhone": bob.phone},
        headers=alice_h,
    )
    resp = await client.delete(f"/api/v1/devices/{CODE}", headers=admin_h)
    assert resp.status_code == 200
    received = (await client.get(f"/api/v1/devices/received/{bob.id}", headers=bob_h)).json()
    assert received["data"] == []
    assert await DeviceShare.all().count() == 0


async def test_visibility_does_not_leak_existence(client, cast):
    _, admin_h = cast["admin"]
    alice, _ = cast["alice"]
    _, eve_h = cast["eve"]
    await _create_device(client, admin_h, assigned_to=alice.id)

    hidden = await client.get(f"/api/v1/devices/{CODE}", headers=eve_h)
    missing = await client.get("/api/v1/devices/6543210987654321", headers=eve_h)
    assert hidden.status_code == missing.status_code == 404
    assert hidden.json() == missing.json()

    malformed = await client.get("/api/v1/devices/not-a-code", headers=eve_h)
    assert malformed.status_code == 400

    qr = await client.get(f"/api/v1/devices/{CODE}/qr", headers=eve_h)
    assert qr.status_code == 404


async def test_qr_png_for_owner(client, cast):
    _, admin_h = cast["admin"]
    alice, alice_h = cast["alice"]
    await _create_device(client, admin_h, assigned_to=alice.id)
    resp = await client.get(f"/api/v1/devices/{CODE}/qr", headers=alice_h)
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "image/png"
    assert resp.content.startswith(b"\x89PNG")


async def test_listing_by_role(client, cast):
    _, admin_h = cast["admin"]
    alice, alice_h = cast["alice"]
    await _create_device(client, admin_h, code="1000000000000001", assigned_to=alice.id)
    await _create_device(client, admin_h, code="1000000000000002")

    mine = (await client.get("/api/v1/devices/list", headers=alice_h)).json()
    assert [d["device_code"] for d in mine["data"]] == ["1000000000000001"]

    everything = (await client.get("/api/v1/devices/list", headers=admin_h)).json()
    assert everything["total"] == 2
    owned = next(d for d in everything["data"] if d["device_code"] == "1000000000000001")
    assert owned["assigned_user_name"] == "Alice"

    my = (await client.get("/api/v1/devices/my", headers=alice_h)).json()
    assert my["total"] == 1

    owned_by = await client.get(f"/api/v1/devices/owned/{alice.id}", headers=cast["bob"][1])
    assert owned_by.status_code == 403


async def test_customer_directory(client, cast):
    alice, alice_h = cast["alice"]
    resp = await client.get("/api/v1/devices/customers", headers=alice_h)
    names = [c["name"] for c in resp.json()["data"]]
    assert names == ["Bob", "Eve"]


async def test_admin_only_device_operations(client, cast):
    _, admin_h = cast["admin"]
    alice, alice_h = cast["alice"]
    bob, _ = cast["bob"]

    forbidden = await client.post(
        "/api/v1/devices", json={"device_code": CODE, "device_name": "x"}, headers=alice_h
    )
    assert forbidden.status_code == 403

    await _create_device(client, admin_h, assigned_to=alice.id)
    dup = await client.post("/api/v1/devices", json={"device_code": CODE, "device_name": "y"}, headers=admin_h)
    assert dup.status_code == 409
    assert dup.json()["code"] == "DUPLICATE_CODE"

    moved = await client.put(f"/api/v1/devices/{CODE}/assign", json={"assigned_to": str(bob.id)}, headers=admin_h)
    assert moved.status_code == 200
    assert moved.json()["data"]["device"]["assigned_to"] == str(bob.id)

    cleared = await client.put(f"/api/v1/devices/{CODE}/assign", json={"assigned_to": None}, headers=admin_h)
    assert cleared.json()["data"]["device"]["assigned_to"] is None
    assert cleared.json()["data"]["device"]["is_active"] is False

    m2m = await client.put(f"/api/v1/devices/{CODE}/m2m", json={"m2m_number": "5754000012345"}, headers=admin_h)
    assert m2m.json()["data"]["device"]["m2m_number"] == "5754000012345"
    assert (await client.put(f"/api/v1/devices/{CODE}/m2m", json={"m2m_number": "1"}, headers=alice_h)).status_code == 403


async def test_generate_bulk(client, cast):
    _, admin_h = cast["admin"]
    resp = await client.post("/api/v1/devices/generate-bulk", json={"count": 5}, headers=admin_h)
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["total_generated"] == 5
    assert data["total_requested"] == 5
    assert data["errors"] == []
    assert await Device.all().count() == 5

    bad = await client.post("/api/v1/devices/generate-bulk", json={"count": 1001}, headers=admin_h)
    assert bad.status_code == 400
    assert bad.json()["code"] == "INVALID_COUNT"


@pytest.mark.parametrize("count", [True, "5", 2.0, None])
async def test_generate_bulk_rejects_non_integer_count(client, cast, count):
    _, admin_h = cast["admin"]
    resp = await client.post("/api/v1/devices/generate-bulk", json={"count": count}, headers=admin_h)
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_COUNT"
    assert await Device.all().count() == 0
