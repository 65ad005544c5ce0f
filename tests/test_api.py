import base64
import json

import pytest

from conftest import OTHER, OWNER, fingerprint

FP = fingerprint("h1").hex()
DAY = 1700000000


def _usage_payload(**overrides):
    payload = {
        "device_fingerprint": FP,
        "timestamp": DAY,
        "avg_cpu_usage": 42.5,
        "avg_memory_usage": 60.0,
        "top_processes": ["chrome", "code", "slack", "term", "mail"],
        "data_fingerprint": fingerprint("payload").hex(),
    }
    payload.update(overrides)
    return payload


async def _post_raw(client, url, payload, headers):
    # json.dumps escapes non-ASCII and writes NaN, which the client encoder refuses.
    return await client.post(
        url, content=json.dumps(payload), headers={**headers, "Content-Type": "application/json"}
    )


async def _register(client, auth_headers, identity=OWNER, fp=FP, name="desk-01"):
    return await client.post(
        "/v1/devices", json={"device_fingerprint": fp, "device_name": name}, headers=auth_headers(identity)
    )


@pytest.mark.asyncio
async def test_full_device_lifecycle(client, auth_headers, events):
    resp = await _register(client, auth_headers)
    assert resp.status_code == 201
    device = resp.json()
    assert device["owner"] == OWNER.hex()
    assert device["device_hash"] == FP
    assert device["certificate_issued"] is False

    resp = await client.post("/v1/usage", json=_usage_payload(), headers=auth_headers())
    assert resp.status_code == 201
    assert resp.json()["top_processes"] == ["chrome", "code", "slack", "term", "mail"]

    resp = await client.post("/v1/usage", json=_usage_payload(), headers=auth_headers())
    assert resp.status_code == 409
    assert resp.json()["error"] == "DailyUsageAlreadyUploaded"

    resp = await client.post(f"/v1/devices/{FP}/certificate", headers=auth_headers(OTHER))
    assert resp.status_code == 403
    assert resp.json()["error"] == "InvalidDeviceOwner"

    resp = await client.post(f"/v1/devices/{FP}/certificate", headers=auth_headers())
    assert resp.status_code == 200
    assert resp.json()["certificate_issued"] is True

    resp = await client.post(f"/v1/devices/{FP}/certificate", headers=auth_headers())
    assert resp.status_code == 409
    assert resp.json()["error"] == "CertificateAlreadyIssued"

    resp = await client.get(f"/v1/devices/{FP}", headers=auth_headers())
    assert resp.json()["certificate_issued"] is True

    assert [e["kind"] for e in events] == ["device_registered", "usage_uploaded", "certificate_issued"]


@pytest.mark.asyncio
async def test_duplicate_registration(client, auth_headers):
    assert (await _register(client, auth_headers)).status_code == 201
    resp = await _register(client, auth_headers, identity=OTHER, name="stolen")
    assert resp.status_code == 409
    assert resp.json() == {"error": "DeviceAlreadyRegistered", "detail": "This device is already registered"}

    resp = await client.get(f"/v1/devices/{FP}", headers=auth_headers(OTHER))
    assert resp.json()["owner"] == OWNER.hex()


@pytest.mark.asyncio
async def test_domain_length_errors_carry_codes(client, auth_headers):
    resp = await _register(client, auth_headers, name="x" * 65)
    assert resp.status_code == 422
    assert resp.json()["error"] == "InvalidDeviceNameLength"

    await _register(client, auth_headers)
    resp = await client.post("/v1/usage", json=_usage_payload(top_processes=["a"] * 4), headers=auth_headers())
    assert resp.json()["error"] == "InvalidTopProcessesArraySize"

    resp = await client.post(
        "/v1/usage", json=_usage_payload(top_processes=["a", "b", "c", "d", "e" * 33]), headers=auth_headers()
    )
    assert resp.status_code == 422
    assert resp.json()["error"] == "InvalidProcessNameLength"


@pytest.mark.asyncio
async def test_transport_validation(client, auth_headers):
    resp = await client.post("/v1/devices", json={"device_fingerprint": "abc", "device_name": "x"}, headers=auth_headers())
    assert resp.status_code == 422
    assert "error" not in resp.json()

    await _register(client, auth_headers)
    resp = await _post_raw(client, "/v1/usage", _usage_payload(avg_cpu_usage=float("nan")), auth_headers())
    assert resp.status_code == 422

    resp = await client.get("/v1/devices/not-hex", headers=auth_headers())
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_lone_surrogates_rejected(client, auth_headers):
    resp = await _post_raw(client, "/v1/devices", {"device_fingerprint": FP, "device_name": "\ud800"}, auth_headers())
    assert resp.status_code == 422
    assert resp.json()["detail"][0]["loc"] == ["body", "device_name"]

    await _register(client, auth_headers)
    payload = _usage_payload(top_processes=["a", "b", "\udc00", "d", "e"])
    resp = await _post_raw(client, "/v1/usage", payload, auth_headers())
    assert resp.status_code == 422
    assert resp.json()["detail"][0]["loc"] == ["body", "top_processes", 2]


@pytest.mark.asyncio
async def test_percentages_beyond_f32_saturate(client, auth_headers):
    await _register(client, auth_headers)
    resp = await client.post(
        "/v1/usage", json=_usage_payload(avg_cpu_usage=1e39, avg_memory_usage=-1e39), headers=auth_headers()
    )
    assert resp.status_code == 201
    assert resp.json()["avg_cpu_usage"] == "Infinity"
    assert resp.json()["avg_memory_usage"] == "-Infinity"

    resp = await client.get(f"/v1/usage/{FP}/{DAY}", headers=auth_headers())
    assert resp.json()["avg_cpu_usage"] == "Infinity"
    resp = await client.get(f"/v1/usage/{FP}/{DAY}/account", headers=auth_headers())
    assert resp.json()["size"] == 256


@pytest.mark.asyncio
async def test_requires_bearer_token(client, auth_headers):
    resp = await client.post("/v1/devices", json={"device_fingerprint": FP, "device_name": "x"})
    assert resp.status_code == 401

    resp = await client.get(f"/v1/devices/{FP}", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_revoked_token_rejected(client, settings, redis):
    from kts.core.security import create_access_token, verify_token

    token = create_access_token(OWNER.hex(), settings)
    await redis.set(f"revoked:jti:{verify_token(token, settings).jti}", "1")
    resp = await client.get(f"/v1/devices/{FP}", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_write_rate_limit(client, auth_headers, settings, redis):
    await redis.set(f"rl:write:{OWNER.hex()}", settings.write_rate_limit)
    resp = await _register(client, auth_headers)
    assert resp.status_code == 429


@pytest.mark.asyncio
async def test_usage_reads_and_accounts(client, auth_headers):
    await _register(client, auth_headers)
    for day in (DAY + 86400, DAY):
        await client.post("/v1/usage", json=_usage_payload(timestamp=day), headers=auth_headers())

    resp = await client.get(f"/v1/usage/{FP}", headers=auth_headers())
    assert [r["timestamp"] for r in resp.json()] == [DAY, DAY + 86400]

    resp = await client.get(f"/v1/usage/{FP}/{DAY}", headers=auth_headers())
    assert resp.json()["avg_cpu_usage"] == 42.5

    resp = await client.get(f"/v1/usage/{FP}/{DAY - 1}", headers=auth_headers())
    assert resp.status_code == 404
    assert resp.json()["error"] == "UsageRecordNotFound"

    resp = await client.get(f"/v1/usage/{FP}/{DAY}/account", headers=auth_headers())
    body = resp.json()
    assert body["size"] == 256
    assert len(base64.b64decode(body["data"])) == 256

    resp = await client.get(f"/v1/devices/{FP}/account", headers=auth_headers())
    assert resp.json()["size"] == 81


@pytest.mark.asyncio
async def test_audit_events_visible_to_owner_only(client, auth_headers):
    await _register(client, auth_headers)
    await client.post(f"/v1/devices/{FP}/certificate", headers=auth_headers())

    resp = await client.get("/v1/audit/events", params={"device_fingerprint": FP}, headers=auth_headers())
    assert resp.status_code == 200
    kinds = {e["kind"] for e in resp.json()}
    assert kinds == {"device_registered", "certificate_issued"}

    resp = await client.get("/v1/audit/events", params={"device_fingerprint": FP}, headers=auth_headers(OTHER))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_unknown_device_is_404(client, auth_headers):
    resp = await client.post(f"/v1/devices/{FP}/certificate", headers=auth_headers())
    assert resp.status_code == 404
    assert resp.json()["error"] == "DeviceNotRegistered"

    resp = await client.post("/v1/usage", json=_usage_payload(), headers=auth_headers())
    assert resp.status_code == 404
