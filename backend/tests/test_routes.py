import pytest

from multiplier_api.auth import create_session_token, extract_identity_from_token
from multiplier_api.config import get_settings
from multiplier_api.models import ANONYMOUS

PREFIX = get_settings().api_prefix


def preset_body(**overrides):
    body = {"name": "Pad", "preset_number": 1, "params_json": {"ratios": [1, 2, 3]}}
    body.update(overrides)
    return body


def freq_body(**overrides):
    body = {
        "name": "Harmonics",
        "preset_number": 3,
        "base_freq": 220,
        "multiplier": "1.5",
        "params_json": {"steps": [0, 4, 7]},
    }
    body.update(overrides)
    return body


@pytest.mark.parametrize("headers", [{}, {"X-WP-Nonce": "not-a-token"}])
def test_login_status_requires_valid_token(client, headers):
    response = client.get(f"{PREFIX}/login-status", headers=headers)

    assert response.status_code == 401
    assert response.json() == {
        "code": "rest_forbidden",
        "message": "Invalid or missing nonce",
        "data": {"status": 401},
    }


def test_login_status_for_anonymous_session(client, session_headers):
    response = client.get(f"{PREFIX}/login-status", headers=session_headers(0))

    assert response.status_code == 200
    assert response.json() == {
        "logged_in": False,
        "is_admin": False,
        "patreon_logged_in": False,
        "tier": "none",
        "patreon_tier_cents": None,
        "patreon_user_id": None,
        "patreon_email": None,
        "user_id": 0,
    }


@pytest.mark.parametrize("user_id,is_admin", [(0, False), (0, True), (-3, True)])
def test_session_without_user_is_anonymous(user_id, is_admin):
    identity = extract_identity_from_token(create_session_token(user_id, is_admin))

    assert identity is ANONYMOUS
    assert identity.logged_in is False
    assert identity.is_admin is False


def test_login_status_for_admin(client, session_headers):
    body = client.get(f"{PREFIX}/login-status", headers=session_headers(1, is_admin=True)).json()

    assert body["tier"] == "all-access"
    assert body["logged_in"] is True
    assert body["is_admin"] is True


def test_login_status_for_patron(client, fake_db, session_headers):
    fake_db.add_meta(4, "patreon_pledge_amount_cents", "300")

    body = client.get(f"{PREFIX}/login-status", headers=session_headers(4)).json()

    assert body["tier"] == "tier-3-or-higher"
    assert body["patreon_tier_cents"] == 300
    assert body["user_id"] == 4


def test_write_requires_token(client, fake_db):
    response = client.post(f"{PREFIX}/presets", json=preset_body())

    assert response.status_code == 401
    assert fake_db.rows("multiplier_preset") == []


def test_preset_upsert_round_trip(client, session_headers):
    headers = session_headers(9)

    created = client.post(f"{PREFIX}/presets", json=preset_body(), headers=headers).json()
    updated = client.post(
        f"{PREFIX}/presets",
        json=preset_body(name="Bells", params_json={"ratios": [2.5]}),
        headers=headers,
    ).json()

    assert created["row"] is None
    assert updated["preset_id"] == created["preset_id"]
    assert updated["row"]["name"] == "Pad"
    assert len(updated["updated_data"]) == 1

    listed = client.get(f"{PREFIX}/presets/9").json()
    assert listed[0]["name"] == "Bells"
    assert listed[0]["params_json"] == {"ratios": [2.5]}


def test_freq_array_upsert_coerces_numbers(client, session_headers):
    body = client.post(f"{PREFIX}/freq-arrays", json=freq_body(), headers=session_headers(9)).json()

    saved = body["updated_data"][0]
    assert body["success"] is True
    assert body["array_id"] == saved["array_id"]
    assert saved["base_freq"] == 220.0
    assert saved["multiplier"] == 1.5
    assert saved["params_json"] == {"steps": [0, 4, 7]}


def test_missing_field_returns_400(client, fake_db, session_headers):
    response = client.post(
        f"{PREFIX}/freq-arrays",
        json=freq_body(base_freq=None),
        headers=session_headers(9),
    )

    assert response.status_code == 400
    assert response.json() == {
        "code": "missing_data",
        "message": "Missing field: base_freq",
        "data": {"status": 400},
    }
    assert fake_db.rows("multiplier_freq_array") == []


def test_anonymous_write_is_missing_user_id(client, session_headers):
    response = client.post(f"{PREFIX}/presets", json=preset_body(), headers=session_headers(0))

    assert response.status_code == 400
    assert response.json()["message"] == "Missing field: user_id"


def test_explicit_user_id_is_honored(client, session_headers):
    client.post(f"{PREFIX}/presets", json=preset_body(user_id=12), headers=session_headers(9))

    assert len(client.get(f"{PREFIX}/presets/12").json()) == 1
    assert client.get(f"{PREFIX}/presets/9").json() == []


def test_explicit_user_id_ignored_when_untrusted(client, session_headers, settings, monkeypatch):
    monkeypatch.setattr(settings, "trust_client_user_id", False)

    client.post(f"{PREFIX}/presets", json=preset_body(user_id=12), headers=session_headers(9))

    assert client.get(f"{PREFIX}/presets/12").json() == []
    assert len(client.get(f"{PREFIX}/presets/9").json()) == 1


def test_malformed_body_returns_400(client, session_headers):
    response = client.post(
        f"{PREFIX}/presets",
        json=preset_body(preset_number="first"),
        headers=session_headers(9),
    )

    body = response.json()
    assert response.status_code == 400
    assert body["code"] == "invalid_data"
    assert body["data"]["errors"][0]["loc"] == ["body", "preset_number"]


def test_index_arrays_accumulate_over_http(client, session_headers):
    headers = session_headers(3)
    body = {"index_array": [0, 2, 4], "name": "Triad", "preset_number": 1}

    client.post(f"{PREFIX}/index-arrays", json=body, headers=headers)
    second = client.post(f"{PREFIX}/index-arrays", json=body, headers=headers).json()

    assert len(second["updated_data"]) == 2
    assert second["updated_data"][0]["index_array"] == "[0,2,4]"
    assert len(client.get(f"{PREFIX}/index-arrays/3").json()) == 2


def test_index_array_empty_name_rejected(client, session_headers):
    response = client.post(
        f"{PREFIX}/index-arrays",
        json={"index_array": "1,2", "name": "  ", "preset_number": 1},
        headers=session_headers(3),
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Missing field: name"


def test_list_all_freq_arrays_is_unscoped(client, session_headers):
    client.post(f"{PREFIX}/freq-arrays", json=freq_body(), headers=session_headers(1))
    client.post(f"{PREFIX}/freq-arrays", json=freq_body(), headers=session_headers(2))

    listed = client.get(f"{PREFIX}/freq-arrays").json()

    assert sorted(row["user_id"] for row in listed) == [1, 2]


def test_delete_returns_remaining_collection(client, session_headers):
    headers = session_headers(9)
    first = client.post(f"{PREFIX}/presets", json=preset_body(), headers=headers).json()
    client.post(f"{PREFIX}/presets", json=preset_body(preset_number=2), headers=headers)

    response = client.delete(f"{PREFIX}/presets/delete/{first['preset_id']}", headers=headers)

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert [row["preset_number"] for row in body["updated_data"]] == [2]


def test_delete_unknown_row_succeeds(client, session_headers):
    headers = session_headers(9)
    saved = client.post(f"{PREFIX}/freq-arrays", json=freq_body(), headers=headers).json()

    body = client.delete(f"{PREFIX}/freq-arrays/delete/404", headers=headers).json()

    assert body == {"success": True, "updated_data": saved["updated_data"]}


def test_delete_without_user_session(client, fake_db, session_headers):
    saved = client.post(f"{PREFIX}/presets", json=preset_body(), headers=session_headers(9)).json()

    response = client.delete(
        f"{PREFIX}/presets/delete/{saved['preset_id']}",
        headers=session_headers(0),
    )

    assert response.status_code == 200
    assert response.json() == {"user_logged_in": False}
    assert len(fake_db.rows("multiplier_preset")) == 1


def test_delete_without_token_is_401(client):
    assert client.delete(f"{PREFIX}/index-arrays/delete/1").status_code == 401


def test_owner_scoped_deletes(client, fake_db, session_headers, settings, monkeypatch):
    monkeypatch.setattr(settings, "owner_scoped_deletes", True)
    saved = client.post(f"{PREFIX}/presets", json=preset_body(), headers=session_headers(9)).json()

    client.delete(f"{PREFIX}/presets/delete/{saved['preset_id']}", headers=session_headers(10))

    assert len(fake_db.rows("multiplier_preset")) == 1


def test_store_failure_returns_500(client, fake_db, session_headers):
    fake_db.failures.add(("multiplier_preset", "insert"))

    response = client.post(f"{PREFIX}/presets", json=preset_body(), headers=session_headers(9))

    assert response.status_code == 500
    assert response.json()["code"] == "db_insert_error"


def test_health_and_process_time_header(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Process-Time" in response.headers
