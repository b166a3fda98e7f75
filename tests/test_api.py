"""End-to-end checks through the HTTP layer"""
BASE = "/api/v1/clinicians/clinician-1"
NEW_YORK = "America/New_York"


def _put_monday_rule(client, start="09:00", end="17:00"):
    response = client.put(f"{BASE}/availability/rules", json={
        "day_of_week": 0, "start_time": start, "end_time": end
    })
    assert response.status_code == 200, response.text
    return response.json()


def test_health(client):
    response = client.get("/health/")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Correlation-ID" in response.headers


def test_rule_lifecycle(client):
    rule = _put_monday_rule(client)
    again = _put_monday_rule(client)
    assert again["id"] == rule["id"]
    assert rule["status"] == "active"

    listed = client.get(f"{BASE}/availability/rules").json()
    assert [r["id"] for r in listed] == [rule["id"]]

    response = client.post(f"{BASE}/availability/rules/{rule['id']}/deactivate")
    assert response.status_code == 200
    assert response.json()["status"] == "deactivated"
    assert client.get(f"{BASE}/availability/rules").json() == []


def test_inverted_rule_is_a_validation_error(client):
    response = client.put(f"{BASE}/availability/rules", json={
        "day_of_week": 0, "start_time": "17:00", "end_time": "09:00"
    })

    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"
    assert response.json()["field"] == "end_time"


def test_unknown_recurrence_pattern_names_the_field(client):
    response = client.post(f"{BASE}/appointments", json={
        "client_id": "client-1",
        "start_date": "2024-01-01",
        "start_time": "09:00",
        "time_zone": NEW_YORK,
        "recurrence_pattern": "monthly"
    })

    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"
    assert response.json()["field"] == "recurrence_pattern"


def test_missing_schedule_zone_names_the_field(client):
    response = client.get(f"{BASE}/availability/days/2024-03-11")

    assert response.status_code == 422
    assert response.json()["field"] == "time_zone"


def test_day_resolution_with_override(client):
    rule = _put_monday_rule(client)
    response = client.put(
        f"{BASE}/availability/rules/{rule['id']}/occurrences/2024-03-11",
        json={"start_time": "10:00", "end_time": "14:00"}
    )
    assert response.status_code == 200
    assert response.json()["kind"] == "override"

    day = client.get(f"{BASE}/availability/days/2024-03-11", params={"time_zone": NEW_YORK}).json()
    next_week = client.get(f"{BASE}/availability/days/2024-03-18", params={"time_zone": NEW_YORK}).json()

    assert [(w["start"], w["end"]) for w in day["windows"]] == [("10:00", "14:00")]
    assert [(w["start"], w["end"]) for w in next_week["windows"]] == [("09:00", "17:00")]
    assert day["display_time_zone"] == NEW_YORK


def test_cancelled_occurrence_and_standalone(client):
    rule = _put_monday_rule(client)
    response = client.delete(f"{BASE}/availability/rules/{rule['id']}/occurrences/2024-03-11")
    assert response.status_code == 200
    assert response.json()["is_deleted"] is True

    response = client.put(f"{BASE}/availability/standalone/2024-03-16", json={
        "start_time": "10:00", "end_time": "12:00"
    })
    assert response.json()["kind"] == "standalone"

    resolved = client.get(f"{BASE}/availability", params={
        "start_date": "2024-03-11", "end_date": "2024-03-18", "time_zone": NEW_YORK
    }).json()
    assert sorted(resolved["days"]) == ["2024-03-16", "2024-03-18"]

    exceptions = client.get(f"{BASE}/availability/exceptions", params={
        "start_date": "2024-03-01", "end_date": "2024-03-31"
    }).json()
    assert len(exceptions) == 2

    # Referenced by an exception, so only deactivation is allowed
    response = client.delete(f"{BASE}/availability/rules/{rule['id']}")
    assert response.status_code == 409
    assert response.json()["error"] == "conflict"


def test_wrong_weekday_names_the_field(client):
    rule = _put_monday_rule(client)

    response = client.put(
        f"{BASE}/availability/rules/{rule['id']}/occurrences/2024-03-12",
        json={"start_time": "10:00", "end_time": "14:00"}
    )

    assert response.status_code == 422
    assert response.json()["field"] == "specific_date"


def test_unknown_zone_on_resolution(client):
    response = client.get(f"{BASE}/availability/days/2024-03-11", params={"time_zone": "Nowhere/Land"})

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_time_zone"


def test_book_and_cancel_series(client):
    response = client.post(f"{BASE}/appointments", json={
        "client_id": "client-1",
        "start_date": "2024-03-04",
        "start_time": "10:00",
        "time_zone": NEW_YORK,
        "recurrence_pattern": "weekly",
        "horizon_months": 1
    })
    assert response.status_code == 201, response.text
    created = response.json()
    assert created["total_created"] == 5
    assert created["appointments"][0]["start_at"] == "2024-03-04T15:00:00+00:00"
    assert created["appointments"][1]["start_at"] == "2024-03-11T14:00:00+00:00"

    series = client.get(f"{BASE}/appointments/series/{created['recurring_group_id']}").json()
    assert series["open_occurrences"] == 5

    third = created["appointments"][2]["id"]
    response = client.post(f"{BASE}/appointments/{third}/cancel", json={"scope": "following"})
    assert response.json()["total_cancelled"] == 3

    detail = client.get(f"{BASE}/appointments/{third}", params={"display_time_zone": "Europe/London"}).json()
    assert detail["status"] == "cancelled"
    assert detail["display"]["time_zone"] == "Europe/London"


def test_booking_in_a_dst_gap_is_rejected(client):
    response = client.post(f"{BASE}/appointments", json={
        "client_id": "client-1",
        "start_date": "2024-03-10",
        "start_time": "02:30",
        "time_zone": NEW_YORK
    })

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "invalid_local_time"
    assert body["field"] == "start_time"
    assert "2024-03-10 02:30" in body["detail"]
    assert client.get(f"{BASE}/appointments").json()["total_appointments"] == 0


def test_invalid_display_zone_falls_back_to_schedule_zone(client):
    _put_monday_rule(client)

    day = client.get(f"{BASE}/availability/days/2024-03-11", params={
        "time_zone": NEW_YORK, "display_time_zone": "Nowhere/Land"
    }).json()

    assert day["display_time_zone"] == NEW_YORK
    assert day["windows"][0]["display"]["start"] == "09:00"


def test_dst_gap_day_does_not_fail_the_range(client):
    response = client.put(f"{BASE}/availability/rules", json={
        "day_of_week": 6, "start_time": "02:00", "end_time": "04:00"
    })
    assert response.status_code == 200

    response = client.get(f"{BASE}/availability", params={
        "start_date": "2024-03-03", "end_date": "2024-03-17", "time_zone": NEW_YORK
    })

    assert response.status_code == 200
    body = response.json()
    assert sorted(body["days"]) == ["2024-03-03", "2024-03-17"]
    assert body["errors"]["2024-03-10"]["error"] == "invalid_local_time"
