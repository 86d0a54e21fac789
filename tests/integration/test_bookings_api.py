import pytest


@pytest.fixture()
def player(register_and_login):
    headers, player_id = register_and_login("jugador@example.com", full_name="Jugador Uno")
    return {"headers": headers, "id": player_id}


def _payload(venue_with_court: dict, player_id: str, **overrides) -> dict:
    payload = {
        "venue_id": venue_with_court["venue_id"],
        "court_id": venue_with_court["court_id"],
        "player_id": player_id,
        "date": "2026-11-02",
        "start_time": "14:00",
        "price": 120000,
    }
    payload.update(overrides)
    return payload


def test_player_creates_booking(client, venue_with_court, player, dispatcher):
    response = client.post("/bookings", headers=player["headers"], json=_payload(venue_with_court, player["id"]))

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["id"]
    assert data["start_time"] == "14:00"
    assert data["end_time"] == "15:00"
    assert data["status"] == "ACTIVE"
    assert data["payment_status"] == "PENDING"
    assert [(event, str(booking_id)) for event, booking_id in dispatcher.events] == [("booking_created", data["id"])]


def test_booking_keeps_submitted_status(client, venue_with_court, player):
    response = client.post(
        "/bookings",
        headers=player["headers"],
        json=_payload(venue_with_court, player["id"], status="CONFIRMED", payment_status="PAID"),
    )

    assert response.status_code == 201
    assert response.json()["status"] == "CONFIRMED"
    assert response.json()["payment_status"] == "PAID"


def test_half_hour_start_is_rejected_with_spanish_message(client, venue_with_court, player):
    response = client.post(
        "/bookings",
        headers=player["headers"],
        json=_payload(venue_with_court, player["id"], start_time="14:30"),
    )

    assert response.status_code == 422
    body = response.json()
    assert body["error"]["code"] == "validation_error"
    assert "horas exactas" in body["error"]["message"]


def test_invalid_date_format_is_rejected(client, venue_with_court, player):
    response = client.post(
        "/bookings",
        headers=player["headers"],
        json=_payload(venue_with_court, player["id"], date="02/11/2026"),
    )

    assert response.status_code == 422
    assert response.json()["error"]["message"] == "Formato de fecha inválido (YYYY-MM-DD)"


def test_same_slot_twice_returns_conflict_code(client, venue_with_court, player):
    first = client.post("/bookings", headers=player["headers"], json=_payload(venue_with_court, player["id"]))
    second = client.post("/bookings", headers=player["headers"], json=_payload(venue_with_court, player["id"]))

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json()["error"]["code"] == "HORARIO_OCUPADO"


def test_partial_overlap_returns_conflict(client, venue_with_court, player):
    first = client.post(
        "/bookings",
        headers=player["headers"],
        json=_payload(venue_with_court, player["id"], start_time="14:00", end_time="16:00"),
    )
    second = client.post(
        "/bookings",
        headers=player["headers"],
        json=_payload(venue_with_court, player["id"], start_time="15:00", end_time="16:00"),
    )

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json()["detail"] == "HORARIO_OCUPADO"


def test_adjacent_slot_is_free(client, venue_with_court, player):
    first = client.post("/bookings", headers=player["headers"], json=_payload(venue_with_court, player["id"]))
    second = client.post(
        "/bookings",
        headers=player["headers"],
        json=_payload(venue_with_court, player["id"], start_time="15:00"),
    )

    assert first.status_code == 201
    assert second.status_code == 201


def test_player_cannot_book_for_someone_else(client, venue_with_court, player, register_and_login):
    _, other_id = register_and_login("otro@example.com")

    response = client.post("/bookings", headers=player["headers"], json=_payload(venue_with_court, other_id))

    assert response.status_code == 403


def test_owner_books_on_behalf_of_player(client, venue_with_court, player):
    response = client.post(
        "/bookings",
        headers=venue_with_court["owner_headers"],
        json=_payload(venue_with_court, player["id"], player_name="Cliente Telefónico", player_phone="0981123456"),
    )

    assert response.status_code == 201
    assert response.json()["player_name"] == "Cliente Telefónico"


def test_owner_cannot_book_in_foreign_venue(client, venue_with_court, player, register_and_login):
    other_owner_headers, _ = register_and_login("otro-dueno@example.com", role="OWNER")

    response = client.post("/bookings", headers=other_owner_headers, json=_payload(venue_with_court, player["id"]))

    assert response.status_code == 403


def test_court_must_belong_to_venue(client, venue_with_court, player):
    other_venue = client.post(
        "/venues",
        headers=venue_with_court["owner_headers"],
        json={
            "name": "Segundo Complejo",
            "address": "Ruta 2 km 20",
            "courts": [{"name": "Cancha A", "type": "Futbol 5", "price_per_hour": 200000}],
        },
    ).json()

    response = client.post(
        "/bookings",
        headers=player["headers"],
        json=_payload(venue_with_court, player["id"], court_id=other_venue["courts"][0]["id"]),
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "Court not found"


def test_cancel_frees_the_slot(client, venue_with_court, player, dispatcher):
    created = client.post("/bookings", headers=player["headers"], json=_payload(venue_with_court, player["id"]))
    booking_id = created.json()["id"]

    cancelled = client.patch(f"/bookings/{booking_id}/cancel", headers=player["headers"])
    again = client.post("/bookings", headers=player["headers"], json=_payload(venue_with_court, player["id"]))

    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "CANCELLED"
    assert cancelled.json()["cancelled_at"] is not None
    assert again.status_code == 201
    assert [event for event, _ in dispatcher.events] == ["booking_created", "booking_cancelled", "booking_created"]


def test_cancel_twice_is_idempotent(client, venue_with_court, player, dispatcher):
    booking_id = client.post(
        "/bookings", headers=player["headers"], json=_payload(venue_with_court, player["id"])
    ).json()["id"]

    first = client.patch(f"/bookings/{booking_id}/cancel", headers=player["headers"])
    second = client.patch(f"/bookings/{booking_id}/cancel", headers=player["headers"])

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json()["cancelled_at"] == first.json()["cancelled_at"]
    assert [event for event, _ in dispatcher.events].count("booking_cancelled") == 1


def test_stranger_cannot_read_booking(client, venue_with_court, player, register_and_login):
    booking_id = client.post(
        "/bookings", headers=player["headers"], json=_payload(venue_with_court, player["id"])
    ).json()["id"]
    stranger_headers, _ = register_and_login("curioso@example.com")

    as_player = client.get(f"/bookings/{booking_id}", headers=player["headers"])
    as_owner = client.get(f"/bookings/{booking_id}", headers=venue_with_court["owner_headers"])
    as_stranger = client.get(f"/bookings/{booking_id}", headers=stranger_headers)

    assert as_player.status_code == 200
    assert as_owner.status_code == 200
    assert as_stranger.status_code == 403


def test_unknown_booking_returns_404(client, player):
    response = client.get("/bookings/00000000-0000-0000-0000-000000000000", headers=player["headers"])
    assert response.status_code == 404


def test_reschedule_within_own_interval(client, venue_with_court, player):
    booking_id = client.post(
        "/bookings",
        headers=player["headers"],
        json=_payload(venue_with_court, player["id"], start_time="14:00", end_time="16:00"),
    ).json()["id"]

    response = client.patch(
        f"/bookings/{booking_id}/reschedule",
        headers=player["headers"],
        json={"date": "2026-11-02", "start_time": "15:00", "end_time": "17:00"},
    )

    assert response.status_code == 200
    assert response.json()["start_time"] == "15:00"
    assert response.json()["end_time"] == "17:00"


def test_reschedule_onto_other_booking_conflicts(client, venue_with_court, player):
    client.post("/bookings", headers=player["headers"], json=_payload(venue_with_court, player["id"], start_time="18:00"))
    booking_id = client.post(
        "/bookings", headers=player["headers"], json=_payload(venue_with_court, player["id"])
    ).json()["id"]

    response = client.patch(
        f"/bookings/{booking_id}/reschedule",
        headers=player["headers"],
        json={"date": "2026-11-02", "start_time": "18:00"},
    )

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "HORARIO_OCUPADO"


def test_list_my_bookings_filters_by_status(client, venue_with_court, player):
    first = client.post("/bookings", headers=player["headers"], json=_payload(venue_with_court, player["id"])).json()
    client.post("/bookings", headers=player["headers"], json=_payload(venue_with_court, player["id"], start_time="20:00"))
    client.patch(f"/bookings/{first['id']}/cancel", headers=player["headers"])

    everything = client.get("/bookings/me", headers=player["headers"])
    active = client.get("/bookings/me?status=ACTIVE", headers=player["headers"])

    assert everything.status_code == 200
    assert len(everything.json()) == 2
    assert [booking["start_time"] for booking in active.json()] == ["20:00"]


def test_owner_listing_includes_display_fields(client, venue_with_court, player):
    client.post("/bookings", headers=player["headers"], json=_payload(venue_with_court, player["id"]))

    response = client.get("/bookings/owner", headers=venue_with_court["owner_headers"])

    assert response.status_code == 200
    [booking] = response.json()
    assert booking["venue_name"] == "Complejo Central"
    assert booking["court_name"] == "Cancha 1"
    assert booking["court_type"] == "Padel"
    assert booking["player_display_name"] == "Jugador Uno"


def test_player_cannot_use_owner_listing(client, player):
    response = client.get("/bookings/owner", headers=player["headers"])
    assert response.status_code == 403


def test_court_day_lists_occupied_intervals(client, venue_with_court, player):
    client.post("/bookings", headers=player["headers"], json=_payload(venue_with_court, player["id"], start_time="09:00"))
    cancelled = client.post(
        "/bookings", headers=player["headers"], json=_payload(venue_with_court, player["id"], start_time="11:00")
    ).json()
    client.patch(f"/bookings/{cancelled['id']}/cancel", headers=player["headers"])

    response = client.get(f"/courts/{venue_with_court['court_id']}/bookings?date=2026-11-02")

    assert response.status_code == 200
    assert [(item["start_time"], item["end_time"]) for item in response.json()] == [("09:00", "10:00")]


@pytest.mark.parametrize("locked_status", ["CONFIRMED", "COMPLETED"])
def test_reschedule_rejects_confirmed_or_completed_booking(client, venue_with_court, player, locked_status):
    booking_id = client.post(
        "/bookings",
        headers=player["headers"],
        json=_payload(venue_with_court, player["id"], status=locked_status),
    ).json()["id"]

    response = client.patch(
        f"/bookings/{booking_id}/reschedule",
        headers=player["headers"],
        json={"date": "2026-11-03", "start_time": "18:00"},
    )

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "validation_error"
    assert "no puede modificarse" in response.json()["error"]["message"]
    stored = client.get(f"/bookings/{booking_id}", headers=player["headers"]).json()
    assert (stored["date"], stored["start_time"]) == ("2026-11-02", "14:00")


def test_integral_float_price_is_stored_as_integer(client, venue_with_court, player):
    response = client.post(
        "/bookings",
        headers=player["headers"],
        json=_payload(venue_with_court, player["id"], price=120000.0),
    )

    assert response.status_code == 201, response.text
    assert response.json()["price"] == 120000


def _recurring_payload(venue_with_court: dict, player_id: str, **overrides) -> dict:
    payload = {
        "venue_id": venue_with_court["venue_id"],
        "court_id": venue_with_court["court_id"],
        "player_id": player_id,
        "start_date": "2026-11-01",
        "end_date": "2026-11-30",
        "day_of_week": 1,
        "start_time": "20:00",
        "price": 120000,
    }
    payload.update(overrides)
    return payload


def test_owner_creates_recurring_bookings_with_partial_conflicts(client, venue_with_court, player, dispatcher):
    client.post(
        "/bookings",
        headers=player["headers"],
        json=_payload(venue_with_court, player["id"], date="2026-11-16", start_time="20:00"),
    )

    response = client.post(
        "/bookings/recurring",
        headers=venue_with_court["owner_headers"],
        json=_recurring_payload(venue_with_court, player["id"]),
    )

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["success"] == 4
    assert data["failures"] == 1
    assert data["failed_dates"] == ["2026-11-16"]
    assert [booking["date"] for booking in data["bookings"]] == [
        "2026-11-02",
        "2026-11-09",
        "2026-11-23",
        "2026-11-30",
    ]
    assert {booking["notes"] for booking in data["bookings"]} == {"Reserva Recurrente"}
    assert len(dispatcher.events) == 5


def test_recurring_bookings_all_occupied_returns_conflict(client, venue_with_court, player):
    client.post(
        "/bookings",
        headers=player["headers"],
        json=_payload(venue_with_court, player["id"], date="2026-11-02", start_time="20:00"),
    )

    response = client.post(
        "/bookings/recurring",
        headers=venue_with_court["owner_headers"],
        json=_recurring_payload(venue_with_court, player["id"], end_date="2026-11-07"),
    )

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "HORARIO_OCUPADO"


def test_recurring_bookings_are_owner_only(client, venue_with_court, player):
    response = client.post(
        "/bookings/recurring",
        headers=player["headers"],
        json=_recurring_payload(venue_with_court, player["id"]),
    )

    assert response.status_code == 403


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"end_date": "2026-10-01"}, "La fecha de fin debe ser igual o posterior a la fecha de inicio"),
        ({"day_of_week": 7}, "Día de la semana inválido (0 = domingo, 6 = sábado)"),
        ({"end_date": "2027-12-31"}, "El rango de fechas no puede superar un año"),
        ({"end_date": "2026-11-01"}, "El rango de fechas no incluye el día de la semana elegido"),
    ],
)
def test_recurring_bookings_validate_the_range(client, venue_with_court, player, overrides, message):
    response = client.post(
        "/bookings/recurring",
        headers=venue_with_court["owner_headers"],
        json=_recurring_payload(venue_with_court, player["id"], **overrides),
    )

    assert response.status_code == 422
    assert response.json()["error"]["message"] == message
