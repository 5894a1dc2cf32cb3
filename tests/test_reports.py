from fastapi import status
from sqlalchemy import func, select

from app import crud, models
from app.auth import create_access_token, get_password_hash
from app.notifications import format_report_email


def create_owner(db_session, email="owner@example.com"):
    return crud.create_user_with_credential(
        db_session,
        full_name="Pet Owner",
        email=email,
        password_hash=get_password_hash("secret123"),
    )


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


def count_reports(db_session):
    return db_session.scalar(select(func.count()).select_from(models.Report))


def test_report_is_stored_and_owner_notified(client, db_session, outbox):
    owner = create_owner(db_session, email="Owner@Example.com")
    pet = crud.create_pet(db_session, owner.id, "Rex")

    response = client.post(
        "/reports",
        json={
            "petId": pet.id,
            "reporterName": "Bea",
            "reporterPhone": "555-0199",
            "location": "Near the bakery",
            "details": "Wearing a red collar",
        },
    )

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["petId"] == pet.id
    assert data["reporterName"] == "Bea"
    assert data["details"] == "Wearing a red collar"
    assert count_reports(db_session) == 1

    assert len(outbox.sent) == 1
    message = outbox.sent[0]
    assert message["to"] == "owner@example.com"
    assert message["subject"] == "Possible sighting of Rex"
    assert "Bea" in message["body"] and "555-0199" in message["body"]
    assert "Near the bakery" in message["body"]


def test_report_for_missing_pet_is_not_found(client, db_session, outbox):
    response = client.post(
        "/reports",
        json={"petId": 4242, "reporterName": "Bea", "reporterPhone": "555-0199"},
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "pet_not_found"
    assert count_reports(db_session) == 0
    assert outbox.sent == []


def test_report_missing_fields_is_bad_request(client, db_session):
    owner = create_owner(db_session)
    pet = crud.create_pet(db_session, owner.id, "Rex")
    response = client.post("/reports", json={"petId": pet.id, "reporterName": "Bea"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert count_reports(db_session) == 0


def test_notification_failure_keeps_report(client, db_session, outbox):
    owner = create_owner(db_session)
    pet = crud.create_pet(db_session, owner.id, "Rex")
    outbox.fail = True

    response = client.post(
        "/reports",
        json={"petId": pet.id, "reporterName": "Bea", "reporterPhone": "555-0199"},
    )

    assert response.status_code == status.HTTP_201_CREATED
    assert count_reports(db_session) == 1


def test_reports_are_never_indexed(client, db_session, search_index):
    owner = create_owner(db_session)
    pet = crud.create_pet(db_session, owner.id, "Rex")
    client.post(
        "/reports",
        json={"petId": pet.id, "reporterName": "Bea", "reporterPhone": "555-0199"},
    )
    assert search_index.documents == {}


def test_owner_lists_reports_of_their_pet(client, db_session):
    owner = create_owner(db_session)
    stranger = create_owner(db_session, email="stranger@example.com")
    pet = crud.create_pet(db_session, owner.id, "Rex")
    crud.create_report(db_session, pet.id, "Bea", "555-0199")
    crud.create_report(db_session, pet.id, "Carl", "555-0100", details="at the park")

    response = client.get(f"/my/pets/{pet.id}/reports", headers=auth_headers(owner))
    assert response.status_code == status.HTTP_200_OK
    assert [report["reporterName"] for report in response.json()] == ["Carl", "Bea"]

    forbidden = client.get(f"/my/pets/{pet.id}/reports", headers=auth_headers(stranger))
    assert forbidden.status_code == status.HTTP_403_FORBIDDEN


def test_report_email_escapes_reporter_input():
    subject, body = format_report_email(
        "Rex", "<script>", "555", location=None, details="a & b"
    )
    assert subject == "Possible sighting of Rex"
    assert "<script>" not in body
    assert "&lt;script&gt;" in body
    assert "a &amp; b" in body
    assert "Location" not in body
