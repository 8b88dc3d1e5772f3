"""Tests for the HTTP API."""

from fastapi.testclient import TestClient

APPOINTMENTS = "/api/v1/appointments"
ENCOUNTERS = "/api/v1/encounters"
IMAGING = "/api/v1/imaging"


def book(client: TestClient, start: str = "2025-03-10T09:00:00Z", **overrides) -> dict:
    payload = {"patient_id": "PAT001", "provider_id": "PROV001", "start": start, "duration": 30}
    payload.update(overrides)
    response = client.post(APPOINTMENTS, json=payload, headers={"X-Actor-Id": "FD01"})
    assert response.status_code == 201, response.text
    return response.json()


class TestAppointmentRoutes:
    """Tests for /appointments."""

    def test_create_and_get(self, client: TestClient) -> None:
        """A booked appointment can be fetched back with its names."""
        created = book(client)

        response = client.get(f"{APPOINTMENTS}/{created['id']}")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "booked"
        assert data["end"].startswith("2025-03-10T09:30:00")
        assert data["patient"] == {"id": "PAT001", "name": "John Smith"}
        assert data["created_by"] == "FD01"
        assert data["version"] == 1

    def test_overlap_returns_409_with_code(self, client: TestClient) -> None:
        """Double booking maps to 409 slot_not_available."""
        book(client)

        response = client.post(
            APPOINTMENTS,
            json={"patient_id": "PAT002", "provider_id": "PROV001", "start": "2025-03-10T09:15:00Z", "duration": 30},
        )

        assert response.status_code == 409
        assert response.json()["code"] == "slot_not_available"

    def test_unknown_id_returns_404(self, client: TestClient) -> None:
        """Unknown ids map to 404 not_found."""
        response = client.get(f"{APPOINTMENTS}/apt-missing")

        assert response.status_code == 404
        assert response.json() == {"detail": "appointment not found: apt-missing", "code": "not_found"}

    def test_invalid_transition_returns_409(self, client: TestClient) -> None:
        """Completing a booked appointment maps to 409 invalid_transition."""
        created = book(client)

        response = client.post(f"{APPOINTMENTS}/{created['id']}/complete")

        assert response.status_code == 409
        assert response.json()["code"] == "invalid_transition"

    def test_zero_duration_returns_422(self, client: TestClient) -> None:
        """Engine validation errors map to 422 validation_error."""
        response = client.post(
            APPOINTMENTS,
            json={"patient_id": "PAT001", "provider_id": "PROV001", "start": "2025-03-10T09:00:00Z", "duration": 0},
        )

        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"

    def test_lifecycle_routes(self, client: TestClient) -> None:
        """check-in, start and complete chain through the API."""
        created = book(client)
        apt_id = created["id"]

        for action, expected in [
            ("check-in", "checked-in"),
            ("start", "in-progress"),
            ("complete", "fulfilled"),
        ]:
            response = client.post(f"{APPOINTMENTS}/{apt_id}/{action}", headers={"X-Actor-Id": "FD01"})
            assert response.status_code == 200, response.text
            assert response.json()["status"] == expected

    def test_cancel_with_reason(self, client: TestClient) -> None:
        """The cancel body carries the reason."""
        created = book(client)

        response = client.post(f"{APPOINTMENTS}/{created['id']}/cancel", json={"reason": "Travel"})

        assert response.status_code == 200
        assert response.json()["cancellation_reason"] == "Travel"

    def test_stale_version_returns_409(self, client: TestClient) -> None:
        """expected_version in the body turns the write into compare-and-swap."""
        created = book(client)
        client.post(f"{APPOINTMENTS}/{created['id']}/send-reminder")

        response = client.post(f"{APPOINTMENTS}/{created['id']}/cancel", json={"expected_version": 1})

        assert response.status_code == 409
        assert response.json()["code"] == "conflict"

    def test_patch_reschedules(self, client: TestClient) -> None:
        """PATCH moves the start and recomputes the end."""
        created = book(client)

        response = client.patch(
            f"{APPOINTMENTS}/{created['id']}",
            json={"start": "2025-03-10T14:00:00Z", "expected_version": 1},
        )

        assert response.status_code == 200
        assert response.json()["end"].startswith("2025-03-10T14:30:00")

    def test_slots(self, client: TestClient) -> None:
        """The slots endpoint flags the booked window."""
        book(client)

        response = client.get(
            f"{APPOINTMENTS}/slots",
            params={"provider_id": "PROV001", "date": "2025-03-10", "duration": 30},
        )

        assert response.status_code == 200
        slots = response.json()
        assert len(slots) == 16
        assert [s["start"][:16] for s in slots if not s["is_available"]] == ["2025-03-10T09:00"]

    def test_search_paging(self, client: TestClient) -> None:
        """Search returns a page envelope."""
        for hour in ("08", "09", "10"):
            book(client, start=f"2025-03-10T{hour}:00:00Z")

        response = client.get(APPOINTMENTS, params={"page": 2, "page_size": 2, "status": "booked"})

        data = response.json()
        assert data["total"] == 3
        assert data["total_pages"] == 2
        assert len(data["items"]) == 1
        assert data["items"][0]["start"].startswith("2025-03-10T10:00:00")


    def test_error_schema_documented(self, client: TestClient) -> None:
        """Domain routes document the engine error body."""
        schema = client.get("/openapi.json").json()

        assert "ErrorResponse" in schema["components"]["schemas"]
        assert "409" in schema["paths"]["/api/v1/appointments/{appointment_id}/cancel"]["post"]["responses"]


class TestEncounterRoutes:
    """Tests for /encounters."""

    def test_document_sign_and_addend(self, client: TestClient) -> None:
        """Open, document, sign and addend an encounter."""
        headers = {"X-Actor-Id": "PROV001"}
        created = client.post(
            ENCOUNTERS, json={"patient_id": "PAT001", "provider_id": "PROV001"}, headers=headers
        ).json()
        enc_id = created["id"]

        response = client.patch(
            f"{ENCOUNTERS}/{enc_id}/sections",
            json={"subjective": {"chief_complaint": "Headache"}},
            headers=headers,
        )
        assert response.json()["subjective"]["chief_complaint"] == "Headache"

        response = client.put(f"{ENCOUNTERS}/{enc_id}/vitals", json={"height_cm": 160, "weight_kg": 80})
        assert response.json()["vital_signs"]["bmi"] == 31.2

        response = client.post(f"{ENCOUNTERS}/{enc_id}/sign", headers=headers)
        assert response.status_code == 200
        assert response.json()["status"] == "finished"

        response = client.post(f"{ENCOUNTERS}/{enc_id}/addenda", json={"text": "Labs normal"}, headers=headers)
        assert response.status_code == 201
        assert response.json()["addenda"][0]["author"] == "PROV001"

        response = client.patch(f"{ENCOUNTERS}/{enc_id}/sections", json={"plan": {"treatment_plan": "x"}})
        assert response.status_code == 409

    def test_sign_requires_actor(self, client: TestClient) -> None:
        """Signing without X-Actor-Id is rejected."""
        created = client.post(ENCOUNTERS, json={"patient_id": "PAT001", "provider_id": "PROV001"}).json()

        response = client.post(f"{ENCOUNTERS}/{created['id']}/sign")

        assert response.status_code == 422

    def test_templates(self, client: TestClient) -> None:
        """Template catalogue is listed and applicable."""
        created = client.post(ENCOUNTERS, json={"patient_id": "PAT001", "provider_id": "PROV001"}).json()

        templates = client.get(f"{ENCOUNTERS}/templates").json()
        response = client.post(f"{ENCOUNTERS}/{created['id']}/apply-template/tmpl-004")

        assert len(templates) == 5
        assert response.status_code == 200
        assert response.json()["assessment"]["diagnoses"][0]["code"] == "I10"


class TestImagingRoutes:
    """Tests for /imaging."""

    def test_critical_finding_workflow(self, client: TestClient) -> None:
        """Order, perform, report critical, acknowledge."""
        order = client.post(
            f"{IMAGING}/orders",
            json={
                "patient_id": "PAT001",
                "ordering_provider_id": "PROV001",
                "modality": "ct",
                "procedure_code": "71275",
                "body_region": "chest",
            },
        ).json()
        order_id = order["id"]

        client.post(f"{IMAGING}/orders/{order_id}/schedule", json={"scheduled_date": "2025-03-10T10:00:00Z"})
        client.post(f"{IMAGING}/orders/{order_id}/start")
        client.post(f"{IMAGING}/orders/{order_id}/complete")
        response = client.post(
            f"{IMAGING}/orders/{order_id}/report",
            json={"findings": "PE", "impression": "PE", "final": True, "has_critical_findings": True},
            headers={"X-Actor-Id": "RAD001"},
        )
        assert response.json()["status"] == "final"
        assert response.json()["reading_radiologist_id"] == "RAD001"

        outstanding = client.get(f"{IMAGING}/critical-findings/outstanding").json()
        assert [o["id"] for o in outstanding] == [order_id]

        response = client.post(
            f"{IMAGING}/orders/{order_id}/acknowledge-critical", json={"acknowledged_by": "PROV001"}
        )
        assert response.status_code == 200
        assert response.json()["report"]["critical_finding_communicated_to"] == "PROV001"

        stats = client.get(f"{IMAGING}/statistics").json()
        assert stats["outstanding_critical_findings"] == 0
        assert stats["critical_findings"] == 1

    def test_catalogue_routes(self, client: TestClient) -> None:
        """Procedures and facilities are listed and filterable."""
        procedures = client.get(f"{IMAGING}/procedures", params={"modality": "mri", "body_region": "head"})
        by_cpt = client.get(f"{IMAGING}/procedures/71275")
        missing = client.get(f"{IMAGING}/procedures/NOPE")
        facilities = client.get(f"{IMAGING}/facilities", params={"modality": "pet"})

        assert [p["procedure_code"] for p in procedures.json()] == ["MRI-BRAIN-WO", "MRI-BRAIN-WWO"]
        assert by_cpt.json()["procedure_code"] == "CTA-CHEST-PE"
        assert missing.status_code == 404
        assert [f["id"] for f in facilities.json()] == ["fac-004"]

    def test_schedule_at_unsuitable_facility_returns_422(self, client: TestClient) -> None:
        """Scheduling a CT where no CT is available is a validation error."""
        order = client.post(
            f"{IMAGING}/orders",
            json={
                "patient_id": "PAT001",
                "ordering_provider_id": "PROV001",
                "modality": "ct",
                "procedure_code": "CT-HEAD-WO",
                "body_region": "head",
            },
        ).json()

        response = client.post(
            f"{IMAGING}/orders/{order['id']}/schedule",
            json={"scheduled_date": "2025-03-10T10:00:00Z", "facility_id": "fac-001"},
        )

        assert order["procedure_name"] == "CT Head without Contrast"
        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"

    def test_acknowledge_requires_someone(self, client: TestClient) -> None:
        """Acknowledgment with neither body nor header is a validation error."""
        response = client.post(f"{IMAGING}/orders/img-missing/acknowledge-critical")

        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"

    def test_blank_procedure_code_rejected(self, client: TestClient) -> None:
        """Request validation rejects an empty procedure code."""
        response = client.post(
            f"{IMAGING}/orders",
            json={
                "patient_id": "PAT001",
                "ordering_provider_id": "PROV001",
                "modality": "xray",
                "procedure_code": "",
                "body_region": "chest",
            },
        )

        assert response.status_code == 422
