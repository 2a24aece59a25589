from datetime import date, timedelta

def visit_payload(doctor_id, **overrides):
    payload = {
        "doctor_id": doctor_id,
        "consultation_type": "home_visit",
        "visit_type": "General Checkup",
        "preferred_date": (date.today() + timedelta(days=1)).isoformat(),
        "preferred_time": "10:00 AM",
        "symptoms": "Persistent cough for a week",
        "urgency": "medium",
        "payment_method": "cash",
    }
    payload.update(overrides)
    return payload

class TestVisitBooking:

    def test_book_home_visit(self, client, doctor_id, patient_headers):
        response = client.post("/api/v1/visits", json=visit_payload(doctor_id), headers=patient_headers)
        assert response.status_code == 201

        data = response.json()
        assert data["status"] == "pending"
        assert data["fee"] == 800
        assert data["doctor_name"] == "Dr. Asha Mehta"
        assert data["patient_name"] == "Riya Sen"
        # Contact details default from the patient profile
        assert data["address"] == "4 Lake Road, Kolkata"
        assert data["phone"] == "9800000000"

    def test_online_consultation_uses_consultation_fee(self, client, doctor_id, patient_headers):
        response = client.post(
            "/api/v1/visits",
            json=visit_payload(doctor_id, consultation_type="online", payment_method="online"),
            headers=patient_headers
        )
        assert response.status_code == 201
        assert response.json()["fee"] == 500

    def test_home_visit_needs_address(self, client, doctor_id, make_patient):
        headers = make_patient(email="noaddress@example.com", name="No Address")

        response = client.post("/api/v1/visits", json=visit_payload(doctor_id), headers=headers)
        assert response.status_code == 400

    def test_past_date_rejected(self, client, doctor_id, patient_headers):
        yesterday = (date.today() - timedelta(days=1)).isoformat()

        response = client.post(
            "/api/v1/visits",
            json=visit_payload(doctor_id, preferred_date=yesterday),
            headers=patient_headers
        )
        assert response.status_code == 422

    def test_unknown_time_slot(self, client, doctor_id, patient_headers):
        response = client.post(
            "/api/v1/visits",
            json=visit_payload(doctor_id, preferred_time="1:00 PM"),
            headers=patient_headers
        )
        assert response.status_code == 422

    def test_unknown_doctor(self, client, patient_headers):
        response = client.post("/api/v1/visits", json=visit_payload(9999), headers=patient_headers)
        assert response.status_code == 404

    def test_doctor_is_notified(self, client, doctor_id, doctor_headers, patient_headers):
        client.post("/api/v1/visits", json=visit_payload(doctor_id), headers=patient_headers)

        response = client.get("/api/v1/notifications", headers=doctor_headers)
        data = response.json()
        assert data["unread_count"] == 1
        assert data["notifications"][0]["notification_type"] == "visit_booked"

    def test_booking_options(self, client, test_db):
        response = client.get("/api/v1/visits/options")
        assert response.status_code == 200
        assert "9:00 AM" in response.json()["time_slots"]
        assert "Wound Care" in response.json()["visit_types"]

class TestVisitLifecycle:

    def test_list_for_both_parties(self, client, doctor_id, doctor_headers, patient_headers):
        client.post("/api/v1/visits", json=visit_payload(doctor_id), headers=patient_headers)

        assert len(client.get("/api/v1/visits", headers=patient_headers).json()) == 1
        assert len(client.get("/api/v1/visits", headers=doctor_headers).json()) == 1

    def test_other_patient_cannot_see_visit(self, client, doctor_id, patient_headers, make_patient):
        visit = client.post("/api/v1/visits", json=visit_payload(doctor_id), headers=patient_headers).json()
        other = make_patient(email="other@example.com", name="Other Patient")

        response = client.get(f"/api/v1/visits/{visit['id']}", headers=other)
        assert response.status_code == 404

    def test_doctor_confirms_and_completes(self, client, doctor_id, doctor_headers, patient_headers):
        visit = client.post("/api/v1/visits", json=visit_payload(doctor_id), headers=patient_headers).json()

        response = client.patch(f"/api/v1/visits/{visit['id']}/status",
                                json={"status": "confirmed"}, headers=doctor_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "confirmed"

        response = client.patch(f"/api/v1/visits/{visit['id']}/status",
                                json={"status": "completed"}, headers=doctor_headers)
        assert response.json()["status"] == "completed"

        # Completed is final
        response = client.patch(f"/api/v1/visits/{visit['id']}/status",
                                json={"status": "cancelled"}, headers=patient_headers)
        assert response.status_code == 409

        notifications = client.get("/api/v1/notifications", headers=patient_headers).json()
        assert [n["notification_type"] for n in notifications["notifications"]] == [
            "visit_update", "visit_update"
        ]

    def test_patient_can_only_cancel(self, client, doctor_id, patient_headers):
        visit = client.post("/api/v1/visits", json=visit_payload(doctor_id), headers=patient_headers).json()

        response = client.patch(f"/api/v1/visits/{visit['id']}/status",
                                json={"status": "confirmed"}, headers=patient_headers)
        assert response.status_code == 403

        response = client.patch(f"/api/v1/visits/{visit['id']}/status",
                                json={"status": "cancelled", "reason": "Feeling better"},
                                headers=patient_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert response.json()["cancelled_reason"] == "Feeling better"
