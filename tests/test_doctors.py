from datetime import date

from tests.conftest import DOCTOR_PROFILE, PASSWORD, auth_headers, login

class TestDoctorRegistration:

    def test_register_profile(self, client, make_doctor):
        headers = make_doctor()

        response = client.get("/api/v1/doctors/me", headers=headers)
        assert response.status_code == 200

        data = response.json()
        assert data["name"] == DOCTOR_PROFILE["name"]
        # "5-10" years counts from the lower bound
        assert data["experience"] == 5
        assert data["consultation_fee"] == 500
        assert data["visit_fee"] == 800
        assert data["email"] == "doctor@example.com"
        assert data["is_online"] is False
        assert data["condition_types"] == ["Heart Disease", "Hypertension"]

    def test_register_profile_twice(self, client, make_doctor):
        headers = make_doctor()

        response = client.post("/api/v1/doctors", json=DOCTOR_PROFILE, headers=headers)
        assert response.status_code == 400

    def test_unknown_specialization(self, client, test_db):
        client.post("/api/v1/auth/register", json={
            "email": "newdoc@example.com", "password": PASSWORD, "role": "doctor"
        })
        headers = auth_headers(login(client, "newdoc@example.com"))

        response = client.post(
            "/api/v1/doctors",
            json={**DOCTOR_PROFILE, "specialization": "Astrologer"},
            headers=headers
        )
        assert response.status_code == 422

    def test_numeric_experience(self, client, make_doctor):
        headers = make_doctor(experience=5.5)

        response = client.get("/api/v1/doctors/me", headers=headers)
        assert response.json()["experience"] == 5

    def test_malformed_experience(self, client, test_db):
        client.post("/api/v1/auth/register", json={
            "email": "newdoc@example.com", "password": PASSWORD, "role": "doctor"
        })
        headers = auth_headers(login(client, "newdoc@example.com"))

        for experience in ([5], {"years": 5}):
            response = client.post(
                "/api/v1/doctors",
                json={**DOCTOR_PROFILE, "experience": experience},
                headers=headers
            )
            assert response.status_code == 422

    def test_profile_missing_before_registration(self, client, test_db):
        client.post("/api/v1/auth/register", json={
            "email": "newdoc@example.com", "password": PASSWORD, "role": "doctor"
        })
        headers = auth_headers(login(client, "newdoc@example.com"))

        response = client.get("/api/v1/doctors/me", headers=headers)
        assert response.status_code == 404
        assert "Complete registration" in response.json()["detail"]

    def test_patient_cannot_register_profile(self, client, patient_headers):
        response = client.post("/api/v1/doctors", json=DOCTOR_PROFILE, headers=patient_headers)
        assert response.status_code == 403

class TestDoctorDirectory:

    def test_search_by_specialization(self, client, make_doctor):
        make_doctor()
        make_doctor(email="derm@example.com", name="Dr. Kabir Rao", specialization="Dermatologist")

        response = client.get("/api/v1/doctors", params={"q": "CARDIO"})
        assert response.status_code == 200
        assert [d["name"] for d in response.json()] == [DOCTOR_PROFILE["name"]]

        response = client.get("/api/v1/doctors", params={"q": "kabir"})
        assert [d["specialization"] for d in response.json()] == ["Dermatologist"]

        assert len(client.get("/api/v1/doctors").json()) == 2

    def test_online_filter(self, client, make_doctor):
        headers = make_doctor()
        make_doctor(email="derm@example.com", name="Dr. Kabir Rao", specialization="Dermatologist")

        response = client.patch(
            "/api/v1/doctors/me/status", json={"is_online": True}, headers=headers
        )
        assert response.status_code == 200
        assert response.json()["is_online"] is True

        response = client.get("/api/v1/doctors", params={"online_only": True})
        assert [d["name"] for d in response.json()] == [DOCTOR_PROFILE["name"]]

    def test_get_doctor(self, client, doctor_id):
        response = client.get(f"/api/v1/doctors/{doctor_id}")
        assert response.status_code == 200
        assert response.json()["specialization"] == "Cardiologist"

    def test_get_missing_doctor(self, client, test_db):
        response = client.get("/api/v1/doctors/9999")
        assert response.status_code == 404
        assert response.json()["detail"] == "Doctor not found"

    def test_specializations(self, client, test_db):
        response = client.get("/api/v1/doctors/specializations")
        assert "General Physician" in response.json()

class TestDoctorProfile:

    def test_update_profile(self, client, doctor_headers):
        response = client.patch("/api/v1/doctors/me", json={
            "phone": "9822222222",
            "languages": "English, Bengali",
            "visit_fee": 900,
            "experience": "10+",
        }, headers=doctor_headers)
        assert response.status_code == 200

        data = response.json()
        assert data["phone"] == "9822222222"
        assert data["languages"] == "English, Bengali"
        assert data["visit_fee"] == 900
        assert data["experience"] == 10
        assert data["name"] == DOCTOR_PROFILE["name"]

    def test_update_malformed_experience(self, client, doctor_headers):
        response = client.patch("/api/v1/doctors/me", json={"experience": ["10+"]},
                                headers=doctor_headers)
        assert response.status_code == 422

    def test_dashboard(self, client, doctor_headers, doctor_id, patient_headers):
        today = date.today().isoformat()
        for slot in ("3:00 PM", "10:00 AM"):
            response = client.post("/api/v1/visits", json={
                "doctor_id": doctor_id,
                "consultation_type": "home_visit",
                "visit_type": "General Checkup",
                "preferred_date": today,
                "preferred_time": slot,
                "symptoms": "Mild fever",
                "urgency": "low",
                "payment_method": "cash",
            }, headers=patient_headers)
            assert response.status_code == 201

        first_visit = response.json()["id"]
        client.patch(f"/api/v1/visits/{first_visit}/status",
                     json={"status": "confirmed"}, headers=doctor_headers)
        client.patch(f"/api/v1/visits/{first_visit}/status",
                     json={"status": "completed"}, headers=doctor_headers)

        response = client.get("/api/v1/doctors/me/dashboard", headers=doctor_headers)
        assert response.status_code == 200

        data = response.json()
        assert data["stats"]["todays_appointments"] == 2
        assert data["stats"]["total_patients"] == 1
        assert data["stats"]["monthly_earnings"] == 800
        assert [entry["time"] for entry in data["todays_schedule"]] == ["10:00 AM", "3:00 PM"]
        assert data["todays_schedule"][0]["type"] == "Home Visit"
        assert data["todays_schedule"][0]["patient"] == "Riya Sen"
