class TestPatientProfile:

    def test_get_profile(self, client, patient_headers):
        response = client.get("/api/v1/patients/me", headers=patient_headers)
        assert response.status_code == 200

        data = response.json()
        assert data["name"] == "Riya Sen"
        assert data["email"] == "patient@example.com"
        assert data["address"] == "4 Lake Road, Kolkata"

    def test_update_profile(self, client, patient_headers):
        response = client.patch("/api/v1/patients/me", json={
            "age": 34,
            "blood_group": "B+",
            "allergies": "Penicillin",
            "emergency_contact": "Arjun Sen",
            "emergency_phone": "9833333333",
        }, headers=patient_headers)
        assert response.status_code == 200

        data = response.json()
        assert data["age"] == 34
        assert data["blood_group"] == "B+"
        assert data["emergency_contact"] == "Arjun Sen"
        assert data["name"] == "Riya Sen"

    def test_null_name_is_ignored(self, client, patient_headers):
        response = client.patch("/api/v1/patients/me", json={"name": None}, headers=patient_headers)
        assert response.status_code == 200
        assert response.json()["name"] == "Riya Sen"

    def test_doctor_has_no_patient_profile(self, client, doctor_headers):
        response = client.get("/api/v1/patients/me", headers=doctor_headers)
        assert response.status_code == 403

    def test_requires_authentication(self, client, test_db):
        response = client.get("/api/v1/patients/me")
        assert response.status_code in (401, 403)
