class TestRoles:

    def test_list_roles(self, client, test_db):
        response = client.get("/api/v1/roles")
        assert response.status_code == 200

        roles = {option["role"]: option for option in response.json()}
        assert set(roles) == {"patient", "doctor"}
        assert roles["doctor"]["title"] == "Doctor / Nurse"

    def test_select_patient(self, client, test_db):
        response = client.post("/api/v1/roles/select", json={"role": "patient"})
        assert response.status_code == 200
        assert response.json()["next"] == "/patient/auth"

    def test_select_doctor(self, client, test_db):
        response = client.post("/api/v1/roles/select", json={"role": "doctor"})
        assert response.json()["next"] == "/doctor/register"

    def test_select_unknown_role(self, client, test_db):
        response = client.post("/api/v1/roles/select", json={"role": "admin"})
        assert response.status_code == 422
