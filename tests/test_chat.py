from datetime import datetime, timedelta

from app.core.config import settings
from app.models.patient import Patient
from app.services.chat_service import (
    ChatService, DEFAULT_TRIAGE_REPLY, DOCTOR_ACKNOWLEDGEMENT, triage_reply
)
from tests.conftest import TestingSessionLocal

class TestChat:

    def test_conversation_opens_with_welcome(self, client, doctor_id, patient_headers):
        response = client.get(f"/api/v1/chats/{doctor_id}/messages", headers=patient_headers)
        assert response.status_code == 200

        messages = response.json()["messages"]
        assert len(messages) == 1
        assert messages[0]["sender"] == "doctor"
        assert messages[0]["text"] == "Hello! I'm Dr. Asha Mehta. How can I help you today?"

        # Reopening does not repeat the welcome
        response = client.get(f"/api/v1/chats/{doctor_id}/messages", headers=patient_headers)
        assert len(response.json()["messages"]) == 1

    def test_reply_arrives_after_delay(self, client, doctor_id, patient_headers):
        response = client.post(f"/api/v1/chats/{doctor_id}/messages",
                               json={"text": "I have chest pain"}, headers=patient_headers)
        assert response.status_code == 200

        senders = [m["sender"] for m in response.json()["messages"]]
        assert senders == ["doctor", "patient"]

    def test_reply_without_delay(self, client, doctor_id, patient_headers, monkeypatch):
        monkeypatch.setattr(settings, "CHAT_REPLY_DELAY_SECONDS", 0)

        response = client.post(f"/api/v1/chats/{doctor_id}/messages",
                               json={"text": "I have chest pain"}, headers=patient_headers)

        messages = response.json()["messages"]
        assert [m["sender"] for m in messages] == ["doctor", "patient", "doctor"]
        assert messages[-1]["text"] == DOCTOR_ACKNOWLEDGEMENT

    def test_blank_message_rejected(self, client, doctor_id, patient_headers):
        response = client.post(f"/api/v1/chats/{doctor_id}/messages",
                               json={"text": "   "}, headers=patient_headers)
        assert response.status_code == 400

    def test_follow_up_before_reply(self, client, doctor_id, patient_headers):
        db = TestingSessionLocal()
        try:
            patient = db.query(Patient).one()
            chat = ChatService(db)
            sent_at = datetime(2024, 1, 1, 9, 0, 0)
            chat.send(patient, doctor_id, "I have chest pain", now=sent_at)
            chat.send(patient, doctor_id, "It started this morning", now=sent_at + timedelta(seconds=1))

            later = chat.conversation(patient, doctor_id, now=sent_at + timedelta(minutes=1))
        finally:
            db.close()

        # A follow-up within the delay shares one acknowledgement, dated after it
        assert [m.text for m in later.messages[1:]] == [
            "I have chest pain", "It started this morning", DOCTOR_ACKNOWLEDGEMENT
        ]
        assert later.messages[-1].created_at == sent_at + timedelta(
            seconds=1 + settings.CHAT_REPLY_DELAY_SECONDS
        )

    def test_unknown_doctor(self, client, patient_headers):
        response = client.get("/api/v1/chats/9999/messages", headers=patient_headers)
        assert response.status_code == 404

class TestAssistant:

    def test_intro_names_doctor(self, client, doctor_id, patient_headers):
        response = client.get(f"/api/v1/assistant/{doctor_id}/intro", headers=patient_headers)
        assert response.status_code == 200

        messages = response.json()["messages"]
        assert len(messages) == 2
        assert "Dr. Asha Mehta" in messages[0]["text"]
        assert all(m["sender"] == "bot" for m in messages)

    def test_keyword_reply(self, client, doctor_id, patient_headers):
        response = client.post(f"/api/v1/assistant/{doctor_id}/messages",
                               json={"text": "I've had a FEVER since Monday"}, headers=patient_headers)
        assert "fever" in response.json()["messages"][0]["text"]

    def test_unknown_doctor(self, client, patient_headers):
        response = client.get("/api/v1/assistant/9999/intro", headers=patient_headers)
        assert response.status_code == 404

        response = client.post("/api/v1/assistant/9999/messages",
                               json={"text": "I have a fever"}, headers=patient_headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "Doctor not found"

    def test_triage_reply_order(self):
        # Earlier keyword groups win regardless of word order
        assert triage_reply("chest pain and a headache").startswith("Headaches")
        assert triage_reply("my heart is racing").startswith("Chest pain")
        assert triage_reply("my knee hurts") == DEFAULT_TRIAGE_REPLY

class TestCalls:

    def test_video_call(self, client, doctor_id, doctor_headers, patient_headers):
        response = client.post(f"/api/v1/consultations/{doctor_id}/call",
                               json={"mode": "video"}, headers=patient_headers)
        assert response.status_code == 200
        assert response.json()["title"] == "Video Call Initiated"

        notifications = client.get("/api/v1/notifications", headers=doctor_headers).json()
        assert notifications["notifications"][0]["notification_type"] == "call_request"

    def test_phone_call(self, client, doctor_id, patient_headers):
        response = client.post(f"/api/v1/consultations/{doctor_id}/call",
                               json={"mode": "phone"}, headers=patient_headers)
        assert response.json()["title"] == "Phone Call Requested"
        assert response.json()["message"] == "Dr. Asha Mehta will call you shortly."
