from fastapi import status
from fastapi.testclient import TestClient

from app.core.config import settings
from tests.conftest import TELEGRAM_USER_ID, telegram_update

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


class TestTelegramWebhookAPI:
    """Test cases for the /telegram/webhook endpoint"""

    def test_first_message_binds_and_authenticates(self, client: TestClient, container):
        """Test the first message creates a binding and an authenticated session"""
        response = client.post("/telegram/webhook", json=telegram_update(first_name="Satoshi"))

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["ok"] is True
        assert data["platform_id"] == TELEGRAM_USER_ID
        assert data["account_id"] == container.binder.lookup(TELEGRAM_USER_ID)
        assert data["authenticated"] is True

        user = container.binder.get_user(TELEGRAM_USER_ID)
        assert user.display_name == "Satoshi"
        session = container.sessions.get(TELEGRAM_USER_ID)
        assert session.is_authenticated is True
        assert session.account_id == data["account_id"]

    def test_repeat_messages_keep_account(self, client: TestClient):
        first = client.post("/telegram/webhook", json=telegram_update()).json()
        second = client.post("/telegram/webhook", json=telegram_update()).json()

        assert first["account_id"] == second["account_id"]

    def test_callback_query_sender(self, client: TestClient):
        update = {
            "update_id": 2,
            "callback_query": {
                "id": "cb-1",
                "from": {"id": 42, "is_bot": False, "username": "alice"},
                "data": "balance",
            },
        }

        response = client.post("/telegram/webhook", json=update)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["platform_id"] == 42

    def test_update_without_sender(self, client: TestClient, container):
        response = client.post("/telegram/webhook", json={"update_id": 3})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert container.sessions.get(TELEGRAM_USER_ID) is None

    def test_bot_sender_ignored(self, client: TestClient, container):
        response = client.post("/telegram/webhook", json=telegram_update(user_id=777, is_bot=True))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert container.binder.lookup(777) is None

    def test_deactivated_user_not_authenticated(self, client: TestClient, container):
        account_id = container.binder.resolve_account(TELEGRAM_USER_ID)
        container.binder.deactivate(TELEGRAM_USER_ID)

        response = client.post("/telegram/webhook", json=telegram_update())

        data = response.json()
        assert response.status_code == status.HTTP_200_OK
        assert data["account_id"] == account_id
        assert data["authenticated"] is False
        assert container.sessions.get(TELEGRAM_USER_ID).is_authenticated is False

    def test_invalid_payload(self, client: TestClient):
        response = client.post("/telegram/webhook", json={"message": {"from": {"id": "not-a-number"}}})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


class TestTelegramWebhookSecret:
    """Test cases for the webhook secret check"""

    def test_missing_secret(self, client: TestClient, monkeypatch):
        monkeypatch.setattr(settings, "TELEGRAM_WEBHOOK_SECRET", "s3cret")

        response = client.post("/telegram/webhook", json=telegram_update())

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_wrong_secret(self, client: TestClient, monkeypatch, container):
        monkeypatch.setattr(settings, "TELEGRAM_WEBHOOK_SECRET", "s3cret")

        response = client.post("/telegram/webhook", json=telegram_update(), headers={SECRET_HEADER: "guess"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert container.binder.lookup(TELEGRAM_USER_ID) is None

    def test_correct_secret(self, client: TestClient, monkeypatch):
        monkeypatch.setattr(settings, "TELEGRAM_WEBHOOK_SECRET", "s3cret")

        response = client.post("/telegram/webhook", json=telegram_update(), headers={SECRET_HEADER: "s3cret"})

        assert response.status_code == status.HTTP_200_OK
