import pytest
from datetime import datetime, timedelta, timezone
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from unittest.mock import Mock
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from main import app
from app.core.config import Settings, settings
from app.core.container import ApplicationContainer, get_container
from app.core.dependencies import get_gateway
from app.core.exceptions import GatewayPath
from app.db.session import init_db
from app.services.gateway import PaymentGatewayAdapter
from app.services.session_store import SessionStore


# BIP-39 reference vector: 11 x "abandon" + "about"
VECTOR_PHRASE = " ".join(["abandon"] * 11 + ["about"])
VECTOR_SEED_HEX = (
    "5eb00bbddcf069084889a8ab9155568165f5c453ccb85e70811aaed6f6da5fc1"
    "9a5ac40b389cd370d086206dec8aa6c43daea6690f20ad3d8d48b2d2ce9e38e4"
)

TELEGRAM_USER_ID = 950870644
ADMIN_SECRET = "admin-s3cret"


class FakeClock:
    """Injectable clock; advance() moves time forward by whole seconds"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def session_factory():
    """Fresh in-memory SQLite database per test"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def ec_private_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def ec_private_pem(ec_private_key) -> str:
    """SEC1 ("BEGIN EC PRIVATE KEY") encoding, as written by the key generation script"""
    return ec_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


@pytest.fixture
def ec_public_pem(ec_private_key) -> str:
    return ec_private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        BINDING_BACKEND="memory",
        TELEGRAM_WEBHOOK_SECRET=None,
        SPARK_MASTER_MNEMONIC=None,
        LIGHTSPARK_ACCOUNT_ID=None,
        LIGHTSPARK_PRIVATE_KEY=None,
        LIGHTSPARK_PUBLIC_KEY=None,
        GATEWAY_MODE="rest",
        GATEWAY_ALLOW_FALLBACK=False,
    )


@pytest.fixture
def container(test_settings, clock) -> ApplicationContainer:
    container = ApplicationContainer(settings=test_settings)
    container.sessions = SessionStore(container.binder, clock=clock)
    return container


@pytest.fixture
def mock_gateway():
    """Gateway adapter double; tests set return values / side effects per call"""
    gateway = Mock(spec=PaymentGatewayAdapter)
    gateway.path = GatewayPath.REST
    return gateway


@pytest.fixture
def client(container, mock_gateway, monkeypatch) -> TestClient:
    """Create a test client for the FastAPI application"""
    monkeypatch.setattr(settings, "TELEGRAM_WEBHOOK_SECRET", None)
    monkeypatch.setattr(settings, "ADMIN_API_SECRET", ADMIN_SECRET)
    app.dependency_overrides[get_container] = lambda: container
    app.dependency_overrides[get_gateway] = lambda: mock_gateway
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def telegram_update(user_id: int = TELEGRAM_USER_ID, is_bot: bool = False, **sender) -> dict:
    """Minimal Telegram message update from ``user_id``"""
    return {
        "update_id": 1,
        "message": {
            "message_id": 1,
            "from": {"id": user_id, "is_bot": is_bot, **sender},
            "text": "/start",
        },
    }
