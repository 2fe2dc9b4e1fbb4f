from dotenv import load_dotenv
from pydantic_settings import BaseSettings

load_dotenv(override=True)

class Settings(BaseSettings):
    PROJECT_NAME: str = "SparkChat Wallet"
    # Application settings
    PORT: int = 8000
    HOST: str = "127.0.0.1"
    VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # SQLAlchemy database URL
    DATABASE_URL: str = "sqlite:///./sparkchat.db"
    # "memory" keeps bindings in-process, "sql" uses DATABASE_URL
    BINDING_BACKEND: str = "memory"

    # Telegram webhook
    TELEGRAM_WEBHOOK_SECRET: str | None = None

    # Shared secret for operator routes (wallet provisioning); unset disables them
    ADMIN_API_SECRET: str | None = None

    # Spend-key root
    SPARK_MASTER_MNEMONIC: str | None = None
    MNEMONIC_PASSPHRASE: str = ""

    # Lightspark JWT signing
    LIGHTSPARK_ACCOUNT_ID: str | None = None
    LIGHTSPARK_PRIVATE_KEY: str | None = None
    LIGHTSPARK_PUBLIC_KEY: str | None = None
    LIGHTSPARK_TESTNET: bool = False
    TOKEN_AUDIENCE: str = "https://api.lightspark.com"
    TOKEN_TTL_SECONDS: int = 3600  # 1 hour

    # Session policy
    SESSION_WINDOW_SECONDS: int = 1800  # 30 minutes

    # Gateway
    GATEWAY_MODE: str = "rest"
    GATEWAY_BASE_URL: str = "https://api.lightspark.com/v1"
    GATEWAY_TIMEOUT_SECONDS: float = 30.0
    GATEWAY_ALLOW_FALLBACK: bool = False

    # Lightspark SDK path (GATEWAY_MODE=sdk)
    LIGHTSPARK_API_TOKEN_CLIENT_ID: str | None = None
    LIGHTSPARK_API_TOKEN_CLIENT_SECRET: str | None = None
    LIGHTSPARK_SDK_BASE_URL: str = "https://api.lightspark.com"

    class Config:
        env_file = ".env"

    def private_key_pem(self) -> str | None:
        """PEM text with escaped newlines restored (env files often hold one line)."""
        return _unescape_pem(self.LIGHTSPARK_PRIVATE_KEY)

    def public_key_pem(self) -> str | None:
        return _unescape_pem(self.LIGHTSPARK_PUBLIC_KEY)

    def token_issuer(self) -> str | None:
        if not self.LIGHTSPARK_ACCOUNT_ID:
            return None
        return self.LIGHTSPARK_ACCOUNT_ID.replace("Account:", "")


def _unescape_pem(value: str | None) -> str | None:
    if not value or not value.strip():
        return None
    return value.strip().replace("\\n", "\n")


# Instantiate the settings
settings = Settings()
