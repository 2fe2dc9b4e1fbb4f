"""Dependency container wiring the wallet core from startup settings."""

from __future__ import annotations

import logging
from functools import lru_cache
from threading import Lock
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.core.config import Settings, settings as default_settings
from app.core.jwt_utils import TokenIssuer
from app.core.key_material import KeyMaterialManager
from app.core.mnemonic_seed import MnemonicSeedDeriver, load_master_seed
from app.repositories.memory import InMemoryBindingStore, InMemoryWalletConfigStore
from app.repositories.sql import SqlBindingStore, SqlWalletConfigStore
from app.services.gateway import (
    GatewayClient,
    PaymentGatewayAdapter,
    RestGatewayClient,
    SdkGatewayClient,
    SdkWalletFactory,
)
from app.services.identity_binder import IdentityBinder
from app.services.lightspark_sdk import LightsparkWalletFactory
from app.services.session_store import SessionStore

logger = logging.getLogger(__name__)

GATEWAY_MODES = ("rest", "sdk")


class ApplicationContainer:
    """
    Identity and session services are built eagerly; the gateway is built on
    first use so a bad key or phrase only blocks wallet calls, never the
    webhook path.
    """

    def __init__(
        self,
        settings: Settings,
        sdk_wallet_factory: Optional[SdkWalletFactory] = None,
        session_factory: Optional[Callable[[], Session]] = None,
    ):
        self.settings = settings
        self._sdk_wallet_factory = sdk_wallet_factory
        self.binder = self._build_binder(session_factory)
        self.sessions = SessionStore(self.binder)
        self._gateway: Optional[PaymentGatewayAdapter] = None
        self._gateway_lock = Lock()

    def _build_binder(self, session_factory: Optional[Callable[[], Session]]) -> IdentityBinder:
        backend = self.settings.BINDING_BACKEND.lower()
        if backend == "memory":
            return IdentityBinder(InMemoryBindingStore(), InMemoryWalletConfigStore())
        if backend == "sql":
            if session_factory is None:
                from app.db.session import SessionLocal, init_db

                init_db()
                session_factory = SessionLocal
            return IdentityBinder(SqlBindingStore(session_factory), SqlWalletConfigStore(session_factory))
        raise ValueError(f"unsupported BINDING_BACKEND: {self.settings.BINDING_BACKEND}")

    def gateway(self) -> PaymentGatewayAdapter:
        with self._gateway_lock:
            if self._gateway is None:
                self._gateway = self._build_gateway()
            return self._gateway

    def _build_gateway(self) -> PaymentGatewayAdapter:
        mode = self.settings.GATEWAY_MODE.lower()
        if mode not in GATEWAY_MODES:
            raise ValueError(f"unsupported GATEWAY_MODE: {self.settings.GATEWAY_MODE}")
        primary = self._build_client(mode)
        fallback = None
        if self.settings.GATEWAY_ALLOW_FALLBACK:
            other = "sdk" if mode == "rest" else "rest"
            fallback = self._build_client(other)
        logger.info("gateway ready: mode=%s fallback=%s", mode, fallback.path.value if fallback else None)
        return PaymentGatewayAdapter(
            self.binder,
            primary,
            fallback=fallback,
            allow_fallback=self.settings.GATEWAY_ALLOW_FALLBACK,
        )

    def _build_client(self, mode: str) -> GatewayClient:
        if mode == "rest":
            key_manager = KeyMaterialManager.from_settings(self.settings)
            return RestGatewayClient(
                base_url=self.settings.GATEWAY_BASE_URL,
                token_issuer=TokenIssuer.from_settings(self.settings, key_manager),
                audience=self.settings.TOKEN_AUDIENCE,
                token_ttl_seconds=self.settings.TOKEN_TTL_SECONDS,
                timeout=self.settings.GATEWAY_TIMEOUT_SECONDS,
            )
        seed = load_master_seed(self.settings, MnemonicSeedDeriver.from_settings(self.settings))
        logger.info("master seed loaded (%s)", seed.preview())
        factory = self._sdk_wallet_factory or LightsparkWalletFactory.from_settings(self.settings)
        return SdkGatewayClient(factory, seed)


@lru_cache()
def get_container() -> ApplicationContainer:
    return ApplicationContainer(settings=default_settings)


__all__ = ["ApplicationContainer", "get_container"]
