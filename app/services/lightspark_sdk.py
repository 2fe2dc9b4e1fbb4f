"""
Lightspark SDK wallets

Default ``SdkWalletFactory`` for ``GATEWAY_MODE=sdk``, backed by the
``lightspark`` Python SDK's ``LightsparkSyncClient``. One client is shared by
every wallet; the wallet id is the Lightspark node id. The master seed is
handed to the SDK as the node signing key the first time a node is used.

Flow:
    factory = LightsparkWalletFactory.from_settings(settings)
    wallet = factory(seed.hex(), "LightsparkNode:0191...")
    wallet.create_invoice(1000000, memo="coffee", expiry_secs=3600)
"""

import logging
from threading import Lock
from typing import Any, Callable, List, Optional, Set

from app.core.redact import preview

logger = logging.getLogger(__name__)


class LightsparkSdkWallet:
    """``PaymentSdkWallet`` over a shared ``LightsparkSyncClient``."""

    def __init__(self, client: Any, node_id: Optional[str], network: Any):
        self._client = client
        self._node_id = node_id
        self._network = network

    def create_invoice(self, amount_msats: int, memo: Optional[str] = None, expiry_secs: int = 3600, **kwargs) -> Any:
        if self._node_id is None:
            raise ValueError("invoices need a node wallet id")
        # the SDK has no idempotency key; the adapter only falls back with one
        return self._client.create_invoice(
            node_id=self._node_id,
            amount_msats=amount_msats,
            memo=memo,
            expiry_secs=expiry_secs,
        )

    def get_nodes(self) -> List[Any]:
        account = self._client.get_current_account()
        connection = account.get_nodes(bitcoin_networks=[self._network])
        return list(connection.entities)


class LightsparkWalletFactory:
    """
    Callable ``(seed_hex, wallet_id) -> LightsparkSdkWallet``.

    ``key_loader(master_seed=..., network=...)`` builds the SDK's signing key
    loader; keys are loaded at most once per node.
    """

    def __init__(self, client: Any, network: Any, key_loader: Callable[..., Any]):
        self._client = client
        self._network = network
        self._key_loader = key_loader
        self._loaded: Set[str] = set()
        self._lock = Lock()

    @classmethod
    def from_settings(cls, settings) -> "LightsparkWalletFactory":
        """
        Raises:
            ValueError: API token credentials are not configured
        """
        client_id = settings.LIGHTSPARK_API_TOKEN_CLIENT_ID
        client_secret = settings.LIGHTSPARK_API_TOKEN_CLIENT_SECRET
        if not client_id or not client_secret:
            raise ValueError(
                "GATEWAY_MODE=sdk requires LIGHTSPARK_API_TOKEN_CLIENT_ID and LIGHTSPARK_API_TOKEN_CLIENT_SECRET"
            )

        # imported here so the REST-only deployment never loads the SDK
        import lightspark
        from lightspark.utils.signing_key_loader import MasterSeedSigningKeyLoader

        client = lightspark.LightsparkSyncClient(
            api_token_client_id=client_id,
            api_token_client_secret=client_secret,
            base_url=settings.LIGHTSPARK_SDK_BASE_URL,
        )
        network = lightspark.BitcoinNetwork.REGTEST if settings.LIGHTSPARK_TESTNET else lightspark.BitcoinNetwork.MAINNET
        logger.info("lightspark SDK client ready: client_id=%s network=%s", preview(client_id), network)
        return cls(client, network, MasterSeedSigningKeyLoader)

    def __call__(self, seed_hex: str, wallet_id: Optional[str]) -> LightsparkSdkWallet:
        if wallet_id is not None:
            with self._lock:
                if wallet_id not in self._loaded:
                    loader = self._key_loader(master_seed=bytes.fromhex(seed_hex), network=self._network)
                    self._client.load_node_signing_key(wallet_id, loader)
                    self._loaded.add(wallet_id)
        return LightsparkSdkWallet(self._client, wallet_id, self._network)
