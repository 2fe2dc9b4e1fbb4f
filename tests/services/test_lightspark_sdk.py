import pytest
from enum import Enum
from types import SimpleNamespace
from unittest.mock import Mock

from app.core.config import Settings
from app.core.exceptions import GatewayPath
from app.core.mnemonic_seed import MnemonicSeedDeriver
from app.services.gateway import InvoiceStatus, NodeStatus, SdkGatewayClient
from app.services.lightspark_sdk import LightsparkSdkWallet, LightsparkWalletFactory
from tests.conftest import VECTOR_PHRASE, VECTOR_SEED_HEX

NODE_ID = "LightsparkNode:0191"
REGTEST = "REGTEST"


class PaymentRequestStatus(Enum):
    OPEN = "OPEN"


@pytest.fixture
def sdk():
    """Stands in for a LightsparkSyncClient"""
    client = Mock()
    client.create_invoice.return_value = SimpleNamespace(
        id="Invoice:0191",
        status=PaymentRequestStatus.OPEN,
        data=SimpleNamespace(encoded_payment_request="lnbcrt10u1pjexample", bitcoin_address=None),
        created_at=None,
    )
    client.get_current_account.return_value.get_nodes.return_value = SimpleNamespace(
        count=1,
        entities=[SimpleNamespace(typename="LightsparkNodeWithOSK", id=NODE_ID, status="READY")],
    )
    return client


@pytest.fixture
def key_loader():
    return Mock()


@pytest.fixture
def factory(sdk, key_loader) -> LightsparkWalletFactory:
    return LightsparkWalletFactory(sdk, REGTEST, key_loader)


class TestLightsparkWalletFactory:
    """Test cases for the default SDK wallet factory"""

    def test_loads_signing_key_once_per_node(self, factory, sdk, key_loader):
        factory(VECTOR_SEED_HEX, NODE_ID)
        factory(VECTOR_SEED_HEX, NODE_ID)

        key_loader.assert_called_once_with(master_seed=bytes.fromhex(VECTOR_SEED_HEX), network=REGTEST)
        sdk.load_node_signing_key.assert_called_once_with(NODE_ID, key_loader.return_value)

    def test_node_level_wallet_needs_no_key(self, factory, sdk, key_loader):
        factory(VECTOR_SEED_HEX, None)

        key_loader.assert_not_called()
        sdk.load_node_signing_key.assert_not_called()

    def test_requires_api_token(self):
        with pytest.raises(ValueError):
            LightsparkWalletFactory.from_settings(
                Settings(LIGHTSPARK_API_TOKEN_CLIENT_ID="client-id", LIGHTSPARK_API_TOKEN_CLIENT_SECRET=None)
            )


class TestLightsparkSdkWallet:
    """Test cases for LightsparkSdkWallet"""

    def test_create_invoice(self, sdk):
        wallet = LightsparkSdkWallet(sdk, NODE_ID, REGTEST)

        wallet.create_invoice(1000000, memo="coffee", expiry_secs=600, idempotency_key="req-1")

        sdk.create_invoice.assert_called_once_with(
            node_id=NODE_ID, amount_msats=1000000, memo="coffee", expiry_secs=600
        )

    def test_create_invoice_needs_node(self, sdk):
        with pytest.raises(ValueError):
            LightsparkSdkWallet(sdk, None, REGTEST).create_invoice(1000)
        sdk.create_invoice.assert_not_called()

    def test_get_nodes(self, sdk):
        nodes = LightsparkSdkWallet(sdk, None, REGTEST).get_nodes()

        assert [node.id for node in nodes] == [NODE_ID]
        sdk.get_current_account.return_value.get_nodes.assert_called_once_with(bitcoin_networks=[REGTEST])

    def test_through_gateway_client(self, factory):
        """Test SDK results normalise into the shared invoice and node shapes"""
        seed = MnemonicSeedDeriver().derive_seed(VECTOR_PHRASE)
        client = SdkGatewayClient(factory, seed)

        invoice = client.create_invoice(NODE_ID, 1000000, "coffee", 600)
        nodes = client.get_node_status()

        assert client.path == GatewayPath.SDK
        assert invoice.id == "Invoice:0191"
        assert invoice.status == InvoiceStatus.OPEN
        assert invoice.encoded_payment_request == "lnbcrt10u1pjexample"
        assert invoice.amount_msats == 1000000
        assert nodes == [NodeStatus(typename="LightsparkNodeWithOSK", id=NODE_ID, status="READY")]
