"""
Payment Gateway Adapter

One ``GatewayClient`` interface with two concrete variants:

- ``RestGatewayClient``: direct HTTPS calls authenticated with a fresh ES256
  token from ``TokenIssuer`` on every request.
- ``SdkGatewayClient``: calls through a payment-network SDK wallet object
  initialised from the master seed (``MnemonicSeedDeriver``).

Both normalise their responses into ``Invoice`` / ``NodeStatus``. Failures
surface as ``GatewayError`` tagged with the path that failed. The adapter
never falls back from one path to the other unless the caller opted in,
because the two paths have different credential and idempotency semantics
and a blind retry on the other path could create a second invoice.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from threading import Lock
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

import requests

from app.core.exceptions import GatewayError, GatewayPath
from app.core.jwt_utils import TokenIssuer
from app.core.mnemonic_seed import Seed
from app.services.identity_binder import IdentityBinder

logger = logging.getLogger(__name__)


class InvoiceStatus(str, Enum):
    PENDING = "PENDING"
    CREATED = "CREATED"
    OPEN = "OPEN"
    PAID = "PAID"
    EXPIRED = "EXPIRED"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Any) -> "InvoiceStatus":
        if isinstance(value, Enum):
            value = value.value
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class Invoice:
    id: str
    status: InvoiceStatus
    encoded_payment_request: str
    amount_msats: int
    created_at: datetime
    bitcoin_address: Optional[str] = None
    memo: Optional[str] = None


@dataclass(frozen=True)
class NodeStatus:
    typename: str
    id: str
    status: str


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str) and value:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc)


def _field(source: Any, *names: str, default: Any = None) -> Any:
    """Read the first present field from a dict or an SDK object (camelCase or snake_case)."""
    for name in names:
        if isinstance(source, dict):
            if source.get(name) is not None:
                return source[name]
        elif getattr(source, name, None) is not None:
            return getattr(source, name)
    return default


def normalize_invoice(
    raw: Any,
    amount_msats: int,
    memo: Optional[str],
    path: GatewayPath,
    upstream_status: Optional[int] = None,
) -> Invoice:
    """
    Build an ``Invoice`` from a REST body or an SDK result object.

    Only called after the upstream accepted the request, so every failure
    here is raised as a non-retryable ``GatewayError``.
    """
    data = _field(raw, "data", default={})
    invoice_id = _field(raw, "id")
    encoded = _field(data, "encodedPaymentRequest", "encoded_payment_request")
    if not invoice_id or not encoded:
        raise GatewayError(
            path,
            "invoice response missing id or encoded payment request",
            upstream_status=upstream_status,
            accepted=True,
        )
    try:
        return Invoice(
            id=str(invoice_id),
            status=InvoiceStatus.parse(_field(raw, "status", default=InvoiceStatus.CREATED)),
            encoded_payment_request=str(encoded),
            bitcoin_address=_field(data, "bitcoinAddress", "bitcoin_address"),
            amount_msats=int(_field(raw, "amountMsats", "amount_msats", default=amount_msats)),
            memo=_field(raw, "memo", default=memo),
            created_at=_parse_timestamp(_field(raw, "createdAt", "created_at")),
        )
    except (TypeError, ValueError) as exc:
        raise GatewayError(
            path,
            f"invoice {invoice_id} response is malformed: {type(exc).__name__}",
            upstream_status=upstream_status,
            accepted=True,
        ) from exc


def normalize_nodes(raw: Any, path: GatewayPath, upstream_status: Optional[int] = None) -> List[NodeStatus]:
    if isinstance(raw, dict):
        raw = _field(raw, "nodes", "entities", default=[])
    if not isinstance(raw, (list, tuple)):
        raise GatewayError(path, "node status response is not a list", upstream_status=upstream_status, accepted=True)
    nodes = []
    for entry in raw:
        status = _field(entry, "status", default="UNKNOWN")
        if isinstance(status, Enum):
            status = status.value
        nodes.append(NodeStatus(
            typename=str(_field(entry, "typename", "__typename", default="Node")),
            id=str(_field(entry, "id", default="")),
            status=str(status),
        ))
    return nodes


class GatewayClient(ABC):
    path: GatewayPath

    @abstractmethod
    def create_invoice(
        self,
        wallet_id: str,
        amount_msats: int,
        memo: Optional[str],
        expiry_secs: int,
        idempotency_key: Optional[str] = None,
    ) -> Invoice:
        ...

    @abstractmethod
    def get_node_status(self) -> List[NodeStatus]:
        ...


class RestGatewayClient(GatewayClient):
    path = GatewayPath.REST

    def __init__(
        self,
        base_url: str,
        token_issuer: TokenIssuer,
        audience: str,
        token_ttl_seconds: int,
        timeout: float = 30.0,
        http: Optional[requests.Session] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._issuer = token_issuer
        self._audience = audience
        self._ttl = token_ttl_seconds
        self._timeout = timeout
        self._http = http or requests.Session()

    def _request(self, method: str, endpoint: str, subject: str, **kwargs) -> Tuple[int, Any]:
        """Returns ``(status_code, body)`` for a 2xx JSON response."""
        token = self._issuer.issue_token(subject, self._audience, self._ttl)
        headers = kwargs.pop("headers", {})
        headers["Authorization"] = f"Bearer {token.token}"
        headers["Accept"] = "application/json"
        url = f"{self._base_url}/{endpoint}"
        try:
            response = self._http.request(method, url, headers=headers, timeout=self._timeout, **kwargs)
        except requests.Timeout as exc:
            raise GatewayError(self.path, f"{method} {endpoint} timed out", timed_out=True) from exc
        except requests.RequestException as exc:
            raise GatewayError(self.path, f"{method} {endpoint} failed: {type(exc).__name__}") from exc

        if response.status_code >= 400:
            raise GatewayError(
                self.path,
                _error_message(response),
                upstream_status=response.status_code,
            )
        try:
            return response.status_code, response.json()
        except ValueError as exc:
            raise GatewayError(
                self.path,
                f"{method} {endpoint} returned non-JSON body",
                upstream_status=response.status_code,
                accepted=True,
            ) from exc

    def create_invoice(
        self,
        wallet_id: str,
        amount_msats: int,
        memo: Optional[str],
        expiry_secs: int,
        idempotency_key: Optional[str] = None,
    ) -> Invoice:
        body: Dict[str, Any] = {
            "walletId": wallet_id,
            "amountMsats": amount_msats,
            "expirySecs": expiry_secs,
        }
        if memo is not None:
            body["memo"] = memo
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else {}
        status_code, raw = self._request("POST", "invoices", wallet_id, json=body, headers=headers)
        return normalize_invoice(raw, amount_msats, memo, self.path, upstream_status=status_code)

    def get_node_status(self) -> List[NodeStatus]:
        status_code, raw = self._request("GET", "nodes", self._issuer.issuer or "node-status")
        return normalize_nodes(raw, self.path, upstream_status=status_code)


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return (response.text or response.reason or "upstream error")[:200]
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            if body.get(key):
                return str(body[key])[:200]
    return str(body)[:200]


class PaymentSdkWallet(Protocol):
    """Shape expected from the payment-network SDK's wallet object."""

    def create_invoice(self, amount_msats: int, memo: Optional[str] = None, expiry_secs: int = 3600, **kwargs) -> Any:
        ...

    def get_nodes(self) -> Any:
        ...


SdkWalletFactory = Callable[[str, Optional[str]], PaymentSdkWallet]


class SdkGatewayClient(GatewayClient):
    """
    SDK-mediated path. ``wallet_factory(seed_hex, wallet_id)`` returns an
    initialised SDK wallet; wallets are cached per wallet id for the process.
    ``wallet_id`` None means the deployment's node-level wallet.

    SDK exceptions may echo their arguments, seed included, so their text is
    redacted before it reaches a ``GatewayError``.
    """

    path = GatewayPath.SDK

    def __init__(self, wallet_factory: SdkWalletFactory, seed: Seed):
        self._factory = wallet_factory
        self._seed = seed
        self._wallets: Dict[Optional[str], PaymentSdkWallet] = {}
        self._lock = Lock()

    def _wallet(self, wallet_id: Optional[str]) -> PaymentSdkWallet:
        with self._lock:
            wallet = self._wallets.get(wallet_id)
            if wallet is None:
                try:
                    wallet = self._factory(self._seed.hex(), wallet_id)
                except Exception as exc:
                    raise self._error(exc, f"wallet initialisation failed for {wallet_id}") from exc
                self._wallets[wallet_id] = wallet
            return wallet

    def create_invoice(
        self,
        wallet_id: str,
        amount_msats: int,
        memo: Optional[str],
        expiry_secs: int,
        idempotency_key: Optional[str] = None,
    ) -> Invoice:
        wallet = self._wallet(wallet_id)
        kwargs: Dict[str, Any] = {}
        if idempotency_key:
            kwargs["idempotency_key"] = idempotency_key
        try:
            raw = wallet.create_invoice(amount_msats, memo=memo, expiry_secs=expiry_secs, **kwargs)
        except GatewayError:
            raise
        except Exception as exc:
            raise self._error(exc, "create_invoice failed") from exc
        return normalize_invoice(raw, amount_msats, memo, self.path)

    def get_node_status(self) -> List[NodeStatus]:
        wallet = self._wallet(None)
        try:
            raw = wallet.get_nodes()
        except GatewayError:
            raise
        except Exception as exc:
            raise self._error(exc, "get_nodes failed") from exc
        return normalize_nodes(raw, self.path)

    def _error(self, exc: Exception, context: str) -> GatewayError:
        status = getattr(exc, "status_code", None) or getattr(exc, "status", None)
        if not isinstance(status, int):
            status = None
        return GatewayError(
            GatewayPath.SDK,
            f"{context}: {type(exc).__name__}: {self._redact(str(exc))}"[:200],
            upstream_status=status,
            timed_out=isinstance(exc, TimeoutError),
        )

    def _redact(self, text: str) -> str:
        # hex in either case, then the raw bytes repr
        text = re.sub(re.escape(self._seed.hex()), self._seed.preview(), text, flags=re.IGNORECASE)
        return text.replace(repr(self._seed.value), self._seed.preview())


class PaymentGatewayAdapter:
    def __init__(
        self,
        binder: IdentityBinder,
        client: GatewayClient,
        fallback: Optional[GatewayClient] = None,
        allow_fallback: bool = False,
    ):
        self._binder = binder
        self._client = client
        self._fallback = fallback
        self._allow_fallback = allow_fallback and fallback is not None

    @property
    def path(self) -> GatewayPath:
        return self._client.path

    def create_invoice(
        self,
        account_id: str,
        amount_msats: int,
        memo: Optional[str] = None,
        expiry_secs: int = 3600,
        idempotency_key: Optional[str] = None,
    ) -> Invoice:
        """
        Create an invoice on the account's wallet.

        Raises:
            ValueError: non-positive amount or expiry
            UnboundAccountError: no wallet provisioned for the account
            SigningError: REST path without a loaded key
            GatewayError: upstream or transport failure
        """
        if isinstance(amount_msats, bool) or not isinstance(amount_msats, int) or amount_msats <= 0:
            raise ValueError("amount_msats must be a positive integer")
        if isinstance(expiry_secs, bool) or not isinstance(expiry_secs, int) or expiry_secs <= 0:
            raise ValueError("expiry_secs must be a positive integer")

        config = self._binder.get_wallet_config(account_id)
        logger.info(
            "create_invoice: account=%s wallet=%s amount_msats=%d path=%s",
            account_id, config.wallet_id, amount_msats, self._client.path.value,
        )
        try:
            return self._client.create_invoice(config.wallet_id, amount_msats, memo, expiry_secs, idempotency_key)
        except GatewayError as exc:
            # without an idempotency key a retry elsewhere could double-create
            if not (self._allow_fallback and exc.retryable and idempotency_key):
                raise
            logger.warning("create_invoice via %s failed (%s), falling back to %s",
                           exc.path.value, exc.upstream_status, self._fallback.path.value)
            return self._fallback.create_invoice(config.wallet_id, amount_msats, memo, expiry_secs, idempotency_key)

    def get_node_status(self) -> List[NodeStatus]:
        try:
            return self._client.get_node_status()
        except GatewayError as exc:
            if not (self._allow_fallback and exc.retryable):
                raise
            logger.warning("get_node_status via %s failed (%s), falling back to %s",
                           exc.path.value, exc.upstream_status, self._fallback.path.value)
            return self._fallback.get_node_status()
