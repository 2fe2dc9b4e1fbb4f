import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status

from app.api.errors import to_http_exception
from app.core.config import settings
from app.core.dependencies import get_binder, get_gateway, get_sessions
from app.core.exceptions import UnresolvedIdentityError, WalletCoreError
from app.schemas.wallet import (
    InvoiceRequest,
    InvoiceResponse,
    WalletConfigRequest,
    WalletConfigResponse,
)
from app.services.gateway import PaymentGatewayAdapter
from app.services.identity_binder import IdentityBinder
from app.services.session_store import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter()
group_tags = ["wallet"]


def verify_admin_secret(
    admin_secret: Optional[str] = Header(None, alias="X-Admin-Api-Secret"),
) -> None:
    expected = settings.ADMIN_API_SECRET
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin API not configured",
        )
    if not admin_secret or not secrets.compare_digest(admin_secret, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin secret",
        )


@router.post(
    "/invoices",
    tags=group_tags,
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_invoice(
    body: InvoiceRequest,
    binder: IdentityBinder = Depends(get_binder),
    sessions: SessionStore = Depends(get_sessions),
    gateway: PaymentGatewayAdapter = Depends(get_gateway),
) -> InvoiceResponse:
    """
    Create a Lightning invoice on the sender's wallet.

    The platform identity must have an authenticated, non-expired session
    (i.e. it has messaged the bot recently).
    """
    try:
        account_id = binder.lookup(body.platform_id)
        if account_id is None:
            raise UnresolvedIdentityError(body.platform_id)
        session = sessions.get(body.platform_id)
        if session is None or not session.is_authenticated:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session not authenticated")
        if sessions.is_expired(body.platform_id, settings.SESSION_WINDOW_SECONDS):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session expired")

        invoice = gateway.create_invoice(
            account_id,
            amount_msats=body.amount_msats,
            memo=body.memo,
            expiry_secs=body.expiry_secs,
            idempotency_key=body.idempotency_key,
        )
    except WalletCoreError as exc:
        logger.warning("create_invoice failed for platform_id=%s: %s", body.platform_id, exc)
        raise to_http_exception(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return InvoiceResponse.from_invoice(invoice)


@router.put(
    "/config",
    tags=group_tags,
    response_model=WalletConfigResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(verify_admin_secret)],
)
def save_wallet_config(
    body: WalletConfigRequest,
    binder: IdentityBinder = Depends(get_binder),
) -> WalletConfigResponse:
    """
    Store the wallet handle produced by the external provisioning flow.

    Operator-only: requires the X-Admin-Api-Secret header.
    """
    config = binder.save_wallet_config(body.account_id, body.wallet_id)
    return WalletConfigResponse(account_id=config.account_id, wallet_id=config.wallet_id)
