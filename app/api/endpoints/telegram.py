import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status

from app.core.config import settings
from app.core.dependencies import get_binder, get_sessions
from app.schemas.telegram import TelegramUpdate, WebhookResponse
from app.services.identity_binder import IdentityBinder
from app.services.session_store import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter()
group_tags = ["telegram"]


def verify_webhook_secret(
    secret_token: Optional[str] = Header(None, alias="X-Telegram-Bot-Api-Secret-Token"),
) -> None:
    expected = settings.TELEGRAM_WEBHOOK_SECRET
    if not expected:
        return
    if not secret_token or not secrets.compare_digest(secret_token, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid webhook secret",
        )


@router.post(
    "/webhook",
    tags=group_tags,
    response_model=WebhookResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(verify_webhook_secret)],
)
def telegram_webhook(
    update: TelegramUpdate,
    binder: IdentityBinder = Depends(get_binder),
    sessions: SessionStore = Depends(get_sessions),
) -> WebhookResponse:
    """
    Inbound Telegram update.

    Binds the sender to an account on first contact, refreshes last_seen and
    the session, and authenticates the session. Message text is not
    interpreted here; command handling lives in the bot.
    """
    sender = update.sender()
    if sender is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Update has no sender")
    if sender.is_bot:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Bot senders are ignored")

    account_id = binder.resolve_account(sender.id, sender.display_name())
    sessions.touch(sender.id)

    user = binder.get_user(sender.id)
    if user is not None and not user.is_active:
        logger.info("update from deactivated platform_id=%s", sender.id)
        return WebhookResponse(ok=True, platform_id=sender.id, account_id=account_id, authenticated=False)

    session = sessions.authenticate(sender.id)
    return WebhookResponse(
        ok=True,
        platform_id=sender.id,
        account_id=account_id,
        authenticated=session.is_authenticated,
    )
