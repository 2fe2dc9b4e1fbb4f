from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.my_base_model import CustomBaseModel


class TelegramUser(BaseModel):
    id: int
    is_bot: bool = False
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    def display_name(self) -> Optional[str]:
        if self.username:
            return self.username
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or None


class TelegramMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message_id: int = 0
    from_user: Optional[TelegramUser] = Field(None, alias="from")
    text: Optional[str] = None


class TelegramCallbackQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    from_user: TelegramUser = Field(..., alias="from")
    data: Optional[str] = None


class TelegramUpdate(BaseModel):
    """Subset of a Telegram Bot API update used to identify the sender"""

    update_id: int = 0
    message: Optional[TelegramMessage] = None
    callback_query: Optional[TelegramCallbackQuery] = None

    def sender(self) -> Optional[TelegramUser]:
        if self.message is not None and self.message.from_user is not None:
            return self.message.from_user
        if self.callback_query is not None:
            return self.callback_query.from_user
        return None


class WebhookResponse(CustomBaseModel):
    ok: bool = True
    platform_id: int = 0
    account_id: str = ""
    authenticated: bool = False
