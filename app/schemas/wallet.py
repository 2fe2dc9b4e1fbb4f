from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.schemas.my_base_model import CustomBaseModel
from app.services.gateway import Invoice, NodeStatus


class InvoiceRequest(BaseModel):
    """Request model for invoice creation - input validation"""

    platform_id: int = Field(..., description="Chat platform user id")
    amount_msats: int = Field(..., gt=0, description="Amount in millisatoshis")
    memo: Optional[str] = Field(None, max_length=639, description="Invoice memo")
    expiry_secs: int = Field(3600, gt=0, description="Invoice expiry in seconds")
    idempotency_key: Optional[str] = Field(None, max_length=128, description="Caller-supplied retry key")


class InvoiceResponse(CustomBaseModel):
    """Response model for a created invoice - output"""

    id: str = ""
    status: str = ""
    encoded_payment_request: str = ""
    bitcoin_address: Optional[str] = None
    amount_msats: int = 0
    memo: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_invoice(cls, invoice: Invoice) -> "InvoiceResponse":
        return cls(
            id=invoice.id,
            status=invoice.status.value,
            encoded_payment_request=invoice.encoded_payment_request,
            bitcoin_address=invoice.bitcoin_address,
            amount_msats=invoice.amount_msats,
            memo=invoice.memo,
            created_at=invoice.created_at,
        )


class WalletConfigRequest(BaseModel):
    """Provisioning hook input"""

    account_id: str = Field(..., min_length=1)
    wallet_id: str = Field(..., min_length=1)


class WalletConfigResponse(CustomBaseModel):
    account_id: str = ""
    wallet_id: str = ""


class NodeStatusItem(CustomBaseModel):
    typename: str = ""
    id: str = ""
    status: str = ""

    @classmethod
    def from_node(cls, node: NodeStatus) -> "NodeStatusItem":
        return cls(typename=node.typename, id=node.id, status=node.status)


class NodeStatusResponse(CustomBaseModel):
    path: str = ""
    nodes: List[NodeStatusItem] = Field(default_factory=list)
