from fastapi import APIRouter, Depends, status

from app.api.errors import to_http_exception
from app.core.dependencies import get_gateway
from app.core.exceptions import WalletCoreError
from app.schemas.wallet import NodeStatusItem, NodeStatusResponse
from app.services.gateway import PaymentGatewayAdapter

router = APIRouter()
group_tags = ["gateway"]


@router.get(
    "/nodes",
    tags=group_tags,
    response_model=NodeStatusResponse,
    status_code=status.HTTP_200_OK,
)
def get_node_status(gateway: PaymentGatewayAdapter = Depends(get_gateway)) -> NodeStatusResponse:
    try:
        nodes = gateway.get_node_status()
    except WalletCoreError as exc:
        raise to_http_exception(exc) from exc
    return NodeStatusResponse(
        path=gateway.path.value,
        nodes=[NodeStatusItem.from_node(node) for node in nodes],
    )
