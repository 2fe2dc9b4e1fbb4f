from fastapi import HTTPException, status

from app.core.exceptions import (
    GatewayError,
    InvalidMnemonicError,
    KeyMaterialError,
    SigningError,
    UnboundAccountError,
    UnresolvedIdentityError,
    WalletCoreError,
)


def to_http_exception(exc: WalletCoreError) -> HTTPException:
    """Map the wallet error taxonomy onto HTTP responses without leaking secrets."""
    if isinstance(exc, (UnboundAccountError, UnresolvedIdentityError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, GatewayError):
        code = status.HTTP_504_GATEWAY_TIMEOUT if exc.timed_out else status.HTTP_502_BAD_GATEWAY
        return HTTPException(
            status_code=code,
            detail={
                "path": exc.path.value,
                "upstream_status": exc.upstream_status,
                "message": exc.message,
                "retryable": exc.retryable,
            },
        )
    if isinstance(exc, (KeyMaterialError, SigningError, InvalidMnemonicError)):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="wallet core error")
