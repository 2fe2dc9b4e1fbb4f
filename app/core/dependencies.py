"""
FastAPI Dependencies

Route handlers receive the wallet core services through ``Depends`` so
tests can swap the whole container with ``app.dependency_overrides``.

Usage in endpoints:
    @router.post("/invoices")
    def create_invoice(gateway: PaymentGatewayAdapter = Depends(get_gateway)):
        ...
"""

from fastapi import Depends, HTTPException, status

from app.core.container import ApplicationContainer, get_container
from app.core.exceptions import InvalidMnemonicError, KeyMaterialError
from app.services.gateway import PaymentGatewayAdapter
from app.services.identity_binder import IdentityBinder
from app.services.session_store import SessionStore


def get_binder(container: ApplicationContainer = Depends(get_container)) -> IdentityBinder:
    return container.binder


def get_sessions(container: ApplicationContainer = Depends(get_container)) -> SessionStore:
    return container.sessions


def get_gateway(container: ApplicationContainer = Depends(get_container)) -> PaymentGatewayAdapter:
    """
    Gateway is built lazily; configuration problems surface here as 503
    instead of taking down unrelated routes.
    """
    try:
        return container.gateway()
    except (KeyMaterialError, InvalidMnemonicError, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"payment gateway not configured: {exc}",
        ) from exc
