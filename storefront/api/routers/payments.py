# storefront/api/routers/payments.py
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.errors import NotFoundError, ConflictError
from storefront.domain.schemas import PaymentCreate, PaymentOut, PaymentUrlOut
from storefront.services.lock_service import LockService
from storefront.services.payment_service import (
    PaymentService,
    IPN_UNKNOWN_ERROR,
    ipn_response,
)
from storefront.services.vnpay_gateway import VNPayGateway
from storefront.utils.settings import FRONTEND_URL
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/payment", tags=["payment"])


def get_gateway() -> VNPayGateway:
    return VNPayGateway()


@lru_cache
def get_lock_service() -> LockService:
    # one redis connection pool per process
    return LockService()


def get_service(
    db: Session = Depends(get_db),
    gateway: VNPayGateway = Depends(get_gateway),
    lock_service: LockService = Depends(get_lock_service),
) -> PaymentService:
    return PaymentService(db=db, gateway=gateway, lock_service=lock_service)


@router.post("/create", response_model=PaymentUrlOut)
def create_payment_url(
    payload: PaymentCreate,
    request: Request,
    user_id: int = Query(...),
    svc: PaymentService = Depends(get_service),
):
    ip_addr = request.client.host if request.client else "127.0.0.1"
    try:
        return svc.create_payment_url(user_id, payload.order_id, payload.amount, ip_addr)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/order/{order_id}", response_model=PaymentOut)
def get_payment_by_order(
    order_id: int,
    user_id: int = Query(...),
    svc: PaymentService = Depends(get_service),
):
    try:
        return svc.get_payment_by_order(order_id, user_id)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/vnpay_return")
def vnpay_return(request: Request, svc: PaymentService = Depends(get_service)):
    """Browser lands here from VNPay; bounce to the storefront success/failure page."""
    try:
        target = svc.handle_return(dict(request.query_params))
    except Exception as e:
        logger.error(f"Error handling VNPay return: {e}")
        target = f"{FRONTEND_URL.rstrip('/')}/payment/failure"
    return RedirectResponse(url=target, status_code=302)


@router.get("/vnpay-ipn")
def vnpay_ipn(request: Request, svc: PaymentService = Depends(get_service)):
    """Server-to-server notification; always answered with RspCode/Message."""
    try:
        return svc.handle_ipn(dict(request.query_params))
    except Exception as e:
        logger.error(f"Error handling VNPay IPN: {e}")
        return ipn_response(IPN_UNKNOWN_ERROR)
