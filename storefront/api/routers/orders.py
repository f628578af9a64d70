# storefront/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.errors import NotFoundError, ConflictError
from storefront.domain.schemas import (
    OrderCreate,
    OrderOut,
    OrderStatusIn,
    OrderWithDetailsOut,
)
from storefront.services.order_service import OrderService

router = APIRouter(tags=["orders"])


def get_service(db: Session):
    return OrderService(db)


@router.post("/order/create", response_model=OrderOut, status_code=201)
def create_order(
    payload: OrderCreate,
    user_id: int = Query(...),
    db: Session = Depends(get_db),
):
    """
    Creates an order from a cart snapshot. Detail prices are stored as sent;
    the cart is left alone.
    """
    svc = get_service(db)
    try:
        return svc.create_order(user_id, payload.total_price, payload.details)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/order/all", response_model=List[OrderWithDetailsOut])
def list_all_orders(
    status: str | None = Query(None),
    db: Session = Depends(get_db),
):
    """Admin transactions screen: all orders, optionally one status, each with its payment."""
    svc = get_service(db)
    try:
        return svc.list_all_orders(status)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/orders", response_model=List[OrderWithDetailsOut])
def list_orders(user_id: int = Query(...), db: Session = Depends(get_db)):
    return get_service(db).list_orders(user_id)


@router.get("/orders/{order_id}", response_model=OrderWithDetailsOut)
def get_order(
    order_id: int,
    user_id: int = Query(...),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        return svc.get_order(order_id, user_id)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/orders/{order_id}/status", response_model=OrderOut)
def update_order_status(
    order_id: int,
    payload: OrderStatusIn,
    db: Session = Depends(get_db),
):
    """Admin status change, checked against the allowed transitions."""
    svc = get_service(db)
    try:
        return svc.update_status(order_id, payload.status)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/orders/{order_id}/cancel", response_model=OrderWithDetailsOut)
def cancel_order(
    order_id: int,
    user_id: int = Query(...),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        return svc.cancel_order(order_id, user_id)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
