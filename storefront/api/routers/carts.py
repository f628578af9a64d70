# storefront/api/routers/carts.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.errors import NotFoundError
from storefront.domain.schemas import (
    CartItemIn,
    CartItemRemoveIn,
    CartItemOut,
    CartClearOut,
)
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(db: Session):
    return CartService(db)


@router.get("", response_model=List[CartItemOut])
def get_cart(user_id: int = Query(...), db: Session = Depends(get_db)):
    return get_service(db).get_cart(user_id)


@router.post("/add", response_model=List[CartItemOut])
def add_item(payload: CartItemIn, user_id: int = Query(...), db: Session = Depends(get_db)):
    svc = get_service(db)
    try:
        return svc.add_item(user_id, payload.variant_id, payload.quantity)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.put("/update", response_model=List[CartItemOut])
def update_item(payload: CartItemIn, user_id: int = Query(...), db: Session = Depends(get_db)):
    svc = get_service(db)
    try:
        return svc.update_item(user_id, payload.variant_id, payload.quantity)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/remove", response_model=List[CartItemOut])
def remove_item(payload: CartItemRemoveIn, user_id: int = Query(...), db: Session = Depends(get_db)):
    svc = get_service(db)
    try:
        return svc.remove_item(user_id, payload.variant_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/clear", response_model=CartClearOut)
def clear_cart(user_id: int = Query(...), db: Session = Depends(get_db)):
    return {"removed": get_service(db).clear_cart(user_id)}
