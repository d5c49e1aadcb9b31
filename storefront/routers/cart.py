from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional

from storefront.database import get_db
from storefront.schemas.base import MessageResponse
from storefront.schemas.cart import CartItemCreate, CartItemUpdate, CartItemResponse, CartResponse
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/api/cart", tags=["cart"])


@router.get("", response_model=CartResponse)
def get_cart(sessionId: Optional[str] = None, userId: Optional[str] = None, db: Session = Depends(get_db)):
    return CartService.get_or_create_cart(db, session_id=sessionId, user_id=userId)


@router.post("/items", response_model=CartItemResponse, status_code=201)
def add_cart_item(payload: CartItemCreate, db: Session = Depends(get_db)):
    return CartService.add_item(db, payload)


@router.get("/{cart_id}/items", response_model=List[CartItemResponse])
def get_cart_items(cart_id: int, db: Session = Depends(get_db)):
    return CartService.get_cart(db, cart_id).items


@router.put("/items/{item_id}", response_model=CartItemResponse)
def update_cart_item(item_id: int, payload: CartItemUpdate, db: Session = Depends(get_db)):
    return CartService.update_quantity(db, item_id, payload.quantity)


@router.delete("/items/{item_id}", response_model=MessageResponse)
def remove_cart_item(item_id: int, db: Session = Depends(get_db)):
    CartService.remove_item(db, item_id)
    return MessageResponse(message="Cart item removed successfully")


@router.delete("/{cart_id}", response_model=MessageResponse)
def clear_cart(cart_id: int, db: Session = Depends(get_db)):
    CartService.clear_cart(db, cart_id)
    return MessageResponse(message="Cart cleared successfully")
