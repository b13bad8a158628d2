from pydantic import Field
from datetime import datetime
from typing import Optional, List

from app.schemas.common import APIModel
from app.schemas.product import ProductWithMainImage


class CartAdd(APIModel):
    product_id: Optional[int] = None
    quantity: int = 1


class CartUpdate(APIModel):
    quantity: Optional[int] = None


class CartProduct(ProductWithMainImage):
    status: str
    message: Optional[str] = None


class CartItemOut(APIModel):
    id: int
    user_id: int
    product_id: int
    quantity: int
    created_at: datetime
    updated_at: datetime


class CartLine(CartItemOut):
    product: CartProduct


class CartOut(APIModel):
    items: List[CartLine]
    item_count: int
    subtotal: float


class CartMessageOut(APIModel):
    message: str
    cart_item: CartItemOut
