from datetime import datetime
from typing import Optional, List

from app.models.orders import OrderStatus
from app.schemas.common import APIModel
from app.schemas.product import ProductWithMainImage, ProductSummary
from app.schemas.user import UserSummary


class StatusUpdate(APIModel):
    status: Optional[str] = None


class OrderItemOut(APIModel):
    id: int
    order_id: int
    product_id: int
    quantity: int
    price: float


class OrderItemWithProduct(OrderItemOut):
    product: ProductWithMainImage


class OrderItemWithSummary(OrderItemOut):
    product: ProductSummary


class OrderOut(APIModel):
    id: int
    user_id: int
    total: float
    status: OrderStatus
    created_at: datetime
    updated_at: datetime


class OrderWithItems(OrderOut):
    order_items: List[OrderItemOut] = []


class OrderDetail(OrderOut):
    order_items: List[OrderItemWithProduct] = []


class AdminOrder(OrderOut):
    user: UserSummary
    order_items: List[OrderItemWithSummary] = []


class OrderMessageOut(APIModel):
    message: str
    order: OrderWithItems
