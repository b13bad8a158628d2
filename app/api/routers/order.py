import logging
from typing import List, Optional

from fastapi import Depends, HTTPException, APIRouter, status, Query
from sqlalchemy.orm import Session, selectinload

from app.db.session import get_db
from app.models.orders import Order, OrderItem, OrderStatus
from app.models.product import Product
from app.core import oauth2
from app.services import orders as order_service
from app.services.orders import OrderError
from app.schemas import order as schemas_order
from app.schemas.common import Envelope, PageEnvelope, envelope, paginated

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/api/orders", tags=["Order Management"])


def _raise_http(e: OrderError):
    logger.warning(f"Order operation rejected: {e.message}")
    raise HTTPException(status_code=e.status_code, detail=e.message)


def _page_params(page: int, limit: int):
    page = max(1, page)
    limit = min(100, max(1, limit))
    return page, limit, (page - 1) * limit


def _get_order_or_404(db: Session, id: int) -> Order:
    order = db.query(Order).filter(Order.id == id).first()
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order


def _get_own_order(db: Session, id: int, user_id: int, action: str = "update") -> Order:
    order = _get_order_or_404(db, id)
    if order.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Not authorized to {action} this order")
    return order


def _with_products():
    return selectinload(Order.order_items).selectinload(OrderItem.product).selectinload(Product.images)


# Orders of the current user, newest first
@router.get("", response_model=PageEnvelope[List[schemas_order.OrderDetail]])
def get_user_orders(
    db: Session = Depends(get_db),
    current_user: dict = Depends(oauth2.get_current_user),
    page: int = Query(1),
    limit: int = Query(10),
):
    page, limit, skip = _page_params(page, limit)
    query = db.query(Order).filter(Order.user_id == current_user["user"].id)
    total = query.count()
    orders = (
        query.options(_with_products())
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    return paginated(orders, page, limit, total)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=Envelope[schemas_order.OrderMessageOut])
def create_order(db: Session = Depends(get_db), current_user: dict = Depends(oauth2.get_current_user)):
    try:
        order = order_service.place_order(db, current_user["user"])
    except OrderError as e:
        _raise_http(e)
    return envelope({"message": "Order created successfully", "order": order})


# Declared before /{id} so 'admin' is not read as an order id
@router.get("/admin/all", response_model=PageEnvelope[List[schemas_order.AdminOrder]])
def get_all_orders(
    db: Session = Depends(get_db),
    current_user: dict = Depends(oauth2.is_admin_middleware),
    page: int = Query(1),
    limit: int = Query(10),
    status_filter: Optional[str] = Query(None, alias="status"),
):
    page, limit, skip = _page_params(page, limit)
    query = db.query(Order)
    if status_filter:
        try:
            query = query.filter(Order.status == order_service.parse_status(status_filter))
        except OrderError as e:
            _raise_http(e)
    total = query.count()
    orders = (
        query.options(
            selectinload(Order.user),
            selectinload(Order.order_items).selectinload(OrderItem.product),
        )
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    return paginated(orders, page, limit, total)


@router.get("/{id}", response_model=Envelope[schemas_order.OrderDetail])
def get_order_by_id(id: int, db: Session = Depends(get_db), current_user: dict = Depends(oauth2.get_current_user)):
    user = current_user["user"]
    order = _get_order_or_404(db, id)
    if order.user_id != user.id and not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to view this order")
    return envelope(order)


@router.put("/{id}/cancel", response_model=Envelope[schemas_order.OrderMessageOut])
def cancel_order(id: int, db: Session = Depends(get_db), current_user: dict = Depends(oauth2.get_current_user)):
    order = _get_own_order(db, id, current_user["user"].id, action="cancel")
    try:
        order = order_service.cancel_order(db, order)
    except OrderError as e:
        _raise_http(e)
    return envelope({"message": "Order cancelled successfully", "order": order})


@router.put("/{id}/fulfill", response_model=Envelope[schemas_order.OrderMessageOut])
def fulfill_order(id: int, db: Session = Depends(get_db), current_user: dict = Depends(oauth2.get_current_user)):
    order = _get_own_order(db, id, current_user["user"].id)
    try:
        order = order_service.fulfill_order(db, order)
    except OrderError as e:
        _raise_http(e)
    return envelope({"message": "Order marked as delivered successfully", "order": order})


@router.put("/{id}/update-status", response_model=Envelope[schemas_order.OrderMessageOut])
def update_order_status_by_user(
    id: int,
    status_update: schemas_order.StatusUpdate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(oauth2.get_current_user),
):
    order = _get_own_order(db, id, current_user["user"].id)
    try:
        order = order_service.update_status_by_user(db, order, status_update.status)
    except OrderError as e:
        _raise_http(e)

    if order.status == OrderStatus.CANCELLED:
        message = "Order cancelled successfully"
    else:
        message = f"Order marked as {order.status.value.lower()} successfully"
    return envelope({"message": message, "order": order})


@router.put("/{id}/status", response_model=Envelope[schemas_order.OrderMessageOut])
def update_order_status(
    id: int,
    status_update: schemas_order.StatusUpdate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(oauth2.is_admin_middleware),
):
    try:
        new_status = order_service.parse_status(status_update.status)
        order = order_service.change_status(db, _get_order_or_404(db, id), new_status)
    except OrderError as e:
        _raise_http(e)
    return envelope({"message": "Order status updated successfully", "order": order})
