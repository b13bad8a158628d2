"""Order placement and status changes.

Every function here runs inside one database transaction: it commits when all
steps succeed and rolls back otherwise. Rule violations raise `OrderError`,
which the routers turn into HTTP errors.
"""
import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from app.models.cart import CartItem
from app.models.orders import Order, OrderItem, OrderStatus
from app.models.product import Product
from app.models.user import User
from app.infra.email import send_order_notification

logger = logging.getLogger("uvicorn.error")

# What a customer may do to their own order
USER_TRANSITIONS = {
    OrderStatus.PENDING: [OrderStatus.CANCELLED],
    OrderStatus.SHIPPED: [OrderStatus.DELIVERED],
}


class OrderError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise OrderError("Invalid order status")


def _lock_products(db: Session, product_ids) -> dict:
    # Fixed lock order so concurrent checkouts cannot deadlock
    products = (
        db.query(Product)
        .filter(Product.id.in_(sorted(set(product_ids))))
        .order_by(Product.id)
        .with_for_update()
        .all()
    )
    return {p.id: p for p in products}


def _reserve_stock(db: Session, product_id: int, quantity: int) -> bool:
    updated = (
        db.query(Product)
        .filter(Product.id == product_id, Product.inventory >= quantity)
        .update({Product.inventory: Product.inventory - quantity}, synchronize_session=False)
    )
    return updated == 1


def _release_stock(db: Session, product_id: int, quantity: int):
    db.query(Product).filter(Product.id == product_id).update(
        {Product.inventory: Product.inventory + quantity}, synchronize_session=False
    )


def order_total(items) -> Decimal:
    return sum((Decimal(item.price) * item.quantity for item in items), Decimal("0.00"))


def place_order(db: Session, user: User) -> Order:
    """Turn the user's cart into a PENDING order, reserving inventory."""
    try:
        cart_items = (
            db.query(CartItem)
            .filter(CartItem.user_id == user.id)
            .order_by(CartItem.product_id)
            .all()
        )
        if not cart_items:
            raise OrderError("Cart is empty")

        products = _lock_products(db, [item.product_id for item in cart_items])
        for item in cart_items:
            product = products[item.product_id]
            if not product.is_active:
                raise OrderError(f'Product "{product.name}" is no longer available')
            if product.inventory < item.quantity:
                raise OrderError(
                    f'Insufficient inventory for "{product.name}". Only {product.inventory} available.'
                )

        order_items = [
            OrderItem(
                product_id=item.product_id,
                quantity=item.quantity,
                price=products[item.product_id].price,
            )
            for item in cart_items
        ]
        order = Order(
            user_id=user.id,
            total=order_total(order_items),
            status=OrderStatus.PENDING,
            order_items=order_items,
        )
        db.add(order)

        for item in cart_items:
            if not _reserve_stock(db, item.product_id, item.quantity):
                # Another checkout took the stock after validation
                product = products[item.product_id]
                raise OrderError(f'Insufficient inventory for "{product.name}".')

        db.query(CartItem).filter(CartItem.user_id == user.id).delete(synchronize_session=False)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(order)
    logger.info(f"Order {order.id} created for user {user.id}: total={order.total} items={len(order.order_items)}")

    try:
        send_order_notification(order)
    except Exception as e:
        logger.error(f"Could not send notification for order {order.id}: {e}")

    return order


def change_status(db: Session, order: Order, new_status: OrderStatus) -> Order:
    """Set a new status, moving inventory when entering or leaving CANCELLED."""
    previous = order.status
    try:
        if previous != OrderStatus.CANCELLED and new_status == OrderStatus.CANCELLED:
            for item in order.order_items:
                _release_stock(db, item.product_id, item.quantity)
        elif previous == OrderStatus.CANCELLED and new_status != OrderStatus.CANCELLED:
            _lock_products(db, [item.product_id for item in order.order_items])
            for item in sorted(order.order_items, key=lambda i: i.product_id):
                if not _reserve_stock(db, item.product_id, item.quantity):
                    raise OrderError(
                        f'Insufficient inventory for "{item.product.name}" to reopen order {order.id}'
                    )

        # Guard against a concurrent status change of the same order
        updated = (
            db.query(Order)
            .filter(Order.id == order.id, Order.status == previous)
            .update({Order.status: new_status}, synchronize_session=False)
        )
        if updated != 1:
            raise OrderError("Order was modified by another request, please retry", status_code=409)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(order)
    logger.info(f"Order {order.id} status changed {previous.value} -> {new_status.value}")
    return order


def cancel_order(db: Session, order: Order) -> Order:
    if order.status != OrderStatus.PENDING:
        raise OrderError(f'Cannot cancel order with status "{order.status.value}"')
    return change_status(db, order, OrderStatus.CANCELLED)


def fulfill_order(db: Session, order: Order) -> Order:
    if order.status in (OrderStatus.CANCELLED, OrderStatus.DELIVERED):
        raise OrderError(f'Cannot mark order with status "{order.status.value}" as delivered')
    return change_status(db, order, OrderStatus.DELIVERED)


def update_status_by_user(db: Session, order: Order, status) -> Order:
    allowed = USER_TRANSITIONS.get(order.status, [])
    if not status or status not in [s.value for s in allowed]:
        raise OrderError(
            f"Cannot change order status from {order.status.value} to {status}. "
            f"Allowed statuses: {', '.join(s.value for s in allowed)}"
        )
    return change_status(db, order, OrderStatus(status))
