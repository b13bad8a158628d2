import logging
from decimal import Decimal

from fastapi import Depends, HTTPException, APIRouter, status, Response
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import IntegrityError

from app.db.session import get_db
from app.models import product as product_models
from app.models import cart as models_cart
from app.core import oauth2
from app.schemas import cart
from app.schemas.product import ProductWithMainImage
from app.schemas.common import Envelope, MessageOut, envelope

logger = logging.getLogger("uvicorn.error")

# All cart routes need a logged in user
router = APIRouter(prefix="/api/cart", tags=["Shopping Cart"])

CartItem = models_cart.CartItem


def _cart_line(item: models_cart.CartItem) -> cart.CartLine:
    product = ProductWithMainImage.model_validate(item.product).model_dump()
    product.update(status=item.status, message=item.message)
    return cart.CartLine(
        id=item.id,
        user_id=item.user_id,
        product_id=item.product_id,
        quantity=item.quantity,
        created_at=item.created_at,
        updated_at=item.updated_at,
        product=product,
    )


def _get_own_item_or_404(db: Session, id: int, user_id: int) -> models_cart.CartItem:
    item = db.query(CartItem).filter(CartItem.id == id, CartItem.user_id == user_id).first()
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cart item not found")
    return item


def _check_quantity(quantity) -> int:
    if quantity is None or quantity < 1:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Quantity must be a positive number")
    return quantity


@router.get("", response_model=Envelope[cart.CartOut])
def get_cart(db: Session = Depends(get_db), current_user: dict = Depends(oauth2.get_current_user)):
    user_id = current_user["user"].id
    items = (
        db.query(CartItem)
        .options(selectinload(CartItem.product).selectinload(product_models.Product.images))
        .filter(CartItem.user_id == user_id)
        .order_by(CartItem.id)
        .all()
    )
    subtotal = sum((Decimal(item.line_total) for item in items), Decimal("0.00"))
    return envelope({
        "items": [_cart_line(item) for item in items],
        "item_count": len(items),
        "subtotal": subtotal,
    })


@router.post("", response_model=Envelope[cart.CartMessageOut])
def add_to_cart(
    cart_add: cart.CartAdd,
    response: Response,
    db: Session = Depends(get_db),
    current_user: dict = Depends(oauth2.get_current_user),
):
    user_id = current_user["user"].id
    if not cart_add.product_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Product ID is required")
    quantity = _check_quantity(cart_add.quantity)

    product = db.query(product_models.Product).filter(product_models.Product.id == cart_add.product_id).first()
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    if not product.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This product is no longer available")
    if product.inventory < quantity:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Insufficient inventory. Only {product.inventory} items available.",
        )

    existing = (
        db.query(CartItem)
        .filter(CartItem.user_id == user_id, CartItem.product_id == product.id)
        .first()
    )
    if existing is not None:
        new_quantity = existing.quantity + quantity
        if new_quantity > product.inventory:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot add {quantity} more units. Only {product.inventory - existing.quantity} more units available.",
            )
        existing.quantity = new_quantity
        db.commit()
        db.refresh(existing)
        return envelope({"message": "Cart updated successfully", "cart_item": existing})

    new_item = CartItem(user_id=user_id, product_id=product.id, quantity=quantity)
    try:
        db.add(new_item)
        db.commit()
        db.refresh(new_item)
    except IntegrityError:
        # Same product added by a parallel request
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Product is already in the cart")
    response.status_code = status.HTTP_201_CREATED
    return envelope({"message": "Item added to cart", "cart_item": new_item})


@router.put("/{id}", response_model=Envelope[cart.CartMessageOut])
def update_cart_item(
    id: int,
    cart_update: cart.CartUpdate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(oauth2.get_current_user),
):
    if cart_update.quantity is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Quantity is required")
    quantity = _check_quantity(cart_update.quantity)

    item = _get_own_item_or_404(db, id, current_user["user"].id)
    if item.product.inventory < quantity:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Insufficient inventory. Only {item.product.inventory} items available.",
        )

    item.quantity = quantity
    db.commit()
    db.refresh(item)
    return envelope({"message": "Cart updated successfully", "cart_item": item})


@router.delete("/{id}", response_model=Envelope[MessageOut])
def remove_from_cart(id: int, db: Session = Depends(get_db), current_user: dict = Depends(oauth2.get_current_user)):
    item = _get_own_item_or_404(db, id, current_user["user"].id)
    db.delete(item)
    db.commit()
    return envelope({"message": "Item removed from cart"})


@router.delete("", response_model=Envelope[MessageOut])
def clear_cart(db: Session = Depends(get_db), current_user: dict = Depends(oauth2.get_current_user)):
    db.query(CartItem).filter(CartItem.user_id == current_user["user"].id).delete(synchronize_session=False)
    db.commit()
    return envelope({"message": "Cart cleared successfully"})
