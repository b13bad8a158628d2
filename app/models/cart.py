from app.db.session import Base
from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.sql.sqltypes import TIMESTAMP
from sqlalchemy import text, func
from sqlalchemy.orm import relationship


class CartItem(Base):
    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="uq_cart_items_user_product"),
        CheckConstraint("quantity >= 1", name="ck_cart_items_quantity_positive"),
    )
    id = Column(Integer, primary_key=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Integer, nullable=False, server_default=text("1"))
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=text('CURRENT_TIMESTAMP'), onupdate=func.now())

    user = relationship("User", back_populates="cart_items")
    product = relationship("Product")

    @property
    def status(self) -> str:
        product = self.product
        if not product.is_active:
            return "discontinued"
        if product.inventory >= self.quantity:
            return "in_stock"
        if product.inventory > 0:
            return "limited_stock"
        return "out_of_stock"

    @property
    def message(self):
        if self.status == "discontinued":
            return "This product is no longer available"
        return None

    @property
    def line_total(self):
        return self.product.price * self.quantity
