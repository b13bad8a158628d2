import enum
from decimal import Decimal, ROUND_HALF_UP

from app.db.session import Base
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Text, Numeric, Enum, CheckConstraint
from sqlalchemy.sql.sqltypes import TIMESTAMP
from sqlalchemy import text, func, true, false
from sqlalchemy.orm import relationship


class ProductCategory(str, enum.Enum):
    MENS = "MENS"
    WOMENS = "WOMENS"
    ACCESSORIES = "ACCESSORIES"


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("inventory >= 0", name="ck_products_inventory_non_negative"),
    )
    id = Column(Integer, primary_key=True, nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False, server_default=text("''"))
    price = Column(Numeric(10, 2), nullable=False)
    category = Column(Enum(ProductCategory, name="product_category"), nullable=False, index=True)
    inventory = Column(Integer, nullable=False, server_default=text('0'))
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=text('CURRENT_TIMESTAMP'), onupdate=func.now())

    images = relationship("ProductImage", back_populates="product", cascade="all, delete-orphan", order_by="ProductImage.id")
    ratings = relationship("Rating", back_populates="product", cascade="all, delete-orphan", order_by="Rating.id")

    @property
    def num_reviews(self) -> int:
        return len(self.ratings)

    @property
    def avg_rating(self) -> float:
        if not self.ratings:
            return 0.0
        # Halves round up: 4.25 -> 4.3
        mean = Decimal(sum(r.value for r in self.ratings)) / Decimal(len(self.ratings))
        return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))

    @property
    def main_images(self):
        """Main image only, as a list so it serializes like `images`."""
        return [image for image in self.images if image.is_main][:1]


class ProductImage(Base):
    __tablename__ = "product_images"
    id = Column(Integer, primary_key=True, nullable=False)
    url = Column(String, nullable=False)
    is_main = Column(Boolean, nullable=False, default=False, server_default=false())
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=text('CURRENT_TIMESTAMP'))

    product = relationship("Product", back_populates="images")
