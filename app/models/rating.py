from app.db.session import Base
from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.sql.sqltypes import TIMESTAMP
from sqlalchemy import text
from sqlalchemy.orm import relationship


class Rating(Base):
    __tablename__ = "ratings"
    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="uq_ratings_user_product"),
        CheckConstraint("value BETWEEN 1 AND 5", name="ck_ratings_value_range"),
    )
    id = Column(Integer, primary_key=True, nullable=False)
    value = Column(Integer, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=text('CURRENT_TIMESTAMP'))

    user = relationship("User", back_populates="ratings")
    product = relationship("Product", back_populates="ratings")
