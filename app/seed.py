"""Reset the database and load demo data.

    python -m app.seed
"""
import logging
from decimal import Decimal

from app.db.session import SessionLocal, engine, Base
from app.core.security import hash_password

# Import every model so SQLAlchemy knows all tables
from app.models.user import User, UserRole
from app.models.product import Product, ProductImage, ProductCategory
from app.models.rating import Rating
from app.models.cart import CartItem
from app.models.orders import Order, OrderItem

logger = logging.getLogger("uvicorn.error")

ADMIN_EMAIL = "admin@threadscape.com"
ADMIN_PASSWORD = "Admin123!"
USER_PASSWORD = "Password123!"

USERS = [
    {"email": "john@example.com", "first_name": "John", "last_name": "Doe",
     "address": "456 Park Avenue", "city": "Boston", "country": "USA"},
    {"email": "jane@example.com", "first_name": "Jane", "last_name": "Smith",
     "address": "789 Oak Road", "city": "San Francisco", "country": "USA"},
    {"email": "mike@example.com", "first_name": "Mike", "last_name": "Johnson",
     "address": "101 Pine Street", "city": "Chicago", "country": "USA"},
]

PRODUCTS = [
    ("Classic Cotton T-Shirt", "A comfortable everyday cotton t-shirt with a relaxed fit. Made from 100% organic cotton.",
     "24.99", ProductCategory.MENS, 100,
     ["https://images.unsplash.com/photo-1521572163474-6864f9cf17ab", "https://images.unsplash.com/photo-1583743814966-8936f5b7be1a"]),
    ("Slim Fit Jeans", "Modern slim fit jeans in a versatile dark wash. Perfect for casual and semi-formal occasions.",
     "59.99", ProductCategory.MENS, 75,
     ["https://images.unsplash.com/photo-1541099649105-f69ad21f3246", "https://images.unsplash.com/photo-1542272604-787c3835535d"]),
    ("Oxford Button-Down Shirt", "A timeless Oxford shirt made from premium cotton. Features a button-down collar and relaxed fit.",
     "49.99", ProductCategory.MENS, 60,
     ["https://images.unsplash.com/photo-1596755094514-f87e34085b2c", "https://images.unsplash.com/photo-1589310243389-96a5483213a8"]),
    ("Floral Summer Dress", "A light and airy midi dress with a floral print, perfect for warm summer days.",
     "79.99", ProductCategory.WOMENS, 50,
     ["https://images.unsplash.com/photo-1572804013309-59a88b7e92f1"]),
    ("High-Waisted Trousers", "Tailored high-waisted trousers with a wide leg. Pairs well with blouses and knitwear.",
     "64.99", ProductCategory.WOMENS, 40,
     ["https://images.unsplash.com/photo-1594633312681-425c7b97ccd1"]),
    ("Cashmere Sweater", "A soft cashmere crew-neck sweater that keeps you warm without the bulk.",
     "129.99", ProductCategory.WOMENS, 30,
     ["https://images.unsplash.com/photo-1576566588028-4147f3842f27"]),
    ("Leather Belt", "A full-grain leather belt with a brushed metal buckle. Ages beautifully over time.",
     "34.99", ProductCategory.ACCESSORIES, 120,
     ["https://images.unsplash.com/photo-1553062407-98eeb64c6a62"]),
    ("Canvas Tote Bag", "A sturdy canvas tote with interior pockets, roomy enough for everyday essentials.",
     "29.99", ProductCategory.ACCESSORIES, 80,
     ["https://images.unsplash.com/photo-1590874103328-eac38a683ce7"]),
]

# (user index, product index, value)
RATINGS = [(0, 0, 5), (1, 0, 4), (2, 1, 4), (0, 3, 5), (1, 6, 3), (2, 6, 4)]


def clear(db):
    for model in (CartItem, OrderItem, Order, Rating, ProductImage, Product, User):
        db.query(model).delete()


def seed(db):
    """Replace all data with the demo catalog. Returns (admin, users, products)."""
    clear(db)

    admin = User(
        email=ADMIN_EMAIL,
        password=hash_password(ADMIN_PASSWORD),
        first_name="Admin",
        last_name="User",
        address="123 Admin Street",
        city="New York",
        country="USA",
        role=UserRole.ADMIN,
    )
    user_password = hash_password(USER_PASSWORD)
    users = [User(password=user_password, **data) for data in USERS]
    db.add(admin)
    db.add_all(users)

    products = []
    for name, description, price, category, inventory, urls in PRODUCTS:
        products.append(Product(
            name=name,
            description=description,
            price=Decimal(price),
            category=category,
            inventory=inventory,
            images=[ProductImage(url=url, is_main=(i == 0)) for i, url in enumerate(urls)],
        ))
    db.add_all(products)
    db.flush()

    for user_index, product_index, value in RATINGS:
        db.add(Rating(user_id=users[user_index].id, product_id=products[product_index].id, value=value))

    db.commit()
    logger.info(f"Seeded {len(users) + 1} users and {len(products)} products")
    return admin, users, products


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed(db)
        print(f"Admin: {ADMIN_EMAIL} / {ADMIN_PASSWORD}")
    finally:
        db.close()
