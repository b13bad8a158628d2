import os
import tempfile

# Settings are read at import time, so configure the environment first.
os.environ["APP_ENV"] = "development"
os.environ["DATABASE_HOSTNAME"] = "sqlite"
os.environ["DATABASE_NAME"] = os.path.join(tempfile.gettempdir(), "threadscape_test.db")
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["AWS_REGION"] = "us-east-1"
os.environ["S3_BUCKET_NAME"] = "threadscape-test"
os.environ["S3_PUBLIC_BASE_URL"] = "https://cdn.example.com"
os.environ["SENDGRID_API_KEY"] = ""
os.environ["NOTIFICATION_EMAIL"] = ""

from decimal import Decimal

import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.session import Base, get_db
from app.core.security import hash_password
from app.core.oauth2 import token_for
from app.infra import storage
from app.models.user import User, UserRole
from app.models.product import Product, ProductImage, ProductCategory
from app.models.cart import CartItem

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PASSWORD = "Password123!"
PASSWORD_HASH = hash_password(PASSWORD)


class FakeS3:
    def __init__(self):
        self.objects = {}
        self.deleted = []
        # Uploads beyond this many fail like an S3 outage
        self.max_uploads = None

    def upload_fileobj(self, fileobj, bucket, key, ExtraArgs=None):
        if self.max_uploads is not None and len(self.objects) >= self.max_uploads:
            raise ClientError({"Error": {"Code": "InternalError", "Message": "S3 unavailable"}}, "PutObject")
        self.objects[key] = fileobj.read()

    def delete_object(self, Bucket, Key):
        self.deleted.append(Key)
        self.objects.pop(Key, None)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def error_client(client):
    """Client that returns 500 responses instead of re-raising server errors."""
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture(autouse=True)
def fake_s3(monkeypatch):
    fake = FakeS3()
    monkeypatch.setattr(storage, "s3", fake)
    return fake


def make_user(db, email="shopper@example.com", role=UserRole.USER, first_name="Sam", last_name="Shopper"):
    user = User(
        email=email,
        password=PASSWORD_HASH,
        first_name=first_name,
        last_name=last_name,
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_product(db, name="Classic Tee", price="25.00", inventory=10,
                 category=ProductCategory.MENS, is_active=True, image_count=1):
    product = Product(
        name=name,
        description=f"{name} made from soft organic cotton.",
        price=Decimal(price),
        category=category,
        inventory=inventory,
        is_active=is_active,
        images=[
            ProductImage(url=f"https://images.example.com/{name.replace(' ', '-').lower()}-{i}.jpg", is_main=(i == 0))
            for i in range(image_count)
        ],
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def add_to_cart(db, user, product, quantity=1):
    item = CartItem(user_id=user.id, product_id=product.id, quantity=quantity)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def auth_headers(user):
    return {"Authorization": f"Bearer {token_for(user)}"}


@pytest.fixture
def user(db):
    return make_user(db)


@pytest.fixture
def other_user(db):
    return make_user(db, email="other@example.com", first_name="Olive", last_name="Other")


@pytest.fixture
def admin(db):
    return make_user(db, email="boss@example.com", role=UserRole.ADMIN, first_name="Ada", last_name="Admin")


@pytest.fixture
def user_headers(user):
    return auth_headers(user)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def product(db):
    return make_product(db)
