import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Depends
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from app.db.session import engine, get_db, Base

# Models must be imported before create_all
from app.models import user, product, rating, cart, orders  # noqa: F401

# Routers
from app.api.routers import auth
from app.api.routers import users
from app.api.routers import products
from app.api.routers import product_images
from app.api.routers import cart as cart_router
from app.api.routers import order

# Middleware and error handling setup
from app.middlewares.cors import setup_cors
from app.core.errors import setup_error_handlers

logger = logging.getLogger("uvicorn.error")

Base.metadata.create_all(bind=engine)

app = FastAPI(title="Threadscape API")

setup_cors(app)
setup_error_handlers(app)

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(products.router)
app.include_router(product_images.router)
app.include_router(cart_router.router)
app.include_router(order.router)


@app.get("/", tags=["Root"])
def is_running():
    return {"success": True, "message": "Threadscape API is running"}


@app.get("/api/test", tags=["Root"])
def api_health(db: Session = Depends(get_db)):
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        product_count = db.query(product.Product).count()
    except SQLAlchemyError as e:
        logger.error(f"Database error: {e}")
        return {
            "success": True,
            "message": "Backend API is running but database connection failed!",
            "timestamp": timestamp,
            "databaseConnected": False,
        }
    return {
        "success": True,
        "message": "Backend API is running successfully!",
        "timestamp": timestamp,
        "databaseConnected": True,
        "productCount": product_count,
    }
