import logging
import random
from typing import List, Optional

from fastapi import Depends, HTTPException, APIRouter, status, Query
from sqlalchemy.orm import Session, selectinload

from app.db.session import get_db
from app.models import product as product_models
from app.models.rating import Rating
from app.core import oauth2
from app.schemas import product as schemas
from app.schemas.common import Envelope, PageEnvelope, envelope, paginated

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/api/products", tags=["Products"])

Product = product_models.Product
ProductImage = product_models.ProductImage

SORT_OPTIONS = ["newest", "price-asc", "price-desc", "rating"]
FEATURED_COUNT = 4


def _parse_category(category: Optional[str]) -> Optional[product_models.ProductCategory]:
    if category is None:
        return None
    try:
        return product_models.ProductCategory(category.upper())
    except ValueError:
        valid = ", ".join(c.value for c in product_models.ProductCategory)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid category. Valid categories are: {valid}",
        )


def _page_params(page: int, limit: int):
    page = max(1, page)
    limit = min(100, max(1, limit))
    return page, limit, (page - 1) * limit


def _get_product_or_404(db: Session, id: int) -> product_models.Product:
    product = db.query(Product).filter(Product.id == id).first()
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product


def _build_images(images: List[schemas.ImageIn]) -> List[product_models.ProductImage]:
    """Create image rows, keeping exactly one main image."""
    main_index = next((i for i, image in enumerate(images) if image.is_main), 0)
    return [
        ProductImage(url=str(image.url), is_main=(i == main_index))
        for i, image in enumerate(images)
    ]


def list_products(
    db: Session,
    page: int,
    limit: int,
    sort: str,
    category=None,
    include_inactive: bool = False,
    search: Optional[str] = None,
):
    """Filtered, sorted page of products plus the total match count."""
    if sort not in SORT_OPTIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid sort option. Valid options are: {', '.join(SORT_OPTIONS)}",
        )
    page, limit, skip = _page_params(page, limit)

    query = db.query(Product).options(selectinload(Product.images), selectinload(Product.ratings))
    if category is not None:
        query = query.filter(Product.category == category)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    if search:
        query = query.filter(Product.name.ilike(f"%{search}%"))

    total = query.count()

    if sort == "rating":
        # Average rating is computed in Python, so sort and page after loading
        products = sorted(query.all(), key=lambda p: (-p.avg_rating, -p.num_reviews))
        products = products[skip:skip + limit]
    else:
        if sort == "price-asc":
            order_by = (Product.price.asc(), Product.id.asc())
        elif sort == "price-desc":
            order_by = (Product.price.desc(), Product.id.asc())
        else:
            order_by = (Product.created_at.desc(), Product.id.desc())
        products = query.order_by(*order_by).offset(skip).limit(limit).all()

    return products, total, page, limit


@router.get("", response_model=PageEnvelope[schemas.ProductListOut])
def get_products(
    db: Session = Depends(get_db),
    category: Optional[str] = Query(None, description="MENS, WOMENS or ACCESSORIES"),
    page: int = Query(1),
    limit: int = Query(12),
    sort: str = Query("newest"),
    search: Optional[str] = Query(None, description="Case-insensitive match on product name"),
    include_inactive: bool = Query(False, alias="includeInactive"),
):
    parsed_category = _parse_category(category)
    products, total, page, limit = list_products(
        db, page, limit, sort, parsed_category, include_inactive, search
    )
    data = {"products": products, "total": total, "sort_by": sort, "category": parsed_category}
    return paginated(data, page, limit, total, count=len(products))


@router.get("/featured", response_model=Envelope[schemas.FeaturedOut])
def get_featured_products(db: Session = Depends(get_db)):
    candidates = (
        db.query(Product)
        .options(selectinload(Product.images), selectinload(Product.ratings))
        .filter(Product.is_active.is_(True), Product.inventory > 0)
        .all()
    )
    featured = random.sample(candidates, min(FEATURED_COUNT, len(candidates)))
    return envelope({"products": featured})


@router.get("/category/{category}", response_model=PageEnvelope[schemas.ProductListOut])
def get_products_by_category(
    category: str,
    db: Session = Depends(get_db),
    page: int = Query(1),
    limit: int = Query(12),
    sort: str = Query("newest"),
):
    parsed_category = _parse_category(category)
    products, total, page, limit = list_products(db, page, limit, sort, parsed_category)
    data = {"category": parsed_category, "products": products, "total": total, "sort_by": sort}
    return paginated(data, page, limit, total, count=len(products))


@router.get("/{id}", response_model=Envelope[schemas.ProductDetail])
def get_product_by_id(id: int, db: Session = Depends(get_db)):
    return envelope(_get_product_or_404(db, id))


@router.post("", status_code=status.HTTP_201_CREATED, response_model=Envelope[schemas.ProductOut])
def create_product(
    product_in: schemas.ProductCreate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(oauth2.is_admin_middleware),
):
    new_product = Product(
        **product_in.model_dump(exclude={"images"}),
        images=_build_images(product_in.images),
    )
    db.add(new_product)
    db.commit()
    db.refresh(new_product)
    logger.info(f"Product {new_product.id} '{new_product.name}' created")
    return envelope(new_product)


@router.put("/{id}", response_model=Envelope[schemas.ProductOut])
def update_product(
    id: int,
    product_in: schemas.ProductUpdate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(oauth2.is_admin_middleware),
):
    product = _get_product_or_404(db, id)

    for field, value in product_in.model_dump(exclude_unset=True, exclude_none=True, exclude={"images"}).items():
        setattr(product, field, value)
    if product_in.images is not None:
        product.images = _build_images(product_in.images)

    db.commit()
    db.refresh(product)
    logger.info(f"Product {product.id} updated")
    return envelope(product)


@router.put("/{id}/discontinue", response_model=Envelope[schemas.ProductMessageOut])
def discontinue_product(id: int, db: Session = Depends(get_db), current_user: dict = Depends(oauth2.is_admin_middleware)):
    product = _get_product_or_404(db, id)
    # Soft delete; zero inventory blocks new purchases
    product.is_active = False
    product.inventory = 0
    db.commit()
    db.refresh(product)
    logger.info(f"Product {product.id} discontinued")
    return envelope({"message": "Product has been discontinued", "product": product})


@router.put("/{id}/restore", response_model=Envelope[schemas.ProductMessageOut])
def restore_product(id: int, db: Session = Depends(get_db), current_user: dict = Depends(oauth2.is_admin_middleware)):
    product = _get_product_or_404(db, id)
    product.is_active = True
    db.commit()
    db.refresh(product)
    logger.info(f"Product {product.id} restored")
    return envelope({"message": "Product has been restored", "product": product})


@router.post("/{id}/ratings", response_model=Envelope[schemas.RatingResultOut])
def rate_product(
    id: int,
    rating_in: schemas.RatingCreate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(oauth2.get_current_user),
):
    product = _get_product_or_404(db, id)
    if not product.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")

    user = current_user["user"]
    rating = db.query(Rating).filter(Rating.user_id == user.id, Rating.product_id == id).first()
    if rating is None:
        rating = Rating(user_id=user.id, product_id=id, value=rating_in.value)
        db.add(rating)
        message = "Rating added"
    else:
        rating.value = rating_in.value
        message = "Rating updated"
    db.commit()
    db.refresh(rating)
    db.refresh(product)

    return envelope({
        "message": message,
        "rating": rating,
        "avg_rating": product.avg_rating,
        "num_reviews": product.num_reviews,
    })
