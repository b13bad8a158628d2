from pydantic import Field, HttpUrl, AliasChoices
from datetime import datetime
from typing import Optional, List

from app.models.product import ProductCategory
from app.schemas.common import APIModel


class ImageIn(APIModel):
    id: Optional[int] = None
    url: HttpUrl
    is_main: Optional[bool] = None


class ImageOut(APIModel):
    id: int
    url: str
    is_main: bool
    product_id: int


class ProductCreate(APIModel):
    name: str = Field(min_length=1)
    description: str = Field(min_length=10)
    price: float = Field(gt=0)
    category: ProductCategory
    inventory: int = Field(ge=0)
    images: List[ImageIn] = Field(min_length=1)


class ProductUpdate(APIModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=10)
    price: Optional[float] = Field(default=None, gt=0)
    category: Optional[ProductCategory] = None
    inventory: Optional[int] = Field(default=None, ge=0)
    images: Optional[List[ImageIn]] = None


class RatingCreate(APIModel):
    value: int = Field(ge=1, le=5)


class RaterOut(APIModel):
    id: int
    first_name: str
    last_name: str


class RatingOut(APIModel):
    id: int
    value: int
    user_id: int
    product_id: int
    created_at: datetime


class RatingWithUser(RatingOut):
    user: RaterOut


class ProductBase(APIModel):
    id: int
    name: str
    description: str
    price: float
    category: ProductCategory
    inventory: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ProductOut(ProductBase):
    images: List[ImageOut] = []
    avg_rating: float = 0
    num_reviews: int = 0


class ProductDetail(ProductOut):
    ratings: List[RatingWithUser] = []


class ProductWithMainImage(ProductBase):
    # Reads the ORM `main_images` property, serialized as `images`
    images: List[ImageOut] = Field(default=[], validation_alias=AliasChoices("main_images", "images"))


class ProductSummary(APIModel):
    id: int
    name: str
    price: float


class ProductListOut(APIModel):
    products: List[ProductOut]
    total: int
    sort_by: str
    category: Optional[ProductCategory] = None


class FeaturedOut(APIModel):
    products: List[ProductOut]


class ProductMessageOut(APIModel):
    message: str
    product: ProductOut


class RatingResultOut(APIModel):
    message: str
    rating: RatingOut
    avg_rating: float
    num_reviews: int


class ImageUploadOut(APIModel):
    message: str
    image: ImageOut
    is_main: bool


class ImagesUploadOut(APIModel):
    message: str
    images: List[ImageOut]
    main_image_id: Optional[int] = None
