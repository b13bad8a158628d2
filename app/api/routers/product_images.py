import logging
from typing import List, Optional

from fastapi import Depends, HTTPException, APIRouter, status, UploadFile, File
from sqlalchemy.orm import Session
from botocore.exceptions import BotoCoreError, ClientError

from app.db.session import get_db
from app.models.product import Product, ProductImage
from app.core import oauth2
from app.infra import storage
from app.schemas import product as schemas
from app.schemas.common import Envelope, MessageOut, envelope

logger = logging.getLogger("uvicorn.error")

# Every route here is admin only
router = APIRouter(
    prefix="/api/product-images",
    tags=["Product Images"],
    dependencies=[Depends(oauth2.is_admin_middleware)],
)

MAX_UPLOAD_FILES = 10


def _get_product_or_404(db: Session, product_id: int) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product


def _get_image_or_404(db: Session, id: int) -> ProductImage:
    image = db.query(ProductImage).filter(ProductImage.id == id).first()
    if image is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Image not found")
    return image


def _check_formats(files: List[UploadFile]):
    for upload in files:
        try:
            storage.image_format(upload.filename)
        except storage.UnsupportedImageError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _discard(urls: List[str]):
    """Remove objects stored for a request that did not commit."""
    for url in urls:
        key = storage.key_from_url(url)
        if key:
            storage.delete_image(key)


def _store(upload: UploadFile) -> str:
    try:
        return storage.upload_product_image(upload.file, upload.filename, upload.content_type)
    except (BotoCoreError, ClientError) as e:
        logger.error(f"Image upload failed for {upload.filename}: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Image upload failed")


@router.post("/{product_id}", status_code=status.HTTP_201_CREATED, response_model=Envelope[schemas.ImageUploadOut])
def upload_product_image(
    product_id: int,
    image: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
):
    _get_product_or_404(db, product_id)
    if image is None or not image.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No image file provided")
    _check_formats([image])

    # The first image of a product becomes its main image
    has_images = db.query(ProductImage).filter(ProductImage.product_id == product_id).first() is not None
    url = _store(image)
    product_image = ProductImage(url=url, product_id=product_id, is_main=not has_images)
    try:
        db.add(product_image)
        db.commit()
    except Exception:
        db.rollback()
        _discard([url])
        raise
    db.refresh(product_image)

    return envelope({
        "message": "Image uploaded successfully",
        "image": product_image,
        "is_main": product_image.is_main,
    })


@router.post("/{product_id}/multiple", status_code=status.HTTP_201_CREATED, response_model=Envelope[schemas.ImagesUploadOut])
def upload_multiple_product_images(
    product_id: int,
    images: Optional[List[UploadFile]] = File(None),
    db: Session = Depends(get_db),
):
    _get_product_or_404(db, product_id)
    files = [upload for upload in (images or []) if upload.filename]
    if not files:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No image files provided")
    if len(files) > MAX_UPLOAD_FILES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"You can upload at most {MAX_UPLOAD_FILES} images at once",
        )
    _check_formats(files)

    existing = db.query(ProductImage).filter(ProductImage.product_id == product_id).count()
    urls = []
    try:
        for upload in files:
            urls.append(_store(upload))
        uploaded = [
            ProductImage(url=url, product_id=product_id, is_main=(i == 0 and existing == 0))
            for i, url in enumerate(urls)
        ]
        db.add_all(uploaded)
        db.commit()
    except Exception:
        db.rollback()
        _discard(urls)
        raise
    for product_image in uploaded:
        db.refresh(product_image)

    main_image_id = next((img.id for img in uploaded if img.is_main), None)
    return envelope({
        "message": f"{len(uploaded)} images uploaded successfully",
        "images": uploaded,
        "main_image_id": main_image_id,
    })


@router.delete("/{id}", response_model=Envelope[MessageOut])
def delete_product_image(id: int, db: Session = Depends(get_db)):
    image = _get_image_or_404(db, id)
    key = storage.key_from_url(image.url)

    if image.is_main:
        replacement = (
            db.query(ProductImage)
            .filter(ProductImage.product_id == image.product_id, ProductImage.id != id)
            .order_by(ProductImage.id)
            .first()
        )
        if replacement is not None:
            replacement.is_main = True

    db.delete(image)
    db.commit()

    # Bucket object goes only once the row is gone
    if key:
        storage.delete_image(key)
    logger.info(f"Product image {id} deleted")
    return envelope({"message": "Image deleted successfully"})


@router.put("/{id}/main", response_model=Envelope[MessageOut])
def set_main_product_image(id: int, db: Session = Depends(get_db)):
    image = _get_image_or_404(db, id)

    db.query(ProductImage).filter(ProductImage.product_id == image.product_id).update(
        {ProductImage.is_main: False}, synchronize_session=False
    )
    db.query(ProductImage).filter(ProductImage.id == id).update(
        {ProductImage.is_main: True}, synchronize_session=False
    )
    db.commit()
    return envelope({"message": "Main image updated successfully"})
