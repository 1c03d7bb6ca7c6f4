"""
Product routes - Public catalogue listing and producer publishing.
"""

import logging

from fastapi import APIRouter, Depends, status

from handinhand.api.dependencies import get_product_repository, require_user
from handinhand.api.models import (
    ErrorResponse,
    ProductCreatedResponse,
    ProductCreateRequest,
    ProductListResponse,
    ProductOut,
)
from handinhand.domain.models import SessionUser
from handinhand.domain.ports import ProductRepository

logger = logging.getLogger(__name__)

router = APIRouter(tags=["productos"])


@router.get("/productos", response_model=ProductListResponse, summary="List products")
def list_products(
    products: ProductRepository = Depends(get_product_repository),
) -> ProductListResponse:
    """All products, newest first."""
    return ProductListResponse(
        productos=[ProductOut.from_product(product) for product in products.list_all()]
    )


@router.post(
    "/productos",
    response_model=ProductCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Validation error"},
        401: {"model": ErrorResponse, "description": "Not logged in"},
    },
    summary="Publish a product",
)
def create_product(
    request_data: ProductCreateRequest,
    user: SessionUser = Depends(require_user),
    products: ProductRepository = Depends(get_product_repository),
) -> ProductCreatedResponse:
    """
    Publish a product as the logged-in user.

    - **nombre**, **descripcion**: non-empty text
    - **precio**: positive amount, two decimals
    - **imagen_url**: absolute http(s) URL
    """
    product = products.add(
        name=request_data.name.strip(),
        description=request_data.description.strip(),
        price=request_data.price,
        image_url=str(request_data.image_url),
        producer_id=user.id,
    )
    logger.info("Product %s published by user %s", product.id, user.id)
    return ProductCreatedResponse(message="Producto agregado exitosamente", product_id=product.id)
