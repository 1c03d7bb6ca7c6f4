"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Wire field names follow the public contract (Spanish, camelCase where the
frontend expects it); Python attributes stay snake_case via aliases.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, HttpUrl

from handinhand.domain.models import Product, SessionUser, User


class AliasedModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SendCodeRequest(AliasedModel):
    """Request model for starting a registration."""

    email: str = Field(..., max_length=255)
    display_name: str = Field(..., alias="nombre", max_length=100)
    password: str
    captcha_token: str | None = Field(default=None, alias="captchaToken")


class SendCodeResponse(AliasedModel):
    success: bool = True
    message: str
    expires_at: datetime = Field(..., alias="expiresAt")


class VerifyCodeRequest(AliasedModel):
    """Request model for submitting the emailed code."""

    code: str = Field(..., alias="codigoIngresado", description="6-digit verification code")


class UserOut(AliasedModel):
    id: int
    email: str
    display_name: str = Field(..., alias="nombre")

    @classmethod
    def from_user(cls, user: User | SessionUser) -> "UserOut":
        return cls(id=user.id, email=user.email, display_name=user.display_name)


class VerifyCodeResponse(AliasedModel):
    success: bool = True
    message: str
    user_id: int = Field(..., alias="userId")
    user: UserOut


class LoginRequest(BaseModel):
    """Malformed emails are not rejected here; they fail login like any unknown address."""

    email: str
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    success: bool = True
    message: str
    user: UserOut


class SessionResponse(BaseModel):
    success: bool = True
    user: UserOut


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ProductCreateRequest(AliasedModel):
    """Request model for publishing a product (logged-in producers only)."""

    name: str = Field(..., alias="nombre", min_length=1, max_length=255)
    description: str = Field(..., alias="descripcion", min_length=1)
    price: Decimal = Field(..., alias="precio", gt=0, max_digits=10, decimal_places=2)
    image_url: HttpUrl = Field(..., alias="imagen_url")


class ProductOut(AliasedModel):
    id: int
    name: str = Field(..., alias="nombre")
    description: str = Field(..., alias="descripcion")
    price: Decimal = Field(..., alias="precio")
    image_url: str = Field(..., alias="imagen_url")
    producer_id: int | None = Field(..., alias="id_productor")
    created_at: datetime = Field(..., alias="fecha_creacion")

    @classmethod
    def from_product(cls, product: Product) -> "ProductOut":
        return cls(
            id=product.id,
            name=product.name,
            description=product.description,
            price=product.price,
            image_url=product.image_url,
            producer_id=product.producer_id,
            created_at=product.created_at,
        )


class ProductListResponse(BaseModel):
    success: bool = True
    productos: list[ProductOut]


class ProductCreatedResponse(AliasedModel):
    success: bool = True
    message: str
    product_id: int = Field(..., alias="productId")


class FieldError(BaseModel):
    field: str
    message: str


class ErrorResponse(AliasedModel):
    """Standard error response model."""

    success: bool = False
    error: str
    details: list[FieldError] | None = None
    attempts_remaining: int | None = Field(default=None, alias="intentosRestantes")
