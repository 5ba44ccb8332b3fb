# models.py
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_IMAGE = "product-placeholder.jpg"


class ProductValidationError(ValueError):
    """User supplied product input that can't be stored"""


class ProductData(BaseModel):
    name: str = Field(..., min_length=3)
    description: Optional[str] = None
    price: float = Field(default=0, ge=0)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name cannot be empty.")
        return v


class Product(ProductData):
    id: int
    image: str = DEFAULT_IMAGE


class ProductUpdate(BaseModel):
    """Partial update; fields left as None are not touched"""

    name: Optional[str] = Field(default=None, min_length=3)
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Name cannot be empty.")
        return v

    def changes(self) -> dict:
        return self.model_dump(exclude_none=True)


class NotificationRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    product: Product
    old_price: float
    new_price: float
    email: str


class ProductView(BaseModel):
    product: Product
    exchange_rate: float

    @property
    def converted_price(self) -> float:
        return round(self.product.price * self.exchange_rate, 2)
