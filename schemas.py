"""
Database Schemas

MongoDB collection schemas as Pydantic models.
These schemas are used for data validation in the application.

Each Pydantic model represents a collection in the database.
Model name is converted to lowercase for the collection name:
- Product -> "product" collection
- Order -> "order" collection
- DailyPuzzle -> "dailypuzzle" collection
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

OrderStatus = Literal["pending", "confirmed", "preparing", "ready", "delivered", "cancelled"]
DeliveryType = Literal["delivery", "pickup"]


class Product(BaseModel):
    """
    Bakery products collection schema
    Collection name: "product"
    """
    name: str = Field(..., min_length=1, description="Product name")
    category: str = Field(..., description="Free-text category e.g. Cakes, Cookies, Other")
    price: float = Field(..., gt=0, description="Price in rupees")
    preparation_time: int = Field(..., ge=0, description="Preparation time in minutes")
    image: Optional[str] = Field(None, description="Hosted image URL")

    @field_validator("name", "category")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value


class ProductUpdate(BaseModel):
    """Partial product update; only the fields sent are merged."""
    name: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = None
    price: Optional[float] = Field(None, gt=0)
    preparation_time: Optional[int] = Field(None, ge=0)
    image: Optional[str] = None

    @field_validator("name", "category")
    @classmethod
    def not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value


class Order(BaseModel):
    """
    Orders collection schema
    Collection name: "order"
    """
    order_number: str = Field(..., description="Human-readable number, NB + YYMMDD + 4 digits")
    product_id: Optional[str] = Field(None, description="Snapshot of product id at order time")
    product_name: Optional[str] = Field(None, description="Snapshot of product name at order time")
    product_image: Optional[str] = Field(None, description="Snapshot of product image at order time")
    product_price: Optional[float] = Field(None, description="Snapshot of product price at order time")
    product_preparation_time: Optional[int] = Field(None, description="Snapshot of preparation time in minutes")
    customer_name: str
    customer_email: str
    customer_phone: str
    phone_digits: str = Field(..., description="customer_phone with everything but digits removed")
    customer_address: Optional[str] = None
    delivery_date: str
    delivery_time: str
    delivery_type: DeliveryType = "pickup"
    cake_message: Optional[str] = None
    flavor: Optional[str] = None
    weight: Optional[str] = None
    special_instructions: Optional[str] = None
    coupon_code: Optional[str] = None
    discount_percent: int = Field(0, ge=0, le=100)
    status: OrderStatus = "pending"
    total_price: float = Field(..., ge=0)


class AdminUser(BaseModel):
    """
    Single admin account
    Collection name: "adminuser"
    """
    username: str
    password_hash: str = Field(..., description="BCrypt hash of the admin password")


class AuthSession(BaseModel):
    """
    Login sessions
    Collection name: "authsession"
    """
    token: str
    expires_at: datetime


class DailyPuzzle(BaseModel):
    """
    One treasure-hunt puzzle per calendar day
    Collection name: "dailypuzzle"
    """
    date: str = Field(..., description="ISO calendar date, e.g. 2024-06-15")
    puzzle: str
    answer: str = Field(..., min_length=3, max_length=3)
    coupons_generated: int = Field(0, ge=0)


class Coupon(BaseModel):
    """
    Coupons minted by solving the daily puzzle
    Collection name: "coupon"
    """
    code: str = Field(..., description="Upper-case code, NB30-XXXXXX")
    discount_percent: int = Field(..., gt=0, le=100)
    valid_date: str = Field(..., description="The only ISO date on which the coupon is redeemable")
    used_by: Optional[str] = Field(None, description="Customer who redeemed it")
    used_at: Optional[datetime] = None
