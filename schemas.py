"""
Database Schemas

Request bodies for the marketplace collections. Field names are snake_case in
Python and camelCase on the wire and in MongoDB:
- SubCategory -> "subcategory" collection, sub_category_id -> "subCategoryId"
- Order -> "order" collection, payment_method -> "paymentMethod"
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

PaymentMethod = Literal["cod", "cbe", "telebirr"]
OrderStatus = Literal["pending", "processing", "shipped", "delivered", "cancelled", "payment_pending", "payment_verified"]
ClearanceLevel = Literal["admin", "super_admin"]


class Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    def changes(self) -> dict:
        """Fields the client actually sent, keyed by their stored names."""
        return self.model_dump(by_alias=True, exclude_unset=True)


# ---------- Catalog ----------
class SubCategoryIn(Schema):
    name: str = Field(..., min_length=1)
    category_id: str


class SubCategoryUpdate(Schema):
    name: Optional[str] = Field(None, min_length=1)
    category_id: Optional[str] = None


class BrandIn(Schema):
    name: str = Field(..., min_length=1)
    sub_category_id: str


class BrandUpdate(Schema):
    name: Optional[str] = Field(None, min_length=1)
    sub_category_id: Optional[str] = None


class VariantTypeIn(Schema):
    name: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1, description="e.g. Size or Color")


class VariantTypeUpdate(Schema):
    name: Optional[str] = Field(None, min_length=1)
    type: Optional[str] = Field(None, min_length=1)


class VariantIn(Schema):
    name: str = Field(..., min_length=1)
    variant_type_id: str


class VariantUpdate(Schema):
    name: Optional[str] = Field(None, min_length=1)
    variant_type_id: Optional[str] = None


class CouponIn(Schema):
    coupon_code: str = Field(..., min_length=1)
    discount_type: Literal["fixed", "percentage"]
    discount_amount: float = Field(..., gt=0)
    minimum_purchase_amount: Optional[float] = Field(None, ge=0)
    end_date: datetime
    status: Literal["active", "inactive"]
    applicable_category: Optional[str] = None
    applicable_sub_category: Optional[str] = None
    applicable_product: Optional[str] = None


class CouponUpdate(Schema):
    coupon_code: Optional[str] = Field(None, min_length=1)
    discount_type: Optional[Literal["fixed", "percentage"]] = None
    discount_amount: Optional[float] = Field(None, gt=0)
    minimum_purchase_amount: Optional[float] = Field(None, ge=0)
    end_date: Optional[datetime] = None
    status: Optional[Literal["active", "inactive"]] = None
    applicable_category: Optional[str] = None
    applicable_sub_category: Optional[str] = None
    applicable_product: Optional[str] = None


class CouponCheck(Schema):
    coupon_code: str
    product_ids: List[str] = []
    purchase_amount: float = Field(0, ge=0)


# ---------- Orders ----------
class OrderItem(Schema):
    product_id: str
    product_name: str
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0)
    variant: Optional[str] = None


class ShippingAddress(Schema):
    phone: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None


class OrderTotal(Schema):
    subtotal: float = Field(..., ge=0)
    discount: float = Field(0, ge=0)
    total: float = Field(..., ge=0)


class OrderIn(Schema):
    user_id: str
    items: List[OrderItem] = Field(..., min_length=1)
    total_price: float = Field(..., ge=0)
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    order_total: OrderTotal
    coupon_code: Optional[str] = None
    tracking_url: Optional[str] = None


class OrderStatusUpdate(Schema):
    order_status: OrderStatus
    tracking_url: Optional[str] = None


class PaymentVerification(Schema):
    verified: bool
    admin_notes: Optional[str] = None


class PaymentProofIn(Schema):
    image_url: str = Field(..., min_length=1)


class Base64Proof(Schema):
    image: str = Field(..., min_length=1)
    file_name: str = Field(..., min_length=1)
    order_amount: Optional[float] = None


# ---------- People ----------
class AdminUserIn(Schema):
    username: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    clearance_level: ClearanceLevel = "admin"


class AdminUserUpdate(Schema):
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    clearance_level: Optional[ClearanceLevel] = None
    is_active: Optional[bool] = None


class AdminLogin(Schema):
    username: str
    password: str


class ProfileUpdate(Schema):
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    current_password: Optional[str] = None
    new_password: Optional[str] = Field(None, min_length=6)


class UserRegister(Schema):
    name: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None


class UserLogin(Schema):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: str


class UserUpdate(Schema):
    name: str = Field(..., min_length=1)
    password: Optional[str] = Field(None, min_length=6)
    current_password: Optional[str] = None


class EmailRequest(Schema):
    email: EmailStr


class EmailCode(Schema):
    email: EmailStr
    code: str


class PasswordReset(Schema):
    email: EmailStr
    code: str
    new_password: str = Field(..., min_length=6)


# ---------- Ratings / notifications ----------
class RatingIn(Schema):
    product_id: str
    user_id: str
    user_name: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=5)
    review: Optional[str] = None


class RatingUpdate(Schema):
    rating: Optional[int] = Field(None, ge=1, le=5)
    review: Optional[str] = None


class NotificationIn(Schema):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    image_url: Optional[str] = None
