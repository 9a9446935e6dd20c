from pydantic import BaseModel, Field, field_validator
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Literal

from storefront.models.models import OrderStatus, PaymentStatus


ROLE_PATTERN = "^(customer|seller|admin)$"


# =========================
# AUTH / PROFILE SCHEMAS
# =========================
class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=8)
    full_name: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    avatar_url: Optional[str] = None
    gender: Optional[str] = None


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8)


class ProfileResponse(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    role: str
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    is_active: bool = True
    email_verified: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    message: str
    user: ProfileResponse
    token: str


# =========================
# CATEGORY SCHEMAS
# =========================
class CategoryBase(BaseModel):
    name: str = Field(..., min_length=1)
    slug: str = Field(..., min_length=1)
    description: Optional[str] = None
    image_url: Optional[str] = None
    parent_id: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    parent_id: Optional[str] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None


class CategoryResponse(CategoryBase):
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# =========================
# PRODUCT SCHEMAS
# =========================
class VariantResponse(BaseModel):
    id: str
    name: str
    sku: Optional[str] = None
    price: Optional[float] = None
    stock: int = 0
    attributes: Dict[str, Any] = {}

    model_config = {"from_attributes": True}


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1)
    slug: Optional[str] = None
    description: Optional[str] = None
    short_description: Optional[str] = None
    price: float = Field(..., gt=0)
    original_price: Optional[float] = Field(None, gt=0)
    category_id: Optional[str] = None
    images: List[str] = []
    stock: int = Field(0, ge=0)
    min_stock_level: int = Field(5, ge=0)
    sku: Optional[str] = None
    weight: Optional[float] = None
    tags: List[str] = []
    specifications: Dict[str, Any] = {}
    is_featured: bool = False
    is_active: bool = True


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = None
    description: Optional[str] = None
    short_description: Optional[str] = None
    price: Optional[float] = Field(None, gt=0)
    original_price: Optional[float] = Field(None, gt=0)
    category_id: Optional[str] = None
    images: Optional[List[str]] = None
    stock: Optional[int] = Field(None, ge=0)
    min_stock_level: Optional[int] = Field(None, ge=0)
    sku: Optional[str] = None
    weight: Optional[float] = None
    tags: Optional[List[str]] = None
    specifications: Optional[Dict[str, Any]] = None
    is_featured: Optional[bool] = None
    is_active: Optional[bool] = None


class ProductResponse(BaseModel):
    id: str
    name: str
    slug: Optional[str] = None
    description: Optional[str] = None
    short_description: Optional[str] = None
    price: float
    original_price: Optional[float] = None
    category_id: Optional[str] = None
    seller_id: Optional[str] = None
    images: List[str] = []
    stock: int = 0
    min_stock_level: int = 5
    sku: Optional[str] = None
    weight: Optional[float] = None
    tags: List[str] = []
    specifications: Dict[str, Any] = {}
    rating: float = 0.0
    review_count: int = 0
    is_featured: bool = False
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @field_validator("images", "tags", mode="before")
    @classmethod
    def none_to_list(cls, v):
        return v or []

    @field_validator("specifications", mode="before")
    @classmethod
    def none_to_dict(cls, v):
        return v or {}


class BulkDeleteRequest(BaseModel):
    ids: List[str] = Field(..., min_length=1)


# =========================
# REVIEW SCHEMAS
# =========================
class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    title: Optional[str] = None
    comment: Optional[str] = None


class ReviewResponse(BaseModel):
    id: str
    product_id: str
    user_id: str
    rating: int
    title: Optional[str] = None
    comment: Optional[str] = None
    is_verified_purchase: bool = False
    helpful_count: int = 0
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# =========================
# CART / WISHLIST SCHEMAS
# =========================
class CartItemCreate(BaseModel):
    product_id: str
    variant_id: Optional[str] = None
    quantity: int = Field(1, ge=1)


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=1)


class WishlistItemCreate(BaseModel):
    product_id: str


# =========================
# ADDRESS SCHEMAS
# =========================
class AddressCreate(BaseModel):
    address_type: Literal["shipping", "billing"] = "shipping"
    full_name: Optional[str] = None
    phone: Optional[str] = None
    address_line1: str = Field(..., min_length=1)
    address_line2: Optional[str] = None
    city: str = Field(..., min_length=1)
    state: str = ""
    postal_code: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)
    is_default: bool = False


class AddressUpdate(BaseModel):
    address_type: Optional[Literal["shipping", "billing"]] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None
    address_line1: Optional[str] = Field(None, min_length=1)
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = Field(None, min_length=1)
    is_default: Optional[bool] = None


class AddressResponse(AddressCreate):
    id: str
    user_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# =========================
# SHIPPING SCHEMAS
# =========================
class ShippingAddress(BaseModel):
    """Address as sent with orders and shipping quotes (all fields optional)."""
    full_name: Optional[str] = None
    phone: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None


class ShippingCalculateRequest(BaseModel):
    address: ShippingAddress
    order_total: float = Field(..., ge=0)


# =========================
# COUPON SCHEMAS
# =========================
class CouponValidateRequest(BaseModel):
    code: str = Field(..., min_length=1)
    order_amount: float = Field(..., ge=0)


class CouponCreate(BaseModel):
    code: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    type: Literal["percentage", "fixed"]
    value: float = Field(..., gt=0)
    minimum_amount: float = Field(0, ge=0)
    maximum_discount: Optional[float] = Field(None, gt=0)
    usage_limit: Optional[int] = Field(None, ge=1)
    is_active: bool = True
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None

    @field_validator("code")
    @classmethod
    def upper_code(cls, v: str) -> str:
        return v.strip().upper()


class CouponUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[Literal["percentage", "fixed"]] = None
    value: Optional[float] = Field(None, gt=0)
    minimum_amount: Optional[float] = Field(None, ge=0)
    maximum_discount: Optional[float] = Field(None, gt=0)
    usage_limit: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None


class CouponResponse(BaseModel):
    id: str
    code: str
    name: str
    description: Optional[str] = None
    type: str
    value: float
    minimum_amount: float = 0
    maximum_discount: Optional[float] = None
    usage_limit: Optional[int] = None
    used_count: int = 0
    is_active: bool = True
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CouponUsageResponse(BaseModel):
    id: str
    coupon_id: str
    user_id: Optional[str] = None
    order_id: Optional[str] = None
    discount_amount: float
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# =========================
# ORDER SCHEMAS
# =========================
class OrderItemCreate(BaseModel):
    product_id: str
    variant_id: Optional[str] = None
    quantity: int = Field(..., ge=1)


class OrderCreate(BaseModel):
    items: List[OrderItemCreate] = []
    shipping_address: Optional[ShippingAddress] = None
    billing_address: Optional[ShippingAddress] = None
    payment_method: Optional[str] = None
    coupon_code: Optional[str] = None
    notes: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    message: Optional[str] = None
    location: Optional[str] = None


class SellerOrderStatusUpdate(BaseModel):
    status: Literal["shipped", "delivered"]
    message: Optional[str] = None


class PaymentStatusUpdate(BaseModel):
    payment_status: PaymentStatus


class TrackingUpdate(BaseModel):
    tracking_number: str = Field(..., min_length=1)


class OrderItemResponse(BaseModel):
    id: str
    product_id: Optional[str] = None
    variant_id: Optional[str] = None
    quantity: int
    unit_price: float
    total_price: float
    product_snapshot: Optional[Dict[str, Any]] = None

    model_config = {"from_attributes": True}


class OrderTrackingResponse(BaseModel):
    status: str
    message: Optional[str] = None
    location: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class OrderResponse(BaseModel):
    id: str
    order_number: str
    user_id: Optional[str] = None
    subtotal: float
    tax_amount: float = 0
    shipping_amount: float = 0
    discount_amount: float = 0
    total_amount: float
    status: str
    payment_status: str
    payment_method: Optional[str] = None
    payment_id: Optional[str] = None
    coupon_code: Optional[str] = None
    shipping_address: Optional[Dict[str, Any]] = None
    billing_address: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None
    tracking_number: Optional[str] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class OrderDetailResponse(OrderResponse):
    items: List[OrderItemResponse] = []
    tracking: List[OrderTrackingResponse] = []


# =========================
# PAYMENT SCHEMAS
# =========================
class PaymentOrderRequest(BaseModel):
    order_id: str


class PaymentVerifyRequest(BaseModel):
    gateway_order_id: str
    payment_id: str
    signature: str


class RefundRequest(BaseModel):
    amount: Optional[float] = Field(None, gt=0)


# =========================
# NOTIFICATION PREFERENCE SCHEMAS
# =========================
class NotificationPreferenceUpdate(BaseModel):
    email_notifications: Optional[bool] = None
    sms_notifications: Optional[bool] = None
    push_notifications: Optional[bool] = None
    order_updates: Optional[bool] = None
    promotional_emails: Optional[bool] = None
    newsletter: Optional[bool] = None
    product_updates: Optional[bool] = None


class NotificationPreferenceResponse(BaseModel):
    email_notifications: bool
    sms_notifications: bool
    push_notifications: bool
    order_updates: bool
    promotional_emails: bool
    newsletter: bool
    product_updates: bool
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# =========================
# ADMIN USER SCHEMAS
# =========================
class AdminUserCreate(BaseModel):
    email: str
    password: str = Field(..., min_length=8)
    full_name: Optional[str] = None
    role: str = Field("customer", pattern=ROLE_PATTERN)
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v


class AdminUserUpdate(BaseModel):
    full_name: Optional[str] = None
    role: Optional[str] = Field(None, pattern=ROLE_PATTERN)
    phone: Optional[str] = None
    is_active: Optional[bool] = None
