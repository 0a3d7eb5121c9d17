from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List
from decimal import Decimal
from datetime import datetime
from plantry.shared.security_config import password_problems, sanitize_input

# --- Auth ---
class UserRegister(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    full_name: str = Field(..., min_length=1)
    phone: Optional[str] = None

    @field_validator('password')
    def password_complexity(cls, v):
        problems = password_problems(v)
        if problems:
            raise ValueError("Password needs " + ", ".join(problems))
        return v

    @field_validator('full_name', 'phone')
    def sanitize_fields(cls, v):
        return sanitize_input(v)

class UserLogin(BaseModel):
    email: EmailStr
    password: str

class Token(BaseModel):
    access_token: str
    token_type: str

class UserResponse(BaseModel):
    id: int
    email: EmailStr
    full_name: str
    phone: Optional[str] = None
    role: str
    created_at: datetime

    class Config:
        from_attributes = True

class CustomerResponse(BaseModel):
    id: int
    email: str
    full_name: str
    phone: Optional[str] = None

    class Config:
        from_attributes = True

# --- Products ---
class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    ingredients: Optional[str] = None
    price: Decimal = Field(..., gt=0, decimal_places=2)
    category: Optional[str] = None
    image_url: Optional[str] = None
    stock: int = Field(0, ge=0)

    @field_validator('name', 'description', 'ingredients', 'category', 'image_url')
    def sanitize_fields(cls, v):
        return sanitize_input(v)

class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    ingredients: Optional[str] = None
    price: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
    category: Optional[str] = None
    image_url: Optional[str] = None
    stock: Optional[int] = Field(None, ge=0)
    available: Optional[bool] = None

    @field_validator('name', 'description', 'ingredients', 'category', 'image_url')
    def sanitize_fields(cls, v):
        return sanitize_input(v)

class ProductResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    ingredients: Optional[str] = None
    price: Decimal
    category: Optional[str] = None
    image_url: Optional[str] = None
    stock: int
    available: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

# --- Cart ---
class CartItemAdd(BaseModel):
    product_id: int
    quantity: int = Field(1, gt=0)

class CartItemUpdate(BaseModel):
    quantity: int = Field(..., gt=0)

class CartItemResponse(BaseModel):
    id: int
    product_id: int
    quantity: int

    class Config:
        from_attributes = True

class CartLineResponse(CartItemResponse):
    name: str
    price: Decimal
    image_url: Optional[str] = None

class CartResponse(BaseModel):
    items: List[CartLineResponse]
    total: Decimal

# --- Orders ---
class OrderCreate(BaseModel):
    shipping_address: Optional[str] = None
    billing_address: Optional[str] = None
    notes: Optional[str] = None

    @field_validator('shipping_address', 'billing_address', 'notes')
    def sanitize_fields(cls, v):
        return sanitize_input(v)

class OrderItemResponse(BaseModel):
    id: int
    product_id: int
    quantity: int
    price_at_purchase: Decimal

    class Config:
        from_attributes = True

class OrderLineResponse(OrderItemResponse):
    name: str
    category: Optional[str] = None

class OrderResponse(BaseModel):
    id: int
    user_id: int
    order_number: str
    total_amount: Decimal
    shipping_address: Optional[str] = None
    billing_address: Optional[str] = None
    notes: str
    status: str
    payment_status: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class PlacedOrderResponse(OrderResponse):
    items: List[OrderItemResponse]

class OrderCreatedResponse(BaseModel):
    success: bool = True
    order: PlacedOrderResponse
    message: str

class OrderStatusUpdate(BaseModel):
    status: str

    @field_validator('status')
    def sanitize_status(cls, v):
        return sanitize_input(v)

# --- Payments ---
class PaymentIntentCreate(BaseModel):
    order_id: int

class PaymentIntentResponse(BaseModel):
    client_secret: str
    payment_intent_id: str

class PaymentConfirm(BaseModel):
    order_id: int
    charge_id: str = Field(..., min_length=1)
    payment_method: str = Field("card", pattern="^(card|credit_card|debit_card|paypal)$")

    @field_validator('charge_id')
    def sanitize_charge_id(cls, v):
        return sanitize_input(v)

class PaymentResponse(BaseModel):
    id: int
    order_id: int
    charge_id: str
    amount: Decimal
    status: str
    payment_method: str
    created_at: datetime

    class Config:
        from_attributes = True

class OrderDetailResponse(BaseModel):
    order: OrderResponse
    items: List[OrderLineResponse]
    payment: Optional[PaymentResponse] = None

class AdminOrderDetailResponse(OrderDetailResponse):
    customer: Optional[CustomerResponse] = None

class DashboardStats(BaseModel):
    total_orders: int
    total_revenue: Decimal
    total_products: int
    total_users: int
