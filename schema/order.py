# schema/order.py
from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional, Union
from app.utils.validators import id_validator, quantity_validator, sanitize_text_validator, normalize_order_status
from schema.customer import Address, CustomerResponse
from schema.product import ProductResponse

class OrderItemInput(BaseModel):
    productId: str
    quantity: int

    @field_validator('productId')
    @classmethod
    def validate_product_id(cls, v):
        return id_validator(v)

    @field_validator('quantity')
    @classmethod
    def validate_quantity(cls, v):
        return quantity_validator(v)

class PlaceOrderInput(BaseModel):
    customerId: str
    items: List[OrderItemInput] = Field(..., min_length=1)
    paymentMethod: str = Field(..., min_length=1, max_length=50)
    shippingAddress: Optional[Address] = None

    @field_validator('customerId')
    @classmethod
    def validate_customer_id(cls, v):
        return id_validator(v)

    @field_validator('paymentMethod')
    @classmethod
    def validate_payment_method(cls, v):
        v = sanitize_text_validator(v)
        if not v:
            raise ValueError('Payment method is required')
        return v

class OrderItemResponse(BaseModel):
    product: Optional[Union[ProductResponse, str]] = None
    quantity: int
    price: float

class OrderResponse(BaseModel):
    id: str = Field(alias="_id")
    customer: Union[CustomerResponse, str]
    items: List[OrderItemResponse]
    total: float
    status: str
    payment_method: Optional[str] = None
    shipping_address: Optional[Address] = None
    order_date: Union[datetime, str]

    class Config:
        populate_by_name = True

class OrderPagination(BaseModel):
    orders: List[OrderResponse]
    totalOrders: int
    totalPages: int
    currentPage: int
    hasNextPage: bool
    hasPreviousPage: bool

class ImportedOrderItem(BaseModel):
    """One entry of the `products` column of the orders CSV"""
    productId: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    priceAtPurchase: float = Field(..., ge=0)

class ImportedOrder(BaseModel):
    id: str = Field(..., alias="_id", min_length=1)
    customerId: str = Field(..., min_length=1)
    items: List[ImportedOrderItem]
    totalAmount: float = Field(..., ge=0)
    status: str
    orderDate: datetime

    class Config:
        populate_by_name = True

    @field_validator('status')
    @classmethod
    def validate_status(cls, v):
        return normalize_order_status(v)
