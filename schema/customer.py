# schema/customer.py
from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from typing import Optional, Union
from app.utils.validators import email_validator, sanitize_text_validator

class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    country: Optional[str] = None

class CustomerCreate(BaseModel):
    id: str = Field(..., alias="_id", min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=320)
    address: Optional[Address] = None
    phone: Optional[str] = None
    registration_date: datetime

    class Config:
        populate_by_name = True

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        return email_validator(v)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return sanitize_text_validator(v)

class CustomerResponse(BaseModel):
    id: str = Field(alias="_id")
    name: str
    email: Optional[str] = None
    address: Optional[Address] = None
    phone: Optional[str] = None
    registration_date: Optional[Union[datetime, str]] = None

    class Config:
        populate_by_name = True
