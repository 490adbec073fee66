from typing import Optional
from pydantic import BaseModel, EmailStr, Field, field_validator

from ..services.plans import normalize_subscription
from .common import optional_text, required_text


class CompanyCreate(BaseModel):
    name: str
    description: Optional[str] = None
    subscription_type: Optional[str] = None
    branches_limit: Optional[int] = Field(default=None, ge=1)
    employees_limit: Optional[int] = Field(default=None, ge=1)
    active: bool = True

    @field_validator('name', mode='before')
    @classmethod
    def name_required(cls, v):
        return required_text(v)

    @field_validator('description', mode='before')
    @classmethod
    def empty_to_none(cls, v):
        return optional_text(v)

    @field_validator('subscription_type', mode='before')
    @classmethod
    def known_subscription(cls, v):
        v = optional_text(v)
        return normalize_subscription(v) if v else None


class CompanyUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    subscription_type: Optional[str] = None
    branches_limit: Optional[int] = Field(default=None, ge=1)
    employees_limit: Optional[int] = Field(default=None, ge=1)
    active: Optional[bool] = None

    @field_validator('name', mode='before')
    @classmethod
    def name_not_blank(cls, v):
        return None if v is None else required_text(v)

    @field_validator('description', mode='before')
    @classmethod
    def empty_to_none(cls, v):
        return optional_text(v)

    @field_validator('subscription_type', mode='before')
    @classmethod
    def known_subscription(cls, v):
        v = optional_text(v)
        return normalize_subscription(v) if v else None


class BranchCreate(BaseModel):
    name: str
    city: str
    address: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    zip_code: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    is_headquarters: bool = False
    active: bool = True
    company_id: Optional[str] = None  # platform admins only

    @field_validator('name', 'city', mode='before')
    @classmethod
    def required(cls, v):
        return required_text(v)

    @field_validator('address', 'state', 'country', 'zip_code', 'phone', 'email', 'company_id', mode='before')
    @classmethod
    def empty_to_none(cls, v):
        return optional_text(v)


class BranchUpdate(BaseModel):
    name: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    zip_code: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    is_headquarters: Optional[bool] = None
    active: Optional[bool] = None

    @field_validator('name', 'city', mode='before')
    @classmethod
    def not_blank(cls, v):
        return None if v is None else required_text(v)

    @field_validator('address', 'state', 'country', 'zip_code', 'phone', 'email', mode='before')
    @classmethod
    def empty_to_none(cls, v):
        return optional_text(v)


class EmployeeCreate(BaseModel):
    email: EmailStr
    first_name: str
    last_name: str
    password: Optional[str] = Field(default=None, min_length=6)  # required when the email is new
    role: str = "employee"
    branch_id: Optional[str] = None
    phone: Optional[str] = None
    company_id: Optional[str] = None  # platform admins only

    @field_validator('first_name', 'last_name', mode='before')
    @classmethod
    def required(cls, v):
        return required_text(v)

    @field_validator('branch_id', 'phone', 'company_id', mode='before')
    @classmethod
    def empty_to_none(cls, v):
        return optional_text(v)


class EmployeeUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None
    branch_id: Optional[str] = None

    @field_validator('first_name', 'last_name', mode='before')
    @classmethod
    def not_blank(cls, v):
        return None if v is None else required_text(v)

    @field_validator('phone', 'role', mode='before')
    @classmethod
    def empty_to_none(cls, v):
        return optional_text(v)
