from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, model_validator


class TenantRegisterRequest(BaseModel):
    organization_name: str = Field(..., min_length=3, max_length=255)
    contact_email: Optional[EmailStr] = None
    address: Optional[str] = Field(None, max_length=500)

    admin_full_name: str = Field(..., min_length=2, max_length=255)
    admin_email: EmailStr
    admin_mobile: Optional[str] = Field(None, max_length=50)
    password: str = Field(..., min_length=8)
    confirm_password: str = Field(..., min_length=8)

    @model_validator(mode="after")
    def validate_passwords(self) -> "TenantRegisterRequest":
        if self.password != self.confirm_password:
            raise ValueError("password and confirm_password do not match")
        return self


class TenantRegisterResponse(BaseModel):
    tenant_id: UUID
    organization_code: str  # Public identifier; tenant_id remains the internal FK
    admin_user_id: UUID


class TenantResponse(BaseModel):
    id: UUID
    organization_code: str
    organization_name: str
    contact_email: Optional[str] = None
    address: Optional[str] = None
    status: str
    created_at: datetime

    class Config:
        from_attributes = True
