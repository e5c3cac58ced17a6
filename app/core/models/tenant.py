import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.session import Base


class Tenant(Base):
    """
    Hostel organization in the multi-tenant platform.

    - id (tenant_id): internal primary key, the only FK target.
    - organization_code: public human-readable identifier (e.g. HST-A3K9), never used as FK.
    """

    __tablename__ = "tenants"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_code = Column(String(20), unique=True, nullable=False, index=True)
    organization_name = Column(String(255), nullable=False)
    contact_email = Column(String(255), nullable=True)
    address = Column(String(500), nullable=True)
    status = Column(String(20), nullable=False, default="ACTIVE")
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    users = relationship("User", back_populates="tenant", cascade="all, delete-orphan")
    buildings = relationship("Building", back_populates="tenant", cascade="all, delete-orphan")
