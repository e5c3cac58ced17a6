import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.session import Base


class User(Base):
    """User within a tenant: hostel ADMIN, WARDEN or STUDENT."""

    __tablename__ = "users"
    __table_args__ = (
        # Email must be unique per tenant
        UniqueConstraint("tenant_id", "email", name="uq_user_tenant_email"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # Owning tenant
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    mobile = Column(String(50), nullable=True)
    password_hash = Column(Text, nullable=False)
    role = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default="ACTIVE")
    # Student-only identification, e.g. college enrollment number
    enrollment_number = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    tenant = relationship("Tenant", back_populates="users")
