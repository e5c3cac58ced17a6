"""Room allocation: the link between a student and the room they occupy."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.core.enums import AllocationStatus
from app.db.session import Base


class RoomAllocation(Base):
    """At most one ACTIVE allocation per student; checked under a lock on the student row."""

    __tablename__ = "room_allocations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    room_id = Column(UUID(as_uuid=True), ForeignKey("rooms.id", ondelete="RESTRICT"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=AllocationStatus.ACTIVE.value)
    remarks = Column(Text, nullable=True)
    allocated_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    checkout_at = Column(DateTime(timezone=True), nullable=True)

    student = relationship("User", foreign_keys=[student_id])
    room = relationship("Room", back_populates="allocations")
