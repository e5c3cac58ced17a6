import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.core.enums import RoomStatus
from app.db.session import Base


class Room(Base):
    """
    Room inside a floor. room_number is unique across the whole tenant.
    occupied is a denormalized count of ACTIVE allocations; only changed by atomic SQL increments.
    """

    __tablename__ = "rooms"
    __table_args__ = (
        UniqueConstraint("tenant_id", "room_number", name="uq_room_tenant_number"),
        CheckConstraint("capacity > 0", name="chk_room_capacity_positive"),
        CheckConstraint("occupied >= 0 AND occupied <= capacity", name="chk_room_occupied_range"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    building_id = Column(UUID(as_uuid=True), ForeignKey("buildings.id", ondelete="CASCADE"), nullable=False, index=True)
    floor_id = Column(UUID(as_uuid=True), ForeignKey("floors.id", ondelete="CASCADE"), nullable=False, index=True)
    room_number = Column(String(20), nullable=False)
    room_type = Column(String(20), nullable=False)  # SINGLE, DOUBLE, TRIPLE, DORMITORY
    capacity = Column(Integer, nullable=False)
    occupied = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=RoomStatus.AVAILABLE.value)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    building = relationship("Building")
    floor = relationship("Floor", back_populates="rooms")
    allocations = relationship("RoomAllocation", back_populates="room")
