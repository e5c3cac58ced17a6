"""Tenant-wide amenity catalogue and its room assignments."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.session import Base


class RoomAmenity(Base):
    __tablename__ = "room_amenities"
    __table_args__ = (
        UniqueConstraint("tenant_id", "amenity_name", name="uq_room_amenity_tenant_name"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    amenity_name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    mappings = relationship("RoomAmenityMapping", back_populates="amenity")


class RoomAmenityMapping(Base):
    """An amenity present in a room; at most one row per (room, amenity)."""

    __tablename__ = "room_amenity_mappings"
    __table_args__ = (
        UniqueConstraint("room_id", "amenity_id", name="uq_room_amenity_mapping"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    room_id = Column(UUID(as_uuid=True), ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    amenity_id = Column(
        UUID(as_uuid=True), ForeignKey("room_amenities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    room = relationship("Room")
    amenity = relationship("RoomAmenity", back_populates="mappings")
