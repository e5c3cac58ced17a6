"""Fee structure: monthly fee per room, versioned by effective_from / effective_to."""

import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Numeric, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.session import Base


class FeeStructure(Base):
    """
    Monthly fee for one room. The row with effective_to IS NULL is the current fee.
    Rows are never updated in place after being superseded; a change closes the
    current row and inserts a new one.
    """

    __tablename__ = "fee_structures"
    __table_args__ = (
        # One current fee per room
        Index(
            "uq_fee_structure_current_room",
            "room_id",
            unique=True,
            postgresql_where=text("effective_to IS NULL"),
            sqlite_where=text("effective_to IS NULL"),
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    room_id = Column(UUID(as_uuid=True), ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    room_type = Column(String(20), nullable=False)
    base_fee = Column(Numeric(12, 2), nullable=False)
    electricity_charge = Column(Numeric(12, 2), nullable=False, default=0)
    water_charge = Column(Numeric(12, 2), nullable=False, default=0)
    maintenance_charge = Column(Numeric(12, 2), nullable=False, default=0)
    wifi_charge = Column(Numeric(12, 2), nullable=False, default=0)
    other_charges = Column(Numeric(12, 2), nullable=False, default=0)
    total_monthly_fee = Column(Numeric(12, 2), nullable=False)
    effective_from = Column(Date, nullable=False)
    effective_to = Column(Date, nullable=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    room = relationship("Room")
