from app.auth.models import User
from app.core.models.tenant import Tenant
from app.core.models.building import Building, Floor
from app.core.models.room import Room
from app.core.models.room_amenity import RoomAmenity, RoomAmenityMapping
from app.core.models.room_allocation import RoomAllocation
from app.core.models.fee_structure import FeeStructure
from app.core.models.payment_due import PaymentDue
from app.core.models.payment import Payment
from app.core.models.complaint import Complaint, ComplaintComment
from app.core.models.fee_audit_log import FeeAuditLog

__all__ = [
    "User",
    "Tenant",
    "Building",
    "Floor",
    "Room",
    "RoomAmenity",
    "RoomAmenityMapping",
    "RoomAllocation",
    "FeeStructure",
    "PaymentDue",
    "Payment",
    "Complaint",
    "ComplaintComment",
    "FeeAuditLog",
]
