from enum import Enum


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    WARDEN = "WARDEN"
    STUDENT = "STUDENT"


class RoomType(str, Enum):
    SINGLE = "SINGLE"
    DOUBLE = "DOUBLE"
    TRIPLE = "TRIPLE"
    DORMITORY = "DORMITORY"


class RoomStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    FULL = "FULL"
    MAINTENANCE = "MAINTENANCE"
    INACTIVE = "INACTIVE"


class AllocationStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class PaymentDueStatus(str, Enum):
    PENDING = "PENDING"
    OVERDUE = "OVERDUE"
    PAID = "PAID"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"


class ComplaintStatus(str, Enum):
    PENDING = "PENDING"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"
    REJECTED = "REJECTED"


class ComplaintPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class ComplaintCategory(str, Enum):
    MAINTENANCE = "MAINTENANCE"
    ELECTRICAL = "ELECTRICAL"
    PLUMBING = "PLUMBING"
    HOUSEKEEPING = "HOUSEKEEPING"
    INTERNET = "INTERNET"
    FURNITURE = "FURNITURE"
    SAFETY = "SAFETY"
    HYGIENE = "HYGIENE"
    NOISE = "NOISE"
    OTHER = "OTHER"


class CommentType(str, Enum):
    COMMENT = "COMMENT"
    STATUS_UPDATE = "STATUS_UPDATE"
    RESOLUTION = "RESOLUTION"
