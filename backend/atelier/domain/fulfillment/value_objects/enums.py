"""Domain enums for fulfillment."""

from enum import Enum


class RequestType(str, Enum):
    """Pipeline stage a request drives an item or batch through."""

    MOVE = "MOVE"
    PATTERN = "PATTERN"
    CUTTING = "CUTTING"
    QC = "QC"
    WASH = "WASH"
    FINISHING = "FINISHING"
    PACKING = "PACKING"
    RECOVERY = "RECOVERY"


class RequestStatus(str, Enum):
    """Request status enumeration."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        """Check if request status is an end state."""
        return self in {RequestStatus.COMPLETED, RequestStatus.FAILED}

    def can_transition_to(self, target_status: "RequestStatus") -> bool:
        """Check if request can transition from current status to target status."""
        valid_transitions = {
            RequestStatus.PENDING: {
                RequestStatus.IN_PROGRESS,
                RequestStatus.COMPLETED,
                RequestStatus.FAILED,
            },
            RequestStatus.IN_PROGRESS: {
                RequestStatus.IN_PROGRESS,
                RequestStatus.COMPLETED,
                RequestStatus.FAILED,
            },
            RequestStatus.COMPLETED: set(),  # Terminal state
            RequestStatus.FAILED: {RequestStatus.PENDING},  # Retry path only
        }
        return target_status in valid_transitions.get(self, set())


class OrderStatus(str, Enum):
    """Order status enumeration."""

    NEW = "NEW"
    PROCESSING = "PROCESSING"
    READY_FOR_PACKING = "READY_FOR_PACKING"
    PACKED = "PACKED"
    SHIPPED = "SHIPPED"
    CANCELLED = "CANCELLED"


class OrderItemStatus(str, Enum):
    PENDING = "PENDING"
    ASSIGNED = "ASSIGNED"
    PACKED = "PACKED"


class BinType(str, Enum):
    STORAGE = "STORAGE"
    WASH = "WASH"
    QC = "QC"
    PACKING = "PACKING"
    FINISHING = "FINISHING"


class BatchStatus(str, Enum):
    """Production batch status enumeration."""

    READY = "READY"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class ProblemCategory(str, Enum):
    MEASUREMENT = "MEASUREMENT"
    STITCHING = "STITCHING"
    FABRIC = "FABRIC"
    WASH = "WASH"
    HARDWARE = "HARDWARE"
    PATTERN = "PATTERN"
    OTHER = "OTHER"


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class ProblemStatus(str, Enum):
    REPORTED = "REPORTED"
    RESOLVED = "RESOLVED"


class ResolutionAction(str, Enum):
    REPAIR = "REPAIR"
    SCRAP = "SCRAP"
    DOWNGRADE = "DOWNGRADE"


class DefectType(str, Enum):
    """Which inspection produced a defect."""

    MEASUREMENTS = "MEASUREMENTS"
    VISUAL = "VISUAL"
    FINAL_QC = "FINAL_QC"


class NotificationType(str, Enum):
    STAGE_COMPLETED = "STAGE_COMPLETED"
    DEFECT_DETECTED = "DEFECT_DETECTED"
    PROBLEM_REPORTED = "PROBLEM_REPORTED"
    ORDER_PROCESSED = "ORDER_PROCESSED"
    LAUNDRY_PICKUP = "LAUNDRY_PICKUP"


class UserRole(str, Enum):
    """Roles addressed by notifications when no single user is targeted."""

    QC_SUPERVISOR = "QC_SUPERVISOR"
    WAREHOUSE_MANAGER = "WAREHOUSE_MANAGER"
    PACKING_LEAD = "PACKING_LEAD"
    PRODUCTION_MANAGER = "PRODUCTION_MANAGER"


class BinHistoryAction(str, Enum):
    ITEM_ADDED = "ITEM_ADDED"
    ITEM_REMOVED = "ITEM_REMOVED"
    RESERVED = "RESERVED"
    RELEASED = "RELEASED"
    LAUNDRY_PICKUP = "LAUNDRY_PICKUP"
