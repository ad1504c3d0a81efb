from enum import Enum

class AccountKind(str, Enum):
    CUSTOMER = "customer"
    PROVIDER = "provider"

class ViolationStatus(str, Enum):
    ACTIVE = "active"
    APPEALED = "appealed"
    REVERSED = "reversed"

class AppealStatus(str, Enum):
    NONE = "none"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class DetectedBy(str, Enum):
    SYSTEM = "system"
    ADMIN = "admin"

class AdjustmentType(str, Enum):
    PENALTY = "penalty"
    RESTORE = "restore"
    BONUS = "bonus"
    RESET = "reset"
    SUSPENSION = "suspension"
    LIFT_SUSPENSION = "lift_suspension"

class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    USER_NO_SHOW = "user_no_show"
    PROVIDER_NO_SHOW = "provider_no_show"

class RatedBy(str, Enum):
    CUSTOMER = "customer"
    PROVIDER = "provider"

class PenaltyStanding(str, Enum):
    # descriptive only, suspension is driven by the 50-point rule
    GOOD = "good"
    WARNING = "warning"
    CRITICAL = "critical"

class AccessTier(str, Enum):
    GOOD_STANDING = "good_standing"    # 81-100
    AT_RISK = "at_risk"                # 71-80
    LIMITED = "limited_privileges"     # 61-70
    STRICT = "strict_restrictions"     # 51-60
    DEACTIVATED = "deactivated"        # <= 50
