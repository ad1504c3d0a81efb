"""Import every model so SQLAlchemy can resolve relationships and create all tables."""
from marketplace.features.account.model import Customer, Provider  # noqa: F401
from marketplace.features.admin.model import Admin  # noqa: F401
from marketplace.features.appointment.model import Appointment, AvailabilitySlot  # noqa: F401
from marketplace.features.penalty_adjustment.model import PenaltyAdjustment  # noqa: F401
from marketplace.features.rating.model import Rating  # noqa: F401
from marketplace.features.violation.model import Violation  # noqa: F401
from marketplace.features.violation_type.model import ViolationType  # noqa: F401
