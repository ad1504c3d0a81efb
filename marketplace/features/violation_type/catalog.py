"""Default violation catalog, loaded by ``ViolationTypeService.initialize_violation_types``."""
from marketplace.models.enums import AccountKind

CUSTOMER = AccountKind.CUSTOMER
PROVIDER = AccountKind.PROVIDER

# code, name, category, point_cost, requires_evidence, auto_detect, description
DEFAULT_VIOLATION_TYPES = [
    ("USER_LATE_CANCEL", "Late Cancellation", CUSTOMER, 10, False, True,
     "Cancelling an appointment less than 24 hours before the schedule"),
    ("USER_NO_SHOW", "No-Show", CUSTOMER, 15, False, True,
     "Failing to attend a booked service without cancellation"),
    ("USER_REPEATED_NO_SHOW", "Repeated No-Shows", CUSTOMER, 25, False, True,
     "Three or more no-shows within seven days"),
    ("USER_FAKE_COMPLAINT", "Fake Complaint", CUSTOMER, 20, True, False,
     "Submitting a fake complaint or false report against a provider"),
    ("USER_MULTIPLE_CANCELS_SAME_DAY", "Multiple Cancellations Same Day", CUSTOMER, 5, False, True,
     "Cancelling scheduled appointments three times within a single day"),
    ("USER_CONSECUTIVE_DAY_CANCELS", "Consecutive Day Cancellations", CUSTOMER, 5, False, True,
     "Cancelling appointments on three consecutive days"),
    ("USER_RUDE_BEHAVIOR", "Rude or Disrespectful Behavior", CUSTOMER, 20, True, False,
     "Being rude or disrespectful toward a provider"),
    ("USER_CHAT_SPAM", "Chat Spam/Abuse", CUSTOMER, 20, True, False,
     "Spamming or abusing the in-app chat system"),
    ("USER_HARASSMENT", "Harassment", CUSTOMER, 50, True, False,
     "Harassing or threatening a service provider"),
    ("USER_INAPPROPRIATE_CONTENT", "Inappropriate Content", CUSTOMER, 25, True, False,
     "Sending inappropriate or offensive content to providers"),
    ("PROVIDER_CANCEL_BOOKING", "Booking Cancellation", PROVIDER, 15, False, True,
     "Cancelling a confirmed booking"),
    ("PROVIDER_NO_SHOW", "No-Show", PROVIDER, 20, False, True,
     "Failing to show up for a confirmed appointment"),
    ("PROVIDER_REPEATED_NO_SHOW", "Repeated No-Shows", PROVIDER, 30, False, True,
     "Two or more no-shows within seven days"),
    ("PROVIDER_LATE_RESPONSE", "Late Response to Booking", PROVIDER, 5, False, True,
     "Responding to a booking request later than 24 hours"),
    ("PROVIDER_POOR_COMMUNICATION", "Poor Communication", PROVIDER, 10, True, True,
     "Three or more user complaints about poor communication within a week"),
    ("PROVIDER_RUDE_BEHAVIOR", "Unprofessional Behavior", PROVIDER, 20, True, False,
     "Displaying rude or unprofessional behavior toward users"),
    ("PROVIDER_SPAM", "Spam/Promotional Content", PROVIDER, 15, True, False,
     "Sending spam or unrelated promotional content in chats"),
    ("PROVIDER_POOR_RATINGS", "Consecutive Poor Ratings", PROVIDER, 5, False, True,
     "Receiving three consecutive one-star ratings"),
    ("PROVIDER_LATE_ARRIVAL", "Late Arrival", PROVIDER, 5, True, False,
     "Arriving more than 30 minutes late to a scheduled service"),
    ("PROVIDER_HARASSMENT", "Harassment", PROVIDER, 50, True, False,
     "Harassing or threatening a customer"),
    ("PROVIDER_INAPPROPRIATE_CONTENT", "Inappropriate Content", PROVIDER, 25, True, False,
     "Sending inappropriate or offensive content to customers"),
    ("PROVIDER_FRAUD", "Fraudulent Activity", PROVIDER, 100, True, False,
     "Engaging in fraudulent or deceptive practices"),
]


def default_violation_types():
    keys = ("code", "name", "category", "point_cost", "requires_evidence", "auto_detect", "description")
    return [dict(zip(keys, row)) for row in DEFAULT_VIOLATION_TYPES]
