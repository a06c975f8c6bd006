"""
Error taxonomy for dispenser operations.

Every error carries a fixed, human-readable message that the HTTP layer
returns as-is. Validation errors map to 400, not-found errors to 404.
"""

from typing import Optional

# Response messages
API_WORKING = "API is working"
FLOW_VOLUME_REQUIRED = "Flow volume is required"
FLOW_VOLUME_MUST_BE_NUMBER = "Flow volume must be a number"
FLOW_VOLUME_POSITIVE = "Flow volume must be a positive number"
STATUS_UPDATED_AT_FIELDS_REQUIRED = "Status and updated_at fields are required"
DISPENSER_ALREADY_IN_DESIRED_STATE = "Dispenser already in the desired state"
INTERNAL_SERVER_ERROR = "Internal server error"
INVALID_REQUEST_BODY = "Request body must be a JSON object"

# Error messages
INVALID_FLOW = "Flow volume should be a positive number."
DISPENSER_NOT_FOUND = "Dispenser not found"
INVALID_DISPENSER_STATUS = 'Invalid dispenser state. Status must be either "open" or "close".'
INVALID_DATE_FORMAT = "Invalid date format. Please use the ISO 8601 format."
INVALID_DATE_ORDER = (
    "closed_at must be greater than opened_at and "
    "opened_at must be greater than the previous closed_at"
)


class DispenserError(Exception):
    """Base class for all dispenser domain errors."""
    message = "Dispenser error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class ValidationError(DispenserError):
    """Raised when caller input is missing or malformed."""


class NotFoundError(DispenserError):
    """Raised when a referenced entity does not exist."""


class InvalidFlowVolume(ValidationError):
    message = INVALID_FLOW


class InvalidStatus(ValidationError):
    message = INVALID_DISPENSER_STATUS


class InvalidDateFormat(ValidationError):
    message = INVALID_DATE_FORMAT


class InvalidDateOrder(ValidationError):
    message = INVALID_DATE_ORDER


class DispenserNotFound(NotFoundError):
    message = DISPENSER_NOT_FOUND
