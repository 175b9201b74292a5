"""
Vendor Performance - Error Taxonomy

Every failure the engine surfaces to a caller is one of these kinds.
Routers map them to HTTP status codes; raw store errors never leak.
"""

from typing import Optional
import uuid


class VendorPerfError(Exception):
    """Base class for engine errors."""
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(VendorPerfError):
    """Requested entity does not exist for the tenant."""
    status_code = 404


class VendorNotFound(NotFoundError):
    def __init__(self, vendor_id: uuid.UUID, detail: Optional[str] = None):
        self.vendor_id = vendor_id
        super().__init__(detail or f"Vendor {vendor_id} not found")


class AlertNotFound(NotFoundError):
    def __init__(self, alert_id: uuid.UUID):
        self.alert_id = alert_id
        super().__init__(f"Alert {alert_id} not found")


class PerformanceRecordNotFound(NotFoundError):
    def __init__(self, vendor_id: uuid.UUID, year: int, month: int):
        self.vendor_id = vendor_id
        self.year = year
        self.month = month
        super().__init__(
            f"No performance record for vendor {vendor_id} in {year}-{month:02d}"
        )


class ValidationError(VendorPerfError):
    """Input rejected before any write. Never coerced."""
    status_code = 400


class ConflictError(VendorPerfError):
    """Alert is not in the state the transition requires."""
    status_code = 409

    def __init__(self, message: str, current_status: Optional[str] = None):
        self.current_status = current_status
        super().__init__(message)


class TransientStoreError(VendorPerfError):
    """Connection or timeout failure inside a transaction. Safe to retry."""
    status_code = 503
