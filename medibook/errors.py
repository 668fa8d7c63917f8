# medibook/errors.py
"""
Domain errors raised by the services. main.py renders them as
{"detail": detail} with the matching HTTP status.
"""


class SchedulingError(Exception):
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(SchedulingError):
    """Missing or malformed input. Raised before any write."""
    status_code = 400


class NotFoundError(SchedulingError):
    status_code = 404


class ConflictError(SchedulingError):
    """The chosen window was taken between listing and booking."""
    status_code = 409


class ConfigurationError(SchedulingError):
    """Credentials for an external service are missing."""
    status_code = 500


class UpstreamDegraded(SchedulingError):
    """Google Calendar, SMTP or Twilio failed. The booking flow downgrades it to a soft status."""
    status_code = 502
