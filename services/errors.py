"""
Error taxonomy for the time-tracking service.

Every business-rule violation is a TimeTrackingError subclass carrying a
stable ``kind`` for clients and the HTTP status the API layer maps it to.
"""

from typing import Optional


class TimeTrackingError(Exception):
    """Base class for all time-tracking failures"""
    kind = 'Error'
    status_code = 500

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(self.message)

    def to_dict(self):
        data = {'success': False, 'error': self.kind, 'message': self.message}
        if self.field:
            data['field'] = self.field
        return data


class Unauthenticated(TimeTrackingError):
    """No valid identity in the request context"""
    kind = 'Unauthenticated'
    status_code = 401


class PermissionDenied(TimeTrackingError):
    """Actor lacks the role or ownership for the action"""
    kind = 'PermissionDenied'
    status_code = 403


class NotFound(TimeTrackingError):
    """Referenced task or timer does not exist"""
    kind = 'NotFound'
    status_code = 404


class ConflictActiveTimer(TimeTrackingError):
    """Actor already has a running timer"""
    kind = 'ConflictActiveTimer'
    status_code = 409


class AlreadyStopped(TimeTrackingError):
    """Stop requested on a timer whose end time is already set"""
    kind = 'AlreadyStopped'
    status_code = 409


class ValidationError(TimeTrackingError):
    """Malformed input"""
    kind = 'ValidationError'
    status_code = 400


class StorageFailure(TimeTrackingError):
    """Underlying persistence operation failed"""
    kind = 'StorageFailure'
    status_code = 503
