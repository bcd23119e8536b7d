"""
API exceptions shared across apps.
"""
from rest_framework import status
from rest_framework.exceptions import APIException


class ConflictError(APIException):
    """
    409 Conflict.

    Raised for stale optimistic-lock versions and for state transitions
    that collide with the current committed state (e.g. accepting an
    invite for a family the caller already belongs to).

    Extra keyword arguments (current_version, your_version, ...) are
    rendered next to `detail` in the response body.
    """
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The resource was modified or is in a conflicting state.'
    default_code = 'conflict'

    def __init__(self, detail=None, code=None, **context):
        if detail is None:
            detail = self.default_detail
        if context:
            detail = {'detail': detail, **{k: str(v) for k, v in context.items()}}
        super().__init__(detail=detail, code=code)
