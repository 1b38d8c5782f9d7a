"""Failure kinds surfaced by the engagement core.

Each error carries the ``kind`` reported to clients, a human-readable
``message`` and the HTTP status the application maps it to.
"""


class ClipfeedError(Exception):
    kind = "Error"
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(ClipfeedError):
    kind = "NotFound"
    status_code = 404
    default_message = "Not found"


class DuplicateEdge(ClipfeedError):
    kind = "DuplicateEdge"
    default_message = "Relationship already exists"


class EdgeNotFound(ClipfeedError):
    kind = "EdgeNotFound"
    default_message = "Relationship does not exist"


class SelfReferenceNotAllowed(ClipfeedError):
    kind = "SelfReferenceNotAllowed"
    default_message = "You cannot follow yourself"


class NotOwner(ClipfeedError):
    kind = "NotOwner"
    status_code = 403
    default_message = "You do not own this resource"


class ValidationError(ClipfeedError):
    kind = "ValidationError"
    default_message = "Invalid request"


class StoreError(ClipfeedError):
    # Never carries the underlying driver message.
    kind = "StoreError"
    status_code = 503
    default_message = "The service is temporarily unavailable, please retry"
