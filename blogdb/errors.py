"""Error taxonomy for BlogDB engine operations.

Every error raised by :class:`blogdb.engine.PostEngine` derives from
:class:`BlogDBError`. The ``status`` attribute is the label used for the
``blogdb_operations_total`` metric and lets an HTTP layer pick a status code
without inspecting messages.
"""


class BlogDBError(Exception):
    """Base exception for engine operations."""

    status = "error"


class InputValidationError(BlogDBError):
    """Missing or invalid input; the operation was not attempted."""

    status = "validation_error"


class NotFoundError(BlogDBError):
    """Referenced post, tag, user or comment does not exist."""

    status = "not_found"

    def __init__(self, entity: str, uid: str) -> None:
        self.entity = entity
        self.uid = uid
        super().__init__(f"{entity.capitalize()} {uid!r} not found")


class UnknownTagsError(NotFoundError):
    """Tag identifiers with no Tag row, raised under the reject policy."""

    def __init__(self, tag_uids: list[str]) -> None:
        self.tag_uids = tag_uids
        super().__init__("tag", ", ".join(tag_uids))


class AuthorizationError(BlogDBError):
    """Authenticated actor is neither the owner nor an admin."""

    status = "unauthorized"

    def __init__(self, user_id: str, entity: str, uid: str) -> None:
        self.user_id = user_id
        self.entity = entity
        self.uid = uid
        super().__init__(f"User {user_id!r} may not modify {entity} {uid!r}")


class StorageError(BlogDBError):
    """Storage engine failure.

    The message stays generic; the underlying exception is chained as
    ``__cause__`` and logged where it is caught.
    """

    status = "storage_error"

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Storage failure during {operation}")


__all__ = [
    "BlogDBError",
    "InputValidationError",
    "NotFoundError",
    "UnknownTagsError",
    "AuthorizationError",
    "StorageError",
]
