"""Error taxonomy shared by the services and the command line."""


class HousePointsError(Exception):
    """Base class for errors the caller is expected to report."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(HousePointsError):
    """Input the caller can fix; stored state is left untouched."""


class NotFoundError(HousePointsError):
    """A referenced house, student, teacher or reward does not exist."""


class PermissionDeniedError(HousePointsError):
    """The acting user may not perform the operation."""


class CorruptDocumentError(HousePointsError):
    """The persisted document failed the shape check; nothing may operate on it."""
