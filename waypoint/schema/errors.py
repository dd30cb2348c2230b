"""Declaration document exceptions."""

from ..errors import WaypointError


class SchemaLoadError(WaypointError):
    """Raised when a declaration file cannot be loaded."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(message)


class SchemaValidationError(WaypointError):
    """Raised when a declaration document fails validation."""

    def __init__(self, message: str, errors: list[dict] | None = None):
        self.errors = errors or []
        super().__init__(message)
