"""
Exceptions raised by skyform.
"""


class SkyformError(Exception):
    """Base class for all skyform errors."""
    pass


class SchemaError(SkyformError):
    """Raised when a handler reads or writes an attribute its schema lacks."""
    pass


class ValidationError(SkyformError):
    """Raised when a configuration does not satisfy its resource schema."""

    def __init__(self, type_name: str, problems: list[str]):
        self.type_name = type_name
        self.problems = problems
        super().__init__(
            f"invalid configuration for {type_name}:\n  " + "\n  ".join(problems)
        )


class ResourceOperationError(SkyformError):
    """
    Raised when a resource operation fails.

    The message names the operation, e.g.
    "creating Macie S3 bucket association: <cause>".
    """
    pass


class NotFoundError(SkyformError):
    """Raised by finders when the remote object does not exist."""
    pass


class UnknownResourceTypeError(SkyformError):
    """Raised when no service package registers the requested type name."""
    pass


class RegistrationError(SkyformError):
    """Raised when service packages register conflicting type names."""
    pass
