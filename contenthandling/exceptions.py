from typing import Any
from typing import Optional


class ContentHandlingError(Exception):
    """
    Base class for every error raised by contenthandling.

    Not a ValueError, so when raised inside a pydantic validator it
    propagates unchanged instead of becoming a ValidationError.
    """


class ContentFormatError(ContentHandlingError):
    """
    The JSON does not have the shape needed to resolve a content type.
    """


class UnregisteredContentTypeError(ContentHandlingError):
    """
    A content type was present but nothing is registered for it, even
    after fallback resolution.
    """

    def __init__(self, content_type: str) -> None:
        super().__init__(f"No content registered for '{content_type}'")
        self.content_type = content_type


class ContentConfigurationError(ContentHandlingError):
    """
    Registrations contradict each other, e.g. a polymorphic target that
    resolves to itself.
    """


class ContentTypeNotDeclaredError(ContentHandlingError):
    """
    The type does not declare a content type.
    """

    def __init__(self, target: Any) -> None:
        name = getattr(target, "__qualname__", repr(target))
        super().__init__(
            f"{name} does not declare a content type; "
            "decorate it with @content_type(...)"
        )
        self.target = target


class PayloadTypeMismatchError(ContentHandlingError):
    """
    The stored payload could not be read as the requested type.
    """

    def __init__(
        self,
        content_type: Optional[str],
        target: Any,
        cause: Optional[BaseException] = None,
    ) -> None:
        name = getattr(target, "__qualname__", repr(target))
        message = f"Payload '{content_type}' cannot be read as {name}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.content_type = content_type
        self.target = target
