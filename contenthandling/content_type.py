from typing import Any
from typing import Callable
from typing import Optional
from typing import TypeVar

from contenthandling.exceptions import ContentTypeNotDeclaredError

T = TypeVar("T", bound=type)

CONTENT_TYPE_ATTRIBUTE = "__content_type__"


def content_type(value: str) -> Callable[[T], T]:
    """
    Class decorator declaring the content type a class is registered under.

    The declaration belongs to the decorated class only; subclasses must
    declare their own.
    """
    if not value:
        raise ValueError("content_type must not be empty")

    def decorate(cls: T) -> T:
        setattr(cls, CONTENT_TYPE_ATTRIBUTE, value)
        return cls

    return decorate


def try_get_content_type(target: Any) -> Optional[str]:
    """
    Content type of a type or instance, or None if it has none.

    An instance may carry its own ``content_type`` string, which wins
    over the declaration on its class.
    """
    if target is None:
        return None
    if not isinstance(target, type):
        declared = getattr(target, "content_type", None)
        if isinstance(declared, str) and declared:
            return declared
        target = type(target)
    return vars(target).get(CONTENT_TYPE_ATTRIBUTE)


def get_content_type(target: Any) -> str:
    found = try_get_content_type(target)
    if found is None:
        raise ContentTypeNotDeclaredError(target)
    return found
