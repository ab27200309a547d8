import datetime
import uuid
from datetime import timezone
from typing import Any
from typing import Awaitable
from typing import Callable
from typing import Protocol
from typing import Tuple

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field


class Dispatch(BaseModel):
    """
    One handler invocation travelling through the middleware pipeline.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    payload: Any
    content_type: str
    handler_class: str
    args: Tuple[Any, ...] = ()
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime.datetime = Field(
        default_factory=lambda: datetime.datetime.now(timezone.utc)
    )

    @property
    def handler_content_type(self) -> str:
        return handler_content_type(self.content_type, self.handler_class)


def handler_content_type(content_type: str, handler_class: str) -> str:
    """Content type a handler of ``handler_class`` is registered under."""
    if not content_type:
        raise ValueError("content_type must not be empty")
    if not handler_class:
        raise ValueError("handler_class must not be empty")
    return f"{content_type}+{handler_class.lower()}"


class ContentHandlerProtocol(Protocol):
    """Handles a payload plus any extra arguments the caller passes."""

    def handle(self, payload: Any, *args: Any) -> Any: ...


class DispatcherProtocol(Protocol):
    def dispatch(
        self, payload: Any, content_type: str, handler_class: str, *args: Any
    ) -> Any: ...

    async def dispatch_async(
        self, payload: Any, content_type: str, handler_class: str, *args: Any
    ) -> Any: ...


Next = Callable[[Dispatch], Awaitable[Any]]

Middleware = Callable[[Dispatch, Next], Awaitable[Any]]
