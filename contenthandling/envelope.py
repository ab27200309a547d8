import inspect
import json
from typing import Any
from typing import Callable
from typing import Iterable
from typing import Optional
from typing import Tuple
from typing import Union
from typing import get_type_hints

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import PrivateAttr
from pydantic import ValidationError

from contenthandling.config import DISCRIMINATOR
from contenthandling.config import PAYLOAD_KEY
from contenthandling.content_type import get_content_type
from contenthandling.exceptions import ContentConfigurationError
from contenthandling.exceptions import ContentFormatError
from contenthandling.exceptions import PayloadTypeMismatchError
from contenthandling.exceptions import UnregisteredContentTypeError
from contenthandling.factory import ContentFactory
from contenthandling.log_config import logger

# a handler callable, (content_type, handler) or
# (content_type, payload_type, handler)
Case = Union[Callable[..., Any], Tuple[Any, ...]]

# errors that mean "the payload is not a T", as opposed to a broken setup
READ_ERRORS = (
    ValidationError,
    ContentFormatError,
    UnregisteredContentTypeError,
)


def read_json(source: Any) -> Any:
    """
    Parse JSON text, bytes or a readable stream; anything else is taken
    to be an already parsed node.
    """
    if isinstance(source, (str, bytes, bytearray)):
        return json.loads(source)
    if hasattr(source, "read"):
        return json.loads(source.read())
    return source


class ContentEnvelope(BaseModel):
    """
    A payload together with the content type it was written as.

    The payload is held as a JSON node and only read into a concrete
    type when asked for, through the ContentFactory the envelope is bound
    to. On the wire it is ``{"contentType": ..., "payload": ...}``.
    """

    model_config = ConfigDict(populate_by_name=True)

    payload_content_type: Optional[str] = Field(
        default=None, alias=DISCRIMINATOR
    )
    serialized_payload: Any = Field(default=None, alias=PAYLOAD_KEY)

    _factory: Optional[ContentFactory] = PrivateAttr(default=None)

    @classmethod
    def from_payload(
        cls,
        payload: Any,
        factory: ContentFactory,
        content_type: Optional[str] = None,
    ) -> "ContentEnvelope":
        envelope = cls().bind(factory)
        envelope.set_payload(payload, content_type)
        return envelope

    @classmethod
    def from_json(
        cls,
        source: Any,
        factory: ContentFactory,
        content_type: Optional[str] = None,
    ) -> "ContentEnvelope":
        """
        Wrap a JSON payload. Without ``content_type`` the payload's own
        ``contentType`` is used.
        """
        node = read_json(source)
        if content_type is None and node is not None:
            if not isinstance(node, dict) or not node.get(DISCRIMINATOR):
                raise ContentFormatError(
                    "Object must have contentType property"
                )
            content_type = node[DISCRIMINATOR]
        envelope = cls(
            payload_content_type=content_type, serialized_payload=node
        )
        return envelope.bind(factory)

    @classmethod
    async def from_json_async(
        cls,
        stream: Any,
        factory: ContentFactory,
        content_type: Optional[str] = None,
    ) -> "ContentEnvelope":
        """Like from_json, reading from an object with ``async read()``."""
        data = await stream.read()
        return cls.from_json(data, factory, content_type)

    @classmethod
    def from_wire(
        cls, source: Any, factory: ContentFactory
    ) -> "ContentEnvelope":
        """Read an envelope written by ``to_json``."""
        node = read_json(source)
        if not isinstance(node, dict):
            raise ContentFormatError("An envelope must be a JSON object")
        return cls.model_validate(node).bind(factory)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    def bind(self, factory: ContentFactory) -> "ContentEnvelope":
        self._factory = factory
        return self

    @property
    def factory(self) -> ContentFactory:
        if self._factory is None:
            raise ContentConfigurationError(
                "ContentEnvelope is not bound to a ContentFactory"
            )
        return self._factory

    def set_payload(
        self, payload: Any, content_type: Optional[str] = None
    ) -> None:
        if payload is None:
            node = None
        else:
            content_type = content_type or get_content_type(payload)
            node = self.factory.to_json_node(payload)
        self.payload_content_type = content_type
        self.serialized_payload = node

    def get_contents(self, target: Any) -> Any:
        """
        The payload read as ``target``; a null payload gives None.
        Raises PayloadTypeMismatchError when it cannot be read.
        """
        if self.serialized_payload is None:
            return None
        try:
            return self.factory.deserialize(self.serialized_payload, target)
        except READ_ERRORS as exc:
            raise PayloadTypeMismatchError(
                self.payload_content_type, target, exc
            ) from exc

    def try_get_payload(self, target: Any) -> Tuple[Any, bool]:
        try:
            return self.get_contents(target), True
        except PayloadTypeMismatchError as exc:
            logger.debug("%s", exc)
            return None, False

    def match(self, *cases: Case) -> bool:
        """
        Call the first case whose content type is this payload's.

        Returns False when no case applies or the payload cannot be read
        as that case's type; later cases are not tried.
        """
        for content_type, target, handler in _expand(cases):
            if content_type != self.payload_content_type:
                continue
            payload, ok = self.try_get_payload(target)
            if ok:
                handler(payload)
            return ok
        return False

    async def match_async(self, *cases: Case) -> bool:
        for content_type, target, handler in _expand(cases):
            if content_type != self.payload_content_type:
                continue
            payload, ok = self.try_get_payload(target)
            if ok:
                result = handler(payload)
                if inspect.isawaitable(result):
                    await result
            return ok
        return False

    def dispatch_to_handler(
        self, dispatcher: Any, handler_class: str, *args: Any
    ) -> Any:
        return dispatcher.dispatch(
            self, self.payload_content_type, handler_class, *args
        )

    async def dispatch_to_handler_async(
        self, dispatcher: Any, handler_class: str, *args: Any
    ) -> Any:
        return await dispatcher.dispatch_async(
            self, self.payload_content_type, handler_class, *args
        )


def _payload_type(handler: Callable[..., Any]) -> Any:
    parameters = list(inspect.signature(handler).parameters.values())
    if not parameters:
        raise ContentConfigurationError(
            f"{handler!r} must take the payload as its first parameter"
        )
    hints = get_type_hints(handler)
    return hints.get(parameters[0].name)


def _expand(
    cases: Iterable[Case],
) -> Iterable[Tuple[str, Any, Callable[..., Any]]]:
    for case in cases:
        if isinstance(case, tuple):
            if len(case) == 3:
                yield case[0], case[1], case[2]
                continue
            content_type, handler = case
            target = _payload_type(handler)
            yield content_type, Any if target is None else target, handler
            continue
        target = _payload_type(case)
        if target is None:
            raise ContentConfigurationError(
                f"Cannot infer a content type for {case!r}; annotate its "
                "first parameter or pass (content_type, handler)"
            )
        yield get_content_type(target), target, case
