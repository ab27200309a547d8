from typing import Annotated
from typing import Any
from typing import Awaitable
from typing import Callable
from typing import Optional
from typing import Union

from diwire import Component

from contenthandling.config import Lifetime
from contenthandling.content_type import get_content_type
from contenthandling.envelope import ContentEnvelope
from contenthandling.factory import ContentFactory
from contenthandling.interfaces import handler_content_type
from contenthandling.registry import ContentTypeRegistration

PayloadType = Union[str, type]


class ContentHandlerWithAction:
    """
    Handler wrapping a plain callable ``handle(payload, *args)``.
    """

    def __init__(self, handle: Callable[..., Any]) -> None:
        self._handle = handle

    def handle(self, payload: Any, *args: Any) -> Any:
        return self._handle(payload, *args)


class AsyncContentHandlerWithAction:
    """
    Handler wrapping an async callable ``handle(payload, *args)``.
    """

    def __init__(self, handle: Callable[..., Awaitable[Any]]) -> None:
        self._handle = handle

    async def handle(self, payload: Any, *args: Any) -> Any:
        return await self._handle(payload, *args)


class EnvelopeHandler:
    """
    Handler taking a ContentEnvelope, unwrapping it to ``payload_type``
    and passing the payload on to ``inner``.

    A payload that cannot be read raises PayloadTypeMismatchError from
    ``get_contents``; nothing is caught here.
    """

    def __init__(self, payload_type: Any, inner: Callable[..., Any]) -> None:
        self.payload_type = payload_type
        self._inner = inner

    def handle(self, envelope: ContentEnvelope, *args: Any) -> Any:
        payload = envelope.get_contents(self.payload_type)
        return self._inner(payload, *args)


def _content_type_of(payload_type: PayloadType) -> str:
    if isinstance(payload_type, str):
        return payload_type
    return get_content_type(payload_type)


def _register_instance(
    factory: ContentFactory,
    content_type: str,
    handler_class: str,
    handler: Any,
) -> ContentTypeRegistration:
    key = handler_content_type(content_type, handler_class)
    return factory.register_content_for_type(
        key,
        type(handler),
        instance=handler,
        service_key=Annotated[type(handler), Component(key)],
    )


def register_content_handler(
    factory: ContentFactory,
    payload_type: PayloadType,
    handler_class: str,
    handle: Callable[..., Any],
) -> ContentTypeRegistration:
    return _register_instance(
        factory,
        _content_type_of(payload_type),
        handler_class,
        ContentHandlerWithAction(handle),
    )


def register_async_content_handler(
    factory: ContentFactory,
    payload_type: PayloadType,
    handler_class: str,
    handle: Callable[..., Awaitable[Any]],
) -> ContentTypeRegistration:
    return _register_instance(
        factory,
        _content_type_of(payload_type),
        handler_class,
        AsyncContentHandlerWithAction(handle),
    )


def register_content_handler_class(
    factory: ContentFactory,
    payload_type: PayloadType,
    handler_class: str,
    handler_type: type,
    lifetime: Lifetime = Lifetime.SINGLETON,
) -> ContentTypeRegistration:
    """
    Register ``handler_type``, built by the container, as the
    ``handler_class`` handler for ``payload_type``.
    """
    key = handler_content_type(_content_type_of(payload_type), handler_class)
    return factory.register_content_for_type(
        key,
        handler_type,
        lifetime,
        requires_services=True,
        service_key=Annotated[handler_type, Component(key)],
    )


def register_content_envelope_handler(
    factory: ContentFactory,
    payload_type: type,
    handler_class: str,
    handle: Callable[..., Any],
) -> ContentTypeRegistration:
    return _register_instance(
        factory,
        get_content_type(payload_type),
        handler_class,
        EnvelopeHandler(payload_type, handle),
    )


def register_content_envelope_handler_class(
    factory: ContentFactory,
    payload_type: type,
    handler_class: str,
    handler_type: type,
    handler_factory: Optional[Callable[..., Any]] = None,
) -> ContentTypeRegistration:
    """
    Register a singleton ``handler_type`` whose ``handle(payload, *args)``
    receives envelopes of ``payload_type`` already unwrapped.

    ``handler_factory``, when given, builds the handler; its parameters
    are injected by the container.
    """
    factory.add_service(handler_type, handler_factory, Lifetime.SINGLETON)
    container = factory.container

    def forward(payload: Any, *args: Any) -> Any:
        return container.resolve(handler_type).handle(payload, *args)

    return _register_instance(
        factory,
        get_content_type(payload_type),
        handler_class,
        EnvelopeHandler(payload_type, forward),
    )
