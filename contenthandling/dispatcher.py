import inspect
from typing import Any
from typing import List

from contenthandling.exceptions import UnregisteredContentTypeError
from contenthandling.factory import ContentFactory
from contenthandling.interfaces import Dispatch
from contenthandling.interfaces import Middleware
from contenthandling.interfaces import Next
from contenthandling.interfaces import handler_content_type
from contenthandling.log_config import logger
from contenthandling.middleware import metrics_middleware


class ContentHandlerDispatcher:
    """
    Routes a payload to the handler registered for its content type and
    a handler class such as "render" or "validate".

    Handlers are ordinary content registered under
    ``"<content type>+<handler class>"``, so a handler for a general
    content type also serves its more specific children.
    """

    def __init__(self, factory: ContentFactory, resolver: Any = None) -> None:
        self._factory = factory
        self._resolver = resolver
        self._middleware: List[Middleware] = []
        if factory.config.metrics_enabled:
            self._middleware.append(metrics_middleware)

    def add_middleware(self, mw: Middleware) -> None:
        self._middleware.append(mw)
        logger.debug("Middleware added: %s", getattr(mw, "__name__", repr(mw)))

    def get_handler(self, content_type: str, handler_class: str) -> Any:
        key = handler_content_type(content_type, handler_class)

        def handler_key(ct: str) -> str:
            return handler_content_type(ct, handler_class)

        handler = self._factory.get_derived_content(
            content_type, handler_key, self._resolver
        )
        if handler is None:
            raise UnregisteredContentTypeError(key)
        return handler

    def dispatch(
        self, payload: Any, content_type: str, handler_class: str, *args: Any
    ) -> Any:
        handler = self.get_handler(content_type, handler_class)
        logger.debug(
            "Dispatching '%s' to %s",
            handler_content_type(content_type, handler_class),
            type(handler).__name__,
            extra={"content_type": content_type},
        )
        return handler.handle(payload, *args)

    async def dispatch_async(
        self, payload: Any, content_type: str, handler_class: str, *args: Any
    ) -> Any:
        """
        Dispatch through the middleware pipeline, awaiting the handler's
        result when it is awaitable.
        """
        key = handler_content_type(content_type, handler_class)
        logger.debug(
            "Dispatching '%s' through %d middleware",
            key,
            len(self._middleware),
            extra={"content_type": content_type},
        )
        dispatch = Dispatch(
            payload=payload,
            content_type=content_type,
            handler_class=handler_class,
            args=args,
        )

        async def final(d: Dispatch) -> Any:
            handler = self.get_handler(d.content_type, d.handler_class)
            result = handler.handle(d.payload, *d.args)
            if inspect.isawaitable(result):
                result = await result
            return result

        pipeline: Next = final
        for mw in reversed(self._middleware):
            pipeline = self._wrap_middleware(mw, pipeline)

        return await pipeline(dispatch)

    @staticmethod
    def _wrap_middleware(mw: Middleware, nxt: Next) -> Next:
        async def wrapped(dispatch: Dispatch) -> Any:
            return await mw(dispatch, nxt)

        return wrapped
