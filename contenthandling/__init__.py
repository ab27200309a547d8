from .config import ContentHandlingConfig
from .config import Lifetime
from .content_type import content_type
from .content_type import get_content_type
from .content_type import try_get_content_type
from .converter import Polymorphic
from .converter import PolymorphicConverter
from .dispatcher import ContentHandlerDispatcher
from .envelope import ContentEnvelope
from .exceptions import ContentConfigurationError
from .exceptions import ContentFormatError
from .exceptions import ContentHandlingError
from .exceptions import ContentTypeNotDeclaredError
from .exceptions import PayloadTypeMismatchError
from .exceptions import UnregisteredContentTypeError
from .factory import ContentFactory
from .factory import add_content_factory
from .fastapi_utils import envelope_body
from .handlers import AsyncContentHandlerWithAction
from .handlers import ContentHandlerWithAction
from .handlers import EnvelopeHandler
from .handlers import register_async_content_handler
from .handlers import register_content_envelope_handler
from .handlers import register_content_envelope_handler_class
from .handlers import register_content_handler
from .handlers import register_content_handler_class
from .interfaces import ContentHandlerProtocol
from .interfaces import Dispatch
from .interfaces import Middleware
from .media_type import MediaType
from .middleware import logging_middleware
from .middleware import metrics_middleware
from .models import ContentModel
from .models import JsonModel
from .property_bag import PropertyBag
from .registry import ContentTypeRegistration
from .registry import ContentTypeRegistry

__all__ = [
    "ContentHandlingConfig",
    "Lifetime",
    "content_type",
    "get_content_type",
    "try_get_content_type",
    "Polymorphic",
    "PolymorphicConverter",
    "ContentHandlerDispatcher",
    "ContentEnvelope",
    "ContentHandlingError",
    "ContentFormatError",
    "UnregisteredContentTypeError",
    "ContentConfigurationError",
    "ContentTypeNotDeclaredError",
    "PayloadTypeMismatchError",
    "ContentFactory",
    "add_content_factory",
    "envelope_body",
    "ContentHandlerWithAction",
    "AsyncContentHandlerWithAction",
    "EnvelopeHandler",
    "register_content_handler",
    "register_async_content_handler",
    "register_content_handler_class",
    "register_content_envelope_handler",
    "register_content_envelope_handler_class",
    "ContentHandlerProtocol",
    "Dispatch",
    "Middleware",
    "MediaType",
    "logging_middleware",
    "metrics_middleware",
    "ContentModel",
    "JsonModel",
    "PropertyBag",
    "ContentTypeRegistration",
    "ContentTypeRegistry",
]
