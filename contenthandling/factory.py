import collections.abc
import dataclasses
import inspect
import json
import weakref
from enum import Enum
from typing import Annotated
from typing import Any
from typing import Callable
from typing import Dict
from typing import List
from typing import Optional
from typing import Union
from typing import get_args
from typing import get_origin
from typing import get_type_hints

from diwire import Container
from diwire import Lifetime as DiLifetime
from diwire import Scope
from pydantic import BaseModel

from contenthandling.config import ContentHandlingConfig
from contenthandling.config import Lifetime
from contenthandling.content_type import get_content_type
from contenthandling.content_type import try_get_content_type
from contenthandling.converter import CONTEXT_FACTORY
from contenthandling.converter import CONTEXT_RESOLVER
from contenthandling.converter import CONTEXT_RESOLVING
from contenthandling.converter import PolymorphicConverter
from contenthandling.converter import adapter_for
from contenthandling.converter import construct
from contenthandling.converter import dump_value
from contenthandling.exceptions import ContentConfigurationError
from contenthandling.exceptions import ContentFormatError
from contenthandling.exceptions import UnregisteredContentTypeError
from contenthandling.log_config import configure_logging
from contenthandling.log_config import logger
from contenthandling.registry import ContentTypeRegistration
from contenthandling.registry import ContentTypeRegistry

# modules whose types are plain values rather than services
_DATA_MODULES = {"builtins", "datetime", "decimal", "uuid", "pathlib"}


def _lifetime_options(lifetime: Lifetime) -> Dict[str, Any]:
    if lifetime is Lifetime.TRANSIENT:
        return {"lifetime": DiLifetime.TRANSIENT}
    if lifetime is Lifetime.SCOPED:
        return {"lifetime": DiLifetime.SCOPED, "scope": Scope.REQUEST}
    # cached in the root scope for the life of the container
    return {"lifetime": DiLifetime.SCOPED}


def _empty_builder(cls: type) -> Callable[[], Any]:
    def build() -> Any:
        if issubclass(cls, BaseModel):
            return cls.model_construct()
        return cls.__new__(cls)

    return build


def _is_data_class(cls: type) -> bool:
    return (
        cls.__module__ in _DATA_MODULES
        or issubclass(cls, (Enum, BaseModel))
        or dataclasses.is_dataclass(cls)
    )


class ContentFactory:
    """
    Registers content types against a diwire container and turns JSON
    into registered content.

    Each registration goes into the factory's ContentTypeRegistry and
    adds a construction entry to the container, so content that needs
    services is built by the container and then filled from JSON.
    """

    def __init__(
        self,
        container: Container,
        config: Optional[ContentHandlingConfig] = None,
    ) -> None:
        self.container = container
        self.config = config or ContentHandlingConfig()
        self.registry = ContentTypeRegistry()
        self._converters: Dict[Any, PolymorphicConverter] = {}

    # registration

    def register_content(
        self, cls: type, requires_services: Optional[bool] = None
    ) -> ContentTypeRegistration:
        """
        Register ``cls`` under its declared content type.

        Plain data types get ``config.default_lifetime``. A type the
        container has to build is populated in place on every read, so it
        is always transient; use ``register_scoped_content`` to share one
        per scope.
        """
        if requires_services is None:
            requires_services = self.requires_services(cls)
        lifetime = self.config.default_lifetime
        if requires_services:
            lifetime = Lifetime.TRANSIENT
        return self.register_content_for_type(
            get_content_type(cls),
            cls,
            lifetime,
            requires_services=requires_services,
        )

    def register_singleton_content(
        self,
        cls: type,
        factory: Optional[Callable[..., Any]] = None,
        instance: Any = None,
        requires_services: Optional[bool] = None,
    ) -> ContentTypeRegistration:
        return self.register_content_for_type(
            get_content_type(cls),
            cls,
            Lifetime.SINGLETON,
            requires_services=requires_services,
            factory=factory,
            instance=instance,
        )

    def register_transient_content(
        self,
        cls: type,
        factory: Optional[Callable[..., Any]] = None,
        requires_services: Optional[bool] = None,
    ) -> ContentTypeRegistration:
        return self.register_content_for_type(
            get_content_type(cls),
            cls,
            Lifetime.TRANSIENT,
            requires_services=requires_services,
            factory=factory,
        )

    def register_scoped_content(
        self,
        cls: type,
        factory: Optional[Callable[..., Any]] = None,
        requires_services: Optional[bool] = None,
    ) -> ContentTypeRegistration:
        return self.register_content_for_type(
            get_content_type(cls),
            cls,
            Lifetime.SCOPED,
            requires_services=requires_services,
            factory=factory,
        )

    def register_content_for_type(
        self,
        content_type: str,
        cls: type,
        lifetime: Optional[Lifetime] = None,
        requires_services: Optional[bool] = None,
        factory: Optional[Callable[..., Any]] = None,
        instance: Any = None,
        service_key: Any = None,
    ) -> ContentTypeRegistration:
        """
        Register ``cls`` under an explicit content type.

        ``factory`` parameters are injected by the container. An
        ``instance`` is always a singleton. Without either, whether the
        container must construct ``cls`` is inferred from its
        ``__init__`` unless ``requires_services`` says otherwise.
        """
        if not content_type:
            raise ValueError("content_type must not be empty")
        if cls is None:
            raise ValueError("cls must not be None")
        if instance is not None:
            lifetime = Lifetime.SINGLETON
        lifetime = lifetime or self.config.default_lifetime
        if requires_services is None:
            requires_services = (
                factory is not None
                or instance is not None
                or self.requires_services(cls)
            )
        key = cls if service_key is None else service_key

        if instance is not None:
            self.container.add_instance(instance, provides=key)
        elif factory is not None:
            self.container.add_factory(
                factory, provides=key, **_lifetime_options(lifetime)
            )
        elif requires_services:
            self.container.add(
                cls, provides=key, **_lifetime_options(lifetime)
            )
        else:
            self.container.add_factory(
                _empty_builder(cls),
                provides=key,
                **_lifetime_options(lifetime),
            )

        return self.registry.register(
            content_type,
            cls,
            requires_services=requires_services,
            lifetime=lifetime,
            service_key=key,
        )

    def register_polymorphic_content_target(
        self, target: Any
    ) -> PolymorphicConverter:
        """
        Let fields and payloads typed as ``target`` resolve to whichever
        registered type their ``contentType`` names.
        """
        if target is None:
            raise ValueError("target must not be None")
        converter = self._converters.get(target)
        if converter is None:
            converter = PolymorphicConverter(target, self.registry)
            self._converters[target] = converter
            logger.debug("Polymorphic target added: %s", _name(target))
        return converter

    def add_service(
        self,
        cls: type,
        factory: Optional[Callable[..., Any]] = None,
        lifetime: Lifetime = Lifetime.SINGLETON,
    ) -> None:
        """Add a non-content service to the container."""
        if factory is None:
            self.container.add(
                cls, provides=cls, **_lifetime_options(lifetime)
            )
        else:
            self.container.add_factory(
                factory, provides=cls, **_lifetime_options(lifetime)
            )
        logger.debug("Service added: %s (%s)", _name(cls), lifetime.value)

    def is_polymorphic_target(self, target: Any) -> bool:
        return target in self._converters

    def get_converter(self, target: Any) -> PolymorphicConverter:
        converter = self._converters.get(target)
        if converter is None:
            raise ContentConfigurationError(
                f"{_name(target)} is not a registered polymorphic target"
            )
        return converter

    def requires_services(self, cls: type) -> bool:
        """
        True when a required ``__init__`` parameter is not plain data,
        i.e. something the container has to supply.
        """
        if not isinstance(cls, type) or _is_data_class(cls):
            return False
        init = cls.__init__  # type: ignore[misc]
        if init is object.__init__:
            return False
        parameters = list(inspect.signature(init).parameters.values())[1:]
        hints = get_type_hints(init, include_extras=True)
        for parameter in parameters:
            if parameter.kind in (
                inspect.Parameter.VAR_POSITIONAL,
                inspect.Parameter.VAR_KEYWORD,
            ):
                continue
            if parameter.default is not inspect.Parameter.empty:
                continue
            annotation = hints.get(parameter.name)
            if annotation is not None and not self._is_data_type(annotation):
                return True
        return False

    def _is_data_type(self, annotation: Any) -> bool:
        if annotation is Any or annotation is type(None):
            return True
        origin = get_origin(annotation)
        if origin is Annotated:
            return self._is_data_type(get_args(annotation)[0])
        if origin is collections.abc.Callable:
            return False
        if origin is not None:
            return all(
                self._is_data_type(arg)
                for arg in get_args(annotation)
                if isinstance(arg, type) or get_origin(arg) is not None
            )
        if not isinstance(annotation, type):
            return True
        if annotation in self._converters:
            return True
        if try_get_content_type(annotation) is not None:
            return True
        return _is_data_class(annotation)

    # lookup

    def try_get_type_for(self, content_type: str) -> Optional[type]:
        registration = self.registry.try_resolve(content_type)
        if registration is None:
            return None
        return registration.implementation_type

    def get_content(self, content_type: str, resolver: Any = None) -> Any:
        """
        An instance of the content registered for ``content_type``, or None.
        """
        if not content_type:
            raise ValueError("content_type must not be empty")
        registration = self.registry.try_resolve(content_type)
        if registration is None:
            return None
        return (resolver or self.container).resolve(registration.service_key)

    def get_derived_content(
        self,
        content_type: str,
        build_key: Callable[[str], str],
        resolver: Any = None,
    ) -> Any:
        """
        Like get_content, for content registered under a key derived from
        ``content_type``. Fallback walks the parents of ``content_type``
        and derives the key again at each step.
        """
        if not content_type:
            raise ValueError("content_type must not be empty")
        registration = self.registry.try_resolve_with(content_type, build_key)
        if registration is None:
            return None
        return (resolver or self.container).resolve(registration.service_key)

    def get_required_content(
        self, content_type: Union[str, type], resolver: Any = None
    ) -> Any:
        if not isinstance(content_type, str):
            content_type = get_content_type(content_type)
        content = self.get_content(content_type, resolver)
        if content is None:
            raise UnregisteredContentTypeError(content_type)
        return content

    def get_all_content(self, suffix: str, resolver: Any = None) -> List[Any]:
        return [
            self.get_required_content(ct, resolver)
            for ct in self.registry.content_types_with_suffix(suffix)
        ]

    def get_all_content_types(self, suffix: str) -> List[str]:
        return self.registry.content_types_with_suffix(suffix)

    # serialization

    def validation_context(self, resolver: Any = None) -> Dict[str, Any]:
        """Fresh context for a single deserialize call."""
        return {
            CONTEXT_FACTORY: self,
            CONTEXT_RESOLVER: resolver or self.container,
            CONTEXT_RESOLVING: set(),
        }

    def deserialize(self, data: Any, target: Any, resolver: Any = None) -> Any:
        """
        Read a JSON node as ``target``.

        Polymorphic targets go through their converter; content that needs
        services is taken from the container and populated; anything else
        is validated by pydantic directly.
        """
        context = self.validation_context(resolver)
        converter = self._converters.get(target)
        if converter is not None:
            return converter.read(data, context)
        registration = self._service_registration(target)
        if registration is not None:
            if data is None:
                return None
            if not isinstance(data, dict):
                raise ContentFormatError(
                    f"Expected a JSON object for {_name(target)}, "
                    f"got {type(data).__name__}"
                )
            return construct(registration, data, context)
        return adapter_for(target).validate_python(data, context=context)

    def deserialize_json(
        self, text: Union[str, bytes], target: Any, resolver: Any = None
    ) -> Any:
        return self.deserialize(json.loads(text), target, resolver)

    def to_json_node(self, value: Any) -> Any:
        return dump_value(value)

    def serialize(self, value: Any) -> str:
        return json.dumps(self.to_json_node(value))

    def _service_registration(
        self, target: Any
    ) -> Optional[ContentTypeRegistration]:
        if not isinstance(target, type):
            return None
        content_type = try_get_content_type(target)
        if content_type is None:
            return None
        registration = self.registry.get(content_type)
        if (
            registration is None
            or not registration.requires_services
            or registration.implementation_type is not target
        ):
            return None
        return registration


# one factory per container
_factories: "weakref.WeakKeyDictionary[Container, ContentFactory]" = (
    weakref.WeakKeyDictionary()
)


def add_content_factory(
    container: Container,
    configure: Optional[Callable[[ContentFactory], None]] = None,
    config: Optional[ContentHandlingConfig] = None,
) -> ContentFactory:
    """
    Install a ContentFactory into ``container`` and run ``configure`` on it.

    Installing again into the same container reuses the first factory,
    so earlier registrations are kept and nothing is duplicated.
    """
    factory = _factories.get(container)
    if factory is None:
        factory = ContentFactory(container, config)
        container.add_instance(factory, provides=ContentFactory)
        _factories[container] = factory
        configure_logging(factory.config.json_logging)
        logger.debug("ContentFactory installed")
    else:
        logger.debug("ContentFactory already installed, reusing it")
    if configure is not None:
        configure(factory)
    return factory


def _name(target: Any) -> str:
    return getattr(target, "__qualname__", repr(target))
