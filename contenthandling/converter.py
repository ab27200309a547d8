import functools
from typing import Annotated
from typing import Any
from typing import ClassVar
from typing import Dict
from typing import Optional
from typing import get_origin
from typing import get_type_hints

from pydantic import BaseModel
from pydantic import TypeAdapter
from pydantic.alias_generators import to_camel
from pydantic.alias_generators import to_snake
from pydantic_core import core_schema
from pydantic_core import to_jsonable_python

from contenthandling.config import DISCRIMINATOR
from contenthandling.content_type import try_get_content_type
from contenthandling.exceptions import ContentConfigurationError
from contenthandling.exceptions import ContentFormatError
from contenthandling.exceptions import PayloadTypeMismatchError
from contenthandling.exceptions import UnregisteredContentTypeError
from contenthandling.log_config import logger
from contenthandling.registry import ContentTypeRegistration
from contenthandling.registry import ContentTypeRegistry

# keys of the validation context shared by one deserialize call
CONTEXT_FACTORY = "content_factory"
CONTEXT_RESOLVER = "resolver"
CONTEXT_RESOLVING = "resolving"


@functools.lru_cache(maxsize=None)
def adapter_for(target: Any) -> TypeAdapter:
    return TypeAdapter(target)


@functools.lru_cache(maxsize=None)
def settable_hints(cls: type) -> Dict[str, Any]:
    """Annotated instance attributes of a plain class."""
    hints = get_type_hints(cls, include_extras=True)
    return {
        name: hint
        for name, hint in hints.items()
        if not name.startswith("_") and get_origin(hint) is not ClassVar
    }


def _model_keys(model_type: type) -> Dict[str, str]:
    keys: Dict[str, str] = {}
    for name, field in model_type.model_fields.items():  # type: ignore
        keys[name] = name
        if field.alias:
            keys[field.alias] = name
    return keys


def populate(instance: Any, data: Dict[str, Any], context: Any) -> Any:
    """
    Fill an already constructed instance from a JSON object.

    Pydantic models are assigned field by field through their validator;
    other objects get each annotated attribute validated on its own.
    Unknown keys and the discriminator are skipped.
    """
    if isinstance(instance, BaseModel):
        model_type = type(instance)
        keys = _model_keys(model_type)
        for key, value in data.items():
            name = keys.get(key)
            if key == DISCRIMINATOR or name is None:
                continue
            model_type.__pydantic_validator__.validate_assignment(
                instance, name, value, context=context
            )
        return instance

    hints = settable_hints(type(instance))
    for key, value in data.items():
        if key == DISCRIMINATOR:
            continue
        name = key if key in hints else to_snake(key)
        hint = hints.get(name)
        if hint is None:
            continue
        setattr(
            instance,
            name,
            adapter_for(hint).validate_python(value, context=context),
        )
    return instance


def construct(
    registration: ContentTypeRegistration,
    data: Dict[str, Any],
    context: Dict[str, Any],
) -> Any:
    """Build the registered type from a JSON object."""
    if registration.requires_services:
        resolver = context.get(CONTEXT_RESOLVER)
        if resolver is None:
            raise ContentConfigurationError(
                f"'{registration.content_type}' needs services but no "
                "resolver was supplied"
            )
        instance = resolver.resolve(registration.service_key)
        return populate(instance, data, context)
    return adapter_for(registration.implementation_type).validate_python(
        data, context=context
    )


class PolymorphicConverter:
    """
    Reads JSON for an interface or base type by looking up the concrete
    type named by the object's ``contentType``.
    """

    def __init__(self, target: Any, registry: ContentTypeRegistry) -> None:
        self.target = target
        self._registry = registry

    def can_convert(self, target: Any) -> bool:
        return target is self.target

    def read(self, data: Any, context: Dict[str, Any]) -> Any:
        if data is None:
            return None
        if not isinstance(data, dict):
            raise ContentFormatError(
                f"Expected a JSON object for {_name(self.target)}, "
                f"got {type(data).__name__}"
            )
        content_type = data.get(DISCRIMINATOR)
        if content_type is None:
            raise ContentFormatError("Object must have contentType property")
        if not isinstance(content_type, str):
            raise ContentFormatError("contentType must be a string")

        registration = self._registry.try_resolve(content_type)
        if registration is None:
            raise UnregisteredContentTypeError(content_type)
        concrete = registration.implementation_type
        if concrete is self.target:
            raise ContentConfigurationError(
                f"'{content_type}' resolves to the polymorphic target "
                f"{_name(self.target)} itself"
            )
        if (
            isinstance(self.target, type)
            and isinstance(concrete, type)
            and not issubclass(concrete, self.target)
        ):
            raise PayloadTypeMismatchError(content_type, self.target)

        resolving = context.setdefault(CONTEXT_RESOLVING, set())
        key = (self.target, id(data))
        if key in resolving:
            raise ContentConfigurationError(
                f"Re-entrant conversion of '{content_type}' to "
                f"{_name(self.target)}"
            )
        resolving.add(key)
        try:
            logger.debug(
                "Reading '%s' as %s for %s",
                content_type,
                _name(concrete),
                _name(self.target),
                extra={"content_type": content_type},
            )
            return construct(registration, data, context)
        finally:
            resolving.discard(key)

    def write(self, value: Any, by_alias: bool = True) -> Any:
        return dump_value(value, by_alias=by_alias)


def _validate_polymorphic(target: Any, value: Any, context: Any) -> Any:
    if value is None:
        return None
    if isinstance(target, type) and isinstance(value, target):
        return value
    factory = None
    if isinstance(context, dict):
        factory = context.get(CONTEXT_FACTORY)
    if factory is None:
        raise ContentConfigurationError(
            f"Reading {_name(target)} needs a content factory in the "
            "validation context; deserialize through ContentFactory"
        )
    return factory.get_converter(target).read(value, context)


def _serialize_runtime(value: Any, info: core_schema.SerializationInfo) -> Any:
    if value is None:
        return None
    by_alias = bool(info.by_alias)
    if isinstance(value, BaseModel):
        return value.model_dump(mode=info.mode, by_alias=by_alias)
    return dump_value(value, by_alias=by_alias)


class Polymorphic:
    """
    Marks a field whose value is resolved through its ``contentType``.

    ``child: Polymorphic[SomeInterface]`` validates through the converter
    registered for ``SomeInterface`` and serializes using the runtime type
    of the value.
    """

    def __class_getitem__(cls, item: Any) -> Any:
        return Annotated[item, cls()]

    def __get_pydantic_core_schema__(
        self, source: Any, handler: Any
    ) -> core_schema.CoreSchema:
        def validate(value: Any, info: core_schema.ValidationInfo) -> Any:
            return _validate_polymorphic(source, value, info.context)

        return core_schema.with_info_plain_validator_function(
            validate,
            serialization=core_schema.plain_serializer_function_ser_schema(
                _serialize_runtime, info_arg=True
            ),
        )


def dump_value(value: Any, by_alias: bool = True) -> Any:
    """JSON-compatible form of ``value``, using its runtime type."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=by_alias)
    return to_jsonable_python(
        value,
        by_alias=by_alias,
        fallback=functools.partial(_dump_plain, by_alias=by_alias),
    )


def _dump_plain(value: Any, by_alias: bool = True) -> Any:
    hints = settable_hints(type(value))
    if not hints:
        raise ContentFormatError(
            f"Cannot serialize {type(value).__qualname__} to JSON"
        )
    node: Dict[str, Any] = {}
    content_type: Optional[str] = try_get_content_type(value)
    if content_type:
        node[DISCRIMINATOR] = content_type
    for name in hints:
        if hasattr(value, name):
            key = to_camel(name) if by_alias else name
            node[key] = dump_value(getattr(value, name), by_alias=by_alias)
    return node


def _name(target: Any) -> str:
    return getattr(target, "__qualname__", repr(target))
