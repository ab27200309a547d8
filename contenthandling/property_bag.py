import json
from typing import Any
from typing import Dict
from typing import Iterator
from typing import Optional
from typing import Tuple

from pydantic_core import core_schema

from contenthandling.converter import CONTEXT_FACTORY
from contenthandling.envelope import READ_ERRORS
from contenthandling.envelope import read_json
from contenthandling.exceptions import ContentConfigurationError
from contenthandling.exceptions import ContentFormatError
from contenthandling.factory import ContentFactory


class PropertyBag:
    """
    Named values stored as JSON and read back as whatever type the
    caller asks for.

    Usable as a pydantic field type when the model is deserialized
    through a ContentFactory.
    """

    def __init__(
        self,
        factory: ContentFactory,
        properties: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._factory = factory
        self._properties: Dict[str, Any] = {}
        for key, value in (properties or {}).items():
            self.set(key, value)

    @classmethod
    def from_json(cls, source: Any, factory: ContentFactory) -> "PropertyBag":
        node = read_json(source)
        if not isinstance(node, dict):
            raise ContentFormatError("A property bag must be a JSON object")
        bag = cls(factory)
        bag._properties = dict(node)
        return bag

    def set(self, key: str, value: Any) -> None:
        if not key:
            raise ValueError("key must not be empty")
        self._properties[key] = (
            None if value is None else self._factory.to_json_node(value)
        )

    def try_get(self, key: str, target: Any) -> Tuple[Any, bool]:
        """
        ``(value, True)`` if ``key`` exists and reads as ``target``,
        else ``(None, False)``. A stored null reads as ``(None, True)``.
        """
        if key not in self._properties:
            return None, False
        node = self._properties[key]
        if node is None:
            return None, True
        try:
            return self._factory.deserialize(node, target), True
        except READ_ERRORS:
            return None, False

    def get(self, key: str, target: Any, default: Any = None) -> Any:
        value, ok = self.try_get(key, target)
        return value if ok else default

    def remove(self, key: str) -> None:
        self._properties.pop(key, None)

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._properties)

    def to_json(self) -> str:
        return json.dumps(self._properties)

    def __contains__(self, key: object) -> bool:
        return key in self._properties

    def __len__(self) -> int:
        return len(self._properties)

    def __iter__(self) -> Iterator[str]:
        return iter(self._properties)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PropertyBag):
            return NotImplemented
        return self._properties == other._properties

    def __repr__(self) -> str:
        return f"PropertyBag({self._properties!r})"

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source: Any, handler: Any
    ) -> core_schema.CoreSchema:
        def validate(value: Any, info: core_schema.ValidationInfo) -> Any:
            if isinstance(value, PropertyBag):
                return value
            context = info.context if isinstance(info.context, dict) else {}
            factory = context.get(CONTEXT_FACTORY)
            if factory is None:
                raise ContentConfigurationError(
                    "Reading a PropertyBag needs a content factory in the "
                    "validation context"
                )
            return cls.from_json(value, factory)

        return core_schema.with_info_plain_validator_function(
            validate,
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda bag: bag.as_dict()
            ),
        )
