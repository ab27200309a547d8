from typing import Any
from typing import Callable
from typing import Dict
from typing import Iterator
from typing import List
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict

from contenthandling.config import Lifetime
from contenthandling.exceptions import UnregisteredContentTypeError
from contenthandling.log_config import logger
from contenthandling.media_type import parent_content_type


class ContentTypeRegistration(BaseModel):
    """
    What a content type resolves to and how the container builds it.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    content_type: str
    implementation_type: Any
    requires_services: bool = False
    lifetime: Lifetime = Lifetime.SINGLETON
    # container key the construction entry lives under
    service_key: Any = None


class ContentTypeRegistry:
    """
    Maps content types to registrations.

    Lookups fall back from a specific content type to its more general
    parents, so ``application/vnd.x.y+json`` is served by a registration
    for ``application/vnd.x+json`` when nothing more specific exists.
    """

    def __init__(self) -> None:
        self._map: Dict[str, ContentTypeRegistration] = {}

    def register(
        self,
        content_type: str,
        implementation_type: Any,
        requires_services: bool = False,
        lifetime: Lifetime = Lifetime.SINGLETON,
        service_key: Any = None,
    ) -> ContentTypeRegistration:
        if not content_type:
            raise ValueError("content_type must not be empty")
        registration = ContentTypeRegistration(
            content_type=content_type,
            implementation_type=implementation_type,
            requires_services=requires_services,
            lifetime=lifetime,
            service_key=(
                implementation_type if service_key is None else service_key
            ),
        )
        previous = self._map.get(content_type)
        if previous is not None:
            logger.debug(
                "Content type '%s' re-registered: %s replaces %s",
                content_type,
                _name(implementation_type),
                _name(previous.implementation_type),
                extra={"content_type": content_type},
            )
        self._map[content_type] = registration
        logger.debug(
            "Registered '%s' -> %s (services=%s, lifetime=%s)",
            content_type,
            _name(implementation_type),
            requires_services,
            lifetime.value,
            extra={"content_type": content_type},
        )
        return registration

    def get(self, content_type: str) -> Optional[ContentTypeRegistration]:
        """Exact match only."""
        return self._map.get(content_type)

    def try_resolve(
        self, content_type: Optional[str]
    ) -> Optional[ContentTypeRegistration]:
        return self.try_resolve_with(content_type, _same)

    def try_resolve_with(
        self,
        content_type: Optional[str],
        build_key: Callable[[str], str],
    ) -> Optional[ContentTypeRegistration]:
        """
        Look up ``build_key(ct)`` for ``content_type`` and then for each
        of its parents, so a derived key such as a handler's
        ``<ct>+<handler class>`` falls back along the content type itself.
        """
        if not content_type:
            return None
        candidate: Optional[str] = content_type
        while candidate is not None:
            key = build_key(candidate)
            registration = self._map.get(key)
            if registration is not None:
                if candidate != content_type:
                    logger.debug(
                        "Resolved '%s' via fallback '%s'",
                        build_key(content_type),
                        key,
                        extra={"content_type": content_type},
                    )
                return registration
            candidate = parent_content_type(candidate)
        return None

    def resolve(self, content_type: str) -> ContentTypeRegistration:
        registration = self.try_resolve(content_type)
        if registration is None:
            raise UnregisteredContentTypeError(content_type)
        return registration

    def content_types(self) -> List[str]:
        return list(self._map)

    def registrations(self) -> List[ContentTypeRegistration]:
        return list(self._map.values())

    def content_types_with_suffix(self, suffix: str) -> List[str]:
        if suffix is None:
            raise ValueError("suffix must not be None")
        return [ct for ct in self._map if ct.endswith(suffix)]

    def __contains__(self, content_type: object) -> bool:
        return content_type in self._map

    def __len__(self) -> int:
        return len(self._map)

    def __iter__(self) -> Iterator[str]:
        return iter(self._map)


def _same(content_type: str) -> str:
    return content_type


def _name(target: Any) -> str:
    return getattr(target, "__qualname__", repr(target))
