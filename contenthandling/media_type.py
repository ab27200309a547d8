from typing import ClassVar
from typing import Optional
from typing import Tuple

from pydantic import BaseModel
from pydantic import ConfigDict


def split_suffix(content_type: str) -> Tuple[str, str]:
    """Split ``a/b.c+json`` into ``("a/b.c", "+json")``."""
    index = content_type.rfind("+")
    if index < 0:
        return content_type, ""
    return content_type[:index], content_type[index:]


def parent_content_type(content_type: str) -> Optional[str]:
    """
    The next more general content type, or None when there is none.

    The last dot segment is dropped and any ``+suffix`` is kept, so
    ``application/vnd.corvus.foo.bar+json`` becomes
    ``application/vnd.corvus.foo+json``.
    """
    base, suffix = split_suffix(content_type)
    index = base.rfind(".")
    if index <= 0:
        return None
    return base[:index] + suffix


class MediaType(BaseModel):
    """
    A parsed ``type/subtype[+suffix]`` media type.
    """

    model_config = ConfigDict(frozen=True)

    NONE: ClassVar["MediaType"]

    type: str = ""
    subtype: str = ""
    suffix: Optional[str] = None

    @classmethod
    def parse(cls, value: str) -> "MediaType":
        media_type = cls.try_parse(value)
        if media_type is None:
            raise ValueError(f"'{value}' is not a valid media type")
        return media_type

    @classmethod
    def try_parse(cls, value: Optional[str]) -> Optional["MediaType"]:
        if not value:
            return None
        type_, slash, rest = value.partition("/")
        if not slash or not type_ or not rest or "/" in rest:
            return None
        if rest.count("+") > 1:
            return None
        subtype, plus, suffix = rest.partition("+")
        if not subtype or (plus and not suffix):
            return None
        return cls(type=type_, subtype=subtype, suffix=suffix or None)

    @property
    def is_none(self) -> bool:
        return not self.type

    def get_parent(self) -> "MediaType":
        """Drop the last dot segment of the subtype; NONE at the top."""
        if self.is_none:
            return self
        index = self.subtype.rfind(".")
        if index <= 0:
            return MediaType.NONE
        return MediaType(
            type=self.type, subtype=self.subtype[:index], suffix=self.suffix
        )

    def __str__(self) -> str:
        if self.is_none:
            return ""
        text = f"{self.type}/{self.subtype}"
        if self.suffix:
            text = f"{text}+{self.suffix}"
        return text


MediaType.NONE = MediaType()
