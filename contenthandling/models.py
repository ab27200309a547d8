from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import computed_field
from pydantic.alias_generators import to_camel

from contenthandling.config import DISCRIMINATOR
from contenthandling.content_type import try_get_content_type

# camelCase on the wire, snake_case in Python; both accepted on input
JSON_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class JsonModel(BaseModel):
    """
    Plain JSON data with camelCase field names.
    """

    model_config = JSON_CONFIG


class ContentModel(JsonModel):
    """
    JSON data that carries its declared content type as ``contentType``.
    """

    @computed_field(alias=DISCRIMINATOR)  # type: ignore[prop-decorator]
    @property
    def content_type(self) -> Optional[str]:
        return try_get_content_type(type(self))
