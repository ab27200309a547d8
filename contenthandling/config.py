from enum import Enum

from pydantic import BaseModel

DISCRIMINATOR = "contentType"
PAYLOAD_KEY = "payload"


class Lifetime(str, Enum):
    """
    How long the container keeps a constructed content instance.
    """

    SINGLETON = "singleton"
    SCOPED = "scoped"
    TRANSIENT = "transient"


class ContentHandlingConfig(BaseModel):
    """
    Configuration for a ContentFactory.
    """

    default_lifetime: Lifetime = Lifetime.SINGLETON
    json_logging: bool = False
    metrics_enabled: bool = False
