import json
from typing import Awaitable
from typing import Callable

from fastapi import HTTPException
from fastapi import Request
from pydantic import ValidationError

from contenthandling.envelope import ContentEnvelope
from contenthandling.exceptions import ContentFormatError
from contenthandling.factory import ContentFactory
from contenthandling.log_config import logger


def envelope_body(
    factory: ContentFactory,
) -> Callable[[Request], Awaitable[ContentEnvelope]]:
    """
    Returns a FastAPI dependency that reads the request's JSON body into
    a ContentEnvelope bound to ``factory``.

    The body must carry its own ``contentType``; a body that is not JSON,
    or has no content type, is rejected with 422.
    """

    async def _envelope(request: Request) -> ContentEnvelope:
        body = await request.body()
        try:
            return ContentEnvelope.from_json(body, factory)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.warning("Rejected request body: not JSON")
            raise HTTPException(
                status_code=422, detail="Request body is not valid JSON"
            ) from exc
        except (ContentFormatError, ValidationError) as exc:
            logger.warning("Rejected request body: %s", exc)
            raise HTTPException(status_code=422, detail=str(exc)) from exc

    return _envelope
