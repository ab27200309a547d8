import time
from typing import Any

from contenthandling.interfaces import Dispatch
from contenthandling.interfaces import Next
from contenthandling.log_config import logger


async def logging_middleware(dispatch: Dispatch, handler: Next) -> Any:
    """Logs before and after each dispatch."""
    logger.info(
        "→ %s to '%s' id=%s",
        dispatch.content_type,
        dispatch.handler_class,
        dispatch.id,
        extra={"content_type": dispatch.content_type},
    )
    out = await handler(dispatch)
    logger.info(
        "✓ %s handled by '%s'",
        dispatch.content_type,
        dispatch.handler_class,
        extra={"content_type": dispatch.content_type},
    )
    return out


async def metrics_middleware(dispatch: Dispatch, handler: Next) -> Any:
    """Measures and logs the time taken by each dispatch."""
    start = time.time()
    out = await handler(dispatch)
    duration = time.time() - start
    logger.info(
        "METRICS %s+%s took %.3fs",
        dispatch.content_type,
        dispatch.handler_class,
        duration,
        extra={"content_type": dispatch.content_type},
    )
    return out
