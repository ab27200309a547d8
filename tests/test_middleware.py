import logging

import pytest

from contenthandling import Dispatch
from contenthandling import logging_middleware
from contenthandling import metrics_middleware
from contenthandling import register_content_handler

CT = "application/vnd.corvus.somecontentwithinterface"


@pytest.mark.asyncio
async def test_logging_middleware(caplog):
    caplog.set_level(logging.INFO)

    async def handler(dispatch):
        return dispatch.payload * 2

    dispatch = Dispatch(payload=21, content_type=CT, handler_class="render")
    assert await logging_middleware(dispatch, handler) == 42
    assert f"→ {CT} to 'render' id={dispatch.id}" in caplog.text
    assert f"✓ {CT} handled by 'render'" in caplog.text


@pytest.mark.asyncio
async def test_metrics_middleware(caplog):
    caplog.set_level(logging.INFO)

    async def handler(dispatch):
        return dispatch.args

    dispatch = Dispatch(
        payload=None, content_type=CT, handler_class="render", args=(1, 2)
    )
    assert dispatch.handler_content_type == CT + "+render"
    assert await metrics_middleware(dispatch, handler) == (1, 2)
    assert f"METRICS {CT}+render took" in caplog.text


@pytest.mark.asyncio
async def test_middleware_does_not_swallow_errors(caplog):
    caplog.set_level(logging.INFO)

    async def handler(dispatch):
        raise RuntimeError("boom")

    dispatch = Dispatch(payload=None, content_type=CT, handler_class="render")
    with pytest.raises(RuntimeError):
        await logging_middleware(dispatch, handler)
    assert "handled by" not in caplog.text


@pytest.mark.asyncio
async def test_middleware_order(dispatcher, content_factory):
    calls = []

    def recorder(name):
        async def mw(dispatch, nxt):
            calls.append(name)
            return await nxt(dispatch)

        return mw

    register_content_handler(
        content_factory, CT, "render", lambda p: calls.append("handler")
    )
    dispatcher.add_middleware(recorder("outer"))
    dispatcher.add_middleware(recorder("inner"))
    await dispatcher.dispatch_async(None, CT, "render")
    assert calls == ["outer", "inner", "handler"]
