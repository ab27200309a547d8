import logging

import pytest
from diwire import Container
from samples import ISomeContentInterface
from samples import SomeContentWithAbstractBaseAndPocChildCtorInitialized
from samples import SomeContentWithBase
from samples import SomeContentWithInterface
from samples import add_sample_content

from contenthandling import ContentEnvelope
from contenthandling import ContentFactory
from contenthandling import ContentHandlerDispatcher
from contenthandling import ContentHandlingConfig
from contenthandling import PayloadTypeMismatchError
from contenthandling import UnregisteredContentTypeError
from contenthandling import add_content_factory
from contenthandling import logging_middleware
from contenthandling import register_async_content_handler
from contenthandling import register_content_envelope_handler
from contenthandling import register_content_envelope_handler_class
from contenthandling import register_content_handler
from contenthandling import register_content_handler_class

VND = "application/vnd.corvus."


class RenderHandler:
    def __init__(self, content_factory: ContentFactory) -> None:
        self.content_factory = content_factory

    def handle(self, payload, *args):
        return self.content_factory.serialize(payload)


class Validator:
    def __init__(self, prefix: str) -> None:
        self.prefix = prefix

    def handle(self, payload, *args):
        return f"{self.prefix}: {payload.some_value}"


def test_handlers_per_handler_class(content_factory, dispatcher):
    register_content_handler(
        content_factory,
        SomeContentWithInterface,
        "render",
        lambda p: f"<b>{p.some_value}</b>",
    )
    register_content_handler(
        content_factory,
        SomeContentWithInterface,
        "validate",
        lambda p, strict: bool(p.some_value) or not strict,
    )
    payload = SomeContentWithInterface(some_value="x")
    ct = payload.content_type

    assert dispatcher.dispatch(payload, ct, "render") == "<b>x</b>"
    assert dispatcher.dispatch(payload, ct, "Validate", True) is True
    assert content_factory.get_all_content_types("+render") == [ct + "+render"]


def test_handler_for_general_type_serves_specific(
    content_factory, dispatcher
):
    register_content_handler(
        content_factory,
        SomeContentWithInterface,
        "render",
        lambda p: "general",
    )
    assert (
        dispatcher.dispatch(
            None, VND + "somecontentwithinterface.special", "render"
        )
        == "general"
    )


def test_unregistered_handler(content_factory, dispatcher):
    register_content_handler(
        content_factory, SomeContentWithInterface, "render", lambda p: None
    )
    with pytest.raises(UnregisteredContentTypeError) as info:
        dispatcher.dispatch(None, VND + "somecontentwithbase", "render")
    assert info.value.content_type == VND + "somecontentwithbase+render"
    with pytest.raises(UnregisteredContentTypeError):
        dispatcher.get_handler(VND + "somecontentwithinterface", "delete")
    with pytest.raises(ValueError):
        dispatcher.get_handler(VND + "somecontentwithinterface", "")


def test_handler_class_built_by_container(content_factory, dispatcher):
    register_content_handler_class(
        content_factory, SomeContentWithInterface, "render", RenderHandler
    )
    handler = dispatcher.get_handler(
        VND + "somecontentwithinterface", "render"
    )
    assert isinstance(handler, RenderHandler)
    assert handler.content_factory is content_factory

    payload = SomeContentWithInterface(some_value="x")
    out = dispatcher.dispatch(payload, payload.content_type, "render")
    assert content_factory.deserialize_json(out, ISomeContentInterface) == (
        payload
    )


def test_handler_types_keyed_by_content_type(content_factory, dispatcher):
    register_content_handler(
        content_factory, SomeContentWithInterface, "render", lambda p: "i"
    )
    register_content_handler(
        content_factory, SomeContentWithBase, "render", lambda p: "b"
    )
    base = VND + "somecontentwithbase"
    assert dispatcher.dispatch(None, base, "render") == "b"
    interface = VND + "somecontentwithinterface"
    assert dispatcher.dispatch(None, interface, "render") == "i"


def test_envelope_handler(content_factory, dispatcher):
    seen = []
    register_content_envelope_handler(
        content_factory,
        SomeContentWithInterface,
        "process",
        lambda p, extra: seen.append((p, extra)),
    )
    payload = SomeContentWithInterface(some_value="x")
    envelope = ContentEnvelope.from_payload(payload, content_factory)
    envelope.dispatch_to_handler(dispatcher, "process", 42)
    assert seen == [(payload, 42)]


def test_envelope_handler_class(content_factory, dispatcher):
    register_content_envelope_handler_class(
        content_factory,
        SomeContentWithInterface,
        "validate",
        Validator,
        handler_factory=lambda: Validator("checked"),
    )
    envelope = ContentEnvelope.from_payload(
        SomeContentWithInterface(some_value="x"), content_factory
    )
    assert envelope.dispatch_to_handler(dispatcher, "validate") == (
        "checked: x"
    )
    assert content_factory.container.resolve(
        Validator
    ) is content_factory.container.resolve(Validator)


def test_envelope_handler_unwrap_error(content_factory, dispatcher):
    ctor_init = SomeContentWithAbstractBaseAndPocChildCtorInitialized
    register_content_envelope_handler(
        content_factory, ctor_init, "process", lambda p: p
    )
    envelope = ContentEnvelope.from_payload(
        SomeContentWithInterface(some_value="x"),
        content_factory,
        VND + "somecontentwithabstractbaseandpocchildctorinit",
    )
    with pytest.raises(PayloadTypeMismatchError):
        envelope.dispatch_to_handler(dispatcher, "process")


@pytest.mark.asyncio
async def test_dispatch_async_with_middleware(
    content_factory, dispatcher, caplog
):
    caplog.set_level(logging.INFO)

    async def render(payload, suffix):
        return payload.some_value + suffix

    register_async_content_handler(
        content_factory, SomeContentWithInterface, "render", render
    )
    register_content_handler(
        content_factory, SomeContentWithInterface, "count", len
    )
    dispatcher.add_middleware(logging_middleware)
    payload = SomeContentWithInterface(some_value="x")
    ct = payload.content_type

    assert await dispatcher.dispatch_async(payload, ct, "render", "!") == "x!"
    assert await dispatcher.dispatch_async("abc", ct, "count") == 3
    assert f"→ {ct} to 'render'" in caplog.text
    assert f"✓ {ct} handled by 'render'" in caplog.text


@pytest.mark.asyncio
async def test_dispatch_to_handler_async(content_factory, dispatcher):
    async def process(envelope):
        return envelope.payload_content_type

    register_async_content_handler(
        content_factory, SomeContentWithInterface, "process", process
    )
    register_content_envelope_handler(
        content_factory, SomeContentWithBase, "process", lambda p: p
    )
    envelope = ContentEnvelope.from_payload(
        SomeContentWithInterface(some_value="x"), content_factory
    )
    # plain handlers receive the envelope itself
    result = await envelope.dispatch_to_handler_async(dispatcher, "process")
    assert result == VND + "somecontentwithinterface"
    with pytest.raises(UnregisteredContentTypeError):
        await dispatcher.dispatch_async(None, VND + "nothing", "process")


@pytest.mark.asyncio
async def test_metrics_from_config(caplog):
    caplog.set_level(logging.INFO)
    factory = add_content_factory(
        Container(),
        add_sample_content,
        config=ContentHandlingConfig(metrics_enabled=True),
    )
    register_content_handler(
        factory, SomeContentWithInterface, "render", lambda p: "ok"
    )
    dispatcher = ContentHandlerDispatcher(factory)
    ct = VND + "somecontentwithinterface"
    assert await dispatcher.dispatch_async(None, ct, "render") == "ok"
    assert f"METRICS {ct}+render took" in caplog.text


def test_handler_fallback_keeps_suffix(content_factory, dispatcher):
    register_content_handler(
        content_factory, "application/vnd.corvus.foo+json", "render", str
    )
    handler = dispatcher.get_handler(
        "application/vnd.corvus.foo.bar.baz+json", "render"
    )
    assert handler.handle(1) == "1"
    with pytest.raises(UnregisteredContentTypeError) as info:
        dispatcher.get_handler("application/vnd.corvus.foo.bar+xml", "render")
    assert info.value.content_type == (
        "application/vnd.corvus.foo.bar+xml+render"
    )


@pytest.mark.asyncio
async def test_dispatch_async_logs_handler_key(
    content_factory, dispatcher, caplog
):
    caplog.set_level(logging.DEBUG)
    register_content_handler(
        content_factory, SomeContentWithInterface, "render", lambda p: p
    )
    dispatcher.add_middleware(logging_middleware)
    ct = VND + "somecontentwithinterface"
    assert await dispatcher.dispatch_async(5, ct, "Render") == 5
    assert f"Dispatching '{ct}+render' through 1 middleware" in caplog.text
    with pytest.raises(ValueError):
        await dispatcher.dispatch_async(5, ct, "")
