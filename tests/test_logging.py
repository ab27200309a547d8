import json
import logging

from diwire import Container
from samples import ISomeContentInterface
from samples import SomeContentWithInterface

from contenthandling import ContentHandlingConfig
from contenthandling import add_content_factory
from contenthandling.log_config import ContentTypeFilter
from contenthandling.log_config import JSONFormatter
from contenthandling.log_config import configure_logging
from contenthandling.log_config import console_handler
from contenthandling.log_config import logger


def test_json_formatter():
    record = logging.LogRecord(
        "contenthandling", logging.INFO, __file__, 1, "hello %s", ("x",), None
    )
    out = json.loads(JSONFormatter().format(record))
    assert out["level"] == "INFO"
    assert out["name"] == "contenthandling"
    assert out["message"] == "hello x"


def test_config_selects_formatter():
    try:
        add_content_factory(
            Container(), config=ContentHandlingConfig(json_logging=True)
        )
        assert isinstance(console_handler.formatter, JSONFormatter)
    finally:
        configure_logging(False)
    assert not isinstance(console_handler.formatter, JSONFormatter)


def test_registration_logging(content_factory, caplog):
    caplog.set_level(logging.DEBUG, logger=logger.name)
    content_factory.register_content_for_type(
        "application/vnd.corvus.somecontentwithinterface.v2",
        SomeContentWithInterface,
    )
    assert (
        "Registered 'application/vnd.corvus.somecontentwithinterface.v2'"
        in caplog.text
    )
    content_factory.get_content(
        "application/vnd.corvus.somecontentwithbase.special"
    )
    assert (
        "Resolved 'application/vnd.corvus.somecontentwithbase.special' via "
        "fallback 'application/vnd.corvus.somecontentwithbase'"
    ) in caplog.text


def test_json_formatter_carries_content_type():
    record = logging.LogRecord(
        "contenthandling", logging.DEBUG, __file__, 1, "read", (), None
    )
    record.content_type = "application/vnd.corvus.somecontentwithbase"
    out = json.loads(JSONFormatter().format(record))
    assert out["contentType"] == "application/vnd.corvus.somecontentwithbase"


def test_records_without_content_type_get_placeholder():
    record = logging.LogRecord(
        "contenthandling", logging.DEBUG, __file__, 1, "plain", (), None
    )
    assert ContentTypeFilter().filter(record)
    assert record.content_type == "-"
    assert "contentType" not in json.loads(JSONFormatter().format(record))


def test_read_records_name_their_content_type(content_factory, caplog):
    caplog.set_level(logging.DEBUG, logger=logger.name)
    content_factory.deserialize(
        {"contentType": "application/vnd.corvus.somecontentwithinterface"},
        ISomeContentInterface,
    )
    reads = [r for r in caplog.records if r.getMessage().startswith("Read")]
    assert reads
    assert reads[0].content_type == (
        "application/vnd.corvus.somecontentwithinterface"
    )
