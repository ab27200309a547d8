import pytest
from diwire import Container
from samples import add_sample_content

from contenthandling import ContentHandlerDispatcher
from contenthandling import add_content_factory


@pytest.fixture
def container():
    return Container()


@pytest.fixture
def content_factory(container):
    return add_content_factory(container, add_sample_content)


@pytest.fixture
def dispatcher(content_factory):
    return ContentHandlerDispatcher(content_factory)


@pytest.fixture
def make_json():
    def _make(content_type, **fields):
        return {"contentType": content_type, **fields}

    return _make
