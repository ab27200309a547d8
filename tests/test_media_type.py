import pytest

from contenthandling.media_type import MediaType
from contenthandling.media_type import parent_content_type
from contenthandling.media_type import split_suffix


def test_parse_with_suffix():
    mt = MediaType.parse("application/vnd.corvus.foo.bar+json")
    assert mt.type == "application"
    assert mt.subtype == "vnd.corvus.foo.bar"
    assert mt.suffix == "json"
    assert str(mt) == "application/vnd.corvus.foo.bar+json"


@pytest.mark.parametrize(
    "value",
    ["", "application", "/json", "application/", "a/b+c+d", "a/b+", "a/b/c"],
)
def test_invalid_media_types(value):
    assert MediaType.try_parse(value) is None
    if value:
        with pytest.raises(ValueError):
            MediaType.parse(value)


def test_get_parent_keeps_suffix():
    mt = MediaType.parse("application/vnd.corvus.foo.bar+json")
    assert str(mt.get_parent()) == "application/vnd.corvus.foo+json"
    assert str(mt.get_parent().get_parent()) == "application/vnd.corvus+json"
    assert mt.get_parent().get_parent().get_parent().get_parent().is_none


def test_none_media_type():
    assert MediaType.NONE.is_none
    assert str(MediaType.NONE) == ""
    assert MediaType.NONE.get_parent() is MediaType.NONE


def test_parent_content_type():
    assert split_suffix("a/b.c+json") == ("a/b.c", "+json")
    assert split_suffix("a/b.c") == ("a/b.c", "")
    assert (
        parent_content_type("application/vnd.corvus.foo.bar+json")
        == "application/vnd.corvus.foo+json"
    )
    assert parent_content_type("application/vnd.corvus.x.y") == (
        "application/vnd.corvus.x"
    )
    assert parent_content_type("application/vnd") is None
