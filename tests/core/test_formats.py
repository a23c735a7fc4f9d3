import pytest

from relay_bot.core import formats
from relay_bot.core.formats import guess_image_mime, is_supported_format, normalize_mime, resolve_category
from relay_bot.core.types import MediaCategory


def test_normalize_mime_strips_parameters_and_case():
    assert normalize_mime(" Audio/OGG; codecs=opus ") == "audio/ogg"


@pytest.mark.parametrize(
    "mime, category, expected",
    [
        ("audio/ogg; codecs=opus", "audio", True),
        ("image/svg+xml", "image", True),
        ("application/zip", "document", False),
        ("application/pdf", "document", True),
        ("video/quicktime", "video", True),
        ("image/jpeg", "video", False),
    ],
)
def test_is_supported_format(mime, category, expected):
    assert is_supported_format(mime, category) is expected


def test_unknown_category_is_unsupported_not_an_error():
    assert is_supported_format("image/png", "sticker") is False


@pytest.mark.parametrize(
    "mime, expected",
    [
        ("audio/mpeg", MediaCategory.AUDIO),
        ("image/png", MediaCategory.IMAGE),
        ("video/mp4", MediaCategory.VIDEO),
        ("application/pdf", MediaCategory.DOCUMENT),
        ("text/csv; charset=utf-8", MediaCategory.DOCUMENT),
        ("application/zip", None),
        ("audio/flac", None),
    ],
)
def test_resolve_category(mime, expected):
    assert resolve_category(mime) == expected


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://cdn.example/cat.JPG", "image/jpeg"),
        ("https://cdn.example/cat.jpeg?size=large", "image/jpeg"),
        ("https://cdn.example/anim.gif", "image/gif"),
        ("https://cdn.example/logo.svg", "image/svg+xml"),
        ("https://cdn.example/render", "image/png"),
    ],
)
def test_guess_image_mime(url, expected):
    assert guess_image_mime(url) == expected


def test_resolve_category_consults_the_validator(monkeypatch):
    checked = []

    def _reject(mime, category):
        checked.append(category)
        return False

    monkeypatch.setattr(formats, "is_supported_format", _reject)

    assert resolve_category("image/png") is None
    assert checked[0] == "image"
    assert set(checked) == set(formats.SUPPORTED_FORMATS)
