import pytest

from html_images.errors import MalformedReference
from html_images.references import parse_reference


def test_splits_path_and_params():
    ref = parse_reference("img/photo.jpg?width=100&format=webp", (4, 39))
    assert ref.path == "img/photo.jpg"
    assert ref.params == {"width": "100", "format": "webp"}
    assert ref.span == (4, 39)


def test_strips_stray_quotes():
    ref = parse_reference('img/photo.jpg?width=100"')
    assert ref.stripped == "img/photo.jpg?width=100"
    assert ref.params == {"width": "100"}


def test_percent_decodes_path():
    ref = parse_reference("img/my%20photo.jpg?height=20")
    assert ref.path == "img/my photo.jpg"


def test_leading_slash_is_removed():
    assert parse_reference("/img/photo.jpg?width=1").path == "img/photo.jpg"


def test_first_value_wins_and_blanks_are_dropped():
    ref = parse_reference("img/photo.jpg?width=10&width=20&format=")
    assert ref.params == {"width": "10"}


def test_background_hash_may_be_escaped():
    ref = parse_reference("img/logo.png?background=%23abc")
    assert ref.params == {"background": "#abc"}


def test_literal_hash_stays_in_parameter_value():
    ref = parse_reference("img/logo.png?background=#fff&width=20")
    assert ref.path == "img/logo.png"
    assert ref.params == {"background": "#fff", "width": "20"}


def test_missing_path_is_malformed():
    with pytest.raises(MalformedReference):
        parse_reference('"?width=100')
