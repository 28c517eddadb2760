import pytest
from pydantic import ValidationError

from models.canonical import JobKind
from models.inputs import build_input, is_valid_google_maps_url, is_valid_url


@pytest.mark.parametrize("url", [
    "https://www.google.com/maps/place/Shorebreak+Surf+School",
    "https://google.fr/maps/place/Biarritz",
    "http://maps.google.com/?cid=123",
    "https://goo.gl/maps/abc123",
])
def test_google_maps_urls_accepted(url):
    assert is_valid_google_maps_url(url)


@pytest.mark.parametrize("url", [
    "",
    "https://www.bing.com/maps",
    "https://example.com/google.com/maps",
    "google.com/maps/place/x",
])
def test_google_maps_urls_rejected(url):
    assert not is_valid_google_maps_url(url)


def test_is_valid_url():
    assert is_valid_url("https://example.com")
    assert is_valid_url("http://example.com/path?q=1")
    assert not is_valid_url("example.com")
    assert not is_valid_url("not a url")


def test_review_input_defaults_period():
    data = build_input(JobKind.REVIEWS, {"google_maps_url": " https://www.google.com/maps/place/x "})

    assert data == {"google_maps_url": "https://www.google.com/maps/place/x", "period": "12months"}


def test_review_input_rejects_unknown_period():
    with pytest.raises(ValidationError):
        build_input(JobKind.REVIEWS, {"google_maps_url": "https://goo.gl/maps/x", "period": "2weeks"})


def test_review_input_messages():
    with pytest.raises(ValidationError, match="Please enter a Google Maps URL"):
        build_input(JobKind.REVIEWS, {"google_maps_url": "   "})
    with pytest.raises(ValidationError, match="Please enter a valid Google Maps URL"):
        build_input(JobKind.REVIEWS, {"google_maps_url": "https://example.com"})


def test_seo_input():
    assert build_input(JobKind.SEO, {"website_url": "https://example.com"}) == {"website_url": "https://example.com"}

    with pytest.raises(ValidationError, match="Please enter a valid website URL"):
        build_input(JobKind.SEO, {"website_url": "example"})
    with pytest.raises(ValidationError):
        build_input("seo", {})
