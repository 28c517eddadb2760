"""
Workflow input payloads with the same validation the dashboard forms apply
"""
import re
from typing import Any, Dict, Literal
from urllib.parse import urlparse
from pydantic import BaseModel, field_validator

from .canonical import JobKind

GOOGLE_MAPS_PATTERNS = [
    re.compile(r"^https?://(www\.)?google\.[a-z.]+/maps", re.IGNORECASE),
    re.compile(r"^https?://maps\.google\.[a-z.]+", re.IGNORECASE),
    re.compile(r"^https?://goo\.gl/maps", re.IGNORECASE),
]


def is_valid_google_maps_url(url: str) -> bool:
    if not url:
        return False
    return any(pattern.match(url) for pattern in GOOGLE_MAPS_PATTERNS)


def is_valid_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return bool(parsed.scheme and parsed.netloc)


class ReviewAnalysisInput(BaseModel):
    google_maps_url: str
    period: Literal["3months", "6months", "12months", "all"] = "12months"

    @field_validator("google_maps_url")
    @classmethod
    def check_maps_url(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Please enter a Google Maps URL")
        if not is_valid_google_maps_url(value):
            raise ValueError("Please enter a valid Google Maps URL")
        return value


class SEOAnalysisInput(BaseModel):
    website_url: str

    @field_validator("website_url")
    @classmethod
    def check_website_url(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Please enter a website URL")
        if not is_valid_url(value):
            raise ValueError("Please enter a valid website URL")
        return value


INPUT_MODELS = {
    JobKind.REVIEWS: ReviewAnalysisInput,
    JobKind.SEO: SEOAnalysisInput,
}


def build_input(kind: JobKind, data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate raw form data for a workflow; raises pydantic.ValidationError"""
    model = INPUT_MODELS[JobKind(kind)]
    return model.model_validate(data).model_dump()
