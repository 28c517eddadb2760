"""
Result parser - turns whatever the workflows returned into one report shape

Workflow versions disagree on structure: the payload may be wrapped in a
"result" key, be a list of items or a single object, carry the score under
score/overall_score/seo_score, and deliver content as markdown sections,
a markdown string, a full HTML page or an HTML fragment under "data".
"""
import logging
import re
from typing import Any, List, Optional, Tuple

from models.canonical import JobKind, NormalizedReport

logger = logging.getLogger(__name__)

SCORE_KEYS = ("score", "overall_score", "seo_score")
BODY_RE = re.compile(r"<body[^>]*>([\s\S]*?)</body>", re.IGNORECASE)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def unwrap(results: Any) -> Any:
    """Results copied from a job row may still sit under a 'result' key"""
    if isinstance(results, dict) and results.get("result"):
        return results["result"]
    return results


def _items(results: Any) -> List[dict]:
    results = unwrap(results)
    if isinstance(results, list):
        return [item for item in results if isinstance(item, dict)]
    if isinstance(results, dict):
        return [results]
    return []


def _direct_score(item: dict) -> Optional[float]:
    for key in SCORE_KEYS:
        if _is_number(item.get(key)):
            return item[key]
    return None


def extract_score(results: Any, kind: JobKind) -> Optional[float]:
    """Headline score (0-100) of a workflow result, if one can be derived"""
    items = _items(results)

    for item in items:
        score = _direct_score(item)
        if score is not None:
            return score

    # Lists only ever carry explicit scores
    if JobKind(kind) != JobKind.REVIEWS or len(items) != 1 or isinstance(unwrap(results), list):
        return None

    data = items[0]
    sentiment = data.get("sentiment_analysis")
    if isinstance(sentiment, dict) and _is_number(sentiment.get("positive")):
        return round(sentiment["positive"])
    if _is_number(data.get("average_rating")):
        return round(data["average_rating"] / 5 * 100)
    return None


def extract_google_metrics(results: Any) -> Tuple[Optional[float], Optional[int]]:
    """Google rating and review count reported by the reviews workflow"""
    items = _items(results)
    if not items:
        return None, None

    first = items[0]
    rating = first.get("rating") if _is_number(first.get("rating")) else None
    review_count = first.get("reviewCount") if _is_number(first.get("reviewCount")) else None
    return rating, review_count


def _html_body(document: str) -> str:
    match = BODY_RE.search(document)
    return match.group(1) if match else document


def normalize(results: Any, kind: JobKind) -> NormalizedReport:
    """Build the canonical report for a workflow result"""
    report = NormalizedReport(kind=JobKind(kind))

    for item in _items(results):
        if _is_number(item.get("score")):
            report.score = item["score"]

        output = item.get("output")
        if isinstance(output, list):
            report.sections.extend(str(section) for section in output)
        elif isinstance(output, str) and output:
            stripped = output.strip()
            if stripped.startswith("<!DOCTYPE") or stripped.startswith("<"):
                report.html = _html_body(output)
            else:
                report.sections.append(output)

        data = item.get("data")
        if isinstance(data, str) and data.strip():
            report.html = data

    if report.score is None:
        report.score = extract_score(results, kind)

    report.google_rating, report.review_count = extract_google_metrics(results)
    return report
