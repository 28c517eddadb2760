"""
Google metrics service
Tracks each business's Google rating and review count over time

Points come from two places: review analyses (the workflow reports the
listing's rating) and a periodic scrape of every user's Google Maps page.
"""
import asyncio
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import httpx

from config import get_settings

logger = logging.getLogger(__name__)

TABLE = "google_metrics_history"
HISTORY_LIMIT = 26  # ~6 months of weekly points

SCRAPE_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept-Language": "fr-FR,fr;q=0.9,en-US;q=0.8,en;q=0.7",
}

# Tried in order, first match wins
RATING_PATTERNS = [
    re.compile(r"(\d[.,]\d)\s*étoiles", re.IGNORECASE),
    re.compile(r"(\d[.,]\d)\s*stars", re.IGNORECASE),
    re.compile(r'"ratingValue":\s*"?(\d[.,]\d)"?', re.IGNORECASE),
    re.compile(r"(\d[.,]\d)</span>\s*<span[^>]*>étoiles", re.IGNORECASE),
    re.compile(r'aria-label="(\d[.,]\d)\s*(étoiles|stars)', re.IGNORECASE),
]

REVIEW_PATTERNS = [
    re.compile(r"(\d[\d\s]*)\s*avis", re.IGNORECASE),
    re.compile(r"(\d[\d\s]*)\s*reviews", re.IGNORECASE),
    re.compile(r'"reviewCount":\s*"?(\d+)"?', re.IGNORECASE),
    re.compile(r"\((\d[\d\s]*)\)"),
]


def parse_metrics(html: str) -> Tuple[Optional[float], Optional[int]]:
    """Extract rating and review count from a Google Maps page"""
    rating = None
    for pattern in RATING_PATTERNS:
        match = pattern.search(html)
        if match:
            rating = float(match.group(1).replace(",", "."))
            break

    review_count = None
    for pattern in REVIEW_PATTERNS:
        match = pattern.search(html)
        if match:
            # "1 234" -> 1234
            review_count = int(re.sub(r"\s", "", match.group(1)))
            break

    return rating, review_count


async def scrape_google_maps(url: str, client: Optional[httpx.AsyncClient] = None) -> Tuple[Optional[float], Optional[int]]:
    """Fetch a listing and extract its metrics; (None, None) on any failure"""
    try:
        if client is None:
            async with httpx.AsyncClient(follow_redirects=True, timeout=30.0) as own_client:
                response = await own_client.get(url, headers=SCRAPE_HEADERS)
        else:
            response = await client.get(url, headers=SCRAPE_HEADERS)
    except httpx.HTTPError as e:
        logger.error(f"Error scraping Google Maps {url}: {e}")
        return None, None

    if not response.is_success:
        logger.error(f"Failed to fetch Google Maps: {response.status_code}")
        return None, None

    rating, review_count = parse_metrics(response.text)
    logger.info(f"Scraped {url}: rating={rating}, review_count={review_count}")
    return rating, review_count


class MetricsService:
    """Read and write google_metrics_history rows"""

    def __init__(self, client):
        self.client = client

    def record(self, user_id: str, rating: Optional[float], review_count: Optional[int]) -> Optional[Dict[str, Any]]:
        """Insert a point; nothing is written when both values are unknown"""
        if rating is None and review_count is None:
            return None

        result = self.client.table(TABLE).insert({
            "user_id": user_id,
            "google_rating": rating,
            "review_count": review_count,
            "recorded_at": datetime.now(timezone.utc).isoformat(),
        }).execute()
        logger.info(f"Google metrics saved for {user_id}: rating={rating}, review_count={review_count}")
        return result.data[0] if result.data else None

    def history(self, user_id: str, limit: int = HISTORY_LIMIT) -> List[Dict[str, Any]]:
        result = (
            self.client.table(TABLE)
            .select("*")
            .eq("user_id", user_id)
            .order("recorded_at", desc=True)
            .limit(limit)
            .execute()
        )
        return result.data or []

    async def refresh_all(self, http_client: Optional[httpx.AsyncClient] = None, delay: Optional[float] = None) -> List[Dict[str, Any]]:
        """Scrape every user's listing and store a point per user"""
        if delay is None:
            delay = get_settings().metrics_scrape_delay

        users = (
            self.client.table("users")
            .select("id, google_maps_url")
            .not_.is_("google_maps_url", "null")
            .neq("google_maps_url", "")
            .execute()
        ).data or []

        logger.info(f"Found {len(users)} users with Google Maps URL")
        results = []

        for index, user in enumerate(users):
            user_id = user["id"]
            try:
                rating, review_count = await scrape_google_maps(user["google_maps_url"], http_client)
                if rating is None and review_count is None:
                    results.append({"user_id": user_id, "success": False, "error": "Could not extract metrics from page"})
                else:
                    self.record(user_id, rating, review_count)
                    results.append({"user_id": user_id, "success": True, "rating": rating, "review_count": review_count})
            except Exception as e:
                logger.error(f"Error processing user {user_id}: {e}")
                results.append({"user_id": user_id, "success": False, "error": str(e)})

            if delay and index < len(users) - 1:
                await asyncio.sleep(delay)

        return results
