"""TMDB API client module."""
import logging
import re
import threading
import time
from datetime import datetime, timezone
from difflib import SequenceMatcher
from email.utils import parsedate_to_datetime
from typing import Any

import requests

from .catalog import CatalogError
from .config import DEFAULT_LANGUAGE, load_api_key
from .models import LookupFailure, SeasonInfo, SeriesMetadata

log = logging.getLogger(__name__)


TMDB_BASE_URL = "https://api.themoviedb.org/3"
DEFAULT_TIMEOUT = 10
RATE_LIMIT_DELAY = 0.25  # 250ms between requests to avoid rate limiting
MAX_RETRY_AFTER = 60  # cap for server-requested waits


def retry_after_seconds(value: str | None, default: float = 1) -> float:
    """Seconds to wait from a Retry-After header.

    The header holds either delta-seconds or an HTTP-date; anything else
    falls back to *default*.
    """
    if value is None:
        return default
    value = value.strip()
    if value.isdigit():
        return min(float(value), MAX_RETRY_AFTER)
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        log.debug("Unparseable Retry-After header: %r", value)
        return default
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    delay = (when - datetime.now(timezone.utc)).total_seconds()
    return min(max(delay, 0.0), MAX_RETRY_AFTER)


def normalize_for_comparison(text: str) -> str:
    """Normalize a string for comparison."""
    text = text.lower()
    text = re.sub(r'[^\w\s]', '', text)
    text = re.sub(r'\s+', ' ', text).strip()
    return text


def similarity_score(s1: str, s2: str) -> float:
    """Calculate similarity between two strings."""
    s1_norm = normalize_for_comparison(s1)
    s2_norm = normalize_for_comparison(s2)
    return SequenceMatcher(None, s1_norm, s2_norm).ratio()


class TMDBError(CatalogError):
    """Exception raised for TMDB configuration errors."""
    pass


class TMDBClient:
    """Client for the TMDB TV API."""

    def __init__(
        self,
        api_key: str | None = None,
        language: str | None = None,
        session: requests.Session | None = None
    ):
        """
        Initialize TMDB client.

        Args:
            api_key: TMDB API key. If not provided, attempts to load from env/.env.
            language: TMDB API language tag (e.g. "zh-CN"). Falls back to
                      DEFAULT_LANGUAGE when *None*.
            session: Optional requests session (shared connection pool).

        Raises:
            TMDBError: If API key is not found
        """
        self.api_key = api_key or load_api_key()
        if not self.api_key:
            raise TMDBError(
                "TMDB API key not found.\n"
                "Set it using one of these methods:\n"
                "  1. Environment variable: export TMDB_API_KEY=your_key\n"
                "  2. Create a .env file with: TMDB_API_KEY=your_key\n"
                "Get your free API key at: https://www.themoviedb.org/settings/api"
            )
        self.language = language or DEFAULT_LANGUAGE
        self.session = session or requests.Session()
        self._rate_lock = threading.Lock()
        self._last_request_time = 0.0
        log.debug("Using TMDB language: %s", self.language)

    def _rate_limit(self) -> None:
        """Apply rate limiting between requests."""
        with self._rate_lock:
            elapsed = time.time() - self._last_request_time
            if elapsed < RATE_LIMIT_DELAY:
                time.sleep(RATE_LIMIT_DELAY - elapsed)
            self._last_request_time = time.time()

    def _request(
        self,
        endpoint: str,
        params: dict | None = None,
        retries: int = 3
    ) -> dict | None:
        """
        Make a request to the TMDB API.

        Args:
            endpoint: API endpoint (e.g., '/search/tv')
            params: Query parameters
            retries: Number of retries on failure

        Returns:
            JSON response or None on error
        """
        self._rate_limit()

        url = f"{TMDB_BASE_URL}{endpoint}"
        all_params = {
            "api_key": self.api_key,
            "language": self.language,
            **(params or {})
        }

        # Log the request (hide API key)
        log_params = {k: v for k, v in all_params.items() if k != "api_key"}
        log.debug("GET %s params=%s", endpoint, log_params)

        for attempt in range(retries):
            try:
                response = self.session.get(url, params=all_params, timeout=DEFAULT_TIMEOUT)

                log.debug("Response status: %s", response.status_code)

                if response.status_code == 429:  # Rate limited
                    retry_after = retry_after_seconds(response.headers.get("Retry-After"))
                    log.debug("Rate limited, waiting %ss", retry_after)
                    time.sleep(retry_after)
                    continue

                if response.status_code == 404:
                    return None

                response.raise_for_status()
                return response.json()

            except requests.exceptions.Timeout:
                log.debug("Timeout (attempt %d/%d)", attempt + 1, retries)
                if attempt < retries - 1:
                    time.sleep(1)
                    continue
                return None
            except requests.exceptions.RequestException as e:
                log.debug("Request error: %s (attempt %d/%d)", e, attempt + 1, retries)
                if attempt < retries - 1:
                    time.sleep(1)
                    continue
                return None

        return None

    def _score_results(
        self,
        results: list[dict],
        title: str
    ) -> list[tuple[float, dict]]:
        """Score and sort series results, best first."""
        title_norm = normalize_for_comparison(title)

        scored = []
        for result in results:
            result_title = result.get("name", "")
            original_title = result.get("original_name", "")

            title_sim = max(
                similarity_score(title, result_title),
                similarity_score(title, original_title)
            )

            exact_match = title_norm in (
                normalize_for_comparison(result_title),
                normalize_for_comparison(original_title),
            )
            exact_bonus = 0.3 if exact_match else 0.0

            # Popularity as tiebreaker
            popularity = result.get("popularity", 0) or 0
            pop_bonus = min(popularity / 1000, 1.0) * 0.05

            scored.append((title_sim + exact_bonus + pop_bonus, result))

        scored.sort(key=lambda x: x[0], reverse=True)
        return scored

    def search_series(self, title: str) -> dict | None:
        """
        Search for a TV series on TMDB.

        Args:
            title: Series title to search for

        Returns:
            Best matching raw result, or None
        """
        data = self._request("/search/tv", {"query": title})
        if not data or not data.get("results"):
            return None

        scored = self._score_results(data["results"], title)
        best = scored[0][1]
        log.debug("TMDB best match for %r: id=%s name=%r", title, best.get("id"), best.get("name"))
        return best

    def get_series_details(self, series_id: int) -> dict | None:
        """Fetch ``/tv/{id}``, which carries the season list."""
        return self._request(f"/tv/{series_id}")

    @staticmethod
    def _to_metadata(details: dict[str, Any]) -> SeriesMetadata:
        """Build SeriesMetadata, dropping season 0 and empty seasons."""
        seasons = sorted(
            (
                SeasonInfo(s["season_number"], s["episode_count"])
                for s in details.get("seasons") or []
                if s.get("season_number", 0) > 0 and (s.get("episode_count") or 0) > 0
            ),
            key=lambda s: s.season_number,
        )
        return SeriesMetadata(
            canonical_title=details.get("name") or details.get("original_name", ""),
            seasons=tuple(seasons),
            catalog_id=details.get("id"),
            source="tmdb",
        )

    def lookup_by_id(self, catalog_id: int) -> SeriesMetadata | LookupFailure:
        """Fetch series metadata directly by TMDB id."""
        details = self.get_series_details(catalog_id)
        if not details:
            return LookupFailure(str(catalog_id), f"TMDB has no series with id {catalog_id}")
        return self._to_metadata(details)

    def lookup(
        self, query: str, prefer_romaji: bool = False
    ) -> SeriesMetadata | LookupFailure:
        """
        Search TMDB and fetch season data for the best match.

        TMDB has no romaji titles; *prefer_romaji* is accepted for interface
        compatibility and ignored.
        """
        best = self.search_series(query)
        if not best:
            return LookupFailure(query, f"TMDB found no series matching '{query}'")
        return self.lookup_by_id(best["id"])
