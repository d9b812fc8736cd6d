"""AniList GraphQL client module."""
import logging
import time

import requests

from .models import LookupFailure, SeasonInfo, SeriesMetadata

log = logging.getLogger(__name__)


ANILIST_URL = "https://graphql.anilist.co"
DEFAULT_TIMEOUT = 10

SEARCH_QUERY = """
query ($search: String) {
    Page(page: 1, perPage: 10) {
        media(search: $search, type: ANIME, sort: POPULARITY_DESC) {
            id
            title {
                romaji
                english
                native
            }
            format
            episodes
        }
    }
}
"""


def pick_title(title: dict, prefer_romaji: bool = False) -> str | None:
    """
    Choose the display title of an AniList media entry.

    Native first (romaji first when *prefer_romaji*), English as last resort.
    """
    order = ("romaji", "native", "english") if prefer_romaji else ("native", "romaji", "english")
    for key in order:
        value = title.get(key)
        if value:
            return value
    return None


class AniListClient:
    """Client for the AniList GraphQL API.

    AniList splits seasons into separate media entries, so a lookup yields
    at most one season; when the episode count is unknown (airing shows)
    there is no season breakdown at all.
    """

    def __init__(self, session: requests.Session | None = None):
        self.session = session or requests.Session()

    def _post(self, query: str, variables: dict, retries: int = 3) -> dict | None:
        """POST a GraphQL query. Returns the ``data`` object or None on error."""
        payload = {"query": query, "variables": variables}
        headers = {"Content-Type": "application/json", "Accept": "application/json"}

        for attempt in range(retries):
            try:
                response = self.session.post(
                    ANILIST_URL, json=payload, headers=headers, timeout=DEFAULT_TIMEOUT
                )
                if response.status_code == 429:
                    retry_after = int(response.headers.get("Retry-After", 1))
                    log.debug("AniList rate limited, waiting %ss", retry_after)
                    time.sleep(retry_after)
                    continue
                response.raise_for_status()
                return response.json().get("data")
            except (requests.exceptions.RequestException, ValueError) as e:
                log.debug("AniList request error: %s (attempt %d/%d)", e, attempt + 1, retries)
                if attempt < retries - 1:
                    time.sleep(1)
                    continue
                return None
        return None

    def search_anime(self, query: str) -> list[dict]:
        """Search anime by title, most popular first."""
        data = self._post(SEARCH_QUERY, {"search": query})
        page = (data or {}).get("Page") or {}
        return page.get("media") or []

    def lookup(
        self, query: str, prefer_romaji: bool = False
    ) -> SeriesMetadata | LookupFailure:
        results = self.search_anime(query)
        if not results:
            return LookupFailure(query, f"AniList found no anime matching '{query}'")

        media = results[0]
        title = pick_title(media.get("title") or {}, prefer_romaji)
        if not title:
            return LookupFailure(query, f"AniList entry {media.get('id')} has no usable title")

        episodes = media.get("episodes")
        seasons = (SeasonInfo(1, episodes),) if episodes else ()
        log.debug("AniList match for %r: id=%s title=%r episodes=%s",
                  query, media.get("id"), title, episodes)
        return SeriesMetadata(
            canonical_title=title,
            seasons=seasons,
            catalog_id=media.get("id"),
            source="anilist",
        )

    def lookup_by_id(self, catalog_id: int) -> SeriesMetadata | LookupFailure:
        # Folder markers carry TMDB ids, which mean nothing to AniList
        return LookupFailure(str(catalog_id), "AniList cannot resolve TMDB ids")
