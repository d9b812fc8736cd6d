"""Catalog client interface shared by the TMDB and AniList backends."""
import logging
from typing import Protocol

from .models import LookupFailure, SeriesMetadata

log = logging.getLogger(__name__)


class CatalogError(Exception):
    """Unrecoverable catalog problem (bad configuration, client crash)."""
    pass


class CatalogClient(Protocol):
    """What the resolver needs from a metadata backend."""

    def lookup(
        self, query: str, prefer_romaji: bool = False
    ) -> SeriesMetadata | LookupFailure:
        ...

    def lookup_by_id(self, catalog_id: int) -> SeriesMetadata | LookupFailure:
        ...


class ChainedCatalog:
    """Try several catalogs in order; the first success wins.

    Mirrors the "search TMDB, then fall back to AniList" flow.
    """

    def __init__(self, clients: list[CatalogClient]):
        if not clients:
            raise CatalogError("At least one catalog client is required")
        self.clients = clients

    def lookup(
        self, query: str, prefer_romaji: bool = False
    ) -> SeriesMetadata | LookupFailure:
        messages = []
        for client in self.clients:
            result = client.lookup(query, prefer_romaji)
            if isinstance(result, SeriesMetadata):
                return result
            log.info("%s: %s", type(client).__name__, result.message)
            messages.append(result.message)
        return LookupFailure(query, "; ".join(messages))

    def lookup_by_id(self, catalog_id: int) -> SeriesMetadata | LookupFailure:
        messages = []
        for client in self.clients:
            result = client.lookup_by_id(catalog_id)
            if isinstance(result, SeriesMetadata):
                return result
            messages.append(result.message)
        return LookupFailure(str(catalog_id), "; ".join(messages))
