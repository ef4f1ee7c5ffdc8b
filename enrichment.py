"""
Community-data enrichment.

Each deduplicated provider is matched against the local store (NPI first,
then exact name plus first-location city/zip) and, on a match, picks up the
locally maintained rating, review count, approval flags and identity tags.
A failure for one provider never affects the others.
"""

import asyncio
from typing import List, Optional, Sequence

import structlog

from schemas import Provider, StoredProvider
from store import ProviderStore, StoreError

logger = structlog.get_logger(__name__)


class EnrichmentService:
    def __init__(
        self,
        store: ProviderStore,
        name_lookup_limit: int = 10,
        review_lookup_limit: int = 50,
        concurrency: int = 8,
    ):
        self.store = store
        self.name_lookup_limit = name_lookup_limit
        self.review_lookup_limit = review_lookup_limit
        self.concurrency = concurrency

    def find_match(self, provider: Provider) -> Optional[StoredProvider]:
        if provider.npi:
            doc = self.store.find_by_npi(provider.npi)
            if doc:
                return StoredProvider.model_validate(doc)

        loc = provider.first_location
        if loc is None:
            return None

        for doc in self.store.find_by_name(provider.name, self.name_lookup_limit):
            candidate = StoredProvider.model_validate(doc)
            if any(l.city == loc.city and l.zip == loc.zip for l in candidate.locations):
                return candidate
        return None

    def enrich_one(self, provider: Provider) -> Provider:
        match = self.find_match(provider)
        if match is None:
            return provider

        rating, review_count = match.rating, match.review_count
        reviews = self.store.reviews_for(match.id, self.review_lookup_limit)
        if reviews:
            total = sum(float(r.get("rating") or 0) for r in reviews)
            rating = total / len(reviews)
            review_count = len(reviews)

        return provider.model_copy(update={
            "id": match.id,
            "rating": rating,
            "review_count": review_count,
            "approved_flag": match.mama_approved,
            "approved_count": match.mama_approved_count,
            "identity_tags": list(match.identity_tags),
            "accepts_pregnant_women": match.accepts_pregnant_women,
            "accepts_newborns": match.accepts_newborns,
            "telehealth": match.telehealth,
        })

    async def _enrich_guarded(self, provider: Provider, semaphore: asyncio.Semaphore) -> Provider:
        async with semaphore:
            try:
                return await asyncio.to_thread(self.enrich_one, provider)
            except StoreError as e:
                logger.warning(
                    "Store lookup failed, returning provider unenriched",
                    provider=provider.name,
                    npi=provider.npi,
                    error=str(e),
                )
                return provider
            except Exception:
                # Any bad local document stays confined to its own provider.
                logger.exception(
                    "Enrichment failed, returning provider unenriched",
                    provider=provider.name,
                    npi=provider.npi,
                )
                return provider

    async def enrich(self, providers: Sequence[Provider]) -> List[Provider]:
        semaphore = asyncio.Semaphore(self.concurrency)
        enriched = await asyncio.gather(
            *(self._enrich_guarded(p, semaphore) for p in providers)
        )
        matched = sum(1 for p in enriched if p.id)
        logger.info("Enriched providers", total=len(enriched), matched=matched)
        return list(enriched)
