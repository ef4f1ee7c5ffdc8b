from __future__ import annotations

from typing import List, Optional

import structlog

from config import SearchPolicy, Settings
from dedup import deduplicate
from enrichment import EnrichmentService
from medicaid import MedicaidAdapter
from npi import RegistryAdapter
from schemas import Provider, SearchRequest, SearchResponse
from specialities import resolve_taxonomy
from store import ProviderStore, build_store
from upstream import ClientFactory

logger = structlog.get_logger(__name__)

# --------------------
# Aggregation
# --------------------


class Aggregator:
    """
    Runs the directory adapters in order and concatenates their output.

    Medicaid is always queried first; the registry is consulted when the
    caller asks for it, when the policy forces it, or when Medicaid came back
    empty. Medicaid records come first so they win deduplication.
    """

    def __init__(
        self,
        medicaid: MedicaidAdapter,
        registry: RegistryAdapter,
        policy: Optional[SearchPolicy] = None,
    ):
        self.medicaid = medicaid
        self.registry = registry
        self.policy = policy or SearchPolicy()

    def wants_registry(self, req: SearchRequest, medicaid_count: int) -> bool:
        if req.include_npi or self.policy.registry_always:
            return True
        return self.policy.registry_on_empty and medicaid_count == 0

    async def collect(self, req: SearchRequest) -> List[Provider]:
        providers = await self.medicaid.search(
            req.zip,
            req.city,
            req.health_plan,
            req.provider_type_ids,
            req.radius,
            accepts_pregnant_women=req.accepts_pregnant_women,
            accepts_newborns=req.accepts_newborns,
            telehealth=req.telehealth,
            specialty_filter=req.specialty,
        )
        medicaid_count = len(providers)

        if self.wants_registry(req, medicaid_count):
            taxonomy_code = resolve_taxonomy(req.specialty, req.provider_type_ids)
            if taxonomy_code is None:
                logger.info(
                    "Cannot infer taxonomy code, skipping NPI search",
                    specialty=req.specialty,
                    provider_type_ids=req.provider_type_ids,
                )
            else:
                providers = providers + await self.registry.search(
                    req.zip, req.city, req.radius, taxonomy_code
                )

        logger.info(
            "Collected providers",
            medicaid=medicaid_count,
            registry=len(providers) - medicaid_count,
        )
        return providers


# --------------------
# Pipeline
# --------------------


class ProviderSearchService:
    def __init__(self, aggregator: Aggregator, enrichment: EnrichmentService):
        self.aggregator = aggregator
        self.enrichment = enrichment

    @classmethod
    def from_settings(
        cls,
        s: Settings,
        store: Optional[ProviderStore] = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> "ProviderSearchService":
        aggregator = Aggregator(
            MedicaidAdapter(s, client_factory),
            RegistryAdapter(s, client_factory),
            SearchPolicy.from_settings(s),
        )
        enrichment = EnrichmentService(
            store if store is not None else build_store(s),
            name_lookup_limit=s.NAME_LOOKUP_LIMIT,
            review_lookup_limit=s.REVIEW_LOOKUP_LIMIT,
            concurrency=s.ENRICHMENT_CONCURRENCY,
        )
        return cls(aggregator, enrichment)

    async def search(self, req: SearchRequest) -> SearchResponse:
        raw = await self.aggregator.collect(req)
        unique = deduplicate(raw)
        logger.info("Deduplicated providers", before=len(raw), after=len(unique))
        providers = await self.enrichment.enrich(unique)
        return SearchResponse(providers=providers, count=len(providers))
