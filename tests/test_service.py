import httpx
import pytest

from config import SearchPolicy, Settings
from conftest import fhir_resource, mock_factory, npi_result, provider
from enrichment import EnrichmentService
from schemas import ProviderSource, SearchRequest
from service import Aggregator, ProviderSearchService
from store import InMemoryProviderStore


class FakeMedicaid:
    def __init__(self, providers):
        self.providers = providers
        self.calls = 0

    async def search(self, *args, **kwargs):
        self.calls += 1
        self.kwargs = kwargs
        return list(self.providers)


class FakeRegistry:
    def __init__(self, providers):
        self.providers = providers
        self.calls = []

    async def search(self, zip_code, city, radius, taxonomy_code):
        self.calls.append(taxonomy_code)
        return list(self.providers)


def request(**overrides):
    data = {
        "zip": "43215",
        "city": "Columbus",
        "healthPlan": "caresource",
        "providerTypeIds": ["09"],
        "radius": 10,
    }
    data.update(overrides)
    return SearchRequest(**data)


class TestAggregator:

    @pytest.mark.asyncio
    async def test_registry_not_called_when_medicaid_has_results(self):
        medicaid = FakeMedicaid([provider(name="A")])
        registry = FakeRegistry([provider(name="B", source=ProviderSource.REGISTRY)])
        result = await Aggregator(medicaid, registry).collect(request())

        assert [p.name for p in result] == ["A"]
        assert registry.calls == []

    @pytest.mark.asyncio
    async def test_registry_fallback_on_empty(self):
        registry = FakeRegistry([provider(name="B", source=ProviderSource.REGISTRY)])
        result = await Aggregator(FakeMedicaid([]), registry).collect(request())

        assert [p.name for p in result] == ["B"]
        assert registry.calls == ["207V00000X"]

    @pytest.mark.asyncio
    async def test_include_npi_appends_after_medicaid(self):
        registry = FakeRegistry([provider(name="B", source=ProviderSource.REGISTRY)])
        result = await Aggregator(FakeMedicaid([provider(name="A")]), registry).collect(
            request(includeNpi=True, specialty="Certified Nurse Midwife")
        )

        assert [p.name for p in result] == ["A", "B"]
        assert registry.calls == ["367A00000X"]

    @pytest.mark.asyncio
    async def test_registry_skipped_without_taxonomy(self):
        registry = FakeRegistry([provider(name="B")])
        result = await Aggregator(FakeMedicaid([]), registry).collect(
            request(providerTypeIds=["99"], specialty="Dermatology")
        )
        assert result == []
        assert registry.calls == []

    @pytest.mark.asyncio
    async def test_policy_controls_fallback(self):
        registry = FakeRegistry([provider(name="B")])
        no_fallback = SearchPolicy(registry_on_empty=False)
        assert await Aggregator(FakeMedicaid([]), registry, no_fallback).collect(request()) == []

        always = SearchPolicy(registry_always=True)
        result = await Aggregator(FakeMedicaid([provider(name="A")]), registry, always).collect(request())
        assert [p.name for p in result] == ["A", "B"]

    @pytest.mark.asyncio
    async def test_medicaid_receives_filters(self):
        medicaid = FakeMedicaid([provider(name="A")])
        await Aggregator(medicaid, FakeRegistry([])).collect(
            request(specialty="midwife", acceptsNewborns=True)
        )
        assert medicaid.kwargs["specialty_filter"] == "midwife"
        assert medicaid.kwargs["accepts_newborns"] is True
        assert medicaid.kwargs["telehealth"] is None


class TestProviderSearchService:

    @pytest.mark.asyncio
    async def test_end_to_end(self, seeded_store):
        def upstream(req: httpx.Request) -> httpx.Response:
            if req.url.host == "medicaid.test":
                return httpx.Response(200, json={"entry": [
                    {"resource": fhir_resource()},
                    {"resource": fhir_resource(given="Ann", family="Lee", npi=None)},
                    {"resource": fhir_resource(given="Ann", family="Lee", npi=None)},
                ]})
            return httpx.Response(200, json={"results": [
                npi_result(),
                npi_result(number="555", first="MARY", last="MOE"),
            ]})

        cfg = Settings(
            MEDICAID_BASE_URL="https://medicaid.test/fhir",
            NPI_BASE_URL="https://npi.test/api/",
        )
        service = ProviderSearchService.from_settings(cfg, store=seeded_store, client_factory=mock_factory(upstream))

        response = await service.search(request(includeNpi=True))

        assert response.count == 3
        names = [p.name for p in response.providers]
        assert names == ["Jane Doe", "Ann Lee", "MARY MOE, MD"]
        jane = response.providers[0]
        assert jane.source == ProviderSource.MEDICAID
        assert jane.rating == 4.0
        assert jane.review_count == 3
        assert all(p.name for p in response.providers)

    @pytest.mark.asyncio
    async def test_settings_reach_both_upstream_queries(self):
        calls = []

        def upstream(req: httpx.Request) -> httpx.Response:
            if req.url.host == "medicaid.test":
                return httpx.Response(200, json={"entry": []})
            return httpx.Response(200, json={"results": [npi_result()]})

        cfg = Settings(
            MEDICAID_BASE_URL="https://medicaid.test/fhir",
            NPI_BASE_URL="https://npi.test/api/",
            HOME_STATE="KY",
            NPI_RESULT_LIMIT=7,
        )
        service = ProviderSearchService.from_settings(
            cfg, store=InMemoryProviderStore(), client_factory=mock_factory(upstream, calls)
        )

        response = await service.search(request(zip="40507", city="Lexington"))

        assert response.count == 1
        assert [c.url.host for c in calls] == ["medicaid.test", "npi.test"]
        assert all(c.url.params["state"] == "KY" for c in calls)
        assert calls[1].url.params["limit"] == "7"

    @pytest.mark.asyncio
    async def test_both_sources_down(self):
        service = ProviderSearchService.from_settings(
            Settings(),
            store=InMemoryProviderStore(),
            client_factory=mock_factory(lambda req: httpx.Response(502)),
        )
        response = await service.search(request())
        assert response.count == 0
        assert response.providers == []

    @pytest.mark.asyncio
    async def test_enrichment_runs_after_dedup(self):
        class CountingEnrichment(EnrichmentService):
            seen = []

            async def enrich(self, providers):
                self.seen.extend(providers)
                return list(providers)

        medicaid = FakeMedicaid([provider(name="A", npi="1"), provider(name="B", npi="1")])
        enrichment = CountingEnrichment(InMemoryProviderStore())
        service = ProviderSearchService(Aggregator(medicaid, FakeRegistry([])), enrichment)

        response = await service.search(request())
        assert [p.name for p in enrichment.seen] == ["A"]
        assert response.count == 1
