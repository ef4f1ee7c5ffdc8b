"""
NPI registry adapter.

Queries the federal NPI registry for one taxonomy code in the home state and
normalizes each `results[]` item into a Provider.
"""

from typing import Any, Dict, List, Optional

import httpx
import structlog

from config import Settings, get_settings
from schemas import Location, ParseOutcome, Provider, ProviderSource
from upstream import ClientFactory, as_dict, as_list, client_factory_for, get_json, text

logger = structlog.get_logger(__name__)


def build_params(
    taxonomy_code: str,
    zip_code: Optional[str],
    city: Optional[str],
    cfg: Optional[Settings] = None,
) -> Dict[str, str]:
    cfg = cfg or get_settings()
    params = {
        "version": cfg.NPI_API_VERSION,
        "state": cfg.HOME_STATE,
        "taxonomy_code": taxonomy_code,
        "limit": str(cfg.NPI_RESULT_LIMIT),
    }
    if zip_code:
        params["postal_code"] = zip_code
    if city:
        params["city"] = city
    return params


def _name_from_basic(basic: Dict[str, Any]) -> Optional[str]:
    org = text(basic.get("organization_name"))
    if org:
        return org
    parts = [text(basic.get(k)) for k in ("first_name", "middle_name", "last_name")]
    name = " ".join(p for p in parts if p)
    credential = text(basic.get("credential"))
    if name and credential:
        name = f"{name}, {credential}"
    return name or None


def _locations(addresses: Any) -> List[Location]:
    locations = []
    for addr in as_list(addresses):
        if not isinstance(addr, dict):
            continue
        line1 = text(addr.get("address_1"))
        city = text(addr.get("city"))
        if not line1 and not city:
            continue
        locations.append(Location(
            address=line1 or "",
            address2=text(addr.get("address_2")),
            city=city or "",
            state=text(addr.get("state")) or "",
            zip=text(addr.get("postal_code")) or "",
            phone=text(addr.get("telephone_number")),
        ))
    return locations


def parse_result(entry: Any) -> ParseOutcome:
    if not isinstance(entry, dict):
        return ParseOutcome.skip("result is not an object")
    basic = entry.get("basic")
    if not isinstance(basic, dict) or not basic:
        return ParseOutcome.skip("no basic block")

    name = _name_from_basic(basic)
    if not name:
        return ParseOutcome.skip("no derivable name")

    specialties: List[str] = []
    provider_types: List[str] = []
    for tax in as_list(entry.get("taxonomies")):
        tax = as_dict(tax)
        desc, code = text(tax.get("desc")), text(tax.get("code"))
        if desc:
            specialties.append(desc)
        if code:
            provider_types.append(code)

    locations = _locations(entry.get("addresses"))
    return ParseOutcome(provider=Provider(
        name=name,
        npi=text(entry.get("number")),
        specialty=specialties[0] if specialties else None,
        specialties=specialties,
        provider_types=provider_types,
        locations=locations,
        phone=locations[0].phone if locations else None,
        source=ProviderSource.REGISTRY,
    ))


def parse_results(raw: Any) -> List[Provider]:
    results = as_dict(raw).get("results")
    if not isinstance(results, list):
        logger.info("NPI response has no results")
        return []

    providers: List[Provider] = []
    for idx, entry in enumerate(results):
        try:
            outcome = parse_result(entry)
        except ValueError as e:
            outcome = ParseOutcome.skip(f"invalid result: {e}")
        if outcome.ok:
            providers.append(outcome.provider)
        else:
            logger.warning("Skipping NPI result", index=idx, reason=outcome.reason)

    logger.info("Parsed NPI results", results=len(results), kept=len(providers))
    return providers


class RegistryAdapter:
    """Searches the NPI registry. Never raises for upstream failures."""

    source = ProviderSource.REGISTRY

    def __init__(self, cfg: Optional[Settings] = None, client_factory: Optional[ClientFactory] = None):
        self.cfg = cfg or get_settings()
        self.base_url = self.cfg.NPI_BASE_URL
        self.client_factory = client_factory or client_factory_for(self.cfg)

    async def search(
        self,
        zip_code: Optional[str],
        city: Optional[str],
        radius: Optional[int],
        taxonomy_code: str,
    ) -> List[Provider]:
        # The registry has no radius filter; it is accepted to mirror the Medicaid call.
        params = build_params(taxonomy_code, zip_code, city, self.cfg)
        logger.info("Searching NPI registry", taxonomy_code=taxonomy_code, zip=zip_code, city=city)

        try:
            raw = await get_json(self.client_factory, self.base_url, params)
        except (httpx.HTTPError, ValueError) as e:
            logger.error("NPI search failed", error=str(e), error_type=type(e).__name__)
            return []

        return parse_results(raw)
