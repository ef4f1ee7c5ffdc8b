"""
Ohio Medicaid provider directory adapter.

The directory answers with a FHIR-style bundle; each `entry[].resource` is
normalized into a Provider. Nothing in the payload is trusted to have the
shape FHIR promises, so every field is checked before use.
"""

from typing import Any, Dict, List, Optional, Sequence

import httpx
import structlog

from config import Settings, get_settings
from schemas import Location, ParseOutcome, Provider, ProviderSource
from upstream import ClientFactory, as_dict, as_list, client_factory_for, get_json, text

logger = structlog.get_logger(__name__)


def _flag(value: Optional[bool]) -> str:
    return "1" if value else "0"


def build_params(
    zip_code: str,
    city: str,
    health_plan: str,
    provider_type_ids: Sequence[str],
    radius: int,
    accepts_pregnant_women: Optional[bool] = None,
    accepts_newborns: Optional[bool] = None,
    telehealth: Optional[bool] = None,
    cfg: Optional[Settings] = None,
) -> Dict[str, str]:
    cfg = cfg or get_settings()
    # Key casing is what the directory expects, do not normalize.
    params = {
        "state": cfg.HOME_STATE,
        "zip": zip_code,
        "City": city,
        "healthplan": health_plan,
        "ProviderTypeIDsDelimited": ",".join(provider_type_ids),
        "radius": str(radius),
        "Program": cfg.MEDICAID_PROGRAM,
    }
    if accepts_pregnant_women is not None:
        params["AcceptsPregnantWomen"] = _flag(accepts_pregnant_women)
    if accepts_newborns is not None:
        params["AcceptsNewborns"] = _flag(accepts_newborns)
    if telehealth is not None:
        params["Telehealth"] = _flag(telehealth)
    return params


# --------------------
# Resource parsing
# --------------------

def _human_name(entry: Dict[str, Any]) -> str:
    given = entry.get("given")
    if isinstance(given, list):
        given = " ".join(s for s in (text(g) for g in given) if s)
    else:
        given = text(given) or ""
    family = text(entry.get("family")) or ""
    return f"{given} {family}".strip()


def _name(resource: Dict[str, Any]) -> Optional[str]:
    raw = resource.get("name")
    if isinstance(raw, list):
        parts = [_human_name(n) for n in raw if isinstance(n, dict)]
        name = ", ".join(p for p in parts if p)
    elif isinstance(raw, dict):
        name = _human_name(raw)
    else:
        name = ""
    return name or text(as_dict(resource.get("organization")).get("name"))


def _locations(resource: Dict[str, Any], home_state: str) -> List[Location]:
    locations = []
    for addr in as_list(resource.get("address")):
        if not isinstance(addr, dict):
            continue
        lines = [s for s in (text(line) for line in as_list(addr.get("line"))) if s]
        city = text(addr.get("city"))
        if not lines and not city:
            continue
        locations.append(Location(
            address=", ".join(lines),
            city=city or "",
            state=text(addr.get("state")) or home_state,
            zip=text(addr.get("postalCode")) or "",
        ))
    return locations


def _provider_types(resource: Dict[str, Any]) -> List[str]:
    codes = []
    for t in as_list(resource.get("type")):
        for coding in as_list(as_dict(t).get("coding")):
            code = text(as_dict(coding).get("code"))
            if code:
                codes.append(code)
    return codes


def _specialties(resource: Dict[str, Any]) -> List[str]:
    labels = []
    for spec in as_list(resource.get("specialty")):
        label = text(as_dict(spec).get("text"))
        if label:
            labels.append(label)
    return labels


def _telecom(resource: Dict[str, Any]) -> Dict[str, Optional[str]]:
    found: Dict[str, Optional[str]] = {"phone": None, "email": None}
    for contact in as_list(resource.get("telecom")):
        contact = as_dict(contact)
        system, value = contact.get("system"), text(contact.get("value"))
        if isinstance(system, str) and system in found and value and found[system] is None:
            found[system] = value
    return found


def _npi(resource: Dict[str, Any]) -> Optional[str]:
    for ident in as_list(resource.get("identifier")):
        ident = as_dict(ident)
        system = ident.get("system")
        value = text(ident.get("value"))
        if isinstance(system, str) and "npi" in system and value:
            return value
    return None


def parse_resource(resource: Any, home_state: str = "OH") -> ParseOutcome:
    """Convert one FHIR resource into a Provider, or explain why it was skipped."""
    if not isinstance(resource, dict):
        return ParseOutcome.skip("resource is not an object")

    name = _name(resource)
    if not name:
        return ParseOutcome.skip("no personal or organization name")

    specialties = _specialties(resource)
    contact = _telecom(resource)
    return ParseOutcome(provider=Provider(
        name=name,
        npi=_npi(resource),
        specialty=specialties[0] if specialties else None,
        specialties=specialties,
        provider_types=_provider_types(resource),
        practice_name=text(as_dict(resource.get("organization")).get("name")),
        locations=_locations(resource, home_state),
        phone=contact["phone"],
        email=contact["email"],
        source=ProviderSource.MEDICAID,
    ))


def matches_specialty(provider: Provider, specialty_filter: Optional[str]) -> bool:
    if not specialty_filter or not provider.specialty:
        return True
    return specialty_filter.lower() in provider.specialty.lower()


def parse_bundle(
    bundle: Any,
    specialty_filter: Optional[str] = None,
    home_state: str = "OH",
) -> List[Provider]:
    entries = as_dict(bundle).get("entry")
    if not isinstance(entries, list):
        logger.info("Medicaid bundle has no entries")
        return []

    providers: List[Provider] = []
    skipped = 0
    for idx, entry in enumerate(entries):
        resource = as_dict(entry).get("resource")
        if resource is None:
            outcome = ParseOutcome.skip("entry has no resource")
        else:
            try:
                outcome = parse_resource(resource, home_state)
            except ValueError as e:
                outcome = ParseOutcome.skip(f"invalid resource: {e}")

        if not outcome.ok:
            skipped += 1
            logger.warning("Skipping Medicaid entry", index=idx, reason=outcome.reason)
            continue
        if matches_specialty(outcome.provider, specialty_filter):
            providers.append(outcome.provider)

    logger.info(
        "Parsed Medicaid bundle",
        entries=len(entries),
        kept=len(providers),
        skipped=skipped,
    )
    return providers


class MedicaidAdapter:
    """Searches the state Medicaid directory. Never raises for upstream failures."""

    source = ProviderSource.MEDICAID

    def __init__(self, cfg: Optional[Settings] = None, client_factory: Optional[ClientFactory] = None):
        self.cfg = cfg or get_settings()
        self.base_url = self.cfg.MEDICAID_BASE_URL
        self.client_factory = client_factory or client_factory_for(self.cfg)

    async def search(
        self,
        zip_code: str,
        city: str,
        health_plan: str,
        provider_type_ids: Sequence[str],
        radius: int,
        accepts_pregnant_women: Optional[bool] = None,
        accepts_newborns: Optional[bool] = None,
        telehealth: Optional[bool] = None,
        specialty_filter: Optional[str] = None,
    ) -> List[Provider]:
        params = build_params(
            zip_code,
            city,
            health_plan,
            provider_type_ids,
            radius,
            accepts_pregnant_women=accepts_pregnant_women,
            accepts_newborns=accepts_newborns,
            telehealth=telehealth,
            cfg=self.cfg,
        )
        logger.info("Searching Medicaid directory", zip=zip_code, city=city, health_plan=health_plan)

        try:
            bundle = await get_json(self.client_factory, self.base_url, params)
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Medicaid search failed", error=str(e), error_type=type(e).__name__)
            return []

        return parse_bundle(bundle, specialty_filter, self.cfg.HOME_STATE)
