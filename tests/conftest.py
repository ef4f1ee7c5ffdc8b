import json
from typing import Callable, List

import httpx
import pytest

from schemas import Location, Provider, ProviderSource, SearchRequest
from store import InMemoryProviderStore


def fhir_resource(
    given="Jane",
    family="Doe",
    npi="1234567890",
    city="Columbus",
    zip_code="43215",
    specialty="Obstetrics & Gynecology",
):
    resource = {
        "resourceType": "PractitionerRole",
        "name": [{"given": [given], "family": family}],
        "address": [{"line": ["100 Main St", "Suite 2"], "city": city, "state": "OH", "postalCode": zip_code}],
        "type": [{"coding": [{"code": "09"}]}],
        "specialty": [{"text": specialty}] if specialty else [],
        "telecom": [
            {"system": "phone", "value": "614-555-0100"},
            {"system": "email", "value": "jane@example.org"},
        ],
        "identifier": [{"system": "http://hl7.org/fhir/sid/us-npi", "value": npi}] if npi else [],
    }
    return resource


def npi_result(number="1234567890", first="JANE", last="DOE", credential="MD", city="COLUMBUS", zip_code="432151234"):
    return {
        "number": number,
        "basic": {"first_name": first, "last_name": last, "credential": credential},
        "addresses": [
            {
                "address_purpose": "LOCATION",
                "address_1": "200 BROAD ST",
                "address_2": "FL 3",
                "city": city,
                "state": "OH",
                "postal_code": zip_code,
                "telephone_number": "614-555-0199",
            }
        ],
        "taxonomies": [{"code": "207V00000X", "desc": "Obstetrics & Gynecology", "primary": True}],
    }


def mock_factory(handler: Callable[[httpx.Request], httpx.Response], calls: List[httpx.Request] = None):
    """Client factory whose clients answer every request with `handler`."""

    def record(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return handler(request)

    def factory() -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(record))

    return factory


def provider(name="Jane Doe", npi=None, city=None, zip_code=None, source=ProviderSource.MEDICAID, **kw):
    locations = [Location(address="1 Main St", city=city or "", zip=zip_code or "")] if city or zip_code else []
    return Provider(name=name, npi=npi, locations=locations, source=source, **kw)


@pytest.fixture
def search_request():
    return SearchRequest(
        zip="43215",
        city="Columbus",
        healthPlan="caresource",
        providerTypeIds=["09", "71"],
        radius=10,
    )


@pytest.fixture
def seeded_store():
    return InMemoryProviderStore(
        providers=[
            {
                "id": "local-1",
                "npi": "1234567890",
                "name": "Jane Doe",
                "locations": [{"address": "100 Main St", "city": "Columbus", "zip": "43215"}],
                "rating": 2.0,
                "reviewCount": 9,
                "mamaApproved": True,
                "mamaApprovedCount": 4,
                "identityTags": ["Black-owned", "LGBTQ+ friendly"],
                "acceptsPregnantWomen": True,
            },
            {
                "id": "local-2",
                "name": "Riverside Midwifery",
                "locations": [
                    {"address": "5 River Rd", "city": "Dayton", "zip": "45402"},
                    {"address": "9 Oak Ave", "city": "Akron", "zip": "44308"},
                ],
                "rating": 4.5,
                "reviewCount": 12,
                "mamaApproved": False,
                "mamaApprovedCount": 0,
                "identityTags": [],
            },
        ],
        reviews=[
            {"id": "r1", "providerId": "local-1", "rating": 4},
            {"id": "r2", "providerId": "local-1", "rating": 5},
            {"id": "r3", "providerId": "local-1", "rating": 3},
        ],
    )


@pytest.fixture
def seed_file(tmp_path, seeded_store):
    path = tmp_path / "seed.json"
    path.write_text(json.dumps({"providers": seeded_store.providers, "reviews": seeded_store.reviews}))
    return path
