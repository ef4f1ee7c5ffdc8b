from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProviderSource(str, Enum):
    MEDICAID = "medicaid"
    REGISTRY = "registry"


class Location(BaseModel):
    address: str = ""
    address2: Optional[str] = None
    city: str = ""
    state: str = ""
    zip: str = ""
    phone: Optional[str] = None


class Provider(BaseModel):
    """Canonical provider record shared by both directories."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    npi: Optional[str] = None
    specialty: Optional[str] = None
    specialties: List[str] = Field(default_factory=list)
    provider_types: List[str] = Field(default_factory=list, alias="providerTypes")
    practice_name: Optional[str] = Field(default=None, alias="practiceName")
    locations: List[Location] = Field(default_factory=list)
    phone: Optional[str] = None
    email: Optional[str] = None
    source: ProviderSource

    # Filled in by enrichment
    id: Optional[str] = None
    rating: Optional[float] = None
    review_count: int = Field(default=0, alias="reviewCount")
    approved_flag: bool = Field(default=False, alias="approvedFlag")
    approved_count: int = Field(default=0, alias="approvedCount")
    identity_tags: List[str] = Field(default_factory=list, alias="identityTags")
    accepts_pregnant_women: Optional[bool] = Field(default=None, alias="acceptsPregnantWomen")
    accepts_newborns: Optional[bool] = Field(default=None, alias="acceptsNewborns")
    telehealth: Optional[bool] = None

    @property
    def first_location(self) -> Optional[Location]:
        return self.locations[0] if self.locations else None


class StoredProvider(BaseModel):
    """A document from the local `providers` collection."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    npi: Optional[str] = None
    name: str = ""
    locations: List[Location] = Field(default_factory=list)
    rating: Optional[float] = None
    review_count: int = Field(default=0, alias="reviewCount")
    mama_approved: bool = Field(default=False, alias="mamaApproved")
    mama_approved_count: int = Field(default=0, alias="mamaApprovedCount")
    identity_tags: List[str] = Field(default_factory=list, alias="identityTags")
    accepts_pregnant_women: Optional[bool] = Field(default=None, alias="acceptsPregnantWomen")
    accepts_newborns: Optional[bool] = Field(default=None, alias="acceptsNewborns")
    telehealth: Optional[bool] = None


@dataclass
class ParseOutcome:
    """Result of converting one upstream record: a provider or a skip reason."""

    provider: Optional[Provider] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.provider is not None

    @classmethod
    def skip(cls, reason: str) -> "ParseOutcome":
        return cls(reason=reason)


class SearchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    zip: str = Field(..., max_length=10, description="ZIP or ZIP+4")
    city: str = Field(..., min_length=1)
    health_plan: str = Field(..., min_length=1, alias="healthPlan")
    provider_type_ids: List[str] = Field(..., alias="providerTypeIds")
    radius: int = Field(..., gt=0)
    specialty: Optional[str] = None
    include_npi: bool = Field(default=False, alias="includeNpi")
    accepts_pregnant_women: Optional[bool] = Field(default=None, alias="acceptsPregnantWomen")
    accepts_newborns: Optional[bool] = Field(default=None, alias="acceptsNewborns")
    telehealth: Optional[bool] = None

    @field_validator("zip", "city", "health_plan")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("provider_type_ids", mode="before")
    @classmethod
    def split_type_ids(cls, v: Union[str, List[str]]):
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v


class SearchResponse(BaseModel):
    providers: List[Provider]
    count: int
