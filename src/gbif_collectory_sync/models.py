from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_GBIF_API_URL = "https://api.gbif.org"
DEFAULT_COLLECTORY_URL = "https://collectory.vtatlasoflife.org"
DEFAULT_PRIMARY_URL = "https://vtatlasoflife.org"
DEFAULT_OCCURRENCE_SEARCH_URL = "https://www.gbif.org/occurrence/search"
DEFAULT_HTTP_TIMEOUT = 60.0
DEFAULT_REGION_NAME = "Vermont"
DEFAULT_REGION_GEOMETRY = (
    "POLYGON((-73.38789 45.02072,-73.41743 44.62239,-73.32404 44.47363,"
    "-73.47236 44.0606,-73.39689 43.77059,-73.47379 43.57988,-73.39689 43.54406,"
    "-73.33646 43.60972,-73.29252 43.56197,-73.29252 42.73641,-72.52897 42.73238,"
    "-72.44108 42.99409,-72.28178 43.65346,-72.0593 43.8992,-72.01536 44.21698,"
    "-71.51548 44.48409,-71.47627 45.01296,-73.38789 45.02072))"
)
DEFAULT_KEY_FILE_NAME = "datasetKey_gbifArray.txt"
DEFAULT_DRY_RUN_LIMIT = 9


class DatasetType(str, Enum):
    OCCURRENCE = "OCCURRENCE"
    CHECKLIST = "CHECKLIST"
    SAMPLING_EVENT = "SAMPLING_EVENT"
    METADATA = "METADATA"


# --- GBIF registry dataset ---


class Contact(BaseModel):
    address: list[str] = Field(default_factory=list)
    city: Optional[str] = None
    postalCode: Optional[str] = None
    province: Optional[str] = None
    country: Optional[str] = None
    phone: list[str] = Field(default_factory=list)
    email: list[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")


class TemporalCoverage(BaseModel):
    start: Optional[str] = None
    end: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class Endpoint(BaseModel):
    type: Optional[str] = None
    url: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class Citation(BaseModel):
    text: Optional[str] = None
    identifier: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class GbifDataset(BaseModel):
    key: str
    type: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    license: Optional[str] = None
    doi: Optional[str] = None
    citation: Optional[Citation] = None
    contacts: list[Contact] = Field(default_factory=list)
    temporalCoverages: list[TemporalCoverage] = Field(default_factory=list)
    endpoints: list[Endpoint] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")


# --- Collectory data resource ---


class ConnectionParameters(BaseModel):
    protocol: str
    url: str
    termsForUniqueKey: list[str]


class DataResource(BaseModel):
    uid: Optional[str] = None
    guid: Optional[str] = None
    name: Optional[str] = None
    resourceType: Optional[str] = None
    contentTypes: Optional[list[str]] = None
    connectionParameters: Any = None

    model_config = ConfigDict(extra="allow")


class DataResourcePayload(BaseModel):
    """Body submitted to the collectory for both create and update."""

    name: str
    guid: str
    street: Optional[str] = None
    postBox: str = ""
    postcode: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    pubShortDescription: str = ""
    pubDescription: str
    techDescription: str
    focus: str = ""
    websiteUrl: str = ""
    # The collectory rejects an empty string here.
    networkMembership: None = None
    hubMembership: list[str] = Field(default_factory=list)
    taxonomyCoverageHints: list[str] = Field(default_factory=list)
    attribution: str = ""
    attributions: list[str] = Field(default_factory=list)
    rights: Optional[str] = None
    licenseType: str = ""
    licenseVersion: str = ""
    citation: Optional[str] = None
    resourceType: str
    dataGeneralizations: str = ""
    informationWithheld: str = ""
    permissionsDocument: str = ""
    permissionsDocumentType: str = "Other"
    contentTypes: list[str]
    connectionParameters: ConnectionParameters
    hasMappedCollections: bool = False
    status: str = "identified"
    # Can be empty, never null.
    provenance: str = ""
    harvestFrequency: int = 0
    harvestingNotes: str = ""
    publicArchiveAvailable: bool = True
    downloadLimit: int = 0
    gbifDataset: bool = True
    isShareableWithGBIF: bool = True
    verified: bool = False
    gbifRegistryKey: str
    beginDate: Optional[str] = None
    endDate: Optional[str] = None
    gbifDoi: Optional[str] = None


# --- Sync bookkeeping ---


@dataclass(frozen=True)
class MappingOptions:
    primary_base: str = DEFAULT_PRIMARY_URL
    region_name: str = DEFAULT_REGION_NAME
    region_geometry: str = DEFAULT_REGION_GEOMETRY
    occurrence_search_url: str = DEFAULT_OCCURRENCE_SEARCH_URL


class Outcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED_NOT_FOUND = "skipped_not_found"
    ERROR_AMBIGUOUS = "error_ambiguous"
    ERROR_UPSTREAM = "error_upstream"
    ERROR_MALFORMED = "error_malformed"
    DRY_RUN = "dry_run"


@dataclass(frozen=True)
class KeyOutcome:
    key: str
    index: int
    outcome: Outcome
    status_code: Optional[int] = None
    uid: Optional[str] = None
    message: Optional[str] = None


@dataclass
class SyncReport:
    outcomes: list[KeyOutcome] = field(default_factory=list)

    def add(self, outcome: KeyOutcome) -> None:
        self.outcomes.append(outcome)

    def counts(self) -> dict[Outcome, int]:
        totals = {outcome: 0 for outcome in Outcome}
        for item in self.outcomes:
            totals[item.outcome] += 1
        return totals

    def for_key(self, key: str) -> list[KeyOutcome]:
        return [item for item in self.outcomes if item.key == key]
