"""Maps a GBIF registry dataset onto a collectory data resource payload.

The collectory distinguishes nullable fields from fields that must be an
empty string when unknown; defaults for the latter live on
:class:`DataResourcePayload`, so only source-derived values are set here.
"""

from __future__ import annotations

from typing import Optional, Sequence, TypeVar
from urllib.parse import quote

from .errors import MalformedInputError
from .models import (ConnectionParameters, DataResource, DataResourcePayload,
                     DatasetType, GbifDataset, MappingOptions)

T = TypeVar("T")

BASE_CONTENT_TYPE = "gbif import"
ARCHIVE_PROTOCOL = "DwCA"
UNIQUE_KEY_TERMS = ("gbifID",)

_CONTENT_TYPE_BY_KIND = {
    DatasetType.OCCURRENCE.value: "point occurrence data",
    DatasetType.SAMPLING_EVENT.value: "point occurrence data",
    DatasetType.CHECKLIST.value: "species-list",
}


def resource_type_for(kind: Optional[str]) -> str:
    return "species-list" if kind == DatasetType.CHECKLIST.value else "records"


def content_types_for(kind: Optional[str]) -> list[str]:
    content_types = [BASE_CONTENT_TYPE]
    extra = _CONTENT_TYPE_BY_KIND.get(kind or "")
    if extra:
        content_types.append(extra)
    return content_types


def archive_url(primary_base: str, key: str) -> str:
    return f"{primary_base.rstrip('/')}/gbif-split/{key}.zip"


def occurrence_search_url(key: str, options: MappingOptions) -> str:
    geometry = quote(options.region_geometry, safe="(),.-")
    return (
        f"{options.occurrence_search_url}?dataset_key={key}"
        f"&geometry={geometry}&has_coordinate=true&has_geospatial_issue=false"
    )


def _first(items: Sequence[T]) -> Optional[T]:
    return items[0] if items else None


def map_dataset(
    source: GbifDataset,
    existing: Optional[DataResource] = None,
    options: MappingOptions = MappingOptions(),
) -> DataResourcePayload:
    """Build the collectory payload for ``source``.

    ``existing`` is the matching data resource when one was found; its uid is
    passed to the update call separately and never enters the payload.

    Raises :class:`MalformedInputError` when the dataset has no contacts.
    """
    contact = _first(source.contacts)
    if contact is None:
        raise MalformedInputError(f"GBIF dataset {source.key} has no contacts")

    coverage = _first(source.temporalCoverages)
    endpoint = _first(source.endpoints)
    search_url = occurrence_search_url(source.key, options)

    return DataResourcePayload(
        name=f"{source.title or ''} ({options.region_name})".lstrip(),
        guid=source.key,
        street=_first(contact.address),
        postcode=contact.postalCode,
        city=contact.city,
        state=contact.province,
        country=contact.country,
        phone=_first(contact.phone),
        email=_first(contact.email),
        pubDescription=f"{source.description or ''} ({options.region_name})".lstrip(),
        techDescription=f"<a href={search_url}>{search_url}</a>",
        websiteUrl=(endpoint.url or "") if endpoint else "",
        rights=source.license,
        citation=source.citation.text if source.citation else None,
        resourceType=resource_type_for(source.type),
        contentTypes=content_types_for(source.type),
        connectionParameters=ConnectionParameters(
            protocol=ARCHIVE_PROTOCOL,
            url=archive_url(options.primary_base, source.key),
            termsForUniqueKey=list(UNIQUE_KEY_TERMS),
        ),
        gbifRegistryKey=source.key,
        beginDate=coverage.start if coverage else None,
        endDate=coverage.end if coverage else None,
        gbifDoi=source.doi,
    )
