"""Sequential fetch, lookup, map and upsert loop over GBIF dataset keys."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Optional, Protocol

from .errors import (DataIntegrityError, MalformedInputError, NotFoundError,
                     TransportError, UpstreamError)
from .logging_utils import get_logger
from .mapping import map_dataset
from .models import (DataResource, DataResourcePayload, GbifDataset,
                     KeyOutcome, MappingOptions, Outcome, SyncReport)
from .outcome_log import OutcomeLog

logger = get_logger(__name__)


class RegistryClient(Protocol):
    last_status_code: Optional[int]

    async def fetch(self, key: str) -> GbifDataset: ...


class CatalogClient(Protocol):
    last_status_code: Optional[int]

    async def lookup(self, key: str) -> list[DataResource]: ...

    async def create(self, payload: DataResourcePayload) -> DataResource: ...

    async def update(self, uid: str, payload: DataResourcePayload) -> DataResource: ...


async def sync_dataset(
    key: str,
    index: int,
    registry: RegistryClient,
    catalog: CatalogClient,
    outcome_log: OutcomeLog,
    options: MappingOptions = MappingOptions(),
    not_found_is_error: bool = False,
    dry_run: bool = False,
) -> KeyOutcome:
    """Drive one dataset key to a terminal outcome.

    Every failure is converted into an outcome here; nothing propagates to
    the batch loop.
    """
    try:
        source = await registry.fetch(key)
    except NotFoundError as exc:
        outcome_log.write(f"GBIF Dataset | {index} | dataset | {key} | 404")
        if not_found_is_error:
            outcome_log.error(f"GBIF Dataset {key} not found")
            return KeyOutcome(key, index, Outcome.ERROR_UPSTREAM, 404, message=str(exc))
        return KeyOutcome(key, index, Outcome.SKIPPED_NOT_FOUND, 404, message=str(exc))
    except (UpstreamError, TransportError, MalformedInputError) as exc:
        return _failed(outcome_log, key, index, "fetching GBIF dataset", exc)

    outcome_log.write(
        f"GBIF Dataset | {index} | dataset | {key} | {registry.last_status_code}"
    )
    outcome_log.write(f"GBIF Dataset Title: {source.title}")

    try:
        matches = await catalog.lookup(key)
    except (UpstreamError, TransportError, MalformedInputError) as exc:
        return _failed(outcome_log, key, index, "looking up data resource", exc)
    outcome_log.write(
        f"GET Data Resource | {index} | dataset | {key} | {catalog.last_status_code}"
    )

    if len(matches) > 1:
        integrity = DataIntegrityError(key, len(matches))
        outcome_log.error(str(integrity))
        return KeyOutcome(key, index, Outcome.ERROR_AMBIGUOUS, message=str(integrity))

    existing = matches[0] if matches else None
    if existing is None:
        outcome_log.write("Data Resource NOT found.")
    else:
        outcome_log.write(
            f"Data Resource found | UID: {existing.uid} | resourceType: "
            f"{existing.resourceType} | contentTypes: {existing.contentTypes}"
        )

    try:
        payload = map_dataset(source, existing, options)
    except MalformedInputError as exc:
        return _failed(outcome_log, key, index, "mapping GBIF dataset", exc)

    if dry_run:
        outcome_log.write(f"resourceType: {payload.resourceType}")
        outcome_log.write(f"contentTypes: {payload.contentTypes}")
        return KeyOutcome(
            key, index, Outcome.DRY_RUN, uid=existing.uid if existing else None
        )

    if existing is None:
        verb, outcome = "POST", Outcome.CREATED
    elif existing.uid:
        verb, outcome = "PUT", Outcome.UPDATED
    else:
        exc = MalformedInputError(f"Data resource for {key} has no uid")
        return _failed(outcome_log, key, index, "reading data resource", exc)

    try:
        if existing is None:
            resource = await catalog.create(payload)
        else:
            resource = await catalog.update(existing.uid, payload)
    except (UpstreamError, TransportError, MalformedInputError) as exc:
        return _failed(outcome_log, key, index, f"{verb} data resource", exc)

    outcome_log.write(
        f"{verb} Data Resource | {index} | dataset | {key} | {catalog.last_status_code}"
    )
    return KeyOutcome(
        key, index, outcome, status_code=catalog.last_status_code, uid=resource.uid
    )


def _failed(
    outcome_log: OutcomeLog, key: str, index: int, action: str, exc: Exception
) -> KeyOutcome:
    status_code = getattr(exc, "status_code", None)
    outcome_log.error(f"{action} | {index} | dataset | {key} | {status_code} | {exc}")
    outcome = (
        Outcome.ERROR_MALFORMED
        if isinstance(exc, MalformedInputError)
        else Outcome.ERROR_UPSTREAM
    )
    return KeyOutcome(key, index, outcome, status_code, message=str(exc))


async def run_sync(
    keys: Iterable[str],
    registry: RegistryClient,
    catalog: CatalogClient,
    outcome_log: OutcomeLog,
    options: MappingOptions = MappingOptions(),
    not_found_is_error: bool = False,
    dry_run: bool = False,
    limit: Optional[int] = None,
) -> SyncReport:
    """Process ``keys`` in order, one dataset at a time."""
    report = SyncReport()
    for index, key in enumerate(keys, start=1):
        if limit is not None and index > limit:
            break
        # Awaited one key at a time; the collectory serializes writes.
        outcome = await sync_dataset(
            key,
            index,
            registry,
            catalog,
            outcome_log,
            options=options,
            not_found_is_error=not_found_is_error,
            dry_run=dry_run,
        )
        report.add(outcome)
        logger.debug("Key %s finished as %s", key, outcome.outcome.value)

    counts = report.counts()
    summary = ", ".join(
        f"{outcome.value}={count}" for outcome, count in counts.items() if count
    )
    outcome_log.write(
        f"Sync completed: {len(report.outcomes)} keys ({summary or 'none'})"
    )
    return report
