"""Configuration loading for the GBIF to collectory sync."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .models import (DEFAULT_COLLECTORY_URL, DEFAULT_DRY_RUN_LIMIT,
                     DEFAULT_GBIF_API_URL, DEFAULT_HTTP_TIMEOUT,
                     DEFAULT_KEY_FILE_NAME, DEFAULT_OCCURRENCE_SEARCH_URL,
                     DEFAULT_PRIMARY_URL, DEFAULT_REGION_GEOMETRY,
                     DEFAULT_REGION_NAME, MappingOptions)

_TRUTHY = {"1", "true", "yes", "on"}


def _int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


def _float(value: Optional[str], default: float) -> float:
    try:
        return float(value) if value is not None else default
    except ValueError:
        return default


def _bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    gbif_api_base: str
    collectory_base: str
    primary_base: str
    collectory_api_key: Optional[str]
    split_dir: Path
    key_file: Path
    http_timeout: float
    log_level: str
    region_name: str
    region_geometry: str
    occurrence_search_url: str
    not_found_is_error: bool
    dry_run: bool
    dry_run_limit: int

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv()

        split_dir = Path(os.getenv("SPLIT_DIR", "gbif-split"))
        key_file = os.getenv("DATASET_KEY_FILE")

        return cls(
            # Base URLs are rstrip-ed so path templates can always add a leading "/".
            gbif_api_base=os.getenv("GBIF_API_URL", DEFAULT_GBIF_API_URL).rstrip("/"),
            collectory_base=os.getenv("COLLECTORY_URL", DEFAULT_COLLECTORY_URL).rstrip(
                "/"
            ),
            primary_base=os.getenv("PRIMARY_URL", DEFAULT_PRIMARY_URL).rstrip("/"),
            collectory_api_key=os.getenv("COLLECTORY_API_KEY") or None,
            split_dir=split_dir,
            key_file=Path(key_file) if key_file else split_dir / DEFAULT_KEY_FILE_NAME,
            http_timeout=_float(os.getenv("HTTP_TIMEOUT"), DEFAULT_HTTP_TIMEOUT),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            region_name=os.getenv("REGION_NAME", DEFAULT_REGION_NAME),
            region_geometry=os.getenv("REGION_GEOMETRY", DEFAULT_REGION_GEOMETRY),
            occurrence_search_url=os.getenv(
                "GBIF_OCCURRENCE_SEARCH_URL", DEFAULT_OCCURRENCE_SEARCH_URL
            ),
            not_found_is_error=_bool(os.getenv("NOT_FOUND_IS_ERROR")),
            dry_run=_bool(os.getenv("DRY_RUN")),
            dry_run_limit=max(1, _int(os.getenv("DRY_RUN_LIMIT"), DEFAULT_DRY_RUN_LIMIT)),
        )

    def mapping_options(self) -> MappingOptions:
        return MappingOptions(
            primary_base=self.primary_base,
            region_name=self.region_name,
            region_geometry=self.region_geometry,
            occurrence_search_url=self.occurrence_search_url,
        )
