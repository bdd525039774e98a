"""
sources/base.py — Abstract base class for upstream feed adapters.

Each concrete source must implement:
  extract()      — fetch raw rows, return polars DataFrame
  transform()    — clean/normalize the raw DataFrame into record columns
  get_metadata() — return dict with source info for logging and the run log

The run() method orchestrates extract → transform → return and handles
timing/logging automatically. Pipelines call run() rather than the
individual methods.
"""

from __future__ import annotations

import re
import time
from abc import ABC, abstractmethod
from typing import Any

import polars as pl
import structlog

log = structlog.get_logger(__name__)

_CAMEL_BOUNDARY = re.compile(r"([a-z\d])([A-Z])")
_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")


class BaseSource(ABC):
    """Abstract base for tenantsync upstream sources."""

    # Override in subclass; used for logging and get_metadata()
    name: str = "unknown"

    def __init__(self) -> None:
        self._log = log.bind(source_name=self.name)

    # ------------------------------------------------------------------
    # Abstract interface: subclasses implement all three
    # ------------------------------------------------------------------

    @abstractmethod
    async def extract(self, **kwargs: Any) -> pl.DataFrame:
        """
        Fetch raw rows from the upstream source.

        Implementations should:
        - Make HTTP calls via httpx (no retries; a failed page is recorded)
        - Return a raw polars DataFrame with all original columns preserved

        Returns:
            Raw polars DataFrame.
        """
        ...

    @abstractmethod
    def transform(self, raw: pl.DataFrame) -> pl.DataFrame:
        """
        Clean and normalize a raw DataFrame.

        Implementations should rename columns to snake_case, strip text and
        fill missing text with "".
        """
        ...

    @abstractmethod
    async def get_metadata(self) -> dict[str, Any]:
        """
        Return source-level metadata for observability.

        Should include at minimum: source_name, url, record_count.
        """
        ...

    # ------------------------------------------------------------------
    # Orchestration: pipelines call this
    # ------------------------------------------------------------------

    async def run(self, **kwargs: Any) -> pl.DataFrame:
        """
        Extract + transform in sequence with timing and structured logging.

        Raises:
            Any exception from extract() or transform() after logging it.
        """
        run_log = self._log.bind(**{k: str(v) for k, v in kwargs.items()})
        run_log.info("source_run_start")

        t0 = time.monotonic()
        try:
            raw = await self.extract(**kwargs)
            run_log.info(
                "extract_complete",
                raw_rows=len(raw),
                raw_cols=raw.width,
                duration_ms=int((time.monotonic() - t0) * 1000),
            )

            t1 = time.monotonic()
            result = self.transform(raw)
            run_log.info(
                "transform_complete",
                result_rows=len(result),
                duration_ms=int((time.monotonic() - t1) * 1000),
            )
            return result

        except Exception as exc:
            run_log.error(
                "source_run_failed",
                error=str(exc),
                duration_ms=int((time.monotonic() - t0) * 1000),
                exc_info=True,
            )
            raise

    # ------------------------------------------------------------------
    # Shared helpers available to all subclasses
    # ------------------------------------------------------------------

    @staticmethod
    def _to_snake_case(name: str) -> str:
        """Convert 'floorRevised' or 'Floor Revised' to 'floor_revised'."""
        s = _ACRONYM_BOUNDARY.sub(r"\1_\2", name)
        s = _CAMEL_BOUNDARY.sub(r"\1_\2", s)
        return s.lower().strip().replace(" ", "_").replace("-", "_")

    @classmethod
    def _normalize_columns(cls, df: pl.DataFrame) -> pl.DataFrame:
        """Rename all columns to snake_case."""
        return df.rename({col: cls._to_snake_case(col) for col in df.columns})
