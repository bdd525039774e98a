"""
utils/run_context.py — Run-scoped accumulators for one directory sync.

A RunContext is created at the start of a run and passed explicitly to the
fetcher, resolver, reconciler and orchestrator. It replaces process-wide
globals: two runs (or two tests) never see each other's unresolved labels,
issues or timings.

Every mutator is a plain synchronous method. Concurrent reconciliations run
as asyncio tasks on one event loop thread and never await inside a mutation,
so appends from sibling tasks cannot interleave.
"""

from __future__ import annotations

import sys
import time
import uuid
from dataclasses import dataclass, field

from tenantsync_shared.models import (
    PerformanceMetrics,
    ProcessingError,
    UnresolvedCategory,
    ValidationIssue,
)


def generate_sync_id() -> str:
    """Return a unique, time-sortable sync id such as ``sync_1718000000000_1a2b3c4d5``."""
    return f"sync_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def _peak_memory_mb() -> int:
    """Peak resident set size of this process in MB (0 where unsupported)."""
    try:
        import resource
    except ImportError:  # Windows has no resource module
        return 0
    peak = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # Linux reports KiB, macOS reports bytes
    divisor = 1024 * 1024 if sys.platform == "darwin" else 1024
    return round(peak / divisor)


@dataclass
class RunContext:
    """Mutable diagnostics and timing shared by every stage of one run."""

    sync_id: str = field(default_factory=generate_sync_id)
    unresolved_floors: set[str] = field(default_factory=set)
    unresolved_categories: set[UnresolvedCategory] = field(default_factory=set)
    validation_issues: list[ValidationIssue] = field(default_factory=list)
    errors: list[ProcessingError] = field(default_factory=list)

    total_api_response_ms: float = 0.0
    api_request_count: int = 0
    total_processing_ms: float = 0.0
    record_processing_count: int = 0

    # ------------------------------------------------------------------
    # Accumulators
    # ------------------------------------------------------------------

    def add_unresolved_floor(self, label: str) -> None:
        self.unresolved_floors.add(label)

    def add_unresolved_category(self, category: UnresolvedCategory) -> None:
        self.unresolved_categories.add(category)

    def add_validation_issues(self, issues: list[ValidationIssue]) -> None:
        self.validation_issues.extend(issues)

    def add_error(self, error: ProcessingError) -> None:
        self.errors.append(error)

    def record_api_response(self, elapsed_ms: float) -> None:
        self.total_api_response_ms += elapsed_ms
        self.api_request_count += 1

    def record_processing(self, elapsed_ms: float) -> None:
        self.total_processing_ms += elapsed_ms
        self.record_processing_count += 1

    # ------------------------------------------------------------------
    # Derived metrics
    # ------------------------------------------------------------------

    def performance_metrics(self) -> PerformanceMetrics:
        avg_record = (
            round(self.total_processing_ms / self.record_processing_count)
            if self.record_processing_count
            else 0
        )
        avg_api = (
            round(self.total_api_response_ms / self.api_request_count)
            if self.api_request_count
            else 0
        )
        return PerformanceMetrics(
            avg_time_per_record_ms=avg_record,
            api_response_time_avg_ms=avg_api,
            memory_usage_mb=_peak_memory_mb(),
        )
