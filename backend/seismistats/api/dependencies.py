"""Service providers for the API layer.

Tests replace these through app.dependency_overrides.
"""

from typing import Annotated

from fastapi import Depends, Request

from seismistats.core.backfill.engine import (
    BackfillCoordinator,
    BackfillEngine,
    get_backfill_coordinator,
)
from seismistats.core.coverage.verifier import CoverageVerifier, GapFinder
from seismistats.core.database.session import async_session_factory
from seismistats.core.earthquakes.store import RecordStore
from seismistats.core.sync.service import SyncService
from seismistats.core.upstream.client import UpstreamClient


def get_record_store() -> RecordStore:
    return RecordStore(async_session_factory)


def get_upstream_client(request: Request) -> UpstreamClient:
    """The shared client opened in the application lifespan."""
    return request.app.state.upstream


def get_coordinator() -> BackfillCoordinator:
    return get_backfill_coordinator()


Store = Annotated[RecordStore, Depends(get_record_store)]
Upstream = Annotated[UpstreamClient, Depends(get_upstream_client)]
Coordinator = Annotated[BackfillCoordinator, Depends(get_coordinator)]


def get_backfill_engine(store: Store, upstream: Upstream) -> BackfillEngine:
    return BackfillEngine(SyncService(upstream, store))


def get_coverage_verifier(store: Store, upstream: Upstream) -> CoverageVerifier:
    return CoverageVerifier(store, upstream)


def get_gap_finder(
    verifier: Annotated[CoverageVerifier, Depends(get_coverage_verifier)],
) -> GapFinder:
    return GapFinder(verifier)


Engine = Annotated[BackfillEngine, Depends(get_backfill_engine)]
Verifier = Annotated[CoverageVerifier, Depends(get_coverage_verifier)]
Gaps = Annotated[GapFinder, Depends(get_gap_finder)]
