"""Coverage audits: local counts versus upstream."""

from seismistats.core.coverage.verifier import (
    CoverageGap,
    CoverageStatus,
    CoverageVerifier,
    GapFinder,
    GapReport,
    VerificationResult,
)

__all__ = [
    "CoverageGap",
    "CoverageStatus",
    "CoverageVerifier",
    "GapFinder",
    "GapReport",
    "VerificationResult",
]
