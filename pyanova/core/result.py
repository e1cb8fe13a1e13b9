"""
Generic result container for all PyAnova computations.

The Result class provides a standardized envelope that every ANOVA table
uses. Diagnostics (SS kernel call counts, ranks, between/within
classification) travel in `info`, non-fatal numeric notes in `warnings`.

Design decisions:
    - Generic over parameter payload P for type safety
    - info dict for flexible metadata
    - timing is optional (don't burden unit tests)
    - Immutable (frozen=True): tables are created once per call
"""

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Any

P = TypeVar('P')  # Parameter payload type


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable result envelope for ANOVA computations.

    Type Parameters:
        P: The parameter payload type (AnovaParams, MixedAnovaParams)

    Attributes:
        params: The ANOVA table payload
        info: Structured metadata (ss_type, rank, n_evaluations, ...)
        timing: Execution timing breakdown, or None if not measured
        backend_name: Identifier of the backend that produced this result
        warnings: Non-fatal issues encountered during computation

    Examples:
        >>> Result(
        ...     params=AnovaParams(...),
        ...     info={'ss_type': 3, 'rank': 4},
        ...     timing={'total_seconds': 0.01},
        ...     backend_name='cpu_cholesky'
        ... )
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def has_warning(self, substring: str) -> bool:
        """Check if any warning contains the given substring."""
        return any(substring in w for w in self.warnings)
