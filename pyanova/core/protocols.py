"""
Core protocols for PyAnova.

Structural interfaces satisfied by the ANOVA designs and backends. We use
Protocol (structural typing) rather than ABC (nominal typing).
"""

from typing import Protocol, TypeVar, Any, runtime_checkable

P = TypeVar('P')  # Parameter payload type
D = TypeVar('D')  # DataSource type


@runtime_checkable
class DataSource(Protocol):
    """
    Minimal protocol for a validated, read-only view of a fitted model.

    AnovaDesign and MixedAnovaDesign implement this protocol. The core only
    reads the arrays behind it; it never mutates the caller's data.
    """

    @property
    def n_observations(self) -> int:
        """Number of observations (rows of the design matrix)."""
        ...

    @property
    def metadata(self) -> dict[str, Any]:
        """
        Design-specific metadata.

        Examples:
            Fixed effects: {'n': 30, 'p': 3, 'n_terms': 2}
            Mixed model: {'n': 120, 'p': 3, 'n_terms': 3, 'n_groups': 20}
        """
        ...

    def supports(self, capability: str) -> bool:
        """
        Check if this data source supports a given capability.

        Unknown capabilities MUST return False, never raise.
        """
        ...


@runtime_checkable
class Backend(Protocol[D, P]):
    """
    Protocol for computational backends.

    A backend takes a design and produces a Result envelope holding the
    ANOVA table. Backends are stateless: all configuration is passed via
    the design or at construction time, so a single backend instance may
    be shared between concurrent calls.
    """

    @property
    def name(self) -> str:
        """
        Backend identifier.

        Convention: '{device}_{algorithm}', e.g. 'cpu_cholesky'.
        """
        ...

    def solve(self, design: D) -> 'Result[P]':
        """
        Compute the ANOVA table.

        Raises:
            NumericalError: If a factorization fails in exact mode
            ValidationError: If the design is invalid for this backend
        """
        ...
