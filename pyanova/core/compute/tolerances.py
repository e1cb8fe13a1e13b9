"""
Tolerance tiers for numerical validation.

Defines precision expectations for the CPU double-precision path and the
relative tolerance used to decide numerical rank during factorization.

Used by the SS kernel and by the test suite.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ToleranceTier:
    """Tolerances for numerical comparison."""
    rtol: float
    atol: float
    name: str
    description: str


# Well-conditioned designs: closed-form references agree to near machine precision
CPU_FP64 = ToleranceTier(
    rtol=1e-10,
    atol=1e-12,
    name='cpu_fp64',
    description='CPU double precision, well-conditioned',
)

# Ill-conditioned designs (cond(X) > 1e4) and the rank-deficient path
CPU_FP64_ILL_CONDITIONED = ToleranceTier(
    rtol=1e-4,
    atol=1e-6,
    name='cpu_fp64_ill_conditioned',
    description='CPU double precision, ill-conditioned (cond > 1e4)',
)

# Tolerance on Cholesky pivots of the unit-diagonal (equilibrated) X'X. A
# column is aliased when its residual after projection on the preceding
# pivot columns is below sqrt(1e-10) = 1e-5 of its own norm, whatever the
# scale of the column.
RANK_TOLERANCE = 1e-10

