"""
CPU backends for ANOVA tables.

Both backends use Cholesky factorizations via LAPACK (through SciPy) and
are stateless: configuration is fixed at construction time, so one
instance can serve concurrent solve() calls.
"""

from typing import Any, Sequence

from pyanova.core.result import Result
from pyanova.core.compute.timing import Timer
from pyanova.anova._assign import term_factors
from pyanova.anova._common import AnovaParams, MixedAnovaParams
from pyanova.anova._mixed import check_mixed_type, compute_mixed_table
from pyanova.anova._ss import decompose
from pyanova.anova._table import assemble_fixed_table
from pyanova.anova.design import AnovaDesign, MixedAnovaDesign


class CPUCholeskyBackend:
    """
    Fixed-effects ANOVA via restricted least-squares fits.

    Implements the Backend protocol for AnovaDesign -> AnovaParams.
    """

    def __init__(
        self,
        ss_type: int = 1,
        allow_rank_deficient: bool = False,
        n_jobs: int = 1,
    ):
        self.ss_type = ss_type
        self.allow_rank_deficient = allow_rank_deficient
        self.n_jobs = n_jobs

    @property
    def name(self) -> str:
        return 'cpu_cholesky_pivoted' if self.allow_rank_deficient else 'cpu_cholesky'

    def solve(self, design: AnovaDesign) -> Result[AnovaParams]:
        """
        Compute the ANOVA table.

        Algorithm:
            1. Fit the column subsets required by the SS type
            2. Difference their residual sums of squares per term
            3. Assemble df, mean squares, F statistics and p-values

        Raises:
            InvalidAnovaType: If ss_type is not 1, 2 or 3
            SingularDesignError: If a subset is singular in exact mode
        """
        timer = Timer()
        timer.start()

        with timer.section('ss_evaluations'):
            decomposition = decompose(
                design.X,
                design.y,
                design.assignment,
                self.ss_type,
                term_factors(design.term_names),
                allow_rank_deficient=self.allow_rank_deficient,
                n_jobs=self.n_jobs,
            )

        with timer.section('assemble'):
            params, warnings = assemble_fixed_table(
                decomposition,
                design.assignment,
                design.term_names,
                design.n,
                self.ss_type,
            )

        if decomposition.rank < design.p:
            warnings.insert(0, (
                f"Design matrix is rank-deficient: rank={decomposition.rank}, "
                f"columns={design.p}; aliased coefficients were set to zero"
            ))

        timer.stop()

        info: dict[str, Any] = {
            'ss_type': self.ss_type,
            'design_type': 'lm',
            'allow_rank_deficient': self.allow_rank_deficient,
            'rank': decomposition.rank,
            'n_evaluations': decomposition.n_evaluations,
        }

        return Result(
            params=params,
            info=info,
            timing=timer.result(),
            backend_name=self.name,
            warnings=tuple(warnings),
        )


class CPUMixedBackend:
    """
    Mixed-model ANOVA from whitened fixed effects.

    Implements the Backend protocol for MixedAnovaDesign -> MixedAnovaParams.
    """

    def __init__(
        self,
        ss_type: int = 1,
        between: Sequence[int] | None = None,
        adjust_sigma: bool = True,
    ):
        check_mixed_type(ss_type)
        self.ss_type = ss_type
        self.between = None if between is None else tuple(int(b) for b in between)
        self.adjust_sigma = adjust_sigma

    @property
    def name(self) -> str:
        return 'cpu_cholesky_mixed'

    def solve(self, design: MixedAnovaDesign) -> Result[MixedAnovaParams]:
        """
        Compute the two-stratum ANOVA table.

        Raises:
            NotPositiveDefiniteError: If the fixed-effect covariance is not
                positive definite
        """
        timer = Timer()
        timer.start()

        params, warnings = compute_mixed_table(
            design.X,
            design.assignment,
            design.term_names,
            design.coefficients,
            design.vcov,
            design.residuals,
            design.sigma_sq,
            design.groups,
            design.group_name,
            ss_type=self.ss_type,
            reml=design.reml,
            between=self.between,
            adjust_sigma=self.adjust_sigma,
            timer=timer,
        )

        timer.stop()

        info: dict[str, Any] = {
            'ss_type': self.ss_type,
            'design_type': 'lme',
            'reml': design.reml,
            'adjust_sigma': self.adjust_sigma,
            'between': params.between,
            'n_cells': params.n_cells,
        }

        return Result(
            params=params,
            info=info,
            timing=timer.result(),
            backend_name=self.name,
            warnings=tuple(warnings),
        )
