"""
ANOVA design objects.

Wrap validated, read-only views of a fitted model for ANOVA computation.
Factory methods handle the two model kinds:

    AnovaDesign.for_lm        design matrix + response + term assignment
    MixedAnovaDesign.for_lme  fixed-effects design + fitted mixed-model
                              quantities + one random grouping factor
"""

import warnings
from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pyanova.core.validation import (
    check_array,
    check_finite,
    check_1d,
    check_2d,
    check_square,
    check_symmetric,
    check_consistent_length,
    check_min_samples,
)
from pyanova.core.exceptions import (
    ValidationError,
    DimensionError,
    MultipleRandomFactorsUnsupported,
)
from pyanova.anova._assign import TermAssignment, default_term_names


def _check_design(X: Any, name: str = "X") -> NDArray[np.floating[Any]]:
    X_arr = check_array(X, name)
    check_2d(X_arr, name)
    check_finite(X_arr, name)
    return X_arr


def _check_vector(v: Any, name: str) -> NDArray[np.floating[Any]]:
    v_arr = check_array(v, name)
    check_1d(v_arr, name)
    check_finite(v_arr, name)
    return v_arr


def _check_term_names(
    term_names: Sequence[str] | None,
    X: NDArray[np.floating[Any]],
    assignment: TermAssignment,
) -> tuple[str, ...]:
    if term_names is None:
        return default_term_names(X, assignment)

    names = tuple(str(name) for name in term_names)
    if len(names) != assignment.n_terms:
        raise ValidationError(
            f"term_names: got {len(names)} names for {assignment.n_terms} terms"
        )
    if len(set(names)) != len(names):
        raise ValidationError(f"term_names: names must be unique, got {list(names)}")
    return names


@dataclass(frozen=True)
class AnovaDesign:
    """
    Validated view of a fixed-effects linear model.

    Created via AnovaDesign.for_lm(), not directly. The arrays are only
    read by the ANOVA engine.
    """
    X: NDArray[np.floating[Any]]
    y: NDArray[np.floating[Any]]
    assignment: TermAssignment
    term_names: tuple[str, ...]
    n: int
    p: int

    @staticmethod
    def for_lm(
        X: ArrayLike,
        y: ArrayLike,
        assign: ArrayLike,
        *,
        term_names: Sequence[str] | None = None,
    ) -> 'AnovaDesign':
        """
        Create design for a fixed-effects ANOVA.

        Args:
            X: Design matrix (n, p), intercept column included if modeled
            y: Response (n,)
            assign: 1-based term id per column of X
            term_names: Optional name per term ('Intercept', 'A', 'A:B');
                interaction names define marginality for Type II

        Returns:
            AnovaDesign
        """
        X_arr = _check_design(X)
        y_arr = _check_vector(y, "y")
        check_consistent_length(X_arr, y_arr, names=("X", "y"))
        check_min_samples(y_arr, 2, "y")

        assignment = TermAssignment.validate(assign, X_arr.shape[1])
        names = _check_term_names(term_names, X_arr, assignment)

        return AnovaDesign(
            X=X_arr,
            y=y_arr,
            assignment=assignment,
            term_names=names,
            n=X_arr.shape[0],
            p=X_arr.shape[1],
        )

    @property
    def n_observations(self) -> int:
        return self.n

    @property
    def metadata(self) -> dict[str, Any]:
        return {
            'n': self.n,
            'p': self.p,
            'n_terms': self.assignment.n_terms,
            'has_intercept': not self.assignment.first_term_empty,
        }

    def supports(self, capability: str) -> bool:
        return capability == 'materialize'


@dataclass(frozen=True)
class MixedAnovaDesign:
    """
    Validated view of a fitted linear mixed model with one grouping factor.

    Created via MixedAnovaDesign.for_lme(), not directly.
    """
    X: NDArray[np.floating[Any]]
    assignment: TermAssignment
    term_names: tuple[str, ...]
    coefficients: NDArray[np.floating[Any]]
    vcov: NDArray[np.floating[Any]]
    residuals: NDArray[np.floating[Any]]
    sigma_sq: float
    groups: NDArray
    group_name: str
    reml: bool
    n: int
    p: int

    @staticmethod
    def for_lme(
        X: ArrayLike,
        assign: ArrayLike,
        groups: dict[str, ArrayLike],
        *,
        coefficients: ArrayLike,
        vcov: ArrayLike,
        residuals: ArrayLike,
        sigma_sq: float,
        reml: bool = True,
        term_names: Sequence[str] | None = None,
    ) -> 'MixedAnovaDesign':
        """
        Create design for a mixed-model ANOVA.

        Args:
            X: Fixed-effects design matrix (n, p)
            assign: 1-based term id per column of X
            groups: {name: cluster labels}; exactly one grouping factor
            coefficients: Fixed-effect estimates β̂ (p,)
            vcov: Covariance matrix of β̂ (p, p), symmetric positive definite
            residuals: Model residuals (n,)
            sigma_sq: Residual variance estimate σ̂²
            reml: Whether the model was fitted by REML
            term_names: Optional name per term

        Returns:
            MixedAnovaDesign

        Raises:
            MultipleRandomFactorsUnsupported: If groups has more than one entry
        """
        if not isinstance(groups, dict) or len(groups) == 0:
            raise ValidationError(
                "groups: expected a dict with one grouping factor, "
                "e.g. {'subject': subject_ids}"
            )
        if len(groups) > 1:
            raise MultipleRandomFactorsUnsupported(
                f"groups: only a single random grouping factor is supported, "
                f"got {len(groups)} ({list(groups)})",
                n_factors=len(groups),
            )

        X_arr = _check_design(X)
        n, p = X_arr.shape
        assignment = TermAssignment.validate(assign, p)
        names = _check_term_names(term_names, X_arr, assignment)

        beta = _check_vector(coefficients, "coefficients")
        if len(beta) != p:
            raise DimensionError(
                f"coefficients: length {len(beta)} doesn't match number of columns {p}"
            )

        vcov_arr = check_array(vcov, "vcov")
        check_finite(vcov_arr, "vcov")
        check_square(vcov_arr, p, "vcov")
        check_symmetric(vcov_arr, "vcov")

        resid = _check_vector(residuals, "residuals")
        check_consistent_length(X_arr, resid, names=("X", "residuals"))

        group_name, labels = next(iter(groups.items()))
        labels_arr = np.asarray(labels)
        if labels_arr.ndim != 1 or len(labels_arr) != n:
            raise DimensionError(f"{group_name}: expected 1D with length {n}")
        if len(np.unique(labels_arr)) < 2:
            raise ValidationError(f"{group_name}: need at least 2 groups")

        sigma_sq = float(sigma_sq)
        if not np.isfinite(sigma_sq):
            raise ValidationError(f"sigma_sq: must be finite, got {sigma_sq}")
        if sigma_sq <= 0:
            warnings.warn(
                f"sigma_sq = {sigma_sq} is not positive; within-subject "
                f"sums of squares will be degenerate",
                RuntimeWarning,
                stacklevel=3,
            )

        return MixedAnovaDesign(
            X=X_arr,
            assignment=assignment,
            term_names=names,
            coefficients=beta,
            vcov=vcov_arr,
            residuals=resid,
            sigma_sq=sigma_sq,
            groups=labels_arr,
            group_name=str(group_name),
            reml=bool(reml),
            n=n,
            p=p,
        )

    @property
    def n_observations(self) -> int:
        return self.n

    @property
    def metadata(self) -> dict[str, Any]:
        return {
            'n': self.n,
            'p': self.p,
            'n_terms': self.assignment.n_terms,
            'n_groups': int(len(np.unique(self.groups))),
            'reml': self.reml,
        }

    def supports(self, capability: str) -> bool:
        return capability == 'materialize'
