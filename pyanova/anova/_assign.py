"""
Term assignment, degrees of freedom, column masks and marginality.

A term assignment maps each design-matrix column to a 1-based term id.
Ids are non-decreasing and each run of equal ids is one term, so
max(assign) is the number of terms. Term 1 may have zero width (a model
without an intercept column), in which case the assignment starts at 2.

Key concepts:
    - TermAssignment: validated assignment + per-term column lookup
    - term_df: per-term column counts (the term's degrees of freedom)
    - ColumnMask: the ordered set of columns retained for one SS evaluation
    - selectcoef: terms that stay in the model when testing a term (Type II)
"""

from dataclasses import dataclass
from typing import Any, Iterable, Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pyanova.core.exceptions import ValidationError, DimensionError


INTERCEPT = 'Intercept'


def term_df(assign: ArrayLike, n_terms: int | None = None) -> NDArray[np.int64]:
    """
    Count the columns assigned to each term.

    Args:
        assign: 1-based, non-decreasing term ids (one per column)
        n_terms: Number of terms; defaults to max(assign)

    Returns:
        Integer array of length n_terms; entry k-1 is the width of term k
        (zero for a term with no columns)
    """
    assign_arr = np.asarray(assign, dtype=np.int64)
    if n_terms is None:
        n_terms = int(assign_arr.max()) if assign_arr.size else 0
    return np.bincount(assign_arr - 1, minlength=n_terms).astype(np.int64)


@dataclass(frozen=True)
class TermAssignment:
    """
    Validated column-to-term mapping.

    Attributes:
        assign: 1-based term id per column (length p)
        n_terms: Number of terms K == max(assign)
    """
    assign: NDArray[np.int64]
    n_terms: int

    @staticmethod
    def validate(assign: ArrayLike, n_columns: int) -> 'TermAssignment':
        """
        Validate a caller-supplied assignment.

        Args:
            assign: Term id per design column
            n_columns: Number of columns of the design matrix

        Returns:
            TermAssignment

        Raises:
            DimensionError: If the length differs from n_columns
            ValidationError: If ids are not positive, non-decreasing and
                contiguous, or start beyond term 2
        """
        arr = np.asarray(assign)
        if arr.ndim != 1:
            raise DimensionError(f"assign: expected 1D, got {arr.ndim}D")
        if len(arr) != n_columns:
            raise DimensionError(
                f"assign: length {len(arr)} doesn't match number of columns {n_columns}"
            )
        if n_columns == 0:
            raise ValidationError("assign: design has no columns")
        if not np.issubdtype(arr.dtype, np.integer):
            if not np.all(np.mod(arr, 1) == 0):
                raise ValidationError("assign: term ids must be integers")
        arr = arr.astype(np.int64)

        if arr[0] not in (1, 2):
            raise ValidationError(
                f"assign: must start at term 1 (or 2 when term 1 has no columns), "
                f"got {arr[0]}"
            )
        steps = np.diff(arr)
        if np.any((steps != 0) & (steps != 1)):
            bad = int(np.flatnonzero((steps != 0) & (steps != 1))[0])
            raise ValidationError(
                f"assign: ids must be non-decreasing and contiguous; "
                f"column {bad + 1} jumps from {arr[bad]} to {arr[bad + 1]}"
            )

        return TermAssignment(assign=arr, n_terms=int(arr[-1]))

    @property
    def n_columns(self) -> int:
        return len(self.assign)

    @property
    def df(self) -> NDArray[np.int64]:
        return term_df(self.assign, self.n_terms)

    @property
    def first_term_empty(self) -> bool:
        """True when term 1 contributes no columns (no intercept)."""
        return bool(self.assign[0] != 1)

    def columns(self, term_id: int) -> NDArray[np.intp]:
        """Column indices of a term (empty for a zero-width term)."""
        return np.flatnonzero(self.assign == term_id)


@dataclass(frozen=True)
class ColumnMask:
    """
    Columns retained for one SS evaluation.

    Built once per evaluation from a set of term ids and passed explicitly
    to the SS kernel. The mask is a value: it never changes after creation.

    Attributes:
        keep: Boolean mask aligned with the design columns
        terms: Term ids whose columns are retained
    """
    keep: NDArray[np.bool_]
    terms: frozenset[int]

    @staticmethod
    def including(assignment: TermAssignment, terms: Iterable[int]) -> 'ColumnMask':
        """Keep exactly the columns of the given terms."""
        kept = frozenset(int(t) for t in terms)
        keep = np.isin(assignment.assign, list(kept))
        return ColumnMask(keep=keep, terms=kept)

    @staticmethod
    def excluding(assignment: TermAssignment, terms: Iterable[int]) -> 'ColumnMask':
        """Keep every column except those of the given terms."""
        dropped = frozenset(int(t) for t in terms)
        kept = frozenset(range(1, assignment.n_terms + 1)) - dropped
        return ColumnMask.including(assignment, kept)

    @staticmethod
    def full(assignment: TermAssignment) -> 'ColumnMask':
        return ColumnMask.excluding(assignment, ())

    @property
    def indices(self) -> NDArray[np.intp]:
        return np.flatnonzero(self.keep)

    @property
    def n_kept(self) -> int:
        return int(np.count_nonzero(self.keep))


# =====================================================================
# Term names and marginality
# =====================================================================


def default_term_names(
    X: NDArray[np.floating[Any]],
    assignment: TermAssignment,
) -> tuple[str, ...]:
    """
    Name terms when the caller supplies no names.

    Term 1 is 'Intercept' when it has no columns or is a single column of
    ones; every other term k is 'x{k}'. Default names carry no interaction
    structure, so no term is marginal to another.
    """
    names = [f"x{k}" for k in range(1, assignment.n_terms + 1)]
    cols = assignment.columns(1)
    if len(cols) == 0 or (len(cols) == 1 and np.all(X[:, cols[0]] == 1.0)):
        names[0] = INTERCEPT
    return tuple(names)


def term_factors(term_names: Sequence[str]) -> tuple[frozenset[str], ...]:
    """
    Generating factors of each term.

    'A:B' is generated by {'A', 'B'}; the intercept by the empty set.
    """
    factors = []
    for name in term_names:
        if name in (INTERCEPT, '(Intercept)', '1'):
            factors.append(frozenset())
        else:
            factors.append(frozenset(part.strip() for part in name.split(':')))
    return tuple(factors)


def contains(candidate: frozenset[str], target: frozenset[str]) -> bool:
    """
    Whether a term generated by `candidate` contains the term `target`.

    A:B contains A and B; no term contains itself.
    """
    return target < candidate


def selectcoef(factors: Sequence[frozenset[str]], term_id: int) -> frozenset[int]:
    """
    Terms kept in the model when computing the Type II SS of `term_id`.

    Every term that does not contain `term_id` stays (including `term_id`
    itself); terms that contain it are dropped so its SS is adjusted only
    for terms at the same or lower order.

    Args:
        factors: Generating factors per term (see term_factors)
        term_id: 1-based id of the tested term

    Returns:
        Set of 1-based term ids
    """
    target = factors[term_id - 1]
    return frozenset(
        k for k, candidate in enumerate(factors, start=1)
        if not contains(candidate, target)
    )
