"""
User-facing ANOVA solution types.

Each solution wraps a Result[Params] and provides convenient accessors to
the table columns, the table as rows, and a plain-text summary in R's
layout.
"""

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray

from pyanova.core.result import Result
from pyanova.anova._common import AnovaParams, AnovaTableRow, MixedAnovaParams


def _rows(params: AnovaParams | MixedAnovaParams) -> tuple[AnovaTableRow, ...]:
    return tuple(
        AnovaTableRow(
            term=term,
            df=int(df),
            sum_sq=float(ss),
            mean_sq=float(ms),
            f_value=float(f),
            p_value=float(p),
        )
        for term, df, ss, ms, f, p in zip(
            params.terms, params.df, params.ss, params.mean_sq,
            params.fstat, params.pvalue,
        )
    )


def _table_lines(rows: tuple[AnovaTableRow, ...], width: int) -> list[str]:
    lines = [
        f"{'Source':<20} {'Df':>6} {'Sum Sq':>14} {'Mean Sq':>14} {'F value':>10} {'Pr(>F)':>12}",
        "-" * width,
    ]
    for row in rows:
        if np.isnan(row.f_value):
            lines.append(
                f"{row.term:<20} {row.df:>6} {row.sum_sq:>14.4f} "
                f"{row.mean_sq:>14.4f}"
            )
        else:
            sig = _significance_stars(row.p_value)
            lines.append(
                f"{row.term:<20} {row.df:>6} {row.sum_sq:>14.4f} "
                f"{row.mean_sq:>14.4f} {row.f_value:>10.4f} "
                f"{row.p_value:>12.4e} {sig}"
            )
    lines.append("-" * width)
    lines.append("Signif. codes:  0 '***' 0.001 '**' 0.01 '*' 0.05 '.' 0.1 ' ' 1")
    return lines


# =====================================================================
# AnovaSolution  (fixed effects)
# =====================================================================


@dataclass
class AnovaSolution:
    """
    User-facing result for a fixed-effects ANOVA.

    Produced by anova_lm(). Column arrays run over the term rows followed
    by the residual row.
    """
    _result: Result[AnovaParams]

    @property
    def table(self) -> tuple[AnovaTableRow, ...]:
        """ANOVA table (rows: term, df, SS, MS, F, p)."""
        return _rows(self._result.params)

    @property
    def terms(self) -> tuple[str, ...]:
        return self._result.params.terms

    @property
    def ss(self) -> NDArray:
        return self._result.params.ss

    @property
    def df(self) -> NDArray:
        return self._result.params.df

    @property
    def mean_sq(self) -> NDArray:
        return self._result.params.mean_sq

    @property
    def fstat(self) -> NDArray:
        return self._result.params.fstat

    @property
    def pvalue(self) -> NDArray:
        return self._result.params.pvalue

    @property
    def ss_type(self) -> int:
        return self._result.params.ss_type

    @property
    def n_obs(self) -> int:
        return self._result.params.n_obs

    @property
    def residual_df(self) -> int:
        return int(self.df[-1])

    @property
    def residual_ss(self) -> float:
        return float(self.ss[-1])

    @property
    def residual_ms(self) -> float:
        return float(self.mean_sq[-1])

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def summary(self) -> str:
        """Generate R-style ANOVA summary table."""
        lines = [
            f"Analysis of Variance Table (Type {self.ss_type} SS)",
            "=" * 80,
            f"Observations: {self.n_obs}",
            "",
        ]
        lines.extend(_table_lines(self.table, 80))
        for warning in self.warnings:
            lines.append(f"Warning: {warning}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"AnovaSolution(type={self.ss_type}, n={self.n_obs}, "
            f"terms={list(self.terms[:-1])})"
        )


# =====================================================================
# MixedAnovaSolution  (linear mixed model)
# =====================================================================


@dataclass
class MixedAnovaSolution:
    """
    User-facing result for a linear mixed-model ANOVA.

    Produced by anova_lme(). Term rows are followed by the between-subject
    and the within-subject residual rows.
    """
    _result: Result[MixedAnovaParams]

    @property
    def table(self) -> tuple[AnovaTableRow, ...]:
        return _rows(self._result.params)

    @property
    def terms(self) -> tuple[str, ...]:
        return self._result.params.terms

    @property
    def ss(self) -> NDArray:
        return self._result.params.ss

    @property
    def df(self) -> NDArray:
        return self._result.params.df

    @property
    def mean_sq(self) -> NDArray:
        return self._result.params.mean_sq

    @property
    def fstat(self) -> NDArray:
        return self._result.params.fstat

    @property
    def pvalue(self) -> NDArray:
        return self._result.params.pvalue

    @property
    def between(self) -> tuple[bool, ...]:
        """Between-subject flag per term row."""
        return self._result.params.between

    @property
    def ss_type(self) -> int:
        return self._result.params.ss_type

    @property
    def n_obs(self) -> int:
        return self._result.params.n_obs

    @property
    def n_groups(self) -> int:
        return self._result.params.n_groups

    @property
    def n_cells(self) -> int:
        return self._result.params.n_cells

    @property
    def group_name(self) -> str:
        return self._result.params.group_name

    @property
    def between_residual_df(self) -> int:
        return int(self.df[-2])

    @property
    def within_residual_df(self) -> int:
        return int(self.df[-1])

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def summary(self) -> str:
        """Generate R-style mixed-model ANOVA summary table."""
        lines = [
            f"Analysis of Variance Table, linear mixed model (Type {self.ss_type})",
            "=" * 80,
            f"Observations: {self.n_obs}",
            f"Groups: {self.group_name} ({self.n_groups}), "
            f"between-subject cells: {self.n_cells}",
            "",
        ]
        lines.extend(_table_lines(self.table, 80))
        between_terms = [t for t, b in zip(self.terms, self.between) if b]
        lines.append(f"Between-subject terms: {', '.join(between_terms) or 'none'}")
        for warning in self.warnings:
            lines.append(f"Warning: {warning}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"MixedAnovaSolution(type={self.ss_type}, n={self.n_obs}, "
            f"groups={self.n_groups}, terms={list(self.terms[:-2])})"
        )


def _significance_stars(p: float | None) -> str:
    """Return significance stars for a p-value."""
    if p is None or np.isnan(p):
        return ""
    if p < 0.001:
        return "***"
    if p < 0.01:
        return "**"
    if p < 0.05:
        return "*"
    if p < 0.1:
        return "."
    return ""
