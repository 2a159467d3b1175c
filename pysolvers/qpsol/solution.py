"""
QP solution types.

Contains the parameter payload and user-facing solution wrapper.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TYPE_CHECKING
import numpy as np
from numpy.typing import NDArray

from pysolvers.core.result import Result
from pysolvers.core.status import Classification, StatusKind

if TYPE_CHECKING:
    from pysolvers.qpsol.design import QPDesign


@dataclass(frozen=True)
class QPParams:
    """
    Parameter payload for a QP solve.

    Every field is None when the outcome carries no iterate (numerical
    failure, fatal error) or when the caller did not request that output.
    Multipliers follow the convention Hx + g + lam_x + A'lam_a = 0:
    negative at an active lower bound, positive at an active upper bound.
    """
    x: NDArray[np.float64] | None
    lam_x: NDArray[np.float64] | None
    lam_a: NDArray[np.float64] | None
    cost: float | None
    iterations: int


@dataclass
class QPSolution:
    """
    User-facing QP results.

    Wraps the backend Result and provides convenient accessors for the
    primal and dual solution and the classified status.
    """
    _result: Result[QPParams]
    _design: 'QPDesign'

    @property
    def x(self) -> NDArray[np.float64] | None:
        return self._result.params.x

    @property
    def lam_x(self) -> NDArray[np.float64] | None:
        return self._result.params.lam_x

    @property
    def lam_a(self) -> NDArray[np.float64] | None:
        return self._result.params.lam_a

    @property
    def lam(self) -> NDArray[np.float64] | None:
        """All n + m multipliers, simple bounds first."""
        if self.lam_x is None or self.lam_a is None:
            return None
        return np.concatenate([self.lam_x, self.lam_a])

    @property
    def cost(self) -> float | None:
        return self._result.params.cost

    @property
    def iterations(self) -> int:
        return self._result.params.iterations

    @property
    def status(self) -> Classification:
        return self._result.status

    @property
    def kind(self) -> StatusKind:
        return self._result.status.kind

    @property
    def success(self) -> bool:
        return self._result.status.ok

    @property
    def has_iterate(self) -> bool:
        """True for converged and budget-limited outcomes."""
        return self._result.status.kind.has_iterate

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

    def raise_for_status(self) -> QPSolution:
        """Raise the matching exception unless the solve succeeded; else return self."""
        self._result.status.raise_for_status(self._result.info.get('instance'))
        return self

    def summary(self) -> str:
        """Generate a plain-text summary of the solve."""
        status = self._result.status
        lines = [
            "Quadratic Program Results",
            "=" * 60,
            f"Backend: {self.backend_name}",
            f"Variables: {self._design.n}",
            f"Constraints: {self._design.m}",
            f"Status: {status.kind.value} (code {status.code}): {status.message}",
            f"Iterations: {self.iterations}",
            f"Start: {self.info.get('start', 'n/a')}",
        ]
        if self.cost is not None:
            lines.append(f"Cost: {self.cost:.10g}")
        if self.x is not None:
            lines.append("")
            lines.append(f"{'':>8} {'x':>14} {'lam_x':>14}")
            for i, xi in enumerate(self.x):
                lam = '' if self.lam_x is None else f"{self.lam_x[i]:14.6g}"
                lines.append(f"{f'x[{i}]':>8} {xi:14.6g} {lam}")
        if self.lam_a is not None and self.lam_a.size:
            lines.append("")
            lines.append(f"{'':>8} {'lam_a':>14}")
            for i, li in enumerate(self.lam_a):
                lines.append(f"{f'a[{i}]':>8} {li:14.6g}")
        if self.warnings:
            lines.append("")
            lines.append("Warnings:")
            lines.extend(f"  - {w}" for w in self.warnings)
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"QPSolution(status={self.kind.value}, cost={self.cost}, "
            f"iterations={self.iterations}, backend={self.backend_name!r})"
        )
