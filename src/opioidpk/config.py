# src/opioidpk/config.py
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Optional

from .errors import InvalidParameter
from .helpers import require_fraction, require_positive
from .parameters import GENERAL
from .solvers import DEFAULT_TIME_STEP_H, SOLVERS
from .types import RenalPath

if TYPE_CHECKING:
    from .parameters import ParameterStore


@dataclass(frozen=True)
class SimulationSettings:
    """
    Engine-wide settings for a simulation request.

    time_step_h             : default output resolution when the regimen does not set one
    normal_crcl_ml_min      : CrCl treated as normal renal function (algebraic renal path)
    steady_state_proportion : fraction of steady state reported as "reached"
    renal_path              : which renal adjustment sets the effective half-life
    solver                  : "superposition" (closed form) or "ode" (scipy cross-check)
    max_workers             : thread count for batch requests (None = executor default)
    """
    time_step_h: float = DEFAULT_TIME_STEP_H
    normal_crcl_ml_min: float = 100.0
    steady_state_proportion: float = 0.97
    renal_path: RenalPath = RenalPath.CATEGORICAL
    solver: str = "superposition"
    max_workers: Optional[int] = None

    def __post_init__(self):
        require_positive("time_step_h", self.time_step_h)
        require_positive("normal_crcl_ml_min", self.normal_crcl_ml_min)
        require_fraction("steady_state_proportion", self.steady_state_proportion, low_open=True, high_open=True)
        object.__setattr__(self, "renal_path", RenalPath.parse(self.renal_path))
        if self.solver not in SOLVERS:
            raise InvalidParameter(f"Unknown solver {self.solver!r}. Valid options: {', '.join(SOLVERS)}")
        if self.max_workers is not None and (not isinstance(self.max_workers, int) or self.max_workers < 1):
            raise InvalidParameter(f"max_workers must be a positive integer (got {self.max_workers!r}).")

    @classmethod
    def from_store(cls, store: "ParameterStore", **overrides) -> "SimulationSettings":
        """Take normal CrCl and the steady-state threshold from the table's general rows."""
        base = cls(
            normal_crcl_ml_min=store.get_float(GENERAL, "normal_crcl", cls.normal_crcl_ml_min),
            steady_state_proportion=store.get_float(GENERAL, "steady_state_threshold",
                                                    cls.steady_state_proportion),
        )
        return replace(base, **overrides) if overrides else base
