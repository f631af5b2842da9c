"""SOBP weight optimisation."""

from pbs_dose.optimization.weight_solver import WeightSolver, WeightSolveResult

__all__ = [
    "WeightSolver",
    "WeightSolveResult",
]
