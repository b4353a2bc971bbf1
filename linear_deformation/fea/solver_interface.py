"""Abstract solver interface for linear deformation analyses."""
from __future__ import annotations

from abc import ABC, abstractmethod

from linear_deformation.fea.config import ModalConfig, StaticConfig
from linear_deformation.fea.results import ModalResult, StaticResult


class SolverInterface(ABC):
    """Abstract base for linear deformation solvers."""

    @abstractmethod
    def modal_analysis(self, config: ModalConfig) -> ModalResult:
        """Run free-vibration eigenvalue analysis."""
        ...

    @abstractmethod
    def static_analysis(self, config: StaticConfig) -> StaticResult:
        """Run linear static analysis."""
        ...
