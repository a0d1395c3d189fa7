"""Contracts of the collaborators the convergence controller drives but does not implement."""

from abc import ABC, abstractmethod
from typing import Iterable

from hvacsim.core.context import EnvironmentContext
from hvacsim.core.residuals import ResidualSample
from hvacsim.core.state import SimulationState


class SubsystemSimulator(ABC):
    """One coupled subsystem: plant loops, air loops, zone or non-zone equipment, electrical circuits."""

    @abstractmethod
    def simulate(self, state: SimulationState) -> None:
        """
        Solve the subsystem given the boundary conditions of the current sweep.

        Implementations mark other subsystems on ``state`` when their results
        invalidate those subsystems' last boundary conditions. They must honour
        ``state.first_hvac_iteration`` and ``state.lock_plant_flows``.
        """
        pass


class ResidualSource(ABC):
    """Exposes supply/demand residuals of the air systems after a sweep."""

    @abstractmethod
    def residual_samples(self) -> Iterable[ResidualSample]:
        pass


class OutputReporter(ABC):
    """Sink for diagnostic message text."""

    @abstractmethod
    def log_severe(self, text: str) -> None:
        pass

    @abstractmethod
    def log_fatal(self, text: str) -> None:
        pass


class HVACReporter(ABC):
    """Post-convergence bookkeeping; never influences convergence."""

    @abstractmethod
    def update_zone_group_loads(self, context: EnvironmentContext) -> None:
        pass

    @abstractmethod
    def report_air_heat_balance(self, context: EnvironmentContext) -> None:
        pass

    @abstractmethod
    def update_zone_inlet_convergence_log(self, context: EnvironmentContext) -> None:
        pass

    def reset(self) -> None:
        """Drop environment-scoped history. Called at the start of each environment."""
        pass


class NullHVACReporter(HVACReporter):
    def update_zone_group_loads(self, context: EnvironmentContext) -> None:
        pass

    def report_air_heat_balance(self, context: EnvironmentContext) -> None:
        pass

    def update_zone_inlet_convergence_log(self, context: EnvironmentContext) -> None:
        pass
