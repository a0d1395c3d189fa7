from hvacsim.core.config import HVACManagerConfig, load_config
from hvacsim.core.context import EnvironmentContext
from hvacsim.manager.coordinator import ConvergenceCoordinator
from hvacsim.manager.factory import HVACManagerFactory

__all__ = [
    "ConvergenceCoordinator",
    "EnvironmentContext",
    "HVACManagerConfig",
    "HVACManagerFactory",
    "load_config",
]
