"""Configuration for the convergence controller, loaded from YAML with dacite."""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

from dacite import Config, from_dict
import yaml

from hvacsim.core.channels import ConvErrorCallType
from hvacsim.core.residuals import DEFAULT_TRACKED_LEGS


@dataclass(frozen=True, slots=True, kw_only=True)
class ToleranceConfig:
    """Per-channel residual tolerances."""

    mass_flow: float = ConvErrorCallType.MASS_FLOW.default_tolerance
    humidity_ratio: float = ConvErrorCallType.HUMIDITY_RATIO.default_tolerance
    temperature: float = ConvErrorCallType.TEMPERATURE.default_tolerance
    energy: float = ConvErrorCallType.ENERGY.default_tolerance
    co2: float = ConvErrorCallType.CO2.default_tolerance
    generic: float = ConvErrorCallType.GENERIC.default_tolerance

    def __post_init__(self):
        for channel in ConvErrorCallType:
            if getattr(self, channel.key) <= 0.0:
                raise ValueError(f"Tolerance for {channel.label} must be positive.")

    def as_mapping(self) -> Dict[ConvErrorCallType, float]:
        return {channel: getattr(self, channel.key) for channel in ConvErrorCallType}


@dataclass(frozen=True, slots=True, kw_only=True)
class FlowResolutionConfig:
    max_passes: int = 5
    flow_tolerance: float = 1e-9  # kg/s; smaller changes do not count as an adjustment

    def __post_init__(self):
        if self.max_passes < 1:
            raise ValueError("max_passes must be at least 1.")
        if self.flow_tolerance < 0.0:
            raise ValueError("flow_tolerance must be non-negative.")


@dataclass(frozen=True, slots=True, kw_only=True)
class LockoutConfig:
    deadband: float = 1e-6  # W

    def __post_init__(self):
        if self.deadband < 0.0:
            raise ValueError("Deadband must be non-negative.")


@dataclass(frozen=True, slots=True, kw_only=True)
class HVACManagerConfig:
    """
    Settings consumed by the convergence controller.

    ``max_iter`` and ``max_err_count`` have no defaults; the surrounding
    simulation must supply them.
    """

    max_iter: int
    max_err_count: int
    tolerances: ToleranceConfig = field(default_factory=ToleranceConfig)
    tracked_legs: int = DEFAULT_TRACKED_LEGS
    flow_resolution: FlowResolutionConfig = field(default_factory=FlowResolutionConfig)
    lockout: LockoutConfig = field(default_factory=LockoutConfig)
    air_balance_tolerance: float = 1e-3  # kg/s
    zone_inlet_log_depth: int = DEFAULT_TRACKED_LEGS

    def __post_init__(self):
        if self.max_iter < 1:
            raise ValueError("max_iter must be at least 1.")
        if self.max_err_count < 0:
            raise ValueError("max_err_count must be non-negative.")
        if self.tracked_legs < 1:
            raise ValueError("tracked_legs must be at least 1.")
        if self.air_balance_tolerance < 0.0:
            raise ValueError("air_balance_tolerance must be non-negative.")
        if self.zone_inlet_log_depth < 1:
            raise ValueError("zone_inlet_log_depth must be at least 1.")


def config_from_dict(data: Mapping[str, Any]) -> HVACManagerConfig:
    return from_dict(HVACManagerConfig, dict(data), config=Config(strict=True, cast=[float]))


def load_config(path: str) -> HVACManagerConfig:
    """Read an ``HVACManagerConfig`` from a YAML file."""
    with open(path, "r") as file:
        yaml_cfg = yaml.safe_load(file) or {}
    if "hvac_manager" in yaml_cfg:
        yaml_cfg = yaml_cfg["hvac_manager"]
    return config_from_dict(yaml_cfg)
