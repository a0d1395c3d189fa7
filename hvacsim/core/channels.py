from enum import Enum


class ConvErrorCallType(Enum):
    """
    Residual channels tracked per air system.

    Each member carries the label and unit used in diagnostic text and the
    tolerance applied when no configured override exists.
    """

    MASS_FLOW = ("mass flow rate", "kg/s", 0.01)
    HUMIDITY_RATIO = ("humidity ratio", "kgWater/kgDryAir", 0.0001)
    TEMPERATURE = ("temperature", "C", 0.01)
    ENERGY = ("energy", "W", 10.0)
    CO2 = ("CO2 concentration", "ppm", 1.0)
    GENERIC = ("generic contaminant concentration", "ppm", 1.0)

    def __init__(self, label: str, unit: str, default_tolerance: float):
        self.label = label
        self.unit = unit
        self.default_tolerance = default_tolerance

    @property
    def key(self) -> str:
        """Configuration key, e.g. ``mass_flow``."""
        return self.name.lower()

    def format_value(self, value: float) -> str:
        if self is ConvErrorCallType.HUMIDITY_RATIO:
            return f"{value:.6f}"
        if self in (ConvErrorCallType.ENERGY, ConvErrorCallType.CO2, ConvErrorCallType.GENERIC):
            return f"{value:.2f}"
        return f"{value:.4f}"
