from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Sequence, Tuple
import logging

import numpy as np

from hvacsim.core.channels import ConvErrorCallType
from hvacsim.core.interfaces import OutputReporter
from hvacsim.core.residuals import LEG_NAMES

logger = logging.getLogger(__name__)


class LoggingOutputReporter(OutputReporter):
    """Writes diagnostic text to the standard logging module."""

    def __init__(self, name: Optional[str] = None):
        self.logger = logging.getLogger(name or f"{__name__}.output")

    def log_severe(self, text: str) -> None:
        self.logger.error(text)

    def log_fatal(self, text: str) -> None:
        self.logger.critical(text)


@dataclass(slots=True)
class ChannelErrorRecord:
    """Non-convergence history of one (air system, channel) pair."""

    occurrences: int = 0
    messages: int = 0

    @property
    def suppressed(self) -> int:
        return self.occurrences - self.messages


class ConvergenceDiagnostics:
    """
    Formats and throttles air-system non-convergence messages.

    Every (air system, channel) pair has its own counter: the first
    ``max_err_count`` occurrences produce a detailed message, later ones are
    only counted and show up in ``summary()``.
    """

    def __init__(self, reporter: OutputReporter, max_err_count: int, air_system_names: Optional[Dict[int, str]] = None):
        if max_err_count < 0:
            raise ValueError("max_err_count must be non-negative.")
        self.reporter = reporter
        self.max_err_count = max_err_count
        self.air_system_names = dict(air_system_names or {})
        self._records: Dict[Tuple[int, ConvErrorCallType], ChannelErrorRecord] = {}

    def report(
        self,
        air_sys_num: int,
        channel: ConvErrorCallType,
        not_converged: Sequence[bool],
        demand_to_supply: Iterable[float],
        supply_deck1_to_demand: Iterable[float],
        supply_deck2_to_demand: Iterable[float],
    ) -> bool:
        """Record one occurrence; returns True when message text was emitted."""
        if len(not_converged) != len(LEG_NAMES):
            raise ValueError(f"Expected {len(LEG_NAMES)} not-converged flags, got {len(not_converged)}.")
        if not any(not_converged):
            return False

        record = self._records.setdefault((air_sys_num, channel), ChannelErrorRecord())
        record.occurrences += 1
        if record.messages >= self.max_err_count:
            logger.debug(
                "Suppressed convergence message %d for air system %d, %s",
                record.occurrences,
                air_sys_num,
                channel.label,
            )
            return False

        legs = tuple(
            np.asarray(list(values), dtype=float)
            for values in (demand_to_supply, supply_deck1_to_demand, supply_deck2_to_demand)
        )
        record.messages += 1
        text = self._format(air_sys_num, channel, not_converged, legs)
        if record.messages == self.max_err_count:
            text += "\n   Further messages for this air system and channel are suppressed."
        self.reporter.log_severe(text)
        return True

    def _format(
        self,
        air_sys_num: int,
        channel: ConvErrorCallType,
        not_converged: Sequence[bool],
        legs: Tuple[np.ndarray, ...],
    ) -> str:
        name = self.air_system_names.get(air_sys_num)
        system = f"Air System #{air_sys_num}" + (f" ({name})" if name else "")
        lines = [f"{system} did not converge for {channel.label} [{channel.unit}]"]

        leg_idx, slot, value = self._worst_leg(not_converged, legs)
        if leg_idx >= 0:
            lines.append(
                f"   Worst leg: {LEG_NAMES[leg_idx]}, slot {slot}, residual = {channel.format_value(value)}"
            )
        lines.append("   Check values should be close to zero.")
        for leg_name, flagged, values in zip(LEG_NAMES, not_converged, legs):
            rendered = ", ".join(channel.format_value(v) for v in values) or "-"
            marker = " (not converged)" if flagged else ""
            lines.append(f"   {leg_name.capitalize()}{marker}: {rendered}")
        return "\n".join(lines)

    @staticmethod
    def _worst_leg(not_converged: Sequence[bool], legs: Tuple[np.ndarray, ...]) -> Tuple[int, int, float]:
        worst = (-1, -1, 0.0)
        for leg_idx, (flagged, values) in enumerate(zip(not_converged, legs)):
            if not flagged or values.size == 0:
                continue
            slot = int(np.argmax(np.abs(values)))
            if worst[0] < 0 or abs(values[slot]) > abs(worst[2]):
                worst = (leg_idx, slot, float(values[slot]))
        return worst

    def occurrences(self, air_sys_num: int, channel: ConvErrorCallType) -> int:
        record = self._records.get((air_sys_num, channel))
        return record.occurrences if record else 0

    def messages_emitted(self, air_sys_num: int, channel: ConvErrorCallType) -> int:
        record = self._records.get((air_sys_num, channel))
        return record.messages if record else 0

    def summary(self) -> Dict[Tuple[int, ConvErrorCallType], ChannelErrorRecord]:
        return dict(self._records)

    def reset(self) -> None:
        self._records.clear()
