from dataclasses import dataclass


@dataclass
class EnvironmentContext:
    """
    Run-scoped lifecycle state handed to the coordinator on every timestep.

    Created once per run. The surrounding driver calls ``on_new_environment()``
    at the start of each design day or run period; the coordinator consumes
    the pending reset on its next timestep.
    """

    environment_name: str = ""
    warmup: bool = False
    timestep_label: str = ""

    one_time_setup_done: bool = False
    environment_reset_pending: bool = True

    def on_new_environment(self, name: str, warmup: bool = False) -> None:
        self.environment_name = name
        self.warmup = warmup
        self.environment_reset_pending = True

    def end_warmup(self) -> None:
        self.warmup = False

    def mark_one_time_setup_done(self) -> None:
        self.one_time_setup_done = True

    def mark_environment_ready(self) -> None:
        self.environment_reset_pending = False

    @property
    def location(self) -> str:
        """Environment and timestep description used in warning text."""
        if self.timestep_label:
            return f"{self.environment_name}, {self.timestep_label}"
        return self.environment_name
