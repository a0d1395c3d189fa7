class HVACManagerError(RuntimeError):
    """Base class for errors raised by the convergence controller."""


class FlowResolutionError(HVACManagerError):
    """System and zone flow limits could not be made consistent; the model is infeasible."""

    def __init__(self, air_sys_num: int, message: str):
        super().__init__(message)
        self.air_sys_num = air_sys_num
