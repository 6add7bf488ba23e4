from clock import Clock, system_clock
from lifecycle import LifecycleController

_controller = LifecycleController()


def get_clock() -> Clock:
    # overridden in tests with a FixedClock
    return system_clock


def get_controller() -> LifecycleController:
    return _controller
