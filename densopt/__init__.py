# flake8: noqa
from .parameters import ConfigurationError
from .topology import Topology
from .communication import SerialCommunicator, MPICommunicator
from .interface import SimulationInterface
from .optimization.history import RunningWindow
from .optimization.convergence import (
    ComboType,
    ConvergenceStatus,
    ConvergenceTest,
    AbsoluteDensityChange,
    RelativeDensityChange,
    AbsoluteObjectiveChange,
    RelativeObjectiveChange,
    AbsoluteRunningObjectiveChange,
    RelativeRunningObjectiveChange,
)
from .optimization.density_update import density_offset, oc_update
from .optimization.volume_enforcement import VolumeEnforcer, VolumeEnforcementError
from .optimization.optimizer import Optimizer, OptimizerState
from .optimization.oc_optimizer import OCOptimizer
from .optimization.scipy_optimizer import SciPyOptimizer, SciPyConvergenceError, ForceStop
from .optimization.optimization import create_optimizer, print_optimizer_packages
from importlib.metadata import metadata

meta = metadata("densopt")
__version__ = meta["Version"]
__author__ = meta.get("Author", "")
__license__ = meta["License"]
__email__ = meta["Author-email"]
__program_name__ = meta["Name"]


__all__ = [
    "ConfigurationError",
    "Topology",
    "SerialCommunicator",
    "MPICommunicator",
    "SimulationInterface",
    "RunningWindow",
    "ComboType",
    "ConvergenceStatus",
    "ConvergenceTest",
    "AbsoluteDensityChange",
    "RelativeDensityChange",
    "AbsoluteObjectiveChange",
    "RelativeObjectiveChange",
    "AbsoluteRunningObjectiveChange",
    "RelativeRunningObjectiveChange",
    "density_offset",
    "oc_update",
    "VolumeEnforcer",
    "VolumeEnforcementError",
    "Optimizer",
    "OptimizerState",
    "OCOptimizer",
    "SciPyOptimizer",
    "SciPyConvergenceError",
    "ForceStop",
    "create_optimizer",
    "print_optimizer_packages",
]
