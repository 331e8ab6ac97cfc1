from enum import Enum
import math

import numpy

from ..communication import SerialCommunicator, report
from ..interface import SimulationInterface
from ..parameters import ConfigurationError, get_parameter
from ..topology import Topology
from .convergence import ConvergenceTest

__all__ = ["Optimizer", "OptimizerState"]


class OptimizerState(Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    ITERATING = "iterating"
    CONVERGED = "converged"
    FAILED = "failed"


class Optimizer(object):
    """An abstract base class that represents a topology optimizer.

    Subclasses implement :meth:`initialize` and :meth:`optimize`. The design
    field is exposed as :attr:`design` and the outcome of the convergence test
    as :attr:`status`."""

    def __init__(self, parameters):
        self.__check_arguments(parameters)

        #: parameters: a dictionary of parameters.
        self.parameters = parameters

        #: topology: bounds and initial value of the design field.
        self.topology = Topology.from_parameters(parameters)

        #: convergence: the stopping test of the outer loop.
        self.convergence = ConvergenceTest.from_parameters(parameters)

        self.verbose = get_parameter(parameters, "verbose", "bool", True)

        self.interface = None
        self.comm = SerialCommunicator()
        self.state = OptimizerState.UNINITIALIZED

        self.num_opt_dofs = 0
        self.total_volume = 0.0
        self.iterations = 0
        self.p = None
        self.p_last = None
        self.f = 0.0
        self.f_last = 0.0

    def __check_arguments(self, parameters):
        if not isinstance(parameters, dict):
            raise ConfigurationError("parameters should be a dictionary, got %r." % (parameters,))

    def set_interface(self, interface):
        """Bind the simulation that evaluates objective, constraint and volume."""
        if not isinstance(interface, SimulationInterface):
            raise ConfigurationError("interface should be a SimulationInterface, got %r." % (interface,))
        self.interface = interface

    def set_communicator(self, comm):
        """Use `comm` for the reductions across workers."""
        self.comm = comm

    def initialize(self):
        raise NotImplementedError("This class is abstract.")

    def optimize(self):
        raise NotImplementedError("This class is abstract.")

    @property
    def status(self):
        """The :class:`ConvergenceStatus` of the latest convergence check."""
        return self.convergence.status

    @property
    def design(self):
        """A copy of the current density field."""
        if self.p is None:
            return None
        return self.p.copy()

    def _check_interface(self):
        if self.interface is None:
            raise ConfigurationError("Optimizer requires a valid simulation interface. Call set_interface first.")

    def _report(self, msg, *args):
        report(self.comm, self.verbose, msg, *args)

    def compute_norm(self, p):
        """Return the L2 norm of p over all workers."""
        norm = self.comm.sum_all(float(numpy.dot(p, p)))
        return math.sqrt(norm) if norm > 0.0 else 0.0

    def compute_diff_norm(self, p, p_last):
        """Return the L2 norm of p - p_last over all workers."""
        diff = p - p_last
        norm = self.comm.sum_all(float(numpy.dot(diff, diff)))
        return math.sqrt(norm) if norm > 0.0 else 0.0
