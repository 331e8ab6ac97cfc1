import logging
import math

import numpy

from ..parameters import ConfigurationError, get_parameter, get_section
from .history import RunningWindow
from .optimizer import Optimizer, OptimizerState
from .volume_enforcement import VolumeEnforcer, VolumeEnforcementError

__all__ = ["OCOptimizer"]

gradient_modes = ("none", "adjoint")


class OCOptimizer(Optimizer):
    """Minimize an objective under a volume constraint with the optimality
    criteria method.

    Each iteration evaluates the objective, constraint and volume gradients,
    adapts the target volume fraction when the constraint is violated, and
    asks the :class:`VolumeEnforcer` for the density field that meets the
    target.

    Example::

        optimizer = OCOptimizer(parameters)
        optimizer.set_interface(simulation)
        optimizer.initialize()
        p = optimizer.optimize()
    """

    #: max_volume_step: largest change of the target per iteration, relative to the target.
    max_volume_step = 0.1

    def __init__(self, parameters):
        Optimizer.__init__(self, parameters)

        #: enforcer: the volume multiplier search.
        self.enforcer = VolumeEnforcer.from_parameters(parameters, self.topology)

        volume = get_section(parameters, "volume", required=True)
        self.volume_fraction = get_parameter(volume, "target_fraction", "float", path="volume")
        self.min_fraction = get_parameter(volume, "min_fraction", "float", 0.1, path="volume")
        self.max_fraction = get_parameter(volume, "max_fraction", "float", 1.0, path="volume")
        if self.volume_fraction <= 0.0:
            raise ConfigurationError("volume.target_fraction must be positive, got %s." % self.volume_fraction)
        if not 0.0 < self.min_fraction <= self.max_fraction:
            raise ConfigurationError("volume.min_fraction = %s and volume.max_fraction = %s must satisfy "
                                     "0 < min_fraction <= max_fraction." % (self.min_fraction, self.max_fraction))
        if not self.min_fraction <= self.volume_fraction <= self.max_fraction:
            raise ConfigurationError("volume.target_fraction = %s lies outside [min_fraction, max_fraction] = [%s, %s]."
                                     % (self.volume_fraction, self.min_fraction, self.max_fraction))
        self.volume_fraction_last = self.volume_fraction

        constraint = get_section(parameters, "constraint")
        mode = get_parameter(constraint, "gradient_mode", "str", "none", path="constraint").lower()
        if mode not in gradient_modes:
            raise ConfigurationError("Unknown constraint.gradient_mode '%s'. Options are ('none', 'adjoint')." % mode)
        self.gradient_mode = mode

        self.volume_probe = get_parameter(constraint, "volume_probe", "float", 0.001, path="constraint")
        if self.volume_probe == 0.0:
            raise ConfigurationError("constraint.volume_probe must be nonzero.")
        self.fallback_step = get_parameter(constraint, "fallback_step", "float", 0.001, path="constraint")
        history_size = get_parameter(constraint, "history_size", "int", 10, path="constraint")
        if history_size < 1:
            raise ConfigurationError("constraint.history_size must be positive, got %s." % history_size)

        #: sensitivity_history: recent estimates of d(constraint)/d(volume fraction).
        self.sensitivity_history = RunningWindow(history_size)

        self.g = 0.0
        self.g_last = 0.0
        self.dfdp = None
        self.dgdp = None
        self.dvdp = None

    def initialize(self):
        """Allocate the iterate arrays and push the initial density field to the simulation."""
        self._check_interface()

        n = self.interface.get_num_opt_dofs()
        self.num_opt_dofs = n

        self.p = numpy.full(n, self.topology.initial_value, dtype=float)
        self.p_last = numpy.zeros(n)
        self.dfdp = numpy.zeros(n)
        self.dvdp = numpy.zeros(n)
        if self.gradient_mode != "none":
            self.dgdp = numpy.zeros(n)

        self.total_volume = self.comm.sum_all(self.interface.compute_total_volume())
        self.enforcer.interface = self.interface
        self.enforcer.total_volume = self.total_volume
        self.enforcer.comm = self.comm

        self.interface.initialize_topology(self.p)
        self.state = OptimizerState.READY

    def optimize(self):
        """Iterate until the convergence test stops the loop.

        Returns:
            numpy.ndarray: A copy of the optimized density field.

        Raises:
            VolumeEnforcementError: if the volume constraint cannot be enforced.
            Errors raised by the simulation interface propagate; in every case
            the optimizer is left FAILED.
        """
        if self.state not in (OptimizerState.READY, OptimizerState.ITERATING):
            raise ConfigurationError("OCOptimizer.optimize requires a successful initialize(), "
                                     "the optimizer is %s." % self.state.value)

        self.state = OptimizerState.ITERATING
        try:
            self._iterate()
        except Exception:
            self.state = OptimizerState.FAILED
            raise
        self.state = OptimizerState.CONVERGED
        return self.design

    def _evaluate(self):
        if self.gradient_mode == "adjoint":
            f, dfdp, g, dgdp = self.interface.compute_with_constraint_gradient(self.p)
            self.dgdp[:] = dgdp
        else:
            f, dfdp, g = self.interface.compute(self.p)
        self.f = f
        self.g = g
        self.dfdp[:] = dfdp

    def _evaluate_volume(self):
        _, dvdp = self.interface.compute_volume_gradient(self.p)
        self.dvdp[:] = dvdp

    def _update_topology(self, target=None):
        if target is None:
            target = self.volume_fraction
        return self.enforcer.enforce(self.p, self.p_last, self.dfdp, self.dvdp, target)

    def _iterate(self):
        self._evaluate()
        self.p_last[:] = self.p
        self._evaluate_volume()
        self._update_topology()

        global_f = self.comm.sum_all(self.f)
        self.convergence.initialize(global_f, self.compute_norm(self.p))

        iteration = 0
        converged = False
        while not converged:
            self.f_last = self.f
            self.g_last = self.g
            self._evaluate()
            self._evaluate_volume()
            self.p_last[:] = self.p

            if self.g != 0.0:
                # The constraint is not satisfied: adapt the volume budget.
                self._update_volume_fraction()

            volume = self._update_topology()

            self._report("Optimization status (iteration %d): Objective = %g, Volume fraction = %g",
                         iteration, self.f, volume / self.total_volume)

            delta_f = self.comm.sum_all(self.f - self.f_last)
            delta_p = self.compute_diff_norm(self.p, self.p_last)

            report = self.verbose and self.comm.is_reporting()
            converged = self.convergence.is_converged(delta_f, delta_p, iteration, report=report)

            iteration += 1
            self.iterations = iteration

    def _update_volume_fraction(self):
        """Move the target volume fraction toward satisfying the constraint."""
        if self.gradient_mode == "adjoint":
            self._update_topology(self.volume_fraction + self.volume_probe)
            dg = self.comm.sum_all(float(numpy.dot(self.dgdp, self.p - self.p_last)))
            delta = self._volume_step(dg / self.volume_probe)
        elif self.volume_fraction != self.volume_fraction_last:
            self.sensitivity_history.push((self.g - self.g_last) / (self.volume_fraction - self.volume_fraction_last))
            delta = self._volume_step(self.sensitivity_history.mean())
        else:
            delta = self.fallback_step

        limit = self.max_volume_step * self.volume_fraction
        if abs(delta) > limit:
            delta = math.copysign(limit, delta)

        self.volume_fraction_last = self.volume_fraction
        self.volume_fraction = min(max(self.volume_fraction + delta, self.min_fraction), self.max_fraction)

    def _volume_step(self, dgdv):
        if dgdv == 0.0:
            if self.comm.is_reporting():
                logging.warning("The constraint is insensitive to the volume fraction; keeping the volume target.")
            return 0.0
        return -self.g / dgdv
