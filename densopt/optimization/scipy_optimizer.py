import numpy
from scipy.optimize import minimize as scipy_minimize

from ..parameters import ConfigurationError, get_parameter, get_section
from .convergence import ConvergenceStatus
from .optimizer import Optimizer, OptimizerState

__all__ = ["SciPyOptimizer", "SciPyConvergenceError", "ForceStop", "scipy_methods"]


scipy_methods = {"SLSQP": "The SLSQP implementation in scipy.",
                 "trust-constr": "The trust-region constrained algorithm implemented in scipy."}


class SciPyConvergenceError(RuntimeError):
    """scipy stopped without converging and without a forced stop."""
    pass


class OptimizationStopped(Exception):
    """Raised inside a scipy callback to unwind the library after a stop request."""

    def __init__(self, code):
        Exception.__init__(self, "Optimization stopped: %s" % code.value)
        self.code = code


class ForceStop(object):
    """A cancellation token shared by the optimizer and the callbacks handed to scipy.

    The convergence test requests the stop; the next callback scipy makes
    raises :class:`OptimizationStopped`."""

    def __init__(self):
        self.requested = False
        self.code = None

    def request(self, code):
        self.requested = True
        self.code = code

    def reset(self):
        self.requested = False
        self.code = None

    def check(self):
        if self.requested:
            raise OptimizationStopped(self.code)


class SciPyOptimizer(Optimizer):
    """Solve the volume constrained problem with a general nonlinear
    programming method from :func:`scipy.optimize.minimize`.

    The volume fraction is imposed as an inequality constraint and the density
    bounds as box bounds. The convergence test runs on every objective
    evaluation and stops scipy through a :class:`ForceStop` token. Only serial
    runs are supported."""

    def __init__(self, parameters):
        Optimizer.__init__(self, parameters)

        self.method = get_parameter(parameters, "method", "str", "SLSQP")
        if self.method not in scipy_methods:
            raise ConfigurationError("Unknown SciPy method '%s'. Options are %s."
                                     % (self.method, tuple(scipy_methods.keys())))

        volume = get_section(parameters, "volume", required=True)
        self.volume_fraction = get_parameter(volume, "target_fraction", "float", path="volume")
        self.volume_tolerance = get_parameter(volume, "convergence_tolerance", "float", path="volume")

        #: options: passed on to scipy.optimize.minimize.
        self.options = dict(get_section(parameters, "options"))

        #: token: the forced-stop channel of the running optimization.
        self.token = ForceStop()

        #: result: the scipy OptimizeResult, None after a forced stop.
        self.result = None

        self._status = None
        self._gradient = None

    def initialize(self):
        self._check_interface()
        if self.comm.size != 1:
            raise ConfigurationError("The SciPy package doesn't work in parallel. Use the OC package.")

        n = self.interface.get_num_opt_dofs()
        self.num_opt_dofs = n
        self.p = numpy.full(n, self.topology.initial_value, dtype=float)
        self.p_last = numpy.zeros(n)
        self._gradient = numpy.zeros(n)

        self.total_volume = self.comm.sum_all(self.interface.compute_total_volume())
        self.interface.initialize_topology(self.p)
        self.state = OptimizerState.READY

    @property
    def status(self):
        if self._status is not None:
            return self._status
        return self.convergence.status

    def _objective(self, x):
        self.token.check()

        self.f_last = self.f
        self.p_last[:] = self.p
        self.p[:] = numpy.clip(x, *self.topology.bounds)

        f, dfdp = self.interface.compute_objective(self.p)
        self.f = f
        self._gradient[:] = dfdp

        self._report("Optimizer: objective value is: %g", f)

        delta_f = self.comm.sum_all(self.f - self.f_last)
        delta_p = self.compute_diff_norm(self.p, self.p_last)
        report = self.verbose and self.comm.is_reporting()
        if self.convergence.is_converged(delta_f, delta_p, self.iterations, report=report):
            self.token.request(self.convergence.status)
        self.iterations += 1

        return f

    def _objective_gradient(self, x):
        self.token.check()
        x = numpy.clip(x, *self.topology.bounds)
        if numpy.array_equal(x, self.p):
            return self._gradient.copy()
        _, dfdp = self.interface.compute_objective(x)
        return numpy.array(dfdp, dtype=float)

    def _volume_constraint(self, x):
        self.token.check()
        volume = self.interface.compute_volume(numpy.clip(x, *self.topology.bounds))
        self._report("Optimizer: computed volume is: %g", volume)
        return (self.volume_fraction + self.volume_tolerance) * self.total_volume - volume

    def _volume_constraint_jacobian(self, x):
        self.token.check()
        _, dvdp = self.interface.compute_volume_gradient(numpy.clip(x, *self.topology.bounds))
        return -numpy.array(dvdp, dtype=float)

    def optimize(self):
        """Run scipy until the convergence test or scipy itself stops.

        Returns:
            numpy.ndarray: A copy of the optimized density field.
        """
        if self.state not in (OptimizerState.READY, OptimizerState.ITERATING):
            raise ConfigurationError("SciPyOptimizer.optimize requires a successful initialize(), "
                                     "the optimizer is %s." % self.state.value)
        self.state = OptimizerState.ITERATING

        f, _ = self.interface.compute_objective(self.p)
        self.f = f
        self.convergence.initialize(self.comm.sum_all(f), self.compute_norm(self.p))
        self.token.reset()
        self._status = None

        options = dict(self.options)
        options.setdefault("maxiter", 10 * self.convergence.max_iterations)
        constraints = [dict(type="ineq", fun=self._volume_constraint, jac=self._volume_constraint_jacobian)]
        bounds = [self.topology.bounds] * self.num_opt_dofs

        try:
            result = scipy_minimize(self._objective, self.p.copy(), method=self.method,
                                    jac=self._objective_gradient, bounds=bounds,
                                    constraints=constraints, options=options)
        except OptimizationStopped as e:
            self._report("Optimizer converged. Objective value = %g, convergence code: %s", self.f, e.code.value)
            self.state = OptimizerState.CONVERGED
            return self.design
        except Exception:
            self.state = OptimizerState.FAILED
            raise

        self.result = result
        if not result.success:
            self.state = OptimizerState.FAILED
            raise SciPyConvergenceError("Optimization failed: %s" % result.message)

        self.p[:] = numpy.clip(result.x, *self.topology.bounds)
        self._status = ConvergenceStatus.CONVERGED
        self.state = OptimizerState.CONVERGED
        return self.design
