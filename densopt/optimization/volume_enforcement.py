"""Search for the volume multiplier of the optimality criteria update.

The multiplier is the root of ``residual(lambda) = volume(p(lambda)) - target * total_volume``,
where ``p(lambda)`` is the result of :func:`oc_update`. The residual decreases
with the multiplier. The search brackets the root by bisection, refines it
with secant (Newton) steps using a finite-difference derivative, and falls
back to bisection if the refinement fails.
"""
import numpy

from ..communication import SerialCommunicator, report
from ..parameters import ConfigurationError, get_parameter, get_section
from .density_update import density_offset, oc_update

__all__ = ["VolumeEnforcer", "VolumeEnforcementError"]


class VolumeEnforcementError(RuntimeError):
    """The volume constraint could not be met within the acceptable tolerance."""

    def __init__(self, residual, target, iterations):
        self.residual = residual
        self.target = target
        self.iterations = iterations
        RuntimeError.__init__(
            self,
            "Enforcement of volume constraint failed: relative residual %g exceeds the acceptable "
            "tolerance after %d iterations (target volume fraction %g)." % (residual, iterations, target))


class _Bracket(object):
    """Multiplier bounds: the residual is positive at lower and non-positive at upper."""

    def __init__(self, lower, upper, upper_residual):
        self.lower = lower
        self.upper = upper
        self.lower_residual = None
        self.upper_residual = upper_residual

    def update(self, multiplier, residual):
        if residual > 0.0:
            self.lower = multiplier
            self.lower_residual = residual
        else:
            self.upper = multiplier
            self.upper_residual = residual

    def midpoint(self):
        return 0.5 * (self.lower + self.upper)


class VolumeEnforcer(object):
    """Finds densities whose volume matches a target volume fraction.

    Args:
        topology (Topology): Density bounds.
        move_limit (float): Largest change of a single density per update.
        stabilization_exponent (float): Exponent of the update.
        convergence_tolerance (float): Working tolerance, relative to the total volume.
        max_iterations (int): Cap on the bisection iterations.
        accept_tolerance (float): Tolerance the final residual must meet. Defaults to
            `convergence_tolerance`.
        use_newton_search (bool): Refine the bracketed multiplier with secant steps.
        interface (SimulationInterface): Evaluates the volume of a density field.
            Must be set before :meth:`enforce` is called.
        total_volume (float): Globally reduced volume of the domain.
        comm: The reduction service, defaults to :class:`SerialCommunicator`.
        verbose (bool): Log progress on the reporting worker.
    """

    newton_extra_iterations = 10
    relative_perturbation = 1e-5

    def __init__(self, topology, move_limit, stabilization_exponent, convergence_tolerance, max_iterations,
                 accept_tolerance=None, use_newton_search=True, interface=None, total_volume=None,
                 comm=None, verbose=True):
        self.topology = topology
        self.move_limit = move_limit
        self.stabilization_exponent = stabilization_exponent
        self.convergence_tolerance = convergence_tolerance
        self.max_iterations = max_iterations
        self.accept_tolerance = convergence_tolerance if accept_tolerance is None else accept_tolerance
        self.use_newton_search = use_newton_search
        self.interface = interface
        self.total_volume = total_volume
        self.comm = SerialCommunicator() if comm is None else comm
        self.verbose = verbose

        self.offset = density_offset(*topology.bounds)

        #: volume: the volume of the latest trial density field.
        self.volume = 0.0
        #: iterations: the iteration count of the phase that finished last.
        self.iterations = 0

    @classmethod
    def from_parameters(cls, parameters, topology):
        """Build the enforcer from the optimizer parameters. The interface, total
        volume and communicator are attached later by the optimizer."""
        move_limit = get_parameter(parameters, "move_limit", "float")
        stabilization_exponent = get_parameter(parameters, "stabilization_exponent", "float")
        if stabilization_exponent <= 0.0:
            raise ConfigurationError("stabilization_exponent must be positive, got %s." % stabilization_exponent)
        if move_limit <= 0.0:
            raise ConfigurationError("move_limit must be positive, got %s." % move_limit)

        section = get_section(parameters, "volume", required=True)
        tolerance = get_parameter(section, "convergence_tolerance", "float", path="volume")
        max_iterations = get_parameter(section, "max_iterations", "int", path="volume")
        if max_iterations < 1:
            raise ConfigurationError("volume.max_iterations must be positive, got %s." % max_iterations)
        accept_tolerance = get_parameter(section, "accept_tolerance", "float", tolerance, path="volume")
        use_newton_search = get_parameter(section, "use_newton_search", "bool", True, path="volume")
        verbose = get_parameter(parameters, "verbose", "bool", True)

        return cls(topology, move_limit, stabilization_exponent, tolerance, max_iterations,
                   accept_tolerance=accept_tolerance, use_newton_search=use_newton_search, verbose=verbose)

    def _report(self, msg, *args):
        report(self.comm, self.verbose, msg, *args)

    def _residual(self, multiplier, p, p_last, dfdp, dvdp, target_volume):
        """Update p for the given multiplier and return the global volume residual."""
        min_density, max_density = self.topology.bounds
        oc_update(p_last, dfdp, dvdp, multiplier, self.stabilization_exponent, self.move_limit,
                  min_density, max_density, offset=self.offset, out=p)
        self.volume = self.comm.sum_all(self.interface.compute_volume(p))
        return self.volume - target_volume

    def enforce(self, p, p_last, dfdp, dvdp, target):
        """Write into p the update of p_last that meets the volume fraction `target`.

        Returns:
            float: The globally reduced volume of the new density field.

        Raises:
            VolumeEnforcementError: if the final residual exceeds the acceptable tolerance.
        """
        if self.interface is None or self.total_volume is None:
            raise ConfigurationError("VolumeEnforcer requires a simulation interface and the total volume.")

        target_volume = target * self.total_volume
        tolerance = self.convergence_tolerance * self.total_volume
        args = (p, p_last, dfdp, dvdp, target_volume)

        dfdp_total = self.comm.sum_all(numpy.sum(dfdp))
        dvdp_total = self.comm.sum_all(numpy.sum(dvdp))
        # Before any evaluation the residual at the upper bound is taken to be
        # that of an empty domain.
        bracket = _Bracket(0.0, -10.0 * dfdp_total / dvdp_total, -target_volume)

        self._report("Volume enforcement: Target = %g", target)
        self._report("Volume enforcement: Beginning search with recursive bisection.")

        residual, niters = self._bisect(bracket, tolerance, args, stop_on_bracket=self.use_newton_search)
        converged = abs(residual) < tolerance

        if self.use_newton_search and not converged:
            if bracket.lower_residual is not None and bracket.upper_residual < 0.0:
                self._report("Volume enforcement: Bounds found. Switching to Newton search.")
                converged, residual, niters = self._newton_search(bracket, tolerance, args, niters)

            if not converged:
                self._report("Volume enforcement: Newton search failed. Switching back to recursive bisection.")
                residual, niters = self._bisect(bracket, tolerance, args)

        self.iterations = niters
        # A NaN residual fails the check.
        if not abs(residual) <= self.accept_tolerance * self.total_volume:
            raise VolumeEnforcementError(residual / self.total_volume, target, niters)

        return self.volume

    def _bisect(self, bracket, tolerance, args, stop_on_bracket=False):
        """Bisect the bracket until the residual is within tolerance or the
        iteration cap is reached. With stop_on_bracket the search also stops as
        soon as a positive residual bounds the root from below."""
        niters = 0
        while True:
            multiplier = bracket.midpoint()
            residual = self._residual(multiplier, *args)
            bracket.update(multiplier, residual)
            niters += 1

            self._report("Volume enforcement (iteration %d): Residual = %g", niters, residual / self.total_volume)

            if abs(residual) < tolerance or niters >= self.max_iterations:
                return residual, niters
            if stop_on_bracket and residual > 0.0:
                return residual, niters

    def _newton_search(self, bracket, tolerance, args, niters):
        """Secant iteration started from the bracket.

        Returns (converged, residual, niters). Fails on an exhausted budget, a
        zero finite-difference denominator or a non-positive multiplier."""
        ratio = bracket.lower_residual / bracket.upper_residual
        multiplier = (ratio * bracket.upper - bracket.lower) / (ratio - 1.0)
        epsilon = multiplier * self.relative_perturbation
        max_iters = niters + self.newton_extra_iterations
        residual = bracket.lower_residual

        while multiplier > 0.0 and niters < max_iters:
            residual = self._residual(multiplier, *args)

            self._report("Volume enforcement (iteration %d): Residual = %g", niters, residual / self.total_volume)

            if abs(residual) < tolerance:
                return True, residual, niters

            perturbed = self._residual(multiplier + epsilon, *args)
            if perturbed - residual == 0.0:
                # The trial field now belongs to the perturbed multiplier.
                return False, perturbed, niters

            multiplier -= epsilon * residual / (perturbed - residual)
            residual = perturbed
            niters += 1

        return False, residual, niters
