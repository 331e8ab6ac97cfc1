"""Stopping criteria for the outer optimization loop.

A :class:`ConvergenceTest` holds a list of criteria, each testing the latest
objective change df and density change dp, and combines their results with
AND or OR. Convergence is suppressed before the minimum number of iterations
and forced once the maximum number of iterations is reached.
"""
import logging
from enum import Enum

from ..parameters import ConfigurationError, get_parameter, get_section
from .history import RunningWindow

__all__ = [
    "ComboType",
    "ConvergenceStatus",
    "ConvergenceTest",
    "Criterion",
    "AbsoluteDensityChange",
    "RelativeDensityChange",
    "AbsoluteObjectiveChange",
    "RelativeObjectiveChange",
    "AbsoluteRunningObjectiveChange",
    "RelativeRunningObjectiveChange",
]


class ComboType(Enum):
    AND = "and"
    OR = "or"


class ConvergenceStatus(Enum):
    NOT_CONVERGED = "not converged"
    CONVERGED = "converged"
    ITERATION_LIMIT = "iteration limit"


class Criterion(object):
    """A single stopping criterion with a threshold."""

    #: name: the parameter that enables the criterion.
    name = None

    def __init__(self, threshold):
        self.threshold = threshold
        self.f0 = 0.0
        self.p0 = 0.0

    def initialize(self, f0, p0):
        """Store the reference objective and density norm."""
        self.f0 = f0
        self.p0 = p0

    def passed(self, delta_f, delta_p, report=False):
        raise NotImplementedError("Criterion.passed must be supplied")

    def _report(self, report, measured, status):
        if report:
            logging.info("Test: %s: %s < %s: %s", self.name, measured, self.threshold, status)


class AbsoluteDensityChange(Criterion):
    name = "absolute_density_change"

    def passed(self, delta_f, delta_p, report=False):
        status = abs(delta_p) < self.threshold
        self._report(report, "abs(dp) = %g" % abs(delta_p), status)
        return status


class RelativeDensityChange(Criterion):
    name = "relative_density_change"

    def passed(self, delta_f, delta_p, report=False):
        if self.p0 == 0.0:
            self._report(report, "abs(dp/p0) undefined for p0 = 0", False)
            return False
        status = abs(delta_p / self.p0) < self.threshold
        self._report(report, "abs(dp) = %g, abs(dp/p0) = %g" % (abs(delta_p), abs(delta_p / self.p0)), status)
        return status


class AbsoluteObjectiveChange(Criterion):
    name = "absolute_objective_change"

    def passed(self, delta_f, delta_p, report=False):
        status = abs(delta_f) < self.threshold
        self._report(report, "abs(df) = %g" % abs(delta_f), status)
        return status


class RelativeObjectiveChange(Criterion):
    name = "relative_objective_change"

    def passed(self, delta_f, delta_p, report=False):
        if self.f0 == 0.0:
            self._report(report, "abs(df/f0) undefined for f0 = 0", False)
            return False
        status = abs(delta_f / self.f0) < self.threshold
        self._report(report, "abs(df) = %g, abs(df/f0) = %g" % (abs(delta_f), abs(delta_f / self.f0)), status)
        return status


class AbsoluteRunningObjectiveChange(Criterion):
    """Passes when the sum of the last `window` objective changes is below
    the threshold. The sum is signed: a steadily decreasing objective passes."""

    name = "absolute_running_objective_change"

    def __init__(self, threshold, window=10):
        Criterion.__init__(self, threshold)
        self.history = RunningWindow(window)

    @property
    def running_sum(self):
        return self.history.sum

    def passed(self, delta_f, delta_p, report=False):
        self.history.push(delta_f)
        status = self.history.sum < self.threshold
        self._report(report, "<df> = %g" % self.history.sum, status)
        return status


class RelativeRunningObjectiveChange(AbsoluteRunningObjectiveChange):
    """Passes when the mean of the last `window` objective changes, relative to
    the reference objective, is below the threshold."""

    name = "relative_running_objective_change"

    def passed(self, delta_f, delta_p, report=False):
        self.history.push(delta_f)
        if self.f0 == 0.0:
            self._report(report, "abs(<df/f0>) undefined for f0 = 0", False)
            return False
        nvals = len(self.history)
        relative = abs(self.history.sum / self.f0) / nvals
        status = relative < self.threshold
        self._report(report, "abs(<df>) = %g, abs(<df/f0>) = %g" % (abs(self.history.sum) / nvals, relative),
                     status)
        return status


# Criteria are created in this order when enabled.
criterion_classes = [RelativeDensityChange,
                     AbsoluteDensityChange,
                     RelativeObjectiveChange,
                     AbsoluteObjectiveChange,
                     RelativeRunningObjectiveChange,
                     AbsoluteRunningObjectiveChange]


class ConvergenceTest(object):
    """Combines stopping criteria and iteration bounds.

    Args:
        criteria (list[Criterion]): The criteria to combine.
        max_iterations (int): Iteration at which the loop is stopped regardless of the criteria.
        min_iterations (int): Convergence before this iteration is ignored.
        combo_type (ComboType): Whether all (AND) or any (OR) criteria must pass.
    """

    def __init__(self, criteria, max_iterations, min_iterations=0, combo_type=ComboType.OR):
        self.criteria = list(criteria)
        self.max_iterations = max_iterations
        self.min_iterations = min_iterations
        self.combo_type = combo_type

        #: status: the outcome of the latest call to is_converged.
        self.status = ConvergenceStatus.NOT_CONVERGED

    @classmethod
    def from_parameters(cls, parameters):
        """Build the test from the "convergence" section of the optimizer parameters."""
        section = get_section(parameters, "convergence", required=True)
        path = "convergence"

        max_iterations = get_parameter(section, "max_iterations", "int", path=path)
        min_iterations = get_parameter(section, "min_iterations", "int", 0, path=path)

        combo = get_parameter(section, "combo_type", "str", "OR", path=path)
        try:
            combo_type = ComboType(combo.lower())
        except ValueError:
            raise ConfigurationError("Unknown convergence.combo_type '%s'. Options are ('AND', 'OR')." % combo)

        window = get_parameter(section, "running_average_window", "int", 10, path=path)
        if window < 1:
            raise ConfigurationError("convergence.running_average_window must be positive, got %s." % window)

        criteria = []
        for klass in criterion_classes:
            if klass.name not in section:
                continue
            threshold = get_parameter(section, klass.name, "float", path=path)
            if issubclass(klass, AbsoluteRunningObjectiveChange):
                criteria.append(klass(threshold, window))
            else:
                criteria.append(klass(threshold))

        return cls(criteria, max_iterations, min_iterations, combo_type)

    def initialize(self, f0, p0):
        """Seed the reference objective f0 and density norm p0 of every criterion."""
        for criterion in self.criteria:
            criterion.initialize(f0, p0)
        self.status = ConvergenceStatus.NOT_CONVERGED

    def is_converged(self, delta_f, delta_p, iteration, report=False):
        """Return True if the loop should stop after `iteration`.

        When `report` is True the outcome of every criterion is logged."""
        if iteration == 0:
            self.status = ConvergenceStatus.NOT_CONVERGED
            return False

        if report:
            logging.info("Optimization convergence check (iteration %d)", iteration)

        results = [criterion.passed(delta_f, delta_p, report) for criterion in self.criteria]

        if not results:
            converged = False
        elif self.combo_type == ComboType.AND:
            converged = all(results)
        else:
            converged = any(results)

        if report:
            if converged and iteration < self.min_iterations:
                logging.info("Converged, but continuing because min iterations not reached.")
            elif converged:
                logging.info("Converged!")
            else:
                logging.info("Not converged.")

        if iteration < self.min_iterations:
            converged = False

        if converged:
            self.status = ConvergenceStatus.CONVERGED
        elif iteration >= self.max_iterations:
            converged = True
            self.status = ConvergenceStatus.ITERATION_LIMIT
            if report:
                logging.info("Not converged. Exiting due to iteration limit.")
        else:
            self.status = ConvergenceStatus.NOT_CONVERGED

        return converged
