import numpy
import pytest
from numpy.testing import assert_allclose

from densopt import *  # noqa: F403

from synthetic import SteppedVolume, UniformSensitivity


n = 10


def make_enforcer(use_newton_search=True, max_iterations=50, tolerance=1e-8, accept_tolerance=None, move_limit=0.2,
                  interface=None, exponent=0.5):
    if interface is None:
        interface = UniformSensitivity(n)
    enforcer = VolumeEnforcer(Topology((0.001, 1.0), 0.4), move_limit, exponent, tolerance, max_iterations,
                              accept_tolerance=accept_tolerance, use_newton_search=use_newton_search,
                              interface=interface, total_volume=interface.compute_total_volume(),
                              verbose=False)
    return enforcer, interface


def enforce(enforcer, target, p_last=0.4, dfdp=-1.0, dvdp=1.0):
    p = numpy.zeros(n)
    p_last = numpy.full(n, p_last)
    volume = enforcer.enforce(p, p_last, numpy.full(n, dfdp), numpy.full(n, dvdp), target)
    return p, volume


@pytest.mark.parametrize("use_newton_search", [True, False])
def test_uniform_sensitivity_keeps_design(use_newton_search):
    enforcer, _ = make_enforcer(use_newton_search)
    p, volume = enforce(enforcer, 0.4)

    assert abs(volume / n - 0.4) < 1e-6
    assert volume == enforcer.volume
    assert_allclose(p, 0.4, atol=1e-6)


@pytest.mark.parametrize("use_newton_search", [True, False])
@pytest.mark.parametrize("target", [0.3, 0.45, 0.55])
def test_reaches_target(use_newton_search, target):
    enforcer, interface = make_enforcer(use_newton_search)
    p, volume = enforce(enforcer, target)

    assert abs(interface.compute_volume(p) / n - target) < 1e-7
    assert numpy.all(p >= 0.001)
    assert numpy.all(p <= 1.0)
    assert numpy.all(numpy.abs(p - 0.4) <= 0.2 + 1e-12)


def test_newton_search_needs_fewer_volume_evaluations():
    newton, newton_interface = make_enforcer(True)
    bisection, bisection_interface = make_enforcer(False)
    enforce(newton, 0.45)
    enforce(bisection, 0.45)

    assert newton_interface.volume_evaluations < bisection_interface.volume_evaluations


def test_bisection_respects_iteration_cap():
    enforcer, interface = make_enforcer(use_newton_search=False, max_iterations=5, accept_tolerance=1.0)
    enforce(enforcer, 0.4)

    assert enforcer.iterations == 5
    assert interface.volume_evaluations == 5


def test_unreachable_target_fails():
    enforcer, _ = make_enforcer(max_iterations=20)

    # The move limit caps the densities at 0.6.
    with pytest.raises(VolumeEnforcementError) as excinfo:
        enforce(enforcer, 0.9)

    assert excinfo.value.target == 0.9
    assert_allclose(excinfo.value.residual, -0.3, rtol=1e-6)


def test_loose_acceptance_tolerance():
    enforcer, _ = make_enforcer(use_newton_search=False, max_iterations=3, accept_tolerance=0.5)
    p, volume = enforce(enforcer, 0.4)
    assert abs(volume / n - 0.4) < 0.5


def test_enforce_requires_interface():
    enforcer = VolumeEnforcer(Topology((0.001, 1.0), 0.4), 0.2, 0.5, 1e-8, 50)
    with pytest.raises(ConfigurationError):
        enforcer.enforce(numpy.zeros(n), numpy.full(n, 0.4), -numpy.ones(n), numpy.ones(n), 0.4)


def test_from_parameters(parameters):
    parameters["volume"]["accept_tolerance"] = 1e-4
    parameters["volume"]["use_newton_search"] = False
    enforcer = VolumeEnforcer.from_parameters(parameters, Topology.from_parameters(parameters))

    assert enforcer.move_limit == 0.2
    assert enforcer.stabilization_exponent == 0.5
    assert enforcer.convergence_tolerance == 1e-8
    assert enforcer.accept_tolerance == 1e-4
    assert enforcer.max_iterations == 50
    assert not enforcer.use_newton_search
    assert not enforcer.verbose


def test_accept_tolerance_defaults_to_working_tolerance(parameters):
    enforcer = VolumeEnforcer.from_parameters(parameters, Topology.from_parameters(parameters))
    assert enforcer.accept_tolerance == enforcer.convergence_tolerance
    assert enforcer.use_newton_search


@pytest.mark.parametrize("key, value", [("move_limit", 0.0),
                                        ("stabilization_exponent", 0.0),
                                        ("stabilization_exponent", -1.0),
                                        ("move_limit", "large")])
def test_invalid_parameters(parameters, key, value):
    parameters[key] = value
    with pytest.raises(ConfigurationError):
        VolumeEnforcer.from_parameters(parameters, Topology.from_parameters(parameters))


@pytest.mark.parametrize("volume", [{"max_iterations": 50},
                                    {"convergence_tolerance": 1e-8},
                                    {"convergence_tolerance": 1e-8, "max_iterations": 0}])
def test_invalid_volume_parameters(parameters, volume):
    parameters["volume"] = volume
    with pytest.raises(ConfigurationError):
        VolumeEnforcer.from_parameters(parameters, Topology.from_parameters(parameters))


def test_zero_objective_gradient_keeps_design():
    enforcer, _ = make_enforcer()
    p, volume = enforce(enforcer, 0.4, dfdp=0.0)

    assert numpy.all(numpy.isfinite(p))
    assert_allclose(p, 0.4)
    assert_allclose(volume, 4.0)


def test_zero_objective_gradient_cannot_move_volume():
    enforcer, _ = make_enforcer(max_iterations=10)
    with pytest.raises(VolumeEnforcementError):
        enforce(enforcer, 0.5, dfdp=0.0)


def test_undefined_volume_fails():
    class UndefinedVolume(UniformSensitivity):
        def compute_volume(self, p):
            return float("nan")

    enforcer, _ = make_enforcer(max_iterations=5, interface=UndefinedVolume(n))
    with pytest.raises(VolumeEnforcementError):
        enforce(enforcer, 0.4)


def test_flat_volume_response_falls_back_to_bisection():
    interface = SteppedVolume(n)
    enforcer, _ = make_enforcer(interface=interface)
    p, volume = enforce(enforcer, 0.4)

    assert volume == 4.0
    assert_allclose(p, 0.4, atol=1e-3)
    # Four bracketing steps and one secant pair precede the restarted bisection.
    assert interface.volume_evaluations == 6 + enforcer.iterations


def test_exhausted_newton_budget_falls_back_to_bisection():
    enforcer, interface = make_enforcer()
    enforcer.newton_extra_iterations = 1
    p, volume = enforce(enforcer, 0.45)

    assert abs(volume / n - 0.45) < 1e-7
    assert interface.volume_evaluations == 6 + enforcer.iterations


def test_equal_sensitivities_need_negative_multiplier():
    # With dfdp == dvdp the ratio is -1/multiplier, so the bracket and the
    # root lie below zero and the secant estimate is rejected.
    enforcer, interface = make_enforcer(exponent=1.0)
    p, volume = enforce(enforcer, 0.5, dfdp=1.0, dvdp=1.0)

    assert abs(volume / n - 0.5) < 1e-6
    assert_allclose(p, p[0])
    assert interface.volume_evaluations == 4 + enforcer.iterations

    offset = density_offset(0.001, 1.0)
    multiplier = -(0.4 - offset) / (p[0] - offset)
    assert multiplier < 0.0
    assert_allclose(p, offset + (0.4 - offset) * (-1.0 / multiplier))
    assert_allclose(oc_update(numpy.full(n, 0.4), numpy.ones(n), numpy.ones(n), multiplier, 1.0, 0.2,
                              0.001, 1.0), p)
