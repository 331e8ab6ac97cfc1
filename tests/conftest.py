import pytest
import importlib
import numpy.random


@pytest.fixture(autouse=True)
def skip_by_missing_module(request):
    marker = request.node.get_closest_marker("skipif_module_is_missing")
    if marker:
        to_import = marker.args[0]
        try:
            importlib.import_module(to_import)
        except ImportError:
            pytest.skip('skipped because module {} is missing'.format(to_import))


def pytest_runtest_setup(item):
    """ Hook function which is called before every test """

    # Fix the seed to avoid random test failures due to slight tolerance variations
    numpy.random.seed(21)


@pytest.fixture
def parameters():
    """OC parameters for a well conditioned problem; tests adjust them as needed."""
    return {"move_limit": 0.2,
            "stabilization_exponent": 0.5,
            "verbose": False,
            "topology": {"bounds": (0.001, 1.0), "initial_value": 0.4},
            "volume": {"convergence_tolerance": 1e-8,
                       "target_fraction": 0.4,
                       "max_iterations": 50},
            "convergence": {"max_iterations": 30,
                            "absolute_density_change": 1e-8}}
