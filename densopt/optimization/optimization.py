from ..parameters import ConfigurationError, get_parameter
from .oc_optimizer import OCOptimizer
from .scipy_optimizer import SciPyOptimizer

__all__ = ["create_optimizer", "print_optimizer_packages", "optimizer_packages"]


optimizer_packages = {'OC': ('The optimality criteria method with volume enforcement.', OCOptimizer),
                      'SciPy': ('General nonlinear programming methods from scipy.optimize.', SciPyOptimizer)}


def print_optimizer_packages():
    """ Prints the available optimizer packages """

    print('Available optimizer packages:')
    for name, (description, klass) in optimizer_packages.items():
        print(name, ': ', description)


def create_optimizer(parameters):
    """Create the optimizer selected by the "package" parameter (default "OC").

    The remaining parameters are passed to the optimizer's constructor; the
    simulation interface still has to be set before initialization::

        optimizer = create_optimizer(parameters)
        optimizer.set_interface(simulation)
        optimizer.initialize()
        optimizer.optimize()
    """
    package = get_parameter(parameters, "package", "str", "OC")

    try:
        klass = optimizer_packages[package][1]
    except KeyError:
        raise ConfigurationError(
            'Unknown optimization package '
            + package
            + '. Valid options are ' + ', '.join(optimizer_packages.keys())
            + '. Use print_optimizer_packages() to list them.')

    return klass(parameters)
