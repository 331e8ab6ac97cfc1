"""Helpers for reading the nested parameter dictionaries passed to the
optimizers.

Parameters are plain dictionaries, e.g.::

    parameters = {"move_limit": 0.2,
                  "stabilization_exponent": 0.5,
                  "topology": {"bounds": (0.001, 1.0), "initial_value": 0.4},
                  "volume": {"convergence_tolerance": 1e-6,
                             "target_fraction": 0.4,
                             "max_iterations": 50},
                  "convergence": {"max_iterations": 100,
                                  "relative_objective_change": 1e-4}}
"""
import numbers

__all__ = ["ConfigurationError", "get_section", "get_parameter"]


class ConfigurationError(ValueError):
    """Raised for a missing or invalid option, or an incomplete optimizer setup."""
    pass


_required = object()


def get_section(parameters, name, required=False, path=None):
    """Return the sub-dictionary `name` of `parameters`.

    A missing optional section is returned as an empty dictionary."""
    full_name = name if path is None else "%s.%s" % (path, name)
    if parameters is None or name not in parameters:
        if required:
            raise ConfigurationError("Missing required parameter section '%s'." % full_name)
        return {}

    section = parameters[name]
    if not isinstance(section, dict):
        raise ConfigurationError("Parameter section '%s' must be a dictionary, got %r." % (full_name, section))
    return section


def get_parameter(parameters, name, kind, default=_required, path=None):
    """Look up `name` in `parameters` and check it is of the given kind.

    `kind` is one of "float", "int", "bool" or "str". Options without a default
    are required."""
    full_name = name if path is None else "%s.%s" % (path, name)
    if parameters is None or name not in parameters:
        if default is _required:
            raise ConfigurationError("Missing required parameter '%s'." % full_name)
        return default

    value = parameters[name]
    if kind == "float":
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise ConfigurationError("Parameter '%s' must be a number, got %r." % (full_name, value))
        return float(value)
    elif kind == "int":
        if isinstance(value, bool) or not isinstance(value, numbers.Integral):
            raise ConfigurationError("Parameter '%s' must be an integer, got %r." % (full_name, value))
        return int(value)
    elif kind == "bool":
        if not isinstance(value, bool):
            raise ConfigurationError("Parameter '%s' must be True or False, got %r." % (full_name, value))
        return value
    elif kind == "str":
        if not isinstance(value, str):
            raise ConfigurationError("Parameter '%s' must be a string, got %r." % (full_name, value))
        return value
    else:
        raise ValueError("Unknown parameter kind %s" % kind)
