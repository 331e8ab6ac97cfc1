from .parameters import ConfigurationError, get_parameter, get_section


class Topology(object):
    """The density bounds and initial value of a design field."""

    def __init__(self, bounds, initial_value):
        self.__check_arguments(bounds, initial_value)

        #: bounds: the (min_density, max_density) pair every density is kept in.
        self.bounds = (float(bounds[0]), float(bounds[1]))

        #: initial_value: the density the design field is filled with.
        self.initial_value = float(initial_value)

    def __check_arguments(self, bounds, initial_value):
        try:
            lower, upper = bounds
        except (TypeError, ValueError):
            raise ConfigurationError("topology.bounds should be a pair (min_density, max_density), got %r."
                                     % (bounds,))
        if not lower < upper:
            raise ConfigurationError("topology.bounds must satisfy min_density < max_density, got %r."
                                     % (bounds,))
        if not lower <= initial_value <= upper:
            raise ConfigurationError("topology.initial_value = %s lies outside the bounds %r."
                                     % (initial_value, bounds))

    @property
    def min_density(self):
        return self.bounds[0]

    @property
    def max_density(self):
        return self.bounds[1]

    @classmethod
    def from_parameters(cls, parameters):
        section = get_section(parameters, "topology", required=True)
        if "bounds" not in section:
            raise ConfigurationError("Missing required parameter 'topology.bounds'.")
        initial_value = get_parameter(section, "initial_value", "float", path="topology")
        return cls(section["bounds"], initial_value)
