"""This module defines the interface between the optimizers and the
simulation that evaluates the objective, constraint and volume of a density
field."""


class SimulationInterface(object):
    """The simulation seen by an optimizer.

    All values refer to the design variables owned by the calling worker; the
    optimizers reduce scalars across workers themselves. Gradients are numpy
    arrays of length :meth:`get_num_opt_dofs`.
    """

    def get_num_opt_dofs(self):
        """Return the number of design variables owned by this worker."""

        raise NotImplementedError("SimulationInterface.get_num_opt_dofs must be supplied")

    def initialize_topology(self, p):
        """Receive the initial density field once, before the first evaluation."""

        raise NotImplementedError("SimulationInterface.initialize_topology must be supplied")

    def compute_total_volume(self):
        """Return the volume of the whole (fully dense) domain."""

        raise NotImplementedError("SimulationInterface.compute_total_volume must be supplied")

    def compute_volume(self, p):
        """Return the material volume of the density field p."""

        raise NotImplementedError("SimulationInterface.compute_volume must be supplied")

    def compute_volume_gradient(self, p):
        """Return the material volume of p and its gradient as (volume, dvdp)."""

        raise NotImplementedError("SimulationInterface.compute_volume_gradient must be supplied")

    def compute(self, p):
        """Evaluate the objective, its gradient and the constraint value.

        Returns (f, dfdp, g). Problems without a constraint return g = 0."""

        raise NotImplementedError("SimulationInterface.compute must be supplied")

    def compute_with_constraint_gradient(self, p):
        """Like :meth:`compute`, returning (f, dfdp, g, dgdp)."""

        raise NotImplementedError("SimulationInterface.compute_with_constraint_gradient is not implemented")

    def compute_objective(self, p):
        """Evaluate the objective and its gradient only, as (f, dfdp)."""
        f, dfdp, _ = self.compute(p)
        return f, dfdp
