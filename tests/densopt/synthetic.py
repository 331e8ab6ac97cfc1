"""Simulation interfaces with closed-form objectives, used in place of a
finite element model."""
import threading

import numpy

from densopt import SimulationInterface


class UniformSensitivity(SimulationInterface):
    """A linear objective with the same gradient for every design variable."""

    def __init__(self, n, dfdp=-1.0, dvdp=1.0):
        self.n = n
        self.dfdp = dfdp
        self.dvdp = dvdp
        self.volume_evaluations = 0
        self.initial_topology = None

    def get_num_opt_dofs(self):
        return self.n

    def initialize_topology(self, p):
        self.initial_topology = p.copy()

    def compute_total_volume(self):
        return self.dvdp * self.n

    def compute_volume(self, p):
        self.volume_evaluations += 1
        return self.dvdp * numpy.sum(p)

    def compute_volume_gradient(self, p):
        return self.compute_volume(p), numpy.full(self.n, self.dvdp)

    def compute(self, p):
        return self.dfdp * numpy.sum(p), numpy.full(self.n, self.dfdp), 0.0


class SpringChain(SimulationInterface):
    """Springs in series carrying a unit load.

    Spring i has stiffness ``stiffness[i] * p[i]**penalty`` and volume
    `cell_volume` when fully dense; the objective is the compliance. With a
    `compliance_limit` the constraint is ``compliance / compliance_limit - 1``.
    """

    def __init__(self, stiffness, penalty=3.0, cell_volume=1.0, compliance_limit=None):
        self.stiffness = numpy.asarray(stiffness, dtype=float)
        self.penalty = penalty
        self.cell_volume = cell_volume
        self.compliance_limit = compliance_limit
        self.evaluations = 0

    def get_num_opt_dofs(self):
        return len(self.stiffness)

    def initialize_topology(self, p):
        pass

    def compute_total_volume(self):
        return self.cell_volume * len(self.stiffness)

    def compute_volume(self, p):
        return self.cell_volume * numpy.sum(p)

    def compute_volume_gradient(self, p):
        return self.compute_volume(p), numpy.full(len(p), self.cell_volume)

    def compliance(self, p):
        return numpy.sum(1.0 / (self.stiffness * p ** self.penalty))

    def compute_objective(self, p):
        self.evaluations += 1
        f = self.compliance(p)
        dfdp = -self.penalty / (self.stiffness * p ** (self.penalty + 1.0))
        return f, dfdp

    def compute(self, p):
        f, dfdp = self.compute_objective(p)
        if self.compliance_limit is None:
            return f, dfdp, 0.0
        return f, dfdp, f / self.compliance_limit - 1.0

    def compute_with_constraint_gradient(self, p):
        f, dfdp, g = self.compute(p)
        return f, dfdp, g, dfdp / self.compliance_limit


class ThreadedComm(object):
    """An in-process stand-in for an MPI communicator whose ranks are threads."""

    def __init__(self, size):
        self.size = size
        self.barrier = threading.Barrier(size, timeout=30)
        self.values = [None] * size

    def for_rank(self, rank):
        return _RankComm(self, rank)


class _RankComm(object):
    def __init__(self, shared, rank):
        self.shared = shared
        self.rank = rank

    def allreduce(self, value):
        self.shared.values[self.rank] = value
        self.shared.barrier.wait()
        total = sum(self.shared.values)
        self.shared.barrier.wait()
        return total

    def Get_rank(self):
        return self.rank

    def Get_size(self):
        return self.shared.size


class SteppedVolume(UniformSensitivity):
    """A volume measured to two decimals, flat under small density changes."""

    def compute_volume(self, p):
        self.volume_evaluations += 1
        return round(self.dvdp * float(numpy.sum(p)), 2)
