#!/usr/bin/env python
# -*- coding: utf-8 -*-

# .. _spring-chain-example:
#
# .. py:currentmodule:: densopt
#
# Material distribution in a chain of springs
# ===========================================
#
# This demo distributes a fixed amount of material over a chain of springs
# connected in series, so that the chain is as stiff as possible.
#
# Problem definition
# ******************
#
# Each spring :math:`i` carries the same unit load. Its stiffness follows the
# SIMP law :math:`k_i = E_i \rho_i^3`, where :math:`E_i` is the stiffness of
# the fully dense spring and :math:`\rho_i` its density. The compliance of the
# chain is
#
# .. math::
#       c(\rho) = \sum_i \frac{1}{E_i \rho_i^3}
#
# and we minimise it subject to
#
# .. math::
#          0.001 \le \rho_i &\le 1 \\
#          \sum_i \rho_i &\le V N
#
# The minimiser scales every density with :math:`E_i^{-1/4}`: weak springs
# receive more material.
#
# Implementation
# **************
#
# The optimizer sees the simulation through a :py:class:`SimulationInterface`.
# Here the "simulation" is a closed-form expression.

import logging

import numpy

from densopt import SimulationInterface, create_optimizer

logging.basicConfig(level=logging.INFO, format="%(message)s")


class SpringChain(SimulationInterface):
    def __init__(self, stiffness, penalty=3.0):
        self.stiffness = stiffness
        self.penalty = penalty

    def get_num_opt_dofs(self):
        return len(self.stiffness)

    def initialize_topology(self, p):
        pass

    def compute_total_volume(self):
        return float(len(self.stiffness))

    def compute_volume(self, p):
        return numpy.sum(p)

    def compute_volume_gradient(self, p):
        return numpy.sum(p), numpy.ones(len(p))

    def compute(self, p):
        f = numpy.sum(1.0 / (self.stiffness * p ** self.penalty))
        dfdp = -self.penalty / (self.stiffness * p ** (self.penalty + 1.0))
        return f, dfdp, 0.0


# The stiffness of the fully dense springs varies along the chain.

stiffness = numpy.linspace(1.0, 10.0, 20)

# With a penalty of 3 an exponent of 1/4 makes the update land on the
# optimality condition in a single step.

parameters = {"package": "OC",
              "move_limit": 0.2,
              "stabilization_exponent": 0.25,
              "topology": {"bounds": (0.001, 1.0), "initial_value": 0.4},
              "volume": {"target_fraction": 0.4,
                         "convergence_tolerance": 1e-8,
                         "max_iterations": 50},
              "convergence": {"max_iterations": 100,
                              "combo_type": "OR",
                              "relative_objective_change": 1e-8,
                              "absolute_density_change": 1e-6}}

optimizer = create_optimizer(parameters)
optimizer.set_interface(SpringChain(stiffness))
optimizer.initialize()
p = optimizer.optimize()

# Compare with the analytical solution.

expected = stiffness ** -0.25
expected *= 0.4 * len(stiffness) / numpy.sum(expected)
print("Converged after %d iterations (%s)." % (optimizer.iterations, optimizer.status.value))
print("Largest deviation from the analytical densities: %g" % numpy.max(numpy.abs(p - expected)))
