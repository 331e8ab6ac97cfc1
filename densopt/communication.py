"""Reductions across the workers that each own a partition of the design field.

Every call to :meth:`sum_all` is a collective: all workers must call the same
reductions in the same order.
"""
import logging

__all__ = ["SerialCommunicator", "MPICommunicator", "report"]


class SerialCommunicator(object):
    """The reduction service of a single worker owning the whole design field."""

    rank = 0
    size = 1
    reporting_rank = 0

    def sum_all(self, value):
        return value

    def is_reporting(self):
        return self.rank == self.reporting_rank


class MPICommunicator(object):
    """Reductions over an mpi4py communicator.

    Args:
        comm (mpi4py.MPI.Comm): The communicator, or anything with ``allreduce``,
            ``Get_rank`` and ``Get_size``. Defaults to ``MPI.COMM_WORLD``.
        reporting_rank (int): The rank that writes status output.
    """

    def __init__(self, comm=None, reporting_rank=0):
        if comm is None:
            try:
                from mpi4py import MPI
            except ImportError:
                raise RuntimeError("mpi4py not available")
            comm = MPI.COMM_WORLD
        if hasattr(comm, "tompi4py"):
            comm = comm.tompi4py()

        self.comm = comm
        self.reporting_rank = reporting_rank

    @property
    def rank(self):
        return self.comm.Get_rank()

    @property
    def size(self):
        return self.comm.Get_size()

    def sum_all(self, value):
        # allreduce sums by default
        return self.comm.allreduce(value)

    def is_reporting(self):
        return self.rank == self.reporting_rank


def report(comm, verbose, msg, *args):
    """Log `msg` at INFO level on the reporting worker only."""
    if verbose and comm.is_reporting():
        logging.info(msg, *args)
