"""
errors.py — Exception Taxonomy
===============================

Fatal conditions raise; the command-line driver turns them into an abort of
the whole process group, since a rank that drops out of a collective ghost
exchange deadlocks the others.  Numerical degeneracies (singular Jacobian,
vanishing impedance) are not exceptions: they are logged with the offending
point and flagged on the owning object.
"""


class ElasticSolverError(Exception):
    """Base class for all solver errors."""


class PreconditionError(ElasticSolverError, ValueError):
    """Invalid dimensionality, mode, extents, stencil order or geometry."""


class InterfaceMismatchError(PreconditionError):
    """Adjoining blocks disagree on the point counts of their shared face."""


class ConfigError(ElasticSolverError):
    """Malformed or inconsistent configuration file."""
