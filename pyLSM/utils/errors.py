# -*- coding: utf-8 -*-
"""
.. module: utils.errors
    :synopsis: pyLSM exceptions
.. moduleauthor:: pyLSM developers

Exceptions raised by pyLSM components. Numerical failures carry the context in
which they occurred: grid cell, time step, sub-area and the variable solved for.
"""

from typing import Tuple


class ModelError(Exception):
    """
    Base class of pyLSM run-time errors.

    Args:
        message (str): description
        cell (int): grid cell id
        step (int): time step index
        subarea (tuple): (veg, band, dist) index of the sub-area
        variable (str): name of the solved or checked variable
    """
    def __init__(self, message: str, cell: int=None, step: int=None,
                 subarea: Tuple=None, variable: str=None):
        self.message = message
        self.cell = cell
        self.step = step
        self.subarea = subarea
        self.variable = variable
        super().__init__(message)

    def with_context(self, **context):
        """ Fills in context fields that are not yet known and returns self. """
        for key, value in context.items():
            if getattr(self, key, None) is None:
                setattr(self, key, value)
        return self

    def __str__(self):
        ctx = []
        for key in ('cell', 'step', 'subarea', 'variable'):
            value = getattr(self, key)
            if value is not None:
                ctx.append('%s=%s' % (key, value))
        if ctx:
            return '%s (%s)' % (self.message, ', '.join(ctx))
        return self.message


class ConvergenceError(ModelError):
    """ Iterative solution did not converge within the iteration limit. """


class RootNotBracketedError(ConvergenceError):
    """ Residual has the same sign at both ends of the (widened) bracket. """


class BalanceError(ModelError):
    """ Water, energy or snow mass balance error beyond the hard limit. """


class CellStepError(ModelError):
    """ A cell time step failed; no state was committed. """


class ConfigurationError(ValueError):
    """ Invalid combination of model options or parameters. """


class ForcingError(ValueError):
    """ Missing or out-of-range meteorological forcing. """

# EOF
