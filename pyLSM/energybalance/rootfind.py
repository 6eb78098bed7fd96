# -*- coding: utf-8 -*-
"""
.. module: energybalance.rootfind
    :synopsis: pyLSM energy balance component
.. moduleauthor:: pyLSM developers

Bracketed root finding of energy balance residuals.

The residual functions R(T) of the snow, ground, soil and canopy balances are
solved with Brent's method inside a bracket centred on a first guess. Bracket
half-widths are named model options. A bracket that does not enclose a sign
change is widened once; if it still does not, the step fails.

References:
    Brent, R.P., 1973. Algorithms for minimization without derivatives.
    Prentice-Hall.
"""

import numpy as np
import logging
from typing import Callable, Dict, Tuple
from scipy.optimize import brentq

from pyLSM.utils.constants import SNOW_DT, SURF_DT, SOIL_DT, CANOPY_DT, CANOPY_VP
from pyLSM.utils.errors import ConvergenceError, RootNotBracketedError

logger = logging.getLogger(__name__)


class Brackets(object):
    r"""
    Named bracket half-widths of the energy balance root searches.
    """
    DOMAINS = ('snow', 'surface', 'soil', 'canopy_air', 'canopy_vp')

    def __init__(self, p: Dict=None, widening: float=10.0):
        """
        Args:
            p (dict): half-widths overriding defaults
                snow (float): snow surface temperature [degC]
                surface (float): ground surface temperature [degC]
                soil (float): soil temperature [degC]
                canopy_air (float): canopy air temperature [degC]
                canopy_vp (float): canopy vapour pressure [Pa]
            widening (float): factor applied to the half-width on the single retry [-]
        """
        p = p or {}
        unknown = set(p) - set(self.DOMAINS)
        if unknown:
            raise ValueError('Unknown bracket domains: %s' % sorted(unknown))

        self.snow = float(p.get('snow', SNOW_DT))
        self.surface = float(p.get('surface', SURF_DT))
        self.soil = float(p.get('soil', SOIL_DT))
        self.canopy_air = float(p.get('canopy_air', CANOPY_DT))
        self.canopy_vp = float(p.get('canopy_vp', CANOPY_VP))
        self.widening = float(widening)

        for domain in self.DOMAINS:
            if getattr(self, domain) <= 0.0:
                raise ValueError('Bracket half-width of %s must be positive' % domain)

    def half_width(self, domain: str) -> float:
        return getattr(self, domain)

    def around(self, domain: str, guess: float) -> Tuple[float, float]:
        """ Bracket [guess - half-width, guess + half-width] of a domain. """
        hw = self.half_width(domain)
        return guess - hw, guess + hw


def root_brent(fun: Callable, lower: float, upper: float, args: Tuple=(),
               xtol: float=1.0e-4, max_iter: int=100, widening: float=10.0,
               widen: str='both', variable: str=None) -> Tuple[float, int]:
    r"""
    Finds root of fun within [lower, upper] by Brent's method.

    Args:
        fun (callable): residual R(x, *args)
        lower (float): lower end of bracket
        upper (float): upper end of bracket
        args (tuple): extra arguments of fun
        xtol (float): convergence tolerance of bracket width
        max_iter (int): maximum number of iterations
        widening (float): factor for one bracket widening retry; <= 1 disables retry
        widen (str): 'both', 'lower' or 'upper': which bracket ends may move
        variable (str): name of the solved variable for error context
    Returns:
        root (float): solution
        iterations (int): number of Brent iterations used
    Raises:
        RootNotBracketedError: no sign change in the bracket after widening
        ConvergenceError: iteration limit reached or non-finite residual
    """
    if not lower < upper:
        raise ValueError('root_brent: lower bound %.4g not below upper bound %.4g' % (lower, upper))

    def _residual(x):
        r = fun(x, *args)
        if not np.isfinite(r):
            raise ConvergenceError('Non-finite residual %s at %.6g' % (r, x), variable=variable)
        return r

    f_lo = _residual(lower)
    f_hi = _residual(upper)

    if f_lo * f_hi > 0.0:
        if widening <= 1.0:
            raise RootNotBracketedError('Root not bracketed in [%.4g, %.4g]' % (lower, upper),
                                        variable=variable)
        width = (upper - lower) * (widening - 1.0)
        if widen == 'both':
            lower, upper = lower - 0.5 * width, upper + 0.5 * width
        elif widen == 'lower':
            lower = lower - width
        elif widen == 'upper':
            upper = upper + width
        else:
            raise ValueError('Unknown widening mode: %s' % widen)

        logger.debug('%s: bracket widened to [%.4g, %.4g]', variable, lower, upper)

        f_lo = _residual(lower)
        f_hi = _residual(upper)
        if f_lo * f_hi > 0.0:
            raise RootNotBracketedError('Root not bracketed in widened bracket [%.4g, %.4g]: '
                                        'R(lower)=%.4g, R(upper)=%.4g' % (lower, upper, f_lo, f_hi),
                                        variable=variable)

    if f_lo == 0.0:
        return lower, 0
    if f_hi == 0.0:
        return upper, 0

    root, info = brentq(_residual, lower, upper, xtol=xtol, maxiter=max_iter,
                        full_output=True, disp=False)

    if not info.converged:
        raise ConvergenceError('Brent search did not converge in %d iterations' % max_iter,
                               variable=variable)

    return root, info.iterations

# EOF
