# -*- coding: utf-8 -*-
"""
.. module: energybalance.canopy_air
    :synopsis: pyLSM energy balance component
.. moduleauthor:: pyLSM developers

Temperature and vapour pressure of the canopy air space of an overstory tile
with snow on the ground. Both follow from flux continuity: the flux between the
canopy air and the atmosphere equals the sum of the fluxes from the foliage and
from the snow surface into the canopy air.
"""

import logging
from typing import Dict

from pyLSM.energybalance.rootfind import Brackets, root_brent
from pyLSM.microclimate.micromet import e_sat, latent_heat_sublimation
from pyLSM.utils.constants import SPECIFIC_HEAT_AIR, MOLECULAR_WEIGHT_RATIO

logger = logging.getLogger(__name__)


def _heat_residual(Tc: float, c: Dict) -> float:
    """ Sensible heat flux imbalance of the canopy air [W m-2]. """
    k = c['rho'] * SPECIFIC_HEAT_AIR
    to_atmosphere = k * (Tc - c['T_air']) / c['ra_atmos']
    from_foliage = k * (c['T_foliage'] - Tc) / c['ra_foliage']
    from_surface = k * (c['T_surface'] - Tc) / c['ra_surface']
    return from_foliage + from_surface - to_atmosphere


def _vapor_residual(ec: float, c: Dict) -> float:
    """ Vapour flux imbalance of the canopy air [kg m-2 s-1]; ec in Pa. """
    k = c['rho'] * MOLECULAR_WEIGHT_RATIO / c['P']
    ec_kPa = 1.0e-3 * ec
    to_atmosphere = k * (ec_kPa - c['vp']) / c['ra_atmos']
    from_surface = k * (c['e_surface'] - ec_kPa) / c['ra_surface']
    return c['E_foliage'] + from_surface - to_atmosphere


def solve_canopy_air(forcing: Dict, T_foliage: float, T_surface: float, E_foliage: float,
                     resistances: Dict, brackets: Brackets, xtol: float=1.0e-4,
                     max_iter: int=100) -> Dict:
    r"""
    Canopy air temperature and vapour pressure.

    Args:
        forcing (dict): air_temp [degC], vp, pressure [kPa], density [kg m-3]
        T_foliage (float): foliage temperature [degC]
        T_surface (float): snow surface temperature [degC]
        E_foliage (float): vapour flux from foliage [kg m-2 s-1]
        resistances (dict): atmos, foliage, surface [s m-1]
        brackets (Brackets): named bracket half-widths (canopy_air, canopy_vp)
        xtol (float): root finding tolerance
        max_iter (int): iteration limit
    Returns:
        (dict):
            Tcanopy (float): [degC]
            ecanopy (float): [kPa]
            canopy_sensible (float): sensible heat from foliage [W m-2]
            canopy_latent (float): latent heat from foliage [W m-2]
            iterations (int)
    Raises:
        ConvergenceError: no solution in the (widened) brackets
    """
    es_surface, _ = e_sat(T_surface)
    c = {'T_air': forcing['air_temp'], 'vp': forcing['vp'], 'P': forcing['pressure'],
         'rho': forcing['density'], 'T_foliage': T_foliage, 'T_surface': T_surface,
         'E_foliage': E_foliage, 'e_surface': es_surface,
         'ra_atmos': resistances['atmos'], 'ra_foliage': resistances['foliage'],
         'ra_surface': resistances['surface']}

    # first guesses from the atmosphere-surface exchange alone
    wa, ws = 1.0 / c['ra_atmos'], 1.0 / c['ra_surface']
    Tc_guess = (wa * c['T_air'] + ws * T_surface) / (wa + ws)
    ec_guess = 1.0e3 * (wa * c['vp'] + ws * es_surface) / (wa + ws)

    lo, hi = brackets.around('canopy_air', Tc_guess)
    Tc, n1 = root_brent(_heat_residual, lo, hi, args=(c,), xtol=xtol, max_iter=max_iter,
                        widening=brackets.widening, variable='canopy_air_temperature')

    lo, hi = brackets.around('canopy_vp', ec_guess)
    ec, n2 = root_brent(_vapor_residual, max(lo, 0.0), hi, args=(c,), xtol=xtol, max_iter=max_iter,
                        widening=brackets.widening, widen='upper' if lo <= 0.0 else 'both',
                        variable='canopy_vapor_pressure')

    sensible = c['rho'] * SPECIFIC_HEAT_AIR * (T_foliage - Tc) / c['ra_foliage']
    return {'Tcanopy': float(Tc), 'ecanopy': 1.0e-3 * float(ec), 'canopy_sensible': sensible,
            'canopy_latent': latent_heat_sublimation(T_foliage) * E_foliage,
            'iterations': n1 + n2}

# EOF
