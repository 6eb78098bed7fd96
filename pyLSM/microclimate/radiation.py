# -*- coding: utf-8 -*-
"""
.. module: radiation
    :synopsis: pyLSM microclimate component
.. moduleauthor:: pyLSM developers

Radiation terms of surface energy balances.
"""

import numpy as np

from pyLSM.utils.constants import STEFAN_BOLTZMANN, DEG_TO_KELVIN


def emitted_longwave(T: float, emissivity: float=1.0) -> float:
    """
    Emitted thermal radiation [W m-2] of a surface at T [degC].
    """
    return emissivity * STEFAN_BOLTZMANN * (T + DEG_TO_KELVIN)**4


def net_radiation(T: float, shortwave: float, longwave: float, albedo: float,
                  emissivity: float=1.0) -> float:
    """
    Net all-wave radiation of a surface.

    Args:
        T (float): surface temperature [degC]
        shortwave (float): incoming shortwave radiation [W m-2]
        longwave (float): incoming longwave radiation [W m-2]
        albedo (float): surface albedo [-]
        emissivity (float): surface emissivity [-]
    Returns:
        Rnet (float): [W m-2], positive downwards
    """
    return (1.0 - albedo) * shortwave + emissivity * longwave - emitted_longwave(T, emissivity)


def canopy_transmittance(rad_atten: float, LAI: float) -> float:
    """
    Fraction of shortwave radiation transmitted through a canopy [-].

    Args:
        rad_atten (float): radiation attenuation coefficient [-]
        LAI (float): leaf area index [m2 m-2]
    """
    return float(np.exp(-rad_atten * LAI))

# EOF
