# -*- coding: utf-8 -*-
"""
.. module: micromet
    :synopsis: pyLSM microclimate component
.. moduleauthor:: pyLSM developers

Surface layer micrometeorology: saturation vapour pressure, latent heat, air
density and bulk aerodynamic resistance with stability correction.

References:
    Louis, J.F., 1979. A parametric model of vertical eddy fluxes in the
    atmosphere. Boundary-Layer Meteorology, 17, pp.187-202.
"""

import numpy as np
from typing import Tuple

from pyLSM.utils.constants import A_SVP, B_SVP, C_SVP, DEG_TO_KELVIN, GRAVITY, VON_KARMAN, \
    MOLECULAR_WEIGHT_RATIO, LATENT_HEAT_FUSION, HUGE_RESIST

#: [-], critical Richardson number
RI_CRITICAL = 0.2
#: [J kg-1 K-1], gas constant of dry air
R_DRY_AIR = 287.0
#: [-], lower limit of the stability correction factor
MIN_CORRECTION = 1.0e-3


def e_sat(T: float) -> Tuple:
    """
    Computes saturation vapor pressure [kPa] and the slope of vapor pressure curve
    [kPa K-1]. Below freezing, the saturation vapour pressure over ice is
    approximated by a polynomial correction.

    Args:
        T (float|array): [degC], temperature
    Returns:
        es (float|array): [kPa], saturation vapor pressure
        s (float|array): [kPa K-1], slope of saturation vapor pressure curve
    """
    T = np.asarray(T, dtype=float)
    es = A_SVP * np.exp(B_SVP * T / (C_SVP + T))
    s = B_SVP * C_SVP * es / (C_SVP + T)**2
    ice = T < 0.0
    corr = np.where(ice, 1.0 + 0.00972 * T + 0.000042 * T**2, 1.0)
    dcorr = np.where(ice, 0.00972 + 0.000084 * T, 0.0)
    s = s * corr + es * dcorr
    es = es * corr
    if es.ndim == 0:
        return float(es), float(s)
    return es, s


def latent_heat(T: float) -> float:
    """
    Latent heat of vaporization [J kg-1] at temperature T [degC].
    """
    return (2.501 - 0.002361 * T) * 1.0e6


def latent_heat_sublimation(T: float) -> float:
    """
    Latent heat of sublimation [J kg-1] at temperature T [degC].
    """
    return latent_heat(T) + LATENT_HEAT_FUSION


def air_density(P: float, T: float, vp: float=0.0) -> float:
    """
    Density of moist air.

    Args:
        P (float): air pressure [kPa]
        T (float): air temperature [degC]
        vp (float): vapour pressure [kPa]
    Returns:
        rho (float): [kg m-3]
    """
    Tv = (T + DEG_TO_KELVIN) / (1.0 - 0.378 * vp / P)
    return 1.0e3 * P / (R_DRY_AIR * Tv)


def vapor_flux(rho_air: float, P: float, e_surface: float, e_air: float, resistance: float) -> float:
    """
    Bulk transfer water vapour flux.

    Args:
        rho_air (float): air density [kg m-3]
        P (float): air pressure [kPa]
        e_surface (float): vapour pressure at surface [kPa]
        e_air (float): vapour pressure in air [kPa]
        resistance (float): total resistance [s m-1]
    Returns:
        E (float): [kg m-2 s-1], positive upwards
    """
    return rho_air * MOLECULAR_WEIGHT_RATIO / P * (e_surface - e_air) / resistance


def aerodynamic_resistance(wind: float, z: float, displacement: float, roughness: float) -> float:
    """
    Neutral bulk aerodynamic resistance between surface and reference height.

    Args:
        wind (float): wind speed at reference height [m s-1]
        z (float): reference height [m]
        displacement (float): zero-plane displacement [m]
        roughness (float): roughness length [m]
    Returns:
        ra (float): [s m-1]
    """
    if wind <= 0.0:
        return HUGE_RESIST
    zz = max(z - displacement, roughness * 1.01)
    return np.log(zz / roughness)**2 / (VON_KARMAN**2 * wind)


def stability_correction(z: float, displacement: float, T_surface: float, T_air: float,
                         wind: float, roughness: float) -> float:
    """
    Correction factor of the neutral aerodynamic resistance based on the bulk
    Richardson number. Resistance used is ra / correction.

    Args:
        z (float): reference height [m]
        displacement (float): zero-plane displacement [m]
        T_surface (float): surface temperature [degC]
        T_air (float): air temperature [degC]
        wind (float): wind speed [m s-1]
        roughness (float): roughness length [m]
    Returns:
        correction (float): [-]
    """
    if T_surface == T_air or wind <= 0.0:
        return 1.0

    Ta = T_air + DEG_TO_KELVIN
    Ts = T_surface + DEG_TO_KELVIN
    zz = max(z - displacement, roughness * 1.01)

    Ri = GRAVITY * (Ta - Ts) * zz / (0.5 * (Ta + Ts) * wind**2)
    Ri_lim = Ta / (0.5 * (Ta + Ts) * (np.log(zz / roughness) + 5.0))
    Ri = min(Ri, Ri_lim)

    if Ri > 0.0:
        return (1.0 - min(Ri, RI_CRITICAL) / RI_CRITICAL)**2
    Ri = max(Ri, -0.5)
    return np.sqrt(1.0 - 16.0 * Ri)


def corrected_resistance(wind: float, z: float, displacement: float, roughness: float,
                         T_surface: float, T_air: float) -> float:
    """
    Aerodynamic resistance [s m-1] with the stability correction applied.
    Very stable conditions are limited to MIN_CORRECTION of the neutral conductance.
    """
    ra = aerodynamic_resistance(wind, z, displacement, roughness)
    if ra >= HUGE_RESIST:
        return ra
    corr = stability_correction(z, displacement, T_surface, T_air, wind, roughness)
    return ra / max(corr, MIN_CORRECTION)

# EOF
