# -*- coding: utf-8 -*-
"""
.. module: snow.blowing
    :synopsis: pyLSM snow component
.. moduleauthor:: pyLSM developers

*Sublimation of blowing snow*

Snow is lifted when the wind speed, enhanced by sub-grid terrain slope
variability, exceeds a temperature dependent threshold. The sublimation rate of
suspended snow grows with the wind excess and the humidity deficit of the air
and is limited by the fetch over which the snow is transported.

References:
    Li, L. and Pomeroy, J.W., 1997. Estimates of threshold wind speeds for snow
    transport using meteorological data. J. Appl. Meteorol., 36, pp.205-213.

    Bowling, L.C., Pomeroy, J.W. and Lettenmaier, D.P., 2004. Parameterization of
    blowing-snow sublimation in a macroscale hydrology model. J. Hydrometeorol., 5,
    pp.745-762.
"""

import numpy as np

from pyLSM.microclimate.micromet import e_sat

#: [kg m-2 s-1], sublimation rate of suspended snow at unit wind excess and dry air
BLOWING_RATE = 1.0e-4
#: [m], fetch length at which transport is fully developed
FETCH_SCALE = 500.0


def threshold_wind(T: float) -> float:
    """
    Threshold 10 m wind speed of snow transport [m s-1] at air temperature T
    [degC] (Li and Pomeroy, 1997).
    """
    return 6.975 + 0.0033 * (T + 27.27)**2


def blowing_sublimation(dt: float, T: float, wind: float, vp: float, swq: float,
                        sigma_slope: float=0.0, lag_one: float=0.0, fetch: float=1000.0) -> float:
    """
    Blowing snow sublimation over a time step.

    Args:
        dt (float): time step [s]
        T (float): air temperature [degC]
        wind (float): wind speed at 10 m [m s-1]
        vp (float): vapour pressure of air [kPa]
        swq (float): snow water equivalent available [m]
        sigma_slope (float): standard deviation of terrain slope [-]
        lag_one (float): lag-one autocorrelation of terrain slope [-]
        fetch (float): average fetch length [m]
    Returns:
        sublimation (float): [m], at most swq
    """
    if swq <= 0.0 or wind <= 0.0:
        return 0.0

    # terrain with poorly correlated slopes exposes more snow to high winds
    U = wind * (1.0 + sigma_slope * (1.0 - lag_one))
    Ut = threshold_wind(T)
    if U <= Ut:
        return 0.0

    es, _ = e_sat(T)
    deficit = max(1.0 - vp / es, 0.0)
    fetch_factor = 1.0 - np.exp(-fetch / FETCH_SCALE)

    rate = BLOWING_RATE * deficit * fetch_factor * (U / Ut - 1.0)**2
    return float(min(rate * dt / 1000.0, swq))

# EOF
