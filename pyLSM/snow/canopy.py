# -*- coding: utf-8 -*-
"""
.. module: snow.canopy
    :synopsis: pyLSM snow component
.. moduleauthor:: pyLSM developers

*Snow intercepted by an overstory canopy*

Interception with temperature dependent storage capacity, retention of rain and
melt water in the intercepted snow, melt, mass release and sublimation.

References:
    Storck, P., Lettenmaier, D.P. and Bolton, S.M., 2002. Measurement of snow
    interception and canopy effects on snow accumulation and melt in a mountainous
    maritime climate, Oregon, United States. Water Resour. Res., 38(11), 1223.
"""

import logging
from typing import Dict

from pyLSM.microclimate.micromet import e_sat, vapor_flux, latent_heat_sublimation
from pyLSM.model.state import SnowState
from pyLSM.utils.constants import LIQUID_WATER_CAPACITY, LATENT_HEAT_FUSION, WATER_DENSITY, \
    SPECIFIC_HEAT_AIR, NEW_SNOW_ALBEDO, SMALL

logger = logging.getLogger(__name__)

#: [-], fraction of snowfall intercepted while capacity remains
INTERCEPTION_EFFICIENCY = 0.6
#: [m], snow interception capacity per unit LAI at cold temperatures
SNOW_CAPACITY_LAI = 0.0005
#: [-], intercepted snow released to the ground per unit melt
MASS_RELEASE_RATIO = 0.4


def snow_capacity(T: float, LAI: float) -> float:
    """
    Maximum intercepted snow [m]. Capacity increases towards 0 degC as snow
    becomes cohesive.

    Args:
        T (float): air temperature [degC]
        LAI (float): leaf area index [m2 m-2]
    """
    if T > -1.0:
        mult = 4.0
    elif T > -3.0:
        mult = 1.5 * T + 5.5
    else:
        mult = 1.0
    return SNOW_CAPACITY_LAI * mult * LAI


class CanopySnow(object):
    r"""
    Intercepted snow of an overstory vegetation tile.
    """
    def __init__(self, dt: float) -> object:
        """
        Args:
            dt (float): time step [s]
        Returns:
            self (object)
        """
        self.dt = dt

    def run(self, state: SnowState, forcing: Dict, LAI: float, veg_albedo: float,
            absorbed_shortwave: float, ra: float, e_canopy: float) -> Dict:
        """
        Interception, melt, release and sublimation over one time step.

        Args:
            state (SnowState): modified in place (snow_canopy, tmp_int_storage,
                canopy_vapor_flux, canopy_albedo)
            forcing (dict):
                air_temp (float): [degC]
                snow (float): snowfall above canopy [mm]
                rain (float): rain above canopy [mm]
                density (float): air density [kg m-3]
                pressure (float): [kPa]
            LAI (float): [m2 m-2]
            veg_albedo (float): albedo of the snow-free canopy [-]
            absorbed_shortwave (float): shortwave absorbed by the canopy [W m-2]
            ra (float): aerodynamic resistance of the canopy [s m-1]
            e_canopy (float): vapour pressure of canopy air [kPa]
        Returns:
            (dict):
                snow (float): snow reaching the ground [mm]
                rain (float): liquid water reaching the ground [mm]
                sublimation (float): [mm]
                latent (float): latent heat flux of sublimation [W m-2]
                Tfoliage (float): [degC]
                mass_closure (float): [mm]
        """
        dt = self.dt
        T = forcing['air_temp']
        snowfall = forcing['snow'] / 1000.0
        rain = forcing['rain'] / 1000.0
        storage0 = state.snow_canopy + state.tmp_int_storage

        capacity = snow_capacity(T, LAI)
        intercepted = min(INTERCEPTION_EFFICIENCY * snowfall, max(capacity - state.snow_canopy, 0.0))
        through = snowfall - intercepted
        state.snow_canopy += intercepted

        Tfoliage = min(T, 0.0) if state.snow_canopy > 0.0 else T

        sublimation = 0.0
        latent = 0.0
        melt = 0.0
        if state.snow_canopy > 0.0:
            # exposed fraction of intercepted snow
            exposure = min(state.snow_canopy / max(capacity, SMALL), 1.0)**(2.0 / 3.0)
            es, _ = e_sat(Tfoliage)
            E = exposure * vapor_flux(forcing['density'], forcing['pressure'], es, e_canopy, ra)
            sublimation = min(E * dt / WATER_DENSITY, state.snow_canopy)
            state.snow_canopy -= sublimation
            latent = latent_heat_sublimation(Tfoliage) * sublimation * WATER_DENSITY / dt

            if T > 0.0:
                energy = (absorbed_shortwave
                          + forcing['density'] * SPECIFIC_HEAT_AIR * T / ra) * dt
                melt = min(max(energy, 0.0) / (WATER_DENSITY * LATENT_HEAT_FUSION), state.snow_canopy)
                state.snow_canopy -= melt
                state.tmp_int_storage += melt

        release = min(MASS_RELEASE_RATIO * melt, state.snow_canopy)
        state.snow_canopy -= release

        # liquid water held in the intercepted snow
        state.tmp_int_storage += rain
        hold = LIQUID_WATER_CAPACITY * state.snow_canopy
        drip = max(state.tmp_int_storage - hold, 0.0)
        state.tmp_int_storage -= drip

        if state.snow_canopy <= SMALL:
            drip += state.tmp_int_storage
            state.tmp_int_storage = 0.0
            release += max(state.snow_canopy, 0.0)
            state.snow_canopy = 0.0

        state.canopy_vapor_flux = sublimation
        cover = min(state.snow_canopy / max(capacity, SMALL), 1.0)
        state.canopy_albedo = veg_albedo + (NEW_SNOW_ALBEDO - veg_albedo) * cover

        storage1 = state.snow_canopy + state.tmp_int_storage
        closure = (storage1 - storage0) - (snowfall + rain - through - release - drip - sublimation)

        return {'snow': 1000.0 * (through + release),
                'rain': 1000.0 * drip,
                'sublimation': 1000.0 * sublimation,
                'latent': latent,
                'Tfoliage': Tfoliage,
                'mass_closure': 1000.0 * closure}

# EOF
