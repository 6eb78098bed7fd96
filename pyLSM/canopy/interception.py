# -*- coding: utf-8 -*-
"""
.. module: interception
    :synopsis: pyLSM canopy component
.. moduleauthor:: pyLSM developers

*Rainfall interception, wet canopy evaporation, transpiration and bare soil
evaporation of a vegetation tile*

References:
    Deardorff, J.W., 1978. Efficient prediction of ground surface temperature and
    moisture, with inclusion of a layer of vegetation. J. Geophys. Res., 83(C4),
    pp.1889-1903.

    Wigmosta, M.S., Vail, L.W. and Lettenmaier, D.P., 1994. A distributed
    hydrology-vegetation model for complex terrain. Water Resour. Res., 30(6),
    pp.1665-1679.
"""

import numpy as np
import logging
from typing import Dict, List, Tuple

from pyLSM.microclimate.micromet import vapor_flux
from pyLSM.utils.constants import HUGE_RESIST, SMALL

logger = logging.getLogger(__name__)

#: [s m-1], maximum stomatal resistance
RMAX = 5000.0


def rain_interception(rain: float, Wdew: float, Wdmax: float) -> Tuple[float, float]:
    """
    Fills canopy storage with rain; rain exceeding storage capacity falls through.

    Args:
        rain (float): rain above canopy [mm]
        Wdew (float): canopy water storage [mm]
        Wdmax (float): canopy storage capacity [mm]
    Returns:
        throughfall (float): [mm]
        Wdew (float): [mm]
    """
    W = Wdew + rain
    if W > Wdmax:
        return W - Wdmax, Wdmax
    return 0.0, W


def moisture_stress(moist: np.ndarray, Wcr: np.ndarray, Wpwp: np.ndarray) -> np.ndarray:
    """
    Soil moisture stress factor of transpiration per layer [-]: 1 above Wcr,
    0 below Wpwp, linear in between.
    """
    moist = np.asarray(moist, dtype=float)
    span = np.maximum(Wcr - Wpwp, SMALL)
    return np.clip((moist - Wpwp) / span, 0.0, 1.0)


def canopy_resistance(rmin: float, LAI: float, shortwave: float, RGL: float, gsm: float) -> float:
    """
    Canopy resistance to transpiration [s m-1].

    Args:
        rmin (float): minimum stomatal resistance [s m-1]
        LAI (float): leaf area index [m2 m-2]
        shortwave (float): incoming shortwave radiation [W m-2]
        RGL (float): radiation limit of transpiration [W m-2]
        gsm (float): root weighted soil moisture stress factor [-]
    """
    if LAI <= 0.0 or gsm <= 0.0:
        return HUGE_RESIST
    f = 0.55 * max(shortwave, 0.0) / RGL * 2.0 / LAI
    gsw = (1.0 + f) / (f + rmin / RMAX)
    return rmin * gsw / (gsm * LAI)


class Evapotranspiration(object):
    r"""
    Evaporation components of a tile for a given surface vapour pressure.
    Each component is limited by the water available within the time step.
    """
    def __init__(self, dt: float, props: Dict, veg: object, root: np.ndarray,
                 moist: np.ndarray, soil: object, Wdew: float, shortwave: float):
        """
        Args:
            dt (float): time step [s]
            props (dict): monthly surface properties of the tile
            veg (VegClass|None): vegetation class, None for bare soil
            root (array): root fractions per layer [-]
            moist (array): liquid layer moisture [mm]
            soil (SoilColumn): static soil parameters
            Wdew (float): canopy water storage after interception [mm]
            shortwave (float): incoming shortwave radiation [W m-2]
        """
        self.dt = dt
        self.bare = veg is None
        moist = np.asarray(moist, dtype=float)

        if self.bare:
            self.f_wet = 0.0
            self.rc = HUGE_RESIST
            self.rarc = 0.0
            span = max(soil.Wcr[0] - soil.resid_moist[0], SMALL)
            self.beta = float(np.clip((moist[0] - soil.resid_moist[0]) / span, 0.0, 1.0))
            self.soil_cap = max(moist[0] - soil.resid_moist[0], 0.0) / dt
            self.transp_cap = 0.0
            self.canopy_cap = 0.0
            self.transp_weights = np.zeros(len(moist))
        else:
            Wdmax = props['Wdmax']
            self.f_wet = min((Wdew / Wdmax)**(2.0 / 3.0), 1.0) if Wdmax > 0.0 else 0.0
            gsm_layer = moisture_stress(moist, soil.Wcr, soil.Wpwp)
            gsm = float(np.sum(root * gsm_layer))
            self.rc = canopy_resistance(veg.rmin, props['LAI'], shortwave, veg.RGL, gsm)
            self.rarc = veg.rarc
            self.beta = 0.0
            self.soil_cap = 0.0
            self.canopy_cap = Wdew / dt
            avail = np.maximum(moist - soil.Wpwp, 0.0) * (root > 0.0)
            self.transp_cap = float(np.sum(avail)) / dt
            w = root * gsm_layer
            self.transp_weights = w / np.sum(w) if np.sum(w) > 0.0 else np.zeros(len(moist))
            self.avail = avail

    def fluxes(self, e_surface: float, e_air: float, rho_air: float, P: float, ra: float) -> Dict:
        """
        Args:
            e_surface (float): saturation vapour pressure at surface temperature [kPa]
            e_air (float): vapour pressure of air [kPa]
            rho_air (float): air density [kg m-3]
            P (float): air pressure [kPa]
            ra (float): aerodynamic resistance [s m-1]
        Returns:
            (dict): canopy, transpiration, soil, total [kg m-2 s-1], positive upwards
        """
        potential = vapor_flux(rho_air, P, e_surface, e_air, ra)

        if potential <= 0.0:
            # condensation onto canopy or soil surface
            if self.bare:
                return {'canopy': 0.0, 'transpiration': 0.0, 'soil': potential, 'total': potential}
            return {'canopy': potential, 'transpiration': 0.0, 'soil': 0.0, 'total': potential}

        if self.bare:
            soil = min(self.beta * potential, self.soil_cap)
            return {'canopy': 0.0, 'transpiration': 0.0, 'soil': soil, 'total': soil}

        canopy = min(self.f_wet * potential, self.canopy_cap)
        transp = (1.0 - self.f_wet) * potential * ra / (ra + self.rarc + self.rc)
        transp = min(transp, self.transp_cap)
        return {'canopy': canopy, 'transpiration': transp, 'soil': 0.0, 'total': canopy + transp}

    def layer_withdrawal(self, transpiration: float, soil: float) -> np.ndarray:
        """
        Distributes transpiration [mm] over layers by root weighted moisture
        stress, and soil evaporation [mm] to the top layer.
        """
        out = np.zeros(len(self.transp_weights))
        if transpiration > 0.0:
            out += transpiration * self.transp_weights
            # redistribute the part exceeding layer availability
            over = np.maximum(out - self.avail, 0.0)
            if np.any(over > 0.0):
                out = np.minimum(out, self.avail)
                spare = self.avail - out
                if np.sum(spare) > 0.0:
                    out += np.sum(over) * spare / np.sum(spare)
        out[0] += soil
        return out

# EOF
