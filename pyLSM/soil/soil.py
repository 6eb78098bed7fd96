# -*- coding: utf-8 -*-
"""
.. module: soil.soil
    :synopsis: pyLSM soil component
.. moduleauthor:: pyLSM developers

Static soil column parameters of a grid cell, including elevation bands and
frost subareas. Parameters are derived once at initialisation and not mutated.
"""

import numpy as np
import logging
from typing import Dict

from pyLSM.soil.thermal import ThermalNodes
from pyLSM.utils.errors import ConfigurationError
from pyLSM.utils.constants import MINSOILDEPTH, RESID_MOIST, T_LAPSE, ARNO, NIJSSEN2001

logger = logging.getLogger(__name__)


def nijssen2001_to_arno(d1: float, d2: float, d3: float, d4: float, max_moist: float) -> Dict:
    """
    Converts NIJSSEN2001 baseflow parameters to ARNO parameters.

    Args:
        d1 (float): linear baseflow coefficient [day-1]
        d2 (float): nonlinear baseflow coefficient [mm1-d4 day-1]
        d3 (float): moisture threshold of nonlinear baseflow [mm]
        d4 (float): nonlinear exponent [-]
        max_moist (float): maximum moisture of the bottom layer [mm]
    Returns:
        (dict): Ds [-], Dsmax [mm day-1], Ws [-], c [-]
    """
    if not 0.0 < d3 < max_moist:
        raise ConfigurationError('NIJSSEN2001 d3 must be within (0, max_moist) of the bottom layer')
    Dsmax = d2 * (max_moist - d3)**d4 + d1 * max_moist
    return {'Ds': d1 * d3 / Dsmax, 'Dsmax': Dsmax, 'Ws': d3 / max_moist, 'c': d4}


class SoilColumn(object):
    r"""
    Soil column of a grid cell.
    """
    def __init__(self, p: Dict, options: Dict) -> object:
        r"""
        Args:
            p (dict):
                gridcel (int): grid cell id
                lat, lng (float): location [deg]
                elevation (float): mean elevation [m]
                depth (list): layer thicknesses [m]
                Ksat (list): saturated hydraulic conductivity [mm day-1]
                expt (list): Brooks-Corey exponent of unsaturated conductivity [-]
                bubble (list): bubbling pressure [cm]
                bulk_density (list): [kg m-3]
                soil_density (list): particle density [kg m-3]
                quartz (list): quartz content of solids [-]
                resid_moist (list): residual moisture [m3 m-3]
                Wcr_FRACT (list): critical moisture, fraction of max_moist [-]
                Wpwp_FRACT (list): wilting point, fraction of max_moist [-]
                init_moist (list): initial moisture [mm]
                b_infilt (float): infiltration shape parameter [-]
                baseflow (dict): ARNO 'Ds', 'Dsmax' [mm day-1], 'Ws', 'c'
                    or NIJSSEN2001 'd1'..'d4'
                dp (float): soil thermal damping depth [m]
                avg_temp (float): average soil temperature [degC]
                rough (float): soil roughness length [m]
                snow_rough (float): snow roughness length [m]
                frost_slope (float): range of sub-grid soil temperature [degC]
                bands (dict): 'AreaFract', 'elevation' [m], 'Pfactor' lists;
                    optional 'treeline' elevation [m]
            options (dict): resolved model options
        Returns:
            self (object)
        """
        self.gridcel = p.get('gridcel', 0)
        self.lat = p.get('lat', 0.0)
        self.lng = p.get('lng', 0.0)
        self.elevation = p.get('elevation', 0.0)

        Nlayer = options['Nlayer']
        self.Nlayer = Nlayer
        self.depth = self._layer_array(p, 'depth')
        if np.any(self.depth < MINSOILDEPTH):
            raise ConfigurationError('Soil layers must be at least %.3f m thick' % MINSOILDEPTH)
        self.total_depth = float(np.sum(self.depth))

        self.Ksat = self._layer_array(p, 'Ksat')
        self.expt = self._layer_array(p, 'expt')
        if np.any(self.expt <= 3.0):
            raise ConfigurationError('Brooks-Corey exponent expt must exceed 3')
        self.bubble = self._layer_array(p, 'bubble')
        self.bulk_density = self._layer_array(p, 'bulk_density')
        self.soil_density = self._layer_array(p, 'soil_density')
        self.quartz = self._layer_array(p, 'quartz')
        self.porosity = 1.0 - self.bulk_density / self.soil_density
        if np.any(self.porosity <= 0.0) or np.any(self.porosity >= 1.0):
            raise ConfigurationError('Soil porosity must be within (0, 1)')

        # moisture limits [mm]
        self.max_moist = self.porosity * self.depth * 1000.0
        resid = np.asarray(p.get('resid_moist', [RESID_MOIST] * Nlayer), dtype=float)
        if np.any(resid < 0.0) or np.any(resid >= self.porosity):
            raise ConfigurationError('resid_moist must be within [0, porosity)')
        self.resid_moist = resid * self.depth * 1000.0
        self.Wcr = self._layer_array(p, 'Wcr_FRACT') * self.max_moist
        self.Wpwp = self._layer_array(p, 'Wpwp_FRACT') * self.max_moist
        if np.any(self.Wpwp > self.Wcr):
            raise ConfigurationError('Wpwp must not exceed Wcr')
        self.init_moist = np.minimum(self._layer_array(p, 'init_moist'), self.max_moist)

        # infiltration
        self.b_infilt = p['b_infilt']
        self.max_infil = (1.0 + self.b_infilt) * float(np.sum(self.max_moist[:-1]))

        # baseflow
        bf = p['baseflow']
        if options['baseflow'] == NIJSSEN2001:
            arno = nijssen2001_to_arno(bf['d1'], bf['d2'], bf['d3'], bf['d4'], self.max_moist[-1])
        else:
            arno = bf
        self.Ds = arno['Ds']
        self.Dsmax = arno['Dsmax']
        self.Ws = arno['Ws']
        self.c = arno['c']
        if not (0.0 <= self.Ds <= 1.0 and 0.0 < self.Ws <= 1.0 and self.Dsmax >= 0.0):
            raise ConfigurationError('Invalid baseflow parameters (Ds, Ws in [0, 1], Dsmax >= 0)')

        # thermal
        self.dp = p['dp']
        self.avg_temp = p['avg_temp']
        self.rough = p['rough']
        self.snow_rough = p['snow_rough']
        self.init_temp = np.asarray(p.get('init_temp', [self.avg_temp] * Nlayer), dtype=float)
        if self.init_temp.shape != (Nlayer,):
            raise ConfigurationError('Soil parameter init_temp must have Nlayer = %d values' % Nlayer)

        # frost subareas
        n = options['frost_subareas']
        self.frost_fract = np.asarray(p.get('frost_fract', np.ones(n) / n), dtype=float)
        if len(self.frost_fract) != n or np.any(self.frost_fract < 0.0) \
                or np.any(self.frost_fract > 1.0) or abs(np.sum(self.frost_fract) - 1.0) > 1e-6:
            raise ConfigurationError('frost_fract must have frost_subareas values in [0, 1] summing to 1')
        self.frost_slope = p.get('frost_slope', 0.0)
        self.frost_offset = self.frost_slope * ((np.arange(n) + 0.5) / n - 0.5)

        # elevation bands
        bands = p.get('bands', {'AreaFract': [1.0], 'elevation': [self.elevation], 'Pfactor': [1.0]})
        self.AreaFract = np.asarray(bands['AreaFract'], dtype=float)
        if len(self.AreaFract) != options['snow_band']:
            raise ConfigurationError('Number of bands differs from option snow_band')
        if abs(np.sum(self.AreaFract) - 1.0) > 1e-6 or np.any(self.AreaFract < 0.0):
            raise ConfigurationError('Band area fractions must be non-negative and sum to 1')
        self.band_elevation = np.asarray(bands['elevation'], dtype=float)
        self.Tfactor = (self.elevation - self.band_elevation) * T_LAPSE / 1000.0
        self.Pfactor = np.asarray(bands.get('Pfactor', np.ones(len(self.AreaFract))), dtype=float)
        treeline = bands.get('treeline', None)
        if treeline is None:
            self.AboveTreeLine = np.zeros(len(self.AreaFract), dtype=bool)
        else:
            self.AboveTreeLine = self.band_elevation > treeline

        self.thermal = ThermalNodes({'depth': self.depth, 'dp': self.dp, 'avg_temp': self.avg_temp,
                                     'porosity': self.porosity, 'quartz': self.quartz,
                                     'bulk_density': self.bulk_density, 'bubble': self.bubble,
                                     'expt': self.expt},
                                    options)

        logger.info('Soil column of cell %s: %d layers, %d thermal nodes, %d bands',
                    self.gridcel, Nlayer, self.thermal.Nnode, len(self.AreaFract))

    def _layer_array(self, p: Dict, key: str) -> np.ndarray:
        value = np.asarray(p[key], dtype=float)
        if value.shape != (self.Nlayer,):
            raise ConfigurationError('Soil parameter %s must have Nlayer = %d values' % (key, self.Nlayer))
        return value

# EOF
