# -*- coding: utf-8 -*-
"""
.. module: vegetation
    :synopsis: pyLSM vegetation parameters
.. moduleauthor:: pyLSM developers

Vegetation library classes and vegetation tiles of a grid cell. Monthly
varying properties are indexed with month 1...12.
"""

import numpy as np
import logging
from typing import Dict, List

from pyLSM.utils.errors import ConfigurationError
from pyLSM.utils.constants import BARE_SOIL_ALBEDO

logger = logging.getLogger(__name__)

MONTHLY = ('LAI', 'Wdmax', 'albedo', 'roughness', 'displacement', 'emissivity')


def root_fractions(zone_depth: List, zone_fract: List, depth: np.ndarray) -> np.ndarray:
    """
    Distributes root fractions given for root zones to soil layers by depth
    overlap.

    Args:
        zone_depth (list): root zone thicknesses [m]
        zone_fract (list): fraction of roots in each zone [-]
        depth (array): soil layer thicknesses [m]
    Returns:
        root (array): fraction of roots in each soil layer [-], sums to 1
    """
    zone_top = np.concatenate(([0.0], np.cumsum(zone_depth)[:-1]))
    layer_top = np.concatenate(([0.0], np.cumsum(depth)[:-1]))
    root = np.zeros(len(depth))

    for zt, zd, zf in zip(zone_top, zone_depth, zone_fract):
        for j, (lt, ld) in enumerate(zip(layer_top, depth)):
            overlap = max(0.0, min(zt + zd, lt + ld) - max(zt, lt))
            root[j] += zf * overlap / zd

    total = np.sum(root)
    if total <= 0.0:
        raise ConfigurationError('Root zones do not overlap the soil column')
    # roots below the soil column are assigned to the bottom layer
    root[-1] += 1.0 - total
    return root


class VegClass(object):
    r"""
    Vegetation library class.
    """
    def __init__(self, p: Dict) -> object:
        """
        Args:
            p (dict):
                veg_class (int): class id
                overstory (bool): tall vegetation above the snow pack
                LAI, Wdmax, albedo, roughness, displacement, emissivity (list):
                    monthly values; Wdmax [mm], roughness and displacement [m]
                rarc (float): architectural resistance [s m-1]
                rmin (float): minimum stomatal resistance [s m-1]
                RGL (float): radiation limit of transpiration [W m-2]
                rad_atten (float): radiation attenuation coefficient [-]
                wind_atten (float): wind attenuation through canopy [-]
                trunk_ratio (float): ratio of trunk height to canopy height [-]
                wind_h (float): height of wind speed of the class [m]
        """
        self.veg_class = p['veg_class']
        self.overstory = bool(p['overstory'])
        for key in MONTHLY:
            values = np.asarray(p[key], dtype=float)
            if values.shape != (12,):
                raise ConfigurationError('Vegetation %s must have 12 monthly values' % key)
            setattr(self, key, values)
        self.rarc = p['rarc']
        self.rmin = p['rmin']
        self.RGL = p['RGL']
        self.rad_atten = p['rad_atten']
        self.wind_atten = p['wind_atten']
        self.trunk_ratio = p['trunk_ratio']
        self.wind_h = p['wind_h']

    def monthly(self, month: int) -> Dict:
        return {key: float(getattr(self, key)[month - 1]) for key in MONTHLY}


class VegTile(object):
    r"""
    Vegetation tile of a grid cell. The bare soil tile has no vegetation class.
    """
    def __init__(self, Cv: float, veg: VegClass=None, root: np.ndarray=None,
                 sigma_slope: float=0.0, lag_one: float=0.0, fetch: float=1000.0,
                 soil_rough: float=0.001, wind_h: float=10.0):
        """
        Args:
            Cv (float): fraction of cell covered [-]
            veg (VegClass): vegetation class; None for bare soil
            root (array): root fraction per soil layer [-]
            sigma_slope (float): standard deviation of terrain slope [-]
            lag_one (float): lag-one autocorrelation of terrain slope [-]
            fetch (float): average fetch length [m]
            soil_rough (float): bare soil roughness length [m]
            wind_h (float): wind measurement height for bare soil [m]
        """
        self.Cv = float(Cv)
        self.veg = veg
        self.root = root
        self.sigma_slope = sigma_slope
        self.lag_one = lag_one
        self.fetch = fetch
        self.soil_rough = soil_rough
        self.bare_wind_h = wind_h

    @property
    def bare(self) -> bool:
        return self.veg is None

    @property
    def overstory(self) -> bool:
        return self.veg is not None and self.veg.overstory

    @property
    def wind_h(self) -> float:
        return self.bare_wind_h if self.veg is None else self.veg.wind_h

    def properties(self, month: int) -> Dict:
        """
        Surface properties of the tile in a month.

        Returns:
            (dict): LAI [m2 m-2], Wdmax [mm], albedo [-], roughness [m],
                displacement [m], emissivity [-]
        """
        if self.veg is None:
            return {'LAI': 0.0, 'Wdmax': 0.0, 'albedo': BARE_SOIL_ALBEDO,
                    'roughness': self.soil_rough, 'displacement': 0.0, 'emissivity': 1.0}
        return self.veg.monthly(month)


def build_tiles(vegparam: List[Dict], library: Dict, depth: np.ndarray,
                soil_rough: float, wind_h: float) -> List[VegTile]:
    """
    Creates vegetation tiles of a cell, followed by a bare soil tile covering the
    remaining fraction if it is positive.

    Args:
        vegparam (list): dicts with 'veg_class', 'Cv', 'zone_depth', 'zone_fract'
            and optional 'sigma_slope', 'lag_one', 'fetch'
        library (dict): veg_class -> VegClass parameter dict
        depth (array): soil layer thicknesses [m]
        soil_rough (float): bare soil roughness length [m]
        wind_h (float): wind measurement height [m]
    Returns:
        tiles (list): VegTile
    """
    tiles = []
    for p in vegparam:
        if p['veg_class'] not in library:
            raise ConfigurationError('Vegetation class %s not in library' % p['veg_class'])
        veg = VegClass(library[p['veg_class']])
        if veg.wind_h <= max(veg.displacement) + max(veg.roughness):
            raise ConfigurationError('wind_h of class %s is below canopy displacement height' % veg.veg_class)
        root = root_fractions(p['zone_depth'], p['zone_fract'], depth)
        tiles.append(VegTile(p['Cv'], veg, root, p.get('sigma_slope', 0.0), p.get('lag_one', 0.0),
                             p.get('fetch', 1000.0), soil_rough, wind_h))

    Cv_sum = sum(t.Cv for t in tiles)
    if Cv_sum > 1.0 + 1e-6:
        raise ConfigurationError('Vegetation cover fractions sum to %.4f > 1' % Cv_sum)
    bare = 1.0 - Cv_sum
    if bare > 1e-6:
        root = np.zeros(len(depth))
        root[0] = 1.0
        tiles.append(VegTile(bare, None, root, soil_rough=soil_rough, wind_h=wind_h))
    elif tiles:
        # absorb round-off into the last tile so that cover fractions sum to 1
        tiles[-1].Cv += bare

    logger.debug('%d vegetation tiles, bare soil fraction %.3f', len(tiles), max(bare, 0.0))
    return tiles

# EOF
