# -*- coding: utf-8 -*-
"""
.. module: energybalance.surface
    :synopsis: pyLSM energy balance component
.. moduleauthor:: pyLSM developers

Ground surface energy balance of a tile. The surface temperature Ts is the root
of

    R(Ts) = (1 - cov) * (Rnet - H - LE) + cov * (F_snow + Q_surplus) - G

where the snow free part exchanges radiation, sensible and latent heat with the
atmosphere, the snow covered part (fraction cov) conducts heat F_snow from the
base of the snow pack, and G is the ground heat flux from one of the ground flux
modes:

    'quick_flux': two-store approximation of the soil thermal profile
    'finite_difference': soil heat conduction solved for each trial Ts
    'quick_solve': quick flux root refined with heat conduction
"""

import numpy as np
import logging
from typing import Dict

from pyLSM.energybalance.rootfind import Brackets, root_brent
from pyLSM.microclimate.micromet import e_sat, latent_heat, corrected_resistance
from pyLSM.microclimate.radiation import net_radiation
from pyLSM.canopy.interception import Evapotranspiration
from pyLSM.soil.thermal import ThermalNodes
from pyLSM.utils.errors import BalanceError
from pyLSM.utils.constants import SPECIFIC_HEAT_AIR

logger = logging.getLogger(__name__)


class SurfaceEnergyBalance(object):
    r"""
    Surface temperature and energy fluxes of the ground surface of a tile.
    """
    def __init__(self, thermal: ThermalNodes, options: Dict) -> object:
        """
        Args:
            thermal (ThermalNodes): soil thermal node profile
            options (dict): resolved model options
        Returns:
            self (object)
        """
        self.thermal = thermal
        self.mode = options['ground_flux']
        self.full_energy = options['full_energy']

        root = options['root_solver']
        self.brackets = Brackets(root['brackets'], widening=root['widening'])
        self.xtol = root['xtol']
        self.max_iter = root['max_iter']

        self.energy_tolerance = options['balance']['energy_tolerance']
        self.energy_hard_limit = options['balance']['energy_hard_limit']

    def ground_flux(self, dt: float, Ts: float, T_old: np.ndarray, W: np.ndarray,
                    mode: str=None) -> Dict:
        """ Soil thermal response to surface temperature Ts; see ThermalNodes. """
        mode = mode or self.mode
        if mode == 'finite_difference':
            return self.thermal.diffuse(dt, T_old, W, {'type': 'temperature', 'value': Ts})
        return self.thermal.quick_flux(dt, Ts, T_old, W)

    def _atmosphere(self, Ts: float, c: Dict) -> Dict:
        """ Radiation, sensible and latent heat of the snow free surface at Ts. """
        ra = corrected_resistance(c['wind'], c['z'], c['displacement'], c['roughness'], Ts, c['T'])
        Rnet = net_radiation(Ts, c['shortwave'], c['longwave'], c['albedo'], c['emissivity'])
        H = c['rho'] * SPECIFIC_HEAT_AIR * (Ts - c['T']) / ra
        es, _ = e_sat(Ts)
        E = c['et'].fluxes(es, c['vp'], c['rho'], c['P'], ra)
        return {'Rnet': Rnet, 'sensible': H, 'latent': latent_heat(Ts) * E['total'],
                'evap': E, 'aero_resist': ra}

    def _residual(self, Ts: float, c: Dict, mode: str) -> float:
        cov = c['coverage']
        atm = self._atmosphere(Ts, c)
        into_ground = (1.0 - cov) * (atm['Rnet'] - atm['sensible'] - atm['latent']) \
            + cov * (c['snow_conductance'] * (c['snow_bottom_temp'] - Ts) + c['surplus'])
        G = self.ground_flux(c['dt'], Ts, c['T_old'], c['W'], mode)['ground_flux']
        return into_ground - G

    def solve(self, dt: float, T_old: np.ndarray, W: np.ndarray, forcing: Dict, surface: Dict,
              et: Evapotranspiration, snow: Dict) -> Dict:
        r"""
        Solves the surface energy balance over one sub-step.

        Args:
            dt (float): time step [s]
            T_old (array): soil node temperatures at start of step [degC]
            W (array): total volumetric water content at nodes [m3 m-3]
            forcing (dict): air_temp [degC], shortwave, longwave [W m-2],
                wind [m s-1], vp, pressure [kPa], density [kg m-3]
            surface (dict): albedo, emissivity [-], z, displacement, roughness [m]
            et (Evapotranspiration): evaporation components of the tile
            snow (dict): coverage [-], snow_conductance [W m-2 K-1],
                snow_bottom_temp [degC], surplus_energy [W m-2]
        Returns:
            (dict):
                Tsurf (float): [degC]
                Rnet, sensible, latent, grnd_flux, snow_flux (float): [W m-2],
                    snow free fluxes weighted by (1 - coverage)
                evap (dict): evaporation components [kg m-2 s-1] of the snow free part
                thermal (dict): soil thermal solution (see ThermalNodes.diffuse)
                error (float): energy balance closure [W m-2]
                aero_resist (float): [s m-1]
                iterations (int)
        Raises:
            ConvergenceError: surface temperature not found
            BalanceError: energy error above the hard limit
        """
        c = {'dt': dt, 'T_old': np.asarray(T_old, dtype=float), 'W': W,
             'T': forcing['air_temp'], 'shortwave': forcing['shortwave'],
             'longwave': forcing['longwave'], 'wind': forcing['wind'], 'vp': forcing['vp'],
             'P': forcing['pressure'], 'rho': forcing['density'],
             'albedo': surface['albedo'], 'emissivity': surface['emissivity'],
             'z': surface['z'], 'displacement': surface['displacement'],
             'roughness': surface['roughness'], 'et': et,
             'coverage': snow['coverage'], 'snow_conductance': snow['snow_conductance'],
             'snow_bottom_temp': snow['snow_bottom_temp'], 'surplus': snow['surplus_energy']}
        cov = c['coverage']

        if not self.full_energy:
            return self._water_balance_mode(c)

        iter_mode = 'quick_flux' if self.mode == 'quick_solve' else self.mode
        lo, hi = self.brackets.around('surface', float(c['T_old'][0]))
        Ts, iterations = root_brent(self._residual, lo, hi, args=(c, iter_mode), xtol=self.xtol,
                                    max_iter=self.max_iter, widening=self.brackets.widening,
                                    variable='surface_temperature')

        final_mode = iter_mode
        if self.mode == 'quick_solve':
            # quick flux root seeds the heat conduction solution
            final_mode = 'finite_difference'
            lo, hi = self.brackets.around('surface', float(Ts))
            Ts, more = root_brent(self._residual, lo, hi, args=(c, final_mode), xtol=self.xtol,
                                  max_iter=self.max_iter, widening=self.brackets.widening,
                                  variable='surface_temperature')
            iterations += more

        atm = self._atmosphere(Ts, c)
        thermal = self.ground_flux(dt, Ts, c['T_old'], W, mode=final_mode)

        snow_flux = c['snow_conductance'] * (Ts - c['snow_bottom_temp'])
        Rnet = (1.0 - cov) * atm['Rnet']
        H = (1.0 - cov) * atm['sensible']
        LE = (1.0 - cov) * atm['latent']
        G = thermal['ground_flux']
        error = Rnet - H - LE + cov * (c['surplus'] - snow_flux) - G
        self._check_energy(error)

        return {'Tsurf': float(Ts), 'Rnet': Rnet, 'sensible': H, 'latent': LE, 'grnd_flux': G,
                'snow_flux': cov * snow_flux, 'evap': atm['evap'], 'thermal': thermal,
                'error': error, 'aero_resist': atm['aero_resist'], 'iterations': iterations}

    def _water_balance_mode(self, c: Dict) -> Dict:
        """ Surface at air temperature, no ground heat flux; H closes the balance. """
        Ts = c['T']
        cov = c['coverage']
        atm = self._atmosphere(Ts, c)
        Rnet = (1.0 - cov) * atm['Rnet']
        LE = (1.0 - cov) * atm['latent']
        T_old = c['T_old']
        thermal = {'T': np.concatenate(([Ts], T_old[1:])), 'ice': np.zeros(len(T_old)),
                   'liq': np.asarray(c['W'], dtype=float), 'Cs': None, 'kappa': None,
                   'ground_flux': 0.0, 'bottom_flux': 0.0, 'deltaH': 0.0, 'fusion': 0.0,
                   'iterations': 0}
        return {'Tsurf': Ts, 'Rnet': Rnet, 'sensible': Rnet - LE, 'latent': LE, 'grnd_flux': 0.0,
                'snow_flux': 0.0, 'evap': atm['evap'], 'thermal': thermal, 'error': 0.0,
                'aero_resist': atm['aero_resist'], 'iterations': 0}

    def _check_energy(self, error: float) -> None:
        if abs(error) > self.energy_hard_limit:
            raise BalanceError('Surface energy balance error %.4g W m-2 exceeds hard limit'
                               % error, variable='surface_energy')
        if abs(error) > self.energy_tolerance:
            logger.debug('Surface energy balance error %.4g W m-2', error)

# EOF
