# -*- coding: utf-8 -*-
"""
.. module: lake.lake
    :synopsis: pyLSM lake component
.. moduleauthor:: pyLSM developers

*Energy and volume balance of a lake occupying a fixed footprint of a grid cell*

The lake is a column of Nlakenode equally thick water layers over a basin given
by a depth-area table. Lake volume includes lake ice as water equivalent; ice
and snow on ice are stored per unit lake footprint.

References:
    Hostetler, S.W. and Bartlein, P.J., 1990. Simulation of lake evaporation with
    application to modeling lake level variations of Harney-Malheur Lake, Oregon.
    Water Resour. Res., 26(10), pp.2603-2612.

    Bowling, L.C. and Lettenmaier, D.P., 2010. Modeling the effects of lakes and
    wetlands on the water balances of Arctic environments. J. Hydrometeorol., 11,
    pp.276-295.
"""

import numpy as np
import logging
from typing import Dict

from pyLSM.energybalance.rootfind import Brackets, root_brent
from pyLSM.microclimate.micromet import e_sat, vapor_flux, latent_heat, latent_heat_sublimation, \
    corrected_resistance, aerodynamic_resistance
from pyLSM.microclimate.radiation import net_radiation
from pyLSM.model.state import LakeState
from pyLSM.utils.utilities import tridiag as thomas
from pyLSM.utils.errors import ConfigurationError
from pyLSM.utils.constants import CV_WATER, WATER_DENSITY, ICE_DENSITY, LATENT_HEAT_FUSION, \
    SPECIFIC_HEAT_AIR, K_ICE, K_SNOW, K_WATER, FRACMIN_ICE_HEIGHT, LAKE_SNOW_DENSITY, \
    NEW_SNOW_ALBEDO, SMALL

logger = logging.getLogger(__name__)

#: [-], albedo of open water
WATER_ALBEDO = 0.08
#: [-], albedo of bare lake ice
ICE_ALBEDO = 0.6
#: [m], roughness length of water and ice surfaces
WATER_ROUGHNESS = 0.001
#: [m2 s-1], molecular diffusivity of heat in water
KAPPA_MOLECULAR = 1.4e-7
#: [m2 s-1 (m s-1)-1], wind driven eddy diffusivity per unit wind speed
KAPPA_WIND = 2.0e-5
#: [m], e-folding depth of wind mixing
WIND_MIXING_DEPTH = 2.0
#: [m], lake depth below which the lake is treated as dry
MIN_LAKE_DEPTH = 0.001
#: number of points of the bathymetry table
TABLE_POINTS = 201


def water_density(T: np.ndarray) -> np.ndarray:
    """ Density of fresh water [kg m-3] at T [degC], maximum at 3.98 degC. """
    T = np.asarray(T, dtype=float)
    return 1000.0 * (1.0 - 1.9549e-5 * np.abs(T - 3.84)**1.68)


def ice_thickness(ice_we: float) -> float:
    """
    Ice thickness [m] from ice water equivalent per unit footprint [m], with the
    ice covered fraction growing linearly up to FRACMIN_ICE_HEIGHT.
    """
    X = max(ice_we, 0.0) * WATER_DENSITY / ICE_DENSITY
    if X <= FRACMIN_ICE_HEIGHT:
        return float(np.sqrt(FRACMIN_ICE_HEIGHT * X))
    return X


def ice_fraction(hice: float) -> float:
    return min(1.0, max(hice, 0.0) / FRACMIN_ICE_HEIGHT)


class LakeColumn(object):
    r"""
    Static lake parameters and bathymetry of a grid cell.
    """
    def __init__(self, p: Dict, options: Dict) -> object:
        """
        Args:
            p (dict):
                cell_area (float): grid cell area [m2]
                maxdepth (float): lake depth at maximum volume [m]
                mindepth (float): depth below which there is no outflow [m]
                depth_in (float): initial depth [m]
                eta_a (float): shortwave extinction coefficient [m-1]
                maxrate (float): outflow rate at maxdepth [m3 s-1]
                rpercent (float): fraction of land runoff routed to the lake [-]
                bpercent (float): fraction of land baseflow routed to the lake [-]
                init_temp (float): initial water temperature [degC]
                bathymetry, one of
                    z, basin (list): height above lake bottom [m] and area at z [m2]
                    Cl (list): fraction of cell covered at equally spaced depths
                        from the surface at maxdepth down to the bottom; the last
                        level is maxdepth / len(Cl) above the bottom [-]
                    b, max_area_fract (float): exponent and footprint fraction of
                        the power law area(z) = A (z / maxdepth)**b
            options (dict): resolved model options
        Returns:
            self (object)
        """
        self.cell_area = float(p['cell_area'])
        self.maxdepth = float(p['maxdepth'])
        self.mindepth = float(p['mindepth'])
        self.depth_in = float(p['depth_in'])
        self.eta_a = float(p['eta_a'])
        self.maxrate = float(p['maxrate'])
        self.rpercent = float(p['rpercent'])
        self.bpercent = float(p['bpercent'])
        self.init_temp = float(p.get('init_temp', 4.0))
        self.numnod = options['Nlakenode']

        if not 0.0 <= self.mindepth <= self.maxdepth or self.maxdepth <= 0.0:
            raise ConfigurationError('Lake depths must satisfy 0 <= mindepth <= maxdepth, maxdepth > 0')
        if not 0.0 <= self.depth_in <= self.maxdepth:
            raise ConfigurationError('Initial lake depth must be within [0, maxdepth]')
        for key in ('rpercent', 'bpercent'):
            if not 0.0 <= getattr(self, key) <= 1.0:
                raise ConfigurationError('Lake %s must be within [0, 1]' % key)

        z = np.linspace(0.0, self.maxdepth, TABLE_POINTS)
        if 'z' in p and 'basin' in p:
            zp = np.asarray(p['z'], dtype=float)
            ap = np.asarray(p['basin'], dtype=float)
            if np.any(np.diff(zp) <= 0.0) or np.any(np.diff(ap) < 0.0):
                raise ConfigurationError('Lake z must increase and basin area must not decrease')
            area = np.interp(z, zp, ap)
        elif 'Cl' in p:
            Cl = np.atleast_1d(np.asarray(p['Cl'], dtype=float))
            if Cl.size == 0 or np.any(Cl <= 0.0) or np.any(Cl > 1.0) or np.any(np.diff(Cl) > 0.0):
                raise ConfigurationError('Lake Cl must be fractions in (0, 1] not increasing with depth')
            # levels from the surface down; area tapers to zero at the bottom
            zp = self.maxdepth * (1.0 - np.arange(len(Cl)) / len(Cl))
            zp = np.concatenate(([0.0], zp[::-1]))
            ap = np.concatenate(([0.0], (Cl * self.cell_area)[::-1]))
            area = np.interp(z, zp, ap)
        elif 'b' in p:
            area = p['max_area_fract'] * self.cell_area * (z / self.maxdepth)**p['b']
        else:
            raise ConfigurationError('Lake bathymetry needs z and basin, Cl or b')

        self.z_table = z
        self.area_table = area
        self.volume_table = np.concatenate(([0.0], np.cumsum(0.5 * (area[1:] + area[:-1]) * np.diff(z))))
        self.maxvolume = float(self.volume_table[-1])
        self.footprint = float(area[-1])
        if self.footprint <= 0.0 or self.footprint > self.cell_area * (1.0 + 1e-9):
            raise ConfigurationError('Lake footprint must be within (0, cell_area]')
        self.lake_fraction = self.footprint / self.cell_area

    def area_from_depth(self, depth: float) -> float:
        """ Surface area [m2] at lake depth [m]. """
        return float(np.interp(depth, self.z_table, self.area_table))

    def volume_from_depth(self, depth: float) -> float:
        """ Volume [m3] at lake depth [m]. """
        return float(np.interp(depth, self.z_table, self.volume_table))

    def depth_from_volume(self, volume: float) -> float:
        """ Lake depth [m] at volume [m3]; volumes above maxvolume give maxdepth. """
        return float(np.interp(volume, self.volume_table, self.z_table))


class Lake(object):
    r"""
    Lake energy and volume balance.
    """
    def __init__(self, column: LakeColumn, options: Dict) -> object:
        self.column = column
        root = options['root_solver']
        self.brackets = Brackets(root['brackets'], widening=root['widening'])
        self.xtol = root['xtol']
        self.max_iter = root['max_iter']
        self.wind_h = options['wind_h']
        self.min_wind_speed = options['min_wind_speed']

    def initial_state(self) -> LakeState:
        col = self.column
        state = LakeState(col.numnod)
        state.volume = col.volume_from_depth(col.depth_in)
        state.temp[:] = col.init_temp
        self._geometry(state, ice_we=0.0)
        state.tempi = 0.0
        state.tp_in = col.init_temp
        state.tempavg = col.init_temp
        return state

    def storage(self, state: LakeState) -> float:
        """ Lake water including ice and snow on ice [m3]. """
        return state.volume + state.swe * self.column.footprint

    def _geometry(self, state: LakeState, ice_we: float) -> None:
        col = self.column
        state.ldepth = col.depth_from_volume(state.volume)
        state.sarea = col.area_from_depth(state.ldepth)
        state.activenod = col.numnod if state.ldepth > MIN_LAKE_DEPTH else 0
        state.dz = state.ldepth / col.numnod
        state.surfdz = state.dz
        z = state.ldepth - np.arange(col.numnod + 1) * state.dz
        state.surface = np.array([col.area_from_depth(max(zz, 0.0)) for zz in z])
        state.hice = ice_thickness(ice_we)
        state.fraci = ice_fraction(state.hice)
        state.sdepth = state.swe * WATER_DENSITY / LAKE_SNOW_DENSITY
        state.density = water_density(state.temp)

    @staticmethod
    def ice_water_equivalent(state: LakeState) -> float:
        """ Ice per unit footprint [m water equivalent]. """
        return state.hice * state.fraci * ICE_DENSITY / WATER_DENSITY

    # --- ice surface energy balance

    def _ice_residual(self, Ti: float, c: Dict) -> float:
        ra = corrected_resistance(c['wind'], self.wind_h, 0.0, WATER_ROUGHNESS, Ti, c['T'])
        Rnet = net_radiation(Ti, c['shortwave'], c['longwave'], c['albedo'])
        H = c['rho'] * SPECIFIC_HEAT_AIR * (Ti - c['T']) / ra
        es, _ = e_sat(Ti)
        LE = latent_heat_sublimation(Ti) * vapor_flux(c['rho'], c['P'], es, c['vp'], ra)
        return Rnet - H - LE + c['conductance'] * (0.0 - Ti)

    def _ice_balance(self, dt: float, state: LakeState, f: Dict, wind: float) -> Dict:
        """ Ice surface temperature, sublimation and top melt per unit ice area. """
        conductance = 1.0 / (max(state.hice, SMALL) / K_ICE
                             + state.sdepth / (K_SNOW * LAKE_SNOW_DENSITY**2))
        c = {'T': f['air_temp'], 'shortwave': f['shortwave'], 'longwave': f['longwave'],
             'albedo': NEW_SNOW_ALBEDO if state.swe > 0.0 else ICE_ALBEDO, 'wind': wind,
             'rho': f['density'], 'P': f['pressure'], 'vp': f['vp'], 'conductance': conductance}

        R0 = self._ice_residual(0.0, c)
        if R0 >= 0.0:
            Ti = 0.0
            surplus = R0
        else:
            lower = min(f['air_temp'], state.tempi) - self.brackets.snow
            Ti, _ = root_brent(self._ice_residual, lower, 0.0, args=(c,), xtol=self.xtol,
                               max_iter=self.max_iter, widening=self.brackets.widening,
                               widen='lower', variable='lake_ice_temperature')
            Ti = min(Ti, 0.0)
            surplus = 0.0

        ra = corrected_resistance(wind, self.wind_h, 0.0, WATER_ROUGHNESS, Ti, f['air_temp'])
        es, _ = e_sat(Ti)
        E = vapor_flux(f['density'], f['pressure'], es, f['vp'], ra)
        return {'Ti': Ti, 'surplus': surplus, 'sublimation': E * dt / WATER_DENSITY,
                'basal_growth': conductance * (0.0 - Ti) * dt / (WATER_DENSITY * LATENT_HEAT_FUSION),
                'Rnet': net_radiation(Ti, f['shortwave'], f['longwave'], c['albedo']),
                'sensible': f['density'] * SPECIFIC_HEAT_AIR * (Ti - f['air_temp']) / ra,
                'latent': latent_heat_sublimation(Ti) * E}

    # --- step

    def run(self, dt: float, state: LakeState, forcing: Dict, runoff_in: float,
            baseflow_in: float) -> Dict:
        r"""
        Lake over one model time step.

        Args:
            dt (float): time step [s]
            state (LakeState): modified in place
            forcing (dict): whole-step forcing: air_temp [degC], shortwave, longwave
                [W m-2], wind [m s-1], vp, pressure [kPa], density [kg m-3],
                rain, snow [mm]
            runoff_in (float): routed land surface runoff [m3]
            baseflow_in (float): routed land baseflow [m3]
        Returns:
            (dict): volumes [m3] of prec, evap, sublimation, outflow; energy terms
                [W m-2] per unit lake surface; closure [m3]
        """
        col = self.column
        fp = col.footprint
        storage0 = self.storage(state)
        wind = max(forcing['wind'], self.min_wind_speed)
        rain = forcing['rain'] / 1000.0 * fp
        snow = forcing['snow'] / 1000.0
        ice_we = self.ice_water_equivalent(state)

        state.runoff_in = runoff_in
        state.baseflow_in = baseflow_in
        state.aero_resist = aerodynamic_resistance(wind, self.wind_h, 0.0, WATER_ROUGHNESS)
        state.volume += rain + runoff_in + baseflow_in

        # snow lands on ice, else in the water
        fraci = state.fraci
        state.swe += snow * fraci
        state.volume += snow * (1.0 - fraci) * fp
        state.snowmlt = 0.0

        heat0 = self._heat_content(state)
        fluxes = {'Rnet': 0.0, 'sensible': 0.0, 'latent': 0.0, 'sublimation': 0.0}

        # ice covered part
        F_water = 0.0
        if fraci > 0.0:
            ice = self._ice_balance(dt, state, forcing, wind)
            state.tempi = ice['Ti']
            sub = min(ice['sublimation'] * fraci, state.swe + ice_we)
            from_snow = min(max(sub, 0.0), state.swe)
            state.swe -= from_snow
            ice_we -= sub - from_snow
            state.volume -= (sub - from_snow) * fp
            fluxes['sublimation'] = sub * fp

            melt = ice['surplus'] * fraci * dt / (WATER_DENSITY * LATENT_HEAT_FUSION)
            snow_melt = min(melt, state.swe)
            state.swe -= snow_melt
            state.snowmlt = snow_melt
            state.volume += snow_melt * fp
            ice_we -= min(melt - snow_melt, ice_we)
            ice_we += ice['basal_growth'] * fraci

            if state.activenod > 0:
                # heat from the top water layer melts the ice base
                F_water = fraci * K_WATER * max(state.temp[0], 0.0) / max(0.5 * state.dz, SMALL)
                ice_we -= min(F_water * dt / (WATER_DENSITY * LATENT_HEAT_FUSION), ice_we)
            for key in ('Rnet', 'sensible', 'latent'):
                fluxes[key] += fraci * ice[key]

        # open water part
        evap = 0.0
        surface_in = 0.0
        sw_in = 0.0
        if fraci < 1.0 and state.activenod > 0:
            T0 = state.temp[0]
            ra = corrected_resistance(wind, self.wind_h, 0.0, WATER_ROUGHNESS, T0, forcing['air_temp'])
            es, _ = e_sat(T0)
            E = vapor_flux(forcing['density'], forcing['pressure'], es, forcing['vp'], ra)
            liquid = max(state.volume - ice_we * fp, 0.0)
            evap = min(E * dt / WATER_DENSITY * (1.0 - fraci) * state.sarea, liquid)
            LE = latent_heat(T0) * evap * WATER_DENSITY / dt / max((1.0 - fraci) * state.sarea, SMALL)
            Rnet = net_radiation(T0, forcing['shortwave'], forcing['longwave'], WATER_ALBEDO)
            H = forcing['density'] * SPECIFIC_HEAT_AIR * (T0 - forcing['air_temp']) / ra
            sw_in = (1.0 - fraci) * (1.0 - WATER_ALBEDO) * forcing['shortwave']
            surface_in = (1.0 - fraci) * (Rnet - (1.0 - WATER_ALBEDO) * forcing['shortwave'] - H - LE)
            fluxes['Rnet'] += (1.0 - fraci) * Rnet
            fluxes['sensible'] += (1.0 - fraci) * H
            fluxes['latent'] += (1.0 - fraci) * LE
            state.volume -= evap
        state.evapw = evap

        state.energy_error = 0.0
        if state.activenod > 0:
            self._diffuse(dt, state, sw_in, surface_in - F_water, wind * (1.0 - fraci))
            state.energy_error = self._energy_error(state, heat0, dt, sw_in, surface_in - F_water)
            ice_we += self._freeze_surface(state)
        else:
            state.temp[:] = forcing['air_temp']

        state.mixmax = self._convect(state)

        # outflow above mindepth and spill above maxvolume
        ldepth = col.depth_from_volume(state.volume)
        outflow = 0.0
        if ldepth > col.mindepth and col.maxdepth > col.mindepth:
            rate = col.maxrate * (ldepth - col.mindepth) / (col.maxdepth - col.mindepth)
            outflow = min(rate * dt, state.volume - col.volume_from_depth(col.mindepth))
        state.volume -= outflow
        spill = max(state.volume - col.maxvolume, 0.0)
        state.volume -= spill
        state.runoff_out = outflow + spill
        state.volume = max(state.volume, 0.0)

        if ice_we <= 0.0:
            # snow without supporting ice falls into the water
            state.volume += state.swe * fp
            state.swe = 0.0
            ice_we = 0.0
        ice_we = min(ice_we, state.volume / fp)
        self._geometry(state, ice_we)

        if state.fraci <= 0.0:
            state.tempi = 0.0
        state.tp_in = state.tempi if state.fraci >= 1.0 else state.temp[0]
        state.tempavg = float(np.mean(state.temp))

        closure = (self.storage(state) - storage0) \
            - (rain + snow * fp + runoff_in + baseflow_in - evap - fluxes['sublimation']
               - state.runoff_out)

        return {'prec': rain + snow * fp, 'evap': evap, 'sublimation': fluxes['sublimation'],
                'outflow': state.runoff_out, 'Rnet': fluxes['Rnet'], 'sensible': fluxes['sensible'],
                'latent': fluxes['latent'], 'closure': closure}

    # --- temperature profile

    def _node_depths(self, state: LakeState) -> np.ndarray:
        """ Depths of layer interfaces below the surface [m]. """
        return np.arange(self.column.numnod + 1) * state.dz

    def _heat_content(self, state: LakeState) -> float:
        """ Sensible heat of the water column per unit surface [J m-2]. """
        return float(np.sum(CV_WATER * state.temp * state.dz))

    def _diffuse(self, dt: float, state: LakeState, shortwave: float, surface_flux: float,
                 wind: float) -> None:
        r"""
        Implicit diffusion of heat with shortwave absorbed exponentially with depth
        and the non-radiative surface flux into the top layer.
        """
        n = self.column.numnod
        dz = state.dz
        zi = self._node_depths(state)

        # shortwave absorbed per layer, remainder absorbed by the bottom layer
        transmitted = np.exp(-self.column.eta_a * zi)
        source = shortwave * (transmitted[:-1] - transmitted[1:])
        source[-1] += shortwave * transmitted[-1]
        source[0] += surface_flux

        # diffusivity at internal interfaces
        K = KAPPA_MOLECULAR + KAPPA_WIND * wind * np.exp(-zi[1:-1] / WIND_MIXING_DEPTH)
        g = K / dz

        a = np.zeros(n)
        b = np.ones(n) * dz / dt
        c = np.zeros(n)
        d = state.temp * dz / dt + source / CV_WATER
        a[1:] = -g
        c[:-1] = -g
        b[1:] += g
        b[:-1] += g
        state.temp = thomas(a, b, c, d)

    def _freeze_surface(self, state: LakeState) -> float:
        """
        Converts cooling of the top layer below 0 degC to ice. Returns new ice per
        unit footprint [m water equivalent].
        """
        if state.temp[0] >= 0.0:
            return 0.0
        energy = -state.temp[0] * CV_WATER * state.dz * state.sarea
        state.temp[0] = 0.0
        return energy / (WATER_DENSITY * LATENT_HEAT_FUSION) / self.column.footprint

    def _convect(self, state: LakeState) -> int:
        """
        Mixes the column from the top down to the deepest unstable layer. Returns
        the number of mixed layers, 0 when stably stratified.
        """
        rho = water_density(state.temp)
        mixmax = 0
        for k in range(len(rho) - 1):
            if rho[k] > rho[k + 1] + SMALL:
                mixmax = k + 2
        if mixmax > 0:
            state.temp[:mixmax] = np.mean(state.temp[:mixmax])
            # mixing may unmask deeper instability
            rho = water_density(state.temp)
            k = mixmax
            while k < len(rho) and rho[k - 1] > rho[k] + SMALL:
                k += 1
                state.temp[:k] = np.mean(state.temp[:k])
                rho = water_density(state.temp)
            mixmax = k
        state.density = water_density(state.temp)
        return mixmax

    def _energy_error(self, state: LakeState, heat0: float, dt: float, shortwave: float,
                      surface_flux: float) -> float:
        """ Change of heat content against the surface forcing [W m-2]. """
        if state.activenod == 0:
            return 0.0
        return (self._heat_content(state) - heat0) / dt - shortwave - surface_flux

# EOF
