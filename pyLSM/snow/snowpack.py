# -*- coding: utf-8 -*-
"""
.. module: snow.snowpack
    :synopsis: pyLSM snow component
.. moduleauthor:: pyLSM developers

*Two-layer energy balance snow pack with a depletion curve*

The pack has a thin surface layer (at most MAX_SURFACE_SWE) exchanging energy
with the atmosphere, and a deeper pack layer exchanging heat with the surface
layer and the soil. Energy balance terms are computed per unit snow covered
area; water equivalents in SnowState are tile means.

References:
    Andreadis, K.M., Storck, P. and Lettenmaier, D.P., 2009. Modeling snow
    accumulation and ablation processes in forested environments. Water Resour.
    Res., 45, W05429.

    Cherkauer, K.A., Bowling, L.C. and Lettenmaier, D.P., 2003. Variable
    infiltration capacity cold land process model updates. Global Planet. Change,
    38, pp.151-159.
"""

import numpy as np
import logging
from typing import Dict

from pyLSM.energybalance.rootfind import Brackets, root_brent
from pyLSM.microclimate.micromet import e_sat, vapor_flux, latent_heat_sublimation, \
    corrected_resistance
from pyLSM.microclimate.radiation import net_radiation
from pyLSM.model.state import SnowState
from pyLSM.snow.blowing import blowing_sublimation
from pyLSM.utils.errors import BalanceError
from pyLSM.utils.constants import MAX_SURFACE_SWE, LIQUID_WATER_CAPACITY, NEW_SNOW_DENSITY, \
    MAX_SNOW_DENSITY, NEW_SNOW_ALBEDO, K_SNOW, CV_ICE, CV_WATER, WATER_DENSITY, \
    LATENT_HEAT_FUSION, SPECIFIC_HEAT_AIR, SEC_PER_DAY, SMALL

logger = logging.getLogger(__name__)

#: [m], snow water equivalent below which the pack is melted out
MIN_SWQ = 1.0e-7
#: [m], minimum half thickness used in snow heat conduction
MIN_HALF_DEPTH = 0.01
#: [s], time constant of snow compaction, cold and melting pack
COMPACTION_TIME = {'cold': 10.0 * SEC_PER_DAY, 'melting': 2.0 * SEC_PER_DAY}


def new_snow_density(T: float) -> float:
    """ Density of fresh snow [kg m-3] at air temperature T [degC]. """
    if T > -15.0:
        return min(NEW_SNOW_DENSITY + 1.7 * (T + 15.0)**1.5, MAX_SNOW_DENSITY)
    return NEW_SNOW_DENSITY


def snow_albedo(last_snow: int, dt: float, melting: bool) -> float:
    """
    Snow albedo [-] aged since the last snowfall.

    Args:
        last_snow (int): time steps since the last snowfall
        dt (float): time step [s]
        melting (bool): melting pack ages faster
    """
    days = last_snow * dt / SEC_PER_DAY
    if melting:
        return NEW_SNOW_ALBEDO * 0.82**(days**0.46)
    return NEW_SNOW_ALBEDO * 0.94**(days**0.58)


def snow_conductivity(density: float) -> float:
    """ Thermal conductivity of snow [W m-1 K-1] from density [kg m-3]. """
    return K_SNOW * density**2


def depletion_coverage(swq: float, max_swq: float, swq_slope: float, curve: str='parabolic') -> float:
    """
    Snow covered fraction [-] of a depleting pack.

    Args:
        swq (float): snow water equivalent [m]
        max_swq (float): maximum swq of the season [m]
        swq_slope (float): slope of the depletion curve [m], 2 * max_swq
        curve (str): 'parabolic' or 'linear'
    """
    if swq <= 0.0:
        return 0.0
    if swq >= max_swq or max_swq <= 0.0:
        return 1.0
    if curve == 'linear':
        return swq / max_swq
    return min(np.sqrt(2.0 * swq / swq_slope), 1.0)


class Snowpack(object):
    r"""
    Ground snow pack of a tile.
    """
    def __init__(self, options: Dict, snow_rough: float) -> object:
        """
        Args:
            options (dict): resolved model options
            snow_rough (float): snow surface roughness length [m]
        Returns:
            self (object)
        """
        self.depletion_curve = options['depletion_curve']
        self.blowing = options['blowing']
        self.snow_rough = snow_rough

        root = options['root_solver']
        self.brackets = Brackets(root['brackets'], widening=root['widening'])
        self.xtol = root['xtol']
        self.max_iter = root['max_iter']

        self.mass_tolerance = options['balance']['snow_mass_tolerance']
        self.mass_hard_limit = options['balance']['snow_mass_hard_limit']

    def reset(self, state: SnowState) -> None:
        """ Empties the pack and resets its depletion and aging memory. """
        state.swq = 0.0
        state.surf_water = 0.0
        state.pack_water = 0.0
        state.surf_temp = 0.0
        state.pack_temp = 0.0
        state.coldcontent = 0.0
        state.density = 0.0
        state.depth = 0.0
        state.albedo = 0.0
        state.last_snow = 0
        state.coverage = 0.0
        state.max_swq = 0.0
        state.swq_slope = 0.0
        state.store_swq = 0.0
        state.store_coverage = 0.0
        state.store_snow = False
        state.snow = False
        state.MELTING = False

    # --- mass bookkeeping

    def accumulate(self, state: SnowState, snowfall: float, T: float) -> None:
        """
        Adds snowfall [m] at air temperature T [degC] to the pack. Fresh snow on a
        depleting pack is stored and covers the tile until it has melted.
        """
        if snowfall <= 0.0:
            if state.swq > 0.0:
                state.last_snow += 1
            return

        T_new = min(T, 0.0)
        rho_new = new_snow_density(T)
        if state.swq <= 0.0:
            self.reset(state)
            state.max_swq = snowfall
            state.surf_temp = T_new
            state.pack_temp = T_new
            state.density = rho_new
        else:
            if state.store_snow or state.coverage < 1.0:
                if not state.store_snow:
                    state.store_coverage = state.coverage
                    state.store_snow = True
                state.store_swq += snowfall
            else:
                state.max_swq = state.swq + snowfall

            # mean depth adds up; new snow mixes into the surface layer
            depth_mean = state.swq * WATER_DENSITY / state.density + snowfall * WATER_DENSITY / rho_new
            surf = min(state.swq / max(state.coverage, SMALL), MAX_SURFACE_SWE)
            w = snowfall / (snowfall + surf)
            state.surf_temp = (1.0 - w) * state.surf_temp + w * T_new
            state.density = (state.swq + snowfall) * WATER_DENSITY / depth_mean

        state.swq += snowfall
        state.swq_slope = 2.0 * state.max_swq
        state.coverage = 1.0
        state.last_snow = 0
        state.albedo = NEW_SNOW_ALBEDO
        state.snow = True

    def deplete(self, state: SnowState, swq_before: float) -> None:
        """
        Updates coverage after mass changes from swq_before to state.swq [m].
        Losses are taken from stored fresh snow first; coverage never increases
        while the pack loses mass.
        """
        delta = state.swq - swq_before
        if delta >= 0.0:
            if state.store_snow:
                state.store_swq += delta
            elif state.swq > state.max_swq:
                state.max_swq = state.swq
                state.swq_slope = 2.0 * state.max_swq
            return

        loss = -delta
        if state.store_snow:
            taken = min(loss, state.store_swq)
            state.store_swq -= taken
            loss -= taken
            if state.store_swq <= MIN_SWQ:
                state.store_swq = 0.0
                state.store_snow = False
                state.coverage = state.store_coverage

        if not state.store_snow:
            cover = depletion_coverage(state.swq, state.max_swq, state.swq_slope, self.depletion_curve)
            state.coverage = min(state.coverage, cover)

    # --- energy balance

    def _residual(self, Ts: float, c: Dict) -> float:
        """ Energy balance of the surface layer [W m-2] at surface temperature Ts. """
        ra = corrected_resistance(c['wind'], c['z'], c['displacement'], self.snow_rough, Ts, c['T'])
        Rnet = net_radiation(Ts, c['shortwave'], c['longwave'], c['albedo'])
        H = c['rho'] * SPECIFIC_HEAT_AIR * (Ts - c['T']) / ra
        es, _ = e_sat(Ts)
        LE = latent_heat_sublimation(Ts) * vapor_flux(c['rho'], c['P'], es, c['vp'], ra)
        conduction = c['conductance'] * (c['T_below'] - Ts)
        dCC = CV_ICE * c['swq_surf'] * (Ts - c['Ts_old']) / c['dt']
        return Rnet - H - LE + conduction + c['advection'] - dCC + c['extra']

    def _terms(self, Ts: float, c: Dict) -> Dict:
        ra = corrected_resistance(c['wind'], c['z'], c['displacement'], self.snow_rough, Ts, c['T'])
        es, _ = e_sat(Ts)
        E = vapor_flux(c['rho'], c['P'], es, c['vp'], ra)
        return {'Rnet': net_radiation(Ts, c['shortwave'], c['longwave'], c['albedo']),
                'sensible': c['rho'] * SPECIFIC_HEAT_AIR * (Ts - c['T']) / ra,
                'latent': latent_heat_sublimation(Ts) * E,
                'vapor': E,
                'conduction': c['conductance'] * (c['T_below'] - Ts),
                'deltaCC': CV_ICE * c['swq_surf'] * (Ts - c['Ts_old']) / c['dt'],
                'aero_resist': ra}

    def run(self, dt: float, state: SnowState, forcing: Dict, ground: Dict) -> Dict:
        r"""
        Snow pack over one sub-step.

        Args:
            dt (float): time step [s]
            state (SnowState): modified in place
            forcing (dict): at the snow surface
                air_temp (float): [degC]
                snow (float): snowfall [mm]
                rain (float): rain [mm]
                shortwave, longwave (float): incoming radiation [W m-2]
                wind (float): wind speed at reference height [m s-1]
                vp (float): vapour pressure [kPa]
                pressure (float): [kPa]
                density (float): air density [kg m-3]
            ground (dict):
                Tsoil (float): soil surface temperature [degC]
                z (float): reference height above the snow [m]
                displacement (float): displacement height [m]
                wind10 (float): wind speed at 10 m for blowing snow [m s-1]
                sigma_slope, lag_one, fetch (float): terrain of the tile
        Returns:
            (dict): water fluxes [mm] as tile means, energy terms [W m-2] per
                snow covered area
        Raises:
            BalanceError: snow mass error above the hard limit
            ConvergenceError: surface temperature not found
        """
        T = forcing['air_temp']
        snowfall = forcing['snow'] / 1000.0
        rain = forcing['rain'] / 1000.0
        swq0 = state.swq

        if swq0 <= 0.0 and snowfall <= 0.0:
            self.reset(state)
            state.melt = rain
            state.vapor_flux = 0.0
            state.surface_flux = 0.0
            state.blowing_flux = 0.0
            state.mass_error = 0.0
            state.Qnet = 0.0
            return self._no_snow(rain)

        self.accumulate(state, snowfall, T)
        swq_acc = state.swq
        cov = state.coverage

        # per snow covered area
        liquid = (state.surf_water + state.pack_water) / cov
        ice = state.swq / cov - liquid
        liquid += rain
        swq_surf = min(ice, MAX_SURFACE_SWE)
        swq_pack = ice - swq_surf
        depth = ice * WATER_DENSITY / state.density
        conductance = snow_conductivity(state.density) / max(0.5 * depth, MIN_HALF_DEPTH)

        Tsoil = ground['Tsoil']
        T_below = state.pack_temp if swq_pack > 0.0 else Tsoil
        c = {'T': T, 'shortwave': forcing['shortwave'], 'longwave': forcing['longwave'],
             'albedo': state.albedo, 'wind': forcing['wind'], 'z': ground['z'],
             'displacement': ground['displacement'], 'rho': forcing['density'],
             'P': forcing['pressure'], 'vp': forcing['vp'], 'conductance': conductance,
             'T_below': T_below, 'swq_surf': swq_surf, 'Ts_old': state.surf_temp, 'dt': dt,
             'advection': CV_WATER * rain * max(T, 0.0) / dt, 'extra': 0.0}

        R0 = self._residual(0.0, c)
        refreeze = 0.0
        melt = 0.0
        surplus = 0.0
        iterations = 0
        pack_temp = state.pack_temp

        if R0 >= 0.0:
            Ts = 0.0
            melting = True
            e = R0 * dt
            if swq_pack > 0.0 and pack_temp < 0.0:
                use = min(e, -CV_ICE * swq_pack * pack_temp)
                pack_temp += use / (CV_ICE * swq_pack)
                e -= use
            melt = min(e / (WATER_DENSITY * LATENT_HEAT_FUSION), ice)
            e -= melt * WATER_DENSITY * LATENT_HEAT_FUSION
            surplus = e / dt
        else:
            melting = False
            # liquid water refreezes before the surface cools
            refreeze = min(liquid, -R0 * dt / (WATER_DENSITY * LATENT_HEAT_FUSION))
            c['extra'] = refreeze * WATER_DENSITY * LATENT_HEAT_FUSION / dt
            if R0 + c['extra'] < 0.0:
                lower = min(T, state.surf_temp) - self.brackets.snow
                Ts, iterations = root_brent(self._residual, lower, 0.0, args=(c,), xtol=self.xtol,
                                            max_iter=self.max_iter, widening=self.brackets.widening,
                                            widen='lower', variable='snow_surface_temperature')
                Ts = min(Ts, 0.0)
            else:
                Ts = 0.0

        terms = self._terms(Ts, c)
        ice += refreeze - melt
        liquid += melt - refreeze

        # heat exchange of the pack layer with soil and surface layer
        snow_flux = conductance * (Tsoil - T_below)
        if swq_pack > 0.0:
            pack_temp += (snow_flux - terms['conduction']) * dt / (CV_ICE * swq_pack)
            if pack_temp > 0.0:
                pack_melt = min(pack_temp * CV_ICE * swq_pack / (WATER_DENSITY * LATENT_HEAT_FUSION), ice)
                ice -= pack_melt
                liquid += pack_melt
                melt += pack_melt
                pack_temp = 0.0
            pack_temp = max(pack_temp, min(Ts, Tsoil, state.pack_temp))
        else:
            pack_temp = Ts
            snow_flux = terms['conduction']

        # sublimation and deposition at the surface, blowing snow sublimation
        sublimation = terms['vapor'] * dt / WATER_DENSITY
        if sublimation > ice:
            sublimation = ice
        ice -= sublimation
        blowing = 0.0
        if self.blowing:
            blowing = blowing_sublimation(dt, T, ground['wind10'], forcing['vp'], ice,
                                          ground['sigma_slope'], ground['lag_one'], ground['fetch'])
            ice -= blowing

        # liquid water above holding capacity drains
        outflow = max(liquid - LIQUID_WATER_CAPACITY * ice, 0.0)
        liquid -= outflow
        if ice <= MIN_SWQ:
            outflow += liquid + max(ice, 0.0)
            liquid = 0.0
            ice = 0.0

        # back to tile means
        state.swq = cov * (ice + liquid)
        outflow_mean = cov * outflow + (1.0 - cov) * rain
        sublimation_mean = cov * sublimation
        blowing_mean = cov * blowing

        state.melt = outflow_mean
        state.surface_flux = sublimation_mean
        state.blowing_flux = blowing_mean
        state.vapor_flux = sublimation_mean + blowing_mean
        state.MELTING = melting and state.swq > 0.0
        state.Qnet = R0 if melting else 0.0

        mass_error = 1000.0 * ((swq0 + snowfall + rain)
                               - (state.swq + outflow_mean + sublimation_mean + blowing_mean))
        state.mass_error = mass_error
        warning = self._check_mass(mass_error)

        if state.swq <= 0.0:
            self.reset(state)
        else:
            self.deplete(state, swq_acc)
            surf = min(ice, MAX_SURFACE_SWE)
            state.surf_water = cov * liquid * surf / ice
            state.pack_water = cov * liquid - state.surf_water
            state.surf_temp = Ts
            state.pack_temp = min(pack_temp, 0.0)
            state.coldcontent = CV_ICE * (surf * Ts + (ice - surf) * state.pack_temp)
            tau = COMPACTION_TIME['melting' if melting else 'cold']
            state.density += (MAX_SNOW_DENSITY - state.density) * (1.0 - np.exp(-dt / tau))
            state.depth = (state.swq / max(state.coverage, SMALL)) * WATER_DENSITY / state.density
            state.albedo = snow_albedo(state.last_snow, dt, melting)

        return {'outflow': 1000.0 * outflow_mean,
                'sublimation': 1000.0 * sublimation_mean,
                'blowing': 1000.0 * blowing_mean,
                'melt': 1000.0 * cov * melt,
                'refreeze': 1000.0 * cov * refreeze,
                'coverage': cov,
                'albedo': c['albedo'],
                'Tsurf': Ts,
                'Rnet': terms['Rnet'],
                'sensible': terms['sensible'],
                'latent': terms['latent'],
                'advection': c['advection'],
                'deltaCC': terms['deltaCC'],
                'snow_flux': snow_flux,
                'snow_conductance': conductance,
                'snow_bottom_temp': pack_temp if swq_pack > 0.0 else Ts,
                'melt_energy': melt * WATER_DENSITY * LATENT_HEAT_FUSION / dt,
                'refreeze_energy': c['extra'],
                'surplus_energy': surplus,
                'aero_resist': terms['aero_resist'],
                'mass_error': mass_error,
                'warning': warning,
                'iterations': iterations}

    def _no_snow(self, rain: float) -> Dict:
        return {'outflow': 1000.0 * rain, 'sublimation': 0.0, 'blowing': 0.0, 'melt': 0.0,
                'refreeze': 0.0, 'coverage': 0.0, 'albedo': 0.0, 'Tsurf': 0.0, 'Rnet': 0.0, 'sensible': 0.0,
                'latent': 0.0, 'advection': 0.0, 'deltaCC': 0.0, 'snow_flux': 0.0,
                'snow_conductance': 0.0, 'snow_bottom_temp': 0.0, 'melt_energy': 0.0,
                'refreeze_energy': 0.0, 'surplus_energy': 0.0, 'aero_resist': 0.0,
                'mass_error': 0.0, 'warning': None, 'iterations': 0}

    def _check_mass(self, mass_error: float) -> str:
        """
        Returns a warning message if the snow mass error [mm] exceeds the
        tolerance.

        Raises:
            BalanceError: mass error above the hard limit
        """
        if abs(mass_error) > self.mass_hard_limit:
            raise BalanceError('Snow mass balance error %.4g mm exceeds hard limit %.4g mm'
                               % (mass_error, self.mass_hard_limit), variable='swq')
        if abs(mass_error) > self.mass_tolerance:
            msg = 'Snow mass balance error %.4g mm' % mass_error
            logger.warning(msg)
            return msg
        return None

# EOF
