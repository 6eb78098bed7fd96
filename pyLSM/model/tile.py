# -*- coding: utf-8 -*-
"""
.. module: model.tile
    :synopsis: pyLSM sub-area solver
.. moduleauthor:: pyLSM developers

Coupled energy and moisture balance of one sub-area (vegetation tile, elevation
band, wet/dry fraction) over a model time step. Each snow/energy sub-step runs:

    1. interception of snow by an overstory canopy
    2. rain interception in the canopy water store
    3. ground snow pack
    4. ground surface energy balance and soil heat conduction
    5. evapotranspiration withdrawals and soil water balance
    6. soil ice partition and freeze/thaw fronts
    7. canopy air temperature and vapour pressure (overstory with snow)
"""

import numpy as np
import logging
from typing import Dict

from pyLSM.canopy.interception import Evapotranspiration, rain_interception
from pyLSM.energybalance.canopy_air import solve_canopy_air
from pyLSM.energybalance.rootfind import Brackets
from pyLSM.energybalance.surface import SurfaceEnergyBalance
from pyLSM.forcing.atmos import AtmosForcing
from pyLSM.microclimate.micromet import aerodynamic_resistance
from pyLSM.microclimate.radiation import canopy_transmittance, emitted_longwave
from pyLSM.model.options import substeps
from pyLSM.model.state import CellData, EnergyState, LayerState, SnowState, TileState, VegVarState
from pyLSM.snow.canopy import CanopySnow
from pyLSM.snow.snowpack import Snowpack
from pyLSM.soil.soil import SoilColumn
from pyLSM.soil.thermal import find_fronts
from pyLSM.soil.water import SoilWater
from pyLSM.vegetation.vegetation import VegTile

logger = logging.getLogger(__name__)

#: water fluxes summed over sub-steps [mm]
WATER_FLUXES = ('prec', 'rain', 'snowfall', 'evap', 'evap_canopy', 'transp', 'evap_bare',
                'sub_snow', 'sub_canopy', 'sub_blowing', 'runoff', 'baseflow', 'inflow',
                'snow_melt', 'refreeze', 'water_error')
#: energy fluxes averaged over sub-steps [W m-2]
ENERGY_FLUXES = ('net_short', 'net_long', 'Rnet', 'sensible', 'latent', 'latent_sub',
                 'grnd_flux', 'snow_flux', 'deltaH', 'fusion', 'deltaCC', 'advection',
                 'refreeze_energy', 'melt_energy', 'energy_error')


class TileSolver(object):
    r"""
    Solves sub-areas of a grid cell. Holds the static soil column and the
    resolved options; sub-area states are passed in and modified in place.
    """
    def __init__(self, soil: SoilColumn, options: Dict) -> object:
        """
        Args:
            soil (SoilColumn): static soil parameters
            options (dict): resolved model options
        Returns:
            self (object)
        """
        self.soil = soil
        self.options = options
        self.nsub = substeps(options)
        self.sub_dt = options['dt'] / self.nsub

        self.full_energy = options['full_energy']
        self.frozen_soil = options['frozen_soil']
        self.min_wind_speed = options['min_wind_speed']
        self.measure_h = options['measure_h']

        self.water = SoilWater(soil, options)
        self.snowpack = Snowpack(options, soil.snow_rough)
        self.canopy_snow = CanopySnow(self.sub_dt)
        self.surface = SurfaceEnergyBalance(soil.thermal, options)

        root = options['root_solver']
        self.brackets = Brackets(root['brackets'], widening=root['widening'])
        self.xtol = root['xtol']
        self.max_iter = root['max_iter']

    def initial_state(self, tile: VegTile) -> TileState:
        """ Default state of a sub-area from initial soil moisture and temperature. """
        s = self.soil
        th = s.thermal
        n_frost = self.options['frost_subareas']
        layers = [LayerState(moist=s.init_moist[j], T=s.init_temp[j], n_frost=n_frost)
                  for j in range(s.Nlayer)]

        energy = EnergyState(th.Nnode, th.T1_index)
        energy.T = th.interpolate_node_temperatures(s.init_temp)
        W = th.node_moisture(s.init_moist)
        props = th.node_properties(energy.T, W)
        energy.moist = W
        energy.ice = props['ice']
        energy.Cs_node = props['Cs']
        energy.kappa_node = props['kappa']
        energy.Tsurf = energy.T[0]
        energy.Tcanopy = energy.T[0]
        energy.Tfoliage = energy.T[0]

        for j, layer in enumerate(layers):
            layer.Cs = float(th.layer_node_fract[j] @ props['Cs'])
            layer.kappa = float(th.layer_node_fract[j] @ props['kappa'])
        if self.frozen_soil:
            self.water.update_ice(layers)
        energy.fdepth, energy.tdepth = find_fronts(th.Z, energy.T)
        energy.Nfrost, energy.Nthaw = len(energy.fdepth), len(energy.tdepth)

        return TileState(CellData(layers), energy, SnowState(), VegVarState())

    def run(self, tile: VegTile, band: int, state: TileState, forcing: AtmosForcing) -> Dict:
        """
        Runs the sub-steps of one model time step.

        Args:
            tile (VegTile): vegetation tile
            band (int): elevation band index
            state (TileState): modified in place
            forcing (AtmosForcing): forcing of the band and wet/dry fraction
        Returns:
            (dict): water fluxes [mm], energy fluxes [W m-2] (see WATER_FLUXES,
                ENERGY_FLUXES) and 'warnings' (list)
        Raises:
            ModelError: non-convergence or balance error of a sub-step
        """
        props = tile.properties(forcing.month)
        overstory = tile.overstory and not self.soil.AboveTreeLine[band]

        out = {key: 0.0 for key in WATER_FLUXES + ENERGY_FLUXES}
        out['warnings'] = []
        for i in forcing.index.substeps():
            sub = self._substep(tile, props, overstory, state, forcing.substep(i))
            for key in WATER_FLUXES:
                out[key] += sub[key]
            for key in ENERGY_FLUXES:
                out[key] += sub[key] / self.nsub
            if sub['warning']:
                out['warnings'].append(sub['warning'])

        cell = state.cell
        cell.runoff = out['runoff']
        cell.baseflow = out['baseflow']
        cell.inflow = out['inflow']
        cell.rootmoist = self.water.root_moisture(cell.layer, tile.root)
        cell.wetness = self.water.wetness(cell.layer)
        state.veg_var.canopyevap = out['evap_canopy']
        return out

    def _substep(self, tile: VegTile, props: Dict, overstory: bool, state: TileState, f: Dict) -> Dict:
        dt = self.sub_dt
        s = self.soil
        th = s.thermal
        snow, energy, veg_var, cell = state.snow, state.energy, state.veg_var, state.cell
        storage0 = state.water_storage(s.frost_fract)

        T = f['air_temp']
        wind = max(f['wind'], self.min_wind_speed)
        rain, snowfall = f['rain'], f['snow']

        # --- snow intercepted by overstory
        tau = 1.0 if tile.bare else canopy_transmittance(tile.veg.rad_atten, props['LAI'])
        canopy = None
        ra_over = 0.0
        Tfoliage = T
        if overstory:
            ra_over = aerodynamic_resistance(wind, tile.wind_h, props['displacement'], props['roughness'])
            e_canopy = energy.ecanopy if energy.ecanopy > 0.0 else f['vp']
            albedo = snow.canopy_albedo if snow.snow_canopy > 0.0 else props['albedo']
            absorbed = f['shortwave'] * (1.0 - tau) * (1.0 - albedo)
            canopy = self.canopy_snow.run(snow, f, props['LAI'], props['albedo'], absorbed,
                                          ra_over, e_canopy)
            rain, snowfall = canopy['rain'], canopy['snow']
            Tfoliage = canopy['Tfoliage']

        # --- rain interception
        if tile.bare:
            throughfall = rain
        else:
            throughfall, veg_var.Wdew = rain_interception(rain, veg_var.Wdew, props['Wdmax'])
        veg_var.throughfall = throughfall

        # --- ground snow pack
        if overstory:
            snow_forcing = dict(f, shortwave=f['shortwave'] * tau,
                                longwave=tau * f['longwave'] + (1.0 - tau) * emitted_longwave(Tfoliage),
                                wind=wind * tile.veg.wind_atten, snow=snowfall, rain=throughfall)
            z_snow = self.measure_h
        else:
            snow_forcing = dict(f, wind=wind, snow=snowfall, rain=throughfall)
            z_snow = tile.wind_h
        ground = {'Tsoil': energy.T[0], 'z': z_snow, 'displacement': 0.0, 'wind10': wind,
                  'sigma_slope': tile.sigma_slope, 'lag_one': tile.lag_one, 'fetch': tile.fetch}
        sn = self.snowpack.run(dt, snow, snow_forcing, ground)
        cov = sn['coverage']

        # --- surface energy balance of the snow free part and soil heat
        moist = np.array([l.moist for l in cell.layer])
        total_water = np.array([l.moist + l.total_ice(s.frost_fract) for l in cell.layer])
        W = th.node_moisture(total_water)
        et = Evapotranspiration(dt, props, tile.veg, tile.root, moist, s, veg_var.Wdew, f['shortwave'])
        surface = {'albedo': props['albedo'], 'emissivity': props['emissivity'], 'z': tile.wind_h,
                   'displacement': props['displacement'], 'roughness': props['roughness']}
        seb = self.surface.solve(dt, energy.T, W, dict(f, wind=wind), surface, et, sn)

        # --- evapotranspiration of the snow free part [mm]
        E = seb['evap']
        evap_canopy = E['canopy'] * dt * (1.0 - cov)
        if evap_canopy > 0.0:
            evap_canopy = min(evap_canopy, veg_var.Wdew)
        veg_var.Wdew -= evap_canopy
        drip = 0.0
        if not tile.bare and veg_var.Wdew > props['Wdmax']:
            drip = veg_var.Wdew - props['Wdmax']
            veg_var.Wdew = props['Wdmax']
        transp = E['transpiration'] * dt * (1.0 - cov)
        soil_evap = E['soil'] * dt * (1.0 - cov)
        withdrawal = et.layer_withdrawal(transp, soil_evap)

        # --- soil water
        inflow = sn['outflow'] + drip
        wat = self.water.run(dt, cell.layer, inflow, withdrawal)
        evap_layers = float(np.sum(wat['evap']))

        # --- soil temperatures, ice partition and fronts
        thermal = seb['thermal']
        energy.T = np.asarray(thermal['T'], dtype=float)
        energy.moist = W
        energy.ice = thermal['ice']
        if thermal['Cs'] is not None:
            energy.Cs_node = thermal['Cs']
            energy.kappa_node = thermal['kappa']
        layer_T = th.layer_temperatures(energy.T)
        for j, layer in enumerate(cell.layer):
            layer.T = float(layer_T[j])
            layer.Cs = float(th.layer_node_fract[j] @ energy.Cs_node)
            layer.kappa = float(th.layer_node_fract[j] @ energy.kappa_node)
        if self.frozen_soil:
            self.water.update_ice(cell.layer)
        energy.fdepth, energy.tdepth = find_fronts(th.Z, energy.T)
        energy.Nfrost, energy.Nthaw = len(energy.fdepth), len(energy.tdepth)
        energy.frozen = self.frozen_soil and bool(np.any(energy.ice > 0.0))

        # --- canopy air space
        canopy_sensible = 0.0
        canopy_latent = canopy['latent'] if canopy else 0.0
        if canopy is not None and self.full_energy and (cov > 0.0 or snow.snow_canopy > 0.0):
            ra_surface = sn['aero_resist'] if sn['aero_resist'] > 0.0 else ra_over
            air = solve_canopy_air(f, Tfoliage, sn['Tsurf'] if cov > 0.0 else seb['Tsurf'],
                                   canopy['sublimation'] / dt,
                                   {'atmos': ra_over, 'foliage': ra_over, 'surface': ra_surface},
                                   self.brackets, self.xtol, self.max_iter)
            energy.Tcanopy = air['Tcanopy']
            energy.ecanopy = air['ecanopy']
            canopy_sensible = air['canopy_sensible']
            canopy_latent = air['canopy_latent']
        else:
            energy.Tcanopy = T
            energy.ecanopy = f['vp']
        energy.canopy_sensible = canopy_sensible
        energy.canopy_latent = canopy_latent
        energy.Tfoliage = Tfoliage

        # --- energy terms of the tile
        net_short = (1.0 - cov) * (1.0 - props['albedo']) * f['shortwave'] \
            + cov * (1.0 - sn['albedo']) * snow_forcing['shortwave']
        Rnet = seb['Rnet'] + cov * sn['Rnet']
        energy.Tsurf = cov * sn['Tsurf'] + (1.0 - cov) * seb['Tsurf']
        energy.NetShortAtmos = net_short
        energy.NetLongAtmos = Rnet - net_short
        energy.Rnet = Rnet
        energy.sensible = seb['sensible'] + cov * sn['sensible']
        energy.latent_sub = cov * sn['latent'] + canopy_latent
        energy.latent = seb['latent'] + energy.latent_sub
        energy.grnd_flux = seb['grnd_flux']
        energy.snow_flux = seb['snow_flux']
        energy.deltaH = thermal['deltaH']
        energy.fusion = thermal['fusion']
        energy.deltaCC = cov * sn['deltaCC']
        energy.advection = cov * sn['advection']
        energy.refreeze_energy = cov * sn['refreeze_energy']
        energy.melt_energy = cov * sn['melt_energy']
        energy.error = seb['error']

        cell.aero_resist = np.array([seb['aero_resist'], ra_over, sn['aero_resist']])
        cell.aero_resist_used = seb['aero_resist']

        # --- water closure of the sub-area
        sub_canopy = canopy['sublimation'] if canopy else 0.0
        evap = evap_canopy + evap_layers + sn['sublimation'] + sn['blowing'] + sub_canopy
        storage1 = state.water_storage(s.frost_fract)
        water_error = (storage1 - storage0) - (f['prec'] - evap - wat['runoff'] - wat['baseflow'])

        return {'prec': f['prec'], 'rain': f['rain'], 'snowfall': f['snow'], 'evap': evap,
                'evap_canopy': evap_canopy,
                'transp': 0.0 if tile.bare else evap_layers,
                'evap_bare': evap_layers if tile.bare else 0.0,
                'sub_snow': sn['sublimation'], 'sub_canopy': sub_canopy, 'sub_blowing': sn['blowing'],
                'runoff': wat['runoff'], 'baseflow': wat['baseflow'], 'inflow': inflow,
                'snow_melt': sn['melt'], 'refreeze': sn['refreeze'], 'water_error': water_error,
                'net_short': net_short, 'net_long': Rnet - net_short, 'Rnet': Rnet,
                'sensible': energy.sensible, 'latent': energy.latent, 'latent_sub': energy.latent_sub,
                'grnd_flux': energy.grnd_flux, 'snow_flux': energy.snow_flux,
                'deltaH': energy.deltaH, 'fusion': energy.fusion, 'deltaCC': energy.deltaCC,
                'advection': energy.advection, 'refreeze_energy': energy.refreeze_energy,
                'melt_energy': energy.melt_energy, 'energy_error': energy.error,
                'warning': sn['warning']}

# EOF
