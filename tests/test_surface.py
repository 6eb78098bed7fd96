# -*- coding: utf-8 -*-
"""
Tests of the surface energy balance and the canopy air space.
"""

import copy
import numpy as np
import pytest

from pyLSM.canopy.interception import Evapotranspiration
from pyLSM.energybalance.canopy_air import solve_canopy_air
from pyLSM.energybalance.rootfind import Brackets
from pyLSM.energybalance.surface import SurfaceEnergyBalance
from pyLSM.microclimate.micromet import latent_heat
from pyLSM.model.options import check_options
from pyLSM.parameters.example_parameters import vegetation, veg_library
from pyLSM.soil.soil import SoilColumn
from pyLSM.vegetation.vegetation import VegTile, build_tiles

NO_SNOW = {'coverage': 0.0, 'snow_conductance': 0.0, 'snow_bottom_temp': 0.0, 'surplus_energy': 0.0}


def bare_setup(soil_params, options, make_forcing, **values):
    soil = SoilColumn(soil_params, options)
    tile = VegTile(1.0, None, np.array([1.0, 0.0, 0.0]), soil_rough=soil.rough)
    props = tile.properties(1)
    f = make_forcing(options, **values).substep(0)
    et = Evapotranspiration(3600.0, props, None, tile.root, soil.init_moist, soil, 0.0, f['shortwave'])
    surface = {'albedo': props['albedo'], 'emissivity': props['emissivity'], 'z': 10.0,
               'displacement': 0.0, 'roughness': props['roughness']}
    th = soil.thermal
    T_old = th.interpolate_node_temperatures(soil.init_temp)
    W = th.node_moisture(soil.init_moist)
    return soil, f, et, surface, T_old, W


@pytest.mark.parametrize('mode', ['finite_difference', 'quick_flux', 'quick_solve'])
def test_surface_balance_closes(soil_params, make_forcing, mode):
    options = check_options({'ground_flux': mode})
    soil, f, et, surface, T_old, W = bare_setup(soil_params, options, make_forcing)
    seb = SurfaceEnergyBalance(soil.thermal, options)
    out = seb.solve(3600.0, T_old, W, f, surface, et, NO_SNOW)

    assert abs(out['error']) < 0.1
    assert out['Rnet'] == pytest.approx(out['sensible'] + out['latent'] + out['grnd_flux'], abs=0.1)
    assert out['thermal']['T'][0] == pytest.approx(out['Tsurf'])
    assert out['evap']['transpiration'] == 0.0


def test_quick_solve_uses_finite_difference_profile(soil_params, make_forcing):
    options = check_options({'ground_flux': 'quick_solve'})
    soil, f, et, surface, T_old, W = bare_setup(soil_params, options, make_forcing)
    seb = SurfaceEnergyBalance(soil.thermal, options)
    out = seb.solve(3600.0, T_old, W, f, surface, et, NO_SNOW)

    fd = soil.thermal.diffuse(3600.0, T_old, W, {'type': 'temperature', 'value': out['Tsurf']})
    assert np.allclose(out['thermal']['T'], fd['T'])
    assert out['grnd_flux'] == pytest.approx(fd['ground_flux'])
    assert abs(out['error']) < 0.1


@pytest.mark.parametrize('mode', ['finite_difference', 'quick_flux', 'quick_solve'])
def test_frozen_surface_balance_closes(soil_params, make_forcing, mode):
    options = check_options({'ground_flux': mode, 'frozen_soil': True})
    soil_params['init_temp'] = [-2.0, -1.0, 1.0]
    soil, f, et, surface, T_old, W = bare_setup(soil_params, options, make_forcing,
                                                Tair=-8.0, SWin=0.0, LWin=220.0)
    out = SurfaceEnergyBalance(soil.thermal, options).solve(3600.0, T_old, W, f, surface, et, NO_SNOW)

    assert abs(out['error']) < 0.1
    assert out['Tsurf'] < 0.0
    assert out['thermal']['T'][0] == pytest.approx(out['Tsurf'])


def test_surface_under_full_snow_cover(soil_params, make_forcing):
    options = check_options()
    soil, f, et, surface, T_old, W = bare_setup(soil_params, options, make_forcing, Tair=-10.0)
    snow = {'coverage': 1.0, 'snow_conductance': 0.5, 'snow_bottom_temp': -5.0, 'surplus_energy': 0.0}
    out = SurfaceEnergyBalance(soil.thermal, options).solve(3600.0, T_old, W, f, surface, et, snow)
    # insulated ground loses heat towards the colder snow
    assert out['Rnet'] == 0.0
    assert out['grnd_flux'] < 0.0
    assert -5.0 < out['Tsurf'] < T_old[0]


def test_canopy_evaporation_limited_by_storage(soil_params, make_forcing):
    options = check_options()
    soil = SoilColumn(soil_params, options)
    grass = build_tiles(copy.deepcopy(vegetation), copy.deepcopy(veg_library), soil.depth,
                        soil.rough, 10.0)[1]
    props = grass.properties(1)
    f = make_forcing(options, rh=0.3).substep(0)
    Wdew = 1.0e-4
    et = Evapotranspiration(3600.0, props, grass.veg, grass.root, soil.init_moist, soil, Wdew,
                            f['shortwave'])
    surface = {'albedo': props['albedo'], 'emissivity': props['emissivity'], 'z': grass.wind_h,
               'displacement': props['displacement'], 'roughness': props['roughness']}
    th = soil.thermal
    out = SurfaceEnergyBalance(th, options).solve(3600.0, th.interpolate_node_temperatures(soil.init_temp),
                                                  th.node_moisture(soil.init_moist), f, surface, et, NO_SNOW)

    E = out['evap']
    assert 0.0 <= E['canopy'] * 3600.0 <= Wdew * (1.0 + 1e-9)
    # latent heat of the balance carries the limited evaporation
    assert out['latent'] == pytest.approx(latent_heat(out['Tsurf']) * E['total'])
    assert abs(out['error']) < 0.1


def test_water_balance_mode(soil_params, make_forcing):
    options = check_options({'full_energy': False})
    soil, f, et, surface, T_old, W = bare_setup(soil_params, options, make_forcing, Tair=6.0)
    out = SurfaceEnergyBalance(soil.thermal, options).solve(3600.0, T_old, W, f, surface, et, NO_SNOW)
    assert out['Tsurf'] == 6.0
    assert out['grnd_flux'] == 0.0
    assert out['sensible'] == pytest.approx(out['Rnet'] - out['latent'])
    assert out['error'] == 0.0


def test_canopy_air_flux_continuity(options, make_forcing):
    f = make_forcing(options, Tair=-3.0).substep(0)
    r = {'atmos': 50.0, 'foliage': 50.0, 'surface': 50.0}
    out = solve_canopy_air(f, -2.0, -1.0, 0.0, r, Brackets())
    # equal resistances: canopy air at the mean of air, foliage and snow surface
    assert out['Tcanopy'] == pytest.approx(-2.0, abs=1e-3)
    assert min(f['vp'], 0.5626) - 1e-3 < out['ecanopy'] < 0.6
    assert out['canopy_latent'] == 0.0


def test_canopy_air_needs_widening(options, make_forcing):
    f = make_forcing(options, Tair=-10.0).substep(0)
    r = {'atmos': 50.0, 'foliage': 10.0, 'surface': 200.0}
    out = solve_canopy_air(f, 0.0, -10.0, 0.0, r, Brackets())
    assert -10.0 < out['Tcanopy'] < 0.0
