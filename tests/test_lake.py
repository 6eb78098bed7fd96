# -*- coding: utf-8 -*-
"""
Tests of the lake energy and volume balance.
"""

import numpy as np
import pytest

from pyLSM.lake.lake import Lake, LakeColumn, ice_thickness, ice_fraction, water_density
from pyLSM.model.options import check_options
from pyLSM.utils.constants import FRACMIN_ICE_HEIGHT, ICE_DENSITY, WATER_DENSITY
from pyLSM.utils.errors import ConfigurationError


@pytest.fixture
def lake_options():
    return check_options({'lakes': True, 'Nlakenode': 10})


def whole_step(options, make_forcing, **values):
    return make_forcing(options, **values).substep(0)


def test_bathymetry_tables(lake_params, lake_options):
    col = LakeColumn(lake_params, lake_options)
    assert col.footprint == pytest.approx(0.05 * 25.0e6)
    assert col.lake_fraction == pytest.approx(0.05)
    assert np.all(np.diff(col.volume_table) >= 0.0)
    for depth in (0.5, 2.0, 4.5):
        assert col.depth_from_volume(col.volume_from_depth(depth)) == pytest.approx(depth, rel=1e-3)
    assert col.depth_from_volume(2.0 * col.maxvolume) == col.maxdepth


def test_bathymetry_from_points(lake_params, lake_options):
    del lake_params['b']
    lake_params['z'] = [0.0, 2.0, 5.0]
    lake_params['basin'] = [0.0, 5.0e5, 1.0e6]
    col = LakeColumn(lake_params, lake_options)
    assert col.footprint == pytest.approx(1.0e6)
    assert col.area_from_depth(2.0) == pytest.approx(5.0e5)


@pytest.mark.parametrize('Cl', [[0.05], [0.05, 0.04, 0.02, 0.01]])
def test_bathymetry_from_cover_fractions(lake_params, lake_options, Cl):
    del lake_params['b']
    lake_params['Cl'] = Cl
    col = LakeColumn(lake_params, lake_options)
    z = col.z_table

    assert col.footprint == pytest.approx(Cl[0] * col.cell_area)
    assert col.area_table[0] == 0.0
    assert np.all(col.area_table[1:] > 0.0)
    assert np.all(np.diff(col.area_table) >= 0.0)
    # deepest level sits maxdepth / len(Cl) above the bottom
    assert col.area_from_depth(col.maxdepth / len(Cl)) == pytest.approx(Cl[-1] * col.cell_area)
    assert col.area_from_depth(0.5 * col.maxdepth) > 0.0

    integral = np.sum(0.5 * (col.area_table[1:] + col.area_table[:-1]) * np.diff(z))
    assert col.maxvolume == pytest.approx(integral)
    assert 0.0 < col.maxvolume < col.footprint * col.maxdepth
    if len(Cl) == 1:
        # single level: area tapers linearly to the bottom
        assert col.maxvolume == pytest.approx(0.5 * col.footprint * col.maxdepth, rel=1e-3)
    for depth in (0.5, 2.0, 4.5):
        assert col.depth_from_volume(col.volume_from_depth(depth)) == pytest.approx(depth, rel=1e-3)


@pytest.mark.parametrize('Cl', [[], [0.0], [0.02, 0.05], [1.5]])
def test_invalid_cover_fractions(lake_params, lake_options, Cl):
    del lake_params['b']
    lake_params['Cl'] = Cl
    with pytest.raises(ConfigurationError):
        LakeColumn(lake_params, lake_options)


@pytest.mark.parametrize('change', [
    {'mindepth': 6.0},
    {'depth_in': 7.0},
    {'rpercent': 1.5},
    {'b': None},
    {'max_area_fract': 2.0},
    ])
def test_invalid_lake(lake_params, lake_options, change):
    for key, value in change.items():
        if value is None:
            del lake_params[key]
        else:
            lake_params[key] = value
    with pytest.raises(ConfigurationError):
        LakeColumn(lake_params, lake_options)


def test_ice_geometry():
    assert ice_thickness(0.0) == 0.0
    thin = ice_thickness(0.01)
    assert ice_fraction(thin) < 1.0
    # fractional ice keeps its water equivalent
    assert thin * ice_fraction(thin) * ICE_DENSITY / WATER_DENSITY == pytest.approx(0.01)
    thick = ice_thickness(0.5)
    assert thick > FRACMIN_ICE_HEIGHT
    assert ice_fraction(thick) == 1.0


def test_water_density_maximum():
    T = np.array([0.0, 4.0, 10.0])
    rho = water_density(T)
    assert rho[1] > rho[0]
    assert rho[1] > rho[2]


def test_initial_state(lake_params, lake_options):
    lake = Lake(LakeColumn(lake_params, lake_options), lake_options)
    state = lake.initial_state()
    assert state.ldepth == pytest.approx(lake_params['depth_in'], rel=1e-3)
    assert np.all(state.temp == lake_params['init_temp'])
    assert state.fraci == 0.0
    assert lake.storage(state) == pytest.approx(state.volume)


def test_open_water_balance(lake_params, lake_options, make_forcing):
    lake = Lake(LakeColumn(lake_params, lake_options), lake_options)
    state = lake.initial_state()
    f = whole_step(lake_options, make_forcing, Tair=12.0, Prec=3.0, SWin=400.0, LWin=320.0)
    out = lake.run(3600.0, state, f, 1000.0, 200.0)
    assert out['closure'] == pytest.approx(0.0, abs=1e-6 * state.volume)
    assert out['prec'] == pytest.approx(0.003 * lake.column.footprint)
    assert out['outflow'] > 0.0
    assert 0.0 <= state.volume <= lake.column.maxvolume


def test_volume_bounded_by_spill(lake_params, lake_options, make_forcing):
    lake = Lake(LakeColumn(lake_params, lake_options), lake_options)
    state = lake.initial_state()
    f = whole_step(lake_options, make_forcing, Tair=5.0)
    out = lake.run(3600.0, state, f, 10.0 * lake.column.maxvolume, 0.0)
    assert state.volume == pytest.approx(lake.column.maxvolume)
    assert state.ldepth == pytest.approx(lake.column.maxdepth)
    assert out['closure'] == pytest.approx(0.0, abs=1e-6 * lake.column.maxvolume)


def test_no_outflow_below_mindepth(lake_params, lake_options, make_forcing):
    lake_params['depth_in'] = 0.8
    lake = Lake(LakeColumn(lake_params, lake_options), lake_options)
    state = lake.initial_state()
    out = lake.run(3600.0, state, whole_step(lake_options, make_forcing, Tair=5.0), 0.0, 0.0)
    assert out['outflow'] == 0.0


def test_ice_grows_under_cold(lake_params, lake_options, make_forcing):
    lake_params['init_temp'] = 0.5
    lake = Lake(LakeColumn(lake_params, lake_options), lake_options)
    state = lake.initial_state()
    f = whole_step(lake_options, make_forcing, Tair=-20.0, SWin=0.0, LWin=180.0, U=5.0)
    S0 = lake.storage(state)
    total_out = 0.0
    for _ in range(72):
        out = lake.run(3600.0, state, f, 0.0, 0.0)
        assert out['closure'] == pytest.approx(0.0, abs=1e-6 * state.volume)
        total_out += out['evap'] + out['sublimation'] + out['outflow']

    assert state.fraci > 0.0
    assert state.hice > 0.0
    assert state.tempi <= 0.0
    assert lake.storage(state) == pytest.approx(S0 - total_out, rel=1e-9)


def test_snow_on_ice(lake_params, lake_options, make_forcing):
    lake = Lake(LakeColumn(lake_params, lake_options), lake_options)
    state = lake.initial_state()
    lake._geometry(state, ice_we=0.2)
    assert state.fraci == 1.0
    f = whole_step(lake_options, make_forcing, Tair=-5.0, Prec=4.0, SWin=0.0, LWin=250.0)
    out = lake.run(3600.0, state, f, 0.0, 0.0)
    assert state.swe > 0.0
    assert out['closure'] == pytest.approx(0.0, abs=1e-6 * state.volume)
