# -*- coding: utf-8 -*-
"""
Tests of the soil thermal node profile and ice partition.
"""

import numpy as np
import pytest

from pyLSM.model.options import check_options
from pyLSM.soil.soil import SoilColumn
from pyLSM.soil.thermal import node_geometry, layer_node_fractions, maximum_unfrozen_water, \
    frozen_water, find_fronts


def test_node_geometry():
    depth = np.array([0.1, 0.4, 1.0])
    geom = node_geometry(depth, dp=4.0, Nnode=5)
    Z = geom['Z']
    assert Z[0] == 0.0
    assert Z[1] == pytest.approx(0.1)
    assert Z[-1] == pytest.approx(4.0)
    assert np.all(np.diff(Z) > 0.0)
    # control volumes tile the profile
    assert np.sum(geom['dz_node']) == pytest.approx(Z[-1])


def test_layer_node_fractions_sum_to_one():
    depth = np.array([0.1, 0.4, 1.0])
    geom = node_geometry(depth, dp=4.0, Nnode=7)
    fract = layer_node_fractions(depth, geom['bounds'])
    assert fract.shape == (3, 7)
    assert np.allclose(np.sum(fract, axis=1), 1.0)


def test_unfrozen_water():
    assert maximum_unfrozen_water(2.0, 0.5, 20.0, 10.0) == pytest.approx(0.5)
    cold = maximum_unfrozen_water(np.array([-1.0, -5.0, -20.0]), 0.5, 20.0, 10.0)
    assert np.all(cold < 0.5)
    assert np.all(np.diff(cold) < 0.0)


def test_frozen_water_partition():
    T = np.array([-5.0, -0.5, 3.0])
    W = np.array([0.3, 0.3, 0.3])
    liq, ice, _ = frozen_water(T, W, 0.45, 20.0, 10.0)
    assert np.allclose(liq + ice, W)
    assert ice[0] > ice[1] > 0.0
    assert ice[2] == 0.0


def test_find_fronts():
    Z = np.array([0.0, 0.1, 0.5, 1.0])
    fdepth, tdepth = find_fronts(Z, np.array([-2.0, -1.0, 1.0, 2.0]))
    assert fdepth == [pytest.approx(0.3)]
    assert tdepth == []
    fdepth, tdepth = find_fronts(Z, np.array([1.0, -1.0, -1.0, 2.0]))
    assert tdepth == [pytest.approx(0.05)]
    assert len(fdepth) == 1


def test_interpolated_profile(soil):
    th = soil.thermal
    T = th.interpolate_node_temperatures(soil.init_temp)
    assert T[0] == pytest.approx(soil.init_temp[0])
    assert T[-1] == pytest.approx(soil.avg_temp)
    assert np.allclose(th.layer_temperatures(np.full(th.Nnode, 3.0)), 3.0)


def test_steady_state_unchanged(soil):
    th = soil.thermal
    T = np.full(th.Nnode, soil.avg_temp)
    W = th.node_moisture(soil.init_moist)
    out = th.diffuse(3600.0, T, W, {'type': 'temperature', 'value': soil.avg_temp})
    assert np.allclose(out['T'], soil.avg_temp)
    assert out['ground_flux'] == pytest.approx(0.0, abs=1e-9)


def test_flux_boundary_conserves_heat(soil_params):
    opts = check_options({'Nlayer': 3, 'Nnode': 5, 'noflux': True})
    th = SoilColumn(soil_params, opts).thermal
    T = np.array([2.0, 2.5, 3.0, 3.5, 4.0])
    W = np.full(th.Nnode, 0.25)
    Q = -40.0
    out = th.diffuse(3600.0, T, W, {'type': 'flux', 'value': Q})
    assert out['bottom_flux'] == 0.0
    assert out['deltaH'] + out['fusion'] == pytest.approx(Q, rel=1e-6)
    assert out['T'][0] < T[0]


def test_frozen_soil_conserves_heat(soil_params):
    opts = check_options({'Nlayer': 3, 'Nnode': 5, 'noflux': True, 'frozen_soil': True})
    th = SoilColumn(soil_params, opts).thermal
    T = np.full(th.Nnode, -3.0)
    W = np.full(th.Nnode, 0.3)
    Q = -30.0
    out = th.diffuse(3600.0, T, W, {'type': 'flux', 'value': Q})
    assert np.all(out['ice'] > 0.0)
    assert np.allclose(out['ice'] + out['liq'], W)
    # phase change is part of the storage change
    assert out['deltaH'] + out['fusion'] == pytest.approx(Q, abs=2.0)
    assert out['fusion'] < 0.0


def test_quick_flux_surface_node(soil):
    th = soil.thermal
    T_old = th.interpolate_node_temperatures(soil.init_temp)
    W = th.node_moisture(soil.init_moist)
    out = th.quick_flux(3600.0, -2.0, T_old, W)
    assert out['T'][0] == -2.0
    assert out['ground_flux'] < 0.0
    assert out['T'][th.T1_index] < T_old[th.T1_index]


def test_quick_flux_frozen_root(soil_params, frozen_options):
    th = SoilColumn(soil_params, frozen_options).thermal
    T_old = np.full(th.Nnode, -1.0)
    W = np.full(th.Nnode, 0.3)
    out = th.quick_flux(3600.0, -10.0, T_old, W)
    assert out['T'][th.T1_index] < -1.0
    assert out['fusion'] < 0.0
