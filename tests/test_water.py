# -*- coding: utf-8 -*-
"""
Tests of the soil moisture and ice partition of a soil column.
"""

import numpy as np
import pytest

from pyLSM.model.options import check_options
from pyLSM.model.state import LayerState
from pyLSM.soil.soil import SoilColumn, nijssen2001_to_arno
from pyLSM.soil.water import SoilWater
from pyLSM.utils.errors import ConfigurationError


def make_layers(soil, moist=None, T=None):
    moist = soil.init_moist if moist is None else moist
    T = soil.init_temp if T is None else T
    return [LayerState(moist=m, T=t) for m, t in zip(moist, T)]


def total_water(soil, layers):
    return sum(l.moist + l.total_ice(soil.frost_fract) for l in layers)


def test_soil_column_limits(soil):
    assert np.allclose(soil.max_moist, soil.porosity * soil.depth * 1000.0)
    assert np.all(soil.Wpwp <= soil.Wcr)
    assert np.all(soil.init_moist <= soil.max_moist)
    assert soil.Tfactor[0] == pytest.approx(0.0)


def test_band_temperature_lapse(soil_params):
    soil_params['bands'] = {'AreaFract': [0.5, 0.5], 'elevation': [0.0, 1000.0],
                            'Pfactor': [1.0, 1.0], 'treeline': 500.0}
    soil_params['elevation'] = 500.0
    soil = SoilColumn(soil_params, check_options({'snow_band': 2}))
    assert soil.Tfactor[0] == pytest.approx(3.25)
    assert soil.Tfactor[1] == pytest.approx(-3.25)
    assert list(soil.AboveTreeLine) == [False, True]


@pytest.mark.parametrize('change', [
    {'expt': [3.0, 12.0, 14.0]},
    {'depth': [0.1, 0.4]},
    {'bulk_density': [2700.0, 1450.0, 1550.0]},
    {'Wpwp_FRACT': [0.8, 0.35, 0.35]},
    {'bands': {'AreaFract': [0.5, 0.4], 'elevation': [100.0, 200.0], 'Pfactor': [1.0, 1.0]}},
    ])
def test_invalid_soil(soil_params, change):
    soil_params.update(change)
    with pytest.raises(ConfigurationError):
        SoilColumn(soil_params, check_options({'snow_band': len(soil_params['bands']['AreaFract'])}))


def test_nijssen2001_conversion():
    arno = nijssen2001_to_arno(d1=0.01, d2=0.001, d3=100.0, d4=2.0, max_moist=400.0)
    Dsmax = 0.001 * 300.0**2 + 0.01 * 400.0
    assert arno['Dsmax'] == pytest.approx(Dsmax)
    assert arno['Ds'] == pytest.approx(0.01 * 100.0 / Dsmax)
    assert arno['Ws'] == pytest.approx(0.25)
    assert arno['c'] == 2.0
    with pytest.raises(ConfigurationError):
        nijssen2001_to_arno(0.01, 0.001, 500.0, 2.0, 400.0)


def test_nijssen2001_soil(soil_params):
    soil_params['baseflow'] = {'d1': 0.01, 'd2': 0.001, 'd3': 100.0, 'd4': 2.0}
    soil = SoilColumn(soil_params, check_options({'baseflow': 'NIJSSEN2001'}))
    assert soil.Ws == pytest.approx(100.0 / soil.max_moist[-1])


def test_no_runoff_without_inflow(soil):
    water = SoilWater(soil, check_options())
    assert water.surface_runoff(0.0, make_layers(soil)) == 0.0


def test_runoff_increases_with_wetness(soil):
    water = SoilWater(soil, check_options())
    dry = water.surface_runoff(10.0, make_layers(soil, moist=0.3 * soil.max_moist))
    wet = water.surface_runoff(10.0, make_layers(soil, moist=0.95 * soil.max_moist))
    assert 0.0 <= dry < wet <= 10.0


def test_saturated_soil_runs_off(soil):
    water = SoilWater(soil, check_options())
    assert water.surface_runoff(5.0, make_layers(soil, moist=soil.max_moist)) == pytest.approx(5.0)


def test_water_balance_closes(soil):
    water = SoilWater(soil, check_options())
    layers = make_layers(soil)
    S0 = total_water(soil, layers)
    out = water.run(3600.0, layers, 25.0, np.array([0.1, 0.05, 0.0]))
    S1 = total_water(soil, layers)
    assert out['water_closure'] == pytest.approx(0.0, abs=1e-9)
    assert S1 - S0 == pytest.approx(25.0 - out['runoff'] - out['baseflow'] - np.sum(out['evap']))
    assert out['infiltration'] + out['runoff'] == pytest.approx(25.0)


def test_moisture_stays_within_bounds(soil):
    water = SoilWater(soil, check_options())
    layers = make_layers(soil, moist=0.9 * soil.max_moist)
    for _ in range(5):
        water.run(3600.0, layers, 200.0, np.zeros(3))
    for j, l in enumerate(layers):
        assert l.moist <= soil.max_moist[j] + 1e-9
        assert l.moist >= soil.resid_moist[j] - 1e-9


def test_evaporation_limited_to_available_water(soil):
    water = SoilWater(soil, check_options())
    layers = make_layers(soil, moist=soil.resid_moist + np.array([0.5, 0.0, 0.0]))
    out = water.run(3600.0, layers, 0.0, np.array([2.0, 1.0, 0.0]))
    assert out['evap'][0] == pytest.approx(0.5)
    assert out['evap'][1] == 0.0


def test_dry_down(soil):
    water = SoilWater(soil, check_options())
    layers = make_layers(soil, moist=soil.max_moist.copy())
    totals = [total_water(soil, layers)]
    for _ in range(96):
        out = water.run(3600.0, layers, 0.0, np.zeros(3))
        assert out['baseflow'] >= 0.0
        assert out['runoff'] == 0.0
        totals.append(total_water(soil, layers))
    assert np.all(np.diff(totals) <= 1e-12)
    assert totals[-1] < totals[0]
    for j, l in enumerate(layers):
        assert l.moist >= soil.resid_moist[j] - 1e-9


def test_update_ice_conserves_water(soil_params):
    opts = check_options({'frozen_soil': True})
    soil = SoilColumn(soil_params, opts)
    water = SoilWater(soil, opts)
    layers = make_layers(soil, T=[-5.0, -1.0, 2.0])
    S0 = total_water(soil, layers)
    water.update_ice(layers)
    assert total_water(soil, layers) == pytest.approx(S0)
    assert layers[0].ice[0] > 0.0
    assert layers[2].ice[0] == 0.0

    # thaw returns the ice to liquid water
    for l in layers:
        l.T = 3.0
    water.update_ice(layers)
    assert all(l.ice[0] == 0.0 for l in layers)
    assert total_water(soil, layers) == pytest.approx(S0)


def test_spatial_frost_subareas(soil_params):
    opts = check_options({'frozen_soil': True, 'spatial_frost': True, 'frost_subareas': 3})
    soil_params['frost_slope'] = 4.0
    soil = SoilColumn(soil_params, opts)
    water = SoilWater(soil, opts)
    layers = make_layers(soil, T=[-0.5, 1.0, 3.0])
    water.update_ice(layers)
    ice = layers[0].ice
    # colder subareas hold more ice
    assert ice[0] >= ice[1] >= ice[2]
    assert ice[0] > 0.0
