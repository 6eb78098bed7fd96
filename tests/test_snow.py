# -*- coding: utf-8 -*-
"""
Tests of the ground snow pack, canopy snow interception and blowing snow.
"""

import pytest

from pyLSM.forcing.atmos import AtmosForcing
from pyLSM.model.options import check_options
from pyLSM.model.state import SnowState
from pyLSM.snow.blowing import threshold_wind, blowing_sublimation
from pyLSM.snow.canopy import CanopySnow, snow_capacity
from pyLSM.snow.snowpack import Snowpack, depletion_coverage, new_snow_density, snow_albedo
from pyLSM.utils.errors import BalanceError

GROUND = {'Tsoil': 0.0, 'z': 2.0, 'displacement': 0.0, 'wind10': 3.0,
          'sigma_slope': 0.05, 'lag_one': 0.8, 'fetch': 1000.0}


def snow_forcing(options, make_forcing, **values):
    return make_forcing(options, **values).substep(0)


def test_depletion_curve():
    assert depletion_coverage(0.0, 0.1, 0.2) == 0.0
    assert depletion_coverage(0.1, 0.1, 0.2) == 1.0
    assert depletion_coverage(0.025, 0.1, 0.2) == pytest.approx(0.5)
    assert depletion_coverage(0.025, 0.1, 0.2, 'linear') == pytest.approx(0.25)


def test_fresh_snow_properties():
    assert new_snow_density(-20.0) < new_snow_density(-2.0)
    assert snow_albedo(48, 3600.0, True) < snow_albedo(48, 3600.0, False) < snow_albedo(0, 3600.0, False)


def test_no_snow_passes_rain(options, make_forcing):
    pack = Snowpack(options, 0.0005)
    state = SnowState()
    f = snow_forcing(options, make_forcing, Tair=5.0, Prec=2.0)
    out = pack.run(3600.0, state, f, GROUND)
    assert out['outflow'] == pytest.approx(2.0)
    assert out['coverage'] == 0.0
    assert state.swq == 0.0


def test_accumulation(options, make_forcing):
    pack = Snowpack(options, 0.0005)
    state = SnowState()
    f = snow_forcing(options, make_forcing, Tair=-8.0, Prec=5.0, SWin=0.0, LWin=230.0)
    out = pack.run(3600.0, state, f, GROUND)
    assert state.snow
    assert state.coverage == pytest.approx(1.0, abs=1e-3)
    assert 1000.0 * state.swq == pytest.approx(5.0 - out['sublimation'], abs=1e-9)
    assert out['Tsurf'] <= 0.0
    assert out['mass_error'] == pytest.approx(0.0, abs=1e-9)
    assert state.depth > 0.0


def test_melt_cycle_conserves_mass(options, make_forcing):
    pack = Snowpack(options, 0.0005)
    state = SnowState()
    cold = snow_forcing(options, make_forcing, Tair=-5.0, Prec=10.0, SWin=0.0, LWin=250.0)
    pack.run(3600.0, state, cold, GROUND)
    pack.run(3600.0, state, cold, GROUND)
    assert 1000.0 * state.swq > 15.0

    warm = snow_forcing(options, make_forcing, Tair=8.0, SWin=500.0, LWin=330.0, U=4.0)
    coverage = [state.coverage]
    melt = 0.0
    for _ in range(200):
        swe0 = state.swq
        out = pack.run(3600.0, state, warm, dict(GROUND, Tsoil=1.0))
        melt += out['melt']
        balance = 1000.0 * (swe0 - state.swq) - out['outflow'] - out['sublimation']
        assert balance == pytest.approx(0.0, abs=1e-8)
        coverage.append(state.coverage)
        if state.swq <= 0.0:
            break

    assert state.swq == 0.0
    assert not state.snow
    assert melt > 0.0
    # coverage never increases while the pack melts
    assert all(c1 <= c0 + 1e-12 for c0, c1 in zip(coverage[:-1], coverage[1:]))


def test_fresh_snow_on_depleted_pack(options):
    pack = Snowpack(options, 0.0005)
    state = SnowState()
    pack.accumulate(state, 0.04, -5.0)
    state.swq = 0.01
    state.coverage = depletion_coverage(state.swq, state.max_swq, state.swq_slope)
    assert state.coverage < 1.0

    pack.accumulate(state, 0.005, -5.0)
    assert state.coverage == 1.0
    assert state.store_snow
    # losing the fresh snow restores the old coverage
    before = state.swq
    state.swq -= 0.005
    pack.deplete(state, before)
    assert not state.store_snow
    assert state.coverage == pytest.approx(0.5)


def test_mass_hard_limit(options):
    pack = Snowpack(options, 0.0005)
    assert pack._check_mass(0.0) is None
    assert pack._check_mass(0.01) is not None
    with pytest.raises(BalanceError):
        pack._check_mass(5.0)


def test_snow_capacity():
    assert snow_capacity(0.0, 2.0) == pytest.approx(4.0 * snow_capacity(-10.0, 2.0))
    assert snow_capacity(-2.0, 2.0) > snow_capacity(-10.0, 2.0)


def test_canopy_interception(options, make_forcing):
    canopy = CanopySnow(3600.0)
    state = SnowState()
    f = snow_forcing(options, make_forcing, Tair=-6.0, Prec=4.0, SWin=0.0, LWin=240.0)
    out = canopy.run(state, f, 3.0, 0.12, 0.0, 50.0, f['vp'])
    assert 0.0 < state.snow_canopy <= snow_capacity(-6.0, 3.0)
    assert out['snow'] < 4.0
    assert out['mass_closure'] == pytest.approx(0.0, abs=1e-9)


def test_canopy_melt_releases_snow(options, make_forcing):
    canopy = CanopySnow(3600.0)
    state = SnowState()
    state.snow_canopy = 0.003
    f = snow_forcing(options, make_forcing, Tair=3.0, Prec=1.0, SWin=300.0, LWin=310.0)
    out = canopy.run(state, f, 3.0, 0.12, 100.0, 50.0, f['vp'])
    assert state.snow_canopy < 0.003
    assert out['snow'] + out['rain'] > 0.0
    assert out['mass_closure'] == pytest.approx(0.0, abs=1e-9)


def test_blowing_snow():
    assert threshold_wind(-27.27) == pytest.approx(6.975)
    assert blowing_sublimation(3600.0, -10.0, 3.0, 0.1, 0.1) == 0.0
    strong = blowing_sublimation(3600.0, -10.0, 20.0, 0.1, 0.1)
    assert 0.0 < strong <= 0.1
    assert blowing_sublimation(3600.0, -10.0, 30.0, 0.1, 1.0e-6) <= 1.0e-6


def test_blowing_requires_full_energy():
    from pyLSM.utils.errors import ConfigurationError
    with pytest.raises(ConfigurationError):
        check_options({'blowing': True, 'full_energy': False})
