# -*- coding: utf-8 -*-
"""
Tests of the grid cell model: sub-area weights, aggregation, water balance
closure, failure handling and checkpoints.
"""

import json
import numpy as np
import pytest

from pyLSM.forcing.atmos import AtmosForcing
from pyLSM.model.cell import CellModel
from pyLSM.model.state import TileIndex
from pyLSM.utils.constants import WET, DRY
from pyLSM.utils.errors import ConvergenceError, CellStepError, ConfigurationError, ForcingError
from pyLSM.utils.iotools import NumpyEncoder, save_state, load_state

CELL_OPTIONS = {'Nlayer': 3, 'Nnode': 5, 'frozen_soil': False}


def run_steps(model, frame):
    records = []
    for step in range(len(frame)):
        f = AtmosForcing.from_frame(frame.iloc[step:step + 1], 3600.0, model.options)
        records.append(model.run(step, f))
    return records


def state_json(model):
    return json.dumps(model.state_fields(), cls=NumpyEncoder)


def test_weights_sum_to_land_fraction(cell_params):
    model = CellModel(cell_params, dict(CELL_OPTIONS, lakes=True))
    assert len(model.tiles) == 3
    assert model.tiles[-1].bare
    w = [model.weight(ix) for ix in model.prcp.indices]
    assert sum(w) == pytest.approx(1.0 - model.lake_fraction)
    assert model.lake_fraction == pytest.approx(0.05)


def test_band_weights(cell_params):
    cell_params['soil']['bands'] = {'AreaFract': [0.6, 0.4], 'elevation': [150.0, 225.0],
                                    'Pfactor': [0.95, 1.075], 'treeline': 1000.0}
    model = CellModel(cell_params, dict(CELL_OPTIONS, snow_band=2))
    assert len(model.prcp.indices) == 6
    assert model.weight(TileIndex(0, 1, WET)) == pytest.approx(0.6 * 0.4)


def test_fluxes_are_weighted_sums(cell_params, make_frame, monkeypatch):
    model = CellModel(cell_params, CELL_OPTIONS)
    run = model.solver.run
    outputs = []

    def recording(tile, band, state, forcing):
        out = run(tile, band, state, forcing)
        outputs.append(out)
        return out

    monkeypatch.setattr(model.solver, 'run', recording)
    rec = run_steps(model, make_frame(1, Prec=1.0))[0]
    w = [model.weight(ix) for ix in model.prcp.indices]
    for key in ('latent', 'sensible', 'evap', 'runoff'):
        expected = 0.0
        for wi, out in zip(w, outputs):
            expected = expected + wi * out[key]
        assert rec[key] == expected


def test_water_balance_closes(cell_params, make_frame):
    model = CellModel(cell_params, CELL_OPTIONS)
    frame = make_frame(6, Prec=[0.0, 1.5, 3.0, 0.0, 0.5, 0.0], SWin=[0.0, 50.0, 200.0, 300.0, 100.0, 0.0])
    for rec in run_steps(model, frame):
        assert abs(rec['water_error']) < 1e-3
        assert rec['failed_tiles'] == []
        assert rec['runoff'] >= 0.0
        assert np.all(rec['soil_moist'] > 0.0)
    assert model.step_count == 6


def test_water_balance_with_lake(cell_params, make_frame):
    model = CellModel(cell_params, dict(CELL_OPTIONS, lakes=True))
    frame = make_frame(4, Prec=[2.0, 4.0, 0.0, 1.0])
    for rec in run_steps(model, frame):
        assert abs(rec['water_error']) < 1e-3
        assert rec['lake_depth'] > 0.0
        assert rec['lake_outflow'] >= 0.0


def test_distributed_precipitation(cell_params, make_frame):
    model = CellModel(cell_params, dict(CELL_OPTIONS, dist_prcp=True))
    assert len(model.prcp.indices) == 6

    rec = run_steps(model, make_frame(1, Prec=2.0))[0]
    mu = 1.0 - np.exp(-0.6 * 2.0)
    assert rec['mu'] == pytest.approx(mu)
    assert model.prcp.mu == pytest.approx(mu)
    assert rec['prec'] == pytest.approx(2.0)
    assert abs(rec['water_error']) < 1e-3

    # the dry fraction got no precipitation
    wet = model.prcp.tile(2, 0, WET).cell.layer[0].moist
    dry = model.prcp.tile(2, 0, DRY).cell.layer[0].moist
    assert wet > dry

    # a dry step merges wet and dry fractions
    rec = run_steps(model, make_frame(1, Prec=0.0, start='2018-01-10 01:00'))[0]
    assert rec['mu'] == 1.0
    assert abs(rec['water_error']) < 1e-3


def test_water_balance_mode(cell_params, make_frame):
    model = CellModel(cell_params, dict(CELL_OPTIONS, full_energy=False))
    for rec in run_steps(model, make_frame(3, Prec=1.0)):
        assert abs(rec['water_error']) < 1e-3
        assert rec['grnd_flux'] == 0.0


@pytest.mark.parametrize('change', ['no_lake', 'cover', 'unknown_class'])
def test_invalid_cell(cell_params, change):
    options = dict(CELL_OPTIONS)
    if change == 'no_lake':
        options['lakes'] = True
        del cell_params['lake']
    elif change == 'cover':
        cell_params['vegetation'][0]['Cv'] = 0.9
    else:
        cell_params['vegetation'][0]['veg_class'] = 99
    with pytest.raises(ConfigurationError):
        CellModel(cell_params, options)


def fail_first_tile(model, monkeypatch):
    run = model.solver.run

    def failing(tile, band, state, forcing):
        if tile is model.tiles[0]:
            raise ConvergenceError('forced failure', variable='surface_temperature')
        return run(tile, band, state, forcing)

    monkeypatch.setattr(model.solver, 'run', failing)


def test_failed_subarea_aborts_step(cell_params, make_frame, monkeypatch):
    model = CellModel(cell_params, CELL_OPTIONS)
    run_steps(model, make_frame(1))
    before = state_json(model)

    fail_first_tile(model, monkeypatch)
    f = AtmosForcing.from_frame(make_frame(1, start='2018-01-10 01:00'), 3600.0, model.options)
    with pytest.raises(CellStepError) as err:
        model.run(1, f)

    assert err.value.cell == model.gridcel
    assert err.value.step == 1
    assert err.value.subarea == (0, 0, 0)
    assert err.value.variable == 'surface_temperature'
    assert isinstance(err.value.__cause__, ConvergenceError)
    assert 'cell=%s' % model.gridcel in str(err.value)
    # nothing was committed
    assert state_json(model) == before
    assert model.step_count == 1


def test_invalid_band_forcing_aborts_step(cell_params, make_frame):
    model = CellModel(cell_params, CELL_OPTIONS)
    before = state_json(model)
    # band lapse pushes air temperature out of the valid range
    model.soil.Tfactor[0] = 80.0
    f = AtmosForcing.from_frame(make_frame(1), 3600.0, model.options)
    with pytest.raises(CellStepError) as err:
        model.run(0, f)

    assert err.value.cell == model.gridcel
    assert err.value.step == 0
    assert err.value.variable == 'forcing'
    assert isinstance(err.value.__cause__, ForcingError)
    assert state_json(model) == before
    assert model.step_count == 0


def test_partial_aggregation(cell_params, make_frame, monkeypatch):
    model = CellModel(cell_params, dict(CELL_OPTIONS, partial_aggregation=True))
    old = model.prcp.tile(0, 0, WET).state_fields()
    fail_first_tile(model, monkeypatch)

    rec = run_steps(model, make_frame(1, Prec=1.0))[0]
    assert rec['failed_tiles'] == [(0, 0, 0)]
    # failed sub-area keeps its state, others advance
    assert json.dumps(model.prcp.tile(0, 0, WET).state_fields(), cls=NumpyEncoder) \
        == json.dumps(old, cls=NumpyEncoder)
    assert model.step_count == 1
    assert abs(rec['water_error']) < 1e-3


def test_checkpoint_round_trip(cell_params, make_frame, tmp_path):
    options = dict(CELL_OPTIONS, lakes=True)
    frame = make_frame(4, Prec=[1.0, 0.0, 2.0, 0.5])
    model = CellModel(cell_params, options)
    run_steps(model, frame.iloc[:3])

    path = str(tmp_path / 'state.json')
    save_state([model], path)
    restored = CellModel(cell_params, options, state=load_state(path)[0])
    assert restored.step_count == 3
    assert restored.save_data.total() == pytest.approx(model.save_data.total())

    f = AtmosForcing.from_frame(frame.iloc[3:4], 3600.0, model.options)
    a = model.run(3, f)
    b = restored.run(3, f)
    for key in ('evap', 'runoff', 'baseflow', 'Rnet', 'sensible', 'latent', 'grnd_flux',
                'swe', 'surf_temp', 'lake_volume'):
        assert b[key] == pytest.approx(a[key], rel=1e-9, abs=1e-12)


def test_invalid_checkpoint(cell_params):
    with pytest.raises(ConfigurationError):
        CellModel(cell_params, CELL_OPTIONS, state={'gridcel': 1})
