# -*- coding: utf-8 -*-
"""
Tests of the forcing of a time step and its sub-steps.
"""

import numpy as np
import pytest

from pyLSM.forcing.atmos import AtmosForcing, StepIndex, partition_precipitation
from pyLSM.model.options import check_options
from pyLSM.utils.errors import ForcingError


@pytest.fixture
def sub_options():
    return check_options({'dt': 3600.0, 'snow_step': 1200.0})


def test_partition_precipitation():
    rain = partition_precipitation([2.0, 2.0, 2.0], [1.0, 0.0, -1.0], 0.5, -0.5)
    assert np.allclose(rain, [2.0, 1.0, 0.0])
    # equal thresholds give a sharp rain/snow limit
    rain = partition_precipitation([1.0, 1.0], [0.1, -0.1], 0.0, 0.0)
    assert np.allclose(rain, [1.0, 0.0])


def test_step_index():
    ix = StepIndex(4)
    assert list(ix.substeps()) == [0, 1, 2, 3]
    assert ix.whole == 4
    with pytest.raises(ValueError):
        StepIndex(0)


def test_whole_step_aggregate(sub_options, make_frame):
    frame = make_frame(3, step=1200.0, Tair=[-1.0, 0.0, 4.0], Prec=[1.0, 2.0, 3.0])
    f = AtmosForcing.from_frame(frame, 3600.0, sub_options)
    assert f.index.nsub == 3
    assert f.sub_dt == 1200.0
    whole = f.substep(f.index.whole)
    assert whole['prec'] == pytest.approx(6.0)
    assert whole['air_temp'] == pytest.approx(1.0)
    assert whole['rain'] + whole['snow'] == pytest.approx(6.0)
    assert whole['rain'] == pytest.approx(0.0 + 1.0 + 3.0)
    assert f.substep(2)['air_temp'] == 4.0
    assert 1.1 < whole['density'] < 1.4


def test_adjusted_forcing(sub_options, make_frame):
    frame = make_frame(3, step=1200.0, Tair=2.0, Prec=[1.0, 0.0, 1.0])
    f = AtmosForcing.from_frame(frame, 3600.0, sub_options)
    g = f.adjusted(Tfactor=-3.0, Pfactor=0.5)
    whole = g.substep(g.index.whole)
    assert whole['air_temp'] == pytest.approx(-1.0)
    assert whole['prec'] == pytest.approx(1.0)
    # colder band receives snow
    assert whole['snow'] == pytest.approx(1.0)
    assert f.get('air_temp', 0) == 2.0


def test_invalid_forcing(options, make_frame):
    frame = make_frame(1, Tair=150.0)
    with pytest.raises(ForcingError):
        AtmosForcing.from_frame(frame, 3600.0, options)

    frame = make_frame(1, Prec=np.nan)
    with pytest.raises(ForcingError):
        AtmosForcing.from_frame(frame, 3600.0, options)

    frame = make_frame(1).drop(columns=['vp'])
    with pytest.raises(ForcingError):
        AtmosForcing.from_frame(frame, 3600.0, options)


def test_mismatched_substeps(options):
    data = {'air_temp': [1.0, 2.0], 'prec': [0.0], 'shortwave': [0.0, 0.0],
            'longwave': [300.0, 300.0], 'wind': [2.0, 2.0], 'pressure': [100.0, 100.0],
            'vp': [0.5, 0.5]}
    with pytest.raises(ForcingError):
        AtmosForcing(data, '2018-01-01', 3600.0, 0.5, -0.5)
