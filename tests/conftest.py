# -*- coding: utf-8 -*-
"""
Shared fixtures: small soil column, cell parameters and synthetic forcing.
"""

import copy
import numpy as np
import pandas as pd
import pytest
import matplotlib

matplotlib.use('Agg')

from pyLSM.forcing.atmos import AtmosForcing
from pyLSM.microclimate.micromet import e_sat
from pyLSM.model.options import check_options
from pyLSM.parameters.example_parameters import spara, veg_library, vegetation, lpara
from pyLSM.soil.soil import SoilColumn


def single_band_soil():
    p = copy.deepcopy(spara)
    p['bands'] = {'AreaFract': [1.0], 'elevation': [p['elevation']], 'Pfactor': [1.0]}
    p['init_temp'] = [2.0, 3.0, 4.0]
    return p


def forcing_frame(n, start='2018-01-10', step=3600.0, Tair=2.0, Prec=0.0, SWin=150.0,
                  LWin=300.0, U=3.0, P=100.0, rh=0.85):
    """ Forcing table with one row per step; scalars or arrays of length n. """
    index = pd.date_range(start, periods=n, freq='%ds' % int(step))

    def column(value):
        return np.broadcast_to(np.asarray(value, dtype=float), (n,)).copy()

    T = column(Tair)
    es, _ = e_sat(T)
    return pd.DataFrame({'Tair': T, 'Prec': column(Prec), 'SWin': column(SWin),
                         'LWin': column(LWin), 'U': column(U), 'P': column(P),
                         'vp': rh * es}, index=index)


def step_forcing(options, date='2018-01-10', **values):
    """ AtmosForcing of one time step with a single sub-step. """
    frame = forcing_frame(1, start=date, step=options['snow_step'], **values)
    return AtmosForcing.from_frame(frame, options['dt'], options)


@pytest.fixture
def options():
    return check_options({'Nlayer': 3, 'Nnode': 5})


@pytest.fixture
def frozen_options():
    return check_options({'Nlayer': 3, 'Nnode': 5, 'frozen_soil': True})


@pytest.fixture
def soil_params():
    return single_band_soil()


@pytest.fixture
def soil(soil_params, options):
    return SoilColumn(soil_params, options)


@pytest.fixture
def cell_params():
    return {'soil': single_band_soil(),
            'vegetation': copy.deepcopy(vegetation),
            'veg_library': copy.deepcopy(veg_library),
            'lake': copy.deepcopy(lpara)}


@pytest.fixture
def lake_params():
    return copy.deepcopy(lpara)


@pytest.fixture
def make_frame():
    return forcing_frame


@pytest.fixture
def make_forcing():
    return step_forcing
