# -*- coding: utf-8 -*-
"""
Tests of model option validation.
"""

import pytest

from pyLSM.model.options import DEFAULT_OPTIONS, check_options, substeps
from pyLSM.utils.errors import ConfigurationError


def test_defaults():
    opts = check_options()
    assert opts['ground_flux'] == 'finite_difference'
    assert opts['root_solver']['brackets']['snow'] == 5.0
    assert opts['balance']['water_tolerance'] == DEFAULT_OPTIONS['balance']['water_tolerance']
    assert substeps(opts) == 1


def test_nested_update_keeps_defaults():
    opts = check_options({'root_solver': {'brackets': {'surface': 2.0}}})
    assert opts['root_solver']['brackets']['surface'] == 2.0
    assert opts['root_solver']['brackets']['soil'] == 0.25
    assert opts['root_solver']['widening'] == 10.0
    # defaults are not modified
    assert DEFAULT_OPTIONS['root_solver']['brackets']['surface'] == 1.0


def test_substeps():
    assert substeps(check_options({'dt': 86400.0, 'snow_step': 3600.0})) == 24


@pytest.mark.parametrize('options', [
    {'unknown_option': True},
    {'spatial_frost': True},
    {'frozen_soil': True, 'full_energy': False},
    {'blowing': True, 'full_energy': False},
    {'ground_flux': 'implicit'},
    {'baseflow': 'TOPMODEL'},
    {'depletion_curve': 'cubic'},
    {'Nlayer': 1},
    {'Nnode': 2},
    {'snow_band': 0},
    {'dt': 3600.0, 'snow_step': 7200.0},
    {'dt': 3600.0, 'snow_step': 1000.0},
    {'max_snow_temp': -1.0, 'min_rain_temp': 0.0},
    ])
def test_invalid_options(options):
    with pytest.raises(ConfigurationError):
        check_options(options)


def test_spatial_frost_subareas():
    opts = check_options({'frozen_soil': True, 'spatial_frost': True, 'frost_subareas': 3})
    assert opts['frost_subareas'] == 3
    assert check_options({'frost_subareas': 3})['frost_subareas'] == 1
