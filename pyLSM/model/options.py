# -*- coding: utf-8 -*-
"""
.. module: model.options
    :synopsis: pyLSM run options
.. moduleauthor:: pyLSM developers

Model control options, their defaults and validation. Options are resolved once
at cell initialisation and are read-only afterwards.
"""

import copy
import logging
from typing import Dict

from pyLSM.utils.constants import ARNO, NIJSSEN2001, SNOW_DT, SURF_DT, SOIL_DT, CANOPY_DT, CANOPY_VP
from pyLSM.utils.errors import ConfigurationError
from pyLSM.utils.utilities import deep_update

logger = logging.getLogger(__name__)

GROUND_FLUX_MODES = ('quick_flux', 'finite_difference', 'quick_solve')
DEPLETION_CURVES = ('parabolic', 'linear')

DEFAULT_OPTIONS = {
    'dt': 3600.0,  # model time step [s]
    'snow_step': 3600.0,  # snow / energy balance sub-step [s]
    'full_energy': True,  # solve surface energy balance; False: water balance mode
    'frozen_soil': False,  # soil ice and phase change
    'spatial_frost': False,  # sub-grid distribution of soil temperature for ice
    'frost_subareas': 1,  # number of frost subareas [-]
    'ground_flux': 'finite_difference',  # 'quick_flux' | 'finite_difference' | 'quick_solve'
    'noflux': False,  # no-flux lower boundary of soil thermal profile
    'dist_prcp': False,  # distributed (wet/dry fraction) precipitation
    'prec_expt': 0.6,  # exponent of storm area fraction [mm-1]
    'snow_band': 1,  # number of elevation bands [-]
    'blowing': False,  # blowing snow sublimation
    'depletion_curve': 'parabolic',  # 'parabolic' | 'linear'
    'baseflow': ARNO,  # 'ARNO' | 'NIJSSEN2001'
    'lakes': False,  # lake sub-model
    'Nlayer': 3,  # number of soil moisture layers [-]
    'Nnode': 5,  # number of soil thermal nodes [-]
    'Nlakenode': 10,  # number of lake temperature nodes [-]
    'min_wind_speed': 0.1,  # [m s-1]
    'max_snow_temp': 0.5,  # all precipitation is rain above [degC]
    'min_rain_temp': -0.5,  # all precipitation is snow below [degC]
    'wind_h': 10.0,  # wind measurement height [m]
    'measure_h': 2.0,  # temperature and humidity measurement height [m]
    'root_solver': {
        'brackets': {'snow': SNOW_DT,  # [degC]
                     'surface': SURF_DT,  # [degC]
                     'soil': SOIL_DT,  # [degC]
                     'canopy_air': CANOPY_DT,  # [degC]
                     'canopy_vp': CANOPY_VP,  # [Pa]
                     },
        'widening': 10.0,  # bracket half-width factor of the single retry [-]
        'xtol': 1.0e-4,  # [degC] or [Pa]
        'max_iter': 100,
        },
    'thermal_solver': {
        'tolerance': 1.0e-3,  # [degC]
        'ice_tolerance': 1.0e-5,  # [m3 m-3]
        'max_iter': 50,
        },
    'balance': {
        'water_tolerance': 1.0e-4,  # [mm], warning above
        'water_hard_limit': 1.0,  # [mm], error above
        'energy_tolerance': 1.0,  # [W m-2], warning above
        'energy_hard_limit': 1000.0,  # [W m-2], error above
        'snow_mass_tolerance': 1.0e-4,  # [mm], warning above
        'snow_mass_hard_limit': 1.0,  # [mm], error above
        },
    'partial_aggregation': False,  # aggregate over converged tiles if some tile fails
    }


def check_options(options: Dict=None) -> Dict:
    """
    Merges options with defaults and validates them.

    Args:
        options (dict): user options (nested dicts allowed, see DEFAULT_OPTIONS)
    Returns:
        (dict): resolved options
    Raises:
        ConfigurationError: invalid value or invalid combination of options
    """
    opts = deep_update(copy.deepcopy(DEFAULT_OPTIONS), options or {})

    unknown = set(opts) - set(DEFAULT_OPTIONS)
    if unknown:
        raise ConfigurationError('Unknown options: %s' % sorted(unknown))

    if opts['ground_flux'] not in GROUND_FLUX_MODES:
        raise ConfigurationError('Unknown ground_flux mode: %s' % opts['ground_flux'])
    if opts['baseflow'] not in (ARNO, NIJSSEN2001):
        raise ConfigurationError('Unknown baseflow formulation: %s' % opts['baseflow'])
    if opts['depletion_curve'] not in DEPLETION_CURVES:
        raise ConfigurationError('Unknown depletion_curve: %s' % opts['depletion_curve'])

    if opts['spatial_frost'] and not opts['frozen_soil']:
        raise ConfigurationError('spatial_frost requires frozen_soil')
    if opts['frozen_soil'] and not opts['full_energy']:
        raise ConfigurationError('frozen_soil requires full_energy')
    if opts['blowing'] and not opts['full_energy']:
        raise ConfigurationError('blowing requires full_energy')
    if not opts['spatial_frost']:
        opts['frost_subareas'] = 1
    if opts['frost_subareas'] < 1:
        raise ConfigurationError('frost_subareas must be >= 1')

    if opts['Nlayer'] < 2:
        raise ConfigurationError('Nlayer must be >= 2')
    if opts['Nnode'] < 3:
        raise ConfigurationError('Nnode must be >= 3')
    if opts['lakes'] and opts['Nlakenode'] < 1:
        raise ConfigurationError('Nlakenode must be >= 1')
    if opts['snow_band'] < 1:
        raise ConfigurationError('snow_band must be >= 1')

    dt, snow_step = float(opts['dt']), float(opts['snow_step'])
    if dt <= 0.0 or snow_step <= 0.0 or snow_step > dt:
        raise ConfigurationError('dt and snow_step must be positive and snow_step <= dt')
    nsub = dt / snow_step
    if abs(nsub - round(nsub)) > 1.0e-9:
        raise ConfigurationError('snow_step %.1f s does not divide dt %.1f s' % (snow_step, dt))

    if opts['max_snow_temp'] < opts['min_rain_temp']:
        raise ConfigurationError('max_snow_temp must not be below min_rain_temp')
    if not 0.0 < opts['prec_expt']:
        raise ConfigurationError('prec_expt must be positive')

    return opts


def substeps(options: Dict) -> int:
    """ Number of snow/energy sub-steps in a model time step. """
    return int(round(options['dt'] / options['snow_step']))

# EOF
