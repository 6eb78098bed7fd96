# -*- coding: utf-8 -*-
"""
.. module: pyLSM.parameters.example_parameters
    :synopsis: pyLSM PARAMETERIZATION
.. moduleauthor:: pyLSM developers

Example parameters of a boreal grid cell with a forest tile, a grassland tile,
bare soil, two elevation bands and a small lake.

Define pyLSM output variables and logger config in: pyLSM.parameters.outputs
"""

import numpy as np

gpara = {'dt': 3600.0,  # timestep in forcing data file [s]
         'start_time': "2018-01-01",  # start time of simulation [yyyy-mm-dd]
         'end_time': "2018-03-31",  # end time of simulation [yyyy-mm-dd]
         'forc_filename': 'forcing/example_forcing.csv',  # forcing data file
         'results_directory': 'results/'
         }

# --- Model control options: pyLSM.model.options.DEFAULT_OPTIONS
ctr = {'dt': 3600.0,
       'snow_step': 3600.0,
       'full_energy': True,
       'frozen_soil': True,
       'ground_flux': 'finite_difference',
       'dist_prcp': False,
       'snow_band': 2,
       'blowing': False,
       'baseflow': 'ARNO',
       'lakes': True,
       'Nlayer': 3,
       'Nnode': 7,
       'Nlakenode': 10,
       }

# --- Soil column: pyLSM.soil.soil.SoilColumn
spara = {'gridcel': 1,
         'lat': 61.85,  # [deg]
         'lng': 24.29,  # [deg]
         'elevation': 180.0,  # [m]
         'depth': [0.1, 0.4, 1.0],  # layer thicknesses [m]
         'Ksat': [800.0, 400.0, 200.0],  # [mm day-1]
         'expt': [10.0, 12.0, 14.0],  # Brooks-Corey exponent 3 + 2 / lambda [-]
         'bubble': [15.0, 20.0, 25.0],  # bubbling pressure [cm]
         'bulk_density': [1300.0, 1450.0, 1550.0],  # [kg m-3]
         'soil_density': [2650.0, 2650.0, 2650.0],  # [kg m-3]
         'quartz': [0.6, 0.6, 0.6],  # [-]
         'resid_moist': [0.02, 0.02, 0.02],  # [m3 m-3]
         'Wcr_FRACT': [0.7, 0.7, 0.7],  # [-]
         'Wpwp_FRACT': [0.35, 0.35, 0.35],  # [-]
         'init_moist': [30.0, 110.0, 280.0],  # [mm]
         'init_temp': [0.5, 2.0, 4.0],  # [degC]
         'b_infilt': 0.25,  # [-]
         'baseflow': {'Ds': 0.02,  # fraction of Dsmax where nonlinear baseflow starts [-]
                      'Dsmax': 8.0,  # maximum baseflow [mm day-1]
                      'Ws': 0.8,  # fraction of max moisture where nonlinear baseflow starts [-]
                      'c': 2.0  # exponent of nonlinear baseflow [-]
                      },
         'dp': 4.0,  # damping depth [m]
         'avg_temp': 4.5,  # [degC]
         'rough': 0.001,  # [m]
         'snow_rough': 0.0005,  # [m]
         'frost_slope': 1.0,  # [degC]
         'bands': {'AreaFract': [0.6, 0.4],
                   'elevation': [150.0, 225.0],  # [m]
                   'Pfactor': [0.95, 1.075],
                   'treeline': 1000.0  # [m]
                   },
         }

# --- Vegetation library: pyLSM.vegetation.vegetation.VegClass
_month = np.arange(1, 13)

veg_library = {
    1: {'veg_class': 1,  # evergreen needleleaf forest
        'overstory': True,
        'LAI': [3.0] * 12,
        'Wdmax': [0.6] * 12,  # [mm]
        'albedo': [0.12] * 12,
        'roughness': [1.5] * 12,  # [m]
        'displacement': [10.0] * 12,  # [m]
        'emissivity': [0.98] * 12,
        'rarc': 60.0,  # [s m-1]
        'rmin': 250.0,  # [s m-1]
        'RGL': 30.0,  # [W m-2]
        'rad_atten': 0.5,
        'wind_atten': 0.5,
        'trunk_ratio': 0.2,
        'wind_h': 25.0,  # [m]
        },
    2: {'veg_class': 2,  # grassland
        'overstory': False,
        'LAI': list(1.0 + 1.5 * np.sin(np.pi * np.clip(_month - 4, 0, 6) / 6.0)),
        'Wdmax': [0.2] * 12,
        'albedo': [0.2] * 12,
        'roughness': [0.05] * 12,
        'displacement': [0.3] * 12,
        'emissivity': [0.98] * 12,
        'rarc': 25.0,
        'rmin': 120.0,
        'RGL': 100.0,
        'rad_atten': 0.5,
        'wind_atten': 0.5,
        'trunk_ratio': 0.2,
        'wind_h': 10.0,
        },
    }

# --- Vegetation tiles of the cell: pyLSM.vegetation.vegetation.build_tiles
vegetation = [
    {'veg_class': 1, 'Cv': 0.6, 'zone_depth': [0.3, 0.7], 'zone_fract': [0.6, 0.4],
     'sigma_slope': 0.05, 'lag_one': 0.8, 'fetch': 1000.0},
    {'veg_class': 2, 'Cv': 0.3, 'zone_depth': [0.2, 0.3], 'zone_fract': [0.8, 0.2],
     'sigma_slope': 0.05, 'lag_one': 0.8, 'fetch': 1000.0},
    ]

# --- Lake: pyLSM.lake.lake.LakeColumn
lpara = {'cell_area': 25.0e6,  # [m2]
         'maxdepth': 5.0,  # [m]
         'mindepth': 1.0,  # [m]
         'depth_in': 3.0,  # [m]
         'eta_a': 0.6,  # [m-1]
         'maxrate': 2.0,  # [m3 s-1]
         'rpercent': 0.1,  # [-]
         'bpercent': 0.1,  # [-]
         'init_temp': 3.0,  # [degC]
         'b': 2.0,  # shape exponent of basin [-]
         'max_area_fract': 0.05,  # [-]
         }

cell_parameters = {'soil': spara,
                   'vegetation': vegetation,
                   'veg_library': veg_library,
                   'lake': lpara
                   }

# EOF
