# -*- coding: utf-8 -*-
"""
Example run of pyLSM for one grid cell.

Forcing file and result folder can be set in a .env file:
    PYLSM_FORCING=forcing/example_forcing.csv
    PYLSM_RESULTS=results/
"""

import os
from dotenv import load_dotenv
from matplotlib import pyplot as plt

from pyLSM.driver import driver
from pyLSM.utils.iotools import read_forcing, read_results, save_state
from pyLSM.utils.plotting import plot_fluxes, plot_snow, plot_soil
from pyLSM.parameters.example_parameters import gpara, ctr, cell_parameters

load_dotenv()

gpara['forc_filename'] = os.getenv('PYLSM_FORCING', gpara['forc_filename'])
gpara['results_directory'] = os.getenv('PYLSM_RESULTS', gpara['results_directory'])

# forcing has one row per snow step
forcing = read_forcing(forcing_file=gpara['forc_filename'],
                       start_time=gpara['start_time'],
                       end_time=gpara['end_time'],
                       dt=ctr['snow_step'])

params = {'general': gpara,  # general settings
          'options': ctr,  # model options
          'cells': [cell_parameters]  # soil, vegetation and lake of each cell
          }

# run model
resultfile, models = driver(parameters=params, forcing=forcing, create_ncf=True,
                            result_file='example.nc')

# checkpoint of the final state
save_state(models, os.path.join(gpara['results_directory'], 'example_state.json'))

# read simulation results to xarray dataset
results = read_results(resultfile)

plot_fluxes(results, cell=0)
plot_snow(results, cell=0)
plot_soil(results, cell=0)
plt.show()
