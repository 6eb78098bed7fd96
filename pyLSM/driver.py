# -*- coding: utf-8 -*-
"""
.. module: pyLSM.driver
    :synopsis: pyLSM model driver
.. moduleauthor:: pyLSM developers

Runs grid cells sequentially over a forcing table and collects the results.

Example:
    from pyLSM.driver import driver
    from pyLSM.utils.iotools import read_forcing
    from pyLSM.parameters.example_parameters import gpara, ctr, cell_parameters

    forcing = read_forcing(gpara['forc_filename'], gpara['start_time'],
                           gpara['end_time'], dt=ctr['snow_step'])
    params = {'general': gpara, 'options': ctr, 'cells': [cell_parameters]}
    results, models = driver(parameters=params, forcing=forcing)
"""

import time
import logging
import logging.config
import numpy as np
import pandas as pd
from typing import Dict, List, Tuple

from pyLSM.forcing.atmos import AtmosForcing
from pyLSM.model.cell import CellModel
from pyLSM.model.options import check_options, substeps
from pyLSM.parameters.outputs import output_variables, logging_configuration
from pyLSM.utils.errors import ForcingError
from pyLSM.utils.iotools import initialize_netcdf, write_ncf, stack_records, results_to_dataset

logger = logging.getLogger(__name__)


def driver(parameters: Dict,
           forcing,
           create_ncf: bool=False,
           result_file: str=None,
           states: List[Dict]=None,
           logging_config: Dict=None) -> Tuple:
    r"""
    Runs all grid cells over the forcing period.

    Args:
        parameters (dict):
            'general' (dict): general settings ('results_directory')
            'options' (dict): model options, see model.options.DEFAULT_OPTIONS
            'cells' (list): cell parameter dicts, see CellModel
        forcing (pd.DataFrame|list): forcing table with one row per snow step,
            shared by all cells, or one table per cell
        create_ncf (bool): write results to NetCDF4-file
        result_file (str): name of the results file
        states (list): optional per cell checkpoints from CellModel.state_fields()
        logging_config (dict): logging configuration; default
            pyLSM.parameters.outputs.logging_configuration
    Returns:
        results (xr.Dataset|str): results, or path of the results file if create_ncf
        models (list): CellModel of each cell in their final state
    """
    logging.config.dictConfig(logging_config or logging_configuration)

    general = parameters.get('general', {})
    options = check_options(parameters.get('options'))
    cells = parameters['cells']
    nsub = substeps(options)

    if isinstance(forcing, pd.DataFrame):
        forcing = [forcing] * len(cells)
    if len(forcing) != len(cells):
        raise ForcingError('Got %d forcing tables for %d cells' % (len(forcing), len(cells)))
    for frame in forcing:
        _check_forcing(frame, nsub, options['snow_step'])
    time_index = forcing[0].index[::nsub]

    logger.info('Initializing %d cells', len(cells))
    models = [CellModel(p, options, states[k] if states else None) for k, p in enumerate(cells)]

    variables = output_variables['variables']
    ncf = None
    if create_ncf:
        if result_file is None:
            result_file = time.strftime('%Y%m%d%H%M') + '_pyLSM_results.nc'
        ncf, outputfile = initialize_netcdf(
            variables=variables,
            cells=len(models),
            layers=options['Nlayer'],
            nodes=models[0].soil.thermal.Nnode,
            bands=options['snow_band'],
            time_index=time_index,
            filepath=general.get('results_directory', 'results/'),
            filename=result_file)

    results = []
    coordinates = []
    for k, (model, frame) in enumerate(zip(models, forcing)):
        logger.info('Running cell %s (%d/%d)', model.gridcel, k + 1, len(models))
        running_time = time.time()
        records = run_cell(model, frame, options)
        logger.info('Finished cell %s in %.1f seconds', model.gridcel, time.time() - running_time)

        stacked = stack_records(records, variables)
        coords = cell_coordinates(model)
        results.append(stacked)
        coordinates.append(coords)
        if ncf is not None:
            write_ncf(ncell=k, results=dict(stacked, **coords), ncf=ncf)

    if ncf is not None:
        ncf.close()
        logger.info('Ready! Results are in: %s', outputfile)
        return outputfile, models

    return results_to_dataset(results, time_index, variables, coordinates), models


def run_cell(model: CellModel, frame: pd.DataFrame, options: Dict) -> List[Dict]:
    """
    Runs one cell over the forcing table.

    Returns:
        records (list): output record of each time step
    """
    nsub = substeps(options)
    records = []
    for step in range(len(frame) // nsub):
        forcing = AtmosForcing.from_frame(frame.iloc[step * nsub:(step + 1) * nsub],
                                          options['dt'], options)
        records.append(model.run(step, forcing))
        if records[-1]['failed_tiles']:
            logger.warning('Cell %s step %d: sub-areas %s excluded from aggregation',
                           model.gridcel, step, records[-1]['failed_tiles'])
    return records


def cell_coordinates(model: CellModel) -> Dict:
    """ Static coordinates of a cell: soil layer and node depths, band elevations. """
    depth = model.soil.depth
    return {'layer_z': np.cumsum(depth) - 0.5 * depth,
            'node_z': model.soil.thermal.Z.copy(),
            'band_z': model.soil.band_elevation.copy()}


def _check_forcing(frame: pd.DataFrame, nsub: int, snow_step: float) -> None:
    if len(frame) == 0 or len(frame) % nsub != 0:
        raise ForcingError('Forcing length %d is not a multiple of %d sub-steps' % (len(frame), nsub))
    if len(frame) > 1:
        step = (frame.index[1] - frame.index[0]).total_seconds()
        if step != snow_step:
            raise ForcingError('Forcing time step %.1f s differs from snow_step %.1f s' % (step, snow_step))

# EOF
