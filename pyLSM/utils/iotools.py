# -*- coding: utf-8 -*-
"""
.. module: utils.iotools
    :synopsis: pyLSM component for data input/outputs
.. moduleauthor:: pyLSM developers

Forcing tables, result files and cell state checkpoints.
"""

import os
import json
import numpy as np
import pandas as pd
import xarray as xr
from typing import Dict, List

from pyLSM.forcing.atmos import FORCING_VARIABLES
from pyLSM.microclimate.micromet import e_sat
from pyLSM.utils.errors import ForcingError

#: static coordinates of result files: name -> (dimension, description [units])
COORDINATES = {'layer_z': ('layer', 'depth of soil layer midpoint [m]'),
               'node_z': ('node', 'depth of soil thermal node [m]'),
               'band_z': ('band', 'elevation of band [m]')}


def initialize_netcdf(variables: List,
                      cells: int,
                      layers: int,
                      nodes: int,
                      bands: int,
                      time_index: pd.DatetimeIndex,
                      filepath: str='results/',
                      filename: str='pyLSM.nc',
                      description: str='pyLSM results'):
    r"""
    Creates pyLSM NetCDF4 format output file

    Args:
        variables (list): [name, description [units], dimensions] of variables to save
        cells (int): number of grid cells
        layers (int): number of soil moisture layers
        nodes (int): number of soil thermal nodes
        bands (int): number of elevation bands
        time_index (pd.DatetimeIndex): time steps of the simulation
        filepath (str): path for saving results
        filename (str): filename
        description (str): info
    Returns:
        ncf (netCDF4.Dataset): open file handle
        ff (str): file path
    """
    from netCDF4 import Dataset, date2num
    from datetime import datetime

    filepath = os.path.join(os.getcwd(), filepath)
    if not os.path.exists(filepath):
        os.makedirs(filepath)

    ff = os.path.join(filepath, filename)

    # create dataset and dimensions
    ncf = Dataset(ff, 'w')
    ncf.description = description
    ncf.history = 'created ' + datetime.now().strftime('%Y-%m-%d %H:%M:%S')
    ncf.source = 'pyLSM'

    ncf.createDimension('date', None)
    ncf.createDimension('cell', cells)
    ncf.createDimension('layer', layers)
    ncf.createDimension('node', nodes)
    ncf.createDimension('band', bands)

    time = ncf.createVariable('date', 'f8', ('date',))
    time.units = 'days since 0001-01-01 00:00:00.0'
    time.calendar = 'standard'
    tvec = [pd.to_datetime(k).to_pydatetime() for k in time_index]
    time[:] = date2num(tvec, units=time.units, calendar=time.calendar)

    for name, (dim, unit) in COORDINATES.items():
        variable = ncf.createVariable(name, 'f4', ('cell', dim))
        variable.units = unit

    for var_name, var_unit, var_dim in variables:
        variable = ncf.createVariable(var_name, 'f4', var_dim)
        variable.units = var_unit

    return ncf, ff


def write_ncf(ncell: int=None, results: Dict=None, ncf=None) -> None:
    r"""
    Writes pyLSM results of one grid cell into NetCDF4-file

    Args:
        ncell (int): cell index
        results (dict): variable name -> array over time (and layer, node or band)
        ncf (object): netCDF4-file handle
    """
    variables = ncf.variables.keys()

    for key, value in results.items():
        if key not in variables or key == 'date':
            continue
        if key in COORDINATES:
            ncf[key][ncell, :] = value
        elif np.asarray(value).ndim > 1:
            ncf[key][:, ncell, :] = value
        else:
            ncf[key][:, ncell] = value


def stack_records(records: List[Dict], variables: List) -> Dict:
    """
    Stacks output records of consecutive time steps of one cell to arrays.
    Variables missing from the records (e.g. lake outputs of a cell without
    lake) are filled with NaN.

    Args:
        records (list): output records of CellModel.run
        variables (list): [name, description [units], dimensions]
    Returns:
        (dict): name -> array (time, ...)
    """
    out = {}
    for name, _, _ in variables:
        if records and name in records[0]:
            out[name] = np.array([r[name] for r in records], dtype=float)
        else:
            out[name] = np.full(len(records), np.nan)
    return out


def results_to_dataset(results: List[Dict], time_index: pd.DatetimeIndex, variables: List,
                       coordinates: List[Dict]=None, description: str='pyLSM results') -> xr.Dataset:
    r"""
    Collects stacked results of grid cells into an xarray Dataset.

    Args:
        results (list): stack_records() output of each cell
        time_index (pd.DatetimeIndex): time steps
        variables (list): [name, description [units], dimensions]
        coordinates (list): per cell dict of static coordinates (see COORDINATES)
        description (str): info
    Returns:
        ds (xr.Dataset): dimensions date, cell, layer, node, band
    """
    data_vars = {}
    for name, unit, dims in variables:
        arrays = [np.asarray(r[name], dtype=float) for r in results]
        if len(dims) > 2:
            size = max(a.shape[1] if a.ndim > 1 else 1 for a in arrays)
            arrays = [a if a.ndim > 1 else np.full((len(a), size), np.nan) for a in arrays]
        data = np.stack(arrays, axis=1)
        data_vars[name] = (dims, data, {'units': unit})

    if coordinates:
        for name, (dim, unit) in COORDINATES.items():
            if name in coordinates[0]:
                data_vars[name] = (('cell', dim), np.stack([c[name] for c in coordinates]),
                                   {'units': unit})

    ds = xr.Dataset(data_vars, coords={'date': time_index, 'cell': np.arange(len(results))})
    ds.attrs['description'] = description
    ds.attrs['source'] = 'pyLSM'
    return ds


def save_results(ds: xr.Dataset, filepath: str='results/', filename: str='pyLSM.nc') -> str:
    """ Writes a result Dataset into NetCDF4-file and returns the file path. """
    filepath = os.path.join(os.getcwd(), filepath)
    if not os.path.exists(filepath):
        os.makedirs(filepath)
    ff = os.path.join(filepath, filename)
    ds.to_netcdf(ff, engine='netcdf4')
    return ff


def read_forcing(forcing_file: str, start_time: str=None, end_time: str=None,
                 dt: float=3600.0, na_values: str='NaN', sep: str=';') -> pd.DataFrame:
    """
    Reads model forcing data from csv-file to pd.DataFrame.
    Precipitation is [mm] per time step of the file. If vapour pressure 'vp' is
    missing it is computed from relative humidity 'RH' [%].

    Args:
        forcing_file (str): forcing file path
        start_time (str): starting time [yyyy-mm-dd], if None first date in
            file used
        end_time (str): ending time [yyyy-mm-dd], if None last date
            in file used
        dt (float): time step [s]; checks that dt in file is equal to this
        na_values (str|float): nan value representation in file
        sep (str): field separator
    Returns:
        Forc (pd.DataFrame): dataframe with datetimeindex and columns
            Tair, Prec, SWin, LWin, U, P, vp
    Raises:
        ForcingError: missing columns or irregular time step
    """
    dat = read_data(forcing_file, start_time=start_time, end_time=end_time,
                    na_values=na_values, sep=sep)

    if 'vp' not in dat and 'RH' in dat:
        es, _ = e_sat(dat['Tair'].values)
        dat['vp'] = dat['RH'].values / 100.0 * es

    cols = [column for column, _, _ in FORCING_VARIABLES.values()]
    missing = [c for c in cols if c not in dat]
    if missing:
        raise ForcingError('Forcing file %s lacks columns %s' % (forcing_file, missing))

    # Create dataframe from specified columns
    Forc = dat[cols].copy()

    # Check time step
    if len(Forc) > 1:
        steps = set(Forc.index[1:] - Forc.index[:-1])
        if len(steps) > 1:
            raise ForcingError('Forcing file does not have constant time step')
        if (Forc.index[1] - Forc.index[0]).total_seconds() != dt:
            raise ForcingError('Forcing file time step differs from dt given in general parameters')

    return Forc


def read_data(ffile: str, start_time: str=None, end_time: str=None, na_values: str='NaN',
              sep: str=';') -> pd.DataFrame:
    r"""
    Reads csv-datafile into pd.DataFrame
    Args:
        ffile (str): filepath
        start_time (str): starting time [yyyy-mm-dd], if None first date in
            file used
        end_time (str): ending time [yyyy-mm-dd], if None last date
            in file used
        na_values (str|float): nan value representation in file
        sep (str): field separator
    Returns:
        dat (pd.DataFrame): dataframe with datetimeindex and columns read from file
    """
    dat = pd.read_csv(ffile, header='infer', na_values=na_values, sep=sep)

    # set to dataframe index
    tvec = pd.to_datetime(dat[['year', 'month', 'day', 'hour', 'minute']])
    dat.index = pd.DatetimeIndex(tvec)

    # select time period
    if start_time is None:
        start_time = dat.index[0]
    if end_time is None:
        end_time = dat.index[-1]

    return dat[(dat.index >= start_time) & (dat.index <= end_time)]


def read_results(outputfiles):
    """
    Opens simulation results from NetCDF4 dataset(s) in xr dataset(s)
    Args:
        outputfiles (str|list):
    Returns:
        results (xarray|list of xarrays):
            simulation results from given outputfile(s)
    """
    if not isinstance(outputfiles, list):
        outputfiles = [outputfiles]

    results = []
    for outputfile in outputfiles:
        result = xr.open_dataset(outputfile)
        result.coords['cell'] = np.arange(result.sizes['cell'])
        results.append(result)

    if len(results) == 1:
        return results[0]
    return results


class NumpyEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, (np.floating, np.bool_)):
            return obj.item()
        return json.JSONEncoder.default(self, obj)


def save_state(models: List, file_name: str='pyLSM_state.json') -> None:
    """ Dumps cell states, in stable field order, into json format. """
    states = [model.state_fields() for model in models]
    with open(file_name, 'w') as fp:
        json.dump(states, fp, cls=NumpyEncoder)


def load_state(file_path: str) -> List[Dict]:
    """ Opens cell states saved with save_state(). """
    with open(file_path) as json_data:
        return json.load(json_data)

# EOF
