# -*- coding: utf-8 -*-
"""
.. module: forcing.atmos
    :synopsis: pyLSM meteorological forcing of a time step
.. moduleauthor:: pyLSM developers

Forcing of one model time step, resolved into snow/energy sub-steps. Each
variable is an array of length nsub + 1: entries 0...nsub-1 are the sub-steps
and entry nsub (StepIndex.whole) is the whole-step aggregate.
"""

import numpy as np
import pandas as pd
import logging
from typing import Dict

from pyLSM.microclimate.micromet import air_density
from pyLSM.utils.errors import ForcingError

logger = logging.getLogger(__name__)

#: forcing columns: name -> (frame column, valid range, aggregation)
FORCING_VARIABLES = {
    'air_temp': ('Tair', (-100.0, 70.0), 'mean'),  # [degC]
    'prec': ('Prec', (0.0, 1000.0), 'sum'),  # [mm per sub-step]
    'shortwave': ('SWin', (0.0, 1500.0), 'mean'),  # [W m-2]
    'longwave': ('LWin', (0.0, 1000.0), 'mean'),  # [W m-2]
    'wind': ('U', (0.0, 100.0), 'mean'),  # [m s-1]
    'pressure': ('P', (10.0, 120.0), 'mean'),  # [kPa]
    'vp': ('vp', (0.0, 20.0), 'mean'),  # [kPa]
    }


def partition_precipitation(prec: np.ndarray, air_temp: np.ndarray, max_snow_temp: float,
                            min_rain_temp: float) -> np.ndarray:
    """
    Rain part of precipitation: all rain above max_snow_temp, all snow below
    min_rain_temp and linear in between.

    Returns:
        rain (array): same units as prec
    """
    prec = np.asarray(prec, dtype=float)
    air_temp = np.asarray(air_temp, dtype=float)
    if max_snow_temp <= min_rain_temp:
        frac = np.where(air_temp > max_snow_temp, 1.0, 0.0)
    else:
        frac = np.clip((air_temp - min_rain_temp) / (max_snow_temp - min_rain_temp), 0.0, 1.0)
    return prec * frac


class StepIndex(object):
    r"""
    Sub-step context of a model time step.
    """
    def __init__(self, nsub: int):
        if nsub < 1:
            raise ValueError('Number of sub-steps must be >= 1')
        self.nsub = int(nsub)

    @property
    def whole(self) -> int:
        """ Index of the whole-step aggregate. """
        return self.nsub

    def substeps(self) -> range:
        return range(self.nsub)

    def __repr__(self):
        return 'StepIndex(nsub=%d)' % self.nsub


class AtmosForcing(object):
    r"""
    Meteorological forcing of one model time step.
    """
    def __init__(self, data: Dict, date: pd.Timestamp, dt: float, max_snow_temp: float,
                 min_rain_temp: float):
        """
        Args:
            data (dict): variable name -> sub-step values (see FORCING_VARIABLES)
            date (pd.Timestamp): start of the time step
            dt (float): model time step [s]
            max_snow_temp (float): [degC]
            min_rain_temp (float): [degC]
        Raises:
            ForcingError: missing or out-of-range value
        """
        nsub = None
        arrays = {}
        for name, (column, (lo, hi), _) in FORCING_VARIABLES.items():
            if name not in data:
                raise ForcingError('Forcing variable %s (%s) missing' % (name, column))
            values = np.atleast_1d(np.asarray(data[name], dtype=float))
            if nsub is None:
                nsub = len(values)
            elif len(values) != nsub:
                raise ForcingError('Forcing variable %s has %d sub-steps, expected %d'
                                   % (name, len(values), nsub))
            for i, v in enumerate(values):
                if not np.isfinite(v) or v < lo or v > hi:
                    raise ForcingError('Forcing variable %s invalid at sub-step %d: %s' % (name, i, v))
            arrays[name] = values

        self.index = StepIndex(nsub)
        self.date = pd.Timestamp(date)
        self.dt = dt
        self.sub_dt = dt / nsub
        self.max_snow_temp = max_snow_temp
        self.min_rain_temp = min_rain_temp

        self.data = {}
        for name, (_, _, how) in FORCING_VARIABLES.items():
            self.data[name] = self._with_aggregate(arrays[name], how)
        self._derive()

    def _with_aggregate(self, values: np.ndarray, how: str) -> np.ndarray:
        agg = np.sum(values) if how == 'sum' else np.mean(values)
        return np.append(values, agg)

    def _derive(self) -> None:
        n = self.index.nsub
        rain = partition_precipitation(self.data['prec'][:n], self.data['air_temp'][:n],
                                       self.max_snow_temp, self.min_rain_temp)
        self.data['rain'] = self._with_aggregate(rain, 'sum')
        self.data['snow'] = self._with_aggregate(self.data['prec'][:n] - rain, 'sum')
        rho = air_density(self.data['pressure'][:n], self.data['air_temp'][:n], self.data['vp'][:n])
        self.data['density'] = self._with_aggregate(rho, 'mean')

    @property
    def month(self) -> int:
        return self.date.month

    def get(self, name: str, i: int) -> float:
        return float(self.data[name][i])

    def substep(self, i: int) -> Dict:
        """ Forcing of sub-step i (or of the whole step at StepIndex.whole) as dict. """
        return {name: float(values[i]) for name, values in self.data.items()}

    def adjusted(self, Tfactor: float=0.0, Pfactor: float=1.0) -> 'AtmosForcing':
        """
        Forcing of an elevation band or distributed precipitation fraction:
        temperature shifted by Tfactor and precipitation scaled by Pfactor.
        """
        n = self.index.nsub
        data = {name: self.data[name][:n].copy() for name in FORCING_VARIABLES}
        data['air_temp'] = data['air_temp'] + Tfactor
        data['prec'] = data['prec'] * Pfactor
        return AtmosForcing(data, self.date, self.dt, self.max_snow_temp, self.min_rain_temp)

    @classmethod
    def from_frame(cls, frame: pd.DataFrame, dt: float, options: Dict) -> 'AtmosForcing':
        """
        Builds forcing of one time step from rows of a forcing frame, one row per
        sub-step, with columns named as in FORCING_VARIABLES.
        """
        data = {}
        for name, (column, _, _) in FORCING_VARIABLES.items():
            if column not in frame:
                raise ForcingError('Forcing column %s missing' % column)
            data[name] = frame[column].values
        return cls(data, frame.index[0], dt, options['max_snow_temp'], options['min_rain_temp'])

# EOF
