# -*- coding: utf-8 -*-
"""
.. module: utils.plotting
    :synopsis: pyLSM result figures
.. moduleauthor:: pyLSM developers

Quick-look figures of a pyLSM result Dataset (see utils.iotools).
"""

import numpy as np
import xarray as xr
import matplotlib.pyplot as plt
from typing import List


def plot_fluxes(results: xr.Dataset, cell: int=0,
                res_var: List=['Rnet', 'sensible', 'latent', 'grnd_flux']):
    """
    Time series of energy fluxes of a cell.

    Args:
        results (xr.Dataset): model results
        cell (int): cell index
        res_var (list): variables to plot
    Returns:
        fig (matplotlib.figure.Figure)
    """
    fig, ax = plt.subplots(len(res_var), 1, figsize=(10, 2.0 * len(res_var)), sharex=True)
    ax = np.atleast_1d(ax)
    t = results.date

    for k, v in enumerate(res_var):
        ax[k].plot(t, results[v][:, cell], linewidth=1.0)
        ax[k].set_ylabel('%s\n%s' % (v, results[v].attrs.get('units', '')), fontsize=8)
    ax[-1].tick_params(axis='x', labelrotation=20)
    fig.tight_layout()
    return fig


def plot_snow(results: xr.Dataset, cell: int=0):
    """ Snow water equivalent per elevation band, snow cover and melt of a cell. """
    fig, ax = plt.subplots(3, 1, figsize=(10, 7), sharex=True)
    t = results.date

    swe = results['swe_band'][:, cell, :]
    for b in range(swe.shape[1]):
        ax[0].plot(t, swe[:, b], label='band %d' % b)
    ax[0].plot(t, results['swe'][:, cell], 'k-', label='cell')
    ax[0].set_ylabel('swe [mm]')
    ax[0].legend(fontsize=8)

    ax[1].plot(t, results['snow_coverage'][:, cell])
    ax[1].set_ylabel('coverage [-]')

    ax[2].bar(t, results['snow_melt'][:, cell], width=0.03)
    ax[2].set_ylabel('melt [mm]')
    ax[2].tick_params(axis='x', labelrotation=20)
    fig.tight_layout()
    return fig


def plot_soil(results: xr.Dataset, cell: int=0,
              var: List=['soil_temp', 'soil_moist']):
    """
    Soil layer time series and vertical profiles at the last time step.
    """
    zs = results['layer_z'][cell].values
    depths = ['{:.2f} m'.format(k) for k in zs]
    t = results.date

    fig, ax = plt.subplots(len(var), 2, figsize=(12, 3.5 * len(var)),
                           gridspec_kw={'width_ratios': [3, 1]})
    ax = np.atleast_2d(ax)
    for k, v in enumerate(var):
        ax[k, 0].plot(t, results[v][:, cell, :], label=depths)
        ax[k, 0].set_ylabel('%s [%s]' % (v, results[v].attrs.get('units', '')))
        ax[k, 0].tick_params(axis='x', labelrotation=20)
        ax[k, 0].legend(fontsize=8)

        ax[k, 1].plot(results[v][-1, cell, :], -zs, 'o-')
        ax[k, 1].set_xlabel(results[v].attrs.get('units', ''))
        ax[k, 1].set_ylabel('depth (m)')
    fig.tight_layout()
    return fig

# EOF
