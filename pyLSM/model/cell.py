# -*- coding: utf-8 -*-
"""
.. module: model.cell
    :synopsis: pyLSM grid cell model
.. moduleauthor:: pyLSM developers

Grid cell model: enumerates the sub-areas of a cell (vegetation tile, elevation
band, wet/dry fraction), solves them for a time step, aggregates their fluxes with
area weights, runs the optional lake and checks the water balance of the cell.

Sub-areas are solved on working copies of their states. States are committed
only after every sub-area, the lake and the closure check have succeeded.
"""

import numpy as np
import logging
from collections import OrderedDict
from typing import Dict, List

from pyLSM.forcing.atmos import AtmosForcing
from pyLSM.lake.lake import Lake, LakeColumn
from pyLSM.model.options import check_options
from pyLSM.model.state import TileIndex, DistributedPrecipitation, SaveData
from pyLSM.model.tile import TileSolver, WATER_FLUXES, ENERGY_FLUXES
from pyLSM.soil.soil import SoilColumn
from pyLSM.utils.constants import WET, DRY, STORM_THRES
from pyLSM.utils.errors import ModelError, BalanceError, CellStepError, ConfigurationError, ForcingError
from pyLSM.utils.utilities import weighted_sum
from pyLSM.vegetation.vegetation import build_tiles

logger = logging.getLogger(__name__)

#: outputs resolved by elevation band
BAND_OUTPUTS = ('swe_band', 'snow_coverage_band', 'snow_melt_band', 'surf_temp_band')


class CellModel(object):
    r"""
    Coupled energy and water balance of a grid cell.
    """
    def __init__(self, params: Dict, options: Dict=None, state: Dict=None) -> object:
        r"""
        Args:
            params (dict):
                soil (dict): soil column parameters, see SoilColumn
                vegetation (list): vegetation tiles, see build_tiles
                veg_library (dict): veg_class -> vegetation class parameters
                lake (dict): lake parameters, see LakeColumn; required if
                    option 'lakes' is on
            options (dict): model options, see model.options.DEFAULT_OPTIONS
            state (dict): optional checkpoint from state_fields()
        Returns:
            self (object)
        Raises:
            ConfigurationError: invalid options or parameters
        """
        self.options = check_options(options)
        opts = self.options

        self.soil = SoilColumn(params['soil'], opts)
        self.gridcel = self.soil.gridcel
        self.tiles = build_tiles(params.get('vegetation', []), params.get('veg_library', {}),
                                 self.soil.depth, self.soil.rough, opts['wind_h'])
        if not self.tiles:
            raise ConfigurationError('Cell %s has no vegetation or bare soil tiles' % self.gridcel)
        self.solver = TileSolver(self.soil, opts)
        self.dt = opts['dt']

        self.lake = None
        self.lake_fraction = 0.0
        if opts['lakes']:
            if not params.get('lake'):
                raise ConfigurationError('Option lakes requires lake parameters')
            self.lake = Lake(LakeColumn(params['lake'], opts), opts)
            self.lake_fraction = self.lake.column.lake_fraction

        dists = (WET, DRY) if opts['dist_prcp'] else (WET,)
        indices = []
        for veg in range(len(self.tiles)):
            for band, fract in enumerate(self.soil.AreaFract):
                if fract <= 0.0:
                    continue
                for dist in dists:
                    indices.append(TileIndex(veg, band, dist))

        self.prcp = DistributedPrecipitation(
            indices, lambda ix: self.solver.initial_state(self.tiles[ix.veg]),
            self.lake.initial_state() if self.lake else None)
        self.step_count = 0
        self.save_data = self._storage(self.prcp.items(), self.prcp.lake)
        if state is not None:
            self.load_state_fields(state)

        logger.info('Cell %s: %d vegetation tiles, %d sub-areas, lake fraction %.3f',
                    self.gridcel, len(self.tiles), len(indices), self.lake_fraction)

    # --- weights and storage

    def weight(self, index: TileIndex, mu: float=None) -> float:
        """ Area fraction of sub-area 'index' in the cell [-]. """
        mu = self.prcp.mu if mu is None else mu
        frac = mu if index.dist == WET else 1.0 - mu
        return (self.tiles[index.veg].Cv * self.soil.AreaFract[index.band] * frac
                * (1.0 - self.lake_fraction))

    def _storage(self, items, lake_state, mu: float=None) -> SaveData:
        """ Cell water storages [mm] of sub-area states and lake state. """
        indices, states = [], []
        for ix, st in items:
            indices.append(ix)
            states.append(st)
        w = [self.weight(ix, mu) for ix in indices]
        ff = self.soil.frost_fract

        data = SaveData()
        data.total_soil_moist = weighted_sum([st.cell.total_moisture(ff) for st in states], w)
        data.swe = weighted_sum([1000.0 * (st.snow.swq + st.snow.snow_canopy + st.snow.tmp_int_storage)
                                 for st in states], w)
        data.wdew = weighted_sum([st.veg_var.Wdew for st in states], w)
        data.surfstor = 0.0
        if self.lake is not None and lake_state is not None:
            data.lake = 1000.0 * self.lake.storage(lake_state) / self.lake.column.cell_area
        return data

    def storm_fraction(self, prec: float) -> float:
        """ Wet fraction mu of the cell for step precipitation prec [mm]. """
        if not self.options['dist_prcp']:
            return 1.0
        if prec > STORM_THRES:
            return float(1.0 - np.exp(-self.options['prec_expt'] * prec))
        return 1.0

    def _subarea_forcing(self, forcing: AtmosForcing, mu: float) -> Dict:
        """ Forcing of each band and wet/dry fraction. """
        out = {}
        for band in sorted(set(ix.band for ix in self.prcp.indices)):
            Tfactor = self.soil.Tfactor[band]
            Pfactor = self.soil.Pfactor[band]
            out[(band, WET)] = forcing.adjusted(Tfactor, Pfactor / mu)
            if self.options['dist_prcp']:
                out[(band, DRY)] = forcing.adjusted(Tfactor, 0.0)
        return out

    # --- time step

    def run(self, step: int, forcing: AtmosForcing) -> Dict:
        r"""
        Solves one model time step.

        Args:
            step (int): time step index
            forcing (AtmosForcing): cell forcing of the step
        Returns:
            (dict): output record; water fluxes [mm], energy fluxes [W m-2],
                states and diagnostics 'warnings' and 'failed_tiles'
        Raises:
            CellStepError: a sub-area, the lake or the band forcing failed; no state
                was changed
            BalanceError: water balance error of the cell above the hard limit
        """
        whole = forcing.substep(forcing.index.whole)
        mu = self.storm_fraction(whole['prec'])
        prcp = self.prcp
        if mu != prcp.mu:
            logger.debug('Cell %s: wet fraction %.4f -> %.4f', self.gridcel, prcp.mu, mu)
            prcp = prcp.copy()
            prcp.redistribute(mu)
        try:
            sub_forcing = self._subarea_forcing(forcing, mu)
        except ForcingError as error:
            logger.error('Cell %s step %d: band forcing invalid: %s', self.gridcel, step, error)
            raise CellStepError('Band forcing invalid: %s' % error, cell=self.gridcel, step=step,
                                variable='forcing') from error

        # fan-out: every sub-area on a working copy
        results = OrderedDict()
        working = OrderedDict()
        failed = []
        for ix, st in prcp.items():
            if self.weight(ix, mu) <= 0.0:
                continue
            work = st.copy()
            try:
                results[ix] = self.solver.run(self.tiles[ix.veg], ix.band, work,
                                              sub_forcing[(ix.band, ix.dist)])
            except ModelError as error:
                error.with_context(cell=self.gridcel, step=step, subarea=tuple(ix))
                logger.error('Cell %s step %d: sub-area %s failed: %s', self.gridcel, step, tuple(ix), error)
                failed.append((ix, error))
                continue
            working[ix] = work

        if failed and not self.options['partial_aggregation']:
            ix, error = failed[0]
            raise CellStepError('Sub-area failed: %s' % error.message, cell=self.gridcel, step=step,
                                subarea=tuple(ix), variable=error.variable) from error

        # fan-in: ordered weighted sums of converged sub-areas
        indices = list(results)
        w = [self.weight(ix, mu) for ix in indices]
        out = OrderedDict()
        for key in WATER_FLUXES + ENERGY_FLUXES:
            out[key] = float(weighted_sum([results[ix][key] for ix in indices], w))
        warnings = [msg for ix in indices for msg in results[ix]['warnings']]

        # lake on a working copy
        lake_state = None
        lake_out = None
        if self.lake is not None:
            lake_state = prcp.lake.copy()
            col = self.lake.column
            to_m3 = col.cell_area / 1000.0
            try:
                lake_out = self.lake.run(self.dt, lake_state, whole,
                                         col.rpercent * out['runoff'] * to_m3,
                                         col.bpercent * out['baseflow'] * to_m3)
            except ModelError as error:
                error.with_context(cell=self.gridcel, step=step, subarea='lake')
                raise CellStepError('Lake failed: %s' % error.message, cell=self.gridcel, step=step,
                                    subarea='lake', variable=error.variable) from error
            out['prec'] += lake_out['prec'] / to_m3
            out['evap'] += (lake_out['evap'] + lake_out['sublimation']) / to_m3
            out['runoff'] = (1.0 - col.rpercent) * out['runoff'] + lake_out['outflow'] / to_m3
            out['baseflow'] = (1.0 - col.bpercent) * out['baseflow']

        # water balance closure of the cell
        new_items = [(ix, working.get(ix, st)) for ix, st in prcp.items()]
        storage = self._storage(new_items, lake_state, mu)
        closure = (storage.total() - self.save_data.total()) \
            - (out['prec'] - out['evap'] - out['runoff'] - out['baseflow'])
        self._check_closure(step, closure, new_items, warnings)
        out['water_error'] = closure

        if abs(out['energy_error']) > self.options['balance']['energy_tolerance']:
            msg = 'Cell %s step %d: energy balance error %.4g W m-2' % (self.gridcel, step, out['energy_error'])
            logger.warning(msg)
            warnings.append(msg)

        # commit
        for ix, st in working.items():
            prcp.replace(ix, st)
        if lake_state is not None:
            prcp.lake = lake_state
        self.prcp = prcp
        self.save_data = storage
        self.step_count += 1

        return self._record(forcing, out, results, lake_out, warnings, failed)

    def _check_closure(self, step: int, closure: float, items: List, warnings: List) -> None:
        bal = self.options['balance']
        for ix, st in items:
            for j, layer in enumerate(st.cell.layer):
                if layer.moist < -bal['water_tolerance']:
                    raise BalanceError('Negative soil moisture %.4g mm in layer %d' % (layer.moist, j),
                                       cell=self.gridcel, step=step, subarea=tuple(ix),
                                       variable='soil_moisture')
        if abs(closure) > bal['water_hard_limit']:
            raise BalanceError('Water balance error %.4g mm exceeds hard limit' % closure,
                               cell=self.gridcel, step=step, variable='water_balance')
        if abs(closure) > bal['water_tolerance']:
            msg = 'Cell %s step %d: water balance error %.4g mm' % (self.gridcel, step, closure)
            logger.warning(msg)
            warnings.append(msg)

    # --- output

    def _record(self, forcing: AtmosForcing, out: Dict, results: Dict, lake_out: Dict,
                warnings: List, failed: List) -> Dict:
        """ Output record of the step: fluxes, cell mean states and diagnostics. """
        ff = self.soil.frost_fract
        items = list(self.prcp.items())
        w = [self.weight(ix) for ix, _ in items]
        land = sum(w)
        # cell mean states over the land part
        wn = [x / land for x in w] if land > 0.0 else w

        def mean(fun):
            return weighted_sum([fun(st) for _, st in items], wn)

        record = OrderedDict()
        record['date'] = forcing.date
        record.update(out)
        record['mu'] = self.prcp.mu
        record['swe'] = mean(lambda st: 1000.0 * st.snow.swq)
        record['snow_depth'] = mean(lambda st: st.snow.depth * st.snow.coverage)
        record['snow_coverage'] = mean(lambda st: st.snow.coverage)
        record['snow_canopy'] = mean(lambda st: 1000.0 * st.snow.snow_canopy)
        record['Wdew'] = mean(lambda st: st.veg_var.Wdew)
        record['surf_temp'] = mean(lambda st: st.energy.Tsurf)
        record['rootmoist'] = mean(lambda st: st.cell.rootmoist)
        record['wetness'] = mean(lambda st: st.cell.wetness)
        record['fdepth'] = mean(lambda st: st.energy.fdepth[0] if st.energy.fdepth else 0.0)
        record['tdepth'] = mean(lambda st: st.energy.tdepth[0] if st.energy.tdepth else 0.0)

        record['soil_moist'] = mean(lambda st: np.array([l.moist + l.total_ice(ff) for l in st.cell.layer]))
        record['soil_ice'] = mean(lambda st: np.array([l.total_ice(ff) for l in st.cell.layer]))
        record['soil_temp'] = mean(lambda st: np.array([l.T for l in st.cell.layer]))
        record['node_temp'] = mean(lambda st: st.energy.T)

        nband = len(self.soil.AreaFract)
        band = {key: np.zeros(nband) for key in BAND_OUTPUTS}
        band_w = np.zeros(nband)
        for (ix, st), wi in zip(items, w):
            band_w[ix.band] += wi
            band['swe_band'][ix.band] += wi * 1000.0 * st.snow.swq
            band['snow_coverage_band'][ix.band] += wi * st.snow.coverage
            band['surf_temp_band'][ix.band] += wi * st.energy.Tsurf
            if ix in results:
                band['snow_melt_band'][ix.band] += wi * results[ix]['snow_melt']
        for key in BAND_OUTPUTS:
            record[key] = np.where(band_w > 0.0, band[key] / np.where(band_w > 0.0, band_w, 1.0), np.nan)

        if self.lake is not None:
            s = self.prcp.lake
            to_mm = 1000.0 / self.lake.column.cell_area
            record['lake_depth'] = s.ldepth
            record['lake_area'] = s.sarea
            record['lake_volume'] = s.volume
            record['lake_ice_fraction'] = s.fraci
            record['lake_ice_height'] = s.hice
            record['lake_swe'] = 1000.0 * s.swe
            record['lake_surf_temp'] = s.tp_in
            record['lake_temp'] = s.tempavg
            record['lake_evap'] = (lake_out['evap'] + lake_out['sublimation']) * to_mm
            record['lake_outflow'] = lake_out['outflow'] * to_mm
            record['lake_Rnet'] = lake_out['Rnet']
            record['lake_sensible'] = lake_out['sensible']
            record['lake_latent'] = lake_out['latent']

        record['warnings'] = warnings
        record['failed_tiles'] = [tuple(ix) for ix, _ in failed]
        return record

    # --- checkpoints

    def state_fields(self) -> OrderedDict:
        """ Cell state in stable field order: distributed precipitation and storages. """
        out = OrderedDict()
        out['gridcel'] = self.gridcel
        out['step'] = self.step_count
        out['prcp'] = self.prcp.state_fields()
        out['save_data'] = self.save_data.state_fields()
        return out

    def load_state_fields(self, fields: Dict) -> None:
        """ Restores the cell state from a dict produced by state_fields(). """
        if 'prcp' not in fields:
            raise ConfigurationError('Checkpoint of cell %s has no sub-area states' % self.gridcel)
        self.prcp.load_fields(fields['prcp'])
        self.step_count = int(fields.get('step', 0))
        self.save_data = self._storage(self.prcp.items(), self.prcp.lake)

# EOF
