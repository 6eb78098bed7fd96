# -*- coding: utf-8 -*-
"""
.. module: model.state
    :synopsis: pyLSM state variables
.. moduleauthor:: pyLSM developers

Mutable state of soil layers, thermal nodes, snow pack, canopy storage and
lake of a grid cell. Each state class declares its fields in a stable order
(FIELDS) so that checkpoints can be written and read field by field.

Sub-area states are kept in a flat container indexed (veg, band, dist), where
dist is 0 for the wet and 1 for the dry fraction of distributed precipitation.
"""

import copy
import numpy as np
from collections import OrderedDict, namedtuple
from typing import Dict, List

from pyLSM.utils.constants import WET, DRY

#: explicit sub-area index
TileIndex = namedtuple('TileIndex', ['veg', 'band', 'dist'])


def _export(value):
    if isinstance(value, StateRecord):
        return value.state_fields()
    if isinstance(value, list):
        return [_export(v) for v in value]
    if isinstance(value, np.ndarray):
        return value.copy()
    return value


class StateRecord(object):
    """ Base of state classes with a stable field order. """
    FIELDS = ()

    def state_fields(self) -> OrderedDict:
        """ Fields and values in stable order; nested states as nested dicts. """
        return OrderedDict((f, _export(getattr(self, f))) for f in self.FIELDS)

    def load_fields(self, fields: Dict) -> None:
        """ Sets fields from a dict produced by state_fields(). """
        for f in self.FIELDS:
            if f not in fields:
                continue
            current = getattr(self, f)
            value = fields[f]
            if isinstance(current, StateRecord):
                current.load_fields(value)
            elif isinstance(current, list) and current and isinstance(current[0], StateRecord):
                for item, item_fields in zip(current, value):
                    item.load_fields(item_fields)
            elif isinstance(current, np.ndarray):
                setattr(self, f, np.array(value, dtype=current.dtype))
            else:
                setattr(self, f, value)

    def copy(self):
        return copy.deepcopy(self)

    def __repr__(self):
        return '%s(%s)' % (self.__class__.__name__,
                           ', '.join('%s=%r' % (f, getattr(self, f)) for f in self.FIELDS[:3]))


def merge_records(a: StateRecord, b: StateRecord, wa: float, wb: float) -> StateRecord:
    """
    Area-weighted merge of two states of the same class. Numeric fields are
    averaged with weights wa and wb (wa + wb = 1), flags are combined with 'or'.

    Returns:
        new record (a and b are not modified)
    """
    out = a.copy()
    for f in a.FIELDS:
        va, vb = getattr(a, f), getattr(b, f)
        if isinstance(va, StateRecord):
            setattr(out, f, merge_records(va, vb, wa, wb))
        elif isinstance(va, list) and va and isinstance(va[0], StateRecord):
            setattr(out, f, [merge_records(x, y, wa, wb) for x, y in zip(va, vb)])
        elif isinstance(va, (bool, np.bool_)):
            setattr(out, f, bool(va or vb))
        elif isinstance(va, (int, np.integer)) and not isinstance(va, bool):
            setattr(out, f, max(va, vb))
        elif isinstance(va, (float, np.floating, np.ndarray)):
            setattr(out, f, wa * va + wb * vb)
    return out


class LayerState(StateRecord):
    """ Soil moisture layer. moist is liquid water [mm]; ice per frost subarea [mm]. """
    FIELDS = ('T', 'moist', 'ice', 'Cs', 'kappa', 'evap')

    def __init__(self, moist: float=0.0, T: float=0.0, n_frost: int=1):
        self.T = float(T)
        self.moist = float(moist)
        self.ice = np.zeros(n_frost)
        self.Cs = 0.0
        self.kappa = 0.0
        self.evap = 0.0

    def total_ice(self, frost_fract: np.ndarray) -> float:
        return float(np.dot(frost_fract, self.ice))


class CellData(StateRecord):
    """ Soil moisture state and water fluxes of a sub-area. """
    FIELDS = ('aero_resist', 'aero_resist_used', 'baseflow', 'inflow', 'runoff',
              'rootmoist', 'wetness', 'layer')

    def __init__(self, layers: List[LayerState]):
        self.aero_resist = np.zeros(3)
        self.aero_resist_used = 0.0
        self.baseflow = 0.0
        self.inflow = 0.0
        self.runoff = 0.0
        self.rootmoist = 0.0
        self.wetness = 0.0
        self.layer = layers

    def total_moisture(self, frost_fract: np.ndarray) -> float:
        """ Liquid and frozen soil water [mm]. """
        return float(sum(l.moist + l.total_ice(frost_fract) for l in self.layer))


class EnergyState(StateRecord):
    """ Surface energy balance terms and soil thermal node state. """
    FIELDS = ('T', 'ice', 'moist', 'Cs_node', 'kappa_node', 'T1_index', 'frozen',
              'Tsurf', 'Tcanopy', 'Tfoliage', 'ecanopy',
              'NetShortAtmos', 'NetLongAtmos', 'Rnet', 'sensible', 'latent', 'latent_sub',
              'grnd_flux', 'deltaH', 'fusion', 'deltaCC', 'snow_flux', 'advection',
              'refreeze_energy', 'melt_energy', 'canopy_sensible', 'canopy_latent',
              'fdepth', 'tdepth', 'Nfrost', 'Nthaw', 'error')

    def __init__(self, Nnode: int, T1_index: int=1):
        self.T = np.zeros(Nnode)
        self.ice = np.zeros(Nnode)
        self.moist = np.zeros(Nnode)
        self.Cs_node = np.zeros(Nnode)
        self.kappa_node = np.zeros(Nnode)
        self.T1_index = T1_index
        self.frozen = False
        self.Tsurf = 0.0
        self.Tcanopy = 0.0
        self.Tfoliage = 0.0
        self.ecanopy = 0.0
        self.NetShortAtmos = 0.0
        self.NetLongAtmos = 0.0
        self.Rnet = 0.0
        self.sensible = 0.0
        self.latent = 0.0
        self.latent_sub = 0.0
        self.grnd_flux = 0.0
        self.deltaH = 0.0
        self.fusion = 0.0
        self.deltaCC = 0.0
        self.snow_flux = 0.0
        self.advection = 0.0
        self.refreeze_energy = 0.0
        self.melt_energy = 0.0
        self.canopy_sensible = 0.0
        self.canopy_latent = 0.0
        self.fdepth = []
        self.tdepth = []
        self.Nfrost = 0
        self.Nthaw = 0
        self.error = 0.0


class SnowState(StateRecord):
    """ Snow pack and intercepted snow. Water equivalents in m. """
    FIELDS = ('snow', 'MELTING', 'swq', 'surf_water', 'pack_water', 'surf_temp', 'pack_temp',
              'coldcontent', 'density', 'depth', 'albedo', 'canopy_albedo', 'last_snow',
              'coverage', 'max_swq', 'swq_slope', 'store_swq', 'store_coverage', 'store_snow',
              'snow_canopy', 'tmp_int_storage', 'melt', 'vapor_flux', 'canopy_vapor_flux',
              'surface_flux', 'blowing_flux', 'mass_error', 'Qnet')

    def __init__(self):
        self.snow = False
        self.MELTING = False
        self.swq = 0.0
        self.surf_water = 0.0
        self.pack_water = 0.0
        self.surf_temp = 0.0
        self.pack_temp = 0.0
        self.coldcontent = 0.0
        self.density = 0.0
        self.depth = 0.0
        self.albedo = 0.0
        self.canopy_albedo = 0.0
        self.last_snow = 0
        self.coverage = 0.0
        self.max_swq = 0.0
        self.swq_slope = 0.0
        self.store_swq = 0.0
        self.store_coverage = 0.0
        self.store_snow = False
        self.snow_canopy = 0.0
        self.tmp_int_storage = 0.0
        self.melt = 0.0
        self.vapor_flux = 0.0
        self.canopy_vapor_flux = 0.0
        self.surface_flux = 0.0
        self.blowing_flux = 0.0
        self.mass_error = 0.0
        self.Qnet = 0.0


class VegVarState(StateRecord):
    """ Canopy water storage [mm] and fluxes [mm per step]. """
    FIELDS = ('canopyevap', 'throughfall', 'Wdew')

    def __init__(self, Wdew: float=0.0):
        self.canopyevap = 0.0
        self.throughfall = 0.0
        self.Wdew = float(Wdew)


class TileState(StateRecord):
    """ Complete state of one sub-area (veg, band, dist). """
    FIELDS = ('cell', 'energy', 'snow', 'veg_var')

    def __init__(self, cell: CellData, energy: EnergyState, snow: SnowState, veg_var: VegVarState):
        self.cell = cell
        self.energy = energy
        self.snow = snow
        self.veg_var = veg_var

    def water_storage(self, frost_fract: np.ndarray) -> float:
        """ Soil, snow and canopy water of the sub-area [mm]. """
        return (self.cell.total_moisture(frost_fract)
                + 1000.0 * (self.snow.swq + self.snow.snow_canopy + self.snow.tmp_int_storage)
                + self.veg_var.Wdew)


class LakeState(StateRecord):
    """ Lake water volume, ice and temperature profile. """
    FIELDS = ('volume', 'ldepth', 'sarea', 'activenod', 'dz', 'surfdz', 'temp', 'density',
              'surface', 'tempi', 'hice', 'fraci', 'swe', 'sdepth', 'snowmlt', 'evapw',
              'runoff_in', 'baseflow_in', 'runoff_out', 'aero_resist', 'mixmax', 'tp_in',
              'tempavg', 'energy_error')

    def __init__(self, Nlakenode: int):
        self.volume = 0.0
        self.ldepth = 0.0
        self.sarea = 0.0
        self.activenod = Nlakenode
        self.dz = 0.0
        self.surfdz = 0.0
        self.temp = np.zeros(Nlakenode)
        self.density = np.zeros(Nlakenode)
        self.surface = np.zeros(Nlakenode + 1)
        self.tempi = 0.0
        self.hice = 0.0
        self.fraci = 0.0
        self.swe = 0.0
        self.sdepth = 0.0
        self.snowmlt = 0.0
        self.evapw = 0.0
        self.runoff_in = 0.0
        self.baseflow_in = 0.0
        self.runoff_out = 0.0
        self.aero_resist = 0.0
        self.mixmax = 0
        self.tp_in = 0.0
        self.tempavg = 0.0
        self.energy_error = 0.0


class SaveData(StateRecord):
    """ Cell water storages [mm] used in the water balance closure check. """
    FIELDS = ('total_soil_moist', 'surfstor', 'swe', 'wdew', 'lake')

    def __init__(self):
        self.total_soil_moist = 0.0
        self.surfstor = 0.0
        self.swe = 0.0
        self.wdew = 0.0
        self.lake = 0.0

    def total(self) -> float:
        return self.total_soil_moist + self.surfstor + self.swe + self.wdew + self.lake


class DistributedPrecipitation(StateRecord):
    r"""
    Flat owned container of sub-area states of a grid cell.

    Sub-areas are indexed explicitly (veg, band, dist) in the order
    vegetation tile -> elevation band -> wet/dry fraction.
    """
    FIELDS = ('mu', 'tiles', 'lake')

    def __init__(self, indices: List[TileIndex], factory, lake: LakeState=None):
        """
        Args:
            indices (list): TileIndex of each sub-area in iteration order
            factory (callable): factory(index) -> TileState
            lake (LakeState): optional lake state
        """
        self.mu = 1.0
        self.indices = list(indices)
        self.tiles = [factory(ix) for ix in self.indices]
        self._position = {ix: n for n, ix in enumerate(self.indices)}
        self.lake = lake

    def tile(self, veg: int, band: int, dist: int=WET) -> TileState:
        return self.tiles[self._position[TileIndex(veg, band, dist)]]

    def items(self):
        return zip(self.indices, self.tiles)

    def replace(self, index: TileIndex, state: TileState) -> None:
        self.tiles[self._position[index]] = state

    def state_fields(self) -> OrderedDict:
        out = OrderedDict()
        out['mu'] = self.mu
        out['tiles'] = OrderedDict(('%d,%d,%d' % tuple(ix), t.state_fields()) for ix, t in self.items())
        out['lake'] = self.lake.state_fields() if self.lake is not None else None
        return out

    def load_fields(self, fields: Dict) -> None:
        self.mu = float(fields['mu'])
        for ix, t in self.items():
            key = '%d,%d,%d' % tuple(ix)
            if key in fields['tiles']:
                t.load_fields(fields['tiles'][key])
        if self.lake is not None and fields.get('lake') is not None:
            self.lake.load_fields(fields['lake'])

    def redistribute(self, mu_new: float) -> None:
        r"""
        Merges wet and dry sub-area states area-weighted with the old wet
        fraction mu and assigns the merged state to both, conserving water.
        The new wet fraction is then mu_new.
        """
        mu_old = self.mu
        for ix, wet in list(self.items()):
            if ix.dist != WET:
                continue
            dry_ix = TileIndex(ix.veg, ix.band, DRY)
            if dry_ix not in self._position:
                continue
            dry = self.tiles[self._position[dry_ix]]
            merged = merge_records(wet, dry, mu_old, 1.0 - mu_old)
            self.replace(ix, merged)
            self.replace(dry_ix, merged.copy())
        self.mu = mu_new

# EOF
