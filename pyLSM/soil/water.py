# -*- coding: utf-8 -*-
"""
.. module: soil.water
    :synopsis: pyLSM soil component
.. moduleauthor:: pyLSM developers

Soil moisture and ice partition of a layered soil column: infiltration and
surface runoff, gravity drainage between layers, baseflow, evapotranspiration
withdrawals and the liquid/ice partition of frozen soil.

Layer moisture (LayerState.moist) is liquid water [mm]; ice [mm] is stored per
frost subarea and area-weighted with frost_fract.

References:
    Liang, X., Lettenmaier, D.P., Wood, E.F. and Burges, S.J., 1994. A simple
    hydrologically based model of land surface water and energy fluxes for
    general circulation models. J. Geophys. Res., 99(D7), pp.14415-14428.

    Todini, E., 1996. The ARNO rainfall-runoff model. J. Hydrol., 175, pp.339-382.

    Nijssen, B. et al., 2001. Predicting the discharge of global rivers.
    J. Climate, 14, pp.3307-3323.
"""

import numpy as np
import logging
from typing import Dict, List

from pyLSM.soil.soil import SoilColumn
from pyLSM.soil.thermal import maximum_unfrozen_water
from pyLSM.model.state import LayerState
from pyLSM.utils.constants import SEC_PER_DAY, SMALL

logger = logging.getLogger(__name__)

#: [s], maximum length of drainage sub-step
DRAINAGE_STEP = 3600.0


class SoilWater(object):
    r"""
    Moisture and ice partition of a soil column.
    """
    def __init__(self, soil: SoilColumn, options: Dict) -> object:
        """
        Args:
            soil (SoilColumn): static soil parameters
            options (dict): resolved model options
        Returns:
            self (object)
        """
        self.soil = soil
        self.frozen_soil = options['frozen_soil']
        self.n_frost = options['frost_subareas']

    # --- ice partition

    def update_ice(self, layers: List[LayerState]) -> None:
        """
        Repartitions total layer water into liquid and ice per frost subarea from
        layer temperatures. Total water of each layer is conserved.

        Args:
            layers (list): LayerState, modified in place
        """
        s = self.soil
        for j, layer in enumerate(layers):
            total = layer.moist + layer.total_ice(s.frost_fract)
            if not self.frozen_soil:
                layer.ice = np.zeros(self.n_frost)
                layer.moist = total
                continue
            T = layer.T + s.frost_offset
            maxliq = maximum_unfrozen_water(T, s.max_moist[j], s.bubble[j], s.expt[j])
            ice = np.maximum(total - maxliq, 0.0)
            layer.ice = ice
            layer.moist = total - float(np.dot(s.frost_fract, ice))

    # --- infiltration

    def surface_runoff(self, inflow: float, layers: List[LayerState]) -> float:
        r"""
        Surface runoff from the variable infiltration capacity curve of the upper
        soil layers (all but the bottom layer).

        Args:
            inflow (float): rain, throughfall and snow melt reaching the soil [mm]
            layers (list): LayerState
        Returns:
            runoff (float): [mm]
        """
        if inflow <= 0.0:
            return 0.0

        s = self.soil
        b = s.b_infilt
        top_max = 0.0
        top_moist = 0.0
        for j, layer in enumerate(layers[:-1]):
            top_max += s.max_moist[j] - layer.total_ice(s.frost_fract)
            top_moist += layer.moist
        top_moist = min(top_moist, top_max)

        if top_max <= SMALL:
            return inflow

        max_infil = (1.0 + b) * top_max
        ex = 1.0 / (1.0 + b)
        i_0 = max_infil * (1.0 - (1.0 - top_moist / top_max)**ex)

        if i_0 + inflow >= max_infil:
            runoff = inflow - top_max + top_moist
        else:
            basis = 1.0 - (i_0 + inflow) / max_infil
            runoff = inflow - top_max + top_moist + top_max * basis**(1.0 + b)

        return float(min(max(runoff, 0.0), inflow))

    # --- drainage and baseflow

    def liquid_saturation(self, j: int, layer: LayerState) -> np.ndarray:
        """ Relative liquid saturation above residual per frost subarea [-]. """
        s = self.soil
        total = layer.moist + layer.total_ice(s.frost_fract)
        liq = total - layer.ice
        return np.clip((liq - s.resid_moist[j]) / (s.max_moist[j] - s.resid_moist[j]), 0.0, 1.0)

    def drainage(self, j: int, layer: LayerState, dt: float) -> float:
        """
        Brooks-Corey gravity drainage out of layer j over dt [mm].
        """
        s = self.soil
        rate = s.Ksat[j] / SEC_PER_DAY * self.liquid_saturation(j, layer)**s.expt[j]
        return float(np.dot(s.frost_fract, rate)) * dt

    def baseflow(self, layer: LayerState, dt: float) -> float:
        r"""
        ARNO baseflow out of the bottom layer over dt [mm].
        """
        s = self.soil
        j = len(s.depth) - 1
        max_moist = s.max_moist[j]
        Dsmax = s.Dsmax * dt / SEC_PER_DAY

        total = layer.moist + layer.total_ice(s.frost_fract)
        liq = np.maximum(total - layer.ice, 0.0)

        base = Dsmax * s.Ds / s.Ws * liq / max_moist
        threshold = s.Ws * max_moist
        excess = np.maximum(liq - threshold, 0.0) / (max_moist - threshold)
        base = base + np.where(liq > threshold, Dsmax * (1.0 - s.Ds / s.Ws) * excess**s.c, 0.0)
        return float(np.dot(s.frost_fract, base))

    # --- step

    def run(self, dt: float, layers: List[LayerState], inflow: float, evap: np.ndarray) -> Dict:
        r"""
        Soil water balance of one sub-area over dt.

        Args:
            dt (float): time step [s]
            layers (list): LayerState, modified in place
            inflow (float): water reaching the soil surface [mm]
            evap (array): requested evaporation/transpiration per layer [mm];
                negative values are condensation
        Returns:
            (dict):
                runoff (float): surface runoff [mm]
                baseflow (float): [mm]
                infiltration (float): [mm]
                evap (array): actual evaporation per layer [mm]
                drainage (array): drainage out of each layer [mm]
                water_closure (float): storage change - inputs + outputs [mm]
        """
        s = self.soil
        N = len(layers)
        ff = s.frost_fract
        storage0 = sum(l.moist + l.total_ice(ff) for l in layers)

        # evaporation withdrawals, limited to liquid water above residual
        evap = np.asarray(evap, dtype=float)
        actual = np.zeros(N)
        for j, layer in enumerate(layers):
            if evap[j] >= 0.0:
                actual[j] = min(evap[j], max(layer.moist - s.resid_moist[j], 0.0))
            else:
                actual[j] = evap[j]
            layer.moist -= actual[j]
            layer.evap = actual[j]

        # surface runoff and infiltration into the top layer
        runoff = self.surface_runoff(inflow, layers)
        infiltration = inflow - runoff
        layers[0].moist += infiltration
        baseflow = self._push_excess(layers)

        # drainage and baseflow in sub-steps
        nsub = max(1, int(np.ceil(dt / DRAINAGE_STEP)))
        dts = dt / nsub
        drained = np.zeros(N)
        for _ in range(nsub):
            for j in range(N - 1):
                upper, lower = layers[j], layers[j + 1]
                q = self.drainage(j, upper, dts)
                q = min(q, max(upper.moist - s.resid_moist[j], 0.0))
                space = s.max_moist[j + 1] - lower.moist - lower.total_ice(ff)
                q = max(min(q, space), 0.0)
                upper.moist -= q
                lower.moist += q
                drained[j] += q

            bottom = layers[-1]
            q = self.baseflow(bottom, dts)
            q = max(min(q, bottom.moist - s.resid_moist[-1]), 0.0)
            bottom.moist -= q
            drained[-1] += q
            baseflow += q

        baseflow += self._push_excess(layers)

        storage1 = sum(l.moist + l.total_ice(ff) for l in layers)
        water_closure = (storage1 - storage0) - (inflow - runoff - baseflow - float(np.sum(actual)))

        return {'runoff': runoff, 'baseflow': baseflow, 'infiltration': infiltration,
                'evap': actual, 'drainage': drained, 'water_closure': water_closure}

    def _push_excess(self, layers: List[LayerState]) -> float:
        """
        Moves water exceeding layer capacity downwards. Returns the excess of the
        bottom layer [mm].
        """
        s = self.soil
        ff = s.frost_fract
        for j in range(len(layers)):
            excess = layers[j].moist + layers[j].total_ice(ff) - s.max_moist[j]
            if excess > 0.0:
                layers[j].moist -= excess
                if j < len(layers) - 1:
                    layers[j + 1].moist += excess
                else:
                    return excess
        return 0.0

    # --- diagnostics

    def root_moisture(self, layers: List[LayerState], root: np.ndarray) -> float:
        """ Liquid moisture of layers containing roots [mm]. """
        return float(sum(l.moist for l, r in zip(layers, root) if r > 0.0))

    def wetness(self, layers: List[LayerState]) -> float:
        """ Mean relative moisture between wilting point and saturation [-]. """
        s = self.soil
        w = [(l.moist - s.Wpwp[j]) / (s.max_moist[j] - s.Wpwp[j]) for j, l in enumerate(layers)]
        return float(np.mean(w))

# EOF
