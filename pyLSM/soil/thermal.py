# -*- coding: utf-8 -*-
"""
.. module: soil.thermal
    :synopsis: pyLSM soil component
.. moduleauthor:: pyLSM developers

Soil thermal node profile: node geometry, thermal properties, heat conduction
with phase change and the quick ground heat flux approximation.

The profile has node 0 at the soil surface, node 1 (T1_index) at the bottom of
the top soil layer and the remaining nodes evenly spaced to the damping depth.

References:
    Cherkauer, K.A. and Lettenmaier, D.P., 1999. Hydrologic effects of frozen soils
    in the upper Mississippi River basin. J. Geophys. Res., 104(D16), pp.19599-19610.

    Liang, X., Wood, E.F. and Lettenmaier, D.P., 1999. Modeling ground heat flux in
    land surface parameterization schemes. J. Geophys. Res., 104(D8), pp.9581-9600.

    Johansen, O., 1975. Thermal conductivity of soils. PhD thesis, Trondheim.
"""

import numpy as np
import logging
from typing import Dict, List, Tuple

from pyLSM.energybalance.rootfind import Brackets, root_brent
from pyLSM.utils.utilities import tridiag as thomas, interval_overlap
from pyLSM.utils.errors import ConvergenceError
from pyLSM.utils.constants import CV_SOLIDS, CV_WATER, CV_ICE, K_ICE, K_WATER, \
    LATENT_HEAT_FUSION, WATER_DENSITY, GRAVITY, SMALL

logger = logging.getLogger(__name__)

#: [K], triple point of water used in the freezing point depression
T_TRIPLE = 273.16
#: [-], implicitness of the conduction scheme (Crank-Nicolson)
THETA = 0.5


def node_geometry(depth: np.ndarray, dp: float, Nnode: int) -> Dict:
    """
    Thermal node depths and finite difference distances.

    Args:
        depth (array): soil layer thicknesses [m]
        dp (float): soil thermal damping depth [m]
        Nnode (int): number of nodes [-]
    Returns:
        (dict):
            Z (array): node depths [m]
            dz_node (array): node control volume thicknesses [m]
            alpha, beta, gamma (array): distances across, above and below interior nodes [m]
            bounds (array): upper and lower bound of node control volumes [m]
            T1_index (int): index of the node at the bottom of the top layer
    """
    Zmax = max(dp, float(np.sum(depth)))
    Z = np.zeros(Nnode)
    Z[1:] = np.linspace(depth[0], Zmax, Nnode - 1)

    bounds = np.zeros((Nnode, 2))
    bounds[1:, 0] = 0.5 * (Z[:-1] + Z[1:])
    bounds[:-1, 1] = 0.5 * (Z[:-1] + Z[1:])
    bounds[-1, 1] = Z[-1]
    dz_node = bounds[:, 1] - bounds[:, 0]

    beta = Z[1:-1] - Z[:-2]
    gamma = Z[2:] - Z[1:-1]
    alpha = beta + gamma

    return {'Z': Z, 'dz_node': dz_node, 'bounds': bounds,
            'alpha': alpha, 'beta': beta, 'gamma': gamma, 'T1_index': 1}


def layer_node_fractions(depth: np.ndarray, bounds: np.ndarray) -> np.ndarray:
    """
    Fraction of each soil layer covered by each node control volume.

    Args:
        depth (array): layer thicknesses [m]
        bounds (array): node control volume bounds [m], shape (Nnode, 2)
    Returns:
        fract (array): shape (Nlayer, Nnode), rows sum to 1
    """
    top = np.concatenate(([0.0], np.cumsum(depth)[:-1]))
    fract = np.zeros((len(depth), len(bounds)))
    for j in range(len(depth)):
        for k in range(len(bounds)):
            fract[j, k] = interval_overlap(top[j], top[j] + depth[j], bounds[k, 0], bounds[k, 1]) / depth[j]
    return fract


def maximum_unfrozen_water(T: np.ndarray, max_moist: np.ndarray, bubble: np.ndarray,
                           expt: np.ndarray) -> np.ndarray:
    """
    Maximum liquid water content below freezing point from freezing point
    depression of the Brooks-Corey retention curve.

    Args:
        T (float|array): temperature [degC]
        max_moist (float|array): maximum moisture content (any unit)
        bubble (float|array): bubbling pressure [cm]
        expt (float|array): Brooks-Corey drainage exponent [-], > 3
    Returns:
        maxliq (float|array): in units of max_moist
    """
    T = np.asarray(T, dtype=float)
    Tneg = np.minimum(T, -SMALL)
    x = 2.0 / (np.asarray(expt) - 3.0)
    ratio = (LATENT_HEAT_FUSION * (-Tneg) / T_TRIPLE) / (GRAVITY * np.asarray(bubble) / 100.0)
    maxliq = np.asarray(max_moist) * np.power(ratio, -x)
    return np.where(T < 0.0, np.minimum(maxliq, max_moist), max_moist)


def frozen_water(T: np.ndarray, W: np.ndarray, max_moist: np.ndarray, bubble: np.ndarray,
                 expt: np.ndarray) -> Tuple:
    """
    Partitions total water into liquid and ice.

    Args:
        T (array): temperature [degC]
        W (array): total water content (liquid + ice)
        max_moist, bubble, expt: see maximum_unfrozen_water
    Returns:
        liq (array): liquid water
        ice (array): ice
        dice_dT (array): derivative of ice content with respect to T [K-1]
    """
    T = np.asarray(T, dtype=float)
    maxliq = maximum_unfrozen_water(T, max_moist, bubble, expt)
    ice = np.maximum(W - maxliq, 0.0)
    liq = W - ice
    x = 2.0 / (np.asarray(expt) - 3.0)
    dmaxliq = np.where(T < -SMALL, x * maxliq / np.maximum(-T, SMALL), 0.0)
    dice_dT = np.where(ice > 0.0, -dmaxliq, 0.0)
    return liq, ice, dice_dT


def volumetric_heat_capacity(porosity: np.ndarray, liq: np.ndarray, ice: np.ndarray) -> np.ndarray:
    """
    Bulk soil heat capacity [J m-3 K-1] from volumetric liquid and ice content [m3 m-3].
    """
    return CV_SOLIDS * (1.0 - porosity) + CV_WATER * liq + CV_ICE * ice


def thermal_conductivity(porosity: np.ndarray, liq: np.ndarray, ice: np.ndarray,
                         quartz: np.ndarray, bulk_density: np.ndarray) -> np.ndarray:
    """
    Soil thermal conductivity by the Johansen method.

    Args:
        porosity (array): [m3 m-3]
        liq (array): volumetric liquid water content [m3 m-3]
        ice (array): volumetric ice content [m3 m-3]
        quartz (array): quartz fraction of solids [-]
        bulk_density (array): [kg m-3]
    Returns:
        kappa (array): [W m-1 K-1]
    """
    porosity, liq, ice = np.asarray(porosity), np.asarray(liq), np.asarray(ice)
    quartz, bulk_density = np.asarray(quartz), np.asarray(bulk_density)

    Kdry = (0.135 * bulk_density + 64.7) / (2700.0 - 0.947 * bulk_density)
    Ks = np.power(7.7, quartz) * np.power(np.where(quartz > 0.2, 2.0, 3.0), 1.0 - quartz)

    Sr = np.clip((liq + ice) / porosity, SMALL, 1.0)
    frozen = ice > 0.0

    Ksat_unfrozen = np.power(Ks, 1.0 - porosity) * np.power(K_WATER, porosity)
    Ksat_frozen = np.power(Ks, 1.0 - porosity) * np.power(K_ICE, np.maximum(porosity - liq, 0.0)) \
        * np.power(K_WATER, liq)
    Ke_unfrozen = np.maximum(0.7 * np.log10(Sr) + 1.0, 0.0)

    Ksat = np.where(frozen, Ksat_frozen, Ksat_unfrozen)
    Ke = np.where(frozen, Sr, Ke_unfrozen)

    return (Ksat - Kdry) * Ke + Kdry


def find_fronts(Z: np.ndarray, T: np.ndarray) -> Tuple[List, List]:
    """
    Depths of freezing and thawing fronts in a node temperature profile.

    A freezing front is a transition from frozen (T < 0) above to unfrozen below,
    a thawing front the opposite. Front depth is linearly interpolated.

    Returns:
        fdepth (list): freezing front depths [m]
        tdepth (list): thawing front depths [m]
    """
    fdepth, tdepth = [], []
    for k in range(len(Z) - 1):
        if (T[k] < 0.0) != (T[k + 1] < 0.0):
            z0 = Z[k] + (Z[k + 1] - Z[k]) * T[k] / (T[k] - T[k + 1])
            if T[k] < 0.0:
                fdepth.append(float(z0))
            else:
                tdepth.append(float(z0))
    return fdepth, tdepth


class ThermalNodes(object):
    r"""
    Soil thermal node profile of a grid cell.
    """
    def __init__(self, soil: Dict, options: Dict) -> object:
        """
        Args:
            soil (dict):
                depth (array): layer thicknesses [m]
                dp (float): damping depth [m]
                avg_temp (float): average annual soil temperature, lower boundary [degC]
                porosity, quartz, bulk_density, bubble, expt (array): per layer
            options (dict): resolved model options
                Nnode (int), noflux (bool), frozen_soil (bool),
                thermal_solver (dict), root_solver (dict)
        Returns:
            self (object)
        """
        depth = np.asarray(soil['depth'], dtype=float)
        self.depth = depth
        self.avg_temp = soil['avg_temp']

        geom = node_geometry(depth, soil['dp'], options['Nnode'])
        self.Z = geom['Z']
        self.dz_node = geom['dz_node']
        self.bounds = geom['bounds']
        self.alpha = geom['alpha']
        self.beta = geom['beta']
        self.gamma = geom['gamma']
        self.T1_index = geom['T1_index']
        self.Nnode = len(self.Z)

        self.layer_node_fract = layer_node_fractions(depth, self.bounds)

        # soil properties at nodes from the layer containing the node
        bottoms = np.cumsum(depth)
        self.node_layer = np.minimum(np.searchsorted(bottoms, self.Z - SMALL), len(depth) - 1)
        self.porosity = np.asarray(soil['porosity'], dtype=float)[self.node_layer]
        self.quartz = np.asarray(soil['quartz'], dtype=float)[self.node_layer]
        self.bulk_density = np.asarray(soil['bulk_density'], dtype=float)[self.node_layer]
        self.bubble_node = np.asarray(soil['bubble'], dtype=float)[self.node_layer]
        self.expt_node = np.asarray(soil['expt'], dtype=float)[self.node_layer]
        self.max_moist_node = self.porosity.copy()

        # lower boundary: 'fixed' temperature at damping depth or 'noflux'
        self.lower_boundary = 'noflux' if options['noflux'] else 'fixed'
        self.frozen_soil = options['frozen_soil']

        self.tolerance = options['thermal_solver']['tolerance']
        self.ice_tolerance = options['thermal_solver']['ice_tolerance']
        self.max_iter = options['thermal_solver']['max_iter']

        root = options['root_solver']
        self.brackets = Brackets(root['brackets'], widening=root['widening'])
        self.xtol = root['xtol']
        self.root_max_iter = root['max_iter']

    # --- mapping between layers and nodes

    def interpolate_node_temperatures(self, layer_T: np.ndarray, surface_T: float=None) -> np.ndarray:
        """
        Node temperatures interpolated linearly through layer mid-depth temperatures,
        surface temperature and bottom boundary temperature.

        Args:
            layer_T (array): layer temperatures [degC]
            surface_T (float): surface temperature [degC]; top layer temperature if None
        Returns:
            T (array): node temperatures [degC]
        """
        layer_T = np.asarray(layer_T, dtype=float)
        top = np.concatenate(([0.0], np.cumsum(self.depth)[:-1]))
        mid = top + 0.5 * self.depth

        if surface_T is None:
            surface_T = layer_T[0]
        if self.lower_boundary == 'noflux':
            bottom_T = layer_T[-1]
        else:
            bottom_T = self.avg_temp

        xp = np.concatenate(([0.0], mid, [max(self.Z[-1], mid[-1] + SMALL)]))
        fp = np.concatenate(([surface_T], layer_T, [bottom_T]))
        return np.interp(self.Z, xp, fp)

    def layer_temperatures(self, node_T: np.ndarray) -> np.ndarray:
        """ Layer temperatures [degC] as node control volume weighted means. """
        return self.layer_node_fract @ np.asarray(node_T)

    def layer_ice(self, node_ice: np.ndarray) -> np.ndarray:
        """ Layer ice content [mm] from volumetric node ice content [m3 m-3]. """
        return (self.layer_node_fract @ np.asarray(node_ice)) * self.depth * 1000.0

    def node_moisture(self, layer_water: np.ndarray) -> np.ndarray:
        """
        Volumetric total water content at nodes [m3 m-3] from layer total water [mm].
        """
        vol = np.asarray(layer_water, dtype=float) / (self.depth * 1000.0)
        return vol[self.node_layer]

    def node_properties(self, T: np.ndarray, W: np.ndarray) -> Dict:
        """
        Liquid, ice, heat capacity and conductivity at nodes.

        Args:
            T (array): node temperatures [degC]
            W (array): total volumetric water content [m3 m-3]
        Returns:
            (dict): liq, ice, dice_dT, Cs [J m-3 K-1], kappa [W m-1 K-1]
        """
        if self.frozen_soil:
            liq, ice, dice = frozen_water(T, W, self.max_moist_node, self.bubble_node, self.expt_node)
        else:
            liq, ice, dice = np.asarray(W, dtype=float), np.zeros(self.Nnode), np.zeros(self.Nnode)

        return {'liq': liq, 'ice': ice, 'dice_dT': dice,
                'Cs': volumetric_heat_capacity(self.porosity, liq, ice),
                'kappa': thermal_conductivity(self.porosity, liq, ice, self.quartz, self.bulk_density)}

    # --- heat conduction

    def diffuse(self, dt: float, T_old: np.ndarray, W: np.ndarray, upper_boundary: Dict) -> Dict:
        r"""
        Solves soil heat conduction over dt with Crank-Nicolson finite differences.
        Phase change enters as apparent heat capacity and is resolved by Picard
        iteration when frozen soil is active.

        Args:
            dt (float): time step [s]
            T_old (array): node temperatures at start of step [degC]
            W (array): total volumetric water content at nodes [m3 m-3]
            upper_boundary (dict):
                type (str): 'temperature' or 'flux'
                value (float): surface temperature [degC] or heat flux into soil [W m-2]
        Returns:
            (dict):
                T (array): node temperatures [degC]
                ice, liq (array): [m3 m-3]
                Cs (array): [J m-3 K-1]
                kappa (array): [W m-1 K-1]
                ground_flux (float): heat flux into soil at surface [W m-2]
                bottom_flux (float): heat flux out of the profile bottom [W m-2]
                deltaH (float): rate of sensible heat storage change [W m-2]
                fusion (float): rate of latent heat storage change [W m-2]
                iterations (int)
        Raises:
            ConvergenceError: phase change iteration does not converge
        """
        N = self.Nnode
        T_old = np.asarray(T_old, dtype=float)
        dz = self.dz_node
        dZ = np.diff(self.Z)

        old = self.node_properties(T_old, W)
        Cs = old['Cs']
        kappa = old['kappa']
        ice_old = old['ice']
        # conductance between nodes [W m-2 K-1]
        g = 0.5 * (kappa[:-1] + kappa[1:]) / dZ

        top_fixed = upper_boundary['type'] == 'temperature'
        bottom_fixed = self.lower_boundary == 'fixed'

        T_iter = T_old.copy()
        if top_fixed:
            T_iter[0] = upper_boundary['value']
        ice_iter = ice_old.copy()
        dice = old['dice_dT']

        # explicit part of conduction [W m-2] into each node
        div_old = np.zeros(N)
        flux_old = g * (T_old[:-1] - T_old[1:])
        div_old[:-1] -= flux_old
        div_old[1:] += flux_old

        converged = False
        iterNo = 0
        while iterNo < self.max_iter:
            iterNo += 1

            A = -WATER_DENSITY * LATENT_HEAT_FUSION * dice if self.frozen_soil else np.zeros(N)

            a = np.zeros(N)
            b = np.zeros(N)
            c = np.zeros(N)
            d = np.zeros(N)

            r = dt / dz
            g_up = np.concatenate(([0.0], g))
            g_dn = np.concatenate((g, [0.0]))

            a[:] = -THETA * r * g_up
            c[:] = -THETA * r * g_dn
            b[:] = Cs + A + THETA * r * (g_up + g_dn)
            d[:] = Cs * T_old + A * T_iter \
                + WATER_DENSITY * LATENT_HEAT_FUSION * (ice_iter - ice_old) \
                + (1.0 - THETA) * r * div_old

            if top_fixed:
                a[0], b[0], c[0], d[0] = 0.0, 1.0, 0.0, upper_boundary['value']
            else:
                d[0] += r[0] * upper_boundary['value']

            if bottom_fixed:
                a[-1], b[-1], c[-1], d[-1] = 0.0, 1.0, 0.0, self.avg_temp

            T_new = thomas(a, b, c, d)

            if np.any(~np.isfinite(T_new)):
                raise ConvergenceError('Soil temperature solution blew up', variable='soil_temperature')

            if not self.frozen_soil:
                T_iter = T_new
                converged = True
                break

            props = self.node_properties(T_new, W)
            err1 = np.max(np.abs(T_new - T_iter))
            err2 = np.max(np.abs(props['ice'] - ice_iter))
            T_iter = T_new
            ice_iter = props['ice']
            dice = props['dice_dT']

            if err1 < self.tolerance and err2 < self.ice_tolerance:
                converged = True
                break

        if not converged:
            raise ConvergenceError('Soil heat conduction did not converge in %d iterations (err_T: %.2e)'
                                   % (self.max_iter, err1), variable='soil_temperature')

        T = T_iter
        new = self.node_properties(T, W)

        # storage changes [W m-2]
        sens = dz * Cs * (T - T_old) / dt
        lat = -dz * WATER_DENSITY * LATENT_HEAT_FUSION * (new['ice'] - ice_old) / dt
        flux_new = g * (T[:-1] - T[1:])
        interface = THETA * flux_new + (1.0 - THETA) * flux_old

        if bottom_fixed:
            bottom_flux = interface[-1]
            sens[-1] = 0.0
            lat[-1] = 0.0
        else:
            bottom_flux = 0.0

        deltaH = float(np.sum(sens))
        fusion = float(np.sum(lat))

        if top_fixed:
            ground_flux = deltaH + fusion + bottom_flux
        else:
            ground_flux = float(upper_boundary['value'])

        return {'T': T, 'ice': new['ice'], 'liq': new['liq'], 'Cs': new['Cs'],
                'kappa': new['kappa'], 'ground_flux': ground_flux, 'bottom_flux': bottom_flux,
                'deltaH': deltaH, 'fusion': fusion, 'iterations': iterNo}

    def quick_flux(self, dt: float, Ts: float, T_old: np.ndarray, W: np.ndarray) -> Dict:
        r"""
        Ground heat flux approximation of Liang et al. (1999): the soil between the
        surface and T1_index is one heat store exchanging heat with the surface and
        with the bottom boundary. Node temperatures below T1_index are interpolated.

        With frozen soil the temperature of the store is root-found since its ice
        content depends on it.

        Args:
            dt (float): time step [s]
            Ts (float): surface temperature [degC]
            T_old (array): node temperatures at start of step [degC]
            W (array): total volumetric water content at nodes [m3 m-3]
        Returns:
            (dict): as diffuse()
        """
        k1 = self.T1_index
        D1 = self.Z[k1]
        T_old = np.asarray(T_old, dtype=float)

        old = self.node_properties(T_old, W)
        C1 = old['Cs'][k1]
        a = 0.5 * (old['kappa'][0] + old['kappa'][k1]) / D1
        if self.lower_boundary == 'fixed':
            Tdeep = self.avg_temp
            b = old['kappa'][k1] / (self.Z[-1] - D1)
        else:
            Tdeep = T_old[k1]
            b = 0.0

        T1_old = T_old[k1]
        store = C1 * D1 / dt
        T1 = (store * T1_old + a * Ts + b * Tdeep) / (store + a + b)

        ice1_old = old['ice'][k1]
        iterations = 0
        if self.frozen_soil:
            def _residual(T1):
                _, ice1, _ = frozen_water(T1, W[k1], self.max_moist_node[k1],
                                          self.bubble_node[k1], self.expt_node[k1])
                return (store * (T1 - T1_old)
                        - WATER_DENSITY * LATENT_HEAT_FUSION * D1 * (float(ice1) - ice1_old) / dt
                        - a * (Ts - T1) + b * (T1 - Tdeep))

            lo, hi = self.brackets.around('soil', T1)
            T1, iterations = root_brent(_residual, lo, hi, xtol=self.xtol, max_iter=self.root_max_iter,
                                        widening=self.brackets.widening, variable='soil_temperature')

        T = np.empty(self.Nnode)
        T[0] = Ts
        T[k1:] = np.interp(self.Z[k1:], [D1, self.Z[-1]], [T1, Tdeep if b > 0.0 else T1])
        new = self.node_properties(T, W)

        ground_flux = a * (Ts - T1)
        bottom_flux = b * (T1 - Tdeep)
        deltaH = store * (T1 - T1_old)
        fusion = -WATER_DENSITY * LATENT_HEAT_FUSION * D1 * (new['ice'][k1] - ice1_old) / dt

        return {'T': T, 'ice': new['ice'], 'liq': new['liq'], 'Cs': new['Cs'],
                'kappa': new['kappa'], 'ground_flux': float(ground_flux),
                'bottom_flux': float(bottom_flux), 'deltaH': float(deltaH),
                'fusion': float(fusion), 'iterations': iterations}

# EOF
