#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
.. module: pyLSM.utils.constants
    :synopsis: constants used in pyLSM
.. moduleauthor:: pyLSM developers

"""

import numpy as np

#: machine epsilon
EPS = np.finfo(float).eps

#: [s m-1], resistance of a completely closed surface
HUGE_RESIST = 1.0e20
#: [-], small number used to test for zero
SMALL = 1.0e-12
#: [m3 m-3], default residual moisture content of soil
RESID_MOIST = 0.0
#: [m], minimum soil layer thickness
MINSOILDEPTH = 0.001
#: [mm], precipitation amount that starts a new storm
STORM_THRES = 0.001

#: [K], zero degrees celsius in Kelvin
DEG_TO_KELVIN = 273.15
#: [degC km-1], temperature lapse rate
T_LAPSE = 6.5
#: [-], von Karman constant
VON_KARMAN = 0.40
#: [W m-2 K-4], Stefan-Boltzmann constant
STEFAN_BOLTZMANN = 5.6696e-8
#: [m s-2], standard gravity
GRAVITY = 9.81
#: [-], ratio of molecular weights of water vapour and dry air
MOLECULAR_WEIGHT_RATIO = 0.62196351
#: [J kg-1 K-1], specific heat capacity of moist air at constant pressure
SPECIFIC_HEAT_AIR = 1010.0

#: [kg m-3], water density
WATER_DENSITY = 1.0e3
#: [kg m-3], ice density
ICE_DENSITY = 917.0
#: [J kg-1], latent heat of fusion
LATENT_HEAT_FUSION = 3.337e5
#: [J m-3 K-1], volumetric heat capacity of ice
CV_ICE = 2100.0e3
#: [J m-3 K-1], volumetric heat capacity of water
CV_WATER = 4186.8e3
#: [J m-3 K-1], volumetric heat capacity of soil solids
CV_SOLIDS = 2.0e6
#: [W m-1 K-1 (kg m-3)-2], snow thermal conductivity coefficient, k = K_SNOW * rho**2
K_SNOW = 2.9302e-6
#: [W m-1 K-1], thermal conductivity of ice
K_ICE = 2.2
#: [W m-1 K-1], thermal conductivity of liquid water
K_WATER = 0.57

#: [kPa], saturation vapour pressure parameters (Tetens form)
A_SVP = 0.61078
#: [-]
B_SVP = 17.269
#: [degC]
C_SVP = 237.3

#: [-], albedo of bare soil
BARE_SOIL_ALBEDO = 0.2
#: [m], maximum snow water equivalent of the snow surface layer
MAX_SURFACE_SWE = 0.125
#: [-], liquid water holding capacity of snow (fraction of swq)
LIQUID_WATER_CAPACITY = 0.035
#: [kg m-3], density of new snow at -15 degC or colder
NEW_SNOW_DENSITY = 50.0
#: [kg m-3], maximum density of a settled snow pack
MAX_SNOW_DENSITY = 550.0
#: [-], albedo of fresh snow
NEW_SNOW_ALBEDO = 0.85
#: [m], ice thickness at which lake ice covers the whole lake surface
FRACMIN_ICE_HEIGHT = 0.1
#: [kg m-3], density of snow on lake ice
LAKE_SNOW_DENSITY = 250.0

#: [degC], default half-width of snow surface temperature bracket
SNOW_DT = 5.0
#: [degC], default half-width of ground surface temperature bracket
SURF_DT = 1.0
#: [degC], default half-width of soil temperature bracket
SOIL_DT = 0.25
#: [degC], default half-width of canopy air temperature bracket
CANOPY_DT = 1.0
#: [Pa], default half-width of canopy vapour pressure bracket
CANOPY_VP = 25.0

#: baseflow formulations
ARNO = 'ARNO'
NIJSSEN2001 = 'NIJSSEN2001'

#: index of wet and dry fraction of a tile
WET = 0
DRY = 1

#: [s], seconds in day
SEC_PER_DAY = 86400.0

# EOF
