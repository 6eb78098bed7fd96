# -*- coding: utf-8 -*-
"""
.. module: pyLSM.parameters.outputs
    :synopsis: pyLSM output variables and logger configuration
.. moduleauthor:: pyLSM developers

Output variables written to the results file and the logging configuration
used by the driver.
"""

output_variables = {'variables': [
    # variable name, description [units], (dimensions)

    # water balance of the cell
    ['prec', 'precipitation [mm]', ('date', 'cell')],
    ['rain', 'rainfall [mm]', ('date', 'cell')],
    ['snowfall', 'snowfall [mm]', ('date', 'cell')],
    ['evap', 'total evaporation incl. sublimation [mm]', ('date', 'cell')],
    ['evap_canopy', 'evaporation of intercepted rain [mm]', ('date', 'cell')],
    ['transp', 'transpiration [mm]', ('date', 'cell')],
    ['evap_bare', 'bare soil evaporation [mm]', ('date', 'cell')],
    ['sub_snow', 'sublimation of ground snow [mm]', ('date', 'cell')],
    ['sub_canopy', 'sublimation of intercepted snow [mm]', ('date', 'cell')],
    ['sub_blowing', 'sublimation of blowing snow [mm]', ('date', 'cell')],
    ['runoff', 'surface runoff leaving the cell [mm]', ('date', 'cell')],
    ['baseflow', 'baseflow leaving the cell [mm]', ('date', 'cell')],
    ['inflow', 'water reaching the soil surface [mm]', ('date', 'cell')],
    ['snow_melt', 'snow melt [mm]', ('date', 'cell')],
    ['refreeze', 'refreezing of liquid water in snow [mm]', ('date', 'cell')],
    ['water_error', 'water balance closure of the cell [mm]', ('date', 'cell')],

    # energy balance of the land part
    ['net_short', 'net shortwave radiation [W m-2]', ('date', 'cell')],
    ['net_long', 'net longwave radiation [W m-2]', ('date', 'cell')],
    ['Rnet', 'net radiation [W m-2]', ('date', 'cell')],
    ['sensible', 'sensible heat flux [W m-2]', ('date', 'cell')],
    ['latent', 'latent heat flux [W m-2]', ('date', 'cell')],
    ['latent_sub', 'latent heat flux of sublimation [W m-2]', ('date', 'cell')],
    ['grnd_flux', 'ground heat flux [W m-2]', ('date', 'cell')],
    ['snow_flux', 'heat flux through snow pack [W m-2]', ('date', 'cell')],
    ['deltaH', 'soil heat storage change [W m-2]', ('date', 'cell')],
    ['fusion', 'soil latent heat of fusion [W m-2]', ('date', 'cell')],
    ['deltaCC', 'snow pack cold content change [W m-2]', ('date', 'cell')],
    ['advection', 'heat advected by precipitation on snow [W m-2]', ('date', 'cell')],
    ['refreeze_energy', 'energy of refreezing in snow pack [W m-2]', ('date', 'cell')],
    ['melt_energy', 'energy used for snow melt [W m-2]', ('date', 'cell')],
    ['energy_error', 'surface energy balance closure [W m-2]', ('date', 'cell')],

    # states
    ['mu', 'wet fraction of distributed precipitation [-]', ('date', 'cell')],
    ['swe', 'snow water equivalent [mm]', ('date', 'cell')],
    ['snow_depth', 'snow depth [m]', ('date', 'cell')],
    ['snow_coverage', 'snow covered fraction [-]', ('date', 'cell')],
    ['snow_canopy', 'intercepted snow [mm]', ('date', 'cell')],
    ['Wdew', 'intercepted rain [mm]', ('date', 'cell')],
    ['surf_temp', 'surface temperature [degC]', ('date', 'cell')],
    ['rootmoist', 'root zone soil moisture [mm]', ('date', 'cell')],
    ['wetness', 'soil wetness [-]', ('date', 'cell')],
    ['fdepth', 'depth of uppermost freezing front [m]', ('date', 'cell')],
    ['tdepth', 'depth of uppermost thawing front [m]', ('date', 'cell')],
    ['soil_moist', 'soil moisture incl. ice [mm]', ('date', 'cell', 'layer')],
    ['soil_ice', 'soil ice [mm]', ('date', 'cell', 'layer')],
    ['soil_temp', 'soil layer temperature [degC]', ('date', 'cell', 'layer')],
    ['node_temp', 'soil thermal node temperature [degC]', ('date', 'cell', 'node')],
    ['swe_band', 'snow water equivalent of elevation band [mm]', ('date', 'cell', 'band')],
    ['snow_coverage_band', 'snow covered fraction of elevation band [-]', ('date', 'cell', 'band')],
    ['snow_melt_band', 'snow melt of elevation band [mm]', ('date', 'cell', 'band')],
    ['surf_temp_band', 'surface temperature of elevation band [degC]', ('date', 'cell', 'band')],

    # lake
    ['lake_depth', 'lake depth [m]', ('date', 'cell')],
    ['lake_area', 'lake surface area [m2]', ('date', 'cell')],
    ['lake_volume', 'lake volume incl. ice [m3]', ('date', 'cell')],
    ['lake_ice_fraction', 'ice covered fraction of lake [-]', ('date', 'cell')],
    ['lake_ice_height', 'lake ice thickness [m]', ('date', 'cell')],
    ['lake_swe', 'snow water equivalent on lake ice [mm]', ('date', 'cell')],
    ['lake_surf_temp', 'lake surface temperature [degC]', ('date', 'cell')],
    ['lake_temp', 'mean lake water temperature [degC]', ('date', 'cell')],
    ['lake_evap', 'lake evaporation and sublimation over the cell [mm]', ('date', 'cell')],
    ['lake_outflow', 'lake outflow over the cell [mm]', ('date', 'cell')],
    ['lake_Rnet', 'lake net radiation [W m-2]', ('date', 'cell')],
    ['lake_sensible', 'lake sensible heat flux [W m-2]', ('date', 'cell')],
    ['lake_latent', 'lake latent heat flux [W m-2]', ('date', 'cell')],
    ]}

logging_configuration = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'default': {'format': '%(asctime)s %(levelname)s %(name)s %(message)s'},
        'model': {'format': '%(levelname)s %(name)s %(funcName)s %(message)s'},
        },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'model',
            'level': 'INFO'
            },
        'file': {
            'class': 'logging.FileHandler',
            'level': 'WARNING',
            'formatter': 'model',
            'filename': 'pyLSM.log',
            'mode': 'w',  # a == append, w == overwrite
            },
        },
    'loggers': {
        'pyLSM': {
            'handlers': ['file', 'console'],
            'level': 'INFO',
            'propagate': True,
            },
        },
    }

# EOF
