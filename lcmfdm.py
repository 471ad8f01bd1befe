# -*- coding: utf-8 -*-
"""
Land cover driven fire danger and rate of spread modelling with the McArthur Mk5
Forest and Grassland Fire Danger Meters (Noble et al. 1980).

Land cover codes follow the UKCEH Land Cover Map classes (1-21).
"""
import os
import warnings
from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Union, Optional
import numpy as np
from numpy import ma as mask
from multiprocessing import current_process, Pool
import psutil

import fdi
from fdm_exceptions import (InputShapeError, UndefinedParameterError, AggregateEmptyError,
                            InvalidFuelTypeError)


class FuelType(IntEnum):
    DECIDUOUS = 1
    CONIFER = 2
    ARABLE = 3
    GRASSLAND = 4
    HEATHLAND = 5
    NONVEG = 6


# Fuel Type Numeric-Alphanumeric Code Lookup Table
fuelTypeCode_NumToAlpha_LUT = {
    1: 'Deciduous',
    2: 'Conifer',
    3: 'Arable',
    4: 'Grassland',
    5: 'Heathland',
    6: 'NonVeg'
}

# Fuel Type Alphanumeric-Numeric Code Lookup Table
fuelTypeCode_AlphaToNum_LUT = {
    'Deciduous': 1,
    'Conifer': 2,
    'Arable': 3,
    'Grassland': 4,
    'Heathland': 5,
    'NonVeg': 6
}

# Fuel Type display colours (legend only)
fuelTypeColour_LUT = {
    1: '#1b9e4b',  # Deciduous
    2: '#0b4f2a',  # Conifer
    3: '#f2d16b',  # Arable
    4: '#a6d96a',  # Grassland
    5: '#b05fa3',  # Heathland
    6: '#bdbdbd'  # NonVeg
}

# UKCEH Land Cover Map reclassification rules (low code, high code, fuel type code)
# Rules are closed intervals; the first matching rule is applied
lcmReclassRules = [
    (1, 1, 1),  # Deciduous woodland
    (2, 2, 2),  # Coniferous woodland
    (3, 3, 3),  # Arable
    (4, 7, 4),  # Improved, neutral, calcareous and acid grassland
    (9, 10, 5),  # Heather and heather grassland
    (8, 8, 6),  # Fen, marsh and swamp
    (11, 21, 6)  # Bog, rock, water, coastal, urban and suburban
]

# Fuel types that use grass curing and fuel load (biomass) values
curingFuelTypes = (FuelType.GRASSLAND, FuelType.HEATHLAND)
biomassFuelTypes = (FuelType.DECIDUOUS, FuelType.CONIFER, FuelType.GRASSLAND, FuelType.HEATHLAND)


@dataclass(frozen=True)
class ClimateScenario:
    """
    Immutable bundle of the climate inputs for one model run.
    Use withUpdates() to derive a new scenario for side-by-side comparisons.

    :param temp: air temperature (C)
    :param rh: relative humidity (%, value from 0-100)
    :param ws: wind speed (km/h @ 10m height)
    :param kbdi: Keetch-Byram Drought Index (mm, value from 0-800)
    :param days_rain: days since the last rain event (>= 0)
    :param precip: amount of the last rain event (mm)
    """
    temp: float
    rh: float
    ws: float
    kbdi: float
    days_rain: int
    precip: float

    def __post_init__(self):
        for name in ['temp', 'rh', 'ws', 'kbdi', 'precip']:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float, np.number)):
                raise TypeError(f'{name} must be either int or float data types')
            if not np.isfinite(value):
                raise ValueError(f'{name} must be a finite number, got {value}')
        if isinstance(self.days_rain, bool) or not isinstance(self.days_rain, (int, np.integer)):
            raise TypeError('days_rain must be an int data type')

        # The grass moisture equation is undefined at -6 C and inverts below it
        if self.temp <= -6:
            raise ValueError(f'temp must be greater than -6 C, got {self.temp}')
        if not 0 <= self.rh <= 100:
            raise ValueError(f'rh must be between 0 and 100 %, got {self.rh}')
        if not 0 <= self.kbdi <= 800:
            raise ValueError(f'kbdi must be between 0 and 800, got {self.kbdi}')
        if self.ws < 0:
            raise ValueError(f'ws must be greater than or equal to 0, got {self.ws}')
        if self.days_rain < 0:
            raise ValueError(f'days_rain must be greater than or equal to 0, got {self.days_rain}')
        if self.precip < 0:
            raise ValueError(f'precip must be greater than or equal to 0, got {self.precip}')

    def withUpdates(self, **changes) -> 'ClimateScenario':
        """
        Function to create a new scenario with some values changed. This scenario is not modified.
        :param changes: climate values to change (e.g., kbdi=600)
        :return: new ClimateScenario
        """
        return replace(self, **changes)


def _verifyRules(rules: list) -> None:
    """
    Function to verify a list of reclassification rules.
    :param rules: list of (low code, high code, fuel type code) tuples
    :return: None
    """
    if not isinstance(rules, (list, tuple)) or len(rules) == 0:
        raise TypeError('rules must be a non-empty list or tuple of (low, high, fuel type) tuples')
    for rule in rules:
        if len(rule) != 3:
            raise ValueError(f'Invalid reclassification rule {rule}: expected (low, high, fuel type)')
        low, high, ftype = rule
        if low > high:
            raise ValueError(f'Invalid reclassification rule {rule}: low code is greater than high code')
        if ftype not in fuelTypeCode_NumToAlpha_LUT:
            raise ValueError(f'Invalid reclassification rule {rule}: unknown fuel type code {ftype}')
    return


def _asFuelTypeArray(fuel_type: np.ndarray) -> mask.MaskedArray:
    """
    Function to verify a fuel type raster and convert it to an int8 masked array.
    Fuel type names (e.g., "Grassland") are converted to numeric codes.
    Masked and NaN cells stay masked (stored as 0).
    :param fuel_type: fuel type raster (numeric codes 1-6, or fuel type names)
    :return: masked int8 fuel type array
    """
    if not isinstance(fuel_type, np.ndarray):
        raise TypeError('fuel_type must be a numpy ndarray data type')

    if fuel_type.dtype.kind in ('U', 'S', 'O'):
        missing = mask.getmaskarray(fuel_type).copy()
        names = np.asarray(mask.getdata(fuel_type)).astype(str)
        unknown = set(np.unique(names[~missing])) - set(fuelTypeCode_AlphaToNum_LUT.keys())
        if unknown:
            raise InvalidFuelTypeError(unknown)
        convert_to_numeric = np.vectorize(lambda name: fuelTypeCode_AlphaToNum_LUT.get(name, 0),
                                          otypes=[np.int8])
        codes = convert_to_numeric(names)
        return mask.array(np.where(missing, 0, codes).astype(np.int8), mask=missing)

    fuel_type = mask.array(fuel_type)
    data = fuel_type.filled(0)
    missing = mask.getmaskarray(fuel_type).copy()
    if data.dtype.kind == 'f':
        missing |= np.isnan(data)
        data = np.where(missing, 0, data)

    # Unmasked cells must hold one of the enumerated fuel types
    unknown = ~missing & ~np.isin(data, list(fuelTypeCode_NumToAlpha_LUT.keys()))
    if np.any(unknown):
        raise InvalidFuelTypeError(np.unique(data[unknown]))

    return mask.array(np.where(missing, 0, data).astype(np.int8), mask=missing)


def classifyLandCover(land_cover: np.ndarray,
                      rules: Optional[list] = None,
                      nodata: Optional[Union[int, float]] = None) -> mask.MaskedArray:
    """
    Function to reclassify land cover codes into fuel type codes.
    Each cell receives the fuel type of the first rule whose closed interval contains its code.
    Cells matching no rule, equal to nodata, or masked in the input are masked in the output.

    :param land_cover: land cover code raster (numpy ndarray or masked array)
    :param rules: list of (low code, high code, fuel type code) tuples (default: lcmReclassRules)
    :param nodata: the land cover raster's nodata value
    :return: masked int8 fuel type array, same shape as land_cover
    """
    if rules is None:
        rules = lcmReclassRules
    _verifyRules(rules)

    if not isinstance(land_cover, np.ndarray):
        raise TypeError('land_cover must be a numpy ndarray data type')
    if land_cover.dtype.kind not in ('i', 'u', 'f'):
        raise TypeError(f'land_cover must hold numeric codes, got dtype {land_cover.dtype}')

    land_cover = mask.array(land_cover)
    codes = land_cover.data
    invalid = mask.getmaskarray(land_cover).copy()
    if codes.dtype.kind == 'f':
        invalid |= np.isnan(codes)
    if nodata is not None and not np.isnan(nodata):
        invalid |= codes == nodata

    fuel_type = np.zeros(codes.shape, dtype=np.int8)
    assigned = np.zeros(codes.shape, dtype=bool)
    for low, high, ftype in rules:
        in_rule = ~assigned & ~invalid & (codes >= low) & (codes <= high)
        fuel_type[in_rule] = ftype
        assigned |= in_rule

    return mask.array(fuel_type, mask=~assigned)


def getFuelParameter(table: dict,
                     fuel_type: Union[int, str, FuelType],
                     table_name: Optional[str] = None) -> float:
    """
    Function to get the parameter value of a single fuel type from a parameter table.
    Table keys may be FuelType members, numeric fuel type codes, or fuel type names.

    :param table: dictionary of fuel type: value (None for fuel types without a value)
    :param fuel_type: the fuel type to look up
    :param table_name: name of the table (used in error messages, e.g., "curing")
    :return: the parameter value
    """
    if isinstance(fuel_type, str):
        fuel_type = fuelTypeCode_AlphaToNum_LUT.get(fuel_type, fuel_type)
    try:
        fuel_type = FuelType(fuel_type)
    except ValueError:
        raise InvalidFuelTypeError([fuel_type])

    value = table.get(fuel_type, table.get(fuelTypeCode_NumToAlpha_LUT[fuel_type]))
    if value is None:
        raise UndefinedParameterError(int(fuel_type), table_name)
    if isinstance(value, bool) or not isinstance(value, (int, float, np.number)):
        raise TypeError(f'{table_name or "parameter"} values must be int, float or None, '
                        f'got {type(value).__name__} for fuel type {int(fuel_type)}')
    if np.isnan(value):
        raise UndefinedParameterError(int(fuel_type), table_name)

    return float(value)


def assignParameter(fuel_type: np.ndarray,
                    table: dict,
                    table_name: Optional[str] = None) -> mask.MaskedArray:
    """
    Function to create a parameter raster (e.g., curing or biomass) from a fuel type raster.
    Cells are masked where the fuel type is masked or has no value defined in the table.

    :param fuel_type: fuel type raster (numeric codes 1-6, or fuel type names)
    :param table: dictionary of fuel type: value (None for fuel types without a value)
    :param table_name: name of the table (used in error messages, e.g., "curing")
    :return: masked float64 parameter array, same shape as fuel_type
    """
    if not isinstance(table, dict):
        raise TypeError('table must be a dictionary of fuel type: value')

    fuel_type = _asFuelTypeArray(fuel_type)
    fuel_codes = fuel_type.filled(0)

    param = np.zeros(fuel_type.shape, dtype=np.float64)
    missing = mask.getmaskarray(fuel_type).copy()
    for ftype in FuelType:
        cells = fuel_codes == ftype
        if not np.any(cells):
            continue
        try:
            param[cells] = getFuelParameter(table, ftype, table_name)
        except UndefinedParameterError:
            missing |= cells

    return mask.array(param, mask=missing)


##################################################################################################
# #### CLASS FOR MCARTHUR MK5 FIRE DANGER AND RATE OF SPREAD MODELLING ####
##################################################################################################
class FDM:
    """
    Class to model fire danger and rate of spread over a fuel type raster with the
    McArthur Mk5 Forest and Grassland Fire Danger Meters.
    """

    def __init__(self):
        # Initialize input parameters
        self.fuel_type = None
        self.scenario = None
        self.curing = None
        self.biomass = None
        self.curing_table = None
        self.biomass_table = None
        self.out_request = None
        self.strict_aggregates = False
        self.initialized = False

        # Initialize drought and moisture parameters
        self.df = None
        self.gm = None

        # Initialize fire danger parameters
        self.grass_fdi = None
        self.forest_fdi = None
        self.arable_fdi = None
        self.fdi = None
        self.fdr_class = None

        # Initialize rate of spread parameters
        self.forest_mult = None
        self.grass_ros = None
        self.heath_ros = None
        self.ros = None

    def _toParamArray(self, name: str, value: np.ndarray, ftypes: tuple) -> mask.MaskedArray:
        """
        Function to verify a parameter raster against the fuel type raster.
        Cells of other fuel types, and cells with a masked fuel type, are masked.
        :param name: name of the parameter
        :param value: the parameter raster
        :param ftypes: fuel types that use the parameter
        :return: masked float64 array
        """
        if not isinstance(value, np.ndarray):
            raise TypeError(f'{name} must be a numpy ndarray data type')
        if value.shape != self.fuel_type.shape:
            raise InputShapeError(name, value.shape, self.fuel_type.shape)
        value = mask.array(value, dtype=np.float64)
        data = value.filled(0)
        missing = mask.getmaskarray(value) | np.isnan(data) | ~self._cells(*ftypes)
        return mask.array(np.where(missing, 0, data), mask=missing)

    def _verifyInputs(self) -> None:
        """
        Function to verify the input parameters and convert rasters to masked numpy arrays.
        :return: None
        """
        # Verify fuel_type
        if self.fuel_type is None:
            raise ValueError('Missing required parameters: [\'fuel_type\']')
        self.fuel_type = _asFuelTypeArray(self.fuel_type)

        # Verify scenario
        if isinstance(self.scenario, dict):
            self.scenario = ClimateScenario(**self.scenario)
        elif not isinstance(self.scenario, ClimateScenario):
            raise TypeError('scenario must be a ClimateScenario or a dictionary of climate values')

        # Verify curing
        if self.curing is not None:
            self.curing = self._toParamArray('curing', self.curing, curingFuelTypes)
        elif self.curing_table is not None:
            self.curing = mask.masked_where(~self._cells(*curingFuelTypes),
                                            assignParameter(self.fuel_type, self.curing_table, 'curing'))
        else:
            raise ValueError('Either curing or curing_table must be provided')
        if np.any(((self.curing < 0) | (self.curing > 100)).filled(False)):
            raise ValueError('curing values must be between 0 and 100 %')

        # Verify biomass
        if self.biomass is not None:
            self.biomass = self._toParamArray('biomass', self.biomass, biomassFuelTypes)
        elif self.biomass_table is not None:
            self.biomass = mask.masked_where(~self._cells(*biomassFuelTypes),
                                             assignParameter(self.fuel_type, self.biomass_table, 'biomass'))
        else:
            raise ValueError('Either biomass or biomass_table must be provided')
        if np.any((self.biomass < 0).filled(False)):
            raise ValueError('biomass values must be greater than or equal to 0')

        # Verify out_request
        if not isinstance(self.out_request, (list, tuple, type(None))):
            raise TypeError('out_request must be a list, tuple, or None')

        return

    def initialize(self,
                   fuel_type: np.ndarray = None,
                   scenario: Union[ClimateScenario, dict] = None,
                   curing: Optional[np.ndarray] = None,
                   biomass: Optional[np.ndarray] = None,
                   curing_table: Optional[dict] = None,
                   biomass_table: Optional[dict] = None,
                   out_request: Optional[Union[list, tuple]] = None,
                   strict_aggregates: bool = False) -> None:
        """
        Initialize the FDM object with the provided parameters.
        Curing and biomass are provided either as rasters or as fuel type parameter tables.

        :param fuel_type: fuel type raster (numeric codes 1-6, or fuel type names)
            1: Deciduous woodland (forest meter)
            2: Conifer woodland (forest meter)
            3: Arable (half of the maximum grassland danger)
            4: Grassland (grassland meter)
            5: Heathland (grassland meter)
            6: Non-vegetated (no danger)
        :param scenario: climate scenario (ClimateScenario, or dictionary of its values)
        :param curing: grass curing raster (%, value from 0-100)
        :param biomass: fuel load raster (tonnes/ha)
        :param curing_table: dictionary of fuel type: curing (%), used if curing is None
        :param biomass_table: dictionary of fuel type: fuel load (tonnes/ha), used if biomass is None
        :param out_request: Tuple or list of output variables
            # Default output variables
            fdi = Fire danger index (unitless)
            ros = Rate of spread (km/h)
            fdr_class = Fire danger rating class (1-6)

            # Input variables
            fuel_type = Fuel type codes
            curing = Grass curing (%)
            biomass = Fuel load (tonnes/ha)

            # Fire danger variables
            df = Drought factor
            gm = Grass moisture content (%)
            grass_fdi = Grassland fire danger index
            forest_fdi = Forest fire danger index
            arable_fdi = Arable fire danger index (half of the maximum grassland danger)

            # Rate of spread variables
            forest_mult = Forest rate of spread multiplier
            grass_ros = Grassland derived rate of spread (km/h)
            heath_ros = Heathland derived rate of spread (km/h)
        :param strict_aggregates: raise AggregateEmptyError if a required raster-wide maximum
            has no cells to aggregate, instead of returning masked values
        """
        self.fuel_type = fuel_type
        self.scenario = scenario
        self.curing = curing
        self.biomass = biomass
        self.curing_table = curing_table
        self.biomass_table = biomass_table
        self.out_request = out_request
        self.strict_aggregates = strict_aggregates

        # Verify input parameters
        self._verifyInputs()

        # Reset outputs from any previous run
        self.df = None
        self.gm = None
        self.grass_fdi = None
        self.forest_fdi = None
        self.arable_fdi = None
        self.fdi = None
        self.fdr_class = None
        self.forest_mult = None
        self.grass_ros = None
        self.heath_ros = None
        self.ros = None

        self.initialized = True

        return

    def _cells(self, *ftypes: FuelType) -> np.ndarray:
        """
        Function to get a boolean array of the cells belonging to any of the given fuel types.
        :param ftypes: the fuel types
        :return: boolean numpy array
        """
        return np.isin(self.fuel_type.filled(0), [int(ftype) for ftype in ftypes])

    def _broadcast(self, value) -> mask.MaskedArray:
        """
        Function to broadcast a scalar value (or the masked constant) to the fuel type grid.
        :param value: the scalar value
        :return: masked float64 array
        """
        if value is mask.masked or np.isnan(value):
            return mask.masked_all(self.fuel_type.shape, dtype=np.float64)
        return mask.array(np.full(self.fuel_type.shape, value, dtype=np.float64), mask=False)

    def _subsetMax(self,
                   values: mask.MaskedArray,
                   ftype: FuelType,
                   quantity: str,
                   consumers: tuple) -> Union[float, mask.core.MaskedConstant]:
        """
        Function to get the maximum of the valid cells of one fuel type.
        :param values: the raster to aggregate
        :param ftype: the fuel type to aggregate over
        :param quantity: name of the aggregated quantity (used in error messages)
        :param consumers: fuel types whose cells use the maximum
        :return: the maximum value, or the masked constant if there are no valid cells
        """
        cells = self._cells(ftype) & ~mask.getmaskarray(values)
        if not np.any(cells):
            if self.strict_aggregates and np.any(self._cells(*consumers)):
                raise AggregateEmptyError(int(ftype), quantity)
            return mask.masked
        return float(np.max(mask.getdata(values)[cells]))

    def calcDroughtFactor(self) -> None:
        """
        Function to calculate the drought factor. Raises DomainError for degenerate climate inputs.
        :return: None
        """
        self.df = fdi.droughtFactor(self.scenario.kbdi, self.scenario.days_rain, self.scenario.precip)
        return

    def calcForestFDI(self) -> None:
        """
        Function to calculate the forest fire danger index. This is uniform across the raster.
        :return: None
        """
        self.forest_fdi = fdi.forestFDI(self.df, self.scenario.temp, self.scenario.rh, self.scenario.ws)
        return

    def calcGrassMoisture(self) -> None:
        """
        Function to calculate the grass moisture content. Masked where curing is missing.
        :return: None
        """
        self.gm = fdi.grassMoisture(self.scenario.temp, self.scenario.rh, self.curing)
        return

    def calcGrassFDI(self) -> None:
        """
        Function to calculate the grassland fire danger index. Masked where biomass or grass moisture is missing.
        :return: None
        """
        self.grass_fdi = fdi.grassFDI(self.biomass, self.gm, self.scenario.ws)
        return

    def calcArableFDI(self) -> None:
        """
        Function to calculate the arable fire danger index,
        which is half of the maximum grassland fire danger index in the raster.
        :return: None
        """
        grass_max = self._subsetMax(self.grass_fdi, FuelType.GRASSLAND,
                                    'grassland fire danger index', (FuelType.ARABLE,))
        self.arable_fdi = mask.masked if grass_max is mask.masked else 0.5 * grass_max
        return

    def calcFDI(self) -> None:
        """
        Function to assign the fire danger index of each cell by fuel type.
        Requires the forest, grassland and arable fire danger indices.
        :return: None
        """
        fdi_out = mask.masked_all(self.fuel_type.shape, dtype=np.float64)
        for ftype in FuelType:
            if ftype in (FuelType.DECIDUOUS, FuelType.CONIFER):
                value = self._broadcast(self.forest_fdi)
            elif ftype == FuelType.ARABLE:
                value = self._broadcast(self.arable_fdi)
            elif ftype in (FuelType.GRASSLAND, FuelType.HEATHLAND):
                value = self.grass_fdi
            elif ftype == FuelType.NONVEG:
                value = self._broadcast(0)
            else:
                raise InvalidFuelTypeError([ftype])
            fdi_out = mask.where(self._cells(ftype), value, fdi_out)
        self.fdi = fdi_out
        return

    def calcDangerRating(self) -> None:
        """
        Function to classify the fire danger index into fire danger rating classes.
        :return: None
        """
        self.fdr_class = fdi.dangerRating(self.fdi)
        return

    def calcSpreadMultipliers(self) -> None:
        """
        Function to calculate the raster-wide rate of spread multipliers
        from the maximum fire danger index of the deciduous, grassland and heathland cells.
        :return: None
        """
        decid_max = self._subsetMax(self.fdi, FuelType.DECIDUOUS, 'deciduous fire danger index',
                                    (FuelType.DECIDUOUS, FuelType.CONIFER))
        grass_max = self._subsetMax(self.fdi, FuelType.GRASSLAND, 'grassland fire danger index',
                                    (FuelType.ARABLE, FuelType.HEATHLAND))
        heath_max = self._subsetMax(self.fdi, FuelType.HEATHLAND, 'heathland fire danger index',
                                    (FuelType.GRASSLAND,))

        self.forest_mult = mask.masked if decid_max is mask.masked else decid_max * 0.0012
        self.grass_ros = mask.masked if grass_max is mask.masked else grass_max * 0.13
        self.heath_ros = mask.masked if heath_max is mask.masked else heath_max * 0.13
        return

    def calcROS(self) -> None:
        """
        Function to assign the rate of spread (km/h) of each cell by fuel type.
        Grassland cells take the heathland derived rate of spread, and heathland cells
        the grassland derived rate of spread.
        :return: None
        """
        ros_out = mask.masked_all(self.fuel_type.shape, dtype=np.float64)
        for ftype in FuelType:
            if ftype in (FuelType.DECIDUOUS, FuelType.CONIFER):
                value = self.biomass * self._broadcast(self.forest_mult)
            elif ftype == FuelType.ARABLE:
                value = self._broadcast(self.grass_ros)
            elif ftype == FuelType.GRASSLAND:
                value = self._broadcast(self.heath_ros)
            elif ftype == FuelType.HEATHLAND:
                value = self._broadcast(self.grass_ros)
            elif ftype == FuelType.NONVEG:
                value = self._broadcast(0)
            else:
                raise InvalidFuelTypeError([ftype])
            ros_out = mask.where(self._cells(ftype), value, ros_out)
        self.ros = ros_out
        return

    def getParams(self, out_request: list[str]) -> list[any]:
        """
        Function to output requested dataset parameters from the FDM class.

        :param out_request: List of requested FDM parameters.
        :return: List of requested outputs.
        """
        fdm_params = {
            # Default output variables
            'fdi': self.fdi,  # Fire danger index
            'ros': self.ros,  # Rate of spread (km/h)
            'fdr_class': self.fdr_class,  # Fire danger rating class (1-6)

            # Input variables
            'fuel_type': self.fuel_type,  # Fuel type codes
            'curing': self.curing,  # Grass curing (%)
            'biomass': self.biomass,  # Fuel load (tonnes/ha)

            # Fire danger variables
            'df': self.df,  # Drought factor
            'gm': self.gm,  # Grass moisture content (%)
            'grass_fdi': self.grass_fdi,  # Grassland fire danger index
            'forest_fdi': self.forest_fdi,  # Forest fire danger index
            'arable_fdi': self.arable_fdi,  # Arable fire danger index

            # Rate of spread variables
            'forest_mult': self.forest_mult,  # Forest rate of spread multiplier
            'grass_ros': self.grass_ros,  # Grassland derived rate of spread (km/h)
            'heath_ros': self.heath_ros,  # Heathland derived rate of spread (km/h)
        }

        return [fdm_params[var] if var in fdm_params else 'Invalid output variable'
                for var in out_request]

    def runFDM(self) -> list[any]:
        """
        Function to automatically run the fire danger and rate of spread modelling.
        :returns:
            List of values requested through the out_request parameter. Default values are fdi, ros, and fdr_class.
        """
        if not self.initialized:
            raise ValueError('FDM class must be initialized before running calculations. Call "initialize" first.')

        # Check output requests values
        if self.out_request is None:
            # Set default output requests if none provided
            self.out_request = ['fdi', 'ros', 'fdr_class']

        # ### Fire danger
        # Calculate drought factor (fails before any per-cell calculation)
        self.calcDroughtFactor()
        # Calculate forest fire danger index
        self.calcForestFDI()
        # Calculate grass moisture content
        self.calcGrassMoisture()
        # Calculate grassland fire danger index
        self.calcGrassFDI()
        # Calculate arable fire danger index from the grassland maximum
        self.calcArableFDI()
        # Assign fire danger index by fuel type
        self.calcFDI()
        # Calculate fire danger rating class
        self.calcDangerRating()

        # ### Rate of spread
        # Calculate raster-wide rate of spread multipliers
        self.calcSpreadMultipliers()
        # Assign rate of spread by fuel type
        self.calcROS()

        # Return requested values
        return self.getParams(self.out_request)


def runLandscapeFDM(land_cover: np.ndarray,
                    scenario: Union[ClimateScenario, dict],
                    curing_table: dict,
                    biomass_table: dict,
                    rules: Optional[list] = None,
                    nodata: Optional[Union[int, float]] = None,
                    out_request: Optional[list[str]] = None,
                    strict_aggregates: bool = False) -> list:
    """
    Function to run the full pipeline: land cover reclassification, parameter assignment,
    fire danger and rate of spread modelling.

    :param land_cover: land cover code raster
    :param scenario: climate scenario (ClimateScenario, or dictionary of its values)
    :param curing_table: dictionary of fuel type: curing (%)
    :param biomass_table: dictionary of fuel type: fuel load (tonnes/ha)
    :param rules: land cover reclassification rules (default: lcmReclassRules)
    :param nodata: the land cover raster's nodata value
    :param out_request: list of FDM output variables (default: fdi, ros, fdr_class)
    :param strict_aggregates: raise AggregateEmptyError for empty raster-wide maxima
    :return: list of requested outputs
    """
    fuel_type = classifyLandCover(land_cover, rules=rules, nodata=nodata)

    fdm = FDM()
    fdm.initialize(fuel_type=fuel_type,
                   scenario=scenario,
                   curing_table=curing_table,
                   biomass_table=biomass_table,
                   out_request=out_request,
                   strict_aggregates=strict_aggregates)
    return fdm.runFDM()


def _estimate_optimal_block_size(array_shape, num_processors, memory_fraction=0.8):
    # Total available memory
    available_memory = psutil.virtual_memory().available * memory_fraction

    # Land cover codes, fuel types, curing and biomass are held for each cell
    element_size = np.dtype(np.float64).itemsize * 4

    # Calculate the maximum possible block size based on available memory and the number of processors
    max_block_size = int(np.sqrt(available_memory / (element_size * num_processors)))

    # Ensure block size is practical and does not exceed array dimensions
    block_size = min(max_block_size, array_shape[0], array_shape[1])

    # If block size exceeds a reasonable portion of the array, reduce it further
    while block_size > 1 and block_size > array_shape[0] // 4 and block_size > array_shape[1] // 4:
        block_size //= 2

    return max(block_size, 1)


def _gen_blocks(array: np.ndarray, block_size: int, stride: int) -> tuple:
    blocks = []
    block_positions = []
    rows, cols = array.shape

    for i in range(0, rows, stride):
        for j in range(0, cols, stride):
            # Adjust block size for edge cases
            end_i = min(i + block_size, rows)
            end_j = min(j + block_size, cols)

            blocks.append(array[i:end_i, j:end_j])
            block_positions.append((i, j))  # Save the top-left position of each block

    return blocks, block_positions


def _process_block(block: tuple, position: tuple) -> tuple:
    # Get ID of the multiprocessing Pool Worker
    process_id = current_process().name
    print(f'\t\t[{process_id}] Processing Block at Cell {position}')

    land_cover, rules, nodata, curing_table, biomass_table = block

    fuel_type = classifyLandCover(land_cover, rules=rules, nodata=nodata)
    curing = None if curing_table is None else assignParameter(fuel_type, curing_table, 'curing')
    biomass = None if biomass_table is None else assignParameter(fuel_type, biomass_table, 'biomass')

    return (fuel_type, curing, biomass), position


def classifyMultiprocessArray(land_cover: np.ndarray,
                              rules: Optional[list] = None,
                              nodata: Optional[Union[int, float]] = None,
                              curing_table: Optional[dict] = None,
                              biomass_table: Optional[dict] = None,
                              num_processors: int = 2,
                              block_size: int = None) -> list:
    """
    Function breaks a land cover array into blocks and classifies each block with a different worker/processor.
    Curing and biomass rasters are assigned within the same blocks if their tables are provided.
    Only the per-cell operations are run in parallel; run FDM on the returned grids.

    :param land_cover: 2-D land cover code raster
    :param rules: land cover reclassification rules (default: lcmReclassRules)
    :param nodata: the land cover raster's nodata value
    :param curing_table: dictionary of fuel type: curing (%)
    :param biomass_table: dictionary of fuel type: fuel load (tonnes/ha)
    :param num_processors: Number of cores for multiprocessing
    :param block_size: Size of blocks (# raster cells) for multiprocessing.
        If block_size is None, an optimal block size will be estimated automatically.
    :return: list of [fuel_type, curing, biomass] masked arrays (curing/biomass are None if no table is provided)
    """
    if not isinstance(land_cover, np.ndarray):
        raise TypeError('land_cover must be a numpy ndarray data type')
    if land_cover.ndim != 2:
        raise ValueError(f'land_cover must be a 2-D array, but has {land_cover.ndim} dimensions')
    if rules is None:
        rules = lcmReclassRules
    _verifyRules(rules)

    # Verify num_processors is greater than 1
    if num_processors < 2:
        warnings.warn('Multiprocessing requires at least two cores. '
                      'Defaulting num_processors to 2 for this run', UserWarning)
        num_processors = 2

    # Verify block size
    if block_size is None:
        block_size = _estimate_optimal_block_size(array_shape=land_cover.shape,
                                                  num_processors=num_processors)
    elif block_size < 1:
        raise ValueError('block_size must be greater than 0')

    # Split the input array into blocks and track their positions
    blocks, block_positions = _gen_blocks(array=mask.array(land_cover), block_size=block_size, stride=block_size)
    input_blocks = [((block, rules, nodata, curing_table, biomass_table), position)
                    for block, position in zip(blocks, block_positions)]

    fuel_type = mask.masked_all(land_cover.shape, dtype=np.int8)
    curing = None if curing_table is None else mask.masked_all(land_cover.shape, dtype=np.float64)
    biomass = None if biomass_table is None else mask.masked_all(land_cover.shape, dtype=np.float64)

    # Initialize a multiprocessing pool
    with Pool(num_processors) as pool:
        try:
            print('\tStarting land cover classification multiprocessing...')
            results = pool.starmap(_process_block, input_blocks)
        finally:
            pool.close()  # Stop accepting new tasks
            pool.join()  # Wait for all tasks to finish

    # Place the processed blocks back into the output arrays
    for (ft_block, curing_block, biomass_block), (i, j) in results:
        rows, cols = ft_block.shape
        fuel_type[i:i + rows, j:j + cols] = ft_block
        if curing is not None:
            curing[i:i + rows, j:j + cols] = curing_block
        if biomass is not None:
            biomass[i:i + rows, j:j + cols] = biomass_block

    return [fuel_type, curing, biomass]


def _testFDM(test_functions: list,
             temp: Union[float, int],
             rh: Union[float, int],
             ws: Union[float, int],
             kbdi: Union[float, int],
             days_rain: int,
             precip: Union[float, int],
             curing_table: dict,
             biomass_table: dict,
             out_request: Optional[list[str]] = None,
             land_cover_path: Optional[str] = None,
             out_folder: Optional[str] = None,
             num_processors: int = 2,
             block_size: Optional[int] = None) -> None:
    """
    Function to test the lcmfdm module with various input types
    :param test_functions: List of functions to test
        (options: ['numeric', 'array', 'raster', 'raster_multiprocessing', 'all'])
    :param temp: air temperature (C)
    :param rh: relative humidity (%)
    :param ws: wind speed (km/h @ 10m height)
    :param kbdi: Keetch-Byram Drought Index
    :param days_rain: days since the last rain event
    :param precip: amount of the last rain event (mm)
    :param curing_table: dictionary of fuel type: curing (%)
    :param biomass_table: dictionary of fuel type: fuel load (tonnes/ha)
    :param out_request: list of FDM output variables
    :param land_cover_path: path to a land cover raster (required for the raster tests)
    :param out_folder: Location to save test rasters (Default: <location of script>/Test_Data/Outputs)
    :param num_processors: Number of cores for multiprocessing
    :param block_size: Size of blocks (# raster cells) for multiprocessing
    :return: None
    """
    import lcm_rasters as lr

    fdm = FDM()
    scenario = ClimateScenario(temp=temp, rh=rh, ws=ws, kbdi=kbdi, days_rain=days_rain, precip=precip)

    # One cell of every land cover class, plus one nodata cell
    land_cover_codes = np.array([list(range(1, 12)), list(range(12, 22)) + [-9999]], dtype=np.int16)

    # ### Test non-raster modelling
    if any(var in test_functions for var in ['numeric', 'all']):
        print('Testing single land cover code modelling')
        for code in range(1, 22):
            result = runLandscapeFDM(np.array([code]), scenario, curing_table, biomass_table,
                                     out_request=out_request)
            print(f'\tLCM {code}', [val.tolist() if isinstance(val, np.ndarray) else val for val in result])

    # ### Test array modelling
    if any(var in test_functions for var in ['array', 'all']):
        print('Testing array modelling')
        fuel_type = classifyLandCover(land_cover_codes, nodata=-9999)
        fdm.initialize(fuel_type=fuel_type, scenario=scenario,
                       curing_table=curing_table, biomass_table=biomass_table,
                       out_request=out_request)
        print('\t', fdm.runFDM())

    if not any(var in test_functions for var in ['raster', 'raster_multiprocessing', 'all']):
        return

    if land_cover_path is None:
        raise ValueError('land_cover_path is required for the raster tests')
    if out_folder is None:
        output_folder = os.path.join(os.path.dirname(__file__), 'Test_Data', 'Outputs')
    else:
        output_folder = out_folder
    os.makedirs(output_folder, exist_ok=True)

    land_cover, ref_ras_profile = lr.getLandCoverRaster(land_cover_path)
    raster_out_request = ['fuel_type', 'fdi', 'ros', 'fdr_class']

    # ### Test raster modelling
    if any(var in test_functions for var in ['raster', 'all']):
        print('Testing raster modelling')
        fdm_result = runLandscapeFDM(land_cover, scenario, curing_table, biomass_table,
                                     out_request=raster_out_request)

        for dset, name in zip(fdm_result, raster_out_request):
            dtype = np.int8 if name in ['fuel_type', 'fdr_class'] else np.float64
            lr.arrayToRaster(array=dset,
                             out_file=os.path.join(output_folder, name + '.tif'),
                             ras_profile=ref_ras_profile,
                             dtype=dtype)

    # ### Test raster multiprocessing
    if any(var in test_functions for var in ['raster_multiprocessing', 'all']):
        print('Testing raster multiprocessing')
        os.makedirs(os.path.join(output_folder, 'Multiprocessing'), exist_ok=True)

        fuel_type, curing, biomass = classifyMultiprocessArray(
            land_cover,
            curing_table=curing_table,
            biomass_table=biomass_table,
            num_processors=num_processors,
            block_size=block_size
        )
        fdm.initialize(fuel_type=fuel_type, scenario=scenario, curing=curing, biomass=biomass,
                       out_request=raster_out_request)
        fdm_multiprocess_result = fdm.runFDM()

        for dset, name in zip(fdm_multiprocess_result, raster_out_request):
            dtype = np.int8 if name in ['fuel_type', 'fdr_class'] else np.float64
            lr.arrayToRaster(array=dset,
                             out_file=os.path.join(output_folder, 'Multiprocessing', name + '.tif'),
                             ras_profile=ref_ras_profile,
                             dtype=dtype)


if __name__ == '__main__':
    # _test_functions options: ['all', 'numeric', 'array', 'raster', 'raster_multiprocessing']
    _test_functions = ['numeric', 'array']
    _temp = 20
    _rh = 50
    _ws = 10
    _kbdi = 400
    _days_rain = 1
    _precip = 10
    # Grassland values from the reference table; other fuel types are example values
    _curing_table = {
        FuelType.DECIDUOUS: None,
        FuelType.CONIFER: None,
        FuelType.ARABLE: None,
        FuelType.GRASSLAND: 29.1,
        FuelType.HEATHLAND: 50,
        FuelType.NONVEG: None
    }
    _biomass_table = {
        FuelType.DECIDUOUS: 10,
        FuelType.CONIFER: 15,
        FuelType.ARABLE: None,
        FuelType.GRASSLAND: 0.716,
        FuelType.HEATHLAND: 2.5,
        FuelType.NONVEG: None
    }
    _out_request = ['fuel_type', 'df', 'fdi', 'ros', 'fdr_class']
    _land_cover_path = None
    _out_folder = None
    _num_processors = 4
    _block_size = None

    # Test the FDM functions
    _testFDM(test_functions=_test_functions,
             temp=_temp, rh=_rh, ws=_ws,
             kbdi=_kbdi, days_rain=_days_rain, precip=_precip,
             curing_table=_curing_table,
             biomass_table=_biomass_table,
             out_request=_out_request,
             land_cover_path=_land_cover_path,
             out_folder=_out_folder,
             num_processors=_num_processors,
             block_size=_block_size)
