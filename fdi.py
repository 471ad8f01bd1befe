# -*- coding: utf-8 -*-
"""
McArthur Mk5 fire danger index functions.

Closed-form Forest and Grassland Fire Danger Meter equations per Noble et al. (1980).
Each function accepts int, float, or numpy ndarray inputs (including masked arrays).
Scalar inputs return a float, array inputs return a masked array with missing cells masked.
"""
import numpy as np
from typing import Union

from fdm_exceptions import DomainError

# Fire danger rating classes (class code: (label, lower FDI bound, upper FDI bound))
fdrClass_LUT = {
    1: ('Low-Moderate', 0, 12),
    2: ('High', 12, 25),
    3: ('Very High', 25, 50),
    4: ('Severe', 50, 75),
    5: ('Extreme', 75, 100),
    6: ('Catastrophic', 100, np.inf)
}


def _toMasked(name: str, value: Union[int, float, np.ndarray]) -> np.ma.MaskedArray:
    """
    Function to verify an input parameter and convert it to a float64 masked numpy array.
    NaN values are masked. Existing masks on masked array inputs are retained.
    :param name: name of the parameter (used in error messages)
    :param value: the parameter value
    :return: masked numpy array
    """
    if not isinstance(value, (int, float, np.number, np.ndarray)):
        raise TypeError(f'{name} must be either int, float or numpy ndarray data types')
    elif isinstance(value, np.ndarray):
        value = np.ma.array(value, dtype=np.float64)
        return np.ma.array(value, mask=np.isnan(value.filled(0)) | np.ma.getmaskarray(value))
    else:
        return np.ma.array([value], mask=np.isnan([value]), dtype=np.float64)


def _fromMasked(result: np.ma.MaskedArray, return_array: bool) -> Union[float, np.ma.MaskedArray]:
    """
    Function to return a masked result as an array, or as a float for scalar inputs.
    :param result: the masked result array
    :param return_array: whether any of the inputs were numpy arrays
    :return: masked array, or float (NaN if the scalar result is missing)
    """
    if return_array:
        return result
    value = result[0]
    if value is np.ma.masked:
        return np.nan
    return float(value)


def droughtFactor(kbdi: Union[int, float, np.ndarray],
                  days_rain: Union[int, float, np.ndarray],
                  precip: Union[int, float, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Function to calculate the McArthur drought factor per Noble et al. (1980).
    :param kbdi: Keetch-Byram Drought Index (mm, value from 0-800)
    :param days_rain: number of days since the last rain event (days, >= 0)
    :param precip: amount of the last rain event (mm)
    :return: drought factor (unitless)
    """
    # ### CHECK FOR NUMPY ARRAYS IN INPUT PARAMETERS
    return_array = any(isinstance(data, np.ndarray) for data in [kbdi, days_rain, precip])

    # ### CONVERT ALL INPUTS TO MASKED NUMPY ARRAYS
    kbdi = _toMasked('kbdi', kbdi)
    days_rain = _toMasked('days_rain', days_rain)
    precip = _toMasked('precip', precip)

    # Verify days since rain
    if np.any((days_rain < 0).filled(False)):
        raise DomainError('days_rain must be greater than or equal to 0')

    # ### RAIN EVENT AGE TERM
    age = np.ma.power(days_rain + 1, 1.5)

    # ### VERIFY DENOMINATOR IS POSITIVE
    denominator = 3.52 * age + precip - 1
    if np.any((denominator <= 0).filled(False)):
        raise DomainError('The drought factor is undefined for these inputs: '
                          '3.52 * (days_rain + 1)^1.5 + precip - 1 must be greater than 0')

    # ### RETURN FINAL DROUGHT FACTOR
    df = 0.191 * (kbdi + 104) * age / denominator
    return _fromMasked(df, return_array)


def grassMoisture(temp: Union[int, float, np.ndarray],
                  rh: Union[int, float, np.ndarray],
                  curing: Union[int, float, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Function to calculate the grassland fuel moisture content per Noble et al. (1980).
    :param temp: air temperature (C)
    :param rh: relative humidity (%, value from 0-100)
    :param curing: degree of grass curing (%, value from 0-100)
    :return: grass moisture content (%)
    """
    return_array = any(isinstance(data, np.ndarray) for data in [temp, rh, curing])

    temp = _toMasked('temp', temp)
    rh = _toMasked('rh', rh)
    curing = _toMasked('curing', curing)

    if np.any((temp + 6 == 0).filled(False)):
        raise DomainError('Grass moisture content is undefined for a temperature of -6 C')

    gm = ((97.7 + 4.06 * rh) / (temp + 6) - 0.00854 * rh) * (100 - curing) / 100
    return _fromMasked(gm, return_array)


def grassFDI(gfl: Union[int, float, np.ndarray],
             gm: Union[int, float, np.ndarray],
             ws: Union[int, float, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Function to calculate the Grassland Fire Danger Index per Noble et al. (1980).
    :param gfl: grass fuel load (tonnes/ha)
    :param gm: grass moisture content (%)
    :param ws: wind speed (km/h @ 10m height)
    :return: Grassland Fire Danger Index (unitless)
    """
    return_array = any(isinstance(data, np.ndarray) for data in [gfl, gm, ws])

    gfl = _toMasked('gfl', gfl)
    gm = _toMasked('gm', gm)
    ws = _toMasked('ws', ws)

    with np.errstate(over='ignore'):
        gfdi = 3.35 * gfl * np.ma.exp(-0.0897 * gm + 0.0403 * ws)
    return _fromMasked(gfdi, return_array)


def forestFDI(df: Union[int, float, np.ndarray],
              temp: Union[int, float, np.ndarray],
              rh: Union[int, float, np.ndarray],
              ws: Union[int, float, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Function to calculate the Forest Fire Danger Index per Noble et al. (1980).
    :param df: drought factor (unitless)
    :param temp: air temperature (C)
    :param rh: relative humidity (%, value from 0-100)
    :param ws: wind speed (km/h @ 10m height)
    :return: Forest Fire Danger Index (unitless)
    """
    return_array = any(isinstance(data, np.ndarray) for data in [df, temp, rh, ws])

    df = _toMasked('df', df)
    temp = _toMasked('temp', temp)
    rh = _toMasked('rh', rh)
    ws = _toMasked('ws', ws)

    with np.errstate(over='ignore'):
        ffdi = 1.25 * df * np.ma.exp((temp - rh) / 30 + 0.0234 * ws)
    return _fromMasked(ffdi, return_array)


def dangerRating(fdi: Union[int, float, np.ndarray]) -> Union[int, np.ndarray]:
    """
    Function to classify fire danger index values into fire danger rating classes.
    Class codes and FDI bounds are listed in fdrClass_LUT (lower bound inclusive).
    :param fdi: fire danger index (unitless)
    :return: fire danger rating class code (1-6); -99 for a missing scalar input
    """
    return_array = isinstance(fdi, np.ndarray)
    fdi = _toMasked('fdi', fdi)

    fdr = np.ma.masked_all(fdi.shape, dtype=np.int8)
    for code, (_, lower, upper) in fdrClass_LUT.items():
        fdr = np.ma.where((fdi >= lower) & (fdi < upper), code, fdr)

    if return_array:
        return fdr.astype(np.int8)
    value = fdr[0]
    return -99 if value is np.ma.masked else int(value)
