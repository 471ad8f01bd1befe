# -*- coding: utf-8 -*-
"""
Raster read/write helpers for land cover and fire danger grids.
"""
import os
from typing import Optional, Union
import numpy as np
import rasterio as rio


def getLandCoverRaster(raster_path: str, band: int = 1) -> tuple:
    """
    Function to read a single band of a land cover raster as a masked array.
    Cells equal to the raster's nodata value are masked.
    :param raster_path: path to the land cover raster
    :param band: the band number to read (1-based)
    :return: tuple of (masked 2-D array of land cover codes, rasterio profile)
    """
    if not os.path.exists(raster_path):
        raise FileNotFoundError(f'Land cover raster not found: {raster_path}')

    with rio.open(raster_path) as src:
        land_cover = src.read(band, masked=True)
        profile = src.profile

    return land_cover, profile


def arrayToRaster(array: Union[np.ndarray, np.ma.MaskedArray],
                  out_file: str,
                  ras_profile: dict,
                  dtype: np.dtype = np.float64,
                  nodata: Optional[Union[int, float]] = None) -> None:
    """
    Function to save a 2-D model output array as a single band GeoTIFF.
    Masked cells are written as the nodata value.
    :param array: the output array (e.g., fdi, ros, or fuel_type)
    :param out_file: path of the output raster
    :param ras_profile: rasterio profile of the reference (input) raster
    :param dtype: output data type
    :param nodata: nodata value (default: -99 for integer data types, NaN for floats)
    :return: None
    """
    if array.ndim != 2:
        raise ValueError(f'array must be 2-D, but has {array.ndim} dimensions')

    if nodata is None:
        nodata = -99 if np.issubdtype(np.dtype(dtype), np.integer) else np.nan

    out_array = np.ma.array(array).astype(dtype).filled(nodata)

    profile = dict(ras_profile)
    profile.update(
        driver='GTiff',
        count=1,
        dtype=np.dtype(dtype).name,
        nodata=nodata,
        height=out_array.shape[0],
        width=out_array.shape[1]
    )

    with rio.open(out_file, 'w', **profile) as dst:
        dst.write(out_array, 1)

    return
