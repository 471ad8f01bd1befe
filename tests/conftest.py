"""Shared pytest fixtures for the lcmfdm test suite.

Provides the reference climate scenario, fuel type parameter tables and small
fuel type / land cover grids.
"""

import pytest
import numpy as np

from lcmfdm import ClimateScenario, FuelType


# ============================================================================
# Climate Fixtures
# ============================================================================

@pytest.fixture
def reference_scenario():
    """Provide the reference climate scenario.

    Returns:
        ClimateScenario: 20 C, 50 % RH, 10 km/h wind, KBDI 400, 1 day since 10 mm of rain.
    """
    return ClimateScenario(temp=20, rh=50, ws=10, kbdi=400, days_rain=1, precip=10)


@pytest.fixture
def hot_dry_scenario():
    """Provide severe fire weather conditions."""
    return ClimateScenario(temp=35, rh=10, ws=45, kbdi=750, days_rain=20, precip=2)


# ============================================================================
# Parameter Table Fixtures
# ============================================================================

@pytest.fixture
def curing_table():
    """Curing (%) by fuel type. Grassland is the reference table value."""
    return {
        FuelType.DECIDUOUS: None,
        FuelType.CONIFER: None,
        FuelType.ARABLE: None,
        FuelType.GRASSLAND: 29.1,
        FuelType.HEATHLAND: 60.0,
        FuelType.NONVEG: None,
    }


@pytest.fixture
def biomass_table():
    """Fuel load (tonnes/ha) by fuel type. Grassland is the reference table value."""
    return {
        FuelType.DECIDUOUS: 10.0,
        FuelType.CONIFER: 15.0,
        FuelType.ARABLE: None,
        FuelType.GRASSLAND: 0.716,
        FuelType.HEATHLAND: 2.5,
        FuelType.NONVEG: None,
    }


# ============================================================================
# Grid Fixtures
# ============================================================================

@pytest.fixture
def fuel_grid():
    """3x3 fuel type grid with every fuel type and one masked (nodata) cell.

    Layout:
        Deciduous  Conifer    Arable
        Grassland  Grassland  Heathland
        NonVeg     Heathland  --
    """
    codes = np.array([[1, 2, 3],
                      [4, 4, 5],
                      [6, 5, 0]], dtype=np.int8)
    return np.ma.array(codes, mask=codes == 0)


@pytest.fixture
def land_cover_grid():
    """4x6 land cover grid holding every land cover class (1-21), two unknown codes and a nodata cell."""
    return np.array([[1, 2, 3, 4, 5, 6],
                     [7, 8, 9, 10, 11, 12],
                     [13, 14, 15, 16, 17, 18],
                     [19, 20, 21, 0, 22, -9999]], dtype=np.int16)
