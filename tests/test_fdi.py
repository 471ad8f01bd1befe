"""Tests for the McArthur Mk5 fire danger index functions.

Expected values are hand computed from the Noble et al. (1980) equations.
"""

import math

import pytest
import numpy as np

import fdi
from fdm_exceptions import DomainError


class TestDroughtFactor:
    """Tests for the drought factor."""

    def test_reference_value(self):
        age = 2 ** 1.5
        expected = 0.191 * (400 + 104) * age / (3.52 * age + 10 - 1)
        assert fdi.droughtFactor(400, 1, 10) == pytest.approx(expected)
        assert fdi.droughtFactor(400, 1, 10) == pytest.approx(14.3635, abs=1e-3)

    def test_scalar_inputs_return_float(self):
        assert isinstance(fdi.droughtFactor(400, 1, 10), float)

    def test_increases_with_kbdi(self):
        values = [fdi.droughtFactor(kbdi, 3, 5) for kbdi in [0, 100, 400, 800]]
        assert all(low < high for low, high in zip(values, values[1:]))

    def test_array_input(self):
        kbdi = np.array([0, 400, np.nan])
        result = fdi.droughtFactor(kbdi, 1, 10)
        assert isinstance(result, np.ma.MaskedArray)
        assert result.mask[2]
        assert result[1] == pytest.approx(fdi.droughtFactor(400, 1, 10))

    def test_non_positive_denominator_raises(self):
        """3.52 * 1 + (-3) - 1 < 0 leaves the drought factor undefined."""
        with pytest.raises(DomainError):
            fdi.droughtFactor(400, 0, -3)

    def test_negative_days_rain_raises(self):
        with pytest.raises(DomainError):
            fdi.droughtFactor(400, -1, 10)

    def test_domain_error_is_value_error(self):
        with pytest.raises(ValueError):
            fdi.droughtFactor(400, 0, -5)

    def test_wrong_type_raises(self):
        with pytest.raises(TypeError):
            fdi.droughtFactor('400', 1, 10)


class TestGrassIndices:
    """Tests for grass moisture content and the grassland fire danger index."""

    def test_reference_grass_moisture(self):
        expected = ((97.7 + 4.06 * 50) / (20 + 6) - 0.00854 * 50) * (100 - 29.1) / 100
        assert fdi.grassMoisture(20, 50, 29.1) == pytest.approx(expected)
        assert fdi.grassMoisture(20, 50, 29.1) == pytest.approx(7.8971, abs=1e-3)

    def test_fully_cured_grass_has_no_moisture(self):
        assert fdi.grassMoisture(20, 50, 100) == pytest.approx(0)

    def test_reference_grass_fdi(self):
        gm = fdi.grassMoisture(20, 50, 29.1)
        expected = 3.35 * 0.716 * math.exp(-0.0897 * gm + 0.0403 * 10)
        assert fdi.grassFDI(0.716, gm, 10) == pytest.approx(expected)
        assert fdi.grassFDI(0.716, gm, 10) == pytest.approx(1.7674, abs=1e-3)

    def test_missing_curing_propagates(self):
        curing = np.ma.array([29.1, 0], mask=[False, True])
        gm = fdi.grassMoisture(20, 50, curing)
        gfdi = fdi.grassFDI(np.array([0.716, 0.716]), gm, 10)
        np.testing.assert_array_equal(gfdi.mask, [False, True])

    def test_temperature_of_minus_six_raises(self):
        with pytest.raises(DomainError):
            fdi.grassMoisture(-6, 50, 50)


class TestForestFDI:
    """Tests for the forest fire danger index."""

    def test_reference_value(self):
        df = fdi.droughtFactor(400, 1, 10)
        expected = 1.25 * df * math.exp((20 - 50) / 30 + 0.0234 * 10)
        assert fdi.forestFDI(df, 20, 50, 10) == pytest.approx(expected)
        assert fdi.forestFDI(df, 20, 50, 10) == pytest.approx(8.3466, abs=1e-2)

    def test_increases_with_wind(self):
        assert fdi.forestFDI(10, 25, 30, 40) > fdi.forestFDI(10, 25, 30, 20)


class TestDangerRating:
    """Tests for fire danger rating classes."""

    @pytest.mark.parametrize("value,expected", [
        (0, 1),
        (11.9, 1),
        (12, 2),
        (24.9, 2),
        (25, 3),
        (50, 4),
        (75, 5),
        (99.9, 5),
        (100, 6),
        (250, 6),
    ])
    def test_class_bounds(self, value, expected):
        assert fdi.dangerRating(value) == expected

    def test_missing_scalar(self):
        assert fdi.dangerRating(np.nan) == -99

    def test_array_keeps_mask(self):
        values = np.ma.array([5, 30, 120, 0], mask=[False, False, False, True])
        result = fdi.dangerRating(values)
        np.testing.assert_array_equal(result.filled(-99), [1, 3, 6, -99])
        assert result.dtype == np.int8
