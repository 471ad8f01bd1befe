# -*- coding: utf-8 -*-
"""
Exceptions raised by the land cover fire danger modules.

Exception Hierarchy:
    FDMError (base)
    ├── InputShapeError - Input rasters do not share the fuel type grid dimensions
    ├── UndefinedParameterError - No curing/biomass value defined for a fuel type
    ├── DomainError - Climate inputs produce an undefined drought factor
    ├── AggregateEmptyError - Raster-wide maximum requested over an empty fuel type subset
    └── InvalidFuelTypeError - Fuel type code outside the six enumerated fuel types
"""
from typing import Optional


class FDMError(Exception):
    """
    Base exception for all fire danger model errors.
    """
    pass


class InputShapeError(FDMError, ValueError):
    """
    Raised when an input raster does not match the dimensions of the fuel type raster.

    :param name: name of the offending input parameter
    :param shape: shape of the offending input
    :param expected: shape of the reference (fuel type) raster
    """

    def __init__(self, name: str, shape: tuple, expected: tuple):
        self.name = name
        self.shape = shape
        self.expected = expected
        super().__init__(f'{name} has dimensions {shape}, but the fuel type raster has dimensions {expected}')


class UndefinedParameterError(FDMError, KeyError):
    """
    Raised when a numeric parameter is requested for a fuel type that has none defined.
    The parameter assigner converts this error into a masked (missing) cell.
    """

    def __init__(self, fuel_type: int, table_name: Optional[str] = None):
        self.fuel_type = fuel_type
        self.table_name = table_name
        if table_name:
            message = f'No {table_name} value is defined for fuel type {fuel_type}'
        else:
            message = f'No parameter value is defined for fuel type {fuel_type}'
        super().__init__(message)

    def __str__(self):
        # KeyError wraps its message in quotes
        return self.args[0]


class DomainError(FDMError, ValueError):
    """
    Raised when degenerate climate inputs produce an undefined drought factor.
    """
    pass


class AggregateEmptyError(FDMError, ValueError):
    """
    Raised when a raster-wide maximum is requested over a fuel type with no valid cells
    and strict aggregates are enabled.
    """

    def __init__(self, fuel_type: int, quantity: str):
        self.fuel_type = fuel_type
        self.quantity = quantity
        super().__init__(f'Cannot compute the maximum {quantity} over fuel type {fuel_type}: '
                         f'the raster contains no valid cells of that fuel type')


class InvalidFuelTypeError(FDMError, LookupError):
    """
    Raised when a fuel type raster holds codes outside the six enumerated fuel types.
    """

    def __init__(self, codes):
        codes = {c.item() if hasattr(c, 'item') else c for c in codes}
        self.codes = sorted(codes, key=str)
        super().__init__(f'Unknown fuel type codes found: {self.codes}. Valid codes are 1-6')
