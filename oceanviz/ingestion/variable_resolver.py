"""
Variable Resolution for ARGO NetCDF Files

Data providers name the same physical quantity differently (adjusted vs. raw
vs. human-readable variants). This module maps each quantity to an ordered
list of candidate variable names and resolves the first one a file defines.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# Quantity tag -> candidate variable names, highest priority first
QUANTITY_ALIASES: Dict[str, Tuple[str, ...]] = {
    'temperature': ('TEMP', 'TEMP_ADJUSTED', 'Temperature'),
    'latitude': ('LATITUDE', 'Lat'),
    'longitude': ('LONGITUDE', 'Lon'),
    'pressure': ('PRES', 'PRESSURE', 'Pressure'),
    'salinity': ('PSAL', 'PSAL_ADJUSTED', 'SALINITY', 'Salinity'),
    'oxygen': ('OXYGEN', 'DOXY', 'DOXY_ADJUSTED', 'Oxygen'),
    'nitrate': ('NITRATE', 'NITRATE_ADJUSTED', 'Nitrate'),
    'depth': ('DEPTH', 'Depth'),
    'juld': ('JULD', 'JULD_ADJUSTED'),  # days since 1950-01-01T00:00:00Z
    'epoch': ('TIME',),  # raw epoch, seconds or milliseconds
}

REQUIRED_QUANTITIES = ('temperature', 'latitude', 'longitude', 'pressure', 'salinity')
OPTIONAL_QUANTITIES = ('oxygen', 'nitrate', 'depth')

# Quantities that can define one measurement per depth/cycle
LENGTH_QUANTITIES = ('temperature', 'pressure', 'salinity', 'latitude', 'longitude', 'depth', 'oxygen')

# Any retrieval error makes a candidate name count as "not found"
_LOOKUP_ERRORS = (Exception,)


@dataclass(frozen=True)
class ScalarValue:
    """A quantity stored as a single value, broadcast to every index"""
    value: float

    @property
    def length(self) -> Optional[int]:
        return None

    def value_at(self, index: int) -> Optional[float]:
        return self.value


@dataclass(frozen=True)
class ArrayValue:
    """A quantity stored as a flat sequence of values"""
    values: np.ndarray = field(repr=False)

    @property
    def length(self) -> Optional[int]:
        return int(self.values.shape[0])

    def value_at(self, index: int) -> Optional[float]:
        if 0 <= index < self.values.shape[0]:
            return float(self.values[index])
        return None


QuantityValue = Union[ScalarValue, ArrayValue]


@dataclass(frozen=True)
class LookupResult:
    """Outcome of looking up a variable: the name that matched and its value"""
    name: Optional[str] = None
    value: Optional[QuantityValue] = None

    @property
    def found(self) -> bool:
        return self.value is not None


NOT_FOUND = LookupResult()


def to_quantity_value(raw: Any) -> QuantityValue:
    """Convert a raw numeric payload into a scalar or flattened array value.

    Raises ValueError/TypeError when the payload is not numeric.
    """
    data = np.asarray(raw, dtype=np.float64)
    if data.ndim == 0:
        return ScalarValue(float(data))
    return ArrayValue(data.ravel())


def lookup_variable(source: Any, name: str) -> LookupResult:
    """
    Look up a single variable by name

    Args:
        source: Mapping-like container of variables (e.g. an xarray.Dataset)
        name: Variable name to read

    Returns:
        A found LookupResult, or NOT_FOUND if the name is absent or cannot be
        read as numbers
    """
    try:
        raw = source[name]
        return LookupResult(name=name, value=to_quantity_value(raw))
    except _LOOKUP_ERRORS as e:
        logger.debug(f"Variable {name} not usable: {e!r}")
        return NOT_FOUND


def resolve(source: Any, aliases: Tuple[str, ...]) -> LookupResult:
    """Return the first alias, in priority order, that the source defines"""
    for name in aliases:
        result = lookup_variable(source, name)
        if result.found:
            return result
    return NOT_FOUND


@dataclass
class ResolvedQuantities:
    """Per-file resolution of every known quantity"""
    results: Dict[str, LookupResult]

    def get(self, quantity: str) -> Optional[QuantityValue]:
        return self.results.get(quantity, NOT_FOUND).value

    def variable_name(self, quantity: str) -> Optional[str]:
        return self.results.get(quantity, NOT_FOUND).name

    def missing_required(self) -> List[str]:
        return [q for q in REQUIRED_QUANTITIES if self.get(q) is None]

    def working_length(self) -> int:
        """Maximum length among the per-level arrays; 0 if there are none"""
        lengths = [
            value.length
            for value in (self.get(q) for q in LENGTH_QUANTITIES)
            if value is not None and value.length
        ]
        return max(lengths) if lengths else 0


def resolve_quantities(source: Any,
                       aliases: Optional[Dict[str, Tuple[str, ...]]] = None) -> ResolvedQuantities:
    """Resolve every quantity of the alias table against one source"""
    aliases = aliases or QUANTITY_ALIASES
    return ResolvedQuantities({
        quantity: resolve(source, names) for quantity, names in aliases.items()
    })
