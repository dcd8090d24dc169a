"""
Type conversion between host values and driver-native values.

Outbound (binding): a host value is coerced against the declared type of
its column, looked up through the SchemaCache. Inbound (results): a cell is
converted according to the type the driver reports for its result column,
falling back to the runtime type of the value when no type is reported.

Each ColumnKind has exactly one outbound and one inbound function:

    kind         outbound (bind)                     inbound (row)
    ---------    --------------------------------    -----------------
    text         str                                 str
    int/bigint   int (integral, in column range)     int
    varint       int                                 int
    decimal      Decimal from a numeric value        float
    float/double float                               float
    boolean      bool ('true'/'false', 0/1)          bool
    timestamp    naive UTC datetime                  naive UTC datetime
    blob         bytes                               bytes
    uuid         UUID (v4 generated for None)        str
    timeuuid     UUID v1 (generated for None)        str
    inet         address string                      str
    list/set/map element-wise                        list / set / dict
    other        unchanged                           unchanged

Set elements and map keys that are themselves collections (frozen<list<...>>
and the like) are frozen: lists become tuples, sets become frozensets. Members
that still cannot be hashed (frozen maps) go into the driver's SortedSet or
OrderedMap.
"""

import datetime
import ipaddress
import uuid
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, List, Mapping, Optional

import numpy as np
import pandas as pd
from cassandra.util import OrderedMap, SortedSet

from .config import get_logger
from .exceptions import TypeConversionError
from .statement import BoundParameter
from .types import ColumnKind, ColumnType


class TypeCoercer:
    """
    Converts values in both directions for one store.

    Example:
        >>> coercer = TypeCoercer(schema_cache)
        >>> coercer.to_storage('accounts', 'balance', '10.50')
        Decimal('10.50')
        >>> coercer.from_storage('decimal', Decimal('10.50'))
        10.5
    """

    def __init__(self, schema_cache=None):
        self._schema = schema_cache
        self._last_uuid: Optional[uuid.UUID] = None
        self._logger = get_logger()

    @property
    def last_uuid(self) -> Optional[uuid.UUID]:
        """The uuid/timeuuid most recently generated or bound."""
        return self._last_uuid

    # ========== Outbound ==========

    def bind(self, table: str, parameters: Iterable[BoundParameter]) -> List[BoundParameter]:
        """
        Coerce every parameter of a rendered statement against its column.

        Raises:
            SchemaLookupError: If the table or a column is unknown
            TypeConversionError: If a value does not fit its column type
        """
        bound = []
        for param in parameters:
            column_type = self._schema.column_type(table, param.column)
            if param.target == "element" and column_type.element is not None:
                column_type = column_type.element
            elif param.target == "key" and column_type.key is not None:
                column_type = column_type.key
            bound.append(param._replace(value=self.coerce(param.column, column_type, param.value)))
        return bound

    def to_storage(self, table: str, column: str, value: Any) -> Any:
        """Coerce a host value against the declared type of ``table.column``."""
        return self.coerce(column, self._schema.column_type(table, column), value)

    def coerce(self, column: str, column_type, value: Any, nested: bool = False) -> Any:
        """
        Coerce a host value to the driver-native value for a column type.

        Args:
            column: Column name (for error messages)
            column_type: ColumnType or declared type string
            value: Host value
            nested: True for collection elements, which may not be null

        Raises:
            TypeConversionError: If the value does not fit the type
        """
        column_type = ColumnType.parse(column_type)
        value = _unwrap_numpy(value)

        if value is None:
            if nested:
                raise TypeConversionError(column, column_type.name, value, "collections cannot contain null")
            if column_type.kind not in (ColumnKind.uuid, ColumnKind.timeuuid):
                return None

        try:
            return _OUTBOUND[column_type.kind](self, column, column_type, value)
        except TypeConversionError:
            raise
        except (ValueError, TypeError, ArithmeticError, OverflowError) as e:
            raise TypeConversionError(column, column_type.name, value, str(e)) from e

    def _remember_uuid(self, value: uuid.UUID) -> uuid.UUID:
        self._last_uuid = value
        return value

    # ========== Inbound ==========

    def from_storage(self, cell_type, value: Any, column: str = None) -> Any:
        """
        Convert a driver cell to a plain host value.

        Args:
            cell_type: Type reported for the result column (driver type class,
                declared type string or ColumnType); None to infer from the value
            value: The cell as returned by the driver
            column: Result column name (for error messages)

        Raises:
            TypeConversionError: If the cell does not match its reported type
        """
        try:
            return self._decode(cell_type, value)
        except (ValueError, TypeError, ArithmeticError) as e:
            type_name = _resolve_cell_type(cell_type, value).name
            raise TypeConversionError(column or "<result>", type_name, value, str(e)) from e

    def _decode(self, cell_type, value: Any) -> Any:
        if value is None:
            return None
        column_type = _resolve_cell_type(cell_type, value)
        return _INBOUND[column_type.kind](self, column_type, value)


# =============================================================================
# OUTBOUND CONVERTERS
# =============================================================================


def _reject_bool(value):
    if isinstance(value, bool):
        raise TypeError("booleans are not accepted for numeric columns")


def _to_text(coercer, column, column_type, value):
    if isinstance(value, str):
        return value
    raise TypeError(f"expected a string, got {type(value).__name__}")


# Declared integer type -> signed width in bits; varint is unbounded
_INTEGER_BITS = {"tinyint": 8, "smallint": 16, "int": 32, "bigint": 64, "counter": 64}
_DEFAULT_BITS = {ColumnKind.int: 32, ColumnKind.bigint: 64}


def _to_integer(coercer, column, column_type, value):
    _reject_bool(value)
    if isinstance(value, int):
        result = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise ValueError("value is not integral")
        result = int(value)
    elif isinstance(value, Decimal):
        if not value.is_finite() or value != value.to_integral_value():
            raise ValueError("value is not integral")
        result = int(value)
    elif isinstance(value, str):
        result = int(value.strip())
    else:
        raise TypeError(f"expected an integer, got {type(value).__name__}")

    bits = _INTEGER_BITS.get(column_type.name, _DEFAULT_BITS.get(column_type.kind))
    if bits is not None:
        low, high = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
        if not low <= result <= high:
            raise ValueError(f"out of range for {column_type.name} ({low}..{high})")
    return result


def _to_decimal(coercer, column, column_type, value):
    _reject_bool(value)
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError("not a numeric value")
    else:
        raise TypeError(f"expected a numeric value, got {type(value).__name__}")
    if not result.is_finite():
        raise ValueError("decimal values must be finite")
    return result


def _to_float(coercer, column, column_type, value):
    _reject_bool(value)
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    if isinstance(value, str):
        return float(value.strip())
    raise TypeError(f"expected a numeric value, got {type(value).__name__}")


_TRUE_STRINGS = {"true", "1", "yes"}
_FALSE_STRINGS = {"false", "0", "no"}


def _to_boolean(coercer, column, column_type, value):
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    raise ValueError("not a boolean value")


def _to_timestamp(coercer, column, column_type, value):
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        ts = pd.Timestamp(value, unit="s")
    elif isinstance(value, (datetime.datetime, datetime.date, np.datetime64, str)):
        ts = pd.Timestamp(value)
    else:
        raise TypeError(f"expected a date/time value, got {type(value).__name__}")

    if ts is pd.NaT:
        raise ValueError("not a date/time value")
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts.to_pydatetime()


def _to_blob(coercer, column, column_type, value):
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    raise TypeError(f"expected bytes, got {type(value).__name__}")


def _parse_uuid(value) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    if isinstance(value, (bytes, bytearray)) and len(value) == 16:
        return uuid.UUID(bytes=bytes(value))
    if isinstance(value, str):
        return uuid.UUID(value.strip())
    raise TypeError(f"expected a UUID, got {type(value).__name__}")


def _to_uuid(coercer, column, column_type, value):
    if value is None:
        return coercer._remember_uuid(uuid.uuid4())
    return coercer._remember_uuid(_parse_uuid(value))


def _to_timeuuid(coercer, column, column_type, value):
    if value is None:
        return coercer._remember_uuid(uuid.uuid1())
    parsed = _parse_uuid(value)
    if parsed.version != 1:
        raise ValueError(f"timeuuid must be a version 1 UUID, got version {parsed.version}")
    return coercer._remember_uuid(parsed)


def _to_inet(coercer, column, column_type, value):
    if isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return str(value)
    if isinstance(value, str):
        return str(ipaddress.ip_address(value.strip()))
    raise TypeError(f"expected an address string, got {type(value).__name__}")


def _check_collection(value, column_type):
    if isinstance(value, (str, bytes, bytearray, Mapping)):
        raise TypeError(f"expected a collection for {column_type.name}, got {type(value).__name__}")
    if not isinstance(value, Iterable):
        raise TypeError(f"expected a collection for {column_type.name}, got {type(value).__name__}")


def _to_list(coercer, column, column_type, value):
    _check_collection(value, column_type)
    element = column_type.element or ColumnType.parse(ColumnKind.other)
    return [coercer.coerce(column, element, v, nested=True) for v in value]


def _to_set(coercer, column, column_type, value):
    _check_collection(value, column_type)
    element = column_type.element or ColumnType.parse(ColumnKind.other)
    return _make_set(coercer.coerce(column, element, v, nested=True) for v in value)


def _to_map(coercer, column, column_type, value):
    if not isinstance(value, Mapping):
        raise TypeError(f"expected a mapping for {column_type.name}, got {type(value).__name__}")
    key_type = column_type.key or ColumnType.parse(ColumnKind.other)
    element = column_type.element or ColumnType.parse(ColumnKind.other)
    return _make_map(
        (coercer.coerce(column, key_type, k, nested=True), coercer.coerce(column, element, v, nested=True))
        for k, v in value.items()
    )


def _freeze(value):
    """Hashable form of a nested collection: list -> tuple, set -> frozenset."""
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    if isinstance(value, (set, frozenset, SortedSet)):
        return frozenset(_freeze(v) for v in value)
    return value


def _make_set(items):
    """A set of frozen elements, or a SortedSet when they still cannot be hashed."""
    items = [_freeze(item) for item in items]
    try:
        return set(items)
    except TypeError:
        return SortedSet(items)


def _make_map(pairs):
    """A dict keyed by frozen keys, or an OrderedMap when they still cannot be hashed."""
    pairs = [(_freeze(key), value) for key, value in pairs]
    try:
        return dict(pairs)
    except TypeError:
        return OrderedMap(pairs)


def _passthrough_out(coercer, column, column_type, value):
    return value


_OUTBOUND = {
    ColumnKind.text: _to_text,
    ColumnKind.int: _to_integer,
    ColumnKind.bigint: _to_integer,
    ColumnKind.varint: _to_integer,
    ColumnKind.decimal: _to_decimal,
    ColumnKind.float: _to_float,
    ColumnKind.double: _to_float,
    ColumnKind.boolean: _to_boolean,
    ColumnKind.timestamp: _to_timestamp,
    ColumnKind.blob: _to_blob,
    ColumnKind.uuid: _to_uuid,
    ColumnKind.timeuuid: _to_timeuuid,
    ColumnKind.inet: _to_inet,
    ColumnKind.list: _to_list,
    ColumnKind.set: _to_set,
    ColumnKind.map: _to_map,
    ColumnKind.other: _passthrough_out,
}


def _unwrap_numpy(value):
    """numpy scalars become Python scalars, arrays become lists."""
    if isinstance(value, np.datetime64):
        return value
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, np.ndarray):
        return value.tolist()
    return value


# =============================================================================
# INBOUND CONVERTERS
# =============================================================================


def _from_text(coercer, column_type, value):
    return value if isinstance(value, str) else str(value)


def _from_integer(coercer, column_type, value):
    return int(value)


def _from_floating(coercer, column_type, value):
    return float(value)


def _from_boolean(coercer, column_type, value):
    return bool(value)


def _from_timestamp(coercer, column_type, value):
    if isinstance(value, datetime.datetime):
        if value.tzinfo is not None:
            value = value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # Raw milliseconds since the epoch
        return pd.Timestamp(value, unit="ms").to_pydatetime()
    return value


def _from_blob(coercer, column_type, value):
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    return value


def _from_identifier(coercer, column_type, value):
    return str(value)


def _from_list(coercer, column_type, value):
    return [coercer._decode(column_type.element, v) for v in value]


def _from_set(coercer, column_type, value):
    return _make_set(coercer._decode(column_type.element, v) for v in value)


def _from_map(coercer, column_type, value):
    return _make_map((coercer._decode(column_type.key, k), coercer._decode(column_type.element, v)) for k, v in value.items())


def _passthrough_in(coercer, column_type, value):
    return value


_INBOUND = {
    ColumnKind.text: _from_text,
    ColumnKind.int: _from_integer,
    ColumnKind.bigint: _from_integer,
    ColumnKind.varint: _from_integer,
    ColumnKind.decimal: _from_floating,
    ColumnKind.float: _from_floating,
    ColumnKind.double: _from_floating,
    ColumnKind.boolean: _from_boolean,
    ColumnKind.timestamp: _from_timestamp,
    ColumnKind.blob: _from_blob,
    ColumnKind.uuid: _from_identifier,
    ColumnKind.timeuuid: _from_identifier,
    ColumnKind.inet: _from_identifier,
    ColumnKind.list: _from_list,
    ColumnKind.set: _from_set,
    ColumnKind.map: _from_map,
    ColumnKind.other: _passthrough_in,
}


# Every kind needs a converter in both directions
_missing = sorted(str(k) for k in ColumnKind if k not in _OUTBOUND or k not in _INBOUND)
if _missing:
    raise TypeError(f"No converter registered for column kinds: {', '.join(_missing)}")


# Runtime type -> kind, for cells whose result column carries no type
_RUNTIME_KINDS = {
    datetime.datetime: ColumnKind.timestamp,
    pd.Timestamp: ColumnKind.timestamp,
    Decimal: ColumnKind.decimal,
    uuid.UUID: ColumnKind.uuid,
    bytes: ColumnKind.blob,
    bytearray: ColumnKind.blob,
    memoryview: ColumnKind.blob,
    ipaddress.IPv4Address: ColumnKind.inet,
    ipaddress.IPv6Address: ColumnKind.inet,
}


def _infer_type(value) -> ColumnType:
    kind = _RUNTIME_KINDS.get(type(value))
    if kind is not None:
        return ColumnType.parse(kind)
    if isinstance(value, Mapping):
        return ColumnType(kind=ColumnKind.map, name="map")
    if isinstance(value, (list, tuple)):
        return ColumnType(kind=ColumnKind.list, name="list")
    if isinstance(value, (set, frozenset, SortedSet)):
        return ColumnType(kind=ColumnKind.set, name="set")
    return ColumnType.parse(ColumnKind.other)


def _resolve_cell_type(cell_type, value) -> ColumnType:
    """Use the reported result column type, else infer it from the value."""
    if cell_type is None:
        return _infer_type(value)
    if isinstance(cell_type, (ColumnType, ColumnKind, str)):
        return ColumnType.parse(cell_type)

    # cassandra-driver type classes (cassandra.cqltypes)
    parameterized = getattr(cell_type, "cql_parameterized_type", None)
    if callable(parameterized):
        return ColumnType.parse(parameterized())
    typename = getattr(cell_type, "typename", None)
    if isinstance(typename, str):
        return ColumnType.parse(typename)
    return _infer_type(value)
