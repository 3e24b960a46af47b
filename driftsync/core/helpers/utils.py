import copy
import functools
import importlib
import logging
import pkgutil
from collections.abc import Callable, Mapping, Sequence
from typing import Any


class _Missing:
    """Marker for a key absent from a record snapshot (distinct from None)."""

    _instance: "_Missing | None" = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "<missing>"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> "_Missing":
        return self

    def __deepcopy__(self, memo: dict) -> "_Missing":
        return self

    def __reduce__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


def deep_equal(a: Any, b: Any) -> bool:
    """
    Structural equality over nested mappings, ordered sequences and scalars.

    Booleans never equal numbers, and MISSING only equals MISSING.
    """
    if a is b:
        return True

    if a is MISSING or b is MISSING:
        return False

    if isinstance(a, Mapping) and isinstance(b, Mapping):
        if a.keys() != b.keys():
            return False
        return all(deep_equal(a[k], b[k]) for k in a)

    if _is_sequence(a) and _is_sequence(b):
        if len(a) != len(b):
            return False
        return all(deep_equal(x, y) for x, y in zip(a, b))

    if isinstance(a, bool) != isinstance(b, bool):
        return False

    if _is_container(a) or _is_container(b):
        return False

    return a == b


def deep_copy(value: Any) -> Any:
    return copy.deepcopy(value)


def record_get(record: Mapping[str, Any] | None, key: str) -> Any:
    if record is None:
        return MISSING
    return record.get(key, MISSING)


def record_set(record: dict[str, Any], key: str, value: Any) -> None:
    """Assign `key`, or drop it when the value is MISSING."""
    if value is MISSING:
        record.pop(key, None)
    else:
        record[key] = value


def union_keys(*records: Mapping[str, Any] | None) -> list[str]:
    """Keys of all given records, in first-seen order."""
    seen: dict[str, None] = {}
    for record in records:
        if record is None:
            continue
        for key in record:
            seen.setdefault(key, None)
    return list(seen)


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)-8s [%(name)s:%(funcName)s] : %(message)s',
    )


def scan(package: str):
    """
    Decorator that triggers a component scan when the decorated function
    is imported.
    """
    def decorator(func: Callable):

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            # Execute the scan BEFORE calling the function
            py_package = importlib.import_module(package)

            for module_info in pkgutil.iter_modules(py_package.__path__):
                module_name = f"{package}.{module_info.name}"
                importlib.import_module(module_name)

            return func(*args, **kwargs)

        return wrapper

    return decorator


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def _is_container(value: Any) -> bool:
    return isinstance(value, Mapping) or _is_sequence(value)
