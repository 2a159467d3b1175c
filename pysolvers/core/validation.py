"""
Input validation utilities for PySolvers.

These validators follow the "fail fast, fail loud" principle. They raise
immediately with clear error messages rather than silently correcting
or making assumptions about caller intent. All of them run before any
backend call.

Design principles:
    - No silent type coercion (except np.asarray on array-likes)
    - Clear, actionable error messages with actual values
    - Each function validates ONE thing
    - Parameter names included in all error messages
"""

import numpy as np
from numpy.typing import ArrayLike, NDArray
from typing import Any

from pysolvers.core.exceptions import ConfigurationError


def check_array(
    array: ArrayLike,
    name: str,
) -> NDArray[np.floating[Any]]:
    """
    Validate and convert input to a float64 numpy array.

    Args:
        array: Input to validate
        name: Parameter name for error messages

    Returns:
        numpy.ndarray with float64 dtype

    Raises:
        ConfigurationError: If input cannot be converted to a numeric array
    """
    try:
        result = np.asarray(array)
    except (ValueError, TypeError) as e:
        raise ConfigurationError(f"{name}: cannot convert to array: {e}") from e

    if result.dtype == object:
        raise ConfigurationError(
            f"{name}: converted to object dtype, indicating mixed types or non-numeric data"
        )

    if not np.issubdtype(result.dtype, np.number) and result.dtype != np.bool_:
        raise ConfigurationError(
            f"{name}: non-numeric dtype {result.dtype}, expected numeric data"
        )

    return result.astype(np.float64, copy=False)


def check_vector(
    array: ArrayLike | None,
    size: int,
    name: str,
) -> NDArray[np.float64] | None:
    """
    Validate an optional vector of a given length.

    Column and row vectors are flattened. None passes through unchanged.

    Raises:
        ConfigurationError: If the length does not match
    """
    if array is None:
        return None
    result = check_array(array, name).ravel()
    if result.size != size:
        raise ConfigurationError(f"{name}: expected {size} entries, got {result.size}")
    return result


def check_no_nan(array: NDArray[np.floating[Any]], name: str) -> None:
    """
    Verify array contains no NaN values (infinite bounds are legal).

    Raises:
        ConfigurationError: If array contains NaN
    """
    if np.any(np.isnan(array)):
        n_nan = int(np.sum(np.isnan(array)))
        raise ConfigurationError(f"{name}: contains {n_nan} NaN values")


def check_finite(array: NDArray[np.floating[Any]], name: str) -> None:
    """
    Verify array contains no NaN or Inf values.

    Raises:
        ConfigurationError: If array contains non-finite values
    """
    if not np.all(np.isfinite(array)):
        n_nan = int(np.sum(np.isnan(array)))
        n_inf = int(np.sum(np.isinf(array)))
        raise ConfigurationError(
            f"{name}: contains non-finite values ({n_nan} NaN, {n_inf} Inf)"
        )


def check_bounds(
    lower: NDArray[np.floating[Any]],
    upper: NDArray[np.floating[Any]],
    names: tuple[str, str],
) -> None:
    """
    Verify lower <= upper componentwise.

    Args:
        lower: Lower bound vector
        upper: Upper bound vector
        names: Parameter names for error messages, e.g. ('lbx', 'ubx')

    Raises:
        ConfigurationError: If any lower bound exceeds its upper bound
    """
    if lower.shape != upper.shape:
        raise ConfigurationError(
            f"{names[0]} and {names[1]} have shapes {lower.shape} and {upper.shape}"
        )
    bad = np.flatnonzero(lower > upper)
    if bad.size > 0:
        i = int(bad[0])
        raise ConfigurationError(
            f"Ill-posed problem detected: {names[0]}[{i}] = {lower[i]} > "
            f"{names[1]}[{i}] = {upper[i]} ({bad.size} violated entries: "
            f"{bad[:10].tolist()})"
        )
