# -*- coding: utf-8 -*-
"""
.. module: utils.utilities
    :synopsis: pyLSM component
.. moduleauthor:: pyLSM developers

General utility functions for numerical solutions and bookkeeping.
"""

import numpy as np
from typing import Dict, List


def tridiag(a: np.ndarray, b: np.ndarray, C: np.ndarray, D: np.ndarray) -> np.ndarray:
    """
    Solves tridiagonal matrix using Thomas - algorithm
    a=subdiag, b=diag, C=superdiag, D=rhs
    """
    n = len(a)
    V = np.zeros(n)
    G = np.zeros(n)
    U = np.zeros(n)
    x = np.zeros(n)

    V[0] = b[0]
    G[0] = C[0] / V[0]
    U[0] = D[0] / V[0]

    for i in range(1, n):
        V[i] = b[i] - a[i] * G[i - 1]
        U[i] = (D[i] - a[i] * U[i - 1]) / V[i]
        G[i] = C[i] / V[i]

    x[-1] = U[-1]
    for i in range(n - 2, -1, -1):
        x[i] = U[i] - G[i] * x[i + 1]
    return x


def interval_overlap(lo1: float, hi1: float, lo2: float, hi2: float) -> float:
    """
    Length of overlap of intervals [lo1, hi1] and [lo2, hi2].
    """
    return max(0.0, min(hi1, hi2) - max(lo1, lo2))


def weighted_sum(values: List, weights: List) -> float:
    """
    Ordered weighted sum. The summation order follows the order of the
    arguments so that identical inputs always give identical results.

    Args:
        values (list): values (float or array)
        weights (list): weights [-]
    Returns:
        total (float|array)
    """
    total = 0.0
    for v, w in zip(values, weights):
        total = total + w * v
    return total


def deep_update(base: Dict, updates: Dict) -> Dict:
    """
    Recursively updates nested dict 'base' with values from 'updates'.
    Returns a new dict; inputs are not modified.
    """
    out = dict(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = deep_update(out[key], value)
        else:
            out[key] = value
    return out

# EOF
