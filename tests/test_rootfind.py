# -*- coding: utf-8 -*-
"""
Tests of bracketed root finding.
"""

import numpy as np
import pytest

from pyLSM.energybalance.rootfind import Brackets, root_brent
from pyLSM.utils.constants import SNOW_DT, SURF_DT, SOIL_DT, CANOPY_DT, CANOPY_VP
from pyLSM.utils.errors import ConvergenceError, RootNotBracketedError


def test_default_brackets():
    b = Brackets()
    assert b.snow == SNOW_DT
    assert b.surface == SURF_DT
    assert b.soil == SOIL_DT
    assert b.canopy_air == CANOPY_DT
    assert b.canopy_vp == CANOPY_VP
    assert b.around('surface', 3.0) == (2.0, 4.0)


def test_bracket_validation():
    with pytest.raises(ValueError):
        Brackets({'lake': 1.0})
    with pytest.raises(ValueError):
        Brackets({'soil': 0.0})


def test_root_inside_bracket():
    root, iterations = root_brent(lambda x: x**2 - 2.0, 0.0, 2.0, xtol=1e-10)
    assert root == pytest.approx(np.sqrt(2.0), abs=1e-8)
    assert iterations > 0


def test_single_widening_finds_root():
    # [0, 1] widened by factor 10 to [-4.5, 5.5]
    root, _ = root_brent(lambda x: x - 5.0, 0.0, 1.0, widening=10.0)
    assert root == pytest.approx(5.0, abs=1e-4)


def test_widening_lower_end_only():
    root, _ = root_brent(lambda x: x + 3.0, -1.0, 0.0, widening=10.0, widen='lower')
    assert root == pytest.approx(-3.0, abs=1e-4)


def test_widening_happens_once():
    calls = []

    def fun(x):
        calls.append(x)
        return x - 1000.0

    with pytest.raises(RootNotBracketedError) as err:
        root_brent(fun, 0.0, 1.0, widening=10.0, variable='surface_temperature')
    # two ends of the original and two of the widened bracket
    assert len(calls) == 4
    assert err.value.variable == 'surface_temperature'


def test_no_widening():
    with pytest.raises(RootNotBracketedError):
        root_brent(lambda x: x - 5.0, 0.0, 1.0, widening=1.0)


def test_not_bracketed_is_convergence_error():
    with pytest.raises(ConvergenceError):
        root_brent(lambda x: x**2 + 1.0, -1.0, 1.0)


def test_non_finite_residual():
    with pytest.raises(ConvergenceError):
        root_brent(lambda x: np.nan, 0.0, 1.0)


def test_invalid_bracket():
    with pytest.raises(ValueError):
        root_brent(lambda x: x, 1.0, 1.0)


def test_error_context():
    with pytest.raises(RootNotBracketedError) as err:
        root_brent(lambda x: 1.0, 0.0, 1.0, variable='snow_surface_temperature')
    error = err.value.with_context(cell=3, step=7, subarea=(0, 1, 0), variable='other')
    assert error.cell == 3
    assert error.step == 7
    assert error.variable == 'snow_surface_temperature'
    assert 'cell=3' in str(error)
