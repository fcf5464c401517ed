# Built-in
import unittest

# Third-party
import numpy as np

# Local
from phototransduction.exceptions import DomainError
from phototransduction.parameters.param_validation import ParameterRecord
from phototransduction.photoreceptor.simulate_photoreceptor_module import (
    SteadyStateInitializer,
)


def _unit_record(**overrides):
    fields = dict(
        sigma=1.0,
        phi=1.0,
        eta=1.0,
        k=2.0,
        n=1.0,
        cdark=1.0,
        beta=1.0,
        hillaffinity=1.0,
        hillcoef=1.0,
        darkCurrent=1.0,
        gamma=1.0,
        tme=[0.0, 1.0, 2.0],
        stm=[0.0, 0.0, 0.0],
    )
    fields.update(overrides)
    return ParameterRecord(**fields)


class TestSteadyStateInitializer(unittest.TestCase):
    def setUp(self):
        self.initializer = SteadyStateInitializer()

    def test_unit_parameters(self):
        steady_state = self.initializer.compute_constants(_unit_record())

        self.assertAlmostEqual(steady_state.gdark, 1.0)
        self.assertAlmostEqual(steady_state.cur2ca, 1.0)
        self.assertAlmostEqual(steady_state.smax, 2.0)

    def test_initial_state(self):
        record = _unit_record(eta=3.0, phi=2.0, cdark=0.7, darkCurrent=4.0)
        steady_state = self.initializer.compute_constants(record)
        state = steady_state.initial_state

        self.assertEqual(state.r, 0.0)
        self.assertAlmostEqual(state.p, 1.5)
        self.assertAlmostEqual(state.c, 0.7)
        self.assertAlmostEqual(state.g, steady_state.gdark)
        self.assertAlmostEqual(state.s, steady_state.gdark * 1.5)

    def test_supplied_gdark_is_overwritten(self):
        record = _unit_record(gdark=123.0, darkCurrent=8.0, k=1.0, n=4.0)
        steady_state = self.initializer.compute_constants(record)

        # (2 * 8 / 1) ** (1 / 4) == 2
        self.assertAlmostEqual(steady_state.gdark, 2.0)

    def test_dark_current_consistency(self):
        # k * gdark ** n must give back twice the dark current
        record = _unit_record(k=0.02, n=3.0, darkCurrent=86.15)
        steady_state = self.initializer.compute_constants(record)

        np.testing.assert_allclose(0.02 * steady_state.gdark**3.0, 2 * 86.15)

    def test_smax_with_hill_feedback(self):
        record = _unit_record(eta=2000.0, phi=22.0, cdark=1.0, hillaffinity=0.5, hillcoef=4.0)
        steady_state = self.initializer.compute_constants(record)

        expected = (2000.0 / 22.0) * steady_state.gdark * (1 + 2.0**4)
        self.assertAlmostEqual(steady_state.smax, expected)

    def test_zero_dark_current_raises(self):
        with self.assertRaises(DomainError):
            self.initializer.compute_constants(_unit_record(darkCurrent=0.0))

    def test_non_positive_k_raises(self):
        with self.assertRaises(DomainError):
            self.initializer.compute_constants(_unit_record(k=0.0))
        with self.assertRaises(DomainError):
            self.initializer.compute_constants(_unit_record(k=-1.0))

    def test_non_positive_n_raises(self):
        with self.assertRaises(DomainError):
            self.initializer.compute_constants(_unit_record(n=0.0))

    def test_negative_base_raises(self):
        with self.assertRaises(DomainError):
            self.initializer.compute_constants(_unit_record(darkCurrent=-1.0, n=3.0))

    def test_negative_dark_current_raises_for_integer_root(self):
        # n = 1 would give a real but negative gdark
        with self.assertRaisesRegex(DomainError, "same sign"):
            self.initializer.compute_constants(_unit_record(darkCurrent=-1.0, n=1.0))


if __name__ == "__main__":
    unittest.main()
