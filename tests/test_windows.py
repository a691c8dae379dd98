"""Unit tests for window shapes, COLA repeats and Dolph-Chebyshev synthesis."""

from __future__ import annotations

import math
import unittest

import numpy as np

from spectrum_analyzer.dsp.windows import (
    WindowFunction,
    WindowKind,
    bartlett,
    bin_weights,
    boxcar,
    chebyshev_t,
    dolph_chebyshev_window,
    hamming,
    welch,
)


class TestBinWeights(unittest.TestCase):
    """Tests for integrated window shapes."""

    def test_boxcar_is_flat(self) -> None:
        """BoxCar integrates to exactly 1.0 everywhere, so no renormalization."""
        np.testing.assert_array_equal(bin_weights(boxcar, 7), np.ones(7))

    def test_shapes_peak_at_one_and_are_symmetric(self) -> None:
        """Integrated shapes are normalized to a peak of 1.0 and mirror-symmetric."""
        for fn in (welch, bartlett, hamming):
            for n in (8, 9, 64):
                w = bin_weights(fn, n)
                self.assertAlmostEqual(w.max(), 1.0, places=12)
                np.testing.assert_allclose(w, w[::-1], atol=1e-9)
                self.assertTrue(np.all(w > 0.0))

    def test_bartlett_sub_sampling(self) -> None:
        """Two Bartlett bins integrate each half of the triangle equally."""
        w = bin_weights(bartlett, 2)
        np.testing.assert_allclose(w, [1.0, 1.0])

    def test_hamming_edges_above_toe(self) -> None:
        """Integrated Hamming edges stay above the 0.087 toe value."""
        w = bin_weights(hamming, 32)
        self.assertGreater(w[0], 0.087 / w.max())


class TestChebyshev(unittest.TestCase):
    """Tests for Chebyshev polynomial evaluation across domains."""

    def test_matches_trig_definition_inside(self) -> None:
        """Clenshaw agrees with cos(n acos x) on [-1, 1]."""
        xs = np.linspace(-1.0, 1.0, 41)
        for n in (0, 1, 2, 5, 12, 31):
            np.testing.assert_allclose(chebyshev_t(n, xs), np.cos(n * np.arccos(xs)), atol=1e-9)

    def test_outside_unit_interval(self) -> None:
        """Hyperbolic forms are used outside [-1, 1], with parity for x < -1."""
        self.assertAlmostEqual(chebyshev_t(2, 2.0), 2 * 4 - 1, places=9)
        self.assertAlmostEqual(chebyshev_t(3, -2.0), 4 * -8 - 3 * -2, places=9)
        self.assertAlmostEqual(chebyshev_t(4, -1.5), chebyshev_t(4, 1.5), places=9)


class TestDolphChebyshev(unittest.TestCase):
    """Tests for the Dolph-Chebyshev window."""

    def test_values_in_unit_interval_and_symmetric(self) -> None:
        """Values lie in (0, 1], peak at 1.0, and mirror exactly."""
        for n, att in ((10, 60.0), (11, 60.0), (200, 80.0), (31, 40.0), (12, 15.0), (2, 30.0)):
            w = dolph_chebyshev_window(n, att)
            self.assertEqual(len(w), n)
            self.assertTrue(np.all(w > 0.0), (n, att))
            self.assertTrue(np.all(w <= 1.0), (n, att))
            self.assertAlmostEqual(w.max(), 1.0, places=12)
            np.testing.assert_array_equal(w, w[::-1])

    def test_peak_in_center(self) -> None:
        """Odd windows peak on the middle sample."""
        w = dolph_chebyshev_window(31, 40.0)
        self.assertEqual(int(np.argmax(w)), 15)

    def test_side_lobes_at_attenuation(self) -> None:
        """The largest side lobe of the spectrum sits near the requested level."""
        n, att = 64, 50.0
        w = dolph_chebyshev_window(n, att)
        spectrum = np.abs(np.fft.rfft(w, 64 * n))
        spectrum /= spectrum.max()
        db = 20 * np.log10(np.maximum(spectrum, 1e-12))
        # First null ends the main lobe; everything past it is side lobe.
        first_null = int(np.argmax(np.diff(db) > 0))
        self.assertLess(db[first_null:].max(), -att + 1.0)
        self.assertGreater(db[first_null:].max(), -att - 3.0)

    def test_rejects_invalid(self) -> None:
        """Length below 2 and non-positive attenuation are construction errors."""
        with self.assertRaises(ValueError):
            dolph_chebyshev_window(1, 40.0)
        with self.assertRaises(ValueError):
            dolph_chebyshev_window(16, 0.0)
        with self.assertRaises(ValueError):
            WindowFunction.dolph_chebyshev(-3.0)


class TestWindowFunction(unittest.TestCase):
    """Tests for WindowFunction choices, COLA repeats and parsing."""

    def test_default_is_dolph_chebyshev_40(self) -> None:
        """The default window is Dolph-Chebyshev at 40 dB."""
        wf = WindowFunction()
        self.assertEqual(wf.kind, WindowKind.DOLPH_CHEBYSHEV)
        self.assertEqual(wf.attenuation_db, 40.0)

    def test_fixed_shapes_drop_attenuation(self) -> None:
        """Fixed shapes built directly from a kind equal their named constructors."""
        self.assertEqual(WindowFunction(WindowKind.HAMMING), WindowFunction.hamming())
        self.assertEqual(WindowFunction(WindowKind.WELCH, 60.0), WindowFunction.welch())
        self.assertIsNone(WindowFunction(WindowKind.BOXCAR).attenuation_db)
        self.assertEqual(str(WindowFunction(WindowKind.BARTLETT)), "bartlett")

    def test_cola_repeats(self) -> None:
        """COLA repeat intervals per window kind."""
        self.assertEqual(WindowFunction.boxcar().repeat(101), 51)
        self.assertEqual(WindowFunction.bartlett().repeat(100), 50)
        self.assertEqual(WindowFunction.hamming().repeat(7), 4)
        self.assertEqual(WindowFunction.welch().repeat(100), math.ceil(100 * 0.293))
        self.assertEqual(WindowFunction.dolph_chebyshev(60).repeat(3840), 960)
        self.assertEqual(WindowFunction.dolph_chebyshev(60).repeat(3841), 961)

    def test_build_is_read_only_float32(self) -> None:
        """Built windows carry float32 weights that cannot be modified."""
        window = WindowFunction.hamming().build(48)
        self.assertEqual(window.weights.dtype, np.float32)
        self.assertEqual(len(window), 48)
        self.assertEqual(window.repeat, 24)
        self.assertAlmostEqual(window.norm, float(window.weights.sum()), places=3)
        with self.assertRaises(ValueError):
            window.weights[0] = 2.0

    def test_parse(self) -> None:
        """Window names parse with an optional attenuation for Dolph-Chebyshev."""
        self.assertEqual(WindowFunction.parse("hamming"), WindowFunction.hamming())
        self.assertEqual(WindowFunction.parse("Dolph-Chebyshev:22.5").attenuation_db, 22.5)
        self.assertEqual(WindowFunction.parse("dolph-chebyshev"), WindowFunction())
        self.assertEqual(str(WindowFunction.dolph_chebyshev(22.5)), "dolph-chebyshev:22.5")
        with self.assertRaises(ValueError):
            WindowFunction.parse("kaiser")
        with self.assertRaises(ValueError):
            WindowFunction.parse("hamming:3")

    def test_norm_factors_are_neutral(self) -> None:
        """Normalization factors are 1.0 until calibrated."""
        for wf in (WindowFunction.boxcar(), WindowFunction()):
            self.assertEqual(wf.bandwidth_norm_factor(), 1.0)
            self.assertEqual(wf.amplitude_norm_factor(), 1.0)


if __name__ == "__main__":
    unittest.main(argv=[""], exit=False, verbosity=2)
