"""Unit tests for second-order sections, cascades and their design helpers."""

from __future__ import annotations

import math
import unittest
from typing import Tuple

import numpy as np

from spectrum_analyzer.dsp.filter_args import Filter, FilterArgs
from spectrum_analyzer.dsp.iir import (
    SECTION_TYPES,
    Biquad,
    Cascade,
    CytomicSvf,
    Svf,
    butterworth_q_factors,
    section_type,
    stagger_factors,
)
from spectrum_analyzer.dsp.signals import SineSweeper


def _center_and_off_peaks(filt: Filter, args: FilterArgs) -> Tuple[float, float]:
    """Peak |output| at center, then at 7.77x center after a drain."""
    sg = SineSweeper(args.center, args.fs)
    nsamples = sg.nsamples(64 + 2 * args.q)
    center_peak = max(abs(float(filt.process(next(sg)))) for _ in range(nsamples))
    sg.set_frequency(args.center * 7.77)
    for _ in range(nsamples):
        filt.process(next(sg))
    off_peak = max(abs(float(filt.process(next(sg)))) for _ in range(nsamples))
    return center_peak, off_peak


class TestSections(unittest.TestCase):
    """Tests for Biquad, Svf and CytomicSvf."""

    def test_unity_peak_on_center_and_lower_off_center(self) -> None:
        """Every section peaks near 1.0 on center and lower at 7.77x center."""
        args = FilterArgs(q=10.0, center=1024.0, stages=1)
        for cls in (Biquad, Svf, CytomicSvf):
            center_peak, off_peak = _center_and_off_peaks(cls.from_args(args), args)
            self.assertGreater(center_peak, 0.95, cls.__name__)
            self.assertLess(center_peak, 1.05, cls.__name__)
            self.assertLess(off_peak, center_peak, cls.__name__)

    def test_unity_peak_across_q_range(self) -> None:
        """Unity peak within 5% and off-center rejection hold from q=0.5 to q=1000."""
        for q in (0.5, 1.0, 100.0, 1000.0):
            args = FilterArgs(q=q, center=1000.0, stages=1)
            for cls in (Biquad, Svf, CytomicSvf):
                label = f"{cls.__name__} q={q}"
                center_peak, off_peak = _center_and_off_peaks(cls.from_args(args), args)
                self.assertGreater(center_peak, 0.95, label)
                self.assertLess(center_peak, 1.05, label)
                self.assertLess(off_peak, center_peak, label)

    def test_outputs_are_float32(self) -> None:
        """State and output stay in single precision."""
        for cls in (Biquad, Svf, CytomicSvf):
            y = cls(1000.0, 48_000.0, 8.0).process(1.0)
            self.assertIsInstance(y, np.float32)

    def test_stable_at_high_q_low_frequency(self) -> None:
        """q=1000 at 20 Hz stays finite and bounded after float32 truncation."""
        for cls in (Biquad, Svf, CytomicSvf):
            filt = cls(20.0, 48_000.0, 1000.0)
            sg = SineSweeper(20.0, 48_000.0)
            peak = 0.0
            for _ in range(24_000):
                y = float(filt.process(next(sg)))
                self.assertTrue(math.isfinite(y))
                peak = max(peak, abs(y))
            self.assertLess(peak, 1.05, cls.__name__)

    def test_section_registry(self) -> None:
        """Sections are looked up by name and unknown names are rejected."""
        self.assertIs(section_type("biquad"), Biquad)
        self.assertIs(section_type("SVF"), Svf)
        self.assertIs(section_type("cytomic"), CytomicSvf)
        self.assertEqual(set(SECTION_TYPES), {"biquad", "svf", "cytomic"})
        with self.assertRaises(ValueError):
            section_type("complex")


class TestDesignHelpers(unittest.TestCase):
    """Regression fixtures for Butterworth and stagger factors."""

    def test_butterworth_q_factors(self) -> None:
        """Butterworth section Q values for orders 8 and 6."""
        expected = {
            8: [0.5097955791041592, 0.6013448869350453, 0.8999762231364158, 2.5629154477415064],
            6: [0.5176380902050415, 0.7071067811865476, 1.9318516525781368],
        }
        for order, qs in expected.items():
            got = butterworth_q_factors(order)
            self.assertEqual(len(got), len(qs))
            for g, e in zip(got, qs):
                self.assertAlmostEqual(g, e, delta=0.01)

    def test_butterworth_requires_even_order(self) -> None:
        """Odd orders have no all-second-order decomposition."""
        with self.assertRaises(ValueError):
            butterworth_q_factors(5)

    def test_stagger_factors(self) -> None:
        """Stagger ratios alternate around 1.0 and match recorded values."""
        expected = [
            1.0332039355225888,
            0.9889877991404793,
            1.006897841709276,
            0.9948411863395327,
            1.0043286629924968,
            0.9961327873483008,
            1.0036871965774472,
        ]
        got = stagger_factors(8, 1.07)
        self.assertEqual(len(got), 7)
        for g, e in zip(got, expected):
            self.assertLess(abs(g - e) / e, 1e-4)

        got = stagger_factors(3, 1.07)
        np.testing.assert_allclose(got, [1.0490047831651481, 0.9803783020235028], rtol=1e-4)

        got = stagger_factors(2, 1.01)
        self.assertEqual(len(got), 1)
        self.assertAlmostEqual(got[0], 1.01, places=9)

        self.assertEqual(stagger_factors(1, 1.07), [])


class TestCascade(unittest.TestCase):
    """Tests for Cascade construction and response."""

    def test_stage_centers_pop_from_end(self) -> None:
        """Stages take stagger factors from the end; the last is exactly on center."""
        args = FilterArgs(q=8.0, center=1000.0, stages=3, stagger=1.07)
        cascade = Cascade.from_args(args)
        centers = [s.center for s in cascade.sections]
        self.assertEqual(len(cascade), 3)
        self.assertAlmostEqual(centers[0], 1000.0 * 0.9803783020235028, delta=0.1)
        self.assertAlmostEqual(centers[1], 1000.0 * 1.0490047831651481, delta=0.1)
        self.assertEqual(centers[2], 1000.0)
        self.assertTrue(all(isinstance(s, CytomicSvf) for s in cascade.sections))

    def test_q_spread(self) -> None:
        """Stage q is scaled by sqrt(1/stages) and optionally by Butterworth ratios."""
        args = FilterArgs(q=8.0, center=1000.0, stages=4)
        plain = Cascade.from_args(args, Biquad)
        for s in plain.sections:
            self.assertAlmostEqual(s.q, 4.0)

        butter_args = FilterArgs(q=8.0, center=1000.0, stages=4, butterworth=True)
        butter = Cascade.from_args(butter_args, Svf)
        expected = [4.0 * b for b in butterworth_q_factors(8)]
        np.testing.assert_allclose([s.q for s in butter.sections], expected)

    def test_cascade_peak_and_rejection(self) -> None:
        """A staggered cascade peaks near unity on center and rejects 7.77x center."""
        args = FilterArgs(q=8.0, center=1000.0, stages=4, stagger=1.01)
        for cls in (Biquad, Svf, CytomicSvf):
            center_peak, off_peak = _center_and_off_peaks(Cascade.from_args(args, cls), args)
            self.assertGreater(center_peak, 0.9, cls.__name__)
            self.assertLess(center_peak, 1.05, cls.__name__)
            self.assertLess(off_peak, 0.1 * center_peak, cls.__name__)

    def test_post_gain(self) -> None:
        """The gain factor scales the final output."""
        args = FilterArgs(q=8.0, center=1000.0, stages=2)
        unity = Cascade.from_args(args)
        doubled = Cascade.from_args(FilterArgs(q=8.0, center=1000.0, stages=2, gain_factor=2.0))
        sg = SineSweeper(1000.0, 48_000.0)
        for _ in range(200):
            x = next(sg)
            self.assertAlmostEqual(float(doubled.process(x)), 2 * float(unity.process(x)), places=5)

    def test_rejects_empty(self) -> None:
        """A cascade without stages cannot be built."""
        with self.assertRaises(ValueError):
            Cascade([])


if __name__ == "__main__":
    unittest.main(argv=[""], exit=False, verbosity=2)
