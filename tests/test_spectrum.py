"""Tests for line sampling and the spectrum stages.

Covers column choice, luminance/derivative signals, DFT magnitudes,
aggregation bounds, Gaussian smoothing and peak picking.
"""

from __future__ import annotations

import numpy as np
import pytest

from helpers import CELL, make_soft_pixel_art, make_tiled_rows
from pixel_pitch.errors import InsufficientSignalError
from pixel_pitch.raster import RasterImage
from pixel_pitch.sampling import (
    choose_columns,
    derivative,
    luminance,
    sample_lines,
)
from pixel_pitch.spectrum import (
    analyze_line,
    combine_spectra,
    find_dominant_frequency,
    gaussian_kernel,
    gaussian_smooth,
    magnitude_spectrum,
    pitch_from_frequency,
)
from pixel_pitch.analyzer import analyze_spectrum

TILE = np.array([0.0, 200.0, 60.0, 255.0])


# ---------------------------------------------------------------------------
# Tests: line sampling
# ---------------------------------------------------------------------------


class TestLineSampling:
    def test_columns_are_distinct_and_in_range(self):
        columns = choose_columns(100, 30, rng=3)
        assert len(columns) == 30
        assert len(set(columns)) == 30, f"Duplicate columns: {columns}"
        assert all(0 <= x < 100 for x in columns)

    def test_narrow_image_caps_at_width(self):
        columns = choose_columns(5, 30, rng=1)
        assert sorted(columns) == [0, 1, 2, 3, 4]

    def test_zero_width_gives_no_columns(self):
        assert choose_columns(0, 30, rng=1) == []

    def test_seed_is_reproducible(self):
        assert choose_columns(500, 30, rng=11) == choose_columns(500, 30, rng=11)

    def test_generator_is_accepted(self):
        rng = np.random.default_rng(5)
        columns = choose_columns(50, 10, rng=rng)
        assert len(set(columns)) == 10

    def test_luminance_ignores_alpha(self):
        pixels = np.array([[[30, 60, 90, 0]], [[0, 0, 3, 255]]], dtype=np.uint8)
        lum = luminance(pixels, 0)
        assert lum.tolist() == pytest.approx([60.0, 1.0])

    def test_derivative_is_absolute_difference(self):
        assert derivative(np.array([0.0, 10.0, 4.0])).tolist() == [10.0, 6.0]

    def test_derivative_of_single_sample_is_empty(self):
        assert derivative(np.array([7.0])).size == 0

    def test_single_row_lines_are_empty(self):
        raster = RasterImage.from_array(np.zeros((1, 8, 3), dtype=np.uint8))
        lines = sample_lines(raster, [0, 3])
        assert all(line.is_empty for line in lines)
        assert all(line.luminance.size == 1 for line in lines)


# ---------------------------------------------------------------------------
# Tests: DFT magnitudes and aggregation
# ---------------------------------------------------------------------------


class TestSpectrum:
    def test_impulse_has_flat_spectrum(self):
        mags = magnitude_spectrum(np.array([1.0, 0.0, 0.0, 0.0, 0.0]))
        assert mags.shape == (5,), "Transform length must equal input length"
        assert np.allclose(mags, 1.0)

    def test_constant_signal_is_pure_dc(self):
        mags = magnitude_spectrum(np.full(4, 2.0))
        assert np.allclose(mags, [8.0, 0.0, 0.0, 0.0])

    def test_empty_signal(self):
        assert magnitude_spectrum(np.zeros(0)).size == 0

    def test_analyze_line_length_is_height_minus_one(self):
        raster = RasterImage.from_array(np.zeros((20, 4, 3), dtype=np.uint8))
        assert analyze_line(raster, 2).magnitudes.size == 19

    def test_combine_sums_overlapping_bins(self):
        combined = combine_spectra([np.ones(10), np.full(4, 2.0)], height=16)
        assert combined.tolist() == [3.0, 3.0, 3.0, 3.0, 1.0, 1.0, 1.0, 1.0]

    def test_combine_length_is_at_least_one(self):
        combined = combine_spectra([np.ones(10)], height=1)
        assert combined.size == 1

    def test_combine_respects_upper_bound(self):
        combined = combine_spectra([np.ones(100)], height=1000, max_bins=10)
        assert combined.size == 10

    def test_combine_length_bounds(self):
        rng = np.random.default_rng(0)
        for _ in range(25):
            height = int(rng.integers(2, 300))
            lengths = rng.integers(0, height, size=5)
            lengths[0] = max(lengths[0], 1)
            spectra = [np.ones(int(n)) for n in lengths]
            combined = combine_spectra(spectra, height)
            assert 1 <= combined.size <= max(1, min(int(lengths.max()), height // 2))

    @pytest.mark.parametrize("spectra", [[], [np.zeros(0), np.zeros(0)]])
    def test_combine_without_signal_raises(self, spectra):
        with pytest.raises(InsufficientSignalError):
            combine_spectra(spectra, height=1)


# ---------------------------------------------------------------------------
# Tests: Gaussian smoothing
# ---------------------------------------------------------------------------


class TestSmoothing:
    def test_even_kernel_size_rounds_up(self):
        kernel = gaussian_kernel(2.0, 6)
        assert kernel.size == 7
        assert kernel.sum() == pytest.approx(1.0)
        assert np.allclose(kernel, kernel[::-1])

    def test_impulse_reproduces_kernel(self):
        impulse = np.zeros(7)
        impulse[3] = 1.0
        assert np.allclose(gaussian_smooth(impulse), gaussian_kernel())

    @pytest.mark.parametrize("length", [1, 2, 3, 6, 7, 8, 50])
    def test_length_is_preserved(self, length):
        assert gaussian_smooth(np.ones(length)).size == length

    def test_constant_interior_is_preserved(self):
        smoothed = gaussian_smooth(np.full(20, 4.0))
        assert np.allclose(smoothed[3:-3], 4.0)

    def test_edges_use_partial_kernel(self):
        smoothed = gaussian_smooth(np.full(20, 4.0))
        assert smoothed[0] < smoothed[1] < smoothed[2] < 4.0
        assert smoothed[-1] == pytest.approx(smoothed[0])

    def test_normalized_edges_preserve_constants(self):
        for length in (1, 4, 20):
            smoothed = gaussian_smooth(np.full(length, 4.0), normalize_edges=True)
            assert np.allclose(smoothed, 4.0)

    def test_invalid_sigma(self):
        with pytest.raises(ValueError):
            gaussian_smooth(np.ones(5), sigma=0.0)


# ---------------------------------------------------------------------------
# Tests: peak detection
# ---------------------------------------------------------------------------


class TestPeakDetection:
    def test_left_most_maximum_wins(self):
        values = np.array([9.0, 9.0, 9.0, 9.0, 9.0, 1.0, 3.0, 3.0, 2.0])
        assert find_dominant_frequency(values) == 6

    def test_low_bins_are_skipped(self):
        values = np.array([100.0, 50.0, 0.0, 0.0, 0.0, 0.0, 0.5])
        assert find_dominant_frequency(values) == 6

    def test_too_short_spectrum(self):
        assert find_dominant_frequency(np.ones(5)) == 0

    def test_non_positive_spectrum(self):
        assert find_dominant_frequency(np.zeros(12)) == 0
        assert find_dominant_frequency(-np.ones(12)) == 0

    def test_pitch_from_frequency(self):
        assert pitch_from_frequency(64, 8) == 8.0
        assert pitch_from_frequency(64, 0) is None


# ---------------------------------------------------------------------------
# Tests: detection on periodic patterns
# ---------------------------------------------------------------------------


class TestPeriodicDetection:
    def test_soft_cells_give_cell_count(self):
        img = make_soft_pixel_art(np.zeros((16, 8), dtype=np.int32))
        analysis = analyze_spectrum(img, rng=0)
        assert analysis.combined.size == img.shape[0] // 2
        assert analysis.dominant_frequency == 16, (
            f"Expected 16 grid rows, got {analysis.dominant_frequency}"
        )

    def test_hard_edged_rows_across_seeds(self):
        img = make_tiled_rows(TILE, height=64, width=48)
        hits = 0
        for seed in range(50):
            frequency = analyze_spectrum(img, rng=seed).dominant_frequency
            if frequency and abs(round(64 / frequency) - len(TILE)) <= 1:
                hits += 1
        assert hits >= 45, f"Only {hits}/50 seeds recovered the row period"

    def test_columns_with_their_own_levels(self):
        # each column rolls the tile and scales its contrast; with 65 rows the
        # derivative spans exactly 16 periods in every column
        gains = 0.4 + 0.15 * (np.arange(48) % 5)
        pattern = np.stack(
            [np.round(np.roll(TILE, x % 4) * gains[x]) for x in range(48)], axis=1
        )
        img = make_tiled_rows(pattern, height=65, width=48)
        assert len({img[:, x, 0].tobytes() for x in range(48)}) > 1

        for seed in range(50):
            analysis = analyze_spectrum(img, rng=seed)
            assert analysis.dominant_frequency == 16, f"seed {seed}"
            assert round(65 / analysis.dominant_frequency) == len(TILE)

    def test_soft_cells_across_seeds(self):
        img = make_soft_pixel_art(np.zeros((12, 6), dtype=np.int32))
        height = img.shape[0]
        for seed in range(10):
            frequency = analyze_spectrum(img, rng=seed).dominant_frequency
            assert round(height / frequency) == CELL
