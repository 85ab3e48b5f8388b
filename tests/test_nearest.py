#!/usr/bin/env python3
"""
Test suite for nearest-colour classification.
"""

import numpy as np
import pytest

from chromatrace.nearest import NearestColorClassifier

PALETTE = ['#000000', '#808080', '#ffffff']


@pytest.fixture
def classifier():
    return NearestColorClassifier(PALETTE)


class TestNearestColorClassifier:
    """Test palette lookups."""

    @pytest.mark.parametrize('color', PALETTE)
    def test_palette_color_maps_to_itself(self, classifier, color):
        assert classifier.classify(color) == color

    def test_nearest(self, classifier):
        assert classifier.classify('#101010') == '#000000'
        assert classifier.classify((120, 130, 140)) == '#808080'
        assert classifier.classify('#f0f0f0') == '#ffffff'

    def test_tie_prefers_first_entry(self):
        classifier = NearestColorClassifier(['#000000', '#020202'])
        assert classifier.classify('#010101') == '#000000'

    def test_duplicates_are_dropped(self):
        classifier = NearestColorClassifier(['#000000', '#000', '#ffffff'])
        assert len(classifier) == 2
        assert classifier.colors == ('#000000', '#ffffff')

    def test_empty_palette(self):
        with pytest.raises(ValueError):
            NearestColorClassifier([])

    def test_classify_pixels(self, classifier):
        pixels = np.array([[0, 0, 0], [250, 250, 250], [128, 128, 128], [100, 90, 110]])
        labels = classifier.classify_pixels(pixels)
        assert labels.tolist() == [0, 2, 1, 1]

    def test_classify_many_pixels(self, classifier, monkeypatch):
        monkeypatch.setattr('chromatrace.nearest.CHUNK_SIZE', 3)
        pixels = np.repeat(np.array([[255, 255, 255], [5, 5, 5]]), 5, axis=0)
        labels = classifier.classify_pixels(pixels)
        assert labels.tolist() == [2] * 5 + [0] * 5
