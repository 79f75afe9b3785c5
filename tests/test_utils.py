"""
Unit tests for utility helpers.
"""

import pytest

from memorial_preview.utils import (
    clamp, hex_to_rgb, parse_aspect_ratio, parse_focal_hint, parse_frame_sku, round_half_up
)


class TestRoundHalfUp:

    @pytest.mark.parametrize('value, expected', [
        (0.5, 1), (1.5, 2), (2.5, 3), (2.4999, 2), (10.5, 11), (0.0, 0),
    ])
    def test_halves_round_up(self, value, expected):
        assert round_half_up(value) == expected


class TestParsing:

    def test_aspect_ratio(self):
        assert parse_aspect_ratio('5/3.8') == (5.0, 3.8)

    @pytest.mark.parametrize('ratio', ['5', '5/0', 'a/b'])
    def test_bad_aspect_ratio(self, ratio):
        with pytest.raises(ValueError):
            parse_aspect_ratio(ratio)

    @pytest.mark.parametrize('sku, expected', [
        ('framed-11x14', (11.0, 14.0)),
        ('memorial-framed-8.5x11-black', (8.5, 11.0)),
        ('canvas-16x20', None),
        ('', None),
        (None, None),
    ])
    def test_frame_sku(self, sku, expected):
        assert parse_frame_sku(sku) == expected

    def test_focal_hint_string(self):
        assert parse_focal_hint('25% 75%') == (0.25, 0.75)

    def test_focal_hint_clamped(self):
        assert parse_focal_hint((1.4, -0.2)) == (1.0, 0.0)

    @pytest.mark.parametrize('hint', ['center', '10px 20px', None])
    def test_focal_hint_unusable(self, hint):
        assert parse_focal_hint(hint) is None


class TestColors:

    def test_hex(self):
        assert hex_to_rgb('#C4A882') == (196, 168, 130)

    def test_clamp(self):
        assert clamp(5, 0, 3) == 3
        assert clamp(-1, 0, 3) == 0
