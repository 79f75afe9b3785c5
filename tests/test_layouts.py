"""
Unit tests for the layout catalog.
"""

import pytest

from memorial_preview.errors import UnknownLayoutError
from memorial_preview.layouts import AREA_ROLES, LAYOUTS, LayoutCatalog, RegionRole


class TestLayoutDefinitions:
    """Every catalog entry must be a well-formed grid."""

    @pytest.mark.parametrize('layout_id', sorted(LAYOUTS))
    def test_area_grid_matches_tracks(self, layout_id):
        layout = LAYOUTS[layout_id]
        assert len(layout.areas) == len(layout.rows)
        assert all(len(row) == len(layout.columns) for row in layout.areas)

    @pytest.mark.parametrize('layout_id', sorted(LAYOUTS))
    def test_every_area_has_a_role(self, layout_id):
        layout = LAYOUTS[layout_id]
        names = layout.area_names()
        assert len(names) == layout.region_count
        assert all(name in AREA_ROLES for name in names)

    @pytest.mark.parametrize('layout_id', sorted(LAYOUTS))
    def test_areas_are_rectangles(self, layout_id):
        layout = LAYOUTS[layout_id]
        for name in layout.area_names():
            r0, c0, r1, c1 = layout.cell_span(name)
            for r in range(r0, r1 + 1):
                for c in range(c0, c1 + 1):
                    assert layout.areas[r][c] == name

    def test_hero_left_spans_photo(self):
        assert LAYOUTS['hero-left'].cell_span('photo') == (0, 0, 1, 0)
        assert LAYOUTS['hero-left'].columns == (1.15, 1.0)

    def test_aspect(self):
        assert LAYOUTS['side-by-side'].aspect == (5.0, 3.2)
        assert LAYOUTS['side-by-side'].is_landscape
        assert not LAYOUTS['stacked'].is_landscape


class TestLayoutCatalog:

    def test_list_available(self):
        catalog = LayoutCatalog()
        assert [l.id for l in catalog.list_available(2)] == ['side-by-side', 'stacked']
        assert len(catalog.list_available(3)) == 4

    def test_require_unknown(self):
        with pytest.raises(UnknownLayoutError) as exc_info:
            LayoutCatalog().require('mosaic')
        assert exc_info.value.details['layout_id'] == 'mosaic'
        assert 'side-by-side' in exc_info.value.details['available']

    @pytest.mark.parametrize('two_panel, three_panel', [
        ('side-by-side', 'hero-left'),
        ('stacked', 'hero-top'),
    ])
    def test_third_panel_round_trip(self, two_panel, three_panel):
        catalog = LayoutCatalog()
        assert catalog.with_third_panel(two_panel) == three_panel
        assert catalog.without_third_panel(three_panel) == two_panel

    def test_third_panel_removal_from_photo_layouts(self):
        catalog = LayoutCatalog()
        assert catalog.without_third_panel('photos-left') == 'side-by-side'
        assert catalog.without_third_panel('tribute-top') == 'stacked'
        assert catalog.with_third_panel('photos-left') == 'photos-left'

    def test_roles(self):
        assert AREA_ROLES['tribute'] == RegionRole.TRIBUTE
        assert AREA_ROLES['panel2'] == RegionRole.PHOTO
