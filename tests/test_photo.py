"""
Unit tests for photo decode and cover-fit cropping.
"""

import pytest
from PIL import Image

from memorial_preview.errors import DecodeFailedError
from memorial_preview.photo import ImageTransform, PhotoCrop, cover_rect, decode_image


class TestCoverRect:
    """Test the cover-fit source rectangle."""

    def test_zoomed_pan_to_corner(self):
        rect = cover_rect(1000, 1000, 100, 200, zoom=2, pan_x=0, pan_y=1)
        assert (rect.x, rect.y, rect.width, rect.height) == (0, 500, 250, 500)

    def test_wide_image_crops_sides(self):
        rect = cover_rect(2000, 1000, 100, 100)
        assert (rect.x, rect.y, rect.width, rect.height) == (500, 0, 1000, 1000)

    def test_tall_image_crops_top_and_bottom(self):
        rect = cover_rect(1000, 2000, 200, 100)
        assert (rect.x, rect.y, rect.width, rect.height) == (0, 750, 1000, 500)

    @pytest.mark.parametrize('zoom', [1.0, 1.7, 3.0])
    @pytest.mark.parametrize('pan', [(0, 0), (0.5, 0.5), (1, 1), (0.2, 0.9)])
    @pytest.mark.parametrize('dest', [(100, 200), (300, 100), (64, 64)])
    def test_always_inside_image(self, zoom, pan, dest):
        rect = cover_rect(1200, 800, dest[0], dest[1], zoom, pan[0], pan[1])
        assert rect.x >= 0 and rect.y >= 0
        assert rect.x + rect.width <= 1200 + 1e-9
        assert rect.y + rect.height <= 800 + 1e-9
        assert rect.width / rect.height == pytest.approx(dest[0] / dest[1])


class TestDecodeImage:

    def test_decodes_png(self, make_photo):
        image = decode_image(make_photo(size=(30, 20)))
        assert image.size == (30, 20)
        assert image.mode == 'RGB'

    def test_garbage_raises(self):
        with pytest.raises(DecodeFailedError) as exc_info:
            decode_image(b'definitely not a photo', 'panel2')
        assert exc_info.value.details['region_id'] == 'panel2'
        assert exc_info.value.details['size_bytes'] == 22

    def test_oversized_pixel_count_raises(self, make_photo, monkeypatch):
        data = make_photo(size=(120, 80))
        monkeypatch.setattr(Image, 'MAX_IMAGE_PIXELS', 100)

        with pytest.raises(DecodeFailedError):
            decode_image(data)


class TestImageTransform:
    """Test per-region photo state."""

    def test_crop_is_clamped(self):
        transform = ImageTransform()
        crop = transform.set_crop('photo', 5, -1, 2)
        assert crop == PhotoCrop(zoom=3.0, pan_x=0.0, pan_y=1.0)

    def test_focal_hint_sets_initial_pan(self, make_photo):
        transform = ImageTransform()
        transform.set_image('photo', decode_image(make_photo()), '30% 60%')
        assert transform.get_crop('photo') == PhotoCrop(zoom=1.0, pan_x=0.3, pan_y=0.6)

    def test_reupload_keeps_crop(self, make_photo):
        transform = ImageTransform()
        transform.set_image('photo', decode_image(make_photo()))
        transform.set_crop('photo', 2, 0.1, 0.9)
        transform.set_image('photo', decode_image(make_photo(color=(0, 0, 255))), (0.5, 0.5))
        assert transform.get_crop('photo') == PhotoCrop(zoom=2.0, pan_x=0.1, pan_y=0.9)

    def test_superseded_load_is_discarded(self, make_photo):
        transform = ImageTransform()
        first = transform.begin_load('photo')
        second = transform.begin_load('photo')

        assert not transform.set_image('photo', decode_image(make_photo()), ticket=first)
        assert not transform.has_image('photo')
        assert transform.set_image('photo', decode_image(make_photo()), ticket=second)
        assert transform.has_image('photo')

    def test_tickets_are_per_region(self):
        transform = ImageTransform()
        ticket = transform.begin_load('photo')
        transform.begin_load('panel2')
        assert transform.is_current('photo', ticket)

    def test_no_state_no_rect(self):
        transform = ImageTransform()
        assert transform.get_crop('photo') is None
        assert transform.cover_rect('photo', 100, 100) is None
