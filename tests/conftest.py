"""
Pytest configuration and fixtures for memorial preview tests.

Provides shared fixtures: a test configuration, the bundled template,
a deterministic text measurement function and in-memory photos.
"""

import io

import pytest
from PIL import Image

from memorial_preview.config import PACKAGE_TEMPLATE_DIR, AppConfig, load_template
from memorial_preview.fonts import FontBook
from memorial_preview.renderer import PreviewRenderer, SurfaceHandle


def fixed_width_measure(text: str, font_px: int, face: str) -> float:
    """Every character is half an em wide, whatever the face"""
    return len(text) * font_px * 0.5


class FixedWidthFontBook(FontBook):
    """Real Pillow fonts for drawing, fixed-width metrics for layout"""

    def measure(self, text: str, font_px: int, face: str) -> float:
        # still raises MeasurementUnavailableError until load() has run
        self.font(face, font_px)
        return fixed_width_measure(text, font_px, face)


@pytest.fixture(scope='session')
def sample_config():
    """Synchronous configuration with no font directories."""
    return AppConfig(
        ENVIRONMENT='testing',
        LOG_LEVEL='DEBUG',
        ASYNC_DECODE=False,
        FONT_DIRS=[],
        MAX_UPLOAD_SIZE=5 * 1024 * 1024,
        PROOF_WIDTH_PX=400,
    )


@pytest.fixture(scope='session')
def template():
    """The bundled pet memorial template."""
    return load_template('pet-memorial', str(PACKAGE_TEMPLATE_DIR))


@pytest.fixture
def measure():
    return fixed_width_measure


@pytest.fixture(scope='session')
def font_book(sample_config):
    return FixedWidthFontBook(sample_config).load()


@pytest.fixture
def renderer(sample_config, template, font_book):
    """Renderer initialized at 400px wide and flushed once."""
    preview = PreviewRenderer(config=sample_config, fonts=font_book)
    preview.init(SurfaceHandle(width_px=400, device_scale=1.0), template)
    preview.flush()
    yield preview
    preview.close()


@pytest.fixture
def make_photo():
    """Factory for encoded in-memory photos."""
    def _make(size=(120, 80), color=(200, 30, 30), fmt='PNG') -> bytes:
        buffer = io.BytesIO()
        Image.new('RGB', size, color).save(buffer, format=fmt)
        return buffer.getvalue()
    return _make


@pytest.fixture
def long_poem():
    return ' '.join(['remembering'] * 40)
