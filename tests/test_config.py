"""
Unit tests for configuration and template loading.
"""

import json

import pytest
import yaml
from pydantic import ValidationError as PydanticValidationError

from memorial_preview.config import (
    PACKAGE_TEMPLATE_DIR, AppConfig, StylePalette, TemplateDescriptor, load_config, load_template
)
from memorial_preview.errors import ConfigurationError, TemplateNotFoundError


@pytest.fixture
def config_dir(tmp_path):
    (tmp_path / 'settings.yaml').write_text(yaml.safe_dump({
        'LOG_LEVEL': 'INFO',
        'GRID_GAP_PX': 4,
        'PROOF_QUALITY': 85,
    }))
    (tmp_path / 'settings_staging.yaml').write_text(yaml.safe_dump({
        'GRID_GAP_PX': 8,
    }))
    return tmp_path


class TestLoadConfig:

    def test_defaults_without_files(self, tmp_path):
        config = load_config('development', str(tmp_path))
        assert config.MIN_TRACK_WEIGHT == 0.3
        assert config.DEFAULT_LAYOUT == 'side-by-side'

    def test_environment_file_overrides_base(self, config_dir):
        config = load_config('staging', str(config_dir))
        assert config.ENVIRONMENT == 'staging'
        assert config.GRID_GAP_PX == 8
        assert config.PROOF_QUALITY == 85

    def test_environment_variables_win(self, config_dir, monkeypatch):
        monkeypatch.setenv('MEMORIAL_PREVIEW_LOG_LEVEL', 'DEBUG')
        monkeypatch.setenv('MEMORIAL_PREVIEW_DEVICE_SCALE', '2')
        config = load_config('staging', str(config_dir))
        assert config.LOG_LEVEL == 'DEBUG'
        assert config.DEVICE_SCALE == 2.0

    def test_invalid_values_fall_back_to_defaults(self, tmp_path):
        (tmp_path / 'settings.yaml').write_text(yaml.safe_dump({'DECODE_WORKERS': 'many'}))
        config = load_config('development', str(tmp_path))
        assert config == AppConfig()


class TestTemplates:
    """Test template descriptor loading."""

    def test_bundled_template(self):
        template = load_template('pet-memorial', str(PACKAGE_TEMPLATE_DIR))

        assert template.default_layout == 'side-by-side'
        assert set(template.style_variants) == {'classic-dark', 'warm-natural', 'soft-light'}
        assert template.default_palette() == StylePalette()
        assert template.tribute_mapping.name == 'petName'

    def test_json_template(self, tmp_path):
        (tmp_path / 'plain.json').write_text(json.dumps({
            'id': 'plain',
            'memory_fields': [{'id': 'petName', 'default': 'Buddy'}, {'id': 'poemText'}],
        }))
        template = load_template('plain', str(tmp_path))

        assert template.default_fields() == {'petName': 'Buddy'}
        # no palettes: built-in classic dark
        assert template.default_palette() == StylePalette()

    def test_missing_template(self, tmp_path):
        with pytest.raises(TemplateNotFoundError):
            load_template('wedding', str(tmp_path))

    def test_invalid_template(self, tmp_path):
        (tmp_path / 'broken.yaml').write_text(yaml.safe_dump({'name': 'no id'}))
        with pytest.raises(ConfigurationError):
            load_template('broken', str(tmp_path))

    def test_palette_is_frozen(self):
        with pytest.raises(PydanticValidationError):
            StylePalette().background = '#000000'

    def test_descriptor_defaults(self):
        template = TemplateDescriptor(id='t')
        assert template.text_panel_field == 'panel2Text'
