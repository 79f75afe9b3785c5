"""
Configuration management for the memorial preview renderer
Loads settings and template descriptors from YAML files with environment variable overrides
"""

import json
import os
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from loguru import logger
from pydantic import BaseModel, Field

from memorial_preview.errors import ConfigurationError, TemplateNotFoundError

PACKAGE_TEMPLATE_DIR = Path(__file__).parent / "templates"


class AppConfig(BaseModel):
    """Main renderer configuration"""

    ENVIRONMENT: str = "development"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    # Surface
    DEVICE_SCALE: float = 1.0
    DEFAULT_LAYOUT: str = "side-by-side"
    GRID_GAP_PX: float = 0.0
    MIN_TRACK_WEIGHT: float = 0.3

    # Photo decode
    ASYNC_DECODE: bool = True
    DECODE_WORKERS: int = 1
    MAX_UPLOAD_SIZE: int = 20 * 1024 * 1024  # 20MB

    # Fonts (file names searched in FONT_DIRS, then the system font path)
    FONT_DIRS: List[str] = ["assets/fonts"]
    FONT_SERIF_LIGHT: str = "CormorantGaramond-Light.ttf"
    FONT_SERIF_MEDIUM: str = "CormorantGaramond-Medium.ttf"
    FONT_SERIF_ITALIC: str = "CormorantGaramond-LightItalic.ttf"
    FONT_SERIF_ITALIC_REGULAR: str = "CormorantGaramond-Italic.ttf"
    FONT_SANS: str = "SourceSans3-Regular.ttf"

    # Templates
    TEMPLATE_DIR: str = str(PACKAGE_TEMPLATE_DIR)

    # Proofs
    PROOF_WIDTH_PX: int = 1600
    PROOF_QUALITY: int = 85
    PROOF_WATERMARK_TEXT: str = "PROOF"
    PROOF_OUTPUT_DIR: str = "output/proofs"


class StylePalette(BaseModel):
    """One visual theme; swapped as a whole, never patched"""
    background: str = "#1a1a1a"
    name: str = "#FAF8F5"
    dates: str = "#9B9590"
    divider: str = "#C4A882"
    poem: str = "#C4A882"
    nickname: str = "#9B9590"
    family: str = "#9B9590"

    model_config = {"frozen": True}


class TributeMapping(BaseModel):
    """Maps tribute slots to the template's field ids"""
    name: str = "petName"
    nickname: str = "petNicknames"
    family_name: str = "familyName"
    family_prefix: str = "Beloved companion of"
    birth_date: str = "birthDate"
    pass_date: str = "passDate"
    poem_text: str = "poemText"


class MemoryField(BaseModel):
    """Form field definition; only the id and default matter to the renderer"""
    id: str
    label: str = ""
    type: str = "text"
    default: Optional[str] = None


class TemplateDescriptor(BaseModel):
    """Template definition the host hands to the renderer"""
    id: str
    name: str = ""
    default_style: str = "classic-dark"
    default_layout: str = "side-by-side"
    style_variants: Dict[str, StylePalette] = Field(default_factory=dict)
    memory_fields: List[MemoryField] = []
    tribute_mapping: TributeMapping = Field(default_factory=TributeMapping)
    text_panel_field: str = "panel2Text"
    poem_label: str = "Poem"

    def default_palette(self) -> StylePalette:
        return self.style_variants.get(self.default_style, StylePalette())

    def default_fields(self) -> Dict[str, str]:
        return {mf.id: mf.default for mf in self.memory_fields if mf.default}


def load_yaml_config(file_path: str) -> Dict:
    """Load configuration from YAML file"""
    path = Path(file_path)
    if not path.exists():
        logger.debug(f"Config file not found: {file_path}")
        return {}

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}
    except Exception as e:
        logger.error(f"Error loading config file {file_path}: {e}")
        return {}


def load_config(environment: str = "development", config_dir: str = "config") -> AppConfig:
    """Load configuration with environment-specific overrides"""

    base_config = load_yaml_config(f"{config_dir}/settings.yaml")
    env_config = load_yaml_config(f"{config_dir}/settings_{environment}.yaml")

    # env file overrides base
    config_dict = {**base_config, **env_config}

    env_overrides = {
        'ENVIRONMENT': environment,
        'LOG_LEVEL': os.getenv('MEMORIAL_PREVIEW_LOG_LEVEL'),
        'LOG_FILE': os.getenv('MEMORIAL_PREVIEW_LOG_FILE'),
        'DEVICE_SCALE': os.getenv('MEMORIAL_PREVIEW_DEVICE_SCALE'),
        'TEMPLATE_DIR': os.getenv('MEMORIAL_PREVIEW_TEMPLATE_DIR'),
        'PROOF_OUTPUT_DIR': os.getenv('MEMORIAL_PREVIEW_PROOF_DIR'),
    }

    # Only include non-None values
    env_overrides = {k: v for k, v in env_overrides.items() if v is not None}
    config_dict.update(env_overrides)

    try:
        return AppConfig(**config_dict)
    except Exception as e:
        logger.error(f"Configuration validation error: {e}")
        return AppConfig()


_config_instance = None


def get_config() -> AppConfig:
    """Get the shared configuration instance"""
    global _config_instance
    if _config_instance is None:
        _config_instance = load_config(os.getenv('MEMORIAL_PREVIEW_ENV', 'development'))
    return _config_instance


def load_template(template_id: str, template_dir: Optional[str] = None) -> TemplateDescriptor:
    """Load a template descriptor from YAML or JSON"""
    search_dir = Path(template_dir or get_config().TEMPLATE_DIR)

    for suffix in ('.yaml', '.yml', '.json'):
        path = search_dir / f"{template_id}{suffix}"
        if not path.exists():
            continue

        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f) if suffix == '.json' else yaml.safe_load(f)

        try:
            template = TemplateDescriptor(**(data or {}))
        except Exception as e:
            raise ConfigurationError(
                f"Invalid template descriptor {path}: {e}",
                details={'template_id': template_id, 'path': str(path)}
            )

        logger.info(f"Loaded template {template.id} with {len(template.style_variants)} styles")
        return template

    raise TemplateNotFoundError(template_id, str(search_dir))
