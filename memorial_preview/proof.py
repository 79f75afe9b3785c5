"""
Proof module for the memorial preview.

This module handles:
- Rebuilding a composition from a saved snapshot plus photo bytes
- Rendering it at proof width with the same grid and typeset rules as the live preview
- Overlaying the "PROOF" watermark
- Encoding the result as JPEG for customer approval
"""

import io
import os
from typing import Dict, List, Optional

from PIL import Image, ImageDraw
from loguru import logger

from memorial_preview.config import AppConfig, TemplateDescriptor, get_config, load_template
from memorial_preview.errors import PreviewError, RenderError
from memorial_preview.fonts import FontBook
from memorial_preview.renderer import PreviewRenderer, PreviewSnapshot, SurfaceHandle
from memorial_preview.typeset import FACE_LABEL

WATERMARK_ANGLE = 30
WATERMARK_FILL = (128, 128, 128, 70)


class ProofSettings:
    """Settings for proof encoding."""

    def __init__(self,
                 output_format: str = 'JPEG',
                 quality: int = 85,
                 optimize: bool = True,
                 progressive: bool = True,
                 watermark_text: Optional[str] = 'PROOF'):
        self.output_format = output_format
        self.quality = quality
        self.optimize = optimize
        self.progressive = progressive
        self.watermark_text = watermark_text

    @classmethod
    def from_config(cls, config: AppConfig) -> 'ProofSettings':
        return cls(quality=config.PROOF_QUALITY, watermark_text=config.PROOF_WATERMARK_TEXT or None)


class ProofGenerator:
    """Renders static proofs; every proof gets its own renderer instance."""

    def __init__(self, config: AppConfig = None, fonts: FontBook = None, settings: ProofSettings = None):
        self.config = config or get_config()
        # proofs run to completion on the calling thread
        self.render_config = self.config.model_copy(update={'ASYNC_DECODE': False})
        self.fonts = fonts or FontBook(self.render_config)
        self.settings = settings or ProofSettings.from_config(self.config)
        self.errors: List[PreviewError] = []

    def render(self, snapshot: PreviewSnapshot, photos: Dict[str, bytes] = None,
               template: TemplateDescriptor = None, width_px: int = None) -> Image.Image:
        """Render the snapshot into one watermarked image of the whole frame."""
        template = template or load_template(snapshot.template_id, self.config.TEMPLATE_DIR)
        width_px = width_px or self.config.PROOF_WIDTH_PX
        self.errors = []

        if not self.fonts.ready:
            self.fonts.load()

        renderer = PreviewRenderer(config=self.render_config, fonts=self.fonts, on_error=self.errors.append)
        try:
            renderer.init(SurfaceHandle(width_px=width_px, device_scale=1.0), template)
            renderer.restore(snapshot)
            for region_id, data in (photos or {}).items():
                renderer.set_photo(region_id, data)
            renderer.flush()

            if renderer.deferred_regions:
                raise RenderError(
                    "Proof render left regions undrawn",
                    details={'deferred_regions': renderer.deferred_regions}
                )
            image = renderer.compose()
        finally:
            renderer.close()

        for error in self.errors:
            logger.warning(f"Proof rendered with a problem: {error.message}")

        if self.settings.watermark_text:
            image = self.apply_watermark(image, self.settings.watermark_text)

        logger.info(f"Proof rendered for {snapshot.template_id}: {image.size[0]}x{image.size[1]} "
                    f"({snapshot.layout})")
        return image

    def apply_watermark(self, image: Image.Image, text: str) -> Image.Image:
        """Centered, rotated, semi-transparent text across the whole proof."""
        w, h = image.size
        overlay = Image.new('RGBA', (w, h), (0, 0, 0, 0))
        draw = ImageDraw.Draw(overlay)

        font = self.fonts.font(FACE_LABEL, max(1, w // 8))
        draw.text((w / 2, h / 2), text, font=font, fill=WATERMARK_FILL, anchor='mm')
        overlay = overlay.rotate(WATERMARK_ANGLE, resample=Image.Resampling.BICUBIC, center=(w / 2, h / 2))

        result = Image.alpha_composite(image.convert('RGBA'), overlay)
        return result.convert('RGB')

    def _save_kwargs(self) -> Dict:
        settings = self.settings
        save_kwargs = {
            'format': settings.output_format,
            'optimize': settings.optimize
        }
        if settings.output_format.upper() == 'JPEG':
            save_kwargs.update({
                'quality': settings.quality,
                'progressive': settings.progressive
            })
        elif settings.output_format.upper() == 'PNG':
            save_kwargs['compress_level'] = 6
        return save_kwargs

    def save_image(self, image: Image.Image, output_path: str) -> str:
        """Save the proof to disk."""
        directory = os.path.dirname(output_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        if image.mode != 'RGB':
            image = image.convert('RGB')

        try:
            image.save(output_path, **self._save_kwargs())
        except (OSError, ValueError) as e:
            raise RenderError(f"Failed to save proof {output_path}: {e}", details={'path': output_path})

        file_size = os.path.getsize(output_path)
        logger.info(f"Saved proof: {output_path} ({file_size:,} bytes)")
        return output_path

    def get_image_bytes(self, image: Image.Image) -> bytes:
        """Get the proof as encoded bytes for the host to serve."""
        if image.mode != 'RGB':
            image = image.convert('RGB')
        buffer = io.BytesIO()
        image.save(buffer, **self._save_kwargs())
        return buffer.getvalue()
