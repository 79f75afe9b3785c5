"""
Command line entry point for the memorial preview renderer.
"""

import argparse
import sys
from pathlib import Path
from typing import Dict, List

from loguru import logger

from memorial_preview import setup
from memorial_preview.errors import PreviewError, create_error_recovery_suggestions
from memorial_preview.layouts import LayoutCatalog
from memorial_preview.proof import ProofGenerator
from memorial_preview.renderer import PreviewSnapshot


def parse_photo_args(values: List[str]) -> Dict[str, Path]:
    """Turn ['photo=a.jpg', 'panel2=b.png'] into {region: path}"""
    photos = {}
    for value in values or []:
        region, sep, path = value.partition('=')
        if not sep or not region or not path:
            raise argparse.ArgumentTypeError(f"Expected REGION=PATH, got {value!r}")
        photos[region.strip()] = Path(path.strip())
    return photos


def cmd_layouts(args) -> int:
    catalog = LayoutCatalog()
    panels = [args.panels] if args.panels else [2, 3]
    for count in panels:
        print(f"{count}-panel layouts:")
        for layout in catalog.list_available(count):
            print(f"  {layout.id:<14} {layout.label:<28} {layout.aspect_ratio}")
    return 0


def cmd_render_proof(args) -> int:
    snapshot = PreviewSnapshot.model_validate_json(Path(args.snapshot).read_text(encoding='utf-8'))
    photos = {region: path.read_bytes() for region, path in parse_photo_args(args.photo).items()}

    generator = ProofGenerator()
    output = args.output or str(Path(generator.config.PROOF_OUTPUT_DIR) / f"{Path(args.snapshot).stem}-proof.jpg")
    image = generator.render(snapshot, photos, width_px=args.width)
    generator.save_image(image, output)

    print(f"✅ Proof saved: {output} ({image.size[0]}x{image.size[1]})")
    for error in generator.errors:
        print(f"⚠️  {error.message}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='memorial-preview',
        description="Memorial preview renderer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  memorial-preview layouts --panels 3
  memorial-preview render-proof session.json --photo photo=luna.jpg -o proofs/luna.jpg
        """
    )
    parser.add_argument('--env', default=None, help='Configuration environment (development, production)')
    sub = parser.add_subparsers(dest='command', required=True)

    layouts = sub.add_parser('layouts', help='List the layout catalog')
    layouts.add_argument('--panels', type=int, choices=[2, 3], help='Only layouts with this many panels')
    layouts.set_defaults(func=cmd_layouts)

    proof = sub.add_parser('render-proof', help='Render a watermarked proof from a saved snapshot')
    proof.add_argument('snapshot', type=Path, help='Snapshot JSON file')
    proof.add_argument('--photo', action='append', default=[], metavar='REGION=PATH',
                       help='Photo for a region (repeatable)')
    proof.add_argument('--output', '-o', default=None, help='Output JPEG path (default: PROOF_OUTPUT_DIR)')
    proof.add_argument('--width', type=int, default=None, help='Proof width in pixels')
    proof.set_defaults(func=cmd_render_proof)

    return parser


def main(argv: List[str] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup(args.env)

    try:
        return args.func(args)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))
    except PreviewError as e:
        logger.error(f"{type(e).__name__}: {e.message}")
        print(f"❌ {e.message}")
        for suggestion in e.suggestions or create_error_recovery_suggestions(e):
            print(f"   - {suggestion}")
        return 1
    except OSError as e:
        print(f"❌ {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
