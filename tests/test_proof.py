"""
Tests for proof generation and the command line interface.
"""

import argparse

import pytest
from PIL import Image

from memorial_preview import cli
from memorial_preview.errors import DecodeFailedError
from memorial_preview.proof import ProofGenerator, ProofSettings
from memorial_preview.renderer import PreviewSnapshot


@pytest.fixture
def snapshot():
    return PreviewSnapshot(
        template_id='pet-memorial',
        fields={'petName': 'Luna', 'passDate': '2024', 'poemText': 'Run free, sweet girl'},
        style='soft-light',
        layout='side-by-side',
    )


@pytest.fixture
def generator(sample_config, font_book):
    return ProofGenerator(config=sample_config, fonts=font_book)


class TestProofGenerator:

    def test_render_size(self, generator, snapshot, template, make_photo):
        image = generator.render(snapshot, {'photo': make_photo()}, template=template)
        assert image.size == (400, 256)
        assert image.mode == 'RGB'
        assert generator.errors == []

    def test_custom_width(self, generator, snapshot, template):
        image = generator.render(snapshot, template=template, width_px=800)
        assert image.size == (800, 512)

    def test_watermark_changes_pixels(self, sample_config, font_book, snapshot, template):
        plain = ProofGenerator(config=sample_config, fonts=font_book,
                               settings=ProofSettings(watermark_text=None))
        marked = ProofGenerator(config=sample_config, fonts=font_book)

        assert (plain.render(snapshot, template=template).tobytes()
                != marked.render(snapshot, template=template).tobytes())

    def test_bad_photo_reported_not_fatal(self, generator, snapshot, template):
        image = generator.render(snapshot, {'photo': b'garbage'}, template=template)
        assert image.size == (400, 256)
        assert isinstance(generator.errors[0], DecodeFailedError)

    def test_jpeg_bytes(self, generator, snapshot, template):
        data = generator.get_image_bytes(generator.render(snapshot, template=template))
        assert data[:2] == b'\xff\xd8'

    def test_save_image(self, generator, snapshot, template, tmp_path):
        output = tmp_path / 'proofs' / 'luna.jpg'
        generator.save_image(generator.render(snapshot, template=template), str(output))

        with Image.open(output) as saved:
            assert saved.format == 'JPEG'
            assert saved.size == (400, 256)

    def test_template_loaded_from_snapshot(self, generator, snapshot):
        image = generator.render(snapshot)
        assert image.size == (400, 256)


class TestCli:
    """Test the memorial-preview command."""

    def test_layouts(self, capsys):
        assert cli.main(['layouts', '--panels', '3']) == 0
        out = capsys.readouterr().out
        assert 'hero-left' in out
        assert 'side-by-side' not in out

    def test_render_proof(self, tmp_path, snapshot, make_photo, capsys):
        snapshot_file = tmp_path / 'session.json'
        snapshot_file.write_text(snapshot.model_dump_json())
        photo_file = tmp_path / 'luna.png'
        photo_file.write_bytes(make_photo())
        output = tmp_path / 'out' / 'proof.jpg'

        code = cli.main(['render-proof', str(snapshot_file), '--photo', f'photo={photo_file}',
                         '-o', str(output), '--width', '300'])

        assert code == 0
        assert output.exists()
        assert 'Proof saved' in capsys.readouterr().out

    def test_unknown_layout_in_snapshot(self, tmp_path, snapshot, capsys):
        snapshot_file = tmp_path / 'session.json'
        snapshot_file.write_text(snapshot.model_copy(update={'layout': 'mosaic'}).model_dump_json())

        code = cli.main(['render-proof', str(snapshot_file), '-o', str(tmp_path / 'proof.jpg')])

        assert code == 1
        assert 'Unknown layout' in capsys.readouterr().out

    def test_photo_argument_format(self):
        assert cli.parse_photo_args(['panel2=b.png']) == {'panel2': cli.Path('b.png')}
        with pytest.raises(argparse.ArgumentTypeError):
            cli.parse_photo_args(['b.png'])
