#!/usr/bin/env python3
"""
Test suite for the command-line interface.
"""

import json
from pathlib import Path

import pytest
from PIL import Image
from typer.testing import CliRunner

from chromatrace import __version__
from chromatrace.cli import app, guess_mime_type, output_path

runner = CliRunner()


@pytest.fixture
def red_file(tmp_path, solid_red_png):
    path = tmp_path / 'red.png'
    path.write_bytes(solid_red_png)
    return path


@pytest.fixture
def red_blue_file(tmp_path, red_blue_png):
    path = tmp_path / 'halves.png'
    path.write_bytes(red_blue_png)
    return path


class TestCommands:
    """Test the color and black-and-white commands."""

    def test_black_and_white_writes_svg(self, tmp_path, red_file):
        out = tmp_path / 'out'
        result = runner.invoke(
            app, ['black-and-white', str(red_file), '-o', str(out), '--executor', 'thread']
        )
        assert result.exit_code == 0, result.output
        svg = (out / 'red.svg').read_text()
        assert '<path' in svg
        assert 'fill-opacity' not in svg

    def test_color_writes_next_to_input(self, red_blue_file):
        result = runner.invoke(
            app, ['color', str(red_blue_file), '--executor', 'thread', '--quiet']
        )
        assert result.exit_code == 0, result.output
        assert red_blue_file.with_suffix('.svg').exists()

    def test_json_output(self, tmp_path, red_file, red_blue_file):
        result = runner.invoke(
            app,
            ['color', str(red_file), str(red_blue_file), '-o', str(tmp_path / 'out'),
             '--executor', 'thread', '--json'],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data['algorithm'] == 'potrace'
        assert data['colorMode'] == 'color'
        assert [f['originalName'] for f in data['files']] == ['red.png', 'halves.png']
        assert all(f['mimeType'] == 'image/png' for f in data['files'])

    def test_failed_file_exits_nonzero(self, tmp_path, red_file):
        bogus = tmp_path / 'notes.txt'
        bogus.write_text('hello')
        out = tmp_path / 'out'
        result = runner.invoke(
            app,
            ['black-and-white', str(red_file), str(bogus), '-o', str(out),
             '--executor', 'thread', '--quiet'],
        )
        assert result.exit_code == 1
        assert (out / 'red.svg').exists()
        assert not (out / 'notes.svg').exists()

    def test_no_optimize_and_preset(self, tmp_path, red_file):
        out = tmp_path / 'out'
        result = runner.invoke(
            app,
            ['black-and-white', str(red_file), '-o', str(out), '--executor', 'thread',
             '--no-optimize', '--preset', 'detailed', '--quiet'],
        )
        assert result.exit_code == 0, result.output
        assert (out / 'red.svg').read_text().startswith('<svg')

    def test_svg_input_is_not_overwritten(self, tmp_path):
        source = tmp_path / 'logo.svg'
        original = (
            '<svg xmlns="http://www.w3.org/2000/svg" width="20" height="20">'
            '<rect x="4" y="4" width="12" height="12" fill="#cc0000"/></svg>'
        )
        source.write_text(original)
        result = runner.invoke(
            app, ['black-and-white', str(source), '--executor', 'thread', '--quiet']
        )
        assert result.exit_code == 0, result.output
        assert source.read_text() == original
        assert '<path' in (tmp_path / 'logo-svg.svg').read_text()

    def test_same_stem_inputs_get_distinct_outputs(self, tmp_path, solid_red_png):
        png = tmp_path / 'x.png'
        jpg = tmp_path / 'x.jpg'
        png.write_bytes(solid_red_png)
        Image.open(png).convert('RGB').save(jpg, format='JPEG')
        out = tmp_path / 'out'
        result = runner.invoke(
            app,
            ['black-and-white', str(png), str(jpg), '-o', str(out), '--executor', 'thread', '--json'],
        )
        assert result.exit_code == 0, result.output
        assert sorted(p.name for p in out.iterdir()) == ['x-jpg.svg', 'x.svg']

    def test_output_never_replaces_another_input(self, tmp_path, solid_red_png):
        svg_input = tmp_path / 'a.svg'
        svg_input.write_text(
            '<svg xmlns="http://www.w3.org/2000/svg" width="10" height="10">'
            '<rect width="5" height="5"/></svg>'
        )
        png = tmp_path / 'a.png'
        png.write_bytes(solid_red_png)
        before = svg_input.read_bytes()
        runner.invoke(app, ['black-and-white', str(png), str(svg_input), '--executor', 'thread', '--quiet'])
        assert svg_input.read_bytes() == before
        assert (tmp_path / 'a-png.svg').exists()
        assert (tmp_path / 'a-svg.svg').exists()

    def test_invalid_steps(self, red_file):
        result = runner.invoke(app, ['color', str(red_file), '--steps', '1'])
        assert result.exit_code == 2

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ['color', str(tmp_path / 'missing.png')])
        assert result.exit_code == 2


class TestMisc:
    """Test version and helpers."""

    def test_version(self):
        result = runner.invoke(app, ['--version'])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    @pytest.mark.parametrize('name, expected', [
        ('a.PNG', 'image/png'),
        ('a.jpg', 'image/jpeg'),
        ('a.heic', 'image/heic'),
        ('a.svg', 'image/svg+xml'),
        ('a.bmp', 'application/octet-stream'),
    ])
    def test_guess_mime_type(self, name, expected):
        assert guess_mime_type(Path(name)) == expected

    def test_output_path_candidates(self, tmp_path):
        taken = {(tmp_path / 'x.svg').resolve()}
        assert output_path(tmp_path / 'x.png', None, taken).name == 'x-png.svg'
        assert output_path(tmp_path / 'x.png', None, taken).name == 'x-png-2.svg'
        assert len(taken) == 3
