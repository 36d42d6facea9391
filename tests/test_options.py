"""Tests for generation options."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from typebridge.codes import ErrorCode
from typebridge.options import GenerationOptions, InvalidOptionsError, build_options, load_options

HERE = Path(__file__).resolve().parent
FIXTURES = HERE.parent / "fixtures"


def test_defaults():
    options = GenerationOptions(orm="prisma", schema_path="schema.prisma", output_path="types")

    assert options.output_mode == "combined"
    assert options.include_comments is True
    assert options.readonly is False
    assert options.enum_order == "insertion"
    assert options.mongoose_loader == "contract"
    assert options.schema_path == Path("schema.prisma")


def test_options_are_immutable():
    options = GenerationOptions(orm="prisma", schema_path="schema.prisma", output_path="types")
    with pytest.raises(ValidationError):
        options.readonly = True


def test_render_options_carry_over():
    options = GenerationOptions(
        orm="prisma",
        schema_path="schema.prisma",
        output_path="types",
        readonly=True,
        include_comments=False,
        enum_order="sorted",
        date_type="Date",
        banner="hi",
    )
    render = options.render_options()
    assert render.readonly is True
    assert render.include_comments is False
    assert render.enum_order == "sorted"
    assert render.date_type == "Date"
    assert render.banner == "hi"


def test_build_options_rejects_unknown_values():
    with pytest.raises(InvalidOptionsError) as exc_info:
        build_options(orm="sequelize", schema_path="x", output_path="y")
    assert exc_info.value.code == ErrorCode.INVALID_OPTIONS
    assert "orm" in exc_info.value.message


def test_load_options_resolves_relative_paths():
    options = load_options(FIXTURES / "options.json")

    assert options.orm == "prisma"
    assert options.schema_path == FIXTURES / "prisma" / "mutual.prisma"
    assert options.output_path == FIXTURES / "out"
    assert options.output_mode == "per-model"
    assert options.readonly is True


def test_load_options_overrides_win():
    options = load_options(FIXTURES / "options.json", output_mode="combined", readonly=None)
    assert options.output_mode == "combined"
    assert options.readonly is True


def test_load_options_unknown_key(tmp_path):
    path = tmp_path / "options.json"
    path.write_text(json.dumps({"orm": "prisma", "schema_path": "s", "output_path": "o", "watch": True}), encoding="utf-8")
    with pytest.raises(InvalidOptionsError):
        load_options(path)


def test_load_options_bad_json(tmp_path):
    path = tmp_path / "options.json"
    path.write_text("{", encoding="utf-8")
    with pytest.raises(InvalidOptionsError) as exc_info:
        load_options(path)
    assert exc_info.value.path == str(path)


def test_load_options_missing_file(tmp_path):
    with pytest.raises(InvalidOptionsError):
        load_options(tmp_path / "missing.json")
