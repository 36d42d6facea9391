"""Tests for ORM detection."""

import json

from typebridge._internal.detect import detect_mongoose, detect_orm, detect_prisma, find_prisma_schema


def _package_json(root, **deps):
    (root / "package.json").write_text(json.dumps({"dependencies": deps}), encoding="utf-8")


def test_prisma_schema_locations(tmp_path):
    assert find_prisma_schema(tmp_path) is None

    nested = tmp_path / "prisma" / "schema.prisma"
    nested.parent.mkdir()
    nested.write_text("", encoding="utf-8")
    assert find_prisma_schema(tmp_path) == nested

    root = tmp_path / "schema.prisma"
    root.write_text("", encoding="utf-8")
    assert find_prisma_schema(tmp_path) == root


def test_detect_from_package_json(tmp_path):
    _package_json(tmp_path, mongoose="^8.0.0")
    assert detect_mongoose(tmp_path) is True
    assert detect_prisma(tmp_path) is False
    assert detect_orm(tmp_path) == "mongoose"


def test_prisma_wins_when_both_present(tmp_path):
    _package_json(tmp_path, mongoose="^8.0.0", **{"@prisma/client": "^5.0.0"})
    assert detect_orm(tmp_path) == "prisma"


def test_dev_dependencies_count(tmp_path):
    (tmp_path / "package.json").write_text(json.dumps({"devDependencies": {"prisma": "5"}}), encoding="utf-8")
    assert detect_prisma(tmp_path) is True


def test_nothing_detected(tmp_path):
    assert detect_orm(tmp_path) is None
    (tmp_path / "package.json").write_text("not json", encoding="utf-8")
    assert detect_orm(tmp_path) is None
