"""Tests for pipeline orchestration."""

from pathlib import Path

import pytest

from typebridge.codes import ErrorCode
from typebridge.errors import DuplicateModelError, NoModelsFoundError, SourceNotFoundError
from typebridge.kernel.ir import AdapterResult, RawModel
from typebridge.options import GenerationOptions
from typebridge.pipeline import build_documents, combined_output_path, select_adapter
from typebridge.adapters.mongoose import MODULE_INCLUDE, MongooseAdapter
from typebridge.adapters.prisma import PrismaAdapter
from typebridge._internal.bridge import ContractFileLoader, NodeSchemaBridge

HERE = Path(__file__).resolve().parent
FIXTURES = HERE.parent / "fixtures"


def _options(tmp_path, **overrides):
    values = dict(orm="prisma", schema_path=FIXTURES / "prisma" / "basic.prisma", output_path=tmp_path / "types")
    values.update(overrides)
    return GenerationOptions(**values)


def test_select_adapter(tmp_path):
    assert isinstance(select_adapter(_options(tmp_path)), PrismaAdapter)

    mongoose = select_adapter(_options(tmp_path, orm="mongoose"))
    assert isinstance(mongoose, MongooseAdapter)
    assert isinstance(mongoose.loader, ContractFileLoader)

    node = select_adapter(_options(tmp_path, orm="mongoose", mongoose_loader="node", node_executable="node18"))
    assert isinstance(node.loader, NodeSchemaBridge)
    assert node.loader.node_executable == "node18"
    assert node.include == MODULE_INCLUDE

    custom = select_adapter(_options(tmp_path, orm="mongoose", include=["*.json"], exclude=[]))
    assert custom.include == ("*.json",)
    assert custom.exclude == ()


def test_combined_output_path():
    assert combined_output_path(Path("types")) == Path("types") / "index.ts"
    assert combined_output_path(Path("src/models.ts")) == Path("src/models.ts")


def test_combined_mode_single_document(tmp_path):
    output = build_documents(_options(tmp_path))

    assert [d.path for d in output.documents] == [tmp_path / "types" / "index.ts"]
    assert [m.name for m in output.models] == ["User", "Post", "Profile"]
    assert [e.name for e in output.enums] == ["Role"]
    assert len(output.cycles) == 2


def test_per_model_mode_documents(tmp_path):
    output = build_documents(_options(tmp_path, output_mode="per-model"))
    names = [d.path.name for d in output.documents]

    assert names == ["User.ts", "Post.ts", "Profile.ts", "enums.ts", "index.ts"]
    assert all(d.path.parent == tmp_path / "types" for d in output.documents)


def test_block_warnings_do_not_fail_the_run(tmp_path):
    output = build_documents(_options(tmp_path, schema_path=FIXTURES / "prisma" / "malformed.prisma"))

    assert [m.name for m in output.models] == ["Good"]
    codes = {i.code for i in output.issues}
    assert codes == {ErrorCode.SCHEMA_PARSE_ERROR}


def test_mongoose_run(tmp_path):
    output = build_documents(_options(tmp_path, orm="mongoose", schema_path=FIXTURES / "mongoose" / "blog"))

    assert [m.name for m in output.models] == ["Post", "User"]
    assert output.cycles == [["Post", "User", "Post"]]
    text = output.documents[0].content
    assert "  role: 'user' | 'admin';" in text


def test_zero_models_is_no_models_found(tmp_path):
    """A directory with no parsable model files is a failure, not an empty document."""
    with pytest.raises(NoModelsFoundError) as exc_info:
        build_documents(_options(tmp_path, orm="mongoose", schema_path=FIXTURES / "mongoose" / "unusable"))
    assert exc_info.value.code == ErrorCode.NO_MODELS_FOUND


def test_only_enums_is_no_models_found(tmp_path):
    schema = tmp_path / "schema.prisma"
    schema.write_text("enum Role {\n  USER\n}\n", encoding="utf-8")
    with pytest.raises(NoModelsFoundError):
        build_documents(_options(tmp_path, schema_path=schema))


def test_missing_source(tmp_path):
    with pytest.raises(SourceNotFoundError):
        build_documents(_options(tmp_path, schema_path=tmp_path / "missing.prisma"))


def test_duplicate_model_across_files_is_fatal(tmp_path):
    for name in ("a.schema.json", "b.schema.json"):
        (tmp_path / name).write_text('{"models": [{"name": "User", "fields": {"x": "String"}}]}', encoding="utf-8")
    with pytest.raises(DuplicateModelError):
        build_documents(_options(tmp_path, orm="mongoose", schema_path=tmp_path))


def test_explicit_adapter(tmp_path):
    class StubAdapter:
        source_kind = "prisma"

        def parse(self, location):
            return AdapterResult(models=[RawModel(name="Empty", fields=[], source_kind="prisma")])

    output = build_documents(_options(tmp_path), adapter=StubAdapter())
    assert "export interface Empty {\n}" in output.documents[0].content
