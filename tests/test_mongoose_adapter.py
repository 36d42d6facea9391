"""Tests for the Mongoose adapter (contract interpretation)."""

import json
from pathlib import Path

import pytest

from typebridge.codes import ErrorCode
from typebridge.errors import ModuleLoadError, SourceNotFoundError
from typebridge.kernel.atlas import ScalarKind
from typebridge.adapters.mongoose import (
    MongooseAdapter,
    find_modules,
    interpret_field,
    is_required_flag,
    model_name_from_path,
)
from typebridge._internal.schemas.contract import SchemaContract

HERE = Path(__file__).resolve().parent
FIXTURES = HERE.parent / "fixtures"
BLOG = FIXTURES / "mongoose" / "blog"


def _fields(model):
    return {f.name: f for f in model.fields}


def test_blog_models_in_file_order():
    result = MongooseAdapter().parse(BLOG)

    assert [m.name for m in result.models] == ["Post", "User"]
    assert all(m.source_kind == "mongoose" for m in result.models)
    assert result.issues == []


def test_node_modules_excluded():
    files = find_modules(BLOG, ["**/*.schema.json"], ["**/node_modules/**"])
    assert [f.name for f in files] == ["post.schema.json", "user.schema.json"]


def test_model_name_from_file_stem():
    assert model_name_from_path(Path("post.schema.json")) == "Post"
    assert model_name_from_path(Path("orderItem.js")) == "OrderItem"


def test_user_fields():
    result = MongooseAdapter().parse(BLOG)
    user = _fields(result.models[1])

    assert "_id" not in user
    assert "__v" not in user
    assert user["email"].required is True
    assert user["email"].is_unique is True
    assert user["name"].required is False
    assert user["age"].scalar is ScalarKind.NUMBER
    assert user["settings"].scalar is ScalarKind.OBJECT
    assert user["createdAt"].scalar is ScalarKind.DATE
    assert user["createdAt"].default_value == '"now"'


def test_enum_descriptor_wins_over_atlas():
    """`{type: String, enum: [...], default: ...}` is an enum, not a string."""
    result = MongooseAdapter().parse(BLOG)
    role = _fields(result.models[1])["role"]

    assert role.enum_values == ["user", "admin"]
    assert role.enum_name is None
    assert role.scalar is None
    assert role.default_value == '"user"'
    assert role.required is True


def test_arrays():
    result = MongooseAdapter().parse(BLOG)
    user = _fields(result.models[1])
    post = _fields(result.models[0])

    assert user["tags"].is_array is True
    assert user["tags"].scalar is ScalarKind.STRING
    assert user["posts"].is_array is True
    assert user["posts"].reference_target == "Post"
    assert post["categories"].is_array is True
    assert post["categories"].enum_values == ["news", "tech"]
    assert post["comments"].is_array is True
    assert [f.name for f in post["comments"].nested] == ["text", "postedAt"]


def test_references_and_embedded_documents():
    result = MongooseAdapter().parse(BLOG)
    user = _fields(result.models[1])
    post = _fields(result.models[0])

    assert user["bestFriend"].reference_target == "User"
    assert post["author"].reference_target == "User"
    assert post["author"].required is True

    address = {f.name: f for f in user["address"].nested}
    assert address["street"].required is False
    assert address["city"].required is True


def test_enum_values_object_and_required_message_form():
    result = MongooseAdapter().parse(BLOG)
    post = _fields(result.models[0])

    assert post["status"].enum_values == ["draft", "published"]
    assert post["title"].required is True
    assert post["score"].scalar is ScalarKind.NUMBER
    assert post["legacy"].scalar is ScalarKind.UNKNOWN


def test_failed_modules_are_skipped_with_warnings():
    result = MongooseAdapter().parse(FIXTURES / "mongoose" / "mixed")

    assert [m.name for m in result.models] == ["Tag"]
    assert [i.code for i in result.issues] == [ErrorCode.MODULE_LOAD_ERROR] * 2
    assert [Path(i.path).name for i in result.issues] == ["broken.schema.json", "future.schema.json"]


def test_missing_directory_raises():
    with pytest.raises(SourceNotFoundError):
        MongooseAdapter().parse(FIXTURES / "mongoose" / "does-not-exist")


def test_single_contract_file(tmp_path):
    path = tmp_path / "invoice.schema.json"
    path.write_text(json.dumps({"models": [{"fields": {"total": "Number"}}]}), encoding="utf-8")

    result = MongooseAdapter().parse(path)
    assert [m.name for m in result.models] == ["Invoice"]


def test_custom_loader_is_used(tmp_path):
    (tmp_path / "thing.js").write_text("module.exports = {}", encoding="utf-8")

    class FakeLoader:
        def __init__(self):
            self.calls = []

        def load(self, path):
            self.calls.append(path.name)
            if path.name == "bad.js":
                raise ModuleLoadError("boom", path=str(path), element_id=path.name)
            return SchemaContract(models=[{"name": "Thing", "fields": {"n": "Number"}}])

    (tmp_path / "bad.js").write_text("throw new Error()", encoding="utf-8")
    loader = FakeLoader()
    result = MongooseAdapter(include=["**/*.js"], loader=loader).parse(tmp_path)

    assert loader.calls == ["bad.js", "thing.js"]
    assert [m.name for m in result.models] == ["Thing"]
    assert result.issues[0].element_id == "bad.js"


@pytest.mark.parametrize("value,expected", [
    (True, True),
    ([True, "needed"], True),
    (False, False),
    ("yes", False),
    (None, False),
])
def test_is_required_flag(value, expected):
    assert is_required_flag(value) is expected


def test_interpret_field_edge_shapes():
    assert interpret_field("x", []).scalar is ScalarKind.UNKNOWN
    assert interpret_field("x", []).is_array is True
    assert interpret_field("x", [["String"]]).scalar is ScalarKind.UNKNOWN
    assert interpret_field("x", 42).scalar is ScalarKind.UNKNOWN

    ref_array = interpret_field("x", {"type": ["ObjectId"], "ref": "Tag"})
    assert ref_array.is_array is True
    assert ref_array.reference_target == "Tag"

    typed_nested = interpret_field("x", {"type": {"lat": "Number"}})
    assert [f.name for f in typed_nested.nested] == ["lat"]


def test_subdocument_with_ref_field_is_embedded():
    payment = interpret_field("payment", {"provider": "String", "ref": "String"})

    assert payment.reference_target is None
    assert [f.name for f in payment.nested] == ["provider", "ref"]
    assert all(f.scalar is ScalarKind.STRING for f in payment.nested)


def test_typed_ref_descriptor_is_a_reference():
    author = interpret_field("author", {"type": "ObjectId", "ref": "User"})
    assert author.reference_target == "User"
    assert author.nested is None
