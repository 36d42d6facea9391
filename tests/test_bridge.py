"""Tests for the contract loaders."""

import json
import shutil
import subprocess
from pathlib import Path

import pytest

from typebridge.codes import ErrorCode
from typebridge.errors import ModuleLoadError
from typebridge.kernel.atlas import ScalarKind
from typebridge.adapters.mongoose import MODULE_INCLUDE, MongooseAdapter
from typebridge._internal import bridge
from typebridge._internal.bridge import ContractFileLoader, NodeSchemaBridge


CONTRACT = {"contract_version": 1, "models": [{"name": "User", "fields": {"email": "String"}}]}


def test_file_loader_reads_contract(tmp_path):
    path = tmp_path / "user.schema.json"
    path.write_text(json.dumps(CONTRACT), encoding="utf-8")

    contract = ContractFileLoader().load(path)
    assert contract.models[0].name == "User"
    assert contract.models[0].required_paths == []


def test_file_loader_rejects_unknown_version(tmp_path):
    path = tmp_path / "user.schema.json"
    path.write_text(json.dumps({**CONTRACT, "contract_version": 9}), encoding="utf-8")

    with pytest.raises(ModuleLoadError) as exc_info:
        ContractFileLoader().load(path)
    assert exc_info.value.code == ErrorCode.MODULE_LOAD_ERROR
    assert "contract_version" in exc_info.value.message


def test_file_loader_missing_file(tmp_path):
    with pytest.raises(ModuleLoadError):
        ContractFileLoader().load(tmp_path / "gone.schema.json")


def test_node_bridge_command(tmp_path):
    module = tmp_path / "user.js"
    cmd = NodeSchemaBridge(node_executable="/opt/node").command(module)
    assert cmd[0] == "/opt/node"
    assert cmd[1] == "-e"
    assert cmd[-1] == str(module)


def test_node_bridge_parses_stdout(tmp_path, monkeypatch):
    module = tmp_path / "user.js"
    seen = {}

    def fake_run(cmd, **kwargs):
        seen["cmd"] = cmd
        seen["cwd"] = kwargs["cwd"]
        return subprocess.CompletedProcess(cmd, 0, stdout=json.dumps(CONTRACT), stderr="")

    monkeypatch.setattr(bridge.subprocess, "run", fake_run)
    contract = NodeSchemaBridge().load(module)

    assert contract.models[0].fields == {"email": "String"}
    assert seen["cwd"] == tmp_path
    assert seen["cmd"][-1] == str(module)


def test_node_bridge_nonzero_exit(tmp_path, monkeypatch):
    def fake_run(cmd, **kwargs):
        return subprocess.CompletedProcess(cmd, 1, stdout="", stderr="at x\nError: Cannot find module 'mongoose'\n")

    monkeypatch.setattr(bridge.subprocess, "run", fake_run)
    with pytest.raises(ModuleLoadError) as exc_info:
        NodeSchemaBridge().load(tmp_path / "user.js")
    assert "Cannot find module 'mongoose'" in exc_info.value.message
    assert exc_info.value.element_id == "user.js"


def test_node_bridge_timeout(tmp_path, monkeypatch):
    def fake_run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

    monkeypatch.setattr(bridge.subprocess, "run", fake_run)
    with pytest.raises(ModuleLoadError) as exc_info:
        NodeSchemaBridge(timeout=2).load(tmp_path / "user.js")
    assert "timed out" in exc_info.value.message


def test_node_bridge_missing_executable(tmp_path):
    with pytest.raises(ModuleLoadError) as exc_info:
        NodeSchemaBridge(node_executable=str(tmp_path / "no-node")).load(tmp_path / "user.js")
    assert "Cannot run" in exc_info.value.message


def test_node_bridge_garbage_stdout(tmp_path, monkeypatch):
    def fake_run(cmd, **kwargs):
        return subprocess.CompletedProcess(cmd, 0, stdout="Connected to db\n{}", stderr="")

    monkeypatch.setattr(bridge.subprocess, "run", fake_run)
    with pytest.raises(ModuleLoadError):
        NodeSchemaBridge().load(tmp_path / "user.js")


NODE = shutil.which("node")

SCHEMA_MODULE = """
function ObjectId() {}
ObjectId.schemaName = 'ObjectId';

module.exports = {
  obj: {
    email: String,
    age: { type: Number, required: true, default: () => 18 },
    tags: [String],
    author: { type: ObjectId, ref: 'User' },
    address: { street: String, city: String },
  },
  paths: {
    email: {},
    age: { isRequired: true },
    tags: {},
    author: {},
    'address.street': {},
    'address.city': {},
  },
};
"""


@pytest.mark.skipif(NODE is None, reason="node executable not found")
def test_node_shim_encodes_every_field_shape(tmp_path):
    module = tmp_path / "user.js"
    module.write_text(SCHEMA_MODULE, encoding="utf-8")

    contract = NodeSchemaBridge(node_executable=NODE).load(module)

    assert len(contract.models) == 1
    entry = contract.models[0]
    assert entry.fields == {
        "email": "String",
        "age": {"type": "Number", "required": True},
        "tags": ["String"],
        "author": {"type": "ObjectId", "ref": "User"},
        "address": {"street": "String", "city": "String"},
    }
    assert entry.required_paths == ["age"]


@pytest.mark.skipif(NODE is None, reason="node executable not found")
def test_node_shim_models_through_adapter(tmp_path):
    (tmp_path / "user.js").write_text(SCHEMA_MODULE, encoding="utf-8")

    adapter = MongooseAdapter(include=MODULE_INCLUDE, loader=NodeSchemaBridge(node_executable=NODE))
    result = adapter.parse(tmp_path)

    assert result.issues == []
    user = result.models[0]
    assert user.name == "User"
    fields = {f.name: f for f in user.fields}
    assert list(fields) == ["email", "age", "tags", "author", "address"]
    assert fields["email"].scalar is ScalarKind.STRING
    assert fields["email"].required is False
    assert fields["age"].required is True
    assert fields["tags"].is_array is True
    assert fields["author"].reference_target == "User"
    assert [f.name for f in fields["address"].nested] == ["street", "city"]
