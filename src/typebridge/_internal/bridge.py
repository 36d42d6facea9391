"""Loaders that turn a Mongoose source module into a ``SchemaContract``.

``ContractFileLoader`` reads a contract document that was exported ahead of
time. ``NodeSchemaBridge`` runs a small shim under Node.js, out of process,
which ``require``s the model module and prints its contract on stdout. User
code is never loaded into this interpreter.
"""

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import structlog
from pydantic import ValidationError

from typebridge.errors import ModuleLoadError
from typebridge._internal.schemas.contract import SchemaContract, parse_contract

log = structlog.get_logger(__name__)

# Runs as `node -e SHIM <module>`; process.argv[1] is the module path.
NODE_SHIM = r"""
const path = require('path');
const file = path.resolve(process.argv[1]);

function typeName(t) {
  if (typeof t === 'function') return t.schemaName || t.name;
  if (t && typeof t === 'object' && t.schemaName) return t.schemaName;
  return t;
}

// Option keys whose function values are behaviour, not types.
const BEHAVIOUR_KEYS = new Set(['default', 'validate', 'get', 'set', 'transform', 'required', 'alias']);

function encode(def) {
  if (Array.isArray(def)) return def.map(encode);
  if (typeof def === 'function') return typeName(def);
  if (def && typeof def === 'object') {
    if (def.obj && def.paths) return encode(def.obj);
    if (def instanceof RegExp || def instanceof Date) return String(def);
    const out = {};
    for (const [key, value] of Object.entries(def)) {
      if (typeof value === 'function' && BEHAVIOUR_KEYS.has(key)) continue;
      out[key] = encode(value);
    }
    return out;
  }
  return def;
}

const mod = require(file);
const candidates = [mod, mod && mod.default, mod && mod.model, mod && mod.schema]
  .concat(mod && typeof mod === 'object' ? Object.values(mod) : []);
const models = [];
for (const exp of candidates) {
  if (!exp) continue;
  let name = null;
  let schema = null;
  if (exp.schema && exp.modelName) {
    name = exp.modelName;
    schema = exp.schema;
  } else if (exp.obj && exp.paths) {
    schema = exp;
  }
  if (!schema) continue;
  const required = Object.keys(schema.paths).filter((p) => schema.paths[p].isRequired);
  models.push({ name: name, fields: encode(schema.obj), required_paths: required });
  break;
}
process.stdout.write(JSON.stringify({ contract_version: 1, source: file, models: models }));
"""


class ContractLoader(Protocol):
    def load(self, path: Path) -> SchemaContract:
        """Produce the contract for one module.

        Raises:
            ModuleLoadError: the module cannot be introspected.
        """
        ...


def _parse(text: str, path: Path) -> SchemaContract:
    try:
        return parse_contract(text)
    except ValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(p) for p in first["loc"]) or "document"
        raise ModuleLoadError(
            f"Invalid schema contract in {path}: {where}: {first['msg']}",
            path=str(path),
            element_id=path.name,
        ) from e
    except ValueError as e:
        raise ModuleLoadError(
            f"Invalid schema contract in {path}: {e}",
            path=str(path),
            element_id=path.name,
        ) from e


@dataclass
class ContractFileLoader:
    """Reads a JSON contract document from disk."""
    encoding: str = "utf-8"

    def load(self, path: Path) -> SchemaContract:
        try:
            text = path.read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise ModuleLoadError(f"Cannot read {path}: {e}", path=str(path), element_id=path.name) from e
        return _parse(text, path)


@dataclass
class NodeSchemaBridge:
    """Introspects a Mongoose model module by running it under Node.js."""
    node_executable: str = "node"
    timeout: float = 30.0

    def command(self, path: Path) -> list:
        return [self.node_executable, "-e", NODE_SHIM, os.path.abspath(path)]

    def load(self, path: Path) -> SchemaContract:
        try:
            result = subprocess.run(
                self.command(path),
                cwd=path.parent,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise ModuleLoadError(
                f"Loading {path} timed out after {self.timeout}s",
                path=str(path),
                element_id=path.name,
            ) from e
        except OSError as e:
            raise ModuleLoadError(
                f"Cannot run {self.node_executable}: {e}",
                path=str(path),
                element_id=path.name,
            ) from e

        if result.returncode != 0:
            lines = [line for line in result.stderr.strip().splitlines() if line.strip()]
            reason = lines[-1] if lines else f"exit code {result.returncode}"
            raise ModuleLoadError(f"Failed to load {path}: {reason}", path=str(path), element_id=path.name)

        log.debug("node_module_introspected", path=str(path), bytes=len(result.stdout))
        return _parse(result.stdout, path)
