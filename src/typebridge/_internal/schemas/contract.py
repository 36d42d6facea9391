"""Schema-introspection contract for Mongoose models.

The Mongoose adapter never loads user code in-process. A shim running in the
ORM's own runtime (or a hand-written export) produces a JSON document in this
shape, which the adapter validates and interprets.

Example::

    {
      "contract_version": 1,
      "models": [
        {
          "name": "User",
          "fields": {
            "email": {"type": "String", "required": true, "unique": true},
            "role": {"type": "String", "enum": ["user", "admin"], "default": "user"},
            "posts": [{"type": "ObjectId", "ref": "Post"}],
            "address": {"street": "String", "city": "String"}
          },
          "required_paths": ["email"]
        }
      ]
    }

Field values keep Mongoose's own three shapes: a constructor name
(``"String"``), a descriptor object (``{"type": ..., "ref": ..., ...}``) or an
array wrapping either.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

CONTRACT_VERSION = 1


class ContractModel(BaseModel):
    """One introspected schema."""
    name: Optional[str] = None  # Defaults to the capitalized file stem
    fields: Dict[str, Any]
    required_paths: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")


class SchemaContract(BaseModel):
    """A contract document: every model found in one source module."""
    contract_version: Literal[1] = CONTRACT_VERSION
    source: Optional[str] = None  # Module the shim introspected
    models: List[ContractModel]

    model_config = ConfigDict(extra="forbid")


def parse_contract(text: str) -> SchemaContract:
    """Parse and validate a contract document.

    Raises:
        ValueError: not JSON (``json.JSONDecodeError``) or not a valid contract
            (``pydantic.ValidationError``).
    """
    return SchemaContract.model_validate_json(text)
