"""Versioned document schemas exchanged with out-of-process tooling."""

from .contract import CONTRACT_VERSION, ContractModel, SchemaContract, parse_contract

__all__ = [
    "CONTRACT_VERSION",
    "ContractModel",
    "SchemaContract",
    "parse_contract",
]
