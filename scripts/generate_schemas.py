"""Generate JSON schemas from Pydantic models and save to schemas/ directory."""

import json
from pathlib import Path

from typebridge.options import GenerationOptions
from typebridge._internal.schemas.contract import SchemaContract


def generate_schemas(schemas_dir: Path = Path(__file__).parent.parent / "schemas"):
    """Generate JSON schemas for the options file and the Mongoose contract."""
    schemas_dir.mkdir(exist_ok=True)

    targets = [
        (SchemaContract, "schema_contract.schema.json"),
        (GenerationOptions, "generation_options.schema.json"),
    ]
    for model, filename in targets:
        path = schemas_dir / filename
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(model.model_json_schema(), f, indent=2, ensure_ascii=False)
            f.write("\n")
        print(f"Generated: {path}")

    print("\nSchema generation complete!")


if __name__ == "__main__":
    generate_schemas()
