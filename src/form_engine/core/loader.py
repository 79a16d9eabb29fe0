"""Form document loading and dumping.

Documents are dicts, or YAML/JSON text, in the persisted camelCase layout.
Structure is checked against schemas/form.schema.json before any field is
constructed, so every problem in a document is reported at once.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft202012Validator

from form_engine.core.errors import SchemaError
from form_engine.core.schema import FormSchema

logger = logging.getLogger(__name__)

SCHEMA_DIR = Path(__file__).parent.parent / "schemas"


@lru_cache(maxsize=1)
def _form_validator() -> Draft202012Validator:
    with open(SCHEMA_DIR / "form.schema.json") as f:
        schema = json.load(f)
    return Draft202012Validator(schema)


def structural_errors(document: Any) -> list[dict]:
    """Validate a form document against the JSON Schema, returning path+message dicts"""
    errors = []
    for error in sorted(_form_validator().iter_errors(document), key=lambda e: [str(p) for p in e.absolute_path]):
        path = ".".join(str(p) for p in error.absolute_path)
        errors.append({"path": path or "root", "message": error.message})
    return errors


def load_form(document: dict | str) -> FormSchema:
    """Build a FormSchema from a dict or YAML/JSON text.

    Raises SchemaError carrying every structural error, or the first
    invariant violation found while constructing fields.
    """
    if isinstance(document, str):
        try:
            document = yaml.safe_load(document)
        except yaml.YAMLError as e:
            raise SchemaError(f"Form document is not valid YAML/JSON: {e}") from e

    errors = structural_errors(document)
    if errors:
        logger.debug("Rejected form document with %d structural errors", len(errors))
        summary = "; ".join(f"{e['path']}: {e['message']}" for e in errors[:3])
        raise SchemaError(f"Invalid form document: {summary}", errors=errors)

    return FormSchema.from_dict(document)


def dump_form(schema: FormSchema) -> dict:
    return schema.to_dict()


def dump_form_yaml(schema: FormSchema) -> str:
    return yaml.safe_dump(schema.to_dict(), sort_keys=False, allow_unicode=True)
