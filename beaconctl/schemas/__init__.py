"""JSON schemas shipped with the package."""

from __future__ import annotations

import json
from functools import lru_cache
from importlib import resources
from typing import Any

from jsonschema import validators


@lru_cache(maxsize=None)
def load_validator(filename: str) -> Any:
    """Return a checked validator for a bundled schema, built once per file."""
    schema_text = resources.files(__name__).joinpath(filename).read_text(encoding="utf-8")
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)
