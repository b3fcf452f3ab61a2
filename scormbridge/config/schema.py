# scormbridge/config/schema.py
from __future__ import annotations
from collections.abc import Callable
from pathlib import Path
from typing import Any, cast

import fastjsonschema
import json5

from scormbridge.core.errors import ConfigValidationError

__all__ = ["DATA_DIR", "DEFAULTS_FILE", "SCHEMA_FILE", "ValidatorFn", "compileValidator"]



DATA_DIR      = Path(__file__).resolve().parent / "data"
DEFAULTS_FILE = DATA_DIR / "defaults.json5"
SCHEMA_FILE   = DATA_DIR / "schema.json5"

ValidatorFn = Callable[[Any], Any]



def compileValidator(namespace: str, schemaPath: Path | str = SCHEMA_FILE) -> ValidatorFn:
    """
    Compiles the JSON5 schema at `schemaPath` with fastjsonschema.
    The returned callable raises ConfigValidationError instead of the
    library's own exception.
    """
    schema = json5.loads(Path(schemaPath).read_text("utf-8"))
    # fastjsonschema.compile returns an untyped callable → cast it
    compiled = cast(ValidatorFn, fastjsonschema.compile(schema))

    def _validate(document: Any) -> Any:
        try:
            return compiled(document)
        except fastjsonschema.JsonSchemaValueException as err:
            raise ConfigValidationError(namespace, err.message) from err
    
    return _validate
