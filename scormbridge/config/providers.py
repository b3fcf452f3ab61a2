# scormbridge/config/providers.py
from __future__ import annotations
import copy
import os
from typing import Any, Protocol, cast
from collections.abc import Mapping
from pathlib import Path
import logging

import json5

from scormbridge.core.dictpath import getByPath, setByPath, deleteByPath

logger = logging.getLogger(__name__)

__all__ = [
    "ConfigProvider", "OverrideProvider", "DefaultsProvider", "FileProvider",
]



class ConfigProvider(Protocol):
    def get(self, key: str) -> Any | None: ...
    def set(self, key: str, value: Any) -> None: ...
    def to_dict(self) -> dict[str, Any]: ...
    def save(self) -> None: ...



def _loadJson5Object(path: Path, owner: str) -> dict[str, Any]:
    try:
        parsed = json5.loads(path.read_text("utf-8"))
    except Exception as err:
        raise TypeError(f"{owner}: failed to parse '{path}': {err}") from err
    if parsed is None:
        return {}
    if not isinstance(parsed, Mapping):
        raise TypeError(f"{owner}: file content must be a JSON object, not '{type(parsed).__name__}'")
    return dict(cast(Mapping[str, Any], parsed))

# ----------------------------------------------
#          OverrideProvider (in-memory)
# ----------------------------------------------

class OverrideProvider:
    """
    Volatile, writable, topmost override layer (never saved to disk).
    """
    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(dict(data)) if data else {}
    
    def get(self, key: str) -> Any | None:
        return getByPath(self._data, key, None)
    
    def set(self, key: str, value: Any) -> None:
        if value is None:
            deleteByPath(self._data, key, pruneEmptyParents=True)
            return
        setByPath(self._data, key, copy.deepcopy(value), createIfMissing=True)
    
    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)
    
    def save(self) -> None:
        return # Nothing to do


# ----------------------------------------------
#        Read-only shipped defaults
# ----------------------------------------------

class DefaultsProvider:
    """
    Read-only provider for shipped default configuration.
    
    Can be initialized either from a JSON/JSON5 file (via `path`)
    or from an in-memory mapping (via `data`).

    Example:
        DefaultsProvider(path=DEFAULTS_FILE)
        DefaultsProvider(data={"bridge": {"timeoutMs": 50}})
    
    Raises:
        ValueError: if neither or both of `data` and `path` are provided
        FileNotFoundError: if file is missing and strict=True
        TypeError: if the loaded document is not a JSON object
    """
    def __init__(
        self,
        data: Mapping[str, Any] | None = None,
        *,
        path: Path | str | None = None,
        strict: bool = True
    ) -> None:
        if data is not None and path is not None:
            raise ValueError(f"{type(self).__name__}: provide either 'data' or 'path', not both")

        self.data: dict[str, Any]
        if path is not None:
            path = Path(path)
            if not path.is_file():
                if strict:
                    raise FileNotFoundError(f"{type(self).__name__}: defaults file '{path}' not found")
                self.data = {}
                return
            self.data = _loadJson5Object(path, type(self).__name__)
        elif data is not None:
            if not isinstance(data, Mapping):
                raise TypeError(f"{type(self).__name__}: 'data' must be a Mapping, not '{type(data).__name__}'")
            self.data = copy.deepcopy(dict(data))
        else:
            raise ValueError(f"{type(self).__name__}: either 'data' or 'path' must be provided")
        
    def get(self, key: str) -> Any | None:
        return getByPath(self.data, key, None)
    
    def set(self, key: str, value: Any) -> None:
        raise RuntimeError(f"{type(self).__name__}: is read-only")
    
    def to_dict(self) -> dict[str, Any]:
        # Always return a deep copy to prevent accidental mutation
        return copy.deepcopy(self.data)

    def save(self) -> None:
        pass



# ----------------------------------------------
#        File-backed provider JSON/JSON5
# ----------------------------------------------

class FileProvider:
    """
    Writable configuration provider that persists to a .json or .json5 file.
    
    Behavior:
        • Missing file → starts with empty dict
        • Parse error → logs warning and starts empty dict
        • Non-object JSON → raises TypeError
    """
    def __init__(self, path: str | Path, *, readOnly: bool = False) -> None:
        self.path = Path(path)
        self.readOnly = readOnly
        self._data: dict[str, Any] = {}
        self._load()
    
    def _load(self) -> None:
        self._data.clear()
        
        if not self.path.exists():
            logger.debug("%s: '%s' is missing → starting as empty dict", type(self).__name__, self.path)
            return
        
        if not self.path.is_file():
            raise IsADirectoryError(f"{type(self).__name__}: '{self.path}' exists but is not a file")

        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as err:
            logger.error("%s: failed to read '%s': %s", type(self).__name__, self.path, err)
            return
        
        try:
            parsed = json5.loads(text)
        except Exception as err:
            logger.warning("%s: parse failed for '%s': %s", type(self).__name__, self.path, err)
            parsed = {}
        
        if parsed is None:
            parsed = {}

        if not isinstance(parsed, Mapping):
            raise TypeError(f"{type(self).__name__}: file content must be a JSON object, not '{type(parsed).__name__}'")
        
        self._data = dict(parsed)

    def get(self, key: str) -> Any | None:
        return getByPath(self._data, key, None)

    def set(self, key: str, value: Any) -> None:
        if self.readOnly:
            raise RuntimeError(f"{type(self).__name__}({self.path}) is read-only")
        
        if value is None:
            deleteByPath(self._data, key, pruneEmptyParents=True)
            return
        
        setByPath(self._data, key, copy.deepcopy(value), createIfMissing=True)

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)

    def save(self) -> None:
        if self.readOnly:
            raise RuntimeError(f"{type(self).__name__}({self.path}) is read-only")
        
        self.path.parent.mkdir(parents=True, exist_ok=True)
        out = json5.dumps(self._data, indent=2, quote_keys=True)
        
        # Atomic write
        tmpPath = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmpPath, "w", encoding="utf-8") as fl:
            fl.write(out)
            if not out.endswith("\n"):
                fl.write("\n")
        
        os.replace(tmpPath, self.path)
        logger.debug("%s: saved %d keys to '%s'", type(self).__name__, len(self._data), self.path)
