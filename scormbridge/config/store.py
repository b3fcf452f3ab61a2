# scormbridge/config/store.py
from __future__ import annotations

import logging
from typing import Any, Callable, Literal

from scormbridge.core.dictpath import deepMerge, getByPath
from .providers import ConfigProvider
from .schema import ValidatorFn

logger = logging.getLogger(__name__)

__all__ = ["ConfigStore", "ChangeListener"]

ChangeListener = Callable[[str, Any, Any, dict[str, Any]], None]



class ConfigStore:
    """
    Minimal layered config store:
      - read: first-hit from the topmost provider down
      - write: dispatch to a target provider (runtime/save)
      - validate: on load and on set(), validate the *effective* merged document
    """

    def __init__(self, *, namespace: str, validator: ValidatorFn | None, providers: list[ConfigProvider]):
        self.namespace = namespace
        self._validator = validator
        self._providers = providers
        self._listeners: list[ChangeListener] = []

        # Index providers by role (best-effort)
        self._roleIdx: dict[str, int] = {}
        for idx, provider in enumerate(self._providers):
            name = provider.__class__.__name__.lower()
            if "override" in name and "runtime" not in self._roleIdx:
                self._roleIdx["runtime"] = idx
            if "file" in name and "save" not in self._roleIdx:
                self._roleIdx["save"] = idx
        
        self.validate()
    
    # ----- Helpers -----

    def _resolveTargetIdx(self, target: Literal["runtime", "save"]) -> int:
        if target not in self._roleIdx:
            raise KeyError(f"No provider mapped for target '{target}' in {self.namespace}")
        return self._roleIdx[target]
    
    def _merged(self) -> dict[str, Any]:
        merged: dict[str, Any] = {}
        # We merge from bottom to top
        for provider in self._providers:
            merged = deepMerge(merged, provider.to_dict())
        return merged
    
    # ----- Public API -----

    def validate(self) -> None:
        if self._validator is not None:
            self._validator(self._merged())

    def get(self, key: str, default: Any = None) -> Any:
        for provider in reversed(self._providers): # Topmost first precedence
            value = provider.get(key)
            if value is not None:
                return value
        return default
    
    def set(
        self,
        key: str,
        value: Any,
        *,
        target: Literal["runtime", "save"] = "runtime",
        actor: str = "system",
    ) -> None:
        oldValue = self.get(key)
        idx = self._resolveTargetIdx(target)
        previousInTarget = self._providers[idx].get(key)
        # Provisional write to the target layer
        self._providers[idx].set(key, value)

        try:
            self.validate()
        except Exception:
            # rollback
            self._providers[idx].set(key, previousInTarget)
            raise

        newValue = self.get(key)
        if oldValue != newValue:
            context = {"namespace": self.namespace, "actor": actor, "target": target}
            for fn in list(self._listeners):
                try:
                    fn(key, oldValue, newValue, context)
                except Exception:
                    logger.exception("Config listener failed for '%s'", key)
    
    def subscribe(self, fn: ChangeListener) -> Callable[[], None]:
        self._listeners.append(fn)
        def _unsub() -> None:
            try:
                self._listeners.remove(fn)
            except ValueError:
                pass
        return _unsub
    
    def values(self) -> dict[str, Any]:
        return self._merged()

    def snapshot(self) -> dict[str, Any]:
        return {
            "namespace": self.namespace,
            "values": self._merged(),
            "layers": [provider.__class__.__name__ for provider in self._providers],
        }

    def lookup(self, path: str, default: Any = None) -> Any:
        """Dotted-path read from the merged document."""
        value = getByPath(self._merged(), path)
        return default if value is None else value
    
    def saveAll(self) -> None:
        for provider in self._providers:
            try:
                provider.save()
            except Exception:
                logger.exception("Failed to save config layer %s", type(provider).__name__)
