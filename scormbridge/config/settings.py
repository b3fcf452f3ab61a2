# scormbridge/config/settings.py
from __future__ import annotations
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from scormbridge.core.dictpath import setByPath
from .providers import ConfigProvider, DefaultsProvider, FileProvider, OverrideProvider
from .schema import DEFAULTS_FILE, compileValidator
from .store import ConfigStore

import logging
logger = logging.getLogger(__name__)

__all__ = [
    "BridgeSection", "HostFunctions", "HostSection", "LoggingSection",
    "ManagerSection", "SimulatorSection", "ServerSection",
    "BridgeSettings", "buildConfigStore", "loadSettings",
]

CONFIG_NAMESPACE = "scormbridge"



class _Section(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)



class BridgeSection(_Section):
    timeoutMs: int = 15000
    pollIntervalMs: int = 10
    keySpace: int = 65536
    callbackObjectName: str = "ScormManager"
    callbackFunctionName: str = "ScormValueCallback"



class HostFunctions(_Section):
    getValue: str = "doGetValue"
    setValue: str = "doSetValue"
    versionCheck: str = "doIsVersionCheck"
    commit: str = "doCommit"
    terminate: str = "doTerminate"
    log: str = "DebugPrint"



class HostSection(_Section):
    functions: HostFunctions = Field(default_factory=HostFunctions)



class LogFileSection(_Section):
    enabled: bool = False
    path: str = "scormbridge.log"



class ForwardToHostSection(_Section):
    enabled: bool = True
    level: str = "INFO"
    maxQueue: int = 2000
    batchSize: int = 50



class SuppressRecurringSection(_Section):
    enabled: bool = False
    windowSeconds: float = 60
    maxPerWindow: int = 5



class LoggingSection(_Section):
    devMode: bool = True
    file: LogFileSection = Field(default_factory=LogFileSection)
    forwardToHost: ForwardToHostSection = Field(default_factory=ForwardToHostSection)
    suppressRecurring: SuppressRecurringSection = Field(default_factory=SuppressRecurringSection)
    redactIdentifiers: tuple[str, ...] = ("cmi.learner_id", "cmi.learner_name")



class ManagerSection(_Section):
    workerThreads: int = 4
    initializeWaitPollMs: int = 25



class ReplyDelay(_Section):
    min: int = 0
    max: int = 0



class SimulatorSection(_Section):
    replyDelayMs: ReplyDelay = Field(default_factory=ReplyDelay)



class ServerSection(_Section):
    host: str = "127.0.0.1"
    port: int = 8765
    allowOrigins: tuple[str, ...] = ()
    maxFrameChars: int = 1_000_000



class BridgeSettings(_Section):
    """Typed, read-only view over the effective configuration document."""
    bridge: BridgeSection = Field(default_factory=BridgeSection)
    host: HostSection = Field(default_factory=HostSection)
    logging: LoggingSection = Field(default_factory=LoggingSection)
    manager: ManagerSection = Field(default_factory=ManagerSection)
    simulator: SimulatorSection = Field(default_factory=SimulatorSection)
    server: ServerSection = Field(default_factory=ServerSection)

    @classmethod
    def fromStore(cls, store: ConfigStore) -> BridgeSettings:
        return cls.model_validate(store.values())



def _expandOverrides(overrides: Mapping[str, Any] | None) -> dict[str, Any]:
    """Accepts nested dicts as well as dotted keys ({"bridge.timeoutMs": 50})."""
    out: dict[str, Any] = {}
    for key, value in (overrides or {}).items():
        setByPath(out, key, value, createIfMissing=True)
    return out



def buildConfigStore(
    path: Path | str | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> ConfigStore:
    """
    Stacks shipped defaults, an optional user file and in-memory overrides
    (lowest to highest precedence) and validates the merged result.
    """
    providers: list[ConfigProvider] = [DefaultsProvider(path=DEFAULTS_FILE)]
    if path is not None:
        providers.append(FileProvider(path))
    providers.append(OverrideProvider(_expandOverrides(overrides)))
    return ConfigStore(
        namespace=CONFIG_NAMESPACE,
        validator=compileValidator(CONFIG_NAMESPACE),
        providers=providers,
    )



def loadSettings(
    path: Path | str | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> BridgeSettings:
    store = buildConfigStore(path, overrides)
    settings = BridgeSettings.fromStore(store)
    logger.debug("Settings loaded (layers=%s)", store.snapshot()["layers"])
    return settings
