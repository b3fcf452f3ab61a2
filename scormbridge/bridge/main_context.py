# scormbridge/bridge/main_context.py
from __future__ import annotations
import asyncio
import concurrent.futures
import logging
import threading
from collections.abc import Callable
from typing import Any, TypeVar

from scormbridge.core.errors import MainContextError

logger = logging.getLogger(__name__)

__all__ = ["MainContext"]

T = TypeVar("T")



class MainContext:
    """
    The single-threaded context that owns host I/O: every outbound call and
    every reply delivery runs here. Nothing posted here may block.

    Either owned (start() spins an asyncio loop in a dedicated thread) or
    adopted from a loop that is already running (fromRunningLoop()).
    """

    def __init__(self, name: str = "scormbridge-main"):
        self.name = name
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._threadId: int | None = None
        self._owned = False
        self._ready = threading.Event()

    # ----- Lifecycle -----

    def start(self) -> MainContext:
        if self._loop is not None:
            raise MainContextError(f"{self.name} is already running")
        self._owned = True
        self._ready.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        self._ready.wait()
        logger.debug("Main context '%s' started", self.name)
        return self

    def _run(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._loop = loop
        self._threadId = threading.get_ident()
        self._ready.set()
        try:
            loop.run_forever()
        finally:
            try:
                loop.run_until_complete(loop.shutdown_asyncgens())
            finally:
                loop.close()

    @classmethod
    def fromRunningLoop(cls, name: str = "scormbridge-main") -> MainContext:
        """Adopts the loop running in the calling thread (e.g. the server loop)."""
        ctx = cls(name)
        ctx._loop = asyncio.get_running_loop()
        ctx._threadId = threading.get_ident()
        return ctx

    def stop(self, timeoutS: float = 5.0) -> None:
        loop = self._loop
        if loop is None:
            return
        if self._owned:
            if not loop.is_closed():
                loop.call_soon_threadsafe(loop.stop)
            if self._thread is not None and self._thread is not threading.current_thread():
                self._thread.join(timeoutS)
            logger.debug("Main context '%s' stopped", self.name)
        self._loop = None
        self._thread = None
        self._threadId = None

    def __enter__(self) -> MainContext:
        if self._loop is None:
            self.start()
        return self

    def __exit__(self, *exc: object) -> None:
        self.stop()

    # ----- Public API -----

    @property
    def running(self) -> bool:
        loop = self._loop
        return loop is not None and not loop.is_closed()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            raise MainContextError(f"{self.name} is not running")
        return self._loop

    def isCurrent(self) -> bool:
        """True when the calling thread is the one driving the main context."""
        return self._threadId is not None and threading.get_ident() == self._threadId

    def post(self, fn: Callable[..., Any], *args: Any) -> None:
        """
        Schedules fn(*args) on the main context and returns at once.
        Exceptions raised by fn are logged, never propagated.
        """
        loop = self._loop
        if loop is None or loop.is_closed():
            raise MainContextError(f"{self.name} is not running")
        loop.call_soon_threadsafe(self._invoke, fn, args)

    def _invoke(self, fn: Callable[..., Any], args: tuple[Any, ...]) -> None:
        try:
            fn(*args)
        except Exception:
            logger.exception("Main context task %r failed", getattr(fn, "__qualname__", fn))

    def call(self, fn: Callable[..., T], *args: Any, timeoutS: float | None = None) -> T:
        """
        Runs fn(*args) on the main context and waits for its return value.
        Must not be called from the main context itself.
        """
        if self.isCurrent():
            return fn(*args)
        future: concurrent.futures.Future[T] = concurrent.futures.Future()

        def _run() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(fn(*args))
            except BaseException as err:
                future.set_exception(err)

        self.loop.call_soon_threadsafe(_run)
        return future.result(timeoutS)

    def __repr__(self) -> str:
        return f"MainContext(name={self.name!r}, running={self.running})"
