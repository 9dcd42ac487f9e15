import asyncio
from typing import ClassVar

from contentguard.analysis.base import BaseAnalyzer
from contentguard.analysis.basic_analyzer import BasicAnalyzer
from contentguard.analysis.exceptions import ModuleLoadError
from contentguard.analysis.streaming_analyzer import StreamingAnalyzer
from contentguard.logging.logger import Log


class AnalyzerLoader:
    """Loads the configured analysis module once and hands it out.

    Concurrent ``load`` calls share a single construction. When the primary
    module cannot be loaded, ``activate_fallback`` switches every later load
    to the basic engine.
    """

    ENGINES: ClassVar[dict[str, type[BaseAnalyzer]]] = {
        "streaming": StreamingAnalyzer,
        "basic": BasicAnalyzer,
    }

    def __init__(self, engine: str = "streaming") -> None:
        self._engine = engine.lower()
        self._analyzer: BaseAnalyzer | None = None
        self._status = "not_loaded"
        self._lock = asyncio.Lock()

    @property
    def engine(self) -> str:
        return self._engine

    @property
    def status(self) -> str:
        return self._status

    @property
    def is_loaded(self) -> bool:
        return self._analyzer is not None

    async def load(self) -> BaseAnalyzer:
        if self._analyzer is not None:
            return self._analyzer
        async with self._lock:
            if self._analyzer is None:
                self._status = "loading"
                try:
                    self._analyzer = self._create()
                except ModuleLoadError:
                    self._status = "error"
                    raise
                self._status = "loaded"
                Log.info(f"Analysis module '{self._engine}' loaded")
        return self._analyzer

    def fallback(self) -> BaseAnalyzer:
        """The degraded engine, independent of the configured one."""
        return BasicAnalyzer()

    def activate_fallback(self) -> BaseAnalyzer:
        self._analyzer = self.fallback()
        self._status = "fallback"
        Log.warning(f"Analysis module '{self._engine}' unavailable, using basic engine")
        return self._analyzer

    def unload(self) -> None:
        self._analyzer = None
        self._status = "not_loaded"

    def _create(self) -> BaseAnalyzer:
        analyzer_cls = self.ENGINES.get(self._engine)
        if analyzer_cls is None:
            raise ModuleLoadError(
                f"Analysis module '{self._engine}' is not available. "
                f"Choose from: {list(self.ENGINES)}"
            )
        try:
            return analyzer_cls()
        except Exception as exc:
            raise ModuleLoadError(
                f"Analysis module '{self._engine}' failed to initialize: {exc}"
            ) from exc
