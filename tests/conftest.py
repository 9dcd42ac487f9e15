import pytest

from contentguard.analysis.loader import AnalyzerLoader
from contentguard.analysis.models import AnalysisConfig
from contentguard.config.settings import Settings
from contentguard.streaming.manager import StreamingOperationManager


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def settings() -> Settings:
    """Default settings, ignoring any local .env file."""
    return Settings(_env_file=None)


@pytest.fixture()
def analysis_config() -> AnalysisConfig:
    return AnalysisConfig()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def manager(settings: Settings, clock: FakeClock) -> StreamingOperationManager:
    return StreamingOperationManager(AnalyzerLoader("streaming"), settings, clock=clock)
