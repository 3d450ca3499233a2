"""Domain services package."""

from .analysis import AnalysisService
from .bucketing import PeriodBucketer
from .cache import ResultCache
from .events import EventWindowAnalyzer
from .filtering import FilterContext, FilterEngine
from .returns import ReturnCalculator
from .scenarios import ScenarioService
from .statistics import StatisticsEngine

__all__ = [
    "AnalysisService",
    "EventWindowAnalyzer",
    "FilterContext",
    "FilterEngine",
    "PeriodBucketer",
    "ResultCache",
    "ReturnCalculator",
    "ScenarioService",
    "StatisticsEngine",
]
