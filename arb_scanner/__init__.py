# arb_scanner/__init__.py
import logging

from .config import ArbitrageConfig, ScannerConfig, load_config
from .models import (
    AssetStatus,
    Category,
    EnrichedGroup,
    Opportunity,
    OpportunityValidation,
    PricePoint,
    SharedPairGroup,
    StandardPair,
    StandardTicker,
)
from .pipeline import ArbitragePipeline, OpportunityStream, select_window
from .scanner import ArbitrageScanner, RunSummary

logger = logging.getLogger("arb_scanner")

__all__ = [
    "ArbitrageConfig",
    "ArbitragePipeline",
    "ArbitrageScanner",
    "AssetStatus",
    "Category",
    "EnrichedGroup",
    "Opportunity",
    "OpportunityStream",
    "OpportunityValidation",
    "PricePoint",
    "RunSummary",
    "ScannerConfig",
    "SharedPairGroup",
    "StandardPair",
    "StandardTicker",
    "load_config",
    "select_window",
]
