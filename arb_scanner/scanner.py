# arb_scanner/scanner.py
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from rich.console import Console

from .config import ArbitrageConfig
from .dashboard import ScanProgress, executable_panel, potential_line, render_header, summary_line
from .errors import FatalRunError
from .logger import OpportunityAuditLog
from .models import Category
from .pairs import PairResolver
from .pipeline import ArbitragePipeline, select_window
from .sources import PriceSource
from .storage import OpportunityRepository


@dataclass(slots=True)
class RunSummary:
    shared_groups: int = 0
    analyzed_groups: int = 0
    executable: int = 0
    potential: int = 0


class ArbitrageScanner:
    """
    Runs one batch pass: clear the database, resolve shared pairs, stream
    validated opportunities and persist each one under its category.
    """
    def __init__(self, config: ArbitrageConfig, sources: Sequence[PriceSource],
                 repository: OpportunityRepository, audit_log: Optional[OpportunityAuditLog] = None,
                 console: Optional[Console] = None, logger: Optional[logging.Logger] = None):
        self.config = config
        self.sources = {s.source_id: s for s in sources}
        self.repository = repository
        self.audit_log = audit_log
        self.console = console or Console()
        self.logger = logger or logging.getLogger("arb_scanner")
        self.resolver = PairResolver(config, self.logger)
        self._pipeline: Optional[ArbitragePipeline] = None

    def stop(self):
        """Group-granular stop: the group in flight completes, nothing after it starts."""
        if self._pipeline is not None:
            self._pipeline.stop()

    async def run(self, start: Optional[int] = None, end: Optional[int] = None) -> RunSummary:
        if not self.sources:
            raise FatalRunError("no exchange is configured")

        start = self.config.start_index if start is None else start
        end = self.config.end_index if end is None else end
        summary = RunSummary()

        self.console.print(render_header(self.config, start, end, list(self.sources)))
        await self.repository.clear(Category.EXECUTABLE)
        await self.repository.clear(Category.POTENTIAL)

        listings = await self.resolver.fetch_all(list(self.sources.values()))
        if not any(pairs for _, pairs in listings):
            raise FatalRunError("no pair data could be retrieved from any exchange")

        groups = self.resolver.resolve(listings)
        window = select_window(groups, start, end)
        summary.shared_groups = len(groups)
        self.console.print(f"{len(groups)} shared pair combinations found, analyzing {len(window)}.")

        with ScanProgress(self.console) as progress:
            def on_group(index: int, total: int, symbol: str):
                summary.analyzed_groups = index + 1
                progress.update(index, total, symbol)

            self._pipeline = ArbitragePipeline(self.sources, self.config, self.logger, progress=on_group)
            async with self._pipeline.stream(window) as stream:
                async for opp in stream:
                    category = Category.for_opportunity(opp)
                    await self.repository.append(opp, category)
                    if self.audit_log is not None:
                        await self.audit_log.log_opportunity(opp, category)

                    if category is Category.EXECUTABLE:
                        summary.executable += 1
                        self.console.print(executable_panel(opp, summary.executable))
                    else:
                        summary.potential += 1
                        self.console.print(potential_line(opp, summary.potential))

        self.console.print(summary_line(summary.executable, summary.potential))
        return summary
