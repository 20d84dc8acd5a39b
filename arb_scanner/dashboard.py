# arb_scanner/dashboard.py
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn
from rich.table import Table

from .config import ArbitrageConfig
from .models import Opportunity


def render_header(config: ArbitrageConfig, start: int, end: Optional[int], sources: List[str]) -> Panel:
    quote_filter = ", ".join(sorted(config.quote_assets_filter)) or "all"
    lines = [
        f"- Exchanges: [yellow]{', '.join(sources)}[/yellow]",
        f"- Analyzing pairs from index: [yellow]{start}[/yellow]",
        f"- Analyzing pairs up to index: [yellow]{end if end is not None else 'end'}[/yellow]",
        f"- Minimum Profit Percentage: [yellow]{config.min_profit_percentage}%[/yellow]",
        f"- Quote Assets Filter: [yellow][{quote_filter}][/yellow]",
        "",
        "--- [red]Clearing previous database[/red] ---",
    ]
    return Panel("\n".join(lines), title="🔧 CONFIGURATION", expand=False)


class ScanProgress:
    """
    Progress bar fed by the pipeline's per-group callback.
    """
    def __init__(self, console: Console):
        self.progress = Progress(
            TextColumn("Analyzing [green]{task.fields[symbol]}[/green]"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        )
        self._task = None

    def __enter__(self):
        self.progress.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.progress.stop()

    def update(self, index: int, total: int, symbol: str):
        if self._task is None:
            self._task = self.progress.add_task("scan", total=total, symbol=symbol)
        self.progress.update(self._task, completed=index, symbol=symbol)


def executable_panel(opp: Opportunity, count: int) -> Panel:
    networks = ", ".join(sorted(opp.validation.common_networks)) if opp.validation else ""
    body = "\n".join([
        f"Pair: [bold]{opp.pair}[/bold]",
        f"Gross Profit: [blue]{opp.profit_percentage}%[/blue]",
        f"Buy at: {opp.buy_at.source} @ {opp.buy_at.price}",
        f"Sell at: {opp.sell_at.source} @ {opp.sell_at.price}",
        f"Common Networks: {networks}",
    ])
    return Panel(body, title=f"✅ [green]EXECUTABLE OPPORTUNITY[/green] #{count}", expand=False)


def potential_line(opp: Opportunity, count: int) -> str:
    return f"  ⚠️ -> [yellow]Potential[/yellow] #{count} found for {opp.pair} ({opp.profit_percentage}%)"


def summary_line(executable: int, potential: int) -> str:
    return (f"--- Process Finished. [green]{executable}[/green] executable and "
            f"[yellow]{potential}[/yellow] potential opportunities were saved to the database. ---")


def opportunities_table(title: str, opportunities: List[Opportunity]) -> Table:
    """Stored opportunities, highest profit first."""
    table = Table(title=f"{title} ({len(opportunities)} found)")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Pair", style="cyan")
    table.add_column("Profit %", justify="right", style="green")
    table.add_column("Buy at", style="magenta")
    table.add_column("Sell at", style="magenta")
    table.add_column("Networks")

    ranked = sorted(opportunities, key=lambda o: o.profit_percentage, reverse=True)
    for i, opp in enumerate(ranked, start=1):
        if opp.validation is None:
            networks = "-"
        elif opp.validation.common_networks:
            networks = ", ".join(sorted(opp.validation.common_networks))
        else:
            networks = "[dim]No common networks found.[/dim]"
        table.add_row(
            str(i),
            opp.pair,
            f"{opp.profit_percentage:.4f}",
            f"{opp.buy_at.source} @ {opp.buy_at.price}",
            f"{opp.sell_at.source} @ {opp.sell_at.price}",
            networks,
        )
    return table
