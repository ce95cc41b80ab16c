"""
CLI output formatting utilities.

Supports two output formats:
- rich: Rich formatted terminal tables (default)
- json: Machine-readable JSON output
"""

import json
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from marketlens.indicators.smart_money import ICTBlock
from marketlens.pipeline import AnalysisResult

console = Console()

DIRECTION_COLORS = {
    "LONG": "green",
    "SHORT": "red",
    "BULLISH": "green",
    "BEARISH": "red",
    "STRONG BULLISH": "bold green",
    "STRONG BEARISH": "bold red",
}

STATUS_COLORS = {
    "OK": "green",
    "WARN": "yellow",
    "OFF": "dim",
    "ERROR": "red",
}


class OutputFormat(str, Enum):
    """Output format options."""

    RICH = "rich"
    JSON = "json"


def _text(value: Any) -> str:
    return str(getattr(value, "value", value))


def _colored(value: Any, colors: Dict[str, str]) -> str:
    text = _text(value)
    color = colors.get(text, "white")
    return f"[{color}]{text}[/{color}]"


def _price(value: Optional[float]) -> str:
    return f"{value:.2f}" if value is not None else "N/A"


def _blocks(blocks: List[ICTBlock]) -> str:
    active = [b for b in blocks if b.is_active]
    if not active:
        return "-"
    return ", ".join(f"{_text(b.direction)} {_price(b.bottom)}-{_price(b.top)}" for b in active)


def output_json(data: Union[Dict, List, Any], indent: int = 2) -> None:
    """Output data as formatted JSON."""
    if hasattr(data, "model_dump_json"):
        json_str = data.model_dump_json(indent=indent)
    elif hasattr(data, "to_dict"):
        json_str = json.dumps(data.to_dict(), indent=indent, default=str)
    else:
        json_str = json.dumps(data, indent=indent, default=str)

    console.print_json(json_str)


def output_table(
    data: Union[Dict, List[Dict]],
    title: Optional[str] = None,
    columns: Optional[List[str]] = None,
) -> None:
    """Output data as a rich table."""
    table = Table(box=box.ROUNDED, title=title)

    if isinstance(data, dict):
        # Single dict - display as key-value pairs
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        for key, value in data.items():
            table.add_row(str(key), str(value))
    elif isinstance(data, list) and len(data) > 0:
        columns = columns or list(data[0].keys())
        for col in columns:
            table.add_column(col)
        for item in data:
            table.add_row(*[str(item.get(col, "")) for col in columns])
    else:
        console.print("[yellow]No data to display[/yellow]")
        return

    console.print(table)


def structure_table(result: AnalysisResult) -> Table:
    structure = result.structure
    table = Table(box=box.SIMPLE, title="Market Structure")
    table.add_column("Metric", style="cyan")
    table.add_column("Value")

    table.add_row("Price", _price(result.price))
    table.add_row("Structure", structure.type.value)
    table.add_row("Swings", f"{len(structure.highs)} highs / {len(structure.lows)} lows")
    if structure.bos:
        last = structure.bos[-1]
        table.add_row("Last BOS", f"{_colored(last.direction.value, DIRECTION_COLORS)} @ {_price(last.price)}")
    if structure.choch:
        last = structure.choch[-1]
        table.add_row("Last CHoCH", f"{_colored(last.direction.value, DIRECTION_COLORS)} @ {_price(last.price)}")
    table.add_row("Liquidity Pools", ", ".join(f"{p.type.value} {_price(p.price)}" for p in result.liquidity) or "-")
    table.add_row("FVGs", str(len(result.fvgs)))
    table.add_row("Order Blocks", _blocks(result.order_blocks))
    table.add_row("Breakers", _blocks(result.breaker_blocks))
    table.add_row("SMT", ", ".join(d.description for d in result.smt) or "-")
    table.add_row("PDH / PDL", f"{_price(result.pdh)} / {_price(result.pdl)}")
    table.add_row("Range Position", result.pd_range.position.value)
    table.add_row("POC", _price(result.volume_profile.poc))
    return table


def bias_table(result: AnalysisResult) -> Table:
    bias = result.bias
    table = Table(box=box.SIMPLE, title="Bias & Risk")
    table.add_column("Metric", style="cyan")
    table.add_column("Value")

    table.add_row("Composite Bias", f"{_colored(bias.label.value, DIRECTION_COLORS)} ({bias.score:+d})")
    table.add_row("Midnight-Open Bias", _colored(result.buffered_bias.value, DIRECTION_COLORS))
    true_open = result.true_open
    table.add_row("True Open", f"{_colored(true_open.direction, DIRECTION_COLORS)} ({true_open.score}) {true_open.hint}")
    table.add_row("Factors", "\n".join(bias.factors) or "-")

    risk = result.risk
    table.add_row("Risk Direction", _colored(risk.direction.value, DIRECTION_COLORS))
    if risk.invalidation:
        table.add_row("Invalidation", f"{_price(risk.invalidation.price)} ({risk.invalidation.description})")
    for target in risk.targets:
        table.add_row("Target", f"{_price(target.price)} ({target.description})")
    table.add_row("R:R", f"{risk.rr:.2f}" if risk.rr is not None else "N/A")
    return table


def psp_regime_table(result: AnalysisResult) -> Table:
    psp = result.psp
    regime = result.regime
    table = Table(box=box.SIMPLE, title="PSP & Regime")
    table.add_column("Metric", style="cyan")
    table.add_column("Value")

    table.add_row("PSP State", psp.state.value)
    table.add_row("PSP Direction", _colored(psp.direction.value, DIRECTION_COLORS))
    table.add_row("PSP Score", str(psp.score))
    if psp.checklist.missing():
        table.add_row("Missing", ", ".join(psp.checklist.missing()))
    if psp.levels:
        table.add_row("Entry", f"{_price(psp.levels.entry_low)} - {_price(psp.levels.entry_high)}")
        table.add_row("Invalidation", _price(psp.levels.invalidation))
    table.add_row("Regime", f"{regime.state.value} ({regime.confidence}%)")
    table.add_row("Regime Reason", regime.reason)
    table.add_row("Session", f"NY {result.time_context.ny_time}"
                  + (" [green]Kill Zone[/green]" if result.time_context.in_kill_zone else ""))
    table.add_row("USD", f"{result.usd_context.trend} ({result.usd_context.confidence_modifier:+d})")
    return table


def scenarios_table(result: AnalysisResult) -> Table:
    table = Table(box=box.ROUNDED, title="Trade Scenarios")
    for col in ("", "Type", "Dir", "Entry", "SL", "Targets", "R:R", "Score", "State", "Condition"):
        table.add_column(col)

    for scenario in result.scenarios:
        score = scenario.confidence
        table.add_row(
            "*" if scenario.is_primary else "",
            scenario.type.value,
            _colored(scenario.direction.value, DIRECTION_COLORS),
            f"{_price(scenario.entry_zone.low)} - {_price(scenario.entry_zone.high)}",
            _price(scenario.stop_loss),
            ", ".join(_price(t.price) for t in scenario.targets),
            f"{scenario.rr:.2f}",
            f"{score.score} ({score.rating})",
            scenario.state.value,
            scenario.condition,
        )
    return table


def confluence_table(result: AnalysisResult) -> Table:
    confluence = result.confluence
    table = Table(box=box.ROUNDED, title="Confluence")
    table.add_column("Signal", style="cyan")
    table.add_column("Status")
    table.add_column("Direction")
    table.add_column("Score")
    table.add_column("Hint")

    for name, signal in result.signals.items():
        table.add_row(
            name,
            _colored(signal.status, STATUS_COLORS),
            _colored(signal.direction, DIRECTION_COLORS),
            str(signal.score),
            signal.hint,
        )
    return table


def render_analysis(result: AnalysisResult, output_format: OutputFormat = OutputFormat.RICH) -> None:
    """Render a pipeline result."""
    if output_format == OutputFormat.JSON:
        output_json(result)
        return

    console.print(f"\n[bold cyan]=== MARKETLENS: {result.symbol} ===[/bold cyan]\n")
    console.print(structure_table(result))
    console.print(bias_table(result))
    console.print(psp_regime_table(result))
    if result.scenarios:
        console.print(scenarios_table(result))
    else:
        console.print("[yellow]No trade scenarios[/yellow]")
    console.print(confluence_table(result))

    confluence = result.confluence
    reliability = result.reliability
    color = _colored(confluence.suggestion, DIRECTION_COLORS)
    content = (
        f"[bold]Suggestion:[/bold] {color}\n"
        f"[bold]Level:[/bold] {_text(confluence.level)} ({confluence.score_pct}%, raw {confluence.raw}/{confluence.max_raw})\n"
        f"[bold]Reliability:[/bold] {reliability.final_score}% {reliability.data_status.value}"
    )
    if reliability.cap_reason:
        content += f" ({reliability.cap_reason})"
    content += f"\n\n{confluence.hint}"
    console.print(Panel(content, title="Verdict", border_style=STATUS_COLORS.get(_text(confluence.status), "cyan")))
