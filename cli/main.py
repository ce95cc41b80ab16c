import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
import typer
from dotenv import load_dotenv
from rich.console import Console

# Load environment variables from .env file
load_dotenv()

from marketlens.config import EngineConfig, load_config, save_config
from marketlens.indicators.candles import Candle, candles_from_dataframe, candles_from_records
from marketlens.log import setup_logging
from marketlens.pipeline import AnalysisInputs, analyze as run_analysis
from marketlens.schemas.base import DataSource
from cli.output import OutputFormat, output_json, output_table, render_analysis

console = Console()

app = typer.Typer(
    name="MarketLens",
    help="MarketLens CLI: futures market-structure analytics",
    add_completion=True,  # Enable shell completion
)


def load_candles(path: str) -> List[Candle]:
    """
    Read candles from a CSV or JSON file.

    CSV files need open/high/low/close columns plus a time or timestamp
    column. JSON files hold a list of records (or {"candles": [...]}).

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file format is unsupported or columns are missing
    """
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Candle file not found: {path}")

    if file_path.suffix == ".csv":
        return candles_from_dataframe(pd.read_csv(file_path))
    if file_path.suffix == ".json":
        with open(file_path, "r") as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get("candles", [])
        return candles_from_records(data)
    raise ValueError(f"Unsupported candle file format: {file_path.suffix}")


def parse_references(values: Optional[List[str]]) -> Dict[str, List[Candle]]:
    """Parse repeated SYMBOL=PATH options."""
    references = {}
    for value in values or []:
        symbol, sep, path = value.partition("=")
        if not sep or not symbol or not path:
            raise ValueError(f"Reference must look like SYMBOL=PATH, got: {value}")
        references[symbol.strip().upper()] = load_candles(path.strip())
    return references


def parse_now(value: Optional[str]) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise ValueError(f"--now must be an ISO timestamp, got: {value}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def resolve_config(config_path: Optional[str]) -> EngineConfig:
    if config_path:
        return load_config(config_path)
    return EngineConfig().validate()


@app.command()
def analyze(
    candles_file: str = typer.Argument(..., help="Intraday candles (.csv or .json)"),
    daily: Optional[str] = typer.Option(None, "--daily", "-d", help="Daily candles file"),
    reference: Optional[List[str]] = typer.Option(None, "--reference", "-r", help="SMT reference as SYMBOL=PATH (repeatable)"),
    dxy: Optional[str] = typer.Option(None, "--dxy", help="DXY candles file for the USD context"),
    symbol: str = typer.Option("MNQ", "--symbol", "-s", help="Symbol label"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Engine config (.yaml/.json)"),
    timeframe: Optional[str] = typer.Option(None, "--timeframe", "-t", help="Override timeframe label"),
    source: Optional[DataSource] = typer.Option(None, "--source", help="Feed provider (reliability caps)"),
    closed: bool = typer.Option(False, "--closed", help="Treat the market as closed"),
    now: Optional[str] = typer.Option(None, "--now", help="Evaluation time (ISO 8601, UTC if naive)"),
    output_format: OutputFormat = typer.Option(OutputFormat.RICH, "--format", "-f", help="Output format"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Write a detailed log file"),
):
    """Analyze a candle file and print structure, bias, scenarios and confluence."""
    try:
        engine_config = resolve_config(config)
        if timeframe:
            engine_config.timeframe = timeframe
        setup_logging("DEBUG" if verbose else engine_config.log_level, log_file)

        inputs = AnalysisInputs(
            symbol=symbol.upper(),
            candles=load_candles(candles_file),
            daily=load_candles(daily) if daily else [],
            references=parse_references(reference),
            dxy=load_candles(dxy) if dxy else None,
            data_source=source or DataSource(engine_config.data_source),
            market_status="CLOSED" if closed else "OPEN",
        )
        result = run_analysis(inputs, engine_config, parse_now(now))
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    render_analysis(result, output_format)


@app.command("config")
def show_config(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Engine config to load"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Save to .yaml/.json instead of printing"),
    output_format: OutputFormat = typer.Option(OutputFormat.RICH, "--format", "-f", help="Output format"),
):
    """Print or save the effective engine configuration."""
    try:
        engine_config = resolve_config(config)
        if output:
            save_config(engine_config, output)
            console.print(f"[green]Configuration saved to {output}[/green]")
            return
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if output_format == OutputFormat.JSON:
        output_json(engine_config.to_dict())
    else:
        output_table(engine_config.to_dict(), title="Engine Configuration")


if __name__ == "__main__":
    app()
