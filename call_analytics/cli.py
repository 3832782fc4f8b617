"""CLI interface for call analytics aggregation."""

import json
from pathlib import Path
from typing import Any

import typer
from loguru import logger
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from .constants import (
    DEFAULT_DATASET_PATH,
    EXIT_CODE_ERROR,
    JSON_INDENT,
    CliHelp,
    LogMessage,
    Period,
    StatsKey,
    TalkRatioKey,
)
from .estimator import estimate_talk_ratio
from .export import export_manager_summary
from .filters import build_date_filter
from .ingestion import CallProcessingResult, build_analysis_row
from .rollup import (
    build_audio_stats,
    build_company_summary,
    build_manager_history,
    build_manager_stats,
    build_volume_series,
)
from .storage import CallDataset, StatsStorage, load_dataset

app = typer.Typer(help=CliHelp.APP)

DatasetOption = typer.Option(
    DEFAULT_DATASET_PATH,
    "--dataset",
    "-d",
    envvar="CALL_ANALYTICS_DATASET",
    help=CliHelp.DATASET,
)
PeriodOption = typer.Option(Period.ALL.value, "--period", "-p", help=CliHelp.PERIOD)
StartDateOption = typer.Option(None, "--start-date", help=CliHelp.START_DATE)
EndDateOption = typer.Option(None, "--end-date", help=CliHelp.END_DATE)
OutputOption = typer.Option(None, "--output", "-o", help=CliHelp.OUTPUT)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help=CliHelp.VERBOSE),
) -> None:
    """Call analytics aggregation tool."""
    logger.remove()
    logger.add(
        lambda message: typer.echo(message, err=True, nl=False),
        level="DEBUG" if verbose else "INFO",
    )


def _load(dataset: Path) -> CallDataset:
    if not dataset.exists():
        logger.error(LogMessage.DATASET_MISSING.format(dataset))
        raise typer.Exit(code=EXIT_CODE_ERROR)
    try:
        return load_dataset(dataset)
    except json.JSONDecodeError as e:
        logger.error(LogMessage.DATASET_INVALID.format(dataset, e))
        raise typer.Exit(code=EXIT_CODE_ERROR)


def _emit(payload: Any, output: Path | None) -> None:
    if output is not None:
        StatsStorage().save_json(payload=payload, filepath=output)
        return
    typer.echo(json.dumps(payload, indent=JSON_INDENT, ensure_ascii=False, default=str))


def _print_manager_table(manager_stats: list[dict[str, Any]]) -> None:
    table = Table(title="Manager performance")
    table.add_column("Manager")
    table.add_column("Calls", justify="right")
    table.add_column("Avg score", justify="right")
    table.add_column("Talk ratio (mgr/cust)", justify="right")
    table.add_column("Avg duration (s)", justify="right")

    for manager in manager_stats:
        talk_ratio = manager[StatsKey.TALK_RATIO]
        table.add_row(
            str(manager[StatsKey.NAME]),
            str(manager[StatsKey.TOTAL_AUDIOS]),
            str(manager[StatsKey.AVERAGE_SCORE]),
            f"{talk_ratio[TalkRatioKey.MANAGER]}/{talk_ratio[TalkRatioKey.CUSTOMER]}",
            str(manager[StatsKey.AVERAGE_DURATION]),
        )

    Console(stderr=True).print(table)


@app.command(help=CliHelp.MANAGERS_COMMAND)
def managers(
    dataset: Path = DatasetOption,
    period: str = PeriodOption,
    start_date: str = StartDateOption,
    end_date: str = EndDateOption,
    output: Path = OutputOption,
    csv_dir: Path = typer.Option(
        None, "--csv-dir", envvar="CALL_ANALYTICS_OUTPUT_DIR", help=CliHelp.CSV
    ),
) -> None:
    data = _load(dataset)
    window = build_date_filter(period, start_date, end_date)

    try:
        manager_stats = build_manager_stats(data.records, data.catalog, window)
    except Exception as e:
        logger.exception(LogMessage.ERROR_OCCURRED.format(e))
        raise typer.Exit(code=EXIT_CODE_ERROR)

    _emit(manager_stats, output)

    if csv_dir is not None:
        storage = StatsStorage()
        export_manager_summary(manager_stats, csv_dir / "manager_summary.csv")
        storage.save_mistakes_csv(
            manager_stats=manager_stats, filepath=csv_dir / "manager_mistakes.csv"
        )
        storage.save_complaints_csv(
            manager_stats=manager_stats, filepath=csv_dir / "manager_complaints.csv"
        )

    if manager_stats:
        _print_manager_table(manager_stats)


@app.command(help=CliHelp.COMPANY_COMMAND)
def company(
    dataset: Path = DatasetOption,
    period: str = PeriodOption,
    start_date: str = StartDateOption,
    end_date: str = EndDateOption,
    output: Path = OutputOption,
) -> None:
    data = _load(dataset)
    window = build_date_filter(period, start_date, end_date)
    _emit(build_company_summary(data.records, data.catalog, window), output)


@app.command(help=CliHelp.VOLUME_COMMAND)
def volume(
    dataset: Path = DatasetOption,
    period: str = PeriodOption,
    start_date: str = StartDateOption,
    end_date: str = EndDateOption,
    manager_ids: list[str] = typer.Option(
        None, "--manager-id", "-m", help=CliHelp.MANAGER_IDS
    ),
    output: Path = OutputOption,
) -> None:
    data = _load(dataset)
    window = build_date_filter(period, start_date, end_date, volume=True)
    _emit(build_volume_series(data.records, window, manager_ids), output)


@app.command(help=CliHelp.HISTORY_COMMAND)
def history(
    manager_id: str = typer.Argument(..., help="Manager id"),
    dataset: Path = DatasetOption,
    period: str = PeriodOption,
    start_date: str = StartDateOption,
    end_date: str = EndDateOption,
    output: Path = OutputOption,
) -> None:
    data = _load(dataset)
    window = build_date_filter(period, start_date, end_date)
    _emit(build_manager_history(data.records, manager_id, window), output)


@app.command(help=CliHelp.AUDIO_COMMAND)
def audio(
    audio_file_id: str = typer.Argument(..., help="Audio file id"),
    dataset: Path = DatasetOption,
    output: Path = OutputOption,
) -> None:
    data = _load(dataset)
    record = data.find(audio_file_id)
    if record is None:
        logger.error(LogMessage.AUDIO_NOT_FOUND.format(audio_file_id))
        raise typer.Exit(code=EXIT_CODE_ERROR)

    stats = build_audio_stats(record, data.catalog)
    if stats is None:
        raise typer.Exit(code=EXIT_CODE_ERROR)
    _emit(stats, output)


@app.command(help=CliHelp.SCORE_COMMAND)
def score(
    result_file: Path = typer.Argument(..., help="AI result JSON file"),
    output: Path = OutputOption,
) -> None:
    if not result_file.exists():
        logger.error(LogMessage.FILE_MISSING.format(result_file))
        raise typer.Exit(code=EXIT_CODE_ERROR)

    try:
        result = CallProcessingResult.model_validate_json(result_file.read_text())
    except ValidationError as e:
        logger.error(LogMessage.ERROR_OCCURRED.format(e))
        raise typer.Exit(code=EXIT_CODE_ERROR)

    row = build_analysis_row(result.analysis, category=result.category)
    estimate = estimate_talk_ratio(result.transcription.to_segments())

    _emit(
        {
            "analysis": row.to_dict(),
            StatsKey.TALK_RATIO: estimate.talk_ratio.to_dict()
            if estimate.talk_ratio is not None
            else None,
            StatsKey.DURATION: estimate.duration,
        },
        output,
    )
