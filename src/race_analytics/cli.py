"""Command-line interface for Race Analytics."""

import sys
from pathlib import Path
from typing import Optional, Tuple

import click
from loguru import logger

from .analysis.race_report import analyze_race
from .analysis.telemetry_synthesis import compare_lap_telemetry
from .data_processing.loaders import load_race_batch
from .data_processing.preprocessors import FilterConfig
from .data_processing.time_codec import format_race_time
from .data_processing.transformers import (
    degradation_to_frame,
    gaps_to_frame,
    lap_times_to_frame,
    stints_to_frame,
    telemetry_to_frame,
    timeline_to_frame,
)
from .schemas import NoData


@click.group()
@click.version_option(package_name="race-analytics")
@click.option("--verbose", is_flag=True, help="Enable debug logging")
def main(verbose: bool) -> None:
    """Race Analytics CLI.

    Gap, stint, sector and lap time analysis over a saved race batch,
    plus synthetic telemetry for head-to-head lap comparison.
    """
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


@main.command()
@click.argument("batch_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--driver", "drivers", multiple=True, help="Driver id to analyze (repeatable)")
@click.option("--exclude-pit-laps", is_flag=True, help="Drop laps with a pit stop")
@click.option("--exclude-outliers", is_flag=True, help="Null IQR outlier lap times")
@click.option("--race-pace", is_flag=True, help="Drop lap 1 and the final 3 laps")
@click.option("--lap-start", type=int, default=None, help="First lap to include")
@click.option("--lap-end", type=int, default=None, help="Last lap to include")
@click.option("--min-lap-time", type=float, default=None, help="Fastest lap time to show (s)")
@click.option("--max-lap-time", type=float, default=None, help="Slowest lap time to show (s)")
@click.option("--output", type=click.Path(file_okay=False, path_type=Path), default=None, help="Write CSV tables here")
def analyze(
    batch_path: Path,
    drivers: Tuple[str, ...],
    exclude_pit_laps: bool,
    exclude_outliers: bool,
    race_pace: bool,
    lap_start: Optional[int],
    lap_end: Optional[int],
    min_lap_time: Optional[float],
    max_lap_time: Optional[float],
    output: Optional[Path],
) -> None:
    """Analyze a race batch saved as JSON."""
    logger.info(f"Analyzing {batch_path}")
    config = FilterConfig(
        exclude_pit_laps=exclude_pit_laps,
        exclude_outliers=exclude_outliers,
        lap_range_start=lap_start,
        lap_range_end=lap_end,
        min_lap_time=min_lap_time,
        max_lap_time=max_lap_time,
        show_only_race_pace=race_pace,
    )

    try:
        batch = load_race_batch(batch_path)
    except ValueError as e:
        raise click.ClickException(f"Could not read race batch: {e}")

    result = analyze_race(batch, config, list(drivers) or None)
    if isinstance(result, NoData):
        click.echo(result.reason)
        return

    summary = result.summary
    click.echo(f"Race: {result.race_name or 'unknown'}")
    click.echo(f"Total laps: {summary.total_laps}  Drivers: {summary.driver_count}  Pit stops: {summary.pit_stop_count}")
    if summary.fastest_lap is not None:
        fastest = summary.fastest_lap
        click.echo(
            f"Fastest lap: {format_race_time(fastest.lap_time)} by {fastest.driver_id} (lap {fastest.lap_number})"
        )
    if summary.average_pit_stop is not None:
        click.echo(f"Average pit stop: {summary.average_pit_stop:.3f}s")
    click.echo(config.describe())

    click.echo("")
    click.echo(f"{'Driver':<20}{'Best':>6}{'Worst':>7}{'Led':>5}{'Avg gap':>10}{'Gain':>9}{'Loss':>9}")
    for driver_id in result.driver_ids:
        stats = result.gaps.stats.get(driver_id)
        if stats is None:
            click.echo(f"{driver_id:<20}  no gap data")
            continue
        click.echo(
            f"{driver_id:<20}{stats.best_position or '-':>6}{stats.worst_position or '-':>7}"
            f"{stats.times_led:>5}{stats.average_gap:>10.3f}"
            f"{stats.biggest_gain:>9.3f}{stats.biggest_loss:>9.3f}"
        )

    if result.sectors.theoretical_bests:
        click.echo("")
        for driver_id, best in result.sectors.theoretical_bests.items():
            click.echo(f"Theoretical best {driver_id}: {format_race_time(best)}")

    if output is not None:
        output.mkdir(parents=True, exist_ok=True)
        lap_times_to_frame(result.lap_times).to_csv(output / "lap_times.csv")
        timeline_to_frame(result.gaps.cumulative_times).to_csv(output / "cumulative.csv", index=False)
        gaps_to_frame(result.gaps.gaps_to_leader, result.gaps.intervals).to_csv(output / "gaps.csv", index=False)
        stints_to_frame(result.stints).to_csv(output / "stints.csv", index=False)
        degradation_to_frame(result.degradation).to_csv(output / "degradation.csv", index=False)
        click.echo(f"Tables written to: {output}")


@main.command()
@click.argument("batch_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--lap", "lap_number", type=int, required=True, help="Lap to compare")
@click.option("--driver-a", required=True, help="First driver id")
@click.option("--driver-b", required=True, help="Second driver id")
@click.option("--seed", type=int, default=None, help="Random seed for a reproducible trace")
@click.option("--output", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Write the traces as CSV")
def telemetry(
    batch_path: Path,
    lap_number: int,
    driver_a: str,
    driver_b: str,
    seed: Optional[int],
    output: Optional[Path],
) -> None:
    """Generate simulated head-to-head telemetry for one lap."""
    try:
        batch = load_race_batch(batch_path)
    except ValueError as e:
        raise click.ClickException(f"Could not read race batch: {e}")

    comparison = compare_lap_telemetry(batch.laps, lap_number, driver_a, driver_b, batch.race_name, seed)
    if comparison is None:
        click.echo("No telemetry data available for selected lap")
        return

    a, b = comparison.telemetry_a, comparison.telemetry_b
    click.echo(f"Simulated telemetry on {a.circuit_id} (not measured data)")
    click.echo(f"{driver_a}: {format_race_time(a.lap_time)}  top speed {max(p.speed for p in a.points)} km/h")
    click.echo(f"{driver_b}: {format_race_time(b.lap_time)}  top speed {max(p.speed for p in b.points)} km/h")
    click.echo(f"Delta: {comparison.lap_time_delta:.3f}s")

    if output is not None:
        telemetry_to_frame({driver_a: a.points, driver_b: b.points}).to_csv(output, index=False)
        click.echo(f"Telemetry written to: {output}")


if __name__ == "__main__":
    main()
