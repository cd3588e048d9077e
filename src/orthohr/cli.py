"""CLI for the orthohr posture-aware heart-rate toolkit."""

import click


def _load_config(path: str | None):
    from orthohr.config import MonitorConfig
    from orthohr.errors import ConfigError

    if path is None:
        return MonitorConfig()
    try:
        return MonitorConfig.from_file(path)
    except ConfigError as e:
        raise click.BadParameter(str(e), param_hint="--config") from e


@click.group()
@click.option("--log-level", default="WARNING", show_default=True,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
              help="Engine log level (stderr).")
@click.option("--log-file", default=None, help="Also write logs to this file.")
def main(log_level: str, log_file: str | None) -> None:
    """orthohr: orthostatic heart-rate response detection."""
    from orthohr.log import setup_logging

    setup_logging(level=log_level.upper(), log_file=log_file)


@main.command()
@click.argument("file", type=click.Path(exists=True))
@click.option("--output", "-o", default=None, help="Write replay records as JSON.")
@click.option("--verbose", "-v", is_flag=True, help="Show entries without output and forwards.")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True),
              help="JSON engine configuration.")
@click.option("--summary", "show_summary", is_flag=True, help="Print a session summary afterwards.")
@click.option("--strict", is_flag=True, help="Fail on malformed log lines.")
def replay(file: str, output: str | None, verbose: bool, config_path: str | None,
           show_summary: bool, strict: bool) -> None:
    """Replay a recorded session log through the detection engine."""
    from orthohr.engine import MonitorEngine
    from orthohr.errors import ReplayError
    from orthohr.replay import replay_file

    engine = MonitorEngine(_load_config(config_path))
    try:
        replay_file(file, output, verbose, engine=engine, strict=strict)
    except ReplayError as e:
        raise click.ClickException(str(e)) from e

    if show_summary:
        from orthohr.analytics.summary import build_session_summary

        summary = build_session_summary(engine, include_events=False)
        click.echo(f"\n{'=' * 60}")
        click.echo("  Session Summary")
        click.echo(f"{'=' * 60}")
        click.echo(f"  Posture:        {summary.posture}")
        click.echo(f"  Baseline HR:    {summary.baseline_rate} bpm")
        click.echo(f"  Events:         {summary.event_count} "
                   f"({', '.join(f'{k} {v}' for k, v in summary.events_by_severity.items() if v) or 'none'})")
        click.echo(f"  Max increase:   +{summary.max_increase} bpm")
        click.echo(f"  Longest:        {summary.longest_sustained_sec:.0f} s sustained")
        click.echo(f"  Recovered:      {summary.recovered_count}/{summary.event_count}")
        click.echo(f"  HR changes:     {summary.significant_changes} "
                   f"({summary.major_changes} major), {summary.alerts_emitted} alert(s)")
        click.echo(f"{'=' * 60}")


@main.command()
@click.option("--profile", "-p", type=click.Choice(["elevated", "normal"]), default="elevated",
              help="Response profile to generate.")
@click.option("--seed", "-s", default=None, type=int, help="RNG seed.")
@click.option("--interval", default=5.0, show_default=True, help="Seconds between HR samples.")
@click.option("--output", "-o", default=None, help="Write the session log (JSONL) here.")
def simulate(profile: str, seed: int | None, interval: float, output: str | None) -> None:
    """Generate a synthetic standing-response session log."""
    from orthohr.simulate import simulate_session, write_session

    session = simulate_session(profile, seed=seed, hr_interval=interval)
    click.echo(repr(session))

    if output:
        write_session(session, output)
        click.echo(f"Session written to {output}")
    else:
        import json

        for entry in session.entries:
            click.echo(json.dumps(entry))


@main.command()
@click.option("--increase", "-i", required=True, type=int, help="Peak increase over baseline (bpm).")
@click.option("--sustained", "-s", default=0.0, show_default=True,
              help="Sustained elevation (seconds).")
def severity(increase: int, sustained: float) -> None:
    """Show the severity tier for an increase and sustained duration."""
    from orthohr.analytics.orthostatic import classify_severity

    tier = classify_severity(increase, sustained)
    click.echo(f"{tier.label} ({tier.value}, {tier.color})")


if __name__ == "__main__":
    main()
