"""inkwell process: run the analytics pipeline over a directory of entries."""

from __future__ import annotations

import json

import click


@click.command()
@click.argument("entries_dir", type=click.Path(file_okay=False))
@click.option("--summaries/--no-summaries", default=True, show_default=True, help="Regenerate month/year summaries.")
@click.option("--as-json", is_flag=True, help="Print analytics and summaries as JSON.")
@click.pass_obj
def process(config, entries_dir: str, summaries: bool, as_json: bool) -> None:
    """Chunk, embed and score every entry in ENTRIES_DIR."""
    from inkwell.core.cli.common import build_pipeline, echo_report
    from inkwell.core.utils.async_helpers import run_async_safely

    pipeline = build_pipeline(config, entries_dir)

    def on_progress(progress) -> None:
        mark = "ok" if progress.succeeded else "FAILED"
        click.echo(f"[{progress.current}/{progress.total}] {progress.entry_id} {mark}", err=True)

    async def _run():
        report = await pipeline.run_bulk(skip_existing=False, on_progress=on_progress)
        months, years = await pipeline.update_summaries() if summaries else ([], [])
        return report, months, years

    report, months, years = run_async_safely(_run())
    echo_report(report)

    if as_json:
        payload = {
            "analytics": [a.to_dict() for a in pipeline.store.get_analytics()],
            "months": [m.to_dict() for m in months],
            "years": [y.to_dict() for y in years],
        }
        click.echo(json.dumps(payload, indent=2))
        return

    for month in months:
        lo, hi = month.happiness_confidence_interval
        click.echo(f"{month.period}: happiness {month.happiness_avg:.1f} ({lo:.1f}-{hi:.1f}), {month.entry_count} entries")
    for year in years:
        click.echo(f"{year.period}: happiness {year.happiness_avg:.1f} over {year.month_count} month(s)")
