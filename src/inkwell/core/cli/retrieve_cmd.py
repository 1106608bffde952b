"""inkwell retrieve: process a directory of entries and run a retrieve query."""

from __future__ import annotations

import json
import sys

import click


@click.command()
@click.argument("query")
@click.option(
    "--entries",
    "entries_dir",
    required=True,
    type=click.Path(file_okay=False),
    help="Directory of journal entries to index first.",
)
@click.option("--summary", "summary_id", default=None, help="Print a short preview under this result id.")
@click.pass_obj
def retrieve(config, query: str, entries_dir: str, summary_id: str | None) -> None:
    """Answer QUERY, a JSON retrieve query such as '{"scope": "chunks"}'."""
    from inkwell.core.cli.common import build_pipeline, echo_report
    from inkwell.core.exceptions import InputError
    from inkwell.core.utils.async_helpers import run_async_safely
    from inkwell.journal.config import SearchConfig
    from inkwell.journal.ranking import RetrievalService
    from inkwell.journal.retrieval import RetrieveQuery

    try:
        raw = json.loads(query)
    except json.JSONDecodeError as e:
        click.echo(f"QUERY is not valid JSON: {e}", err=True)
        sys.exit(2)
    if not isinstance(raw, dict):
        click.echo("QUERY must be a JSON object", err=True)
        sys.exit(2)

    try:
        parsed = RetrieveQuery.from_dict(raw)
    except InputError as e:
        click.echo(str(e), err=True)
        sys.exit(2)

    pipeline = build_pipeline(config, entries_dir)
    service = RetrievalService(pipeline.store, embedder=pipeline.embedder, config=SearchConfig.from_config(config))

    async def _run():
        report = await pipeline.run_bulk(skip_existing=False)
        return report, await service.retrieve(parsed)

    report, result = run_async_safely(_run())
    echo_report(report)

    payload = result.to_summary_dict(summary_id) if summary_id else result.to_dict()
    click.echo(json.dumps(payload, indent=2))
