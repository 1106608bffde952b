"""Inkwell CLI: entry point for the process and retrieve commands."""

import click

from inkwell import __version__


@click.group()
@click.version_option(version=__version__, package_name="inkwell")
@click.option("--config", "config_file", type=click.Path(dir_okay=False), default=None, help="YAML or JSON config file.")
@click.option("--log-level", default="WARNING", show_default=True, help="DEBUG, INFO, WARNING or ERROR.")
@click.pass_context
def main(ctx: click.Context, config_file: str | None, log_level: str) -> None:
    """Inkwell: journal analytics and semantic retrieval."""
    from inkwell.core.utils.logging import setup_logging

    from .common import load_config

    setup_logging(level=log_level)
    ctx.obj = load_config(config_file)


# Register subcommands (lazy imports keep startup fast)
from .process_cmd import process
from .retrieve_cmd import retrieve

main.add_command(process)
main.add_command(retrieve)
