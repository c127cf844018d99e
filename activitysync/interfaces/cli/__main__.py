"""Entry point for running the activitysync CLI.

Executing ``python -m activitysync.interfaces.cli`` (or the ``activitysync``
console script) invokes this group. Without a subcommand it runs ``sync``.
"""

import click

from activitysync import __version__

from .sync import sync


@click.group(
    context_settings={"help_option_names": ["-h", "--help"]},
    invoke_without_command=True,
)
@click.version_option(__version__, "-v", "--version", prog_name="activitysync")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """activitysync command-line interface."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(sync)


cli.add_command(sync)


if __name__ == "__main__":
    cli()
