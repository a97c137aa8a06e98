"""CLI commands for tablecache.

Provides command-line interface using Typer:
- tablecache invalidate: Evict all cached queries for one or more tables
- tablecache inspect: Show the cache keys recorded for a table

Usage:
    tablecache --help
    tablecache invalidate users orders
    tablecache inspect users --limit 20
"""

import typer

from tablecache.cli.inspect_cmd import inspect
from tablecache.cli.invalidate_cmd import invalidate

# Main CLI application
app = typer.Typer(
    name="tablecache",
    help="tablecache: cache-aside reads with table-based invalidation",
    no_args_is_help=True,
)

app.command("invalidate")(invalidate)
app.command("inspect")(inspect)


@app.callback()
def callback() -> None:
    """tablecache: cache-aside reads with table-based invalidation."""
    pass


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
