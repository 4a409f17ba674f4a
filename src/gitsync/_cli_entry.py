"""Console script for ``gitsync``.

The command line lives behind the ``cli`` extra; without it the script
names the missing module and exits with status 1.
"""

import sys

_INSTALL_HINT = "pip install 'gitsync[cli]'"


def main(argv=None):
    try:
        from .cli import main as cli_main
    except ImportError as exc:
        missing = exc.name or "click"
        sys.stderr.write(
            f"gitsync: the command line needs the 'cli' extra ({missing} is not importable).\n"
            f"Install it with:  {_INSTALL_HINT}\n"
        )
        raise SystemExit(1)
    cli_main(args=argv, prog_name="gitsync")
