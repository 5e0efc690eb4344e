from __future__ import annotations

import logging
import sys


def configure_logging(*, verbose: bool, quiet: bool) -> None:
    """
    Configure process-wide logging for CLI usage.

    - Default: INFO
    - --verbose: DEBUG (includes layer pushes and walk boundaries)
    - --quiet: WARNING

    Logs go to stderr so `--format json` output on stdout stays parseable.
    """

    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    fmt = "smellscope: %(message)s"
    if verbose:
        fmt = "smellscope [%(levelname)s] %(name)s: %(message)s"

    logging.basicConfig(level=level, format=fmt, stream=sys.stderr, force=True)
