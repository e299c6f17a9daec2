from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping

LOG_LEVEL_ENV = "AVESTA_LOG_LEVEL"

_SHORT_FORMAT = "Avesta: %(message)s"
_VERBOSE_FORMAT = "Avesta [%(levelname)s] %(name)s: %(message)s"


def resolve_level(*, verbose: bool, quiet: bool, environ: Mapping[str, str] | None = None) -> int:
    """
    Pick the log level for a CLI run.

    `--verbose` (DEBUG) wins over `--quiet` (WARNING), which wins over
    `AVESTA_LOG_LEVEL` (a level name such as `debug`). The default is INFO;
    unknown level names are ignored.
    """

    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    env = os.environ if environ is None else environ
    name = env.get(LOG_LEVEL_ENV, "").strip().upper()
    level = logging.getLevelName(name) if name else None
    return level if isinstance(level, int) else logging.INFO


def configure_logging(*, verbose: bool, quiet: bool) -> None:
    """Route log records to stderr so `--format json` output on stdout stays parseable."""

    level = resolve_level(verbose=verbose, quiet=quiet)
    fmt = _VERBOSE_FORMAT if level <= logging.DEBUG else _SHORT_FORMAT
    logging.basicConfig(level=level, format=fmt, stream=sys.stderr, force=True)
