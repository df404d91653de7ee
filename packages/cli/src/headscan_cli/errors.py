"""Turn headscan failures into click errors with a readable message."""

from __future__ import annotations

import logging
from contextlib import contextmanager

import click

from headscan_core.errors import HeadscanError
from headscan_store.base import StaleGenerationError

logger = logging.getLogger(__name__)


@contextmanager
def reported_errors():
    try:
        yield
    except StaleGenerationError as e:
        raise click.ClickException(f"{e}. Another writer updated the head table; run the command again.") from e
    except HeadscanError as e:
        logger.debug("Command failed", exc_info=True)
        raise click.ClickException(str(e)) from e
    except ValueError as e:
        # Invalid configuration: unknown traits, strategies, trust levels.
        raise click.UsageError(str(e)) from e
