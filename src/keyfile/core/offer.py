""" One-shot delivery of a key through a named pipe. """

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

from .exceptions import OfferError

logger = logging.getLogger(__name__)


def offer_key(pipe_path: str | Path, key: bytes) -> None:
    """
    Write ``key`` to the named pipe at ``pipe_path`` for a single reader.

    An existing FIFO is used as-is. Otherwise one is created with mode 0600
    and removed again when the offer ends, successfully or not.

    Opening the pipe blocks until a reader appears. A KeyboardInterrupt while
    waiting (SIGINT, or SIGTERM when the CLI maps it) propagates after cleanup.
    """
    path = Path(pipe_path)
    created = False
    try:
        st = path.stat()
    except FileNotFoundError:
        try:
            os.mkfifo(path, 0o600)
        except OSError as e:
            raise OfferError(f"create pipe: {e}") from e
        created = True
    else:
        if not stat.S_ISFIFO(st.st_mode):
            raise OfferError(f"file {str(path)!r} exists and is not a pipe")

    try:
        logger.info("waiting for a reader on %s", path)
        try:
            with open(path, "wb") as f:
                f.write(key)
        except OSError as e:
            raise OfferError(f"offering key: {e}") from e
        logger.info("key delivered through %s", path)
    finally:
        if created:
            path.unlink(missing_ok=True)
