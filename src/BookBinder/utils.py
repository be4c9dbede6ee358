from __future__ import annotations

import logging
from pathlib import Path


def configure_logging(verbose: bool = False) -> None:
    """Configure a simple console logger."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(message)s",
    )


def read_markup(path: Path) -> bytes:
    # lxml honours the encoding declared in the XML prolog
    return path.read_bytes()


def ensure_parent_dir(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def describe_error_chain(error: BaseException) -> str:
    messages = []
    current: BaseException | None = error
    while current is not None:
        messages.append(str(current))
        current = current.__cause__
    return ": ".join(messages)
