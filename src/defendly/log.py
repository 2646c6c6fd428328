# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Logging helpers for Defendly."""

import logging
import os
from typing import Optional

DEFAULT_LOG_LEVEL = os.getenv("DEFENDLY_LOG_LEVEL", "WARNING").upper()


def setup_logging(level: Optional[str] = None) -> None:
    """Configure standard logging for CLI/library use."""
    effective_level = (level or DEFAULT_LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, effective_level, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )


__all__ = ["setup_logging"]
