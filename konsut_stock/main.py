"""Development server entrypoint."""
from __future__ import annotations

import logging

from .app import create_app
from .config import get_settings


def run() -> None:
    """Convenience wrapper used by ``python -m konsut_stock.main``."""

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app(settings)
    app.run(
        host="127.0.0.1",
        port=5000,
        debug=settings.environment == "development",
    )


if __name__ == "__main__":
    run()
