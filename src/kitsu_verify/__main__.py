"""
Process entrypoint - ``python -m kitsu_verify`` or ``kitsu-verify``.

Configures logging, validates settings, then serves the FastAPI app
with uvicorn. Invalid configuration is reported and the process exits
with status 1 before any traffic is served.
"""

import sys

import uvicorn

from kitsu_verify.config.settings import get_settings
from kitsu_verify.domain.exceptions import ConfigurationError
from kitsu_verify.logs import configure_logging, report_fatal


def main() -> None:
    configure_logging()

    try:
        settings = get_settings()
    except ConfigurationError as e:
        report_fatal(e, stage="configuration")
        sys.exit(1)

    configure_logging(settings.log_level)
    uvicorn.run(
        "kitsu_verify.api.main:app",
        host=settings.host,
        port=settings.port,
        ws_per_message_deflate=True,
        log_config=None,
    )


if __name__ == "__main__":
    main()
