"""
Logging setup for StorySlip.

Configures the root logger once per process. Modules obtain their own
logger with ``logging.getLogger(__name__)``.

Environment Variables:
    LOG_LEVEL: Root log level (default INFO)
"""
import os
import logging

LOG_FORMAT = '[StorySlip] %(asctime)s %(levelname)s %(name)s: %(message)s'

_configured = False


def setup_logging(level: str = None) -> None:
    """Attach a single stream handler to the root logger."""
    global _configured
    if _configured:
        return

    level_name = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)

    # Quiet noisy libraries
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('werkzeug').setLevel(logging.WARNING)

    _configured = True
