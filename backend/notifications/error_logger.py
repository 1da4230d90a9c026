"""
Error logging utility for bulletin delivery.

Writes one timestamped report file per delivery failure so that a failing
recipient can be investigated after the pass has moved on.
"""

import os
from datetime import datetime, timezone
from typing import Any


def get_log_dir() -> str:
    """Directory for error reports (NOTIFICATION_LOG_DIR or ./logs beside this module)."""
    return os.getenv("NOTIFICATION_LOG_DIR") or os.path.join(
        os.path.dirname(__file__), "logs"
    )


def log_notification_error(
    error_type: str, error_message: str, context: dict[str, Any] | None = None
) -> str:
    """
    Log a notification error to a timestamped file.

    Args:
        error_type: Type of error (e.g., 'connect', 'sending', 'configuration')
        error_message: The error message
        context: Optional dictionary with additional context (subscriber key, fingerprint, etc.)

    Returns:
        Path to the log file created
    """
    log_dir = get_log_dir()
    os.makedirs(log_dir, exist_ok=True)

    # Microseconds keep reports from one pass in separate files
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    filename = os.path.join(log_dir, f"notification_error_{timestamp}.txt")

    lines = [
        f"Bulletin Delivery Error - {datetime.now(timezone.utc).isoformat()}",
        "=" * 60,
        f"Stage:   {error_type}",
        f"Message: {error_message}",
    ]
    if context:
        lines.append("")
        lines.extend(f"{key}: {value}" for key, value in sorted(context.items()))

    with open(filename, "w", encoding="utf-8") as f:
        f.write("\n".join(lines) + "\n")

    return filename
