"""Process resource sampling used by the pipeline guards."""

import sys
from typing import Dict

try:
    import resource
except ImportError:  # Windows
    resource = None


def memory_snapshot() -> Dict[str, float]:
    """Return the process high-water resident set size in megabytes.

    Empty on platforms without the ``resource`` module.
    """
    if resource is None:
        return {}

    usage = resource.getrusage(resource.RUSAGE_SELF)
    # ru_maxrss is bytes on macOS, kilobytes elsewhere
    divisor = 1024 * 1024 if sys.platform == "darwin" else 1024
    return {
        "max_rss_mb": round(usage.ru_maxrss / divisor, 2),
        "user_time_s": round(usage.ru_utime, 3),
    }
