"""Reading, collecting and reporting on YAML security rule files."""

__version__ = "0.1.0"

__all__ = [
    "collector",
    "context",
    "infos",
    "reader",
    "result",
    "signal_handler",
    "source",
    "stats",
]