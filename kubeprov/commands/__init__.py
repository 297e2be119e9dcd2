from . import configure, join, reset, run, status

__all__ = ["configure", "join", "reset", "run", "status"]
