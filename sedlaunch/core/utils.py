from __future__ import annotations
import logging

def get_logger(name: str = "sedlaunch") -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        fmt = logging.Formatter("[%(levelname)s] %(message)s")
        handler.setFormatter(fmt)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger

def intersect_ranges(a: tuple[float, float], b: tuple[float, float]) -> tuple[float, float]:
    """Overlap of two closed intervals; empty overlaps come back with max <= min."""
    return (max(a[0], b[0]), min(a[1], b[1]))
