"""
Optional inference backends for obstacle_kit.

Kept in a separate package so the post-inference core (decode, NMS, distance)
can be used without installing an inference runtime.
"""

from __future__ import annotations

__all__ = []
