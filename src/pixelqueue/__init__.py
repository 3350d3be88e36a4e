"""
pixelqueue: deduplicating, batching scheduler for image derivative jobs.

Many callers may request overlapping derivatives of the same source image.
pixelqueue runs each input's pending variants in one transform invocation,
never repeats work whose output exists or is already in flight, and hands
every caller a future for exactly the output it asked for.
"""

__version__ = "0.1.0"
