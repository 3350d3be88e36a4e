# src/pixelqueue/transforms.py
"""Adapter turning a decode-once / render-many pipeline into a TransformFn.

The expensive step (decoding the input) runs once per batch; the per-output
step (resize, encode, write) runs concurrently in a thread pool and results
are yielded in completion order:

    prepare(input_path, content_digest) → decoded      (once per batch)
    render(decoded, job) → ImageJob | None              (once per output)

A raising ``prepare`` fails the whole batch. A raising ``render`` fails only
its own output.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Any

from pixelqueue.contracts import ImageJob, OutputResult

PrepareFn = Callable[[str, str], Any]
RenderFn = Callable[[Any, ImageJob], ImageJob | None]


class PooledTransform:
    """TransformFn that renders every output of a batch in parallel.

    Usage:
        transform = PooledTransform(
            prepare=lambda path, digest: decode(path),
            render=lambda image, job: write_variant(image, job),
            max_workers=4,
        )
        scheduler = Scheduler(transform)
    """

    def __init__(self, prepare: PrepareFn, render: RenderFn, *, max_workers: int = 1) -> None:
        """Initialize the adapter.

        Args:
            prepare: Decodes the input once per batch
            render: Produces one output; may return an updated job
            max_workers: Outputs rendered concurrently within a batch
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self._prepare = prepare
        self._render = render
        self._max_workers = max_workers

    @property
    def max_workers(self) -> int:
        return self._max_workers

    def __call__(
        self,
        input_path: str,
        content_digest: str,
        jobs: Sequence[ImageJob],
    ) -> Iterator[OutputResult]:
        # Runs eagerly so that a failing decode raises before any result is yielded
        decoded = self._prepare(input_path, content_digest)
        return self._render_all(decoded, jobs)

    def _render_all(self, decoded: Any, jobs: Sequence[ImageJob]) -> Iterator[OutputResult]:
        with ThreadPoolExecutor(max_workers=max(1, min(self._max_workers, len(jobs)))) as pool:
            futures: dict[Future[ImageJob | None], ImageJob] = {
                pool.submit(self._render, decoded, job): job for job in jobs
            }
            for future in as_completed(futures):
                job = futures[future]
                error = future.exception()
                if error is not None:
                    yield OutputResult.failure(job, error)
                else:
                    yield OutputResult.success(future.result() or job)
