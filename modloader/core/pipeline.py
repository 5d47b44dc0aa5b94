"""
Pipeline - Sequential composition of asynchronous stages.

A Pipeline is built from an ordered list of stage functions. Running it
threads a payload through every stage:
- Each stage is called as stage(context, payload)
- A stage returns the next payload, an awaitable of it, or None to keep
  the current payload (stages that mutate the payload in place)
- The first stage that raises aborts the run; the error propagates unchanged

Unlike plugin hook pipelines, exactly the stages given at construction run,
always, in order.
"""

from collections.abc import Callable, Sequence
from typing import Any

import structlog

from modloader.core.utils import maybe_await

logger = structlog.get_logger(__name__)

Stage = Callable[[Any, Any], Any]


class PipelineError(Exception):
    """Base exception for pipeline errors."""

    pass


class Pipeline:
    """
    Ordered list of stages run one after another.

    Example:
        pipeline = Pipeline([transform_stage, dependency_stage])
        meta = await pipeline.run(manager, meta)
    """

    def __init__(self, stages: Sequence[Stage]):
        """
        Initialize Pipeline.

        Args:
            stages: Stage functions taking (context, payload)

        Raises:
            PipelineError: If a stage is not callable
        """
        for stage in stages:
            if not callable(stage):
                raise PipelineError(f"Pipeline stage must be callable. Got: {stage!r}")

        self._stages: tuple[Stage, ...] = tuple(stages)

    @property
    def stages(self) -> tuple[Stage, ...]:
        """Stages in execution order."""
        return self._stages

    async def run(self, context: Any, payload: Any) -> Any:
        """
        Run every stage in order.

        Args:
            context: Value handed to every stage unchanged (usually the manager)
            payload: Initial payload for the first stage

        Returns:
            The payload produced by the last stage
        """
        for stage in self._stages:
            logger.debug("pipeline.stage", stage=getattr(stage, "__name__", repr(stage)))
            result = await maybe_await(stage(context, payload))
            if result is not None:
                payload = result

        return payload

    def __len__(self) -> int:
        return len(self._stages)
