"""
Tests for Pipeline - Sequential composition of asynchronous stages.

This test suite covers:
1. Stage execution order
2. Payload threading between stages
3. Error propagation
4. Stage validation
"""

import pytest

from modloader.core.pipeline import Pipeline, PipelineError


class TestPipelineExecution:
    """Test running stages in order."""

    @pytest.mark.asyncio
    async def test_stages_run_in_order(self):
        """Stages should run one after another in list order."""
        order = []

        async def first(context, payload):
            order.append("first")

        async def second(context, payload):
            order.append("second")

        await Pipeline([first, second]).run(None, {})

        assert order == ["first", "second"]

    @pytest.mark.asyncio
    async def test_payload_threaded_through_stages(self):
        """Each stage receives the payload the previous stage returned."""

        async def double(context, payload):
            return payload * 2

        def add_context(context, payload):
            return payload + context

        result = await Pipeline([double, add_context, double]).run(1, 5)

        assert result == 22

    @pytest.mark.asyncio
    async def test_none_result_keeps_payload(self):
        """A stage returning None leaves the payload unchanged."""
        payload = {"source": "x"}

        async def mutate(context, value):
            value["source"] = "y"

        result = await Pipeline([mutate]).run(None, payload)

        assert result is payload
        assert result["source"] == "y"

    @pytest.mark.asyncio
    async def test_empty_pipeline(self):
        """A pipeline without stages returns the payload."""
        assert await Pipeline([]).run(None, "payload") == "payload"


class TestPipelineErrorHandling:
    """Test stage failures."""

    @pytest.mark.asyncio
    async def test_stage_error_stops_pipeline(self):
        """A failing stage propagates its error and later stages don't run."""
        order = []

        async def failing(context, payload):
            order.append("failing")
            raise ValueError("stage failed")

        async def never(context, payload):
            order.append("never")

        with pytest.raises(ValueError, match="stage failed"):
            await Pipeline([failing, never]).run(None, None)

        assert order == ["failing"]

    def test_non_callable_stage_rejected(self):
        """Stages must be callable."""
        with pytest.raises(PipelineError):
            Pipeline([None])

    def test_stages_and_length(self):
        """Stages are exposed in execution order."""

        def stage(context, payload):
            return payload

        pipeline = Pipeline([stage, stage])

        assert pipeline.stages == (stage, stage)
        assert len(pipeline) == 2
