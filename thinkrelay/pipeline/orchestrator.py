"""
Reasoning Pipeline

Runs one request through the two legs: the reasoning provider first,
then the target provider with the reasoning attached as an assistant
turn.

Design decisions:
- Explicit state machine: the current state is observable and every
  transition is logged
- One class, two modes: run() for blocking, run_stream() for streaming
- Streaming output goes to an EventSink; a detached sink never stops
  the run
- Errors surface once: blocking raises, streaming emits one error event
"""

from dataclasses import dataclass
from typing import Protocol

from thinkrelay.core.exceptions import (
    GatewayError,
    MissingCredentialError,
    MissingReasoningContentError,
    ValidationFailedError,
)
from thinkrelay.core.types import (
    ChatRequest,
    ChatResponse,
    ContentBlock,
    MessageRole,
    NormalizedChunk,
    PipelineEvent,
    PipelineState,
    TargetProvider,
)
from thinkrelay.observability.logging import get_logger
from thinkrelay.pipeline.normalizer import (
    THINKING_CLOSE,
    THINKING_OPEN,
    assemble_response,
    blocks_from_chunk,
    build_target_messages,
    wrap_reasoning,
)
from thinkrelay.reasoning.extractor import ReasoningExtractor
from thinkrelay.reasoning.llm.factory import AdapterFactory

logger = get_logger("thinkrelay.pipeline")


class EventSink(Protocol):
    """Receiver of streamed pipeline events."""

    async def send(self, event: PipelineEvent) -> bool:
        """Deliver one event. Returns False when nobody is listening."""
        ...


@dataclass
class PipelineRoute:
    """
    Where the two legs of one request go and with which credentials.

    The *_credential fields name what the caller must supply when the
    matching token is missing.
    """

    target: TargetProvider = TargetProvider.ANTHROPIC
    reasoning_token: str | None = None
    target_token: str | None = None
    reasoning_url: str | None = None
    target_url: str | None = None
    reasoning_credential: str = "X-DeepSeek-API-Token"
    target_credential: str = "X-Anthropic-API-Token"


class ReasoningPipeline:
    """
    One run of the reasoning gateway.

    A pipeline is single-use: create one per request.
    """

    def __init__(
        self,
        request: ChatRequest,
        route: PipelineRoute,
        factory: AdapterFactory,
    ):
        self.request = request
        self.route = route
        self._factory = factory
        self.state = PipelineState.VALIDATING
        self._validated = False
        self._detached = False

    # ------------------------------------------------------------
    # State
    # ------------------------------------------------------------

    def _transition(self, state: PipelineState) -> None:
        logger.info(
            "Pipeline transition",
            from_state=self.state.value,
            to_state=state.value,
            target=self.route.target.value,
        )
        self.state = state

    def _fail(self, error: GatewayError) -> None:
        logger.error(
            "Pipeline failed",
            error=error,
            state=self.state.value,
            error_code=error.code,
        )
        self._transition(PipelineState.FAILED)

    def validate(self) -> None:
        """
        Check the request before any provider is contacted.

        Raises:
            ValidationFailedError: conflicting system directives
            MissingCredentialError: a leg has no token
        """
        if self._validated:
            return

        if not self.request.validate_system_prompt():
            raise ValidationFailedError(
                "Invalid system prompt configuration",
                context={"system_messages": self._system_message_count()},
            )
        if not self.route.reasoning_token:
            raise MissingCredentialError(self.route.reasoning_credential)
        if not self.route.target_token:
            raise MissingCredentialError(self.route.target_credential)

        self._validated = True

    def _system_message_count(self) -> int:
        return sum(1 for m in self.request.messages if m.role == MessageRole.SYSTEM)

    # ------------------------------------------------------------
    # Adapters
    # ------------------------------------------------------------

    def _reasoning_adapter(self):
        return self._factory.reasoning(self.route.reasoning_token, self.route.reasoning_url)

    def _target_adapter(self):
        return self._factory.target(
            self.route.target, self.route.target_token, self.route.target_url
        )

    # ------------------------------------------------------------
    # Blocking
    # ------------------------------------------------------------

    async def run(self) -> ChatResponse:
        """
        Run both legs and return the combined response.

        Raises:
            GatewayError: on any failure; the pipeline ends in FAILED
        """
        try:
            self.validate()
            messages = self.request.messages_with_system()

            self._transition(PipelineState.REASONING_CALL)
            async with self._reasoning_adapter() as reasoner:
                reasoning_response = await reasoner.complete(
                    messages, self.request.deepseek_config
                )

            self._transition(PipelineState.REASONING_DRAIN)
            reasoning = (reasoning_response.reasoning or "").strip()
            if not reasoning:
                raise MissingReasoningContentError(
                    "No reasoning content in response",
                    provider=reasoner.provider_name,
                )

            self._transition(PipelineState.TARGET_BUILD)
            thinking = wrap_reasoning(reasoning)
            target_messages = build_target_messages(messages, thinking)

            self._transition(PipelineState.TARGET_CALL)
            async with self._target_adapter() as target:
                target_response = await target.complete(
                    target_messages, self.request.config_for(self.route.target)
                )

            self._transition(PipelineState.TARGET_DRAIN)
            response = assemble_response(thinking, target_response)
            self._transition(PipelineState.DONE)
            return response

        except GatewayError as e:
            self._fail(e)
            raise

    # ------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------

    async def _emit(self, sink: EventSink, event: PipelineEvent) -> None:
        delivered = await sink.send(event)
        if not delivered and not self._detached:
            self._detached = True
            logger.info("Client detached, pipeline continues", state=self.state.value)

    async def _emit_blocks(self, sink: EventSink, *blocks: ContentBlock) -> None:
        if blocks:
            await self._emit(sink, PipelineEvent.of_blocks(*blocks))

    def _reasoning_increments(
        self,
        extractor: ReasoningExtractor,
        chunk: NormalizedChunk,
    ) -> list[ContentBlock]:
        if chunk.reasoning_delta:
            text = extractor.ingest_field(chunk.reasoning_delta)
            return [ContentBlock.of_delta(text)]

        if not chunk.text_delta:
            return []

        step = extractor.ingest(chunk.text_delta)
        if step.residual:
            logger.debug("Dropped reasoning-leg answer text", length=len(step.residual))
        if step.reasoning:
            return [ContentBlock.of_delta(step.reasoning)]
        return []

    async def run_stream(self, sink: EventSink) -> None:
        """
        Run both legs, emitting events into `sink`.

        Never raises a GatewayError: failures become one error event. The
        run continues to completion even when the sink is detached.
        """
        try:
            self.validate()
            messages = self.request.messages_with_system()

            await self._emit(sink, PipelineEvent.start())
            self._transition(PipelineState.REASONING_CALL)
            await self._emit_blocks(sink, ContentBlock.of_text(THINKING_OPEN))

            extractor = ReasoningExtractor()
            async with self._reasoning_adapter() as reasoner:
                async for chunk in reasoner.stream(messages, self.request.deepseek_config):
                    blocks = self._reasoning_increments(extractor, chunk)
                    await self._emit_blocks(sink, *blocks)

            self._transition(PipelineState.REASONING_DRAIN)
            tail = extractor.finish()
            if tail.reasoning:
                await self._emit_blocks(sink, ContentBlock.of_delta(tail.reasoning))
            await self._emit_blocks(sink, ContentBlock.of_text(THINKING_CLOSE))

            reasoning = extractor.reasoning.strip()
            if not reasoning:
                logger.warning("Reasoning leg produced no reasoning text")

            self._transition(PipelineState.TARGET_BUILD)
            target_messages = build_target_messages(messages, wrap_reasoning(reasoning))

            self._transition(PipelineState.TARGET_CALL)
            async with self._target_adapter() as target:
                config = self.request.config_for(self.route.target)
                async for chunk in target.stream(target_messages, config):
                    await self._emit_blocks(sink, *blocks_from_chunk(chunk))

            self._transition(PipelineState.TARGET_DRAIN)
            await self._emit(sink, PipelineEvent.done())
            self._transition(PipelineState.DONE)

        except GatewayError as e:
            self._fail(e)
            await self._emit(sink, PipelineEvent.failure(e.message, e.numeric_code))
        except Exception as e:
            logger.exception("Unexpected pipeline error", state=self.state.value)
            self._transition(PipelineState.FAILED)
            await self._emit(sink, PipelineEvent.failure(f"Internal error: {e}", 500))
