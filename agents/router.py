import asyncio
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Sequence

from loguru import logger

from agents.planner import Planner
from agents.specialists import Specialist
from graph.errors import PipelineTimeout, UnknownSpecialist

MAX_HANDOFFS = 6

_CLOSED = object()


@dataclass(frozen=True)
class HandoffEvent:
    from_controller: str
    to_specialist: str
    argument: str


HandoffListener = Callable[[HandoffEvent], None]


class Router:
    """
    Multi-agent controller that delegates a lead to specialists.

    The planner decides every step. The intended order (enrich, score,
    write) lives in the planner's instruction and is not enforced here; the
    router only bounds the number of hand-offs per turn. The user sees the
    output of the last specialist that ran, or the planner's own reply when
    it answered without delegating.
    """

    name = "lead_router"

    def __init__(
        self,
        planner: Planner,
        specialists: Sequence[Specialist],
        max_handoffs: int = MAX_HANDOFFS,
        listeners: Optional[List[HandoffListener]] = None,
    ):
        if max_handoffs < 1:
            raise ValueError(f"max_handoffs must be at least 1, got {max_handoffs}")
        self.planner = planner
        self.specialists = {s.name: s for s in specialists}
        self.max_handoffs = max_handoffs
        self.listeners: List[HandoffListener] = list(listeners or [])
        self.history: List[Dict[str, Any]] = []

    def add_listener(self, listener: HandoffListener) -> None:
        self.listeners.append(listener)

    def _emit(self, event: HandoffEvent) -> None:
        logger.info(f"Hand-off {event.from_controller} -> {event.to_specialist}: {event.argument!r}")
        for listener in self.listeners:
            listener(event)

    async def _turn(self, user_input: str) -> List[str]:
        """Run one user turn and return the increments of the final answer."""
        mark = len(self.history)
        self.history.append({"role": "user", "content": user_input})
        try:
            return await self._delegate()
        except BaseException:
            # a failed or cancelled turn leaves no trace in the conversation
            del self.history[mark:]
            raise

    async def _delegate(self) -> List[str]:
        specialists = list(self.specialists.values())
        final: Optional[List[str]] = None
        handoffs = 0

        while handoffs < self.max_handoffs:
            decision = await self.planner.decide(list(self.history), specialists)

            if not decision.is_handoff:
                if final is None:
                    final = [decision.reply]
                    self.history.append({"role": "assistant", "content": decision.reply})
                break

            specialist = self.specialists.get(decision.specialist)
            if specialist is None:
                raise UnknownSpecialist(f"Router asked for unknown specialist '{decision.specialist}'")

            self._emit(HandoffEvent(self.name, specialist.name, decision.argument))
            final = [chunk async for chunk in specialist.stream(list(self.history))]
            self.history.append({"role": "assistant", "content": f"[{specialist.name}] {''.join(final)}"})
            handoffs += 1
        else:
            logger.warning(f"Router reached {self.max_handoffs} hand-offs, returning last specialist output")

        return final or []

    async def _produce(self, user_input: str, channel: asyncio.Queue, timeout: Optional[float]) -> None:
        try:
            try:
                async with asyncio.timeout(timeout) as deadline:
                    final = await self._turn(user_input)
            except TimeoutError as e:
                if not deadline.expired():
                    raise
                logger.error(f"Router turn timed out after {timeout}s")
                raise PipelineTimeout(f"Router turn exceeded {timeout}s") from e
            for chunk in final:
                await channel.put(chunk)
        except Exception as e:
            await channel.put(e)
        finally:
            await channel.put(_CLOSED)

    async def stream(self, user_input: str, timeout: Optional[float] = None) -> AsyncIterator[str]:
        """
        Handle one user turn, yielding the final answer in increments.

        Intermediate specialist output never reaches the consumer. Errors from
        the turn are re-raised here; closing the iterator early cancels it.
        A turn running past ``timeout`` seconds is cancelled and surfaces as
        PipelineTimeout.
        """
        channel: asyncio.Queue = asyncio.Queue()
        producer = asyncio.create_task(self._produce(user_input, channel, timeout))
        try:
            while True:
                item = await channel.get()
                if item is _CLOSED:
                    break
                if isinstance(item, Exception):
                    raise item
                yield item
        finally:
            if not producer.done():
                producer.cancel()
                try:
                    await producer
                except asyncio.CancelledError:
                    pass

    async def run(self, user_input: str, timeout: Optional[float] = None) -> str:
        return "".join([chunk async for chunk in self.stream(user_input, timeout)])
