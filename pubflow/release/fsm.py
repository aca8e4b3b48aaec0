from __future__ import annotations

from collections.abc import Callable, Hashable, Mapping
from dataclasses import dataclass

from pubflow.core.result import Err, Ok, Result


@dataclass(frozen=True, slots=True)
class StepAdvance[S]:
    session: S


@dataclass(frozen=True, slots=True)
class StepFinish[S]:
    session: S


type StepOutcome[S] = StepAdvance[S] | StepFinish[S]
type StepHandler[S, E] = Callable[[S], Result[StepOutcome[S], E]]


def advance[S](session: S) -> StepAdvance[S]:
    return StepAdvance(session=session)


def finish[S](session: S) -> StepFinish[S]:
    return StepFinish(session=session)


def run_state_machine[S, E, K: Hashable](
    *,
    initial_state: S,
    get_step: Callable[[S], K],
    handlers: Mapping[K, StepHandler[S, E]],
    on_advance: Callable[[S], None],
    unknown_step: Callable[[K], E],
) -> Result[S, E]:
    """Drive ``initial_state`` through ``handlers`` until one finishes or fails.

    ``on_advance`` sees every state entered after the initial one.
    """
    current = initial_state

    while True:
        step = get_step(current)
        handler = handlers.get(step)
        if handler is None:
            return Err(unknown_step(step))

        outcome = handler(current)
        if isinstance(outcome, Err):
            return outcome

        if isinstance(outcome.value, StepFinish):
            return Ok(outcome.value.session)

        current = outcome.value.session
        on_advance(current)
