"""Composable, cancellable computations executed against an editor environment.

An ``Action`` is a lazy description of work. Nothing runs until
``await action.execute(env)``; composing actions with ``map``/``bind``/
``sequence`` never touches the environment. Execution produces either
``Success(value)`` or ``Cancelled()``. Cancellation is an ordinary value that
short-circuits the rest of a chain; anything raised during execution is fatal
and propagates to the caller.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Generic, Iterable, TypeVar, Union

if TYPE_CHECKING:
    from editor_agent.environment import Environment

logger = logging.getLogger(__name__)

A = TypeVar("A")
B = TypeVar("B")
T = TypeVar("T")


class ActionError(Exception):
    """Fatal failure of an action chain. Never absorbed by bind/map."""


@dataclass(frozen=True)
class Success(Generic[A]):
    value: A


@dataclass(frozen=True)
class Cancelled:
    pass


ActionResult = Union[Success[A], Cancelled]

_CANCELLED = Cancelled()


def success(value: A) -> Success[A]:
    return Success(value)


def cancellation() -> Cancelled:
    return _CANCELLED


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _apply_pair(left: Any, right: Any) -> Any:
    # Whichever side holds the function is applied to the other.
    if callable(left):
        return left(right)
    return right(left)


class Action(Generic[A]):
    __slots__ = ("_run",)

    def __init__(self, run: Callable[[Environment], Awaitable[ActionResult[A]]]) -> None:
        self._run = run

    async def execute(self, env: Environment) -> ActionResult[A]:
        return await self._run(env)

    def bind(self, f: Callable[[A], Action[B]]) -> Action[B]:
        """Monadic bind: run ``f(value)`` only if this action succeeded."""

        async def run(env: Environment) -> ActionResult[B]:
            result = await self._run(env)
            if isinstance(result, Cancelled):
                return result
            return await f(result.value).execute(env)

        return Action(run)

    def map(self, f: Callable[[A], B]) -> Action[B]:
        async def run(env: Environment) -> ActionResult[B]:
            result = await self._run(env)
            if isinstance(result, Cancelled):
                return result
            return Success(f(result.value))

        return Action(run)

    def then(self, next_action: Action[B]) -> Action[B]:
        return self.bind(lambda _: next_action)

    def and_(self, other: Action[B]) -> Action[tuple[A, B]]:
        return sequence(self, other)

    def apply(self, other: Action[Any]) -> Action[Any]:
        """Applicative apply. Works in either direction:

        ``pure(f).apply(pure(x))`` and ``pure(x).apply(pure(f))`` both give
        ``f(x)``, and curried functions chain:
        ``pure(add).apply(pure(3)).apply(pure(4))``.
        """
        return sequence(self, other).map(lambda pair: _apply_pair(*pair))

    def side_effect(self, f: Callable[[A], Any]) -> Action[A]:
        """Observe the success value without changing it."""

        def observe(value: A) -> A:
            f(value)
            return value

        return self.map(observe)

    def debug(self, label: str = "", level: int = logging.DEBUG) -> Action[A]:
        return self.side_effect(lambda value: logger.log(level, "%s%r", f"{label}: " if label else "", value))

    def or_else(self, fallback: Action[A]) -> Action[A]:
        """Run ``fallback`` if this action cancels or raises."""

        async def run(env: Environment) -> ActionResult[A]:
            try:
                result = await self._run(env)
            except Exception as e:
                logger.debug("Action failed, using fallback: %s", e)
                return await fallback.execute(env)
            if isinstance(result, Cancelled):
                return await fallback.execute(env)
            return result

        return Action(run)

    def recover(self, fallback: Action[A]) -> Action[A]:
        """Run ``fallback`` if this action cancels. Errors still propagate."""

        async def run(env: Environment) -> ActionResult[A]:
            result = await self._run(env)
            if isinstance(result, Cancelled):
                return await fallback.execute(env)
            return result

        return Action(run)


def pure(value: A) -> Action[A]:
    async def run(env: Environment) -> ActionResult[A]:
        return Success(value)

    return Action(run)


def lift(thunk: Callable[[], A | Awaitable[A]]) -> Action[A]:
    """Wrap a zero-argument (sync or async) computation."""
    return from_environment(lambda env: thunk())


def from_environment(f: Callable[[Environment], A | Awaitable[A]]) -> Action[A]:
    """Lift an environment-dependent computation. Exceptions are fatal."""

    async def run(env: Environment) -> ActionResult[A]:
        return Success(await _resolve(f(env)))

    return Action(run)


def cancel() -> Action[Any]:
    async def run(env: Environment) -> ActionResult[Any]:
        return _CANCELLED

    return Action(run)


def fail(message: str = "Operation failed", error: type[Exception] = ActionError) -> Action[Any]:
    async def run(env: Environment) -> ActionResult[Any]:
        raise error(message)

    return Action(run)


def sequence(*actions: Action[Any]) -> Action[tuple[Any, ...]]:
    """Run actions concurrently and collect their values into a tuple.

    If any action cancels, the whole sequence is cancelled; no partial
    results are returned.
    """

    async def run(env: Environment) -> ActionResult[tuple[Any, ...]]:
        results = await asyncio.gather(*(action.execute(env) for action in actions))
        if any(isinstance(r, Cancelled) for r in results):
            return _CANCELLED
        return Success(tuple(r.value for r in results))

    return Action(run)


def traverse(items: Iterable[T], f: Callable[[T], Action[B]]) -> Action[list[B]]:
    return sequence(*(f(item) for item in items)).map(list)
