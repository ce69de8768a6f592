"""
Hook engine for Rested.

Hooks are functions bound to an operation kind and a priority, run before
(pre) or after (post) the handler of a resource operation.

Execution rules:
- Only hooks whose kind matches the operation run
- Ascending priority: lower numbers run first, default 5
- Equal priorities keep their declaration order
- Sequential fold: each hook receives the Operation returned by the
  previous one and is awaited before the next starts

Hooks may be plain functions or coroutine functions.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from .errors import HookError
from .operation import Operation, OperationKind

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = 5

HookFunction = Callable[[Operation], Union[Operation, None, Awaitable[Union[Operation, None]]]]


class HookPhase(str, Enum):
    """Lifecycle phase a hook is attached to."""

    PRE = "pre"
    POST = "post"


@dataclass(frozen=True, slots=True)
class Hook:
    """
    A function bound to an operation kind.

    Attributes:
        op: Operation kind the hook applies to
        fn: Hook function (sync or async), receives and returns an Operation
        priority: Execution order within a phase (lower runs first)
    """

    op: OperationKind
    fn: HookFunction
    priority: int = DEFAULT_PRIORITY

    @property
    def name(self) -> str:
        return getattr(self.fn, "__qualname__", None) or repr(self.fn)

    def applies_to(self, kind: OperationKind) -> bool:
        return self.op == kind


def order_hooks(hooks: Iterable[Hook], kind: OperationKind) -> list[Hook]:
    """
    Select the hooks for an operation kind in execution order.

    sorted() is stable, so hooks sharing a priority keep declaration order.
    """
    return sorted(
        (hook for hook in hooks if hook.applies_to(kind)),
        key=lambda hook: hook.priority,
    )


async def call_maybe_async(fn: Callable[..., Any], *args: Any) -> Any:
    """Call fn and await the result when it is awaitable."""
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


async def run_hooks(hooks: Sequence[Hook], operation: Operation) -> Operation:
    """
    Fold an operation through hooks that are already ordered.

    Args:
        hooks: Hooks in execution order (see order_hooks)
        operation: Operation entering the chain

    Returns:
        The Operation returned by the last hook

    Raises:
        HookError: If a hook returns something other than an Operation or None
    """
    current = operation
    for hook in hooks:
        logger.debug(
            f"Running hook '{hook.name}' (priority={hook.priority}) "
            f"for {current.resource.key}.{current.key}"
        )
        returned = await call_maybe_async(hook.fn, current)

        if returned is None:
            logger.warning(
                f"Hook '{hook.name}' returned no operation for "
                f"{current.resource.key}.{current.key}, keeping the previous one"
            )
            continue
        if not isinstance(returned, Operation):
            raise HookError(
                f"hook '{hook.name}' must return an Operation, got {type(returned).__name__}"
            )
        current = returned

    return current
