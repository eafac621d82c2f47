"""
Fallback Chain
==============
Ordered degradation: try each strategy in turn, return the first success.

Each strategy is an async callable returning a StrategyResult. Strategies
report failure by returning ``StrategyResult.failed(...)``; an exception
escaping a strategy is caught here and treated the same way, so nothing
raised by a later stage ever reaches the caller of ``run_chain``.
"""
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, Sequence, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class StrategyResult(Generic[T]):
    ok: bool
    value: Optional[T] = None
    error: str = ""
    strategy: str = ""

    @classmethod
    def success(cls, value: T) -> "StrategyResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failed(cls, error: str) -> "StrategyResult[T]":
        return cls(ok=False, error=error)


Strategy = Tuple[str, Callable[[], Awaitable[StrategyResult[Any]]]]


async def run_chain(strategies: Sequence[Strategy]) -> StrategyResult[Any]:
    """
    Run named strategies in order until one succeeds.

    Returns the successful result (with ``strategy`` set to its name), or the
    last failure when every strategy failed.
    """
    last = StrategyResult.failed("No strategies configured")
    for name, strategy in strategies:
        try:
            result = await strategy()
        except Exception as e:
            logger.warning("Strategy %s raised: %s", name, e)
            result = StrategyResult.failed(str(e))

        result.strategy = name
        if result.ok:
            return result

        logger.info("Strategy %s failed (%s), trying next", name, result.error)
        last = result
    return last
