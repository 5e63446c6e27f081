"""
Settled fan-out of independent remote calls.

Each callable runs on its own worker thread. All of them are joined and one
Outcome per callable is returned in submission order; a failure never cancels
its siblings.
"""

import concurrent.futures
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

DEFAULT_MAX_WORKERS = 16


@dataclass
class Outcome:
    """Result of one fanned-out call: either a value or the exception it raised."""

    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def settle_all(calls: Sequence[Callable[[], Any]], max_workers: int = DEFAULT_MAX_WORKERS) -> List[Outcome]:
    """
    Run every call concurrently and wait for all of them to settle.

    Args:
        calls (Sequence[Callable[[], Any]]): Zero-argument callables
        max_workers (int): Upper bound on worker threads

    Returns:
        List[Outcome]: One outcome per call, in the order the calls were given
    """
    if not calls:
        return []

    with concurrent.futures.ThreadPoolExecutor(max_workers=min(max_workers, len(calls))) as pool:
        futures = [pool.submit(call) for call in calls]
        concurrent.futures.wait(futures)

    outcomes = []
    for future in futures:
        error = future.exception()
        if error is not None:
            outcomes.append(Outcome(error=error))
        else:
            outcomes.append(Outcome(value=future.result()))
    return outcomes
