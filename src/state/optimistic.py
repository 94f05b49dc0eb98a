from typing import Awaitable, Callable, TypeVar

S = TypeVar("S")
R = TypeVar("R")


async def apply_optimistic(
    snapshot: Callable[[], S],
    apply: Callable[[], None],
    restore: Callable[[S], None],
    confirm: Callable[[], Awaitable[R]],
) -> R:
    """
    Apply a tentative change, then await its confirmation.

    The snapshot is taken before ``apply``; if ``confirm`` raises (or is
    cancelled) the snapshot is handed to ``restore`` and the error re-raised.
    """
    saved = snapshot()
    apply()
    try:
        return await confirm()
    except BaseException:
        restore(saved)
        raise
