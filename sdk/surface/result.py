"""
SurfaceResult: success/failure value returned for every rendering-surface call.

Surface failures never propagate as exceptions past this boundary; callers
inspect `ok` and decide what to ignore. Cancellation is not a failure and
always propagates.
"""

# Imports
import inspect
from dataclasses import dataclass
from typing import Any, Callable, Optional


@dataclass(frozen=True)
class SurfaceResult:
    operation: str
    ok: bool
    value: Any = None
    error: Optional[BaseException] = None

    @classmethod
    def success(cls, operation: str, value: Any = None) -> 'SurfaceResult':
        return cls(operation=operation, ok=True, value=value)

    @classmethod
    def failure(cls, operation: str, error: BaseException) -> 'SurfaceResult':
        return cls(operation=operation, ok=False, error=error)

    @property
    def errorMsg(self) -> Optional[str]:
        return None if self.error is None else f"{type(self.error).__name__}: {self.error}"

    def toDict(self) -> dict:
        return {"operation": self.operation, "ok": self.ok, "error": self.errorMsg}


async def callSurface(operation: str, fn: Callable[..., Any], *args, **kwargs) -> SurfaceResult:
    """Invoke a surface method (sync or async) and wrap its outcome."""
    try:
        value = fn(*args, **kwargs)
        if inspect.isawaitable(value):
            value = await value
    except Exception as e:
        return SurfaceResult.failure(operation, e)
    return SurfaceResult.success(operation, value)
