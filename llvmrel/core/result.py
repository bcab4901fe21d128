"""Ok/Err result values.

Pipeline stages return ``Result[T, E]`` instead of raising. The caller
picks what a failure means: abort the run, retry the upload, or roll
back the release repository.

    match publish(api=api, tag=tag, artifact=artifact, ...):
        case Ok(report):
            console.success(report.tag)
        case Err(error):
            print_pipeline_error(error, console)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeAlias, TypeGuard, TypeVar

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")
F = TypeVar("F")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T

    def map(self, f: Callable[[T], U]) -> Ok[U]:
        return Ok(f(self.value))

    def map_err(self, f: Callable[[object], object]) -> Ok[T]:
        del f
        return self

    def unwrap_or(self, default: T) -> T:
        del default
        return self.value


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    error: E

    def map(self, f: Callable[[object], object]) -> Err[E]:
        del f
        return self

    def map_err(self, f: Callable[[E], F]) -> Err[F]:
        return Err(f(self.error))

    def unwrap_or(self, default: T) -> T:
        return default


Result: TypeAlias = Ok[T] | Err[E]


def is_ok(result: Result[T, E]) -> TypeGuard[Ok[T]]:
    return isinstance(result, Ok)


def is_err(result: Result[T, E]) -> TypeGuard[Err[E]]:
    return isinstance(result, Err)
