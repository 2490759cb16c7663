"""A value that is either not fetched yet or has been fetched.

:class:`Fetchable` replaces "assume it is there" access to lazily loaded
values: :meth:`Fetchable.get` raises :class:`~fetchcache.exceptions.NotFetchedError`
instead of failing obscurely, and :meth:`Fetchable.fetch` loads the value
at most once.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

from fetchcache.exceptions import NotFetchedError

T = TypeVar("T")

_NOT_FETCHED = object()


class Fetchable(Generic[T]):
    """``NotFetched | Fetched(value)``.

    Example::

        meals: Fetchable[list[Meal]] = Fetchable()
        meals.is_fetched            # False
        meals.fetch(load_meals)     # calls load_meals() once
        meals.get()                 # the loaded list
    """

    __slots__ = ("_value",)

    def __init__(self) -> None:
        self._value: object = _NOT_FETCHED

    @classmethod
    def of(cls, value: T) -> Fetchable[T]:
        """Return an already fetched instance holding *value*."""
        fetchable: Fetchable[T] = cls()
        fetchable._value = value
        return fetchable

    @property
    def is_fetched(self) -> bool:
        return self._value is not _NOT_FETCHED

    def fetch(self, loader: Callable[[], T]) -> T:
        """Return the value, calling *loader* first if it was not fetched.

        If *loader* raises, the exception propagates and the instance stays
        unfetched so that a later call can retry.
        """
        if self._value is _NOT_FETCHED:
            self._value = loader()
        return self._value  # type: ignore[return-value]

    def get(self) -> T:
        """Return the fetched value.

        Raises:
            NotFetchedError: If nothing has been fetched yet.
        """
        if self._value is _NOT_FETCHED:
            raise NotFetchedError("Value has not been fetched yet")
        return self._value  # type: ignore[return-value]

    def reset(self) -> None:
        """Drop the fetched value, returning to the not-fetched state."""
        self._value = _NOT_FETCHED

    def __repr__(self) -> str:
        if self._value is _NOT_FETCHED:
            return "Fetchable(<not fetched>)"
        return f"Fetchable({self._value!r})"
