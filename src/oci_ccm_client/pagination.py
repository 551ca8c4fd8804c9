"""Exhaustive iteration over paginated OCI list endpoints."""

import logging
from typing import Any, Callable, Iterator, List, Optional, Set

from .errors import PaginationError

logger = logging.getLogger(__name__)


class Pager:
    """
    Walk every page of an OCI list call.

    The list call is invoked with the given positional and keyword arguments,
    and with ``page=<cursor>`` from the second call onwards. Iteration stops when
    a response carries no ``next_page``. A cursor that comes back twice within
    the same listing raises :class:`PaginationError` instead of looping forever.

    Args:
        list_call: SDK list method, e.g. ``compute_client.list_instances``
        *args: Positional arguments for every call (usually the compartment id)
        predicate: Optional filter applied to each item
        **kwargs: Filter options forwarded to every call
    """

    def __init__(
        self,
        list_call: Callable[..., Any],
        *args: Any,
        predicate: Optional[Callable[[Any], bool]] = None,
        **kwargs: Any,
    ):
        self.list_call = list_call
        self.args = args
        self.kwargs = kwargs
        self.predicate = predicate
        self.calls = 0

    def _iter_pages(self) -> Iterator[List[Any]]:
        request_kwargs = dict(self.kwargs)
        seen: Set[str] = set()

        while True:
            response = self.list_call(*self.args, **request_kwargs)
            self.calls += 1
            yield list(getattr(response, "data", None) or [])

            next_page = getattr(response, "next_page", None)
            if not next_page:
                break
            if next_page in seen:
                raise PaginationError(
                    f"{_call_name(self.list_call)} returned page cursor {next_page!r} twice"
                )
            seen.add(next_page)
            request_kwargs["page"] = next_page

    def all(self) -> List[Any]:
        """Return every matching item once the final page has been read."""
        items: List[Any] = []
        for page in self._iter_pages():
            if self.predicate is None:
                items.extend(page)
            else:
                items.extend(item for item in page if self.predicate(item))

        logger.debug(
            "%s: collected %d items over %d pages",
            _call_name(self.list_call),
            len(items),
            self.calls,
        )
        return items


def paginate(
    list_call: Callable[..., Any],
    *args: Any,
    predicate: Optional[Callable[[Any], bool]] = None,
    **kwargs: Any,
) -> List[Any]:
    """Shortcut for ``Pager(list_call, *args, predicate=..., **kwargs).all()``."""
    return Pager(list_call, *args, predicate=predicate, **kwargs).all()


def _call_name(list_call: Callable[..., Any]) -> str:
    return getattr(list_call, "__name__", None) or repr(list_call)
