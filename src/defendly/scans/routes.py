# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Declarative route candidates and the probe-and-memoize routine.

The backend serves several historical route shapes for the same logical operation.
Each operation declares an ordered tuple of RouteCandidates; RouteProber walks them,
treating 404/405/501 (and empty/unparseable bodies) as "try the next one", and
remembers the first candidate that answered so later calls try it first.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..api import ApiClient
from ..errors import ApiError
from ..http.url import quote_segment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteCandidate:
    """
    One route shape.

    `path` may hold `{name}` placeholders filled (URL-encoded) from the call's values;
    `query` maps query-parameter names to value names.
    """

    name: str
    path: str
    query: Mapping[str, str] = field(default_factory=dict)

    def render(self, values: Mapping[str, Any]) -> tuple[str, dict[str, Any]]:
        path = self.path.format(**{key: quote_segment(value) for key, value in values.items()})
        params = {param: values.get(key) for param, key in self.query.items()}
        return path, params


Accept = Callable[[Any], Any]


def _accept_any(payload: Any) -> Any:
    return payload


class RouteProber:
    def __init__(self, api: ApiClient, *, timeout_for: Callable[[str], float | None] | None = None):
        self.api = api
        self._timeout_for = timeout_for or (lambda _path: None)
        self._memo: dict[str, str] = {}

    def memoized(self, operation: str) -> str | None:
        return self._memo.get(operation)

    def forget(self, operation: str | None = None) -> None:
        if operation is None:
            self._memo.clear()
            logger.debug("Cleared route memo; routes will be rediscovered")
        else:
            self._memo.pop(operation, None)

    async def probe(
        self,
        operation: str,
        candidates: Sequence[RouteCandidate],
        values: Mapping[str, Any] | None = None,
        *,
        accept: Accept = _accept_any,
        memoize: bool = True,
        tolerate_errors: bool = False,
    ) -> Any:
        """
        Return the first accepted payload, or None once every candidate fell through.

        `accept` maps a raw payload to the value to return (None rejects it). Errors other
        than route-absence propagate unless `tolerate_errors` is set, in which case every
        failure simply moves on to the next candidate.
        """
        values = values or {}
        ordered = list(candidates)
        remembered = self._memo.get(operation) if memoize else None
        if remembered is not None:
            first = [c for c in ordered if c.name == remembered]
            ordered = first + [c for c in ordered if c.name != remembered]

        for candidate in ordered:
            path, params = candidate.render(values)
            try:
                payload = await self.api.get_json(path, params, timeout=self._timeout_for(path))
            except ApiError as exc:
                if exc.is_not_found and memoize and self._memo.get(operation) == candidate.name:
                    self._memo.pop(operation, None)
                if exc.is_not_found or tolerate_errors:
                    logger.debug("%s: route %s unavailable (%s), trying next", operation, candidate.name, exc.message)
                    continue
                raise

            result = accept(payload) if payload is not None else None
            if result is None:
                logger.debug("%s: route %s returned no usable body, trying next", operation, candidate.name)
                continue
            if memoize:
                self._memo[operation] = candidate.name
            return result

        logger.info("%s: no candidate route answered", operation)
        return None


__all__ = ["RouteCandidate", "RouteProber"]
