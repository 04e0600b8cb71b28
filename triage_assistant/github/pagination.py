"""Cursor state for GraphQL connections.

Each paginated connection (issue comments, issue reactions, project items)
gets its own :class:`CursorState`. A collector drives one or more states from
a single loop and feeds every returned connection back through
:meth:`CursorState.advance`, which records the next cursor and hands back the
page's nodes. Axes finish independently: once ``hasNextPage`` is false a state
is done and must not be queried again.
"""

from __future__ import annotations

import dataclasses
import typing as typ

from .errors import GitHubResponseShapeError


def connection_nodes(
    connection: dict[str, typ.Any],
    *,
    field: str,
) -> list[dict[str, typ.Any]]:
    """Return the object nodes of a connection, dropping ``null`` entries."""
    nodes = connection.get("nodes")
    if not isinstance(nodes, list):
        raise GitHubResponseShapeError.missing(f"{field}.nodes")
    return [node for node in nodes if isinstance(node, dict)]


def next_cursor(connection: dict[str, typ.Any]) -> str | None:
    """Return the next pagination cursor, or None when pagination is complete."""
    page_info = connection.get("pageInfo")
    if not isinstance(page_info, dict) or not page_info.get("hasNextPage"):
        return None
    after_cursor = page_info.get("endCursor")
    return after_cursor if isinstance(after_cursor, str) else None


@dataclasses.dataclass(slots=True)
class CursorState:
    """Progress through one cursor-paginated connection."""

    field: str
    after: str | None = None
    exhausted: bool = False
    pages: int = 0

    @property
    def done(self) -> bool:
        """Return True once the last page has been consumed."""
        return self.exhausted

    def advance(self, connection: object) -> list[dict[str, typ.Any]]:
        """Consume one page of the connection and return its nodes.

        Raises
        ------
        RuntimeError
            If called after the connection is exhausted.
        GitHubResponseShapeError
            If ``connection`` is not a connection object.

        """
        if self.exhausted:
            msg = f"{self.field} pagination already finished"
            raise RuntimeError(msg)
        if not isinstance(connection, dict):
            raise GitHubResponseShapeError.missing(self.field)

        nodes = connection_nodes(connection, field=self.field)
        self.pages += 1
        cursor = next_cursor(connection)
        # A repeated cursor would re-fetch the same page forever.
        if cursor is None or cursor == self.after:
            self.exhausted = True
        else:
            self.after = cursor
        return nodes
