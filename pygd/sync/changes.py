"""Per-path reconciliation decisions and their safe application order."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from .differences import same_file_till_checksum
from .scanner import File

logger = logging.getLogger(__name__)


class Op(IntEnum):
    """Action required to make the destination match the source."""

    NONE = 0
    ADD = 1
    DELETE = 2
    MODIFY = 3


# Lower ranks are applied first: deletions free paths before additions
# claim them, and modifications go last.
OP_PRECEDENCE: dict[Op, int] = {
    Op.NONE: 0,
    Op.DELETE: 1,
    Op.ADD: 2,
    Op.MODIFY: 3,
}

_OP_STRINGS: dict[Op, tuple[str, str]] = {
    Op.ADD: ("+", "Addition"),
    Op.DELETE: ("-", "Deletion"),
    Op.MODIFY: ("M", "Modification"),
}

OP_STYLES: dict[Op, str] = {
    Op.ADD: "green",
    Op.DELETE: "red",
    Op.MODIFY: "yellow",
}


def op_to_string(op: Op) -> tuple[str, str]:
    """Return the (glyph, word) pair used to present an operation.

    Examples:
        >>> op_to_string(Op.ADD)
        ('+', 'Addition')
        >>> op_to_string(Op.NONE)
        ('', '')
    """
    return _OP_STRINGS.get(op, ("", ""))


@dataclass
class Change:
    """The reconciliation decision for one path.

    ``src`` is the entry on the side being copied from and ``dest`` the
    entry on the side being copied to; either may be None but a Change is
    never built with both absent.
    """

    src: Optional[File]
    """Entry on the source side (if it exists)"""

    dest: Optional[File]
    """Entry on the destination side (if it exists)"""

    path: str
    """Relative path the change applies to"""

    parent: str = ""
    """Relative path of the containing folder"""

    force: bool = False
    """Treat the change as a creation no matter what"""

    no_clobber: bool = False
    """Never overwrite or delete existing destination content"""

    def _op(self) -> Op:
        if self.src is None and self.dest is None:
            return Op.NONE
        if self.dest is None:
            return Op.ADD
        if self.src is None:
            return Op.DELETE
        if self.src.is_dir != self.dest.is_dir:
            return Op.MODIFY
        if not self.src.is_dir and not same_file_till_checksum(self.src, self.dest):
            return Op.MODIFY
        return Op.NONE

    def op(self) -> Op:
        """Resolve the operation, applying the force and no-clobber policies."""
        if self.force:
            return Op.ADD
        op = self._op()
        if op != Op.ADD and self.no_clobber:
            return Op.NONE
        return op

    def symbol(self) -> str:
        return op_to_string(self.op())[0]

    def label(self) -> str:
        return op_to_string(self.op())[1]

    def to_dict(self) -> dict[str, str]:
        """Machine-readable form, e.g. ``{"path": "a.txt", "op": "addition"}``."""
        return {"path": self.path, "op": self.label().lower()}


def resolve(
    src: Optional[File],
    dest: Optional[File],
    path: str,
    parent: str = "",
    force: bool = False,
    no_clobber: bool = False,
) -> Change:
    """Build the Change for one path.

    Args:
        src: Entry on the source side
        dest: Entry on the destination side
        path: Relative path
        parent: Relative path of the parent folder
        force: Always resolve to an addition
        no_clobber: Demote overwrites and deletions to no-ops

    Returns:
        The Change; call ``op()`` for the resolved operation
    """
    change = Change(
        src=src,
        dest=dest,
        path=path,
        parent=parent,
        force=force,
        no_clobber=no_clobber,
    )
    logger.debug(f"{path}: {change.op().name}")
    return change


def _precedence_key(change: Optional[Change]) -> tuple[int, int]:
    if change is None:
        return (1, 0)
    return (0, OP_PRECEDENCE[change.op()])


def sort_by_precedence(changes: Iterable[Optional[Change]]) -> list[Optional[Change]]:
    """Order a fully classified batch so it can be applied safely.

    The sort is stable: changes of equal precedence keep their input order.
    None entries are placed after every change.
    """
    return sorted(changes, key=_precedence_key)
