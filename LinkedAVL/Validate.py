"""
Invariant checking for linked AVL trees.

The walk is compiled per comparator and only reports the first violation it
meets as a (code, node index) pair; `check_invariants` turns that into an
InvariantError. Intended for tests and debugging, the tree operations never
call it.
"""

import logging
from functools import lru_cache
from typing import Callable, Tuple

import numpy as np
from numba import njit

from .AVLTreeLinked import CMP_LT, compare_keys
from .Errors import InvariantError
from .NodeLayout import (
    NIL,
    _get_height,
    _get_key,
    _get_left,
    _get_parent,
    _get_right,
)



logger = logging.getLogger(__name__)



VIOLATION_NONE        = 0
VIOLATION_ROOT_PARENT = 1
VIOLATION_PARENT      = 2
VIOLATION_HEIGHT      = 3
VIOLATION_BALANCE     = 4
VIOLATION_ORDER       = 5
VIOLATION_CYCLE       = 6

DESCRIPTIONS = {
    VIOLATION_NONE:        "no violation",
    VIOLATION_ROOT_PARENT: "root has a parent",
    VIOLATION_PARENT:      "child does not point back at its parent",
    VIOLATION_HEIGHT:      "stored height differs from 1 + max(child heights)",
    VIOLATION_BALANCE:     "balance factor outside [-1, 1]",
    VIOLATION_ORDER:       "in-order keys are not strictly ascending",
    VIOLATION_CYCLE:       "links revisit a node",
}



@lru_cache(maxsize=None)
def _violation_finder(cmp: Callable):

    @njit
    def find(
        nodes: np.ndarray,
        root:  np.uint64

    ) -> Tuple[np.int64, np.uint64]:

        start = np.uint64(root)
        if start == NIL:
            return np.int64(VIOLATION_NONE), NIL

        if _get_parent(nodes, start) != NIL:
            return np.int64(VIOLATION_ROOT_PARENT), start

        # Explicit stack in-order walk; parent links are under test so not followed
        capacity = nodes.shape[0] - 1
        stack    = np.zeros(nodes.shape[0], dtype=np.uint64)
        top      = 0
        visited  = 0
        previous = NIL
        current  = start

        while current != NIL or top > 0:

            while current != NIL:
                if top >= stack.size:
                    return np.int64(VIOLATION_CYCLE), current

                stack[top] = current
                top       += 1
                current    = _get_left(nodes, current)

            top    -= 1
            current = stack[top]

            visited += 1
            if visited > capacity:
                return np.int64(VIOLATION_CYCLE), current

            left  = _get_left(nodes, current)
            right = _get_right(nodes, current)

            if left != NIL and _get_parent(nodes, left) != current:
                return np.int64(VIOLATION_PARENT), left

            if right != NIL and _get_parent(nodes, right) != current:
                return np.int64(VIOLATION_PARENT), right

            h_l = _get_height(nodes, left)
            h_r = _get_height(nodes, right)

            if _get_height(nodes, current) != max(h_l, h_r) + 1:
                return np.int64(VIOLATION_HEIGHT), current

            if h_r - h_l > 1 or h_r - h_l < -1:
                return np.int64(VIOLATION_BALANCE), current

            if previous != NIL and cmp(_get_key(nodes, previous), _get_key(nodes, current)) != CMP_LT:
                return np.int64(VIOLATION_ORDER), current

            previous = current
            current  = right

        return np.int64(VIOLATION_NONE), NIL

    return find


def find_violation(
    nodes: np.ndarray,
    root:  int,
    cmp:   Callable = compare_keys

) -> Tuple[int, int]:

    """
    Return the first (code, node index) violating an invariant, or
    (VIOLATION_NONE, 0) for a valid tree.
    """

    code, index = _violation_finder(cmp)(nodes, root)
    return int(code), int(index)


def check_invariants(
    nodes: np.ndarray,
    root:  int,
    cmp:   Callable = compare_keys

) -> None:

    """
    Verify balance, height, parent consistency and key order of a tree.

    :param nodes: Node buffer
    :type nodes: np.ndarray
    :param root: Index of the tree root (0 for an empty tree)
    :type root: int
    :param cmp: Comparator the tree was built with
    :raises InvariantError: On the first violation found
    """

    code, index = find_violation(nodes, root, cmp)

    if code != VIOLATION_NONE:
        message = f"{DESCRIPTIONS[code]} at node {index}"
        logger.warning("invariant check failed: %s", message)
        raise InvariantError(message, code, index)

    logger.debug("tree rooted at node %d satisfies the AVL invariants", int(root))


def is_valid(
    nodes: np.ndarray,
    root:  int,
    cmp:   Callable = compare_keys

) -> bool:

    return find_violation(nodes, root, cmp)[0] == VIOLATION_NONE
