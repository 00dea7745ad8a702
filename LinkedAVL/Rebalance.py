import numpy as np
from numba import njit

from .Config import CHECK_CONTRACTS
from .Errors import AVLContractError
from .NodeLayout import (
    NIL,
    _get_height,
    _get_left,
    _get_parent,
    _get_right,
    _set_height,
    _set_left,
    _set_parent,
    _set_right,
)



# ---------- JIT-Compiled Height / Balance Primitives ----------
@njit(inline="always")
def height(
    nodes: np.ndarray,
    index: np.uint64

) -> np.int64:

    """
    Height of the subtree rooted at `index`; 0 for the absent node.
    """

    return _get_height(nodes, index)

@njit
def balance_factor(
    nodes: np.ndarray,
    index: np.uint64

) -> np.int64:

    """
    Balance factor of a present node: height(right) - height(left).

    :param nodes: Node buffer
    :type nodes: np.ndarray
    :param index: Index of the node, must not be absent
    :type index: np.uint64
    :return: Signed height difference, within [-1, 1] for a balanced node
    :rtype: np.int64
    :raises AVLContractError: If `index` is absent and contract checks are on
    """

    if CHECK_CONTRACTS and index == NIL:
        raise AVLContractError("balance factor requested for an absent node")

    return _get_height(nodes, _get_right(nodes, index)) - _get_height(nodes, _get_left(nodes, index))

@njit(inline="always")
def recalculate_height(
    nodes: np.ndarray,
    index: np.uint64

) -> None:

    """
    height(index) = max(height(index->left), height(index->right)) + 1

    Both children's heights must already be correct.
    """

    left_height  = _get_height(nodes, _get_left(nodes, index))
    right_height = _get_height(nodes, _get_right(nodes, index))

    _set_height(nodes, index, max(left_height, right_height) + 1)

@njit
def find_minimum(
    nodes: np.ndarray,
    index: np.uint64

) -> np.uint64:

    """
    Follow left links from a present node down to the minimum-key node of its subtree.
    """

    if CHECK_CONTRACTS and index == NIL:
        raise AVLContractError("minimum requested for an absent subtree")

    current = np.uint64(index)
    left    = _get_left(nodes, current)

    while left != NIL:
        current = left
        left    = _get_left(nodes, current)

    return current

@njit
def find_maximum(
    nodes: np.ndarray,
    index: np.uint64

) -> np.uint64:

    """
    Follow right links from a present node down to the maximum-key node of its subtree.
    """

    if CHECK_CONTRACTS and index == NIL:
        raise AVLContractError("maximum requested for an absent subtree")

    current = np.uint64(index)
    right   = _get_right(nodes, current)

    while right != NIL:
        current = right
        right   = _get_right(nodes, current)

    return current



# ---------- JIT-Compiled Rotation Engine ----------
@njit(inline="always")
def _replace_child(
    nodes:     np.ndarray,
    parent:    np.uint64,
    old_child: np.uint64,
    new_child: np.uint64

) -> None:

    """
    Point whichever child slot of `parent` held `old_child` at `new_child`.
    Nothing happens when `parent` is absent.
    """

    if parent != NIL:
        if _get_left(nodes, parent) == old_child:
            _set_left(nodes, parent, new_child)
        elif _get_right(nodes, parent) == old_child:
            _set_right(nodes, parent, new_child)

@njit
def rotate_right( # SRR: Single Right Rotation
    nodes: np.ndarray,
    index: np.uint64

) -> np.uint64:

    """
    Perform a single right rotation (SRR) around the node at `index`.

    The left child (pivot) becomes the local subtree root and the old root
    becomes its right child. The pivot's right subtree moves across to become
    the old root's left subtree. The old root's parent, if any, is repointed
    at the pivot; that is the only link above the rotation that changes.

    Heights are recomputed for the old root first, then for the pivot.

    :param nodes: Node buffer
    :type nodes: np.ndarray
    :param index: Index of the local subtree root; must have a left child
    :type index: np.uint64
    :return: Index of the new local subtree root
    :rtype: np.uint64
    """

    root  = np.uint64(index)
    pivot = _get_left(nodes, root)
    moved = _get_right(nodes, pivot)

    # Rotate
    _set_left(nodes, root, moved)
    if moved != NIL:
        _set_parent(nodes, moved, root)

    parent = _get_parent(nodes, root)
    _set_right(nodes, pivot, root)
    _set_parent(nodes, pivot, parent)
    _set_parent(nodes, root, pivot)
    _replace_child(nodes, parent, root, pivot)

    # Update heights, old root first
    recalculate_height(nodes, root)
    recalculate_height(nodes, pivot)

    return pivot # new root

@njit
def rotate_left( # SLR: Single Left Rotation
    nodes: np.ndarray,
    index: np.uint64

) -> np.uint64:

    """
    Perform a single left rotation (SLR) around the node at `index`.

    Mirror image of `rotate_right`: the right child becomes the local subtree
    root, the old root becomes its left child and the pivot's left subtree
    moves across.

    :param nodes: Node buffer
    :type nodes: np.ndarray
    :param index: Index of the local subtree root; must have a right child
    :type index: np.uint64
    :return: Index of the new local subtree root
    :rtype: np.uint64
    """

    root  = np.uint64(index)
    pivot = _get_right(nodes, root)
    moved = _get_left(nodes, pivot)

    # Rotate
    _set_right(nodes, root, moved)
    if moved != NIL:
        _set_parent(nodes, moved, root)

    parent = _get_parent(nodes, root)
    _set_left(nodes, pivot, root)
    _set_parent(nodes, pivot, parent)
    _set_parent(nodes, root, pivot)
    _replace_child(nodes, parent, root, pivot)

    # Update heights, old root first
    recalculate_height(nodes, root)
    recalculate_height(nodes, pivot)

    return pivot # new root

@njit
def balance(
    nodes: np.ndarray,
    index: np.uint64

) -> np.uint64:

    """
    Rebalance a single node after a structural change at or below it.

    The node's height is recomputed from its children. A balance factor of
    +2 (R) rotates left, first rotating the right child right when it leans
    left (RL). A factor of -2 (L) is the mirror image (LL / LR). Any other
    factor needs no rotation.

    Children are assumed to be balanced already, so at most one level of
    imbalance has accumulated here.

    :return: Index of the node now occupying the former position of `index`
    :rtype: np.uint64
    """

    node = np.uint64(index)
    recalculate_height(nodes, node)
    factor = balance_factor(nodes, node)

    if CHECK_CONTRACTS and (factor > 2 or factor < -2):
        raise AVLContractError("more than one level of imbalance at a node")

    if factor == 2: # R
        right = _get_right(nodes, node)
        if balance_factor(nodes, right) < 0: # RL
            rotate_right(nodes, right)
        return rotate_left(nodes, node)

    if factor == -2: # L
        left = _get_left(nodes, node)
        if balance_factor(nodes, left) > 0: # LR
            rotate_left(nodes, left)
        return rotate_right(nodes, node)

    return node
