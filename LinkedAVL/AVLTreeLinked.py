from collections import namedtuple
from functools import lru_cache
from typing import Callable, Tuple

import numpy as np
from numba import njit, types, uint64, int64
from numba.experimental import jitclass

from .Config import CHECK_CONTRACTS
from .Errors import AVLContractError
from .NodeLayout import (
    MAX_CAPACITY,
    NIL,
    NODE_BUFFER,
    NODE_WORDS,
    _detach,
    _get_height,
    _get_key,
    _get_left,
    _get_parent,
    _get_right,
    _set_left,
    _set_parent,
    _set_right,
    init_node,
    new_node_buffer,
)
from .Rebalance import (
    balance,
    find_maximum,
    find_minimum,
    recalculate_height,
)



# Three-way comparison results
CMP_LT = -1
CMP_EQ = 0
CMP_GT = 1



# ---------- JIT-Compiled Comparator ----------
@njit(inline="always")
def compare_keys(
    key_a: np.uint64,
    key_b: np.uint64

) -> np.int64:

    """
    Default comparator: orders nodes strictly by their 64-bit key.
    """

    if key_a < key_b:
        return CMP_LT
    if key_a > key_b:
        return CMP_GT
    return CMP_EQ



# ---------- JIT-Compiled AVLTree Core Operations ----------
TreeOperations = namedtuple("TreeOperations", ["lookup", "insert", "remove"])

@lru_cache(maxsize=None)
def bind_comparator(
    cmp: Callable

) -> TreeOperations:

    """
    Compile lookup / insert / remove against a comparator.

    The comparator is an @njit function `cmp(key_a, key_b)` returning CMP_LT,
    CMP_EQ or CMP_GT, and must be a strict total order over the keys. Every
    tree must be queried with the comparator it was built with. Bundles are
    cached per comparator.

    :param cmp: JIT-compiled three-way key comparator
    :type cmp: numba dispatcher
    :return: Named tuple of the compiled (lookup, insert, remove) functions
    :rtype: TreeOperations
    """

    @njit(uint64(NODE_BUFFER, uint64, uint64))
    def lookup(
        nodes: np.ndarray,
        root:  np.uint64,
        key:   np.uint64

    ) -> np.uint64:

        """
        Iterative search from `root`. Returns the node index holding `key`, or 0.
        """

        target  = np.uint64(key)
        current = np.uint64(root)

        while current != NIL:
            order = cmp(target, _get_key(nodes, current))

            if order == CMP_LT:
                current = _get_left(nodes, current)
            elif order == CMP_GT:
                current = _get_right(nodes, current)
            else:
                return current

        return NIL

    @njit(uint64(NODE_BUFFER, uint64, uint64))
    def insert(
        nodes: np.ndarray,
        root:  np.uint64,
        node:  np.uint64

    ) -> np.uint64:

        """
        Link a detached node into the tree rooted at `root` and rebalance.

        Parameters
        ----------
        nodes : np.ndarray
            The node buffer.
        root : np.uint64
            Index of the current root node (0 if the tree is empty).
        node : np.uint64
            Index of a detached node already carrying its key.

        Returns
        -------
        np.uint64
            The new root. On a key collision nothing is linked and `root` is
            returned unchanged.

        Raises
        ------
        AVLContractError
            If `node` is the absent node and contract checks are on.
        """

        new_node = np.uint64(node)
        current  = np.uint64(root)
        parent   = NIL
        order    = CMP_EQ

        if CHECK_CONTRACTS and new_node == NIL:
            raise AVLContractError("insert requires a present node")

        recalculate_height(nodes, new_node)
        key = _get_key(nodes, new_node)

        # Find the parent of the new node
        while current != NIL:
            parent = current
            order  = cmp(key, _get_key(nodes, current))

            if order == CMP_LT:
                current = _get_left(nodes, current)
            elif order == CMP_GT:
                current = _get_right(nodes, current)
            else:
                return np.uint64(root)

        _set_parent(nodes, new_node, parent)
        if parent != NIL:
            if order == CMP_LT:
                _set_left(nodes, parent, new_node)
            else:
                _set_right(nodes, parent, new_node)

        # Climb to the root, balancing every ancestor
        new_root = new_node
        current  = new_node
        while current != NIL:
            new_root = balance(nodes, current)
            current  = _get_parent(nodes, new_root)

        return new_root

    @njit(types.UniTuple(uint64, 2)(NODE_BUFFER, uint64, uint64))
    def remove(
        nodes: np.ndarray,
        root:  np.uint64,
        key:   np.uint64

    ) -> Tuple[np.uint64, np.uint64]:

        """
        Iterative AVL node removal.

        The process involves:
        1. Lookup: locate the node holding `key`; absent keys change nothing.
        2. Replacement: the in-order successor for two children, the only
        child for one, nothing for a leaf.
        3. Relinking: the replacement takes the removed node's place and the
        removed node is fully detached (links and height cleared).
        4. Retracing: `balance` from the first structurally changed node up
        to the root.

        Args:
            nodes (np.ndarray): The node buffer.
            root (np.uint64): Index of the current tree root.
            key (np.uint64): The key of the node to remove.

        Returns:
            Tuple[np.uint64, np.uint64]:
                - new_root_index (0 once the tree is empty).
                - removed_index (0 if the key was not found).
        """

        new_root = np.uint64(root)
        target   = lookup(nodes, new_root, key)
        if target == NIL:
            return new_root, NIL

        left   = _get_left(nodes, target)
        right  = _get_right(nodes, target)
        parent = _get_parent(nodes, target)

        if left != NIL and right != NIL:
            replacement     = find_minimum(nodes, right)
            successor_up    = _get_parent(nodes, replacement)
            successor_right = _get_right(nodes, replacement)

            # Unlink the successor, its right subtree fills the gap
            if _get_left(nodes, successor_up) == replacement:
                _set_left(nodes, successor_up, successor_right)
            else:
                _set_right(nodes, successor_up, successor_right)
            if successor_right != NIL:
                _set_parent(nodes, successor_right, successor_up)

            if successor_up == target:
                rebalance_from = replacement
            else:
                rebalance_from = successor_up

            # Reload, the unlink may have changed target->right
            left  = _get_left(nodes, target)
            right = _get_right(nodes, target)

            _set_left(nodes, replacement, left)
            if left != NIL:
                _set_parent(nodes, left, replacement)
            _set_right(nodes, replacement, right)
            if right != NIL:
                _set_parent(nodes, right, replacement)
            _set_parent(nodes, replacement, parent)

        elif left != NIL or right != NIL:
            replacement = left if left != NIL else right
            _set_parent(nodes, replacement, parent)
            rebalance_from = replacement

        else:
            replacement    = NIL
            rebalance_from = parent

        if parent != NIL:
            if _get_left(nodes, parent) == target:
                _set_left(nodes, parent, replacement)
            else:
                _set_right(nodes, parent, replacement)
        else:
            new_root = replacement

        _detach(nodes, target)

        current = rebalance_from
        while current != NIL:
            new_root = balance(nodes, current)
            current  = _get_parent(nodes, new_root)

        return new_root, target

    return TreeOperations(lookup, insert, remove)


_default_operations = bind_comparator(compare_keys)

lookup = _default_operations.lookup
insert = _default_operations.insert
remove = _default_operations.remove



# ---------- JIT-Compiled Ordered Navigation ----------
@njit
def successor(
    nodes: np.ndarray,
    index: np.uint64

) -> np.uint64:

    """
    Locates the in-order successor of a linked node anywhere in the tree.

    With a right subtree this is its minimum. Otherwise the parent links are
    climbed until the walk arrives from a left child.

    Returns:
        np.uint64: The successor's index, or 0 for the maximum node.
    """

    current = np.uint64(index)
    right   = _get_right(nodes, current)
    if right != NIL:
        return find_minimum(nodes, right)

    parent = _get_parent(nodes, current)
    while parent != NIL and _get_right(nodes, parent) == current:
        current = parent
        parent  = _get_parent(nodes, current)

    return parent

@njit
def predecessor(
    nodes: np.ndarray,
    index: np.uint64

) -> np.uint64:

    """
    Locates the in-order predecessor of a linked node; 0 for the minimum node.
    """

    current = np.uint64(index)
    left    = _get_left(nodes, current)
    if left != NIL:
        return find_maximum(nodes, left)

    parent = _get_parent(nodes, current)
    while parent != NIL and _get_left(nodes, parent) == current:
        current = parent
        parent  = _get_parent(nodes, current)

    return parent

@njit
def count_nodes(
    nodes: np.ndarray,
    root:  np.uint64

) -> np.int64:

    """Number of nodes linked under the tree root `root`."""

    count = 0
    start = np.uint64(root)
    if start == NIL:
        return count

    current = find_minimum(nodes, start)
    while current != NIL:
        count  += 1
        current = successor(nodes, current)

    return count

@njit
def inorder_traversal( # LVR
    nodes: np.ndarray,
    root:  np.uint64

) -> np.ndarray:

    """
    Extracts all keys in ascending order by walking successor links.
    Recommended for integrity checks and debugging on small to medium datasets.
    """

    count = count_nodes(nodes, root)
    keys  = np.zeros(count, dtype=np.uint64)
    if count == 0:
        return keys

    current = find_minimum(nodes, np.uint64(root))
    for i in range(count):
        keys[i] = _get_key(nodes, current)
        current = successor(nodes, current)

    return keys



# --------- AVLTree API ---------
avl_tree_fields = [
    ("nodes", uint64[:, ::1]),
    ("root" , uint64),
    ("count", int64),
]

@jitclass(avl_tree_fields)
class AVLTree:
    """
    Owner of a tree's root slot over a caller-supplied node buffer.

    The tree never allocates nodes: the caller fills rows of `nodes` with
    detached nodes (see `init_node`) and links them by index. Removed nodes
    are handed back detached and may be re-inserted.

    Attributes:
        nodes (uint64[:, ::1]): Node buffer [N + 1, 3], row 0 is the absent node.
        root (uint64): Index of the current root node (0 if empty).
        count (int64): Number of linked nodes.
    """

    def __init__(
        self,
        nodes: np.ndarray

    ) -> None:

        if nodes.shape[1] != NODE_WORDS:
            raise ValueError("The node buffer must hold 3 uint64 words per node")

        if nodes.shape[0] - 1 > MAX_CAPACITY:
            raise ValueError("The node buffer exceeds the 32-bit node index range")

        self.nodes = nodes
        self.root  = uint64(0)
        self.count = int64(0)

    @property
    def height(self) -> int:
        return _get_height(self.nodes, self.root)

    @property
    def min_node(self) -> int:
        """
        Index of the node with the minimum key, or 0 if the tree is empty.
        """

        if self.root == NIL:
            return np.int64(0)

        return np.int64(find_minimum(self.nodes, self.root))

    @property
    def max_node(self) -> int:
        """
        Index of the node with the maximum key, or 0 if the tree is empty.
        """

        if self.root == NIL:
            return np.int64(0)

        return np.int64(find_maximum(self.nodes, self.root))

    def insert(
        self,
        node: int

    ) -> int:
        """Links a detached node unless its key is present. Returns 1 if linked, 0 on duplicate."""

        index = uint64(node)
        if index == NIL or index >= self.nodes.shape[0]:
            raise IndexError("The node index is outside the node buffer")

        if lookup(self.nodes, self.root, _get_key(self.nodes, index)) != NIL:
            return 0

        self.root   = insert(self.nodes, self.root, index)
        self.count += 1
        return 1

    def remove(
        self,
        key: int

    ) -> int:
        """Unlinks the node holding `key`. Returns its index (now detached), or 0 if absent."""

        if self.count == 0:
            return np.int64(0)

        root, removed = remove(self.nodes, self.root, uint64(key))

        if removed == NIL:
            return np.int64(0)

        self.root   = root
        self.count -= 1
        return np.int64(removed)

    def lookup(
        self,
        key: int

    ) -> int:
        """Locates a key using iterative BST search. Returns the node index or 0 if not found."""

        return np.int64(lookup(self.nodes, self.root, uint64(key)))

    def contains(
        self,
        key: int

    ) -> bool:

        return lookup(self.nodes, self.root, uint64(key)) != NIL

    def inorder(self) -> np.ndarray:
        """
        Generates a sorted array of all keys using In-order traversal.

        WARNING: This method is intended for validation and integrity checks.
        """
        return inorder_traversal(self.nodes, self.root)

    def __len__(self) -> int:
        return int(self.count)

    def __str__(self) -> str:

        h = 0
        if self.root != NIL:
            h = _get_height(self.nodes, self.root)

        return "AVLTree(size=" + str(self.count) + ", root=" + str(np.int64(self.root)) + ", height=" + str(h) + ")"


def _compile_key_methods() -> None:
    """
    Compile the Python-facing key methods of AVLTree for uint64 keys.

    Python ints above 2**63 - 1 are typed as uint64 and must find this
    overload, whichever key the first call from Python used.
    """

    tree = AVLTree(new_node_buffer(0))
    tree.lookup(NIL)
    tree.contains(NIL)
    tree.remove(NIL)

_compile_key_methods()



# --------- Utils ---------
@njit
def warmup(tree_size: int = 16):
    """
    Minimally triggers JIT compilation for core AVL operations.
    """

    keys  = np.array([30, 20, 10, 40, 50, 25], dtype=np.uint64)
    nodes = np.zeros((tree_size + 1, NODE_WORDS), dtype=np.uint64)

    for i in range(keys.size):
        init_node(nodes, i + 1, keys[i])

    avl = AVLTree(nodes)
    for i in range(keys.size):
        avl.insert(i + 1)

    _ = avl.lookup(20)
    _ = lookup_bulk(avl, keys)

    avl.remove(10)

    return True

@njit
def build_tree(
    keys: np.ndarray

) -> 'AVLTree':

    """
    Allocates a node buffer for `keys` and links every key into a new AVLTree.

    Args:
        keys (np.ndarray): 1D array of uint64 keys; node i + 1 holds keys[i].

    Returns:
        AVLTree: A balanced tree over the distinct keys.
    """

    nodes = np.zeros((keys.size + 1, NODE_WORDS), dtype=np.uint64)
    for i in range(keys.size):
        init_node(nodes, i + 1, keys[i])

    avl = AVLTree(nodes)
    for i in range(keys.size):
        avl.insert(i + 1)

    return avl

@njit
def fill_tree(
    tree:    'AVLTree',
    indices: np.ndarray

) -> None:

    """
    Links the detached nodes at `indices` into an existing tree.
    Nodes whose key is already present are left detached.
    """

    for i in range(indices.size):
        tree.insert(indices[i])

@njit
def remove_keys(
    tree: 'AVLTree',
    keys: np.ndarray

) -> None:
    """
    Removes every key of `keys` from the tree; absent keys are ignored.
    """

    for i in range(keys.size):
        tree.remove(keys[i])

@njit
def lookup_bulk(
    tree: 'AVLTree',
    keys: np.ndarray

) -> np.ndarray:

    """
    Looks up every key of `keys` in order. Returns the node indices, 0 for missing keys.
    """

    size    = keys.size
    results = np.zeros(size, dtype=np.uint64)
    for i in range(size):
        results[i] = tree.lookup(keys[i])

    return results
