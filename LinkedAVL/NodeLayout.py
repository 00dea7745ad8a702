import logging
from collections import namedtuple
from typing import Iterable, Tuple

import numpy as np
from numba import njit, types, uint64



logger = logging.getLogger(__name__)



# Packed 192-bit node layout, one row of a uint64[N + 1, 3] buffer:
#     KEY_WORD [64]: [key[64]]
#     LINK_WORD[64]: [left[32] | right[32]]
#     META_WORD[64]: [parent[32] | reserved[24] | height[8]]
#     Limitations:
#         0 <= key    <= (1 << 64) - 1
#         0 <= left   <= (1 << 32) - 1
#         0 <= right  <= (1 << 32) - 1
#         0 <= parent <= (1 << 32) - 1
#         0 <= height <= (1 << 8)  - 1
#
# Row 0 is the absent node: it is never written, so its height reads as 0.
KEY_WORD   = 0
LINK_WORD  = 1
META_WORD  = 2
NODE_WORDS = 3

INDEX_MASK   = np.uint64(0xFFFFFFFF) # (1 << 32) - 1
HEIGHT_MASK  = np.uint64(0xFF)       # (1 <<  8) - 1
LEFT_SHIFT   = np.uint64(0x20)       # 32
PARENT_SHIFT = np.uint64(0x20)       # 32

NIL = np.uint64(0)

MAX_CAPACITY = int(INDEX_MASK)

# Keys span the full uint64 range, so Python-facing kernels are compiled
# eagerly for uint64 arguments instead of inferring int64 from the first call.
NODE_BUFFER = uint64[:, ::1]



# ---------- JIT-Compiled Packing ----------
@njit(types.UniTuple(uint64, 3)(uint64, uint64, uint64, uint64, uint64), inline="always")
def pack(
    key:    np.uint64,
    left:   np.uint64,
    right:  np.uint64,
    parent: np.uint64,
    height: np.uint64

) -> Tuple[np.uint64, np.uint64, np.uint64]:

    """
    Pack the five node fields into the three words of the node layout:
    [key[64]], [left[32] | right[32]], [parent[32] | reserved[24] | height[8]].

    :param key: The ordering key (full 64 bits)
    :type key: np.uint64
    :param left: Index of the left child (up to 32 bits)
    :type left: np.uint64
    :param right: Index of the right child (up to 32 bits)
    :type right: np.uint64
    :param parent: Index of the parent (up to 32 bits)
    :type parent: np.uint64
    :param height: Height of the subtree rooted at the node (up to 8 bits)
    :type height: np.uint64
    :return: The (key_word, link_word, meta_word) triple
    :rtype: Tuple[np.uint64, np.uint64, np.uint64]
    """

    key_word  = np.uint64(key)
    link_word = ((np.uint64(left) & INDEX_MASK) << LEFT_SHIFT) | (np.uint64(right) & INDEX_MASK)
    meta_word = ((np.uint64(parent) & INDEX_MASK) << PARENT_SHIFT) | (np.uint64(height) & HEIGHT_MASK)

    return key_word, link_word, meta_word

@njit(types.UniTuple(uint64, 5)(uint64, uint64, uint64), inline="always")
def unpack(
    key_word:  np.uint64,
    link_word: np.uint64,
    meta_word: np.uint64

) -> Tuple[np.uint64, np.uint64, np.uint64, np.uint64, np.uint64]:

    """
    Unpack the three words of a node into (key, left, right, parent, height).

    NOTE:
    Intended for control, testing and debugging. The tree operations read
    single fields through the accessors below instead.
    """

    key    = np.uint64(key_word)
    left   = (np.uint64(link_word) >> LEFT_SHIFT) & INDEX_MASK
    right  = np.uint64(link_word) & INDEX_MASK
    parent = (np.uint64(meta_word) >> PARENT_SHIFT) & INDEX_MASK
    height = np.uint64(meta_word) & HEIGHT_MASK

    return key, left, right, parent, height

@njit(inline="always")
def get_node(
    nodes: np.ndarray,
    index: np.uint64

) -> Tuple[np.uint64, np.uint64, np.uint64]:

    """
    Get the raw words of a node by index.
    """

    i = np.uint64(index)
    return nodes[i, KEY_WORD], nodes[i, LINK_WORD], nodes[i, META_WORD]

@njit(inline="always")
def set_node(
    nodes: np.ndarray,
    index: np.uint64,
    words: Tuple[np.uint64, np.uint64, np.uint64]

) -> None:

    """
    Assign a packed (key_word, link_word, meta_word) triple to a node row.
    """

    i = np.uint64(index)
    nodes[i, KEY_WORD]  = words[0]
    nodes[i, LINK_WORD] = words[1]
    nodes[i, META_WORD] = words[2]



# ---------- JIT-Compiled Field Accessors ----------
@njit(inline="always")
def _get_key(
    nodes: np.ndarray,
    index: np.uint64

) -> np.uint64:

    """
    Extract the 'key' field (all 64 bits of KEY_WORD).
    """

    return nodes[np.uint64(index), KEY_WORD]

@njit(inline="always")
def _get_left(
    nodes: np.ndarray,
    index: np.uint64

) -> np.uint64:

    """
    Extract the 'left' field (upper 32 bits of LINK_WORD).
    """

    return (nodes[np.uint64(index), LINK_WORD] >> LEFT_SHIFT) & INDEX_MASK

@njit(inline="always")
def _get_right(
    nodes: np.ndarray,
    index: np.uint64

) -> np.uint64:

    """
    Extract the 'right' field (lower 32 bits of LINK_WORD).
    """

    return nodes[np.uint64(index), LINK_WORD] & INDEX_MASK

@njit(inline="always")
def _get_parent(
    nodes: np.ndarray,
    index: np.uint64

) -> np.uint64:

    """
    Extract the 'parent' field (upper 32 bits of META_WORD).
    """

    return (nodes[np.uint64(index), META_WORD] >> PARENT_SHIFT) & INDEX_MASK

@njit(inline="always")
def _get_height(
    nodes: np.ndarray,
    index: np.uint64

) -> np.int64:

    """
    Extract the 'height' field (lower 8 bits of META_WORD) as a signed integer.
    """

    return np.int64(nodes[np.uint64(index), META_WORD] & HEIGHT_MASK)



# ---------- JIT-Compiled Field Updaters ----------
@njit(inline="always")
def _set_left(
    nodes:    np.ndarray,
    index:    np.uint64,
    new_left: np.uint64

) -> None:

    """
    Replace the 'left' field; right keeps its bits.
    """

    i    = np.uint64(index)
    word = nodes[i, LINK_WORD]

    nodes[i, LINK_WORD] = (word & INDEX_MASK) | ((np.uint64(new_left) & INDEX_MASK) << LEFT_SHIFT)

@njit(inline="always")
def _set_right(
    nodes:     np.ndarray,
    index:     np.uint64,
    new_right: np.uint64

) -> None:

    """
    Replace the 'right' field; left keeps its bits.
    """

    i    = np.uint64(index)
    word = nodes[i, LINK_WORD]

    nodes[i, LINK_WORD] = (word & ~INDEX_MASK) | (np.uint64(new_right) & INDEX_MASK)

@njit(inline="always")
def _set_parent(
    nodes:      np.ndarray,
    index:      np.uint64,
    new_parent: np.uint64

) -> None:

    """
    Replace the 'parent' field; height and reserved bits are untouched.
    """

    i    = np.uint64(index)
    word = nodes[i, META_WORD]

    nodes[i, META_WORD] = (word & ~(INDEX_MASK << PARENT_SHIFT)) | ((np.uint64(new_parent) & INDEX_MASK) << PARENT_SHIFT)

@njit(inline="always")
def _set_height(
    nodes:      np.ndarray,
    index:      np.uint64,
    new_height: np.int64

) -> None:

    """
    Replace the 'height' field; parent and reserved bits are untouched.
    """

    i    = np.uint64(index)
    word = nodes[i, META_WORD]

    nodes[i, META_WORD] = (word & ~HEIGHT_MASK) | (np.uint64(new_height) & HEIGHT_MASK)

@njit(inline="always")
def _detach(
    nodes: np.ndarray,
    index: np.uint64

) -> None:

    """
    Clear left, right, parent and height. The key is kept so the caller can reuse the node.
    """

    i = np.uint64(index)
    nodes[i, LINK_WORD] = NIL
    nodes[i, META_WORD] = NIL



# ---------- Node Buffer ----------
@njit(types.void(NODE_BUFFER, uint64, uint64))
def init_node(
    nodes: np.ndarray,
    index: np.uint64,
    key:   np.uint64

) -> None:

    """
    Write a detached node carrying `key` into row `index`.
    """

    set_node(nodes, index, pack(key, NIL, NIL, NIL, NIL))

@njit
def is_detached(
    nodes: np.ndarray,
    index: np.uint64

) -> bool:

    i = np.uint64(index)
    return nodes[i, LINK_WORD] == NIL and nodes[i, META_WORD] == NIL

def new_node_buffer(
    capacity: int

) -> np.ndarray:

    """
    Allocate a zeroed node buffer for up to `capacity` nodes.

    Row 0 is the absent node, so the buffer has `capacity + 1` rows and the
    usable node indices are 1..capacity.

    :param capacity: Number of nodes the buffer can hold
    :type capacity: int
    :return: C-contiguous uint64 array of shape (capacity + 1, 3)
    :rtype: np.ndarray
    """

    if not (0 <= capacity <= MAX_CAPACITY):
        raise ValueError(
            f"The capacity must be between 0 and {MAX_CAPACITY}, not {capacity}"
        )

    logger.debug("allocating node buffer for %d nodes", capacity)
    return np.zeros((capacity + 1, NODE_WORDS), dtype=np.uint64)

def node_buffer_from_keys(
    keys: Iterable[int]

) -> np.ndarray:

    """
    Allocate a node buffer where node `i + 1` is a detached node holding `keys[i]`.
    """

    keys  = np.asarray(list(keys), dtype=np.uint64)
    nodes = new_node_buffer(keys.size)

    nodes[1:, KEY_WORD] = keys
    return nodes


NodeInfo = namedtuple("NodeInfo", ["key", "left", "right", "parent", "height"])

def node_info(
    nodes: np.ndarray,
    index: int

) -> NodeInfo:

    """Unpack a node into a plain-int NodeInfo for inspection."""

    key_word, link_word, meta_word = (int(word) for word in nodes[int(index)])

    return NodeInfo(
        key    = key_word,
        left   = (link_word >> int(LEFT_SHIFT)) & int(INDEX_MASK),
        right  = link_word & int(INDEX_MASK),
        parent = (meta_word >> int(PARENT_SHIFT)) & int(INDEX_MASK),
        height = meta_word & int(HEIGHT_MASK),
    )
