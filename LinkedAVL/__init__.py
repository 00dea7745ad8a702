import logging

from .AVLTreeLinked import (
    CMP_EQ,
    CMP_GT,
    CMP_LT,
    AVLTree,
    TreeOperations,
    bind_comparator,
    build_tree,
    compare_keys,
    count_nodes,
    fill_tree,
    inorder_traversal,
    insert,
    lookup,
    lookup_bulk,
    predecessor,
    remove,
    remove_keys,
    successor,
    warmup,
)
from .Errors import AVLContractError, AVLError, InvariantError
from .NodeLayout import (
    NodeInfo,
    get_node,
    init_node,
    is_detached,
    new_node_buffer,
    node_buffer_from_keys,
    node_info,
    pack,
    set_node,
    unpack,
)
from .Rebalance import (
    balance,
    balance_factor,
    find_maximum,
    find_minimum,
    height,
    recalculate_height,
    rotate_left,
    rotate_right,
)
from .Validate import check_invariants, find_violation, is_valid


logging.getLogger(__name__).addHandler(logging.NullHandler())
