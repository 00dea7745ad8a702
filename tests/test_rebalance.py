import unittest

from LinkedAVL import (
    AVLContractError,
    NodeInfo,
    balance,
    balance_factor,
    find_maximum,
    find_minimum,
    height,
    is_valid,
    new_node_buffer,
    node_info,
    pack,
    recalculate_height,
    rotate_left,
    rotate_right,
    set_node,
)
from LinkedAVL import Config


def make_node(nodes, index, key, left=0, right=0, parent=0, node_height=0):
    set_node(nodes, index, pack(key, left, right, parent, node_height))


class TestHeightPrimitives(unittest.TestCase):
    def setUp(self):
        #     20
        #    /  \
        #  10    30
        #          \
        #           40
        self.nodes = new_node_buffer(4)
        make_node(self.nodes, 1, 20, left=2, right=3, node_height=3)
        make_node(self.nodes, 2, 10, parent=1, node_height=1)
        make_node(self.nodes, 3, 30, right=4, parent=1, node_height=2)
        make_node(self.nodes, 4, 40, parent=3, node_height=1)

    def test_absent_node_has_height_zero(self):
        self.assertEqual(height(self.nodes, 0), 0)

    def test_stored_height(self):
        self.assertEqual(height(self.nodes, 1), 3)
        self.assertEqual(height(self.nodes, 4), 1)

    def test_balance_factor_is_right_minus_left(self):
        self.assertEqual(balance_factor(self.nodes, 1), 1)
        self.assertEqual(balance_factor(self.nodes, 3), 1)
        self.assertEqual(balance_factor(self.nodes, 2), 0)

    def test_recalculate_height_from_children(self):
        make_node(self.nodes, 3, 30, right=4, parent=1, node_height=7)
        recalculate_height(self.nodes, 3)
        self.assertEqual(height(self.nodes, 3), 2)

    def test_find_minimum_and_maximum(self):
        self.assertEqual(find_minimum(self.nodes, 1), 2)
        self.assertEqual(find_maximum(self.nodes, 1), 4)
        self.assertEqual(find_minimum(self.nodes, 3), 3)

    @unittest.skipUnless(Config.CHECK_CONTRACTS, "contract checks disabled")
    def test_absent_node_is_a_contract_violation(self):
        with self.assertRaises(AVLContractError):
            balance_factor(self.nodes, 0)
        with self.assertRaises(AVLContractError):
            find_minimum(self.nodes, 0)
        with self.assertRaises(AssertionError):
            find_maximum(self.nodes, 0)


class TestRotations(unittest.TestCase):
    def right_chain(self):
        # 10 -> 20 -> 30, all right children
        nodes = new_node_buffer(3)
        make_node(nodes, 1, 10, right=2, node_height=3)
        make_node(nodes, 2, 20, right=3, parent=1, node_height=2)
        make_node(nodes, 3, 30, parent=2, node_height=1)
        return nodes

    def left_chain(self):
        # 30 -> 20 -> 10, all left children
        nodes = new_node_buffer(3)
        make_node(nodes, 1, 30, left=2, node_height=3)
        make_node(nodes, 2, 20, left=3, parent=1, node_height=2)
        make_node(nodes, 3, 10, parent=2, node_height=1)
        return nodes

    def test_rotate_left_promotes_right_child(self):
        nodes = self.right_chain()
        new_root = rotate_left(nodes, 1)
        self.assertEqual(new_root, 2)
        self.assertEqual(node_info(nodes, 2), NodeInfo(20, 1, 3, 0, 2))
        self.assertEqual(node_info(nodes, 1), NodeInfo(10, 0, 0, 2, 1))
        self.assertEqual(node_info(nodes, 3), NodeInfo(30, 0, 0, 2, 1))
        self.assertTrue(is_valid(nodes, new_root))

    def test_rotate_right_promotes_left_child(self):
        nodes = self.left_chain()
        new_root = rotate_right(nodes, 1)
        self.assertEqual(new_root, 2)
        self.assertEqual(node_info(nodes, 2), NodeInfo(20, 3, 1, 0, 2))
        self.assertEqual(node_info(nodes, 1), NodeInfo(30, 0, 0, 2, 1))
        self.assertTrue(is_valid(nodes, new_root))

    def test_rotation_moves_inner_subtree_across(self):
        #      4              2
        #     / \            / \
        #    2   5   -->    1   4
        #   / \                / \
        #  1   3              3   5
        nodes = new_node_buffer(5)
        make_node(nodes, 4, 4, left=2, right=5, node_height=3)
        make_node(nodes, 2, 2, left=1, right=3, parent=4, node_height=2)
        make_node(nodes, 5, 5, parent=4, node_height=1)
        make_node(nodes, 1, 1, parent=2, node_height=1)
        make_node(nodes, 3, 3, parent=2, node_height=1)

        new_root = rotate_right(nodes, 4)
        self.assertEqual(new_root, 2)
        self.assertEqual(node_info(nodes, 3).parent, 4)
        self.assertEqual(node_info(nodes, 4), NodeInfo(4, 3, 5, 2, 2))
        self.assertEqual(node_info(nodes, 2), NodeInfo(2, 1, 4, 0, 3))

    def test_rotation_repoints_parent_link(self):
        # 50 is the parent of the rotated subtree rooted at 10
        nodes = new_node_buffer(4)
        make_node(nodes, 4, 50, left=1, node_height=4)
        make_node(nodes, 1, 10, right=2, parent=4, node_height=3)
        make_node(nodes, 2, 20, right=3, parent=1, node_height=2)
        make_node(nodes, 3, 30, parent=2, node_height=1)

        new_local_root = rotate_left(nodes, 1)
        self.assertEqual(new_local_root, 2)
        self.assertEqual(node_info(nodes, 4).left, 2)
        self.assertEqual(node_info(nodes, 2).parent, 4)


class TestBalance(unittest.TestCase):
    def test_right_right_case(self):
        nodes = new_node_buffer(3)
        make_node(nodes, 1, 10, right=2, node_height=3)
        make_node(nodes, 2, 20, right=3, parent=1, node_height=2)
        make_node(nodes, 3, 30, parent=2, node_height=1)
        self.assertEqual(balance(nodes, 1), 2)
        self.assertTrue(is_valid(nodes, 2))

    def test_right_left_case_double_rotation(self):
        # 10 -> right 30 -> left 20
        nodes = new_node_buffer(3)
        make_node(nodes, 1, 10, right=2, node_height=3)
        make_node(nodes, 2, 30, left=3, parent=1, node_height=2)
        make_node(nodes, 3, 20, parent=2, node_height=1)
        new_root = balance(nodes, 1)
        self.assertEqual(new_root, 3)
        self.assertEqual(node_info(nodes, 3), NodeInfo(20, 1, 2, 0, 2))
        self.assertTrue(is_valid(nodes, new_root))

    def test_left_right_case_double_rotation(self):
        # 30 -> left 10 -> right 20
        nodes = new_node_buffer(3)
        make_node(nodes, 1, 30, left=2, node_height=3)
        make_node(nodes, 2, 10, right=3, parent=1, node_height=2)
        make_node(nodes, 3, 20, parent=2, node_height=1)
        new_root = balance(nodes, 1)
        self.assertEqual(new_root, 3)
        self.assertEqual(node_info(nodes, 3), NodeInfo(20, 2, 1, 0, 2))
        self.assertTrue(is_valid(nodes, new_root))

    def test_balanced_node_only_gets_height_recomputed(self):
        nodes = new_node_buffer(2)
        make_node(nodes, 1, 10, right=2, node_height=9)
        make_node(nodes, 2, 20, parent=1, node_height=1)
        self.assertEqual(balance(nodes, 1), 1)
        self.assertEqual(node_info(nodes, 1), NodeInfo(10, 0, 2, 0, 2))

    @unittest.skipUnless(Config.CHECK_CONTRACTS, "contract checks disabled")
    def test_imbalance_beyond_two_is_a_contract_violation(self):
        # Left subtree height 4 under a node with no right child
        nodes = new_node_buffer(2)
        make_node(nodes, 1, 10, left=2, node_height=0)
        make_node(nodes, 2, 5, parent=1, node_height=4)
        with self.assertRaises(AVLContractError):
            balance(nodes, 1)


if __name__ == "__main__":
    unittest.main()
