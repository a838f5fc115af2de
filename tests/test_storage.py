import torch
import unittest
import numpy as np

from replay.storage import Transition, TransitionStore
from replay.errors import DimensionMismatchError, InvalidArgumentError


class EncodedState:
    def __init__(self, *values):
        self.values = values

    def encode(self):
        return np.array(self.values)


class TestTransitionStore(unittest.TestCase):
    def setUp(self):
        self.store = TransitionStore(size=4, state_size=3)

    def test_init(self):
        self.assertEqual(len(self.store), 4)
        self.assertEqual(self.store.state.shape, (4, 3))
        self.assertEqual(self.store.state.dtype, torch.float64)
        self.assertEqual(self.store.action.dtype, torch.long)
        self.assertEqual(self.store.done.dtype, torch.bool)

    def test_invalid_init(self):
        with self.assertRaises(InvalidArgumentError):
            TransitionStore(size=0, state_size=3)
        with self.assertRaises(InvalidArgumentError):
            TransitionStore(size=4, state_size=-1)

    def test_put_and_getitem(self):
        self.store.put(2, ([1.0, 2.0, 3.0], 1, 0.5, [4.0, 5.0, 6.0], True))

        transition = self.store[2]
        self.assertIsInstance(transition, Transition)
        self.assertEqual(transition.state.tolist(), [1.0, 2.0, 3.0])
        self.assertEqual(transition.action, 1)
        self.assertEqual(transition.reward, 0.5)
        self.assertEqual(transition.next_state.tolist(), [4.0, 5.0, 6.0])
        self.assertTrue(transition.done)

    def test_put_accepts_encodable_states_and_tensors(self):
        self.store.put(0, (EncodedState(1, 2, 3), 0, 1.0, torch.tensor([[3.0, 2.0, 1.0]]), False))

        self.assertEqual(self.store.state[0].tolist(), [1.0, 2.0, 3.0])
        self.assertEqual(self.store.next_state[0].tolist(), [3.0, 2.0, 1.0])

    def test_put_overwrites(self):
        self.store.put(1, ([1.0, 1.0, 1.0], 0, 1.0, [1.0, 1.0, 1.0], False))
        self.store.put(1, ([2.0, 2.0, 2.0], 3, -1.0, [0.0, 0.0, 0.0], True))

        self.assertEqual(self.store[1].action, 3)
        self.assertEqual(self.store[1].reward, -1.0)
        self.assertEqual(self.store[1].state.tolist(), [2.0, 2.0, 2.0])

    def test_dimension_mismatch_leaves_slot_untouched(self):
        self.store.put(0, ([1.0, 1.0, 1.0], 2, 1.0, [1.0, 1.0, 1.0], False))

        with self.assertRaises(DimensionMismatchError):
            self.store.put(0, ([9.0, 9.0], 5, 9.0, [9.0, 9.0, 9.0], True))
        with self.assertRaises(DimensionMismatchError):
            self.store.put(0, ([9.0, 9.0, 9.0], 5, 9.0, [9.0, 9.0, 9.0, 9.0], True))

        self.assertEqual(self.store[0].state.tolist(), [1.0, 1.0, 1.0])
        self.assertEqual(self.store[0].action, 2)
        self.assertFalse(self.store[0].done)

    def test_get_preserves_order(self):
        for i in range(4):
            self.store.put(i, ([i, i, i], i, float(i), [i + 1, i + 1, i + 1], i % 2 == 0))

        state, action, reward, next_state, done = self.store.get(np.array([3, 0, 3, 1]))

        self.assertEqual(state.shape, (4, 3))
        self.assertEqual(action.tolist(), [3, 0, 3, 1])
        self.assertEqual(reward.tolist(), [3.0, 0.0, 3.0, 1.0])
        self.assertEqual(next_state[:, 0].tolist(), [4.0, 1.0, 4.0, 2.0])
        self.assertEqual(done.tolist(), [False, True, False, False])


if __name__ == "__main__":
    unittest.main()
