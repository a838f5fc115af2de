import torch
import random
import logging
import unittest
import numpy as np

from replay.errors import InvalidArgumentError
from replay.utils import LinearSchedule, device, encode_state, next_power_of_two, set_seed, setup_logging


class TestUtils(unittest.TestCase):
    def test_next_power_of_two(self):
        cases = {1: 1, 2: 2, 3: 4, 4: 4, 5: 8, 1000: 1024, 1024: 1024, 1025: 2048}
        for n, expected in cases.items():
            self.assertEqual(next_power_of_two(n), expected)
        self.assertEqual(next_power_of_two(np.int64(6)), 8)

        for n in (0, -3, 2.5, True):
            with self.assertRaises(InvalidArgumentError):
                next_power_of_two(n)

    def test_encode_state(self):
        class State:
            def encode(self):
                return [[1, 2], [3, 4]]

        encoded = encode_state(State())
        self.assertEqual(encoded.dtype, np.float64)
        self.assertEqual(encoded.tolist(), [1.0, 2.0, 3.0, 4.0])

        self.assertEqual(encode_state(torch.ones(3, dtype=torch.float32)).tolist(), [1.0, 1.0, 1.0])
        self.assertEqual(encode_state(0.5).tolist(), [0.5])

    def test_set_seed(self):
        set_seed(3)
        first = (random.random(), np.random.rand(), torch.rand(1).item())
        set_seed(3)
        second = (random.random(), np.random.rand(), torch.rand(1).item())
        self.assertEqual(first, second)

    def test_device(self):
        self.assertEqual(device(), "cpu")

    def test_linear_schedule(self):
        schedule = LinearSchedule(start=0.4, end=1.0, steps=10)

        self.assertAlmostEqual(schedule(0), 0.4)
        self.assertAlmostEqual(schedule(5), 0.7)
        self.assertAlmostEqual(schedule(10), 1.0)
        self.assertAlmostEqual(schedule(50), 1.0)

        values = [schedule() for _ in range(3)]
        self.assertAlmostEqual(values[2], 0.52)
        self.assertEqual(schedule.calls, 3)
        schedule.reset()
        self.assertAlmostEqual(schedule(), 0.4)

        with self.assertRaises(InvalidArgumentError):
            LinearSchedule(start=0.4, steps=0)

    def test_setup_logging(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        try:
            setup_logging(logging.DEBUG)
            self.assertEqual(root.level, logging.DEBUG)
            self.assertTrue(any(isinstance(h, logging.StreamHandler) for h in root.handlers))
        finally:
            root.handlers = handlers
            root.setLevel(level)


if __name__ == "__main__":
    unittest.main()
