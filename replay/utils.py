import os
import torch
import random
import logging
import logging.config
import numpy as np

from replay.errors import InvalidArgumentError


def set_seed(seed=0, env=None):
    os.environ["PYTHONHASHSEED"] = str(seed)
    if env is not None:
        env.action_space.seed(seed)
    np.random.seed(seed)
    random.seed(seed)
    torch.manual_seed(seed)


def device(force_cpu=True):
    return "cuda" if torch.cuda.is_available() and not force_cpu else "cpu"


def next_power_of_two(n):
    if not isinstance(n, (int, np.integer)) or isinstance(n, bool) or n <= 0:
        raise InvalidArgumentError(f"expected a positive integer, got {n!r}")

    return 1 << (int(n) - 1).bit_length()


def encode_state(state):
    """Flatten a state into a float64 vector, calling its `encode()` method first if it has one."""
    if hasattr(state, "encode") and callable(state.encode):
        state = state.encode()

    if isinstance(state, torch.Tensor):
        state = state.detach().cpu().numpy()

    return np.asarray(state, dtype=np.float64).reshape(-1)


class LinearSchedule:
    """Linearly anneals a value from `start` to `end` over `steps` calls, then holds `end`.

    Typically used for the importance sampling exponent beta, which should reach 1.0
    by the end of training.
    """
    def __init__(self, start, end=1.0, steps=100_000):
        if steps <= 0:
            raise InvalidArgumentError(f"steps must be positive, got {steps}")

        self.start = start
        self.end = end
        self.steps = steps
        self.calls = 0

    def __call__(self, step=None):
        if step is None:
            step = self.calls
            self.calls += 1

        fraction = min(max(step / self.steps, 0.0), 1.0)
        return self.start + fraction * (self.end - self.start)

    def reset(self):
        self.calls = 0


def setup_logging(level=logging.INFO):
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
            },
        },
        "handlers": {
            "default": {
                "level": level,
                "class": "logging.StreamHandler",
                "formatter": "standard",
            },
        },
        "root": {
            "handlers": ["default"],
            "level": level,
        },
    })
