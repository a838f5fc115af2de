import torch
import logging
import numpy as np

from replay.tree import SumTree
from replay.storage import TransitionStore
from replay.utils import device, next_power_of_two
from replay.errors import EmptyBufferError, IndexOutOfRangeError, InvalidArgumentError

logger = logging.getLogger(__name__)


def _check_positive_int(name, value):
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value <= 0:
        raise InvalidArgumentError(f"{name} must be a positive integer, got {value!r}")


class PrioritizedReplayBuffer:
    """Proportional prioritized experience replay (Schaul et al., 2016).

    Transitions are sampled with probability p_i^alpha / sum_k p_k^alpha. New transitions get the
    largest priority seen so far, so every transition is likely to be replayed at least once.
    Not thread safe: callers sharing a buffer between threads must lock around it.
    """
    def __init__(self, state_size, buffer_size, batch_size=32, alpha=0.6):
        _check_positive_int("state_size", state_size)
        _check_positive_int("buffer_size", buffer_size)
        _check_positive_int("batch_size", batch_size)
        if not 0.0 <= alpha <= 1.0:
            raise InvalidArgumentError(f"alpha must lie in [0, 1], got {alpha}")

        if batch_size > buffer_size:
            logger.warning("batch_size %d is larger than buffer_size %d", batch_size, buffer_size)

        self.tree = SumTree(size=next_power_of_two(buffer_size))
        self.storage = TransitionStore(size=int(buffer_size), state_size=int(state_size))

        # PER params
        self.alpha = float(alpha)
        self.batch_size = int(batch_size)
        self._max_priority = 1.0  # raw priority, new transitions start optimistic

        self.count = 0
        self.real_size = 0
        self.size = int(buffer_size)
        self._full = False

        logger.debug(
            "Created PrioritizedReplayBuffer(state_size=%d, buffer_size=%d, batch_size=%d, alpha=%.3f) "
            "with %d tree leaves", state_size, buffer_size, batch_size, alpha, self.tree.size
        )

    @property
    def full(self):
        return self._full

    @property
    def max_priority(self):
        return self._max_priority

    def __len__(self):
        return self.real_size

    def add(self, transition):
        # store transition in the buffer, fails before touching the tree on a bad state shape
        self.storage.put(self.count, transition)

        # optimistic priority for the new transition
        self.tree.update(self.count, self._max_priority ** self.alpha)

        # update counters
        self.count = (self.count + 1) % self.size
        self.real_size = min(self.size, self.real_size + 1)

        if self.count == 0 and not self._full:
            self._full = True
            logger.info("Replay buffer filled all %d slots, oldest transitions will now be overwritten", self.size)

    def store(self, state, action, reward, next_state, done):
        self.add((state, action, reward, next_state, done))

    def _check_batch_size(self, batch_size):
        batch_size = self.batch_size if batch_size is None else batch_size
        _check_positive_int("batch_size", batch_size)

        if self.real_size == 0:
            raise EmptyBufferError("cannot sample from an empty replay buffer")

        return int(batch_size)

    def sample_proportional(self, batch_size=None):
        """Stratified proportional sampling: one draw from each of `batch_size` equal segments of [0, total)."""
        batch_size = self._check_batch_size(batch_size)

        segment = self.tree.total / batch_size
        cumsums = (np.random.uniform(0, 1, size=batch_size) + np.arange(batch_size)) * segment

        return np.array([self.tree.find_prefix_sum(cumsum) for cumsum in cumsums], dtype=np.int64)

    def sample(self, batch_size=None, beta=0.4):
        batch_size = self._check_batch_size(batch_size)
        if not 0.0 <= beta <= 1.0:
            raise InvalidArgumentError(f"beta must lie in [0, 1], got {beta}")

        sample_idxs = self.sample_proportional(batch_size)

        priorities = self.tree.leaves[sample_idxs]
        probs = priorities / self.tree.total
        weights = (self.real_size * probs) ** -beta
        weights = weights / weights.max()

        batch = tuple(field.to(device()) for field in self.storage.get(sample_idxs))
        weights = torch.as_tensor(weights, dtype=torch.float).to(device())

        return batch, weights, sample_idxs

    def update_priorities(self, data_idxs, priorities):
        if isinstance(priorities, torch.Tensor):
            priorities = priorities.detach().cpu().numpy()
        if isinstance(data_idxs, torch.Tensor):
            data_idxs = data_idxs.detach().cpu().numpy()

        data_idxs = np.asarray(data_idxs).reshape(-1)
        priorities = np.asarray(priorities, dtype=np.float64).reshape(-1)

        # validate everything first so a bad call leaves the tree untouched
        if len(data_idxs) != len(priorities):
            raise InvalidArgumentError(
                f"got {len(data_idxs)} indices but {len(priorities)} priorities"
            )
        if not np.all(np.isfinite(priorities)) or np.any(priorities <= 0):
            raise InvalidArgumentError("priorities must be finite and strictly positive")
        if data_idxs.size and not np.issubdtype(data_idxs.dtype, np.integer):
            raise InvalidArgumentError(f"indices must be integers, got dtype {data_idxs.dtype}")
        for data_idx in data_idxs:
            if not 0 <= data_idx < self.real_size:
                raise IndexOutOfRangeError(f"index {data_idx} is not a live slot [0, {self.real_size})")

        for data_idx, priority in zip(data_idxs, priorities):
            self.tree.update(int(data_idx), priority ** self.alpha)
            self._max_priority = max(self._max_priority, float(priority))

    def __repr__(self):
        return (f"PrioritizedReplayBuffer(size={self.size}, real_size={self.real_size}, "
                f"alpha={self.alpha}, max_priority={self._max_priority})")
