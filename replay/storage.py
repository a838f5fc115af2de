import torch

from typing import NamedTuple

from replay.errors import DimensionMismatchError, InvalidArgumentError
from replay.utils import encode_state


class Transition(NamedTuple):
    state: torch.Tensor
    action: int
    reward: float
    next_state: torch.Tensor
    done: bool


class TransitionStore:
    """Flat, preallocated storage for transitions, addressed by slot index.

    The store knows nothing about priorities or the write cursor; the owning buffer
    decides which slot to overwrite and which slots are live.
    """
    def __init__(self, size, state_size):
        for name, value in (("size", size), ("state_size", state_size)):
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise InvalidArgumentError(f"{name} must be a positive integer, got {value!r}")

        self.size = size
        self.state_size = state_size

        # state, action, reward, next_state, done
        self.state = torch.zeros(size, state_size, dtype=torch.float64)
        self.action = torch.zeros(size, dtype=torch.long)
        self.reward = torch.zeros(size, dtype=torch.float64)
        self.next_state = torch.zeros(size, state_size, dtype=torch.float64)
        self.done = torch.zeros(size, dtype=torch.bool)

    def _encode(self, name, state):
        encoded = encode_state(state)
        if encoded.shape[0] != self.state_size:
            raise DimensionMismatchError(
                f"{name} has {encoded.shape[0]} entries, expected {self.state_size}"
            )
        return torch.from_numpy(encoded)

    def put(self, index, transition):
        state, action, reward, next_state, done = transition

        # encode both vectors before writing anything, so a bad transition leaves the slot untouched
        state = self._encode("state", state)
        next_state = self._encode("next_state", next_state)

        self.state[index] = state
        self.action[index] = int(action)
        self.reward[index] = float(reward)
        self.next_state[index] = next_state
        self.done[index] = bool(done)

    def get(self, indices):
        indices = torch.as_tensor(indices, dtype=torch.long)

        return (
            self.state[indices],
            self.action[indices],
            self.reward[indices],
            self.next_state[indices],
            self.done[indices]
        )

    def __getitem__(self, index):
        return Transition(
            self.state[index].clone(),
            int(self.action[index]),
            float(self.reward[index]),
            self.next_state[index].clone(),
            bool(self.done[index])
        )

    def __len__(self):
        return self.size
