import numpy as np

from replay.errors import InvalidArgumentError, IndexOutOfRangeError

# The ‘sum-tree’ data structure used here is very similar in spirit to the array representation
# of a binary heap. However, instead of the usual heap property, the value of a parent node is
# the sum of its children. Leaf nodes store the transformed transition priorities (p ** alpha)
# and the internal nodes are intermediate sums, with the root containing the sum over all
# priorities, p_total. This provides an efficient way of calculating the cumulative sum of
# priorities, allowing O(log N) updates and sampling. (Appendix B.2.1, Proportional prioritization)
#
# The number of leaves is always a power of two, so the tree is complete and every leaf sits
# at the same depth. Slots past the buffer capacity simply stay at zero and are never sampled.
#
# How to represent full binary tree as array: https://stackoverflow.com/questions/8256222/binary-tree-represented-using-array


class SumTree:
    def __init__(self, size):
        if isinstance(size, bool) or not isinstance(size, (int, np.integer)) or size <= 0 or size & (size - 1):
            raise InvalidArgumentError(f"SumTree size must be a positive power of two, got {size!r}")

        self.size = int(size)
        self.nodes = np.zeros(2 * self.size - 1, dtype=np.float64)

    @property
    def total(self):
        return float(self.nodes[0])

    @property
    def leaves(self):
        view = self.nodes[self.size - 1:]
        view.flags.writeable = False
        return view

    def _check_index(self, data_idx):
        if not 0 <= data_idx < self.size:
            raise IndexOutOfRangeError(f"leaf index {data_idx} out of range [0, {self.size})")

    def update(self, data_idx, value):
        self._check_index(data_idx)
        if not np.isfinite(value) or value < 0:
            raise InvalidArgumentError(f"leaf value must be finite and non-negative, got {value}")

        idx = data_idx + self.size - 1  # leaf index in tree array
        self.nodes[idx] = value

        # parents are recomputed from both children instead of adding the delta,
        # so rounding errors never accumulate in the internal nodes
        parent = (idx - 1) // 2
        while parent >= 0:
            self.nodes[parent] = self.nodes[2 * parent + 1] + self.nodes[2 * parent + 2]
            parent = (parent - 1) // 2

    def find_prefix_sum(self, mass):
        """Return the smallest leaf index whose inclusive cumulative sum exceeds `mass`.

        `mass` is expected in [0, total). Larger values resolve to the right-most non-zero leaf.
        """
        idx = 0
        while 2 * idx + 1 < len(self.nodes):
            left, right = 2 * idx + 1, 2 * idx + 2

            # rounding can leave `mass` a hair above the left sum while the right subtree is empty
            if mass < self.nodes[left] or self.nodes[right] == 0:
                idx = left
            else:
                idx = right
                mass = mass - self.nodes[left]

        return idx - self.size + 1

    def range_sum(self, lo, hi):
        """Sum of leaf values over [lo, hi] inclusive, accumulated bottom-up in O(log N)."""
        if lo > hi:
            return 0.0
        self._check_index(lo)
        self._check_index(hi)

        result = 0.0
        lo, hi = lo + self.size - 1, hi + self.size - 1
        while lo <= hi:
            # even positions are right children (or the root), odd positions are left children
            if lo % 2 == 0:
                result += self.nodes[lo]
                lo += 1
            if hi % 2 == 1:
                result += self.nodes[hi]
                hi -= 1
            lo, hi = (lo - 1) // 2, (hi - 1) // 2

        return float(result)

    def __getitem__(self, data_idx):
        self._check_index(data_idx)
        return float(self.nodes[data_idx + self.size - 1])

    def __len__(self):
        return self.size

    def __repr__(self):
        return f"SumTree(size={self.size}, total={self.total}, leaves={self.leaves.tolist().__repr__()})"
