import collections


class RunningWindow(object):
    """The last `size` values pushed, together with their running sum.

    Pushing into a full window evicts the oldest value."""

    def __init__(self, size):
        if size < 1:
            raise ValueError("RunningWindow size must be positive, got %s" % size)
        self.size = size
        self.values = collections.deque(maxlen=size)
        self.sum = 0.0

    def push(self, value):
        if len(self.values) == self.size:
            self.sum -= self.values[0]
        self.values.append(value)
        self.sum += value

    def mean(self):
        if not self.values:
            raise ValueError("mean of an empty RunningWindow")
        return self.sum / len(self.values)

    def __len__(self):
        return len(self.values)

    def __iter__(self):
        return iter(self.values)
