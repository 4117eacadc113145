import operator
from functools import reduce

import numpy as np
from numpy.exceptions import AxisError
from numpy.lib.array_utils import normalize_axis_index

################################################################################
#                                 Errors
################################################################################

class AxisOutOfBounds(AxisError):
    "An axis argument refers to a dimension the tensor does not have"
    pass

class DimensionMismatch(ValueError):
    "The number of ranges/axes/coordinates does not match the dimensionality"
    pass

class UnsupportedOnView(ValueError):
    "An in-place layout change was attempted on a view"
    pass

class TypeMismatch(TypeError):
    "A mask reduction was handed something which is not a Dense tensor"
    pass

class Exhausted(StopIteration):
    "An iterator has no more elements. Normal end-of-sequence, not a failure"
    pass

class MaskBroadcastWarning(UserWarning):
    pass

class StaleViewWarning(UserWarning):
    "An owner rewrote buffers that existing views still read with old strides"
    pass

################################################################################
#                                 Ranges
################################################################################

class Range:
    """
    A half-open range ``[start, end)`` over one dimension, with a step.

    Ranges are immutable and compare by value, so a list of ranges returned
    by the contiguous-region finders can be compared directly against an
    expected list.
    """
    __slots__ = ('_start', '_end', '_step')

    def __init__(self, start, end, step=1):
        if step == 0:
            raise ValueError("Range step cannot be zero")
        self._start = operator.index(start)
        self._end = operator.index(end)
        self._step = operator.index(step)

    @classmethod
    def from_slice(cls, s, length):
        """
        Convert a python slice to a Range against a dimension of `length`.

        Negative steps are allowed and produce a range which walks the
        dimension backwards. For those the `end` may be -1, meaning "up to
        and including index 0".
        """
        start, end, step = s.indices(length)
        return cls(start, end, step)

    @property
    def start(self):
        return self._start

    @property
    def end(self):
        return self._end

    @property
    def step(self):
        return self._step

    def __len__(self):
        return len(range(self._start, self._end, self._step))

    def __iter__(self):
        return iter(range(self._start, self._end, self._step))

    def __eq__(self, other):
        if not isinstance(other, Range):
            return NotImplemented
        return ((self._start, self._end, self._step) ==
                (other._start, other._end, other._step))

    def __hash__(self):
        return hash((Range, self._start, self._end, self._step))

    def __repr__(self):
        if self._step == 1:
            return 'Range({}, {})'.format(self._start, self._end)
        return 'Range({}, {}, {})'.format(self._start, self._end, self._step)

def as_range(r, length):
    # None means the whole dimension
    if r is None:
        return Range(0, length)
    if isinstance(r, Range):
        return r
    if isinstance(r, slice):
        return Range.from_slice(r, length)
    raise TypeError("slice descriptors must be None, Range or slice, "
                    "got {}".format(type(r).__name__))

################################################################################
#                              Stride helpers
################################################################################

def prod(seq):
    return reduce(operator.mul, seq, 1)

def canonical_strides(shape):
    """
    Row-major (C order) strides in elements for `shape`.

    >>> canonical_strides((2, 3, 4))
    (12, 4, 1)
    """
    strides = []
    acc = 1
    for n in reversed(shape):
        strides.append(acc)
        acc *= n
    return tuple(reversed(strides))

def masked_strides(shape, mask_dims):
    """
    Row-major strides for a mask which only varies along the dimensions
    flagged true in `mask_dims`. Unflagged dimensions get stride 0, which
    broadcasts the mask along them.

    >>> masked_strides((2, 3, 2), (True, False, True))
    (2, 0, 1)
    """
    if len(mask_dims) != len(shape):
        raise DimensionMismatch("got {} mask flags for a {}-d shape".format(
                                len(mask_dims), len(shape)))
    strides = []
    acc = 1
    for n, flag in zip(reversed(shape), reversed(mask_dims)):
        if flag:
            strides.append(acc)
            acc *= n
        else:
            strides.append(0)
    return tuple(reversed(strides))

def normalize_axis(axis, ndim):
    # like numpy, negative axes count from the end
    try:
        return normalize_axis_index(operator.index(axis), ndim)
    except AxisError:
        raise AxisOutOfBounds(axis, ndim) from None

def check_permutation(axes, ndim):
    if len(axes) != ndim:
        raise DimensionMismatch("permutation has {} axes, expected {}".format(
                                len(axes), ndim))
    axes = tuple(normalize_axis(a, ndim) for a in axes)
    if sorted(axes) != list(range(ndim)):
        raise ValueError("repeated axis in permutation {}".format(axes))
    return axes

def index_grid(shape, strides, offset):
    """
    Array of shape `shape` holding the buffer position of every logical
    coordinate. Used to gather from or scatter into a flat buffer through a
    strided layout in one numpy operation.
    """
    grid = np.full(shape, offset, dtype=np.intp)
    for d, (n, s) in enumerate(zip(shape, strides)):
        if s == 0:
            continue
        steps = [1]*len(shape)
        steps[d] = n
        grid += (np.arange(n, dtype=np.intp)*s).reshape(steps)
    return grid
