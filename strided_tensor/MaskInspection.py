import numpy as np

from .AccessPattern import AccessPattern
from .common import Range, TypeMismatch, normalize_axis
from .iterators import FlatIterator, MultIterator

# Note: this module does not import Dense, so that Dense can import it.
# Output tensors are built with type(t), which also keeps subclasses.

def is_dense(val):
    return (isinstance(getattr(val, 'ap', None), AccessPattern) and
            hasattr(val, '_mask'))

def _check_dense(t):
    if not is_dense(t):
        raise TypeMismatch("mask reductions need a Dense tensor, got "
                           "{}".format(type(t).__name__))

################################################################################
#                            Axis-wise reduction
################################################################################

def masked_reduce(t, dtype, fn, axis=None):
    """
    Turn a whole-tensor mask reduction into an axis-wise one.

    Parameters
    ----------
    t : Dense
        Tensor to reduce.
    dtype : data-type
        Element type of the result tensor when `axis` is given.
    fn : callable
        Reduction taking a Dense and returning a scalar.
    axis : int, optional
        Axis to reduce along. Negative values count from the end.

    Returns
    -------
    result : scalar or Dense
        ``fn(t)`` if `axis` is None or `t` is 1-d. Otherwise a tensor whose
        shape is that of `t` with `axis` removed, where each element is `fn`
        applied to the slice of `t` running along `axis` through it.

    Raises
    ------
    AxisOutOfBounds
        If `axis` is not a dimension of `t`.
    """
    _check_dense(t)
    if axis is not None:
        axis = normalize_axis(axis, t.ndim)
    if axis is None or t.is_vector():
        return fn(t)

    out_shape = t.shape[:axis] + t.shape[axis+1:]
    ret = type(t)(out_shape, dtype=dtype)

    # each output coordinate selects one index on every other axis
    with FlatIterator(ret.ap) as it:
        for coord in it:
            ranges = [Range(c, c + 1) for c in coord]
            ranges.insert(axis, None)
            ret.set_at(fn(t.slice(*ranges)), *coord)
    return ret

def _contiguous_mask(t):
    # the mask entries of t, if they form one run of the mask buffer
    if t.mask_size() == t.size and t.ap.is_mask_contiguous():
        start = t.ap.mask_offset
        return t._mask[start:start + t.size]
    return None

def mask_any(t):
    "True if any element of `t` is masked. False if `t` has no mask"
    _check_dense(t)
    if not t.is_masked():
        return False
    m = _contiguous_mask(t)
    if m is not None:
        return bool(m.any())
    with MultIterator(t) as it:
        return it.next_invalid() >= 0

def mask_all(t):
    "True if every element of `t` is masked. False if `t` has no mask"
    _check_dense(t)
    if not t.is_masked():
        return False
    m = _contiguous_mask(t)
    if m is not None:
        return bool(m.all())
    mask = t._mask
    with MultIterator(t) as it:
        for _ in it:
            if not mask[it.last_mask_index()]:
                return False
    return True

def mask_count(t):
    "Number of masked elements of `t`"
    _check_dense(t)
    if not t.is_masked():
        return 0
    m = _contiguous_mask(t)
    if m is not None:
        return int(np.count_nonzero(m))
    count = 0
    with MultIterator(t) as it:
        while it.next_invalid() >= 0:
            count += 1
    return count

def non_mask_count(t):
    "Number of unmasked elements of `t`"
    _check_dense(t)
    if not t.is_masked():
        return t.size
    return t.size - mask_count(t)

def masked_any(t, axis=None):
    """
    Test whether any element is masked, optionally along `axis`.

    This looks at the mask only, not at the data. It is the equivalent of
    ``np.ma.getmask(a).any(axis)``.
    """
    return masked_reduce(t, np.bool_, mask_any, axis)

def masked_all(t, axis=None):
    """
    Test whether every element is masked, optionally along `axis`.

    An unmasked tensor gives False.
    """
    return masked_reduce(t, np.bool_, mask_all, axis)

def masked_count(t, axis=None):
    "Count the masked elements, optionally along `axis`"
    return masked_reduce(t, np.intp, mask_count, axis)

def non_masked_count(t, axis=None):
    "Count the unmasked elements, optionally along `axis`"
    return masked_reduce(t, np.intp, non_mask_count, axis)

################################################################################
#                         Finding masked regions
################################################################################

def _find_contiguous(t, valid):
    _check_dense(t)
    size = t.size
    regions = []
    with MultIterator(t) as it:
        if valid:
            seek_start, seek_end = it.next_valid, it.next_invalid
        else:
            seek_start, seek_end = it.next_invalid, it.next_valid

        while True:
            start = seek_start()
            if start < 0:
                break
            end = seek_end()
            if end < 0:
                regions.append(Range(start, size))
                break
            regions.append(Range(start, end))
    return regions

def flat_not_masked_contiguous(t):
    """
    Find the runs of unmasked elements of the flattened tensor.

    Returns
    -------
    regions : list of Range
        Sorted, non-overlapping half-open ranges of flat (row-major)
        indices. The last range ends at ``t.size`` if the tensor ends
        unmasked.
    """
    return _find_contiguous(t, valid=True)

def flat_masked_contiguous(t):
    """
    Find the runs of masked elements of the flattened tensor.

    See `flat_not_masked_contiguous`.
    """
    return _find_contiguous(t, valid=False)

def _find_edges(t, valid):
    _check_dense(t)
    if not t.is_masked():
        return 0, t.size - 1

    with MultIterator(t) as forward, MultIterator(t) as backward:
        backward.set_reverse()
        if valid:
            first, last = forward.next_valid(), backward.next_valid()
        else:
            first, last = forward.next_invalid(), backward.next_invalid()

    if first < 0:
        return -1, -1
    return first, last

def flat_not_masked_edges(t):
    """
    Flat indices of the first and last unmasked elements.

    Returns ``(0, t.size - 1)`` if the tensor has no mask, and ``(-1, -1)``
    if every element is masked.
    """
    return _find_edges(t, valid=True)

def flat_masked_edges(t):
    """
    Flat indices of the first and last masked elements.

    Returns ``(0, t.size - 1)`` if the tensor has no mask, and ``(-1, -1)``
    if no element is masked.
    """
    return _find_edges(t, valid=False)

# numpy.ma names
clump_masked = flat_masked_contiguous
clump_unmasked = flat_not_masked_contiguous
