from .common import Exhausted, normalize_axis

class FlatIterator:
    """
    Walks every logical coordinate of an AccessPattern in row-major order.

    Each call to `advance` (or `next`) moves to the next coordinate and
    returns it as a tuple. The data buffer position of the current element
    is kept up to date incrementally in `index`, so for transposed or
    sliced patterns the buffer is visited in strided order.

    Iterators are single pass. Use them in a ``with`` block so that they
    are closed on every exit path:

        >>> with FlatIterator(t.ap) as it:
        ...     for coord in it:
        ...         total += buf[it.index]
    """

    def __init__(self, ap, reverse=False):
        self._ap = ap
        self._shape = ap.shape
        self._size = ap.size
        # one (strides, base offset) stream per buffer being tracked
        self._stride_sets = [ap.strides]
        self._bases = [ap.offset]
        self._reverse = reverse
        self._closed = False
        self.reset()

    def reset(self):
        "Rewind to before the first element"
        self._started = False
        self._done = self._closed or self._size == 0
        self._coord = None
        self._offsets = list(self._bases)
        self._flat = -1

    @property
    def coord(self):
        if self._coord is None:
            return None
        return tuple(self._coord)

    @property
    def index(self):
        "Data buffer position of the current element"
        return self._offsets[0]

    @property
    def flat_index(self):
        "Row-major position of the current element in the logical shape"
        return self._flat

    @property
    def reversed(self):
        return self._reverse

    def _start(self):
        self._started = True
        if self._reverse:
            coord = [n - 1 for n in self._shape]
            self._flat = self._size - 1
        else:
            coord = [0]*len(self._shape)
            self._flat = 0
        self._coord = coord
        self._offsets = [base + sum(c*s for c, s in zip(coord, strides))
                         for base, strides in zip(self._bases,
                                                  self._stride_sets)]

    def _step(self):
        # odometer increment (or decrement), carrying into outer dimensions
        coord, shape, offsets = self._coord, self._shape, self._offsets
        for d in reversed(range(len(shape))):
            if self._reverse:
                if coord[d] > 0:
                    coord[d] -= 1
                    for k, strides in enumerate(self._stride_sets):
                        offsets[k] -= strides[d]
                    break
                coord[d] = shape[d] - 1
                for k, strides in enumerate(self._stride_sets):
                    offsets[k] += (shape[d] - 1)*strides[d]
            else:
                if coord[d] + 1 < shape[d]:
                    coord[d] += 1
                    for k, strides in enumerate(self._stride_sets):
                        offsets[k] += strides[d]
                    break
                coord[d] = 0
                for k, strides in enumerate(self._stride_sets):
                    offsets[k] -= (shape[d] - 1)*strides[d]
        else:
            return False
        self._flat += -1 if self._reverse else 1
        return True

    def advance(self):
        """
        Move to the next coordinate and return it.

        Raises `Exhausted` once every coordinate has been visited.
        """
        if self._done:
            raise Exhausted()
        if not self._started:
            self._start()
        elif not self._step():
            self._done = True
            raise Exhausted()
        return tuple(self._coord)

    def __iter__(self):
        return self

    def __next__(self):
        return self.advance()

    def close(self):
        self._closed = True
        self._done = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, tb):
        self.close()
        return False


class MultIterator(FlatIterator):
    """
    Mask-aware traversal of a Dense tensor.

    Tracks the mask buffer position alongside the data buffer position.
    Several coordinates share one mask entry along dimensions where the
    mask broadcasts (mask stride 0). If the tensor carries no mask, every
    element counts as valid.

    `next_valid` and `next_invalid` return the flat (row-major) index of the
    element they stop on, or -1 once the traversal is exhausted.
    """

    def __init__(self, tensor, reverse=False):
        ap = tensor.ap
        mask = tensor._mask
        self._mask = mask if mask is not None and len(mask) > 0 else None
        super().__init__(ap, reverse)
        self._stride_sets.append(ap.mask_strides)
        self._bases.append(ap.mask_offset)
        self.reset()

    @property
    def mask_index(self):
        "Mask buffer position of the current element"
        return self._offsets[1]

    def last_mask_index(self, dim=None):
        """
        Mask buffer position computed for the element last advanced to,
        so callers can read the mask entry without recomputing its offset.

        Parameters
        ----------
        dim : int, optional
            Dimension whose stride group is asked for. Every dimension of a
            tensor addresses the same mask buffer, and broadcast dimensions
            contribute a zero stride to it, so there is one mask position per
            element and `dim` only gets bounds-checked.
        """
        if dim is not None:
            normalize_axis(dim, len(self._shape))
        if not self._started:
            raise ValueError("iterator has not been advanced yet")
        return self._offsets[1]

    def set_reverse(self):
        "Traverse from the last element backwards. Call before advancing."
        if self._started:
            raise ValueError("set_reverse must be called before the "
                             "first advance")
        self._reverse = True

    def is_masked_here(self):
        if self._mask is None:
            return False
        return bool(self._mask[self._offsets[1]])

    def next_valid(self):
        "Advance to the next unmasked element and return its flat index"
        for _ in self:
            if not self.is_masked_here():
                return self._flat
        return -1

    def next_invalid(self):
        "Advance to the next masked element and return its flat index"
        if self._mask is None:
            # nothing can match, so the traversal is over
            self._done = True
            return -1
        for _ in self:
            if self._mask[self._offsets[1]]:
                return self._flat
        return -1

    def close(self):
        super().close()
        self._mask = None
