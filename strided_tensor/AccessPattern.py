from .common import (DimensionMismatch, as_range, canonical_strides,
    masked_strides, check_permutation, prod)

class AccessPattern:
    """
    Describes how the logical coordinates of a tensor map onto its data
    buffer and its mask buffer.

    An AccessPattern is a plain value: slicing and transposing return a new
    pattern and never modify this one. Strides are in elements and may be
    negative (reversed views). A zero mask stride broadcasts the mask along
    that dimension.

    Parameters
    ----------
    shape : sequence of int
        Size of each dimension.
    strides : sequence of int
        Data buffer step for each dimension.
    mask_strides : sequence of int, optional
        Mask buffer step for each dimension. Defaults to `strides`.
    offset : int
        Position in the data buffer of the element at coordinate 0.
    mask_offset : int
        Position in the mask buffer of the element at coordinate 0.
    """

    def __init__(self, shape, strides, mask_strides=None, offset=0,
                 mask_offset=0):
        shape = tuple(int(n) for n in shape)
        strides = tuple(int(s) for s in strides)
        if mask_strides is None:
            mask_strides = strides
        mask_strides = tuple(int(s) for s in mask_strides)

        if not (len(shape) == len(strides) == len(mask_strides)):
            raise DimensionMismatch(
                "shape, strides and mask strides must have the same length, "
                "got {}, {} and {}".format(len(shape), len(strides),
                                           len(mask_strides)))
        if any(n < 0 for n in shape):
            raise ValueError("negative dimensions are not allowed")

        self._shape = shape
        self._strides = strides
        self._mask_strides = mask_strides
        self._offset = int(offset)
        self._mask_offset = int(mask_offset)

    @classmethod
    def canonical(cls, shape, mask_dims=None):
        """
        Row-major pattern for a freshly allocated buffer of `shape`.

        If `mask_dims` is given, the mask strides only advance along the
        flagged dimensions and broadcast along the others.
        """
        shape = tuple(shape)
        strides = canonical_strides(shape)
        if mask_dims is None:
            return cls(shape, strides, strides)
        return cls(shape, strides, masked_strides(shape, mask_dims))

    @property
    def shape(self):
        return self._shape

    @property
    def strides(self):
        return self._strides

    @property
    def mask_strides(self):
        return self._mask_strides

    @property
    def offset(self):
        return self._offset

    @property
    def mask_offset(self):
        return self._mask_offset

    @property
    def ndim(self):
        return len(self._shape)

    @property
    def size(self):
        return prod(self._shape)

    @property
    def mask_size(self):
        # number of distinct mask entries this pattern can address
        return prod(n for n, s in zip(self._shape, self._mask_strides)
                    if s != 0)

    def is_scalar(self):
        return self.ndim == 0

    def is_vector(self):
        return self.ndim == 1

    def _is_canonical(self, strides):
        # dimensions of length 1 never step, so their stride is irrelevant
        expected = canonical_strides(self._shape)
        return all(n == 1 or s == e
                   for n, s, e in zip(self._shape, strides, expected))

    def is_contiguous(self):
        return self._is_canonical(self._strides)

    def is_mask_contiguous(self):
        "True if the mask entries of this pattern form one row-major run"
        return self._is_canonical(self._mask_strides)

    def _check_coord(self, coord):
        if len(coord) != self.ndim:
            raise DimensionMismatch("coordinate {} has {} dimensions, "
                                    "expected {}".format(tuple(coord),
                                    len(coord), self.ndim))
        for c, n in zip(coord, self._shape):
            if not 0 <= c < n:
                raise IndexError("coordinate {} is out of bounds for shape "
                                 "{}".format(tuple(coord), self._shape))

    def offset_of(self, coord):
        "Data buffer position of the element at `coord`"
        self._check_coord(coord)
        return self._offset + sum(c*s for c, s in zip(coord, self._strides))

    def mask_offset_of(self, coord):
        "Mask buffer position of the element at `coord`"
        self._check_coord(coord)
        return self._mask_offset + sum(c*s for c, s in
                                       zip(coord, self._mask_strides) if s)

    def slice_into(self, ranges):
        """
        Derive the pattern seen through `ranges`, one per dimension.

        Each entry may be None (whole dimension), a `Range` or a python
        slice. The strides keep their meaning, scaled by the range step, and
        the base offsets advance to the first element of each range.
        """
        ranges = tuple(ranges)
        if len(ranges) != self.ndim:
            raise DimensionMismatch("got {} ranges for a {}-d pattern".format(
                                    len(ranges), self.ndim))

        shape, strides, mstrides = [], [], []
        offset, moffset = self._offset, self._mask_offset
        for r, n, s, ms in zip(ranges, self._shape, self._strides,
                               self._mask_strides):
            r = as_range(r, n)
            length = len(r)
            if length > 0:
                if not (0 <= r.start < n and 0 <= r.start + (length-1)*r.step < n):
                    raise IndexError("{} is out of bounds for a dimension of "
                                     "length {}".format(r, n))
                offset += r.start*s
                moffset += r.start*ms
            shape.append(length)
            strides.append(s*r.step)
            mstrides.append(ms*r.step)

        return type(self)(shape, strides, mstrides, offset, moffset)

    def transpose(self, perm):
        "Permute shape, strides and mask strides together"
        perm = check_permutation(tuple(perm), self.ndim)
        return type(self)([self._shape[p] for p in perm],
                          [self._strides[p] for p in perm],
                          [self._mask_strides[p] for p in perm],
                          self._offset, self._mask_offset)

    def __eq__(self, other):
        if not isinstance(other, AccessPattern):
            return NotImplemented
        return (self._shape == other._shape and
                self._strides == other._strides and
                self._mask_strides == other._mask_strides and
                self._offset == other._offset and
                self._mask_offset == other._mask_offset)

    def __hash__(self):
        return hash((self._shape, self._strides, self._mask_strides,
                     self._offset, self._mask_offset))

    def __repr__(self):
        return ('AccessPattern(shape={}, strides={}, mask_strides={}, '
                'offset={}, mask_offset={})').format(self._shape,
                self._strides, self._mask_strides, self._offset,
                self._mask_offset)
