import operator
import warnings
import weakref

import numpy as np

from .AccessPattern import AccessPattern
from .common import (DimensionMismatch, UnsupportedOnView, MaskBroadcastWarning,
    StaleViewWarning,
    check_permutation, index_grid, prod)
from .tensorprint import tensor_repr, tensor_str
from .MaskInspection import (masked_any, masked_all, masked_count,
    non_masked_count, flat_not_masked_contiguous, flat_masked_contiguous,
    flat_not_masked_edges, flat_masked_edges)

def _as_shape(shape):
    # accept both t.reshape(2, 3) and t.reshape((2, 3))
    if len(shape) == 1 and not isinstance(shape[0], (int, np.integer)):
        shape = shape[0]
    return tuple(operator.index(n) for n in shape)

def _as_axes(axes, ndim):
    if len(axes) == 1 and not isinstance(axes[0], (int, np.integer)):
        axes = tuple(axes[0])
    if not axes:
        return tuple(reversed(range(ndim)))
    return check_permutation(axes, ndim)

class Dense:
    "A strided tensor with an optional mask marking elements as invalid"

    def __init__(self, shape, dtype=np.float64, data=None, mask=None,
                 mask_dims=None):
        """
        Allocate a new tensor owning its data (and mask) buffer.

        Parameters
        ----------
        shape : int or sequence of ints
            Shape of the tensor. ``()`` gives a scalar.
        dtype : data-type, optional
            Element type. Defaults to float64.
        data : array-like, optional
            Values to copy in, in row-major order. Must have as many elements
            as `shape`. Defaults to zeros.
        mask : array-like of bool, optional
            True marks an element as masked. Either the full shape, or if
            `mask_dims` is given, the shape of the flagged dimensions only.
        mask_dims : sequence of bool, optional
            One flag per dimension. The mask only varies along flagged
            dimensions and is broadcast along the others, so the mask buffer
            holds the product of the flagged dimensions' lengths. Passing this
            allocates an all-False mask. If no flag is set, the tensor is
            left unmasked.

        Notes
        -----
        Without `mask` or `mask_dims` no mask buffer is allocated, which
        means no element is masked. Use `reset_mask` to add one.
        """
        if isinstance(shape, (int, np.integer)):
            shape = (shape,)
        self._dtype = np.dtype(dtype)
        self._ap = AccessPattern.canonical(shape, mask_dims)
        self._viewof = None
        self._views = weakref.WeakSet()
        self._old = None
        self._transpose_with = None
        size = self._ap.size

        if data is None:
            self._data = np.zeros(size, dtype=self._dtype)
        else:
            self._data = np.array(data, dtype=self._dtype).ravel()
            if self._data.size != size:
                raise DimensionMismatch("got {} data elements for shape "
                                        "{}".format(self._data.size,
                                                    self._ap.shape))

        self._maskbuf = None
        if mask_dims is not None and any(mask_dims):
            self._maskbuf = np.zeros(self._ap.mask_size, dtype=bool)
        if mask is not None:
            m = np.array(mask, dtype=bool).ravel()
            if m.size != self._ap.mask_size:
                raise DimensionMismatch("got {} mask elements, expected "
                                        "{}".format(m.size,
                                                    self._ap.mask_size))
            self._maskbuf = m

    def _new_view(self, ap):
        view = object.__new__(type(self))
        view._dtype = self._dtype
        view._ap = ap
        view._viewof = self._root()
        view._views = None
        view._old = None
        view._transpose_with = None
        view._data = self._data
        view._maskbuf = None
        view._viewof._views.add(view)
        return view

    def _root(self):
        return self if self._viewof is None else self._viewof

    @property
    def _mask(self):
        # views always see the owner's current mask buffer
        return self._root()._maskbuf

    ############################################################################
    #                          Layout and queries
    ############################################################################

    @property
    def ap(self):
        return self._ap

    def info(self):
        "The AccessPattern describing how this tensor reads its buffers"
        return self._ap

    @property
    def shape(self):
        return self._ap.shape

    @property
    def strides(self):
        return self._ap.strides

    @property
    def mask_strides(self):
        return self._ap.mask_strides

    @property
    def ndim(self):
        return self._ap.ndim

    @property
    def size(self):
        return self._ap.size

    @property
    def dtype(self):
        return self._dtype

    @property
    def mask(self):
        # return a readonly view of mask
        m = self._mask
        if m is None:
            return None
        m = m.view()
        m.flags['WRITEABLE'] = False
        return m

    def data(self):
        "Readonly view of the whole underlying data buffer"
        d = self._data.view()
        d.flags['WRITEABLE'] = False
        return d

    def data_size(self):
        return len(self._data)

    def mask_size(self):
        "Number of distinct mask entries this tensor addresses"
        if not self.is_masked():
            return 0
        return self._ap.mask_size

    def is_masked(self):
        m = self._mask
        return m is not None and len(m) >= 1

    def is_view(self):
        return self._viewof is not None

    def is_materializable(self):
        "True if this tensor has been sliced or lazily transposed"
        return self._viewof is not None or self._old is not None

    def is_scalar(self):
        return self._ap.is_scalar()

    def is_vector(self):
        return self._ap.is_vector()

    def __len__(self):
        if self.ndim == 0:
            raise TypeError("len() of unsized object")
        return self.shape[0]

    def __repr__(self):
        return tensor_repr(self)

    def __str__(self):
        return tensor_str(self)

    ############################################################################
    #                            Element access
    ############################################################################

    def get_at(self, *coord):
        return self._data[self._ap.offset_of(coord)]

    def set_at(self, value, *coord):
        self._data[self._ap.offset_of(coord)] = value

    def is_masked_at(self, *coord):
        if not self.is_masked():
            return False
        return bool(self._mask[self._ap.mask_offset_of(coord)])

    def scalar_value(self):
        "The single element of a one-element tensor"
        if self.size != 1:
            raise ValueError("scalar_value needs a tensor with exactly one "
                             "element, this one has shape {}".format(
                             self.shape))
        return self.get_at(*([0]*self.ndim))

    def to_numpy(self):
        "Copy of the logical data as an ndarray of this tensor's shape"
        ap = self._ap
        return np.array(self._data[index_grid(ap.shape, ap.strides,
                                              ap.offset)])

    def mask_array(self):
        "Full-shape bool ndarray of the mask (all False if unmasked)"
        ap = self._ap
        if not self.is_masked():
            return np.zeros(ap.shape, dtype=bool)
        return np.array(self._mask[index_grid(ap.shape, ap.mask_strides,
                                              ap.mask_offset)])

    def filled(self, fill_value=0):
        "Copy of the logical data with masked elements set to `fill_value`"
        d = self.to_numpy()
        d[self.mask_array()] = fill_value
        return d

    ############################################################################
    #                                Views
    ############################################################################

    def slice(self, *ranges):
        """
        View of a sub-region, sharing the data and mask buffers.

        Parameters
        ----------
        *ranges : None, Range or slice
            One per leading dimension. None selects the whole dimension, as
            do omitted trailing ranges.

        Returns
        -------
        view : Dense
            A view whose writes (including `reset_mask`) are visible through
            this tensor.
        """
        if len(ranges) > self.ndim:
            raise DimensionMismatch("got {} ranges for a {}-d tensor".format(
                                    len(ranges), self.ndim))
        ranges = ranges + (None,)*(self.ndim - len(ranges))
        return self._new_view(self._ap.slice_into(ranges))

    def transpose(self, *axes):
        "View with permuted axes. With no axes, the axes are reversed"
        axes = _as_axes(axes, self.ndim)
        return self._new_view(self._ap.transpose(axes))

    def T(self, *axes):
        """
        Transpose in place without moving any data.

        The previous AccessPattern is kept so that `untranspose` can undo
        this cheaply. The data is only rearranged if the tensor is later
        reshaped.
        """
        axes = _as_axes(axes, self.ndim)
        if self._old is None:
            self._old = self._ap
            self._transpose_with = axes
        else:
            # compose with the pending permutation
            self._transpose_with = tuple(self._transpose_with[a] for a in axes)
        self._ap = self._ap.transpose(axes)

    @property
    def transposed_with(self):
        "Permutation of the pending `T` transpose relative to the old layout"
        return self._transpose_with

    def untranspose(self):
        "Undo any pending `T` transposes"
        if self._old is not None:
            self._ap = self._old
            self._old = None
            self._transpose_with = None

    def _materialize_transpose(self):
        # move the data so the transposed layout becomes row-major
        data = self.to_numpy().ravel()
        mask = self.mask_array().ravel() if self.is_masked() else None
        self._data[...] = data
        if mask is not None:
            self._maskbuf = mask
        self._ap = AccessPattern.canonical(self.shape)
        self._old = None
        self._transpose_with = None

    def reshape(self, *shape):
        """
        Change the shape in place.

        Raises `UnsupportedOnView` for views; materialize them first. A
        pending `T` transpose is applied to the data before reshaping, and a
        broadcast mask is expanded to full size. Either relayout rewrites
        buffers that existing views read with their old strides, so it warns
        with `StaleViewWarning` when any view is still alive.
        """
        if self._viewof is not None:
            raise UnsupportedOnView("cannot reshape a view in place, "
                                    "materialize it first")
        shape = _as_shape(shape)
        if prod(shape) != self.size:
            raise DimensionMismatch("cannot reshape {} elements into shape "
                                    "{}".format(self.size, shape))
        expand_mask = self.is_masked() and not (
            self._ap.mask_size == self.size and self._ap.is_mask_contiguous())
        if (self._old is not None or expand_mask) and len(self._views):
            warnings.warn("reshape rewrites buffers shared with {} existing "
                          "view(s), which keep their old layout".format(
                              len(self._views)),
                          StaleViewWarning, stacklevel=2)

        if self._old is not None:
            self._materialize_transpose()
        elif expand_mask:
            self._maskbuf = self.mask_array().ravel()
        self._ap = AccessPattern.canonical(shape)

    def materialize(self):
        "New owning tensor with a row-major copy of the data and mask"
        mask = self.mask_array() if self.is_masked() else None
        return type(self)(self.shape, dtype=self._dtype,
                          data=self.to_numpy(), mask=mask)

    def clone(self):
        "Deep copy. Views are materialized, owners keep their layout"
        if self._viewof is not None:
            return self.materialize()
        ret = object.__new__(type(self))
        ret._dtype = self._dtype
        ret._ap = self._ap
        ret._viewof = None
        ret._views = weakref.WeakSet()
        ret._old = self._old
        ret._transpose_with = self._transpose_with
        ret._data = self._data.copy()
        ret._maskbuf = None if self._maskbuf is None else self._maskbuf.copy()
        return ret

    ############################################################################
    #                                 Mask
    ############################################################################

    def _ensure_mask(self):
        root = self._root()
        if root._maskbuf is None or len(root._maskbuf) == 0:
            root._maskbuf = np.zeros(root._ap.mask_size, dtype=bool)

    def reset_mask(self, value=False):
        """
        Set the mask of every element of this tensor to `value`.

        On a view only the viewed elements change, through the shared mask
        buffer, so slicing a region and resetting its mask is how a region
        is marked missing:

            >>> t.reset_mask(False)
            >>> t.slice(None, Range(3, 9)).reset_mask(True)

        A mask buffer is allocated on the owning tensor if there is none.
        """
        value = bool(value)
        self._ensure_mask()
        mask = self._mask

        if self._viewof is None:
            mask[...] = value
            return

        ap = self._ap
        root = self._root()
        # elements of the owner sharing each mask entry
        fanout = root.size // len(mask) if len(mask) else 0
        if ap.mask_size*fanout > self.size:
            warnings.warn("resetting the mask of a view through a broadcast "
                          "mask also changes elements outside the view",
                          MaskBroadcastWarning, stacklevel=2)

        if ap.mask_size == self.size and ap.is_mask_contiguous():
            mask[ap.mask_offset:ap.mask_offset + self.size] = value
        else:
            mask[index_grid(ap.shape, ap.mask_strides, ap.mask_offset)] = value

    ############################################################################
    #                           Mask inspection
    ############################################################################

    def masked_any(self, axis=None):
        return masked_any(self, axis)

    def masked_all(self, axis=None):
        return masked_all(self, axis)

    def masked_count(self, axis=None):
        return masked_count(self, axis)

    def non_masked_count(self, axis=None):
        return non_masked_count(self, axis)

    def flat_not_masked_contiguous(self):
        return flat_not_masked_contiguous(self)

    def flat_masked_contiguous(self):
        return flat_masked_contiguous(self)

    def flat_not_masked_edges(self):
        return flat_not_masked_edges(self)

    def flat_masked_edges(self):
        return flat_masked_edges(self)

    clump_masked = flat_masked_contiguous
    clump_unmasked = flat_not_masked_contiguous
