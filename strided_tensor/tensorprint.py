import builtins
import contextlib

import numpy as np

# Printing of Dense tensors. The structure follows numpy's arrayprint: a
# dispatcher picks an element formatter for the tensor's dtype, and
# `_formatArray` lays the formatted elements out in nested brackets. Masked
# elements are printed as `masked_str`.

class FormatDispatcher:
    """
    Determines which formatter to use to print a tensor's elements. The main
    method is `get_format_func`, which returns a function formatting one
    (value, masked) pair as a string.
    """
    def __init__(self, formatter_cls):
        self.formatters = [f() for f in formatter_cls]

    def get_format_func(self, data, mask, **options):
        for f in self.formatters:
            if f.will_dispatch(data):
                return f.get_format_func(data, mask, **options)

        raise TypeError("No formatter found for dtype {}".format(data.dtype))

class ElementFormatter:
    """
    Base class for the element formatters.

      * `will_dispatch` is used by the dispatcher to determine whether to
        use this formatter for an array of values.
      * `get_value_func` returns a function formatting a single value, given
        all the (unmasked) values that will be printed.
    """
    def will_dispatch(self, elem):
        return False

    def get_value_func(self, elem, **options):
        return lambda x: ''

    def get_format_func(self, data, mask, **options):
        masked_str = options['masked_str']

        # only get fmt_func based on non-masked values
        # (we take care of masked elements ourselves)
        unmasked = data[~mask]
        if unmasked.size == 0:
            value_fmt = lambda x: ''
            reslen = len(masked_str)
        else:
            value_fmt = self.get_value_func(unmasked, **options)
            reslen = builtins.max(len(value_fmt(unmasked[0])),
                                  len(masked_str) if mask.any() else 0)

        masked_str = masked_str.rjust(reslen)

        def fmt(x, m):
            if m:
                return masked_str
            return value_fmt(x).rjust(reslen)
        return fmt

class BoolFormatter(ElementFormatter):
    def will_dispatch(self, elem):
        return issubclass(elem.dtype.type, np.bool_)

    def get_value_func(self, elem, **options):
        truestr = ' True' if elem.size > 1 and not elem.all() else 'True'
        return lambda x: truestr if x else "False"

class IntegerFormatter(ElementFormatter):
    def will_dispatch(self, elem):
        return issubclass(elem.dtype.type, np.integer)

    def get_value_func(self, elem, **options):
        max_str_len = builtins.max(len(str(np.max(elem))),
                                   len(str(np.min(elem))))
        fmt = '{{:{}d}}'.format(max_str_len)
        return lambda x: fmt.format(x)

class FloatingFormatter(ElementFormatter):
    def will_dispatch(self, elem):
        return issubclass(elem.dtype.type, np.floating)

    def get_value_func(self, elem, **options):
        floatmode = options['floatmode']
        precision = None if floatmode == 'unique' else options['precision']
        sign = options['sign']
        unique = floatmode != 'fixed'
        trim = 'k' if floatmode == 'fixed' else '.'

        # choose exponential mode based on the non-zero finite values:
        finite_vals = elem[np.isfinite(elem)]
        abs_non_zero = np.absolute(finite_vals[finite_vals != 0])
        exp_format = False
        if len(abs_non_zero) != 0:
            max_val = np.max(abs_non_zero)
            min_val = np.min(abs_non_zero)
            with np.errstate(over='ignore'):  # division can overflow
                if max_val >= 1.e8 or min_val < 0.0001 or \
                        max_val/min_val > 1000.:
                    exp_format = True

        def print_value(x):
            if np.isnan(x):
                return ('+' if sign == '+' else '') + 'nan'
            if np.isinf(x):
                return ('-' if x < 0 else '+' if sign == '+' else '') + 'inf'
            if exp_format:
                return np.format_float_scientific(x, precision=precision,
                            unique=unique, trim=trim, sign=sign == '+')
            return np.format_float_positional(x, precision=precision,
                            unique=unique, fractional=True, trim=trim,
                            sign=sign == '+')

        width = builtins.max(len(print_value(x)) for x in elem)
        return lambda x: print_value(x).rjust(width)

class ComplexFloatingFormatter(ElementFormatter):
    def will_dispatch(self, elem):
        return issubclass(elem.dtype.type, np.complexfloating)

    def get_value_func(self, elem, **options):
        real_fmt = FloatingFormatter().get_value_func(elem.real, **options)
        imag_opts = dict(options, sign='+')
        imag_fmt = FloatingFormatter().get_value_func(elem.imag, **imag_opts)
        return lambda x: real_fmt(x.real) + imag_fmt(x.imag).lstrip() + 'j'

class ObjectFormatter(ElementFormatter):
    def will_dispatch(self, elem):
        return True

    def get_value_func(self, elem, **options):
        return repr

default_formatters = [BoolFormatter, IntegerFormatter, FloatingFormatter,
                      ComplexFloatingFormatter, ObjectFormatter]

default_dispatcher = FormatDispatcher(default_formatters)

################################################################################
#                                  Options
################################################################################

# don't modify this
default_print_options = {
    'floatmode': 'maxprec',
    'precision': 8,  # precision of floating point representations
    'sign': '-',
    'threshold': 1000,  # total elements above which output is summarized
    'edgeitems': 3,
    'linewidth': 75,
    'masked_str': '--',
    }

_print_options = default_print_options.copy()

def _check_options(**options):
    unknown = set(options) - set(default_print_options)
    if unknown:
        raise ValueError("unknown print options: {}".format(
                         ", ".join(sorted(unknown))))

    if 'floatmode' in options:
        if options['floatmode'] not in ['unique', 'maxprec', 'fixed']:
            raise ValueError("floatmode must be one of 'unique', 'maxprec' "
                             "or 'fixed'")
    if 'precision' in options:
        if options['precision'] is not None and options['precision'] < 0:
            raise ValueError("precision must be >= 0")
    if 'sign' in options:
        if options['sign'] not in ('+', '-'):
            raise ValueError("sign option must be one of '+' or '-'")
    for key in ('threshold', 'edgeitems', 'linewidth'):
        if key in options and options[key] < 0:
            raise ValueError("{} must be >= 0".format(key))
    if 'masked_str' in options:
        if not isinstance(options['masked_str'], str):
            raise ValueError("masked_str must be a string")

def set_printoptions(**options):
    """
    Set the options used to print Dense tensors.

    Parameters
    ----------
    floatmode : {'unique', 'maxprec', 'fixed'}
        'unique' prints the shortest repr of each float, 'maxprec' at most
        `precision` digits, 'fixed' exactly `precision` digits.
    precision : int
        Number of fractional digits for floats.
    sign : {'-', '+'}
        Whether to always print the sign of positive floats.
    threshold : int
        Total number of elements above which output is summarized.
    edgeitems : int
        Number of items printed at each edge of a summarized dimension.
    linewidth : int
        Number of characters per line before wrapping.
    masked_str : str
        String printed in place of masked elements.
    """
    _check_options(**options)
    _print_options.update(options)

def get_printoptions():
    return _print_options.copy()

@contextlib.contextmanager
def printoptions(**options):
    """
    Context manager setting print options for the duration of a block.

        >>> with printoptions(masked_str='X'):
        ...     print(t)
    """
    saved = get_printoptions()
    set_printoptions(**options)
    try:
        yield get_printoptions()
    finally:
        _print_options.clear()
        _print_options.update(saved)

################################################################################
#                                 Formatting
################################################################################

def _leading_trailing(a, edgeitems, index=()):
    """
    Keep only the N-D corners (leading and trailing edges) of an array.
    """
    axis = len(index)
    if axis == a.ndim:
        return a[index]

    if a.shape[axis] > 2*edgeitems:
        return np.concatenate((
            _leading_trailing(a, edgeitems, index + np.index_exp[:edgeitems]),
            _leading_trailing(a, edgeitems, index + np.index_exp[-edgeitems:])
        ), axis=axis)
    else:
        return _leading_trailing(a, edgeitems, index + np.index_exp[:])

def _extendLine(s, line, word, line_width, next_line_prefix):
    needs_wrap = len(line) + len(word) > line_width

    if needs_wrap:
        s += line.rstrip() + "\n"
        line = next_line_prefix
    line += word
    return s, line

def _formatArray(data, mask, format_function, line_width, next_line_prefix,
                 separator, edge_items, summary_insert):
    """formatArray is designed for two modes of operation:

    1. Full output

    2. Summarized output

    """
    def recurser(index, hanging_indent, curr_width):
        axis = len(index)
        axes_left = data.ndim - axis

        if axes_left == 0:
            return format_function(data[index], mask[index])

        # when recursing, add a space to align with the [ added, and reduce the
        # length of the line by 1
        next_hanging_indent = hanging_indent + ' '
        next_width = curr_width - len(']')

        a_len = data.shape[axis]
        show_summary = summary_insert and 2*edge_items < a_len
        if show_summary:
            leading_items = edge_items
            trailing_items = edge_items
        else:
            leading_items = 0
            trailing_items = a_len

        s = ''

        # last axis (rows) - wrap elements if they would not fit on one line
        if axes_left == 1:
            # the length up until the beginning of the separator / bracket
            elem_width = curr_width - max(len(separator.rstrip()), len(']'))

            line = hanging_indent
            for i in range(leading_items):
                word = recurser(index + (i,), next_hanging_indent, next_width)
                s, line = _extendLine(
                    s, line, word, elem_width, hanging_indent)
                line += separator

            if show_summary:
                s, line = _extendLine(
                    s, line, summary_insert, elem_width, hanging_indent)
                line += separator

            for i in range(trailing_items, 1, -1):
                word = recurser(index + (-i,), next_hanging_indent, next_width)
                s, line = _extendLine(
                    s, line, word, elem_width, hanging_indent)
                line += separator

            word = recurser(index + (-1,), next_hanging_indent, next_width)
            s, line = _extendLine(
                s, line, word, elem_width, hanging_indent)

            s += line

        # other axes - insert newlines between rows
        else:
            line_sep = separator.rstrip() + '\n'*(axes_left - 1)

            for i in range(leading_items):
                nested = recurser(index + (i,), next_hanging_indent, next_width)
                s += hanging_indent + nested + line_sep

            if show_summary:
                s += hanging_indent + summary_insert + line_sep

            for i in range(trailing_items, 1, -1):
                nested = recurser(index + (-i,), next_hanging_indent,
                                  next_width)
                s += hanging_indent + nested + line_sep

            nested = recurser(index + (-1,), next_hanging_indent, next_width)
            s += hanging_indent + nested

        # remove the hanging indent, and wrap in []
        s = '[' + s[len(hanging_indent):] + ']'
        return s

    try:
        return recurser(index=(),
                        hanging_indent=next_line_prefix,
                        curr_width=line_width)
    finally:
        # break the reference cycle of the recursive closure
        recurser = None

def tensor2string(t, separator=' ', prefix="", dispatcher=None, **options):
    """
    Return a string representation of the elements of a Dense tensor.

    Parameters
    ----------
    t : Dense
        Tensor to print.
    separator : str, optional
        Inserted between elements.
    prefix : str, optional
        Its length is used to align wrapped lines.
    dispatcher : FormatDispatcher, optional
        Chooses the element formatter. Uses the default dispatcher if None.

    All other keyword arguments override the current print options for this
    call only.

    Returns
    -------
    tensor_str : str
    """
    opts = get_printoptions()
    _check_options(**options)
    opts.update(options)
    if dispatcher is None:
        dispatcher = default_dispatcher

    if t.size == 0:
        return "[]"

    data, mask = t.to_numpy(), t.mask_array()
    if t.size > opts['threshold']:
        summary_insert = "..."
        shown_data = _leading_trailing(data, opts['edgeitems'])
        shown_mask = _leading_trailing(mask, opts['edgeitems'])
    else:
        summary_insert = ""
        shown_data, shown_mask = data, mask

    # only the printed elements decide the element format
    format_function = dispatcher.get_format_func(shown_data.ravel(),
                                                 shown_mask.ravel(), **opts)

    # skip over "[" and the prefix
    next_line_prefix = " " + " "*len(prefix)

    return _formatArray(data, mask, format_function, opts['linewidth'],
                        next_line_prefix, separator, opts['edgeitems'],
                        summary_insert)

_typelessdata = [np.int_, np.float64, np.complex128, np.bool_]

def tensor_repr(t, **options):
    """
    Return the string representation of a Dense tensor, for example

        Dense([[1., --, 3.]])
    """
    class_name = type(t).__name__
    prefix = class_name + "("

    if t.size > 0 or t.shape == (0,):
        lst = tensor2string(t, separator=', ', prefix=prefix, **options)
    else:  # show zero-length shape unless it is (0,)
        lst = "[], shape=%s" % (repr(t.shape),)

    arr_str = prefix + lst
    if t.dtype.type in _typelessdata:
        return arr_str + ")"

    dtype_str = "dtype={})".format(t.dtype.name)
    # put the dtype on a new line if it would overflow the last one
    last_line_len = len(arr_str) - (arr_str.rfind('\n') + 1)
    spacer = " "
    if last_line_len + len(dtype_str) + 2 > get_printoptions()['linewidth']:
        spacer = '\n' + ' '*len(prefix)
    return arr_str + "," + spacer + dtype_str

def tensor_str(t, **options):
    "Return a string representation of the data of a Dense tensor"
    return tensor2string(t, separator=' ', prefix="", **options)
