import pytest
from numpy.testing import assert_raises, assert_, assert_equal
import numpy as np

from strided_tensor.Dense import Dense
from strided_tensor.common import Range
from strided_tensor.tensorprint import (set_printoptions, get_printoptions,
    printoptions, default_print_options, tensor2string, tensor_repr,
    tensor_str)

@pytest.fixture(autouse=True)
def reset_printoptions():
    yield
    set_printoptions(**default_print_options)

class TestStr:
    def test_int(self):
        t = Dense(3, dtype=np.intp, data=[1, 2, 3])
        assert_equal(str(t), '[1 2 3]')

        t = Dense((2, 2), dtype=np.intp, data=[1, 2, 3, 4])
        assert_equal(str(t), '[[1 2]\n [3 4]]')

    def test_bool(self):
        t = Dense(2, dtype=bool, data=[True, False])
        assert_equal(str(t), '[ True False]')

    def test_masked(self):
        t = Dense(3, dtype=np.intp, data=[1, 2, 3], mask=[False, True, False])
        assert_equal(str(t), '[ 1 --  3]')

        t.reset_mask(True)
        assert_equal(str(t), '[-- -- --]')

    def test_view(self):
        t = Dense((2, 3), dtype=np.intp, data=range(6))
        assert_equal(str(t.transpose()), '[[0 3]\n [1 4]\n [2 5]]')
        assert_equal(str(t.slice(None, Range(1, 2))), '[[1]\n [4]]')

    def test_scalar(self):
        assert_equal(str(Dense((), dtype=np.intp, data=5)), '5')

    def test_empty(self):
        assert_equal(str(Dense((0, 3))), '[]')

    def test_summarized(self):
        t = Dense(2000, dtype=np.intp, data=np.arange(2000))
        assert_equal(str(t), '[   0    1    2 ... 1997 1998 1999]')

        t = Dense(10, dtype=np.intp, data=np.arange(10))
        assert_equal(tensor_str(t, threshold=5, edgeitems=2),
                     '[0 1 ... 8 9]')

class TestFloatOptions:
    def setup_method(self):
        self.t = Dense(2, data=[0.123456, 1.5])

    def test_unique_ignores_precision(self):
        s = tensor_str(self.t, floatmode='unique', precision=2)
        assert_equal(s, '[0.123456      1.5]')
        assert_equal(s, tensor_str(self.t, floatmode='unique', precision=8))

    def test_maxprec(self):
        assert_equal(tensor_str(self.t, floatmode='maxprec', precision=2),
                     '[0.12  1.5]')
        assert_equal(tensor_str(self.t, floatmode='maxprec', precision=8),
                     '[0.123456      1.5]')

    def test_fixed(self):
        assert_equal(tensor_str(self.t, floatmode='fixed', precision=2),
                     '[0.12 1.50]')
        assert_equal(tensor_str(self.t, floatmode='fixed', precision=3),
                     '[0.123 1.500]')

    def test_sign(self):
        t = Dense(2, data=[1.5, -2.])
        assert_equal(tensor_str(t, sign='+'), '[+1.5  -2.]')
        assert_equal(tensor_str(t, sign='-'), '[1.5 -2.]')

    def test_set_printoptions(self):
        with printoptions(floatmode='fixed', precision=1):
            assert_equal(str(self.t), '[0.1 1.5]')
        assert_equal(str(self.t), '[0.123456      1.5]')

class TestRepr:
    def test_typeless(self):
        t = Dense(3, dtype=np.int_, data=[1, 2, 3])
        assert_equal(repr(t), 'Dense([1, 2, 3])')

    def test_dtype(self):
        t = Dense(2, dtype=np.float32, data=[1, 2])
        assert_equal(repr(t), 'Dense([1., 2.], dtype=float32)')

    def test_masked(self):
        t = Dense(3, dtype=np.int_, data=[1, 2, 3], mask=[False, True, False])
        assert_equal(repr(t), 'Dense([ 1, --,  3])')

    def test_empty_shape(self):
        assert_equal(repr(Dense((0, 3))), 'Dense([], shape=(0, 3))')
        assert_equal(repr(Dense(0)), 'Dense([])')

class TestOptions:
    def test_masked_str(self):
        t = Dense(3, dtype=np.intp, data=[1, 2, 3], mask=[False, True, False])
        with printoptions(masked_str='X') as opts:
            assert_equal(opts['masked_str'], 'X')
            assert_equal(str(t), '[1 X 3]')
        assert_equal(get_printoptions()['masked_str'], '--')
        assert_equal(tensor2string(t, masked_str='?'), '[1 ? 3]')

    def test_restored_on_error(self):
        with pytest.raises(RuntimeError):
            with printoptions(precision=2):
                raise RuntimeError()
        assert_equal(get_printoptions(), default_print_options)

    def test_set_get(self):
        set_printoptions(linewidth=20)
        assert_equal(get_printoptions()['linewidth'], 20)
        # a copy is returned
        get_printoptions()['linewidth'] = 3
        assert_equal(get_printoptions()['linewidth'], 20)

    def test_linewidth(self):
        t = Dense(10, dtype=np.intp, data=np.arange(10))
        s = tensor_str(t, linewidth=10)
        assert_(all(len(line) <= 10 for line in s.split('\n')))
        assert_(len(s.split('\n')) > 1)

    @pytest.mark.parametrize('opts', [
        dict(bogus=1),
        dict(floatmode='short'),
        dict(precision=-1),
        dict(sign='x'),
        dict(sign=''),
        dict(sign='+-'),
        dict(threshold=-1),
        dict(masked_str=5),
        ])
    def test_invalid(self, opts):
        assert_raises(ValueError, set_printoptions, **opts)
        t = Dense(2)
        assert_raises(ValueError, tensor_repr, t, **opts)
        assert_equal(get_printoptions(), default_print_options)
