# Copyright (c) 2018-present, Royal Bank of Canada.
# All rights reserved.
#
# This source code is licensed under the license found in the
# LICENSE file in the root directory of this source tree.
#

import pytest
import torch

from advdemo.errors import InvalidIndex
from advdemo.errors import InvalidShape
from advdemo.loss import cw_margin
from advdemo.loss import elementwise_margin
from advdemo.loss import targeted_loss
from advdemo.utils import clamp
from advdemo.utils import clip
from advdemo.utils import count_modified
from advdemo.utils import l2_distance
from advdemo.utils import label_to_index
from advdemo.utils import linf_distance
from advdemo.utils import one_hot
from advdemo.utils import sign_step
from advdemo.utils import tanh_rescale
from advdemo.utils import torch_allclose
from advdemo.utils import torch_arctanh


def test_clamp():

    def _convert_to_float(x):
        return float(x) if x is not None else None

    def _convert_to_batch_tensor(x, data):
        return x * torch.ones_like(data) if x is not None else None

    def _convert_to_single_tensor(x, data):
        return x * torch.ones_like(data[0]) if x is not None else None

    for min, max in [(-1, None), (None, 1), (-1, 1)]:

        data = 3 * torch.randn((11, 12, 13))
        case1 = clamp(data, min, max)
        case2 = clamp(data, _convert_to_float(min), _convert_to_float(max))
        case3 = clamp(data, _convert_to_batch_tensor(min, data),
                      _convert_to_batch_tensor(max, data))
        case4 = clamp(data, _convert_to_single_tensor(min, data),
                      _convert_to_single_tensor(max, data))

        assert torch.all(case1 == case2)
        assert torch.all(case2 == case3)
        assert torch.all(case3 == case4)


def test_clip_range():
    data = 3 * torch.randn((4, 3, 5, 5))
    clipped = clip(data)
    assert clipped.min() >= 0. and clipped.max() <= 1.
    clipped = clip(data, -0.5, 0.5)
    assert clipped.min() >= -0.5 and clipped.max() <= 0.5


def test_sign_step():
    x = torch.tensor([[0.5, 0.5, 0.95, 0.02]])
    grad = torch.tensor([[2., -0.1, 1., -3.]])
    assert torch_allclose(sign_step(x, grad, 0.1),
                          torch.tensor([[0.6, 0.4, 1., 0.]]))
    assert torch_allclose(sign_step(x, grad, -0.1),
                          torch.tensor([[0.4, 0.6, 0.85, 0.12]]))


def test_sign_step_zero_gradient_is_noop():
    x = torch.rand(2, 7)
    assert torch.equal(sign_step(x, torch.zeros_like(x), 0.3), x)


def test_one_hot():
    label = one_hot(2, 4)
    assert torch.equal(label, torch.tensor([0., 0., 1., 0.]))
    assert label.sum() == 1

    labels = one_hot(torch.tensor([0, 3]), 4)
    assert labels.shape == (2, 4)
    assert torch.equal(labels.argmax(dim=1), torch.tensor([0, 3]))


@pytest.mark.parametrize("index", [-1, 4, 10])
def test_one_hot_invalid_index(index):
    with pytest.raises(InvalidIndex):
        one_hot(index, 4)
    with pytest.raises(InvalidIndex):
        one_hot(torch.tensor([0, index]), 4)


def test_distances():
    a = torch.zeros(2, 1, 2, 2)
    b = torch.zeros(2, 1, 2, 2)
    b[0, 0, 0, 0] = 3.
    b[0, 0, 1, 1] = 4.
    b[1, 0, 0, 1] = -0.5
    assert torch_allclose(l2_distance(a, b), torch.tensor([5., 0.5]))
    assert torch_allclose(linf_distance(a, b), torch.tensor([4., 0.5]))
    assert torch.equal(count_modified(a, b), torch.tensor([2, 1]))


def test_label_to_index():
    assert torch.equal(label_to_index(3, 5), torch.tensor([3]))
    assert torch.equal(label_to_index(torch.tensor([1, 4]), 5),
                       torch.tensor([1, 4]))
    assert torch.equal(label_to_index(one_hot(2, 5), 5), torch.tensor([2]))
    assert torch.equal(label_to_index(2, 5, batch_size=3),
                       torch.tensor([2, 2, 2]))


def test_label_to_index_errors():
    with pytest.raises(InvalidIndex):
        label_to_index(5, 5)
    with pytest.raises(InvalidShape):
        label_to_index(one_hot(2, 4), 5)
    with pytest.raises(InvalidShape):
        label_to_index(torch.tensor([1, 2]), 5, batch_size=3)


@pytest.mark.parametrize("label", [
    torch.zeros(5),
    torch.tensor([0., 1., 0., 1., 0.]),
    torch.tensor([0., 0.5, 0.5, 0., 0.]),
    torch.tensor([[0., 1., 0., 0., 0.], [0., 0., 0., 0., 0.]]),
])
def test_label_to_index_rejects_malformed_one_hot(label):
    with pytest.raises(InvalidIndex):
        label_to_index(label, 5)


def test_targeted_loss_variant_1_needs_true_label():
    logits = torch.randn(2, 5)
    target = torch.tensor([1, 2])
    with pytest.raises(ValueError):
        targeted_loss(1, logits, target)
    targeted_loss(1, logits, target, y_true=torch.tensor([0, 0]))


def test_tanh_arctanh_inverse():
    x = torch.rand(3, 8) * 1.8 - 0.9
    assert torch_allclose(tanh_rescale(torch_arctanh(x)), x, atol=1e-5)


def test_elementwise_margin():
    logits = torch.tensor([[1., 3., 2.], [5., 0., 1.]])
    label = torch.tensor([1, 2])
    assert torch_allclose(elementwise_margin(logits, label),
                          torch.tensor([-1., 4.]))


def test_targeted_loss_variants_decrease_towards_target():
    target = torch.tensor([0])
    y_true = torch.tensor([1])
    far = torch.tensor([[0., 5., 0.]])
    near = torch.tensor([[5., 0., 0.]])
    for variant in (0, 1, 2):
        assert targeted_loss(variant, near, target, y_true) < \
            targeted_loss(variant, far, target, y_true)
    with pytest.raises(ValueError):
        targeted_loss(7, near, target, y_true)


def test_cw_margin():
    logits = torch.tensor([[4., 1., 0.], [0., 1., 4.]])
    y_onehot = one_hot(torch.tensor([0, 0]), 3)
    assert torch_allclose(cw_margin(logits, y_onehot, 0., targeted=True),
                          torch.tensor([0., 4.]))
    assert torch_allclose(cw_margin(logits, y_onehot, 5., targeted=True),
                          torch.tensor([2., 9.]))
    assert torch_allclose(cw_margin(logits, y_onehot, 0., targeted=False),
                          torch.tensor([3., 0.]))
