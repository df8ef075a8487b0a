# Copyright (c) 2018-present, Royal Bank of Canada and other authors.
# See the AUTHORS.txt file for a list of contributors.
# All rights reserved.
#
# This source code is licensed under the license found in the
# LICENSE file in the root directory of this source tree.
#

import numpy as np
import torch

from advdemo.errors import InvalidIndex
from advdemo.errors import InvalidShape


def torch_allclose(x, y, rtol=1.e-5, atol=1.e-8):
    """
    Wrap on numpy's allclose. Input x and y are both tensors of equal shape

    :param x: (torch tensor)
    :param y: (torch tensor)
    :param rtol: (float) the relative tolerance parameter
    :param atol: (float) the absolute tolerance parameter
    :return: (bool) if x and y are all close
    """
    return np.allclose(x.detach().cpu().numpy(), y.detach().cpu().numpy(),
                       rtol=rtol, atol=atol)


def replicate_input(x):
    return x.detach().clone()


def replicate_input_withgrad(x):
    return x.detach().clone().requires_grad_()


def calc_l2distsq(x, y):
    d = (x - y)**2
    return d.view(d.shape[0], -1).sum(dim=1)


def tanh_rescale(x, x_min=-1., x_max=1.):
    return (torch.tanh(x)) * 0.5 * (x_max - x_min) + (x_max + x_min) * 0.5


def torch_arctanh(x):
    return (torch.log((1 + x) / (1 - x))) * 0.5


def clamp(input, min=None, max=None):
    ndim = input.ndimension()
    if min is None:
        pass
    elif isinstance(min, (float, int)):
        input = torch.clamp(input, min=min)
    elif isinstance(min, torch.Tensor):
        if min.ndimension() == ndim - 1 and min.shape == input.shape[1:]:
            input = torch.max(input, min.view(1, *min.shape))
        else:
            assert min.shape == input.shape
            input = torch.max(input, min)
    else:
        raise ValueError("min can only be None | float | torch.Tensor")

    if max is None:
        pass
    elif isinstance(max, (float, int)):
        input = torch.clamp(input, max=max)
    elif isinstance(max, torch.Tensor):
        if max.ndimension() == ndim - 1 and max.shape == input.shape[1:]:
            input = torch.min(input, max.view(1, *max.shape))
        else:
            assert max.shape == input.shape
            input = torch.min(input, max)
    else:
        raise ValueError("max can only be None | float | torch.Tensor")
    return input


def clip(x, lo=0., hi=1.):
    """Clamp ``x`` into the valid image range ``[lo, hi]``."""
    return clamp(x, min=lo, max=hi)


def sign_step(x, grad, epsilon, clip_min=0., clip_max=1.):
    """
    One fast gradient sign step: ``x + epsilon * sign(grad)``, clipped to
    ``[clip_min, clip_max]``. A negative ``epsilon`` steps against the
    gradient.
    """
    return clip(x + epsilon * grad.sign(), clip_min, clip_max)


def batch_clamp(float_or_vector, tensor):
    if isinstance(float_or_vector, torch.Tensor):
        assert len(float_or_vector) == len(tensor)
        return torch.min(
            torch.max(tensor.transpose(0, -1), -float_or_vector),
            float_or_vector).transpose(0, -1).contiguous()
    elif isinstance(float_or_vector, (float, int)):
        return clamp(tensor, -float_or_vector, float_or_vector)
    else:
        raise TypeError("Value has to be float or torch.Tensor")


def l2_distance(a, b):
    """Per-sample Euclidean distance over the flattened difference."""
    return calc_l2distsq(a, b).sqrt()


def linf_distance(a, b):
    """Per-sample maximum absolute coordinate difference."""
    d = torch.abs(a - b)
    return d.view(d.shape[0], -1).max(dim=1)[0]


def count_modified(a, b):
    """Per-sample number of coordinates that differ between ``a`` and ``b``."""
    d = (a != b)
    return d.view(d.shape[0], -1).sum(dim=1)


def _check_index_range(index, num_classes):
    if isinstance(index, torch.Tensor):
        bad = (index < 0) | (index >= num_classes)
        if bad.any():
            raise InvalidIndex(
                "label index %s out of range for %d classes"
                % (index[bad].tolist(), num_classes))
    elif not 0 <= index < num_classes:
        raise InvalidIndex(
            "label index %d out of range for %d classes"
            % (index, num_classes))


def one_hot(index, length):
    """
    Build a one-hot Label of ``length`` classes with a 1 at ``index``.

    :param index: int or tensor of class indices.
    :param length: number of classes.
    :return: float tensor of shape ``(length,)`` for an int index, else
        ``(len(index), length)``.
    """
    if isinstance(index, torch.Tensor):
        index = index.long().view(-1)
        _check_index_range(index, length)
        return to_one_hot(index, length).float()
    index = int(index)
    _check_index_range(index, length)
    label = torch.zeros(length)
    label[index] = 1.
    return label


def to_one_hot(y, num_classes=10):
    """
    Take a batch of label y with n dims and convert it to
    1-hot representation with n+1 dims.
    Link: https://discuss.pytorch.org/t/convert-int-into-one-hot-format/507/24
    """
    y = replicate_input(y).view(-1, 1)
    y_one_hot = y.new_zeros((y.size()[0], num_classes)).scatter_(1, y, 1)
    return y_one_hot


def label_to_index(label, num_classes, batch_size=None):
    """
    Normalize a label given as an int, a tensor of class indices or a
    one-hot tensor into a ``LongTensor`` of class indices.

    :param label: int | index tensor of shape (N,) | one-hot of shape (C,)
        or (N, C).
    :param num_classes: number of classes of the classifier.
    :param batch_size: if given, a single label is repeated to this size.
    :return: LongTensor of shape (N,).
    """
    if isinstance(label, torch.Tensor) and label.is_floating_point():
        if label.shape[-1] != num_classes or label.dim() > 2:
            raise InvalidShape(
                "one-hot label of shape %s does not match %d classes"
                % (tuple(label.shape), num_classes))
        label = label.reshape(-1, num_classes)
        if not (((label == 0) | (label == 1)).all() and
                (label.sum(dim=1) == 1).all()):
            raise InvalidIndex(
                "one-hot label must have exactly one coordinate set to 1")
        index = label.argmax(dim=1)
    elif isinstance(label, torch.Tensor):
        index = label.long().view(-1)
    else:
        index = torch.LongTensor([int(label)])
    _check_index_range(index, num_classes)
    if batch_size is not None and len(index) == 1 and batch_size > 1:
        index = index.repeat(batch_size)
    if batch_size is not None and len(index) != batch_size:
        raise InvalidShape(
            "got %d labels for a batch of %d inputs"
            % (len(index), batch_size))
    return index


def jacobian(model, x, output_class):
    """
    Compute the output_class'th row of a Jacobian matrix. In other words,
    compute the gradient wrt to the output_class.

    :param model: forward pass function.
    :param x: input tensor.
    :param output_class: the output class we want to compute the gradients.
    :return: output_class'th row of the Jacobian matrix wrt x.
    """
    xvar = replicate_input_withgrad(x)
    scores = model(xvar)

    # compute gradients for the class output_class wrt the input x
    # using backpropagation
    torch.sum(scores[:, output_class]).backward()

    return xvar.grad.detach().clone()


def predict_from_logits(logits, dim=1):
    return logits.max(dim=dim, keepdim=False)[1]

