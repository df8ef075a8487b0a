# Copyright (c) 2018-present, Royal Bank of Canada.
# All rights reserved.
#
# This source code is licensed under the license found in the
# LICENSE file in the root directory of this source tree.
#

import torch
import torch.nn as nn

from advdemo.context import ctx_frozen_classifier
from advdemo.errors import InvalidShape
from advdemo.utils import jacobian
from advdemo.utils import predict_from_logits
from advdemo.utils import replicate_input_withgrad


class ClassifierOracle(object):
    """
    Uniform view of an externally trained classifier: class scores and
    gradients with respect to the input, nothing else.

    :param predict: forward pass function returning logits of shape (N, C).
    :param num_classes: number of classes, inferred on first use if None.
    :param input_shape: expected per-sample input shape, unchecked if None.
    """

    def __init__(self, predict, num_classes=None, input_shape=None):
        self.predict = predict
        self._num_classes = num_classes
        self.input_shape = (
            tuple(input_shape) if input_shape is not None else None)
        self._accepted_shapes = set()

    def __call__(self, x):
        with ctx_frozen_classifier(self.predict):
            return self.predict(x)

    @property
    def num_classes(self):
        if self._num_classes is None:
            raise ValueError(
                "num_classes is unknown until the oracle has scored an input")
        return self._num_classes

    def check_input(self, x):
        if not isinstance(x, torch.Tensor) or x.dim() < 2:
            raise InvalidShape(
                "expected a batched tensor of shape (N, ...), got %s"
                % (tuple(getattr(x, "shape", ())),))
        shape = tuple(x.shape[1:])
        if self.input_shape is not None and shape != self.input_shape:
            raise InvalidShape(
                "input of shape %s does not match the classifier input %s"
                % (shape, self.input_shape))
        if shape in self._accepted_shapes:
            return
        # the classifier has the final say on shapes it has not scored yet
        try:
            scores = self.scores(x[:1])
        except RuntimeError as err:
            raise InvalidShape(
                "classifier rejected input of shape %s: %s"
                % (shape, err)) from err
        if self._num_classes is None:
            self._num_classes = scores.shape[1]
        self._accepted_shapes.add(shape)

    def scores(self, x):
        with torch.no_grad():
            return self(x)

    def probabilities(self, x):
        return torch.softmax(self.scores(x), dim=1)

    def predict_label(self, x):
        return predict_from_logits(self.scores(x))

    def gradient(self, x, loss_fn):
        """
        Gradient of ``loss_fn(scores)`` with respect to ``x``.

        :param x: input tensor.
        :param loss_fn: maps the (N, C) scores to a scalar.
        :return: tensor of the same shape as ``x``.
        """
        xvar = replicate_input_withgrad(x)
        loss = loss_fn(self(xvar))
        loss.backward()
        return xvar.grad.detach()

    def jacobian(self, x):
        """Per-class input gradients, shape (C, N, *x.shape[1:])."""
        return torch.stack([jacobian(self, x, c)
                            for c in range(self.num_classes)])


def as_oracle(predict, num_classes=None, input_shape=None):
    if isinstance(predict, ClassifierOracle):
        if predict._num_classes is None and num_classes is not None:
            predict._num_classes = num_classes
        return predict
    return ClassifierOracle(predict, num_classes, input_shape)


class StripBackgroundClass(nn.Module):
    """
    Drop the leading "background" logit of a classifier with an extra
    class (e.g. 1001-way ImageNet MobileNets) so that its outputs line up
    with the usual label set.

    :param model: the wrapped classifier.
    :param num_background: number of leading logits to drop.
    """

    def __init__(self, model, num_background=1):
        super(StripBackgroundClass, self).__init__()
        self.model = model
        self.num_background = num_background

    def forward(self, x):
        return self.model(x)[:, self.num_background:]

    def extra_repr(self):
        return 'num_background={}'.format(self.num_background)
