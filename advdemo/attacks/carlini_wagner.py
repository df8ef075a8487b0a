# Copyright (c) 2018-present, Royal Bank of Canada.
# All rights reserved.
#
# This source code is licensed under the license found in the
# LICENSE file in the root directory of this source tree.
#

import logging
import warnings

import torch
import torch.nn as nn
import torch.optim as optim

from advdemo.errors import NumericDivergence
from advdemo.loss import cw_margin
from advdemo.utils import calc_l2distsq
from advdemo.utils import clamp
from advdemo.utils import tanh_rescale
from advdemo.utils import to_one_hot
from advdemo.utils import torch_arctanh

from .base import Attack
from .base import LabelMixin

logger = logging.getLogger(__name__)


ONE_MINUS_EPS = 0.999999
PREV_LOSS_INIT = 1e6
NUM_CHECKS = 10


class CarliniWagnerL2Attack(Attack, LabelMixin):
    """
    The Carlini and Wagner L2 Attack, https://arxiv.org/abs/1608.04644

    The trade-off constant c is fixed rather than binary searched, so the
    distortion found is not necessarily minimal for a given confidence.

    :param predict: forward pass function (pre-softmax).
    :param num_classes: number of classes.
    :param confidence: confidence (kappa) of the adversarial examples.
    :param targeted: if the attack is targeted.
    :param learning_rate: the learning rate (lambda) for the attack algorithm.
    :param max_iterations: the number of optimization steps.
    :param abort_early: if set to true, abort early if getting stuck in local
        min.
    :param initial_const: the constant c weighting the misclassification
        term against the distortion.
    :param clip_min: mininum value per input dimension.
    :param clip_max: maximum value per input dimension.
    :param loss_fn: loss function, not supported.
    """

    def __init__(self, predict, num_classes=None, confidence=0.,
                 targeted=True, learning_rate=0.05, max_iterations=100,
                 abort_early=False, initial_const=1., clip_min=0.,
                 clip_max=1., loss_fn=None):
        """Carlini Wagner L2 Attack implementation in pytorch."""
        if loss_fn is not None:
            warnings.warn(
                "This Attack currently does not support a different loss"
                " function other than the default. Setting loss_fn manually"
                " is not effective."
            )

        loss_fn = None

        super(CarliniWagnerL2Attack, self).__init__(
            predict, loss_fn, clip_min, clip_max, num_classes=num_classes)

        if max_iterations < 1:
            raise ValueError(
                "max_iterations must be positive, got %r" % max_iterations)
        self.learning_rate = learning_rate
        self.max_iterations = max_iterations
        self.abort_early = abort_early
        self.confidence = confidence
        self.initial_const = initial_const
        self.targeted = targeted

    def _loss_fn(self, output, y_onehot, l2distsq):
        loss1 = self.initial_const * cw_margin(
            output, y_onehot, self.confidence, self.targeted)
        # per sample objective
        return loss1 + l2distsq

    def _get_arctanh_x(self, x):
        result = clamp((x - self.clip_min) / (self.clip_max - self.clip_min),
                       min=0., max=1.) * 2 - 1
        return torch_arctanh(result * ONE_MINUS_EPS)

    def _forward_and_update_delta(
            self, optimizer, x_atanh, delta, y_onehot, x_rescale):

        optimizer.zero_grad()
        adv = tanh_rescale(delta + x_atanh, self.clip_min, self.clip_max)
        output = self.predict(adv)
        l2distsq = calc_l2distsq(adv, x_rescale)
        loss = self._loss_fn(output, y_onehot, l2distsq)
        loss.sum().backward()
        optimizer.step()

        return loss.detach(), adv.detach()

    def _perturb(self, x, y):
        batch_size = len(x)
        x_atanh = self._get_arctanh_x(x)
        x_rescale = tanh_rescale(x_atanh, self.clip_min, self.clip_max)
        y_onehot = to_one_hot(y, self.oracle.num_classes).float()

        best_losses = x.new_full((batch_size,), float("inf"))
        best_advs = x.clone()
        error = None

        delta = nn.Parameter(torch.zeros_like(x))
        optimizer = optim.Adam([delta], lr=self.learning_rate)
        prevloss = PREV_LOSS_INIT
        for ii in range(self.max_iterations):
            loss, adv = self._forward_and_update_delta(
                optimizer, x_atanh, delta, y_onehot, x_rescale)

            finite = torch.isfinite(loss) & torch.isfinite(
                adv.view(batch_size, -1)).all(dim=1)
            if not finite.all():
                logger.debug("non-finite objective at step %d", ii)
                error = NumericDivergence(
                    "objective became non-finite at step %d with "
                    "learning_rate=%r, initial_const=%r"
                    % (ii, self.learning_rate, self.initial_const))
                break

            mask = loss < best_losses
            best_losses[mask] = loss[mask]
            best_advs[mask] = adv[mask]

            if self.abort_early:
                if ii % (self.max_iterations // NUM_CHECKS or 1) == 0:
                    total = loss.sum().item()
                    if total > prevloss * ONE_MINUS_EPS:
                        break
                    prevloss = total

        return clamp(best_advs, self.clip_min, self.clip_max), error


CW = CarliniWagnerL2Attack
