# Copyright (c) 2018-present, Royal Bank of Canada.
# All rights reserved.
#
# This source code is licensed under the license found in the
# LICENSE file in the root directory of this source tree.
#

from advdemo.loss import check_loss_variant
from advdemo.loss import cross_entropy
from advdemo.loss import targeted_loss
from advdemo.loss import TARGET_LOGIT_MARGIN
from advdemo.utils import clip
from advdemo.utils import sign_step

from .base import Attack
from .base import LabelMixin


class GradientSignAttack(Attack, LabelMixin):
    """
    One step fast gradient sign method (Goodfellow et al, 2014).
    Paper: https://arxiv.org/abs/1412.6572

    :param predict: forward pass function.
    :param loss_fn: loss function of (logits, labels), summed over the batch.
    :param eps: attack step size.
    :param clip_min: mininum value per input dimension.
    :param clip_max: maximum value per input dimension.
    :param targeted: indicate if this is a targeted attack.
    """

    def __init__(self, predict, loss_fn=None, eps=0.1, clip_min=0.,
                 clip_max=1., targeted=False):
        """
        Create an instance of the GradientSignAttack.
        """
        super(GradientSignAttack, self).__init__(
            predict, loss_fn, clip_min, clip_max)

        self.eps = eps
        self.targeted = targeted
        if self.loss_fn is None:
            self.loss_fn = cross_entropy

    def _perturb(self, x, y):
        """
        Given examples (x, y), returns their adversarial counterparts with
        an attack length of eps.

        :param x: input tensor.
        :param y: label tensor.
                  - if None and self.targeted=False, compute y as predicted
                    labels.
                  - if self.targeted=True, then y must be the targeted labels.
        :return: tensor containing perturbed inputs.
        """
        if self.eps == 0:
            return clip(x, self.clip_min, self.clip_max), None

        grad = self.oracle.gradient(
            x, lambda outputs: self.loss_fn(outputs, y))
        eps = -self.eps if self.targeted else self.eps
        return sign_step(x, grad, eps, self.clip_min, self.clip_max), None


FGSM = GradientSignAttack


class TargetedGradientSignAttack(Attack, LabelMixin):
    """
    One step targeted fast gradient sign method. The step descends one of
    several target losses; heavier losses work on more classifiers but cost
    more, and very large label sets may need a lighter one.

    :param predict: forward pass function.
    :param eps: attack step size.
    :param loss_variant: 0 (cross-entropy to target), 1 (cross-entropy to
        target minus cross-entropy to the true label) or 2 (logit margin).
    :param clip_min: mininum value per input dimension.
    :param clip_max: maximum value per input dimension.
    """

    def __init__(self, predict, eps=0.1, loss_variant=TARGET_LOGIT_MARGIN,
                 clip_min=0., clip_max=1.):
        super(TargetedGradientSignAttack, self).__init__(
            predict, None, clip_min, clip_max)

        check_loss_variant(loss_variant)
        self.eps = eps
        self.loss_variant = loss_variant
        self.targeted = True

    def _perturb(self, x, y, y_true=None):
        """
        :param x: input tensor.
        :param y: target label tensor.
        :param y_true: true label tensor, defaults to the current prediction.
        :return: tensor containing perturbed inputs.
        """
        if y_true is None:
            y_true = self._get_predicted_label(x)
        else:
            y_true = self._process_label(x, y_true)

        def loss_fn(outputs):
            return targeted_loss(self.loss_variant, outputs, y, y_true)

        grad = self.oracle.gradient(x, loss_fn)
        return sign_step(x, grad, -self.eps, self.clip_min, self.clip_max), \
            None


TargetedFGSM = TargetedGradientSignAttack
