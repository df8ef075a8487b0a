# Copyright (c) 2018-present, Royal Bank of Canada and other authors.
# See the AUTHORS.txt file for a list of contributors.
# All rights reserved.
#
# This source code is licensed under the license found in the
# LICENSE file in the root directory of this source tree.
#

from advdemo.loss import check_loss_variant
from advdemo.loss import cross_entropy
from advdemo.loss import targeted_loss
from advdemo.loss import TARGET_XENT
from advdemo.utils import batch_clamp
from advdemo.utils import clamp
from advdemo.utils import predict_from_logits
from advdemo.utils import sign_step

from .base import Attack
from .base import LabelMixin
from .utils import is_successful


def perturb_iterative(xvar, yvar, oracle, nb_iter, eps, eps_iter, loss_fn,
                      minimize=False, project=True, clip_min=0.0,
                      clip_max=1.0, early_stop=False):
    """
    Iteratively maximize (or minimize) the loss over the input with
    gradient sign steps. Shared by the basic iterative attacks.

    :param xvar: input data.
    :param yvar: input labels.
    :param oracle: ClassifierOracle of the attacked model.
    :param nb_iter: number of iterations.
    :param eps: maximum distortion, used when project is True.
    :param eps_iter: attack step size.
    :param loss_fn: function of (outputs, yvar) to differentiate.
    :param minimize: (optional bool) whether to minimize or maximize the loss.
    :param project: (optional bool) keep the iterate within eps of xvar.
    :param clip_min: mininum value per input dimension.
    :param clip_max: maximum value per input dimension.
    :param early_stop: stop once every sample has reached its goal.
    :return: tensor containing the perturbed input.
    """
    step = -eps_iter if minimize else eps_iter
    xadv = xvar.clone()
    for ii in range(nb_iter):
        grad = oracle.gradient(xadv, lambda outputs: loss_fn(outputs, yvar))
        xadv = sign_step(xadv, grad, step, clip_min, clip_max)
        if project:
            delta = batch_clamp(eps, xadv - xvar)
            xadv = clamp(xvar + delta, clip_min, clip_max)

        if early_stop:
            pred = predict_from_logits(oracle.scores(xadv))
            if is_successful(pred, yvar, minimize).all():
                break

    return xadv


class BasicIterativeAttack(Attack, LabelMixin):
    """
    Like GradientSignAttack but with several steps for each epsilon.
    Aka Basic Iterative Attack.
    Paper: https://arxiv.org/pdf/1611.01236.pdf

    :param predict: forward pass function.
    :param loss_fn: loss function of (logits, labels), summed over the batch.
    :param eps: maximum distortion.
    :param nb_iter: number of iterations.
    :param eps_iter: attack step size.
    :param project: keep the result within eps of the input (Linf).
    :param clip_min: mininum value per input dimension.
    :param clip_max: maximum value per input dimension.
    :param targeted: if the attack is targeted.
    :param early_stop: stop iterating once the goal is reached.
    """

    def __init__(self, predict, loss_fn=None, eps=0.1, nb_iter=10,
                 eps_iter=0.01, project=True, clip_min=0., clip_max=1.,
                 targeted=False, early_stop=False):
        super(BasicIterativeAttack, self).__init__(
            predict, loss_fn, clip_min, clip_max)
        if nb_iter < 1:
            raise ValueError("nb_iter must be positive, got %r" % nb_iter)
        self.eps = eps
        self.nb_iter = nb_iter
        self.eps_iter = eps_iter
        self.project = project
        self.targeted = targeted
        self.early_stop = early_stop
        if self.loss_fn is None:
            self.loss_fn = cross_entropy

    def _perturb(self, x, y):
        rval = perturb_iterative(
            x, y, self.oracle, nb_iter=self.nb_iter,
            eps=self.eps, eps_iter=self.eps_iter,
            loss_fn=self.loss_fn, minimize=self.targeted,
            project=self.project, clip_min=self.clip_min,
            clip_max=self.clip_max, early_stop=self.early_stop)
        return rval, None


BIM = BasicIterativeAttack


class TargetedBasicIterativeAttack(BasicIterativeAttack):
    """
    Basic Iterative Attack descending one of the selectable target losses.

    :param predict: forward pass function.
    :param eps: maximum distortion.
    :param nb_iter: number of iterations.
    :param eps_iter: attack step size.
    :param loss_variant: 0 (cross-entropy to target), 1 (cross-entropy to
        target minus cross-entropy to the true label) or 2 (logit margin).
    :param project: keep the result within eps of the input (Linf).
    :param clip_min: mininum value per input dimension.
    :param clip_max: maximum value per input dimension.
    :param early_stop: stop iterating once the target is reached.
    """

    def __init__(self, predict, eps=0.1, nb_iter=10, eps_iter=0.01,
                 loss_variant=TARGET_XENT, project=True, clip_min=0.,
                 clip_max=1., early_stop=False):
        check_loss_variant(loss_variant)
        super(TargetedBasicIterativeAttack, self).__init__(
            predict, None, eps, nb_iter, eps_iter, project,
            clip_min, clip_max, True, early_stop)
        self.loss_variant = loss_variant

    def _perturb(self, x, y, y_true=None):
        if y_true is None:
            y_true = self._get_predicted_label(x)
        else:
            y_true = self._process_label(x, y_true)

        def loss_fn(outputs, target):
            return targeted_loss(self.loss_variant, outputs, target, y_true)

        rval = perturb_iterative(
            x, y, self.oracle, nb_iter=self.nb_iter,
            eps=self.eps, eps_iter=self.eps_iter,
            loss_fn=loss_fn, minimize=True,
            project=self.project, clip_min=self.clip_min,
            clip_max=self.clip_max, early_stop=self.early_stop)
        return rval, None


TargetedBIM = TargetedBasicIterativeAttack
