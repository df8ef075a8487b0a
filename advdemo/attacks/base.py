# Copyright (c) 2018-present, Royal Bank of Canada.
# All rights reserved.
#
# This source code is licensed under the license found in the
# LICENSE file in the root directory of this source tree.
#

import logging

from advdemo.errors import AttackExhausted
from advdemo.errors import NumericDivergence
from advdemo.oracle import as_oracle
from advdemo.utils import clip
from advdemo.utils import l2_distance
from advdemo.utils import label_to_index
from advdemo.utils import linf_distance
from advdemo.utils import replicate_input

logger = logging.getLogger(__name__)


class Attack(object):
    """
    Abstract base class for all attack classes.

    :param predict: forward pass function or ClassifierOracle.
    :param loss_fn: loss function.
    :param clip_min: mininum value per input dimension.
    :param clip_max: maximum value per input dimension.

    """

    def __init__(self, predict, loss_fn, clip_min, clip_max,
                 num_classes=None):
        """Create an Attack instance."""
        self.predict = as_oracle(predict, num_classes=num_classes)
        self.loss_fn = loss_fn
        self.clip_min = clip_min
        self.clip_max = clip_max

    @property
    def oracle(self):
        return self.predict

    def _perturb(self, x, y):
        """
        Virtual method doing the actual work on validated inputs.

        :param x: the model's input tensor, already copied.
        :param y: LongTensor of labels, already validated.
        :return: tuple (adversarial tensor, None | AttackError instance).
        """
        error = "Sub-classes must implement _perturb."
        raise NotImplementedError(error)

    def generate(self, x, y=None, **kwargs):
        """
        Run the attack and return an AttackResult carrying the adversarial
        tensor together with exhaustion/divergence information.
        """
        x, y = self._verify_and_process_inputs(x, y)
        logger.debug("running %s on input of shape %s",
                     self.__class__.__name__, tuple(x.shape))
        xadv, error = self._perturb(x, y, **kwargs)
        if error is not None:
            logger.debug("%s finished with %s: %s",
                         self.__class__.__name__,
                         error.__class__.__name__, error)
        return AttackResult(self.oracle, x, xadv, error)

    def perturb(self, x, y=None, **kwargs):
        """
        Generate the adversarial examples.

        :param x: the model's input tensor.
        :param y: label tensor, int or one-hot Label.
        :return: adversarial examples.
        """
        return self.generate(x, y, **kwargs).adv

    def __call__(self, *args, **kwargs):
        return self.perturb(*args, **kwargs)


class LabelMixin(object):
    def _get_predicted_label(self, x):
        """
        Compute predicted labels given x.

        :param x: the model's input tensor.
        :return: tensor containing predicted labels.
        """
        return self.oracle.predict_label(x)

    def _process_label(self, x, y):
        return label_to_index(
            y, self.oracle.num_classes, batch_size=len(x)).to(x.device)

    def _verify_and_process_inputs(self, x, y):
        self.oracle.check_input(x)
        if self.targeted:
            assert y is not None

        if not self.targeted:
            if y is None:
                y = self._get_predicted_label(x)

        x = replicate_input(x)
        y = self._process_label(x, y)
        return x, y


class AttackResult(object):
    """
    Outcome of one attack call. Success is not recorded; compare
    ``predicted_label`` with the true or target label instead.

    :param oracle: the ClassifierOracle the attack ran against.
    :param original: the unperturbed input.
    :param adv: the adversarial tensor, same shape as ``original``.
    :param error: None, AttackExhausted or NumericDivergence.
    """

    def __init__(self, oracle, original, adv, error=None):
        self.oracle = oracle
        self.original = original
        self.adv = adv
        self.error = error

    @property
    def exhausted(self):
        return isinstance(self.error, AttackExhausted)

    @property
    def diverged(self):
        return isinstance(self.error, NumericDivergence)

    @property
    def predicted_label(self):
        return self.oracle.predict_label(self.adv)

    @property
    def confidence(self):
        return self.oracle.probabilities(self.adv).max(dim=1)[0]

    @property
    def l2_distortion(self):
        return l2_distance(self.adv, self.original)

    @property
    def linf_distortion(self):
        return linf_distance(self.adv, self.original)

    @property
    def noise(self):
        """Perturbation centred on grey, for display."""
        return clip(self.adv - self.original + 0.5)

    def is_successful(self, label, targeted=False):
        label = label_to_index(
            label, self.oracle.num_classes, batch_size=len(self.adv))
        label = label.to(self.adv.device)
        pred = self.predicted_label
        if targeted:
            return pred == label
        return pred != label

    def raise_for_error(self):
        if self.error is not None:
            raise self.error
        return self

    def __repr__(self):
        return "AttackResult(shape=%s, error=%r)" % (
            tuple(self.adv.shape), self.error)

