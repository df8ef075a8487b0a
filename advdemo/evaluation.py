# Copyright (c) 2018-present, Royal Bank of Canada.
# All rights reserved.
#
# This source code is licensed under the license found in the
# LICENSE file in the root directory of this source tree.
#

import logging

import torch

from advdemo.utils import label_to_index

logger = logging.getLogger(__name__)


class EvaluationReport(object):
    """Success counts and mean distortions of an attack over samples."""

    def __init__(self, successes, attempts, l2_distortions, linf_distortions):
        self.successes = successes
        self.attempts = attempts
        self.l2_distortions = l2_distortions
        self.linf_distortions = linf_distortions

    @property
    def rate(self):
        return self.successes / self.attempts if self.attempts else 0.

    @property
    def mean_l2(self):
        return _mean(self.l2_distortions)

    @property
    def mean_linf(self):
        return _mean(self.linf_distortions)

    def __repr__(self):
        return "EvaluationReport(%d/%d, rate=%.2f)" % (
            self.successes, self.attempts, self.rate)


def _mean(values):
    if len(values) == 0:
        return 0.
    return torch.cat(values).mean().item()


def untargeted_success_rate(attack_fn, predict, samples, config=None):
    """
    Attack every ``(x, y)`` in ``samples`` and count the adversarial
    examples whose prediction moved away from ``y``.

    :param attack_fn: untargeted function from advdemo.adversarial.
    :param predict: forward pass function or ClassifierOracle.
    :param samples: iterable of (x, y) with x of batch size 1.
    :param config: attack config shared by all runs.
    """
    successes, attempts = 0, 0
    l2s, linfs = [], []
    for x, y in samples:
        result = attack_fn(predict, x, y, config=config)
        successes += int(result.is_successful(y).sum())
        attempts += len(x)
        l2s.append(result.l2_distortion)
        linfs.append(result.linf_distortion)
    logger.debug("%s: %d/%d untargeted successes",
                 getattr(attack_fn, "__name__", attack_fn), successes,
                 attempts)
    return EvaluationReport(successes, attempts, l2s, linfs)


def targeted_success_rate(attack_fn, predict, samples, num_classes,
                          config=None):
    """
    Attack every ``(x, y)`` in ``samples`` towards each class other than
    ``y`` and count the adversarial examples classified as their target.

    :param attack_fn: targeted function from advdemo.adversarial.
    :param predict: forward pass function or ClassifierOracle.
    :param samples: iterable of (x, y) with x of batch size 1.
    :param num_classes: number of classes.
    :param config: attack config shared by all runs.
    """
    successes, attempts = 0, 0
    l2s, linfs = [], []
    for x, y in samples:
        true_index = int(label_to_index(y, num_classes)[0])
        for target in range(num_classes):
            if target == true_index:
                continue
            result = attack_fn(predict, x, y, target, config=config)
            successes += int(result.is_successful(target, True).sum())
            attempts += len(x)
            l2s.append(result.l2_distortion)
            linfs.append(result.linf_distortion)
    logger.debug("%s: %d/%d targeted successes",
                 getattr(attack_fn, "__name__", attack_fn), successes,
                 attempts)
    return EvaluationReport(successes, attempts, l2s, linfs)
