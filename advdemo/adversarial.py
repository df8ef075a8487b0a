# Copyright (c) 2018-present, Royal Bank of Canada.
# All rights reserved.
#
# This source code is licensed under the license found in the
# LICENSE file in the root directory of this source tree.
#

"""
Function-call interface to the attack catalogue. Every attack takes the
classifier, the input, the true label and (for targeted attacks) the target
label plus an optional config, and returns an AttackResult.

Labels may be ints, index tensors or one-hot tensors. Config entries that do
not belong to the chosen attack are ignored.
"""

from advdemo.attacks import BasicIterativeAttack
from advdemo.attacks import CarliniWagnerL2Attack
from advdemo.attacks import GradientSignAttack
from advdemo.attacks import JacobianSaliencyMapAttack
from advdemo.attacks import OnePixelSaliencyMapAttack
from advdemo.attacks import TargetedBasicIterativeAttack
from advdemo.attacks import TargetedGradientSignAttack
from advdemo.attacks.utils import build_attack
from advdemo.utils import label_to_index


def _check_true_label(adversary, x, y):
    # validated even though these attacks only steer towards the target
    adversary.oracle.check_input(x)
    label_to_index(y, adversary.oracle.num_classes, batch_size=len(x))


def fgsm(predict, x, y, config=None):
    adversary = build_attack(GradientSignAttack, predict, config)
    return adversary.generate(x, y)


def fgsm_targeted(predict, x, y, target, config=None):
    adversary = build_attack(TargetedGradientSignAttack, predict, config)
    return adversary.generate(x, target, y_true=y)


def bim(predict, x, y, config=None):
    adversary = build_attack(BasicIterativeAttack, predict, config)
    return adversary.generate(x, y)


def bim_targeted(predict, x, y, target, config=None):
    adversary = build_attack(TargetedBasicIterativeAttack, predict, config)
    return adversary.generate(x, target, y_true=y)


def jsma_one_pixel(predict, x, y, target, config=None):
    adversary = build_attack(OnePixelSaliencyMapAttack, predict, config)
    _check_true_label(adversary, x, y)
    return adversary.generate(x, target)


def jsma(predict, x, y, target, config=None):
    adversary = build_attack(JacobianSaliencyMapAttack, predict, config)
    _check_true_label(adversary, x, y)
    return adversary.generate(x, target)


def cw(predict, x, y, target, config=None):
    adversary = build_attack(
        CarliniWagnerL2Attack, predict, config, targeted=True)
    _check_true_label(adversary, x, y)
    return adversary.generate(x, target)


ATTACKS = {
    'fgsm': fgsm,
    'fgsm_targeted': fgsm_targeted,
    'bim': bim,
    'bim_targeted': bim_targeted,
    'jsma_one_pixel': jsma_one_pixel,
    'jsma': jsma,
    'cw': cw,
}

TARGETED_ATTACKS = (
    'fgsm_targeted',
    'bim_targeted',
    'jsma_one_pixel',
    'jsma',
    'cw',
)


def run_attack(name, predict, x, y, target=None, config=None):
    """
    Run the attack registered under ``name``.

    :raises KeyError: for an unknown attack name.
    """
    attack_fn = ATTACKS[name]
    if name in TARGETED_ATTACKS:
        if target is None:
            raise ValueError("%s needs a target label" % name)
        return attack_fn(predict, x, y, target, config=config)
    return attack_fn(predict, x, y, config=config)
