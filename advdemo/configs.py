# Copyright (c) 2018-present, Royal Bank of Canada.
# All rights reserved.
#
# This source code is licensed under the license found in the
# LICENSE file in the root directory of this source tree.
#

"""
Hyperparameters tuned per dataset for the demo classifiers. Attacks without
an entry run with their constructor defaults.
"""

from advdemo.attacks import BasicIterativeAttack
from advdemo.attacks import CarliniWagnerL2Attack
from advdemo.attacks import GradientSignAttack
from advdemo.attacks import JacobianSaliencyMapAttack
from advdemo.attacks import OnePixelSaliencyMapAttack
from advdemo.attacks import TargetedBasicIterativeAttack
from advdemo.attacks import TargetedGradientSignAttack
from advdemo.attacks.utils import AttackConfig
from advdemo.oracle import ClassifierOracle
from advdemo.loss import TARGET_XENT_MINUS_TRUE


# ###########################################################
# MNIST, 784 flat grayscale inputs


class MnistTargetedFGSM(AttackConfig):
    # works slightly better with higher distortion
    AttackClass = TargetedGradientSignAttack
    eps = 0.2


class MnistTargetedBIM(AttackConfig):
    # more iterations push the target confidence up
    AttackClass = TargetedBasicIterativeAttack
    nb_iter = 20


# ###########################################################
# CIFAR-10, 3x32x32


class CifarFGSM(AttackConfig):
    # 0.1 Linf is too visible in color
    AttackClass = GradientSignAttack
    eps = 0.05


class CifarOnePixelJSMA(AttackConfig):
    # needs ~3x the coordinates of MNIST
    AttackClass = OnePixelSaliencyMapAttack
    max_coords = 75


class CifarJSMA(AttackConfig):
    AttackClass = JacobianSaliencyMapAttack
    max_coords = 75


class CifarCW(AttackConfig):
    AttackClass = CarliniWagnerL2Attack
    initial_const = 1.
    learning_rate = 0.05


# ###########################################################
# GTSRB, 3x64x64


class GtsrbTargetedBIM(AttackConfig):
    AttackClass = TargetedBasicIterativeAttack
    nb_iter = 50


class GtsrbOnePixelJSMA(CifarOnePixelJSMA):
    pass


# ###########################################################
# ImageNet, 3x224x224


class ImagenetFGSM(CifarFGSM):
    pass


class ImagenetTargetedFGSM(AttackConfig):
    # the logit margin loss is too heavy for 1000 classes
    AttackClass = TargetedGradientSignAttack
    loss_variant = TARGET_XENT_MINUS_TRUE


class ImagenetOnePixelJSMA(CifarOnePixelJSMA):
    # still unsuccessful, would need ~50x the coordinates of CIFAR-10
    pass


class ImagenetCW(CifarCW):
    # higher confidence adversarial examples
    confidence = 5.


MNIST_CONFIGS = {
    'fgsm_targeted': MnistTargetedFGSM,
    'bim_targeted': MnistTargetedBIM,
}

CIFAR_CONFIGS = {
    'fgsm': CifarFGSM,
    'jsma_one_pixel': CifarOnePixelJSMA,
    'jsma': CifarJSMA,
    'cw': CifarCW,
}

GTSRB_CONFIGS = {
    'bim_targeted': GtsrbTargetedBIM,
    'jsma_one_pixel': GtsrbOnePixelJSMA,
}

IMAGENET_CONFIGS = {
    'fgsm': ImagenetFGSM,
    'fgsm_targeted': ImagenetTargetedFGSM,
    'jsma_one_pixel': ImagenetOnePixelJSMA,
    'cw': ImagenetCW,
}

DATASET_CONFIGS = {
    'mnist': MNIST_CONFIGS,
    'cifar': CIFAR_CONFIGS,
    'gtsrb': GTSRB_CONFIGS,
    'imagenet': IMAGENET_CONFIGS,
}

INPUT_SHAPES = {
    'mnist': (784,),
    'cifar': (3, 32, 32),
    'gtsrb': (3, 64, 64),
    'imagenet': (3, 224, 224),
}

NUM_CLASSES = {
    'mnist': 10,
    'cifar': 10,
    'gtsrb': 43,
    'imagenet': 1000,
}

# the paired JSMA is too slow beyond CIFAR-sized inputs
JSMA_DATASETS = ('mnist', 'cifar')


def get_config(dataset, attack_name):
    """
    Tuned AttackConfig for ``attack_name`` on ``dataset``; an empty
    AttackConfig when the attack's defaults are used as is.

    :raises KeyError: for an unknown dataset.
    :raises ValueError: for the paired JSMA outside ``JSMA_DATASETS``.
    """
    configs = DATASET_CONFIGS[dataset]
    if attack_name == 'jsma' and dataset not in JSMA_DATASETS:
        raise ValueError(
            "jsma is only offered for %s, not %r" % (JSMA_DATASETS, dataset))
    if attack_name in configs:
        return configs[attack_name]()
    return AttackConfig()


def dataset_oracle(dataset, predict):
    """
    Wrap a classifier trained on ``dataset`` in a ClassifierOracle that
    knows its class count and input shape, so mis-shaped inputs are rejected
    before any gradient is taken.

    :raises KeyError: for an unknown dataset.
    """
    return ClassifierOracle(
        predict, NUM_CLASSES[dataset], input_shape=INPUT_SHAPES[dataset])
