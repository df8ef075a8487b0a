# Copyright (c) 2018-present, Royal Bank of Canada and other authors.
# See the AUTHORS.txt file for a list of contributors.
# All rights reserved.
#
# This source code is licensed under the license found in the
# LICENSE file in the root directory of this source tree.
#

# flake8: noqa

from .base import Attack
from .base import AttackResult
from .base import LabelMixin

from .one_step_gradient import GradientSignAttack
from .one_step_gradient import TargetedGradientSignAttack
from .one_step_gradient import FGSM
from .one_step_gradient import TargetedFGSM

from .iterative_gradient import BasicIterativeAttack
from .iterative_gradient import TargetedBasicIterativeAttack
from .iterative_gradient import BIM
from .iterative_gradient import TargetedBIM

from .jsma import JacobianSaliencyMapAttack
from .jsma import OnePixelSaliencyMapAttack
from .jsma import JSMA
from .jsma import JSMAOnePixel

from .carlini_wagner import CarliniWagnerL2Attack
from .carlini_wagner import CW

from .utils import AttackConfig
from .utils import build_attack
