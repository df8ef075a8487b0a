# Copyright (c) 2018-present, Royal Bank of Canada.
# All rights reserved.
#
# This source code is licensed under the license found in the
# LICENSE file in the root directory of this source tree.
#


class AttackError(Exception):
    """Base class for errors reported by advdemo."""


class InvalidShape(AttackError, ValueError):
    """Input tensor shape does not match what the classifier expects."""


class InvalidIndex(AttackError, IndexError):
    """Label index outside ``[0, num_classes)``."""


class AttackExhausted(AttackError):
    """
    A saliency map attack ran out of coordinates (or hit its coordinate cap)
    before the prediction reached the target. Carried on the attack result,
    not raised from inside the attack.
    """


class NumericDivergence(AttackError, ArithmeticError):
    """
    An optimization attack produced non-finite values, usually because of an
    extreme learning rate or constant. Carried on the attack result.
    """
