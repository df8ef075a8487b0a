# Copyright (c) 2018-present, Royal Bank of Canada and other authors.
# See the AUTHORS.txt file for a list of contributors.
# All rights reserved.
#
# This source code is licensed under the license found in the
# LICENSE file in the root directory of this source tree.
#

import inspect
import logging

logger = logging.getLogger(__name__)


def is_successful(y1, y2, targeted):
    if targeted is True:
        return y1 == y2
    else:
        return y1 != y2


def _accepted_kwargs(attack_class):
    params = inspect.signature(attack_class.__init__).parameters
    return [name for name, param in params.items()
            if name not in ("self", "predict") and param.kind in (
                param.POSITIONAL_OR_KEYWORD, param.KEYWORD_ONLY)]


def filter_attack_kwargs(attack_class, kwargs):
    """
    Keep only the entries of ``kwargs`` that ``attack_class`` accepts.
    Hyperparameters meant for other attacks are dropped, not rejected.
    """
    accepted = _accepted_kwargs(attack_class)
    rval = {}
    for key, value in kwargs.items():
        if key in accepted:
            rval[key] = value
        else:
            logger.debug("ignoring %r, not a parameter of %s",
                         key, attack_class.__name__)
    return rval


class AttackConfig(object):
    # a convenient class for generate an attack/adversary instance

    AttackClass = None

    def __init__(self, **overrides):
        self.kwargs = {}

        for mro in reversed(self.__class__.__mro__):
            if mro in (AttackConfig, object):
                continue
            for kwarg in mro.__dict__:
                if kwarg.startswith("__") or kwarg == "AttackClass":
                    continue
                self.kwargs[kwarg] = mro.__dict__[kwarg]
        self.kwargs.update(overrides)

    def to_dict(self):
        return dict(self.kwargs)

    def __call__(self, predict, attack_class=None):
        attack_class = attack_class or self.AttackClass
        if attack_class is None:
            raise ValueError(
                "%s has no AttackClass" % self.__class__.__name__)
        return attack_class(
            predict, **filter_attack_kwargs(attack_class, self.kwargs))


def build_attack(attack_class, predict, config=None, **overrides):
    """
    Instantiate ``attack_class`` against ``predict`` from a dict or
    AttackConfig plus keyword overrides.
    """
    if config is None:
        kwargs = {}
    elif isinstance(config, AttackConfig):
        kwargs = config.to_dict()
    else:
        kwargs = dict(config)
    kwargs.update(overrides)
    return attack_class(
        predict, **filter_attack_kwargs(attack_class, kwargs))
