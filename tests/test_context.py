# Copyright (c) 2018-present, Royal Bank of Canada.
# All rights reserved.
#
# This source code is licensed under the license found in the
# LICENSE file in the root directory of this source tree.
#

import pytest
import torch
import torch.nn.functional as F

from advdemo.context import ctx_eval
from advdemo.context import ctx_frozen_classifier
from advdemo.context import ctx_noparamgrad
from advdemo.context import get_module_training_state
from advdemo.context import get_param_grad_state
from advdemo.oracle import ClassifierOracle
from advdemo.utils import torch_allclose
from advdemo.test_utils import NUM_CLASS
from advdemo.test_utils import SimpleModel
from advdemo.test_utils import vecdata


def _mixed_model():
    model = SimpleModel()
    model.fc1.training = True
    model.fc2.training = False
    model.fc1.weight.requires_grad = False
    return model


def _assert_frozen(module):
    for mod in module.modules():
        assert not mod.training
    for param in module.parameters():
        assert not param.requires_grad


@pytest.mark.parametrize(
    "ctxmgr, get_state_fn",
    ((ctx_noparamgrad, get_param_grad_state),
     (ctx_eval, get_module_training_state),
     (ctx_frozen_classifier, get_param_grad_state),
     (ctx_frozen_classifier, get_module_training_state)))
def test_state_restored_on_exit(ctxmgr, get_state_fn):
    model = _mixed_model()
    before = get_state_fn(model)
    output = model(vecdata)
    with ctxmgr(model):
        assert torch_allclose(output, model(vecdata))
    assert get_state_fn(model) == before


def test_frozen_classifier_inside():
    model = _mixed_model()
    model.train()
    with ctx_frozen_classifier(model):
        _assert_frozen(model)
    assert model.fc2.training
    assert model.fc2.weight.requires_grad


def test_frozen_classifier_restores_after_error():
    model = SimpleModel()
    model.train()
    with pytest.raises(RuntimeError):
        with ctx_frozen_classifier(model):
            raise RuntimeError("boom")
    assert model.training
    assert all(p.requires_grad for p in model.parameters())


def test_frozen_classifier_plain_callable():
    def predict(x):
        return x * 2.

    with ctx_frozen_classifier(predict):
        assert torch_allclose(predict(vecdata), vecdata * 2.)


def test_oracle_gradient_leaves_parameters_alone():
    model = SimpleModel()
    model.train()
    oracle = ClassifierOracle(model, NUM_CLASS)
    y = torch.zeros(len(vecdata)).long()
    grad = oracle.gradient(
        vecdata, lambda logits: F.cross_entropy(logits, y))
    assert grad.shape == vecdata.shape
    assert grad.abs().sum() > 0
    for param in model.parameters():
        assert param.grad is None
        assert param.requires_grad
    assert model.training
