# Copyright (c) 2018-present, Royal Bank of Canada.
# All rights reserved.
#
# This source code is licensed under the license found in the
# LICENSE file in the root directory of this source tree.
#

import pytest
import torch
import torch.nn as nn

from advdemo.attacks import GradientSignAttack
from advdemo.errors import InvalidShape
from advdemo.oracle import ClassifierOracle
from advdemo.oracle import StripBackgroundClass
from advdemo.oracle import as_oracle
from advdemo.utils import torch_allclose

from advdemo.test_utils import NUM_CLASS
from advdemo.test_utils import SimpleModel
from advdemo.test_utils import imgdata
from advdemo.test_utils import imgmodel
from advdemo.test_utils import vecdata
from advdemo.test_utils import veclabel
from advdemo.test_utils import vecmodel


def test_scores_and_labels():
    oracle = ClassifierOracle(vecmodel)
    scores = oracle.scores(vecdata)
    assert scores.shape == (len(vecdata), NUM_CLASS)
    assert not scores.requires_grad
    assert torch.equal(oracle.predict_label(vecdata), scores.argmax(dim=1))
    probs = oracle.probabilities(vecdata)
    assert torch_allclose(probs.sum(dim=1), torch.ones(len(vecdata)))


def test_gradient_matches_autograd():
    oracle = ClassifierOracle(vecmodel)
    xvar = vecdata.clone().requires_grad_()
    vecmodel(xvar).sum().backward()
    grad = oracle.gradient(vecdata, lambda scores: scores.sum())
    assert grad.shape == vecdata.shape
    assert torch_allclose(grad, xvar.grad)


def test_gradient_does_not_touch_parameters():
    model = SimpleModel()
    model.train()
    oracle = ClassifierOracle(model)
    oracle.gradient(vecdata, lambda scores: scores.sum())
    for param in model.parameters():
        assert param.grad is None
        assert param.requires_grad
    assert model.training


def test_jacobian_rows():
    oracle = ClassifierOracle(imgmodel, NUM_CLASS)
    jac = oracle.jacobian(imgdata)
    assert jac.shape == (NUM_CLASS,) + tuple(imgdata.shape)
    grad = oracle.gradient(imgdata, lambda scores: scores[:, 2].sum())
    assert torch_allclose(jac[2], grad)


def test_num_classes_inferred_from_first_input():
    oracle = ClassifierOracle(vecmodel)
    with pytest.raises(ValueError):
        oracle.num_classes
    oracle.check_input(vecdata)
    assert oracle.num_classes == NUM_CLASS


def test_check_input_shapes():
    oracle = ClassifierOracle(vecmodel, NUM_CLASS, input_shape=(15,))
    oracle.check_input(vecdata)
    with pytest.raises(InvalidShape):
        oracle.check_input(vecdata[0])
    with pytest.raises(InvalidShape):
        oracle.check_input(imgdata)
    with pytest.raises(InvalidShape):
        oracle.check_input(vecdata.numpy())


def test_classifier_rejecting_shape_raises_invalid_shape():
    oracle = ClassifierOracle(vecmodel)
    with pytest.raises(InvalidShape):
        oracle.check_input(torch.rand(1, 7))
    oracle.check_input(vecdata)
    assert oracle.num_classes == NUM_CLASS


@pytest.mark.parametrize("predict", [vecmodel, lambda x: vecmodel(x)])
def test_attack_on_plain_classifier_rejects_wrong_shape(predict):
    adversary = GradientSignAttack(predict)
    with pytest.raises(InvalidShape):
        adversary.perturb(torch.rand(1, 7), 0)


def test_as_oracle_reuses_instance():
    oracle = ClassifierOracle(vecmodel)
    assert as_oracle(oracle, num_classes=NUM_CLASS) is oracle
    assert oracle.num_classes == NUM_CLASS
    assert isinstance(as_oracle(vecmodel), ClassifierOracle)


def test_oracle_shared_across_attacks():
    oracle = ClassifierOracle(vecmodel, NUM_CLASS)
    a = GradientSignAttack(oracle, eps=0.1).perturb(vecdata, veclabel)
    b = GradientSignAttack(vecmodel, eps=0.1).perturb(vecdata, veclabel)
    assert torch_allclose(a, b)


class _BackgroundModel(nn.Module):
    def forward(self, x):
        return torch.cat([100. * torch.ones(len(x), 1), x], dim=1)


def test_strip_background_class():
    model = StripBackgroundClass(_BackgroundModel())
    x = torch.tensor([[0.1, 0.9, 0.3]])
    scores = model(x)
    assert scores.shape == (1, 3)
    assert ClassifierOracle(model).predict_label(x).item() == 1
    assert ClassifierOracle(_BackgroundModel()).predict_label(x).item() == 0
