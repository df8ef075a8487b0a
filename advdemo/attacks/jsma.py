# Copyright (c) 2018-present, Royal Bank of Canada.
# All rights reserved.
#
# This source code is licensed under the license found in the
# LICENSE file in the root directory of this source tree.
#

import logging
import warnings

import numpy as np
import torch

from advdemo.errors import AttackExhausted
from advdemo.utils import clamp

from .base import Attack
from .base import LabelMixin

logger = logging.getLogger(__name__)

# above this many coordinates the attack needs an impractically large
# budget to succeed
LARGE_INPUT_DIM = 10000


class JacobianSaliencyMapAttack(Attack, LabelMixin):
    """
    Jacobian Saliency Map Attack
    This includes Algorithm 1 and 3 in v1, https://arxiv.org/abs/1511.07528v1

    Each round perturbs the pair of input coordinates whose joint saliency
    for the target class is highest. Always targeted.

    :param predict: forward pass function.
    :param num_classes: number of clasess.
    :param clip_min: mininum value per input dimension.
    :param clip_max: maximum value per input dimension.
    :param theta: perturb length, range is either [theta, 0], [0, theta]
    :param max_coords: maximum number of distinct input coordinates to modify.
    """

    coords_per_step = 2

    def __init__(self, predict, num_classes=None, clip_min=0.0, clip_max=1.0,
                 theta=1.0, max_coords=28):
        super(JacobianSaliencyMapAttack, self).__init__(
            predict, None, clip_min, clip_max, num_classes=num_classes)
        if theta == 0:
            raise ValueError("theta must be non-zero")
        if max_coords < self.coords_per_step:
            raise ValueError(
                "max_coords must be at least %d, got %r"
                % (self.coords_per_step, max_coords))
        self.theta = theta
        self.max_coords = max_coords
        self.targeted = True

    def _compute_forward_derivative(self, xadv, y):
        jacobians = self.oracle.jacobian(xadv)
        grads = jacobians.view((jacobians.shape[0], jacobians.shape[1], -1))
        grads_target = grads[y, range(len(y)), :]
        grads_other = grads.sum(dim=0) - grads_target
        return grads_target, grads_other

    def _aligned(self, grads_target, grads_other):
        if self.theta > 0:
            return torch.gt(grads_target, 0) & torch.lt(grads_other, 0)
        return torch.lt(grads_target, 0) & torch.gt(grads_other, 0)

    def _sum_pair(self, grads, dim_x):
        return grads.view(-1, dim_x, 1) + grads.view(-1, 1, dim_x)

    def _and_pair(self, cond, dim_x):
        return cond.view(-1, dim_x, 1) & cond.view(-1, 1, dim_x)

    def _saliency_map(self, search_space, modified, budget,
                      grads_target, grads_other):

        dim_x = search_space.shape[1]

        # alpha in Algorithm 3 line 2
        gradsum_target = self._sum_pair(grads_target, dim_x)
        # alpha in Algorithm 3 line 3
        gradsum_other = self._sum_pair(grads_other, dim_x)

        scores_mask = self._aligned(gradsum_target, gradsum_other)
        scores_mask &= self._and_pair(search_space, dim_x)
        scores_mask[:, range(dim_x), range(dim_x)] = False

        # coordinates a pair adds to the modified set must fit the budget
        new_coords = self._sum_pair((~modified).long(), dim_x)
        scores_mask &= new_coords <= budget.view(-1, 1, 1)

        valid = scores_mask.view(-1, dim_x * dim_x).any(dim=1)

        scores = scores_mask.float() * (-gradsum_target * gradsum_other)
        best = torch.max(scores.view(-1, dim_x * dim_x), 1)[1]
        p1 = torch.remainder(best, dim_x)
        p2 = torch.div(best, dim_x, rounding_mode="floor")
        return [p1, p2], valid

    def _search_space(self, xadv):
        """Coordinates that can still move in the direction of theta."""
        flat = xadv.view(len(xadv), -1)
        if self.theta > 0:
            return flat < self.clip_max
        return flat > self.clip_min

    def _max_iters(self, dim_x):
        # every round moves coords_per_step coordinates by |theta|, and a
        # coordinate saturates after at most steps_per_coord moves
        steps_per_coord = int(np.ceil(
            float(self.clip_max - self.clip_min) / abs(self.theta))) + 1
        return int(np.ceil(
            min(self.max_coords, dim_x) * steps_per_coord
            / float(self.coords_per_step)))

    def _modify_xadv(self, xadv, cond, coords):
        ori_shape = xadv.shape
        xadv = xadv.view(len(xadv), -1).clone()
        for idx in range(len(xadv)):
            if cond[idx]:
                for p in coords:
                    xadv[idx, p[idx]] += self.theta
        xadv = clamp(xadv, min=self.clip_min, max=self.clip_max)
        return xadv.view(ori_shape)

    def _mark_modified(self, modified, cond, coords):
        for idx in range(len(cond)):
            if cond[idx]:
                for p in coords:
                    modified[idx, p[idx]] = True

    def _perturb(self, x, y):
        xadv = x
        dim_x = int(np.prod(x.shape[1:]))
        if dim_x > LARGE_INPUT_DIM:
            warnings.warn(
                "%s on inputs with %d coordinates rarely succeeds within a "
                "practical coordinate budget" % (
                    self.__class__.__name__, dim_x))
        max_iters = self._max_iters(dim_x)
        search_space = self._search_space(x)
        modified = torch.zeros_like(search_space)
        curr_step = 0
        yadv = self._get_predicted_label(xadv)

        # Algorithm 1
        while ((y != yadv).any() and curr_step < max_iters):

            grads_target, grads_other = self._compute_forward_derivative(
                xadv, y)

            # Algorithm 3
            budget = self.max_coords - modified.long().sum(dim=1)
            coords, valid = self._saliency_map(
                search_space, modified, budget, grads_target, grads_other)

            cond = (y != yadv) & valid
            if not cond.any():
                break

            self._mark_modified(modified, cond, coords)

            xadv = self._modify_xadv(xadv, cond, coords)
            search_space = self._search_space(xadv)
            yadv = self._get_predicted_label(xadv)

            curr_step += 1

        xadv = clamp(xadv, min=self.clip_min, max=self.clip_max)

        failed = y != yadv
        if failed.any():
            logger.debug("%s: %d of %d samples did not reach the target "
                         "after %d rounds", self.__class__.__name__,
                         int(failed.sum()), len(y), curr_step)
            return xadv, AttackExhausted(
                "%d of %d samples did not reach the target within %d "
                "coordinates" % (int(failed.sum()), len(y), self.max_coords))
        return xadv, None


JSMA = JacobianSaliencyMapAttack


class OnePixelSaliencyMapAttack(JacobianSaliencyMapAttack):
    """
    Single-coordinate variant of the Jacobian Saliency Map Attack: each
    round perturbs the one coordinate whose saliency for the target class is
    highest. Cheaper per round than the paired attack, and only practical on
    low-resolution inputs.

    :param predict: forward pass function.
    :param num_classes: number of clasess.
    :param clip_min: mininum value per input dimension.
    :param clip_max: maximum value per input dimension.
    :param theta: perturb length, range is either [theta, 0], [0, theta]
    :param max_coords: maximum number of distinct input coordinates to modify.
    """

    coords_per_step = 1

    def _saliency_map(self, search_space, modified, budget,
                      grads_target, grads_other):
        scores_mask = self._aligned(grads_target, grads_other) & search_space
        scores_mask &= (~modified).long() <= budget.view(-1, 1)
        valid = scores_mask.any(dim=1)
        scores = scores_mask.float() * (-grads_target * grads_other)
        best = torch.max(scores, 1)[1]
        return [best], valid


JSMAOnePixel = OnePixelSaliencyMapAttack
