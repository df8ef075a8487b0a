import torch
import torch.nn.functional as F

from advdemo.utils import clamp


TARGET_MULT = 10000.0

# targeted loss variants, cheapest first
TARGET_XENT = 0
TARGET_XENT_MINUS_TRUE = 1
TARGET_LOGIT_MARGIN = 2
LOSS_VARIANTS = (TARGET_XENT, TARGET_XENT_MINUS_TRUE, TARGET_LOGIT_MARGIN)


def elementwise_margin(logits, label):
    batch_size = logits.size(0)
    topval, topidx = logits.topk(2, dim=1)
    maxelse = ((label != topidx[:, 0]).float() * topval[:, 0]
               + (label == topidx[:, 0]).float() * topval[:, 1])
    return maxelse - logits[torch.arange(batch_size), label]


def cross_entropy(logits, label):
    return F.cross_entropy(logits, label, reduction="sum")


def logit_margin_loss(logits, label):
    return elementwise_margin(logits, label).sum()


def check_loss_variant(variant):
    if variant not in LOSS_VARIANTS:
        raise ValueError(
            "unknown loss variant %r, expected one of %s"
            % (variant, LOSS_VARIANTS))


def targeted_loss(variant, logits, target, y_true=None):
    """
    Loss measuring how far ``logits`` are from the ``target`` class. Lower
    is closer, so targeted attacks descend it.

    :param variant: 0 (cross-entropy to target), 1 (cross-entropy to target
        minus cross-entropy to the true label) or 2 (logit margin).
    :param logits: classifier output of shape (N, C).
    :param target: target class indices.
    :param y_true: true class indices, only used by variant 1.
    """
    check_loss_variant(variant)
    if variant == TARGET_XENT:
        return cross_entropy(logits, target)
    elif variant == TARGET_XENT_MINUS_TRUE:
        if y_true is None:
            raise ValueError("loss variant %d needs the true label" % variant)
        return cross_entropy(logits, target) - cross_entropy(logits, y_true)
    else:
        return logit_margin_loss(logits, target)


def cw_margin(output, y_onehot, confidence=0., targeted=True):
    """
    Carlini-Wagner misclassification term ``f`` per sample, which reaches 0
    once the target (or any non-true class, if untargeted) leads the other
    logits by ``confidence``.
    """
    real = (y_onehot * output).sum(dim=1)
    # - (y_onehot * TARGET_MULT) keeps the label itself from being the max
    other = ((1.0 - y_onehot) * output - (y_onehot * TARGET_MULT)
             ).max(1)[0]
    if targeted:
        return clamp(other - real + confidence, min=0.)
    return clamp(real - other + confidence, min=0.)
