"""
RMSProp
=======
Unpublished, from G. Hinton and T. Tieleman, presented in Hinton's Coursera
course (lecture 6e): a mini-batch approximation of rprop on top of SGD.

Core idea:
    Divide the step by a running root-mean-square of recent gradient
    magnitudes. Large gradients shrink the effective step, small gradients
    grow it, so one learning rate works across very different scales.

    This variant keeps a single scalar mean-square per parameter vector
    (the squared L2 norm of the gradient), not one per element, and clamps
    it to [mingain, maxgain] for stability.

Update rule (one call, in order):
    fx, g = f(x)
    ms    = ||g||^2                                   # first call only
    g     = g + wd * x                                # weight decay
    b     = g                   (first call)          # momentum buffer
    b     = mu * b + (1 - damp) * g                   # later calls
    g     = g + mu * b          (nesterov)
    g     = b                   (plain momentum)
    ms    = fw * ms + (1 - fw) * ||g||^2
    ms    = max(min(ms, maxgain), mingain)
    clr   = lr / (1 + t * lrd)
    x     = x - clr / sqrt(ms) * (lrs * g  or  g)
    t     = t + 1

    Works well with Nesterov momentum, less so with standard momentum.

Three entry points share the same arithmetic:
    rmsprop(opfunc, x, config, state)   functional step, returns (x, fx)
    RMSPropUpdater                      keeps one state per optimized tensor
    RMSProp                             torch.optim.Optimizer for nn.Module params
"""

import logging
from collections import defaultdict
from typing import Any, Callable, Mapping, Optional, Union

import torch
from torch import Tensor
from torch.optim.optimizer import Optimizer

from rmsprop_optim.config import RMSPropConfig
from rmsprop_optim.errors import DimensionMismatch
from rmsprop_optim.state import RMSPropState

logger = logging.getLogger(__name__)

Objective = Callable[[Tensor], tuple[Any, Tensor]]
ConfigLike = Union[RMSPropConfig, Mapping[str, Any], None]


def _as_config(config: ConfigLike) -> RMSPropConfig:
    if config is None:
        return RMSPropConfig()
    if isinstance(config, RMSPropConfig):
        return config
    return RMSPropConfig.from_dict(config)


def _check_shapes(x: Tensor, grad: Tensor, config: RMSPropConfig, state: RMSPropState) -> None:
    if grad.shape != x.shape:
        raise DimensionMismatch(f"Gradient shape {tuple(grad.shape)} does not match parameter shape {tuple(x.shape)}")
    if config.learning_rates is not None and config.learning_rates.numel() != x.numel():
        raise DimensionMismatch(
            f"learning_rates has {config.learning_rates.numel()} elements, parameters have {x.numel()}"
        )
    for name in ("momentum_buffer", "scratch_delta"):
        buf = getattr(state, name)
        if buf is not None and buf.shape != grad.shape:
            raise DimensionMismatch(f"Stored {name} shape {tuple(buf.shape)} does not match gradient shape {tuple(grad.shape)}")


@torch.no_grad()
def _apply_update(x: Tensor, grad: Tensor, config: RMSPropConfig, state: RMSPropState) -> None:
    """Apply one RMSProp update to ``x`` given its gradient.

    Mutates ``x``, ``state`` and ``grad``. Shapes must already be checked.
    """
    mom = config.momentum
    damp = config.resolved_dampening
    nevals = state.eval_counter

    if state.ms is None:
        state.ms = grad.norm(2).item() ** 2
        logger.debug("Initialized mean-square to %.6g from first gradient", state.ms)

    if config.weight_decay != 0:
        grad.add_(x, alpha=config.weight_decay)

    if mom != 0:
        if state.momentum_buffer is None:
            state.momentum_buffer = grad.clone()
        else:
            state.momentum_buffer.mul_(mom).add_(grad, alpha=1 - damp)
        if config.nesterov:
            grad.add_(state.momentum_buffer, alpha=mom)
        else:
            # the buffer stays private; the caller gets a copy
            grad.copy_(state.momentum_buffer)

    grad_mag_sq = grad.norm(2).item() ** 2
    ms = config.filter_weight * state.ms + (1 - config.filter_weight) * grad_mag_sq
    ms = min(ms, config.maxgain)
    ms = max(ms, config.mingain)
    state.ms = ms

    clr = config.learning_rate / (1 + nevals * config.learning_rate_decay)

    if config.learning_rates is not None:
        if state.scratch_delta is None:
            state.scratch_delta = torch.empty_like(grad)
        lrs = config.learning_rates.to(device=grad.device, dtype=grad.dtype).reshape(grad.shape)
        state.scratch_delta.copy_(lrs).mul_(grad)
        x.add_(state.scratch_delta, alpha=-clr / ms**0.5)
    else:
        x.add_(grad, alpha=-clr / ms**0.5)

    state.eval_counter += 1


def rmsprop(
    opfunc: Objective,
    x: Tensor,
    config: ConfigLike = None,
    state: Optional[RMSPropState] = None,
) -> tuple[Tensor, Any]:
    """Perform one RMSProp step.

    Args:
        opfunc: Callable taking ``x`` and returning ``(f(x), df/dx)``.
            The gradient tensor may be modified by this call.
        x: Parameter tensor, updated in place.
        config: RMSPropConfig, a mapping accepted by
            ``RMSPropConfig.from_dict``, or None for defaults.
        state: State for this parameter vector. A fresh one is used when
            None, which means nothing carries over to the next call.

    Returns:
        ``(x, fx)``: the updated tensor and the objective value evaluated
        before the update.

    Raises:
        InvalidConfiguration: Nesterov requested without momentum or with
            non-zero dampening. Checked before ``opfunc`` is called.
        DimensionMismatch: gradient, ``learning_rates`` or stored buffers do
            not match ``x``. Checked before anything is modified.
    """
    config = _as_config(config)
    config.validate()
    if state is None:
        state = RMSPropState()

    fx, dfdx = opfunc(x)
    _check_shapes(x, dfdx, config, state)
    _apply_update(x, dfdx, config, state)
    return x, fx


class RMSPropUpdater:
    """Stateful RMSProp step function.

    Keeps one RMSPropState per optimized tensor (keyed by the tensor itself,
    like ``torch.optim.Optimizer.state``), so the same updater can drive
    several parameter vectors.

    Not thread-safe: calls for the same tensor must be serialized.

    Args:
        config: Default configuration used when ``step`` is not given one.
    """

    def __init__(self, config: ConfigLike = None):
        self.config = _as_config(config)
        self.config.validate()
        self.state: defaultdict[Tensor, RMSPropState] = defaultdict(RMSPropState)

    def step(
        self,
        objective: Objective,
        x: Tensor,
        config: ConfigLike = None,
        state: Optional[RMSPropState] = None,
    ) -> tuple[Tensor, Any]:
        """Run one RMSProp step on ``x``. See :func:`rmsprop`."""
        config = self.config if config is None else _as_config(config)
        config.validate()
        if state is None:
            state = self.state[x]
        return rmsprop(objective, x, config, state)

    __call__ = step

    def reset(self, x: Optional[Tensor] = None) -> None:
        """Forget the state of ``x``, or of every tensor when ``x`` is None."""
        if x is None:
            self.state.clear()
        else:
            self.state.pop(x, None)


class RMSProp(Optimizer):
    """RMSProp as a ``torch.optim.Optimizer``.

    Each parameter tensor gets its own state (mean-square, momentum buffer,
    step count). The closure, if given, is evaluated once per step; the
    gradients it leaves in ``p.grad`` are used and may be modified.

    Per-element learning rates are only available through :func:`rmsprop`.

    Args:
        params: Iterable of parameters or param groups.
        lr: Learning rate.
        lr_decay: Learning-rate annealing factor.
        weight_decay: L2 penalty added to the gradient.
        momentum: Momentum factor.
        dampening: Momentum dampening (None: same as momentum).
        nesterov: If True, use Nesterov momentum.
        filter_weight: Moving-average coefficient for the mean-square term.
        maxgain: Upper clamp for the mean-square term.
        mingain: Lower clamp for the mean-square term.
    """

    def __init__(
        self,
        params,
        lr: float = 1e-3,
        lr_decay: float = 0.0,
        weight_decay: float = 0.0,
        momentum: float = 0.0,
        dampening: Optional[float] = None,
        nesterov: bool = False,
        filter_weight: float = 0.9,
        maxgain: float = 100.0,
        mingain: float = 1e-6,
    ):
        if lr < 0.0:
            raise ValueError(f"Invalid learning rate: {lr}")
        if momentum < 0.0:
            raise ValueError(f"Invalid momentum value: {momentum}")
        if not 0.0 <= filter_weight <= 1.0:
            raise ValueError(f"Invalid filter weight: {filter_weight}")

        defaults = dict(
            lr=lr,
            lr_decay=lr_decay,
            weight_decay=weight_decay,
            momentum=momentum,
            dampening=dampening,
            nesterov=nesterov,
            filter_weight=filter_weight,
            maxgain=maxgain,
            mingain=mingain,
        )
        super().__init__(params, defaults)
        for group in self.param_groups:
            self._group_config(group).validate()

    @staticmethod
    def _group_config(group: dict) -> RMSPropConfig:
        return RMSPropConfig(
            learning_rate=group["lr"],
            learning_rate_decay=group["lr_decay"],
            weight_decay=group["weight_decay"],
            momentum=group["momentum"],
            dampening=group["dampening"],
            nesterov=group["nesterov"],
            filter_weight=group["filter_weight"],
            maxgain=group["maxgain"],
            mingain=group["mingain"],
        )

    @torch.no_grad()
    def step(self, closure=None):
        """Perform a single optimization step.

        Args:
            closure: Optional callable that re-evaluates the model and
                returns the loss.

        Returns:
            The loss returned by ``closure``, or None.
        """
        loss = None
        if closure is not None:
            with torch.enable_grad():
                loss = closure()

        for group in self.param_groups:
            config = self._group_config(group)
            config.validate()
            for p in group["params"]:
                if p.grad is None:
                    continue
                param_state = self.state[p]
                state = RMSPropState.from_dict(param_state) if param_state else RMSPropState()
                _check_shapes(p, p.grad, config, state)
                _apply_update(p, p.grad, config, state)
                param_state.update(state.as_dict())

        return loss
