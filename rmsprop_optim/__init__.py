"""
RMSProp - Unified Export
========================

One adaptive learning-rate update rule (RMSProp with optional weight decay,
(Nesterov) momentum, learning-rate annealing and per-element learning rates),
available three ways:

    rmsprop(opfunc, x, config, state)   functional step on a tensor
    RMSPropUpdater(config)              same step, keeps state per tensor
    RMSProp(params, lr=...)             torch.optim.Optimizer for nn.Module params

Usage:
    from rmsprop_optim import RMSPropConfig, RMSPropUpdater

    updater = RMSPropUpdater(RMSPropConfig(learning_rate=0.1))
    x, fx = updater.step(objective, x)   # objective(x) -> (f(x), df/dx)
"""

from rmsprop_optim.config import RMSPropConfig, load_config
from rmsprop_optim.errors import DimensionMismatch, InvalidConfiguration
from rmsprop_optim.rmsprop import RMSProp, RMSPropUpdater, rmsprop
from rmsprop_optim.state import RMSPropState

__all__ = [
    "DimensionMismatch",
    "InvalidConfiguration",
    "RMSProp",
    "RMSPropConfig",
    "RMSPropState",
    "RMSPropUpdater",
    "load_config",
    "rmsprop",
]
