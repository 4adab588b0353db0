"""
RMSProp Configuration
=====================

Hyperparameters for a single RMSProp step. A config is read-only: the
update never writes to it, so one instance can be shared across calls
and across parameter vectors.

Both naming styles are accepted when building from a mapping or a YAML
file, so configs written for the classic Lua ``optim`` package load as-is:

    learningRate      / learning_rate
    learningRateDecay / learning_rate_decay
    weightDecay       / weight_decay
    learningRates     / learning_rates
    filterWeight      / filter_weight

Usage:
    from rmsprop_optim import RMSPropConfig, load_config

    cfg = RMSPropConfig(learning_rate=0.01, momentum=0.9, dampening=0.0, nesterov=True)
    cfg = RMSPropConfig.from_dict({"learningRate": 0.1, "filterWeight": 0.9})
    cfg = load_config("configs/rosenbrock.yaml")
"""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional

import torch
import yaml
from torch import Tensor

from rmsprop_optim.errors import InvalidConfiguration

_CAMEL_CASE_KEYS = {
    "learningRate": "learning_rate",
    "learningRateDecay": "learning_rate_decay",
    "weightDecay": "weight_decay",
    "learningRates": "learning_rates",
    "filterWeight": "filter_weight",
}


@dataclass(frozen=True)
class RMSPropConfig:
    """Hyperparameters of the RMSProp update.

    Args:
        learning_rate: Base step size.
        learning_rate_decay: Annealing factor; the step size at call t is
            ``learning_rate / (1 + t * learning_rate_decay)``.
        weight_decay: L2 penalty coefficient added to the gradient.
        momentum: Momentum coefficient (0 disables momentum).
        dampening: Momentum dampening. ``None`` means "same as momentum".
        nesterov: Use Nesterov momentum. Requires momentum > 0 and dampening == 0.
        learning_rates: Optional per-element learning rates, same numel as x.
        filter_weight: Moving-average coefficient for the mean-square term.
        maxgain: Upper clamp for the mean-square term.
        mingain: Lower clamp for the mean-square term.
    """

    learning_rate: float = 1e-3
    learning_rate_decay: float = 0.0
    weight_decay: float = 0.0
    momentum: float = 0.0
    dampening: Optional[float] = None
    nesterov: bool = False
    learning_rates: Optional[Tensor] = None
    filter_weight: float = 0.9
    maxgain: float = 100.0
    mingain: float = 1e-6

    def __post_init__(self):
        if self.learning_rates is not None and not isinstance(self.learning_rates, Tensor):
            object.__setattr__(self, "learning_rates", torch.as_tensor(self.learning_rates, dtype=torch.float64))

    @property
    def resolved_dampening(self) -> float:
        return self.momentum if self.dampening is None else self.dampening

    def validate(self) -> None:
        """Raise InvalidConfiguration for settings the update cannot run with.

        Nesterov momentum needs momentum > 0 and zero dampening. ``mingain``
        must be positive: it is the floor of the mean-square the step is
        divided by.
        """
        if self.nesterov and not (self.momentum > 0 and self.resolved_dampening == 0):
            raise InvalidConfiguration(
                "Nesterov momentum requires a momentum and zero dampening "
                f"(got momentum={self.momentum}, dampening={self.resolved_dampening})"
            )
        if not self.mingain > 0:
            raise InvalidConfiguration(f"mingain must be positive, got {self.mingain}")

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "RMSPropConfig":
        """Build a config from a mapping using camelCase or snake_case keys.

        Numeric options are converted with ``float()``, so strings such as
        ``"1e-3"`` (how PyYAML reads exponent notation without a decimal
        point) are accepted.
        """
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in values.items():
            name = _CAMEL_CASE_KEYS.get(key, key)
            if name not in known:
                available = ", ".join(sorted(known))
                raise InvalidConfiguration(f"Unknown RMSProp option '{key}'. Available: {available}")
            if name in kwargs:
                raise InvalidConfiguration(f"RMSProp option '{name}' given twice")
            kwargs[name] = _coerce(name, value)
        return cls(**kwargs)


def _coerce(name: str, value: Any) -> Any:
    if name == "learning_rates" or (name == "dampening" and value is None):
        return value
    if name == "nesterov":
        if not isinstance(value, bool):
            raise InvalidConfiguration(f"RMSProp option 'nesterov' must be true or false, got {value!r}")
        return value
    if isinstance(value, bool):
        raise InvalidConfiguration(f"RMSProp option '{name}' must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidConfiguration(f"RMSProp option '{name}' must be a number, got {value!r}") from None


def load_config(path) -> RMSPropConfig:
    """Load an RMSPropConfig from a YAML file.

    The options may sit at the top level or under an ``rmsprop:`` key, so a
    benchmark config can carry other settings next to them.
    """
    with open(Path(path)) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise InvalidConfiguration(f"{path}: expected a mapping, got {type(data).__name__}")
    if "rmsprop" in data:
        data = data["rmsprop"] or {}
    return RMSPropConfig.from_dict(data)
