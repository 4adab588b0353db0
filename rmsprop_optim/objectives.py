"""
Benchmark Objectives
====================

Small analytic objectives for exercising the update rule. Each one is a
callable ``f(x) -> (value, gradient)`` with a hand-derived gradient, and
returns a fresh gradient tensor on every call (the update is allowed to
modify it).

These are NOT the learning target -- they are tools for benchmarking.

Usage:
    from rmsprop_optim.objectives import get_objective

    f = get_objective("rosenbrock")
    x = f.initial_point()
    fx, grad = f(x)
"""

from typing import Optional

import torch
from torch import Tensor


class Quadratic:
    """f(x) = ||x - target||^2. The simplest possible problem.

    Args:
        dim: Number of parameters.
        target: Minimizer. Random (seeded) when None.
        seed: Seed for the random target and initial point.
    """

    def __init__(self, dim: int = 10, target: Optional[Tensor] = None, seed: int = 0):
        self.dim = dim
        self.generator = torch.Generator().manual_seed(seed)
        if target is None:
            target = torch.randn(dim, generator=self.generator, dtype=torch.float64)
        self.target = torch.as_tensor(target, dtype=torch.float64)

    def __call__(self, x: Tensor) -> tuple[float, Tensor]:
        diff = x.detach() - self.target
        return (diff**2).sum().item(), 2 * diff

    def initial_point(self) -> Tensor:
        return torch.randn(self.dim, generator=self.generator, dtype=torch.float64)


class IllConditionedQuadratic:
    """f(x) = sum_i s_i * x_i^2 with scales spread log-uniformly over [1, condition].

    A single scalar mean-square cannot adapt per coordinate, so this shows
    where per-element ``learning_rates`` help.
    """

    def __init__(self, dim: int = 10, condition: float = 100.0):
        self.dim = dim
        self.scales = torch.logspace(0, torch.log10(torch.tensor(condition)).item(), dim, dtype=torch.float64)

    def __call__(self, x: Tensor) -> tuple[float, Tensor]:
        x = x.detach()
        return (self.scales * x**2).sum().item(), 2 * self.scales * x

    def initial_point(self) -> Tensor:
        return torch.ones(self.dim, dtype=torch.float64)


class Rosenbrock:
    """Generalized Rosenbrock function; with the default a=1 the minimum is 0 at (1, 1, ...).

    f(x) = sum_i b * (x_{i+1} - x_i^2)^2 + (a - x_i)^2
    """

    def __init__(self, dim: int = 2, a: float = 1.0, b: float = 100.0):
        if dim < 2:
            raise ValueError(f"Rosenbrock needs dim >= 2, got {dim}")
        self.dim = dim
        self.a = a
        self.b = b

    def __call__(self, x: Tensor) -> tuple[float, Tensor]:
        x = x.detach()
        head, tail = x[:-1], x[1:]
        inner = tail - head**2
        value = (self.b * inner**2 + (self.a - head) ** 2).sum().item()

        grad = torch.zeros_like(x)
        grad[:-1] += -4 * self.b * head * inner - 2 * (self.a - head)
        grad[1:] += 2 * self.b * inner
        return value, grad

    def initial_point(self) -> Tensor:
        x = torch.ones(self.dim, dtype=torch.float64)
        x[::2] = -1.2
        return x


OBJECTIVE_REGISTRY: dict[str, type] = {
    "quadratic": Quadratic,
    "ill_conditioned": IllConditionedQuadratic,
    "rosenbrock": Rosenbrock,
}


def get_objective(name: str, **kwargs):
    """Instantiate an objective by its registry name.

    Args:
        name: One of the keys in OBJECTIVE_REGISTRY.
        **kwargs: Forwarded to the objective constructor.

    Returns:
        An objective instance.
    """
    if name not in OBJECTIVE_REGISTRY:
        available = ", ".join(sorted(OBJECTIVE_REGISTRY.keys()))
        raise ValueError(f"Unknown objective '{name}'. Available: {available}")
    return OBJECTIVE_REGISTRY[name](**kwargs)


def list_objectives() -> list[str]:
    """Return sorted list of available objective names."""
    return sorted(OBJECTIVE_REGISTRY.keys())
