"""
torch.optim Adapter Tests
=========================

The RMSProp optimizer should minimize the same quadratic objectives the
rest of the zoo is tested on, and agree exactly with the functional step.

Run with:
    pytest tests/test_optimizer.py -v
"""

import copy

import pytest
import torch
from torch import nn

from rmsprop_optim import InvalidConfiguration, RMSProp, RMSPropConfig, RMSPropState, rmsprop


# ---------------------------------------------------------------------------
# Test fixtures
# ---------------------------------------------------------------------------


class QuadraticModel(nn.Module):
    """A simple model whose loss is ||param - target||^2."""

    def __init__(self, dim: int = 10):
        super().__init__()
        self.param = nn.Parameter(torch.randn(dim))

    def forward(self, target: torch.Tensor) -> torch.Tensor:
        return ((self.param - target) ** 2).sum()


class MatrixQuadraticModel(nn.Module):
    """A 2D parameter model: loss = ||W - target||_F^2."""

    def __init__(self, rows: int = 8, cols: int = 8):
        super().__init__()
        self.weight = nn.Parameter(torch.randn(rows, cols))

    def forward(self, target: torch.Tensor) -> torch.Tensor:
        return ((self.weight - target) ** 2).sum()


# ---------------------------------------------------------------------------
# Helper
# ---------------------------------------------------------------------------


def _check_convergence(model: nn.Module, target: torch.Tensor, steps: int = 500, tol: float = 0.1, **opt_kwargs):
    """Run RMSProp for `steps` iterations and check convergence."""
    optimizer = RMSProp(model.parameters(), **opt_kwargs)

    initial_loss = None
    for _ in range(steps):
        optimizer.zero_grad()
        loss = model(target)
        if initial_loss is None:
            initial_loss = loss.item()
        loss.backward()
        optimizer.step()

    final_loss = model(target).item()
    assert final_loss < tol, (
        f"final loss {final_loss:.6f} > tolerance {tol}. Initial loss was {initial_loss:.6f}."
    )
    assert final_loss < initial_loss * 0.01, (
        f"loss only decreased from {initial_loss:.6f} to {final_loss:.6f}. Expected at least 100x reduction."
    )


# ---------------------------------------------------------------------------
# Convergence
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "kwargs",
    [
        {"lr": 0.05},
        {"lr": 0.05, "lr_decay": 1e-3},
    ],
)
def test_quadratic_convergence(kwargs):
    torch.manual_seed(42)
    model = QuadraticModel(dim=10)
    target = torch.randn(10)
    _check_convergence(model, target, steps=500, tol=0.1, **kwargs)


def test_nesterov_quadratic_convergence():
    torch.manual_seed(42)
    model = QuadraticModel(dim=10)
    target = torch.randn(10)
    optimizer = RMSProp(model.parameters(), lr=0.05, lr_decay=0.01, momentum=0.9, dampening=0.0, nesterov=True)

    initial_loss = model(target).item()
    for _ in range(500):
        optimizer.zero_grad()
        model(target).backward()
        optimizer.step()

    final_loss = model(target).item()
    assert final_loss < 0.5
    assert final_loss < initial_loss * 0.05


def test_matrix_quadratic_convergence():
    torch.manual_seed(42)
    model = MatrixQuadraticModel(rows=8, cols=8)
    target = torch.randn(8, 8)
    _check_convergence(model, target, steps=500, tol=0.5, lr=0.05)


def test_weight_decay_shrinks_parameters():
    torch.manual_seed(42)
    model = QuadraticModel(dim=10)
    target = torch.zeros(10)
    optimizer = RMSProp(model.parameters(), lr=0.01, weight_decay=0.1)

    initial_norm = model.param.data.norm().item()
    for _ in range(100):
        optimizer.zero_grad()
        model(target).backward()
        optimizer.step()

    assert model.param.data.norm().item() < initial_norm


# ---------------------------------------------------------------------------
# Behaviour
# ---------------------------------------------------------------------------


def test_step_with_closure_returns_loss():
    torch.manual_seed(0)
    model = QuadraticModel(dim=4)
    target = torch.zeros(4)
    optimizer = RMSProp(model.parameters(), lr=0.1)
    expected = model(target).item()

    def closure():
        optimizer.zero_grad()
        loss = model(target)
        loss.backward()
        return loss

    loss = optimizer.step(closure)
    assert loss.item() == pytest.approx(expected)
    assert optimizer.state[model.param]["eval_counter"] == 1


def test_matches_functional_step():
    torch.manual_seed(0)
    start = torch.randn(5, dtype=torch.float64)
    target = torch.randn(5, dtype=torch.float64)
    hparams = dict(momentum=0.9, dampening=0.0, nesterov=True, weight_decay=0.01)

    param = nn.Parameter(start.clone())
    optimizer = RMSProp([param], lr=0.05, lr_decay=0.01, **hparams)

    x = start.clone()
    state = RMSPropState()
    config = RMSPropConfig(learning_rate=0.05, learning_rate_decay=0.01, **hparams)

    def objective(v):
        diff = v - target
        return (diff**2).sum().item(), 2 * diff

    for _ in range(10):
        optimizer.zero_grad()
        ((param - target) ** 2).sum().backward()
        optimizer.step()
        rmsprop(objective, x, config, state)

    assert torch.allclose(param.detach(), x, rtol=1e-12, atol=1e-12)
    assert optimizer.state[param]["ms"] == pytest.approx(state.ms, rel=1e-12)
    assert optimizer.state[param]["eval_counter"] == state.eval_counter


def test_params_without_grad_are_skipped():
    a = nn.Parameter(torch.ones(3))
    b = nn.Parameter(torch.ones(3))
    optimizer = RMSProp([a, b], lr=0.1)

    (a**2).sum().backward()
    optimizer.step()

    assert b.tolist() == [1.0, 1.0, 1.0]
    assert len(optimizer.state[b]) == 0
    assert optimizer.state[a]["eval_counter"] == 1


def test_optimizer_state_dict_round_trip():
    torch.manual_seed(0)
    target = torch.randn(6)

    def train(model, optimizer, steps):
        for _ in range(steps):
            optimizer.zero_grad()
            model(target).backward()
            optimizer.step()

    model_a = QuadraticModel(dim=6)
    opt_a = RMSProp(model_a.parameters(), lr=0.05, momentum=0.5)
    train(model_a, opt_a, 5)

    model_b = QuadraticModel(dim=6)
    model_b.load_state_dict(model_a.state_dict())
    opt_b = RMSProp(model_b.parameters(), lr=0.05, momentum=0.5)
    # state_dict() hands out the live buffers; copy so the two runs stay independent
    opt_b.load_state_dict(copy.deepcopy(opt_a.state_dict()))

    train(model_a, opt_a, 5)
    train(model_b, opt_b, 5)

    assert torch.allclose(model_a.param, model_b.param)
    assert opt_b.state[model_b.param]["eval_counter"] == 10


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "kwargs",
    [{"lr": -1.0}, {"momentum": -0.1}, {"filter_weight": 1.5}],
)
def test_invalid_hyperparameters(kwargs):
    with pytest.raises(ValueError):
        RMSProp([nn.Parameter(torch.ones(2))], **kwargs)


@pytest.mark.parametrize(
    "kwargs",
    [{"nesterov": True}, {"nesterov": True, "momentum": 0.9}, {"nesterov": True, "momentum": 0.9, "dampening": 0.1}],
)
def test_invalid_nesterov(kwargs):
    with pytest.raises(InvalidConfiguration):
        RMSProp([nn.Parameter(torch.ones(2))], **kwargs)


def test_loaded_state_does_not_share_buffers(tmp_path):
    torch.manual_seed(0)
    target = torch.randn(4)
    model = QuadraticModel(dim=4)
    optimizer = RMSProp(model.parameters(), lr=0.05, momentum=0.5)
    optimizer.zero_grad()
    model(target).backward()
    optimizer.step()

    path = tmp_path / "optim.pt"
    torch.save(optimizer.state_dict(), path)
    other = RMSProp(QuadraticModel(dim=4).parameters(), lr=0.05, momentum=0.5)
    other.load_state_dict(torch.load(path))
    saved = next(iter(other.state.values()))["momentum_buffer"].clone()

    for _ in range(3):
        optimizer.zero_grad()
        model(target).backward()
        optimizer.step()

    assert torch.equal(next(iter(other.state.values()))["momentum_buffer"], saved)
    assert not torch.equal(optimizer.state[model.param]["momentum_buffer"], saved)


def test_non_positive_mingain_rejected():
    with pytest.raises(InvalidConfiguration):
        RMSProp([nn.Parameter(torch.ones(2))], mingain=0.0)
