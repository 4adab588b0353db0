"""
Benchmark Driver Tests
======================

Run with:
    pytest tests/test_train.py -v
"""

import importlib.util
from pathlib import Path

import pytest

from rmsprop_optim import InvalidConfiguration

_TRAIN_PATH = Path(__file__).resolve().parent.parent / "benchmarks" / "train.py"
_spec = importlib.util.spec_from_file_location("benchmark_train", _TRAIN_PATH)
train = importlib.util.module_from_spec(_spec)
_spec.loader.exec_module(train)


def test_zero_flags_override_file_config():
    args = train.build_parser().parse_args(["--steps", "0", "--dim", "0"])
    _, steps, dim = train.run_settings(args, {"steps": 500, "dim": 4})
    assert steps == 0
    assert dim == 0


def test_file_config_used_when_flags_missing():
    args = train.build_parser().parse_args([])
    name, steps, dim = train.run_settings(args, {"objective": "quadratic", "steps": 500, "dim": 4})
    assert (name, steps, dim) == ("quadratic", 500, 4)


def test_defaults_without_config():
    args = train.build_parser().parse_args([])
    assert train.run_settings(args, {}) == ("rosenbrock", 1000, None)


def test_cli_hyperparameters_override_yaml_section():
    args = train.build_parser().parse_args(["--lr", "0.5", "--momentum", "0"])
    config = train.build_config(args, {"rmsprop": {"learningRate": "1e-3", "momentum": 0.9}})
    assert config.learning_rate == 0.5
    assert config.momentum == 0.0


def test_build_config_validates():
    args = train.build_parser().parse_args(["--momentum", "0.9", "--nesterov"])
    with pytest.raises(InvalidConfiguration):
        train.build_config(args, {})
