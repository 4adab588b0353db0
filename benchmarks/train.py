"""
RMSProp Benchmark Driver
========================

Run the RMSProp updater on an analytic objective from the command line.

Usage:
    # Rosenbrock with the classic settings
    python benchmarks/train.py --objective rosenbrock --lr 1e-2 --steps 5000

    # Nesterov momentum on an ill-conditioned quadratic
    python benchmarks/train.py --objective ill_conditioned --momentum 0.9 --dampening 0 --nesterov

    # Load config from YAML (CLI flags override it)
    python benchmarks/train.py --config benchmarks/configs/rosenbrock.yaml

    # Save a checkpoint, then continue from it
    python benchmarks/train.py --objective rosenbrock --steps 1000 --checkpoint ckpt.pt
    python benchmarks/train.py --objective rosenbrock --steps 1000 --resume ckpt.pt

Results are saved to results/<objective>_rmsprop_<timestamp>.json
"""

import argparse
import dataclasses
import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path

import torch
import yaml

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from rmsprop_optim import RMSPropConfig, RMSPropState, RMSPropUpdater
from rmsprop_optim.objectives import get_objective, list_objectives

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
logger = logging.getLogger(__name__)

# CLI flag -> RMSPropConfig field
HPARAM_FLAGS = {
    "lr": "learning_rate",
    "lr_decay": "learning_rate_decay",
    "weight_decay": "weight_decay",
    "momentum": "momentum",
    "dampening": "dampening",
    "filter_weight": "filter_weight",
    "maxgain": "maxgain",
    "mingain": "mingain",
}


def build_config(args, file_config: dict) -> RMSPropConfig:
    """Merge the ``rmsprop`` section of the YAML config with CLI overrides."""
    config = RMSPropConfig.from_dict(file_config.get("rmsprop", {}) or {})
    overrides = {}
    for flag, field in HPARAM_FLAGS.items():
        value = getattr(args, flag)
        if value is not None:
            overrides[field] = value
    if args.nesterov:
        overrides["nesterov"] = True
    config = dataclasses.replace(config, **overrides)
    config.validate()
    return config


def save_checkpoint(path: Path, x: torch.Tensor, state: RMSPropState, objective_name: str):
    torch.save({"objective": objective_name, "x": x.clone(), "state": state.state_dict()}, path)
    logger.info(f"Checkpoint saved to {path}")


def load_checkpoint(path: Path, objective_name: str) -> tuple[torch.Tensor, RMSPropState]:
    ckpt = torch.load(path, weights_only=False)
    if ckpt["objective"] != objective_name:
        raise ValueError(f"Checkpoint {path} is for '{ckpt['objective']}', not '{objective_name}'")
    logger.info(f"Resumed from {path} at step {ckpt['state']['eval_counter']}")
    return ckpt["x"], RMSPropState.from_state_dict(ckpt["state"])


def run(objective, x: torch.Tensor, config: RMSPropConfig, state: RMSPropState, steps: int, log_interval: int):
    """Step the updater ``steps`` times. Returns the per-step history."""
    updater = RMSPropUpdater(config)
    updater.state[x] = state
    history = []

    for _ in range(steps):
        x, fx = updater.step(objective, x)
        history.append({"step": state.eval_counter, "loss": fx, "ms": state.ms})
        if state.eval_counter % log_interval == 0:
            logger.info(f"Step {state.eval_counter} | Loss: {fx:.6g} | ms: {state.ms:.4g}")

    return history


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="RMSProp Benchmark")
    parser.add_argument("--config", type=str, default=None, help="Path to YAML config file.")
    parser.add_argument("--objective", type=str, default=None, help=f"One of: {', '.join(list_objectives())}.")
    parser.add_argument("--dim", type=int, default=None, help="Number of parameters.")
    parser.add_argument("--steps", type=int, default=None, help="Number of update steps.")
    parser.add_argument("--lr", type=float, default=None, help="Learning rate.")
    parser.add_argument("--lr-decay", type=float, default=None, help="Learning rate decay.")
    parser.add_argument("--weight-decay", type=float, default=None, help="Weight decay.")
    parser.add_argument("--momentum", type=float, default=None, help="Momentum.")
    parser.add_argument("--dampening", type=float, default=None, help="Momentum dampening.")
    parser.add_argument("--nesterov", action="store_true", help="Use Nesterov momentum.")
    parser.add_argument("--filter-weight", type=float, default=None, help="Mean-square filter weight.")
    parser.add_argument("--maxgain", type=float, default=None, help="Upper clamp on mean-square.")
    parser.add_argument("--mingain", type=float, default=None, help="Lower clamp on mean-square.")
    parser.add_argument("--seed", type=int, default=42, help="Random seed.")
    parser.add_argument("--log-interval", type=int, default=100, help="Steps between log lines.")
    parser.add_argument("--checkpoint", type=str, default=None, help="Write a checkpoint here at the end.")
    parser.add_argument("--resume", type=str, default=None, help="Resume from this checkpoint.")
    return parser


def run_settings(args, file_config: dict) -> tuple[str, int, int | None]:
    """Objective name, step count and dimension; CLI flags override the YAML file."""
    objective_name = args.objective if args.objective is not None else file_config.get("objective", "rosenbrock")
    steps = args.steps if args.steps is not None else file_config.get("steps", 1000)
    dim = args.dim if args.dim is not None else file_config.get("dim")
    return objective_name, steps, dim


def main():
    args = build_parser().parse_args()

    file_config = {}
    if args.config:
        with open(args.config) as f:
            file_config = yaml.safe_load(f) or {}

    objective_name, steps, dim = run_settings(args, file_config)
    config = build_config(args, file_config)

    torch.manual_seed(args.seed)

    objective_kwargs = dict(file_config.get("objective_kwargs", {}) or {})
    if dim is not None:
        objective_kwargs["dim"] = dim
    objective = get_objective(objective_name, **objective_kwargs)

    if args.resume:
        x, state = load_checkpoint(Path(args.resume), objective_name)
    else:
        x, state = objective.initial_point(), RMSPropState()

    logger.info(f"Objective: {objective_name} | Params: {x.numel()} | Steps: {steps}")
    logger.info(f"Config: {config}")

    start_time = time.time()
    history = run(objective, x, config, state, steps, args.log_interval)
    total_time = time.time() - start_time

    final_loss, _ = objective(x)
    logger.info(f"Done in {total_time:.2f}s | Final loss: {final_loss:.6g}")

    if args.checkpoint:
        save_checkpoint(Path(args.checkpoint), x, state, objective_name)

    results = {
        "objective": objective_name,
        "optimizer": "rmsprop",
        "lr": config.learning_rate,
        "momentum": config.momentum,
        "nesterov": config.nesterov,
        "steps": steps,
        "num_params": x.numel(),
        "final_loss": final_loss,
        "total_time": total_time,
        "history": history,
    }

    results_dir = Path("results")
    results_dir.mkdir(exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    result_file = results_dir / f"{objective_name}_rmsprop_{timestamp}.json"
    with open(result_file, "w") as f:
        json.dump(results, f, indent=2)
    logger.info(f"Results saved to {result_file}")


if __name__ == "__main__":
    main()
