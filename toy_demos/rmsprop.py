"""
RMSProp demo: numpy hand-written vs rmsprop_optim, side by side.

Supports three variants via the `rmsprop_type` variable:
    - "plain":     ms = fw * ms + (1 - fw) * ||g||^2;  x -= lr / sqrt(ms) * g
    - "momentum":  b = mu * b + (1 - damp) * g;        x -= lr / sqrt(ms) * b
    - "nesterov":  b = mu * b + g;                     x -= lr / sqrt(ms) * (g + mu * b)

Objective:  2-D Rosenbrock, f(x, y) = (1 - x)^2 + 100 * (y - x^2)^2
Start:      (-1.2, 1.0), minimum at (1, 1)

Run:  python toy_demos/rmsprop.py
"""

import sys
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import torch

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from rmsprop_optim import RMSPropConfig, RMSPropUpdater
from rmsprop_optim.objectives import Rosenbrock

# ═══════════════════════════════════════════════════════════════════════
# Configuration
# ═══════════════════════════════════════════════════════════════════════
steps = 3000
lr = 1e-3
lr_decay = 0.0
fw = 0.9
mu = 0.9
rmsprop_type = "nesterov"  # "plain", "momentum", or "nesterov"

effective_mu = 0.0 if rmsprop_type == "plain" else mu
effective_nesterov = rmsprop_type == "nesterov"
effective_damp = 0.0 if effective_nesterov else effective_mu

x_init = np.array([-1.2, 1.0])


def np_rosenbrock(p):
    x, y = p
    f = (1 - x) ** 2 + 100 * (y - x**2) ** 2
    g = np.array([-2 * (1 - x) - 400 * x * (y - x**2), 200 * (y - x**2)])
    return f, g


# ═══════════════════════════════════════════════════════════════════════
# RMSProp update (numpy)
# ═══════════════════════════════════════════════════════════════════════
def rmsprop_update(p, g, state, lr, lr_decay=0.0, fw=0.9, mu=0.0, damp=0.0, nesterov=False,
                   maxgain=100.0, mingain=1e-6):
    """One RMSProp step on numpy arrays, mutating `p` and `state`.

    The mean-square is a single scalar per vector (squared L2 norm of
    the gradient), seeded from the first gradient:

        ms = ||g_0||^2                                (first call)
        b  = g                                        (first call)
        b  = mu * b + (1 - damp) * g                  (later calls)
        g  = g + mu * b  (nesterov)   or   g = b
        ms = clamp(fw * ms + (1 - fw) * ||g||^2, mingain, maxgain)
        p -= lr / (1 + t * lr_decay) / sqrt(ms) * g
    """
    if "ms" not in state:
        state["ms"] = float(np.dot(g, g))
        state["t"] = 0

    if mu != 0:
        if "b" not in state:
            state["b"] = g.copy()
        else:
            state["b"] = mu * state["b"] + (1 - damp) * g
        g = g + mu * state["b"] if nesterov else state["b"].copy()

    ms = fw * state["ms"] + (1 - fw) * float(np.dot(g, g))
    state["ms"] = max(min(ms, maxgain), mingain)

    clr = lr / (1 + state["t"] * lr_decay)
    p -= clr / np.sqrt(state["ms"]) * g
    state["t"] += 1


# ═══════════════════════════════════════════════════════════════════════
# Part 1: Numpy
# ═══════════════════════════════════════════════════════════════════════
print("=" * 60)
print(f"Part 1: Numpy ({rmsprop_type}, lr={lr}, mu={effective_mu})")
print("=" * 60)

np_state = {}
p = x_init.copy()
np_path, np_loss_history = [p.copy()], []

for step in range(steps):
    f, g = np_rosenbrock(p)
    rmsprop_update(p, g, np_state, lr, lr_decay, fw, effective_mu, effective_damp, effective_nesterov)
    np_path.append(p.copy())
    np_loss_history.append(f)

    if step % 500 == 0 or step == steps - 1:
        print(f"  Step {step:4d} | Loss: {f:.6f} | ms: {np_state['ms']:.4g}")


# ═══════════════════════════════════════════════════════════════════════
# Part 2: rmsprop_optim
# ═══════════════════════════════════════════════════════════════════════
print()
print("=" * 60)
print(f"Part 2: rmsprop_optim ({rmsprop_type})")
print("=" * 60)

config = RMSPropConfig(
    learning_rate=lr,
    learning_rate_decay=lr_decay,
    momentum=effective_mu,
    dampening=effective_damp,
    nesterov=effective_nesterov,
    filter_weight=fw,
)
updater = RMSPropUpdater(config)
objective = Rosenbrock(dim=2)
x = torch.tensor(x_init, dtype=torch.float64)
pt_path, pt_loss_history = [x.numpy().copy()], []

for step in range(steps):
    x, f = updater.step(objective, x)
    pt_path.append(x.numpy().copy())
    pt_loss_history.append(f)

    if step % 500 == 0 or step == steps - 1:
        print(f"  Step {step:4d} | Loss: {f:.6f} | ms: {updater.state[x].ms:.4g}")


# ═══════════════════════════════════════════════════════════════════════
# Comparison
# ═══════════════════════════════════════════════════════════════════════
print()
print("=" * 60)
print("Comparison (max parameter difference along the path)")
print("=" * 60)
np_path, pt_path = np.array(np_path), np.array(pt_path)
diffs = np.abs(np_path - pt_path).max(axis=1)
print(f"  Max diff:  {diffs.max():.2e}")
print(f"  Mean diff: {diffs.mean():.2e}")
if diffs.max() < 1e-8:
    print("  PASS: numpy matches rmsprop_optim!")
else:
    print("  MISMATCH: check your implementation.")

# ── Plot ──────────────────────────────────────────────────────────────
fig, axes = plt.subplots(1, 2, figsize=(12, 5))

xs, ys = np.meshgrid(np.linspace(-2, 2, 300), np.linspace(-1, 3, 300))
zs = (1 - xs) ** 2 + 100 * (ys - xs**2) ** 2
axes[0].contour(xs, ys, np.log10(zs + 1e-3), levels=30, cmap="viridis")
axes[0].plot(np_path[:, 0], np_path[:, 1], label="Numpy", linewidth=2.5, alpha=0.8)
axes[0].plot(pt_path[:, 0], pt_path[:, 1], label="rmsprop_optim", linewidth=1.5, linestyle="--", color="red")
axes[0].scatter([1], [1], marker="*", s=150, color="black", zorder=5, label="Minimum")
axes[0].set_xlabel("x")
axes[0].set_ylabel("y")
axes[0].set_title(f"Trajectory ({rmsprop_type})")
axes[0].legend()

axes[1].plot(np_loss_history, label="Numpy", linewidth=2.5, alpha=0.8)
axes[1].plot(pt_loss_history, label="rmsprop_optim", linewidth=1.5, linestyle="--", color="red")
axes[1].set_xlabel("Step")
axes[1].set_ylabel("f(x)")
axes[1].set_title("Loss")
axes[1].set_yscale("log")
axes[1].legend()

plt.tight_layout()
plt.savefig(f"toy_demos/rmsprop_{rmsprop_type}_result.png", dpi=150)
plt.show()
print(f"Saved to toy_demos/rmsprop_{rmsprop_type}_result.png")
