"""
Compare Benchmark Results
=========================

Load result JSON files written by benchmarks/train.py and plot the loss
and mean-square curves side by side.

Usage:
    # Compare all results for one objective
    python benchmarks/compare.py --dir results/ --filter rosenbrock

    # Compare specific files
    python benchmarks/compare.py results/file1.json results/file2.json

    # Save plot to file instead of showing
    python benchmarks/compare.py --dir results/ --output comparison.png
"""

import argparse
import json
import sys
from pathlib import Path

import matplotlib.pyplot as plt


def load_results(paths: list[Path]) -> list[dict]:
    """Load result JSON files."""
    results = []
    for p in paths:
        with open(p) as f:
            data = json.load(f)
            data["_file"] = p.name
            results.append(data)
    return results


def run_label(r: dict) -> str:
    label = f"lr={r['lr']}"
    if r.get("momentum"):
        label += f", mu={r['momentum']}"
        if r.get("nesterov"):
            label += " (nesterov)"
    return label


def plot_comparison(results: list[dict], output: str | None = None):
    """Plot loss (log scale) and mean-square per step for each run."""
    if not results:
        print("No results to compare.")
        return

    fig, axes = plt.subplots(1, 2, figsize=(12, 5))

    for r in results:
        label = run_label(r)
        steps = [h["step"] for h in r["history"]]
        loss = [h["loss"] for h in r["history"]]
        ms = [h["ms"] for h in r["history"]]

        axes[0].plot(steps, loss, label=label)
        axes[1].plot(steps, ms, label=label)

    axes[0].set_title("Loss")
    axes[0].set_xlabel("Step")
    axes[0].set_ylabel("f(x)")
    axes[0].set_yscale("log")
    axes[0].legend()
    axes[0].grid(True, alpha=0.3)

    axes[1].set_title("Mean-square of gradient norm")
    axes[1].set_xlabel("Step")
    axes[1].set_ylabel("ms")
    axes[1].set_yscale("log")
    axes[1].legend()
    axes[1].grid(True, alpha=0.3)

    objective_name = results[0].get("objective", "unknown")
    fig.suptitle(f"RMSProp Comparison: {objective_name}", fontsize=14)
    plt.tight_layout()

    if output:
        plt.savefig(output, dpi=150, bbox_inches="tight")
        print(f"Plot saved to {output}")
    else:
        plt.show()

    # Print summary table
    print("\n" + "=" * 80)
    print(f"{'Run':<32} {'Final Loss':<14} {'Best Loss':<14} {'Total Time':<12}")
    print("=" * 80)

    for r in results:
        history = r["history"]
        final_loss = history[-1]["loss"] if history else float("nan")
        best_loss = min((h["loss"] for h in history), default=float("nan"))
        total_time = f"{r.get('total_time', 0):.2f}s"
        print(f"{run_label(r):<32} {final_loss:<14.6g} {best_loss:<14.6g} {total_time:<12}")


def main():
    parser = argparse.ArgumentParser(description="Compare RMSProp benchmark results")
    parser.add_argument("files", nargs="*", help="Result JSON files to compare.")
    parser.add_argument("--dir", type=str, default=None, help="Directory containing result files.")
    parser.add_argument("--filter", type=str, default=None, help="Filter filenames (substring match).")
    parser.add_argument("--output", type=str, default=None, help="Save plot to file.")
    args = parser.parse_args()

    paths = []
    if args.files:
        paths = [Path(f) for f in args.files]
    elif args.dir:
        result_dir = Path(args.dir)
        paths = sorted(result_dir.glob("*.json"))
        if args.filter:
            paths = [p for p in paths if args.filter in p.name]
    else:
        parser.print_help()
        sys.exit(1)

    if not paths:
        print("No result files found.")
        sys.exit(1)

    print(f"Loading {len(paths)} result files...")
    results = load_results(paths)
    plot_comparison(results, args.output)


if __name__ == "__main__":
    main()
