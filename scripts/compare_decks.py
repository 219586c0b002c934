"""Play every preset deck against every other and chart the matchups.

Usage:
    python scripts/compare_decks.py [--games N] [--parallel] [--seed S]
"""

from __future__ import annotations

import argparse
import logging
import time

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

from duel_sim.sim.config import SimulationConfig
from duel_sim.sim.content.catalog import default_catalog
from duel_sim.sim.runner import BatchRunner


def run_comparison(n_games: int = 200, parallel: bool = False, base_seed: int = 0) -> None:
    catalog = default_catalog()
    deck_names = catalog.deck_names
    config = SimulationConfig()
    runner = BatchRunner(config)

    n = len(deck_names)
    win_rates = np.zeros((n, n))
    lengths = np.zeros((n, n))
    draws = np.zeros((n, n))

    for i, first in enumerate(deck_names):
        for j, second in enumerate(deck_names):
            if i == j:
                continue
            print(f"\n{first} vs {second}: {n_games} games...")
            t0 = time.time()
            batch = runner.run_batch(
                catalog.preset_deck(first),
                catalog.preset_deck(second),
                n_games,
                base_seed=base_seed,
                parallel=parallel,
            )
            elapsed = time.time() - t0

            win_rates[i, j] = batch.player1_win_rate * 100
            lengths[i, j] = batch.average_game_length
            draws[i, j] = batch.draws

            print(f"  Time: {elapsed:.1f}s ({elapsed/n_games*1000:.0f}ms/game)")
            print(f"  {first}: {batch.player1_wins}  {second}: {batch.player2_wins}  draws: {batch.draws}")
            print(f"  Avg length: {batch.average_game_length:.1f} turns")
            if batch.aborted_games:
                print(f"  Aborted: {len(batch.aborted_games)}")

    generate_charts(deck_names, win_rates, lengths, n_games)


def generate_charts(deck_names: list[str], win_rates: np.ndarray, lengths: np.ndarray, n_games: int) -> None:
    fig, axes = plt.subplots(1, 2, figsize=(14, 6))
    fig.suptitle(f"Preset deck matchups ({n_games} games each)", fontsize=16, fontweight="bold")
    n = len(deck_names)

    # --- Chart 1: win rate of the row deck on the play ---
    ax = axes[0]
    masked = np.ma.masked_where(np.eye(n, dtype=bool), win_rates)
    im = ax.imshow(masked, cmap="RdYlGn", vmin=0, vmax=100)
    for i in range(n):
        for j in range(n):
            if i != j:
                ax.text(j, i, f"{win_rates[i, j]:.0f}%", ha="center", va="center", fontweight="bold")
    ax.set_xticks(range(n), deck_names, rotation=20)
    ax.set_yticks(range(n), deck_names)
    ax.set_title("Win rate (row deck goes first)")
    fig.colorbar(im, ax=ax, fraction=0.046)

    # --- Chart 2: average game length ---
    ax = axes[1]
    labels = []
    values = []
    for i in range(n):
        for j in range(n):
            if i != j:
                labels.append(f"{deck_names[i]}\nvs {deck_names[j]}")
                values.append(lengths[i, j])
    ax.bar(labels, values, color="#3498db", edgecolor="black", linewidth=0.5)
    ax.set_ylabel("Turns")
    ax.set_title("Average game length")
    ax.tick_params(axis="x", labelsize=8)

    plt.tight_layout()
    out_path = "deck_comparison.png"
    plt.savefig(out_path, dpi=150, bbox_inches="tight")
    print(f"\nChart saved to {out_path}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--games", type=int, default=200, help="Games per matchup")
    parser.add_argument("--parallel", action="store_true", help="Run games in a process pool")
    parser.add_argument("--seed", type=int, default=0, help="Base seed")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    run_comparison(args.games, args.parallel, args.seed)
