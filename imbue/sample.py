#!/usr/bin/env python3
"""Generate sample sparse series with controlled gaps."""

import numpy as np
import pandas as pd


def generate_sparse_series(
    length=365,
    gap_pct=0.05,
    n_outages=4,
    start=0,
    seed=42,
):
    np.random.seed(seed)
    x = np.arange(start, start + length)

    # Seasonal signal with autocorrelated noise
    y = 20 + 5 * np.sin(2 * np.pi * (x - start) / max(length, 1))
    noise = np.random.normal(0, 1.5, length)
    for i in range(1, length):
        noise[i] = 0.6 * noise[i - 1] + 0.4 * noise[i]
    y += noise

    keep = np.random.random(length) >= gap_pct

    # Outages (2-12 positions)
    if length > 16:
        for _ in range(n_outages):
            s = np.random.randint(1, length - 14)
            keep[s : s + np.random.randint(2, 12)] = False

    # Endpoints stay known so the axis keeps its full extent
    if length:
        keep[0] = keep[-1] = True

    return pd.DataFrame({
        "x": x[keep].astype(float),
        "y": np.round(y[keep], 2),
    })


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser()
    parser.add_argument("-o", "--output", default="sample_series.csv")
    parser.add_argument("--length", type=int, default=365)
    parser.add_argument("--start", type=int, default=0)
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args()

    df = generate_sparse_series(length=args.length, start=args.start, seed=args.seed)
    df.to_csv(args.output, index=False)
    missing = args.length - len(df)
    print(f"Generated {len(df)} points -> {args.output}")
    print(f"  {missing} positions missing ({missing / max(args.length, 1) * 100:.1f}%)")
