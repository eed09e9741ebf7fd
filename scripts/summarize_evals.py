# scripts/summarize_evals.py
from __future__ import annotations
import sys
from pathlib import Path

# --- make repo root importable when run as a script ---
PROJECT_ROOT = Path(__file__).resolve().parents[1]  # parent of "scripts"
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pandas as pd
from utils.config import load_engine_config


def summarize(df: pd.DataFrame, min_score: int, min_confluence: int) -> dict:
    """Gate pass rates and action counts for one evaluations CSV."""
    n = len(df)
    if n == 0:
        return {"rows": 0}
    conf = df["bullish"].where(df["score"] > 0, df["bearish"])
    not_sideways = ~df["sideways"].astype(bool)
    score_ok = df["score"].abs() >= min_score
    conf_ok = conf >= min_confluence
    return {
        "rows": n,
        "symbols": int(df["symbol"].nunique()),
        "not_sideways": float(not_sideways.mean()),
        "score_ok": float(score_ok.mean()),
        "confluence_ok": float(conf_ok.mean()),
        "all_gates": float((not_sideways & score_ok & conf_ok).mean()),
        "actions": df["action"].value_counts().to_dict(),
        "score_hist": df["score"].value_counts().sort_index().to_dict(),
    }


def main(path: str | None = None):
    # pick today's by default
    if path is None:
        from utils.logger import today_filename
        p = today_filename("evaluations")
    else:
        p = Path(path)
    if not p.exists():
        print(f"File not found: {p}")
        sys.exit(1)

    df = pd.read_csv(p)
    cfg = load_engine_config("config.yaml")
    s = summarize(df, cfg.min_score_for_signal, cfg.min_confluence)

    print(f"File: {p.name}")
    if not s["rows"]:
        print("No rows.")
        return
    print(f"Rows: {s['rows']:,}  Symbols: {s['symbols']}  Preset: {cfg.preset}\n")

    print("Pass rates:")
    print(f"  ADX not sideways      : {s['not_sideways']:0.1%}")
    print(f"  |score|>={cfg.min_score_for_signal:<11}: {s['score_ok']:0.1%}")
    print(f"  confluence>={cfg.min_confluence:<9}: {s['confluence_ok']:0.1%}")
    print(f"  all gates             : {s['all_gates']:0.1%}\n")

    print("Actions:")
    for action, cnt in s["actions"].items():
        print(f"  {action:<5}: {cnt:7d}  ({cnt / s['rows']:0.1%})")
    print()

    print("Score distribution:")
    for score, cnt in s["score_hist"].items():
        print(f"  score {score:>3}: {cnt:7d}  ({cnt / s['rows']:0.1%})")


if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else None)
