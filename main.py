# main.py
from pathlib import Path
from datetime import date
import argparse
import pandas as pd
from tqdm import tqdm

from utils.config import load_config, load_engine_config
from utils.logger import log_dataframe, today_filename
from data.loader import load_candles_csv
from strategies.signal_engine import analyze_frame


def _candle_files(paths: list[str], data_dir: str) -> list[Path]:
    if paths:
        return [Path(p) for p in paths]
    d = Path(data_dir)
    if not d.exists():
        raise SystemExit(f"Candle directory not found: {d}")
    return sorted(d.glob("*.csv"))


def _eval_row(res) -> dict:
    sig = res.signal
    a = res.analysis
    return {
        "date": date.today(),
        "symbol": res.symbol,
        "price": res.current_price,
        "action": sig.action,
        "score": a["totalScore"],
        "bullish": a["bullishConfluence"],
        "bearish": a["bearishConfluence"],
        "adx": res.indicators["adx"],
        "sideways": a["isSideway"],
        "structure": res.market_structure["trend"],
        "order_block": res.order_block["type"],
        "pullback": res.pullback["type"],
        "volume": res.volume_confirmation["signal"],
    }


def main(argv=None):
    ap = argparse.ArgumentParser(description="Scan local OHLCV CSV files for LONG/SHORT setups.")
    ap.add_argument("files", nargs="*", help="candle CSVs (default: every *.csv in scan.data_dir)")
    ap.add_argument("--config", default="config.yaml")
    ap.add_argument("--preset", default=None, help="override engine.preset")
    ap.add_argument("--quiet", action="store_true", help="disable reject explain-logging")
    args = ap.parse_args(argv)

    cfg = load_config(args.config)
    overrides = {}
    if args.preset:
        overrides["preset"] = args.preset
    if args.quiet:
        overrides["explain_rejects"] = False
    engine_cfg = load_engine_config(args.config, overrides)

    scan = cfg.get("scan", {}) or {}
    files = _candle_files(args.files, scan.get("data_dir", "candles"))
    if not files:
        print("No candle files to scan.")
        return 0

    print(f"Scanning {len(files)} symbol(s) with preset '{engine_cfg.preset}'…")
    evals: list[dict] = []
    signals: list[dict] = []

    for path in tqdm(files, desc="signals"):
        try:
            df = load_candles_csv(path)
            res = analyze_frame(df, engine_cfg)
        except (ValueError, FileNotFoundError) as e:
            tqdm.write(f"[{path.stem.upper()}] ERROR: {e}")
            continue

        if not res.ok:
            tqdm.write(f"[{res.symbol}] skip: {res.error}")
            continue

        evals.append(_eval_row(res))
        if res.signal.action != "WAIT":
            row = {"date": date.today(), "symbol": res.symbol}
            row.update({k: v for k, v in res.signal.to_dict().items() if k != "reasons"})
            row["reasons"] = " | ".join(res.signal.reasons)
            signals.append(row)

    if evals:
        ev = pd.DataFrame(evals)
        ev = ev.reindex(ev["score"].abs().sort_values(ascending=False).index)
        print("\nTop candidates by |score|:")
        print(ev.head(10).to_string(index=False))
        log_dataframe(ev, today_filename("evaluations", root=scan.get("log_dir", "logs")))

    if signals:
        max_n = int(scan.get("max_signals_per_run", 0) or 0)
        if max_n > 0 and len(signals) > max_n:
            signals = signals[:max_n]
        log_dataframe(pd.DataFrame(signals), today_filename("signals", root=scan.get("log_dir", "logs")))
        print(f"\n{len(signals)} signal(s) logged to CSV.")
    else:
        print("\nNo signals this run.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
