from pathlib import Path
import pandas as pd
from datetime import date, datetime
from tqdm import tqdm

def log_dataframe(df: pd.DataFrame, out_path: Path, overwrite: bool = True):
    """
    Write DataFrame to CSV.
    Default overwrites each run so repeated scans on the same day don't stack up.
    Set overwrite=False to append.
    """
    out_path.parent.mkdir(parents=True, exist_ok=True)
    if overwrite:
        df.to_csv(out_path, mode="w", header=True, index=False)
    else:
        header = not out_path.exists()
        df.to_csv(out_path, mode="a", header=header, index=False)

def today_filename(prefix: str, unique: bool = False, root: Path | str = "logs") -> Path:
    """
    Returns path like logs/prefix_YYYY-MM-DD.csv.
    If unique=True, include timestamp to second for multiple runs per day.
    """
    if unique:
        stamp = datetime.now().strftime("%Y-%m-%d_%H%M%S")
        return Path(root) / f"{prefix}_{stamp}.csv"
    return Path(root) / f"{prefix}_{date.today()}.csv"


# ---------- console one-liners (safe alongside tqdm progress bars) ----------
def logline(msg: str) -> None:
    tqdm.write(msg)

def explain_log(symbol: str, reason: str, details: dict | None = None, enabled: bool = True) -> None:
    """`[SYM] reject: reason - k=v, ...` (first 6 details only)."""
    if not enabled:
        return
    parts = []
    if details:
        for k, v in list(details.items())[:6]:
            parts.append(f"{k}={v}")
    suffix = f" - {', '.join(parts)}" if parts else ""
    logline(f"[{symbol}] reject: {reason}{suffix}")
