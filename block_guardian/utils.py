import os
import datetime


def ensure_dir(path: str) -> None:
    if path:
        os.makedirs(path, exist_ok=True)


def seconds_to_mmss(seconds: float) -> str:
    seconds = max(0, int(seconds))
    m, s = divmod(seconds, 60)
    return f"{m:02d}:{s:02d}"


def today_str(now: float | None = None) -> str:
    if now is None:
        return str(datetime.date.today())
    return str(local_time(now).date())


def local_time(ts: float) -> datetime.datetime:
    return datetime.datetime.fromtimestamp(ts)


def same_local_day(a: float, b: float) -> bool:
    return local_time(a).date() == local_time(b).date()
