import time

def now_ms() -> float:
    return time.monotonic() * 1000.0
