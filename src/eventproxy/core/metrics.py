from __future__ import annotations

import logging
import threading
import time
from collections import deque
from statistics import mean
from typing import Any, Deque, Dict, List, Optional, Tuple

# ---------------- Utilities ----------------

LabelKey = Tuple[Tuple[str, str], ...]  # sorted (k, v) pairs
MetricKey = Tuple[str, str, LabelKey]   # (kind, name, labels)


def _labels_key(labels: Dict[str, Any] | None) -> LabelKey:
    if not labels:
        return tuple()
    return tuple(sorted((str(k), str(v)) for k, v in labels.items()))


def _pct(vals: List[float], q: float) -> float:
    if not vals:
        return 0.0
    idx = max(0, min(len(vals) - 1, int(round((len(vals) - 1) * q))))
    return vals[idx]


# ---------------- Metric types ----------------

class _Value:
    """Counter / gauge cell."""
    def __init__(self) -> None:
        self._v = 0.0
        self._lock = threading.Lock()

    def add(self, n: float) -> None:
        with self._lock:
            self._v += n

    def set(self, v: float) -> None:
        with self._lock:
            self._v = float(v)

    def value(self) -> float:
        with self._lock:
            return self._v


class _Hist:
    def __init__(self, maxlen: int = 1024) -> None:
        self._vals: Deque[float] = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def observe(self, v: float) -> None:
        with self._lock:
            self._vals.append(float(v))

    def snapshot(self) -> Dict[str, float]:
        with self._lock:
            vals = sorted(self._vals)
        if not vals:
            return {"count": 0, "min": 0.0, "max": 0.0, "mean": 0.0, "p50": 0.0, "p99": 0.0}
        return {
            "count": float(len(vals)),
            "min": vals[0],
            "max": vals[-1],
            "mean": mean(vals),
            "p50": _pct(vals, 0.50),
            "p99": _pct(vals, 0.99),
        }


# ---------------- Registry ----------------

class _Registry:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._cells: Dict[MetricKey, Any] = {}

    def get(self, kind: str, name: str, labels: Dict[str, Any] | None):
        key = (kind, name, _labels_key(labels))
        with self._lock:
            m = self._cells.get(key)
            if m is None:
                m = _Hist() if kind == "hist" else _Value()
                self._cells[key] = m
            return m

    def items(self) -> List[Tuple[MetricKey, Any]]:
        with self._lock:
            return list(self._cells.items())

    def clear(self) -> None:
        with self._lock:
            self._cells.clear()


_REG = _Registry()

# ---------------- Public API ----------------

def inc(name: str, n: float = 1.0, **labels: Any) -> None:
    _REG.get("counter", name, labels).add(n)


def gauge_set(name: str, v: float, **labels: Any) -> None:
    _REG.get("gauge", name, labels).set(v)


def observe_hist(name: str, v: float, **labels: Any) -> None:
    _REG.get("hist", name, labels).observe(v)


def reset() -> None:
    """Forget every metric (tests)."""
    _REG.clear()


class Timer:
    """Context manager: elapsed milliseconds go into a histogram."""
    def __init__(self, hist_name: str, **labels: Any) -> None:
        self.hist_name = hist_name
        self.labels = labels
        self._t0 = 0.0

    def __enter__(self):
        self._t0 = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb):
        observe_hist(self.hist_name, (time.perf_counter() - self._t0) * 1000.0, **self.labels)
        return False


# ---------------- Snapshots ----------------

def snapshot_all() -> dict:
    out: Dict[str, list] = {"counters": [], "gauges": [], "hists": []}
    for (kind, name, labels), m in _REG.items():
        row = {"name": name, "labels": dict(labels)}
        if kind == "hist":
            out["hists"].append({**row, **m.snapshot()})
        else:
            out[kind + "s"].append({**row, "value": m.value()})
    return out


def value(name: str, kind: str = "counter", **labels: Any) -> float:
    """Current value of one counter/gauge, 0.0 if it was never touched."""
    key = (kind, name, _labels_key(labels))
    for k, m in _REG.items():
        if k == key:
            return m.value()
    return 0.0


def _emit(log: logging.Logger, json_mode: bool) -> None:
    snap = snapshot_all()
    for kind in ("counters", "gauges", "hists"):
        for row in snap[kind]:
            if json_mode:
                log.info({"type": kind[:-1], **row})
            elif kind == "hists":
                log.info(
                    f"[hist] {row['name']} {row['labels']} n={int(row['count'])} "
                    f"p50={row['p50']:.3f} p99={row['p99']:.3f} max={row['max']:.3f}"
                )
            else:
                log.info(f"[{kind[:-1]}] {row['name']} {row['labels']} value={row['value']:.3f}")


def force_emit(logger: Optional[logging.Logger] = None, json_mode: bool = False) -> None:
    """Log a snapshot right now."""
    _emit(logger or logging.getLogger("eventproxy.metrics"), json_mode)


# ---------------- Exporter (log every N seconds) ----------------

class _Exporter(threading.Thread):
    def __init__(self, interval_sec: float = 5.0, json_mode: bool = False, logger: Optional[logging.Logger] = None):
        super().__init__(name="metrics-exporter", daemon=True)
        self.interval = float(interval_sec)
        self.json_mode = bool(json_mode)
        self.log = logger or logging.getLogger("eventproxy.metrics")
        self._stop_evt = threading.Event()

    def run(self) -> None:
        while not self._stop_evt.wait(max(0.1, self.interval)):
            _emit(self.log, self.json_mode)

    def stop(self, timeout: float = 1.0) -> None:
        self._stop_evt.set()
        self.join(timeout=timeout)


_EXPORTER: Optional[_Exporter] = None


def start_exporter(interval_sec: float = 5.0, json_mode: bool = False, logger: Optional[logging.Logger] = None) -> None:
    global _EXPORTER
    if _EXPORTER is not None:
        return
    _EXPORTER = _Exporter(interval_sec=interval_sec, json_mode=json_mode, logger=logger)
    _EXPORTER.start()


def stop_exporter(timeout: float = 1.0) -> None:
    global _EXPORTER
    if _EXPORTER is not None:
        _EXPORTER.stop(timeout=timeout)
        _EXPORTER = None
