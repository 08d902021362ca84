# src/eventproxy/wire_config.py
from __future__ import annotations

import importlib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Tuple

import yaml  # PyYAML

from eventproxy.core import log
from eventproxy.core.contracts import ALL_EVENT, Callback
from eventproxy.core.dispatcher import Dispatcher

l = log.get("wire_config")


@dataclass(slots=True)
class DispatcherConfig:
    name: str = "dispatcher"
    all_event: str = ALL_EVENT
    metrics: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any] | None) -> "DispatcherConfig":
        d = d or {}
        return cls(
            name=str(d.get("name", "dispatcher")),
            all_event=str(d.get("all_event", ALL_EVENT)),
            metrics=bool(d.get("metrics", False)),
        )

    def build(self) -> Dispatcher:
        return Dispatcher(self.name, all_event=self.all_event, metrics=self.metrics)


def _imp(module: str, attr: str) -> Callback:
    mod = importlib.import_module(module)
    return getattr(mod, attr)


def _read(yaml_path: str) -> Dict[str, Any]:
    data = yaml.safe_load(Path(yaml_path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{yaml_path}: top level must be a mapping")
    return data


def load_config(yaml_path: str) -> DispatcherConfig:
    return DispatcherConfig.from_dict(_read(yaml_path).get("dispatcher"))


def build_from_yaml(yaml_path: str) -> Tuple[Dispatcher, List[Callback]]:
    """Read the yaml file, build the dispatcher and wire its subscriptions."""
    data = _read(yaml_path)
    dispatcher = DispatcherConfig.from_dict(data.get("dispatcher")).build()

    wired: List[Callback] = []
    for i, s in enumerate(data.get("subscriptions") or []):
        missing = [k for k in ("event", "module", "callable") if not (isinstance(s, dict) and s.get(k))]
        if missing:
            raise ValueError(f"{yaml_path}: subscription #{i} missing {', '.join(missing)}")
        cb = _imp(s["module"], s["callable"])
        if s.get("head"):
            dispatcher.register_at_head(s["event"], cb)
        else:
            dispatcher.register(s["event"], cb)
        wired.append(cb)

    l.info("wired %d subscription(s) into %s", len(wired), dispatcher.name)
    return dispatcher, wired
