"""Replay recorded sensor sessions through the engine for offline analysis.

A session log is JSONL, one timestamped input per line::

    {"type": "motion", "t": 0.0, "activity": "walking", "confidence": "high"}
    {"type": "hr", "t": 12.0, "bpm": 95}
    {"type": "accel", "t": 13.0, "x": 0.98, "y": 0.02, "z": 0.11}
    {"type": "tick", "t": 20.0}
    {"type": "posture", "t": 30.0, "standing": false}

``t`` is seconds on any monotonic clock.  ``tick`` lets pending deadlines
expire; ``posture`` is a manual override.
"""

from __future__ import annotations

import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Iterable

from orthohr.config import MonitorConfig
from orthohr.engine import MonitorEngine, PostureUpdate, SampleResult
from orthohr.errors import ReplayError

ENTRY_TYPES = ("hr", "motion", "accel", "tick", "posture")


def _posture_outputs(update: PostureUpdate | None) -> list[dict]:
    if update is None:
        return []
    change = update.change
    outputs = [{
        "type": "posture",
        "from": change.previous.value,
        "to": change.current.value,
        "delayed": change.delayed,
        "source": change.source,
    }]
    if update.event_update is not None:
        outputs.append({
            "type": f"event_{update.event_update.kind}",
            "event": update.event_update.event.to_dict(),
        })
    return outputs


def _sample_outputs(result: SampleResult | None) -> list[dict]:
    if result is None:
        return []
    outputs = _posture_outputs(result.posture_update)
    if result.event_update is not None:
        outputs.append({
            "type": f"event_{result.event_update.kind}",
            "event": result.event_update.event.to_dict(),
        })
    if result.change is not None:
        outputs.append({"type": "significant_change", **asdict(result.change)})
    if result.alert is not None:
        outputs.append({
            "type": "alert",
            "severity": result.alert.severity.value,
            "delta": result.alert.delta,
            "message": result.alert.message,
        })
    return outputs


def apply_entry(engine: MonitorEngine, entry: dict[str, Any]) -> list[dict]:
    """Feed one parsed log entry to *engine*. Returns its outputs.

    Raises KeyError/TypeError/ValueError for structurally broken entries.
    """
    kind = entry["type"]
    t = float(entry["t"])

    if kind == "hr":
        bpm = entry["bpm"]
        if isinstance(bpm, float) and bpm.is_integer():
            bpm = int(bpm)
        result = engine.process_heart_rate(bpm, t)
        outputs = _sample_outputs(result)
        if result is not None and result.should_forward:
            outputs.insert(0, {"type": "forward", "bpm": result.sample.bpm, "delta": result.delta})
        return outputs
    if kind == "motion":
        updates = engine.observe_motion(entry["activity"], entry["confidence"], t)
        return [out for update in updates for out in _posture_outputs(update)]
    if kind == "accel":
        return _posture_outputs(engine.observe_accel(entry["x"], entry["y"], entry["z"], t))
    if kind == "tick":
        return _posture_outputs(engine.poll(t))
    if kind == "posture":
        return _posture_outputs(engine.set_posture(bool(entry["standing"]), t))
    raise ValueError(f"unknown entry type {kind!r}")


def replay_entries(
    entries: Iterable[dict[str, Any]],
    engine: MonitorEngine | None = None,
) -> list[dict]:
    """Replay already-parsed entries. Returns one record per entry with outputs."""
    engine = engine or MonitorEngine()
    records = []
    for i, entry in enumerate(entries, 1):
        outputs = apply_entry(engine, entry)
        records.append({"line": i, "t": float(entry["t"]), "type": entry["type"], "outputs": outputs})
    return records


def _format_output(out: dict) -> str:
    kind = out["type"]
    if kind == "posture":
        tag = " (delayed)" if out["delayed"] else ""
        return f"posture: {out['from']} -> {out['to']} via {out['source']}{tag}"
    if kind.startswith("event_"):
        ev = out["event"]
        return (
            f"{kind.replace('_', ' ')}: +{ev['increase']} BPM "
            f"({ev['baseline_heart_rate']}→{ev['peak_heart_rate']}), "
            f"sustained {ev['sustained_duration']:.0f}s, severity {ev['severity']}"
            + (f", recovered in {ev['recovery_time']:.0f}s" if ev["is_recovered"] else "")
        )
    if kind == "significant_change":
        return f"significant change: {out['delta']:+d} BPM ({out['from_rate']}→{out['to_rate']})"
    if kind == "alert":
        return f"{out['severity']} alert: {out['delta']:+d} BPM"
    if kind == "forward":
        return f"forward: {out['bpm']} BPM (Δ{out['delta']})"
    return str(out)


def replay_file(
    capture_path: str,
    output_path: str | None = None,
    verbose: bool = False,
    config: MonitorConfig | None = None,
    engine: MonitorEngine | None = None,
    strict: bool = False,
) -> list[dict]:
    """Replay a .jsonl session log through a monitoring engine.

    Args:
        capture_path: Path to the .jsonl session log.
        output_path: Optional path to write the replay records as JSON.
        verbose: If True, also print entries that produced no output.
        config: Engine configuration (ignored when *engine* is given).
        engine: Engine to drive; a fresh one is built if omitted.
        strict: Raise :class:`ReplayError` on malformed lines instead of
            skipping them.

    Returns:
        List of replay records.
    """
    path = Path(capture_path)
    if not path.exists():
        print(f"File not found: {capture_path}")
        return []

    engine = engine or MonitorEngine(config)
    records: list[dict] = []
    total = 0
    skipped = 0
    produced = 0

    print(f"Replaying {path.name}...\n")

    with open(path) as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue

            try:
                entry = json.loads(line)
                outputs = apply_entry(engine, entry)
            except json.JSONDecodeError as e:
                if strict:
                    raise ReplayError(line_num, f"invalid JSON ({e.msg})") from e
                skipped += 1
                if verbose:
                    print(f"  [line {line_num}] Invalid JSON, skipping")
                continue
            except (KeyError, TypeError, ValueError) as e:
                if strict:
                    raise ReplayError(line_num, f"malformed entry ({e})") from e
                skipped += 1
                if verbose:
                    print(f"  [line {line_num}] Malformed entry ({e}), skipping")
                continue

            total += 1
            t = float(entry["t"])
            record = {"line": line_num, "t": t, "type": entry["type"], "outputs": outputs}

            if outputs:
                produced += 1
                for out in outputs:
                    if out["type"] == "forward" and not verbose:
                        continue
                    print(f"  [{t:8.1f}s] {_format_output(out)}")
            elif verbose:
                print(f"  [{t:8.1f}s] {entry['type']} (no output)")

            records.append(record)

    print(f"\nSummary: {total} entries, {produced} with output, {skipped} skipped, "
          f"{len(engine.events)} orthostatic event(s)")

    if output_path:
        with open(output_path, "w") as out:
            json.dump(records, out, indent=2)
        print(f"Output written to {output_path}")

    return records


def main() -> None:
    if len(sys.argv) < 2:
        print("Usage: python -m orthohr.replay <session.jsonl> [output.json]")
        sys.exit(1)

    capture_path = sys.argv[1]
    output_path = sys.argv[2] if len(sys.argv) > 2 and not sys.argv[2].startswith("-") else None
    verbose = "--verbose" in sys.argv or "-v" in sys.argv

    replay_file(capture_path, output_path, verbose)


if __name__ == "__main__":
    main()
