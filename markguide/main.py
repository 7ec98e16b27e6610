"""Entry point for replaying a mark scenario with guide narration."""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
import sys
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from markguide.config import AppConfig, load_config
from markguide.editor import Editor, EditorMode
from markguide.geometry import sector_bounds, trigger_outline
from markguide.narration import ConsoleSink, NarrationRequest
from markguide.scenario import Scenario, load_scenario, replay
from markguide.simulation import Simulation
from markguide.timeline import Timeline
from markguide.trigger import TriggerGate


def _override_config(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    for name in ("stable_sec", "cooldown_sec", "hz"):
        value = getattr(args, name)
        if value is not None and value <= 0:
            raise ValueError(f"--{name.replace('_', '-')} must be > 0.")
    if (
        args.stable_sec is None
        and args.cooldown_sec is None
        and args.hz is None
        and not args.verbose
    ):
        return config
    return replace(
        config,
        stable_sec=args.stable_sec or config.stable_sec,
        cooldown_sec=args.cooldown_sec or config.cooldown_sec,
        tick_hz=args.hz or config.tick_hz,
        verbose=config.verbose or args.verbose,
    )


def _log_verbose(config: AppConfig, message: str) -> None:
    if config.verbose:
        print(f"[Debug] {message}", file=sys.stderr)


def _fmt(value: float) -> str:
    return f"{value:.2f}"


def _print_marks(scenario: Scenario) -> None:
    if not scenario.marks:
        print("No marks defined.")
        return
    print("\nMarks:\n")
    for i, mark in enumerate(scenario.marks, 1):
        a1, a2 = sector_bounds(mark)
        keyword = f" [{mark.keyword}]" if mark.keyword else ""
        print(
            f"  {i:2}. {mark.label:<16} "
            f"pos=({', '.join(_fmt(v) for v in mark.position)}) "
            f"size=({', '.join(_fmt(v) for v in mark.scale)}) "
            f"margin={_fmt(mark.margin)} sector=[{a1:.1f}, {a2:.1f}]{keyword}"
        )
    print()


def _print_outlines(scenario: Scenario) -> None:
    for mark in scenario.marks:
        outline = trigger_outline(mark)
        corners = " ".join(f"({_fmt(c[0])}, {_fmt(c[2])})" for c in outline.corners)
        print(f"{mark.label}:")
        print(f"  margin rect: {corners}")
        for name, ray in (("angle1", outline.ray1), ("angle2", outline.ray2)):
            end = ray[1]
            print(f"  {name} ray: -> ({_fmt(end[0])}, {_fmt(end[2])})")


def _run_replay(config: AppConfig, scenario: Scenario) -> int:
    timeline = Timeline(config.timeline, config.timeline_path)
    sink = None if config.dry_run else ConsoleSink()
    simulation = Simulation(
        gate=TriggerGate(config.stable_sec, config.cooldown_sec),
        sink=sink,
        language_code=config.language_code,
        timeline=timeline,
    )
    editor = Editor(
        simulation=simulation,
        min_height=config.min_column_height,
        verbose=config.verbose,
    )
    for mark in scenario.marks:
        editor.store.save(mark)
    editor.change_mode(EditorMode.SIMULATION)

    _log_verbose(
        config,
        f"marks={len(editor.store)} samples={len(scenario.samples)} "
        f"tick_hz={config.tick_hz} stable={config.stable_sec} cooldown={config.cooldown_sec}",
    )

    fired: list[NarrationRequest] = []
    for at, request in replay(scenario, config.tick_hz, editor.update):
        fired.append(request)
        if config.dry_run:
            print(f"[{at:7.2f}s] {request.message}")
        else:
            _log_verbose(config, f"trigger at {at:.2f}s label={request.label}")

    editor.change_mode(EditorMode.NONE)
    print(f"[Guide] {len(fired)} narration(s) triggered.", file=sys.stderr)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """CLI entry point."""

    parser = argparse.ArgumentParser(
        description="Replay a probe path over labelled marks and narrate what it reaches."
    )
    parser.add_argument("scenario", type=Path, help="YAML scenario with marks and probe samples.")
    parser.add_argument(
        "-l", "--list",
        action="store_true",
        help="List the scenario's marks and exit.",
    )
    parser.add_argument(
        "--inspect",
        action="store_true",
        help="Print each mark's trigger region outline and exit.",
    )
    parser.add_argument("--dry-run", action="store_true", help="Print messages only.")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Print verbose debug output.",
    )
    parser.add_argument(
        "--stable-sec",
        type=float,
        default=None,
        help="Seconds a situation must hold before narrating (overrides env).",
    )
    parser.add_argument(
        "--cooldown-sec",
        type=float,
        default=None,
        help="Minimum seconds between narrations (overrides env).",
    )
    parser.add_argument(
        "--hz",
        type=float,
        default=None,
        help="Replay tick rate (overrides env).",
    )

    args = parser.parse_args(argv)

    dotenv_path = find_dotenv(usecwd=True)
    load_dotenv(dotenv_path if dotenv_path else None)
    try:
        config = load_config(dry_run=args.dry_run)
        config = _override_config(config, args)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    _log_verbose(config, "using_dotenv=" + (dotenv_path if dotenv_path else "not_found"))

    try:
        scenario = load_scenario(args.scenario, min_height=config.min_column_height)
    except (OSError, ValueError) as exc:
        print(f"[Guide] Cannot load scenario: {exc}", file=sys.stderr)
        return 2

    if args.list:
        _print_marks(scenario)
        return 0
    if args.inspect:
        _print_outlines(scenario)
        return 0

    try:
        return _run_replay(config, scenario)
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
