"""CLI entry point for the worldlines visualizer."""

import argparse
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from worldlines.cache import DataCache
from worldlines.client import ApiDataAccess, DataAccess, LocalDataAccess
from worldlines.config import Config, load_config
from worldlines.context import AppContext
from worldlines.db import WorldlineDB
from worldlines.interaction.clock import RealtimeClock
from worldlines.interaction.display import MeterMode, NixieMeter, format_reading
from worldlines.interaction.linkage import parse_descriptor, resolve_parent, with_alpha
from worldlines.interaction.navigation import (
    KEY_BACK,
    KEY_DOWN,
    KEY_ENTER,
    KEY_ESCAPE,
    KEY_LEFT,
    KEY_RIGHT,
    KEY_UP,
)
from worldlines.interaction.transition import Phase, TransitionSequencer
from worldlines.interaction.viewport import position_to_year, tick_marks
from worldlines.models import EventRow, ViewMode, WorldlineRow
from worldlines.seed import migrate_initial_data

logger = logging.getLogger(__name__)

# Alpha for worldline lines that are not highlighted.
DIM_ALPHA = 0.3

# Short names accepted by ``browse`` in addition to the full key names.
KEY_ALIASES = {
    "up": KEY_UP,
    "k": KEY_UP,
    "down": KEY_DOWN,
    "j": KEY_DOWN,
    "left": KEY_LEFT,
    "right": KEY_RIGHT,
    "enter": KEY_ENTER,
    "": KEY_ENTER,
    "esc": KEY_ESCAPE,
    "back": KEY_BACK,
}


def main() -> None:
    parser = argparse.ArgumentParser(description="Worldline Timeline Visualizer")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.yaml")
    sub = parser.add_subparsers(dest="command")

    # serve command
    serve_parser = sub.add_parser("serve", help="Run the REST service")
    serve_parser.add_argument("--host", default=None, help="Bind address (default from config)")
    serve_parser.add_argument("--port", type=int, default=None, help="Port (default from config)")

    # init-db command
    sub.add_parser("init-db", help="Create the store and seed it when empty")

    # worldlines command
    wl_parser = sub.add_parser("worldlines", help="List worldlines")
    wl_parser.add_argument("--remote", action="store_true", help="Read through the REST service")

    # events command
    events_parser = sub.add_parser("events", help="List events with their branch parents")
    events_parser.add_argument("--scope", default=None, help="Only events in this worldline bucket")
    events_parser.add_argument("--remote", action="store_true", help="Read through the REST service")

    # ticks command
    ticks_parser = sub.add_parser("ticks", help="Show timeline tick marks at a zoom level")
    ticks_parser.add_argument("--zoom", type=float, default=1.0, help="Zoom factor (1-5)")
    ticks_parser.add_argument("--remote", action="store_true", help="Read through the REST service")

    # jump command
    jump_parser = sub.add_parser("jump", help="Play a meter transition in real time")
    jump_parser.add_argument("target", type=float, help="Value to converge on")
    jump_parser.add_argument("--start", type=float, default=0.0, help="Value shown before the jump")

    # meter command
    meter_parser = sub.add_parser("meter", help="Run the nixie meter in clock, counter or custom mode")
    meter_parser.add_argument("--mode", choices=[m.value for m in MeterMode], default="clock")
    meter_parser.add_argument("--value", default=NixieMeter.DEFAULT_CUSTOM_VALUE,
                              help="Number shown in custom mode (XXXXXXXX or X.XXXXXX)")
    meter_parser.add_argument("--seconds", type=float, default=10.0, help="How long to run")

    # browse command
    browse_parser = sub.add_parser("browse", help="Navigate the timeline from the terminal")
    browse_parser.add_argument("--remote", action="store_true", help="Read through the REST service")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)

    if args.command == "serve":
        _serve(config, args.host, args.port)
    elif args.command == "init-db":
        db = WorldlineDB(config)
        db.init_db()
        try:
            if migrate_initial_data(db):
                print(f"Seeded {db.count_worldlines()} worldlines, {db.count_events()} events")
            else:
                print("Store already populated")
        finally:
            db.close()
    elif args.command == "worldlines":
        with _open_access(config, args.remote) as access:
            for w in access.list_worldlines():
                print(f"  {w.id:<10} {w.name:<4} {format_reading(w.percentage)}  {w.color}")
    elif args.command == "events":
        with _open_access(config, args.remote) as access:
            _print_events(access.list_events(scope=args.scope))
    elif args.command == "ticks":
        with _open_access(config, args.remote) as access:
            cache = DataCache(access, config.timeline)
            cache.load()
            _print_ticks(cache, args.zoom)
    elif args.command == "jump":
        _jump(config, args.start, args.target)
    elif args.command == "meter":
        _meter(config, args.mode, args.value, args.seconds)
    elif args.command == "browse":
        with _open_access(config, args.remote) as access:
            _browse(config, access)
    else:
        parser.print_help()


def _serve(config: Config, host: str | None, port: int | None) -> None:
    import uvicorn

    from worldlines.server import create_app

    uvicorn.run(
        create_app(config),
        host=host or config.server.host,
        port=port or config.server.port,
    )


@contextmanager
def _open_access(config: Config, remote: bool) -> Iterator[DataAccess]:
    """Yield a data-access collaborator for one command."""
    if remote:
        access = ApiDataAccess.from_config(config)
        try:
            yield access
        finally:
            access.close()
        return

    db = WorldlineDB(config)
    db.init_db()
    try:
        yield LocalDataAccess(db)
    finally:
        db.close()


def _print_events(events: list[EventRow]) -> None:
    if not events:
        print("No events.")
        return
    for e in events:
        parent = resolve_parent(e, [c for c in events if c.scope == e.scope])
        print(f"  [{e.scope}] {e.position:6.2f}%  {e.date:<15} {e.title}")
        if e.from_worldline or e.to_worldline:
            print(f"      {_describe(e.from_worldline)} -> {_describe(e.to_worldline)}")
        if parent:
            print(f"      branches from {parent}")


def _describe(descriptor: str | None) -> str:
    """``"β: 1.130205%"`` as ``β 1.130205``; free text is shown as typed."""
    parsed = parse_descriptor(descriptor)
    if parsed is None:
        return descriptor or "?"
    name, value = parsed
    return f"{name} {format_reading(value)}"


def _print_ticks(cache: DataCache, zoom: float) -> None:
    print(f"  span {cache.start_year}-{cache.end_year}")
    for tick in tick_marks(cache.start_year, cache.end_year, zoom):
        print(f"  {tick.position:7.3f}%  {tick.label}")


def _jump(config: Config, start: float, target: float) -> None:
    clock = RealtimeClock(frame_ms=config.transition.frame_ms)
    sequencer = TransitionSequencer(clock, config.transition, initial_value=start)
    sequencer.subscribe(lambda phase: print(f"  {phase.value:<9} {sequencer.display.reading}"))
    sequencer.jump(target)
    clock.run(lambda: sequencer.transition_complete, timeout_s=sequencer.total_duration / 1000 + 5)
    print(sequencer.display.reading)


def _meter(config: Config, mode: str, value: str, seconds: float) -> None:
    clock = RealtimeClock(frame_ms=config.transition.frame_ms)
    meter = NixieMeter(clock, mode=MeterMode(mode), custom_value=value)
    meter.subscribe(lambda reading: print(f"  {reading}"))
    meter.start()
    try:
        clock.run(lambda: clock.now >= seconds * 1000, timeout_s=seconds + 5)
    finally:
        meter.stop()


def _browse(config: Config, access: DataAccess) -> None:
    clock = RealtimeClock(frame_ms=config.transition.frame_ms)
    context = AppContext.create(config, access, clock=clock)
    context.sequencer.subscribe(_print_phase)
    if context.cache.load_failed:
        print("Data service unreachable; the timeline is empty.")
    print("Keys: up/down, enter, open, esc, back, left/right, +/-, q to quit")
    _render(context)

    try:
        for line in sys.stdin:
            key = line.strip()
            if key in ("q", "quit"):
                break
            if key == "open":
                handled = _open_highlighted(context)
            else:
                handled = context.navigation.handle_key(KEY_ALIASES.get(key.lower(), key))
            if not handled:
                print(f"  (ignored: {key})")
            clock.run(
                lambda: context.sequencer.transition_complete and clock.idle,
                timeout_s=context.sequencer.total_duration / 1000 + 5,
            )
            _render(context)
    finally:
        context.close()


def _open_highlighted(context: AppContext) -> bool:
    item = context.navigation.highlighted
    if not isinstance(item, EventRow):
        return False
    return context.navigation.open_individual(item.id)


def _print_phase(phase: Phase) -> None:
    if phase is Phase.IDLE:
        return
    print(f"  ... {phase.value}")


def _render(context: AppContext) -> None:
    nav = context.navigation
    cache = context.cache
    strip = context.viewport.active_strip
    print()
    print(f"[{format_reading(context.sequencer.settled_value)}] "
          f"view={nav.view.value} zoom={context.viewport.zoom:.1f} "
          f"span={cache.start_year}-{cache.end_year}")
    if nav.view is not ViewMode.ROOT and nav.worldline:
        print(f"  worldline {nav.worldline.name} ({nav.worldline.id})")

    items = nav.visible_items()
    if not items:
        print("  (nothing here)")
    for index, item in enumerate(items):
        selected = index == nav.selected_index
        marker = ">" if selected else " "
        if isinstance(item, WorldlineRow):
            color = item.color if selected else with_alpha(item.color, DIM_ALPHA)
            print(f" {marker} {item.name:<4} {format_reading(item.percentage)}  {color}")
        else:
            year = position_to_year(item.position, cache.start_year, cache.end_year)
            seen = " " if strip.on_screen(item.position) else "~"
            print(f" {marker}{seen}{year:7.1f}  {item.date:<15} {item.title}")

    modal = nav.modal_event
    if modal:
        print()
        print(f"  == {modal.title} ({modal.date}) ==")
        if modal.lore:
            for lore_line in modal.lore.splitlines():
                print(f"  {lore_line}")


if __name__ == "__main__":
    main()
