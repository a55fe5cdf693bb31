"""
PoolParty CLI — Command-line interface for the pool signaling channel.
"""

import argparse
import asyncio
import logging
import os
import sys

from .codec import CodecError, describe, hex_to_integer, integer_to_digits
from .config import ConfigError, PoolConfig, PRESETS, DEFAULT_PRESET, STRATEGY_NAMES
from .session import Participant, run_local_pair, DEFAULT_CYCLES
from .trace import TraceRecorder


def load_env():
    """Load .env file if present."""
    for path in ['.env', os.path.expanduser('~/.poolparty/.env')]:
        if os.path.exists(path):
            with open(path) as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith('#') and '=' in line:
                        k, v = line.split('=', 1)
                        os.environ.setdefault(k.strip(), v.strip())
            break


def env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


def build_config(args) -> PoolConfig:
    """Preset from --preset/env, then env overrides, then CLI overrides."""
    config = PoolConfig.from_env(preset=getattr(args, "preset", None))
    overrides = {
        "pulse_ms": getattr(args, "pulse_ms", None),
        "settling_time_ms": getattr(args, "settling_ms", None),
        "strategy": getattr(args, "strategy", None),
    }
    values = config.to_dict()
    values.update({k: v for k, v in overrides.items() if v is not None})
    return PoolConfig(**values)


def build_pool(args, config, recorder):
    if args.pool == "mqtt":
        from .mqtt_pool import MqttPool
        return MqttPool(config, mqtt_host=args.mqtt_host, mqtt_port=args.mqtt_port,
                        mqtt_user=args.mqtt_user, mqtt_pass=args.mqtt_pass,
                        recorder=recorder)
    from .ws_pool import WebSocketPool
    return WebSocketPool(config, url=args.url, recorder=recorder,
                         open_timeout=args.open_timeout)


def cmd_run(args):
    """Join the channel: automatic cycles or the manual console."""
    config = build_config(args)
    recorder = TraceRecorder()

    async def main():
        pool = build_pool(args, config, recorder)
        participant = Participant(pool, name=args.name)
        try:
            if args.manual:
                from .console import Console
                await Console(participant).interact()
            else:
                await participant.run(args.cycles)
        finally:
            await pool.aclose()
        return participant

    print(f"🏊 Joining pool via {args.pool} | preset={args.preset or DEFAULT_PRESET} "
          f"| {config.num_bits:g} bits/cycle, {config.cycle_ms}ms/cycle")
    try:
        participant = asyncio.run(main())
    except KeyboardInterrupt:
        print("\n👋 Stopped")
        return

    if args.trace:
        recorder.dump(args.trace)
        print(f"🧾 Trace: {len(recorder)} samples → {args.trace}")
    s = participant.stats()
    if s["cycles"]:
        print(f"\n📊 {s['name']}: {s['sent']} sent, {s['received']} received "
              f"in {s['cycles']} cycles")


def cmd_demo(args):
    """Run both participants in-process against one shared counter."""
    config = build_config(args)
    report = asyncio.run(run_local_pair(config, cycles=args.cycles,
                                        acquire_delay_ms=args.acquire_delay_ms,
                                        seed=args.seed))
    for row in report["rows"]:
        mark = "✅" if row["match"] else "❌"
        print(f"  {mark} cycle {row['cycle']:>2}: sent {row['sent']}  received {row['received']}")
    s = report["summary"]
    print(f"\n📊 {s['cycles'] - s['errors']}/{s['cycles']} matched | "
          f"{s['num_bits']:g} bits/cycle | {s['bits_per_second']:.1f} bit/s raw")
    if s["errors"]:
        sys.exit(1)


def cmd_encode(args):
    """Show the pulse levels that would carry a value."""
    config = build_config(args)
    try:
        value = int(args.value, 0)
        d = describe(value, config)
    except (ValueError, CodecError) as e:
        print(f"❌ {e}")
        sys.exit(1)
    print(f"Hex:    {d['hex']} ({d['hex_width']} chars, {d['num_bits']:g} bits)")
    print(f"Digits: {d['digits']} (least significant first)")
    print(f"Levels: {d['levels']} free units per pulse")


def cmd_decode(args):
    """Decode a hex payload back into pulse digits."""
    config = build_config(args)
    try:
        value = hex_to_integer(args.hex)
        digits = integer_to_digits(value, config.list_size, config.max_value)
    except CodecError as e:
        print(f"❌ {e}")
        sys.exit(1)
    print(f"Value:  {value}")
    print(f"Digits: {digits} (least significant first)")


def cmd_presets(args):
    """List channel presets."""
    print("🏊 PoolParty Presets\n")
    for name in sorted(PRESETS):
        c = PoolConfig.from_preset(name)
        print(f"  {name:>8}: list_size={c.list_size} max_slots={c.max_slots} "
              f"max_value={c.max_value} pulse={c.pulse_ms}ms settle={c.settling_time_ms}ms "
              f"strategy={c.strategy}")
        print(f"  {'':>8}  {c.num_bits:g} bits/cycle, hex width {c.hex_width}, "
              f"{c.bits_per_second:.1f} bit/s raw")


def main():
    """PoolParty CLI entry point."""
    load_env()

    logging.basicConfig(
        level=logging.DEBUG if env_flag("POOLPARTY_VERBOSE") else logging.INFO,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    parser = argparse.ArgumentParser(
        prog="poolparty",
        description="PoolParty — covert signaling through a shared connection pool"
    )
    sub = parser.add_subparsers(dest="command", help="Command")

    # Shared channel args
    def add_channel_args(p):
        p.add_argument("--preset", default=os.environ.get("POOLPARTY_PRESET"),
                       choices=sorted(PRESETS))
        p.add_argument("--pulse-ms", type=int, default=None)
        p.add_argument("--settling-ms", type=int, default=None)
        p.add_argument("--strategy", default=None, choices=STRATEGY_NAMES)

    def add_mqtt_args(p):
        p.add_argument("--mqtt-host", default=os.environ.get("MQTT_HOST", "127.0.0.1"))
        p.add_argument("--mqtt-port", type=int, default=int(os.environ.get("MQTT_PORT", "1883")))
        p.add_argument("--mqtt-user", default=os.environ.get("MQTT_USER"))
        p.add_argument("--mqtt-pass", default=os.environ.get("MQTT_PASS"))

    # run
    p = sub.add_parser("run", help="Join the channel against a real pool")
    add_channel_args(p)
    add_mqtt_args(p)
    p.add_argument("--pool", default=os.environ.get("POOLPARTY_POOL", "websocket"),
                   choices=["websocket", "mqtt"])
    p.add_argument("--url", default=os.environ.get(
        "POOLPARTY_WS_URL", "wss://poolparty.privacytests.org/websockets"))
    p.add_argument("--open-timeout", type=float, default=10.0)
    p.add_argument("--cycles", type=int, default=DEFAULT_CYCLES)
    p.add_argument("--manual", action="store_true", default=env_flag("POOLPARTY_DEBUG"),
                   help="Manual console instead of automatic cycles")
    p.add_argument("--name", default=os.environ.get("POOLPARTY_NAME", "local"))
    p.add_argument("--trace", default=None, metavar="FILE", help="Write JSON trace")

    # demo
    p = sub.add_parser("demo", help="Two participants on an in-process pool")
    add_channel_args(p)
    p.add_argument("--cycles", type=int, default=DEFAULT_CYCLES)
    p.add_argument("--acquire-delay-ms", type=float, default=0)
    p.add_argument("--seed", type=int, default=None)

    # encode
    p = sub.add_parser("encode", help="Show the pulse levels for a value")
    add_channel_args(p)
    p.add_argument("value", help="Payload integer (decimal or 0x-prefixed)")

    # decode
    p = sub.add_parser("decode", help="Split a hex payload into digits")
    add_channel_args(p)
    p.add_argument("hex", help="Hex payload")

    # presets
    sub.add_parser("presets", help="List channel presets")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(0)

    commands = {
        "run": cmd_run, "demo": cmd_demo,
        "encode": cmd_encode, "decode": cmd_decode,
        "presets": cmd_presets,
    }

    try:
        commands[args.command](args)
    except ConfigError as e:
        print(f"❌ {e}")
        sys.exit(1)
