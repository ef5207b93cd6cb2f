# chip8_tracer/app.py
"""
ヘッドレス・トレースランナーのエントリポイント。
ROMまたはYAML構成からシステムを組み立て、指定ステップ数だけ実行してトレースを出力します。
"""
import argparse
import sys
from typing import List, Optional

from chip8_tracer.config.builder import SystemBuilder
from chip8_tracer.config.loader import ConfigLoader
from chip8_tracer.config.models import SystemConfig
from chip8_tracer.core.errors import Chip8Error


def _parse_key(value: str) -> int:
    key = int(value, 16)
    if not 0 <= key <= 0xF:
        raise argparse.ArgumentTypeError(f"key must be 0-F: {value}")
    return key


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chip8-trace", description="Run a CHIP-8 program headlessly and trace it.")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("rom", nargs="?", help="raw CHIP-8 program image")
    source.add_argument("-c", "--config", help="YAML system configuration")
    parser.add_argument("-n", "--steps", type=int, default=1000, help="number of steps to run (default: 1000)")
    parser.add_argument("--seed", type=int, help="seed for the random number source")
    parser.add_argument("--trace", action="store_true", help="print one line per executed step")
    parser.add_argument("--screen", action="store_true", help="print the frame buffer when finished")
    parser.add_argument("--press", type=_parse_key, action="append", default=[], metavar="KEY",
                        help="hold a key (hex digit) down from the start; SKP/SKNP see it, "
                             "but it never ends an FX0A key wait; may be repeated")
    return parser


# @intent:responsibility トレースランナーを実行し、終了コードを返します。
def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.config:
        config = ConfigLoader().load_from_file(args.config)
    else:
        config = SystemConfig(program=args.rom)
    if args.seed is not None:
        config.random_seed = args.seed
    config.held_keys = list(config.held_keys) + args.press

    cpu, _ = SystemBuilder().build_system(config)

    exit_code = 0
    for _ in range(args.steps):
        try:
            snapshot = cpu.step()
        except Chip8Error as e:
            print(f"error at PC {cpu.get_state().pc:#05x}: {e}", file=sys.stderr)
            exit_code = 1
            break
        if args.trace:
            registers = " ".join(f"V{i:X}={v:02X}" for i, v in enumerate(snapshot.state.v))
            print(f"{snapshot.metadata.symbol_info:<28} I={snapshot.state.i:03X} {registers}")
        if cpu.awaiting_key:
            print(f"waiting for key at PC {cpu.get_state().pc:#05x}", file=sys.stderr)
            break

    if args.screen:
        print(cpu.display.to_text())
    return exit_code


if __name__ == '__main__':
    sys.exit(main())
