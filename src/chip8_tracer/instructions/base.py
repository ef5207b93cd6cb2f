# chip8_tracer/instructions/base.py
"""
CHIP-8命令実装用の共通ユーティリティ。
"""
from dataclasses import dataclass
from typing import List

from chip8_tracer.core.display import FrameBuffer
from chip8_tracer.core.keypad import Keypad
from chip8_tracer.core.random_source import RandomSource
from chip8_tracer.core.snapshot import Operation
from chip8_tracer.core.state import Chip8CpuState
from chip8_tracer.transport.bus import Bus

# @intent:data_structure 命令の実行関数が参照・変更する全ての状態をまとめたものです。
@dataclass
class ExecutionContext:
    state: Chip8CpuState
    bus: Bus
    display: FrameBuffer
    keypad: Keypad
    random_source: RandomSource

# --- オペランドフィールドの抽出 ---
# X = bits 11-8, Y = bits 7-4, N = bits 3-0, NN = bits 7-0, NNN = bits 11-0

def field_x(opcode: int) -> int:
    return (opcode >> 8) & 0xF

def field_y(opcode: int) -> int:
    return (opcode >> 4) & 0xF

def field_n(opcode: int) -> int:
    return opcode & 0xF

def field_nn(opcode: int) -> int:
    return opcode & 0xFF

def field_nnn(opcode: int) -> int:
    return opcode & 0xFFF

# --- オペランドの表示形式 ---

def reg(index: int) -> str:
    return f"V{index:X}"

def byte_operand(value: int) -> str:
    return f"${value:02X}"

def addr_operand(value: int) -> str:
    return f"${value:03X}"

# @intent:utility_function Operationの生成を共通化します。
def make_operation(opcode: int, pattern: str, mnemonic: str, operands: List[str]) -> Operation:
    return Operation(
        opcode_hex=f"{opcode:04X}",
        mnemonic=mnemonic,
        operands=operands,
        pattern=pattern,
        opcode=opcode,
    )

# @intent:utility_function スキップ命令用。PCを次の命令の先へ進めます。
def skip_next(state: Chip8CpuState) -> None:
    state.pc = (state.pc + 2) & 0xFFFF
