# chip8_tracer/core/state.py
"""
Core Layer (CPU状態)

このモジュールは、CHIP-8プロセッサの可変状態（レジスタ群、タイマ、コールスタック、
実行モード）を保持するデータ構造を定義します。
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional

from chip8_tracer.core.stack import CallStack

# @intent:constant プログラムの配置開始アドレス（リセット時のPC）。
PROGRAM_START = 0x200
# @intent:constant 汎用レジスタ数とフラグレジスタ(VF)のインデックス。
REGISTER_COUNT = 16
REGISTER_VF = 0xF

# @intent:responsibility 命令サイクルの実行モード（通常実行 / キー入力待ち）を表します。
class ExecutionMode(Enum):
    RUNNING = "RUNNING"
    AWAITING_KEY = "AWAITING_KEY"

# @intent:responsibility CHIP-8の全てのレジスタ・タイマ・スタック・実行モードを保持します。
@dataclass
class Chip8CpuState:
    """
    CHIP-8 CPUの状態を保持するデータクラス。

    v[0x0]..v[0xF] は8bit汎用レジスタで、v[0xF] (VF) は算術・シフト・描画命令の
    キャリー/ボロー/衝突フラグとして上書きされます。
    """
    pc: int = PROGRAM_START          # Program Counter
    v: List[int] = field(default_factory=lambda: [0] * REGISTER_COUNT)
    i: int = 0x0000                  # Index Register
    delay_timer: int = 0
    sound_timer: int = 0
    opcode: int = 0x0000             # 最後にフェッチした命令語
    stack: CallStack = field(default_factory=CallStack)
    mode: ExecutionMode = ExecutionMode.RUNNING
    key_register: Optional[int] = None  # FX0A の格納先レジスタ (AWAITING_KEY 中のみ)

    @property
    def vf(self) -> int:
        return self.v[REGISTER_VF]

    @vf.setter
    def vf(self, value: int) -> None:
        self.v[REGISTER_VF] = value & 0xFF

    # スタックの深さ。UIやブレークポイント向けに SP として公開します。
    @property
    def sp(self) -> int:
        return len(self.stack)

    @property
    def awaiting_key(self) -> bool:
        return self.mode is ExecutionMode.AWAITING_KEY

    # @intent:responsibility 両タイマを1だけ減算します（0未満にはなりません）。
    def tick_timers(self) -> None:
        if self.delay_timer > 0:
            self.delay_timer -= 1
        if self.sound_timer > 0:
            self.sound_timer -= 1

    # @intent:responsibility "v3", "i", "delay_timer" などの名前でレジスタ値を読み出します。
    # @intent:post-condition 未知の名前の場合はNoneを返します。
    def read_register(self, name: str) -> Optional[int]:
        key = name.lower()
        if len(key) == 2 and key[0] == "v":
            try:
                return self.v[int(key[1], 16)]
            except ValueError:
                return None
        if key in ("pc", "i", "sp", "delay_timer", "sound_timer", "opcode"):
            return getattr(self, key)
        return None

    # @intent:responsibility スタックやレジスタ配列を含む独立したコピーを返します。
    def copy(self) -> "Chip8CpuState":
        return replace(self, v=list(self.v), stack=self.stack.copy())
