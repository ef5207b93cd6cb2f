# chip8_tracer/debugger/debugger.py
"""
デバッガモジュール。

CHIP-8 CPUを1命令ずつ、または停止条件まで実行し、各ステップのスナップショットを履歴として保持します。
停止条件はブレークポイント、キー入力待ち、コアが送出した例外、ステップ数の上限、stop() の呼び出しです。
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional
import time

from chip8_tracer.core.cpu import Chip8Cpu
from chip8_tracer.core.errors import Chip8Error
from chip8_tracer.core.snapshot import Snapshot
from chip8_tracer.core.state import Chip8CpuState
from chip8_tracer.transport.bus import BusAccess, BusAccessType

# @intent:responsibility ブレークポイントの条件タイプを定義します。
class BreakpointConditionType(Enum):
    PC_MATCH = "PC_MATCH"               # 次に実行する命令のアドレス
    MEMORY_READ = "MEMORY_READ"         # 命令がアドレスを読んだ（フェッチを含む）
    MEMORY_WRITE = "MEMORY_WRITE"       # 命令がアドレスに書いた
    REGISTER_VALUE = "REGISTER_VALUE"   # レジスタが指定値になっている
    REGISTER_CHANGE = "REGISTER_CHANGE" # 直前のステップでレジスタが変化した
    KEY_WAIT = "KEY_WAIT"               # キー入力待ちに入った

# @intent:responsibility run() が停止した理由を表します。
class StopReason(Enum):
    BREAKPOINT = "BREAKPOINT"
    KEY_WAIT = "KEY_WAIT"
    ERROR = "ERROR"
    STEP_LIMIT = "STEP_LIMIT"
    STOPPED = "STOPPED"

# @intent:responsibility ブレークポイントの条件を表す不変オブジェクトです。
@dataclass(frozen=True)
class BreakpointCondition:
    """
    register_name には "pc", "i", "sp", "delay_timer", "sound_timer", "v0".."vf" を指定します。
    enabled=False の条件は登録されたまま評価されません。
    """
    condition_type: BreakpointConditionType
    value: Optional[int] = None
    address: Optional[int] = None
    register_name: Optional[str] = None
    enabled: bool = True

    # @intent:responsibility 実行後のスナップショットに対して条件を評価します。PC_MATCHは対象外です。
    def matches(self, snapshot: Snapshot, previous: Chip8CpuState) -> bool:
        kind = self.condition_type
        if kind == BreakpointConditionType.MEMORY_READ:
            return self._accessed(snapshot, BusAccessType.READ)
        if kind == BreakpointConditionType.MEMORY_WRITE:
            return self._accessed(snapshot, BusAccessType.WRITE)
        if kind == BreakpointConditionType.REGISTER_VALUE:
            return self.register_name is not None and \
                snapshot.state.read_register(self.register_name) == self.value
        if kind == BreakpointConditionType.REGISTER_CHANGE:
            if self.register_name is None:
                return False
            current = snapshot.state.read_register(self.register_name)
            return current is not None and current != previous.read_register(self.register_name)
        if kind == BreakpointConditionType.KEY_WAIT:
            return snapshot.state.awaiting_key
        return False

    def _accessed(self, snapshot: Snapshot, access_type: BusAccessType) -> bool:
        return any(a.access_type == access_type and a.address == self.address for a in snapshot.bus_activity)


# @intent:responsibility CPUの実行制御、ブレークポイント管理、実行履歴によるステップバックを提供します。
class Debugger:
    def __init__(self, cpu: Chip8Cpu, history_limit: Optional[int] = None):
        self._cpu = cpu
        self._conditions: List[BreakpointCondition] = []
        self._running = False
        self._history_limit = history_limit
        self._history: List[Snapshot] = []
        # 履歴の各エントリを取り消す時に書き戻す書き込み (_history と同じ長さ)
        self._undo_writes: List[List[BusAccess]] = []
        # 例外で中断したステップの書き込み。履歴には積まれない
        self._pending_writes: List[BusAccess] = []
        self._last_snapshot: Optional[Snapshot] = None
        self._last_error: Optional[Chip8Error] = None
        self._state_before_step: Chip8CpuState = cpu.get_state().copy()
        # 履歴を全て巻き戻した時に復元する時点
        self._base_state: Chip8CpuState = cpu.get_state().copy()
        self._base_framebuffer: bytes = cpu.get_framebuffer()

    @property
    def last_error(self) -> Optional[Chip8Error]:
        return self._last_error

    @property
    def is_running(self) -> bool:
        return self._running

    # --- ブレークポイント管理 ---

    def add_breakpoint(self, condition: BreakpointCondition) -> None:
        if condition not in self._conditions:
            self._conditions.append(condition)

    # @intent:responsibility 登録済みの条件を置き換えます（有効/無効の切り替えなど）。
    def update_breakpoint(self, old_condition: BreakpointCondition, new_condition: BreakpointCondition) -> None:
        for index, condition in enumerate(self._conditions):
            if condition == old_condition:
                self._conditions[index] = new_condition
                return

    def remove_breakpoint(self, condition: BreakpointCondition) -> None:
        if condition in self._conditions:
            self._conditions.remove(condition)

    def get_breakpoints(self) -> List[BreakpointCondition]:
        return list(self._conditions)

    def _active(self) -> List[BreakpointCondition]:
        return [c for c in self._conditions if c.enabled]

    def _at_pc_breakpoint(self, pc: int) -> bool:
        return any(c.condition_type == BreakpointConditionType.PC_MATCH and c.value == pc for c in self._active())

    def _hits_breakpoint(self, snapshot: Snapshot) -> bool:
        return any(c.matches(snapshot, self._state_before_step) for c in self._active())

    # --- 履歴 ---

    def get_history(self) -> List[Snapshot]:
        return list(self._history)

    def get_last_snapshot(self) -> Optional[Snapshot]:
        return self._last_snapshot

    # @intent:responsibility 1命令を実行し、スナップショットを履歴に積んで返します。
    # @intent:post-condition コアの例外はそのまま送出され、履歴には何も追加されません。
    #                       中断したステップの書き込みは保留され、step_back() で書き戻されます。
    def step_instruction(self) -> Snapshot:
        self._state_before_step = self._cpu.get_state().copy()
        try:
            snapshot = self._cpu.step()
        except Chip8Error:
            self._pending_writes.extend(self._writes_of(self._cpu.bus.get_and_clear_activity_log()))
            raise
        self._last_snapshot = snapshot
        self._history.append(snapshot)
        self._undo_writes.append(self._pending_writes + self._writes_of(snapshot.bus_activity))
        self._pending_writes = []

        if self._history_limit is not None and len(self._history) > self._history_limit:
            dropped = self._history.pop(0)
            self._undo_writes.pop(0)
            self._base_state = dropped.state
            self._base_framebuffer = dropped.framebuffer
        return snapshot

    @staticmethod
    def _writes_of(activity: List[BusAccess]) -> List[BusAccess]:
        return [a for a in activity if a.access_type == BusAccessType.WRITE and a.previous_data is not None]

    def _revert(self, writes: List[BusAccess]) -> None:
        bus = self._cpu.bus
        for access in reversed(writes):
            bus.load(access.address, access.previous_data)

    # @intent:responsibility 最後のステップを取り消し、1つ前のスナップショットを返します。
    def step_back(self) -> Optional[Snapshot]:
        """
        取り消したステップの書き込みを逆順に元の値へ戻し、レジスタとフレームバッファを
        1つ前のスナップショットの内容で復元します。履歴が尽きた場合は基点の状態に戻し、None を返します。

        直前のステップが例外で中断していた場合は、その書き込みだけを戻し、
        最後に記録されたスナップショット (履歴は減らさない) の状態に復元します。
        """
        if self._pending_writes:
            self._revert(self._pending_writes)
            self._pending_writes = []
        elif self._history:
            self._history.pop()
            self._revert(self._undo_writes.pop())
        else:
            return None

        target = self._history[-1] if self._history else None
        if target is None:
            self._cpu.restore_state(self._base_state)
            self._cpu.display.restore(self._base_framebuffer)
        else:
            self._cpu.restore_state(target.state)
            self._cpu.display.restore(target.framebuffer)
        self._last_snapshot = target
        return target

    # --- 連続実行 ---

    def run(self, max_steps: Optional[int] = None) -> StopReason:
        self._running = True
        self._last_error = None
        executed = 0

        # ブレークポイント上から再開する場合、その命令は実行する
        if self._at_pc_breakpoint(self._cpu.get_state().pc) and not self._cpu.awaiting_key:
            if self._guarded_step() is None:
                return StopReason.ERROR
            executed += 1

        while self._running:
            time.sleep(0)

            if max_steps is not None and executed >= max_steps:
                self._running = False
                return StopReason.STEP_LIMIT

            pc = self._cpu.get_state().pc
            if self._at_pc_breakpoint(pc):
                self._running = False
                print(f"Breakpoint hit at PC: {pc:#06x}")
                return StopReason.BREAKPOINT

            snapshot = self._guarded_step()
            if snapshot is None:
                return StopReason.ERROR
            executed += 1

            if self._hits_breakpoint(snapshot):
                self._running = False
                print(f"Breakpoint hit at PC: {snapshot.state.pc:#06x}")
                return StopReason.BREAKPOINT

            # 待ち状態でも1ステップは実行し、報告済みのキー押下があれば再開させる
            if snapshot.state.awaiting_key:
                self._running = False
                print(f"Waiting for key at PC: {snapshot.state.pc:#06x}")
                return StopReason.KEY_WAIT

        return StopReason.STOPPED

    # @intent:responsibility 1命令を実行し、コアの例外であれば記録して実行を止めます。
    def _guarded_step(self) -> Optional[Snapshot]:
        try:
            return self.step_instruction()
        except Chip8Error as e:
            self._last_error = e
            self._running = False
            print(f"Execution stopped at PC: {self._cpu.get_state().pc:#06x}: {e}")
            return None

    def stop(self) -> None:
        self._running = False
