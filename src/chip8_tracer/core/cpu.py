# chip8_tracer/core/cpu.py
"""
Core Layer (CHIP-8 CPU)

このモジュールは、CHIP-8プロセッサの状態管理と命令サイクルの駆動を提供します。
具体的な命令の振る舞いはInstruction Layerに移譲されます。
"""
from enum import Enum
from typing import Dict, List, Optional, Tuple

from chip8_tracer.core import disassembler
from chip8_tracer.core.display import FrameBuffer
from chip8_tracer.core.font import seed_font
from chip8_tracer.core.keypad import Keypad
from chip8_tracer.core.random_source import RandomSource, SystemRandomSource
from chip8_tracer.core.snapshot import Metadata, Operation, Snapshot
from chip8_tracer.core.stack import CallStack, DEFAULT_STACK_CAPACITY
from chip8_tracer.core.state import Chip8CpuState, ExecutionMode
from chip8_tracer.instructions import ExecutionContext, decode_opcode, execute_instruction
from chip8_tracer.instructions.base import reg
from chip8_tracer.loader.loader import ProgramLoader
from chip8_tracer.transport.bus import Bus

# @intent:constant オリジナルハードウェアのタイマ周波数 (Hz)。
DEFAULT_TIMER_HZ = 60

# @intent:responsibility タイマ減算の駆動方式を定義します。
class TimerMode(Enum):
    PER_STEP = "per_step"   # step() 1回につき1減算
    REALTIME = "realtime"   # ホストが advance_time() で経過時間を与える

# @intent:responsibility CHIP-8 CPUのエミュレーションロジック（フェッチ、デコード、実行）を提供します。
class Chip8Cpu:
    """
    CHIP-8 CPUをエミュレートするクラス。

    全ての可変状態（レジスタ、スタック、メモリ、表示、キー）はインスタンスが所有し、
    複数のインスタンスは互いに独立したセッションとして動作します。
    """
    # @intent:pre-condition `bus`は0x000-0xFFFがマップされたBusである必要があります。
    def __init__(self, bus: Bus,
                 display: Optional[FrameBuffer] = None,
                 keypad: Optional[Keypad] = None,
                 random_source: Optional[RandomSource] = None,
                 stack_capacity: int = DEFAULT_STACK_CAPACITY,
                 timer_mode: TimerMode = TimerMode.PER_STEP,
                 timer_hz: int = DEFAULT_TIMER_HZ):
        if timer_hz <= 0:
            raise ValueError("timer_hz must be a positive integer.")
        self._bus = bus
        self._display = display if display is not None else FrameBuffer()
        self._keypad = keypad if keypad is not None else Keypad()
        self._random_source = random_source if random_source is not None else SystemRandomSource()
        self._stack_capacity = stack_capacity
        self._timer_mode = timer_mode
        self._timer_hz = timer_hz
        self._timer_remainder = 0.0
        self._cycle_count: int = 0
        self._step_count: int = 0
        self._state: Chip8CpuState = self._create_initial_state()
        self._initialize_memory()

    # @intent:responsibility 初期状態のChip8CpuStateオブジェクトを生成します。
    def _create_initial_state(self) -> Chip8CpuState:
        return Chip8CpuState(stack=CallStack(self._stack_capacity))

    # @intent:responsibility メモリを0クリアし、フォントを配置します。
    def _initialize_memory(self) -> None:
        self._bus.clear()
        seed_font(self._bus)

    # @intent:responsibility CPUをリセットし、初期状態に戻します。
    def reset(self, clear_memory: bool = True) -> None:
        """
        レジスタ・タイマ・スタックを初期化し、PCをプログラム開始アドレスに戻します。
        clear_memory=True の場合はメモリ・表示・キー状態も初期化します（プログラムは再ロードが必要）。
        """
        self._state = self._create_initial_state()
        self._cycle_count = 0
        self._step_count = 0
        self._timer_remainder = 0.0
        if clear_memory:
            self._initialize_memory()
            self._display.clear()
            self._display.consume_dirty()
            self._keypad.reset()

    # @intent:responsibility プログラムイメージをプログラム開始アドレスからロードします。
    def load_program(self, data: bytes) -> int:
        return ProgramLoader().load_bytes(data, self._bus)

    # --- 状態アクセス ---

    def get_state(self) -> Chip8CpuState:
        return self._state

    # @intent:responsibility 外部で保存された状態のコピーを現在の状態として設定します。
    def restore_state(self, state: Chip8CpuState) -> None:
        self._state = state.copy()

    @property
    def bus(self) -> Bus:
        return self._bus

    @property
    def display(self) -> FrameBuffer:
        return self._display

    @property
    def keypad(self) -> Keypad:
        return self._keypad

    @property
    def timer_mode(self) -> TimerMode:
        return self._timer_mode

    @property
    def awaiting_key(self) -> bool:
        return self._state.awaiting_key

    @property
    def step_count(self) -> int:
        return self._step_count

    # @intent:responsibility ホストの描画用に、フレームバッファの読み取り専用コピーを返します。
    def get_framebuffer(self) -> bytes:
        return self._display.pixels()

    def press_key(self, key: int) -> None:
        self._keypad.press(key)

    def release_key(self, key: int) -> None:
        self._keypad.release(key)

    # --- 命令サイクル ---

    # @intent:responsibility 現在のPCから2バイトをビッグエンディアンの命令語としてフェッチします。
    def _fetch(self) -> int:
        pc = self._state.pc
        opcode = (self._bus.read(pc) << 8) | self._bus.read(pc + 1)
        self._state.opcode = opcode
        return opcode

    def _decode(self, opcode: int) -> Operation:
        return decode_opcode(opcode, self._state.pc)

    # @intent:responsibility 実行前にPCを命令長分進めます。ジャンプ系の命令は実行時にPCを上書きします。
    def _update_pc(self, operation: Operation) -> None:
        self._state.pc = (self._state.pc + operation.length) & 0xFFFF

    def _execute(self, operation: Operation) -> None:
        context = ExecutionContext(
            state=self._state,
            bus=self._bus,
            display=self._display,
            keypad=self._keypad,
            random_source=self._random_source,
        )
        execute_instruction(operation, context)

    # @intent:responsibility CPUを1命令サイクル進め、その結果のスナップショットを返します。
    # @intent:flow キー待ち判定 -> フェッチ -> デコード -> PC更新 -> 実行 -> タイマ更新 -> スナップショット生成
    def step(self) -> Snapshot:
        """
        1命令を実行します。DecodeError / StackUnderflow / StackOverflow /
        MemoryOutOfBounds は呼び出し元に送出されます。

        フェッチまたはデコードで失敗した場合、PCは失敗した命令のアドレスのままです。
        実行中に失敗した場合 (StackUnderflow, StackOverflow, FX33/FX55/FX65/DXYN の
        MemoryOutOfBounds) は、PCは既に次の命令を指しています。
        どちらの場合もタイマは減算されません。
        """
        self._bus.get_and_clear_activity_log()
        initial_pc = self._state.pc

        wait_snapshot = self._handle_key_wait(initial_pc)
        if wait_snapshot:
            return wait_snapshot

        opcode = self._fetch()
        operation = self._decode(opcode)
        self._update_pc(operation)
        self._execute(operation)
        self._tick_step_timers()

        return self._create_snapshot(initial_pc, operation)

    # @intent:responsibility キー入力待ち状態の場合の処理を行います。
    # @intent:return 待ち状態であればその状態のSnapshot、そうでなければNone。
    def _handle_key_wait(self, initial_pc: int) -> Optional[Snapshot]:
        state = self._state
        if state.mode is not ExecutionMode.AWAITING_KEY:
            return None

        key = self._keypad.take_press()
        opcode_hex = f"{state.opcode:04X}"
        if key is None:
            # 命令のフェッチは行わず、PCも維持する
            operation = Operation(opcode_hex=opcode_hex, mnemonic="KEY WAIT", pattern="FX0A",
                                  opcode=state.opcode, cycle_count=0, length=0)
        else:
            target = state.key_register
            state.v[target] = key
            state.mode = ExecutionMode.RUNNING
            state.key_register = None
            operation = Operation(opcode_hex=opcode_hex, mnemonic="KEY", operands=[reg(target), f"{key:X}"],
                                  pattern="FX0A", opcode=state.opcode, cycle_count=0, length=0)

        self._tick_step_timers()
        return self._create_snapshot(initial_pc, operation)

    def _tick_step_timers(self) -> None:
        if self._timer_mode is TimerMode.PER_STEP:
            self._state.tick_timers()

    # @intent:responsibility 経過時間に応じてタイマを減算し、減算回数を返します。REALTIMEモード専用。
    def advance_time(self, seconds: float) -> int:
        """
        timer_hz の周期で両タイマを減算します。端数は次回の呼び出しに持ち越されます。
        """
        if self._timer_mode is not TimerMode.REALTIME:
            raise RuntimeError("advance_time() is only available in REALTIME timer mode.")
        if seconds < 0:
            raise ValueError("Elapsed time must not be negative.")
        self._timer_remainder += seconds * self._timer_hz
        ticks = int(self._timer_remainder)
        self._timer_remainder -= ticks
        for _ in range(ticks):
            self._state.tick_timers()
        return ticks

    # @intent:responsibility スナップショットを生成します。
    def _create_snapshot(self, initial_pc: int, operation: Operation) -> Snapshot:
        bus_activity = self._bus.get_and_clear_activity_log()
        self._cycle_count += operation.cycle_count
        self._step_count += 1

        return Snapshot(
            state=self._state.copy(),
            operation=operation,
            metadata=Metadata(
                cycle_count=self._cycle_count,
                symbol_info=f"{initial_pc:#05x}: {operation.text()}",
                step_count=self._step_count,
            ),
            bus_activity=bus_activity,
            framebuffer=self._display.pixels(),
        )

    # --- インスペクタ向けAPI ---

    # @intent:responsibility 現在のレジスタ値を辞書形式で提供します。
    def get_register_map(self) -> Dict[str, int]:
        s = self._state
        registers = {f"V{index:X}": value for index, value in enumerate(s.v)}
        registers.update({
            "I": s.i, "PC": s.pc, "SP": s.sp, "DT": s.delay_timer, "ST": s.sound_timer
        })
        return registers

    # @intent:responsibility 指定範囲のメモリを逆アセンブルします。
    def disassemble(self, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
        return disassembler.disassemble(self._bus, start_addr, length)
