# tests/core/test_cpu.py
"""
chip8_tracer.core.cpuモジュールの単体テスト。
命令サイクル（フェッチ→デコード→PC更新→実行→タイマ更新）と、
キー入力待ち状態、タイマ方式、エラーの伝播を検証します。
"""
import pytest

from chip8_tracer.core.cpu import Chip8Cpu, TimerMode
from chip8_tracer.core.errors import DecodeError, MemoryOutOfBounds, StackOverflow, StackUnderflow
from chip8_tracer.core.font import FONT_SET, FONT_START
from chip8_tracer.core.random_source import SequenceRandomSource
from chip8_tracer.core.snapshot import Snapshot
from chip8_tracer.core.state import ExecutionMode, PROGRAM_START
from chip8_tracer.transport.bus import BusAccessType, create_memory_bus

# @intent:test_suite CHIP-8 CPUの状態機械としての振る舞いを検証します。

def words(*opcodes: int) -> bytes:
    return b"".join(op.to_bytes(2, "big") for op in opcodes)


@pytest.fixture
def cpu():
    return Chip8Cpu(create_memory_bus(), random_source=SequenceRandomSource([0xAB]))


class TestInitialization:
    def test_initial_state(self, cpu):
        state = cpu.get_state()
        assert state.pc == PROGRAM_START
        assert state.v == [0] * 16
        assert state.i == 0
        assert state.stack.is_empty
        assert not cpu.awaiting_key
        assert cpu.get_framebuffer() == bytes(64 * 32)

    # @intent:test_case_font フォントが0x050-0x09Fに配置され、それ以外は0であることを検証します。
    def test_memory_is_zeroed_and_font_seeded(self, cpu):
        bus = cpu.bus
        assert bytes(bus.peek(FONT_START + i) for i in range(len(FONT_SET))) == FONT_SET
        assert bus.peek(0x000) == 0
        assert bus.peek(FONT_START - 1) == 0
        assert bus.peek(FONT_START + len(FONT_SET)) == 0
        assert bus.peek(0xFFF) == 0

    def test_load_program_without_steps(self, cpu):
        program = bytes(range(1, 41))
        assert cpu.load_program(program) == 40
        bus = cpu.bus
        assert bytes(bus.peek(PROGRAM_START + i) for i in range(40)) == program
        assert bytes(bus.peek(FONT_START + i) for i in range(len(FONT_SET))) == FONT_SET

    def test_load_program_too_large(self, cpu):
        with pytest.raises(MemoryOutOfBounds):
            cpu.load_program(bytes(0x1000 - PROGRAM_START + 1))
        assert cpu.bus.peek(PROGRAM_START) == 0

    def test_reset(self, cpu):
        cpu.load_program(words(0x600A))
        cpu.step()
        cpu.keypad.press(1)
        cpu.reset()
        assert cpu.get_state().v[0] == 0
        assert cpu.get_state().pc == PROGRAM_START
        assert cpu.bus.peek(PROGRAM_START) == 0
        assert cpu.keypad.pressed_keys() == []
        assert cpu.bus.peek(FONT_START) == FONT_SET[0]

    def test_reset_keeping_memory(self, cpu):
        cpu.load_program(words(0x600A))
        cpu.step()
        cpu.reset(clear_memory=False)
        assert cpu.get_state().pc == PROGRAM_START
        assert cpu.bus.peek(PROGRAM_START) == 0x60


class TestStep:
    # @intent:test_case_scenario V0=10; V1=5; V0 += V1 の3命令を実行します。
    def test_add_scenario(self, cpu):
        cpu.load_program(bytes([0x60, 0x0A, 0x61, 0x05, 0x80, 0x14]))
        for _ in range(3):
            cpu.step()
        state = cpu.get_state()
        assert state.v[0] == 15
        assert state.vf == 0
        assert state.pc == PROGRAM_START + 6

    # @intent:test_case_scenario CALL直後と RET直後のPCとスタックを検証します。
    def test_call_return_scenario(self, cpu):
        cpu.load_program(words(0x2204, 0x0000, 0x00EE))
        cpu.step()
        state = cpu.get_state()
        assert state.pc == PROGRAM_START + 4
        assert state.stack.entries() == (PROGRAM_START + 2,)

        cpu.step()
        state = cpu.get_state()
        assert state.pc == PROGRAM_START + 2
        assert state.stack.is_empty

    def test_step_returns_snapshot(self, cpu):
        cpu.load_program(words(0x6A42))
        snapshot = cpu.step()

        assert isinstance(snapshot, Snapshot)
        assert snapshot.operation.pattern == "6XNN"
        assert snapshot.operation.text() == "LD VA, $42"
        assert snapshot.metadata.symbol_info == "0x200: LD VA, $42"
        assert snapshot.metadata.step_count == 1
        assert snapshot.state.opcode == 0x6A42
        assert [(a.address, a.access_type) for a in snapshot.bus_activity] == [
            (0x200, BusAccessType.READ), (0x201, BusAccessType.READ)
        ]
        assert len(snapshot.framebuffer) == 64 * 32

    # @intent:test_case_snapshot スナップショットの状態は以降の実行の影響を受けないことを検証します。
    def test_snapshot_state_is_a_copy(self, cpu):
        cpu.load_program(words(0x6001, 0x6002))
        first = cpu.step()
        cpu.step()
        assert first.state.v[0] == 1
        assert cpu.get_state().v[0] == 2

    def test_stack_underflow(self, cpu):
        cpu.load_program(words(0x00EE))
        cpu.get_state().delay_timer = 5
        with pytest.raises(StackUnderflow):
            cpu.step()
        # PCは進み、タイマは減算されない
        assert cpu.get_state().pc == PROGRAM_START + 2
        assert cpu.get_state().delay_timer == 5

    def test_stack_overflow(self, cpu):
        cpu.load_program(words(0x2200))
        for _ in range(16):
            cpu.step()
        assert cpu.get_state().sp == 16
        with pytest.raises(StackOverflow):
            cpu.step()
        assert cpu.get_state().sp == 16

    def test_custom_stack_capacity(self):
        cpu = Chip8Cpu(create_memory_bus(), stack_capacity=2)
        cpu.load_program(words(0x2200))
        cpu.step()
        cpu.step()
        with pytest.raises(StackOverflow):
            cpu.step()

    @pytest.mark.parametrize("opcode", [0x0123, 0x00E1, 0x8008, 0x800F, 0xE000, 0xE19F, 0xF000, 0xF0FF])
    def test_decode_error(self, cpu, opcode):
        cpu.load_program(words(opcode))
        with pytest.raises(DecodeError) as excinfo:
            cpu.step()
        assert excinfo.value.opcode == opcode
        assert excinfo.value.address == PROGRAM_START
        # デコード失敗ではPCは進まない
        assert cpu.get_state().pc == PROGRAM_START

    def test_fetch_outside_memory(self, cpu):
        cpu.get_state().pc = 0xFFF
        cpu.get_state().delay_timer = 5
        with pytest.raises(MemoryOutOfBounds):
            cpu.step()
        assert cpu.get_state().pc == 0xFFF
        assert cpu.get_state().delay_timer == 5

    def test_independent_instances(self):
        a = Chip8Cpu(create_memory_bus())
        b = Chip8Cpu(create_memory_bus())
        a.load_program(words(0x6011, 0xA300, 0xF033, 0x00E0))
        for _ in range(3):
            a.step()
        a.keypad.press(4)

        assert a.get_state().v[0] == 0x11
        assert b.get_state().v[0] == 0
        assert b.bus.peek(0x300) == 0
        assert b.bus.peek(PROGRAM_START) == 0
        assert not b.keypad.is_pressed(4)

    def test_register_map(self, cpu):
        cpu.load_program(words(0x6C07, 0xA123))
        cpu.step()
        cpu.step()
        registers = cpu.get_register_map()
        assert registers["VC"] == 7
        assert registers["I"] == 0x123
        assert registers["PC"] == 0x204
        assert registers["SP"] == 0
        assert registers["DT"] == 0
        assert registers["ST"] == 0


class TestTimers:
    def test_timers_decrement_once_per_step(self, cpu):
        cpu.load_program(words(0x6000, 0x6000, 0x6000, 0x6000))
        state = cpu.get_state()
        state.delay_timer = 3
        state.sound_timer = 1
        cpu.step()
        assert (state.delay_timer, state.sound_timer) == (2, 0)
        cpu.step()
        cpu.step()
        cpu.step()
        assert (state.delay_timer, state.sound_timer) == (0, 0)

    # @intent:test_case_order FX15で設定した値は同じステップの終わりに1減算されることを検証します。
    def test_timer_set_is_ticked_in_same_step(self, cpu):
        cpu.load_program(words(0x6005, 0xF015, 0xF107))
        cpu.step()
        cpu.step()
        assert cpu.get_state().delay_timer == 4
        cpu.step()
        assert cpu.get_state().v[1] == 4

    def test_realtime_mode_does_not_tick_on_step(self):
        cpu = Chip8Cpu(create_memory_bus(), timer_mode=TimerMode.REALTIME, timer_hz=64)
        cpu.load_program(words(0x6000))
        cpu.get_state().delay_timer = 20
        cpu.step()
        assert cpu.get_state().delay_timer == 20

    def test_realtime_advance_time(self):
        cpu = Chip8Cpu(create_memory_bus(), timer_mode=TimerMode.REALTIME, timer_hz=64)
        state = cpu.get_state()
        state.delay_timer = 20
        state.sound_timer = 2
        assert cpu.advance_time(0.25) == 16
        assert state.delay_timer == 4
        assert state.sound_timer == 0

    def test_realtime_carries_fraction(self):
        cpu = Chip8Cpu(create_memory_bus(), timer_mode=TimerMode.REALTIME, timer_hz=64)
        cpu.get_state().delay_timer = 5
        assert cpu.advance_time(1 / 128) == 0
        assert cpu.advance_time(1 / 128) == 1
        assert cpu.get_state().delay_timer == 4

    def test_advance_time_requires_realtime_mode(self, cpu):
        with pytest.raises(RuntimeError):
            cpu.advance_time(1.0)

    def test_invalid_timer_hz(self):
        with pytest.raises(ValueError):
            Chip8Cpu(create_memory_bus(), timer_hz=0)


class TestKeyWait:
    # @intent:test_case_suspend FX0Aでキー入力待ちに入り、キー押下で再開することを検証します。
    def test_wait_and_resume(self, cpu):
        cpu.load_program(words(0xF30A, 0x6001))
        cpu.step()
        state = cpu.get_state()
        assert cpu.awaiting_key
        assert state.mode is ExecutionMode.AWAITING_KEY
        assert state.pc == PROGRAM_START + 2

        snapshot = cpu.step()
        assert snapshot.operation.mnemonic == "KEY WAIT"
        assert snapshot.bus_activity == []
        assert cpu.get_state().pc == PROGRAM_START + 2
        assert cpu.awaiting_key

        cpu.press_key(0xB)
        snapshot = cpu.step()
        state = cpu.get_state()
        assert snapshot.operation.text() == "KEY V3, B"
        assert state.v[3] == 0xB
        assert not cpu.awaiting_key
        assert state.key_register is None
        assert state.pc == PROGRAM_START + 2

        cpu.step()
        assert cpu.get_state().v[0] == 1
        assert cpu.get_state().pc == PROGRAM_START + 4

    def test_key_held_before_wait_does_not_resume(self, cpu):
        cpu.load_program(words(0xF00A))
        cpu.press_key(5)
        cpu.step()
        cpu.step()
        assert cpu.awaiting_key

        cpu.release_key(5)
        cpu.step()
        assert cpu.awaiting_key

        cpu.press_key(5)
        cpu.step()
        assert not cpu.awaiting_key
        assert cpu.get_state().v[0] == 5

    def test_timers_keep_running_while_waiting(self, cpu):
        cpu.load_program(words(0xF00A))
        cpu.get_state().delay_timer = 10
        for _ in range(4):
            cpu.step()
        assert cpu.awaiting_key
        assert cpu.get_state().delay_timer == 6
