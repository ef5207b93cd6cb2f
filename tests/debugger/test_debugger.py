# tests/debugger/test_debugger.py
"""
chip8_tracer.debugger.debuggerモジュールの単体テスト。
Debuggerの実行制御、ブレークポイント管理、条件チェック、およびステップバック機能を検証します。
"""
import pytest
from unittest.mock import patch

from chip8_tracer.transport.bus import BusAccessType, create_memory_bus
from chip8_tracer.core.cpu import Chip8Cpu
from chip8_tracer.core.errors import MemoryOutOfBounds, StackUnderflow
from chip8_tracer.core.state import Chip8CpuState
from chip8_tracer.core.snapshot import Snapshot, Operation, Metadata
from chip8_tracer.debugger.debugger import (
    Debugger, BreakpointCondition, BreakpointConditionType, StopReason,
)

# @intent:test_suite デバッガのブレークポイントと実行制御機能の検証。

def words(*opcodes: int) -> bytes:
    return b"".join(op.to_bytes(2, "big") for op in opcodes)


class TestDebugger:
    """
    Debuggerの単体テスト。
    """
    @pytest.fixture
    def setup_debugger(self):
        bus = create_memory_bus()
        cpu = Chip8Cpu(bus)
        debugger = Debugger(cpu)
        return debugger, cpu, bus

    # @intent:test_case_add_remove_breakpoint ブレークポイントの追加と削除が正しく行われることを検証します。
    def test_add_remove_breakpoint(self, setup_debugger):
        debugger, _, _ = setup_debugger
        bp1 = BreakpointCondition(BreakpointConditionType.PC_MATCH, value=0x300)
        bp2 = BreakpointCondition(BreakpointConditionType.MEMORY_WRITE, address=0x400)

        debugger.add_breakpoint(bp1)
        debugger.add_breakpoint(bp2)
        assert debugger.get_breakpoints() == [bp1, bp2]

        debugger.add_breakpoint(bp1) # 重複追加は無視される
        assert len(debugger.get_breakpoints()) == 2

        debugger.remove_breakpoint(bp1)
        assert debugger.get_breakpoints() == [bp2]

        debugger.remove_breakpoint(bp1) # 存在しないブレークポイントの削除はエラーにならない
        assert len(debugger.get_breakpoints()) == 1

    def test_update_breakpoint_disables(self, setup_debugger):
        debugger, cpu, _ = setup_debugger
        cpu.load_program(words(0x6001, 0x6002, 0x1204))
        bp = BreakpointCondition(BreakpointConditionType.PC_MATCH, value=0x202)
        disabled = BreakpointCondition(BreakpointConditionType.PC_MATCH, value=0x202, enabled=False)
        debugger.add_breakpoint(bp)
        debugger.update_breakpoint(bp, disabled)
        assert debugger.get_breakpoints() == [disabled]

        assert debugger.run(max_steps=5) == StopReason.STEP_LIMIT
        assert cpu.get_state().pc == 0x204

    # @intent:test_case_step_instruction step_instructionがcpu.stepを呼び出し、Snapshotを返すことを検証します。
    def test_step_instruction(self, setup_debugger):
        debugger, cpu, _ = setup_debugger
        initial_pc = cpu.get_state().pc

        # cpu.step()が呼ばれることを検証するためにモック化
        with patch.object(cpu, 'step', return_value=Snapshot(
            state=Chip8CpuState(pc=initial_pc + 2),
            operation=Operation(opcode_hex="6000", mnemonic="LD", operands=["V0", "$00"]),
            bus_activity=[],
            metadata=Metadata(cycle_count=1)
        )) as mock_step:
            snapshot = debugger.step_instruction()
            mock_step.assert_called_once()
            assert isinstance(snapshot, Snapshot)
            assert snapshot.state.pc == initial_pc + 2
            assert debugger.get_last_snapshot() is snapshot
            assert debugger.get_history() == [snapshot]

    # @intent:test_case_pc_match_breakpoint PC_MATCHブレークポイントがヒットすることを検証します。
    def test_pc_match_breakpoint(self, setup_debugger):
        debugger, cpu, _ = setup_debugger
        cpu.load_program(words(0x6001, 0x6002, 0x6003))
        target_pc = 0x204
        debugger.add_breakpoint(BreakpointCondition(BreakpointConditionType.PC_MATCH, value=target_pc))

        with patch('builtins.print') as mock_print: # print文をモック
            reason = debugger.run()

            assert reason == StopReason.BREAKPOINT
            assert not debugger.is_running # ブレークポイントヒットで停止
            assert cpu.get_state().pc == target_pc
            assert cpu.get_state().v[0] == 2
            mock_print.assert_called_with(f"Breakpoint hit at PC: {target_pc:#06x}")

    # @intent:test_case_resume ブレークポイント上から再開すると、その命令を実行して先へ進むことを検証します。
    def test_resume_from_breakpoint(self, setup_debugger):
        debugger, cpu, _ = setup_debugger
        cpu.load_program(words(0x6001, 0x6002, 0x6003, 0x1206))
        debugger.add_breakpoint(BreakpointCondition(BreakpointConditionType.PC_MATCH, value=0x204))

        with patch('builtins.print'):
            assert debugger.run() == StopReason.BREAKPOINT
            assert debugger.run(max_steps=4) == StopReason.STEP_LIMIT
        assert cpu.get_state().v[0] == 3
        assert cpu.get_state().pc == 0x206

    # @intent:test_case_memory_write_breakpoint MEMORY_WRITEブレークポイントがヒットすることを検証します。
    def test_memory_write_breakpoint(self, setup_debugger):
        debugger, cpu, _ = setup_debugger
        target_address = 0x301
        debugger.add_breakpoint(BreakpointCondition(BreakpointConditionType.MEMORY_WRITE, address=target_address))
        # LD I,$300 ; LD V1,$7B ; LD B,V1 ; JP $206
        cpu.load_program(words(0xA300, 0x617B, 0xF133, 0x1206))

        snapshot1 = debugger.step_instruction()
        assert not debugger._hits_breakpoint(snapshot1)

        with patch('builtins.print'):
            assert debugger.run() == StopReason.BREAKPOINT
        snapshot = debugger.get_last_snapshot()
        assert snapshot.operation.pattern == "FX33"
        assert cpu.get_state().pc == 0x206

        writes = [a for a in snapshot.bus_activity if a.access_type == BusAccessType.WRITE]
        assert [(a.address, a.data) for a in writes] == [(0x300, 1), (0x301, 2), (0x302, 3)]

    # @intent:test_case_memory_read_breakpoint MEMORY_READブレークポイントがヒットすることを検証します。
    def test_memory_read_breakpoint(self, setup_debugger):
        debugger, cpu, bus = setup_debugger
        target_address = 0x300
        debugger.add_breakpoint(BreakpointCondition(BreakpointConditionType.MEMORY_READ, address=target_address))
        cpu.load_program(words(0xA300, 0xF065, 0x1204))
        bus.write(target_address, 0xDE) # 読み込むデータ

        with patch('builtins.print'):
            assert debugger.run() == StopReason.BREAKPOINT
        assert cpu.get_state().pc == 0x204
        assert cpu.get_state().v[0] == 0xDE

        found_read_access = any(
            a.access_type == BusAccessType.READ and a.address == target_address and a.data == 0xDE
            for a in debugger.get_last_snapshot().bus_activity
        )
        assert found_read_access

    # @intent:test_case_register_value_breakpoint REGISTER_VALUEブレークポイントがヒットすることを検証します。
    def test_register_value_breakpoint(self, setup_debugger):
        debugger, cpu, _ = setup_debugger
        debugger.add_breakpoint(
            BreakpointCondition(BreakpointConditionType.REGISTER_VALUE, register_name="va", value=0x55)
        )
        cpu.load_program(words(0x6A55))

        snapshot1 = debugger.step_instruction()
        assert debugger._hits_breakpoint(snapshot1)
        assert cpu.get_state().v[0xA] == 0x55

    def test_register_change_breakpoint(self, setup_debugger):
        debugger, cpu, _ = setup_debugger
        debugger.add_breakpoint(BreakpointCondition(BreakpointConditionType.REGISTER_CHANGE, register_name="i"))
        cpu.load_program(words(0x6001, 0xA123, 0x1204))

        with patch('builtins.print'):
            assert debugger.run() == StopReason.BREAKPOINT
        assert cpu.get_state().i == 0x123
        assert cpu.get_state().pc == 0x204

    def test_key_wait_breakpoint(self, setup_debugger):
        debugger, cpu, _ = setup_debugger
        debugger.add_breakpoint(BreakpointCondition(BreakpointConditionType.KEY_WAIT))
        cpu.load_program(words(0x6001, 0xF30A))

        with patch('builtins.print'):
            assert debugger.run() == StopReason.BREAKPOINT
        assert cpu.awaiting_key

    # @intent:test_case_key_wait キー入力待ちに入ると、ブレークポイントが無くても実行を停止することを検証します。
    def test_run_stops_on_key_wait(self, setup_debugger):
        debugger, cpu, _ = setup_debugger
        cpu.load_program(words(0xF30A, 0x1202))

        with patch('builtins.print') as mock_print:
            assert debugger.run() == StopReason.KEY_WAIT
            mock_print.assert_called_with("Waiting for key at PC: 0x0202")

        cpu.press_key(0x7)
        assert debugger.run(max_steps=3) == StopReason.STEP_LIMIT
        assert cpu.get_state().v[3] == 0x7

    # @intent:test_case_error コアの例外で実行が停止し、例外が記録されることを検証します。
    def test_run_stops_on_error(self, setup_debugger):
        debugger, cpu, _ = setup_debugger
        cpu.load_program(words(0x00EE))

        with patch('builtins.print') as mock_print:
            assert debugger.run() == StopReason.ERROR
            assert mock_print.call_args[0][0].startswith("Execution stopped at PC: 0x0202")

        assert isinstance(debugger.last_error, StackUnderflow)
        assert not debugger.is_running
        assert debugger.get_history() == []

    def test_step_instruction_propagates_error(self, setup_debugger):
        debugger, cpu, _ = setup_debugger
        cpu.load_program(words(0x00EE))
        with pytest.raises(StackUnderflow):
            debugger.step_instruction()

    # @intent:test_case_run_until_stop run()メソッドがstop()で停止することを検証します。
    def test_run_until_stop(self, setup_debugger):
        debugger, cpu, _ = setup_debugger
        cpu.load_program(words(0x1200))
        real_step = cpu.step

        def step_and_stop():
            snapshot = real_step()
            debugger.stop()
            return snapshot

        with patch.object(cpu, 'step', side_effect=step_and_stop) as mock_step:
            assert debugger.run() == StopReason.STOPPED
            assert mock_step.call_count == 1
            assert not debugger.is_running


class TestStepBack:
    """
    実行履歴によるステップバックのテスト。
    """
    @pytest.fixture
    def debugger(self):
        cpu = Chip8Cpu(create_memory_bus())
        return Debugger(cpu)

    # @intent:test_case_step_back メモリ書き込みとレジスタが1ステップ前に戻ることを検証します。
    def test_step_back_reverts_memory_and_registers(self, debugger):
        cpu = debugger._cpu
        cpu.load_program(words(0xA300, 0x69EA, 0xF933))
        bus = cpu.bus
        bus.load(0x300, 0x11)

        first = debugger.step_instruction()
        second = debugger.step_instruction()
        debugger.step_instruction()
        assert [bus.peek(0x300 + n) for n in range(3)] == [2, 3, 4]

        restored = debugger.step_back()
        assert restored is second
        assert [bus.peek(0x300 + n) for n in range(3)] == [0x11, 0, 0]
        assert cpu.get_state().pc == 0x204
        assert cpu.get_state().v[9] == 0xEA

        assert debugger.step_back() is first
        assert cpu.get_state().v[9] == 0

        assert debugger.step_back() is None
        assert cpu.get_state().pc == 0x200
        assert cpu.get_state().i == 0
        assert debugger.step_back() is None

    def test_step_back_restores_framebuffer(self, debugger):
        cpu = debugger._cpu
        cpu.load_program(words(0xA050, 0xD015))
        debugger.step_instruction()
        debugger.step_instruction()
        assert cpu.get_framebuffer() != bytes(64 * 32)

        debugger.step_back()
        assert cpu.get_framebuffer() == bytes(64 * 32)

    # @intent:test_case_restored_state 復元後の状態を変更しても履歴のスナップショットは影響を受けないことを検証します。
    def test_restored_state_is_independent(self, debugger):
        cpu = debugger._cpu
        cpu.load_program(words(0x6001, 0x6002))
        first = debugger.step_instruction()
        debugger.step_instruction()
        debugger.step_back()
        cpu.get_state().v[0] = 0x99
        assert first.state.v[0] == 1

    def test_history_limit(self):
        cpu = Chip8Cpu(create_memory_bus())
        debugger = Debugger(cpu, history_limit=2)
        cpu.load_program(words(0x6001, 0x6002, 0x6003))
        for _ in range(3):
            debugger.step_instruction()
        assert len(debugger.get_history()) == 2

        debugger.step_back()
        assert cpu.get_state().v[0] == 2
        # 破棄された最古のステップの状態が巻き戻しの限界になる
        assert debugger.step_back() is None
        assert cpu.get_state().v[0] == 1
        assert cpu.get_state().pc == 0x202

    # @intent:test_case_failed_step_undo 例外で中断したステップのメモリ書き込みがステップバックで戻ることを検証します。
    def test_step_back_reverts_writes_of_failed_step(self, debugger):
        cpu = debugger._cpu
        bus = cpu.bus
        # FX55 (X=3) は 0xFFE, 0xFFF に書いた後、0x1000 で失敗する
        cpu.load_program(words(0xAFFE, 0x60AA, 0x61BB, 0xF355))
        with patch('builtins.print'):
            assert debugger.run() == StopReason.ERROR
        assert isinstance(debugger.last_error, MemoryOutOfBounds)
        assert (bus.peek(0xFFE), bus.peek(0xFFF)) == (0xAA, 0xBB)
        assert len(debugger.get_history()) == 3

        restored = debugger.step_back()
        assert restored is debugger.get_history()[-1]
        assert (bus.peek(0xFFE), bus.peek(0xFFF)) == (0, 0)
        assert cpu.get_state().pc == 0x206
        assert cpu.get_state().v[1] == 0xBB

        # 以降は通常の履歴を遡る
        debugger.step_back()
        assert cpu.get_state().pc == 0x204
        assert cpu.get_state().v[1] == 0

    def test_failed_step_writes_undone_with_next_step(self, debugger):
        cpu = debugger._cpu
        bus = cpu.bus
        # FX33 は 0xFFE, 0xFFF に書いた後、0x1000 で失敗し、PCは次の命令に進んでいる
        cpu.load_program(words(0xAFFE, 0x607B, 0xF033, 0x6101))
        debugger.step_instruction()
        second = debugger.step_instruction()
        with pytest.raises(MemoryOutOfBounds):
            debugger.step_instruction()
        assert (bus.peek(0xFFE), bus.peek(0xFFF)) == (1, 2)

        debugger.step_instruction()
        assert cpu.get_state().v[1] == 1

        assert debugger.step_back() is second
        assert (bus.peek(0xFFE), bus.peek(0xFFF)) == (0, 0)
        assert cpu.get_state().pc == 0x204
        assert cpu.get_state().v[1] == 0

    def test_failed_first_step_returns_to_base(self, debugger):
        cpu = debugger._cpu
        bus = cpu.bus
        cpu.get_state().i = 0xFFF
        cpu.get_state().v[0] = 0x42
        cpu.load_program(words(0xF155))
        with pytest.raises(MemoryOutOfBounds):
            debugger.step_instruction()
        assert bus.peek(0xFFF) == 0x42

        assert debugger.step_back() is None
        assert bus.peek(0xFFF) == 0
        assert cpu.get_state().pc == 0x200
        assert debugger.step_back() is None
