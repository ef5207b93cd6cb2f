from typing import Tuple

from chip8_tracer.core.cpu import Chip8Cpu
from chip8_tracer.core.random_source import RandomSource, SequenceRandomSource, SystemRandomSource
from chip8_tracer.core.state import REGISTER_COUNT
from chip8_tracer.loader.loader import ProgramLoader
from chip8_tracer.transport.bus import Bus, create_memory_bus
from .models import SystemConfig, CpuInitialState

# @intent:responsibility システム構成（Config）に基づいて、Bus、CPU、乱数源を生成・接続し、初期状態を適用します。
class SystemBuilder:
    def build_system(self, config: SystemConfig) -> Tuple[Chip8Cpu, Bus]:
        bus = create_memory_bus()
        cpu = Chip8Cpu(
            bus,
            random_source=self._create_random_source(config),
            stack_capacity=config.stack_capacity,
            timer_mode=config.timer_mode,
            timer_hz=config.timer_hz,
        )

        if config.program:
            ProgramLoader().load_file(config.program, bus, config.origin)

        self.apply_initial_state(cpu, config.initial_state)

        for key in config.held_keys:
            cpu.press_key(key)

        return cpu, bus

    def _create_random_source(self, config: SystemConfig) -> RandomSource:
        if config.random_sequence:
            return SequenceRandomSource(config.random_sequence)
        return SystemRandomSource(config.random_seed)

    # @intent:responsibility Configで定義された初期状態をCPUに適用します。
    def apply_initial_state(self, cpu: Chip8Cpu, config_state: CpuInitialState) -> None:
        """
        メモリを保持したままCPUをリセットし、Configから指定された初期値を適用します。
        """
        cpu.reset(clear_memory=False)
        state = cpu.get_state()
        state.pc = config_state.pc & 0xFFFF
        state.i = config_state.i & 0xFFFF

        for reg_name, value in config_state.registers.items():
            if not 0 <= value <= 0xFF:
                raise ValueError(f"Register {reg_name} value {value} is not an 8-bit value.")
            if len(reg_name) == 2 and reg_name[0] == "v":
                index = int(reg_name[1], 16)
                if index >= REGISTER_COUNT:
                    raise ValueError(f"Unknown register: {reg_name}")
                state.v[index] = value
            elif reg_name in ("delay_timer", "sound_timer"):
                setattr(state, reg_name, value)
            else:
                raise ValueError(f"Unknown register: {reg_name}")
