from dataclasses import dataclass, field
from typing import Dict, List, Optional

from chip8_tracer.core.cpu import DEFAULT_TIMER_HZ, TimerMode
from chip8_tracer.core.stack import DEFAULT_STACK_CAPACITY
from chip8_tracer.core.state import PROGRAM_START

@dataclass
class CpuInitialState:
    pc: int = PROGRAM_START
    i: int = 0x000
    registers: Dict[str, int] = field(default_factory=dict)  # "v0".."vf", "delay_timer", "sound_timer"

@dataclass
class SystemConfig:
    program: Optional[str] = None  # 生のROMイメージのパス
    origin: int = PROGRAM_START
    stack_capacity: int = DEFAULT_STACK_CAPACITY
    timer_mode: TimerMode = TimerMode.PER_STEP
    timer_hz: int = DEFAULT_TIMER_HZ
    random_seed: Optional[int] = None
    random_sequence: List[int] = field(default_factory=list)  # 指定時は乱数の代わりに循環使用
    held_keys: List[int] = field(default_factory=list)
    initial_state: CpuInitialState = field(default_factory=CpuInitialState)
