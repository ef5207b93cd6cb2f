import warnings
from pathlib import Path
from typing import Dict, Any, List, Optional

import yaml

from chip8_tracer.core.cpu import TimerMode
from .models import SystemConfig, CpuInitialState

KNOWN_KEYS = {
    "program", "origin", "stack_capacity", "timer_mode", "timer_hz",
    "random_seed", "random_sequence", "held_keys", "initial_state",
}

class ConfigLoader:
    def load_from_file(self, path: str) -> SystemConfig:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
        config = self._parse_config(data or {})
        # プログラムの相対パスは設定ファイルの位置を基準に解決する
        if config.program and not Path(config.program).is_absolute():
            config.program = str(Path(path).parent / config.program)
        return config

    def load_from_string(self, text: str) -> SystemConfig:
        return self._parse_config(yaml.safe_load(text) or {})

    def _parse_config(self, data: Dict[str, Any]) -> SystemConfig:
        if not isinstance(data, dict):
            raise ValueError("Configuration root must be a mapping.")

        for key in data:
            if key not in KNOWN_KEYS:
                warnings.warn(f"Unknown configuration key '{key}' is ignored.")

        timer_mode_value = data.get("timer_mode", TimerMode.PER_STEP.value)
        try:
            timer_mode = TimerMode(timer_mode_value)
        except ValueError:
            raise ValueError(f"Invalid timer_mode: {timer_mode_value}")

        stack_capacity = self._parse_int(data.get("stack_capacity", 16))
        if stack_capacity <= 0:
            raise ValueError(f"stack_capacity must be positive: {stack_capacity}")

        timer_hz = self._parse_int(data.get("timer_hz", 60))
        if timer_hz <= 0:
            raise ValueError(f"timer_hz must be positive: {timer_hz}")

        # Parse Initial State
        initial_state_data = data.get("initial_state") or {}
        registers = {
            str(name).lower(): self._parse_int(value)
            for name, value in (initial_state_data.get("registers") or {}).items()
        }
        initial_state = CpuInitialState(
            pc=self._parse_int(initial_state_data.get("pc", 0x200)),
            i=self._parse_int(initial_state_data.get("i", 0)),
            registers=registers,
        )

        return SystemConfig(
            program=data.get("program"),
            origin=self._parse_int(data.get("origin", 0x200)),
            stack_capacity=stack_capacity,
            timer_mode=timer_mode,
            timer_hz=timer_hz,
            random_seed=self._parse_optional_int(data.get("random_seed")),
            random_sequence=self._parse_int_list(data.get("random_sequence")),
            held_keys=self._parse_int_list(data.get("held_keys")),
            initial_state=initial_state,
        )

    def _parse_optional_int(self, value: Any) -> Optional[int]:
        if value is None:
            return None
        return self._parse_int(value)

    def _parse_int_list(self, value: Any) -> List[int]:
        if value is None:
            return []
        if not isinstance(value, list):
            raise ValueError(f"Expected a list of integers: {value}")
        return [self._parse_int(v) for v in value]

    def _parse_int(self, value: Any) -> int:
        if isinstance(value, bool):
            raise ValueError(f"Invalid integer format: {value}")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            if value.lower().startswith("0x"):
                return int(value, 16)
            return int(value)
        raise ValueError(f"Invalid integer format: {value}")
