# chip8_tracer/core/keypad.py
"""
Core Layer (キー入力状態)

16個のキー (0x0-0xF) の押下状態を保持します。状態はホストがステップの合間に設定し、
コアは命令実行中に読み取るだけです。
"""
from collections import deque
from typing import Deque, List, Optional

KEY_COUNT = 16

# @intent:responsibility キーの押下状態と、押下遷移（未押下→押下）の履歴を保持します。
class Keypad:
    """
    16キーの入力状態。

    press() で未押下のキーが押下状態になった場合、その遷移がキューに記録されます。
    キー入力待ち命令 (FX0A) はこのキューから再開のきっかけとなるキーを取り出します。
    """
    def __init__(self):
        self._keys: List[bool] = [False] * KEY_COUNT
        self._presses: Deque[int] = deque()

    @staticmethod
    def _check(key: int) -> None:
        if not 0 <= key < KEY_COUNT:
            raise ValueError(f"Key index {key} is outside 0x0-0xF.")

    def press(self, key: int) -> None:
        self.set_key(key, True)

    def release(self, key: int) -> None:
        self.set_key(key, False)

    # @intent:responsibility キーの状態を設定し、押下遷移であればキューに記録します。
    def set_key(self, key: int, pressed: bool) -> None:
        self._check(key)
        if pressed and not self._keys[key]:
            self._presses.append(key)
        self._keys[key] = bool(pressed)

    def is_pressed(self, key: int) -> bool:
        self._check(key)
        return self._keys[key]

    def pressed_keys(self) -> List[int]:
        return [key for key, pressed in enumerate(self._keys) if pressed]

    # @intent:responsibility 最も古い押下遷移のキー番号を取り出します。無ければNone。
    def take_press(self) -> Optional[int]:
        if self._presses:
            return self._presses.popleft()
        return None

    def clear_presses(self) -> None:
        self._presses.clear()

    def reset(self) -> None:
        self._keys = [False] * KEY_COUNT
        self._presses.clear()
