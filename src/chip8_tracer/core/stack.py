# chip8_tracer/core/stack.py
"""
Core Layer (コールスタック)

サブルーチン呼び出しの戻りアドレスを保持する、容量固定のLIFO構造を提供します。
"""
from typing import List, Optional, Tuple

from chip8_tracer.core.errors import StackOverflow, StackUnderflow

# @intent:constant 歴史的な実装に倣ったデフォルトのスタック容量（戻りアドレス数）。
DEFAULT_STACK_CAPACITY = 16

# @intent:responsibility 戻りアドレスを容量制限付きで保持します。
class CallStack:
    """
    容量固定のコールスタック。
    容量を超えるpushはStackOverflow、空の状態でのpopはStackUnderflowを送出します。
    """
    # @intent:pre-condition capacityは正の整数である必要があります。
    def __init__(self, capacity: int = DEFAULT_STACK_CAPACITY):
        if not isinstance(capacity, int) or capacity <= 0:
            raise ValueError("Stack capacity must be a positive integer.")
        self._capacity = capacity
        self._entries: List[int] = []

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def is_empty(self) -> bool:
        return not self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CallStack):
            return NotImplemented
        return self._capacity == other._capacity and self._entries == other._entries

    def __repr__(self) -> str:
        entries = ", ".join(f"{addr:#05x}" for addr in self._entries)
        return f"CallStack([{entries}], capacity={self._capacity})"

    # @intent:responsibility 戻りアドレスを積みます。
    def push(self, address: int) -> None:
        if len(self._entries) >= self._capacity:
            raise StackOverflow(self._capacity, address)
        self._entries.append(address & 0xFFFF)

    # @intent:responsibility 最後に積まれた戻りアドレスを取り出します。
    def pop(self) -> int:
        if not self._entries:
            raise StackUnderflow()
        return self._entries.pop()

    def peek(self) -> Optional[int]:
        return self._entries[-1] if self._entries else None

    # @intent:responsibility 底から頂上への順で現在の内容を返します。
    def entries(self) -> Tuple[int, ...]:
        return tuple(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def copy(self) -> "CallStack":
        clone = CallStack(self._capacity)
        clone._entries = list(self._entries)
        return clone
